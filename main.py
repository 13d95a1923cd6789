import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Optional

import typer

from config.settings import Config
from hlsdl import DownloadError, DownloadTarget, M3U8Downloader, RetryPolicy
from hlsdl.helpers import disk_usage, format_file_size, local_name
from hlsdl.playlist import parse

# Configure logging
logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="hlsdl",
    help="Download an HLS playlist and its segments for local playback.",
    add_completion=False,
)


async def log_progress(message: str):
    """Log segment progress"""
    logger.info(message)


async def run_download(target: DownloadTarget, policy: RetryPolicy):
    """Download the playlist and report what ended up on disk"""
    async with M3U8Downloader(target, policy, log_progress) as downloader:
        missing = await downloader.start()

    index_text = target.index_path.read_text(encoding='utf-8', errors='replace')
    names = [local_name(url) for url in parse(index_text).segments if url]
    count, total = disk_usage(target.output, names)
    logger.info(f"{count} segment(s) on disk, {format_file_size(total)}")
    return missing


@app.command()
def main(
    url: str = typer.Option(..., "--url", "-u", help="Download video index address"),
    output: str = typer.Option(Config.DEFAULT_OUTPUT, "--output", "-o", help="Save video directory"),
    thread: int = typer.Option(
        Config.DEFAULT_THREADS, "--thread", "-t", min=1, max=Config.MAX_THREADS, help="Thread of number"
    ),
    retries: Optional[int] = typer.Option(
        None, "--retries", help="Retries per segment, negative to retry forever"
    ),
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Seconds allowed for the segment downloads"
    ),
    strict: bool = typer.Option(
        Config.FAIL_ON_MISSING, "--strict/--no-strict", help="Fail if any segment is missing"
    ),
    retry_body_errors: bool = typer.Option(
        Config.RETRY_BODY_ERRORS, "--retry-body-errors/--skip-body-errors",
        help="Retry segments whose response body breaks off instead of skipping them"
    ),
):
    """Download an HLS playlist into OUTPUT."""
    try:
        Config.validate()
    except ValueError as e:
        logger.error(str(e))
        raise typer.Exit(code=2)

    if not url or not output:
        raise typer.Exit(code=2)

    overrides = {'fail_on_missing': strict, 'retry_body_errors': retry_body_errors}
    if retries is not None:
        overrides['max_retries'] = retries if retries >= 0 else None
    if deadline is not None:
        overrides['deadline'] = deadline or None
    policy = dataclasses.replace(RetryPolicy.from_config(), **overrides)

    logger.info(f"Download: {url}")
    logger.info(f"Out: {output}")

    target = DownloadTarget(url=url, output=Path(output), workers=thread)
    try:
        asyncio.run(run_download(target, policy))
    except DownloadError as e:
        logger.error(f"Download failed: {e}")
        raise typer.Exit(code=1)

    typer.echo("Download Success !")


if __name__ == "__main__":
    app()
