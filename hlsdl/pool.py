"""
Concurrent segment download pool.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import aiofiles
import aiofiles.os
import aiohttp

from config.settings import Config

from .errors import DownloadTimeoutError, StorageError
from .helpers import local_name, resolve_url
from .models import DownloadTarget, RetryPolicy

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], Awaitable[None]]


class SegmentPool:
    """
    Downloads playlist segments with a fixed number of worker tasks.

    Workers drain a shared queue that is filled once, before they start.
    A segment whose file already exists is skipped without a request, so
    running the pool again over the same directory only fetches what is
    missing.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        target: DownloadTarget,
        policy: RetryPolicy = RetryPolicy(),
        progress_callback: Optional[ProgressCallback] = None,
        chunk_size: int = Config.CHUNK_SIZE,
    ):
        self.session = session
        self.target = target
        self.policy = policy
        self.progress_callback = progress_callback
        self.chunk_size = chunk_size
        self.failed: List[str] = []
        self._settled = 0
        self._total = 0

    async def run(self, segments: List[str]) -> List[str]:
        """
        Download every segment and wait for all workers to finish.

        Args:
            segments: Segment references in playlist order, blanks included

        Returns:
            References that could not be downloaded

        Raises:
            StorageError: If a segment cannot be written to disk
            DownloadTimeoutError: If the policy deadline is exceeded
        """
        queue: asyncio.Queue = asyncio.Queue()
        for url in segments:
            queue.put_nowait(url)

        self.failed = []
        self._settled = 0
        self._total = len(segments)

        logger.info(f"Downloading {self._total} segments with {self.target.workers} workers")

        workers = [
            asyncio.create_task(self._worker(queue), name=f"segment-worker-{i}")
            for i in range(self.target.workers)
        ]
        try:
            await asyncio.wait_for(asyncio.gather(*workers), timeout=self.policy.deadline)
        except asyncio.TimeoutError:
            raise DownloadTimeoutError(
                f"Segment download exceeded the {self.policy.deadline}s deadline"
            ) from None
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        logger.info(f"Segment pool finished, {len(self.failed)} segment(s) missing")
        return self.failed

    async def _worker(self, queue: asyncio.Queue) -> None:
        while True:
            try:
                url = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            if not await self.download_segment(url):
                self.failed.append(url)
            await self._report()

    async def _report(self) -> None:
        self._settled += 1
        if self.progress_callback:
            progress = self._settled / self._total * 100
            await self.progress_callback(
                f"Settled segment {self._settled}/{self._total} ({progress:.1f}%), "
                f"{len(self.failed)} missing"
            )

    async def download_segment(self, url: str) -> bool:
        """
        Download a single segment unless it is already on disk.

        Connection errors, timeouts and 5xx responses are retried with
        backoff until the policy's retries run out (never, by default).
        A 4xx response is not retried. An error while reading the body of
        an established response abandons the segment at once unless the
        policy retries body errors.

        Args:
            url: Segment reference as written in the playlist

        Returns:
            False if the segment was abandoned, True otherwise
        """
        if not url:
            return True

        path = self.target.output / local_name(url)
        if await aiofiles.os.path.exists(path):
            return True

        download_url = resolve_url(self.target.url, url)
        part_path = path.with_name(path.name + ".part")
        timeout = aiohttp.ClientTimeout(total=self.policy.timeout)
        logger.info(f"Downloading segment {download_url}")

        attempt = 0
        while True:
            try:
                async with self.session.get(download_url, timeout=timeout) as response:
                    if 400 <= response.status < 500:
                        logger.error(f"Segment {download_url} returned HTTP {response.status}, not retrying")
                        return False
                    response.raise_for_status()
                    try:
                        await self._stream_body(response, part_path)
                    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                        if not self.policy.retry_body_errors:
                            logger.error(f"Response body error: {download_url} {e}")
                            await self._discard(part_path)
                            return False
                        raise
                await aiofiles.os.replace(part_path, path)
                return True

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                attempt += 1
                if self.policy.exhausted(attempt):
                    logger.error(f"Giving up on segment {download_url} after {attempt} attempts: {e}")
                    await self._discard(part_path)
                    return False
                delay = self.policy.delay(attempt)
                logger.warning(f"Retry {attempt} for segment {download_url} in {delay:.1f}s: {e}")
                await asyncio.sleep(delay)

            except OSError as e:
                raise StorageError(f"Failed to write segment {path}: {e}") from e

    async def _stream_body(self, response: aiohttp.ClientResponse, part_path: Path) -> None:
        async with aiofiles.open(part_path, 'wb') as f:
            async for chunk in response.content.iter_chunked(self.chunk_size):
                await f.write(chunk)

    async def _discard(self, part_path: Path) -> None:
        try:
            await aiofiles.os.remove(part_path)
        except FileNotFoundError:
            pass
