"""
Playlist parsing and rewriting for local playback.
"""

import logging
import re
from pathlib import Path
from typing import List

import aiofiles
import aiofiles.os

from .helpers import local_name
from .models import KEY_FILENAME, DownloadTarget, ParsedPlaylist

logger = logging.getLogger(__name__)

SIGNATURE = "#EXTM3U"
KEY_DIRECTIVE = "#EXT-X-KEY:"

_URI_ATTRIBUTE = re.compile(r'URI=("[^"]*"|[^,]*)')


def split_lines(text: str) -> List[str]:
    return text.replace("\r\n", "\n").split("\n")


def parse(text: str) -> ParsedPlaylist:
    """
    Split playlist text into the key URI and the segment references.

    Directive and comment lines are dropped. Blank lines are kept as empty
    strings so the list stays aligned with the document; the downloader
    treats them as already satisfied. When several key directives appear
    the last URI wins.

    Args:
        text: Raw playlist text

    Returns:
        ParsedPlaylist of (key URI or "", segment references in order)
    """
    key_uri = ""
    segments = []

    for line in split_lines(text):
        if line.startswith(KEY_DIRECTIVE):
            match = _URI_ATTRIBUTE.search(line)
            if match:
                key_uri = match.group(1).replace('"', '')
        if line.startswith("#"):
            continue
        segments.append(line)

    return ParsedPlaylist(key_uri, segments)


def rewrite_lines(lines: List[str], output: Path) -> List[str]:
    """
    Point the key directive and every downloaded segment at local files.

    Segment lines whose file is missing from ``output`` are left untouched.
    """
    result = []
    for line in lines:
        if line.startswith(KEY_DIRECTIVE):
            line = _URI_ATTRIBUTE.sub(f'URI="{KEY_FILENAME}"', line, count=1)
        elif not line.startswith("#"):
            name = local_name(line)
            if name and (output / name).exists():
                line = name
        result.append(line)
    return result


async def rewrite_for_local_playback(target: DownloadTarget) -> None:
    """
    Rewrite the cached playlist in place so it plays from the output directory.

    Does nothing if the playlist was never cached.
    """
    if not await aiofiles.os.path.exists(target.index_path):
        logger.warning(f"No cached playlist at {target.index_path}, skipping rewrite")
        return

    async with aiofiles.open(target.index_path, 'r', encoding='utf-8', errors='surrogateescape') as f:
        text = await f.read()

    lines = rewrite_lines(split_lines(text), target.output)

    async with aiofiles.open(target.index_path, 'w', encoding='utf-8', errors='surrogateescape', newline='') as f:
        await f.write("\n".join(lines))

    logger.info(f"Rewrote playlist for local playback: {target.index_path}")
