"""
HLS downloader module mirroring a playlist into a local directory.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os
import aiohttp
import m3u8

from config.settings import Config

from .errors import (
    FetchError,
    IncompleteDownloadError,
    InvalidPlaylistError,
    KeyDownloadError,
    StorageError,
    UnsupportedPlaylistError,
)
from .helpers import resolve_url
from .models import DownloadTarget, ParsedPlaylist, RetryPolicy
from .playlist import SIGNATURE, parse, rewrite_for_local_playback
from .pool import ProgressCallback, SegmentPool

logger = logging.getLogger(__name__)


class M3U8Downloader:
    """Handles playlist, key and segment downloads for one output directory."""

    def __init__(
        self,
        target: DownloadTarget,
        policy: Optional[RetryPolicy] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.target = target
        self.policy = policy or RetryPolicy.from_config()
        self.progress_callback = progress_callback
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.session:
            await self.session.close()

    async def start(self) -> List[str]:
        """
        Run every stage: index, key, segments, then the playlist rewrite.

        Returns:
            Segment references still missing after the run

        Raises:
            DownloadError: For any condition that aborts the run
        """
        await self.ensure_directory()
        index = await self.fetch_index()
        playlist = parse(index)

        if playlist.key_uri:
            await self.fetch_key(playlist.key_uri)

        missing = await self.download_segments(playlist)
        try:
            await rewrite_for_local_playback(self.target)
        except OSError as e:
            raise StorageError(f"Failed to rewrite {self.target.index_path}: {e}") from e
        return missing

    async def ensure_directory(self) -> None:
        try:
            await aiofiles.os.makedirs(self.target.output, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create output directory {self.target.output}: {e}") from e

    async def fetch_index(self) -> str:
        """
        Get the playlist text, from the local cache when present.

        The first fetch is validated and stored verbatim; later runs reuse
        the cached copy without a request.

        Raises:
            InvalidPlaylistError: If the response is not an HLS playlist
            UnsupportedPlaylistError: If the response is a master playlist
            FetchError: If the request fails
        """
        index_path = self.target.index_path
        if await aiofiles.os.path.exists(index_path):
            logger.info(f"Using cached playlist {index_path}")
            async with aiofiles.open(index_path, 'r', encoding='utf-8', errors='replace', newline='') as f:
                return await f.read()

        logger.info(f"Fetching playlist {self.target.url}")
        try:
            timeout = aiohttp.ClientTimeout(total=Config.INDEX_TIMEOUT)
            async with self.session.get(self.target.url, timeout=timeout) as response:
                response.raise_for_status()
                body = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"Failed to fetch playlist {self.target.url}: {e}") from e

        text = body.decode("utf-8", errors="replace")
        if not text.startswith(SIGNATURE):
            raise InvalidPlaylistError(f"Response is not an M3U8 playlist: {text[:100]!r}")
        if m3u8.loads(text, uri=self.target.url).is_variant:
            raise UnsupportedPlaylistError("Master playlists are not supported, pass a media playlist URL")

        await self._write(index_path, body)
        return text

    async def fetch_key(self, key_uri: str) -> None:
        """
        Download the encryption key to ``key.m3u8`` unless it exists.

        Raises:
            KeyDownloadError: If the request fails; key downloads are not retried
        """
        key_path = self.target.key_path
        if await aiofiles.os.path.exists(key_path):
            return

        key_url = resolve_url(self.target.url, key_uri)
        logger.info(f"Fetching key {key_url}")
        try:
            timeout = aiohttp.ClientTimeout(total=Config.INDEX_TIMEOUT)
            async with self.session.get(key_url, timeout=timeout) as response:
                response.raise_for_status()
                data = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise KeyDownloadError(f"Failed to fetch key {key_url}: {e}") from e

        await self._write(key_path, data)

    async def download_segments(self, playlist: ParsedPlaylist) -> List[str]:
        """
        Run the segment pool and return the references still missing.

        Raises:
            IncompleteDownloadError: If the policy refuses missing segments
        """
        pool = SegmentPool(self.session, self.target, self.policy, self.progress_callback)
        missing = await pool.run(playlist.segments)

        if missing:
            for url in missing:
                logger.warning(f"Segment left undownloaded: {url}")
            if self.policy.fail_on_missing:
                raise IncompleteDownloadError(missing)
        return missing

    async def _write(self, path: Path, data: bytes) -> None:
        try:
            async with aiofiles.open(path, 'wb') as f:
                await f.write(data)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
