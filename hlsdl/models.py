"""
Run parameters shared by every stage of a download.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, NamedTuple, Optional

from config.settings import Config

INDEX_FILENAME = "index.m3u8"
KEY_FILENAME = "key.m3u8"


@dataclass(frozen=True)
class DownloadTarget:
    """Playlist URL, output directory and worker count of one run."""
    url: str
    output: Path
    workers: int = 3

    @property
    def index_path(self) -> Path:
        return self.output / INDEX_FILENAME

    @property
    def key_path(self) -> Path:
        return self.output / KEY_FILENAME


@dataclass(frozen=True)
class RetryPolicy:
    """
    How segment downloads react to network failures.

    ``max_retries`` of ``None`` retries a segment until it succeeds.
    ``retry_body_errors`` puts errors while reading a response body in the
    same retried class as request errors; otherwise the segment is dropped.
    ``deadline`` bounds the whole segment stage in seconds.
    """
    max_retries: Optional[int] = None
    backoff: float = 0.5
    backoff_max: float = 30.0
    timeout: float = 30.0
    deadline: Optional[float] = None
    retry_body_errors: bool = False
    fail_on_missing: bool = False

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(
            max_retries=Config.SEGMENT_RETRIES if Config.SEGMENT_RETRIES >= 0 else None,
            backoff=Config.RETRY_BACKOFF,
            backoff_max=Config.RETRY_BACKOFF_MAX,
            timeout=Config.SEGMENT_TIMEOUT,
            deadline=Config.DOWNLOAD_DEADLINE or None,
            retry_body_errors=Config.RETRY_BODY_ERRORS,
            fail_on_missing=Config.FAIL_ON_MISSING,
        )

    def delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (1-based)."""
        return min(self.backoff * (2 ** (attempt - 1)), self.backoff_max)

    def exhausted(self, attempt: int) -> bool:
        return self.max_retries is not None and attempt > self.max_retries


class ParsedPlaylist(NamedTuple):
    key_uri: str
    segments: List[str]
