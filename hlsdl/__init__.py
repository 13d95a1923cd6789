"""
HLS playlist downloader for local playback.
"""

from .downloader import M3U8Downloader
from .errors import DownloadError
from .helpers import format_file_size, local_name, resolve_url
from .models import DownloadTarget, RetryPolicy
from .playlist import parse, rewrite_for_local_playback
from .pool import SegmentPool

__all__ = [
    'M3U8Downloader',
    'DownloadError',
    'DownloadTarget',
    'RetryPolicy',
    'SegmentPool',
    'parse',
    'rewrite_for_local_playback',
    'resolve_url',
    'local_name',
    'format_file_size'
]
