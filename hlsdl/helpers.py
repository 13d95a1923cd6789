"""
Helper functions for the HLS downloader.
"""

from pathlib import Path
from typing import Iterable, Tuple


def resolve_url(base: str, ref: str) -> str:
    """
    Resolve a playlist reference against the playlist URL.

    Absolute references are returned unchanged. Relative ones replace the
    last path component of ``base``; ``.`` and ``..`` are not normalized.

    Args:
        base: URL the playlist was fetched from
        ref: Segment or key reference as written in the playlist

    Returns:
        URL to request
    """
    if ref.startswith('http'):
        return ref
    parts = base.split('/')
    parts[-1] = ref
    return '/'.join(parts)


def local_name(ref: str) -> str:
    """
    Get the on-disk filename for a playlist reference.

    Args:
        ref: Segment URL, relative or absolute

    Returns:
        Final path component of ``ref``
    """
    return ref.split('/')[-1]


def disk_usage(directory: Path, names: Iterable[str]) -> Tuple[int, int]:
    """
    Count the files among ``names`` present in ``directory`` and their size.

    Args:
        directory: Output directory
        names: Local filenames to look for

    Returns:
        Tuple of (file count, total bytes)
    """
    count = 0
    total = 0
    for name in set(names):
        path = directory / name
        if name and path.is_file():
            count += 1
            total += path.stat().st_size
    return count, total


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
