"""
Exceptions raised by the HLS downloader.

Every fatal condition of a run is a ``DownloadError`` so callers can report
it with a single ``except`` clause.
"""

from typing import List


class DownloadError(Exception):
    """Base class for errors that abort a download run."""


class InvalidPlaylistError(DownloadError):
    """The fetched document is not an HLS playlist."""


class UnsupportedPlaylistError(InvalidPlaylistError):
    """The playlist is valid but cannot be mirrored (master/variant playlist)."""


class FetchError(DownloadError):
    """A network request for the playlist failed."""


class KeyDownloadError(FetchError):
    """The encryption key could not be downloaded."""


class StorageError(DownloadError):
    """Writing to the output directory failed."""


class DownloadTimeoutError(DownloadError):
    """The segment download stage exceeded its deadline."""


class IncompleteDownloadError(DownloadError):
    """Some segments are still missing after the download stage."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"{len(missing)} segment(s) could not be downloaded")
