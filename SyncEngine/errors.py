"""
Error taxonomy for the sync engine.

Per-item failures (ProbeError, TagReadError, ArtworkError) are caught by the
batch that raised them and the batch moves on. Job-level failures
(DownloadError, PersistError) abort the current command; the engine turns
them into an OperationFailed event and stays ready.
"""


class SyncError(Exception):
    """Base class for every error the engine knows how to report."""


class DeviceNotFoundError(SyncError):
    """No mounted iPod was found. Retryable."""


class DownloadError(SyncError):
    """The downloader could not be started."""


class ProbeError(SyncError):
    """ffprobe failed or reported something we cannot store on the device."""


class TagReadError(SyncError):
    """Tags could not be read. Callers fall back to defaults."""


class ArtworkError(SyncError):
    """Cover art could not be decoded or written. The track is kept without art."""


class PersistError(SyncError):
    """The iTunesDB could not be written back to the device."""


class CatalogError(SyncError):
    """A remote catalog (SoundCloud/YouTube) could not be listed."""


class UnknownItemError(SyncError):
    """A track or playlist id that is not in the library."""
