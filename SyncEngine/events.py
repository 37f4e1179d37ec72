"""
Progress and result events sent from the engine to the presentation layer.

Every event is an immutable dataclass; consumers dispatch with ``match``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class Phase(Enum):
    """Colour of the overall progress bar."""
    DOWNLOAD = "green"
    REMOVE = "red"


class View(Enum):
    WAIT_DEVICE = "wait_device"
    MAIN = "main"
    LOADING = "loading"
    FILE_SYSTEM = "file_system"
    SEARCH = "search"


class Provider(Enum):
    CLOUD = "soundcloud"
    VIDEO = "youtube"


@dataclass(frozen=True)
class TrackSnapshot:
    unique_id: int
    title: str
    artist: str = ""
    album: str = ""
    genre: str = ""
    length: int = 0  # ms
    location: str = ""
    has_artwork: bool = False


@dataclass(frozen=True)
class PlaylistSnapshot:
    """A playlist with its member tracks resolved, in playlist order."""
    playlist_id: int
    title: str
    timestamp: int
    tracks: tuple[TrackSnapshot, ...] = ()


@dataclass(frozen=True)
class SearchEntry:
    id: int
    title: str
    artist: str = ""
    album: str = ""
    genre: str = ""
    is_playlist: bool = False


@dataclass(frozen=True)
class OverallProgress:
    current: int
    total: int
    phase: Phase = Phase.DOWNLOAD


@dataclass(frozen=True)
class ItemProgress:
    percent: float
    total_size: str = ""
    eta: str = ""
    speed: str = ""


@dataclass(frozen=True)
class ArtworkProgress:
    step: int
    total: int


@dataclass(frozen=True)
class SnapshotReady:
    playlists: tuple[PlaylistSnapshot, ...]
    tracks: tuple[TrackSnapshot, ...] = ()


@dataclass(frozen=True)
class RemoteCatalogReady:
    provider: Provider
    playlists: tuple  # tuple[RemotePlaylist, ...]


@dataclass(frozen=True)
class SearchResults:
    query: str
    entries: tuple[SearchEntry, ...]


@dataclass(frozen=True)
class DeviceNotFound:
    attempt: int


@dataclass(frozen=True)
class ViewSwitch:
    view: View


@dataclass(frozen=True)
class OperationFailed:
    operation: str
    reason: str


ProgressEvent = Union[
    OverallProgress,
    ItemProgress,
    ArtworkProgress,
    SnapshotReady,
    RemoteCatalogReady,
    SearchResults,
    DeviceNotFound,
    ViewSwitch,
    OperationFailed,
]
