"""
Commands the presentation layer sends to the engine.

Each command is consumed exactly once by the engine's loop.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .events import View
from .remote_catalog import RemotePlaylist, RemoteTrack


@dataclass(frozen=True)
class SearchDevice:
    attempt: int = 1


@dataclass(frozen=True)
class DownloadPlaylist:
    """Download a remote playlist; the provider comes from ``source.provider``."""
    source: RemotePlaylist


@dataclass(frozen=True)
class DownloadTrack:
    source: RemoteTrack


@dataclass(frozen=True)
class LoadFromFilesystem:
    """
    Import local files or directories.

    With ``playlist_title`` set, every imported track is also gathered into a
    new playlist of that name.
    """
    paths: tuple[Path, ...]
    playlist_title: Optional[str] = None

    @classmethod
    def single(cls, path: str | Path) -> "LoadFromFilesystem":
        return cls(paths=(Path(path),))

    @classmethod
    def many(cls, paths, playlist_title: Optional[str] = None) -> "LoadFromFilesystem":
        return cls(paths=tuple(Path(p) for p in paths), playlist_title=playlist_title)


@dataclass(frozen=True)
class RemoveTrack:
    track_id: int


@dataclass(frozen=True)
class RemovePlaylist:
    playlist_id: int
    hard: bool = False


@dataclass(frozen=True)
class RemoveTrackFromPlaylist:
    track_id: int
    playlist_id: int


@dataclass(frozen=True)
class SearchQuery:
    text: str


@dataclass(frozen=True)
class SwitchView:
    view: View


Command = Union[
    SearchDevice,
    DownloadPlaylist,
    DownloadTrack,
    LoadFromFilesystem,
    RemoveTrack,
    RemovePlaylist,
    RemoveTrackFromPlaylist,
    SearchQuery,
    SwitchView,
]

MUTATING_COMMANDS = (
    DownloadPlaylist,
    DownloadTrack,
    LoadFromFilesystem,
    RemoveTrack,
    RemovePlaylist,
    RemoveTrackFromPlaylist,
)
