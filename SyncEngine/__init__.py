"""
SyncEngine - Keeps an iPod's library in sync with SoundCloud, YouTube and local files

Core components:
- SyncEngine: Single asyncio task owning the library; commands in, events out
- LibraryDatabase: In-memory tracks/playlists loaded from and saved to the iTunesDB
- import_file: tags -> ffprobe -> fingerprint -> dedup -> artwork -> copy -> persist
- playlist_manager: Downloads, filesystem imports, soft/hard removal
- persist: Backup + atomic replace of the on-device iTunesDB
- remote_catalog: SoundCloud/YouTube playlist listing
"""

from .engine import SyncEngine, EngineState
from .settings import AppSettings, default_settings_dir
from .device import IPodLayout, find_device_mount
from .library import LibraryDatabase
from .persistence import load_database, persist, restore_latest_backup
from .importer import ImportOverrides, collect_audio_files, import_file, import_files
from .search import search
from .content_hash import fingerprint, fingerprint_file
from .remote_catalog import RemotePlaylist, RemoteTrack, fetch_catalog
from .commands import (
    Command,
    SearchDevice,
    DownloadPlaylist,
    DownloadTrack,
    LoadFromFilesystem,
    RemoveTrack,
    RemovePlaylist,
    RemoveTrackFromPlaylist,
    SearchQuery,
    SwitchView,
)
from .events import (
    ProgressEvent,
    Phase,
    View,
    Provider,
    OverallProgress,
    ItemProgress,
    ArtworkProgress,
    SnapshotReady,
    RemoteCatalogReady,
    SearchResults,
    DeviceNotFound,
    ViewSwitch,
    OperationFailed,
)
from .errors import (
    SyncError,
    DeviceNotFoundError,
    DownloadError,
    ProbeError,
    TagReadError,
    ArtworkError,
    PersistError,
    CatalogError,
    UnknownItemError,
)

__all__ = [
    # Engine
    "SyncEngine",
    "EngineState",
    "AppSettings",
    "default_settings_dir",
    # Device + library
    "IPodLayout",
    "find_device_mount",
    "LibraryDatabase",
    "load_database",
    "persist",
    "restore_latest_backup",
    # Pipelines
    "ImportOverrides",
    "collect_audio_files",
    "import_file",
    "import_files",
    "search",
    "fingerprint",
    "fingerprint_file",
    "RemotePlaylist",
    "RemoteTrack",
    "fetch_catalog",
    # Commands
    "Command",
    "SearchDevice",
    "DownloadPlaylist",
    "DownloadTrack",
    "LoadFromFilesystem",
    "RemoveTrack",
    "RemovePlaylist",
    "RemoveTrackFromPlaylist",
    "SearchQuery",
    "SwitchView",
    # Events
    "ProgressEvent",
    "Phase",
    "View",
    "Provider",
    "OverallProgress",
    "ItemProgress",
    "ArtworkProgress",
    "SnapshotReady",
    "RemoteCatalogReady",
    "SearchResults",
    "DeviceNotFound",
    "ViewSwitch",
    "OperationFailed",
    # Errors
    "SyncError",
    "DeviceNotFoundError",
    "DownloadError",
    "ProbeError",
    "TagReadError",
    "ArtworkError",
    "PersistError",
    "CatalogError",
    "UnknownItemError",
]
