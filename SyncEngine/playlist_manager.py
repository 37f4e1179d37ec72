"""
Playlist and track management: every library-mutating command ends up here.

Each operation mutates the in-memory library, persists it once, then tells
the presentation layer which view to show and sends a fresh snapshot.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from iTunesDB_Writer import PlaylistInfo

from .device import TRACK_EXTENSIONS, IPodLayout
from .downloader import clear_dir, download, find_thumbnail
from .errors import PersistError, ProbeError, UnknownItemError
from .events import OverallProgress, Phase, SnapshotReady, View, ViewSwitch
from .importer import ImportOverrides, import_file, import_files
from .library import LibraryDatabase
from .persistence import persist
from .remote_catalog import RemotePlaylist, RemoteTrack
from .settings import AppSettings

logger = logging.getLogger(__name__)


async def _finish(db: LibraryDatabase, layout: IPodLayout, events: asyncio.Queue,
                  settings: AppSettings, view: View = View.MAIN) -> None:
    await asyncio.to_thread(persist, db, layout, settings.keep_backups)
    await events.put(ViewSwitch(view))
    await events.put(snapshot(db))


def snapshot(db: LibraryDatabase) -> SnapshotReady:
    return SnapshotReady(playlists=db.playlist_snapshots(), tracks=db.track_snapshots())


async def _commit_batch(db: LibraryDatabase, layout: IPodLayout, events: asyncio.Queue,
                        settings: AppSettings, known: set[int], playlist: Optional[PlaylistInfo] = None,
                        view: View = View.MAIN) -> None:
    """
    Persist a batch of imports. If the write fails, every track added since
    ``known`` was taken is dropped again along with its file and the playlist.
    """
    try:
        await _finish(db, layout, events, settings, view)
    except PersistError:
        if playlist is not None:
            db.remove_playlist(playlist.playlist_id)
        for track in db.tracks():
            if track.unique_id not in known:
                _hard_remove(track.unique_id, db, layout)
        raise


# ── Downloads ──────────────────────────────────────────────────────────────

def _read_cover(scratch: Path, remote_id: str) -> Optional[bytes]:
    thumb = find_thumbnail(scratch, remote_id)
    if thumb is None:
        return None
    try:
        return thumb.read_bytes()
    except OSError as e:
        logger.warning(f"Could not read thumbnail {thumb}: {e}")
        return None


async def _import_downloaded(track: RemoteTrack, scratch: Path, db: LibraryDatabase,
                             layout: IPodLayout, events: asyncio.Queue,
                             settings: AppSettings) -> Optional[int]:
    """Import ``<scratch>/<id>.mp3``. Returns None when it is missing or unusable."""
    path = scratch / f"{track.id}.mp3"
    if not path.exists():
        logger.warning(f"SKIP: {track.title}: nothing downloaded for {track.id}")
        return None

    overrides = ImportOverrides(
        title=track.title,
        artist=track.artist or None,
        genre=track.genre or None,
        cover=_read_cover(scratch, track.id),
    )
    try:
        return await import_file(path, db, layout, events, settings=settings,
                                 overrides=overrides, persist=False)
    except ProbeError as e:
        logger.warning(f"SKIP: {track.title}: {e}")
    except OSError as e:
        logger.warning(f"SKIP: {track.title}: could not copy: {e}")
    return None


async def download_playlist_from(playlist: RemotePlaylist, db: LibraryDatabase, layout: IPodLayout,
                                 events: asyncio.Queue, settings: AppSettings) -> PlaylistInfo:
    """Download a remote playlist and add it to the device as a new playlist."""
    known = {t.unique_id for t in db.tracks()}
    scratch = Path(settings.resolved_download_dir())
    try:
        await download(playlist.url, scratch, events, provider=playlist.provider,
                       ytdlp_path=settings.ytdlp_path or None)

        ids = []
        for track in playlist.tracks:
            if not track.title:
                logger.debug(f"Unresolved track {track.id} in {playlist.title}, skipping")
                continue
            unique_id = await _import_downloaded(track, scratch, db, layout, events, settings)
            if unique_id is not None:
                ids.append(unique_id)

        new_playlist = PlaylistInfo(title=playlist.title, track_ids=ids)
        db.add_playlist(new_playlist)
        logger.info(f"Added playlist '{playlist.title}' with {len(ids)} of {len(playlist.tracks)} tracks")
        await _commit_batch(db, layout, events, settings, known, new_playlist)
    finally:
        clear_dir(scratch)
    return new_playlist


async def download_track_from(track: RemoteTrack, db: LibraryDatabase, layout: IPodLayout,
                              events: asyncio.Queue, settings: AppSettings) -> Optional[int]:
    """Download one remote track into the library (no playlist)."""
    known = {t.unique_id for t in db.tracks()}
    scratch = Path(settings.resolved_download_dir())
    try:
        await download(track.url, scratch, events, provider=track.provider, single=True,
                       ytdlp_path=settings.ytdlp_path or None)
        unique_id = None
        if track.title:
            unique_id = await _import_downloaded(track, scratch, db, layout, events, settings)
        await _commit_batch(db, layout, events, settings, known)
    finally:
        clear_dir(scratch)
    return unique_id


# ── Filesystem ─────────────────────────────────────────────────────────────

async def load_from_filesystem(paths, db: LibraryDatabase, layout: IPodLayout, events: asyncio.Queue,
                               settings: AppSettings, playlist_title: Optional[str] = None) -> list[int]:
    """Import local files or directories, optionally gathering them into a playlist."""
    await events.put(ViewSwitch(View.LOADING))
    known = {t.unique_id for t in db.tracks()}
    ids = await import_files(paths, db, layout, events, settings=settings)

    playlist = None
    if playlist_title is not None:
        playlist = PlaylistInfo(title=playlist_title, track_ids=list(ids))
        db.add_playlist(playlist)
        logger.info(f"Added playlist '{playlist_title}' with {len(ids)} tracks")

    await _commit_batch(db, layout, events, settings, known, playlist, View.FILE_SYSTEM)
    return ids


async def load_as_playlist(paths, title: str, db: LibraryDatabase, layout: IPodLayout,
                           events: asyncio.Queue, settings: AppSettings) -> list[int]:
    return await load_from_filesystem(paths, db, layout, events, settings, playlist_title=title)


# ── Removal ────────────────────────────────────────────────────────────────

def _hard_remove(track_id: int, db: LibraryDatabase, layout: IPodLayout) -> None:
    """Drop a track from the library and delete its audio file."""
    track = db.remove_track_completely(track_id)
    if track is None:
        return

    for ext in TRACK_EXTENSIONS:
        layout.full_track_path(track_id, ext).unlink(missing_ok=True)
    logger.info(f"Removed track {track_id}: {track.title}")


async def remove_track(track_id: int, db: LibraryDatabase, layout: IPodLayout,
                       events: asyncio.Queue, settings: AppSettings) -> None:
    if db.get_track(track_id) is None:
        raise UnknownItemError(f"No track with id {track_id}")

    await events.put(OverallProgress(0, 1, Phase.REMOVE))
    _hard_remove(track_id, db, layout)
    await events.put(OverallProgress(1, 1, Phase.REMOVE))
    await _finish(db, layout, events, settings)


async def remove_playlist(playlist_id: int, hard: bool, db: LibraryDatabase, layout: IPodLayout,
                          events: asyncio.Queue, settings: AppSettings) -> None:
    """
    Remove a playlist. A hard removal also deletes every member track from
    the device; a soft one leaves them in the library.
    """
    playlist = db.get_playlist(playlist_id)
    if playlist is None:
        raise UnknownItemError(f"No playlist with id {playlist_id}")

    if hard:
        members = list(dict.fromkeys(playlist.track_ids))
        total = len(members)
        for i, track_id in enumerate(members):
            await events.put(OverallProgress(i, total, Phase.REMOVE))
            _hard_remove(track_id, db, layout)
        await events.put(OverallProgress(total, total, Phase.REMOVE))

    db.remove_playlist(playlist_id)
    logger.info(f"Removed playlist '{playlist.title}' ({'hard' if hard else 'soft'})")
    await _finish(db, layout, events, settings)


async def remove_track_from_playlist(track_id: int, playlist_id: int, db: LibraryDatabase,
                                     layout: IPodLayout, events: asyncio.Queue,
                                     settings: AppSettings) -> int:
    if db.get_playlist(playlist_id) is None:
        raise UnknownItemError(f"No playlist with id {playlist_id}")

    removed = db.remove_track_from_playlist(track_id, playlist_id)
    if removed:
        logger.info(f"Removed track {track_id} from playlist {playlist_id}")
    else:
        logger.info(f"Track {track_id} is not in playlist {playlist_id}")
    await _finish(db, layout, events, settings)
    return removed
