"""
Import pipeline: one audio file in, one track on the device out.

Steps, in order:
  1. read tags (best effort, title falls back to the file name)
  2. probe with ffprobe (a ProbeError aborts this file only)
  3. fingerprint the file bytes
  4. already in the library? return the existing id, nothing else happens
  5. allocate a unique id, build the record, embed the cover if there is one
  6. pick the device location from the id
  7. copy the file there
  8. add the record to the library (and master playlist)
  9. persist, unless the caller batches persistence itself
"""

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from iTunesDB_Writer import TrackInfo

from . import audio_probe
from .artwork import embed_artwork
from .content_hash import fingerprint_file
from .device import IPodLayout
from .errors import ArtworkError, ProbeError
from .events import OverallProgress, Phase
from .library import LibraryDatabase
from .persistence import persist as persist_database
from .settings import AppSettings
from .tag_reader import read_tags

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {".mp3", ".m4a", ".wav", ".aif", ".aiff"}


def _clean(text: Optional[str]) -> str:
    """
    Make a string safe for the UTF-16 iTunesDB. Undecodable file names reach
    Python with lone surrogates; those become U+FFFD.
    """
    if not text:
        return ""
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")


@dataclass(frozen=True)
class ImportOverrides:
    """Metadata from a remote descriptor; set fields win over file tags."""
    title: Optional[str] = None
    artist: Optional[str] = None
    genre: Optional[str] = None
    cover: Optional[bytes] = None


def collect_audio_files(path: str | Path) -> list[Path]:
    """A file is returned as is; a directory is searched recursively."""
    path = Path(path)
    if not path.is_dir():
        return [path]
    return sorted(
        p for p in path.rglob("*")
        if p.is_file() and p.suffix.lower() in AUDIO_EXTENSIONS
    )


async def import_file(path: str | Path, db: LibraryDatabase, layout: IPodLayout,
                      events: Optional[asyncio.Queue], *, settings: AppSettings,
                      overrides: Optional[ImportOverrides] = None,
                      persist: bool = True) -> int:
    """
    Import one file and return its unique id (existing id for duplicates).

    Raises:
        ProbeError: ffprobe failed or the format is not storable
        OSError: the file could not be read or copied
        PersistError: the database could not be written (persist=True only)
    """
    path = Path(path)
    overrides = overrides or ImportOverrides()

    tags = await asyncio.to_thread(read_tags, path)
    info = await audio_probe.probe(path, settings.ffprobe_path or None)
    dbid = await asyncio.to_thread(fingerprint_file, path)

    existing = db.get_unique_id_by_dbid(dbid)
    if existing is not None:
        logger.info(f"Already on device: {path.name} (track {existing})")
        return existing

    unique_id = db.get_unique_id()
    ext = info.kind.ext
    track = TrackInfo(
        title=_clean(overrides.title or tags.title or path.stem),
        location=layout.track_location(unique_id, ext),
        unique_id=unique_id,
        dbid=dbid,
        size=info.size,
        length=info.length_ms,
        bitrate=info.bitrate_kbps,
        sample_rate=info.sample_rate,
        filetype=info.kind.filetype,
        filetype_desc=info.kind.description,
        artist=_clean(overrides.artist or tags.artist),
        album=_clean(tags.album),
        genre=_clean(overrides.genre or tags.genre),
        year=tags.year,
        track_number=tags.track_number,
        total_tracks=tags.total_tracks,
        disc_number=tags.disc_number,
        total_discs=tags.total_discs,
        date_added=int(time.time()),
        lyrics=tags.lyrics,
    )

    cover = overrides.cover or tags.cover
    if cover:
        try:
            meta = await embed_artwork(cover, layout, dbid, settings.artwork_sizes, events)
        except ArtworkError as e:
            logger.warning(f"ART: {path.name} imported without artwork: {e}")
        else:
            track.has_artwork = True
            track.artwork_count = 1
            track.artwork_size = meta.src_img_size
            track.mhii_link = meta.img_id

    dest = layout.full_track_path(unique_id, ext)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, path, dest)
        db.add_track(track)
        if persist:
            await asyncio.to_thread(persist_database, db, layout, settings.keep_backups)
    except Exception:
        # leave neither a record nor an orphaned file behind
        db.remove_track_completely(unique_id)
        dest.unlink(missing_ok=True)
        raise

    logger.info(f"Added track {unique_id}: {track.title} -> {track.location}")
    return unique_id


async def import_files(paths, db: LibraryDatabase, layout: IPodLayout,
                       events: Optional[asyncio.Queue], *, settings: AppSettings) -> list[int]:
    """
    Import a batch without persisting. Directories are expanded.

    Files that fail to probe or copy are logged and skipped; the returned
    ids are in input order, duplicates included.
    """
    files = [f for p in paths for f in collect_audio_files(p)]
    total = len(files)
    ids = []

    for i, path in enumerate(files):
        if events is not None:
            await events.put(OverallProgress(i, total, Phase.DOWNLOAD))
        try:
            ids.append(await import_file(path, db, layout, events, settings=settings, persist=False))
        except ProbeError as e:
            logger.warning(f"SKIP: {path}: {e}")
        except OSError as e:
            logger.warning(f"SKIP: {path}: could not read or copy: {e}")

    if events is not None and total:
        await events.put(OverallProgress(total, total, Phase.DOWNLOAD))
    return ids
