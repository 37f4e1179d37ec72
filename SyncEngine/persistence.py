"""
Crash-safe iTunesDB persistence.

Every mutating command ends with persist():
  1. serialize the in-memory library (nothing on disk changes if this fails)
  2. copy the current on-device iTunesDB to Backups/iTunesDB_<timestamp>
  3. prune backups beyond the configured count
  4. write the new bytes to a temp file beside the database, fsync, replace

A failed write leaves either the previous database or its backup intact.
"""

import logging
import os
import shutil
import struct
from datetime import datetime
from pathlib import Path
from typing import Optional

from .device import IPodLayout
from .errors import PersistError
from .library import LibraryDatabase

logger = logging.getLogger(__name__)

DEFAULT_KEEP_BACKUPS = 3
BACKUP_PREFIX = "iTunesDB_"


def load_database(layout: IPodLayout) -> LibraryDatabase:
    """Read the on-device database, or start an empty one if there is none."""
    path = layout.itunesdb_path
    if not path.exists():
        logger.info(f"No iTunesDB at {path}, starting an empty library")
        return LibraryDatabase.new()

    with open(path, "rb") as f:
        data = f.read()
    return LibraryDatabase.from_bytes(data)


def list_backups(layout: IPodLayout) -> list[Path]:
    """Backups oldest first (timestamps sort lexically)."""
    if not layout.backup_dir.exists():
        return []
    return sorted(
        p for p in layout.backup_dir.iterdir()
        if p.is_file() and p.name.startswith(BACKUP_PREFIX)
    )


def _prune_backups(layout: IPodLayout, keep: int) -> None:
    backups = list_backups(layout)
    for old in backups[:max(0, len(backups) - keep)]:
        try:
            old.unlink()
            logger.debug(f"Pruned old backup: {old.name}")
        except OSError as e:
            logger.warning(f"Could not prune backup {old}: {e}")


def backup_database(layout: IPodLayout, keep: int = DEFAULT_KEEP_BACKUPS) -> Optional[Path]:
    """Copy the current iTunesDB aside. Returns the backup path, or None if there was nothing to copy."""
    if not layout.itunesdb_path.exists():
        return None

    layout.backup_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    backup = layout.backup_dir / f"{BACKUP_PREFIX}{timestamp}"
    shutil.copy2(layout.itunesdb_path, backup)
    logger.debug(f"Backed up iTunesDB to {backup}")

    _prune_backups(layout, keep)
    return backup


def persist(db: LibraryDatabase, layout: IPodLayout, keep_backups: int = DEFAULT_KEEP_BACKUPS) -> Path:
    """
    Serialize ``db`` and atomically replace the on-device iTunesDB.

    Raises:
        PersistError: if serialization, backup or the write fails
    """
    try:
        data = db.to_bytes()
    except (struct.error, ValueError, OverflowError, UnicodeError) as e:
        raise PersistError(f"Could not serialize library: {e}") from e

    target = layout.itunesdb_path
    tmp = target.with_name(target.name + ".tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        backup_database(layout, keep_backups)

        with open(tmp, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, target)
    except OSError as e:
        try:
            tmp.unlink()
        except OSError:
            pass
        raise PersistError(f"Could not write {target}: {e}") from e

    logger.info(f"Wrote iTunesDB ({len(data)} bytes, {len(db.tracks())} tracks)")
    return target


def restore_latest_backup(layout: IPodLayout) -> bool:
    """Copy the newest backup over the iTunesDB. Returns False if there is none."""
    backups = list_backups(layout)
    if not backups:
        logger.warning("No iTunesDB backup available to restore")
        return False

    latest = backups[-1]
    try:
        shutil.copy2(latest, layout.itunesdb_path)
    except OSError as e:
        logger.error(f"Restore from {latest} failed: {e}")
        return False
    logger.info(f"Restored iTunesDB from {latest.name}")
    return True
