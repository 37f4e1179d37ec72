"""
iPod discovery and on-device layout.

Discovery is a filesystem scan: any mounted volume with an ``iPod_Control``
directory at its root is taken to be an iPod.

Layout written by the engine:
    iPod_Control/iTunes/iTunesDB            canonical database
    iPod_Control/iTunes/Backups/            timestamped copies of it
    iPod_Control/Artwork/ArtworkDB          artwork index
    iPod_Control/Artwork/*.ithmb            RGB565 thumbnails
    iPod_Control/Music/F<nn>/<HEXID>.<ext>  audio, nn = unique_id mod 100
"""

import getpass
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .errors import DeviceNotFoundError

logger = logging.getLogger(__name__)

# Every extension a track may have been stored under
TRACK_EXTENSIONS = ("mp3", "m4a", "wav", "aif")


class IPodLayout:
    """Paths inside a mounted iPod."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"IPodLayout({str(self.root)!r})"

    @property
    def control_dir(self) -> Path:
        return self.root / "iPod_Control"

    @property
    def itunes_dir(self) -> Path:
        return self.control_dir / "iTunes"

    @property
    def itunesdb_path(self) -> Path:
        return self.itunes_dir / "iTunesDB"

    @property
    def backup_dir(self) -> Path:
        return self.itunes_dir / "Backups"

    @property
    def artwork_dir(self) -> Path:
        return self.control_dir / "Artwork"

    @property
    def music_dir(self) -> Path:
        return self.control_dir / "Music"

    @staticmethod
    def bucket(unique_id: int) -> str:
        return f"F{unique_id % 100:02d}"

    @classmethod
    def track_location(cls, unique_id: int, ext: str) -> str:
        """Colon-separated device path stored in the track's location MHOD."""
        return f":iPod_Control:Music:{cls.bucket(unique_id)}:{unique_id:X}.{ext}"

    def full_track_path(self, unique_id: int, ext: str) -> Path:
        return self.music_dir / self.bucket(unique_id) / f"{unique_id:X}.{ext}"

    def resolve_location(self, location: str) -> Path:
        """Turn a ':iPod_Control:Music:F00:1.mp3' location into a filesystem path."""
        parts = [p for p in location.split(":") if p]
        return self.root.joinpath(*parts)

    def ensure_dirs(self) -> None:
        for d in (self.itunes_dir, self.artwork_dir, self.music_dir):
            d.mkdir(parents=True, exist_ok=True)


def _has_ipod_control(drive_path: str | Path) -> bool:
    """Check if a volume has iPod_Control at its root."""
    return os.path.isdir(os.path.join(drive_path, "iPod_Control"))


def _candidate_mounts() -> list[Path]:
    """Volumes worth checking on this platform."""
    if sys.platform == "win32":
        return [Path(f"{chr(c)}:\\") for c in range(ord("D"), ord("Z") + 1)]

    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = ""

    roots = [Path("/Volumes"), Path("/mnt")]
    if user:
        roots += [Path("/media") / user, Path("/run/media") / user]
    roots.append(Path("/media"))

    mounts = []
    for root in roots:
        try:
            mounts.extend(sorted(p for p in root.iterdir() if p.is_dir()))
        except OSError:
            continue
    return mounts


def find_device_mount(preferred: Optional[str] = None) -> Optional[Path]:
    """
    Return the root of a mounted iPod, or None.

    ``preferred`` (usually settings.device_path) is checked alone when set.
    """
    if preferred:
        if _has_ipod_control(preferred):
            return Path(preferred)
        logger.debug(f"Configured device path {preferred} has no iPod_Control")
        return None

    for mount in _candidate_mounts():
        try:
            if _has_ipod_control(mount):
                logger.info(f"Found iPod_Control on {mount}")
                return mount
        except PermissionError:
            continue
    return None


def require_device_mount(preferred: Optional[str] = None) -> Path:
    """Like find_device_mount(), but raises DeviceNotFoundError instead of returning None."""
    mount = find_device_mount(preferred)
    if mount is None:
        where = preferred or "any mounted volume"
        raise DeviceNotFoundError(f"No iPod_Control directory found on {where}")
    return mount
