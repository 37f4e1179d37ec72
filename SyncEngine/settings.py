"""
Engine settings with JSON persistence.

Settings are stored in the user's config directory:
  Windows: %APPDATA%/iPodSync/settings.json
  macOS:   ~/Library/Application Support/iPodSync/settings.json
  Linux:   $XDG_CONFIG_HOME/iPodSync/settings.json (~/.config by default)

``IPODSYNC_CONFIG_DIR`` overrides the directory. A file with the default
values is written on first load.
"""

import json
import logging
import os
import sys
from dataclasses import dataclass, asdict
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "IPODSYNC_CONFIG_DIR"


def default_settings_dir() -> str:
    """Get the platform-appropriate settings directory."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return override
    if sys.platform == "win32":
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
    elif sys.platform == "darwin":
        base = os.path.join(os.path.expanduser("~"), "Library", "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", os.path.join(os.path.expanduser("~"), ".config"))
    return os.path.join(base, "iPodSync")


def default_download_dir() -> str:
    return os.path.join(os.path.expanduser("~"), ".ipodsync", "download")


@dataclass
class AppSettings:
    """All user-configurable settings."""

    # ── Accounts ────────────────────────────────────────────────────────────
    # SoundCloud numeric user id whose playlists are listed
    soundcloud_user_id: str = ""

    # YouTube channel id (UC...) whose playlists are listed
    youtube_channel_id: str = ""

    # ── Device ──────────────────────────────────────────────────────────────
    # Mount point of the iPod (empty = scan the usual mount roots)
    device_path: str = ""

    # Seconds between device discovery attempts
    device_poll_interval: float = 2.0

    # Give up discovery after this many attempts (0 = never)
    device_max_attempts: int = 30

    # ── Downloads ───────────────────────────────────────────────────────────
    # Scratch directory for yt-dlp; emptied before and after every job
    download_dir: str = ""

    # Explicit binary paths (empty = search PATH)
    ytdlp_path: str = ""
    ffprobe_path: str = ""

    # ── Artwork ─────────────────────────────────────────────────────────────
    artwork_small_size: int = 100
    artwork_large_size: int = 200

    # ── Persistence ─────────────────────────────────────────────────────────
    # iTunesDB backups kept under iPod_Control/iTunes/Backups
    keep_backups: int = 3

    # ── Engine ──────────────────────────────────────────────────────────────
    command_queue_size: int = 64
    event_queue_size: int = 256

    log_level: str = "INFO"

    @property
    def artwork_sizes(self) -> tuple[int, int]:
        return (self.artwork_small_size, self.artwork_large_size)

    def resolved_download_dir(self) -> str:
        return self.download_dir or default_download_dir()

    def save(self, settings_dir: Optional[str] = None) -> str:
        """Write settings atomically. Returns the path written."""
        active_dir = settings_dir or default_settings_dir()
        os.makedirs(active_dir, exist_ok=True)

        path = os.path.join(active_dir, "settings.json")
        tmp = path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(asdict(self), f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except Exception:
            try:
                os.remove(tmp)
            except OSError:
                pass
            raise
        return path

    @classmethod
    def load(cls, settings_dir: Optional[str] = None) -> "AppSettings":
        """Load settings from JSON, returning defaults for missing keys.

        A default file is written when none exists yet.
        """
        active_dir = settings_dir or default_settings_dir()
        path = os.path.join(active_dir, "settings.json")
        settings = cls()

        if not os.path.exists(path):
            try:
                settings.save(active_dir)
                logger.info(f"Wrote default settings to {path}")
            except OSError as e:
                logger.warning(f"Could not write default settings to {path}: {e}")
            return settings

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable settings file {path}: {e}")
            return settings

        if not isinstance(data, dict):
            return settings

        # Only set known fields with the right type, ignore the rest
        for key, value in data.items():
            if hasattr(settings, key) and not isinstance(getattr(type(settings), key, None), property):
                expected_type = type(getattr(settings, key))
                if expected_type is float and isinstance(value, int) and not isinstance(value, bool):
                    value = float(value)
                if isinstance(value, expected_type) and not (
                    isinstance(value, bool) and expected_type is not bool
                ):
                    setattr(settings, key, value)
        return settings
