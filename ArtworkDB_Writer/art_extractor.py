"""
Extract embedded album art and lyrics presence from music files using mutagen.

Supports: MP3 (ID3 APIC), M4A/ALAC (covr), AIFF/WAV (ID3 chunk).
Returns raw image bytes (typically JPEG or PNG).
"""

import logging
from pathlib import Path
from typing import Optional

import mutagen
from mutagen.id3 import ID3, ID3NoHeaderError
from mutagen.mp4 import MP4

logger = logging.getLogger(__name__)


def extract_art(file_path: str | Path) -> Optional[bytes]:
    """
    Extract the first embedded cover image from a music file.

    Returns:
        Raw image bytes or None if no art found (or the file is unreadable)
    """
    path = Path(file_path)
    ext = path.suffix.lower()

    try:
        if ext == '.mp3':
            return _extract_id3(ID3(path))
        elif ext == '.m4a':
            return _extract_mp4(path)
        else:
            return _extract_generic(path)
    except ID3NoHeaderError:
        return None
    except (mutagen.MutagenError, OSError) as e:
        logger.warning(f"ART: Failed to extract art from {path}: {e}")
        return None


def has_lyrics(file_path: str | Path) -> bool:
    """True when the file carries unsynchronised lyrics (ID3 USLT / MP4 ©lyr)."""
    path = Path(file_path)
    try:
        audio = mutagen.File(path)
    except (mutagen.MutagenError, OSError):
        return False
    if audio is None or audio.tags is None:
        return False

    for key in audio.tags.keys():
        if isinstance(key, str) and (key.startswith('USLT') or key == '\xa9lyr'):
            return True
    return False


def _extract_id3(tags) -> Optional[bytes]:
    """APIC frames carry cover art in ID3."""
    for frame in tags.getall('APIC'):
        if frame.data:
            return frame.data
    return None


def _extract_mp4(path: Path) -> Optional[bytes]:
    audio = MP4(path)
    if audio.tags is None:
        return None

    covers = audio.tags.get('covr', [])
    if covers:
        return bytes(covers[0])
    return None


def _extract_generic(path: Path) -> Optional[bytes]:
    """WAV/AIFF keep an ID3 chunk; anything else falls through to mutagen."""
    audio = mutagen.File(path)
    if audio is None or audio.tags is None:
        return None

    if hasattr(audio.tags, 'getall'):
        return _extract_id3(audio.tags)

    covers = audio.tags.get('covr', [])
    if covers:
        return bytes(covers[0])
    return None
