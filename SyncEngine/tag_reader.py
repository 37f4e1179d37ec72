"""
Best-effort tag reading with mutagen.

A missing or unreadable tag never fails an import: read_tags() returns
whatever it could find and leaves the rest empty.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import mutagen

from ArtworkDB_Writer import extract_art, has_lyrics

from .errors import TagReadError

logger = logging.getLogger(__name__)

# ID3 frame ids for the easy keys, used for WAV/AIFF which mutagen has no easy wrapper for
ID3_FRAMES = {
    "title": "TIT2",
    "artist": "TPE1",
    "album": "TALB",
    "genre": "TCON",
    "date": "TDRC",
    "tracknumber": "TRCK",
    "discnumber": "TPOS",
}


@dataclass
class TagInfo:
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    year: int = 0
    track_number: int = 0
    total_tracks: int = 0
    disc_number: int = 0
    total_discs: int = 0
    cover: Optional[bytes] = None
    lyrics: bool = False


def _parse_position(value: Optional[str]) -> tuple[int, int]:
    """'3/12' -> (3, 12); '3' -> (3, 0); junk -> (0, 0)."""
    if not value:
        return 0, 0
    number, _, total = str(value).partition("/")
    try:
        n = int(number.strip() or 0)
    except ValueError:
        n = 0
    try:
        t = int(total.strip() or 0)
    except ValueError:
        t = 0
    return n, t


def _parse_year(value: Optional[str]) -> int:
    if not value:
        return 0
    head = str(value).strip()[:4]
    return int(head) if head.isdigit() else 0


def _first(tags, key: str) -> Optional[str]:
    if hasattr(tags, "getall"):
        frames = tags.getall(ID3_FRAMES[key])
        if frames and getattr(frames[0], "text", None):
            return str(frames[0].text[0])
        return None
    values = tags.get(key)
    if not values:
        return None
    return str(values[0])


def _read_text_tags(path: Path) -> dict:
    try:
        audio = mutagen.File(path, easy=True)
    except (mutagen.MutagenError, OSError) as e:
        raise TagReadError(f"{path}: {e}") from e
    if audio is None or audio.tags is None:
        return {}
    return {key: _first(audio.tags, key) for key in ID3_FRAMES}


def read_tags(path: str | Path) -> TagInfo:
    """Read title/artist/album/genre/year/positions/cover/lyrics from a file."""
    path = Path(path)
    info = TagInfo()

    try:
        text = _read_text_tags(path)
    except TagReadError as e:
        logger.warning(f"TAGS: {e}")
        text = {}

    info.title = text.get("title") or None
    info.artist = text.get("artist") or None
    info.album = text.get("album") or None
    info.genre = text.get("genre") or None
    info.year = _parse_year(text.get("date"))
    info.track_number, info.total_tracks = _parse_position(text.get("tracknumber"))
    info.disc_number, info.total_discs = _parse_position(text.get("discnumber"))

    info.cover = extract_art(path)
    info.lyrics = has_lyrics(path)
    return info
