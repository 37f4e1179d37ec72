"""
ArtworkDB Writer for iPod Classic/Nano/Video.

Writes the ArtworkDB index and RGB565 .ithmb thumbnails for cover art.

Usage:
    from ArtworkDB_Writer import ArtworkIndex, convert_art_for_ipod, image_from_bytes

    index = ArtworkIndex.load(ipod_root / "iPod_Control" / "Artwork")
    entry = index.find(cover_hash)
    if entry is None:
        img = image_from_bytes(cover_bytes)
        ...
        entry = index.register(cover_hash, dbid, len(cover_bytes), thumbnails)
        index.save()
"""

from .artwork_writer import ArtworkEntry, ArtworkIndex, build_artworkdb, thumbnail_filename
from .art_extractor import extract_art, has_lyrics
from .rgb565 import (
    DEFAULT_SIZES,
    convert_art_for_ipod,
    crop_to_square,
    image_from_bytes,
    rgb888_to_rgb565,
)

__all__ = [
    'ArtworkEntry',
    'ArtworkIndex',
    'build_artworkdb',
    'thumbnail_filename',
    'extract_art',
    'has_lyrics',
    'DEFAULT_SIZES',
    'convert_art_for_ipod',
    'crop_to_square',
    'image_from_bytes',
    'rgb888_to_rgb565',
]
