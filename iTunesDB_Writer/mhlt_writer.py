"""
MHLT / MHLP Writers - Write the list chunks for tracks and playlists.

List headers carry the child count at +0x08 instead of a total length.
"""

import struct

from .mhit_writer import TrackInfo, write_mhit
from .mhyp_writer import PlaylistInfo, write_mhyp


LIST_HEADER_SIZE = 92


def _write_list(magic: bytes, children: list[bytes]) -> bytes:
    header = bytearray(LIST_HEADER_SIZE)
    header[0:4] = magic
    struct.pack_into('<I', header, 4, LIST_HEADER_SIZE)
    struct.pack_into('<I', header, 8, len(children))
    return bytes(header) + b''.join(children)


def write_mhlt(tracks: list[TrackInfo]) -> bytes:
    """Write the track list chunk."""
    return _write_list(b'mhlt', [write_mhit(track) for track in tracks])


def write_mhlp(playlists: list[PlaylistInfo], db_id: int = 0) -> bytes:
    """
    Write the playlist list chunk.

    The master playlist must come first, so it is moved to the front
    when present.
    """
    ordered = sorted(playlists, key=lambda p: not p.is_master)
    return _write_list(b'mhlp', [write_mhyp(p, db_id) for p in ordered])
