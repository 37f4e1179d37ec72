"""
MHIP Writer - Write playlist item chunks for iTunesDB.

Each MHIP points one playlist slot at a track by its id and carries a
single type 100 MHOD holding the slot's position.
"""

import struct

from .mhod_writer import MHOD_HEADER_SIZE, MHOD_TYPE_PLAYLIST_PREFS


MHIP_HEADER_SIZE = 76
POSITION_MHOD_SIZE = 44


def write_mhod_position(position: int) -> bytes:
    """Write the position MHOD (type 100) attached to every MHIP."""
    header = struct.pack(
        '<4sIIIII',
        b'mhod',
        MHOD_HEADER_SIZE,
        POSITION_MHOD_SIZE,
        MHOD_TYPE_PLAYLIST_PREFS,
        0,
        0,
    )
    body = struct.pack('<I', position).ljust(POSITION_MHOD_SIZE - MHOD_HEADER_SIZE, b'\x00')
    return header + body


def write_mhip(track_id: int, position: int) -> bytes:
    """Write an MHIP referencing ``track_id`` at ``position`` (0-based)."""
    mhod_position = write_mhod_position(position)

    header = bytearray(MHIP_HEADER_SIZE)
    header[0:4] = b'mhip'
    struct.pack_into('<I', header, 0x04, MHIP_HEADER_SIZE)
    struct.pack_into('<I', header, 0x08, MHIP_HEADER_SIZE + len(mhod_position))
    struct.pack_into('<I', header, 0x0C, 1)  # one MHOD child
    struct.pack_into('<I', header, 0x18, track_id)

    return bytes(header) + mhod_position
