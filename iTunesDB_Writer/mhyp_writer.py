"""
MHYP Writer - Write playlist chunks for iTunesDB.

Every iTunesDB carries a master playlist (hidden, listed first) that
references each track, followed by the user's playlists.
"""

import random
import struct
import time
from dataclasses import dataclass, field

from .mhip_writer import write_mhip
from .mhit_writer import unix_to_mac_timestamp
from .mhod_writer import MHOD_HEADER_SIZE, MHOD_TYPE_PLAYLIST_PREFS, MHOD_TYPE_TITLE, write_mhod_string


# iPod Classic rejects the shorter 108 byte libgpod header
MHYP_HEADER_SIZE = 184
PREFS_MHOD_SIZE = 0x288

# Sort orders
SORT_MANUAL = 0
SORT_TITLE = 3
SORT_MASTER = 5


def generate_playlist_id() -> int:
    """Generate a random 64-bit playlist ID (collisions are ignored)."""
    return random.getrandbits(64)


@dataclass
class PlaylistInfo:
    """A playlist: ordered track ids, duplicates allowed."""

    title: str
    playlist_id: int = field(default_factory=generate_playlist_id)
    timestamp: int = field(default_factory=lambda: int(time.time()))
    track_ids: list[int] = field(default_factory=list)
    is_master: bool = False


def write_mhod_playlist_prefs() -> bytes:
    """
    Write the playlist preferences MHOD (type 100).

    A fixed 0x288 byte blob of column settings, as libgpod's
    mk_long_mhod_id_playlist() writes it.
    """
    data = bytearray(PREFS_MHOD_SIZE)
    data[0:4] = b'mhod'
    struct.pack_into('<I', data, 4, MHOD_HEADER_SIZE)
    struct.pack_into('<I', data, 8, PREFS_MHOD_SIZE)
    struct.pack_into('<I', data, 12, MHOD_TYPE_PLAYLIST_PREFS)

    columns = (
        (0x30, 0x010084), (0x34, 0x05), (0x38, 0x09), (0x3C, 0x03),
        (0x40, 0x120001), (0x4C, 0x640014), (0x50, 0x01),
        (0x5C, 0x320014), (0x60, 0x01), (0x6C, 0x5A0014), (0x70, 0x01),
        (0x7C, 0x500014), (0x80, 0x01), (0x8C, 0x7D0015), (0x90, 0x01),
    )
    for offset, value in columns:
        struct.pack_into('<I', data, offset, value)

    return bytes(data)


def write_mhyp(playlist: PlaylistInfo, db_id: int = 0) -> bytes:
    """
    Write a complete MHYP chunk: header, title MHOD, prefs MHOD, MHIPs.

    The master playlist is marked hidden at +0x14; that flag is how the
    iPod (and our parser) tells it apart from user playlists.
    """
    mhod_title = write_mhod_string(MHOD_TYPE_TITLE, playlist.title)
    mhod_prefs = write_mhod_playlist_prefs()
    mhod_count = 2 if mhod_title else 1

    mhip_data = b''.join(
        write_mhip(track_id, position)
        for position, track_id in enumerate(playlist.track_ids)
    )

    body = mhod_title + mhod_prefs + mhip_data
    timestamp = unix_to_mac_timestamp(playlist.timestamp)

    header = bytearray(MHYP_HEADER_SIZE)
    header[0:4] = b'mhyp'
    struct.pack_into('<I', header, 0x04, MHYP_HEADER_SIZE)
    struct.pack_into('<I', header, 0x08, MHYP_HEADER_SIZE + len(body))
    struct.pack_into('<I', header, 0x0C, mhod_count)
    struct.pack_into('<I', header, 0x10, len(playlist.track_ids))
    struct.pack_into('<I', header, 0x14, 1 if playlist.is_master else 0)
    struct.pack_into('<I', header, 0x18, timestamp)
    struct.pack_into('<Q', header, 0x1C, playlist.playlist_id)
    struct.pack_into('<H', header, 0x28, 1 if mhod_title else 0)
    struct.pack_into('<I', header, 0x2C, SORT_MASTER if playlist.is_master else SORT_MANUAL)

    if not playlist.is_master:
        struct.pack_into('<Q', header, 0x3C, db_id)
        struct.pack_into('<Q', header, 0x44, playlist.playlist_id)
    struct.pack_into('<I', header, 0x58, timestamp)

    return bytes(header) + body
