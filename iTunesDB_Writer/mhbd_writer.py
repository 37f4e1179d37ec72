"""
MHBD Writer - Assemble a complete iTunesDB file.

Database structure:
  mhbd (database header)
    mhsd type 1 (tracks)
      mhlt
        mhit x N
          mhod (string) x M
    mhsd type 3 (podcasts, a copy of the playlist list)
      mhlp
    mhsd type 2 (playlists)
      mhlp
        mhyp (master playlist, hidden)
          mhip x N
        mhyp (user playlist) x M
"""

import random
import struct
import time
from typing import Optional

from .mhit_writer import TrackInfo
from .mhlt_writer import write_mhlp, write_mhlt
from .mhsd_writer import MHSD_TYPE_PLAYLISTS, MHSD_TYPE_PODCASTS, MHSD_TYPE_TRACKS, write_mhsd
from .mhyp_writer import PlaylistInfo


MHBD_HEADER_SIZE = 244

# 0x4F is widely accepted by 4G-7G firmware
DATABASE_VERSION = 0x4F


def generate_database_id() -> int:
    """Generate a random 64-bit database ID."""
    return random.getrandbits(64)


def write_mhbd(
    tracks: list[TrackInfo],
    playlists: list[PlaylistInfo],
    db_id: Optional[int] = None,
    language: str = "en",
) -> bytes:
    """
    Serialize tracks and playlists into iTunesDB bytes.

    Args:
        tracks: Track records in database order
        playlists: Playlist records; the master playlist is written first
        db_id: Database ID to preserve across rewrites (generated if None)
        language: 2-letter language code

    Returns:
        Complete iTunesDB file content
    """
    if db_id is None:
        db_id = generate_database_id()

    mhlp = write_mhlp(playlists, db_id)
    datasets = (
        write_mhsd(MHSD_TYPE_TRACKS, write_mhlt(tracks))
        + write_mhsd(MHSD_TYPE_PODCASTS, mhlp)
        + write_mhsd(MHSD_TYPE_PLAYLISTS, mhlp)
    )

    header = bytearray(MHBD_HEADER_SIZE)
    header[0:4] = b'mhbd'
    struct.pack_into('<I', header, 0x04, MHBD_HEADER_SIZE)
    struct.pack_into('<I', header, 0x08, MHBD_HEADER_SIZE + len(datasets))
    struct.pack_into('<I', header, 0x0C, 1)
    struct.pack_into('<I', header, 0x10, DATABASE_VERSION)
    struct.pack_into('<I', header, 0x14, 3)  # dataset count
    struct.pack_into('<Q', header, 0x18, db_id)
    struct.pack_into('<H', header, 0x20, 2)  # platform: Windows
    struct.pack_into('<H', header, 0x22, 611)
    header[0x46:0x48] = language.encode('utf-8')[:2].ljust(2, b'\x00')
    struct.pack_into('<Q', header, 0x48, db_id)  # library persistent id
    struct.pack_into('<I', header, 0x50, 1)
    struct.pack_into('<I', header, 0x54, 15)
    tz_offset = -time.altzone if time.daylight else -time.timezone
    struct.pack_into('<i', header, 0x6C, tz_offset)
    struct.pack_into('<H', header, 0x70, 3)

    return bytes(header) + datasets
