"""
MHSD Writer - Write dataset chunks for iTunesDB.

An MHSD wraps one list chunk. We emit three of them:
- Type 1: track list (mhlt)
- Type 3: podcast list (mhlp, same content as type 2)
- Type 2: playlist list (mhlp)
"""

import struct


MHSD_HEADER_SIZE = 96

MHSD_TYPE_TRACKS = 1
MHSD_TYPE_PLAYLISTS = 2
MHSD_TYPE_PODCASTS = 3


def write_mhsd(dataset_type: int, child_data: bytes) -> bytes:
    """Wrap ``child_data`` in a dataset chunk of ``dataset_type``."""
    header = bytearray(MHSD_HEADER_SIZE)
    header[0:4] = b'mhsd'
    struct.pack_into('<I', header, 4, MHSD_HEADER_SIZE)
    struct.pack_into('<I', header, 8, MHSD_HEADER_SIZE + len(child_data))
    struct.pack_into('<I', header, 12, dataset_type)
    return bytes(header) + child_data
