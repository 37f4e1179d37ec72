"""
iTunesDB Writer.

Serializes the in-memory library (tracks + playlists) into the binary
iTunesDB format read by iPod Classic/Nano/Video firmware.

Usage:
    from iTunesDB_Writer import TrackInfo, PlaylistInfo, write_mhbd

    data = write_mhbd(tracks, playlists, db_id=existing_db_id)
"""

from .mhbd_writer import write_mhbd, generate_database_id
from .mhit_writer import (
    TrackInfo,
    write_mhit,
    FILETYPE_CODES,
    FILETYPE_BY_CODE,
    MAC_EPOCH_OFFSET,
    unix_to_mac_timestamp,
    mac_to_unix_timestamp,
)
from .mhyp_writer import PlaylistInfo, write_mhyp, generate_playlist_id

__all__ = [
    'TrackInfo',
    'PlaylistInfo',
    'write_mhbd',
    'write_mhit',
    'write_mhyp',
    'generate_database_id',
    'generate_playlist_id',
    'FILETYPE_CODES',
    'FILETYPE_BY_CODE',
    'MAC_EPOCH_OFFSET',
    'unix_to_mac_timestamp',
    'mac_to_unix_timestamp',
]
