"""
MHOD Writer - Write string chunks for iTunesDB.

MHOD chunks hold the variable-length strings of a record (title, artist,
device path, ...). The MHOD type says which field the string belongs to.
"""

import struct


MHOD_TYPE_TITLE = 1
MHOD_TYPE_LOCATION = 2
MHOD_TYPE_ALBUM = 3
MHOD_TYPE_ARTIST = 4
MHOD_TYPE_GENRE = 5
MHOD_TYPE_FILETYPE = 6
MHOD_TYPE_PLAYLIST_PREFS = 100

MHOD_HEADER_SIZE = 24
STRING_HEADER_SIZE = 16

# Encoding marker in the string header
ENCODING_UTF16 = 1


def write_mhod_string(mhod_type: int, value: str) -> bytes:
    """
    Write a string MHOD chunk.

    Layout:
    - mhod header (24 bytes): magic, header len, total len, type, 0, 0
    - string header (16 bytes): encoding, byte length, 1, 0
    - UTF-16LE string bytes

    Empty strings produce no chunk at all.
    """
    if not value:
        return b''

    encoded = value.encode('utf-16-le')
    total_len = MHOD_HEADER_SIZE + STRING_HEADER_SIZE + len(encoded)

    header = struct.pack(
        '<4sIIIII',
        b'mhod',
        MHOD_HEADER_SIZE,
        total_len,
        mhod_type,
        0,
        0,
    )
    string_header = struct.pack('<IIII', ENCODING_UTF16, len(encoded), 1, 0)

    return header + string_header + encoded


def write_track_mhods(
    title: str,
    location: str,
    artist: str = "",
    album: str = "",
    genre: str = "",
    filetype_desc: str = "",
) -> tuple[bytes, int]:
    """
    Write every string MHOD of a track.

    Returns:
        Tuple of (concatenated MHOD bytes, count of MHODs written)
    """
    fields = (
        (MHOD_TYPE_TITLE, title),
        (MHOD_TYPE_LOCATION, location),
        (MHOD_TYPE_ARTIST, artist),
        (MHOD_TYPE_ALBUM, album),
        (MHOD_TYPE_GENRE, genre),
        (MHOD_TYPE_FILETYPE, filetype_desc),
    )
    mhods = [write_mhod_string(t, v) for t, v in fields]
    mhods = [m for m in mhods if m]
    return b''.join(mhods), len(mhods)
