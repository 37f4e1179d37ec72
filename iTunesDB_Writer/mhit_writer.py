"""
MHIT Writer - Write track item chunks for iTunesDB.

An MHIT holds the fixed-size numeric metadata of one track followed by
its string MHOD children (title, device path, artist, ...).
"""

import struct
import time
from dataclasses import dataclass

from .mhod_writer import write_track_mhods


# Mac HFS+ epoch starts 1904-01-01, Unix epoch 1970-01-01
MAC_EPOCH_OFFSET = 2082844800


def unix_to_mac_timestamp(unix_timestamp: int) -> int:
    """Convert Unix timestamp to Mac HFS+ timestamp."""
    if unix_timestamp == 0:
        return 0
    return unix_timestamp + MAC_EPOCH_OFFSET


def mac_to_unix_timestamp(mac_timestamp: int) -> int:
    """Convert Mac HFS+ timestamp back to Unix time."""
    if mac_timestamp == 0:
        return 0
    return mac_timestamp - MAC_EPOCH_OFFSET


# File type codes (big-endian ASCII read as a little-endian int)
FILETYPE_CODES = {
    'mp3': 0x4D503320,   # "MP3 "
    'm4a': 0x4D344120,   # "M4A "
    'wav': 0x57415620,   # "WAV "
    'aif': 0x41494646,   # "AIFF"
}

FILETYPE_BY_CODE = {code: ext for ext, code in FILETYPE_CODES.items()}

MEDIA_TYPE_AUDIO = 0x01

# libgpod writes 0x248 byte headers for modern databases
MHIT_HEADER_SIZE = 0x248


@dataclass
class TrackInfo:
    """One track record of the on-device library."""

    title: str = ""
    location: str = ""  # ":iPod_Control:Music:F07:1F.mp3"

    unique_id: int = 0  # session-issued id, referenced by playlists
    dbid: int = 0  # content hash of the audio file, dedup key

    # Audio properties
    size: int = 0  # bytes
    length: int = 0  # ms
    bitrate: int = 0  # kbps
    sample_rate: int = 44100  # Hz
    filetype: str = 'mp3'
    filetype_desc: str = ""  # "MPEG audio file"

    # Tags
    artist: str = ""
    album: str = ""
    genre: str = ""
    year: int = 0
    track_number: int = 0
    total_tracks: int = 0
    disc_number: int = 0
    total_discs: int = 0

    date_added: int = 0  # Unix, set on write when 0
    media_type: int = MEDIA_TYPE_AUDIO
    lyrics: bool = False
    gapless_album: bool = True

    # Artwork
    has_artwork: bool = False
    artwork_count: int = 0
    artwork_size: int = 0
    mhii_link: int = 0  # image id in the ArtworkDB


def write_mhit(track: TrackInfo) -> bytes:
    """
    Write a complete MHIT chunk with all child MHODs.

    The track's ``unique_id`` is written as the MHIT track id so playlist
    items keep pointing at the same record across rewrites.
    """
    if track.date_added == 0:
        track.date_added = int(time.time())

    filetype_code = FILETYPE_CODES.get(track.filetype.lower(), FILETYPE_CODES['mp3'])

    mhod_data, mhod_count = write_track_mhods(
        title=track.title,
        location=track.location,
        artist=track.artist,
        album=track.album,
        genre=track.genre,
        filetype_desc=track.filetype_desc,
    )

    header = bytearray(MHIT_HEADER_SIZE)
    header[0:4] = b'mhit'
    struct.pack_into('<I', header, 0x04, MHIT_HEADER_SIZE)
    struct.pack_into('<I', header, 0x08, MHIT_HEADER_SIZE + len(mhod_data))
    struct.pack_into('<I', header, 0x0C, mhod_count)

    struct.pack_into('<I', header, 0x10, track.unique_id)
    struct.pack_into('<I', header, 0x14, 1)  # visible
    struct.pack_into('<I', header, 0x18, filetype_code)
    header[0x1D] = 1  # audio track

    added = unix_to_mac_timestamp(track.date_added)
    struct.pack_into('<I', header, 0x20, added)  # time modified
    struct.pack_into('<I', header, 0x24, track.size)
    struct.pack_into('<I', header, 0x28, track.length)
    struct.pack_into('<I', header, 0x2C, track.track_number)
    struct.pack_into('<I', header, 0x30, track.total_tracks)
    struct.pack_into('<I', header, 0x34, track.year)
    struct.pack_into('<I', header, 0x38, track.bitrate)
    # 16.16 fixed point; rates above 65535 only survive in the float copy
    struct.pack_into('<I', header, 0x3C, min(track.sample_rate, 0xFFFF) << 16)

    struct.pack_into('<I', header, 0x5C, track.disc_number)
    struct.pack_into('<I', header, 0x60, track.total_discs)
    struct.pack_into('<I', header, 0x68, added)

    struct.pack_into('<Q', header, 0x70, track.dbid)
    struct.pack_into('<H', header, 0x7C, track.artwork_count)
    struct.pack_into('<H', header, 0x7E, 0xFFFF)
    struct.pack_into('<I', header, 0x80, track.artwork_size)
    struct.pack_into('<f', header, 0x88, float(track.sample_rate))

    header[0xA4] = 1 if track.has_artwork else 2  # 1=has, 2=no
    struct.pack_into('<Q', header, 0xA8, track.dbid)  # dbid2
    header[0xB0] = 1 if track.lyrics else 0
    header[0xB2] = 0x02  # unplayed bullet

    struct.pack_into('<I', header, 0xD0, track.media_type)
    struct.pack_into('<H', header, 0x100, 0)  # gapless track flag
    struct.pack_into('<H', header, 0x102, 1 if track.gapless_album else 0)

    struct.pack_into('<I', header, 0x12C, track.size)
    struct.pack_into('<I', header, 0x160, track.mhii_link)
    struct.pack_into('<I', header, 0x168, 1)

    return bytes(header) + mhod_data
