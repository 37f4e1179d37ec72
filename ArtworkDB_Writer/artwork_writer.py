"""
ArtworkDB Writer.

Writes the ArtworkDB index file and the per-image .ithmb thumbnails.

ArtworkDB structure:
    mhfd (file header, next image id)
      mhsd type=1 -> mhli -> mhii[] (one per unique cover image)
        Each mhii has one MHOD type=2 container per thumbnail size
        wrapping an MHNI, whose MHOD type=3 child holds the ithmb filename

Each unique cover is keyed by its content hash (stored in the mhii at
+0x34) so a cover shared by many tracks is encoded to disk only once.
"""

import logging
import os
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ArtworkDB_Parser import parse_artworkdb

logger = logging.getLogger(__name__)

MHFD_HEADER_SIZE = 132
MHSD_HEADER_SIZE = 96
MHLI_HEADER_SIZE = 92
MHII_HEADER_SIZE = 152
MHOD_HEADER_SIZE = 24
MHNI_HEADER_SIZE = 76

MHOD_TYPE_THUMBNAIL = 2
MHOD_TYPE_FILENAME = 3

# First mhii id on real devices
FIRST_IMAGE_ID = 0x40


@dataclass
class ArtworkEntry:
    """One unique cover image in the ArtworkDB."""
    img_id: int
    art_hash: int          # content hash of the source image bytes
    song_id: int           # dbid of the first track that used it
    src_img_size: int      # size of the source image in bytes
    # size (edge px) -> {'filename', 'width', 'height', 'size'}
    thumbnails: dict = field(default_factory=dict)


def thumbnail_filename(size: int, art_hash: int) -> str:
    return f"F{size}_{art_hash:016X}.ithmb"


def _write_mhod_string(mhod_type: int, string: str) -> bytes:
    """Write an ArtworkDB string MHOD (UTF-16LE, padded to 4 bytes)."""
    encoded = string.encode('utf-16-le')
    padding = (4 - (len(encoded) % 4)) % 4

    # str_len(4) + encoding(1) + unk(3) + unk2(4) + string + padding
    body = struct.pack('<IB3xI', len(encoded), 2, 0) + encoded + b'\x00' * padding

    header = bytearray(MHOD_HEADER_SIZE)
    header[0:4] = b'mhod'
    struct.pack_into('<I', header, 4, MHOD_HEADER_SIZE)
    struct.pack_into('<I', header, 8, MHOD_HEADER_SIZE + len(body))
    struct.pack_into('<H', header, 12, mhod_type)
    struct.pack_into('<B', header, 15, padding)

    return bytes(header) + body


def _write_mhni(size: int, thumb: dict) -> bytes:
    """Write an MHNI (image name) chunk with its filename MHOD child."""
    mhod3 = _write_mhod_string(MHOD_TYPE_FILENAME, f":{thumb['filename']}")

    header = bytearray(MHNI_HEADER_SIZE)
    header[0:4] = b'mhni'
    struct.pack_into('<I', header, 4, MHNI_HEADER_SIZE)
    struct.pack_into('<I', header, 8, MHNI_HEADER_SIZE + len(mhod3))
    struct.pack_into('<I', header, 12, 1)
    struct.pack_into('<I', header, 16, size)            # correlationID
    struct.pack_into('<I', header, 20, 0)               # offset in ithmb file
    struct.pack_into('<I', header, 24, thumb['size'])
    struct.pack_into('<H', header, 32, thumb['height'])
    struct.pack_into('<H', header, 34, thumb['width'])
    struct.pack_into('<I', header, 40, thumb['size'])   # imgSize2

    return bytes(header) + mhod3


def _write_mhod_container(mhod_type: int, child: bytes) -> bytes:
    header = bytearray(MHOD_HEADER_SIZE)
    header[0:4] = b'mhod'
    struct.pack_into('<I', header, 4, MHOD_HEADER_SIZE)
    struct.pack_into('<I', header, 8, MHOD_HEADER_SIZE + len(child))
    struct.pack_into('<H', header, 12, mhod_type)
    return bytes(header) + child


def _write_mhii(entry: ArtworkEntry) -> bytes:
    children = [
        _write_mhod_container(MHOD_TYPE_THUMBNAIL, _write_mhni(size, entry.thumbnails[size]))
        for size in sorted(entry.thumbnails)
    ]
    children_data = b''.join(children)

    header = bytearray(MHII_HEADER_SIZE)
    header[0:4] = b'mhii'
    struct.pack_into('<I', header, 4, MHII_HEADER_SIZE)
    struct.pack_into('<I', header, 8, MHII_HEADER_SIZE + len(children_data))
    struct.pack_into('<I', header, 12, len(children))
    struct.pack_into('<I', header, 16, entry.img_id)
    struct.pack_into('<Q', header, 20, entry.song_id)
    struct.pack_into('<I', header, 48, entry.src_img_size)
    struct.pack_into('<Q', header, 52, entry.art_hash)

    return bytes(header) + children_data


def build_artworkdb(entries: list[ArtworkEntry], next_img_id: int) -> bytes:
    """Serialize all entries into ArtworkDB bytes."""
    mhii_data = b''.join(_write_mhii(e) for e in entries)

    mhli = bytearray(MHLI_HEADER_SIZE)
    mhli[0:4] = b'mhli'
    struct.pack_into('<I', mhli, 4, MHLI_HEADER_SIZE)
    struct.pack_into('<I', mhli, 8, len(entries))  # count, not total length
    mhli_data = bytes(mhli) + mhii_data

    mhsd = bytearray(MHSD_HEADER_SIZE)
    mhsd[0:4] = b'mhsd'
    struct.pack_into('<I', mhsd, 4, MHSD_HEADER_SIZE)
    struct.pack_into('<I', mhsd, 8, MHSD_HEADER_SIZE + len(mhli_data))
    struct.pack_into('<H', mhsd, 12, 1)
    mhsd_data = bytes(mhsd) + mhli_data

    mhfd = bytearray(MHFD_HEADER_SIZE)
    mhfd[0:4] = b'mhfd'
    struct.pack_into('<I', mhfd, 4, MHFD_HEADER_SIZE)
    struct.pack_into('<I', mhfd, 8, MHFD_HEADER_SIZE + len(mhsd_data))
    struct.pack_into('<I', mhfd, 16, 2)
    struct.pack_into('<I', mhfd, 20, 1)  # childCount
    struct.pack_into('<I', mhfd, 28, next_img_id)
    struct.pack_into('<I', mhfd, 48, 2)

    return bytes(mhfd) + mhsd_data


class ArtworkIndex:
    """In-memory ArtworkDB: cover hash -> ArtworkEntry, read-modify-written per change."""

    def __init__(self, artwork_dir: str | Path):
        self.artwork_dir = Path(artwork_dir)
        self.entries: list[ArtworkEntry] = []
        self.next_img_id = FIRST_IMAGE_ID
        self._by_hash: dict[int, ArtworkEntry] = {}

    @property
    def artworkdb_path(self) -> Path:
        return self.artwork_dir / "ArtworkDB"

    @classmethod
    def load(cls, artwork_dir: str | Path) -> "ArtworkIndex":
        """Load the ArtworkDB if present, otherwise start empty."""
        index = cls(artwork_dir)
        if not index.artworkdb_path.exists():
            return index

        parsed = parse_artworkdb(index.artworkdb_path)
        for image in parsed["images"]:
            thumbnails = {
                t["correlationID"]: {
                    'filename': t["filename"].lstrip(':'),
                    'width': t["imageWidth"],
                    'height': t["imageHeight"],
                    'size': t["imgSize"],
                }
                for t in image["thumbnails"]
            }
            index._add(ArtworkEntry(
                img_id=image["imgId"],
                art_hash=image["artHash"],
                song_id=image["songId"],
                src_img_size=image["srcImgSize"],
                thumbnails=thumbnails,
            ))
        index.next_img_id = max(parsed["nextMhiiID"], index.next_img_id)
        return index

    def _add(self, entry: ArtworkEntry) -> None:
        self.entries.append(entry)
        self._by_hash[entry.art_hash] = entry
        self.next_img_id = max(self.next_img_id, entry.img_id + 1)

    def find(self, art_hash: int) -> Optional[ArtworkEntry]:
        return self._by_hash.get(art_hash)

    def register(self, art_hash: int, song_id: int, src_img_size: int,
                 thumbnails: dict) -> ArtworkEntry:
        """Add a freshly encoded cover and allocate its image id."""
        entry = ArtworkEntry(
            img_id=self.next_img_id,
            art_hash=art_hash,
            song_id=song_id,
            src_img_size=src_img_size,
            thumbnails=thumbnails,
        )
        self._add(entry)
        return entry

    def write_thumbnail(self, filename: str, pixel_data: bytes) -> Path:
        self.artwork_dir.mkdir(parents=True, exist_ok=True)
        path = self.artwork_dir / filename
        with open(path, 'wb') as f:
            f.write(pixel_data)
        return path

    def save(self) -> None:
        """Rewrite the ArtworkDB atomically (temp file + replace)."""
        self.artwork_dir.mkdir(parents=True, exist_ok=True)
        data = build_artworkdb(self.entries, self.next_img_id)

        tmp = self.artworkdb_path.with_suffix(".tmp")
        try:
            with open(tmp, 'wb') as f:
                f.write(data)
            os.replace(tmp, self.artworkdb_path)
        except OSError:
            try:
                os.remove(tmp)
            except OSError:
                pass
            raise
        logger.debug(f"ArtworkDB written: {len(self.entries)} images, {len(data)} bytes")
