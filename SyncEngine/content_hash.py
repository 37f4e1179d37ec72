"""
Content fingerprints for deduplication.

A fingerprint is a truncated BLAKE2b digest of the file bytes read as a
big-endian u64. It is stored as the track dbid, so it has to be stable
across runs and platforms. Zero is reserved for "unset" in the record
layer and is never returned.
"""

import hashlib
from pathlib import Path

CHUNK_SIZE = 1024 * 1024


def _to_u64(digest: bytes) -> int:
    value = int.from_bytes(digest, "big")
    return value or 1


def fingerprint(data: bytes) -> int:
    """Fingerprint an in-memory byte string."""
    return _to_u64(hashlib.blake2b(data, digest_size=8).digest())


def fingerprint_file(path: str | Path) -> int:
    """Fingerprint a file, streaming it in chunks. Same value as fingerprint(read_bytes())."""
    h = hashlib.blake2b(digest_size=8)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return _to_u64(h.digest())
