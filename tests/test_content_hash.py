"""Tests for content fingerprints"""

from SyncEngine.content_hash import CHUNK_SIZE, fingerprint, fingerprint_file


class TestFingerprint:
    """Fingerprints are the dedup key, so they must be stable"""

    def test_deterministic(self):
        assert fingerprint(b"some audio") == fingerprint(b"some audio")

    def test_content_sensitive(self):
        assert fingerprint(b"some audio") != fingerprint(b"some audio!")

    def test_fits_u64_and_never_zero(self):
        for payload in (b"", b"\x00", b"a" * 1000):
            value = fingerprint(payload)
            assert 0 < value < 2 ** 64

    def test_file_matches_bytes(self, temp_dir):
        """Streaming a file across chunk boundaries gives the same value"""
        data = bytes(range(256)) * (CHUNK_SIZE // 256 + 3)
        path = temp_dir / "big.bin"
        path.write_bytes(data)
        assert fingerprint_file(path) == fingerprint(data)
