"""Tests for cover art conversion, dedup and the ArtworkDB round trip"""

import numpy as np
import pytest
from PIL import Image

from ArtworkDB_Parser import parse_artworkdb
from ArtworkDB_Writer import (
    ArtworkIndex,
    convert_art_for_ipod,
    crop_to_square,
    image_from_bytes,
    rgb888_to_rgb565,
    thumbnail_filename,
)
from SyncEngine.artwork import embed_artwork
from SyncEngine.content_hash import fingerprint
from SyncEngine.errors import ArtworkError
from SyncEngine.events import ArtworkProgress

from conftest import drain, make_cover


class TestRgb565:
    def test_pure_colors(self):
        img = Image.new("RGB", (2, 1))
        img.putpixel((0, 0), (255, 0, 0))
        img.putpixel((1, 0), (0, 0, 255))
        data = rgb888_to_rgb565(img)
        assert np.frombuffer(data, dtype="<u2").tolist() == [0xF800, 0x001F]

    def test_crop_to_square_centers(self):
        img = Image.new("RGB", (300, 200))
        assert crop_to_square(img).size == (200, 200)

    def test_convert_sizes(self):
        img = image_from_bytes(make_cover())
        art = convert_art_for_ipod(img, 100)
        assert (art["width"], art["height"]) == (100, 100)
        assert art["size"] == len(art["data"]) == 100 * 100 * 2

    def test_undecodable(self):
        with pytest.raises(ValueError):
            image_from_bytes(b"definitely not an image")


class TestArtworkIndex:
    def test_round_trip(self, layout):
        index = ArtworkIndex.load(layout.artwork_dir)
        thumbs = {
            100: {"filename": thumbnail_filename(100, 0xABC), "width": 100, "height": 100, "size": 20000},
            200: {"filename": thumbnail_filename(200, 0xABC), "width": 200, "height": 200, "size": 80000},
        }
        entry = index.register(0xABC, 77, 1234, thumbs)
        index.save()

        parsed = parse_artworkdb(index.artworkdb_path)
        assert parsed["nextMhiiID"] == entry.img_id + 1
        [image] = parsed["images"]
        assert image["imgId"] == entry.img_id
        assert image["artHash"] == 0xABC
        assert image["songId"] == 77
        assert image["srcImgSize"] == 1234
        assert sorted(t["filename"] for t in image["thumbnails"]) == [
            ":F100_0000000000000ABC.ithmb",
            ":F200_0000000000000ABC.ithmb",
        ]

        reloaded = ArtworkIndex.load(layout.artwork_dir)
        found = reloaded.find(0xABC)
        assert found.img_id == entry.img_id
        assert found.thumbnails[200]["width"] == 200


class TestEmbedArtwork:
    """Covers are encoded once per distinct image"""

    async def test_new_cover(self, layout, events):
        cover = make_cover()
        meta = await embed_artwork(cover, layout, content_hash=111, events=events)

        assert not meta.reused
        assert meta.src_img_size == len(cover)
        art_hash = fingerprint(cover)
        assert meta.filenames == (thumbnail_filename(100, art_hash), thumbnail_filename(200, art_hash))
        for name in meta.filenames:
            assert (layout.artwork_dir / name).exists()
        assert (layout.artwork_dir / meta.filenames[0]).stat().st_size == 100 * 100 * 2

        assert drain(events) == [ArtworkProgress(0, 2), ArtworkProgress(1, 2), ArtworkProgress(2, 2)]

    async def test_same_cover_reused(self, layout, events):
        cover = make_cover()
        first = await embed_artwork(cover, layout, content_hash=111)

        for name in first.filenames:
            (layout.artwork_dir / name).unlink()

        second = await embed_artwork(cover, layout, content_hash=222, events=events)
        assert second.reused
        assert second.img_id == first.img_id
        assert second.filenames == first.filenames
        # nothing was re-encoded
        assert not any((layout.artwork_dir / name).exists() for name in second.filenames)
        assert drain(events) == [ArtworkProgress(0, 2), ArtworkProgress(2, 2)]

        assert len(parse_artworkdb(layout.artwork_dir / "ArtworkDB")["images"]) == 1

    async def test_different_covers(self, layout):
        a = await embed_artwork(make_cover(color=(1, 2, 3)), layout, content_hash=1)
        b = await embed_artwork(make_cover(color=(3, 2, 1)), layout, content_hash=2)
        assert a.img_id != b.img_id
        assert len(parse_artworkdb(layout.artwork_dir / "ArtworkDB")["images"]) == 2

    async def test_bad_image(self, layout):
        with pytest.raises(ArtworkError):
            await embed_artwork(b"garbage", layout, content_hash=1)
        assert not (layout.artwork_dir / "ArtworkDB").exists()

    async def test_oversized_image(self, layout, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(ArtworkError):
            await embed_artwork(make_cover(), layout, content_hash=1)

    async def test_truncated_artworkdb(self, layout):
        await embed_artwork(make_cover(), layout, content_hash=1)
        db_path = layout.artwork_dir / "ArtworkDB"
        db_path.write_bytes(db_path.read_bytes()[:20])

        with pytest.raises(ArtworkError):
            await embed_artwork(make_cover(color=(9, 9, 9)), layout, content_hash=2)
