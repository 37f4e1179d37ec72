"""Tests for the import pipeline"""

import wave

import pytest
from mutagen.id3 import APIC, ID3, TIT2
from mutagen.wave import WAVE
from PIL import Image

from SyncEngine import importer
from SyncEngine.content_hash import fingerprint
from SyncEngine.errors import PersistError, ProbeError
from SyncEngine.events import ArtworkProgress, OverallProgress, Phase
from SyncEngine.importer import ImportOverrides, collect_audio_files, import_file, import_files
from SyncEngine.persistence import load_database, persist
from SyncEngine.tag_reader import read_tags

from conftest import drain, make_cover, write_audio


class TestImportFile:
    """One file through the whole pipeline"""

    async def test_first_import(self, temp_dir, db, layout, events, settings, fake_probe):
        """Importing A.mp3 into an empty library"""
        src = write_audio(temp_dir / "A.mp3", b"AUDIO-A" * 100)

        track_id = await import_file(src, db, layout, events, settings=settings)

        track = db.get_track(track_id)
        assert track.title == "A"
        assert track.dbid == fingerprint(src.read_bytes())
        assert track.location == f":iPod_Control:Music:F{track_id % 100:02d}:{track_id:X}.mp3"
        assert track.filetype_desc == "MPEG audio file"
        assert track.length == 183500
        assert track.bitrate == 320
        assert track.sample_rate == 44100
        assert not track.has_artwork

        dest = layout.full_track_path(track_id, "mp3")
        assert dest.read_bytes() == src.read_bytes()
        assert track_id in db.master_playlist.track_ids

        # persisted: a fresh load sees the track
        reloaded = load_database(layout)
        assert reloaded.get_track(track_id).title == "A"

    async def test_duplicate_is_noop(self, temp_dir, db, layout, events, settings, fake_probe):
        """Re-importing the same bytes returns the existing id and writes nothing"""
        src = write_audio(temp_dir / "A.mp3", b"AUDIO-A" * 100)
        first = await import_file(src, db, layout, events, settings=settings)
        mtime = layout.itunesdb_path.stat().st_mtime_ns

        copy = write_audio(temp_dir / "other" / "renamed.mp3", src.read_bytes())
        second = await import_file(copy, db, layout, events, settings=settings)

        assert second == first
        assert len(db.tracks()) == 1
        assert db.master_playlist.track_ids == [first]
        assert layout.itunesdb_path.stat().st_mtime_ns == mtime
        assert len(list(layout.music_dir.rglob("*.mp3"))) == 1

    async def test_ids_are_not_reused(self, temp_dir, db, layout, events, settings, fake_probe):
        a = await import_file(write_audio(temp_dir / "a.mp3", b"one"), db, layout, events, settings=settings)
        db.remove_track_completely(a)
        b = await import_file(write_audio(temp_dir / "b.mp3", b"two"), db, layout, events, settings=settings)
        assert b > a

    async def test_overrides_win(self, temp_dir, db, layout, events, settings, fake_probe):
        src = write_audio(temp_dir / "123456.mp3", b"remote audio")
        overrides = ImportOverrides(title="Remote Title", artist="Someone", genre="House")

        track_id = await import_file(src, db, layout, events, settings=settings,
                                     overrides=overrides, persist=False)

        track = db.get_track(track_id)
        assert (track.title, track.artist, track.genre) == ("Remote Title", "Someone", "House")
        assert not layout.itunesdb_path.exists()

    async def test_cover_from_overrides(self, temp_dir, db, layout, events, settings, fake_probe):
        src = write_audio(temp_dir / "x.mp3", b"with cover")
        cover = make_cover()

        track_id = await import_file(src, db, layout, events, settings=settings,
                                     overrides=ImportOverrides(cover=cover))

        track = db.get_track(track_id)
        assert track.has_artwork
        assert track.artwork_count == 1
        assert track.artwork_size == len(cover)
        assert track.mhii_link >= 0x40
        assert ArtworkProgress(2, 2) in drain(events)

    async def test_embedded_cover(self, temp_dir, db, layout, events, settings, fake_probe):
        src = write_audio(temp_dir / "tagged.mp3", b"\xff" * 64)
        tags = ID3()
        tags.add(APIC(encoding=3, mime="image/png", type=3, desc="Cover", data=make_cover()))
        tags.save(src)

        track_id = await import_file(src, db, layout, events, settings=settings)
        assert db.get_track(track_id).has_artwork

    async def test_bad_cover_is_not_fatal(self, temp_dir, db, layout, events, settings, fake_probe):
        src = write_audio(temp_dir / "x.mp3", b"bad cover")
        track_id = await import_file(src, db, layout, events, settings=settings,
                                     overrides=ImportOverrides(cover=b"not an image"))
        assert not db.get_track(track_id).has_artwork

    async def test_probe_failure_propagates(self, temp_dir, db, layout, events, settings, fake_probe):
        src = write_audio(temp_dir / "broken.ogg", b"ogg")
        with pytest.raises(ProbeError):
            await import_file(src, db, layout, events, settings=settings)
        assert db.tracks() == []
        assert db.get_unique_id() == 1

    async def test_failed_persist_leaves_nothing_behind(self, temp_dir, db, layout, events, settings,
                                                        fake_probe, monkeypatch):
        src = write_audio(temp_dir / "x.mp3", b"x")

        def fail(db, layout, keep_backups):
            raise PersistError("disk full")

        monkeypatch.setattr(importer, "persist_database", fail)
        with pytest.raises(PersistError):
            await import_file(src, db, layout, events, settings=settings)

        assert db.tracks() == []
        assert db.master_playlist.track_ids == []
        assert list(layout.music_dir.rglob("*.mp3")) == []

        monkeypatch.setattr(importer, "persist_database", persist)
        await import_file(src, db, layout, events, settings=settings)
        assert [t.title for t in load_database(layout).tracks()] == ["x"]


class TestImportFiles:
    async def test_batch_skips_failures(self, temp_dir, db, layout, events, settings, fake_probe):
        files = [
            write_audio(temp_dir / "1.mp3", b"one"),
            write_audio(temp_dir / "broken.mp3", b"two"),
            write_audio(temp_dir / "3.mp3", b"three"),
        ]

        ids = await import_files(files, db, layout, events, settings=settings)

        assert len(ids) == 2
        progress = [e for e in drain(events) if isinstance(e, OverallProgress)]
        assert progress == [
            OverallProgress(0, 3, Phase.DOWNLOAD),
            OverallProgress(1, 3, Phase.DOWNLOAD),
            OverallProgress(2, 3, Phase.DOWNLOAD),
            OverallProgress(3, 3, Phase.DOWNLOAD),
        ]

    async def test_oversized_cover_skipped(self, temp_dir, db, layout, events, settings, fake_probe, monkeypatch):
        tagged = write_audio(temp_dir / "tagged.mp3", b"\xff" * 64)
        tags = ID3()
        tags.add(APIC(encoding=3, mime="image/png", type=3, desc="Cover", data=make_cover()))
        tags.save(tagged)
        plain = write_audio(temp_dir / "plain.mp3", b"plain")
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

        ids = await import_files([tagged, plain], db, layout, events, settings=settings)

        assert len(ids) == 2
        assert not any(db.get_track(i).has_artwork for i in ids)

    def test_collect_directory(self, temp_dir):
        for name in ("b.mp3", "a.M4A", "sub/c.wav", "sub/d.aiff", "notes.txt", "cover.jpg"):
            write_audio(temp_dir / "lib" / name, b"x")

        found = [p.relative_to(temp_dir / "lib").as_posix() for p in collect_audio_files(temp_dir / "lib")]
        assert found == ["a.M4A", "b.mp3", "sub/c.wav", "sub/d.aiff"]

    def test_collect_single_file(self, temp_dir):
        path = write_audio(temp_dir / "one.mp3", b"x")
        assert collect_audio_files(path) == [path]


class TestReadTags:
    def test_untagged_file(self, temp_dir):
        info = read_tags(write_audio(temp_dir / "plain.mp3", b"no tags here"))
        assert info.title is None
        assert info.cover is None
        assert not info.lyrics

    def test_wav_id3_title(self, temp_dir):
        path = temp_dir / "tone.wav"
        with wave.open(str(path), "wb") as w:
            w.setnchannels(1)
            w.setsampwidth(2)
            w.setframerate(8000)
            w.writeframes(b"\x00\x00" * 800)

        audio = WAVE(path)
        audio.add_tags()
        audio.tags.add(TIT2(encoding=3, text=["Sine"]))
        audio.save()

        assert read_tags(path).title == "Sine"
