"""Tests for device layout, discovery and the command line front end"""

import logging
from pathlib import Path

import pytest

import main
from main import _is_done, build_parser, commands_from_args
from SyncEngine.commands import (
    LoadFromFilesystem,
    RemovePlaylist,
    RemoveTrack,
    RemoveTrackFromPlaylist,
    SearchQuery,
)
from SyncEngine.device import IPodLayout, find_device_mount, require_device_mount
from SyncEngine.errors import DeviceNotFoundError
from SyncEngine.events import OperationFailed, SearchResults, SnapshotReady
from SyncEngine.settings import AppSettings


class TestLayout:
    def test_track_paths(self, temp_dir):
        layout = IPodLayout(temp_dir)
        assert IPodLayout.track_location(0x1F, "mp3") == ":iPod_Control:Music:F31:1F.mp3"
        assert layout.full_track_path(0x1F, "mp3") == temp_dir / "iPod_Control" / "Music" / "F31" / "1F.mp3"
        assert layout.resolve_location(":iPod_Control:Music:F31:1F.mp3") == layout.full_track_path(0x1F, "mp3")

    def test_bucket_wraps(self):
        assert IPodLayout.bucket(100) == "F00"
        assert IPodLayout.bucket(7) == "F07"


class TestDiscovery:
    def test_preferred_mount(self, ipod_root):
        assert find_device_mount(str(ipod_root)) == Path(ipod_root)

    def test_preferred_mount_without_ipod_control(self, temp_dir):
        assert find_device_mount(str(temp_dir)) is None
        with pytest.raises(DeviceNotFoundError):
            require_device_mount(str(temp_dir))


class TestCommandLine:
    def test_commands_in_order(self):
        args = build_parser().parse_args([
            "--import", "a.mp3", "albums/", "--playlist", "Trip",
            "--remove-track", "3",
            "--remove-playlist", "9", "--hard",
            "--remove-from-playlist", "4", "5",
            "--search", "daft",
        ])
        assert commands_from_args(args) == [
            LoadFromFilesystem(paths=(Path("a.mp3"), Path("albums/")), playlist_title="Trip"),
            RemoveTrack(3),
            RemovePlaylist(9, hard=True),
            RemoveTrackFromPlaylist(4, 5),
            SearchQuery("daft"),
        ]

    def test_no_actions(self):
        assert commands_from_args(build_parser().parse_args([])) == []

    def test_completion_events(self):
        search = SearchQuery("x")
        assert _is_done(search, SearchResults("x", ()))
        assert not _is_done(search, SnapshotReady(()))
        assert _is_done(RemoveTrack(1), SnapshotReady(()))
        assert _is_done(RemoveTrack(1), OperationFailed("RemoveTrack", "gone"))
        assert not _is_done(RemoveTrack(1), OperationFailed("fetch_catalog:soundcloud", "offline"))

    def test_missing_tools_warned(self, monkeypatch, caplog):
        monkeypatch.setattr(main, "is_ffprobe_available", lambda: False)
        monkeypatch.setattr(main, "is_ytdlp_available", lambda: False)

        main.check_tools(AppSettings())
        assert [r.message.split(":")[0] for r in caplog.records] == ["ffprobe not found"]

        caplog.clear()
        main.check_tools(AppSettings(youtube_channel_id="UC1", ffprobe_path="/opt/ffprobe"))
        assert [r.message.split(":")[0] for r in caplog.records] == ["yt-dlp not found"]

    def test_logging_configured_before_settings_load(self, temp_dir, monkeypatch):
        order = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: order.append("logging"))

        def load(cls, settings_dir=None):
            order.append("settings")
            return AppSettings()

        monkeypatch.setattr(AppSettings, "load", classmethod(load))

        assert main.main(["-v", "--restore-backup", "--device", str(temp_dir)]) == 1
        assert order == ["logging", "settings"]
