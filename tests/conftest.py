"""Test configuration and fixtures"""

import asyncio
import io
import os
import stat
import tempfile
from pathlib import Path

import pytest
from PIL import Image

from SyncEngine import audio_probe
from SyncEngine.audio_probe import MP3, AudioInfo
from SyncEngine.device import IPodLayout
from SyncEngine.errors import ProbeError
from SyncEngine.library import LibraryDatabase
from SyncEngine.settings import AppSettings


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def ipod_root(temp_dir):
    """An empty mounted iPod: just the iPod_Control tree."""
    root = temp_dir / "IPOD"
    IPodLayout(root).ensure_dirs()
    return root


@pytest.fixture
def layout(ipod_root):
    return IPodLayout(ipod_root)


@pytest.fixture
def db():
    return LibraryDatabase.new()


@pytest.fixture
def events():
    return asyncio.Queue()


@pytest.fixture
def settings(temp_dir, ipod_root):
    return AppSettings(
        device_path=str(ipod_root),
        download_dir=str(temp_dir / "scratch"),
        device_poll_interval=0.01,
        device_max_attempts=3,
    )


def make_audio_info(size=4096, kind=MP3) -> AudioInfo:
    return AudioInfo(
        channels=2,
        sample_rate=44100,
        codec="mp3",
        format_name="mp3",
        size=size,
        duration=183.5,
        bit_rate=320000,
        kind=kind,
    )


@pytest.fixture
def fake_probe(monkeypatch):
    """
    Replace ffprobe with an in-process fake.

    Files whose name contains "broken" fail to probe. Returns the list of
    probed paths so tests can count calls.
    """
    calls = []

    async def probe(path, ffprobe_path=None):
        calls.append(Path(path))
        if "broken" in Path(path).name:
            raise ProbeError("Unsupported codec/container: vorbis in ogg")
        return make_audio_info(size=os.path.getsize(path))

    monkeypatch.setattr(audio_probe, "probe", probe)
    return calls


def write_audio(path: Path, payload: bytes) -> Path:
    """Write fake audio bytes; the content decides the fingerprint."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return path


def make_cover(width=300, height=200, color=(200, 30, 30), fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, fmt)
    return buf.getvalue()


def write_script(path: Path, body: str) -> Path:
    """Write an executable /bin/sh script standing in for an external tool."""
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items
