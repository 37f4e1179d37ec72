"""
Audio probing via ffprobe.

ffprobe is asked for a small JSON document (format duration/size/bit rate
plus per-stream codec, sample rate and channels). The first real audio
stream is used; attached cover pictures show up as mjpeg/png "video"
streams and are skipped.

The codec/container pair is classified into one of the file kinds the
iPod can play. Anything else is a ProbeError, which aborts the import of
that one file.

Requires: ffprobe binary (part of FFmpeg) - https://ffmpeg.org/
"""

import asyncio
import json
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ProbeError

logger = logging.getLogger(__name__)

IMAGE_CODECS = {"mjpeg", "png", "bmp", "gif", "webp"}


@dataclass(frozen=True)
class FileKind:
    """How a probed file is stored on the device."""
    ext: str           # storage extension
    filetype: str      # key into iTunesDB_Writer.FILETYPE_CODES
    description: str   # filetype MHOD text


MP3 = FileKind("mp3", "mp3", "MPEG audio file")
AAC = FileKind("m4a", "m4a", "AAC audio file")
ALAC = FileKind("m4a", "m4a", "Apple Lossless audio file")
WAV = FileKind("wav", "wav", "WAV audio file")
AIFF = FileKind("aif", "aif", "AIFF audio file")


@dataclass(frozen=True)
class AudioInfo:
    channels: int
    sample_rate: int    # Hz
    codec: str
    format_name: str
    size: int           # bytes
    duration: float     # seconds
    bit_rate: int       # bits per second
    kind: FileKind

    @property
    def length_ms(self) -> int:
        return int(round(self.duration * 1000))

    @property
    def bitrate_kbps(self) -> int:
        return self.bit_rate // 1000


def find_ffprobe() -> Optional[str]:
    """Find ffprobe binary. Returns path or None."""
    ffprobe = shutil.which("ffprobe")
    if ffprobe:
        return ffprobe

    common_paths = [
        # Windows
        r"C:\Program Files\ffmpeg\bin\ffprobe.exe",
        r"C:\ffmpeg\bin\ffprobe.exe",
        # macOS (Homebrew)
        "/usr/local/bin/ffprobe",
        "/opt/homebrew/bin/ffprobe",
        # Linux
        "/usr/bin/ffprobe",
    ]

    for path in common_paths:
        if Path(path).exists():
            return path

    return None


def is_ffprobe_available() -> bool:
    return find_ffprobe() is not None


def build_probe_args(ffprobe: str, path: str | Path) -> list[str]:
    return [
        ffprobe,
        "-i", str(path),
        "-print_format", "json",
        "-v", "quiet",
        "-show_entries",
        "format=duration,size,bit_rate,format_name"
        ":stream=codec_name,codec_type,sample_rate,channels",
    ]


def classify(codec: str, format_name: str) -> FileKind:
    """Map ffprobe's codec and container names onto a storable file kind."""
    codec = codec.lower()
    containers = set(format_name.lower().split(","))

    if codec == "mp3":
        return MP3
    if codec == "aac":
        return AAC
    if codec == "alac":
        return ALAC
    if codec.startswith("pcm_"):
        if "wav" in containers:
            return WAV
        if "aiff" in containers:
            return AIFF
    raise ProbeError(f"Unsupported codec/container: {codec} in {format_name or '?'}")


def _to_int(value, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _to_float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _pick_audio_stream(streams: list) -> Optional[dict]:
    for stream in streams:
        if not isinstance(stream, dict):
            continue
        codec = str(stream.get("codec_name", "")).lower()
        kind = stream.get("codec_type")
        if kind == "audio" or (kind is None and codec and codec not in IMAGE_CODECS):
            return stream
    return None


def parse_probe_output(text: str, fallback_size: int = 0) -> AudioInfo:
    """
    Parse ffprobe's JSON output into AudioInfo.

    Raises:
        ProbeError: on empty or unparsable output, no audio stream, or an
            unsupported codec
    """
    if not text or not text.strip():
        raise ProbeError("ffprobe produced no output")

    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProbeError(f"Unparsable ffprobe output: {e}") from e

    if not isinstance(doc, dict):
        raise ProbeError("Unexpected ffprobe output")

    stream = _pick_audio_stream(doc.get("streams") or [])
    if stream is None:
        raise ProbeError("No audio stream found")

    fmt = doc.get("format") or {}
    codec = str(stream.get("codec_name", ""))
    format_name = str(fmt.get("format_name", ""))
    kind = classify(codec, format_name)

    duration = _to_float(fmt.get("duration"))
    size = _to_int(fmt.get("size"), fallback_size)
    bit_rate = _to_int(fmt.get("bit_rate"))
    if not bit_rate and duration > 0:
        bit_rate = int(size * 8 / duration)

    return AudioInfo(
        channels=_to_int(stream.get("channels")),
        sample_rate=_to_int(stream.get("sample_rate")),
        codec=codec,
        format_name=format_name,
        size=size,
        duration=duration,
        bit_rate=bit_rate,
        kind=kind,
    )


async def probe(path: str | Path, ffprobe_path: Optional[str] = None) -> AudioInfo:
    """
    Run ffprobe on ``path`` and parse the result.

    The child process is killed if the awaiting task is cancelled.

    Raises:
        ProbeError: ffprobe missing, non-zero exit, or bad output
    """
    ffprobe = ffprobe_path or find_ffprobe()
    if not ffprobe:
        raise ProbeError("ffprobe not found")

    args = build_probe_args(ffprobe, path)
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ProbeError(f"Could not run ffprobe: {e}") from e

    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise

    if proc.returncode != 0:
        err = stderr.decode("utf-8", errors="replace").strip()
        raise ProbeError(f"ffprobe exited with {proc.returncode} for {path}: {err[:200]}")

    try:
        fallback_size = os.path.getsize(path)
    except OSError:
        fallback_size = 0

    info = parse_probe_output(stdout.decode("utf-8", errors="replace"), fallback_size)
    logger.debug(f"Probed {path}: {info.codec} {info.sample_rate}Hz {info.bitrate_kbps}kbps {info.duration:.1f}s")
    return info
