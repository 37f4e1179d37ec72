"""
yt-dlp download adapter.

yt-dlp is run with a fixed ``--progress-template`` so every progress line it
prints is a small JSON object. Those lines become ItemProgress events and
the "Downloading item N of M" lines become OverallProgress events; anything
else yt-dlp prints is ignored.

Files land in the scratch directory as ``<remote id>.mp3`` with the
thumbnail beside them (``<remote id>.jpg``/``.webp``/``.png``).

Requires: yt-dlp binary - https://github.com/yt-dlp/yt-dlp
"""

import asyncio
import json
import logging
import re
import shutil
from pathlib import Path
from typing import Optional, Union

from .errors import DownloadError
from .events import ItemProgress, OverallProgress, Phase, Provider

logger = logging.getLogger(__name__)

PROGRESS_TEMPLATE = (
    '{"progress_percentage":"%(progress._percent_str)s",'
    '"progress_total":"%(progress._total_bytes_str)s",'
    '"speed":"%(progress._speed_str)s",'
    '"eta":"%(progress._eta_str)s"}'
)
OUTPUT_TEMPLATE = "%(id)s.%(ext)s"

_ITEM_RE = re.compile(r"\[download\] Downloading (item|video) (\d+) of (\d+)")

THUMBNAIL_EXTENSIONS = ("jpg", "webp", "png")


def find_ytdlp() -> Optional[str]:
    """Find yt-dlp binary. Returns path or None."""
    ytdlp = shutil.which("yt-dlp")
    if ytdlp:
        return ytdlp

    common_paths = [
        # Windows
        r"C:\Program Files\yt-dlp\yt-dlp.exe",
        r"C:\yt-dlp\yt-dlp.exe",
        # macOS (Homebrew)
        "/usr/local/bin/yt-dlp",
        "/opt/homebrew/bin/yt-dlp",
        # Linux
        "/usr/bin/yt-dlp",
    ]

    for path in common_paths:
        if Path(path).exists():
            return path

    return None


def is_ytdlp_available() -> bool:
    return find_ytdlp() is not None


def build_download_args(ytdlp: str, url: str, provider: Provider) -> list[str]:
    if provider == Provider.CLOUD:
        fmt = ["-f", "mp3"]
    else:
        fmt = ["-f", "bestaudio", "-x", "--audio-format", "mp3", "--audio-quality", "0"]

    return [
        ytdlp,
        *fmt,
        "-o", OUTPUT_TEMPLATE,
        "--ignore-errors",
        "--newline",
        "--progress-template", PROGRESS_TEMPLATE,
        "--write-thumbnail",
        url,
    ]


def _parse_percent(value: str) -> float:
    try:
        return float(value.strip().rstrip("%"))
    except ValueError:
        return 0.0


def parse_progress_line(line: str) -> Optional[Union[OverallProgress, ItemProgress]]:
    """
    Turn one line of yt-dlp output into an event, or None if it is noise.

    >>> parse_progress_line("[download] Downloading item 3 of 10")
    OverallProgress(current=3, total=10, phase=<Phase.DOWNLOAD: 'green'>)
    """
    line = line.strip()
    if not line:
        return None

    match = _ITEM_RE.search(line)
    if match:
        return OverallProgress(int(match.group(2)), int(match.group(3)), Phase.DOWNLOAD)

    if not line.startswith("{"):
        return None
    try:
        doc = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(doc, dict) or "progress_percentage" not in doc:
        return None

    return ItemProgress(
        percent=_parse_percent(str(doc.get("progress_percentage", ""))),
        total_size=str(doc.get("progress_total", "")).strip(),
        eta=str(doc.get("eta", "")).strip(),
        speed=str(doc.get("speed", "")).strip(),
    )


def clear_dir(path: str | Path) -> None:
    """Empty a scratch directory, creating it if needed."""
    path = Path(path)
    if path.exists():
        for child in path.iterdir():
            try:
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
            except OSError as e:
                logger.warning(f"Could not remove {child}: {e}")
    path.mkdir(parents=True, exist_ok=True)


def find_thumbnail(dest_dir: str | Path, remote_id: str) -> Optional[Path]:
    """The thumbnail yt-dlp wrote next to ``<remote_id>.mp3``, if any."""
    for ext in THUMBNAIL_EXTENSIONS:
        candidate = Path(dest_dir) / f"{remote_id}.{ext}"
        if candidate.exists():
            return candidate
    return None


async def download(url: str, dest_dir: str | Path, events: asyncio.Queue, *,
                   provider: Provider, single: bool = False,
                   ytdlp_path: Optional[str] = None) -> None:
    """
    Download ``url`` into ``dest_dir``, streaming progress onto ``events``.

    A non-zero exit is only logged: whatever was downloaded is used.

    Raises:
        DownloadError: yt-dlp is missing or could not be started
    """
    ytdlp = ytdlp_path or find_ytdlp()
    if not ytdlp:
        raise DownloadError("yt-dlp not found")

    clear_dir(dest_dir)
    args = build_download_args(ytdlp, url, provider)
    logger.info(f"Downloading {url} ({provider.value})")

    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(dest_dir),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        raise DownloadError(f"Could not run yt-dlp: {e}") from e

    if single:
        await events.put(OverallProgress(0, 1, Phase.DOWNLOAD))

    try:
        async for raw in proc.stdout:
            line = raw.decode("utf-8", errors="replace")
            event = parse_progress_line(line)
            if event is None:
                continue
            logger.debug(f"yt-dlp: {line.strip()}")
            await events.put(event)
        returncode = await proc.wait()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise

    if single:
        await events.put(OverallProgress(1, 1, Phase.DOWNLOAD))

    if returncode != 0:
        logger.warning(f"yt-dlp exited with {returncode} for {url}; continuing with what was downloaded")
