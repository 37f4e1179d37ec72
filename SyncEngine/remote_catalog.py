"""
Remote catalogs: SoundCloud and YouTube playlists of the configured accounts.

These records are read-only. The download pipeline turns them into tracks
and playlists on the device; they are never stored themselves.

SoundCloud is listed through the public api-v2 with a client id scraped
from the web player (requests). YouTube is listed by yt-dlp in
``--flat-playlist`` mode, so no API key is needed.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

import requests

from .downloader import find_ytdlp
from .errors import CatalogError
from .events import Provider
from .settings import AppSettings

logger = logging.getLogger(__name__)

SOUNDCLOUD_WEB = "https://soundcloud.com"
SOUNDCLOUD_API = "https://api-v2.soundcloud.com"
REQUEST_TIMEOUT = 30
# api-v2 resolves at most this many ids per /tracks call
TRACK_BATCH = 50

_SCRIPT_RE = re.compile(r'<script[^>]+src="(https://a-v2\.sndcdn\.com/assets/[^"]+\.js)"')
_CLIENT_ID_RE = re.compile(r'client_id\s*[:=]\s*"?([0-9a-zA-Z]{32})"?')


@dataclass(frozen=True)
class RemoteTrack:
    provider: Provider
    id: str
    title: Optional[str] = None  # None until resolved
    artist: str = ""
    genre: str = ""
    url: str = ""
    artwork_url: str = ""
    duration_ms: int = 0


@dataclass(frozen=True)
class RemotePlaylist:
    provider: Provider
    id: str
    title: str
    url: str
    tracks: tuple[RemoteTrack, ...] = ()


# ── SoundCloud ─────────────────────────────────────────────────────────────

def soundcloud_track_from_json(item: dict) -> RemoteTrack:
    """Build a RemoteTrack from an api-v2 track object (full or stub)."""
    user = item.get("user") or {}
    return RemoteTrack(
        provider=Provider.CLOUD,
        id=str(item.get("id", "")),
        title=item.get("title") or None,
        artist=user.get("username", "") or "",
        genre=item.get("genre") or "",
        url=item.get("permalink_url") or "",
        artwork_url=item.get("artwork_url") or "",
        duration_ms=int(item.get("duration") or 0),
    )


def soundcloud_playlists_from_json(collection: list, resolved: dict[str, dict]) -> list[RemotePlaylist]:
    """
    Build playlists from a /users/<id>/playlists collection.

    ``resolved`` maps track id -> full track object; stubs with no resolved
    entry keep ``title=None`` and are skipped at download time.
    """
    playlists = []
    for item in collection:
        tracks = []
        for stub in item.get("tracks") or []:
            track_id = str(stub.get("id", ""))
            tracks.append(soundcloud_track_from_json(resolved.get(track_id, stub)))
        playlists.append(RemotePlaylist(
            provider=Provider.CLOUD,
            id=str(item.get("id", "")),
            title=item.get("title") or "",
            url=item.get("permalink_url") or "",
            tracks=tuple(tracks),
        ))
    return playlists


class SoundCloudClient:
    """Minimal api-v2 client: enough to list one user's playlists."""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self._client_id: Optional[str] = None
        self._app_version: Optional[str] = None

    def _get(self, url: str, **params) -> requests.Response:
        try:
            response = self.session.get(url, params=params or None, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise CatalogError(f"SoundCloud request failed: {url}: {e}") from e
        return response

    def client_id(self) -> str:
        """Scrape the web player's client id from its asset bundles."""
        if self._client_id:
            return self._client_id

        page = self._get(SOUNDCLOUD_WEB).text
        # the id lives in one of the last bundles
        for script in reversed(_SCRIPT_RE.findall(page)):
            match = _CLIENT_ID_RE.search(self._get(script).text)
            if match:
                self._client_id = match.group(1)
                return self._client_id
        raise CatalogError("Could not find a SoundCloud client_id")

    def app_version(self) -> str:
        if self._app_version is None:
            try:
                self._app_version = str(self._get(f"{SOUNDCLOUD_WEB}/versions.json").json().get("app", ""))
            except ValueError as e:
                raise CatalogError(f"Bad SoundCloud versions.json: {e}") from e
        return self._app_version

    def _api(self, path: str, **params):
        params.update(client_id=self.client_id(), app_version=self.app_version())
        try:
            return self._get(f"{SOUNDCLOUD_API}{path}", **params).json()
        except ValueError as e:
            raise CatalogError(f"Bad SoundCloud response for {path}: {e}") from e

    def user_playlists(self, user_id: str) -> list:
        data = self._api(f"/users/{user_id}/playlists", limit=200)
        return data.get("collection", []) if isinstance(data, dict) else []

    def tracks(self, ids: list[str]) -> dict[str, dict]:
        resolved: dict[str, dict] = {}
        for start in range(0, len(ids), TRACK_BATCH):
            batch = ids[start:start + TRACK_BATCH]
            data = self._api("/tracks", ids=",".join(batch))
            for item in data if isinstance(data, list) else []:
                resolved[str(item.get("id"))] = item
        return resolved

    def fetch_playlists(self, user_id: str) -> list[RemotePlaylist]:
        collection = self.user_playlists(user_id)
        ids = [
            str(stub["id"])
            for item in collection
            for stub in item.get("tracks") or []
            if "id" in stub and not stub.get("title")
        ]
        resolved = self.tracks(ids) if ids else {}
        playlists = soundcloud_playlists_from_json(collection, resolved)
        logger.info(f"SoundCloud: {len(playlists)} playlists for user {user_id}")
        return playlists


async def fetch_soundcloud_catalog(user_id: str) -> list[RemotePlaylist]:
    """List a SoundCloud user's playlists without blocking the event loop."""
    return await asyncio.to_thread(SoundCloudClient().fetch_playlists, user_id)


# ── YouTube ────────────────────────────────────────────────────────────────

def youtube_playlist_from_json(doc: dict) -> RemotePlaylist:
    """Build a playlist from ``yt-dlp --flat-playlist -J <playlist url>`` output."""
    tracks = []
    for entry in doc.get("entries") or []:
        if not entry or not entry.get("id"):
            continue
        video_id = str(entry["id"])
        tracks.append(RemoteTrack(
            provider=Provider.VIDEO,
            id=video_id,
            title=entry.get("title") or None,
            artist=entry.get("channel") or entry.get("uploader") or "",
            url=entry.get("url") or f"https://www.youtube.com/watch?v={video_id}",
            duration_ms=int((entry.get("duration") or 0) * 1000),
        ))
    playlist_id = str(doc.get("id", ""))
    return RemotePlaylist(
        provider=Provider.VIDEO,
        id=playlist_id,
        title=doc.get("title") or "",
        url=doc.get("webpage_url") or f"https://www.youtube.com/playlist?list={playlist_id}",
        tracks=tuple(tracks),
    )


async def _ytdlp_json(ytdlp: str, url: str) -> dict:
    try:
        proc = await asyncio.create_subprocess_exec(
            ytdlp, "--flat-playlist", "-J", url,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise CatalogError(f"Could not run yt-dlp: {e}") from e

    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise

    if proc.returncode != 0:
        raise CatalogError(f"yt-dlp exited with {proc.returncode} listing {url}")
    try:
        return json.loads(stdout.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        raise CatalogError(f"Unparsable yt-dlp output for {url}: {e}") from e


async def fetch_youtube_catalog(channel_id: str, ytdlp_path: Optional[str] = None) -> list[RemotePlaylist]:
    """List a channel's playlists and their videos."""
    ytdlp = ytdlp_path or find_ytdlp()
    if not ytdlp:
        raise CatalogError("yt-dlp not found")

    listing = await _ytdlp_json(ytdlp, f"https://www.youtube.com/channel/{channel_id}/playlists")
    playlists = []
    for entry in listing.get("entries") or []:
        if not entry or not entry.get("id"):
            continue
        url = entry.get("url") or f"https://www.youtube.com/playlist?list={entry['id']}"
        try:
            playlists.append(youtube_playlist_from_json(await _ytdlp_json(ytdlp, url)))
        except CatalogError as e:
            logger.warning(f"YouTube: skipping playlist {entry['id']}: {e}")
    logger.info(f"YouTube: {len(playlists)} playlists for channel {channel_id}")
    return playlists


# ── Dispatch ───────────────────────────────────────────────────────────────

def configured_providers(settings: AppSettings) -> list[Provider]:
    """Providers with an account configured, in listing order."""
    providers = []
    if settings.soundcloud_user_id:
        providers.append(Provider.CLOUD)
    if settings.youtube_channel_id:
        providers.append(Provider.VIDEO)
    return providers


async def fetch_catalog(provider: Provider, settings: AppSettings) -> list[RemotePlaylist]:
    """
    List the configured account's playlists for one provider.

    Raises:
        CatalogError: no account configured, or the listing failed
    """
    match provider:
        case Provider.CLOUD:
            if not settings.soundcloud_user_id:
                raise CatalogError("No SoundCloud user configured")
            return await fetch_soundcloud_catalog(settings.soundcloud_user_id)
        case Provider.VIDEO:
            if not settings.youtube_channel_id:
                raise CatalogError("No YouTube channel configured")
            return await fetch_youtube_catalog(settings.youtube_channel_id, settings.ytdlp_path or None)
    raise CatalogError(f"Unknown provider: {provider}")
