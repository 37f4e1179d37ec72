"""Tests for SoundCloud and YouTube catalog listing"""

import json

import pytest
import requests

from SyncEngine.errors import CatalogError
from SyncEngine.events import Provider
from SyncEngine.remote_catalog import (
    SOUNDCLOUD_API,
    SOUNDCLOUD_WEB,
    SoundCloudClient,
    configured_providers,
    fetch_catalog,
    fetch_youtube_catalog,
    soundcloud_playlists_from_json,
    soundcloud_track_from_json,
    youtube_playlist_from_json,
)
from SyncEngine.settings import AppSettings

from conftest import write_script

CLIENT_ID = "a" * 32
BUNDLE = "https://a-v2.sndcdn.com/assets/50-abc.js"


class FakeResponse:
    def __init__(self, body, status=200):
        self.body = body
        self.status_code = status

    @property
    def text(self):
        return self.body if isinstance(self.body, str) else json.dumps(self.body)

    def json(self):
        if isinstance(self.body, str):
            return json.loads(self.body)
        return self.body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Routes GETs by URL; records (url, params) for every call."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if url not in self.routes:
            raise requests.ConnectionError(f"no route to {url}")
        route = self.routes[url]
        return route(params) if callable(route) else route


def soundcloud_routes(collection, tracks_by_id):
    def tracks(params):
        wanted = params["ids"].split(",")
        return FakeResponse([tracks_by_id[i] for i in wanted if i in tracks_by_id])

    return {
        SOUNDCLOUD_WEB: FakeResponse(f'<html><script crossorigin src="{BUNDLE}"></script></html>'),
        BUNDLE: FakeResponse(f'({{client_id:"{CLIENT_ID}",env:"production"}})'),
        f"{SOUNDCLOUD_WEB}/versions.json": FakeResponse({"app": "1700000000"}),
        f"{SOUNDCLOUD_API}/users/99/playlists": FakeResponse({"collection": collection}),
        f"{SOUNDCLOUD_API}/tracks": tracks,
    }


class TestSoundCloudParsing:
    def test_full_track(self):
        track = soundcloud_track_from_json({
            "id": 123, "title": "Tune", "genre": "Deep House", "duration": 301000,
            "permalink_url": "https://soundcloud.com/dj/tune",
            "artwork_url": "https://i1.sndcdn.com/artworks-123-large.jpg",
            "user": {"username": "dj"},
        })
        assert track.id == "123"
        assert (track.title, track.artist, track.genre) == ("Tune", "dj", "Deep House")
        assert track.duration_ms == 301000

    def test_stub_track_unresolved(self):
        track = soundcloud_track_from_json({"id": 5, "kind": "track"})
        assert track.title is None
        assert track.artist == ""

    def test_playlists_use_resolved_tracks(self):
        collection = [{
            "id": 1, "title": "Set", "permalink_url": "https://soundcloud.com/dj/sets/set",
            "tracks": [{"id": 10, "title": "Full"}, {"id": 11}, {"id": 12}],
        }]
        resolved = {"11": {"id": 11, "title": "Resolved", "user": {"username": "x"}}}

        [playlist] = soundcloud_playlists_from_json(collection, resolved)
        assert playlist.provider == Provider.CLOUD
        assert [t.title for t in playlist.tracks] == ["Full", "Resolved", None]


class TestSoundCloudClient:
    def test_fetch_playlists(self):
        collection = [{"id": 7, "title": "Mix", "permalink_url": "u",
                       "tracks": [{"id": 1, "title": "Known"}, {"id": 2}]}]
        session = FakeSession(soundcloud_routes(collection, {"2": {"id": 2, "title": "Stub resolved"}}))

        [playlist] = SoundCloudClient(session).fetch_playlists("99")

        assert [t.title for t in playlist.tracks] == ["Known", "Stub resolved"]
        track_calls = [params for url, params in session.calls if url.endswith("/tracks")]
        assert track_calls == [{"ids": "2", "client_id": CLIENT_ID, "app_version": "1700000000"}]

    def test_client_id_cached(self):
        session = FakeSession(soundcloud_routes([], {}))
        client = SoundCloudClient(session)
        assert client.client_id() == CLIENT_ID
        assert client.client_id() == CLIENT_ID
        assert [url for url, _ in session.calls].count(SOUNDCLOUD_WEB) == 1

    def test_tracks_batched(self):
        tracks_by_id = {str(i): {"id": i, "title": f"T{i}"} for i in range(120)}
        session = FakeSession(soundcloud_routes([], tracks_by_id))

        resolved = SoundCloudClient(session).tracks(list(tracks_by_id))

        assert len(resolved) == 120
        assert sum(url.endswith("/tracks") for url, _ in session.calls) == 3

    def test_missing_client_id(self):
        routes = soundcloud_routes([], {})
        routes[BUNDLE] = FakeResponse("nothing to see")
        with pytest.raises(CatalogError):
            SoundCloudClient(FakeSession(routes)).client_id()

    def test_http_error(self):
        routes = soundcloud_routes([], {})
        routes[f"{SOUNDCLOUD_API}/users/99/playlists"] = FakeResponse("forbidden", status=403)
        with pytest.raises(CatalogError):
            SoundCloudClient(FakeSession(routes)).fetch_playlists("99")

    def test_network_error(self):
        with pytest.raises(CatalogError):
            SoundCloudClient(FakeSession({})).fetch_playlists("99")


class TestYouTube:
    def test_playlist_from_json(self):
        playlist = youtube_playlist_from_json({
            "id": "PL1", "title": "Favourites",
            "entries": [
                {"id": "abc", "title": "Video", "channel": "Chan", "duration": 61.5},
                None,
                {"id": "def", "title": None},
            ],
        })
        assert playlist.url == "https://www.youtube.com/playlist?list=PL1"
        assert [t.id for t in playlist.tracks] == ["abc", "def"]
        assert playlist.tracks[0].duration_ms == 61500
        assert playlist.tracks[0].url == "https://www.youtube.com/watch?v=abc"
        assert playlist.tracks[1].title is None

    async def test_fetch_channel(self, temp_dir):
        listing = temp_dir / "listing.json"
        listing.write_text(json.dumps({"entries": [
            {"id": "PL1", "url": "https://www.youtube.com/playlist?list=PL1"},
            {"id": "PL2", "url": "https://www.youtube.com/playlist?list=PL2"},
        ]}))
        first = temp_dir / "pl1.json"
        first.write_text(json.dumps({"id": "PL1", "title": "One", "entries": [{"id": "v1", "title": "V"}]}))

        ytdlp = write_script(temp_dir / "yt-dlp", f"""
case "$3" in
  */playlists) cat "{listing}" ;;
  *PL1) cat "{first}" ;;
  *) exit 1 ;;
esac
""")

        playlists = await fetch_youtube_catalog("UC123", str(ytdlp))

        # PL2 fails to list and is skipped
        assert [p.title for p in playlists] == ["One"]
        assert playlists[0].tracks[0].id == "v1"

    async def test_channel_listing_fails(self, temp_dir):
        ytdlp = write_script(temp_dir / "yt-dlp", "exit 2\n")
        with pytest.raises(CatalogError):
            await fetch_youtube_catalog("UC123", str(ytdlp))


class TestDispatch:
    def test_configured_providers(self):
        assert configured_providers(AppSettings()) == []
        assert configured_providers(AppSettings(youtube_channel_id="UC1")) == [Provider.VIDEO]
        assert configured_providers(AppSettings(soundcloud_user_id="1", youtube_channel_id="UC1")) == [
            Provider.CLOUD, Provider.VIDEO,
        ]

    async def test_unconfigured_provider(self):
        with pytest.raises(CatalogError):
            await fetch_catalog(Provider.CLOUD, AppSettings())
