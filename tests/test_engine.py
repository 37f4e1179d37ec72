"""Tests for the engine loop: states, discovery retries, dispatch and shutdown"""

import asyncio
import contextlib

import pytest

from SyncEngine.commands import (
    LoadFromFilesystem,
    RemovePlaylist,
    RemoveTrack,
    SearchDevice,
    SearchQuery,
    SwitchView,
)
from SyncEngine.engine import EngineState, SyncEngine
from SyncEngine.errors import CatalogError
from SyncEngine.events import (
    DeviceNotFound,
    OperationFailed,
    Provider,
    RemoteCatalogReady,
    SearchResults,
    SnapshotReady,
    View,
    ViewSwitch,
)
from SyncEngine.persistence import load_database
from SyncEngine.remote_catalog import RemotePlaylist

from conftest import write_audio

TIMEOUT = 2


def no_device(preferred):
    return None


async def no_catalog(provider, settings):
    return []


@contextlib.asynccontextmanager
async def running(engine):
    task = asyncio.create_task(engine.run())
    try:
        yield engine
    finally:
        engine.shutdown()
        await asyncio.wait_for(task, TIMEOUT)


async def next_event(engine):
    return await asyncio.wait_for(engine.events.get(), TIMEOUT)


async def connect(engine):
    """Submit SearchDevice and consume the ready events."""
    await engine.submit(SearchDevice())
    assert await next_event(engine) == ViewSwitch(View.MAIN)
    ready = await next_event(engine)
    assert isinstance(ready, SnapshotReady)
    return ready


class TestAwaitingDevice:
    async def test_only_discovery_and_view_handled(self, settings):
        engine = SyncEngine(settings, find_device=no_device)
        async with running(engine):
            await engine.submit(RemoveTrack(1))
            await engine.submit(SearchQuery("x"))
            await engine.submit(SwitchView(View.WAIT_DEVICE))
            assert await next_event(engine) == ViewSwitch(View.WAIT_DEVICE)
        assert engine.events.empty()
        assert engine.state == EngineState.AWAITING_DEVICE

    async def test_retries_until_limit(self, settings):
        engine = SyncEngine(settings, find_device=no_device)
        async with running(engine):
            await engine.submit(SearchDevice())
            got = [await next_event(engine) for _ in range(4)]

        assert got[:3] == [DeviceNotFound(1), DeviceNotFound(2), DeviceNotFound(3)]
        assert isinstance(got[3], OperationFailed)
        assert got[3].operation == "SearchDevice"

    async def test_device_appears_on_retry(self, settings, ipod_root):
        answers = [None, ipod_root]

        def find_device(preferred):
            assert preferred == str(ipod_root)
            return answers.pop(0)

        engine = SyncEngine(settings, find_device=find_device, catalog_fetcher=no_catalog)
        async with running(engine):
            await engine.submit(SearchDevice())
            assert await next_event(engine) == DeviceNotFound(1)
            assert await next_event(engine) == ViewSwitch(View.MAIN)
            assert isinstance(await next_event(engine), SnapshotReady)
        assert engine.state == EngineState.READY

    async def test_unreadable_database(self, settings, layout):
        layout.itunesdb_path.write_bytes(b"garbage" * 20)
        engine = SyncEngine(settings)
        async with running(engine):
            await engine.submit(SearchDevice())
            event = await next_event(engine)
        assert event.operation == "SearchDevice"
        assert engine.state == EngineState.AWAITING_DEVICE


class TestReady:
    async def test_connect_lists_catalogs(self, settings):
        settings.soundcloud_user_id = "1234"
        listed = RemotePlaylist(provider=Provider.CLOUD, id="p", title="Sets", url="u")
        requested = []

        async def fetcher(provider, settings):
            requested.append(provider)
            return [listed]

        engine = SyncEngine(settings, catalog_fetcher=fetcher)
        async with running(engine):
            ready = await connect(engine)
            assert ready.playlists == ()
            assert await next_event(engine) == RemoteCatalogReady(Provider.CLOUD, (listed,))
        assert requested == [Provider.CLOUD]

    async def test_catalog_failure_reported(self, settings):
        settings.youtube_channel_id = "UCxyz"

        async def fetcher(provider, settings):
            raise CatalogError("yt-dlp not found")

        engine = SyncEngine(settings, catalog_fetcher=fetcher)
        async with running(engine):
            await connect(engine)
            event = await next_event(engine)
        assert event == OperationFailed("fetch_catalog:youtube", "yt-dlp not found")

    async def test_commands_handled_in_order(self, settings):
        engine = SyncEngine(settings, catalog_fetcher=no_catalog)
        async with running(engine):
            await connect(engine)
            for text in ("first", "second", "third"):
                await engine.submit(SearchQuery(text))
            got = [await next_event(engine) for _ in range(3)]
        assert [e.query for e in got] == ["first", "second", "third"]
        assert all(isinstance(e, SearchResults) for e in got)

    async def test_second_search_device_is_ignored(self, settings):
        engine = SyncEngine(settings, catalog_fetcher=no_catalog)
        async with running(engine):
            await connect(engine)
            await engine.submit(SearchDevice())
            await engine.submit(SwitchView(View.SEARCH))
            assert await next_event(engine) == ViewSwitch(View.SEARCH)

    async def test_unknown_playlist_fails(self, settings):
        engine = SyncEngine(settings, catalog_fetcher=no_catalog)
        async with running(engine):
            await connect(engine)
            await engine.submit(RemovePlaylist(424242, hard=True))
            event = await next_event(engine)
        assert isinstance(event, OperationFailed)
        assert event.operation == "RemovePlaylist"

    async def test_load_from_filesystem(self, temp_dir, settings, layout, fake_probe):
        path = write_audio(temp_dir / "song.mp3", b"local song")
        engine = SyncEngine(settings, catalog_fetcher=no_catalog)
        async with running(engine):
            await connect(engine)
            await engine.submit(LoadFromFilesystem.many([path], playlist_title="Local"))
            while not isinstance(event := await next_event(engine), SnapshotReady):
                pass

        assert [p.title for p in event.playlists] == ["Local"]
        assert [t.title for t in event.tracks] == ["song"]
        assert [t.title for t in load_database(layout).tracks()] == ["song"]

    async def test_unexpected_error_keeps_loop_alive(self, settings, monkeypatch):
        from SyncEngine import engine as engine_module

        def explode(query, db):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine_module, "search", explode)
        engine = SyncEngine(settings, catalog_fetcher=no_catalog)
        async with running(engine):
            await connect(engine)
            await engine.submit(SearchQuery("x"))
            failed = await next_event(engine)
            await engine.submit(SwitchView(View.MAIN))
            assert await next_event(engine) == ViewSwitch(View.MAIN)
        assert failed == OperationFailed("SearchQuery", "RuntimeError: boom")


class TestShutdown:
    async def test_idle_engine_stops(self, settings):
        engine = SyncEngine(settings, find_device=no_device)
        async with running(engine):
            pass
        assert engine.is_shutting_down

    async def test_background_fetch_cancelled(self, settings):
        settings.soundcloud_user_id = "1"
        started = asyncio.Event()
        cancelled = []

        async def hanging(provider, settings):
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(provider)
                raise

        engine = SyncEngine(settings, catalog_fetcher=hanging)
        async with running(engine):
            await connect(engine)
            await asyncio.wait_for(started.wait(), TIMEOUT)

        assert cancelled == [Provider.CLOUD]
        assert engine.events.empty()

    async def test_pending_retry_cancelled(self, settings):
        settings.device_poll_interval = 60
        engine = SyncEngine(settings, find_device=no_device)
        async with running(engine):
            await engine.submit(SearchDevice())
            assert await next_event(engine) == DeviceNotFound(1)
        assert engine.commands.empty()


@pytest.mark.parametrize("command", [RemoveTrack(5), SearchQuery("q")])
async def test_dropped_before_device(settings, command):
    engine = SyncEngine(settings, find_device=no_device)
    await engine.handle(command)
    assert engine.events.empty()
