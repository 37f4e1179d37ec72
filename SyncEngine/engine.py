"""
The sync engine: a single asyncio task that owns the library.

The presentation layer talks to it only through two bounded queues:
``commands`` (into the engine) and ``events`` (out of it). Commands are
handled one at a time, so every mutation of the library and every write of
the iTunesDB is serialized.

States:
    AWAITING_DEVICE  only SearchDevice and SwitchView are handled
    READY            the library is loaded and every command is handled

Device discovery retries on a fixed interval by re-enqueueing
SearchDevice(attempt + 1). Remote catalogs are listed by background tasks
that only ever emit events; they never touch the library.
"""

import asyncio
import logging
import struct
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from . import playlist_manager
from .commands import (
    Command,
    DownloadPlaylist,
    DownloadTrack,
    LoadFromFilesystem,
    RemovePlaylist,
    RemoveTrack,
    RemoveTrackFromPlaylist,
    SearchDevice,
    SearchQuery,
    SwitchView,
)
from .device import IPodLayout, find_device_mount
from .errors import SyncError
from .events import (
    DeviceNotFound,
    OperationFailed,
    Provider,
    RemoteCatalogReady,
    SearchResults,
    View,
    ViewSwitch,
)
from .library import LibraryDatabase
from .persistence import load_database
from .remote_catalog import RemotePlaylist, configured_providers, fetch_catalog
from .search import search
from .settings import AppSettings

logger = logging.getLogger(__name__)

DeviceFinder = Callable[[Optional[str]], Optional[Path]]
CatalogFetcher = Callable[[Provider, AppSettings], Awaitable[list[RemotePlaylist]]]


class EngineState(Enum):
    AWAITING_DEVICE = "awaiting_device"
    READY = "ready"


class SyncEngine:
    """Single-writer actor over the on-device library."""

    def __init__(self, settings: AppSettings, *,
                 find_device: DeviceFinder = find_device_mount,
                 catalog_fetcher: CatalogFetcher = fetch_catalog):
        self.settings = settings
        self.commands: asyncio.Queue = asyncio.Queue(maxsize=settings.command_queue_size)
        self.events: asyncio.Queue = asyncio.Queue(maxsize=settings.event_queue_size)

        self.state = EngineState.AWAITING_DEVICE
        self.layout: Optional[IPodLayout] = None
        self.db: Optional[LibraryDatabase] = None

        self._find_device = find_device
        self._catalog_fetcher = catalog_fetcher
        self._stop = asyncio.Event()
        self._background: set[asyncio.Task] = set()

    # ── Public API ─────────────────────────────────────────────────────────

    async def submit(self, command: Command) -> None:
        await self.commands.put(command)

    async def emit(self, event) -> None:
        await self.events.put(event)

    def shutdown(self) -> None:
        """Ask the loop to stop after the command in flight (if any)."""
        self._stop.set()

    @property
    def is_shutting_down(self) -> bool:
        return self._stop.is_set()

    async def run(self) -> None:
        """Handle commands until shutdown() is called."""
        logger.info("Sync engine started")
        try:
            while not self._stop.is_set():
                command = await self._next_command()
                if command is None:
                    continue
                await self.handle(command)
        finally:
            await self._cancel_background()
            logger.info("Sync engine stopped")

    async def _next_command(self) -> Optional[Command]:
        """Wait for a command or for shutdown, whichever comes first."""
        get = asyncio.ensure_future(self.commands.get())
        stop = asyncio.ensure_future(self._stop.wait())
        done, pending = await asyncio.wait({get, stop}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        if get in done:
            return get.result()
        return None

    # ── Dispatch ───────────────────────────────────────────────────────────

    async def handle(self, command: Command) -> None:
        """Handle one command; failures become OperationFailed events."""
        name = type(command).__name__
        logger.debug(f"Handling {command}")

        if self.state == EngineState.AWAITING_DEVICE and not isinstance(command, (SearchDevice, SwitchView)):
            logger.warning(f"No device yet, dropping {name}")
            return

        try:
            await self._dispatch(command)
        except SyncError as e:
            logger.error(f"{name} failed: {e}")
            await self.emit(OperationFailed(name, str(e)))
        except Exception as e:
            logger.exception(f"Unexpected error handling {name}")
            await self.emit(OperationFailed(name, f"{type(e).__name__}: {e}"))

    async def _dispatch(self, command: Command) -> None:
        db, layout, settings, events = self.db, self.layout, self.settings, self.events

        match command:
            case SearchDevice(attempt=attempt):
                await self._search_device(attempt)
            case SwitchView(view=view):
                await self.emit(ViewSwitch(view))
            case DownloadPlaylist(source=source):
                await playlist_manager.download_playlist_from(source, db, layout, events, settings)
            case DownloadTrack(source=source):
                await playlist_manager.download_track_from(source, db, layout, events, settings)
            case LoadFromFilesystem(paths=paths, playlist_title=title):
                await playlist_manager.load_from_filesystem(paths, db, layout, events, settings, title)
            case RemoveTrack(track_id=track_id):
                await playlist_manager.remove_track(track_id, db, layout, events, settings)
            case RemovePlaylist(playlist_id=playlist_id, hard=hard):
                await playlist_manager.remove_playlist(playlist_id, hard, db, layout, events, settings)
            case RemoveTrackFromPlaylist(track_id=track_id, playlist_id=playlist_id):
                await playlist_manager.remove_track_from_playlist(track_id, playlist_id, db, layout, events, settings)
            case SearchQuery(text=text):
                await self.emit(SearchResults(text, tuple(search(text, db))))
            case _:
                logger.warning(f"Unknown command: {command!r}")

    # ── Device discovery ───────────────────────────────────────────────────

    async def _search_device(self, attempt: int) -> None:
        if self.state == EngineState.READY:
            logger.debug(f"Device already connected at {self.layout.root}")
            return

        mount = await asyncio.to_thread(self._find_device, self.settings.device_path or None)
        if mount is None:
            await self._device_not_found(attempt)
            return

        layout = IPodLayout(mount)
        try:
            db = await asyncio.to_thread(load_database, layout)
        except (OSError, ValueError, struct.error) as e:
            logger.error(f"Could not read iTunesDB on {mount}: {e}")
            await self.emit(OperationFailed("SearchDevice", f"Unreadable iTunesDB: {e}"))
            return

        self.layout, self.db = layout, db
        self.state = EngineState.READY
        logger.info(f"iPod ready at {mount}: {len(db.tracks())} tracks")

        await self.emit(ViewSwitch(View.MAIN))
        await self.emit(playlist_manager.snapshot(db))
        for provider in configured_providers(self.settings):
            self._spawn(self._fetch_catalog(provider))

    async def _device_not_found(self, attempt: int) -> None:
        logger.info(f"No iPod found (attempt {attempt})")
        await self.emit(DeviceNotFound(attempt))

        max_attempts = self.settings.device_max_attempts
        if max_attempts and attempt >= max_attempts:
            await self.emit(OperationFailed("SearchDevice", f"No iPod found after {attempt} attempts"))
            return
        self._spawn(self._retry_search(attempt + 1))

    async def _retry_search(self, attempt: int) -> None:
        await asyncio.sleep(self.settings.device_poll_interval)
        if not self._stop.is_set():
            await self.commands.put(SearchDevice(attempt))

    # ── Background tasks ───────────────────────────────────────────────────

    async def _fetch_catalog(self, provider: Provider) -> None:
        try:
            playlists = await self._catalog_fetcher(provider, self.settings)
        except SyncError as e:
            logger.error(f"Listing {provider.value} failed: {e}")
            await self.emit(OperationFailed(f"fetch_catalog:{provider.value}", str(e)))
            return
        except Exception as e:
            logger.exception(f"Unexpected error listing {provider.value}")
            await self.emit(OperationFailed(f"fetch_catalog:{provider.value}", f"{type(e).__name__}: {e}"))
            return
        await self.emit(RemoteCatalogReady(provider, tuple(playlists)))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _cancel_background(self) -> None:
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
