"""
Headless command line front end for the sync engine.

Examples:
    python main.py --import ~/Music/Album --playlist "Road Trip"
    python main.py --search beatles
    python main.py --remove-playlist 1234567890 --hard
    python main.py --download-playlist "Liked Mixes"
    python main.py --watch
"""

import argparse
import asyncio
import logging
import os
import sys

from SyncEngine import (
    AppSettings,
    Command,
    DeviceNotFound,
    DownloadPlaylist,
    IPodLayout,
    ItemProgress,
    LoadFromFilesystem,
    OperationFailed,
    OverallProgress,
    RemoteCatalogReady,
    RemovePlaylist,
    RemoveTrack,
    RemoveTrackFromPlaylist,
    SearchDevice,
    SearchQuery,
    SearchResults,
    SnapshotReady,
    SyncEngine,
    SyncError,
    ViewSwitch,
    restore_latest_backup,
)
from SyncEngine.audio_probe import is_ffprobe_available
from SyncEngine.device import require_device_mount
from SyncEngine.downloader import is_ytdlp_available
from SyncEngine.remote_catalog import configured_providers
from SyncEngine.settings import CONFIG_DIR_ENV

logger = logging.getLogger("ipodsync")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync an iPod with SoundCloud, YouTube and local files.")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--config-dir", help="settings directory (overrides the platform default)")
    parser.add_argument("--device", help="iPod mount point (skips scanning)")

    actions = parser.add_argument_group("actions")
    actions.add_argument("--import", dest="import_paths", nargs="+", metavar="PATH",
                         help="import files or directories")
    actions.add_argument("--playlist", metavar="TITLE", help="gather --import files into a new playlist")
    actions.add_argument("--download-playlist", metavar="TITLE",
                         help="download a playlist of the configured SoundCloud/YouTube account")
    actions.add_argument("--search", metavar="TEXT")
    actions.add_argument("--remove-track", type=int, metavar="ID")
    actions.add_argument("--remove-playlist", type=int, metavar="ID")
    actions.add_argument("--hard", action="store_true", help="with --remove-playlist: delete member tracks too")
    actions.add_argument("--remove-from-playlist", type=int, nargs=2, metavar=("TRACK_ID", "PLAYLIST_ID"))
    actions.add_argument("--restore-backup", action="store_true", help="restore the newest iTunesDB backup")
    actions.add_argument("--watch", action="store_true", help="keep running and log every event")
    return parser


def commands_from_args(args) -> list[Command]:
    commands: list[Command] = []
    if args.import_paths:
        commands.append(LoadFromFilesystem.many(args.import_paths, args.playlist))
    if args.remove_track is not None:
        commands.append(RemoveTrack(args.remove_track))
    if args.remove_playlist is not None:
        commands.append(RemovePlaylist(args.remove_playlist, hard=args.hard))
    if args.remove_from_playlist:
        commands.append(RemoveTrackFromPlaylist(*args.remove_from_playlist))
    if args.search:
        commands.append(SearchQuery(args.search))
    return commands


def log_event(event) -> None:
    match event:
        case OverallProgress(current=current, total=total, phase=phase):
            logger.info(f"[{phase.name.lower()}] {current}/{total}")
        case ItemProgress(percent=percent, total_size=size, eta=eta, speed=speed):
            logger.debug(f"  {percent:5.1f}% of {size} at {speed}, eta {eta}")
        case SnapshotReady(playlists=playlists, tracks=tracks):
            logger.info(f"Library: {len(tracks)} tracks, {len(playlists)} playlists")
            for p in playlists:
                logger.info(f"  [{p.playlist_id}] {p.title} ({len(p.tracks)} tracks)")
        case SearchResults(query=query, entries=entries):
            logger.info(f"{len(entries)} results for '{query}'")
            for e in entries:
                kind = "playlist" if e.is_playlist else "track"
                logger.info(f"  {kind} [{e.id}] {e.title} {e.artist}".rstrip())
        case RemoteCatalogReady(provider=provider, playlists=playlists):
            logger.info(f"{provider.value}: {len(playlists)} playlists")
            for p in playlists:
                logger.info(f"  {p.title} ({len(p.tracks)} tracks)")
        case DeviceNotFound(attempt=attempt):
            logger.info(f"Waiting for iPod (attempt {attempt})")
        case OperationFailed(operation=operation, reason=reason):
            logger.error(f"{operation} failed: {reason}")
        case ViewSwitch():
            pass
        case _:
            logger.debug(f"{event}")


def _is_done(command: Command, event) -> bool:
    """True when ``event`` is the last one ``command`` produces."""
    if isinstance(event, OperationFailed):
        return event.operation == type(command).__name__
    if isinstance(command, SearchQuery):
        return isinstance(event, SearchResults)
    return isinstance(event, SnapshotReady)


async def _wait_for(engine: SyncEngine, command: Command, catalogs: dict) -> bool:
    """Log events until ``command`` finishes. Returns False if it failed."""
    while True:
        event = await engine.events.get()
        log_event(event)
        if isinstance(event, RemoteCatalogReady):
            catalogs[event.provider] = event.playlists
        if _is_done(command, event):
            return not isinstance(event, OperationFailed)


async def _find_remote_playlist(engine: SyncEngine, catalogs: dict, title: str, providers: int):
    """Wait for the remote catalogs and return the playlist titled ``title``."""
    seen = len(catalogs)
    while True:
        for playlists in catalogs.values():
            for playlist in playlists:
                if playlist.title == title:
                    return playlist
        if seen >= providers:
            return None
        event = await engine.events.get()
        log_event(event)
        if isinstance(event, RemoteCatalogReady):
            catalogs[event.provider] = event.playlists
            seen += 1
        elif isinstance(event, OperationFailed) and event.operation.startswith("fetch_catalog"):
            seen += 1


def check_tools(settings: AppSettings) -> None:
    """Warn about missing external tools up front rather than on the first import."""
    if not (settings.ffprobe_path or is_ffprobe_available()):
        logger.warning("ffprobe not found: imports will fail until FFmpeg is installed")
    if configured_providers(settings) and not (settings.ytdlp_path or is_ytdlp_available()):
        logger.warning("yt-dlp not found: remote playlists cannot be listed or downloaded")


async def run(args, settings: AppSettings) -> int:
    engine = SyncEngine(settings)
    catalogs: dict = {}
    loop_task = asyncio.create_task(engine.run())
    status = 0

    try:
        await engine.submit(SearchDevice())
        if not await _wait_for(engine, SearchDevice(), catalogs):
            return 1

        commands = commands_from_args(args)
        if args.download_playlist:
            providers = len(configured_providers(settings))
            playlist = await _find_remote_playlist(engine, catalogs, args.download_playlist, providers)
            if playlist is None:
                logger.error(f"No remote playlist titled '{args.download_playlist}'")
                status = 1
            else:
                commands.insert(0, DownloadPlaylist(playlist))

        for command in commands:
            await engine.submit(command)
            if not await _wait_for(engine, command, catalogs):
                status = 1

        if args.watch:
            while True:
                log_event(await engine.events.get())
    finally:
        engine.shutdown()
        await loop_task
    return status


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.config_dir:
        os.environ[CONFIG_DIR_ENV] = args.config_dir

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    settings = AppSettings.load()
    if args.device:
        settings.device_path = args.device
    if not args.verbose:
        logging.getLogger().setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    if args.restore_backup:
        try:
            root = require_device_mount(settings.device_path or None)
        except SyncError as e:
            logger.error(str(e))
            return 1
        return 0 if restore_latest_backup(IPodLayout(root)) else 1

    check_tools(settings)
    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
