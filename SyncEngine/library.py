"""
In-memory iPod library.

LibraryDatabase is the typed store the engine mutates: tracks keyed by
unique id, playlists in database order, and the allocator for fresh unique
ids. It is loaded from and serialized to iTunesDB bytes through the
iTunesDB_Parser / iTunesDB_Writer packages.

Only the engine task touches an instance; nothing here is thread-safe.
"""

import logging
from typing import Optional

from iTunesDB_Parser import parse_itunesdb
from iTunesDB_Writer import (
    FILETYPE_BY_CODE,
    PlaylistInfo,
    TrackInfo,
    generate_database_id,
    mac_to_unix_timestamp,
    write_mhbd,
)

from .events import PlaylistSnapshot, TrackSnapshot

logger = logging.getLogger(__name__)

MASTER_PLAYLIST_TITLE = "iPod"
MAX_UNIQUE_ID = 0xFFFFFFFF


def _track_from_parsed(t: dict) -> TrackInfo:
    """Convert a parsed MHIT dict back into a TrackInfo."""
    location = t.get("Location", "")
    filetype = FILETYPE_BY_CODE.get(t.get("filetypeCode", 0))
    if filetype is None:
        filetype = location.rsplit(".", 1)[-1].lower() if "." in location else "mp3"

    return TrackInfo(
        title=t.get("Title", ""),
        location=location,
        unique_id=t.get("trackID", 0),
        dbid=t.get("dbid", 0),
        size=t.get("size", 0),
        length=t.get("length", 0),
        bitrate=t.get("bitrate", 0),
        sample_rate=t.get("sampleRate", 0),
        filetype=filetype,
        filetype_desc=t.get("Filetype", ""),
        artist=t.get("Artist", ""),
        album=t.get("Album", ""),
        genre=t.get("Genre", ""),
        year=t.get("year", 0),
        track_number=t.get("trackNumber", 0),
        total_tracks=t.get("totalTracks", 0),
        disc_number=t.get("discNumber", 0),
        total_discs=t.get("totalDiscs", 0),
        date_added=mac_to_unix_timestamp(t.get("dateAdded", 0)),
        media_type=t.get("mediaType", 1),
        lyrics=bool(t.get("lyricsFlag", 0)),
        gapless_album=bool(t.get("gaplessAlbumFlag", 0)),
        has_artwork=bool(t.get("hasArtwork", False)),
        artwork_count=t.get("artworkCount", 0),
        artwork_size=t.get("artworkSize", 0),
        mhii_link=t.get("mhiiLink", 0),
    )


def _playlist_from_parsed(p: dict) -> PlaylistInfo:
    return PlaylistInfo(
        title=p.get("Title", ""),
        playlist_id=p.get("playlistID", 0),
        timestamp=mac_to_unix_timestamp(p.get("timestamp", 0)),
        track_ids=list(p.get("trackIDs", [])),
        is_master=bool(p.get("master", False)),
    )


class LibraryDatabase:
    """Tracks, playlists and the unique-id allocator."""

    def __init__(self, db_id: Optional[int] = None):
        self.db_id = db_id if db_id is not None else generate_database_id()
        self._tracks: dict[int, TrackInfo] = {}
        self._by_dbid: dict[int, int] = {}
        self._playlists: list[PlaylistInfo] = []
        self._next_unique_id = 1

    # ── Construction / serialization ───────────────────────────────────────

    @classmethod
    def new(cls) -> "LibraryDatabase":
        """An empty library with its master playlist."""
        db = cls()
        db._playlists.append(PlaylistInfo(title=MASTER_PLAYLIST_TITLE, is_master=True))
        return db

    @classmethod
    def from_bytes(cls, data: bytes) -> "LibraryDatabase":
        parsed = parse_itunesdb(data)
        db = cls(db_id=parsed.get("DatabaseID"))

        for t in parsed.get("tracks", []):
            track = _track_from_parsed(t)
            db._index_track(track)

        for p in parsed.get("playlists", []):
            db._playlists.append(_playlist_from_parsed(p))

        if db.master_playlist is None:
            db._playlists.insert(0, PlaylistInfo(
                title=MASTER_PLAYLIST_TITLE,
                track_ids=list(db._tracks),
                is_master=True,
            ))

        logger.info(f"Loaded library: {len(db._tracks)} tracks, {len(db.get_playlists())} playlists")
        return db

    def to_bytes(self) -> bytes:
        return write_mhbd(list(self._tracks.values()), list(self._playlists), db_id=self.db_id)

    # ── Tracks ─────────────────────────────────────────────────────────────

    def _index_track(self, track: TrackInfo) -> None:
        self._tracks[track.unique_id] = track
        if track.dbid:
            self._by_dbid.setdefault(track.dbid, track.unique_id)
        self._next_unique_id = max(self._next_unique_id, track.unique_id + 1)

    def get_track(self, unique_id: int) -> Optional[TrackInfo]:
        return self._tracks.get(unique_id)

    def tracks(self) -> list[TrackInfo]:
        """All tracks in database order."""
        return list(self._tracks.values())

    def add_track(self, track: TrackInfo) -> None:
        """Insert a track and append it to the master playlist."""
        if track.unique_id in self._tracks:
            raise ValueError(f"Track id {track.unique_id} already in library")
        self._index_track(track)
        master = self.master_playlist
        if master is not None:
            master.track_ids.append(track.unique_id)

    def remove_track_completely(self, unique_id: int) -> Optional[TrackInfo]:
        """Remove a track from the library and from every playlist."""
        track = self._tracks.pop(unique_id, None)
        if track is None:
            return None
        if self._by_dbid.get(track.dbid) == unique_id:
            del self._by_dbid[track.dbid]
        for playlist in self._playlists:
            playlist.track_ids = [i for i in playlist.track_ids if i != unique_id]
        return track

    def get_unique_id(self) -> int:
        """Allocate a fresh unique id. Ids are never reused in a session."""
        unique_id = self._next_unique_id
        if unique_id > MAX_UNIQUE_ID:
            raise OverflowError("Unique id space exhausted")
        self._next_unique_id += 1
        return unique_id

    def get_unique_id_by_dbid(self, dbid: int) -> Optional[int]:
        return self._by_dbid.get(dbid)

    def if_track_in_library(self, dbid: int) -> bool:
        return dbid in self._by_dbid

    # ── Playlists ──────────────────────────────────────────────────────────

    @property
    def master_playlist(self) -> Optional[PlaylistInfo]:
        for playlist in self._playlists:
            if playlist.is_master:
                return playlist
        return None

    def get_playlists(self) -> list[PlaylistInfo]:
        """User playlists in database order (the master playlist is excluded)."""
        return [p for p in self._playlists if not p.is_master]

    def get_playlist(self, playlist_id: int) -> Optional[PlaylistInfo]:
        for playlist in self._playlists:
            if playlist.playlist_id == playlist_id and not playlist.is_master:
                return playlist
        return None

    def add_playlist(self, playlist: PlaylistInfo) -> None:
        self._playlists.append(playlist)

    def remove_playlist(self, playlist_id: int) -> Optional[PlaylistInfo]:
        playlist = self.get_playlist(playlist_id)
        if playlist is not None:
            self._playlists.remove(playlist)
        return playlist

    def remove_track_from_playlist(self, unique_id: int, playlist_id: int) -> int:
        """Drop the first entry of a track from one playlist. Returns entries removed."""
        playlist = self.get_playlist(playlist_id)
        if playlist is None or unique_id not in playlist.track_ids:
            return 0
        playlist.track_ids.remove(unique_id)
        return 1

    # ── Snapshots ──────────────────────────────────────────────────────────

    @staticmethod
    def _track_snapshot(track: TrackInfo) -> TrackSnapshot:
        return TrackSnapshot(
            unique_id=track.unique_id,
            title=track.title,
            artist=track.artist,
            album=track.album,
            genre=track.genre,
            length=track.length,
            location=track.location,
            has_artwork=track.has_artwork,
        )

    def playlist_snapshots(self) -> tuple[PlaylistSnapshot, ...]:
        """User playlists with member tracks resolved; dangling ids are skipped."""
        return tuple(
            PlaylistSnapshot(
                playlist_id=p.playlist_id,
                title=p.title,
                timestamp=p.timestamp,
                tracks=tuple(
                    self._track_snapshot(self._tracks[i])
                    for i in p.track_ids
                    if i in self._tracks
                ),
            )
            for p in self.get_playlists()
        )

    def track_snapshots(self) -> tuple[TrackSnapshot, ...]:
        return tuple(self._track_snapshot(t) for t in self._tracks.values())
