"""Case-insensitive substring search over the library."""

from .events import SearchEntry
from .library import LibraryDatabase


def search(query: str, db: LibraryDatabase) -> list[SearchEntry]:
    """
    Tracks matching on title/artist/album/genre, then playlists matching on
    title, each in database order. An empty query matches nothing.
    """
    needle = query.strip().casefold()
    if not needle:
        return []

    results = []
    for track in db.tracks():
        fields = (track.title, track.artist, track.album, track.genre)
        if any(needle in (f or "").casefold() for f in fields):
            results.append(SearchEntry(
                id=track.unique_id,
                title=track.title,
                artist=track.artist,
                album=track.album,
                genre=track.genre,
            ))

    for playlist in db.get_playlists():
        if needle in playlist.title.casefold():
            results.append(SearchEntry(id=playlist.playlist_id, title=playlist.title, is_playlist=True))

    return results
