# maps the id used in mhsd to the key it is stored under
dataset_type_map = {
    1: "tracks",
    2: "playlists",
    3: "podcasts",
}

# maps the database version to an iTunes version
version_map = {
    0x13: "iTunes 7.0",
    0x14: "iTunes 7.1",
    0x15: "iTunes 7.2",
    0x17: "iTunes 7.3.0",
    0x18: "iTunes 7.3.1 to 7.3.2",
    0x19: "iTunes 7.4",
    0x4F: "iTunes 9.2+",
}

# maps the mhod type to its readable name
mhod_type_map = {
    1: "Title",
    2: "Location",
    3: "Album",
    4: "Artist",
    5: "Genre",
    6: "Filetype",
    8: "Comment",
    12: "Composer",
    22: "Album Artist",
    100: "Playlist Order",
}

# string mhods have types below this; the rest are binary blobs
STRING_MHOD_LIMIT = 50

# below the limit but without the string header: podcast URLs, chapter data, video info
NON_STRING_MHOD_TYPES = {15, 16, 17, 32}
