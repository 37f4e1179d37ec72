import os


def parse_artworkdb(file) -> dict:
    from .chunk_parser import parse_chunk

    if isinstance(file, (bytes, bytearray)):
        data = bytes(file)
    elif isinstance(file, (str, os.PathLike)):
        with open(file, "rb") as f:
            data = f.read()
    else:
        raise TypeError("file must be bytes or a path")

    if data[:4] != b"mhfd":
        raise ValueError("Not an ArtworkDB: missing mhfd header")

    return parse_chunk(data, 0)["result"]
