import os


def parse_itunesdb(file) -> dict:
    from .chunk_parser import parse_chunk

    if isinstance(file, (bytes, bytearray)):
        data = bytes(file)
    elif isinstance(file, (str, os.PathLike)):  # a file path
        with open(file, "rb") as f:
            data = f.read()
    elif hasattr(file, "read"):  # a file-like object
        data = file.read()
    else:
        raise TypeError("file must be bytes, a path or a file-like object")

    if data[:4] != b"mhbd":
        raise ValueError("Not an iTunesDB: missing mhbd header")

    return parse_chunk(data, 0)["result"]
