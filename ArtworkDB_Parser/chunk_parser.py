import struct

CHUNK_PREAMBLE = 12


def parse_chunk(data, offset) -> dict:
    if offset + CHUNK_PREAMBLE > len(data):
        raise ValueError(f"Truncated ArtworkDB: no chunk header at {offset:#x}")

    chunk_type = data[offset:offset + 4].decode("ascii")
    header_length, chunk_length = struct.unpack("<II", data[offset + 4:offset + CHUNK_PREAMBLE])
    if offset + header_length > len(data):
        raise ValueError(f"Truncated ArtworkDB: {chunk_type} at {offset:#x} overruns the file")

    match chunk_type:
        case "mhfd":
            # file root
            from .mhfd_parser import parse_mhfd
            return parse_mhfd(data, offset, header_length, chunk_length)
        case "mhsd":
            from .mhsd_parser import parse_mhsd
            return parse_mhsd(data, offset, header_length, chunk_length)
        case "mhli":
            # image list
            from .mhli_parser import parse_mhli
            return parse_mhli(data, offset, header_length, chunk_length)
        case "mhii":
            # one image, one child per thumbnail size
            from .mhii_parser import parse_imageItem
            return parse_imageItem(data, offset, header_length, chunk_length)
        case "mhni":
            # thumbnail location inside an .ithmb
            from .mhni_parser import parse_mhni
            return parse_mhni(data, offset, header_length, chunk_length)
        case "mhod":
            from .mhod_parser import parse_mhod
            return parse_mhod(data, offset, header_length, chunk_length)
        case _:
            raise ValueError(f"Unknown chunk type: {chunk_type}")
