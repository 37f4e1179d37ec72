import struct


def parse_chunk(data, offset) -> dict:
    if offset + 12 > len(data):
        raise ValueError(f"Truncated iTunesDB: no chunk header at {offset:#x}")

    chunk_type = data[offset:offset + 4].decode("ascii")
    header_length = struct.unpack("<I", data[offset + 4:offset + 8])[0]
    chunk_length = struct.unpack("<I", data[offset + 8:offset + 12])[0]

    match chunk_type:
        case "mhbd":
            # database
            from .mhbd_parser import parse_db
            return parse_db(data, offset, header_length, chunk_length)
        case "mhsd":
            # dataset
            from .mhsd_parser import parse_dataset
            return parse_dataset(data, offset, header_length, chunk_length)
        case "mhlt" | "mhlp":
            # track list / playlist list, third field is the child count
            from .mhlt_parser import parse_list
            return parse_list(data, offset, header_length, chunk_length)
        case "mhit":
            # track item
            from .mhit_parser import parse_trackItem
            return parse_trackItem(data, offset, header_length, chunk_length)
        case "mhyp":
            # playlist
            from .mhyp_parser import parse_playlist
            return parse_playlist(data, offset, header_length, chunk_length)
        case "mhip":
            # playlist item
            from .mhyp_parser import parse_playlistItem
            return parse_playlistItem(data, offset, header_length, chunk_length)
        case "mhod":
            # data object
            from .mhod_parser import parse_mhod
            return parse_mhod(data, offset, header_length, chunk_length)
        case _:
            raise ValueError(f"Unknown chunk type: {chunk_type}")
