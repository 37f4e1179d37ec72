import struct


def parse_mhsd(data, offset, header_length, chunk_length) -> dict:
    from .chunk_parser import parse_chunk

    # ArtworkDB MHSD index is u16, not u32 like iTunesDB
    datasetType = struct.unpack("<H", data[offset + 12:offset + 14])[0]

    childResult = parse_chunk(data, offset + header_length)
    return {"datasetType": datasetType, "result": childResult["result"], "nextOffset": offset + chunk_length}
