import struct


def parse_mhfd(data, offset, header_length, chunk_length) -> dict:
    from .chunk_parser import parse_chunk
    from .constants import chunk_type_map

    datafile = {}

    datafile["childCount"] = struct.unpack("<I", data[offset + 20:offset + 24])[0]

    # ID of last mhii + 1
    datafile["nextMhiiID"] = struct.unpack("<I", data[offset + 28:offset + 32])[0]

    datafile["images"] = []

    # parse children
    next_offset = offset + header_length
    for i in range(datafile["childCount"]):
        childResult = parse_chunk(data, next_offset)
        next_offset = childResult["nextOffset"]
        resultType = childResult["datasetType"]
        if resultType in chunk_type_map:
            datafile[chunk_type_map[resultType]] = childResult["result"]

    return {"nextOffset": offset + chunk_length, "result": datafile}
