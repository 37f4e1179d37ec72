import struct


def parse_db(data, offset, header_length, chunk_length) -> dict:
    from .chunk_parser import parse_chunk
    from .constants import dataset_type_map

    database = {}

    version_number = struct.unpack("<I", data[offset + 16:offset + 20])[0]
    database["VersionHex"] = hex(version_number)
    database["ChildrenCount"] = struct.unpack("<I", data[offset + 20:offset + 24])[0]
    database["DatabaseID"] = struct.unpack("<Q", data[offset + 24:offset + 32])[0]
    database["Lang"] = data[offset + 70:offset + 72].decode("utf-8", errors="ignore")

    database["tracks"] = []
    database["playlists"] = []

    # parse children
    next_offset = offset + header_length
    for i in range(database["ChildrenCount"]):
        childResult = parse_chunk(data, next_offset)
        next_offset = childResult["nextOffset"]
        resultType = childResult["datasetType"]
        if resultType in dataset_type_map:
            database[dataset_type_map[resultType]] = childResult["result"]

    return {"nextOffset": offset + chunk_length, "result": database}
