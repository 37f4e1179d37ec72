import struct


def parse_dataset(data, offset, header_length, chunk_length) -> dict:
    from .chunk_parser import parse_chunk
    from .constants import dataset_type_map

    datasetType = struct.unpack("<I", data[offset + 12:offset + 16])[0]
    # the type 3 dataset must come between types 1 and 2 for podcasts to list

    if datasetType not in dataset_type_map:
        # albums (4), artists (8) and newer lists: skipped whole
        return {"datasetType": datasetType, "result": None, "nextOffset": offset + chunk_length}

    childResult = parse_chunk(data, offset + header_length)
    return {"datasetType": datasetType, "result": childResult["result"], "nextOffset": offset + chunk_length}
