import struct


def parse_playlist(data, offset, header_length, chunk_length) -> dict:
    from .chunk_parser import parse_chunk

    mhodCount = struct.unpack("<I", data[offset + 12:offset + 16])[0]
    mhipCount = struct.unpack("<I", data[offset + 16:offset + 20])[0]

    playlist = {}
    playlist["master"] = struct.unpack("<I", data[offset + 20:offset + 24])[0] == 1
    # the hidden flag marks the master playlist
    playlist["timestamp"] = struct.unpack("<I", data[offset + 24:offset + 28])[0]
    playlist["playlistID"] = struct.unpack("<Q", data[offset + 28:offset + 36])[0]
    playlist["Title"] = ""
    playlist["trackIDs"] = []

    # mhods come first, then one mhip per slot
    next_offset = offset + header_length
    for i in range(mhodCount + mhipCount):
        response = parse_chunk(data, next_offset)
        next_offset = response["nextOffset"]
        child = response["result"]
        if "trackID" in child:
            playlist["trackIDs"].append(child["trackID"])
        elif child.get("mhodType") == 1:
            playlist["Title"] = child["string"]

    return {"nextOffset": offset + chunk_length, "result": playlist}


def parse_playlistItem(data, offset, header_length, chunk_length) -> dict:
    track_id = struct.unpack("<I", data[offset + 24:offset + 28])[0]
    return {"nextOffset": offset + chunk_length, "result": {"trackID": track_id}}
