import struct


def parse_trackItem(data, offset, header_length, chunk_length) -> dict:
    from .chunk_parser import parse_chunk
    from .constants import mhod_type_map

    def u32(rel):
        return struct.unpack("<I", data[offset + rel:offset + rel + 4])[0]

    def u16(rel):
        return struct.unpack("<H", data[offset + rel:offset + rel + 2])[0]

    childCount = u32(0x0C)

    track = {}
    track["trackID"] = u32(0x10)
    # used for playlists
    track["filetypeCode"] = u32(0x18)
    track["dateModified"] = u32(0x20)
    track["size"] = u32(0x24)
    track["length"] = u32(0x28)
    track["trackNumber"] = u32(0x2C)
    track["totalTracks"] = u32(0x30)
    track["year"] = u32(0x34)
    track["bitrate"] = u32(0x38)
    track["discNumber"] = u32(0x5C)
    track["totalDiscs"] = u32(0x60)
    track["dateAdded"] = u32(0x68)
    track["dbid"] = struct.unpack("<Q", data[offset + 0x70:offset + 0x78])[0]
    # the content identifier
    track["artworkCount"] = u16(0x7C)
    track["artworkSize"] = u32(0x80)
    # the 16.16 field at 0x3C clips above 65535 Hz, the float does not
    track["sampleRate"] = int(round(struct.unpack("<f", data[offset + 0x88:offset + 0x8C])[0]))
    track["hasArtwork"] = data[offset + 0xA4] == 1
    track["lyricsFlag"] = data[offset + 0xB0]
    track["mediaType"] = u32(0xD0)
    track["gaplessAlbumFlag"] = u16(0x102)
    track["mhiiLink"] = u32(0x160)
    # the link to the album art

    # Parse Children
    next_offset = offset + header_length
    for i in range(childCount):
        response = parse_chunk(data, next_offset)
        next_offset = response["nextOffset"]

        trackData = response["result"]
        name = mhod_type_map.get(trackData["mhodType"])
        if name and trackData["string"] is not None:
            track[name] = trackData["string"]

    return {"nextOffset": offset + chunk_length, "result": track}
