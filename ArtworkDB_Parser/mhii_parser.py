import struct


def parse_imageItem(data, offset, header_length, chunk_length) -> dict:
    from .chunk_parser import parse_chunk

    image = {}

    childCount = struct.unpack("<I", data[offset + 12: offset + 16])[0]

    image["imgId"] = struct.unpack("<I", data[offset + 16: offset + 20])[0]
    # first mhii is 0x40, second is 0x41, ...

    image["songId"] = struct.unpack("<Q", data[offset + 20: offset + 28])[0]
    # dbid of the first track that used this image

    image["srcImgSize"] = struct.unpack("<I", data[offset + 48: offset + 52])[0]
    # size in bytes of the original source image.

    image["artHash"] = struct.unpack("<Q", data[offset + 52: offset + 60])[0]
    # content hash of the source image, the dedup key

    image["thumbnails"] = []

    # Parse Children
    next_offset = offset + header_length
    for i in range(childCount):
        response = parse_chunk(data, next_offset)
        next_offset = response["nextOffset"]

        mhodData = response["result"]
        if "mhni" in mhodData:
            image["thumbnails"].append(mhodData["mhni"])

    return {"nextOffset": offset + chunk_length, "result": image}
