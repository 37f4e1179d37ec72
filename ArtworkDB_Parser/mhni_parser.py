import struct


def parse_mhni(data, offset, header_length, chunk_length) -> dict:
    from .chunk_parser import parse_chunk

    imageName = {}

    childCount = struct.unpack("<I", data[offset + 12: offset + 16])[0]
    # a type 3 mhod

    imageName["correlationID"] = struct.unpack("<I", data[offset + 16: offset + 20])[0]
    # thumbnail edge length

    imageName["ithmbOffset"] = struct.unpack("<I", data[offset + 20: offset + 24])[0]
    # where the image data starts in the .ithmb file

    imageName["imgSize"] = struct.unpack("<I", data[offset + 24: offset + 28])[0]
    # in bytes

    imageName["imageHeight"] = struct.unpack("<H", data[offset + 32: offset + 34])[0]
    imageName["imageWidth"] = struct.unpack("<H", data[offset + 34: offset + 36])[0]

    imageName["filename"] = ""

    # parse children
    next_offset = offset + header_length
    for i in range(childCount):
        response = parse_chunk(data, next_offset)
        next_offset = response["nextOffset"]
        if "File Name" in response["result"]:
            imageName["filename"] = response["result"]["File Name"]

    return {"nextOffset": offset + chunk_length, "result": imageName}
