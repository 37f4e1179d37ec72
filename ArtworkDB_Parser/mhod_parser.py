import struct


def parse_mhod(data, offset, header_length, chunk_length) -> dict:
    from .constants import mhod_type_map
    from .chunk_parser import parse_chunk

    dataObject = {}

    dataObject["mhodType"] = struct.unpack("<H", data[offset + 12: offset + 14])[0]

    # MHOD type 2 contain a MHNI that contains a MHOD type 3 with a thumbnail ref
    kind = mhod_type_map.get(dataObject["mhodType"], {"type": "Unknown"})

    match kind["type"]:
        case "String":
            content_offset = offset + header_length

            stringByteLength = struct.unpack("<I", data[content_offset: content_offset + 4])[0]

            # 0,1 = UTF-8; 2 = UTF-16-LE
            encoding = data[content_offset + 4]

            stringContent = data[content_offset + 12: content_offset + 12 + stringByteLength]

            if encoding == 2:
                string_decode = stringContent.decode("utf-16-le", errors="replace")
            else:
                string_decode = stringContent.decode("utf-8", errors="replace")

            dataObject[kind["name"]] = string_decode

        case "Container":
            childResult = parse_chunk(data, offset + header_length)
            dataObject["mhni"] = childResult["result"]

    return {"nextOffset": offset + chunk_length, "result": dataObject}
