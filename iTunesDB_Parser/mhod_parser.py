import struct

from .constants import NON_STRING_MHOD_TYPES, STRING_MHOD_LIMIT


def parse_mhod(data, offset, header_length, chunk_length) -> dict:
    mhod_type = struct.unpack("<I", data[offset + 12:offset + 16])[0]

    if mhod_type >= STRING_MHOD_LIMIT or mhod_type in NON_STRING_MHOD_TYPES:
        # playlist prefs / position blobs, nothing we keep
        return {"nextOffset": offset + chunk_length, "result": {"mhodType": mhod_type, "string": None}}

    body = offset + header_length
    encoding = struct.unpack("<I", data[body:body + 4])[0]
    string_length = struct.unpack("<I", data[body + 4:body + 8])[0]
    string_data = data[body + 16:body + 16 + string_length]

    # 1 = UTF-16LE, 2 = UTF-8
    if encoding == 2:
        string_decode = string_data.decode("utf-8", errors="replace")
    else:
        string_decode = string_data.decode("utf-16-le", errors="replace")

    return {"nextOffset": offset + chunk_length, "result": {"mhodType": mhod_type, "string": string_decode}}
