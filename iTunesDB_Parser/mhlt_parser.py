def parse_list(data, offset, header_length, childCount) -> dict:
    from .chunk_parser import parse_chunk

    items = []

    # list chunks have no total length, so walk the children to find the end
    next_offset = offset + header_length
    for i in range(childCount):
        response = parse_chunk(data, next_offset)
        next_offset = response["nextOffset"]
        items.append(response["result"])

    return {"nextOffset": next_offset, "result": items}
