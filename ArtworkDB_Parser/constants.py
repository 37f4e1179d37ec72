# maps the id used in mhsd to the key it is stored under
chunk_type_map = {
    1: "images",  # Image List chunk
}

# container MHODs wrap an MHNI, string MHODs carry a string
mhod_type_map = {
    1: {"type": "String", "name": "Album Name"},
    2: {"type": "Container", "name": "Thumbnail Image"},
    3: {"type": "String", "name": "File Name"},
    5: {"type": "Container", "name": "Full Res Image"},
}
