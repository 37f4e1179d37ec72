"""
RGB565 image conversion for iPod ithmb files.

Converts cover art to square RGB565 little-endian pixel data, the format
iPod Classic/Nano/Video firmware reads album art thumbnails in.

RGB565 encoding: 5 bits red | 6 bits green | 5 bits blue (16 bits per pixel)
"""

import io
import numpy as np
from PIL import Image, UnidentifiedImageError


# Default thumbnail edge lengths (small, large)
DEFAULT_SIZES = (100, 200)


def image_from_bytes(art_bytes: bytes) -> Image.Image:
    """
    Decode image bytes (JPEG/PNG/WebP) into an RGB Pillow image.

    Raises:
        ValueError: if the bytes are not a decodable image
    """
    try:
        img = Image.open(io.BytesIO(art_bytes))
        img.load()
        if img.mode != 'RGB':
            img = img.convert('RGB')
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValueError(f"Undecodable cover image: {e}") from e
    return img


def crop_to_square(img: Image.Image) -> Image.Image:
    """Center-crop to the shorter side; square images pass through."""
    width, height = img.size
    if width == height:
        return img
    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    return img.crop((left, top, left + side, top + side))


def rgb888_to_rgb565(img: Image.Image) -> bytes:
    """
    Convert an RGB888 image to RGB565 little-endian pixel data.

    Output size = width * height * 2 bytes.
    """
    arr = np.array(img, dtype=np.uint32)

    r = (arr[:, :, 0] >> 3) & 0x1F
    g = (arr[:, :, 1] >> 2) & 0x3F
    b = (arr[:, :, 2] >> 3) & 0x1F
    rgb565 = ((r << 11) | (g << 5) | b).astype(np.uint16)

    return rgb565.astype('<u2').tobytes()


def convert_art_for_ipod(img: Image.Image, size: int) -> dict:
    """
    Produce one square thumbnail of ``size`` pixels from a decoded cover.

    Returns:
        Dict with keys: 'data' (bytes), 'width', 'height', 'size'
    """
    square = crop_to_square(img)
    resized = square.resize((size, size), Image.Resampling.LANCZOS)
    pixel_data = rgb888_to_rgb565(resized)

    return {
        'data': pixel_data,
        'width': size,
        'height': size,
        'size': len(pixel_data),
    }
