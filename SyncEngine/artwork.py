"""
Cover art for imported tracks.

Covers are deduplicated by a fingerprint of the source image bytes: a cover
already in the ArtworkDB is referenced again without being decoded or
encoded. New covers are center-cropped, resized to the small and large
thumbnail sizes and written as RGB565 .ithmb files.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ArtworkDB_Writer import (
    DEFAULT_SIZES,
    ArtworkIndex,
    convert_art_for_ipod,
    image_from_bytes,
    thumbnail_filename,
)

from .content_hash import fingerprint
from .device import IPodLayout
from .errors import ArtworkError
from .events import ArtworkProgress

logger = logging.getLogger(__name__)

ARTWORK_STEPS = 2


@dataclass(frozen=True)
class ArtworkMeta:
    img_id: int
    src_img_size: int
    filenames: tuple[str, ...]
    reused: bool


async def embed_artwork(image_bytes: bytes, layout: IPodLayout, content_hash: int,
                        sizes: tuple[int, ...] = DEFAULT_SIZES,
                        events: Optional[asyncio.Queue] = None) -> ArtworkMeta:
    """
    Attach a cover to the track with dbid ``content_hash``.

    Raises:
        ArtworkError: the image could not be decoded or the files not written
    """
    if not image_bytes:
        raise ArtworkError("Empty cover image")

    async def step(n: int) -> None:
        if events is not None:
            await events.put(ArtworkProgress(n, ARTWORK_STEPS))

    await step(0)
    art_hash = fingerprint(image_bytes)

    try:
        index = ArtworkIndex.load(layout.artwork_dir)
    except (ValueError, OSError) as e:
        raise ArtworkError(f"Unreadable ArtworkDB: {e}") from e

    entry = index.find(art_hash)
    if entry is not None:
        await step(ARTWORK_STEPS)
        logger.debug(f"Reusing cover {art_hash:016X} (image {entry.img_id})")
        return ArtworkMeta(
            img_id=entry.img_id,
            src_img_size=entry.src_img_size,
            filenames=tuple(entry.thumbnails[s]['filename'] for s in sorted(entry.thumbnails)),
            reused=True,
        )

    try:
        img = image_from_bytes(image_bytes)
    except ValueError as e:
        raise ArtworkError(str(e)) from e

    thumbnails = {}
    try:
        for i, size in enumerate(sizes):
            art = convert_art_for_ipod(img, size)
            filename = thumbnail_filename(size, art_hash)
            index.write_thumbnail(filename, art['data'])
            thumbnails[size] = {
                'filename': filename,
                'width': art['width'],
                'height': art['height'],
                'size': art['size'],
            }
            if i == 0:
                await step(1)

        entry = index.register(art_hash, content_hash, len(image_bytes), thumbnails)
        index.save()
    except ValueError as e:
        raise ArtworkError(f"Could not convert artwork: {e}") from e
    except OSError as e:
        raise ArtworkError(f"Could not write artwork: {e}") from e

    await step(ARTWORK_STEPS)
    logger.info(f"Encoded cover {art_hash:016X} as image {entry.img_id}")
    return ArtworkMeta(
        img_id=entry.img_id,
        src_img_size=entry.src_img_size,
        filenames=tuple(thumbnails[s]['filename'] for s in sorted(thumbnails)),
        reused=False,
    )
