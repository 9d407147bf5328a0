"""
Image decoding helpers.

Only the header information the request builder needs is read here: pixel
dimensions and the format Pillow recognised.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from PIL import Image

from .errors import ImageDecodeError


@dataclass(frozen=True)
class ImageInfo:
    width: int
    height: int
    format: Optional[str]
    media_type: Optional[str]


def probe_image(image_bytes: bytes) -> ImageInfo:
    """
    Decode an image just far enough to read its size and format.

    Raises:
        ImageDecodeError: when the bytes are empty or not a readable image.
    """
    if not image_bytes:
        raise ImageDecodeError("Image data is empty")
    try:
        with Image.open(BytesIO(image_bytes)) as image:
            image.verify()
            fmt = image.format
            width, height = image.size
    except Exception as exc:  # noqa: BLE001
        raise ImageDecodeError("Invalid image data") from exc

    media_type = Image.MIME.get(fmt) if fmt else None
    return ImageInfo(width=width, height=height, format=fmt, media_type=media_type)
