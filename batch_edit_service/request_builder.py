"""
Outbound request assembly for one queue item.

bytes + instructions in -> probe dimensions -> aspect ratio -> request out.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from .aspect_ratio import match_aspect_ratio
from .image_probe import probe_image
from .models import QueueItem, RunConfig

DEFAULT_MEDIA_TYPE = "image/png"
DEFAULT_IMAGE_SIZE = "4K"


@dataclass(frozen=True)
class ImageEditRequest:
    image_bytes: bytes = field(repr=False)
    media_type: str
    instruction: str
    image_size: str
    aspect_ratio: str


def compose_instruction(global_instruction: str, custom_instruction: Optional[str]) -> str:
    """Global text first, then the per-item text, separated by one space."""
    return f"{global_instruction} {custom_instruction or ''}"


async def build_edit_request(
    item: QueueItem,
    run_config: RunConfig,
    *,
    image_size: str = DEFAULT_IMAGE_SIZE,
    default_media_type: str = DEFAULT_MEDIA_TYPE,
) -> ImageEditRequest:
    """
    Build the request for ``item`` using the run's shared instruction.

    Decoding happens in a worker thread so large uploads do not stall the
    event loop.

    Raises:
        ImageDecodeError: the source bytes are not a readable image.
        InvalidImageDimensions: the decoded image reports a zero-sized edge.
    """
    source = item.source
    info = await asyncio.to_thread(probe_image, source.data)
    aspect_ratio = match_aspect_ratio(info.width, info.height)

    return ImageEditRequest(
        image_bytes=source.data,
        media_type=source.media_type or info.media_type or default_media_type,
        instruction=compose_instruction(run_config.global_instruction, item.custom_instruction),
        image_size=image_size,
        aspect_ratio=aspect_ratio,
    )
