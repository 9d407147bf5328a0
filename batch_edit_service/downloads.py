"""Result download helpers: file naming and PNG re-encoding."""

from __future__ import annotations

from io import BytesIO

from PIL import Image

from .errors import ImageDecodeError
from .models import GeneratedImage


def suggested_filename(original_filename: str, prefix: str = "Puti-AI-") -> str:
    """``photo.final.jpg`` -> ``<prefix>photo.png`` (name up to the first dot)."""
    stem = original_filename.split(".", 1)[0] or "image"
    return f"{prefix}{stem}.png"


def encode_png(result: GeneratedImage) -> bytes:
    """Return the result as PNG bytes, re-encoding when the API sent another format."""
    if result.media_type == "image/png":
        return result.data
    try:
        with Image.open(BytesIO(result.data)) as image:
            buffer = BytesIO()
            image.save(buffer, format="PNG")
    except Exception as exc:  # noqa: BLE001
        raise ImageDecodeError("Generated image could not be re-encoded") from exc
    return buffer.getvalue()
