"""
Client for the remote image-edit model.

The processor only depends on :class:`ImageEditClient`; the Gemini
implementation below is what the service wires in.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from google import genai
from google.genai import types

from .models import GeneratedImage
from .request_builder import ImageEditRequest

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-pro-image-preview"


class ImageEditClient(Protocol):
    async def edit(self, request: ImageEditRequest) -> Optional[GeneratedImage]:
        """Return the edited image, or ``None`` when the response carried no image."""


class GeminiImageEditClient:
    """
    Gemini image model behind the :class:`ImageEditClient` protocol.

    A fresh ``genai.Client`` is created for every request so that a key
    selected after a rejection is picked up without restarting the service.
    """

    def __init__(
        self,
        api_key_source: Callable[[], Optional[str]],
        model: str = DEFAULT_MODEL,
        client_factory: Optional[Callable[[str], genai.Client]] = None,
    ) -> None:
        self._api_key_source = api_key_source
        self._model = model
        self._client_factory = client_factory or (lambda key: genai.Client(api_key=key))

    async def edit(self, request: ImageEditRequest) -> Optional[GeneratedImage]:
        client = self._client_factory(self._api_key_source() or "")
        logger.info(
            "Calling %s aspect=%s size=%s bytes=%d",
            self._model,
            request.aspect_ratio,
            request.image_size,
            len(request.image_bytes),
        )
        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=[
                    types.Part.from_bytes(data=request.image_bytes, mime_type=request.media_type),
                    types.Part.from_text(text=request.instruction),
                ],
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                    image_config=types.ImageConfig(
                        aspect_ratio=request.aspect_ratio,
                        image_size=request.image_size,
                    ),
                ),
            )
        finally:
            # one client per request, so its HTTP session is released here
            await client.aio.aclose()
        return extract_image(response)


def extract_image(response) -> Optional[GeneratedImage]:
    """Return the first inline image part of the first candidate, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return GeneratedImage(data=inline.data, media_type=inline.mime_type or "image/png")
    return None
