"""Shared test fixtures."""

from __future__ import annotations

from io import BytesIO
from typing import Awaitable, Callable, List, Optional, Sequence, Union

import pytest
from PIL import Image

from batch_edit_service.config import Settings
from batch_edit_service.models import GeneratedImage
from batch_edit_service.request_builder import ImageEditRequest

Outcome = Union[GeneratedImage, None, BaseException]
OnCall = Callable[[int, ImageEditRequest], Awaitable[None]]

RESULT = GeneratedImage(data=b"edited-png", media_type="image/png")


def png_bytes(width: int = 64, height: int = 64, fmt: str = "PNG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), (200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeEditClient:
    """Scripted image-edit client; outcome ``n`` answers the ``n``-th call."""

    def __init__(self, outcomes: Sequence[Outcome] = (), on_call: Optional[OnCall] = None) -> None:
        self.outcomes = list(outcomes)
        self.on_call = on_call
        self.requests: List[ImageEditRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def edit(self, request: ImageEditRequest) -> Optional[GeneratedImage]:
        index = len(self.requests)
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.on_call is not None:
                await self.on_call(index, request)
            outcome = self.outcomes[index] if index < len(self.outcomes) else RESULT
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        default_global_instruction="Fix the text:",
    )


@pytest.fixture()
def make_png() -> Callable[..., bytes]:
    return png_bytes


@pytest.fixture()
def fake_client() -> Callable[..., FakeEditClient]:
    return FakeEditClient


@pytest.fixture()
def edited_result() -> GeneratedImage:
    return RESULT
