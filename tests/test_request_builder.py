from __future__ import annotations

import asyncio

import allure
import pytest

from batch_edit_service.errors import ImageDecodeError
from batch_edit_service.image_probe import probe_image
from batch_edit_service.models import QueueItem, RunConfig, SourceImage
from batch_edit_service.request_builder import build_edit_request, compose_instruction

pytestmark = [
    allure.epic("Request Assembly"),
    allure.feature("Image Edit Requests"),
]


@pytest.mark.parametrize(
    ("global_text", "custom_text"),
    [
        ("Replace the text:", "繁榮昌盛"),
        ("Replace the text:", None),
        ("", "only custom"),
        ("", None),
        ("trailing space ", " leading space"),
    ],
)
def test_compose_instruction_joins_global_then_custom(global_text, custom_text) -> None:
    assert compose_instruction(global_text, custom_text) == global_text + " " + (custom_text or "")


def test_build_request_uses_probed_aspect_ratio_and_top_tier(make_png) -> None:
    item = QueueItem(
        source=SourceImage(filename="wide.png", data=make_png(192, 108), media_type="image/png"),
        custom_instruction="make it red",
    )

    request = asyncio.run(build_edit_request(item, RunConfig(global_instruction="Global:")))

    assert request.aspect_ratio == "16:9"
    assert request.image_size == "4K"
    assert request.instruction == "Global: make it red"
    assert request.media_type == "image/png"
    assert request.image_bytes == item.source.data


def test_build_request_detects_media_type_when_not_declared(make_png) -> None:
    item = QueueItem(source=SourceImage(filename="tall", data=make_png(108, 192, fmt="JPEG")))

    request = asyncio.run(build_edit_request(item, RunConfig(), image_size="2K"))

    assert request.media_type == "image/jpeg"
    assert request.aspect_ratio == "9:16"
    assert request.image_size == "2K"
    assert request.instruction == " "


def test_build_request_rejects_unreadable_image() -> None:
    item = QueueItem(source=SourceImage(filename="broken.png", data=b"not an image"))

    with pytest.raises(ImageDecodeError):
        asyncio.run(build_edit_request(item, RunConfig(global_instruction="x")))


def test_probe_image_reports_size_and_format(make_png) -> None:
    info = probe_image(make_png(40, 30))
    assert (info.width, info.height) == (40, 30)
    assert info.format == "PNG"
    assert info.media_type == "image/png"


def test_probe_image_rejects_empty_bytes() -> None:
    with pytest.raises(ImageDecodeError):
        probe_image(b"")
