from __future__ import annotations

import allure
import pytest
from pydantic import ValidationError

from batch_edit_service.config import DEFAULT_GLOBAL_INSTRUCTION, Settings

pytestmark = [
    allure.epic("Service"),
    allure.feature("Configuration"),
]


def test_defaults(monkeypatch) -> None:
    for name in ("GEMINI_API_KEY", "IMAGE_SIZE", "GEMINI_MODEL", "RESULT_FILENAME_PREFIX"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.gemini_api_key is None
    assert settings.image_size == "4K"
    assert settings.gemini_model == "gemini-3-pro-image-preview"
    assert settings.default_global_instruction == DEFAULT_GLOBAL_INSTRUCTION
    assert settings.default_media_type == "image/png"
    assert settings.result_filename_prefix == "Puti-AI-"


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", " secret ")
    monkeypatch.setenv("IMAGE_SIZE", "2k")

    settings = Settings(_env_file=None)

    assert settings.gemini_api_key == "secret"
    assert settings.image_size == "2K"


def test_blank_api_key_counts_as_missing(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "   ")
    assert Settings(_env_file=None).gemini_api_key is None


def test_invalid_image_size_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("IMAGE_SIZE", "8K")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
