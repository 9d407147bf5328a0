"""
Configuration loader for the batch image-edit service.

Environment variables are centralized here to keep the rest of the code
focused on queue logic and to make operational tuning clear.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GLOBAL_INSTRUCTION = (
    "Keep the exact composition and background. Replace the text with the following "
    "Traditional Chinese text. Ensure typography is sharp, high-definition, and legible: "
)

IMAGE_SIZE_TIERS = ("1K", "2K", "4K")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Image-edit API
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-3-pro-image-preview"
    # Highest tier keeps re-rendered text legible.
    image_size: str = "4K"

    # Request assembly
    default_global_instruction: str = DEFAULT_GLOBAL_INSTRUCTION
    default_media_type: str = "image/png"

    # Uploads / downloads
    max_upload_bytes: int = Field(20 * 1024 * 1024, gt=0)
    request_timeout_seconds: int = Field(30, gt=0)
    result_filename_prefix: str = "Puti-AI-"

    # Credential watcher; 0 disables it
    credential_watch_interval_seconds: float = Field(0.0, ge=0)

    log_level: str = "INFO"

    @field_validator("image_size")
    @classmethod
    def validate_image_size(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in IMAGE_SIZE_TIERS:
            raise ValueError("IMAGE_SIZE must be one of 1K|2K|4K")
        return v

    @field_validator("gemini_api_key")
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    return Settings()
