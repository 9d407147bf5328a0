"""Deterministic classification of image-edit failures into user-facing categories."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

ERROR_CLASSIFIER_VERSION = 1


class ErrorCategory(str, Enum):
    AUTH_REJECTED = "auth_rejected"
    RATE_LIMITED = "rate_limited"
    SAFETY_BLOCKED = "safety_blocked"
    UNKNOWN = "unknown"


USER_MESSAGES = {
    ErrorCategory.AUTH_REJECTED: "API key was rejected; select a valid key and run again",
    ErrorCategory.RATE_LIMITED: "Too many requests, please wait and retry",
    ErrorCategory.SAFETY_BLOCKED: "Blocked by safety filters",
    ErrorCategory.UNKNOWN: "Generation failed",
}

_AUTH_REJECTED_PATTERNS: Tuple[str, ...] = (
    "requested entity was not found",
    "entity not found",
    "api key not valid",
    "api_key_invalid",
    "invalid api key",
    "unauthenticated",
    "permission_denied",
)
_RATE_LIMITED_PATTERNS: Tuple[str, ...] = (
    "429",
    "too many requests",
    "resource_exhausted",
    "rate limit",
)
_SAFETY_BLOCKED_PATTERNS: Tuple[str, ...] = (
    "safety",
    "prohibited_content",
    "blocklist",
)

# Rate limiting outranks safety when a message mentions both.
_RULES: Tuple[Tuple[ErrorCategory, Tuple[str, ...]], ...] = (
    (ErrorCategory.AUTH_REJECTED, _AUTH_REJECTED_PATTERNS),
    (ErrorCategory.RATE_LIMITED, _RATE_LIMITED_PATTERNS),
    (ErrorCategory.SAFETY_BLOCKED, _SAFETY_BLOCKED_PATTERNS),
)


@dataclass(frozen=True)
class ErrorClassification:
    category: ErrorCategory
    user_message: str
    matched_pattern: Optional[str]
    detail: str

    @property
    def fatal(self) -> bool:
        """Only a rejected credential halts the whole run."""
        return self.category is ErrorCategory.AUTH_REJECTED


def classify_failure(failure: Union[BaseException, str]) -> ErrorClassification:
    """Classify an exception (or a bare message) from request assembly or the API call."""
    detail = _failure_text(failure)
    haystack = detail.lower()

    for category, patterns in _RULES:
        pattern = _first_match(haystack, patterns)
        if pattern is not None:
            return ErrorClassification(
                category=category,
                user_message=USER_MESSAGES[category],
                matched_pattern=pattern,
                detail=detail,
            )

    return ErrorClassification(
        category=ErrorCategory.UNKNOWN,
        user_message=USER_MESSAGES[ErrorCategory.UNKNOWN],
        matched_pattern=None,
        detail=detail,
    )


def _failure_text(failure: Union[BaseException, str]) -> str:
    if isinstance(failure, str):
        return failure
    parts = []
    # google-genai APIError carries both an HTTP code and a status string
    for attr in ("code", "status"):
        value = getattr(failure, attr, None)
        if value is not None and not callable(value):
            parts.append(str(value))
    parts.append(str(failure) or type(failure).__name__)
    return " ".join(parts)


def _first_match(haystack: str, patterns: Tuple[str, ...]) -> Optional[str]:
    for pattern in patterns:
        # status codes must stand alone so "1429x900" is not a 429
        if pattern.isdigit():
            if re.search(rf"\b{pattern}\b", haystack):
                return pattern
        elif pattern in haystack:
            return pattern
    return None
