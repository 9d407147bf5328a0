"""
Nearest supported output aspect ratio for a source image.

The image-edit API only accepts a handful of aspect-ratio labels, so the
source dimensions are snapped to the closest one.
"""

from __future__ import annotations

import math
from typing import Tuple

from .errors import InvalidImageDimensions

# Declaration order is the tie-break order.
SUPPORTED_ASPECT_RATIOS: Tuple[Tuple[str, float], ...] = (
    ("1:1", 1.0),
    ("3:4", 0.75),
    ("4:3", 1.3333),
    ("9:16", 0.5625),
    ("16:9", 1.7778),
)


def _validate_dimension(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidImageDimensions(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value <= 0:
        raise InvalidImageDimensions(f"{name} must be a finite positive number, got {value!r}")
    return float(value)


def match_aspect_ratio(width: float, height: float) -> str:
    """
    Return the supported label whose value is closest to ``width / height``.

    Ties keep the earliest declared label.

    Raises:
        InvalidImageDimensions: when either dimension is not a finite positive number.
    """
    ratio = _validate_dimension("width", width) / _validate_dimension("height", height)

    best_label, best_value = SUPPORTED_ASPECT_RATIOS[0]
    best_diff = abs(best_value - ratio)
    for label, value in SUPPORTED_ASPECT_RATIOS[1:]:
        diff = abs(value - ratio)
        if diff < best_diff:
            best_label, best_diff = label, diff
    return best_label
