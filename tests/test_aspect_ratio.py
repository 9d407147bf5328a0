from __future__ import annotations

import math

import allure
import pytest

from batch_edit_service.aspect_ratio import SUPPORTED_ASPECT_RATIOS, match_aspect_ratio
from batch_edit_service.errors import InvalidImageDimensions

pytestmark = [
    allure.epic("Request Assembly"),
    allure.feature("Aspect Ratio Matching"),
]


@pytest.mark.parametrize(
    ("width", "height", "expected"),
    [
        (1000, 1000, "1:1"),
        (1920, 1080, "16:9"),
        (1080, 1920, "9:16"),
        (800, 600, "4:3"),
        (600, 800, "3:4"),
        (5000, 1000, "16:9"),
        (1000, 5000, "9:16"),
    ],
)
def test_matches_closest_label(width: int, height: int, expected: str) -> None:
    assert match_aspect_ratio(width, height) == expected


def test_result_minimizes_absolute_difference() -> None:
    values = dict(SUPPORTED_ASPECT_RATIOS)
    for width, height in [(1234, 987), (333, 500), (720, 1280), (1500, 1000), (999, 1001)]:
        ratio = width / height
        label = match_aspect_ratio(width, height)
        best = min(abs(value - ratio) for value in values.values())
        assert abs(values[label] - ratio) == best


def test_tie_keeps_earliest_declared_label() -> None:
    # 0.875 sits exactly between 1:1 (1.0) and 3:4 (0.75)
    assert match_aspect_ratio(875, 1000) == "1:1"
    # 0.65625 sits exactly between 3:4 (0.75) and 9:16 (0.5625)
    assert match_aspect_ratio(65625, 100000) == "3:4"


@pytest.mark.parametrize(
    ("width", "height"),
    [(0, 100), (100, 0), (-5, 100), (100, -1), (math.inf, 100), (100, math.nan), ("100", 100), (True, 1)],
)
def test_rejects_invalid_dimensions(width, height) -> None:
    with pytest.raises(InvalidImageDimensions):
        match_aspect_ratio(width, height)
