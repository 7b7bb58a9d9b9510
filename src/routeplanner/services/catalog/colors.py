"""Deterministic marker colors derived from insertion order."""

from __future__ import annotations

import math

GOLDEN_RATIO = (1 + math.sqrt(5)) / 2
MIN_CHANNEL = 55


def color_from_index(index: int) -> str:
    """Return an ``rgb(r, g, b)`` color for the stop at ``index``.

    Indices are spread along the golden ratio; every channel is at least 55.
    """
    n = 1 + index * GOLDEN_RATIO
    red = max(math.floor((n * 255) % 255), MIN_CHANNEL)
    green = max(math.floor((n * 359) % 255), MIN_CHANNEL)
    blue = max(math.floor((n * 231) % 255), MIN_CHANNEL)
    return f"rgb({red}, {green}, {blue})"
