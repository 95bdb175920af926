"""
Field extraction from rendered nullschool pages.

The spotlight panel of earth.nullschool.net shows the sampled point's
coordinates, the wind at that point (e.g. "270° @ 15 km/h") and the value of
the active overlay (e.g. "12.3 µg/m³"). Extraction is pure: each call parses
the markup once with BeautifulSoup and keeps no state.
"""

from __future__ import annotations

import re
from typing import Tuple

from bs4 import BeautifulSoup

from collector.exceptions import ReadingParseError, WindParseError

COORDS_SELECTOR = 'div[data-name="spotlight-coords"]'
WIND_SELECTOR = 'div[data-name="spotlight-a"]'
READING_SELECTOR = 'div[data-name="spotlight-b"] div[aria-label]'

_LEADING_INT = re.compile(r"^[+-]?\d+")
_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))")


def extract_field(markup: str, selector: str) -> str:
    """Return the text of the first element matching `selector`, or "" if none does."""
    soup = BeautifulSoup(markup, "html.parser")
    node = soup.select_one(selector)
    if node is None:
        return ""
    # nested spans are joined with a space so the wind tokens stay separable
    return node.get_text(" ", strip=True)


def _leading_int(token: str, *, what: str, text: str) -> int:
    match = _LEADING_INT.match(token)
    if not match:
        raise WindParseError(f"Non-numeric wind {what} {token!r} in {text!r}")
    return int(match.group(0))


def parse_wind(text: str) -> Tuple[int, int]:
    """Split a wind descriptor into (direction, speed).

    The first whitespace-separated token is the direction in degrees and the
    third one the speed; the second (a separator such as "@" or "at") is
    ignored. Unit suffixes glued to a number are tolerated, so "270° @ 15
    km/h" gives (270, 15).
    """
    parts = text.split()
    if len(parts) < 3:
        raise WindParseError(f"Expected at least 3 tokens in wind descriptor, got {text!r}")
    direction = _leading_int(parts[0], what="direction", text=text)
    speed = _leading_int(parts[2], what="speed", text=text)
    return direction, speed


def parse_reading(text: str) -> float:
    """Return the leading number of a particulate reading such as "12.3 µg/m³"."""
    match = _LEADING_NUMBER.match(text)
    if not match:
        raise ReadingParseError(f"Particulate reading is not numeric: {text!r}")
    return float(match.group(1))
