"""Coordinate extraction from free text.

Also owns the textual protocol exchanged with the language model:
``lat,lon | lat,lon | ...`` with ``||`` between independent polygon rings.
"""

import re
from dataclasses import dataclass
from enum import Enum

from map_assistant.schemas.geometry import Coordinate

PAIR_SEPARATOR = " | "
RING_SEPARATOR = "||"

_NUMBER = r"(-?\d+(?:\.\d+)?)"

# 30.3165° N, 78.0322° E
DEGREE_PATTERN = re.compile(
    rf"{_NUMBER}\s*°(?:\s*([NS])\b)?\s*[,;|]\s*{_NUMBER}\s*°(?:\s*([EW])\b)?",
    re.IGNORECASE,
)
# 40.7128,-74.0060 / 40.7128, -74.0060 / 40.7128 | -74.0060
PLAIN_PATTERN = re.compile(rf"{_NUMBER}\s*[,;|]\s*{_NUMBER}(?!\d|\.\d|\s*°|\s*[EWew]\b)")
# 30.3165 N, 78.0322 E
CARDINAL_PATTERN = re.compile(
    rf"{_NUMBER}(?:\s*([NS])\b)?\s*[,;|]\s*{_NUMBER}(?:\s*([EW])\b)?",
    re.IGNORECASE,
)


class ParseStatus(str, Enum):
    FOUND = "found"
    EXPLICIT_NONE = "explicit_none"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class ParseResult:
    """Outcome of a parse: the coordinates, or why there are none."""

    status: ParseStatus
    coordinates: tuple[Coordinate, ...] = ()

    def __bool__(self) -> bool:
        return self.status is ParseStatus.FOUND

    def __len__(self) -> int:
        return len(self.coordinates)

    def __iter__(self):
        return iter(self.coordinates)

    def to_text(self) -> str:
        """Render in the pipe-delimited protocol, or ``none``."""
        if not self:
            return "none"
        return format_coordinates(self.coordinates)


def _signed(value: float, hemisphere: str | None, negative: str) -> float:
    if hemisphere and hemisphere.upper() == negative:
        return -abs(value)
    return value


def _pairs(pattern: re.Pattern, text: str, has_hemispheres: bool):
    for match in pattern.finditer(text):
        if has_hemispheres:
            lat_text, ns, lon_text, ew = match.groups()
            yield _signed(float(lat_text), ns, "S"), _signed(float(lon_text), ew, "W")
        else:
            lat_text, lon_text = match.groups()
            yield float(lat_text), float(lon_text)


def parse_coordinates(text: str | None) -> ParseResult:
    """Extract lat/lon pairs from ``text``.

    Runs the degree, plain and cardinal passes in that order. A pair seen by an
    earlier pass is skipped by later ones.
    """
    if not text:
        return ParseResult(ParseStatus.NO_MATCH)
    if "none" in text.lower():
        return ParseResult(ParseStatus.EXPLICIT_NONE)

    seen: set[tuple[float, float]] = set()
    coordinates: list[Coordinate] = []
    passes = (
        (DEGREE_PATTERN, True),
        (PLAIN_PATTERN, False),
        (CARDINAL_PATTERN, True),
    )
    for pattern, has_hemispheres in passes:
        for lat, lon in _pairs(pattern, text, has_hemispheres):
            if not (-90 <= lat <= 90 and -180 <= lon <= 180):
                continue
            if (lat, lon) in seen:
                continue
            seen.add((lat, lon))
            coordinates.append(Coordinate(lat=lat, lon=lon))

    if not coordinates:
        return ParseResult(ParseStatus.NO_MATCH)
    return ParseResult(ParseStatus.FOUND, tuple(coordinates))


def format_coordinates(coordinates) -> str:
    return PAIR_SEPARATOR.join(f"{c.lat},{c.lon}" for c in coordinates)


def split_rings(text: str) -> list[str]:
    return [part.strip() for part in text.split(RING_SEPARATOR) if part.strip()]
