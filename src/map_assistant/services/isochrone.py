"""Reachability contours through the Mapbox Isochrone API."""

import logging
import re

import httpx
from geojson_pydantic import FeatureCollection
from pydantic import ValidationError

from map_assistant.schemas.geometry import Coordinate
from map_assistant.services.base import IsochroneRequest
from map_assistant.services.mapbox import PROFILES, MapboxClient

logger = logging.getLogger(__name__)

MAX_CONTOURS = 4
MAX_MINUTES = 60
MAX_METERS = 100_000

# "15 min", "15, 30 and 45 minutes", "1 hour"
TIME_VALUES = re.compile(
    r"\b((?:\d+\s*(?:,|and|or)\s*)*\d+)\s*(min|mins|minute|minutes|hour|hours)\b",
    re.IGNORECASE,
)
# "5 km", "1, 2 or 3 miles", "500 m"
DISTANCE_VALUES = re.compile(
    r"\b((?:\d+(?:\.\d+)?\s*(?:,|and|or)\s*)*\d+(?:\.\d+)?)\s*"
    r"(km|kilometer|kilometers|mile|miles|meter|meters|m)\b",
    re.IGNORECASE,
)
LISTED_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def convert_to_meters(value: float, unit: str) -> int:
    unit = unit.lower()
    if unit in ("km", "kilometer", "kilometers"):
        return round(value * 1000)
    if unit in ("mile", "miles"):
        return round(value * 1609.34)
    return round(value)


def _contour_values(values: list[int], limit: int) -> list[int]:
    clamped = {min(value, limit) for value in values if value > 0}
    return sorted(clamped)[:MAX_CONTOURS]


def extract_time_values(text: str) -> list[int]:
    """Contour times in minutes, ascending, at most four, each at most 60."""
    minutes = []
    for match in TIME_VALUES.finditer(text):
        factor = 60 if match.group(2).lower().startswith("hour") else 1
        minutes.extend(int(number) * factor for number in LISTED_NUMBER.findall(match.group(1)))
    return _contour_values(minutes, MAX_MINUTES)


def extract_distance_values(text: str) -> list[int]:
    """Contour distances in metres, ascending, at most four, each at most 100 km."""
    meters = []
    for match in DISTANCE_VALUES.finditer(text):
        unit = match.group(2)
        meters.extend(
            convert_to_meters(float(number), unit) for number in LISTED_NUMBER.findall(match.group(1))
        )
    return _contour_values(meters, MAX_METERS)


class MapboxIsochrone(MapboxClient):
    async def compute(self, center: Coordinate, request: IsochroneRequest) -> FeatureCollection | None:
        profile = PROFILES[request.mode]
        params = {"polygons": "true", "denoise": 1.0}
        if request.contours_minutes:
            params["contours_minutes"] = ",".join(map(str, request.contours_minutes))
        else:
            params["contours_meters"] = ",".join(map(str, request.contours_meters))

        logger.info(
            "Requesting %s isochrone at %s: %s (%s)",
            profile,
            center,
            request.values,
            request.metric,
        )
        try:
            data = await self.get_json(f"isochrone/v1/{profile}/{center.lon},{center.lat}", params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Isochrone request failed: %r", e)
            return None

        if not data.get("features"):
            logger.warning("No isochrone features found")
            return None

        try:
            return FeatureCollection(**data)
        except ValidationError as e:
            logger.warning("Malformed isochrone payload: %r", e)
            return None
