"""Road-snapped routing through the Mapbox Directions API."""

import logging
from collections.abc import Sequence

import httpx
from pydantic import ValidationError

from map_assistant.schemas.geometry import Coordinate, TravelMode
from map_assistant.services.base import RouteResult
from map_assistant.services.mapbox import PROFILES, MapboxClient

logger = logging.getLogger(__name__)

ROUTING_KEYWORDS = (
    "route",
    "directions",
    "driving",
    "walking",
    "cycling",
    "bike",
    "car",
    "walk",
    "how to get",
    "how do i get",
    "distance between",
    "from to",
)
CYCLING_KEYWORDS = ("cycling", "bike", "bicycle", "cycle")
WALKING_KEYWORDS = ("walking", "walk", "pedestrian", "hiking")


def detect_transport_mode(text: str) -> TravelMode:
    """Pick a travel mode from keywords; driving unless cycling or walking is named."""
    query = text.lower()
    if any(keyword in query for keyword in CYCLING_KEYWORDS):
        return TravelMode.CYCLING
    if any(keyword in query for keyword in WALKING_KEYWORDS):
        return TravelMode.WALKING
    return TravelMode.DRIVING


def needs_routing(text: str) -> bool:
    query = text.lower()
    return any(keyword in query for keyword in ROUTING_KEYWORDS)


class MapboxDirections(MapboxClient):
    async def route(self, coordinates: Sequence[Coordinate], mode: TravelMode) -> RouteResult | None:
        """Route through ``coordinates`` in order.

        Returns None when the API errors or finds no route.
        """
        profile = PROFILES[mode]
        waypoints = ";".join(f"{c.lon},{c.lat}" for c in coordinates)
        logger.info("Requesting %s route through %d waypoints", profile, len(coordinates))

        try:
            data = await self.get_json(
                f"directions/v5/{profile}/{waypoints}",
                {"geometries": "geojson", "overview": "full"},
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Directions request failed: %r", e)
            return None

        if data.get("code") != "Ok" or not data.get("routes"):
            logger.warning("No route found: %s %s", data.get("code"), data.get("message", ""))
            return None

        route = data["routes"][0]
        try:
            result = RouteResult(
                geometry=route["geometry"],
                distance_m=route["distance"],
                duration_s=route["duration"],
            )
        except (KeyError, ValidationError) as e:
            logger.warning("Malformed route payload: %r", e)
            return None

        logger.info(
            "Route: %.2f km, %.1f min", result.distance_m / 1000, result.duration_s / 60
        )
        return result
