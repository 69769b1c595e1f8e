import logging

import httpx

from map_assistant.schemas.geometry import Coordinate
from map_assistant.services.mapbox import MapboxClient

logger = logging.getLogger(__name__)

TERRAIN_TILESET = "mapbox.mapbox-terrain-v2"


class MapboxTerrain(MapboxClient):
    """Point elevation from the contour layer of the Mapbox terrain tileset.

    The highest contour returned for the point is taken as its elevation.
    """

    async def elevation_at(self, coordinate: Coordinate) -> float | None:
        try:
            data = await self.get_json(
                f"v4/{TERRAIN_TILESET}/tilequery/{coordinate.lon},{coordinate.lat}.json",
                {"layers": "contour", "limit": 50},
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Terrain query failed at %s: %r", coordinate, e)
            return None

        elevations = [
            feature["properties"]["ele"]
            for feature in data.get("features", [])
            if "ele" in feature.get("properties", {})
        ]
        if not elevations:
            return None
        return float(max(elevations))
