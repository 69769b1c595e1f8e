import logging
import os

import httpx
from dotenv import load_dotenv

from map_assistant.schemas.geometry import TravelMode

# Load environment variables from env file
load_dotenv()

MAPBOX_ACCESS_TOKEN = os.environ.get("MAPBOX_ACCESS_TOKEN", "")
MAPBOX_API_URL = os.environ.get("MAPBOX_API_URL", "https://api.mapbox.com")

PROFILES = {
    TravelMode.DRIVING: "mapbox/driving-traffic",
    TravelMode.WALKING: "mapbox/walking",
    TravelMode.CYCLING: "mapbox/cycling",
}

logger = logging.getLogger(__name__)


class MapboxClient:
    """Shared plumbing for the Mapbox HTTP APIs.

    An ``httpx.AsyncClient`` may be injected; otherwise one is created per
    request.
    """

    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.access_token = access_token if access_token is not None else MAPBOX_ACCESS_TOKEN
        self.base_url = (base_url or MAPBOX_API_URL).rstrip("/")
        self.client = client

    async def get_json(self, path: str, params: dict) -> dict:
        params = {**params, "access_token": self.access_token}
        url = f"{self.base_url}/{path.lstrip('/')}"
        if self.client is not None:
            response = await self.client.get(url, params=params)
        else:
            async with httpx.AsyncClient(timeout=30) as client:
                response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()
