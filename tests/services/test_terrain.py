import httpx

from map_assistant.schemas.geometry import Coordinate
from map_assistant.services.terrain import MapboxTerrain

DENVER = Coordinate(lat=39.7392, lon=-104.9903)


def terrain_client(handler) -> MapboxTerrain:
    return MapboxTerrain(access_token="test-token", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


async def test_highest_contour_is_the_elevation():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "type": "FeatureCollection",
                "features": [
                    {"properties": {"ele": 1600}},
                    {"properties": {"ele": 1610}},
                    {"properties": {"index": 5}},
                ],
            },
        )

    assert await terrain_client(handler).elevation_at(DENVER) == 1610.0
    assert requests[0].url.path == "/v4/mapbox.mapbox-terrain-v2/tilequery/-104.9903,39.7392.json"
    assert requests[0].url.params["layers"] == "contour"


async def test_no_contours_is_none():
    def handler(request):
        return httpx.Response(200, json={"type": "FeatureCollection", "features": []})

    assert await terrain_client(handler).elevation_at(DENVER) is None


async def test_http_error_is_none():
    def handler(request):
        return httpx.Response(500)

    assert await terrain_client(handler).elevation_at(DENVER) is None
