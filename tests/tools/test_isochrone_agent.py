import logging

from fakes import FakeCompletion, FakeIsochrone, contour_collection
from map_assistant.agent.state import SessionContext
from map_assistant.schemas.geometry import Coordinate, TravelMode
from map_assistant.tools import IsochroneAgent

TIMES_SQUARE = Coordinate(lat=40.758, lon=-73.9855)


async def test_time_contours(registry):
    completion = FakeCompletion("40.758,-73.9855")
    isochrones = FakeIsochrone(contour_collection(15, 30, 45))
    agent = IsochroneAgent(completion, isochrones=isochrones, renderer=registry)

    result = await agent.run("15, 30, 45 min drive zone from Times Square", "Times Square is in Manhattan.")

    assert result.success
    (isochrone,) = result.geometries
    assert isochrone.center == TIMES_SQUARE
    assert isochrone.values == [15, 30, 45]
    assert isochrone.metric == "time"
    assert isochrone.mode is TravelMode.DRIVING
    assert len(isochrone.contours) == 3
    center, request = isochrones.calls[0]
    assert center == TIMES_SQUARE
    assert request.contours_minutes == [15, 30, 45]
    assert list(registry.features()) == ["isochrone-1"]
    # contours plus the center marker
    assert len(registry.to_feature_collection().features) == 4


async def test_distance_contours():
    isochrones = FakeIsochrone(contour_collection(1))
    agent = IsochroneAgent(FakeCompletion("40.758,-73.9855"), isochrones=isochrones)

    result = await agent.run("5 km walking area reachable from Times Square", "")

    assert result.success
    _, request = isochrones.calls[0]
    assert request.contours_meters == [5000]
    assert request.mode is TravelMode.WALKING
    assert result.geometries[0].metric == "distance"


async def test_here_uses_the_user_position():
    isochrones = FakeIsochrone(contour_collection(20))
    agent = IsochroneAgent(FakeCompletion("here"), isochrones=isochrones)
    session = SessionContext(user_position=TIMES_SQUARE, map_center=Coordinate(lat=0.0, lon=0.0))

    result = await agent.run("show 20 min walk zone from here", "", session=session)

    assert result.geometries[0].center == TIMES_SQUARE


async def test_here_falls_back_to_the_map_center():
    isochrones = FakeIsochrone(contour_collection(20))
    agent = IsochroneAgent(FakeCompletion("current location"), isochrones=isochrones)
    session = SessionContext(map_center=TIMES_SQUARE)

    result = await agent.run("show 20 min walk zone from my current location", "", session=session)

    assert result.geometries[0].center == TIMES_SQUARE


async def test_here_without_a_position_fails():
    isochrones = FakeIsochrone(contour_collection(20))
    agent = IsochroneAgent(FakeCompletion("here"), isochrones=isochrones)

    result = await agent.run("show 20 min walk zone from here", "")

    assert not result.success
    assert result.error == "NoCoordinatesError"
    assert isochrones.calls == []


async def test_center_falls_back_to_the_user_text():
    isochrones = FakeIsochrone(contour_collection(10))
    agent = IsochroneAgent(FakeCompletion("I am not sure."), isochrones=isochrones)

    result = await agent.run("10 min drive zone around 48.8566,2.3522", "")

    assert result.geometries[0].center == Coordinate(lat=48.8566, lon=2.3522)


async def test_missing_values_fail():
    agent = IsochroneAgent(FakeCompletion("40.758,-73.9855"), isochrones=FakeIsochrone(contour_collection(10)))

    result = await agent.run("isochrone around Times Square", "")

    assert not result.success
    assert result.error == "NoCoordinatesError"
    assert "time or distance" in result.message


async def test_service_failures_are_reported(registry):
    agent = IsochroneAgent(FakeCompletion("40.758,-73.9855"), isochrones=FakeIsochrone(None), renderer=registry)

    result = await agent.run("15 min drive zone", "")

    assert not result.success
    assert result.error == "CollaboratorError"
    assert len(registry) == 0


async def test_missing_service_is_reported():
    agent = IsochroneAgent(FakeCompletion("40.758,-73.9855"))

    result = await agent.run("15 min drive zone", "")

    assert result.error == "CollaboratorError"


async def test_time_wins_over_distance(caplog):
    isochrones = FakeIsochrone(contour_collection(15))
    agent = IsochroneAgent(FakeCompletion("40.758,-73.9855"), isochrones=isochrones)

    with caplog.at_level(logging.WARNING, logger="map_assistant.tools.isochrone"):
        result = await agent.run("15 min or 5 km from Times Square", "")

    assert result.success
    _, request = isochrones.calls[0]
    assert request.contours_minutes == [15]
    assert request.contours_meters == []
    assert result.geometries[0].metric == "time"
    assert "using time" in caplog.text
