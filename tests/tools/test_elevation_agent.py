import pytest

from fakes import FakeCompletion, FakeTerrain
from map_assistant.agent.state import SelectedLine, SelectedMarker, SessionContext
from map_assistant.tools import ElevationAgent


async def test_profile_along_the_selected_line(registry):
    completion = FakeCompletion()
    terrain = FakeTerrain()
    session = SessionContext(selected_feature=SelectedLine(name="line-1", coordinates=[(0.0, 0.0), (0.05, 0.0)]))
    agent = ElevationAgent(completion, terrain=terrain, renderer=registry)

    result = await agent.run("show elevation profile", "", session=session)

    assert result.success
    (profile,) = result.geometries
    assert profile.coordinates == [(0.0, 0.0), (0.05, 0.0)]
    assert profile.total_distance_km == pytest.approx(5.5597, abs=1e-3)
    assert len(profile.samples) == 7
    assert profile.samples[0].elevation_m == 0
    assert completion.calls == []
    assert list(registry.features()) == ["elevation-1"]


async def test_profile_along_coordinates_in_the_answer():
    agent = ElevationAgent(FakeCompletion(), terrain=FakeTerrain())

    result = await agent.run(
        "show elevation along route from Denver to Aspen",
        "Denver 39.7392,-104.9903 to Aspen 39.1911,-106.8175",
    )

    assert result.success
    assert result.geometries[0].coordinates == [(-104.9903, 39.7392), (-106.8175, 39.1911)]
    assert result.geometries[0].samples


async def test_selected_marker_is_not_a_line():
    session = SessionContext(selected_feature=SelectedMarker(coordinates=[(0.0, 0.0)]))
    agent = ElevationAgent(FakeCompletion(), terrain=FakeTerrain())

    result = await agent.run("show elevation profile", "", session=session)

    assert not result.success
    assert result.error == "InvalidGeometryError"


async def test_profile_without_terrain_has_no_samples():
    agent = ElevationAgent(FakeCompletion())

    result = await agent.run("elevation profile", "0.0,0.0 | 0.0,1.0")

    assert result.success
    assert result.geometries[0].samples == []
    assert result.geometries[0].total_distance_km == pytest.approx(111.195, abs=0.01)
