import pytest

from fakes import FakeTerrain
from map_assistant.utils.elevation import (
    haversine_km,
    line_chunk,
    line_distance_km,
    point_along_line,
    sample_elevation_profile,
)


def test_haversine_one_degree_of_latitude():
    assert haversine_km((0.0, 0.0), (0.0, 1.0)) == pytest.approx(111.195, abs=0.01)
    assert haversine_km((10.0, 20.0), (10.0, 20.0)) == 0


def test_line_distance_sums_segments():
    line = [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]

    assert line_distance_km(line) == pytest.approx(2 * 111.195, abs=0.02)


def test_point_along_line_interpolates_and_clamps():
    line = [(0.0, 0.0), (0.0, 1.0)]

    assert point_along_line(line, 111.195 / 2) == pytest.approx((0.0, 0.5), abs=1e-4)
    assert point_along_line(line, 500) == (0.0, 1.0)


def test_short_line_is_one_chunk():
    line = [(0.0, 0.0), (0.005, 0.0)]

    assert line_chunk(line) == [line]


def test_line_chunk_ends_at_line_end():
    line = [(0.0, 0.0), (0.05, 0.0)]

    chunks = line_chunk(line)

    assert len(chunks) == 6
    assert chunks[0][0] == (0.0, 0.0)
    assert chunks[-1][1] == (0.05, 0.0)
    for a, b in chunks[:-1]:
        assert haversine_km(a, b) == pytest.approx(1.0, abs=1e-3)


async def test_profile_samples_every_kilometre():
    terrain = FakeTerrain()

    samples = await sample_elevation_profile([(0.0, 0.0), (0.05, 0.0)], terrain)

    assert [s.distance_km for s in samples[:-1]] == [0, 1, 2, 3, 4, 5]
    assert samples[-1].distance_km == pytest.approx(5.5597, abs=1e-3)
    assert samples[-1].elevation_m == 50.0
    assert len(terrain.calls) == 7


async def test_short_profile_samples_both_ends():
    samples = await sample_elevation_profile([(0.0, 0.0), (0.005, 0.0)], FakeTerrain())

    assert [s.position for s in samples] == [(0.0, 0.0), (0.005, 0.0)]
    assert samples[0].distance_km == 0


class PatchyTerrain:
    async def elevation_at(self, coordinate):
        if coordinate.lon == 0:
            return None
        return 100.0


async def test_points_without_terrain_data_are_skipped():
    samples = await sample_elevation_profile([(0.0, 0.0), (0.005, 0.0)], PatchyTerrain())

    assert [s.position for s in samples] == [(0.005, 0.0)]
