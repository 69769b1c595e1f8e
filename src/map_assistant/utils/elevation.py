"""Distance and elevation sampling along a line of ``(lon, lat)`` positions."""

import logging
import math
from collections.abc import Sequence

from map_assistant.schemas.geometry import Coordinate, ElevationSample, Position
from map_assistant.services.base import Terrain

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371
# Chunk points closer than this to the line end are replaced by the end point.
END_POINT_TOLERANCE_KM = 0.01
DUPLICATE_TOLERANCE_DEG = 0.0001


def haversine_km(start: Position, end: Position) -> float:
    lon1, lat1 = start[0], start[1]
    lon2, lat2 = end[0], end[1]
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def line_distance_km(positions: Sequence[Position]) -> float:
    return sum(haversine_km(a, b) for a, b in zip(positions, positions[1:]))


def point_along_line(positions: Sequence[Position], distance_km: float) -> Position:
    """Linearly interpolate the position ``distance_km`` from the line start.

    Distances past the end of the line return the last position.
    """
    travelled = 0.0
    for start, end in zip(positions, positions[1:]):
        segment = haversine_km(start, end)
        if travelled + segment >= distance_km:
            ratio = (distance_km - travelled) / segment if segment else 0.0
            return (
                start[0] + (end[0] - start[0]) * ratio,
                start[1] + (end[1] - start[1]) * ratio,
            )
        travelled += segment
    return tuple(positions[-1])


def line_chunk(positions: Sequence[Position], chunk_km: float = 1) -> list[list[Position]]:
    """Split a line into two-point segments of ``chunk_km`` length.

    Lines no longer than one chunk come back unchanged as a single chunk.
    """
    total = line_distance_km(positions)
    if total <= chunk_km:
        return [list(positions)]

    points: list[Position] = [tuple(positions[0])]
    distance = chunk_km
    while distance < total:
        points.append(point_along_line(positions, distance))
        distance += chunk_km

    last = tuple(positions[-1])
    if haversine_km(points[-1], last) > END_POINT_TOLERANCE_KM:
        points.append(last)

    return [[a, b] for a, b in zip(points, points[1:])]


async def sample_elevation_profile(
    positions: Sequence[Position],
    terrain: Terrain,
    chunk_km: float = 1,
) -> list[ElevationSample]:
    """Query ``terrain`` at the start of every chunk and at the line end.

    Points without terrain data are skipped. Samples are sorted by distance
    from the line start.
    """
    total = line_distance_km(positions)
    samples: list[ElevationSample] = []

    for index, chunk in enumerate(line_chunk(positions, chunk_km)):
        position = tuple(chunk[0])
        elevation = await terrain.elevation_at(Coordinate.from_position(position))
        if elevation is None:
            logger.debug("No terrain data at %s", position)
            continue
        samples.append(
            ElevationSample(position=position, elevation_m=elevation, distance_km=index * chunk_km)
        )

    last = tuple(positions[-1])
    already_sampled = any(
        abs(s.position[0] - last[0]) < DUPLICATE_TOLERANCE_DEG
        and abs(s.position[1] - last[1]) < DUPLICATE_TOLERANCE_DEG
        for s in samples
    )
    if not already_sampled:
        elevation = await terrain.elevation_at(Coordinate.from_position(last))
        if elevation is not None:
            samples.append(ElevationSample(position=last, elevation_m=elevation, distance_km=total))

    samples.sort(key=lambda sample: sample.distance_km)
    return samples
