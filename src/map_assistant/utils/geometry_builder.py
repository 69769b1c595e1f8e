"""Numeric geometry helpers for buffers, polygons and center clustering."""

import math
from collections.abc import Iterable, Sequence

import numpy as np

from map_assistant.schemas.geometry import Coordinate, Position

KM_PER_DEGREE = 111
DEFAULT_CIRCLE_POINTS = 64
CLUSTER_TOLERANCE_DEG = 0.5


def generate_circle(
    center: Coordinate,
    radius_km: float,
    num_points: int = DEFAULT_CIRCLE_POINTS,
) -> list[Position]:
    """Approximate a circle around ``center`` as a closed ring of positions.

    Degree offsets use 111 km per degree of latitude and scale longitude by
    ``cos(lat)``. The ring has ``num_points + 1`` vertices and the last angle
    wraps to zero, so the first and last vertices are identical.

    Args:
        center: Circle center.
        radius_km: Radius in kilometres.
        num_points: Number of segments.

    Returns:
        ``(lon, lat)`` positions, ready for a GeoJSON polygon ring.
    """
    lat_offset = radius_km / KM_PER_DEGREE
    lon_offset = radius_km / (KM_PER_DEGREE * math.cos(math.radians(center.lat)))

    angles = (np.arange(num_points + 1) % num_points) * (2 * np.pi / num_points)
    lats = center.lat + lat_offset * np.sin(angles)
    lons = center.lon + lon_offset * np.cos(angles)
    return [(float(lon), float(lat)) for lon, lat in zip(lons, lats)]


def close_polygon(ring: Sequence[Position]) -> list[Position]:
    """Append the first vertex unless the ring already ends on it."""
    closed = [tuple(vertex) for vertex in ring]
    if closed and closed[0] != closed[-1]:
        closed.append(closed[0])
    return closed


def distinct_vertex_count(ring: Iterable[Position]) -> int:
    return len({tuple(vertex) for vertex in ring})


def cluster_nearby_centers(
    centers: Sequence[Coordinate],
    tolerance_deg: float = CLUSTER_TOLERANCE_DEG,
) -> list[Coordinate]:
    """Collapse centers that fall in the same ``tolerance_deg`` box.

    Greedy single pass: each unclustered center absorbs every later center
    within the box and represents the cluster.
    """
    clustered: list[Coordinate] = []
    used: set[int] = set()
    for index, center in enumerate(centers):
        if index in used:
            continue
        used.add(index)
        for other_index, other in enumerate(centers):
            if other_index in used:
                continue
            if abs(center.lat - other.lat) < tolerance_deg and abs(center.lon - other.lon) < tolerance_deg:
                used.add(other_index)
        clustered.append(center)
    return clustered


def is_plausible_location(coordinate: Coordinate) -> bool:
    """Reject values that usually come from examples or code, not places.

    Exact ``(0, 0)`` and ``(1, 0)``, anything within 0.1 degrees of the
    origin on both axes, and latitudes beyond 85 degrees.
    """
    lat, lon = coordinate.lat, coordinate.lon
    if (lat, lon) in ((0, 0), (1, 0)):
        return False
    if abs(lat) < 0.1 and abs(lon) < 0.1:
        return False
    return abs(lat) <= 85
