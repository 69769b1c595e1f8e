"""Coordinate and map geometry schemas.

Coordinates are stored latitude first, as they appear in extracted text.
Vertices of lines and rings are stored as ``(lon, lat)`` positions, the order
used by GeoJSON and by the rendering surface.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from geojson_pydantic import Feature
from geojson_pydantic import LineString as GeoJSONLineString
from geojson_pydantic import Point as GeoJSONPoint
from geojson_pydantic import Polygon as GeoJSONPolygon
from pydantic import BaseModel, ConfigDict, Field

Position = tuple[float, float]


class TravelMode(str, Enum):
    DRIVING = "driving"
    WALKING = "walking"
    CYCLING = "cycling"


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)

    @property
    def position(self) -> Position:
        return (self.lon, self.lat)

    @classmethod
    def from_position(cls, position: Position) -> "Coordinate":
        lon, lat = position[0], position[1]
        return cls(lat=lat, lon=lon)

    def __str__(self) -> str:
        return f"{self.lat},{self.lon}"


def _point_feature(position: Position, properties: dict) -> Feature:
    return Feature(
        type="Feature",
        geometry=GeoJSONPoint(type="Point", coordinates=position),
        properties=properties,
    )


def _polygon_feature(ring: list[Position], properties: dict) -> Feature:
    return Feature(
        type="Feature",
        geometry=GeoJSONPolygon(type="Polygon", coordinates=[ring]),
        properties=properties,
    )


class Marker(BaseModel):
    kind: Literal["marker"] = "marker"
    coordinate: Coordinate
    label: str | None = None

    def to_features(self) -> list[Feature]:
        return [_point_feature(self.coordinate.position, {"kind": self.kind, "label": self.label})]


class Line(BaseModel):
    kind: Literal["line"] = "line"
    coordinates: list[Position]
    is_route: bool = False
    waypoints: list[Coordinate] = Field(default_factory=list)
    mode: TravelMode | None = None
    distance_m: float | None = None
    duration_s: float | None = None

    def to_features(self) -> list[Feature]:
        return [
            Feature(
                type="Feature",
                geometry=GeoJSONLineString(type="LineString", coordinates=self.coordinates),
                properties={
                    "kind": self.kind,
                    "is_route": self.is_route,
                    "mode": self.mode.value if self.mode else None,
                    "distance_m": self.distance_m,
                    "duration_s": self.duration_s,
                },
            )
        ]


class Buffer(BaseModel):
    kind: Literal["buffer"] = "buffer"
    center: Coordinate
    radius_km: float
    ring: list[Position]

    def to_features(self) -> list[Feature]:
        return [
            _polygon_feature(
                self.ring,
                {"kind": self.kind, "radius_km": self.radius_km, "center": list(self.center.position)},
            )
        ]


class Polygon(BaseModel):
    kind: Literal["polygon"] = "polygon"
    ring: list[Position]
    name: str = "Polygon"

    def to_features(self) -> list[Feature]:
        return [_polygon_feature(self.ring, {"kind": self.kind, "name": self.name})]


class IsochroneSet(BaseModel):
    kind: Literal["isochrone"] = "isochrone"
    center: Coordinate
    mode: TravelMode
    metric: Literal["time", "distance"]
    values: list[int]
    contours: list[Feature] = Field(default_factory=list)

    def to_features(self) -> list[Feature]:
        center = _point_feature(self.center.position, {"kind": self.kind, "role": "center"})
        return [*self.contours, center]


class ElevationSample(BaseModel):
    position: Position
    elevation_m: float
    distance_km: float


class ElevationProfile(BaseModel):
    kind: Literal["elevation"] = "elevation"
    coordinates: list[Position]
    samples: list[ElevationSample] = Field(default_factory=list)
    total_distance_km: float = 0.0

    def to_features(self) -> list[Feature]:
        return [
            Feature(
                type="Feature",
                geometry=GeoJSONLineString(type="LineString", coordinates=self.coordinates),
                properties={
                    "kind": self.kind,
                    "total_distance_km": self.total_distance_km,
                    "samples": [sample.model_dump() for sample in self.samples],
                },
            )
        ]


Geometry = Annotated[
    Union[Marker, Line, Buffer, Polygon, IsochroneSet, ElevationProfile],
    Field(discriminator="kind"),
]

GeometryKind = Literal["marker", "line", "buffer", "polygon", "isochrone", "elevation"]
