"""Collaborator contracts consumed by the extraction agents."""

from collections.abc import Sequence
from typing import Literal, Protocol

from geojson_pydantic import FeatureCollection, LineString
from pydantic import BaseModel, Field, model_validator

from map_assistant.schemas.geometry import Coordinate, Geometry, TravelMode


class RouteResult(BaseModel):
    geometry: LineString
    distance_m: float
    duration_s: float


class IsochroneRequest(BaseModel):
    """Contours to compute around a center.

    Exactly one of ``contours_minutes`` and ``contours_meters`` is used. When
    both are given, minutes win.
    """

    mode: TravelMode = TravelMode.DRIVING
    contours_minutes: list[int] = Field(default_factory=list)
    contours_meters: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _require_contours(self) -> "IsochroneRequest":
        if not self.contours_minutes and not self.contours_meters:
            raise ValueError("Either contours_minutes or contours_meters must be provided")
        if self.contours_minutes and self.contours_meters:
            self.contours_meters = []
        return self

    @property
    def metric(self) -> Literal["time", "distance"]:
        return "time" if self.contours_minutes else "distance"

    @property
    def values(self) -> list[int]:
        return self.contours_minutes or self.contours_meters


class Routing(Protocol):
    async def route(self, coordinates: Sequence[Coordinate], mode: TravelMode) -> RouteResult | None: ...


class IsochroneService(Protocol):
    async def compute(self, center: Coordinate, request: IsochroneRequest) -> FeatureCollection | None: ...


class Terrain(Protocol):
    async def elevation_at(self, coordinate: Coordinate) -> float | None: ...


class MapRenderer(Protocol):
    def render(self, geometry: Geometry) -> None: ...
