"""State schemas for the map-assistant extraction agents."""

from typing import Annotated, Any, Literal, TypedDict, Union

from pydantic import BaseModel, ConfigDict, Field

from map_assistant.schemas.geometry import Coordinate, Geometry, Position
from map_assistant.schemas.query import QueryIntent, QueryType


def _center_position(center: Position | dict[str, float]) -> Position | None:
    if isinstance(center, dict):
        lon = center.get("lng", center.get("lon"))
        lat = center.get("lat")
        if lon is None or lat is None:
            return None
        return (lon, lat)
    return center


class SelectedMarker(BaseModel):
    type: Literal["marker"] = "marker"
    name: str = ""
    coordinates: list[Position]

    def anchor(self) -> Coordinate | None:
        if not self.coordinates:
            return None
        return Coordinate.from_position(self.coordinates[0])


class SelectedLine(BaseModel):
    type: Literal["line"] = "line"
    name: str = ""
    coordinates: list[Position]

    def anchor(self) -> Coordinate | None:
        """Middle vertex of the line."""
        if not self.coordinates:
            return None
        return Coordinate.from_position(self.coordinates[len(self.coordinates) // 2])


class SelectedPolygon(BaseModel):
    type: Literal["polygon"] = "polygon"
    name: str = ""
    coordinates: list[Position]

    def anchor(self) -> Coordinate | None:
        if not self.coordinates:
            return None
        return Coordinate.from_position(self.coordinates[0])


class SelectedBuffer(BaseModel):
    type: Literal["buffer"] = "buffer"
    name: str = ""
    coordinates: Position | dict[str, float] = Field(
        description="Center as [lon, lat] or as an object with lng/lon and lat keys",
    )

    def anchor(self) -> Coordinate | None:
        position = _center_position(self.coordinates)
        return Coordinate.from_position(position) if position else None


class SelectedIsochrone(SelectedBuffer):
    type: Literal["isochrone"] = "isochrone"


SelectedFeature = Annotated[
    Union[SelectedMarker, SelectedLine, SelectedPolygon, SelectedBuffer, SelectedIsochrone],
    Field(discriminator="type"),
]


class SessionContext(BaseModel):
    """Per-session inputs read at the start of an invocation.

    The agents never mutate it; selection changes produce a new copy.
    """

    model_config = ConfigDict(frozen=True)

    selected_feature: SelectedFeature | None = None
    user_position: Coordinate | None = None
    map_center: Coordinate | None = None


class ExtractionState(TypedDict, total=False):
    user_text: str
    ai_text: str
    query_type: QueryType | None
    session: SessionContext
    cancellation: Any
    renderer: Any
    tracker: Any
    multiple: bool
    history: list[dict[str, str]]
    extracted_text: str
    reused: bool
    needs_refinement: bool
    confidence_checked: bool
    refined: bool
    geometries: list[Geometry]


class ExtractionResult(BaseModel):
    coordinates: list[Coordinate]
    confidence_checked: bool = False
    refined: bool = False


class AgentResult(BaseModel):
    success: bool
    intent: QueryIntent
    geometries: list[Geometry] = Field(default_factory=list)
    error: str | None = None
    message: str | None = None
    refined: bool = False
    cancelled: bool = False


class QueryOutcome(BaseModel):
    query_type: QueryType | None = None
    answer: str = ""
    result: AgentResult | None = None
    cancelled: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.result is not None and self.result.success
