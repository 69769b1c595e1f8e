"""Query classification schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class QueryIntent(str, Enum):
    POINT = "point"
    LINE = "line"
    BUFFER = "buffer"
    POLYGON = "polygon"
    ISOCHRONE = "isochrone"
    ELEVATION = "elevation"


class QuerySubtype(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"
    ROUTE_SINGLE = "route-single"
    ROUTE_MULTI = "route-multi"
    DIRECT_SINGLE = "direct-single"
    DIRECT_MULTI = "direct-multi"


class QueryType(BaseModel):
    """Intent and cardinality of one user utterance."""

    model_config = ConfigDict(frozen=True)

    intent: QueryIntent
    subtype: QuerySubtype

    @property
    def is_route(self) -> bool:
        return self.subtype in (QuerySubtype.ROUTE_SINGLE, QuerySubtype.ROUTE_MULTI)

    @property
    def is_multiple(self) -> bool:
        return self.subtype in (
            QuerySubtype.MULTIPLE,
            QuerySubtype.ROUTE_MULTI,
            QuerySubtype.DIRECT_MULTI,
        )

    def __str__(self) -> str:
        return f"{self.intent.value}/{self.subtype.value}"
