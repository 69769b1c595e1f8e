"""Query API schemas."""

from geojson_pydantic import FeatureCollection
from pydantic import BaseModel

from map_assistant.agent.state import QueryOutcome, SelectedFeature
from map_assistant.schemas.geometry import Coordinate


class QueryRequestBody(BaseModel):
    """Schema for a request to the Query API."""

    session_id: str
    query: str
    ai_text: str | None = None
    user_position: Coordinate | None = None
    map_center: Coordinate | None = None


class QueryResponse(BaseModel):
    """Schema for the response from the Query API."""

    session_id: str
    outcome: QueryOutcome
    features: FeatureCollection


class SelectRequestBody(BaseModel):
    feature_id: str | None = None


class SelectResponse(BaseModel):
    session_id: str
    selected_feature: SelectedFeature | None = None


class ClearResponse(BaseModel):
    session_id: str
    cleared: int


class SessionClosedResponse(BaseModel):
    session_id: str
    closed: bool = True
