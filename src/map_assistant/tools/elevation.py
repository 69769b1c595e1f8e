import logging

from map_assistant.agent.extraction import BaseAgent
from map_assistant.agent.llms import TextCompletion
from map_assistant.agent.state import ExtractionState, SelectedLine
from map_assistant.exceptions import InvalidGeometryError
from map_assistant.schemas.geometry import ElevationProfile, Position
from map_assistant.schemas.query import QueryIntent
from map_assistant.services.base import MapRenderer, Terrain
from map_assistant.utils.coordinate_parser import parse_coordinates
from map_assistant.utils.elevation import line_distance_km, sample_elevation_profile

logger = logging.getLogger(__name__)


def selected_line(state: ExtractionState) -> SelectedLine | None:
    session = state.get("session")
    feature = session.selected_feature if session is not None else None
    return feature if isinstance(feature, SelectedLine) else None


class ElevationAgent(BaseAgent):
    """Elevation profile along a selected line, or along the coordinates in the answer.

    Never calls the text completion collaborator.
    """

    intent = QueryIntent.ELEVATION

    def __init__(
        self,
        completion: TextCompletion,
        terrain: Terrain | None = None,
        renderer: MapRenderer | None = None,
    ):
        super().__init__(completion, renderer)
        self.terrain = terrain

    def line_positions(self, state: ExtractionState) -> list[Position]:
        line = selected_line(state)
        if line is not None:
            logger.info("Using selected line %r", line.name)
            return [tuple(position) for position in line.coordinates]
        return [c.position for c in parse_coordinates(state["ai_text"])]

    async def execute(self, state: ExtractionState) -> ExtractionState:
        positions = self.line_positions(state)
        if len(positions) < 2:
            raise InvalidGeometryError("An elevation profile needs at least 2 coordinates", stage="extract")

        samples = []
        if self.terrain is not None:
            samples = await sample_elevation_profile(positions, self.terrain)
            state["tracker"].step("elevation sampling")

        geometries = [
            ElevationProfile(
                coordinates=positions,
                samples=samples,
                total_distance_km=line_distance_km(positions),
            )
        ]
        self.render(state, geometries)
        return {**state, "geometries": geometries}
