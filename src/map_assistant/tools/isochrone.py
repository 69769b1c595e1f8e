import logging

from map_assistant.agent.extraction import BaseAgent, user_turn
from map_assistant.agent.llms import TextCompletion
from map_assistant.agent.state import ExtractionState
from map_assistant.exceptions import CollaboratorError, NoCoordinatesError
from map_assistant.schemas.geometry import Coordinate, IsochroneSet
from map_assistant.schemas.query import QueryIntent
from map_assistant.services.base import IsochroneRequest, IsochroneService, MapRenderer
from map_assistant.services.directions import detect_transport_mode
from map_assistant.services.isochrone import extract_distance_values, extract_time_values
from map_assistant.utils.coordinate_parser import parse_coordinates

logger = logging.getLogger(__name__)

CENTER_PROMPT = """Extract the center location from this query:
User: "{user_text}"
AI Response: "{ai_text}"

Return ONLY the coordinates in decimal format: lat,lon
No text, no explanations, no citations.
If the location is "here" or "current location", return "here"
"""


def is_here(answer: str) -> bool:
    answer = answer.lower().strip()
    return answer == "here" or "current location" in answer


class IsochroneAgent(BaseAgent):
    """Travel-time or travel-distance contours around one center.

    No refinement loop: one completion for the center, then contour values
    straight from the text.
    """

    intent = QueryIntent.ISOCHRONE

    def __init__(
        self,
        completion: TextCompletion,
        isochrones: IsochroneService | None = None,
        renderer: MapRenderer | None = None,
    ):
        super().__init__(completion, renderer)
        self.isochrones = isochrones

    async def resolve_center(self, state: ExtractionState) -> Coordinate:
        prompt = CENTER_PROMPT.format(user_text=state["user_text"], ai_text=state["ai_text"])
        answer = await self.complete(state, [user_turn(prompt)], stage="center")

        if is_here(answer):
            session = state["session"]
            center = session.user_position or session.map_center
            if center is None:
                raise NoCoordinatesError("Current location requested but no position is known", stage="center")
            logger.info("Using current location %s", center)
            return center

        for text in (answer, state["user_text"], state["ai_text"]):
            found = parse_coordinates(text)
            if found:
                return found.coordinates[0]
        raise NoCoordinatesError("Could not extract the isochrone center", stage="center")

    def contour_request(self, state: ExtractionState) -> IsochroneRequest:
        combined = f"{state['user_text']} {state['ai_text']}".lower()
        minutes = extract_time_values(combined)
        meters = extract_distance_values(combined)
        if not minutes and not meters:
            raise NoCoordinatesError("Could not extract time or distance values", stage="contours")
        if minutes and meters:
            logger.warning("Both time %s and distance %s found; using time", minutes, meters)
            meters = []
        return IsochroneRequest(
            mode=detect_transport_mode(state["user_text"]),
            contours_minutes=minutes,
            contours_meters=meters,
        )

    async def execute(self, state: ExtractionState) -> ExtractionState:
        center = await self.resolve_center(state)
        request = self.contour_request(state)
        logger.info("Isochrone at %s: %s %s (%s)", center, request.values, request.metric, request.mode.value)

        if self.isochrones is None:
            raise CollaboratorError("No isochrone service configured", stage="isochrone")
        try:
            contours = await self.isochrones.compute(center, request)
        except Exception as e:
            raise CollaboratorError(f"Isochrone request failed: {e}", stage="isochrone") from e
        if contours is None:
            raise CollaboratorError("Failed to get isochrone data", stage="isochrone")
        state["tracker"].step("isochrone")

        geometries = [
            IsochroneSet(
                center=center,
                mode=request.mode,
                metric=request.metric,
                values=request.values,
                contours=list(contours.features),
            )
        ]
        self.render(state, geometries)
        return {**state, "geometries": geometries}
