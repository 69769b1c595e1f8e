import logging
import re

from map_assistant.agent.extraction import ExtractionAgent, Verdict
from map_assistant.agent.llms import TextCompletion
from map_assistant.agent.state import ExtractionResult, ExtractionState
from map_assistant.schemas.geometry import Geometry, Line, Marker
from map_assistant.schemas.query import QueryIntent, QuerySubtype, QueryType
from map_assistant.services.base import MapRenderer, Routing
from map_assistant.services.directions import detect_transport_mode, needs_routing

logger = logging.getLogger(__name__)

CHAIN_KEYWORDS = ("through", "via", "path", "chain", "sequence", "waypoints", "waypoint")
AND_OTHER = re.compile(r"\band\s+(\d+|ten|x)\s+other", re.IGNORECASE)

PLAN_PROMPT = """Analyze this query: "{user_text}"

Rules:
- If the query mentions "through", "via", "path", "chain", "sequence", "waypoints" -> MULTIPLE
- If the query mentions "and X other" or "and 10 other" -> MULTIPLE
- If the query lists 3+ location names separated by commas -> MULTIPLE
- If the query says "between A and B" or "from X to Y" (only 2 locations) -> TWO

Has chain keywords: {has_chain}
Has "and X other": {has_and_other}
Estimated locations: {location_count}

Respond with: "two" or "multiple"
"""

EXTRACT_TWO_PROMPT = """Extract ONLY the START and END coordinates for this route query: "{user_text}"
AI Response: "{ai_text}"

Return the two endpoint coordinates in decimal format: lat1,lon1 | lat2,lon2 (start to end)
"""

EXTRACT_MULTIPLE_PROMPT = """Extract coordinates for the locations in this query: "{user_text}"
AI Response: "{ai_text}"

Extract coordinates in the ORDER they should be connected.
Return coordinates in decimal format: lat1,lon1 | lat2,lon2 | lat3,lon3 (in order)
"""

REFINE_TWO_PROMPT = """From these coordinates: "{extracted_text}"
Extract ONLY the TWO endpoint coordinates in route order
Return: lat1,lon1 | lat2,lon2 (start to end)
"""

REFINE_MULTIPLE_PROMPT = """From these coordinates: "{extracted_text}"
Clean and order ALL coordinates in route order (do not reduce to just 2)
Return: lat1,lon1 | lat2,lon2 | lat3,lon3 | ... (all in order)
"""


def has_chain_cues(text: str) -> bool:
    """Whether the text names a chain of places rather than two endpoints."""
    query = text.lower()
    return (
        any(keyword in query for keyword in CHAIN_KEYWORDS)
        or bool(AND_OTHER.search(query))
        or query.count(",") + 1 >= 3
    )


class LineAgent(ExtractionAgent):
    """Straight lines or road-snapped routes between two or more places.

    Route geometry comes from the routing collaborator; if it fails the
    waypoints are drawn as a direct line.
    """

    intent = QueryIntent.LINE

    def __init__(
        self,
        completion: TextCompletion,
        routing: Routing | None = None,
        renderer: MapRenderer | None = None,
    ):
        super().__init__(completion, renderer)
        self.routing = routing

    def plan_prompt(self, state: ExtractionState) -> str:
        query = state["user_text"]
        return PLAN_PROMPT.format(
            user_text=query,
            has_chain=any(keyword in query.lower() for keyword in CHAIN_KEYWORDS),
            has_and_other=bool(AND_OTHER.search(query)),
            location_count=query.count(",") + 1,
        )

    def interpret_plan(self, answer: str) -> bool:
        return "two" not in answer.lower()

    def multiple_from_query_type(self, query_type: QueryType) -> bool:
        return query_type.subtype not in (QuerySubtype.ROUTE_SINGLE, QuerySubtype.DIRECT_SINGLE)

    def after_plan(self, state: ExtractionState, multiple: bool) -> bool:
        return multiple or has_chain_cues(state["user_text"])

    def accepts_answer(self, count: int, multiple: bool) -> bool:
        return count >= 2 if multiple else count == 2

    def extract_prompt(self, state: ExtractionState) -> str:
        template = EXTRACT_MULTIPLE_PROMPT if state["multiple"] else EXTRACT_TWO_PROMPT
        return template.format(user_text=state["user_text"], ai_text=state["ai_text"])

    def reflect_locally(self, state: ExtractionState, count: int) -> tuple[Verdict, dict]:
        # Chain cues already forced multiple in PLAN, so extra points here are noise.
        if not state["multiple"] and count > 2:
            return Verdict.REFINE, {}
        if count < 2:
            return Verdict.REFINE, {}
        if "|" not in state["extracted_text"]:
            return Verdict.REFINE, {}
        return Verdict.GOOD, {}

    def refine_prompt(self, state: ExtractionState) -> str:
        template = REFINE_MULTIPLE_PROMPT if state["multiple"] else REFINE_TWO_PROMPT
        return template.format(extracted_text=state["extracted_text"])

    def wants_route(self, state: ExtractionState) -> bool:
        query_type = state.get("query_type")
        if query_type is not None:
            return query_type.is_route
        return needs_routing(state["user_text"])

    async def build_geometries(self, state: ExtractionState, result: ExtractionResult) -> list[Geometry]:
        coordinates = result.coordinates
        if len(coordinates) == 1:
            logger.info("Single coordinate for a line; showing a marker instead")
            return [Marker(coordinate=coordinates[0])]

        positions = [c.position for c in coordinates]
        mode = detect_transport_mode(state["user_text"])
        if not self.wants_route(state) or self.routing is None:
            return [Line(coordinates=positions, waypoints=coordinates)]

        try:
            route = await self.routing.route(coordinates, mode)
        except Exception as e:
            logger.warning("Routing failed, drawing a direct line: %r", e)
            route = None

        cancellation = state.get("cancellation")
        if cancellation is not None:
            cancellation.raise_if_cancelled()

        if route is None:
            return [Line(coordinates=positions, waypoints=coordinates, mode=mode)]

        state["tracker"].step("routing")
        return [
            Line(
                coordinates=[tuple(p[:2]) for p in route.geometry.coordinates],
                is_route=True,
                waypoints=coordinates,
                mode=mode,
                distance_m=route.distance_m,
                duration_s=route.duration_s,
            )
        ]
