import logging

from shapely.geometry import Polygon as ShapelyPolygon
from shapely.validation import explain_validity

from map_assistant.agent.extraction import ExtractionAgent, Verdict
from map_assistant.agent.state import ExtractionResult, ExtractionState
from map_assistant.schemas.geometry import Coordinate, Polygon
from map_assistant.schemas.query import QueryIntent
from map_assistant.utils.coordinate_parser import RING_SEPARATOR, parse_coordinates, split_rings
from map_assistant.utils.geometry_builder import close_polygon, distinct_vertex_count

logger = logging.getLogger(__name__)

MIN_RING_VERTICES = 3

PLAN_PROMPT = """Analyze this query: "{user_text}"

Is this asking for:
- A single polygon? (e.g. "draw polygon around Manhattan", "show Delhi boundary")
- Multiple polygons? (e.g. "polygons for Delhi, Mumbai, Bangalore")

Respond with: "single" or "multiple"
"""

EXTRACT_SINGLE_PROMPT = """Extract polygon boundary coordinates for this query: "{user_text}"
AI Response: "{ai_text}"

Extract the boundary coordinates that form a closed polygon.
Return coordinates in decimal format: lat1,lon1 | lat2,lon2 | lat3,lon3 | ... (at least 3 points)
"""

EXTRACT_MULTIPLE_PROMPT = """Extract polygon boundary coordinates for each location in this query: "{user_text}"
AI Response: "{ai_text}"

For each location, extract the boundary coordinates that form a closed polygon.
Return coordinates in decimal format: lat1,lon1 | lat2,lon2 | lat3,lon3 | ...
Separate polygons with ||. Each polygon needs at least 3 points.
"""

REFLECT_PROMPT = """You extracted polygon coordinates: "{extracted_text}"

Extracted {count} coordinates.
Query: "{user_text}"

Evaluate:
- Are there enough coordinates? (at least 3 points per polygon)
- Is the format correct? (lat,lon separated by |, polygons separated by ||)

Respond with: "good" if quality is acceptable, or "refine" if it needs improvement
"""

REFINE_SINGLE_PROMPT = """From these coordinates: "{extracted_text}"
Clean and format the polygon boundary coordinates.
Ensure at least 3 points forming a closed shape.
Return: lat1,lon1 | lat2,lon2 | lat3,lon3 | ...
"""

REFINE_MULTIPLE_PROMPT = """From these coordinates: "{extracted_text}"
Clean and format the polygon boundaries for each location.
Each polygon needs at least 3 points and forms a closed shape.
Return: lat1,lon1 | lat2,lon2 | lat3,lon3 | ... and separate polygons with ||
"""


def build_ring(coordinates: list[Coordinate]) -> list[tuple[float, float]] | None:
    """Closed ring from parsed coordinates, or None with fewer than 3 distinct vertices."""
    ring = close_polygon([c.position for c in coordinates])
    if distinct_vertex_count(ring) < MIN_RING_VERTICES:
        return None
    shape = ShapelyPolygon(ring)
    if not shape.is_valid:
        logger.warning("Polygon ring is not valid: %s", explain_validity(shape))
    return ring


class PolygonAgent(ExtractionAgent):
    """Closed polygon rings, one per place when several are named."""

    intent = QueryIntent.POLYGON

    def plan_prompt(self, state: ExtractionState) -> str:
        return PLAN_PROMPT.format(user_text=state["user_text"])

    def interpret_plan(self, answer: str) -> bool:
        return "multiple" in answer.lower()

    def after_plan(self, state: ExtractionState, multiple: bool) -> bool:
        if state.get("query_type") is not None:
            return multiple
        query = state["user_text"].lower()
        named_several = query.count(",") + 1 >= 2 or " and " in f" {query} "
        return multiple or named_several

    def accepts_answer(self, count: int, multiple: bool) -> bool:
        return count >= MIN_RING_VERTICES

    def extract_prompt(self, state: ExtractionState) -> str:
        template = EXTRACT_MULTIPLE_PROMPT if state["multiple"] else EXTRACT_SINGLE_PROMPT
        return template.format(user_text=state["user_text"], ai_text=state["ai_text"])

    def reflect_locally(self, state: ExtractionState, count: int) -> tuple[Verdict, dict]:
        text = state["extracted_text"]
        if count < MIN_RING_VERTICES or "|" not in text:
            return Verdict.REFINE, {}
        if state["multiple"] and RING_SEPARATOR not in text:
            return Verdict.UNSURE, {}
        return Verdict.GOOD, {}

    def reflect_prompt(self, state: ExtractionState, count: int) -> str:
        return REFLECT_PROMPT.format(
            extracted_text=state["extracted_text"], count=count, user_text=state["user_text"]
        )

    def refine_prompt(self, state: ExtractionState) -> str:
        template = REFINE_MULTIPLE_PROMPT if state["multiple"] else REFINE_SINGLE_PROMPT
        return template.format(extracted_text=state["extracted_text"])

    async def build_geometries(self, state: ExtractionState, result: ExtractionResult) -> list[Polygon]:
        text = state["extracted_text"]
        if state["multiple"] and RING_SEPARATOR in text:
            groups = [list(parse_coordinates(part)) for part in split_rings(text)]
            names = [f"Polygon {index}" for index in range(1, len(groups) + 1)]
        else:
            groups = [result.coordinates]
            names = ["Polygon"]

        polygons = []
        for name, coordinates in zip(names, groups):
            ring = build_ring(coordinates)
            if ring is None:
                logger.warning("Dropping %s: fewer than %d distinct vertices", name, MIN_RING_VERTICES)
                continue
            polygons.append(Polygon(ring=ring, name=name))
        return polygons
