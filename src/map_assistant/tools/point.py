import logging

from map_assistant.agent.extraction import ExtractionAgent, Verdict
from map_assistant.agent.state import ExtractionResult, ExtractionState
from map_assistant.schemas.geometry import Marker
from map_assistant.schemas.query import QueryIntent

logger = logging.getLogger(__name__)

PLAN_PROMPT = """Analyze this query: "{user_text}"

Is this asking for:
- A single specific location? (e.g. "where is Dubai", "take me to London")
- Multiple locations? (e.g. "top 10 places", "list locations")

Respond with: "single" or "multiple"
"""

EXTRACT_PROMPT = """Extract coordinates for the locations mentioned here:
User: "{user_text}"
AI Response: "{ai_text}"

Return all coordinates found in decimal format: lat,lon | lat,lon
"""

REFLECT_PROMPT = """You extracted coordinates: "{extracted_text}"

For a {cardinality} location query: "{user_text}"

Evaluate:
- Are there too many coordinates? ({expected})
- Is the format correct? (lat,lon separated by |)

Respond with: "good" if quality is acceptable, or "refine" if it needs improvement
"""

REFINE_SINGLE_PROMPT = """From these coordinates: "{extracted_text}"
Extract ONLY the primary coordinate for "{user_text}"
Return a single coordinate: lat,lon
"""

REFINE_MULTIPLE_PROMPT = """From these coordinates: "{extracted_text}"
Clean and format all coordinates properly
Return: lat1,lon1 | lat2,lon2
"""


class PointAgent(ExtractionAgent):
    """Markers for one place or for a list of places."""

    intent = QueryIntent.POINT

    def plan_prompt(self, state: ExtractionState) -> str:
        return PLAN_PROMPT.format(user_text=state["user_text"])

    def accepts_answer(self, count: int, multiple: bool) -> bool:
        return count >= 2 if multiple else count == 1

    def extract_prompt(self, state: ExtractionState) -> str:
        return EXTRACT_PROMPT.format(user_text=state["user_text"], ai_text=state["ai_text"])

    def reflect_locally(self, state: ExtractionState, count: int) -> tuple[Verdict, dict]:
        multiple = state["multiple"]
        if count == 0:
            return Verdict.REFINE, {}
        if not multiple and count > 1:
            return Verdict.REFINE, {}
        if multiple and count == 1 and "multiple" in state["user_text"].lower():
            return Verdict.REFINE, {}
        if count > 1 and "|" not in state["extracted_text"]:
            return Verdict.REFINE, {}
        if state.get("reused") or (not multiple and count == 1):
            return Verdict.GOOD, {}
        return Verdict.UNSURE, {}

    def reflect_prompt(self, state: ExtractionState, count: int) -> str:
        multiple = state["multiple"]
        return REFLECT_PROMPT.format(
            extracted_text=state["extracted_text"],
            cardinality="MULTIPLE" if multiple else "SINGLE",
            user_text=state["user_text"],
            expected="should match the number of locations" if multiple else "should be 1 coordinate only",
        )

    def refine_prompt(self, state: ExtractionState) -> str:
        template = REFINE_MULTIPLE_PROMPT if state["multiple"] else REFINE_SINGLE_PROMPT
        return template.format(extracted_text=state["extracted_text"], user_text=state["user_text"])

    async def build_geometries(self, state: ExtractionState, result: ExtractionResult) -> list[Marker]:
        return [Marker(coordinate=coordinate) for coordinate in result.coordinates]
