import logging
import re

from map_assistant.agent.extraction import ExtractionAgent, Verdict, user_turn
from map_assistant.agent.state import ExtractionResult, ExtractionState
from map_assistant.exceptions import CollaboratorError, NoCoordinatesError
from map_assistant.schemas.geometry import Buffer, Coordinate
from map_assistant.schemas.query import QueryIntent
from map_assistant.utils.coordinate_parser import format_coordinates
from map_assistant.utils.geometry_builder import (
    cluster_nearby_centers,
    generate_circle,
    is_plausible_location,
)

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 5.0

_UNIT = r"(kilometers|kilometer|km|miles|mile|mi|meters|meter|m)\b"
# "163 km on dehradun, 234km on haldwani"
RADIUS_PAIR = re.compile(
    rf"(\d+(?:\.\d+)?)\s*{_UNIT}\s*(?:on|over|around|for)\s*([^,]+?)(?:,|and|\s*$)",
    re.IGNORECASE,
)
RADIUS = re.compile(rf"(\d+(?:\.\d+)?)\s*{_UNIT}", re.IGNORECASE)
LOCATION_PHRASE = re.compile(r"\b(?:on|over|around|for)\s+([^,]+?)(?:,|and|\s*$)", re.IGNORECASE)
NUMBER = re.compile(r"\d+(?:\.\d+)?")

PLAN_PROMPT = """Analyze this buffer query: "{user_text}"

Is this asking for a buffer around:
- A single location? (e.g. "10km buffer around Paris")
- Multiple locations? (e.g. "5km geofence around Delhi, Mumbai and Pune")

Respond with: "single" or "multiple"
"""

EXTRACT_SINGLE_PROMPT = """Extract the PRIMARY center coordinate for this buffer query:
User: "{user_text}"
AI Response: "{ai_text}"

Return ONLY the center coordinate in decimal format: lat,lon (not neighbourhoods or sub-locations)
"""

EXTRACT_MULTIPLE_PROMPT = """Extract ONLY the PRIMARY center coordinates for each location in this buffer query:
User: "{user_text}"
AI Response: "{ai_text}"

Return ONE coordinate per location (the main center, not neighbourhoods or sub-locations).
Return coordinates in decimal format: lat1,lon1 | lat2,lon2 | lat3,lon3
"""

REFINE_SINGLE_PROMPT = """From these coordinates: "{extracted_text}"
Extract ONLY the primary center coordinate for "{user_text}"
Return a single coordinate: lat,lon
"""

REFINE_MULTIPLE_PROMPT = """From these coordinates: "{extracted_text}"
Keep ONE center coordinate per location named in "{user_text}"
Return: lat1,lon1 | lat2,lon2
"""

RADIUS_PROMPT = """Extract the radius for this buffer query:
User: "{user_text}"

Return ONLY the numeric value in kilometers (e.g. "10" for 10km).
If no radius is specified, return "5".
"""


def to_km(value: float, unit: str) -> float:
    unit = unit.lower()
    if unit in ("mile", "miles", "mi"):
        return value * 1.60934
    if unit in ("m", "meter", "meters"):
        return value / 1000
    return value


def paired_radii(text: str) -> list[float]:
    """Radii stated per place ("10km on Delhi, 20km on Pune"), in order."""
    return [to_km(float(m.group(1)), m.group(2)) for m in RADIUS_PAIR.finditer(text)]


def find_radius(text: str) -> float | None:
    match = RADIUS.search(text)
    if match is None:
        return None
    return to_km(float(match.group(1)), match.group(2))


def expected_locations(text: str) -> int:
    return max(1, len(LOCATION_PHRASE.findall(text)))


def selected_anchor(state: ExtractionState) -> Coordinate | None:
    session = state.get("session")
    if session is None or session.selected_feature is None:
        return None
    return session.selected_feature.anchor()


class BufferAgent(ExtractionAgent):
    """Circular buffers around one or more centers.

    A selected map feature provides the center directly. Otherwise centers
    are extracted from text, filtered for artifacts and clustered when the
    model returned more centers than the query names places.
    """

    intent = QueryIntent.BUFFER

    def needs_plan(self, state: ExtractionState) -> bool:
        return selected_anchor(state) is None

    def plan_prompt(self, state: ExtractionState) -> str:
        return PLAN_PROMPT.format(user_text=state["user_text"])

    def preset_extraction(self, state: ExtractionState) -> str | None:
        anchor = selected_anchor(state)
        if anchor is None:
            return None
        logger.info("Using selected %s at %s as center", state["session"].selected_feature.type, anchor)
        return format_coordinates([anchor])

    def accepts_answer(self, count: int, multiple: bool) -> bool:
        return count >= 2 if multiple else count == 1

    def extract_prompt(self, state: ExtractionState) -> str:
        template = EXTRACT_MULTIPLE_PROMPT if state["multiple"] else EXTRACT_SINGLE_PROMPT
        return template.format(user_text=state["user_text"], ai_text=state["ai_text"])

    def reflect_locally(self, state: ExtractionState, count: int) -> tuple[Verdict, dict]:
        if state.get("reused"):
            return Verdict.GOOD, {}
        if count == 0:
            return Verdict.REFINE, {}
        if not state["multiple"] and count > 1:
            return Verdict.REFINE, {}
        if count > 1 and "|" not in state["extracted_text"]:
            return Verdict.REFINE, {}
        return Verdict.GOOD, {}

    def refine_prompt(self, state: ExtractionState) -> str:
        template = REFINE_MULTIPLE_PROMPT if state["multiple"] else REFINE_SINGLE_PROMPT
        return template.format(extracted_text=state["extracted_text"], user_text=state["user_text"])

    def resolve_centers(self, state: ExtractionState, result: ExtractionResult) -> list[Coordinate]:
        anchor = selected_anchor(state)
        if anchor is not None:
            return [anchor]

        centers = [c for c in result.coordinates if is_plausible_location(c)]
        if len(centers) < len(result.coordinates):
            logger.info("Discarded %d implausible centers", len(result.coordinates) - len(centers))

        expected = expected_locations(state["user_text"])
        if state["multiple"] and len(centers) > expected:
            clustered = cluster_nearby_centers(centers)
            logger.info("Clustered %d centers into %d (expected %d)", len(centers), len(clustered), expected)
            centers = clustered
        return centers

    async def ask_radius(self, state: ExtractionState) -> float:
        prompt = RADIUS_PROMPT.format(user_text=state["user_text"])
        try:
            answer = await self.complete(state, [user_turn(prompt)], stage="radius")
        except CollaboratorError as e:
            logger.warning("Radius lookup failed, using %s km: %s", DEFAULT_RADIUS_KM, e.message)
            return DEFAULT_RADIUS_KM
        match = NUMBER.search(answer)
        return float(match.group()) if match else DEFAULT_RADIUS_KM

    async def resolve_radii(self, state: ExtractionState, count: int) -> list[float]:
        text = state["user_text"]
        paired = paired_radii(text)
        if paired:
            # More centers than stated radii: the last radius repeats.
            return [paired[min(index, len(paired) - 1)] for index in range(count)]

        radius = find_radius(text)
        if radius is None:
            radius = await self.ask_radius(state)
        return [radius] * count

    async def build_geometries(self, state: ExtractionState, result: ExtractionResult) -> list[Buffer]:
        centers = self.resolve_centers(state, result)
        if not centers:
            raise NoCoordinatesError("No plausible buffer center")

        radii = await self.resolve_radii(state, len(centers))
        buffers = [
            Buffer(center=center, radius_km=radius, ring=generate_circle(center, radius))
            for center, radius in zip(centers, radii)
        ]
        state["tracker"].step("circle generation")
        return buffers
