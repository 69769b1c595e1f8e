import datetime
import logging

from map_assistant.agent.extraction import BaseAgent, user_turn
from map_assistant.agent.llms import TextCompletion, create_completion
from map_assistant.agent.state import QueryOutcome, SelectedLine, SessionContext
from map_assistant.exceptions import CollaboratorError, InvocationCancelled
from map_assistant.schemas.query import QueryIntent
from map_assistant.services.base import IsochroneService, MapRenderer, Routing, Terrain
from map_assistant.services.directions import MapboxDirections
from map_assistant.services.isochrone import MapboxIsochrone
from map_assistant.services.terrain import MapboxTerrain
from map_assistant.tools import (
    BufferAgent,
    ElevationAgent,
    IsochroneAgent,
    LineAgent,
    PointAgent,
    PolygonAgent,
)
from map_assistant.utils.query_classifier import is_elevation_query, match_rule
from map_assistant.utils.tracking import StepTracker

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are a helpful map assistant. Answer questions about places, routes and areas.

Whenever you mention a place, include its coordinates in decimal degrees as lat,lon
(for example 40.7128,-74.0060). When several places are involved, list them in the
order they should be visited or connected.

The current date and time is {now}.
"""


class MapAssistant:
    """Answer, classify and dispatch one user turn to the matching agent."""

    def __init__(
        self,
        completion: TextCompletion,
        renderer: MapRenderer | None = None,
        routing: Routing | None = None,
        isochrones: IsochroneService | None = None,
        terrain: Terrain | None = None,
    ):
        self.completion = completion
        self.renderer = renderer
        self.agents: dict[QueryIntent, BaseAgent] = {
            QueryIntent.POINT: PointAgent(completion, renderer=renderer),
            QueryIntent.LINE: LineAgent(completion, routing=routing, renderer=renderer),
            QueryIntent.BUFFER: BufferAgent(completion, renderer=renderer),
            QueryIntent.POLYGON: PolygonAgent(completion, renderer=renderer),
            QueryIntent.ISOCHRONE: IsochroneAgent(completion, isochrones=isochrones, renderer=renderer),
            QueryIntent.ELEVATION: ElevationAgent(completion, terrain=terrain, renderer=renderer),
        }

    async def answer(self, user_text: str, cancellation=None) -> str:
        system = SYSTEM_PROMPT.format(now=datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
        try:
            answer = await self.completion.complete(
                [{"role": "system", "content": system}, user_turn(user_text)]
            )
        except InvocationCancelled:
            raise
        except Exception as e:
            raise CollaboratorError(f"Initial answer failed: {e}", stage="answer") from e
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        return answer or ""

    async def handle(
        self,
        user_text: str,
        ai_text: str | None = None,
        session: SessionContext | None = None,
        cancellation=None,
        renderer: MapRenderer | None = None,
    ) -> QueryOutcome:
        session = session or SessionContext()
        tracker = StepTracker(label=user_text[:50])

        skip_answer = isinstance(session.selected_feature, SelectedLine) and is_elevation_query(user_text)
        if ai_text is None and skip_answer:
            logger.info("Elevation query on a selected line; skipping the initial answer")
            ai_text = ""
        elif ai_text is None:
            try:
                ai_text = await self.answer(user_text, cancellation)
            except InvocationCancelled:
                return QueryOutcome(cancelled=True)
            except CollaboratorError as e:
                logger.warning("No initial answer: %s", e.message)
                return QueryOutcome(error=e.message)
            tracker.step("initial answer")

        rule, query_type = match_rule(user_text, ai_text)
        logger.info("Query type: %s (rule %s)", query_type, rule)
        tracker.step("classification")

        result = await self.agents[query_type.intent].run(
            user_text,
            ai_text,
            query_type=query_type,
            session=session,
            cancellation=cancellation,
            renderer=renderer,
        )
        tracker.step(f"{query_type.intent.value} agent")
        tracker.end()
        return QueryOutcome(query_type=query_type, answer=ai_text, result=result, cancelled=result.cancelled)


def create_assistant(renderer: MapRenderer | None = None) -> MapAssistant:
    return MapAssistant(
        completion=create_completion(),
        renderer=renderer,
        routing=MapboxDirections(),
        isochrones=MapboxIsochrone(),
        terrain=MapboxTerrain(),
    )
