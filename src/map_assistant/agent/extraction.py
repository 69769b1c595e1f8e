"""Shared template for the extraction agents.

Every agent turns ``(user text, AI answer)`` into map geometries and reports
the outcome as an ``AgentResult``. Agents that extract coordinates from text
follow the same loop, compiled as a langgraph ``StateGraph``::

    plan -> extract -> reflect -> [refine] -> validate

``refine`` runs at most once per invocation; whatever it returns goes to
``validate``.
"""

import logging
from collections.abc import Sequence
from enum import Enum

from langgraph.graph import END, START, StateGraph

from map_assistant.agent.llms import TextCompletion
from map_assistant.agent.state import (
    AgentResult,
    ExtractionResult,
    ExtractionState,
    SessionContext,
)
from map_assistant.exceptions import (
    CollaboratorError,
    ExtractionError,
    InvalidGeometryError,
    InvocationCancelled,
    NoCoordinatesError,
)
from map_assistant.schemas.geometry import Geometry
from map_assistant.schemas.query import QueryIntent, QueryType
from map_assistant.services.base import MapRenderer
from map_assistant.utils.coordinate_parser import ParseStatus, parse_coordinates
from map_assistant.utils.tracking import StepTracker

logger = logging.getLogger(__name__)


class Verdict(str, Enum):
    GOOD = "good"
    REFINE = "refine"
    UNSURE = "unsure"


def user_turn(content: str) -> dict[str, str]:
    return {"role": "user", "content": content}


def assistant_turn(content: str) -> dict[str, str]:
    return {"role": "assistant", "content": content}


def describe(geometries: Sequence[Geometry]) -> str:
    kinds: dict[str, int] = {}
    for geometry in geometries:
        kinds[geometry.kind] = kinds.get(geometry.kind, 0) + 1
    return "Rendered " + ", ".join(f"{count} {kind}" for kind, count in kinds.items())


class BaseAgent:
    """Error boundary shared by all agents.

    ``run`` never raises for agent failures: cancellation, extraction errors
    and unexpected exceptions all come back as a failed ``AgentResult``.
    """

    intent: QueryIntent

    def __init__(self, completion: TextCompletion, renderer: MapRenderer | None = None):
        self.completion = completion
        self.renderer = renderer

    async def run(
        self,
        user_text: str,
        ai_text: str = "",
        query_type: QueryType | None = None,
        session: SessionContext | None = None,
        cancellation=None,
        renderer: MapRenderer | None = None,
    ) -> AgentResult:
        tracker = StepTracker(label=f"{self.intent.value} agent")
        state: ExtractionState = {
            "user_text": user_text,
            "ai_text": ai_text or "",
            "query_type": query_type,
            "session": session or SessionContext(),
            "cancellation": cancellation,
            "renderer": renderer if renderer is not None else self.renderer,
            "tracker": tracker,
            "history": [],
            "refined": False,
        }
        logger.info("%s agent: %r (%s)", self.intent.value, user_text, query_type or "unclassified")

        try:
            final = await self.execute(state)
        except InvocationCancelled:
            logger.info("%s agent cancelled", self.intent.value)
            return AgentResult(success=False, intent=self.intent, cancelled=True, error="cancelled")
        except ExtractionError as e:
            logger.warning("%s agent failed at %s: %s", self.intent.value, e.stage or "?", e.message)
            return AgentResult(
                success=False,
                intent=self.intent,
                error=type(e).__name__,
                message=e.message,
                refined=tracker.ran("refine completion"),
            )
        except Exception as e:
            logger.exception("%s agent crashed", self.intent.value)
            return AgentResult(success=False, intent=self.intent, error=type(e).__name__, message=str(e))
        finally:
            tracker.end()

        geometries = final.get("geometries", [])
        return AgentResult(
            success=True,
            intent=self.intent,
            geometries=geometries,
            message=describe(geometries),
            refined=final.get("refined", False),
        )

    async def execute(self, state: ExtractionState) -> ExtractionState:
        raise NotImplementedError

    async def complete(self, state: ExtractionState, turns: Sequence[dict[str, str]], stage: str) -> str:
        """Ask the text completion collaborator, then honour cancellation."""
        try:
            answer = await self.completion.complete(list(turns))
        except InvocationCancelled:
            raise
        except Exception as e:
            raise CollaboratorError(f"Text completion failed: {e}", stage=stage) from e

        cancellation = state.get("cancellation")
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        state["tracker"].step(f"{stage} completion")
        return (answer or "").strip()

    def render(self, state: ExtractionState, geometries: Sequence[Geometry]) -> None:
        cancellation = state.get("cancellation")
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        renderer = state.get("renderer")
        if renderer is None:
            return
        for geometry in geometries:
            renderer.render(geometry)
        state["tracker"].step("render")


class ExtractionAgent(BaseAgent):
    """PLAN / EXTRACT / REFLECT / REFINE / VALIDATE loop.

    Subclasses supply prompts, cardinality rules and the geometry build.
    """

    def __init__(self, completion: TextCompletion, renderer: MapRenderer | None = None):
        super().__init__(completion, renderer)
        self.graph = self.build_graph()

    def build_graph(self):
        graph = StateGraph(ExtractionState)
        graph.add_node("plan", self.plan)
        graph.add_node("extract", self.extract)
        graph.add_node("reflect", self.reflect)
        graph.add_node("refine", self.refine)
        graph.add_node("validate", self.validate)

        graph.add_edge(START, "plan")
        graph.add_edge("plan", "extract")
        graph.add_edge("extract", "reflect")
        graph.add_conditional_edges("reflect", self.after_reflect, ["refine", "validate"])
        graph.add_edge("refine", "validate")
        graph.add_edge("validate", END)
        return graph.compile()

    async def execute(self, state: ExtractionState) -> ExtractionState:
        return await self.graph.ainvoke(state)

    # Hooks

    def needs_plan(self, state: ExtractionState) -> bool:
        return True

    def plan_prompt(self, state: ExtractionState) -> str:
        raise NotImplementedError

    def interpret_plan(self, answer: str) -> bool:
        return "single" not in answer.lower()

    def multiple_from_query_type(self, query_type: QueryType) -> bool:
        return query_type.is_multiple

    def after_plan(self, state: ExtractionState, multiple: bool) -> bool:
        return multiple

    def preset_extraction(self, state: ExtractionState) -> str | None:
        return None

    def accepts_answer(self, count: int, multiple: bool) -> bool:
        raise NotImplementedError

    def extract_prompt(self, state: ExtractionState) -> str:
        raise NotImplementedError

    def reflect_locally(self, state: ExtractionState, count: int) -> tuple[Verdict, dict]:
        raise NotImplementedError

    def reflect_prompt(self, state: ExtractionState, count: int) -> str:
        raise NotImplementedError

    def refine_prompt(self, state: ExtractionState) -> str:
        raise NotImplementedError

    async def build_geometries(self, state: ExtractionState, result: ExtractionResult) -> list[Geometry]:
        raise NotImplementedError

    # Nodes

    async def plan(self, state: ExtractionState) -> dict:
        query_type = state.get("query_type")
        history = list(state.get("history", []))
        if query_type is not None:
            multiple = self.multiple_from_query_type(query_type)
        elif self.needs_plan(state):
            prompt = self.plan_prompt(state)
            answer = await self.complete(state, [user_turn(prompt)], stage="plan")
            history += [user_turn(prompt), assistant_turn(answer)]
            multiple = self.interpret_plan(answer)
        else:
            multiple = False

        multiple = self.after_plan(state, multiple)
        logger.info("Plan: %s", "multiple" if multiple else "single")
        return {"multiple": multiple, "history": history}

    async def extract(self, state: ExtractionState) -> dict:
        preset = self.preset_extraction(state)
        if preset is not None:
            return {"extracted_text": preset, "reused": True}

        found = parse_coordinates(state["ai_text"])
        if found and self.accepts_answer(len(found), state["multiple"]):
            logger.info("Extract: reusing %d coordinates from the answer", len(found))
            return {"extracted_text": found.to_text(), "reused": True}

        prompt = self.extract_prompt(state)
        answer = await self.complete(state, [user_turn(prompt)], stage="extract")
        logger.info("Extract: %s", answer)
        return {
            "extracted_text": answer,
            "reused": False,
            "history": [*state["history"], user_turn(prompt), assistant_turn(answer)],
        }

    async def reflect(self, state: ExtractionState) -> dict:
        count = len(parse_coordinates(state["extracted_text"]))
        verdict, updates = self.reflect_locally(state, count)
        confidence_checked = False
        if verdict is Verdict.UNSURE:
            prompt = self.reflect_prompt({**state, **updates}, count)
            answer = await self.complete(state, [*state["history"], user_turn(prompt)], stage="reflect")
            verdict = Verdict.REFINE if "refine" in answer.lower() else Verdict.GOOD
            confidence_checked = True

        logger.info("Reflect: %s (%d coordinates)", verdict.value, count)
        return {
            **updates,
            "needs_refinement": verdict is Verdict.REFINE,
            "confidence_checked": confidence_checked,
        }

    def after_reflect(self, state: ExtractionState) -> str:
        return "refine" if state.get("needs_refinement") else "validate"

    async def refine(self, state: ExtractionState) -> dict:
        prompt = self.refine_prompt(state)
        answer = await self.complete(state, [*state["history"], user_turn(prompt)], stage="refine")
        logger.info("Refine: %s", answer)
        return {
            "extracted_text": answer,
            "refined": True,
            "history": [*state["history"], user_turn(prompt), assistant_turn(answer)],
        }

    async def validate(self, state: ExtractionState) -> dict:
        found = parse_coordinates(state["extracted_text"])
        if not found:
            if found.status is ParseStatus.EXPLICIT_NONE:
                raise NoCoordinatesError("The model reported no coordinates")
            raise NoCoordinatesError(f"No coordinates found in {state['extracted_text']!r}")

        result = ExtractionResult(
            coordinates=list(found),
            confidence_checked=state.get("confidence_checked", False),
            refined=state.get("refined", False),
        )
        geometries = await self.build_geometries(state, result)
        if not geometries:
            raise InvalidGeometryError(f"No {self.intent.value} could be built from {len(found)} coordinates")

        self.render(state, geometries)
        return {"geometries": geometries}
