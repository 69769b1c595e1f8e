import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from geojson_pydantic import FeatureCollection

from map_assistant.agent.graph import create_assistant
from map_assistant.agent.session import TurnManager
from map_assistant.agent.state import SessionContext
from map_assistant.schemas.geometry import GeometryKind
from map_assistant.api.schemas.query import (
    ClearResponse,
    QueryRequestBody,
    QueryResponse,
    SelectRequestBody,
    SelectResponse,
    SessionClosedResponse,
)
from map_assistant.utils.features import FeatureRegistry

load_dotenv()

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@dataclass
class MapSession:
    """Map state of one client: rendered features, selection and the running turn."""

    turns: TurnManager
    registry: FeatureRegistry = field(default_factory=FeatureRegistry)
    context: SessionContext = field(default_factory=SessionContext)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests install their own assistant before startup.
    if getattr(app.state, "assistant", None) is None:
        app.state.assistant = create_assistant()
    app.state.sessions = {}
    yield
    app.state.sessions.clear()


app = FastAPI(title="Map Assistant", lifespan=lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allows all origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_session(request: Request, session_id: str, create: bool = False) -> MapSession:
    sessions: dict[str, MapSession] = request.app.state.sessions
    if session_id not in sessions:
        if not create:
            raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
        sessions[session_id] = MapSession(turns=TurnManager(request.app.state.assistant))
        logger.info("New session %s", session_id)
    return sessions[session_id]


@app.post("/query")
async def query(body: QueryRequestBody, request: Request) -> QueryResponse:
    session = get_session(request, body.session_id, create=True)

    updates = {}
    if body.user_position is not None:
        updates["user_position"] = body.user_position
    if body.map_center is not None:
        updates["map_center"] = body.map_center
    if updates:
        session.context = session.context.model_copy(update=updates)

    outcome = await session.turns.submit(
        body.query,
        ai_text=body.ai_text,
        session=session.context,
        renderer=session.registry,
    )
    logger.info("Session %s: %s", body.session_id, "ok" if outcome.success else "no map change")
    return QueryResponse(
        session_id=body.session_id,
        outcome=outcome,
        features=session.registry.to_feature_collection(),
    )


@app.post("/sessions/{session_id}/select")
async def select_feature(session_id: str, body: SelectRequestBody, request: Request) -> SelectResponse:
    session = get_session(request, session_id)
    try:
        session.context = session.registry.with_selection(session.context, body.feature_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0])) from e
    return SelectResponse(session_id=session_id, selected_feature=session.context.selected_feature)


@app.get("/sessions/{session_id}/features")
async def list_features(session_id: str, request: Request) -> FeatureCollection:
    return get_session(request, session_id).registry.to_feature_collection()


@app.delete("/sessions/{session_id}/features")
async def clear_features(session_id: str, request: Request, kind: GeometryKind | None = None) -> ClearResponse:
    session = get_session(request, session_id)
    cleared = session.registry.clear(kind)
    selected = session.context.selected_feature
    if selected is not None and selected.name not in session.registry.features():
        session.context = session.context.model_copy(update={"selected_feature": None})
    return ClearResponse(session_id=session_id, cleared=cleared)


@app.delete("/sessions/{session_id}")
async def close_session(session_id: str, request: Request) -> SessionClosedResponse:
    session = get_session(request, session_id)
    await session.turns.cancel()
    request.app.state.sessions.pop(session_id, None)
    logger.info("Closed session %s", session_id)
    return SessionClosedResponse(session_id=session_id)
