from fakes import FailingCompletion, FakeCompletion, FakeRouting, FakeTerrain, route_result
from map_assistant.agent.graph import MapAssistant
from map_assistant.agent.state import SessionContext
from map_assistant.schemas.geometry import Buffer, Coordinate, Line, Marker
from map_assistant.schemas.query import QueryIntent, QuerySubtype

SF_TO_LA = "San Francisco (37.7749,-122.4194) to Los Angeles (34.0522,-118.2437)"


async def test_route_query_end_to_end(registry):
    completion = FakeCompletion()
    routing = FakeRouting(route_result((-122.4194, 37.7749), (-118.2437, 34.0522)))
    assistant = MapAssistant(completion, routing=routing)

    outcome = await assistant.handle(
        "show me route from San Francisco to Los Angeles", ai_text=SF_TO_LA, renderer=registry
    )

    assert outcome.success
    assert outcome.query_type.intent is QueryIntent.LINE
    assert outcome.query_type.subtype is QuerySubtype.ROUTE_SINGLE
    (line,) = outcome.result.geometries
    assert isinstance(line, Line)
    assert line.is_route
    assert completion.calls == []
    assert len(routing.calls) == 1
    assert len(registry) == 1


async def test_answer_is_requested_when_missing():
    completion = FakeCompletion("Paris is at 48.8566,2.3522.")
    assistant = MapAssistant(completion)

    outcome = await assistant.handle("where is Paris")

    assert outcome.answer == "Paris is at 48.8566,2.3522."
    assert outcome.result.geometries == [Marker(coordinate=Coordinate(lat=48.8566, lon=2.3522))]
    assert completion.calls[0][0]["role"] == "system"
    assert len(completion.calls) == 1


async def test_buffer_around_the_selected_marker(registry):
    registry.render(Marker(coordinate=Coordinate(lat=40.0, lon=-74.0)))
    session = registry.with_selection(SessionContext(), "marker-1")
    completion = FakeCompletion("Sure, adding a buffer.")
    assistant = MapAssistant(completion)

    outcome = await assistant.handle("add 50km buffer around this point", session=session, renderer=registry)

    (buffer,) = outcome.result.geometries
    assert isinstance(buffer, Buffer)
    assert buffer.center == Coordinate(lat=40.0, lon=-74.0)
    assert buffer.radius_km == 50.0
    # only the initial answer
    assert len(completion.calls) == 1
    assert list(registry.features()) == ["marker-1", "buffer-2"]


async def test_elevation_on_selected_line_skips_the_answer(registry):
    registry.render(Line(coordinates=[(0.0, 0.0), (0.05, 0.0)]))
    session = registry.with_selection(SessionContext(), "line-1")
    completion = FakeCompletion()
    assistant = MapAssistant(completion, terrain=FakeTerrain())

    outcome = await assistant.handle("show elevation profile", session=session, renderer=registry)

    assert outcome.success
    assert outcome.answer == ""
    assert outcome.query_type.intent is QueryIntent.ELEVATION
    assert completion.calls == []
    assert "elevation-2" in registry.features()


async def test_elevation_on_selected_line_keeps_a_given_answer(registry):
    registry.render(Line(coordinates=[(0.0, 0.0), (0.05, 0.0)]))
    session = registry.with_selection(SessionContext(), "line-1")
    completion = FakeCompletion()
    assistant = MapAssistant(completion, terrain=FakeTerrain())

    outcome = await assistant.handle(
        "show elevation profile", ai_text="Here is the profile.", session=session, renderer=registry
    )

    assert outcome.success
    assert outcome.answer == "Here is the profile."
    assert outcome.query_type.intent is QueryIntent.ELEVATION
    assert completion.calls == []


async def test_failed_answer_is_reported():
    assistant = MapAssistant(FailingCompletion())

    outcome = await assistant.handle("where is Paris")

    assert not outcome.success
    assert outcome.result is None
    assert "model unavailable" in outcome.error


async def test_agent_failure_keeps_the_answer():
    assistant = MapAssistant(FakeCompletion(default="none"))

    outcome = await assistant.handle("where is Atlantis", ai_text="Atlantis is a legend.")

    assert not outcome.success
    assert outcome.answer == "Atlantis is a legend."
    assert outcome.result.error == "NoCoordinatesError"
