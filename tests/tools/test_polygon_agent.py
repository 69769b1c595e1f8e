from fakes import FakeCompletion
from map_assistant.schemas.geometry import Coordinate
from map_assistant.schemas.query import QueryIntent, QuerySubtype, QueryType
from map_assistant.tools import PolygonAgent
from map_assistant.tools.polygon import build_ring

SINGLE = QueryType(intent=QueryIntent.POLYGON, subtype=QuerySubtype.SINGLE)
MULTIPLE = QueryType(intent=QueryIntent.POLYGON, subtype=QuerySubtype.MULTIPLE)

TRIANGLE = "Delhi 28.6139,77.209 | Mumbai 19.076,72.8777 | Bangalore 12.9716,77.5946"


def test_build_ring_closes_and_counts_distinct_vertices():
    a, b, c = Coordinate(lat=0.0, lon=0.0), Coordinate(lat=0.0, lon=1.0), Coordinate(lat=1.0, lon=1.0)

    assert build_ring([a, b, c]) == [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 0.0)]
    assert build_ring([a, b, a]) is None


async def test_triangle_from_the_answer(registry):
    completion = FakeCompletion()
    agent = PolygonAgent(completion, renderer=registry)

    result = await agent.run("draw polygon connecting Delhi, Mumbai, Bangalore", TRIANGLE, query_type=SINGLE)

    assert result.success
    (polygon,) = result.geometries
    assert polygon.name == "Polygon"
    assert polygon.ring[0] == polygon.ring[-1]
    assert len(polygon.ring) == 4
    assert completion.calls == []
    assert list(registry.features()) == ["polygon-1"]


async def test_multiple_rings_are_split():
    completion = FakeCompletion(
        "28.61,77.20 | 28.70,77.10 | 28.50,77.30 || 19.07,72.87 | 19.20,72.97 | 19.00,72.80"
    )
    agent = PolygonAgent(completion)

    result = await agent.run("boundaries of Delhi and Mumbai", "", query_type=MULTIPLE)

    assert [p.name for p in result.geometries] == ["Polygon 1", "Polygon 2"]
    assert all(len(p.ring) == 4 for p in result.geometries)


async def test_degenerate_ring_is_dropped():
    completion = FakeCompletion("28.61,77.20 | 28.70,77.10 | 28.50,77.30 || 19.07,72.87 | 19.20,72.97")
    agent = PolygonAgent(completion)

    result = await agent.run("boundaries of Delhi and Mumbai", "", query_type=MULTIPLE)

    assert [p.name for p in result.geometries] == ["Polygon 1"]


async def test_too_few_vertices_is_refined_then_rejected():
    completion = FakeCompletion("28.61,77.20 | 28.70,77.10", "28.61,77.20 | 28.70,77.10")
    agent = PolygonAgent(completion)

    result = await agent.run("show the boundary of Delhi", "", query_type=SINGLE)

    assert not result.success
    assert result.error == "InvalidGeometryError"
    assert len(completion.calls) == 2
    assert result.refined


async def test_unclassified_list_of_places_is_multiple():
    completion = FakeCompletion("single", "28.61,77.20 | 28.70,77.10 | 28.50,77.30", "good")
    agent = PolygonAgent(completion)

    result = await agent.run("polygons for Delhi and Mumbai", "")

    assert result.success
    # plan, extract, then a confidence check for the missing ring separator
    assert len(completion.calls) == 3
