import pytest

from map_assistant.schemas.query import QueryIntent, QuerySubtype, QueryType
from map_assistant.utils.query_classifier import RULES, classify, is_elevation_query, match_rule


def qt(intent: str, subtype: str) -> QueryType:
    return QueryType(intent=QueryIntent(intent), subtype=QuerySubtype(subtype))


@pytest.mark.parametrize(
    "user_text, ai_text, rule, expected",
    [
        ("draw polygon connecting Delhi, Mumbai, Bangalore", "", "explicit-polygon", qt("polygon", "multiple")),
        (
            "Paris, Berlin, Rome",
            "Here is a triangle connecting these points.",
            "explicit-polygon",
            qt("polygon", "multiple"),
        ),
        ("show the boundary of Paris", "", "polygon-indicator", qt("polygon", "single")),
        ("outline of Texas and Oklahoma", "", "polygon-indicator", qt("polygon", "multiple")),
        ("show elevation profile of this route", "", "elevation", qt("elevation", "single")),
        ("15, 30, 45 min drive zone", "", "isochrone", qt("isochrone", "multiple")),
        ("show 20 min walk zone from here", "", "isochrone", qt("isochrone", "single")),
        ("add 50km buffer around this point", "", "buffer", qt("buffer", "single")),
        ("5km geofence around Delhi, Mumbai and Pune", "", "buffer", qt("buffer", "multiple")),
        ("show me route from San Francisco to Los Angeles", "", "route", qt("line", "route-single")),
        ("route from Delhi through Agra, Jaipur, Udaipur", "", "route", qt("line", "route-multi")),
        ("where is the Eiffel Tower", "", "location", qt("point", "single")),
        ("find coffee shops in Paris, Lyon", "", "location", qt("point", "multiple")),
        ("connect Paris with Berlin, Vienna", "", "moderate-line", qt("line", "direct-single")),
        ("connect Paris, Berlin, Vienna as a shape", "", "moderate-line", qt("polygon", "single")),
        ("can you show me Tokyo", "", "point-indicator", qt("point", "single")),
        ("top 5 places in Rome", "", "point-indicator", qt("point", "multiple")),
        ("Paris, Berlin, Rome", "", "fallback", qt("line", "direct-multi")),
        ("Paris, Berlin", "", "fallback", qt("line", "direct-single")),
        ("Paris, Berlin, Rome region", "", "fallback", qt("polygon", "single")),
        ("Tokyo", "", "fallback", qt("point", "single")),
    ],
)
def test_rules(user_text, ai_text, rule, expected):
    assert match_rule(user_text, ai_text) == (rule, expected)


def test_explicit_polygon_beats_buffer_keywords():
    rule, query_type = match_rule("draw polygon connecting Delhi, Mumbai, Bangalore within a 5 km radius")

    assert rule == "explicit-polygon"
    assert query_type.intent is QueryIntent.POLYGON


def test_elevation_beats_route():
    assert classify("show elevation along route from Denver to Aspen").intent is QueryIntent.ELEVATION


def test_ai_polygon_hint_needs_three_locations():
    rule, _ = match_rule("Paris, Berlin", "Here is a triangle connecting these points.")

    assert rule != "explicit-polygon"


def test_classification_is_pure():
    text = "show me route from San Francisco to Los Angeles"
    ai = "San Francisco (37.7749,-122.4194) to Los Angeles (34.0522,-118.2437)"

    assert {classify(text, ai) for _ in range(5)} == {classify(text, ai)}


def test_rule_order():
    assert [rule.name for rule in RULES] == [
        "explicit-polygon",
        "polygon-indicator",
        "elevation",
        "isochrone",
        "buffer",
        "route",
        "location",
        "moderate-line",
        "point-indicator",
        "fallback",
    ]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Show elevation profile", True),
        ("elevation along route", True),
        ("terrain profile of this trail", True),
        ("what is the elevation of Denver", False),
        ("route from Denver to Boulder", False),
    ],
)
def test_is_elevation_query(text, expected):
    assert is_elevation_query(text) is expected
    assert (match_rule(text)[0] == "elevation") is expected
