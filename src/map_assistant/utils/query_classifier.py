"""Rule-based query intent classification.

Rules are evaluated top to bottom and the first match wins. Several keyword
sets routinely co-occur in one query ("draw a polygon connecting ... within
5 km"), so the order of ``RULES`` is part of the classifier's behaviour.

The number of places named in a query is estimated as the number of commas
plus one.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

from map_assistant.schemas.query import QueryIntent, QuerySubtype, QueryType


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


def _any(patterns: tuple[re.Pattern, ...], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


EXPLICIT_POLYGON = _compile(
    r"\b(create|make|build|draw)\s+(a\s+)?polygon\s+(from|using|with|connecting|joining)",
    r"\bpolygon\s+(from|using|with|connecting|joining)\s+.*?(locations?|points?|coordinates?|cities?)",
    r"\b(polygon|triangle|shape|boundary|outline|area|region)\s+(connecting|joining|linking)\s+",
    r"\b(polygon|triangle)\s+(from|connecting|joining)\s+.*?(locations?|points?|cities?)",
    r"\bcreate\s+(a\s+)?(polygon|triangle|shape|boundary)\s+(from|using|with)",
)
AI_POLYGON = re.compile(
    r"\b(polygon|triangle|shape|boundary|outline|area|region)\s+(from|using|connecting|joining)",
    re.IGNORECASE,
)
AI_POLYGON_SHAPE = re.compile(r"\b(polygon|triangle|shape|boundary)\b", re.IGNORECASE)
AI_POLYGON_POINTS = re.compile(r"coordinates?|points?|locations?", re.IGNORECASE)

POLYGON_INDICATORS = _compile(
    r"\bdraw\s+polygon\b",
    r"\bcreate\s+polygon\b",
    r"\bpolygon\s+(around|for|of|covering)\b",
    r"\b(boundary|boundaries|outline|city\s+limits|district\s+boundary)\s+(of|for)\b",
    r"\bshow\s+(region|area|district|boundary|city\s+limits)\b",
    r"\b(polygon|region|boundary)\s+(from|using|with|connecting|joining)\s+.*?(locations?|points?|coordinates?|cities?)",
    r"\b(polygon|region|boundary)\s+covering\s+(area|region)\s+between\b",
    r"\bdraw\s+(region|area|boundary|outline)\b",
    r"\bcreate\s+(region|area|boundary|outline)\b",
    r"\b(area|region)\s+(between|from|around)\b",
    r"\b(polygon|triangle|shape)\s+(with|from)\s+.*?(locations?|points?|cities?)",
    r"\b(make|build|draw)\s+(a\s+)?(polygon|triangle|shape)\s+(from|using|with)",
)

ELEVATION_INDICATORS = _compile(
    r"\belevation\s+profile\b",
    r"\belevation\s+chart\b",
    r"\belevation\s+graph\b",
    r"\bshow\s+elevation\b",
    r"\bdisplay\s+elevation\b",
    r"\belevation\s+along\s+(route|line|path)",
    r"\bheight\s+profile\b",
    r"\baltitude\s+profile\b",
    r"\bterrain\s+profile\b",
)


def is_elevation_query(text: str) -> bool:
    """Whether the text asks for an elevation profile."""
    return _any(ELEVATION_INDICATORS, text)


ISOCHRONE_INDICATORS = _compile(
    r"\bisochrone\b",
    r"\breachable\s+(area|zone|region)",
    r"\btravel\s+time\s+(area|zone|region)",
    r"\b\d+\s*(min|minute|minutes|hour|hours)\s+(drive|driving|walk|walking|bike|cycling|cycle|radius|zone|area)",
    r"\b\d+\s*(km|mile|miles|meter|meters|m)\s+(drive|driving|walk|walking|bike|cycling|cycle|radius|zone|area|travel\s+time)",
    r"\b(area|zone|region)\s+reachable\s+(in|within)\s+\d+",
    r"\b\d+\s*(min|minute|minutes|hour|hours)\s+(zone|area|region|radius)",
    r"\b(driving|walking|cycling|bike)\s+zone",
    r"\bservice\s+area",
    r"\bdelivery\s+zone",
    r"\bshow\s+\d+\s*(min|minute|minutes|hour|hours)\s+(drive|walk|bike)",
)
TIME_QUANTITY = re.compile(r"\b(\d+)\s*(min|minute|minutes|hour|hours)\b", re.IGNORECASE)
DISTANCE_QUANTITY = re.compile(r"\b(\d+)\s*(km|mile|miles|meter|meters|m)\b", re.IGNORECASE)
LISTED_QUANTITY = re.compile(r"\b(and|,)\s+\d+\s*(min|km|mile)", re.IGNORECASE)

BUFFER_INDICATORS = _compile(
    r"\bbuffer\b",
    r"\bgeofence\b",
    r"\bgeofencing\b",
    r"\bperimeter\b",
    r"\bradius\b",
    r"\barea\s+within",
    r"\bwithin\s+\d+\s*(km|mile|m)\s+(of|around|from)",
    r"\b\d+\s*(km|mile|m)\s+(buffer|radius|area|geofence|perimeter)",
    r"\badd\s+\d+\s*(km|mile|m)\s+buffer",
    r"\bcreate\s+(a\s+)?\d+\s*(km|mile|m)\s+(geofence|buffer|radius)",
    r"\bshow\s+(a\s+)?\d+\s*(km|mile|m)\s+(perimeter|radius|area)",
)
DETERMINER_AND = re.compile(r"\band\s+(the|a|an|this|that)", re.IGNORECASE)

STRONG_LINE_INDICATORS = _compile(
    r"\broute\s+from\s+\w+.*\s+to\s+\w+",
    r"\broute\s+to\s+\w+.*\s+from\s+\w+",
    r"\bdirections?\s+(from|to|between)",
    r"\b(from|between)\s+\w+.*\s+(to|and)\s+\w+",
    r"\bconnect\s+\w+.*\s+with\s+(a\s+)?line",
    r"\bpath\s+(through|via|from)",
    r"\bchain\s+of",
    r"\bsequence\s+of",
    r"\bwaypoints?\s*:",
    r"\bthrough\s+\w+.*,\s*\w+",
    r"\bvia\s+\w+.*,\s*\w+",
)
ROUTE_WORD = re.compile(r"\broute\b", re.IGNORECASE)
TRANSPORT_WORDS = re.compile(r"\b(directions?|driving|walking|cycling|how\s+to\s+get)\b", re.IGNORECASE)
CHAIN_WORDS = re.compile(r"\b(through|via|connecting|chain|sequence)\b", re.IGNORECASE)

LOCATION_ONLY = _compile(
    r"^where is",
    r"^show me\s+(?!route|directions|path|way)",
    r"^find\s+(?!route|directions|path)",
    r"^locate",
    r"what is the location of",
    r"coordinates? of",
    r"location of",
    r"position of",
)

MODERATE_LINE_INDICATORS = _compile(
    r"\bdistance\s+(between|from)",
    r"\bconnect\s+\w+",
    r"\bthrough\s+\w+",
    r"\bvia\s+\w+",
)
MODERATE_POLYGON_HINT = re.compile(r"\b(polygon|triangle|shape|boundary|area|region)\b", re.IGNORECASE)
MODERATE_ROUTE_HINT = re.compile(r"\b(distance\s+between|route|directions?)\b", re.IGNORECASE)

POINT_INDICATORS = _compile(
    r"\bwhere\s+is\b",
    r"\bshow\s+me\b",
    r"\bfind\b",
    r"\blocate\b",
    r"\bcoordinates?\s+of\b",
    r"\blocation\s+of\b",
    r"\bposition\s+of\b",
    r"\bwhat\s+is\s+the\s+location",
    r"\btop\s+\d+\s+places",
    r"\bmultiple\s+locations",
    r"\blist\s+of\s+locations",
)

MANY_POLYGON_HINT = re.compile(
    r"\b(polygon|triangle|shape|boundary|area|region|connecting|joining)\b", re.IGNORECASE
)
MANY_LINE_HINT = re.compile(r"\b(route|connect|path|chain|sequence|directions?|from.*to)\b", re.IGNORECASE)
PAIR_POLYGON_HINT = re.compile(r"\b(polygon|triangle|shape|boundary|connecting|joining)\b", re.IGNORECASE)
PAIR_LINE_HINT = re.compile(r"\b(route|connect|path|between|from.*to|directions?)\b", re.IGNORECASE)
FALLBACK_ROUTE_HINT = re.compile(r"\b(route|directions?|driving|walking|cycling)\b", re.IGNORECASE)

AND_OTHER = re.compile(r"\band\s+(\d+|ten|x)\s+other", re.IGNORECASE)
AND_WORD = re.compile(r"\band\b", re.IGNORECASE)


@dataclass(frozen=True)
class QuerySignals:
    """Lexical features shared by every rule."""

    raw: str
    query: str
    ai: str
    comma_count: int
    location_count: int
    has_and_other: bool
    has_and: bool

    @classmethod
    def from_texts(cls, user_text: str, ai_text: str | None) -> "QuerySignals":
        query = (user_text or "").lower()
        comma_count = query.count(",")
        return cls(
            raw=user_text or "",
            query=query,
            ai=(ai_text or "").lower(),
            comma_count=comma_count,
            location_count=comma_count + 1,
            has_and_other=bool(AND_OTHER.search(query)),
            has_and=bool(AND_WORD.search(query)),
        )

    @property
    def ai_polygon_hint(self) -> bool:
        return bool(AI_POLYGON_SHAPE.search(self.ai))


class ClassificationRule(NamedTuple):
    name: str
    predicate: Callable[[QuerySignals], bool]
    decide: Callable[[QuerySignals], QueryType]


def _query_type(intent: QueryIntent, subtype: QuerySubtype) -> QueryType:
    return QueryType(intent=intent, subtype=subtype)


def _single_or_multiple(intent: QueryIntent, multiple: bool) -> QueryType:
    return _query_type(intent, QuerySubtype.MULTIPLE if multiple else QuerySubtype.SINGLE)


def _line(is_route: bool, is_multiple: bool) -> QueryType:
    if is_route:
        subtype = QuerySubtype.ROUTE_MULTI if is_multiple else QuerySubtype.ROUTE_SINGLE
    else:
        subtype = QuerySubtype.DIRECT_MULTI if is_multiple else QuerySubtype.DIRECT_SINGLE
    return _query_type(QueryIntent.LINE, subtype)


# 1. explicit polygon phrasing


def _is_explicit_polygon(s: QuerySignals) -> bool:
    if _any(EXPLICIT_POLYGON, s.query):
        return True
    if s.location_count < 3:
        return False
    ai_connects = bool(AI_POLYGON.search(s.ai))
    ai_lists_points = s.ai_polygon_hint and bool(AI_POLYGON_POINTS.search(s.ai))
    return ai_connects or ai_lists_points


def _explicit_polygon(s: QuerySignals) -> QueryType:
    multiple = s.comma_count >= 2 or s.has_and_other or s.has_and
    return _single_or_multiple(QueryIntent.POLYGON, multiple)


# 2. polygon indicator keywords


def _polygon_indicator(s: QuerySignals) -> QueryType:
    multiple = s.comma_count >= 1 or s.has_and_other or s.has_and
    return _single_or_multiple(QueryIntent.POLYGON, multiple)


# 3. elevation


def _elevation(s: QuerySignals) -> QueryType:
    return _query_type(QueryIntent.ELEVATION, QuerySubtype.SINGLE)


# 4. isochrone


def _isochrone(s: QuerySignals) -> QueryType:
    multiple = (
        len(TIME_QUANTITY.findall(s.query)) > 1
        or len(DISTANCE_QUANTITY.findall(s.query)) > 1
        or bool(LISTED_QUANTITY.search(s.query))
    )
    return _single_or_multiple(QueryIntent.ISOCHRONE, multiple)


# 5. buffer / geofence


def _buffer(s: QuerySignals) -> QueryType:
    bare_and = s.has_and and not DETERMINER_AND.search(s.query)
    multiple = s.location_count >= 2 or s.has_and_other or bare_and
    return _single_or_multiple(QueryIntent.BUFFER, multiple)


# 6. route / strong line indicators


def _is_route(s: QuerySignals) -> bool:
    return bool(ROUTE_WORD.search(s.query)) or _any(STRONG_LINE_INDICATORS, s.query)


def _route(s: QuerySignals) -> QueryType:
    is_route = bool(ROUTE_WORD.search(s.query)) or bool(TRANSPORT_WORDS.search(s.query))
    is_multiple = s.location_count >= 3 or s.has_and_other or bool(CHAIN_WORDS.search(s.query))
    return _line(is_route, is_multiple)


# 7. explicit single-location phrasing


def _is_location(s: QuerySignals) -> bool:
    return _any(LOCATION_ONLY, s.raw.strip())


def _location(s: QuerySignals) -> QueryType:
    plural = s.location_count >= 2 or s.has_and_other or "top" in s.query or "list" in s.query
    multiple = _any(POINT_INDICATORS, s.query) and plural
    return _single_or_multiple(QueryIntent.POINT, multiple)


# 8. moderate line indicators, with the polygon override


def _is_moderate_line(s: QuerySignals) -> bool:
    return _any(MODERATE_LINE_INDICATORS, s.query) and s.location_count >= 2


def _moderate_line(s: QuerySignals) -> QueryType:
    polygon_hint = bool(MODERATE_POLYGON_HINT.search(s.query)) or s.ai_polygon_hint
    if polygon_hint and s.location_count >= 3:
        return _query_type(QueryIntent.POLYGON, QuerySubtype.SINGLE)
    is_route = bool(MODERATE_ROUTE_HINT.search(s.query))
    return _line(is_route, s.location_count > 2)


# 9. point indicator keywords


def _point_indicator(s: QuerySignals) -> QueryType:
    multiple = s.location_count >= 2 or s.has_and_other or "top" in s.query or "list" in s.query
    return _single_or_multiple(QueryIntent.POINT, multiple)


# 10. fallback on location count


def _fallback(s: QuerySignals) -> QueryType:
    if s.location_count >= 3:
        polygon_hint = bool(MANY_POLYGON_HINT.search(s.query)) or s.ai_polygon_hint
        line_hint = bool(MANY_LINE_HINT.search(s.query))
        if polygon_hint and not line_hint:
            return _query_type(QueryIntent.POLYGON, QuerySubtype.SINGLE)
        if line_hint and FALLBACK_ROUTE_HINT.search(s.query):
            return _query_type(QueryIntent.LINE, QuerySubtype.ROUTE_MULTI)
        return _query_type(QueryIntent.LINE, QuerySubtype.DIRECT_MULTI)

    if s.location_count == 2:
        polygon_hint = bool(PAIR_POLYGON_HINT.search(s.query)) or s.ai_polygon_hint
        line_hint = bool(PAIR_LINE_HINT.search(s.query))
        if polygon_hint and not line_hint:
            return _query_type(QueryIntent.POLYGON, QuerySubtype.SINGLE)
        return _line(bool(FALLBACK_ROUTE_HINT.search(s.query)), False)

    return _query_type(QueryIntent.POINT, QuerySubtype.SINGLE)


RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("explicit-polygon", _is_explicit_polygon, _explicit_polygon),
    ClassificationRule("polygon-indicator", lambda s: _any(POLYGON_INDICATORS, s.query), _polygon_indicator),
    ClassificationRule("elevation", lambda s: is_elevation_query(s.query), _elevation),
    ClassificationRule("isochrone", lambda s: _any(ISOCHRONE_INDICATORS, s.query), _isochrone),
    ClassificationRule("buffer", lambda s: _any(BUFFER_INDICATORS, s.query), _buffer),
    ClassificationRule("route", _is_route, _route),
    ClassificationRule("location", _is_location, _location),
    ClassificationRule("moderate-line", _is_moderate_line, _moderate_line),
    ClassificationRule("point-indicator", lambda s: _any(POINT_INDICATORS, s.query), _point_indicator),
    ClassificationRule("fallback", lambda s: True, _fallback),
)


def match_rule(user_text: str, ai_text: str | None = "") -> tuple[str, QueryType]:
    """Return the name of the first matching rule and its classification."""
    signals = QuerySignals.from_texts(user_text, ai_text)
    for rule in RULES:
        if rule.predicate(signals):
            return rule.name, rule.decide(signals)
    raise AssertionError("fallback rule always matches")


def classify(user_text: str, ai_text: str | None = "") -> QueryType:
    """Classify a user query, optionally using the AI answer text as context."""
    return match_rule(user_text, ai_text)[1]
