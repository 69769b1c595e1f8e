import pytest

from map_assistant.schemas.geometry import Coordinate
from map_assistant.utils.coordinate_parser import (
    ParseStatus,
    format_coordinates,
    parse_coordinates,
    split_rings,
)


@pytest.mark.parametrize(
    "lat, lon",
    [
        (40.7128, -74.006),
        (0.0, 0.0),
        (-90.0, 180.0),
        (90.0, -180.0),
        (-33.8688, 151.2093),
        (45.5, -0.25),
        (1.0, 2.0),
    ],
)
def test_plain_pair_round_trips(lat, lon):
    result = parse_coordinates(f"{lat},{lon}")

    assert result.status is ParseStatus.FOUND
    assert len(result) == 1
    assert result.coordinates[0].lat == pytest.approx(lat)
    assert result.coordinates[0].lon == pytest.approx(lon)


def test_none_anywhere_wins_over_numbers():
    result = parse_coordinates("40.7,-74.0 | NONE of the others | 34.05,-118.24")

    assert result.status is ParseStatus.EXPLICIT_NONE
    assert not result
    assert result.to_text() == "none"


@pytest.mark.parametrize("text", ["", None, "no coordinates here", "95.0,10.0"])
def test_nothing_valid_is_no_match(text):
    result = parse_coordinates(text)

    assert result.status is ParseStatus.NO_MATCH
    assert len(result) == 0


def test_degree_notation_with_hemispheres():
    result = parse_coordinates("Sydney is at 33.8688° S, 151.2093° E")

    assert list(result) == [Coordinate(lat=-33.8688, lon=151.2093)]


def test_cardinal_notation_without_degree_sign():
    result = parse_coordinates("34.05 N, 118.24 W")

    assert list(result) == [Coordinate(lat=34.05, lon=-118.24)]


def test_duplicates_across_passes_are_kept_once():
    text = "Dehradun 30.3165° N, 78.0322° E, also written 30.3165,78.0322 and 30.3165, 78.0322"

    result = parse_coordinates(text)

    assert list(result) == [Coordinate(lat=30.3165, lon=78.0322)]


def test_pipe_delimited_list_keeps_order():
    result = parse_coordinates("28.6139,77.209 | 19.076,72.8777 | 12.9716,77.5946")

    assert [c.lat for c in result] == [28.6139, 19.076, 12.9716]


def test_comma_only_list_splits_into_pairs():
    result = parse_coordinates("40.7128, -74.0060, 34.0522, -118.2437")

    assert list(result) == [
        Coordinate(lat=40.7128, lon=-74.006),
        Coordinate(lat=34.0522, lon=-118.2437),
    ]


def test_format_and_split_rings():
    coords = [Coordinate(lat=1.5, lon=2.5), Coordinate(lat=-3.0, lon=4.25)]

    assert format_coordinates(coords) == "1.5,2.5 | -3.0,4.25"
    assert parse_coordinates(format_coordinates(coords)).to_text() == "1.5,2.5 | -3.0,4.25"
    assert split_rings("1,2 | 3,4 | 5,6 || 7,8 | 9,10 | 11,12 ||") == [
        "1,2 | 3,4 | 5,6",
        "7,8 | 9,10 | 11,12",
    ]


@pytest.mark.parametrize(
    "text",
    [
        "Paris is at 48.8566,2.3522 which is the capital",
        "Paris is at 48.8566,2.3522 so plan a day there",
        "Paris (48.8566° , 2.3522°) sits west of Strasbourg",
        "48.8566, 2.3522 East of the Atlantic",
    ],
)
def test_words_after_a_pair_do_not_flip_hemispheres(text):
    assert list(parse_coordinates(text)) == [Coordinate(lat=48.8566, lon=2.3522)]


def test_trailing_west_letter_negates_plain_pair():
    assert list(parse_coordinates("34.05, 118.24 W")) == [Coordinate(lat=34.05, lon=-118.24)]
