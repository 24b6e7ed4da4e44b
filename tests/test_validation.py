import copy
import logging

import pytest

from tests.conftest import NICE_TREKKING, PARIS_CYCLING
from tripsmith.domain.route_synthesis.constants import CYCLING, TREKKING
from tripsmith.domain.route_synthesis.exceptions import InvalidRouteSkeleton
from tripsmith.domain.route_synthesis.validation import parse_skeleton, validate_skeleton


def test_parse_skeleton_unwraps_route_object() -> None:
    skeleton = parse_skeleton(PARIS_CYCLING)

    assert skeleton.day1.start == "Paris"
    assert skeleton.day2.end == "Sens"
    assert skeleton.day1.distance_km == 55.0
    assert skeleton.total_distance_km == 100.0
    assert skeleton.estimated_duration == "2 days"


def test_parse_skeleton_accepts_bare_object_and_alternate_keys() -> None:
    data = {
        "day1": {"start": "A", "end": "B", "distance": "42.5", "waypoints": ["X", "", 3]},
        "totalDistance": 42.5,
    }

    skeleton = parse_skeleton(data)

    assert skeleton.day1.distance_km == 42.5
    assert skeleton.day1.waypoints == ["X"]
    assert skeleton.day2 is None
    assert skeleton.total_distance_km == 42.5


def test_parse_skeleton_rejects_non_object() -> None:
    with pytest.raises(InvalidRouteSkeleton):
        parse_skeleton(["not", "an", "object"])


def test_valid_cycling_skeleton_passes() -> None:
    validate_skeleton(parse_skeleton(PARIS_CYCLING), CYCLING)


def test_cycling_day_over_limit_is_rejected() -> None:
    data = copy.deepcopy(PARIS_CYCLING)
    data["route"]["day2"]["distanceKm"] = 75

    with pytest.raises(InvalidRouteSkeleton, match="60"):
        validate_skeleton(parse_skeleton(data), CYCLING)


def test_cycling_requires_day2() -> None:
    data = copy.deepcopy(PARIS_CYCLING)
    del data["route"]["day2"]

    with pytest.raises(InvalidRouteSkeleton, match="day2"):
        validate_skeleton(parse_skeleton(data), CYCLING)


def test_cycling_start_and_end_must_differ() -> None:
    data = copy.deepcopy(PARIS_CYCLING)
    data["route"]["day1"]["end"] = " paris "

    with pytest.raises(InvalidRouteSkeleton):
        validate_skeleton(parse_skeleton(data), CYCLING)


@pytest.mark.parametrize("distance", [0, -5, "far", None])
def test_non_positive_distance_is_rejected(distance) -> None:
    data = copy.deepcopy(NICE_TREKKING)
    data["route"]["day1"]["distanceKm"] = distance

    with pytest.raises(InvalidRouteSkeleton):
        validate_skeleton(parse_skeleton(data), TREKKING)


def test_missing_day1_is_rejected() -> None:
    with pytest.raises(InvalidRouteSkeleton, match="day1"):
        validate_skeleton(parse_skeleton({"route": {"totalDistanceKm": 10}}), TREKKING)


def test_trekking_soft_rules_only_warn(caplog) -> None:
    data = copy.deepcopy(NICE_TREKKING)
    data["route"]["day1"]["distanceKm"] = 22
    data["route"]["day1"]["end"] = "Villefranche-sur-Mer"

    with caplog.at_level(logging.WARNING):
        validate_skeleton(parse_skeleton(data), TREKKING)

    assert "outside" in caplog.text
    assert "circular" in caplog.text


def test_cycling_day2_start_mismatch_only_warns(caplog) -> None:
    data = copy.deepcopy(PARIS_CYCLING)
    data["route"]["day2"]["start"] = "Melun"

    with caplog.at_level(logging.WARNING):
        validate_skeleton(parse_skeleton(data), CYCLING)

    assert "day2 starts" in caplog.text
