import random

import pytest

from tripsmith.domain.route_synthesis.constants import CYCLING, TREKKING
from tripsmith.domain.route_synthesis.geometry import (
    circle_around,
    classify_difficulty,
    close_loop,
    distance_km,
    estimate_duration_min,
    haversine_km,
    is_closed,
    road_segment,
    synthesize_path,
    trail_segment,
    turn_angle_deg,
)


def test_haversine_paris_to_lyon() -> None:
    assert haversine_km(48.8566, 2.3522, 45.7640, 4.8357) == pytest.approx(392, abs=5)


def test_close_loop_appends_start_when_far() -> None:
    path = [(45.0, 7.0), (45.01, 7.01), (45.02, 7.0)]
    closed = close_loop(path)

    assert closed[-1] == (45.0, 7.0)
    assert len(closed) == 4


def test_close_loop_keeps_path_ending_near_start() -> None:
    path = [(45.0, 7.0), (45.01, 7.01), (45.0005, 7.0)]

    assert len(close_loop(path)) == 3
    assert is_closed(path)


def test_turn_angle_straight_and_reversal() -> None:
    assert turn_angle_deg((0.0, 0.0), (0.0, 0.01), (0.0, 0.02)) == pytest.approx(180.0, abs=0.1)
    assert turn_angle_deg((0.0, 0.0), (0.0, 0.01), (0.0, 0.0)) == pytest.approx(0.0, abs=0.1)


def test_road_segment_offsets_are_perpendicular() -> None:
    # Due east segment: the lateral offset may only move latitude
    start, end = (0.0, 0.0), (0.0, 1.0)
    segment = road_segment(start, end, num_points=15)

    assert segment[0] == start
    assert segment[-1] == end
    assert len(segment) == 16
    for i, (_, lon) in enumerate(segment[1:-1], start=1):
        assert lon == pytest.approx(i / 15, abs=1e-9)
    assert any(abs(lat) > 0 for lat, _ in segment[1:-1])


def test_road_offset_amplitude_is_capped() -> None:
    segment = road_segment((0.0, 0.0), (0.0, 1.0))

    assert max(abs(lat) for lat, _ in segment) <= 0.02 * 1.5


def test_trail_segment_is_reproducible_with_seeded_rng() -> None:
    first = trail_segment((45.0, 7.0), (45.05, 7.05), rng=random.Random(3))
    second = trail_segment((45.0, 7.0), (45.05, 7.05), rng=random.Random(3))

    assert first == second
    assert len(first) == 9


def test_synthesize_path_passes_through_all_points() -> None:
    points = [(45.0, 7.0), (45.05, 7.05), (45.1, 7.0)]
    path = synthesize_path(points, TREKKING, rng=random.Random(1))

    for point in points:
        assert point in path
    assert path[0] == points[0]
    assert path[-1] == points[-1]


def test_circle_around_is_closed_and_round() -> None:
    center = (45.0, 7.0)
    ring = circle_around(center, 2.0, 12)

    assert ring[0] == center
    assert ring[-1] == center
    for point in ring[1:-1]:
        assert distance_km(center, point) == pytest.approx(2.0, rel=0.05)


@pytest.mark.parametrize(
    "distance, trip_type, expected",
    [
        (25.0, CYCLING, "easy"),
        (45.0, CYCLING, "moderate"),
        (100.0, CYCLING, "hard"),
        (6.0, TREKKING, "easy"),
        (12.0, TREKKING, "moderate"),
        (20.0, TREKKING, "hard"),
    ],
)
def test_classify_difficulty(distance: float, trip_type: str, expected: str) -> None:
    duration = estimate_duration_min(distance, trip_type)

    assert classify_difficulty(distance, duration, trip_type) == expected


def test_classify_difficulty_uses_duration_too() -> None:
    assert classify_difficulty(20.0, 150.0, CYCLING) == "moderate"
