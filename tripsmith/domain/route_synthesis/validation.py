"""Structural and numeric checks on generated route skeletons."""

from __future__ import annotations

import logging
import math
from typing import Any, List, Optional

from .constants import CYCLING, CYCLING_MAX_DAY_KM, TREKKING, TREKKING_MAX_KM, TREKKING_MIN_KM
from .exceptions import InvalidRouteSkeleton
from .models import DaySpec, RouteSkeleton

logger = logging.getLogger(__name__)

_DISTANCE_KEYS = ("distanceKm", "distance_km", "distance")
_TOTAL_KEYS = ("totalDistanceKm", "total_distance_km", "totalDistance")


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _first_number(raw: dict, keys) -> Optional[float]:
    for key in keys:
        if key in raw:
            return _to_number(raw[key])
    return None


def _clean_names(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [str(value).strip() for value in values if isinstance(value, str) and value.strip()]


def _parse_day(raw: Any) -> Optional[DaySpec]:
    if not isinstance(raw, dict):
        return None
    return DaySpec(
        start=str(raw.get("start") or "").strip(),
        end=str(raw.get("end") or "").strip(),
        distance_km=_first_number(raw, _DISTANCE_KEYS),
        waypoints=_clean_names(raw.get("waypoints")),
    )


def parse_skeleton(data: Any) -> RouteSkeleton:
    """Build a ``RouteSkeleton`` from decoded model JSON.

    Accepts both a bare skeleton and one wrapped in a top-level ``"route"``
    object.
    """

    if not isinstance(data, dict):
        raise InvalidRouteSkeleton("Route skeleton must be a JSON object")

    route = data.get("route") if isinstance(data.get("route"), dict) else data

    duration = route.get("estimatedDuration") or route.get("estimated_duration")
    difficulty = route.get("difficulty")
    return RouteSkeleton(
        day1=_parse_day(route.get("day1")),
        day2=_parse_day(route.get("day2")),
        total_distance_km=_first_number(route, _TOTAL_KEYS),
        estimated_duration=str(duration) if duration else None,
        difficulty=str(difficulty) if difficulty else None,
    )


def _same_place(a: str, b: str) -> bool:
    return a.strip().casefold() == b.strip().casefold()


def _is_positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def validate_skeleton(skeleton: RouteSkeleton, trip_type: str) -> None:
    """Raise ``InvalidRouteSkeleton`` on hard violations, warn on soft ones."""

    if skeleton.day1 is None:
        raise InvalidRouteSkeleton("Missing day1 route data")

    if trip_type == CYCLING and skeleton.day2 is None:
        raise InvalidRouteSkeleton("Cycling routes must have day2 data")

    for index, day in enumerate(skeleton.days, start=1):
        if not _is_positive(day.distance_km):
            raise InvalidRouteSkeleton(f"Day {index} distance must be a positive number, got {day.distance_km!r}")

    if trip_type == CYCLING:
        for index, day in enumerate(skeleton.days, start=1):
            if day.distance_km > CYCLING_MAX_DAY_KM:
                raise InvalidRouteSkeleton(
                    f"Cycling day {index} is {day.distance_km:g} km, over the {CYCLING_MAX_DAY_KM:g} km limit"
                )
        if _same_place(skeleton.day1.start, skeleton.day1.end):
            raise InvalidRouteSkeleton("Cycling route day1 start and end should be different")
        if not _same_place(skeleton.day2.start, skeleton.day1.end):
            logger.warning(
                "Cycling day2 starts at %r but day1 ends at %r",
                skeleton.day2.start,
                skeleton.day1.end,
            )

    elif trip_type == TREKKING:
        distance = skeleton.day1.distance_km
        if distance < TREKKING_MIN_KM or distance > TREKKING_MAX_KM:
            logger.warning("Trekking route distance outside %g-%g km range: %g", TREKKING_MIN_KM, TREKKING_MAX_KM, distance)
        if not _same_place(skeleton.day1.start, skeleton.day1.end):
            logger.warning(
                "Trekking route should be circular, got start=%r end=%r",
                skeleton.day1.start,
                skeleton.day1.end,
            )


__all__ = ["parse_skeleton", "validate_skeleton"]
