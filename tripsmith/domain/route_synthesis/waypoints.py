from __future__ import annotations

import logging
from typing import List, Optional

from .models import RouteSkeleton

logger = logging.getLogger(__name__)


def qualify_location(name: str, country: str) -> str:
    """Append the country to a bare place name for geocoding precision."""

    cleaned = (name or "").strip()
    if not cleaned:
        return ""
    if country and country.strip().lower() in cleaned.lower():
        return cleaned
    return f"{cleaned}, {country.strip()}" if country and country.strip() else cleaned


def extract_waypoints(skeleton: Optional[RouteSkeleton], country: str) -> List[str]:
    """Ordered, de-duplicated, country-qualified place names to geocode."""

    names: List[str] = []
    try:
        day1 = skeleton.day1
        if day1 is not None:
            names.append(day1.start)
            names.extend(day1.waypoints)
            if day1.end and day1.end.strip().lower() != day1.start.strip().lower():
                names.append(day1.end)

        # day2 starts where day1 ended, which is already in the list
        day2 = skeleton.day2
        if day2 is not None:
            names.extend(day2.waypoints)
            names.append(day2.end)
    except (AttributeError, TypeError) as exc:
        logger.warning("Could not extract waypoints from skeleton: %s", exc)
        return []

    unique: List[str] = []
    seen = set()
    for name in names:
        qualified = qualify_location(name, country)
        key = qualified.lower()
        if not qualified or key in seen:
            continue
        seen.add(key)
        unique.append(qualified)

    logger.info("Extracted %d unique waypoints from %d names", len(unique), len(names))
    return unique


def all_waypoint_names(skeleton: RouteSkeleton) -> List[str]:
    names: List[str] = []
    for day in skeleton.days:
        names.extend(day.waypoints)
    return names


__all__ = ["all_waypoint_names", "extract_waypoints", "qualify_location"]
