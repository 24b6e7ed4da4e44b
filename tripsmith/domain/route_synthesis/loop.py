"""Loop shaping for trekking routes.

Walking routes should come back to where they started without retracing
the outbound leg, so the geocoded waypoints are filtered to a walkable
radius and reordered around their centroid when that yields a rounder loop.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from tripsmith.core.config import Settings, settings as default_settings

from .constants import TREKKING_MAX_LEG_KM
from .geometry import centroid, distance_km, is_closed, path_length_km, polar_angle, turn_angle_deg
from .models import Coordinate, GeocodedPoint, RetracingAnalysis

logger = logging.getLogger(__name__)

RETRACING_TOLERANCE_KM = 0.05
RETRACING_MIN_POINTS = 6

PROPER_LOOP = "PROPER_LOOP"
PARTIAL_LOOP = "PARTIAL_LOOP"
OUT_AND_BACK = "OUT_AND_BACK"
UNKNOWN_PATH = "UNKNOWN"


def _closed_length_km(points: Sequence[GeocodedPoint]) -> float:
    coords = [point.coordinates for point in points]
    if len(coords) < 2:
        return 0.0
    return path_length_km(coords) + distance_km(coords[-1], coords[0])


class LoopOptimizer:
    def __init__(
        self,
        *,
        linear_penalty: float = 20.0,
        roundness_bonus: float = 10.0,
        straight_tolerance_deg: float = 30.0,
        variance_threshold: float = 0.2,
        max_leg_km: float = TREKKING_MAX_LEG_KM,
    ) -> None:
        self.linear_penalty = linear_penalty
        self.roundness_bonus = roundness_bonus
        self.straight_tolerance_deg = straight_tolerance_deg
        self.variance_threshold = variance_threshold
        self.max_leg_km = max_leg_km

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "LoopOptimizer":
        config = config or default_settings
        return cls(
            linear_penalty=config.LOOP_LINEAR_PENALTY,
            roundness_bonus=config.LOOP_ROUNDNESS_BONUS,
            straight_tolerance_deg=config.LOOP_STRAIGHT_TOLERANCE_DEG,
            variance_threshold=config.LOOP_VARIANCE_THRESHOLD,
        )

    def filter_for_trekking(self, points: Sequence[GeocodedPoint], max_total_km: float) -> List[GeocodedPoint]:
        """Keep the waypoints reachable on foot within ``max_total_km``.

        The first point is the fixed start and is always kept.
        """

        if len(points) <= 1:
            return list(points)

        start = points[0]
        accepted: List[GeocodedPoint] = [start]
        walked = 0.0

        for point in points[1:]:
            leg = distance_km(accepted[-1].coordinates, point.coordinates)
            from_start = distance_km(start.coordinates, point.coordinates)
            if leg > self.max_leg_km or from_start > max_total_km / 2:
                logger.info("Dropping %s: leg %.1f km, %.1f km from start", point.name, leg, from_start)
                continue
            if walked + leg + from_start > max_total_km:
                logger.info("Loop budget of %.1f km reached at %s", max_total_km, point.name)
                break
            accepted.append(point)
            walked += leg

        while len(accepted) > 2 and _closed_length_km(accepted) > max_total_km:
            farthest = max(
                range(1, len(accepted)),
                key=lambda idx: distance_km(start.coordinates, accepted[idx].coordinates),
            )
            logger.info("Loop still too long, dropping farthest point %s", accepted[farthest].name)
            accepted.pop(farthest)

        logger.info("Trekking filter kept %d/%d waypoints", len(accepted), len(points))
        return accepted

    def optimize_for_loop(self, points: Sequence[GeocodedPoint]) -> List[GeocodedPoint]:
        """Reorder by polar angle around the centroid if that scores better."""

        original = list(points)
        if len(original) < 3:
            return original

        center = centroid([point.coordinates for point in original])
        by_angle = sorted(original, key=lambda point: polar_angle(point.coordinates, center))
        start_index = by_angle.index(original[0])
        candidate = by_angle[start_index:] + by_angle[:start_index]

        original_score = self.loop_quality_score([point.coordinates for point in original])
        candidate_score = self.loop_quality_score([point.coordinates for point in candidate])
        if candidate_score > original_score:
            logger.info("✓ Reordered loop: quality %.0f → %.0f", original_score, candidate_score)
            return candidate
        return original

    def loop_quality_score(self, coordinates: Sequence[Coordinate]) -> float:
        """Heuristic 0-100 score of how loop-like the closed path is."""

        coords = list(coordinates)
        if len(coords) < 3:
            return 0.0
        closed = coords if is_closed(coords) else coords + [coords[0]]

        score = 100.0
        for i in range(1, len(closed) - 1):
            angle = turn_angle_deg(closed[i - 1], closed[i], closed[i + 1])
            if abs(180.0 - angle) <= self.straight_tolerance_deg:
                score -= self.linear_penalty

        ring = closed[:-1]
        center = centroid(ring)
        radii = [distance_km(center, point) for point in ring]
        mean = sum(radii) / len(radii)
        if mean > 0:
            variance = sum((radius - mean) ** 2 for radius in radii) / len(radii)
            if variance / (mean * mean) < self.variance_threshold:
                score += self.roundness_bonus

        return max(0.0, min(100.0, score))


def analyze_path_retracing(coordinates: Sequence[Coordinate]) -> RetracingAnalysis:
    """Estimate how much of the return half of a path retraces the outbound half."""

    coords = list(coordinates)
    if len(coords) < RETRACING_MIN_POINTS:
        return RetracingAnalysis(overlap_percentage=0.0, path_type=UNKNOWN_PATH, retracing_segments=0)

    middle = len(coords) // 2
    forward = coords[:middle]
    back = coords[middle:]

    matching = 0
    for i in range(min(len(forward), len(back)) - 1):
        for j in range(len(back) - 1):
            if (
                distance_km(forward[i], back[j + 1]) < RETRACING_TOLERANCE_KM
                and distance_km(forward[i + 1], back[j]) < RETRACING_TOLERANCE_KM
            ):
                matching += 1
                break

    overlap = matching / min(len(forward) - 1, len(back) - 1) * 100
    if overlap > 70:
        path_type = OUT_AND_BACK
    elif overlap < 30:
        path_type = PROPER_LOOP
    else:
        path_type = PARTIAL_LOOP

    return RetracingAnalysis(
        overlap_percentage=round(overlap, 1),
        path_type=path_type,
        retracing_segments=matching,
    )


__all__ = [
    "LoopOptimizer",
    "OUT_AND_BACK",
    "PARTIAL_LOOP",
    "PROPER_LOOP",
    "UNKNOWN_PATH",
    "analyze_path_retracing",
]
