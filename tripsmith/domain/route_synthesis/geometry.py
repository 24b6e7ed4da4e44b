"""Plane and sphere helpers plus synthetic road/trail path generation."""

from __future__ import annotations

import math
import random
from typing import List, Optional, Sequence

from .constants import (
    CYCLING,
    DIFFICULTY_THRESHOLDS,
    KM_PER_DEGREE,
    LOOP_CLOSURE_TOLERANCE_KM,
    MOCK_CIRCLE_POINTS,
    MOCK_PATH_POINTS,
    ROAD_MAX_OFFSET_DEG,
    ROAD_SEGMENT_POINTS,
    TRAIL_MAX_OFFSET_DEG,
    TRAIL_SEGMENT_POINTS,
    TRAVEL_SPEED_KMH,
)
from .models import Coordinate


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    radius = 6371.0
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return radius * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a[0], a[1], b[0], b[1])


def path_length_km(coordinates: Sequence[Coordinate]) -> float:
    return sum(distance_km(coordinates[i], coordinates[i + 1]) for i in range(len(coordinates) - 1))


def centroid(points: Sequence[Coordinate]) -> Coordinate:
    if not points:
        raise ValueError("centroid of an empty point set")
    lat = sum(point[0] for point in points) / len(points)
    lon = sum(point[1] for point in points) / len(points)
    return (lat, lon)


def _to_local_xy(point: Coordinate, ref_lat: float) -> tuple[float, float]:
    """Equirectangular projection in kilometres around ``ref_lat``."""

    x = point[1] * KM_PER_DEGREE * math.cos(math.radians(ref_lat))
    y = point[0] * KM_PER_DEGREE
    return x, y


def polar_angle(point: Coordinate, center: Coordinate) -> float:
    """Angle of ``point`` around ``center`` in radians, in (-pi, pi]."""

    px, py = _to_local_xy(point, center[0])
    cx, cy = _to_local_xy(center, center[0])
    return math.atan2(py - cy, px - cx)


def turn_angle_deg(prev: Coordinate, vertex: Coordinate, nxt: Coordinate) -> float:
    """Angle at ``vertex`` between the incoming and outgoing legs.

    180 means the path continues straight through the vertex, 0 means it
    doubles back on itself.
    """

    ax, ay = _to_local_xy(prev, vertex[0])
    bx, by = _to_local_xy(vertex, vertex[0])
    cx, cy = _to_local_xy(nxt, vertex[0])
    v1 = (ax - bx, ay - by)
    v2 = (cx - bx, cy - by)
    norm1 = math.hypot(*v1)
    norm2 = math.hypot(*v2)
    if norm1 == 0 or norm2 == 0:
        return 0.0
    cosine = (v1[0] * v2[0] + v1[1] * v2[1]) / (norm1 * norm2)
    return math.degrees(math.acos(max(-1.0, min(1.0, cosine))))


def offset_point(center: Coordinate, radius_km: float, angle: float) -> Coordinate:
    radius_lat = radius_km / KM_PER_DEGREE
    radius_lon = radius_km / (KM_PER_DEGREE * math.cos(math.radians(center[0])))
    return (center[0] + radius_lat * math.sin(angle), center[1] + radius_lon * math.cos(angle))


def is_closed(coordinates: Sequence[Coordinate], tolerance_km: float = LOOP_CLOSURE_TOLERANCE_KM) -> bool:
    if len(coordinates) < 2:
        return False
    return distance_km(coordinates[0], coordinates[-1]) <= tolerance_km


def close_loop(coordinates: List[Coordinate]) -> List[Coordinate]:
    """Append the start point when the path ends more than 100 m away from it."""

    if coordinates and not is_closed(coordinates):
        coordinates.append(coordinates[0])
    return coordinates


def _lateral_offset(start: Coordinate, end: Coordinate, magnitude: float) -> Coordinate:
    d_lat = end[0] - start[0]
    d_lon = end[1] - start[1]
    norm = math.hypot(d_lat, d_lon)
    if norm == 0:
        return (0.0, 0.0)
    return (magnitude * -d_lon / norm, magnitude * d_lat / norm)


def road_segment(start: Coordinate, end: Coordinate, num_points: int = ROAD_SEGMENT_POINTS) -> List[Coordinate]:
    """Interpolated segment with gentle sinusoidal curves, like a road."""

    amplitude = min(distance_km(start, end) * 0.1, ROAD_MAX_OFFSET_DEG)
    coordinates = [start]
    for i in range(1, num_points):
        progress = i / num_points
        curve = math.sin(progress * math.pi * 3) * 0.3
        drift = math.sin(progress * math.pi * 2) * 0.7
        off_lat, off_lon = _lateral_offset(start, end, amplitude * (curve + drift * 0.5))
        coordinates.append(
            (
                start[0] + (end[0] - start[0]) * progress + off_lat,
                start[1] + (end[1] - start[1]) * progress + off_lon,
            )
        )
    coordinates.append(end)
    return coordinates


def trail_segment(
    start: Coordinate,
    end: Coordinate,
    num_points: int = TRAIL_SEGMENT_POINTS,
    rng: Optional[random.Random] = None,
) -> List[Coordinate]:
    """Interpolated segment that winds more than a road and jitters slightly."""

    rng = rng or random.Random()
    amplitude = min(distance_km(start, end) * 0.15, TRAIL_MAX_OFFSET_DEG)
    coordinates = [start]
    for i in range(1, num_points):
        progress = i / num_points
        winding = math.sin(progress * math.pi * 5) * 0.4
        terrain = math.sin(progress * math.pi * 1.5) * 0.6
        jitter = (rng.random() - 0.5) * 0.2
        off_lat, off_lon = _lateral_offset(start, end, amplitude * (winding + terrain + jitter))
        coordinates.append(
            (
                start[0] + (end[0] - start[0]) * progress + off_lat,
                start[1] + (end[1] - start[1]) * progress + off_lon,
            )
        )
    coordinates.append(end)
    return coordinates


def synthesize_path(
    points: Sequence[Coordinate],
    trip_type: str,
    rng: Optional[random.Random] = None,
) -> List[Coordinate]:
    """Dense path through ``points`` without any routing provider."""

    if not points:
        return []
    if len(points) == 1:
        return [points[0]]

    coordinates: List[Coordinate] = [points[0]]
    for start, end in zip(points, points[1:]):
        if trip_type == CYCLING:
            segment = road_segment(start, end)
        else:
            segment = trail_segment(start, end, rng=rng)
        coordinates.extend(segment[1:])
    return coordinates


def circle_around(center: Coordinate, radius_km: float, num_points: int = MOCK_CIRCLE_POINTS) -> List[Coordinate]:
    """Closed ring starting and ending at ``center``."""

    coordinates = [center]
    for i in range(num_points):
        coordinates.append(offset_point(center, radius_km, 2 * math.pi * i / num_points))
    coordinates.append(center)
    return coordinates


def scatter_path(
    center: Coordinate,
    num_points: int = MOCK_PATH_POINTS,
    rng: Optional[random.Random] = None,
) -> List[Coordinate]:
    """Open wandering path around ``center``; last resort for cycling."""

    rng = rng or random.Random()
    coordinates: List[Coordinate] = []
    for i in range(num_points):
        progress = i / (num_points - 1)
        lat_offset = math.sin(progress * math.pi * 2) * 0.05 + (rng.random() - 0.5) * 0.02
        lon_offset = math.cos(progress * math.pi * 1.5) * 0.05 + (rng.random() - 0.5) * 0.02
        coordinates.append((center[0] + lat_offset, center[1] + lon_offset))
    return coordinates


def estimate_duration_min(distance: float, trip_type: str) -> float:
    speed = TRAVEL_SPEED_KMH.get(trip_type, TRAVEL_SPEED_KMH[CYCLING])
    return distance / speed * 60.0


def classify_difficulty(distance: float, duration_min: float, trip_type: str) -> str:
    hours = duration_min / 60.0
    for max_km, max_hours, label in DIFFICULTY_THRESHOLDS.get(trip_type, DIFFICULTY_THRESHOLDS[CYCLING]):
        if distance < max_km and hours < max_hours:
            return label
    return "hard"


def nearest_index(coordinates: Sequence[Coordinate], target: Coordinate) -> int:
    return min(range(len(coordinates)), key=lambda idx: distance_km(coordinates[idx], target))


__all__ = [
    "centroid",
    "circle_around",
    "classify_difficulty",
    "close_loop",
    "distance_km",
    "estimate_duration_min",
    "haversine_km",
    "is_closed",
    "nearest_index",
    "offset_point",
    "path_length_km",
    "polar_angle",
    "road_segment",
    "scatter_path",
    "synthesize_path",
    "trail_segment",
    "turn_angle_deg",
]
