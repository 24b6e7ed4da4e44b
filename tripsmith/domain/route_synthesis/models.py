from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Coordinate = Tuple[float, float]


@dataclass
class DaySpec:
    start: str
    end: str
    distance_km: Optional[float]
    waypoints: List[str] = field(default_factory=list)


@dataclass
class RouteSkeleton:
    """Day-by-day route description produced by the generative model."""

    day1: Optional[DaySpec]
    day2: Optional[DaySpec] = None
    total_distance_km: Optional[float] = None
    estimated_duration: Optional[str] = None
    difficulty: Optional[str] = None

    @property
    def days(self) -> List[DaySpec]:
        return [day for day in (self.day1, self.day2) if day is not None]


@dataclass(frozen=True)
class GeocodedPoint:
    name: str
    coordinates: Coordinate
    source: str
    accuracy: str = "unknown"
    display_name: str = ""

    @property
    def lat(self) -> float:
        return self.coordinates[0]

    @property
    def lon(self) -> float:
        return self.coordinates[1]


@dataclass
class RouteGeometry:
    coordinates: List[Coordinate]
    distance_km: float
    duration_min: float
    difficulty: str
    source: str
    profile: str


@dataclass(frozen=True)
class RetracingAnalysis:
    overlap_percentage: float
    path_type: str
    retracing_segments: int


@dataclass
class GeneratedSkeleton:
    skeleton: RouteSkeleton
    skeleton_json: str
    model: str
    prompt: str
    model_index: int
