"""Normalised results returned by external provider adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass
class GeocodeHit:
    coordinates: Tuple[float, float]
    display_name: str
    type: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RoutedPath:
    polyline: List[Tuple[float, float]]
    distance_km: float
    duration_min: float
