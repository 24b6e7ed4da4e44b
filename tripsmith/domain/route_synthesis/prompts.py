"""Prompt templates for the route skeleton generator."""

from __future__ import annotations

from typing import Optional

from .constants import CYCLING, CYCLING_MAX_DAY_KM, TREKKING_MAX_KM, TREKKING_MIN_KM

SYSTEM_PROMPT = (
    "You are a route planning API for cyclists and hikers. You respond with ONLY "
    "valid JSON: no markdown, no explanation, no commentary. Your entire response "
    "must be a single JSON object."
)

_CYCLING_PROMPT = """\
Generate a realistic 2-day cycling route in {location}.

Requirements:
- Exactly 2 consecutive days of cycling
- Maximum {max_day_km:.0f} km per day, never more
- City-to-city route: each day has DIFFERENT start and end points
- Day 2 MUST start exactly where day 1 ends (use the identical place name)
- Follow actual roads and cycling paths
- Use specific, real town and landmark names that a map search can find
- Provide realistic distances in kilometres as plain numbers

Return ONLY a JSON object in this exact format:
{{
  "route": {{
    "day1": {{
      "start": "Starting town",
      "end": "Overnight town",
      "distanceKm": 45,
      "waypoints": ["Landmark 1", "Village A", "Landmark 2"]
    }},
    "day2": {{
      "start": "Overnight town",
      "end": "Final town",
      "distanceKm": 55,
      "waypoints": ["Landmark 3", "Village B", "Landmark 4"]
    }},
    "totalDistanceKm": 100,
    "estimatedDuration": "2 days",
    "difficulty": "moderate"
  }}
}}"""

_TREKKING_PROMPT = """\
Generate a realistic circular trekking route in {location}.

Requirements:
- Single-day LOOP: start and end at the SAME trailhead (use the identical name)
- Total distance between {min_km:.0f} and {max_km:.0f} km
- 4 to 5 waypoints spread AROUND the trailhead so the walk forms a loop,
  not a line walked out and back; waypoints must lie in different directions
- Every waypoint within about {radius_km:.0f} km of the trailhead
- Follow actual hiking trails and paths
- Use specific, real landmark, summit, lake and trail names
- Provide a realistic distance in kilometres as a plain number

Return ONLY a JSON object in this exact format:
{{
  "route": {{
    "day1": {{
      "start": "Trailhead",
      "end": "Trailhead",
      "distanceKm": 12,
      "waypoints": ["Trail junction", "Summit or viewpoint", "Lake or landmark", "Second junction"]
    }},
    "totalDistanceKm": 12,
    "estimatedDuration": "1 day",
    "difficulty": "moderate"
  }}
}}"""


def format_location(country: str, city: Optional[str] = None) -> str:
    return f"{city}, {country}" if city else country


def build_route_prompt(country: str, trip_type: str, city: Optional[str] = None) -> str:
    location = format_location(country, city)
    if trip_type == CYCLING:
        return _CYCLING_PROMPT.format(location=location, max_day_km=CYCLING_MAX_DAY_KM)
    return _TREKKING_PROMPT.format(
        location=location,
        min_km=TREKKING_MIN_KM,
        max_km=TREKKING_MAX_KM,
        radius_km=TREKKING_MAX_KM / 2,
    )


__all__ = ["SYSTEM_PROMPT", "build_route_prompt", "format_location"]
