from __future__ import annotations

from typing import Dict, Tuple

CYCLING = "cycling"
TREKKING = "trekking"
TRIP_TYPES: Tuple[str, ...] = (CYCLING, TREKKING)

CYCLING_MAX_DAY_KM = 60.0
TREKKING_MIN_KM = 5.0
TREKKING_MAX_KM = 15.0
DEFAULT_TOTAL_KM = 10.0

DEFAULT_DURATION: Dict[str, str] = {
    CYCLING: "2 days",
    TREKKING: "1 day",
}
DEFAULT_DIFFICULTY = "moderate"

# Routing-provider profile per trip type.
ROUTING_PROFILES: Dict[str, str] = {
    CYCLING: "cycling-road",
    TREKKING: "foot-hiking",
}

# Average speeds used to estimate durations of synthesised paths.
TRAVEL_SPEED_KMH: Dict[str, float] = {
    CYCLING: 15.0,
    TREKKING: 4.0,
}

# (max_km, max_hours, label) checked in order; anything beyond is "hard".
DIFFICULTY_THRESHOLDS: Dict[str, Tuple[Tuple[float, float, str], ...]] = {
    CYCLING: ((30.0, 2.0, "easy"), (60.0, 4.0, "moderate")),
    TREKKING: ((8.0, 3.0, "easy"), (15.0, 6.0, "moderate")),
}

LOOP_CLOSURE_TOLERANCE_KM = 0.1
CIRCULAR_WAYPOINT_COUNT = 5
CIRCULAR_RADIUS_FACTOR = 1.5

ROAD_SEGMENT_POINTS = 15
TRAIL_SEGMENT_POINTS = 8
ROAD_MAX_OFFSET_DEG = 0.02
TRAIL_MAX_OFFSET_DEG = 0.03

TREKKING_MAX_LEG_KM = 8.0

MOCK_PATH_POINTS = 15
MOCK_CIRCLE_POINTS = 12

KM_PER_DEGREE = 111.0

DEFAULT_CENTROID: Tuple[float, float] = (50.0, 10.0)

COUNTRY_CENTROIDS: Dict[str, Tuple[float, float]] = {
    "france": (46.2276, 2.2137),
    "spain": (40.4637, -3.7492),
    "italy": (41.8719, 12.5674),
    "germany": (51.1657, 10.4515),
    "united kingdom": (55.3781, -3.436),
    "uk": (55.3781, -3.436),
    "britain": (55.3781, -3.436),
    "switzerland": (46.8182, 8.2275),
    "austria": (47.5162, 14.5501),
    "portugal": (39.3999, -8.2245),
    "netherlands": (52.1326, 5.2913),
    "belgium": (50.5039, 4.4699),
    "norway": (60.472, 8.4689),
    "sweden": (60.1282, 18.6435),
    "denmark": (56.2639, 9.5018),
    "united states": (39.8283, -98.5795),
    "usa": (39.8283, -98.5795),
    "canada": (56.1304, -106.3468),
    "mexico": (23.6345, -102.5528),
    "japan": (36.2048, 138.2529),
    "australia": (-25.2744, 133.7751),
    "new zealand": (-40.9006, 174.886),
    "chile": (-35.6751, -71.543),
    "argentina": (-38.4161, -63.6167),
    "brazil": (-14.235, -51.9253),
    "peru": (-9.19, -75.0152),
    "colombia": (4.5709, -74.2973),
}
