from __future__ import annotations

import asyncio
import logging
import math
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from tripsmith.core.config import Settings, settings as default_settings
from tripsmith.core.context import bind_trip
from tripsmith.models.schemas import (
    DailyRoute,
    GenerationMetadata,
    GeocodedWaypoint,
    RouteData,
    RoutingMetadata,
    SynthesizedRoute,
)
from tripsmith.services.geocoding import GeocodingService, build_geocoding_service
from tripsmith.services.images import UnsplashImageProvider, build_image_provider
from tripsmith.services.llm import build_text_provider
from tripsmith.services.routing import GEOMETRIC_SOURCE, RoutingService, build_routing_service

from .constants import (
    COUNTRY_CENTROIDS,
    CYCLING,
    DEFAULT_CENTROID,
    DEFAULT_DIFFICULTY,
    DEFAULT_DURATION,
    DEFAULT_TOTAL_KM,
    ROUTING_PROFILES,
    TREKKING,
    TREKKING_MAX_KM,
    TREKKING_MIN_KM,
    TRIP_TYPES,
)
from .exceptions import InvalidTripRequest, RouteGenerationFailed
from .geometry import (
    circle_around,
    classify_difficulty,
    estimate_duration_min,
    nearest_index,
    path_length_km,
    scatter_path,
)
from .loop import LoopOptimizer, analyze_path_retracing
from .models import Coordinate, GeneratedSkeleton, GeocodedPoint, RouteGeometry, RouteSkeleton
from .skeleton import SkeletonGenerator
from .waypoints import all_waypoint_names, extract_waypoints, qualify_location

logger = logging.getLogger(__name__)

CENTROID_SOURCE = "country-centroid"

TIER_PROVIDER = 0
TIER_GEOMETRIC = 1
TIER_COUNTRY_CENTROID = 2
TIER_DEFAULT_CENTROID = 3


def country_centroid(country: str) -> Tuple[Coordinate, int]:
    """Approximate centre of ``country`` and the fallback tier it implies."""

    key = (country or "").strip().lower()
    if key in COUNTRY_CENTROIDS:
        return COUNTRY_CENTROIDS[key], TIER_COUNTRY_CENTROID
    logger.warning("No centroid known for %r, using default", country)
    return DEFAULT_CENTROID, TIER_DEFAULT_CENTROID


def authoritative_distance_km(skeleton: RouteSkeleton, trip_type: str) -> float:
    """Total distance taken from the skeleton, never from the routing provider."""

    day_distances = [day.distance_km for day in skeleton.days if day.distance_km and day.distance_km > 0]
    if day_distances:
        total = sum(day_distances)
    elif skeleton.total_distance_km and skeleton.total_distance_km > 0:
        total = skeleton.total_distance_km
    else:
        total = DEFAULT_TOTAL_KM

    if trip_type == TREKKING:
        clamped = min(max(total, TREKKING_MIN_KM), TREKKING_MAX_KM)
        if clamped != total:
            logger.warning("Trekking distance %.1f km corrected to %.1f km", total, clamped)
        total = clamped
    return round(total, 2)


def _same_name(a: str, b: str) -> bool:
    return " ".join(a.split()).casefold() == " ".join(b.split()).casefold()


@dataclass
class _SynthesisState:
    generated: Optional[GeneratedSkeleton] = None
    points: List[GeocodedPoint] = field(default_factory=list)


class RouteSynthesizer:
    """Turns ``(country, trip type, city)`` into a complete route."""

    def __init__(
        self,
        skeleton_generator: SkeletonGenerator,
        geocoding: GeocodingService,
        routing: RoutingService,
        loop_optimizer: Optional[LoopOptimizer] = None,
        image_provider: Optional[UnsplashImageProvider] = None,
        *,
        timeout_seconds: float = 120.0,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.skeleton_generator = skeleton_generator
        self.geocoding = geocoding
        self.routing = routing
        self.loop_optimizer = loop_optimizer or LoopOptimizer()
        self.image_provider = image_provider
        self.timeout_seconds = timeout_seconds
        self.rng = rng or random.Random()
        self._clock = clock

    async def synthesize(self, country: str, trip_type: str, city: Optional[str] = None) -> SynthesizedRoute:
        country, trip_type, city = self._validate_request(country, trip_type, city)
        state = _SynthesisState()
        started = self._clock()
        logger.info("Synthesizing %s route for %s%s", trip_type, f"{city}, " if city else "", country)

        try:
            with bind_trip(country, trip_type):
                return await asyncio.wait_for(
                    self._run(country, trip_type, city, state, started),
                    timeout=self.timeout_seconds,
                )
        except asyncio.TimeoutError:
            if state.generated is None:
                raise RouteGenerationFailed(
                    f"Route generation timed out after {self.timeout_seconds:g}s"
                ) from None
            logger.warning("⚠ Synthesis timed out after %gs, returning centroid route", self.timeout_seconds)
            skeleton = state.generated.skeleton
            total = authoritative_distance_km(skeleton, trip_type)
            geometry, tier = self._centroid_geometry(country, trip_type, total)
            return self._assemble(
                country, trip_type, city, state.generated, state.points, geometry, tier, total, None, None, started
            )

    @staticmethod
    def _validate_request(country: str, trip_type: str, city: Optional[str]) -> Tuple[str, str, Optional[str]]:
        country = (country or "").strip()
        if not country:
            raise InvalidTripRequest("Country is required")
        trip_type = (trip_type or "").strip().lower()
        if trip_type not in TRIP_TYPES:
            raise InvalidTripRequest(f"Trip type must be one of {', '.join(TRIP_TYPES)}, got {trip_type!r}")
        city = city.strip() if city and city.strip() else None
        return country, trip_type, city

    async def _run(
        self,
        country: str,
        trip_type: str,
        city: Optional[str],
        state: _SynthesisState,
        started: float,
    ) -> SynthesizedRoute:
        generated = await self.skeleton_generator.generate(country, trip_type, city)
        state.generated = generated
        skeleton = generated.skeleton

        names = extract_waypoints(skeleton, country)
        points = await self.geocoding.resolve_many(names) if names else []
        state.points = points

        total = authoritative_distance_km(skeleton, trip_type)
        loop_score: Optional[float] = None
        required = 2 if trip_type == CYCLING else 1

        if len(points) < required:
            logger.warning("⚠ Only %d/%d waypoints geocoded, using centroid route", len(points), len(names))
            geometry, tier = self._centroid_geometry(country, trip_type, total)
        else:
            if trip_type == TREKKING:
                points = self.loop_optimizer.filter_for_trekking(points, total)
                points = self.loop_optimizer.optimize_for_loop(points)
                if len(points) >= 3:
                    loop_score = self.loop_optimizer.loop_quality_score([point.coordinates for point in points])
            geometry = await self._route(points, trip_type, total)
            tier = TIER_GEOMETRIC if geometry.source == GEOMETRIC_SOURCE else TIER_PROVIDER

        image_url = None
        if self.image_provider is not None:
            try:
                image_url = await self.image_provider.find_image(country, city)
            except Exception as exc:
                logger.warning("⚠ Image lookup failed, continuing without image: %s", exc)

        return self._assemble(
            country, trip_type, city, generated, points, geometry, tier, total, loop_score, image_url, started
        )

    async def _route(self, points: List[GeocodedPoint], trip_type: str, total: float) -> RouteGeometry:
        coords = [point.coordinates for point in points]
        try:
            if trip_type == TREKKING and len(coords) == 1:
                return await self.routing.circular_route(coords[0], total, trip_type)
            return await self.routing.route(coords, trip_type)
        except Exception as exc:
            logger.warning("⚠ Routing failed (%s), synthesizing geometric path", exc)
            return self.routing.synthesize(coords, trip_type)

    def _centroid_geometry(self, country: str, trip_type: str, total: float) -> Tuple[RouteGeometry, int]:
        center, tier = country_centroid(country)
        if trip_type == TREKKING:
            coordinates = circle_around(center, total / (2 * math.pi))
        else:
            coordinates = scatter_path(center, rng=self.rng)

        distance = round(path_length_km(coordinates), 2)
        duration = round(estimate_duration_min(distance, trip_type), 1)
        geometry = RouteGeometry(
            coordinates=coordinates,
            distance_km=distance,
            duration_min=duration,
            difficulty=classify_difficulty(distance, duration, trip_type),
            source=CENTROID_SOURCE,
            profile=ROUTING_PROFILES[trip_type],
        )
        return geometry, tier

    def _daily_routes(
        self,
        skeleton: RouteSkeleton,
        country: str,
        trip_type: str,
        points: List[GeocodedPoint],
        coordinates: List[Coordinate],
        total: float,
    ) -> List[DailyRoute]:
        day1 = skeleton.day1
        if trip_type == TREKKING or skeleton.day2 is None:
            return [
                DailyRoute(
                    day=1,
                    start_point=day1.start,
                    end_point=day1.end,
                    distance_km=total,
                    coordinates=[list(coord) for coord in coordinates],
                    waypoints=list(day1.waypoints),
                )
            ]

        day2 = skeleton.day2
        split = self._split_index(day1.end, day1.distance_km, day2.distance_km, country, points, coordinates)
        return [
            DailyRoute(
                day=1,
                start_point=day1.start,
                end_point=day1.end,
                distance_km=day1.distance_km,
                coordinates=[list(coord) for coord in coordinates[: split + 1]],
                waypoints=list(day1.waypoints),
            ),
            DailyRoute(
                day=2,
                start_point=day2.start,
                end_point=day2.end,
                distance_km=day2.distance_km,
                coordinates=[list(coord) for coord in coordinates[split:]],
                waypoints=list(day2.waypoints),
            ),
        ]

    @staticmethod
    def _split_index(
        day1_end: str,
        day1_km: float,
        day2_km: float,
        country: str,
        points: List[GeocodedPoint],
        coordinates: List[Coordinate],
    ) -> int:
        if len(coordinates) < 3:
            return len(coordinates) - 1

        target = qualify_location(day1_end, country)
        match = next((point for point in points if _same_name(point.name, target)), None)
        if match is not None:
            index = nearest_index(coordinates, match.coordinates)
        else:
            index = round((len(coordinates) - 1) * day1_km / (day1_km + day2_km))
        return max(1, min(index, len(coordinates) - 2))

    def _assemble(
        self,
        country: str,
        trip_type: str,
        city: Optional[str],
        generated: GeneratedSkeleton,
        points: List[GeocodedPoint],
        geometry: RouteGeometry,
        tier: int,
        total: float,
        loop_score: Optional[float],
        image_url: Optional[str],
        started: float,
    ) -> SynthesizedRoute:
        skeleton = generated.skeleton
        coordinates = list(geometry.coordinates)

        path_type = None
        overlap = None
        if trip_type == TREKKING:
            retracing = analyze_path_retracing(coordinates)
            path_type = retracing.path_type
            overlap = retracing.overlap_percentage

        elapsed_ms = int((self._clock() - started) * 1000)
        logger.info(
            "✓ %s route ready: %.1f km (measured %.1f km), tier %d, %d ms",
            trip_type,
            total,
            geometry.distance_km,
            tier,
            elapsed_ms,
        )

        return SynthesizedRoute(
            country=country,
            city=city,
            trip_type=trip_type,
            route_data=RouteData(
                coordinates=[list(coord) for coord in coordinates],
                waypoints=all_waypoint_names(skeleton),
                daily_routes=self._daily_routes(skeleton, country, trip_type, points, coordinates, total),
                total_distance_km=total,
                estimated_duration=skeleton.estimated_duration or DEFAULT_DURATION[trip_type],
                difficulty=skeleton.difficulty or geometry.difficulty or DEFAULT_DIFFICULTY,
            ),
            image_url=image_url,
            routing_metadata=RoutingMetadata(
                source=geometry.source,
                profile=geometry.profile,
                measured_distance_km=geometry.distance_km,
                measured_duration_min=geometry.duration_min,
                fallback_tier=tier,
                geocoded_waypoints=[
                    GeocodedWaypoint(
                        name=point.name,
                        lat=point.lat,
                        lon=point.lon,
                        source=point.source,
                        accuracy=point.accuracy,
                    )
                    for point in points
                ],
                loop_quality_score=loop_score,
                path_type=path_type,
                overlap_percentage=overlap,
            ),
            generation_metadata=GenerationMetadata(
                llm_model=generated.model,
                prompt=generated.prompt,
                processing_time_ms=elapsed_ms,
                generated_at=datetime.now(timezone.utc),
                attempt_number=generated.model_index + 1,
                image_retrieved=image_url is not None,
            ),
        )


def build_route_synthesizer(config: Optional[Settings] = None) -> RouteSynthesizer:
    config = config or default_settings
    generator = SkeletonGenerator(
        build_text_provider(config),
        config.llm_model_chain,
        max_attempts=config.LLM_MAX_ATTEMPTS,
        backoff_base=config.LLM_BACKOFF_BASE_SECONDS,
    )
    return RouteSynthesizer(
        generator,
        build_geocoding_service(config),
        build_routing_service(config),
        LoopOptimizer.from_settings(config),
        build_image_provider(config),
        timeout_seconds=config.SYNTHESIS_TIMEOUT_SECONDS,
    )


__all__ = [
    "CENTROID_SOURCE",
    "RouteSynthesizer",
    "authoritative_distance_km",
    "build_route_synthesizer",
    "country_centroid",
]
