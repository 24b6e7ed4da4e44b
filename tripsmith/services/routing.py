import logging
import math
import random
from typing import Any, Dict, List, Optional, Sequence

from tripsmith.core.config import Settings, settings as default_settings
from tripsmith.domain.route_synthesis.constants import (
    CIRCULAR_RADIUS_FACTOR,
    CIRCULAR_WAYPOINT_COUNT,
    CYCLING,
    ROUTING_PROFILES,
    TREKKING,
)
from tripsmith.domain.route_synthesis.exceptions import RoutingFailed
from tripsmith.domain.route_synthesis.geometry import (
    classify_difficulty,
    close_loop,
    estimate_duration_min,
    is_closed,
    offset_point,
    path_length_km,
    synthesize_path,
)
from tripsmith.domain.route_synthesis.models import Coordinate, RouteGeometry
from tripsmith.services.errors import ProviderError
from tripsmith.services.openrouteservice_client import OpenRouteServiceClient

logger = logging.getLogger(__name__)

GEOMETRIC_SOURCE = "geometric"

CLOCKWISE = "clockwise"
COUNTERCLOCKWISE = "counterclockwise"


class RoutingService:
    """Turns ordered waypoints into a dense path.

    OpenRouteService is tried first; any provider failure, a missing key or
    an exhausted daily budget degrades to geometric synthesis.
    """

    def __init__(self, client: Optional[OpenRouteServiceClient] = None, rng: Optional[random.Random] = None) -> None:
        self.client = client
        self.rng = rng or random.Random()

    def usage_stats(self) -> Dict[str, Any]:
        if self.client is None:
            return {
                "requests_used": 0,
                "daily_limit": 0,
                "remaining": 0,
                "percentage_used": 0.0,
                "api_key_configured": False,
            }
        return self.client.usage_stats()

    def reset_daily_counter(self) -> None:
        if self.client is not None:
            self.client.reset_daily_counter()

    def synthesize(self, points: Sequence[Coordinate], trip_type: str) -> RouteGeometry:
        """Geometric path through ``points`` with no provider involved."""

        waypoints = self._prepare_points(points, trip_type)
        coordinates = synthesize_path(waypoints, trip_type, rng=self.rng)
        return self._finish(coordinates, None, None, trip_type, GEOMETRIC_SOURCE)

    async def route(self, points: Sequence[Coordinate], trip_type: str) -> RouteGeometry:
        if len(points) < 2:
            raise RoutingFailed(f"Routing needs at least two points, got {len(points)}")

        waypoints = self._prepare_points(points, trip_type)
        profile = ROUTING_PROFILES.get(trip_type, ROUTING_PROFILES[CYCLING])

        if self.client is not None and self.client.is_available:
            try:
                routed = await self.client.route(waypoints, profile)
            except ProviderError as exc:
                logger.warning("⚠ Routing provider failed (%s), using geometric path", exc)
            else:
                return self._finish(
                    list(routed.polyline),
                    routed.distance_km,
                    routed.duration_min,
                    trip_type,
                    self.client.name,
                )
        elif self.client is not None:
            logger.info("Routing provider unavailable, using geometric path")

        coordinates = synthesize_path(waypoints, trip_type, rng=self.rng)
        return self._finish(coordinates, None, None, trip_type, GEOMETRIC_SOURCE)

    async def route_alternatives(
        self, points: Sequence[Coordinate], trip_type: str, count: int = 2
    ) -> List[RouteGeometry]:
        """Alternative provider routes; a single ``route()`` result when unavailable."""

        if len(points) < 2:
            raise RoutingFailed(f"Routing needs at least two points, got {len(points)}")

        if self.client is not None and self.client.is_available:
            waypoints = self._prepare_points(points, trip_type)
            profile = ROUTING_PROFILES.get(trip_type, ROUTING_PROFILES[CYCLING])
            try:
                routed = await self.client.route_alternatives(waypoints, profile, count)
            except ProviderError as exc:
                logger.warning("⚠ Route alternatives failed (%s), using a single route", exc)
            else:
                return [
                    self._finish(list(path.polyline), path.distance_km, path.duration_min, trip_type, self.client.name)
                    for path in routed
                ]

        return [await self.route(points, trip_type)]

    async def circular_route(
        self,
        center: Coordinate,
        distance_km: float,
        trip_type: str = TREKKING,
        direction: str = COUNTERCLOCKWISE,
    ) -> RouteGeometry:
        """Loop of roughly ``distance_km`` starting and ending at ``center``."""

        radius_km = distance_km / (2 * math.pi) * CIRCULAR_RADIUS_FACTOR
        start_angle = self.rng.random() * 2 * math.pi
        sign = -1.0 if direction == CLOCKWISE else 1.0

        ring = [
            offset_point(center, radius_km, start_angle + sign * 2 * math.pi * i / CIRCULAR_WAYPOINT_COUNT)
            for i in range(CIRCULAR_WAYPOINT_COUNT)
        ]
        logger.info("Circular route: %.1f km around %s (radius %.2f km)", distance_km, center, radius_km)
        return await self.route([center, *ring, center], trip_type)

    @staticmethod
    def _prepare_points(points: Sequence[Coordinate], trip_type: str) -> List[Coordinate]:
        waypoints = list(points)
        if trip_type == TREKKING and len(waypoints) >= 2 and not is_closed(waypoints):
            waypoints.append(waypoints[0])
        return waypoints

    @staticmethod
    def _finish(
        coordinates: List[Coordinate],
        distance: Optional[float],
        duration: Optional[float],
        trip_type: str,
        source: str,
    ) -> RouteGeometry:
        if trip_type == TREKKING:
            close_loop(coordinates)
        if distance is None:
            distance = round(path_length_km(coordinates), 2)
        if duration is None:
            duration = round(estimate_duration_min(distance, trip_type), 1)

        return RouteGeometry(
            coordinates=coordinates,
            distance_km=distance,
            duration_min=duration,
            difficulty=classify_difficulty(distance, duration, trip_type),
            source=source,
            profile=ROUTING_PROFILES.get(trip_type, ROUTING_PROFILES[CYCLING]),
        )


def build_routing_service(config: Optional[Settings] = None, rng: Optional[random.Random] = None) -> RoutingService:
    config = config or default_settings
    client = OpenRouteServiceClient(
        config.OPENROUTESERVICE_API_KEY,
        config.OPENROUTESERVICE_URL,
        daily_limit=config.ROUTING_DAILY_LIMIT,
        timeout=config.ROUTING_TIMEOUT_SECONDS,
    )
    return RoutingService(client, rng=rng)


__all__ = ["CLOCKWISE", "COUNTERCLOCKWISE", "GEOMETRIC_SOURCE", "RoutingService", "build_routing_service"]
