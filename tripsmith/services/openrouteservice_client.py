import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from tripsmith.models.providers import RoutedPath
from tripsmith.services.errors import (
    PAYLOAD_ERRORS,
    MalformedRequestError,
    ProviderAuthError,
    ProviderQuotaError,
    error_for_payload,
    error_for_status,
    error_for_transport,
    json_body,
)

logger = logging.getLogger(__name__)

MAX_ALTERNATIVES = 3
ALTERNATIVE_WEIGHT_FACTOR = 1.4
ALTERNATIVE_SHARE_FACTOR = 0.6


class OpenRouteServiceClient:
    """Directions client for the OpenRouteService v2 API.

    Coordinates are ``(lat, lon)`` everywhere in the application and are
    swapped to ``[lon, lat]`` only on the wire. The free tier allows a fixed
    number of calls per day, tracked here so that the caller can fall back
    before the provider starts refusing requests.
    """

    name = "openrouteservice"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.openrouteservice.org/v2",
        *,
        daily_limit: int = 2000,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.daily_limit = daily_limit
        self.request_count = 0
        self._timeout = httpx.Timeout(timeout, connect=5.0)
        self._transport = transport

        if not self.api_key:
            logger.warning("OpenRouteService API key not configured, using geometric routing only")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def is_available(self) -> bool:
        return self.is_configured and self.request_count < self.daily_limit

    def usage_stats(self) -> Dict[str, Any]:
        remaining = max(self.daily_limit - self.request_count, 0)
        percentage = round(self.request_count / self.daily_limit * 100, 2) if self.daily_limit else 100.0
        return {
            "requests_used": self.request_count,
            "daily_limit": self.daily_limit,
            "remaining": remaining,
            "percentage_used": percentage,
            "api_key_configured": self.is_configured,
        }

    def reset_daily_counter(self) -> None:
        self.request_count = 0
        logger.info("OpenRouteService daily counter reset")

    def _check_request(self, points: Sequence[Tuple[float, float]]) -> None:
        if not self.is_configured:
            raise ProviderAuthError(self.name, "API key not configured")
        if self.request_count >= self.daily_limit:
            raise ProviderQuotaError(self.name, f"daily limit of {self.daily_limit} requests reached")
        if len(points) < 2:
            raise MalformedRequestError(self.name, "at least two points are required")

    async def _directions(self, profile: str, payload: Dict[str, Any]) -> Any:
        headers = {
            "Authorization": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json, application/geo+json",
        }
        url = f"{self.base_url}/directions/{profile}/geojson"

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                raise error_for_transport(self.name, exc) from exc

        self.request_count += 1
        logger.debug("OpenRouteService request %d/%d", self.request_count, self.daily_limit)

        if response.status_code != 200:
            detail = ""
            try:
                detail = (response.json().get("error") or {}).get("message", "")
            except (ValueError, AttributeError):
                detail = response.text[:200]
            raise error_for_status(self.name, response.status_code, detail)

        return json_body(self.name, response)

    async def route(self, points: Sequence[Tuple[float, float]], profile: str) -> RoutedPath:
        self._check_request(points)
        payload = {
            "coordinates": [[lon, lat] for lat, lon in points],
            "instructions": False,
            "geometry_simplify": True,
            "continue_straight": False,
        }
        data = await self._directions(profile, payload)
        features = self._features(data)
        return self._parse_feature(features[0])

    async def route_alternatives(
        self, points: Sequence[Tuple[float, float]], profile: str, count: int = 2
    ) -> List[RoutedPath]:
        """Up to ``count`` (at most 3) distinct routes between two points.

        OpenRouteService only computes alternatives for two-point requests.
        Features that cannot be read are skipped.
        """

        self._check_request(points)
        payload = {
            "coordinates": [[lon, lat] for lat, lon in points],
            "instructions": False,
            "alternative_routes": {
                "target_count": max(1, min(count, MAX_ALTERNATIVES)),
                "weight_factor": ALTERNATIVE_WEIGHT_FACTOR,
                "share_factor": ALTERNATIVE_SHARE_FACTOR,
            },
        }
        data = await self._directions(profile, payload)

        routes: List[RoutedPath] = []
        for feature in self._features(data):
            try:
                routes.append(self._parse_feature(feature))
            except MalformedRequestError as exc:
                logger.warning("Skipping unreadable route alternative: %s", exc)
        if not routes:
            raise error_for_payload(self.name, ValueError("no readable route alternatives"))
        logger.info("✓ %d route alternatives", len(routes))
        return routes

    def _features(self, data: Any) -> List[Any]:
        try:
            features = data.get("features") or []
        except AttributeError as exc:
            raise error_for_payload(self.name, exc) from exc
        if not features or not isinstance(features, list):
            raise MalformedRequestError(self.name, "no route features in response")
        return features

    def _parse_feature(self, feature: Any) -> RoutedPath:
        try:
            raw_coords = (feature.get("geometry") or {}).get("coordinates") or []
            polyline: List[Tuple[float, float]] = [(float(c[1]), float(c[0])) for c in raw_coords]
            summary = (feature.get("properties") or {}).get("summary") or {}
            distance_km = round(float(summary.get("distance", 0.0)) / 1000.0, 2)
            duration_min = round(float(summary.get("duration", 0.0)) / 60.0, 1)
        except PAYLOAD_ERRORS as exc:
            raise MalformedRequestError(self.name, f"unreadable route feature: {exc}") from exc
        if len(polyline) < 2:
            raise MalformedRequestError(self.name, "route geometry has fewer than two points")

        logger.info("✓ Routed %d points: %.2f km, %.0f min", len(polyline), distance_km, duration_min)
        return RoutedPath(polyline=polyline, distance_km=distance_km, duration_min=duration_min)


__all__ = ["OpenRouteServiceClient"]
