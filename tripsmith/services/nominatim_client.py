import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from tripsmith.models.providers import GeocodeHit
from tripsmith.services.errors import (
    PAYLOAD_ERRORS,
    ProviderNotFound,
    error_for_payload,
    error_for_status,
    error_for_transport,
    json_body,
)

logger = logging.getLogger(__name__)


class NominatimProvider:
    """OpenStreetMap Nominatim search; keyless, used as the universal fallback."""

    name = "nominatim"
    family = "osm"
    accuracy = "approximate"

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        *,
        user_agent: str = "Tripsmith/0.3",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        # Nominatim's usage policy requires an identifying User-Agent
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._timeout = httpx.Timeout(timeout, connect=5.0)
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return True

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        async with httpx.AsyncClient(
            timeout=self._timeout, headers=self._headers, transport=self._transport
        ) as client:
            try:
                response = await client.get(f"{self.base_url}{path}", params=params)
            except httpx.HTTPError as exc:
                raise error_for_transport(self.name, exc) from exc

        if response.status_code != 200:
            raise error_for_status(self.name, response.status_code)
        return json_body(self.name, response)

    async def search(self, query: str) -> GeocodeHit:
        params = {
            "q": query,
            "format": "json",
            "limit": 1,
            "addressdetails": 1,
        }
        results = await self._get("/search", params)
        if not results:
            raise ProviderNotFound(self.name, f"no match for {query!r}")

        try:
            result = results[0]
            coords = (float(result["lat"]), float(result["lon"]))
            hit = GeocodeHit(
                coordinates=coords,
                display_name=result.get("display_name", query),
                type=result.get("addresstype") or result.get("type", ""),
                raw=result,
            )
        except PAYLOAD_ERRORS as exc:
            raise error_for_payload(self.name, exc) from exc

        logger.info("✓ %s: %s → %s", self.name, query, coords)
        return hit

    async def reverse(self, coordinates: Tuple[float, float]) -> GeocodeHit:
        """Name the place at ``coordinates``; ``raw["address"]`` holds the parts."""

        lat, lon = coordinates
        params = {"lat": lat, "lon": lon, "format": "json", "addressdetails": 1}
        result = await self._get("/reverse", params)

        # Nominatim reports "Unable to geocode" as a 200 with an error field
        if not result or (isinstance(result, dict) and "error" in result):
            raise ProviderNotFound(self.name, f"no place at {coordinates}")

        try:
            hit = GeocodeHit(
                coordinates=(float(result.get("lat", lat)), float(result.get("lon", lon))),
                display_name=result["display_name"],
                type=result.get("type", ""),
                raw={**result, "address": result.get("address") or {}},
            )
        except PAYLOAD_ERRORS as exc:
            raise error_for_payload(self.name, exc) from exc

        logger.info("✓ %s reverse: %s → %s", self.name, coordinates, hit.display_name)
        return hit


__all__ = ["NominatimProvider"]
