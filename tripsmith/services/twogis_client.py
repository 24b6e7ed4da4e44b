import logging
from typing import Any, Dict, Optional

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


class TwoGISSearchProvider:
    """Base for 2GIS Catalog API lookups; both tiers share one API key."""

    BASE_URL = "https://catalog.api.2gis.com/3.0"
    PATH = "/items"
    name = "2gis"
    family = "2gis"
    accuracy = "unknown"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self._timeout = httpx.Timeout(timeout, connect=5.0)
        self._transport = transport

        if not self.api_key:
            logger.warning("2GIS API key not configured, %s lookups disabled", self.name)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _params(self, query: str) -> Dict[str, Any]:
        return {
            "q": query,
            "fields": "items.point,items.full_name",
            "page_size": 1,
            "key": self.api_key,
        }

    async def _request(self, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.BASE_URL}{self.PATH}"
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.get(url, params=params)
            except httpx.HTTPError as exc:
                raise error_for_transport(self.name, exc) from exc

        if response.status_code != 200:
            raise error_for_status(self.name, response.status_code)

        data = json_body(self.name, response)
        # 2GIS reports lookup errors inside the body with HTTP 200
        try:
            meta = data.get("meta") or {}
            code = int(meta.get("code", 200))
            message = (meta.get("error") or {}).get("message", "") if code != 200 else ""
        except PAYLOAD_ERRORS as exc:
            raise error_for_payload(self.name, exc) from exc
        if code != 200:
            raise error_for_status(self.name, code, message)
        return data

    async def search(self, query: str) -> GeocodeHit:
        data = await self._request(self._params(query))

        try:
            items = (data.get("result") or {}).get("items") or []
            for item in items:
                point = item.get("point")
                if point and "lat" in point and "lon" in point:
                    coords = (float(point["lat"]), float(point["lon"]))
                    logger.info("✓ %s: %s → %s", self.name, query, coords)
                    return GeocodeHit(
                        coordinates=coords,
                        display_name=item.get("full_name") or item.get("name") or query,
                        type=item.get("type", ""),
                        raw=item,
                    )
        except PAYLOAD_ERRORS as exc:
            raise error_for_payload(self.name, exc) from exc

        raise ProviderNotFound(self.name, f"no match for {query!r}")


class TwoGISPlacesProvider(TwoGISSearchProvider):
    """Named places and points of interest (landmarks, trailheads, lakes)."""

    PATH = "/items"
    name = "2gis-places"
    accuracy = "poi"

    def _params(self, query: str) -> Dict[str, Any]:
        params = super()._params(query)
        params["type"] = "attraction,adm_div.city,adm_div.settlement,adm_div.place,branch"
        return params


class TwoGISGeocoderProvider(TwoGISSearchProvider):
    """Structured address geocoding."""

    PATH = "/items/geocode"
    name = "2gis-geocoder"
    accuracy = "address"


__all__ = ["TwoGISGeocoderProvider", "TwoGISPlacesProvider", "TwoGISSearchProvider"]
