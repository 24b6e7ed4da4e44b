import logging
from typing import Any, Dict, List, Optional

import httpx

from tripsmith.core.config import Settings, settings as default_settings
from tripsmith.services.errors import (
    PAYLOAD_ERRORS,
    ProviderAuthError,
    ProviderError,
    ProviderQuotaError,
    error_for_payload,
    error_for_status,
    error_for_transport,
    json_body,
)

logger = logging.getLogger(__name__)


def build_search_queries(country: str, city: Optional[str] = None) -> List[str]:
    """Search queries for a country/city image, most specific first."""

    queries: List[str] = []
    if city:
        queries.append(f"{city} {country} landscape")
        queries.append(f"{city} {country} cityscape")
        queries.append(f"{city} architecture")
    queries.extend(
        [
            f"{country} landscape nature",
            f"{country} travel destination",
            f"{country} scenic view",
            f"{country} tourism",
            country,
        ]
    )
    return queries


def select_best_image(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    for image in results:
        width = image.get("width") or 0
        height = image.get("height") or 0
        likes = image.get("likes") or 0
        if width >= 1000 and height >= 600 and likes > 5:
            return image
    return results[0]


class UnsplashImageProvider:
    """Representative landscape photo lookup. Never raises; returns ``None``."""

    name = "unsplash"
    BASE_URL = "https://api.unsplash.com"

    def __init__(
        self,
        access_key: Optional[str],
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.access_key = access_key
        self._timeout = httpx.Timeout(timeout, connect=5.0)
        self._transport = transport

    async def _search(self, client: httpx.AsyncClient, query: str) -> Optional[Dict[str, Any]]:
        params = {
            "query": query,
            "page": 1,
            "per_page": 3,
            "orientation": "landscape",
            "order_by": "popular",
        }
        try:
            response = await client.get(f"{self.BASE_URL}/search/photos", params=params)
        except httpx.HTTPError as exc:
            raise error_for_transport(self.name, exc) from exc

        if response.status_code != 200:
            raise error_for_status(self.name, response.status_code)

        try:
            results = json_body(self.name, response).get("results") or []
            return select_best_image(results) if results else None
        except PAYLOAD_ERRORS as exc:
            raise error_for_payload(self.name, exc) from exc

    async def find_image(self, country: str, city: Optional[str] = None) -> Optional[str]:
        if not self.access_key:
            logger.debug("Unsplash access key not configured, skipping image lookup")
            return None

        headers = {"Authorization": f"Client-ID {self.access_key}", "Accept-Version": "v1"}
        async with httpx.AsyncClient(timeout=self._timeout, headers=headers, transport=self._transport) as client:
            for query in build_search_queries(country, city):
                try:
                    image = await self._search(client, query)
                except ProviderError as exc:
                    logger.warning("Image search failed for %r: %s", query, exc)
                    if isinstance(exc, (ProviderAuthError, ProviderQuotaError)):
                        return None
                    continue
                try:
                    url = ((image or {}).get("urls") or {}).get("regular")
                except PAYLOAD_ERRORS as exc:
                    logger.warning("Unexpected image entry for %r: %s", query, exc)
                    continue
                if url:
                    logger.info("✓ Image found for %r", query)
                    return url

        logger.info("No image found for %s", country)
        return None


def build_image_provider(config: Optional[Settings] = None) -> UnsplashImageProvider:
    config = config or default_settings
    return UnsplashImageProvider(config.UNSPLASH_ACCESS_KEY, timeout=config.IMAGE_TIMEOUT_SECONDS)


__all__ = ["UnsplashImageProvider", "build_image_provider", "build_search_queries", "select_best_image"]
