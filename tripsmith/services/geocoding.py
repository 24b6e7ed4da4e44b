import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from tripsmith.core.config import Settings, settings as default_settings
from tripsmith.domain.route_synthesis.exceptions import GeocodingFailed
from tripsmith.domain.route_synthesis.models import GeocodedPoint
from tripsmith.models.providers import GeocodeHit
from tripsmith.services.errors import ProviderAuthError, ProviderError, ProviderNotFound, ProviderQuotaError
from tripsmith.services.geocoding_cache import (
    GeocodeCache,
    InMemoryGeocodeCache,
    RedisGeocodeCache,
    normalize_cache_key,
)
from tripsmith.services.nominatim_client import NominatimProvider
from tripsmith.services.twogis_client import TwoGISGeocoderProvider, TwoGISPlacesProvider

logger = logging.getLogger(__name__)


class GeocodingProvider(Protocol):
    name: str
    family: str
    accuracy: str

    @property
    def is_configured(self) -> bool:
        ...

    async def search(self, query: str) -> GeocodeHit:
        ...


class GeocodingService:
    """Resolves place names through an ordered provider chain with caching."""

    def __init__(self, providers: Sequence[GeocodingProvider], cache: Optional[GeocodeCache] = None) -> None:
        self.providers = list(providers)
        self.cache = cache if cache is not None else InMemoryGeocodeCache()

    async def resolve(self, name: str) -> GeocodedPoint:
        key = normalize_cache_key(name)
        if not key:
            raise GeocodingFailed("Cannot geocode an empty location name")

        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug("Geocode cache hit: %s", key)
            return cached

        query = " ".join(name.split())
        skipped_families = set()
        errors: List[str] = []

        for provider in self.providers:
            if not provider.is_configured:
                continue
            if provider.family in skipped_families:
                logger.debug("Skipping %s after %s family failure", provider.name, provider.family)
                continue

            try:
                hit = await provider.search(query)
            except ProviderNotFound as exc:
                logger.info("%s found nothing for %r", provider.name, query)
                errors.append(str(exc))
                continue
            except (ProviderAuthError, ProviderQuotaError) as exc:
                logger.warning("%s unusable (%s), skipping %s providers", provider.name, exc, provider.family)
                skipped_families.add(provider.family)
                errors.append(str(exc))
                continue
            except ProviderError as exc:
                logger.warning("%s failed for %r: %s", provider.name, query, exc)
                errors.append(str(exc))
                continue

            point = GeocodedPoint(
                name=name,
                coordinates=hit.coordinates,
                source=provider.name,
                accuracy=provider.accuracy,
                display_name=hit.display_name,
            )
            await self.cache.set(key, point)
            return point

        detail = "; ".join(errors) if errors else "no geocoding provider configured"
        raise GeocodingFailed(f"Could not geocode {query!r}: {detail}")

    async def resolve_many(self, names: Sequence[str]) -> List[GeocodedPoint]:
        """Geocode ``names`` in order, dropping the ones nobody can resolve."""

        points: List[GeocodedPoint] = []
        for name in names:
            try:
                points.append(await self.resolve(name))
            except GeocodingFailed as exc:
                logger.warning("Skipping waypoint: %s", exc.message)
        logger.info("✓ Geocoded %d/%d waypoints", len(points), len(names))
        return points

    async def reverse(self, coordinates: Tuple[float, float]) -> GeocodeHit:
        """Name the place at ``coordinates`` using providers that support reverse lookups."""

        errors: List[str] = []
        for provider in self.providers:
            reverse = getattr(provider, "reverse", None)
            if reverse is None or not provider.is_configured:
                continue
            try:
                return await reverse(coordinates)
            except ProviderError as exc:
                logger.warning("%s reverse lookup failed for %s: %s", provider.name, coordinates, exc)
                errors.append(str(exc))

        detail = "; ".join(errors) if errors else "no reverse geocoding provider configured"
        raise GeocodingFailed(f"Could not reverse geocode {coordinates}: {detail}")

    async def cache_stats(self) -> Dict[str, Any]:
        return await self.cache.stats()

    async def clear_cache(self) -> None:
        await self.cache.clear()
        logger.info("Geocoding cache cleared")


def build_geocode_cache(config: Optional[Settings] = None) -> GeocodeCache:
    config = config or default_settings
    if config.GEOCODING_CACHE_BACKEND == "redis":
        return RedisGeocodeCache(config.REDIS_URL, ttl_seconds=config.GEOCODING_CACHE_TTL_SECONDS)
    return InMemoryGeocodeCache()


def build_geocoding_service(config: Optional[Settings] = None) -> GeocodingService:
    config = config or default_settings
    timeout = config.GEOCODING_TIMEOUT_SECONDS
    providers = [
        TwoGISPlacesProvider(config.TWOGIS_API_KEY, timeout=timeout),
        TwoGISGeocoderProvider(config.TWOGIS_API_KEY, timeout=timeout),
        NominatimProvider(config.NOMINATIM_URL, user_agent=config.NOMINATIM_USER_AGENT, timeout=timeout),
    ]
    return GeocodingService(providers, build_geocode_cache(config))


__all__ = ["GeocodingProvider", "GeocodingService", "build_geocode_cache", "build_geocoding_service"]
