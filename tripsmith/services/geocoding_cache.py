"""Name → coordinates cache backends used by the geocoding resolver."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from tripsmith.domain.route_synthesis.models import GeocodedPoint

logger = logging.getLogger(__name__)


def normalize_cache_key(name: str) -> str:
    return " ".join((name or "").split()).lower()


class GeocodeCache(Protocol):
    async def get(self, key: str) -> Optional[GeocodedPoint]:
        ...

    async def set(self, key: str, point: GeocodedPoint) -> None:
        ...

    async def clear(self) -> None:
        ...

    async def stats(self) -> Dict[str, Any]:
        ...


class InMemoryGeocodeCache:
    """Per-process cache; entries live until ``clear()``."""

    backend = "memory"

    def __init__(self) -> None:
        self._entries: Dict[str, GeocodedPoint] = {}

    async def get(self, key: str) -> Optional[GeocodedPoint]:
        return self._entries.get(key)

    async def set(self, key: str, point: GeocodedPoint) -> None:
        self._entries[key] = point

    async def clear(self) -> None:
        self._entries.clear()

    async def stats(self) -> Dict[str, Any]:
        return {"backend": self.backend, "size": len(self._entries), "keys": sorted(self._entries)}


def _encode(point: GeocodedPoint) -> str:
    return json.dumps(
        {
            "name": point.name,
            "lat": point.lat,
            "lon": point.lon,
            "source": point.source,
            "accuracy": point.accuracy,
            "display_name": point.display_name,
        }
    )


def _decode(raw: Any) -> GeocodedPoint:
    data = json.loads(raw)
    return GeocodedPoint(
        name=data["name"],
        coordinates=(float(data["lat"]), float(data["lon"])),
        source=data["source"],
        accuracy=data.get("accuracy", "unknown"),
        display_name=data.get("display_name", ""),
    )


class RedisGeocodeCache:
    """Shared cache in Redis. Connection problems degrade to cache misses."""

    backend = "redis"
    PREFIX = "tripsmith:geocode:"

    def __init__(self, redis_url: str, ttl_seconds: int = 86400, client: Optional[redis.Redis] = None) -> None:
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.redis_client: Optional[redis.Redis] = client

    async def connect_redis(self) -> redis.Redis:
        if not self.redis_client:
            self.redis_client = redis.from_url(self.redis_url)
        return self.redis_client

    async def close(self) -> None:
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None

    async def get(self, key: str) -> Optional[GeocodedPoint]:
        client = await self.connect_redis()
        try:
            cached = await client.get(self.PREFIX + key)
        except RedisError as exc:
            logger.warning("Geocode cache read failed for %r: %s", key, exc)
            return None
        if cached is None:
            return None
        try:
            return _decode(cached)
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding corrupt geocode cache entry %r: %s", key, exc)
            return None

    async def set(self, key: str, point: GeocodedPoint) -> None:
        client = await self.connect_redis()
        try:
            await client.set(self.PREFIX + key, _encode(point), ex=self.ttl_seconds)
        except RedisError as exc:
            logger.warning("Geocode cache write failed for %r: %s", key, exc)

    async def _keys(self) -> list:
        client = await self.connect_redis()
        keys = []
        async for raw_key in client.scan_iter(match=f"{self.PREFIX}*"):
            key = raw_key.decode() if isinstance(raw_key, bytes) else raw_key
            keys.append(key)
        return keys

    async def clear(self) -> None:
        try:
            keys = await self._keys()
            if keys:
                await self.redis_client.delete(*keys)
        except RedisError as exc:
            logger.warning("Geocode cache clear failed: %s", exc)

    async def stats(self) -> Dict[str, Any]:
        try:
            keys = await self._keys()
        except RedisError as exc:
            logger.warning("Geocode cache stats unavailable: %s", exc)
            return {"backend": self.backend, "size": 0, "keys": [], "error": str(exc)}
        names = sorted(key[len(self.PREFIX):] for key in keys)
        return {"backend": self.backend, "size": len(names), "keys": names}


__all__ = [
    "GeocodeCache",
    "InMemoryGeocodeCache",
    "RedisGeocodeCache",
    "normalize_cache_key",
]
