import json
import os
import random
from typing import Dict, List, Optional, Tuple, Union
from unittest.mock import AsyncMock

os.environ.setdefault("GEOCODING_CACHE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from tripsmith.domain.route_synthesis.loop import LoopOptimizer
from tripsmith.domain.route_synthesis.service import RouteSynthesizer
from tripsmith.domain.route_synthesis.skeleton import SkeletonGenerator
from tripsmith.models.providers import GeocodeHit
from tripsmith.services.errors import ProviderNotFound
from tripsmith.services.geocoding import GeocodingService
from tripsmith.services.routing import RoutingService

PRIMARY_MODEL = "primary-model"
FALLBACK_MODEL = "fallback-model"

PARIS_CYCLING = {
    "route": {
        "day1": {
            "start": "Paris",
            "end": "Fontainebleau",
            "distanceKm": 55,
            "waypoints": ["Versailles", "Étampes"],
        },
        "day2": {
            "start": "Fontainebleau",
            "end": "Sens",
            "distanceKm": 45,
            "waypoints": ["Nemours"],
        },
        "totalDistanceKm": 100,
        "estimatedDuration": "2 days",
        "difficulty": "moderate",
    }
}

NICE_TREKKING = {
    "route": {
        "day1": {
            "start": "Nice",
            "end": "Nice",
            "distanceKm": 8,
            "waypoints": ["Colline du Château", "Mont Boron", "Cimiez"],
        },
        "totalDistanceKm": 8,
        "estimatedDuration": "1 day",
        "difficulty": "easy",
    }
}

PLACES: Dict[str, Tuple[float, float]] = {
    "paris, france": (48.8566, 2.3522),
    "versailles, france": (48.8049, 2.1204),
    "étampes, france": (48.4346, 2.1615),
    "fontainebleau, france": (48.4047, 2.7016),
    "nemours, france": (48.2673, 2.6966),
    "sens, france": (48.1975, 3.2833),
    "nice, france": (43.7102, 7.2620),
    "colline du château, france": (43.6950, 7.2800),
    "mont boron, france": (43.7000, 7.3000),
    "cimiez, france": (43.7200, 7.2750),
}


class FakeTextProvider:
    """Scripted text provider: per-model queue of replies or exceptions."""

    name = "fake"

    def __init__(self, script: Dict[str, List[Union[str, Exception]]]) -> None:
        self.script = {model: list(replies) for model, replies in script.items()}
        self.calls: List[str] = []

    async def generate(self, model: str, prompt: str, system: Optional[str] = None) -> str:
        self.calls.append(model)
        replies = self.script.get(model) or []
        if not replies:
            raise AssertionError(f"unexpected call to {model}")
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeGeocodingProvider:
    def __init__(
        self,
        places: Dict[str, Tuple[float, float]],
        *,
        name: str = "fake-geocoder",
        family: str = "fake",
        accuracy: str = "poi",
        configured: bool = True,
        error: Optional[Exception] = None,
    ) -> None:
        self.places = places
        self.name = name
        self.family = family
        self.accuracy = accuracy
        self.configured = configured
        self.error = error
        self.queries: List[str] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def search(self, query: str) -> GeocodeHit:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        coords = self.places.get(query.lower())
        if coords is None:
            raise ProviderNotFound(self.name, f"no match for {query!r}")
        return GeocodeHit(coordinates=coords, display_name=query)


def as_reply(data: dict) -> str:
    return f"Here is your route:\n```json\n{json.dumps(data, ensure_ascii=False)}\n```"


@pytest.fixture
def no_sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def make_synthesizer(no_sleep):
    def _make(
        script: Dict[str, List[Union[str, Exception]]],
        places: Optional[Dict[str, Tuple[float, float]]] = None,
        *,
        geocoder: Optional[FakeGeocodingProvider] = None,
        timeout_seconds: float = 30.0,
    ) -> RouteSynthesizer:
        provider = FakeTextProvider(script)
        generator = SkeletonGenerator(provider, [PRIMARY_MODEL, FALLBACK_MODEL], sleep=no_sleep)
        geocoding = GeocodingService([geocoder or FakeGeocodingProvider(PLACES if places is None else places)])
        routing = RoutingService(client=None, rng=random.Random(7))
        return RouteSynthesizer(
            generator,
            geocoding,
            routing,
            LoopOptimizer(),
            timeout_seconds=timeout_seconds,
            rng=random.Random(7),
        )

    return _make
