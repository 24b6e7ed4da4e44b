"""Per-request context carried into log records.

Two values travel with every request: the trace id taken from the caller's
headers (or minted here) and a short ``trip`` label such as
``cycling:France`` that the route synthesizer binds while it works.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Mapping, Optional
from uuid import uuid4

TRACE_HEADERS = ("x-trace-id", "x-request-id")

_trace_id: ContextVar[str] = ContextVar("tripsmith_trace_id", default="-")
_trip: ContextVar[str] = ContextVar("tripsmith_trip", default="-")

_VALID_TRACE_ID = re.compile(r"^[A-Za-z0-9-]{8,64}$")


def resolve_trace_id(headers: Optional[Mapping[str, str]] = None) -> str:
    """Reuse a well-formed trace id from ``headers`` or mint a new one."""

    for name in TRACE_HEADERS:
        candidate = (headers or {}).get(name)
        if candidate and _VALID_TRACE_ID.match(candidate.strip()):
            return candidate.strip()
    return uuid4().hex


@contextmanager
def bind_request(trace_id: str) -> Iterator[str]:
    token = _trace_id.set(trace_id)
    try:
        yield trace_id
    finally:
        _trace_id.reset(token)


@contextmanager
def bind_trip(country: str, trip_type: str) -> Iterator[str]:
    label = f"{trip_type}:{country}"
    token = _trip.set(label)
    try:
        yield label
    finally:
        _trip.reset(token)


def current_trace_id() -> str:
    return _trace_id.get()


def current_trip() -> str:
    return _trip.get()
