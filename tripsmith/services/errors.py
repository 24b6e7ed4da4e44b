"""Typed failures raised by external provider adapters.

Every adapter (LLM, geocoder, router, image search) translates transport and
SDK exceptions into one of these classes at its boundary so callers can tell
"try again later" apart from "stop using this provider".
"""

from __future__ import annotations

from typing import Any

import httpx


class ProviderError(Exception):
    retryable: bool = False

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ProviderAuthError(ProviderError):
    """Missing, invalid or unauthorised API key."""


class ProviderQuotaError(ProviderError):
    """Rate limit or daily budget exhausted."""

    retryable = True


class ProviderNotFound(ProviderError):
    """The provider answered but had no result for the query."""


class ProviderTimeout(ProviderError):
    retryable = True


class ProviderUnavailable(ProviderError):
    """Transport failure, 5xx answer or an unreadable response body."""

    retryable = True


class ContentPolicyError(ProviderError):
    """The generative model refused the prompt."""


class MalformedRequestError(ProviderError):
    """The provider rejected the request arguments (4xx other than auth/quota)."""


def error_for_status(provider: str, status_code: int, detail: str = "") -> ProviderError:
    """Map an HTTP status code from a provider to the matching error class."""

    suffix = f": {detail}" if detail else ""
    if status_code in (401, 403):
        return ProviderAuthError(provider, f"access denied ({status_code}){suffix}")
    if status_code == 404:
        return ProviderNotFound(provider, f"not found{suffix}")
    if status_code == 429:
        return ProviderQuotaError(provider, f"rate limit exceeded{suffix}")
    if status_code >= 500:
        return ProviderUnavailable(provider, f"server error ({status_code}){suffix}")
    return MalformedRequestError(provider, f"request rejected ({status_code}){suffix}")


def error_for_transport(provider: str, exc: httpx.HTTPError) -> ProviderError:
    if isinstance(exc, httpx.TimeoutException):
        return ProviderTimeout(provider, "request timed out")
    return ProviderUnavailable(provider, f"request failed: {exc}")


# Raised while reading a JSON body of an unexpected shape
PAYLOAD_ERRORS = (KeyError, IndexError, TypeError, ValueError, AttributeError)


def error_for_payload(provider: str, exc: Exception) -> ProviderError:
    """A 200 answer whose body is not the JSON shape the adapter expects."""

    return ProviderUnavailable(provider, f"unexpected response body ({type(exc).__name__}: {exc})")


def json_body(provider: str, response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise error_for_payload(provider, exc) from exc


__all__ = [
    "ContentPolicyError",
    "MalformedRequestError",
    "PAYLOAD_ERRORS",
    "ProviderAuthError",
    "ProviderError",
    "ProviderNotFound",
    "ProviderQuotaError",
    "ProviderTimeout",
    "ProviderUnavailable",
    "error_for_payload",
    "error_for_status",
    "error_for_transport",
    "json_body",
]
