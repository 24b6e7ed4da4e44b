"""Route skeleton generation through a chain of generative models."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple

from tripsmith.services.errors import ProviderError, ProviderQuotaError, ProviderTimeout, ProviderUnavailable
from tripsmith.services.llm import TextGenerationProvider

from .exceptions import InvalidRouteSkeleton, MalformedModelOutput, RouteGenerationFailed
from .models import GeneratedSkeleton
from .prompts import SYSTEM_PROMPT, build_route_prompt
from .retry import with_retry
from .validation import parse_skeleton, validate_skeleton

logger = logging.getLogger(__name__)

# Failures worth another attempt against the same model; anything else
# moves straight on to the next model in the chain.
RETRYABLE_ERRORS: Tuple[type, ...] = (
    ProviderQuotaError,
    ProviderTimeout,
    ProviderUnavailable,
    MalformedModelOutput,
)


def extract_json_object(text: str) -> str:
    """Return the first balanced ``{...}`` block in ``text``.

    Braces inside JSON strings are ignored, so prose, code fences or a second
    object after the first one do not confuse the scan.
    """

    start = text.find("{")
    if start == -1:
        raise MalformedModelOutput("No JSON object found in model response")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]

    raise MalformedModelOutput("Unbalanced JSON object in model response")


def parse_model_json(text: str) -> Tuple[str, Any]:
    json_text = extract_json_object(text)
    try:
        return json_text, json.loads(json_text)
    except json.JSONDecodeError as exc:
        raise MalformedModelOutput(f"Invalid JSON in model response: {exc}") from exc


class SkeletonGenerator:
    def __init__(
        self,
        provider: TextGenerationProvider,
        models: Sequence[str],
        *,
        max_attempts: int = 3,
        backoff_base: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not models:
            raise ValueError("At least one model is required")
        self.provider = provider
        self.models = list(models)
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self._sleep = sleep

    async def _attempt(self, model: str, prompt: str) -> Tuple[str, Any]:
        text = await self.provider.generate(model, prompt, system=SYSTEM_PROMPT)
        if not text or not text.strip():
            raise MalformedModelOutput("Empty response from model")
        logger.debug("Raw response from %s: %d chars", model, len(text))
        return parse_model_json(text)

    async def generate(self, country: str, trip_type: str, city: Optional[str] = None) -> GeneratedSkeleton:
        prompt = build_route_prompt(country, trip_type, city)
        last_error: Optional[Exception] = None

        for index, model in enumerate(self.models):
            logger.info("Generating %s skeleton with %s (%d/%d)", trip_type, model, index + 1, len(self.models))
            try:
                json_text, data = await with_retry(
                    lambda: self._attempt(model, prompt),
                    max_attempts=self.max_attempts,
                    backoff_base=self.backoff_base,
                    retry_on=RETRYABLE_ERRORS,
                    sleep=self._sleep,
                )
                skeleton = parse_skeleton(data)
                validate_skeleton(skeleton, trip_type)
            except (ProviderError, MalformedModelOutput, InvalidRouteSkeleton) as exc:
                logger.warning("Model %s failed: %s", model, exc)
                last_error = exc
                continue

            logger.info("✓ Skeleton generated by %s", model)
            return GeneratedSkeleton(
                skeleton=skeleton,
                skeleton_json=json_text,
                model=model,
                prompt=prompt,
                model_index=index,
            )

        raise RouteGenerationFailed(
            f"All LLM models failed. Last error: {last_error if last_error else 'unknown error'}"
        )


__all__ = ["RETRYABLE_ERRORS", "SkeletonGenerator", "extract_json_object", "parse_model_json"]
