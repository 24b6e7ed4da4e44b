"""Generative text providers used by the route skeleton generator."""

from __future__ import annotations

import logging
from types import ModuleType
from typing import Optional, Protocol

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from tripsmith.core.config import Settings, settings as default_settings
from tripsmith.services.errors import (
    ContentPolicyError,
    MalformedRequestError,
    ProviderAuthError,
    ProviderError,
    ProviderQuotaError,
    ProviderTimeout,
    ProviderUnavailable,
    error_for_status,
)

logger = logging.getLogger(__name__)


class TextGenerationProvider(Protocol):
    name: str

    async def generate(self, model: str, prompt: str, system: Optional[str] = None) -> str:
        ...


CONTENT_POLICY_CODES = frozenset({"content_policy_violation", "content_filter"})


def _is_content_policy(exc: Exception) -> bool:
    """Match the structured error code or type the SDK parsed from the body."""

    candidates = [getattr(exc, "code", None), getattr(exc, "type", None)]
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error") if isinstance(body.get("error"), dict) else body
        candidates.extend([error.get("code"), error.get("type")])
    return any(candidate in CONTENT_POLICY_CODES for candidate in candidates)


def translate_sdk_error(provider: str, exc: Exception, sdk: ModuleType) -> ProviderError:
    """Map an Anthropic/OpenAI SDK exception onto the provider error taxonomy.

    Both SDKs expose the same exception names, so the module is passed in.
    """

    if isinstance(exc, (sdk.AuthenticationError, sdk.PermissionDeniedError)):
        return ProviderAuthError(provider, str(exc))
    if isinstance(exc, sdk.RateLimitError):
        return ProviderQuotaError(provider, str(exc))
    if isinstance(exc, sdk.BadRequestError):
        if _is_content_policy(exc):
            return ContentPolicyError(provider, str(exc))
        return MalformedRequestError(provider, str(exc))
    if isinstance(exc, sdk.NotFoundError):
        return MalformedRequestError(provider, f"unknown model: {exc}")
    if isinstance(exc, sdk.APITimeoutError):
        return ProviderTimeout(provider, str(exc))
    if isinstance(exc, sdk.APIConnectionError):
        return ProviderUnavailable(provider, str(exc))
    if isinstance(exc, sdk.APIStatusError):
        return error_for_status(provider, exc.status_code, str(exc))
    return ProviderUnavailable(provider, str(exc))


class AnthropicTextProvider:
    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        client: Optional[AsyncAnthropic] = None,
    ) -> None:
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client or (AsyncAnthropic(api_key=api_key) if api_key else None)
        if self.client is None:
            logger.warning("Anthropic API key not configured, route generation will fail")

    async def generate(self, model: str, prompt: str, system: Optional[str] = None) -> str:
        if self.client is None:
            raise ProviderAuthError(self.name, "API key not configured")

        kwargs = {
            "model": model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            raise translate_sdk_error(self.name, exc, anthropic) from exc

        if getattr(response, "stop_reason", None) == "refusal":
            raise ContentPolicyError(self.name, "model refused the prompt")

        return "".join(
            getattr(block, "text", "") for block in response.content if getattr(block, "type", "text") == "text"
        )


class OpenAITextProvider:
    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client or (AsyncOpenAI(api_key=api_key) if api_key else None)
        if self.client is None:
            logger.warning("OpenAI API key not configured, route generation will fail")

    async def generate(self, model: str, prompt: str, system: Optional[str] = None) -> str:
        if self.client is None:
            raise ProviderAuthError(self.name, "API key not configured")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APIError as exc:
            raise translate_sdk_error(self.name, exc, openai) from exc

        if not response.choices:
            return ""
        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise ContentPolicyError(self.name, "completion blocked by content filter")
        return choice.message.content or ""


def build_text_provider(config: Optional[Settings] = None) -> TextGenerationProvider:
    config = config or default_settings
    if config.LLM_PROVIDER == "openai":
        return OpenAITextProvider(
            config.OPENAI_API_KEY,
            max_tokens=config.LLM_MAX_TOKENS,
            temperature=config.LLM_TEMPERATURE,
        )
    if config.LLM_PROVIDER != "anthropic":
        logger.warning("Unknown LLM provider %r, using anthropic", config.LLM_PROVIDER)
    return AnthropicTextProvider(
        config.ANTHROPIC_API_KEY,
        max_tokens=config.LLM_MAX_TOKENS,
        temperature=config.LLM_TEMPERATURE,
    )


__all__ = [
    "AnthropicTextProvider",
    "OpenAITextProvider",
    "TextGenerationProvider",
    "build_text_provider",
    "translate_sdk_error",
]
