from types import SimpleNamespace
from unittest.mock import AsyncMock

import anthropic
import httpx
import openai
import pytest

from tripsmith.core.config import Settings
from tripsmith.services.errors import (
    ContentPolicyError,
    MalformedRequestError,
    ProviderAuthError,
    ProviderQuotaError,
    ProviderTimeout,
)
from tripsmith.services.llm import AnthropicTextProvider, OpenAITextProvider, build_text_provider

ANTHROPIC_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _anthropic_client(**create_kwargs) -> SimpleNamespace:
    return SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(**create_kwargs)))


def _openai_client(**create_kwargs) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(**create_kwargs))))


@pytest.mark.asyncio
async def test_anthropic_joins_text_blocks_and_passes_system_prompt() -> None:
    message = SimpleNamespace(
        content=[SimpleNamespace(type="text", text='{"route": '), SimpleNamespace(type="text", text="{}}")],
        stop_reason="end_turn",
    )
    client = _anthropic_client(return_value=message)
    provider = AnthropicTextProvider("key", max_tokens=500, temperature=0.2, client=client)

    text = await provider.generate("claude-test", "plan a route", system="json only")

    assert text == '{"route": {}}'
    kwargs = client.messages.create.await_args.kwargs
    assert kwargs["model"] == "claude-test"
    assert kwargs["system"] == "json only"
    assert kwargs["max_tokens"] == 500


@pytest.mark.asyncio
async def test_anthropic_without_key_raises_auth_error() -> None:
    with pytest.raises(ProviderAuthError):
        await AnthropicTextProvider(None).generate("claude-test", "plan a route")


@pytest.mark.parametrize(
    "error, expected",
    [
        (
            anthropic.RateLimitError("slow down", response=httpx.Response(429, request=ANTHROPIC_REQUEST), body=None),
            ProviderQuotaError,
        ),
        (
            anthropic.AuthenticationError("bad key", response=httpx.Response(401, request=ANTHROPIC_REQUEST), body=None),
            ProviderAuthError,
        ),
        (
            anthropic.BadRequestError("max_tokens invalid", response=httpx.Response(400, request=ANTHROPIC_REQUEST), body=None),
            MalformedRequestError,
        ),
        (anthropic.APITimeoutError(request=ANTHROPIC_REQUEST), ProviderTimeout),
    ],
)
@pytest.mark.asyncio
async def test_anthropic_sdk_errors_are_translated(error, expected) -> None:
    provider = AnthropicTextProvider("key", client=_anthropic_client(side_effect=error))

    with pytest.raises(expected):
        await provider.generate("claude-test", "plan a route")


@pytest.mark.asyncio
async def test_anthropic_refusal_is_content_policy() -> None:
    message = SimpleNamespace(content=[], stop_reason="refusal")
    provider = AnthropicTextProvider("key", client=_anthropic_client(return_value=message))

    with pytest.raises(ContentPolicyError):
        await provider.generate("claude-test", "plan a route")


@pytest.mark.asyncio
async def test_openai_returns_message_content() -> None:
    completion = SimpleNamespace(
        choices=[SimpleNamespace(finish_reason="stop", message=SimpleNamespace(content='{"route": {}}'))]
    )
    client = _openai_client(return_value=completion)
    provider = OpenAITextProvider("key", client=client)

    assert await provider.generate("gpt-test", "plan a route", system="json only") == '{"route": {}}'
    messages = client.chat.completions.create.await_args.kwargs["messages"]
    assert messages[0] == {"role": "system", "content": "json only"}


@pytest.mark.asyncio
async def test_openai_content_filter_and_rate_limit() -> None:
    filtered = SimpleNamespace(choices=[SimpleNamespace(finish_reason="content_filter", message=SimpleNamespace(content=""))])
    with pytest.raises(ContentPolicyError):
        await OpenAITextProvider("key", client=_openai_client(return_value=filtered)).generate("gpt-test", "p")

    limited = openai.RateLimitError("slow down", response=httpx.Response(429, request=OPENAI_REQUEST), body=None)
    with pytest.raises(ProviderQuotaError):
        await OpenAITextProvider("key", client=_openai_client(side_effect=limited)).generate("gpt-test", "p")


def test_build_text_provider_selects_backend() -> None:
    assert isinstance(build_text_provider(Settings(LLM_PROVIDER="openai")), OpenAITextProvider)
    assert isinstance(build_text_provider(Settings(LLM_PROVIDER="anthropic")), AnthropicTextProvider)


def test_model_chain_deduplicates_fallbacks() -> None:
    config = Settings(LLM_MODEL="m1", LLM_FALLBACK_MODELS="m2, m1 ,m3,")

    assert config.llm_model_chain == ["m1", "m2", "m3"]


@pytest.mark.asyncio
async def test_bad_request_mentioning_safety_is_not_content_policy() -> None:
    error = anthropic.BadRequestError(
        "safety_settings is not a supported parameter",
        response=httpx.Response(400, request=ANTHROPIC_REQUEST),
        body={"type": "error", "error": {"type": "invalid_request_error", "message": "safety_settings"}},
    )
    provider = AnthropicTextProvider("key", client=_anthropic_client(side_effect=error))

    with pytest.raises(MalformedRequestError):
        await provider.generate("claude-test", "plan a route")


@pytest.mark.asyncio
async def test_content_policy_code_is_content_policy() -> None:
    error = openai.BadRequestError(
        "request rejected",
        response=httpx.Response(400, request=OPENAI_REQUEST),
        body={"code": "content_policy_violation", "message": "request rejected"},
    )
    provider = OpenAITextProvider("key", client=_openai_client(side_effect=error))

    with pytest.raises(ContentPolicyError):
        await provider.generate("gpt-test", "plan a route")
