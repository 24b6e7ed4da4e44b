import copy
import json
from unittest.mock import call

import pytest

from tests.conftest import FALLBACK_MODEL, NICE_TREKKING, PARIS_CYCLING, PRIMARY_MODEL, FakeTextProvider, as_reply
from tripsmith.domain.route_synthesis.constants import CYCLING, TREKKING
from tripsmith.domain.route_synthesis.exceptions import (
    GENERATION_FAILURE_PREFIX,
    GenerationExhausted,
    MalformedModelOutput,
    RouteGenerationFailed,
)
from tripsmith.domain.route_synthesis.skeleton import SkeletonGenerator, extract_json_object, parse_model_json
from tripsmith.services.errors import ContentPolicyError, ProviderAuthError, ProviderUnavailable


def _generator(provider: FakeTextProvider, sleep) -> SkeletonGenerator:
    return SkeletonGenerator(provider, [PRIMARY_MODEL, FALLBACK_MODEL], sleep=sleep)


def test_extract_json_object_ignores_prose_and_braces_in_strings() -> None:
    text = 'Sure! ```json\n{"name": "Camp {North}", "inner": {"a": 1}}\n``` and {"second": true}'

    assert extract_json_object(text) == '{"name": "Camp {North}", "inner": {"a": 1}}'


def test_extract_json_object_without_object_fails() -> None:
    with pytest.raises(MalformedModelOutput):
        extract_json_object("I cannot help with that.")


def test_parse_model_json_rejects_invalid_json() -> None:
    with pytest.raises(MalformedModelOutput):
        parse_model_json("{'single': 'quotes'}")


@pytest.mark.asyncio
async def test_primary_model_success(no_sleep) -> None:
    provider = FakeTextProvider({PRIMARY_MODEL: [as_reply(PARIS_CYCLING)]})

    generated = await _generator(provider, no_sleep).generate("France", CYCLING, "Paris")

    assert generated.model == PRIMARY_MODEL
    assert generated.model_index == 0
    assert generated.skeleton.day1.start == "Paris"
    assert json.loads(generated.skeleton_json) == PARIS_CYCLING
    assert "Paris, France" in generated.prompt
    no_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_primary_failing_three_times_uses_fallback(no_sleep) -> None:
    outage = ProviderUnavailable("fake", "server error (503)")
    provider = FakeTextProvider({PRIMARY_MODEL: [outage], FALLBACK_MODEL: [as_reply(NICE_TREKKING)]})

    generated = await _generator(provider, no_sleep).generate("France", TREKKING, "Nice")

    assert generated.model == FALLBACK_MODEL
    assert generated.model_index == 1
    assert provider.calls == [PRIMARY_MODEL, PRIMARY_MODEL, PRIMARY_MODEL, FALLBACK_MODEL]
    assert no_sleep.await_args_list == [call(2.0), call(4.0)]


@pytest.mark.asyncio
async def test_malformed_output_is_retried_on_same_model(no_sleep) -> None:
    provider = FakeTextProvider({PRIMARY_MODEL: ["no json here", "   ", as_reply(NICE_TREKKING)]})

    generated = await _generator(provider, no_sleep).generate("France", TREKKING)

    assert generated.model == PRIMARY_MODEL
    assert provider.calls == [PRIMARY_MODEL] * 3


@pytest.mark.parametrize("error", [ProviderAuthError("fake", "bad key"), ContentPolicyError("fake", "refused")])
@pytest.mark.asyncio
async def test_non_retryable_errors_abandon_model_immediately(no_sleep, error) -> None:
    provider = FakeTextProvider({PRIMARY_MODEL: [error], FALLBACK_MODEL: [as_reply(NICE_TREKKING)]})

    generated = await _generator(provider, no_sleep).generate("France", TREKKING)

    assert generated.model == FALLBACK_MODEL
    assert provider.calls == [PRIMARY_MODEL, FALLBACK_MODEL]
    no_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_invalid_skeleton_advances_to_next_model(no_sleep) -> None:
    too_long = copy.deepcopy(PARIS_CYCLING)
    too_long["route"]["day1"]["distanceKm"] = 90
    provider = FakeTextProvider({PRIMARY_MODEL: [as_reply(too_long)], FALLBACK_MODEL: [as_reply(PARIS_CYCLING)]})

    generated = await _generator(provider, no_sleep).generate("France", CYCLING)

    assert generated.model == FALLBACK_MODEL
    assert provider.calls == [PRIMARY_MODEL, FALLBACK_MODEL]


@pytest.mark.asyncio
async def test_all_models_failing_raises_generation_failed(no_sleep) -> None:
    provider = FakeTextProvider(
        {
            PRIMARY_MODEL: [ProviderAuthError("fake", "bad key")],
            FALLBACK_MODEL: [ProviderUnavailable("fake", "overloaded")],
        }
    )

    with pytest.raises(RouteGenerationFailed) as exc_info:
        await _generator(provider, no_sleep).generate("France", CYCLING)

    assert exc_info.value.status_code == 503
    assert exc_info.value.message.startswith(GENERATION_FAILURE_PREFIX)
    assert "overloaded" in exc_info.value.message
    assert GenerationExhausted is RouteGenerationFailed
    assert provider.calls.count(FALLBACK_MODEL) == 3


def test_generator_requires_models() -> None:
    with pytest.raises(ValueError):
        SkeletonGenerator(FakeTextProvider({}), [])
