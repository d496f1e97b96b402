"""Gemini adapter against a fake async client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

from google.genai import errors as genai_errors
import httpx
import pytest

from brandpack.adapters.gemini import DEFAULT_MODEL, GeminiAdapter, classify_error
from brandpack.core.types import SamplingConstraints, TaskSpec
from brandpack.exceptions import (
    AdapterErrorCode,
    AuthenticationFailedError,
    ContentFilteredError,
    RateLimitedError,
    UnknownAdapterError,
)

pytestmark = pytest.mark.unit


def _spec(**kwargs):
    values = {
        "task_id": "ideas.generate",
        "system_prompt": "You are a strategist.",
        "user_prompt": "Generate ideas.",
        "response_format": "json",
        "constraints": SamplingConstraints(max_tokens=512, temperature=0.4),
    }
    values.update(kwargs)
    return TaskSpec(**values)


def _candidate(*texts, finish_reason="STOP"):
    return SimpleNamespace(
        finish_reason=SimpleNamespace(name=finish_reason),
        content=SimpleNamespace(parts=[SimpleNamespace(text=t) for t in texts]),
    )


def _response(*candidates, block_reason=None, usage=(100, 50, 150)):
    prompt, completion, total = usage
    return SimpleNamespace(
        prompt_feedback=SimpleNamespace(block_reason=block_reason),
        candidates=list(candidates),
        usage_metadata=SimpleNamespace(
            prompt_token_count=prompt,
            candidates_token_count=completion,
            total_token_count=total,
        ),
    )


def _fake_client(response=None, error=None):
    generate = AsyncMock(return_value=response, side_effect=error)
    client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate)))
    return client, generate


@pytest.mark.asyncio
async def test_execute_joins_parts_and_reports_usage():
    client, generate = _fake_client(_response(_candidate('{"a"', ": 1}")))
    adapter = GeminiAdapter(client=client)

    response = await adapter.execute(_spec())

    assert response.outputs == ('{"a": 1}',)
    assert response.provider == "gemini"
    assert response.model == DEFAULT_MODEL
    assert response.usage.total_tokens == 150
    assert response.cost_usd == pytest.approx(100 / 1000 * 0.0001 + 50 / 1000 * 0.0004)
    assert response.metadata["finish_reason"] == "STOP"
    generate.assert_awaited_once()


@pytest.mark.asyncio
async def test_request_maps_spec_onto_generate_config():
    client, generate = _fake_client(_response(_candidate("{}")))
    adapter = GeminiAdapter(client=client)

    await adapter.execute(_spec(model="gemini-2.5-pro"))

    kwargs = generate.await_args.kwargs
    assert kwargs["model"] == "gemini-2.5-pro"
    assert kwargs["contents"] == "Generate ideas."
    config = kwargs["config"]
    assert config.system_instruction == "You are a strategist."
    assert config.temperature == 0.4
    assert config.max_output_tokens == 512
    assert config.response_mime_type == "application/json"


@pytest.mark.asyncio
async def test_structured_spec_sends_schema():
    client, generate = _fake_client(_response(_candidate("{}")))
    adapter = GeminiAdapter(client=client)

    await adapter.execute(
        _spec(response_format="structured", schema={"type": "OBJECT"})
    )

    assert generate.await_args.kwargs["config"].response_schema is not None


@pytest.mark.asyncio
async def test_one_output_per_unblocked_candidate():
    client, _ = _fake_client(
        _response(_candidate("one"), _candidate("hidden", finish_reason="SAFETY"), _candidate("two"))
    )

    response = await GeminiAdapter(client=client).execute(_spec())

    assert response.outputs == ("one", "two")


@pytest.mark.asyncio
async def test_blocked_prompt_raises_content_filter():
    client, _ = _fake_client(
        _response(block_reason=SimpleNamespace(name="PROHIBITED_CONTENT"))
    )

    with pytest.raises(ContentFilteredError, match="Prompt blocked: PROHIBITED_CONTENT"):
        await GeminiAdapter(client=client).execute(_spec())


@pytest.mark.asyncio
async def test_all_candidates_blocked_raises_content_filter():
    client, _ = _fake_client(_response(_candidate("x", finish_reason="SAFETY")))

    with pytest.raises(ContentFilteredError) as exc_info:
        await GeminiAdapter(client=client).execute(_spec())

    assert exc_info.value.code is AdapterErrorCode.CONTENT_FILTER
    assert not exc_info.value.retryable


@pytest.mark.asyncio
async def test_empty_response_is_unknown_error():
    client, _ = _fake_client(_response())

    with pytest.raises(UnknownAdapterError, match="no candidates"):
        await GeminiAdapter(client=client).execute(_spec())


@pytest.mark.asyncio
async def test_sdk_errors_are_classified():
    error = genai_errors.APIError(429, {"error": {"message": "quota", "status": "RESOURCE_EXHAUSTED"}})
    client, _ = _fake_client(error=error)

    with pytest.raises(RateLimitedError) as exc_info:
        await GeminiAdapter(client=client).execute(_spec())

    assert exc_info.value.retryable
    assert exc_info.value.__cause__ is error


@pytest.mark.parametrize(
    ("status", "code"),
    [
        (401, AdapterErrorCode.AUTHENTICATION_FAILED),
        (403, AdapterErrorCode.AUTHENTICATION_FAILED),
        (429, AdapterErrorCode.RATE_LIMITED),
        (400, AdapterErrorCode.INVALID_REQUEST),
        (404, AdapterErrorCode.INVALID_REQUEST),
        (504, AdapterErrorCode.TIMEOUT),
        (500, AdapterErrorCode.NETWORK_ERROR),
        (503, AdapterErrorCode.NETWORK_ERROR),
        (409, AdapterErrorCode.UNKNOWN_ERROR),
    ],
)
def test_classify_api_error_by_status(status, code):
    error = genai_errors.APIError(status, {"error": {"message": "m", "status": "S"}})

    assert classify_error(error).code is code


def test_classify_transport_errors():
    assert classify_error(httpx.ReadTimeout("slow")).code is AdapterErrorCode.TIMEOUT
    assert classify_error(httpx.ConnectError("refused")).code is AdapterErrorCode.NETWORK_ERROR
    assert classify_error(ValueError("odd")).code is AdapterErrorCode.UNKNOWN_ERROR


@pytest.mark.asyncio
async def test_missing_api_key_fails_on_first_use():
    adapter = GeminiAdapter()

    with pytest.raises(AuthenticationFailedError, match="API key is missing"):
        await adapter.execute(_spec())


def test_api_key_comes_from_environment(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "env-key")

    with patch("brandpack.adapters.gemini.genai.Client") as client_cls:
        GeminiAdapter()._get_client()

    client_cls.assert_called_once_with(api_key="env-key")


def test_estimate_cost_uses_max_tokens():
    adapter = GeminiAdapter(pricing={DEFAULT_MODEL: (1.0, 2.0)})
    spec = _spec(system_prompt="x" * 2000, user_prompt="y" * 2000)

    assert adapter.estimate_cost(spec) == pytest.approx(1000 / 1000 * 1.0 + 512 / 1000 * 2.0)


def test_unknown_model_costs_nothing():
    assert GeminiAdapter().estimate_cost(_spec(model="gemini-next")) == 0.0


def test_validate_spec_limits_stop_sequences():
    adapter = GeminiAdapter()
    spec = _spec(constraints=SamplingConstraints(stop_sequences=tuple("abcdef")))

    check = adapter.validate_spec(spec)

    assert not check.valid
    assert "at most 5 stop sequences are supported" in check.errors


@pytest.mark.parametrize(
    ("temperature", "valid"), [(0.0, True), (1.5, True), (2.0, True), (2.1, False)]
)
def test_validate_spec_accepts_gemini_temperature_range(temperature, valid):
    spec = _spec(constraints=SamplingConstraints(temperature=temperature))

    check = GeminiAdapter().validate_spec(spec)

    assert check.valid is valid
    if not valid:
        assert "temperature must be between 0 and 2" in check.errors


def test_available_models_come_from_pricing():
    assert GeminiAdapter().get_available_models() == sorted(
        ["gemini-2.0-flash", "gemini-2.0-flash-lite", "gemini-2.5-flash", "gemini-2.5-pro"]
    )
