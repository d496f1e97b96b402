"""
Global test configuration: environment isolation, markers and shared fakes.
"""

from collections.abc import Callable
from contextlib import suppress
import copy
import logging
import os
import typing

import pytest

from brandpack.config import Configuration
from brandpack.core.types import AdapterResponse, SpecCheck, TaskSpec, TokenUsage, check_spec


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-in escape hatch: mark a test with @pytest.mark.allow_dotenv
    to permit .env loading for that specific test.
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_brandpack_env(request, monkeypatch):
    """Ensure a clean BRANDPACK_* and provider-key environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("BRANDPACK_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "contract: Behavioral guarantees that must hold for any input",
        "integration: Component integration tests with mocked providers",
        "allow_dotenv: Permit .env loading for this test",
        "allow_env_pollution: Keep the real environment for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Configuration Fixtures ---


def _call(
    system: str,
    user_template: str,
    variables: list[str],
    *,
    temperature: float = 0.7,
    max_tokens: int = 2048,
    outputs_expected: int | None = None,
) -> dict[str, typing.Any]:
    prompt: dict[str, typing.Any] = {
        "system": system,
        "user_template": user_template,
        "variables": variables,
    }
    if outputs_expected is not None:
        prompt["outputs_expected"] = outputs_expected
    return {
        "model": {
            "name": "noop-llm-v1",
            "temperature": temperature,
            "max_tokens": max_tokens,
        },
        "prompt": prompt,
        "runtime": {"timeout_ms": 30000, "max_retries": 2, "cost_usd_limit": 0.5},
    }


_CONFIG_DOCUMENT: dict[str, typing.Any] = {
    "$schema": "./prompts.schema.json",
    "version": "1.2.0",
    "updated_at": "2025-01-15T09:30:00.000Z",
    "global": {
        "provider": "noop-llm",
        "log_level": "info",
        "cache_enabled": True,
        "cache_ttl_seconds": {"scrape": 604800, "llm": 86400, "image": 86400},
    },
    "calls": {
        "scrape.review_summarize": _call(
            "You summarize a brand's public presence.",
            "Summarize this brand kernel:\n{kernel}",
            ["kernel"],
            temperature=0.3,
        ),
        "ideas.generate": _call(
            "You are a B2B campaign strategist.",
            "Brand kernel:\n{kernel}\n\nGenerate 20 campaign ideas.",
            ["kernel"],
            outputs_expected=20,
        ),
        "copy.generate": _call(
            "You write LinkedIn copy.",
            "Kernel:\n{kernel}\n\nIdea:\n{idea}\n\nWrite the five blocks.",
            ["kernel", "idea"],
        ),
        "image.brief_generate": _call(
            "You are an art director.",
            "Kernel:\n{kernel}\n\nIdea:\n{idea}\n\nWrite a 4:5 image brief.",
            ["kernel", "idea"],
            temperature=0.5,
            max_tokens=1024,
        ),
    },
    "validation": {
        "length": {"min_chars": 30, "max_chars": 500},
        "continuity": {
            "enabled": True,
            "thresholds": {"tone_shift": 0.3, "fact_drift": 0.2},
        },
        "evidence_policy": {"required_for": ["copy", "ideas"], "allow_empty": False},
    },
    "budgets": {
        "max_cost_per_run": 2.0,
        "max_tokens_per_run": 200000,
        "alert_threshold_usd": 1.5,
        "per_stage": {"ideas": {"max_cost": 0.5, "max_tokens": 50000}},
    },
    "presets": {
        "fast": {
            "description": "Lower temperature, fewer tokens",
            "overrides": {
                "calls": {
                    "ideas.generate": {"model": {"temperature": 0.2, "max_tokens": 1024}}
                }
            },
        }
    },
    "banned_phrases": ["game-changer", "synergy", "unlock the power"],
}


@pytest.fixture
def config_document() -> Callable[..., dict[str, typing.Any]]:
    """Factory for a fresh, valid configuration document.

    Usage:
        doc = config_document()
        doc = config_document(banned_phrases=[])
    """

    def _create(**top_level: typing.Any) -> dict[str, typing.Any]:
        doc = copy.deepcopy(_CONFIG_DOCUMENT)
        doc.update(top_level)
        return doc

    return _create


@pytest.fixture
def config(config_document) -> Configuration:
    """The default configuration document, validated."""
    return Configuration.model_validate(config_document())


@pytest.fixture
def kernel() -> dict[str, typing.Any]:
    return {
        "domain": "acme.io",
        "brand": "Acme",
        "value_props": ["Ships in a day", "SOC 2 certified"],
        "content_hash": "kernel-hash-123",
    }


@pytest.fixture
def idea() -> dict[str, typing.Any]:
    return {
        "headline": "Ship compliance in a day",
        "angle": "Speed without risk",
        "audience": "Security leads",
        "format": "carousel",
        "supporting_evidence_keys": ["value_props.0"],
    }


# --- Adapter Fakes ---


def make_response(
    provider: str = "primary",
    outputs: typing.Sequence[str] = ('{"ok": true}',),
    **kwargs: typing.Any,
) -> AdapterResponse:
    return AdapterResponse(
        outputs=tuple(outputs),
        usage=kwargs.pop("usage", TokenUsage(10, 5, 15)),
        provider=provider,
        model=kwargs.pop("model", f"{provider}-model"),
        metadata=kwargs.pop("metadata", {"cached": False, "finish_reason": "stop"}),
        **kwargs,
    )


class ScriptedAdapter:
    """Adapter that replays a script of responses and exceptions.

    Once the script is exhausted every call succeeds with a default response.
    """

    def __init__(
        self,
        provider: str = "primary",
        script: typing.Sequence[typing.Any] = (),
        *,
        cost: float = 0.0,
        spec_errors: typing.Sequence[str] = (),
    ) -> None:
        self.provider = provider
        self.script = list(script)
        self.cost = cost
        self.spec_errors = tuple(spec_errors)
        self.calls: list[TaskSpec] = []

    async def execute(self, spec: TaskSpec) -> AdapterResponse:
        self.calls.append(spec)
        item = self.script.pop(0) if self.script else None
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, AdapterResponse):
            return item
        return make_response(self.provider)

    def estimate_cost(self, spec: TaskSpec) -> float:  # noqa: ARG002
        return self.cost

    def validate_spec(self, spec: TaskSpec) -> SpecCheck:
        if self.spec_errors:
            return SpecCheck(valid=False, errors=self.spec_errors)
        return check_spec(spec)

    def get_available_models(self) -> list[str]:
        return [f"{self.provider}-model"]


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def scripted_adapter() -> type[ScriptedAdapter]:
    return ScriptedAdapter


@pytest.fixture
def response_factory() -> Callable[..., AdapterResponse]:
    return make_response


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def text_spec() -> TaskSpec:
    """A minimal valid spec that is not tied to any configured call."""
    return TaskSpec(
        task_id="adhoc.task",
        system_prompt="system",
        user_prompt="user",
        response_format="json",
    )
