"""Google Gemini adapter built on the ``google-genai`` SDK.

Maps a neutral `TaskSpec` onto ``GenerateContentConfig``, returns one output
per candidate and classifies SDK and transport failures into adapter error
codes so the router can decide what to retry. A client may be injected, which
is how tests exercise the adapter without network access.
"""

from __future__ import annotations

import logging
import math
import os
import time
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
import httpx

from brandpack.core.types import (
    AdapterResponse,
    SpecCheck,
    TaskSpec,
    TokenUsage,
    calculate_cost,
    check_spec,
)
from brandpack.exceptions import (
    AdapterError,
    AdapterTimeoutError,
    AuthenticationFailedError,
    ContentFilteredError,
    InvalidRequestError,
    NetworkError,
    RateLimitedError,
    UnknownAdapterError,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"

# USD per 1k tokens: (input, output)
PRICING_PER_1K: dict[str, tuple[float, float]] = {
    "gemini-2.0-flash": (0.0001, 0.0004),
    "gemini-2.0-flash-lite": (0.000075, 0.0003),
    "gemini-2.5-flash": (0.0003, 0.0025),
    "gemini-2.5-pro": (0.00125, 0.01),
}

_BLOCKED_FINISH_REASONS = frozenset(
    {"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}
)
_DEFAULT_COMPLETION_ESTIMATE = 1024
_MAX_STOP_SEQUENCES = 5
_MAX_TEMPERATURE = 2.0


def _enum_name(value: Any) -> str | None:
    if value is None:
        return None
    return str(getattr(value, "name", value))


def classify_error(exc: Exception, provider: str = "gemini") -> AdapterError:
    """Translate an SDK or transport exception into an `AdapterError`."""
    if isinstance(exc, AdapterError):
        return exc
    message = str(exc)
    if isinstance(exc, genai_errors.APIError):
        code = exc.code
        if code in (401, 403):
            return AuthenticationFailedError(message, provider, details=code)
        if code == 429:
            return RateLimitedError(message, provider, details=code)
        if code in (400, 404):
            return InvalidRequestError(message, provider, details=code)
        if code in (408, 504):
            return AdapterTimeoutError(message, provider, details=code)
        if isinstance(code, int) and code >= 500:
            return NetworkError(message, provider, details=code)
        return UnknownAdapterError(message, provider, details=code)
    if isinstance(exc, httpx.TimeoutException):
        return AdapterTimeoutError(message or "Request timed out", provider)
    if isinstance(exc, httpx.TransportError):
        return NetworkError(message or "Transport error", provider)
    return UnknownAdapterError(message or type(exc).__name__, provider)


class GeminiAdapter:
    """Text adapter for Gemini models."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: Any | None = None,
        default_model: str = DEFAULT_MODEL,
        pricing: dict[str, tuple[float, float]] | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: API key. Falls back to ``GEMINI_API_KEY`` then ``GOOGLE_API_KEY``.
            client: Pre-built ``genai.Client`` (or compatible fake).
            default_model: Model used when a spec does not name one.
            pricing: Per-1k-token prices overriding the built-in table.
        """
        self._api_key = (
            api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        )
        self._client = client
        self.default_model = default_model
        self.pricing = dict(PRICING_PER_1K if pricing is None else pricing)

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise AuthenticationFailedError(
                    "Gemini API key is missing. Set GEMINI_API_KEY or pass api_key.",
                    self.provider,
                )
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _model_for(self, spec: TaskSpec) -> str:
        return spec.model or self.default_model

    def _build_config(self, spec: TaskSpec) -> types.GenerateContentConfig:
        c = spec.constraints
        kwargs: dict[str, Any] = {
            "system_instruction": spec.system_prompt,
            "temperature": c.temperature,
            "top_p": c.top_p,
            "max_output_tokens": c.max_tokens,
        }
        if c.stop_sequences:
            kwargs["stop_sequences"] = list(c.stop_sequences)
        if spec.response_format in ("json", "structured"):
            kwargs["response_mime_type"] = "application/json"
        if spec.response_format == "structured" and spec.schema is not None:
            kwargs["response_schema"] = dict(spec.schema)
        return types.GenerateContentConfig(**kwargs)

    async def execute(self, spec: TaskSpec) -> AdapterResponse:
        """Run ``spec`` with the async client and normalize the response.

        Raises:
            ContentFilteredError: If the prompt or every candidate was blocked.
            AdapterError: Any other provider failure, classified by code.
        """
        model = self._model_for(spec)
        client = self._get_client()
        start = time.perf_counter()
        try:
            response = await client.aio.models.generate_content(
                model=model,
                contents=spec.user_prompt,
                config=self._build_config(spec),
            )
        except Exception as e:
            raise classify_error(e, self.provider) from e
        duration_ms = (time.perf_counter() - start) * 1000

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = _enum_name(getattr(feedback, "block_reason", None))
        if block_reason:
            raise ContentFilteredError(
                f"Prompt blocked: {block_reason}", self.provider, details=block_reason
            )

        outputs: list[str] = []
        finish_reason: str | None = None
        for candidate in getattr(response, "candidates", None) or ():
            finish_reason = _enum_name(getattr(candidate, "finish_reason", None))
            if finish_reason in _BLOCKED_FINISH_REASONS:
                continue
            content = getattr(candidate, "content", None)
            parts = getattr(content, "parts", None) or ()
            outputs.append("".join(getattr(p, "text", None) or "" for p in parts))

        if not outputs:
            if finish_reason in _BLOCKED_FINISH_REASONS:
                raise ContentFilteredError(
                    f"Response blocked: {finish_reason}",
                    self.provider,
                    details=finish_reason,
                )
            raise UnknownAdapterError("Response contained no candidates", self.provider)

        usage = self._usage(response)
        return AdapterResponse(
            outputs=tuple(outputs),
            usage=usage,
            provider=self.provider,
            model=model,
            cost_usd=self._cost(model, usage),
            duration_ms=duration_ms,
            raw_response=response,
            metadata={"cached": False, "finish_reason": finish_reason},
        )

    def _usage(self, response: Any) -> TokenUsage:
        meta = getattr(response, "usage_metadata", None)
        prompt = int(getattr(meta, "prompt_token_count", 0) or 0)
        completion = int(getattr(meta, "candidates_token_count", 0) or 0)
        total = int(getattr(meta, "total_token_count", 0) or 0) or prompt + completion
        return TokenUsage(prompt, completion, total)

    def _cost(self, model: str, usage: TokenUsage) -> float:
        prices = self.pricing.get(model)
        if prices is None:
            logger.debug("No pricing for model '%s'; reporting zero cost", model)
            return 0.0
        return calculate_cost(usage, *prices)

    def estimate_cost(self, spec: TaskSpec) -> float:
        prompt = math.ceil((len(spec.system_prompt) + len(spec.user_prompt)) / 4)
        completion = spec.constraints.max_tokens or _DEFAULT_COMPLETION_ESTIMATE
        usage = TokenUsage(prompt, completion, prompt + completion)
        return self._cost(self._model_for(spec), usage)

    def validate_spec(self, spec: TaskSpec) -> SpecCheck:
        check = check_spec(spec, max_temperature=_MAX_TEMPERATURE)
        errors = list(check.errors)
        if len(spec.constraints.stop_sequences) > _MAX_STOP_SEQUENCES:
            errors.append(
                f"at most {_MAX_STOP_SEQUENCES} stop sequences are supported"
            )
        return SpecCheck(valid=not errors, errors=tuple(errors))

    def get_available_models(self) -> list[str]:
        return sorted(self.pricing)
