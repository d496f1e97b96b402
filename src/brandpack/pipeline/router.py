"""Routing of specs to provider adapters with retry and fallback.

Behavior:
- Unknown provider ids and failed spec checks are terminal and never reach
  the network.
- Retryable errors (rate limit, timeout, network, unknown) are retried up to
  ``max_retries`` times with capped exponential backoff.
- Once retries are exhausted on a retryable error, the whole procedure runs
  once more against a distinct fallback provider, with fallback disabled.
  At most two providers are ever tried.
- Every transition is recorded on an optional `RouteTrace`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
import dataclasses
from enum import Enum
import logging
import random
from typing import TYPE_CHECKING, Any

from brandpack.adapters.registry import ProviderRegistries, Workload
from brandpack.config.settings import RuntimeSettings
from brandpack.exceptions import (
    AdapterError,
    AdapterNotFoundError,
    AdapterTimeoutError,
    BudgetExceededError,
    InvalidRequestError,
    UnknownAdapterError,
)
from brandpack.telemetry import TelemetryContext

if TYPE_CHECKING:
    from brandpack.adapters.base import LLMAdapter
    from brandpack.config.schema import Configuration
    from brandpack.core.types import AdapterResponse, Executor, TaskSpec
    from brandpack.telemetry import TelemetryContextProtocol

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RouteState(str, Enum):
    """States of a single routing operation."""

    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    FALLBACK_ATTEMPTING = "fallback_attempting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True, slots=True)
class RouteTransition:
    state: RouteState
    provider: str
    attempt: int
    error: str | None = None


@dataclasses.dataclass
class RouteTrace:
    """Ordered record of state transitions for one `route_spec` call."""

    transitions: list[RouteTransition] = dataclasses.field(default_factory=list)

    def record(
        self,
        state: RouteState,
        provider: str,
        attempt: int,
        error: BaseException | None = None,
    ) -> None:
        self.transitions.append(
            RouteTransition(state, provider, attempt, None if error is None else repr(error))
        )

    @property
    def states(self) -> list[RouteState]:
        return [t.state for t in self.transitions]

    @property
    def final_state(self) -> RouteState | None:
        return self.transitions[-1].state if self.transitions else None

    @property
    def providers(self) -> list[str]:
        """Distinct providers in the order they were attempted."""
        seen: list[str] = []
        for t in self.transitions:
            if t.provider not in seen:
                seen.append(t.provider)
        return seen

    @property
    def invocations(self) -> int:
        return sum(
            1
            for t in self.transitions
            if t.state in (RouteState.ATTEMPTING, RouteState.FALLBACK_ATTEMPTING)
        )


@dataclasses.dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Capped exponential backoff: ``min(base * 2**attempt, cap)``.

    ``jitter`` adds up to that fraction of the delay at random, still capped.
    """

    base_delay_s: float = 0.5
    max_delay_text_s: float = 8.0
    max_delay_image_s: float = 30.0
    jitter: float = 0.0

    def cap_for(self, workload: Workload) -> float:
        return self.max_delay_image_s if workload == "image" else self.max_delay_text_s

    def delay_for(self, attempt: int, workload: Workload = "text") -> float:
        cap = self.cap_for(workload)
        delay = min(self.base_delay_s * (2**attempt), cap)
        if self.jitter:
            delay = min(delay * (1 + self.jitter * random.random()), cap)  # noqa: S311
        return delay

    @classmethod
    def from_settings(cls, settings: RuntimeSettings) -> RetryPolicy:
        return cls(
            base_delay_s=settings.retry_base_delay_s,
            max_delay_text_s=settings.retry_max_delay_text_s,
            max_delay_image_s=settings.retry_max_delay_image_s,
            jitter=settings.retry_jitter,
        )


class Router:
    """Routes specs to adapters held in explicitly owned registries."""

    def __init__(
        self,
        registries: ProviderRegistries,
        *,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        """Initialize the router.

        Args:
            registries: Text and image adapter registries.
            policy: Backoff policy. Defaults to one built from `RuntimeSettings`.
            sleep: Awaitable used between attempts; tests inject a recorder.
            telemetry: Telemetry context. A no-op context is used when omitted.
        """
        self.registries = registries
        self.policy = policy or RetryPolicy.from_settings(RuntimeSettings())
        self._sleep = sleep
        self._telemetry = telemetry or TelemetryContext()

    def _adapter(self, provider_id: str, workload: Workload) -> LLMAdapter:
        adapter = self.registries.for_workload(workload).get(provider_id)
        if adapter is None:
            raise AdapterNotFoundError(
                f"No {workload} adapter registered for provider '{provider_id}'",
                provider_id,
            )
        return adapter

    def estimate_cost(
        self, spec: TaskSpec, provider_id: str, workload: Workload = "text"
    ) -> float:
        """Adapter cost estimate for ``spec``; no network calls."""
        return self._adapter(provider_id, workload).estimate_cost(spec)

    async def route_spec(
        self,
        spec: TaskSpec,
        provider_id: str,
        *,
        max_retries: int = 0,
        fallback_provider: str | None = None,
        workload: Workload = "text",
        timeout_s: float | None = None,
        trace: RouteTrace | None = None,
    ) -> AdapterResponse:
        """Execute ``spec`` on ``provider_id`` with retry and optional fallback.

        Returns:
            The first successful `AdapterResponse`.

        Raises:
            AdapterError: The terminal error, or the last retryable error once
                the primary (and fallback, if any) are exhausted.
        """
        trace = trace if trace is not None else RouteTrace()
        active = provider_id
        try:
            response = await self._run_provider(
                spec, provider_id, max_retries, workload, timeout_s, trace, fallback=False
            )
        except AdapterError as primary_error:
            if (
                not primary_error.retryable
                or not fallback_provider
                or fallback_provider == provider_id
            ):
                trace.record(RouteState.FAILED, provider_id, 0, primary_error)
                raise
            logger.warning(
                "Provider '%s' exhausted (%s); falling back to '%s'",
                provider_id,
                primary_error.code.value,
                fallback_provider,
            )
            self._telemetry.count("router.fallback", provider=fallback_provider)
            active = fallback_provider
            try:
                response = await self._run_provider(
                    spec,
                    fallback_provider,
                    max_retries,
                    workload,
                    timeout_s,
                    trace,
                    fallback=True,
                )
            except AdapterError as fallback_error:
                trace.record(RouteState.FAILED, fallback_provider, 0, fallback_error)
                raise
        trace.record(RouteState.SUCCEEDED, active, 0)
        return response

    async def _run_provider(
        self,
        spec: TaskSpec,
        provider_id: str,
        max_retries: int,
        workload: Workload,
        timeout_s: float | None,
        trace: RouteTrace,
        *,
        fallback: bool,
    ) -> AdapterResponse:
        adapter = self._adapter(provider_id, workload)
        check = adapter.validate_spec(spec)
        if not check.valid:
            raise InvalidRequestError(
                f"Spec validation failed: {'; '.join(check.errors)}",
                provider_id,
                details=check.errors,
            )

        attempt_state = (
            RouteState.FALLBACK_ATTEMPTING if fallback else RouteState.ATTEMPTING
        )
        attempt = 0
        while True:
            trace.record(attempt_state, provider_id, attempt)
            try:
                with self._telemetry(
                    "router.attempt", provider=provider_id, attempt=attempt
                ):
                    return await self._invoke(adapter, spec, provider_id, timeout_s)
            except AdapterError as err:
                if not err.retryable or attempt >= max_retries:
                    raise
                delay = self.policy.delay_for(attempt, workload)
                trace.record(RouteState.BACKOFF, provider_id, attempt, err)
                self._telemetry.count("router.retry", provider=provider_id)
                logger.info(
                    "Retrying '%s' on %s after %s (attempt %d/%d, sleeping %.2fs)",
                    spec.task_id,
                    provider_id,
                    err.code.value,
                    attempt + 1,
                    max_retries,
                    delay,
                )
                await self._sleep(delay)
                attempt += 1

    async def _invoke(
        self,
        adapter: LLMAdapter,
        spec: TaskSpec,
        provider_id: str,
        timeout_s: float | None,
    ) -> AdapterResponse:
        try:
            if timeout_s is None:
                return await adapter.execute(spec)
            return await asyncio.wait_for(adapter.execute(spec), timeout_s)
        except AdapterError:
            raise
        except TimeoutError as e:
            raise AdapterTimeoutError(
                f"Adapter '{provider_id}' exceeded {timeout_s}s timeout", provider_id
            ) from e
        except Exception as e:
            raise UnknownAdapterError(
                str(e) or type(e).__name__, provider_id, details=type(e).__name__
            ) from e

    async def route_batch(
        self, specs: Sequence[TaskSpec], provider_id: str, **kwargs: Any
    ) -> list[AdapterResponse]:
        """Route specs concurrently; results keep request order.

        Any failure fails the whole batch.
        """
        return list(
            await asyncio.gather(
                *(self.route_spec(spec, provider_id, **kwargs) for spec in specs)
            )
        )


def make_executor(
    router: Router,
    config: Configuration,
    *,
    fallback_provider: str | None = None,
    workload: Workload = "text",
) -> Executor:
    """Build an orchestrator executor bound to ``router`` and ``config``.

    The call's runtime guard supplies ``max_retries`` and the timeout. A
    positive ``cost_usd_limit`` rejects specs whose adapter estimate exceeds it.
    """

    async def execute(spec: TaskSpec, provider: str) -> AdapterResponse:
        call = config.calls.get(spec.task_id)
        max_retries = call.runtime.max_retries if call else 0
        timeout_s = (
            call.runtime.timeout_ms / 1000 if call and call.runtime.timeout_ms > 0 else None
        )
        limit = call.runtime.cost_usd_limit if call else 0
        if limit > 0:
            estimate = router.estimate_cost(spec, provider, workload)
            if estimate > limit:
                raise BudgetExceededError(
                    f"Estimated cost ${estimate:.4f} exceeds limit ${limit:.4f} "
                    f"for '{spec.task_id}'",
                    provider,
                    details={"estimate": estimate, "limit": limit},
                )
        return await router.route_spec(
            spec,
            provider,
            max_retries=max_retries,
            fallback_provider=fallback_provider,
            workload=workload,
            timeout_s=timeout_s,
        )

    return execute
