"""Task orchestration: execute, parse, validate and audit.

`run_task` never raises to its caller. Every failure, whether a configuration
lookup, a provider error the router gave up on, unparseable output or a
validator crash, comes back as a `TaskResult` with ``success=False`` and a
`TaskError` saying which kind of failure it was. Cancellation is not caught.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging
import random
import string
import time
from typing import TYPE_CHECKING

from brandpack.core.types import (
    AdapterResponse,
    AuditRecord,
    BatchTask,
    TaskError,
    TaskOptions,
    TaskResult,
    TokenUsage,
    ValidationOutcome,
)
from brandpack.exceptions import AdapterError, ConfigurationError, PipelineParseError
from brandpack.pipeline.parser import parse_outputs
from brandpack.pipeline.specs import get_call_settings
from brandpack.pipeline.validator import validate_task_output
from brandpack.telemetry import TelemetryContext

if TYPE_CHECKING:
    from brandpack.config.schema import Configuration
    from brandpack.core.types import Executor, TaskSpec, TaskValidator
    from brandpack.telemetry import TelemetryContextProtocol

logger = logging.getLogger(__name__)

_RUN_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_run_id() -> str:
    """``run_<epoch-ms>_<7 base36 chars>``."""
    suffix = "".join(random.choices(_RUN_ID_ALPHABET, k=7))  # noqa: S311
    return f"run_{int(time.time() * 1000)}_{suffix}"


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _audit_from_response(
    spec: TaskSpec, run_id: str, response: AdapterResponse, start: float
) -> AuditRecord:
    return AuditRecord(
        task_id=spec.task_id,
        run_id=run_id,
        provider=response.provider,
        model=response.model,
        usage=response.usage,
        cost_usd=response.cost_usd,
        duration_ms=_elapsed_ms(start),
        cached=response.cached,
    )


def _failed_result(
    spec: TaskSpec, run_id: str, start: float, error: Exception
) -> TaskResult:
    message = f"Task execution failed: {error}"
    if isinstance(error, ConfigurationError):
        task_error = TaskError("configuration", message)
    else:
        code = error.code.value if isinstance(error, AdapterError) else None
        task_error = TaskError("execution", message, code)
    return TaskResult(
        success=False,
        outputs=(),
        validation=ValidationOutcome(passed=False, errors=(message,)),
        audit=AuditRecord(
            task_id=spec.task_id,
            run_id=run_id,
            provider="unknown",
            model="unknown",
            usage=TokenUsage.zero(),
            cost_usd=0.0,
            duration_ms=_elapsed_ms(start),
            cached=False,
        ),
        error=task_error,
    )


async def run_task(
    spec: TaskSpec,
    config: Configuration,
    executor: Executor,
    validator: TaskValidator | None = None,
    options: TaskOptions | None = None,
    *,
    telemetry: TelemetryContextProtocol | None = None,
) -> TaskResult:
    """Execute one task end to end.

    Args:
        spec: The spec to execute. Its ``task_id`` must be a configured call.
        config: Configuration used for call settings and validation.
        executor: ``await executor(spec, provider)`` performs the provider call,
            typically built with `brandpack.pipeline.router.make_executor`.
        validator: ``validator(task_id, outputs, config)``. Defaults to
            `validate_task_output`.
        options: Run id, provider/model overrides and validation switches.
        telemetry: Optional telemetry context.

    Returns:
        TaskResult. ``success`` equals ``validation.passed`` when the provider
        call and parsing succeeded.
    """
    options = options or TaskOptions()
    run_id = options.run_id or generate_run_id()
    start = time.perf_counter()
    tele = telemetry or TelemetryContext()

    try:
        with tele("orchestrator.run_task", task_id=spec.task_id, run_id=run_id):
            settings = get_call_settings(config, spec.task_id)
            provider = options.provider_override or settings.provider
            if options.model_override:
                spec = spec.with_model(options.model_override)
            expected = config.calls[spec.task_id].prompt.outputs_expected or 1

            logger.debug("Running '%s' on %s (run %s)", spec.task_id, provider, run_id)
            response = await executor(spec, provider)

            try:
                outputs = parse_outputs(
                    response.outputs,
                    response_format=spec.response_format,
                    expected_count=expected,
                )
            except PipelineParseError as e:
                message = f"Failed to parse outputs: {e}"
                logger.warning("Task '%s' (run %s): %s", spec.task_id, run_id, message)
                return TaskResult(
                    success=False,
                    outputs=(),
                    validation=ValidationOutcome(passed=False, errors=(message,)),
                    audit=_audit_from_response(spec, run_id, response, start),
                    error=TaskError("parse", message),
                    raw_response=response.raw_response,
                )

            if options.skip_validation:
                validation = ValidationOutcome(passed=True)
            else:
                validation = (validator or validate_task_output)(
                    spec.task_id, outputs, config
                )
            if not validation.passed:
                logger.info(
                    "Task '%s' (run %s) failed validation: %s",
                    spec.task_id,
                    run_id,
                    "; ".join(validation.errors),
                )

            return TaskResult(
                success=validation.passed,
                outputs=tuple(outputs),
                validation=validation,
                audit=_audit_from_response(spec, run_id, response, start),
                raw_response=response.raw_response,
            )
    except Exception as e:
        logger.error("Task '%s' (run %s) failed: %s", spec.task_id, run_id, e)
        tele.count("orchestrator.error", task_id=spec.task_id)
        return _failed_result(spec, run_id, start, e)


async def run_task_batch(
    tasks: Sequence[BatchTask],
    config: Configuration,
    executor: Executor,
    *,
    telemetry: TelemetryContextProtocol | None = None,
) -> list[TaskResult]:
    """Run tasks one after another, in order.

    A failed task whose options are critical stops the batch; the results
    gathered so far (including the failure) are returned.
    """
    results: list[TaskResult] = []
    for task in tasks:
        result = await run_task(
            task.spec,
            config,
            executor,
            task.validator,
            task.options,
            telemetry=telemetry,
        )
        results.append(result)
        if not result.success and task.options is not None and task.options.is_critical:
            logger.warning(
                "Critical task '%s' failed; stopping batch after %d of %d tasks",
                task.spec.task_id,
                len(results),
                len(tasks),
            )
            break
    return results
