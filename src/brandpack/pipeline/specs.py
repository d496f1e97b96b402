"""Builders that turn configuration plus inputs into a `TaskSpec`.

One builder per task type. Each looks up its fixed call id, renders the
kernel (and idea) as indented JSON into the call's user template, and copies
the sampling parameters from the call's model section. Builders are pure.
"""

from __future__ import annotations

from collections.abc import Mapping
import hashlib
import json
from typing import Any, NamedTuple

from brandpack.config.schema import CallConfig, Configuration, RuntimeGuard
from brandpack.core.types import SamplingConstraints, SpecMetadata, TaskSpec
from brandpack.exceptions import ConfigurationError

REVIEW_SUMMARY_CALL = "scrape.review_summarize"
IDEAS_CALL = "ideas.generate"
COPY_CALL = "copy.generate"
IMAGE_BRIEF_CALL = "image.brief_generate"

Kernel = Mapping[str, Any]


class CallSettings(NamedTuple):
    """Routing-relevant settings of a call."""

    provider: str
    model: str
    runtime: RuntimeGuard


def canonical_json(value: Any) -> str:
    """Serialize a kernel or idea the way it is embedded in prompts."""
    return json.dumps(value, indent=2, ensure_ascii=False)


def content_fingerprint(kernel: Kernel) -> str:
    """Kernel ``content_hash`` when present, else SHA-256 of its canonical JSON."""
    content_hash = kernel.get("content_hash")
    if isinstance(content_hash, str) and content_hash:
        return content_hash
    return hashlib.sha256(canonical_json(kernel).encode("utf-8")).hexdigest()


def _require_call(config: Configuration, call_id: str) -> CallConfig:
    call = config.calls.get(call_id)
    if call is None:
        raise ConfigurationError(f"{call_id} not found in config")
    return call


def get_call_settings(config: Configuration, call_id: str) -> CallSettings:
    """Resolve provider, model name and runtime guard for ``call_id``.

    The provider falls back to ``global.provider`` when the call's model
    section does not name one.

    Raises:
        ConfigurationError: If ``call_id`` is not configured.
    """
    call = _require_call(config, call_id)
    return CallSettings(
        provider=call.model.provider or config.global_.provider,
        model=call.model.name,
        runtime=call.runtime,
    )


def _build_spec(
    config: Configuration,
    call_id: str,
    kernel: Kernel,
    run_id: str | None,
    placeholders: Mapping[str, Any],
) -> TaskSpec:
    call = _require_call(config, call_id)

    user_prompt = call.prompt.user_template
    for name, value in placeholders.items():
        user_prompt = user_prompt.replace("{" + name + "}", canonical_json(value))

    model = call.model
    domain = kernel.get("domain")
    return TaskSpec(
        task_id=call_id,
        system_prompt=call.prompt.system,
        user_prompt=user_prompt,
        response_format="json",
        constraints=SamplingConstraints(
            max_tokens=model.max_tokens,
            temperature=model.temperature,
            top_p=model.top_p,
            stop_sequences=tuple(model.stop_sequences or ()),
        ),
        metadata=SpecMetadata(
            task=call_id,
            run_id=run_id,
            domain=domain if isinstance(domain, str) else None,
            content_fingerprint=content_fingerprint(kernel),
        ),
        model=model.name,
    )


def build_review_summary_spec(
    config: Configuration, kernel: Kernel, run_id: str | None = None
) -> TaskSpec:
    """Spec for summarizing a brand's public presence into a review."""
    return _build_spec(config, REVIEW_SUMMARY_CALL, kernel, run_id, {"kernel": kernel})


def build_ideas_spec(
    config: Configuration, kernel: Kernel, run_id: str | None = None
) -> TaskSpec:
    """Spec for generating campaign ideas from a brand kernel."""
    return _build_spec(config, IDEAS_CALL, kernel, run_id, {"kernel": kernel})


def build_copy_spec(
    config: Configuration,
    kernel: Kernel,
    idea: Mapping[str, Any],
    run_id: str | None = None,
) -> TaskSpec:
    """Spec for writing the five copy blocks for a selected idea."""
    return _build_spec(
        config, COPY_CALL, kernel, run_id, {"kernel": kernel, "idea": idea}
    )


def build_image_brief_spec(
    config: Configuration,
    kernel: Kernel,
    idea: Mapping[str, Any],
    run_id: str | None = None,
) -> TaskSpec:
    """Spec for an art-direction brief for a selected idea."""
    return _build_spec(
        config, IMAGE_BRIEF_CALL, kernel, run_id, {"kernel": kernel, "idea": idea}
    )
