"""Deterministic offline adapters.

They never touch the network and answer every known task with JSON shaped to
pass that task's validator, which makes them suitable for tests, demos and dry
runs of a whole pipeline.
"""

from __future__ import annotations

import json
import math
import time
from typing import Any

from brandpack.core.types import AdapterResponse, SpecCheck, TaskSpec, TokenUsage, check_spec

_COMPLETION_TOKENS = 32


def _usage_from_spec(spec: TaskSpec) -> TokenUsage:
    prompt_tokens = math.ceil((len(spec.system_prompt) + len(spec.user_prompt)) / 4)
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=_COMPLETION_TOKENS,
        total_tokens=prompt_tokens + _COMPLETION_TOKENS,
    )


def _mock_ideas() -> list[dict[str, Any]]:
    return [
        {
            "id": f"idea-{i:02d}",
            "headline": f"Mock Campaign Idea {i}",
            "angle": "Noop mock angle",
            "audience": "Mock target audience",
            "format": "LinkedIn carousel",
            "supporting_evidence_keys": ["mock.evidence.1", "mock.evidence.2"],
        }
        for i in range(1, 21)
    ]


def _block(text: str) -> dict[str, Any]:
    return {
        "text": text,
        "char_count": len(text),
        "evidence_keys": ["mock.evidence.1"],
    }


def _mock_copy() -> dict[str, Any]:
    return {
        "hook": _block("Mock hook line that is long enough to pass the length check."),
        "context": _block(
            "Mock context paragraph describing the situation the audience is in, "
            "written to sit inside the expected range."
        ),
        "proof": _block(
            "Mock proof point citing a measurable outcome from the brand kernel, "
            "kept comfortably within the expected proof length."
        ),
        "objection": _block(
            "Mock objection handler that answers the most common doubt buyers raise "
            "before they commit."
        ),
        "cta": _block("Mock call to action: book a demo."),
    }


def _mock_image_brief() -> dict[str, Any]:
    return {
        "aspect_ratio": "4:5",
        "safe_zone_top": 0.15,
        "safe_zone_bottom": 0.15,
        "visual_direction": "Mock visual direction for noop test",
        "focal_point": "center",
        "copy_overlay_guidance": "Place text in safe zones",
        "evidence_keys": ["mock.evidence.1"],
    }


def _mock_review() -> dict[str, Any]:
    return {
        "tone": ["professional", "confident"],
        "voice": ["clear", "concise"],
        "proof_points": ["Mock proof 1", "Mock proof 2"],
        "pricing_cues": ["Mock pricing"],
        "target_audience": "Mock audience",
        "citations": ["home", "about"],
    }


def mock_payload(task_id: str) -> Any:
    """Task-shaped mock payload, chosen by substring of the task id."""
    if "ideas" in task_id:
        return _mock_ideas()
    if "copy" in task_id:
        return _mock_copy()
    if "image" in task_id or "brief" in task_id:
        return _mock_image_brief()
    if "review" in task_id or "summarize" in task_id:
        return _mock_review()
    return {"mock": True, "task_id": task_id, "message": "Noop adapter mock response"}


class NoopLLMAdapter:
    """Offline text adapter."""

    provider = "noop-llm"
    model = "noop-llm-v1"

    async def execute(self, spec: TaskSpec) -> AdapterResponse:
        start = time.perf_counter()
        if spec.response_format in ("json", "structured"):
            outputs = (json.dumps(mock_payload(spec.task_id)),)
        else:
            outputs = (f"[noop::{spec.task_id}] TEXT response placeholder",)
        return AdapterResponse(
            outputs=outputs,
            usage=_usage_from_spec(spec),
            provider=self.provider,
            model=spec.model or self.model,
            cost_usd=0.0,
            duration_ms=(time.perf_counter() - start) * 1000,
            raw_response={
                "echo": {
                    "system_prompt": spec.system_prompt,
                    "user_prompt": spec.user_prompt,
                }
            },
            metadata={"finish_reason": "stop", "cached": False},
        )

    def estimate_cost(self, spec: TaskSpec) -> float:  # noqa: ARG002
        return 0.0

    def validate_spec(self, spec: TaskSpec) -> SpecCheck:
        return check_spec(spec)

    def get_available_models(self) -> list[str]:
        return [self.model]


class NoopImageAdapter:
    """Offline image adapter returning a placeholder asset reference."""

    provider = "noop-image"
    model = "noop-image-v1"

    async def execute(self, spec: TaskSpec) -> AdapterResponse:
        start = time.perf_counter()
        run_id = spec.metadata.run_id if spec.metadata else None
        asset = {
            "url": f"https://example.com/noop/{run_id or spec.task_id}.png",
            "aspect_ratio": "4:5",
            "file_size_kb": 42,
            "format": "png",
        }
        return AdapterResponse(
            outputs=(json.dumps(asset),),
            usage=TokenUsage.zero(),
            provider=self.provider,
            model=spec.model or self.model,
            cost_usd=0.0,
            duration_ms=(time.perf_counter() - start) * 1000,
            raw_response={"prompt": spec.user_prompt},
            metadata={"finish_reason": "stop", "cached": False},
        )

    def estimate_cost(self, spec: TaskSpec) -> float:  # noqa: ARG002
        return 0.0

    def validate_spec(self, spec: TaskSpec) -> SpecCheck:
        return check_spec(spec)

    def get_available_models(self) -> list[str]:
        return [self.model]
