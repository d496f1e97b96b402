"""Deterministic validation gates for parsed task outputs.

Each rule function returns a `ValidationOutcome`: errors fail the task,
warnings never do. Banned phrases come from the configuration's top-level
``banned_phrases`` list and are always warnings.

Rules:
- ideas: exactly ``outputs_expected`` (default 20) objects with headline,
  angle, audience, format and supporting_evidence_keys
- copy: one object with hook, context, proof, objection and cta blocks whose
  ``text`` lengths fall inside the per-block ranges
- image brief: one object with a 4:5 aspect ratio and safe zones >= 0.15
- review: one object with list-valued tone, voice, proof_points,
  pricing_cues and citations plus a string target_audience
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from brandpack.core.types import ValidationOutcome

from .quality import SlopFlag, detect_slop
from .specs import COPY_CALL, IDEAS_CALL, IMAGE_BRIEF_CALL, REVIEW_SUMMARY_CALL

if TYPE_CHECKING:
    from brandpack.config.schema import Configuration

SlopDetector = Callable[[str, Iterable[str]], list[SlopFlag]]

DEFAULT_IDEAS_EXPECTED = 20
IDEA_FIELDS = ("headline", "angle", "audience", "format", "supporting_evidence_keys")
COPY_BLOCKS = ("hook", "context", "proof", "objection", "cta")
COPY_LENGTHS: Mapping[str, tuple[int, int]] = {
    "hook": (50, 200),
    "context": (100, 400),
    "proof": (100, 500),
    "objection": (80, 350),
    "cta": (30, 150),
}
IMAGE_ASPECT_RATIO = "4:5"
MIN_SAFE_ZONE = 0.15
IMAGE_FIELDS = ("visual_direction", "focal_point", "copy_overlay_guidance")
REVIEW_LIST_FIELDS = ("tone", "voice", "proof_points", "pricing_cues", "citations")
REVIEW_FIELDS = (
    "tone",
    "voice",
    "proof_points",
    "pricing_cues",
    "target_audience",
    "citations",
)


def _banned(config: Configuration | None) -> list[str]:
    return list(config.banned_phrases) if config is not None else []


def _has_evidence(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _phrases(flags: Sequence[SlopFlag]) -> str:
    return ", ".join(dict.fromkeys(flag.phrase for flag in flags))


def validate_ideas(
    outputs: Sequence[Any],
    config: Configuration | None,
    *,
    detector: SlopDetector = detect_slop,
) -> ValidationOutcome:
    errors: list[str] = []
    warnings: list[str] = []

    expected = DEFAULT_IDEAS_EXPECTED
    call = config.calls.get(IDEAS_CALL) if config is not None else None
    if call is not None and call.prompt.outputs_expected:
        expected = call.prompt.outputs_expected

    if not isinstance(outputs, list | tuple):
        return ValidationOutcome.from_messages(["Ideas output must be an array"])
    if len(outputs) != expected:
        errors.append(f"Expected exactly {expected} ideas, got {len(outputs)}")

    banned = _banned(config)
    for number, idea in enumerate(outputs, start=1):
        if not isinstance(idea, Mapping):
            errors.append(f"Idea {number} is not an object")
            continue
        errors.extend(
            f"Idea {number} missing required field: {field}"
            for field in IDEA_FIELDS
            if field not in idea
        )

        evidence = idea.get("supporting_evidence_keys")
        if not isinstance(evidence, list):
            warnings.append(f"Idea {number} has no evidence keys array")
        elif not evidence:
            warnings.append(f"Idea {number} has empty evidence keys")

        flags = detector(str(idea.get("headline") or ""), banned)
        if flags:
            warnings.append(f"Idea {number} contains banned phrases: {_phrases(flags)}")

    return ValidationOutcome.from_messages(errors, warnings)


def _copy_lengths(config: Configuration | None) -> dict[str, tuple[float, float]]:
    lengths: dict[str, tuple[float, float]] = dict(COPY_LENGTHS)
    per_slot = config.validation.length.per_slot if config is not None else None
    for slot, bounds in (per_slot or {}).items():
        lengths[slot] = (bounds.min, bounds.max)
    return lengths


def validate_copy(
    outputs: Sequence[Any],
    config: Configuration | None,
    *,
    detector: SlopDetector = detect_slop,
) -> ValidationOutcome:
    """Validate the five copy blocks.

    Block lengths default to the built-in ranges; ``validation.length.per_slot``
    in the configuration overrides them slot by slot.
    """
    if len(outputs) != 1 or not isinstance(outputs[0], Mapping):
        return ValidationOutcome.from_messages(
            ["Copy output must be a single object with 5 blocks"]
        )
    copy_output: Mapping[str, Any] = outputs[0]

    missing = [f"Missing required copy block: {b}" for b in COPY_BLOCKS if b not in copy_output]
    if missing:
        return ValidationOutcome.from_messages(missing)

    errors: list[str] = []
    warnings: list[str] = []
    lengths = _copy_lengths(config)
    banned = _banned(config)
    for name in COPY_BLOCKS:
        block = copy_output[name]
        if not isinstance(block, Mapping):
            errors.append(f"Block {name} is not an object")
            continue
        text = block.get("text")
        if not isinstance(text, str):
            errors.append(f"Block {name} missing text field")
            continue

        low, high = lengths[name]
        if len(text) < low:
            warnings.append(f"Block {name} too short: {len(text)} chars (min: {low:g})")
        if len(text) > high:
            warnings.append(f"Block {name} too long: {len(text)} chars (max: {high:g})")

        if not _has_evidence(block.get("evidence_keys")):
            warnings.append(f"Block {name} has no evidence keys")

        flags = detector(text, banned)
        if flags:
            warnings.append(f"Block {name} contains banned phrases: {_phrases(flags)}")

    if copy_output.get("continuity_flag") is True:
        warnings.append(
            "Narrative continuity flag triggered - blocks may not flow together"
        )
    return ValidationOutcome.from_messages(errors, warnings)


def validate_image_brief(
    outputs: Sequence[Any],
    config: Configuration | None,  # noqa: ARG001
    *,
    detector: SlopDetector = detect_slop,  # noqa: ARG001
) -> ValidationOutcome:
    if len(outputs) != 1 or not isinstance(outputs[0], Mapping):
        return ValidationOutcome.from_messages(
            ["Image brief output must be a single object"]
        )
    brief: Mapping[str, Any] = outputs[0]
    errors: list[str] = []
    warnings: list[str] = []

    aspect = brief.get("aspect_ratio")
    if aspect != IMAGE_ASPECT_RATIO:
        errors.append(f'aspect_ratio must be "{IMAGE_ASPECT_RATIO}", got "{aspect}"')

    for zone in ("safe_zone_top", "safe_zone_bottom"):
        value = brief.get(zone)
        if not _is_number(value) or value < MIN_SAFE_ZONE:
            errors.append(f"{zone} must be >= {MIN_SAFE_ZONE}, got {value}")

    errors.extend(
        f"Missing required field: {field}" for field in IMAGE_FIELDS if field not in brief
    )

    if not _has_evidence(brief.get("evidence_keys")):
        warnings.append("Image brief has no evidence keys")
    return ValidationOutcome.from_messages(errors, warnings)


def validate_review(
    outputs: Sequence[Any],
    config: Configuration | None,  # noqa: ARG001
    *,
    detector: SlopDetector = detect_slop,  # noqa: ARG001
) -> ValidationOutcome:
    if len(outputs) != 1:
        return ValidationOutcome.from_messages(
            [f"Expected 1 review, got {len(outputs)}"]
        )
    review = outputs[0]
    if not isinstance(review, Mapping):
        return ValidationOutcome.from_messages(["Review must be an object"])

    errors = [
        f"Missing required field: {field}" for field in REVIEW_FIELDS if field not in review
    ]
    errors.extend(
        f"{field} must be an array"
        for field in REVIEW_LIST_FIELDS
        if review.get(field) is not None and not isinstance(review[field], list)
    )
    audience = review.get("target_audience")
    if audience is not None and not isinstance(audience, str):
        errors.append("target_audience must be a string")
    return ValidationOutcome.from_messages(errors)


RuleFunction = Callable[..., ValidationOutcome]

TASK_VALIDATORS: Mapping[str, RuleFunction] = {
    IDEAS_CALL: validate_ideas,
    COPY_CALL: validate_copy,
    IMAGE_BRIEF_CALL: validate_image_brief,
    REVIEW_SUMMARY_CALL: validate_review,
}


def validate_task_output(
    task_id: str,
    outputs: Sequence[Any],
    config: Configuration | None,
    *,
    fail_closed: bool = False,
) -> ValidationOutcome:
    """Dispatch to the rule function for ``task_id``.

    Unknown task ids pass with a warning, or fail when ``fail_closed`` is set.
    """
    rule = TASK_VALIDATORS.get(task_id)
    if rule is None:
        message = f"No validator defined for task: {task_id}"
        if fail_closed:
            return ValidationOutcome.from_messages([message])
        return ValidationOutcome.from_messages([], [message])
    return rule(outputs, config)
