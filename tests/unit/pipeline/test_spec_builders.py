"""Spec builders: configuration plus inputs to a provider-neutral TaskSpec."""

import dataclasses
import hashlib
import json

import pytest

from brandpack.config import merge_layers
from brandpack.exceptions import ConfigurationError
from brandpack.pipeline import (
    build_copy_spec,
    build_ideas_spec,
    build_image_brief_spec,
    build_review_summary_spec,
    get_call_settings,
)
from brandpack.pipeline.specs import canonical_json, content_fingerprint

pytestmark = pytest.mark.unit


def test_ideas_spec_renders_kernel_and_copies_model(config, kernel):
    spec = build_ideas_spec(config, kernel, run_id="run_1")

    assert spec.task_id == "ideas.generate"
    assert spec.system_prompt == "You are a B2B campaign strategist."
    assert canonical_json(kernel) in spec.user_prompt
    assert "{kernel}" not in spec.user_prompt
    assert spec.response_format == "json"
    assert spec.constraints.temperature == 0.7
    assert spec.constraints.max_tokens == 2048
    assert spec.model == "noop-llm-v1"


def test_metadata_carries_correlation_fields(config, kernel):
    spec = build_ideas_spec(config, kernel, run_id="run_1")

    assert spec.metadata.task == "ideas.generate"
    assert spec.metadata.run_id == "run_1"
    assert spec.metadata.domain == "acme.io"
    assert spec.metadata.content_fingerprint == "kernel-hash-123"


def test_copy_and_image_specs_render_kernel_and_idea(config, kernel, idea):
    for build in (build_copy_spec, build_image_brief_spec):
        spec = build(config, kernel, idea)

        assert canonical_json(kernel) in spec.user_prompt
        assert canonical_json(idea) in spec.user_prompt
        assert "{idea}" not in spec.user_prompt


def test_review_summary_spec_uses_its_call(config, kernel):
    spec = build_review_summary_spec(config, kernel)

    assert spec.task_id == "scrape.review_summarize"
    assert spec.constraints.temperature == 0.3


def test_every_placeholder_occurrence_is_replaced(config_document, kernel):
    doc = config_document()
    doc["calls"]["ideas.generate"]["prompt"]["user_template"] = "{kernel}\n---\n{kernel}"
    config = merge_layers(base=doc)

    spec = build_ideas_spec(config, kernel)

    assert spec.user_prompt == f"{canonical_json(kernel)}\n---\n{canonical_json(kernel)}"


def test_builders_are_deterministic(config, kernel, idea):
    assert build_copy_spec(config, kernel, idea, "r") == build_copy_spec(
        config, kernel, idea, "r"
    )


def test_specs_are_immutable(config, kernel):
    spec = build_ideas_spec(config, kernel)

    with pytest.raises(dataclasses.FrozenInstanceError):
        spec.user_prompt = "changed"  # type: ignore[misc]


def test_missing_call_raises_configuration_error(config_document, kernel):
    doc = config_document()
    del doc["calls"]["ideas.generate"]
    config = merge_layers(base=doc)

    with pytest.raises(ConfigurationError, match="ideas.generate not found in config"):
        build_ideas_spec(config, kernel)


def test_fingerprint_falls_back_to_content_digest():
    kernel = {"domain": "acme.io"}

    expected = hashlib.sha256(
        json.dumps(kernel, indent=2, ensure_ascii=False).encode("utf-8")
    ).hexdigest()
    assert content_fingerprint(kernel) == expected


def test_call_settings_fall_back_to_global_provider(config):
    settings = get_call_settings(config, "copy.generate")

    assert settings.provider == "noop-llm"
    assert settings.model == "noop-llm-v1"
    assert settings.runtime.max_retries == 2


def test_call_settings_prefer_call_provider(config):
    config = merge_layers(
        base=config,
        override={"calls": {"copy.generate": {"model": {"provider": "gemini"}}}},
    )

    assert get_call_settings(config, "copy.generate").provider == "gemini"
