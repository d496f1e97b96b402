"""Spec building, routing, parsing and validation stages."""

from .parser import parse_outputs
from .quality import SlopFlag, detect_slop
from .router import RetryPolicy, Router, RouteState, RouteTrace, make_executor
from .specs import (
    CallSettings,
    build_copy_spec,
    build_ideas_spec,
    build_image_brief_spec,
    build_review_summary_spec,
    get_call_settings,
)
from .validator import (
    validate_copy,
    validate_ideas,
    validate_image_brief,
    validate_review,
    validate_task_output,
)

__all__ = [
    "CallSettings",
    "RetryPolicy",
    "RouteState",
    "RouteTrace",
    "Router",
    "SlopFlag",
    "build_copy_spec",
    "build_ideas_spec",
    "build_image_brief_spec",
    "build_review_summary_spec",
    "detect_slop",
    "get_call_settings",
    "make_executor",
    "parse_outputs",
    "validate_copy",
    "validate_ideas",
    "validate_image_brief",
    "validate_review",
    "validate_task_output",
]
