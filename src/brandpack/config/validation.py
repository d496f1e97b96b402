"""Structural validation of raw configuration documents.

`validate_config` never raises for bad input: it reports every problem as a
dot-qualified `ValidationIssue` so callers can surface them all at once.
`ensure_valid_config` is the raising variant used by loaders.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NamedTuple

from pydantic import ValidationError

from brandpack.exceptions import ConfigurationError

from .schema import Configuration


class ValidationIssue(NamedTuple):
    """A single structural problem found in a configuration document."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class ConfigValidationResult(NamedTuple):
    """Outcome of validating a raw configuration document."""

    valid: bool
    errors: list[ValidationIssue]
    config: Configuration | None = None


def _issue_path(loc: tuple[int | str, ...]) -> str:
    if not loc:
        return "root"
    return ".".join(str(part) for part in loc)


def _issue_message(error: Mapping[str, Any]) -> str:
    field = str(error["loc"][-1]) if error["loc"] else "configuration"
    if error["type"] == "missing":
        return f"{field} is required"
    return error["msg"]


def issues_from_error(exc: ValidationError) -> list[ValidationIssue]:
    """Convert a pydantic ``ValidationError`` into path-qualified issues."""
    return [
        ValidationIssue(_issue_path(tuple(err["loc"])), _issue_message(err))
        for err in exc.errors(include_url=False)
    ]


def validate_config(raw: Any) -> ConfigValidationResult:
    """Check that ``raw`` is a structurally valid configuration document.

    Args:
        raw: Parsed document, typically the result of ``json.load``.

    Returns:
        ConfigValidationResult with ``valid`` set, every issue found and, when
        valid, the typed ``Configuration``.
    """
    if isinstance(raw, Configuration):
        return ConfigValidationResult(True, [], raw)
    if not isinstance(raw, Mapping):
        return ConfigValidationResult(
            False, [ValidationIssue("root", "Configuration must be an object")]
        )

    try:
        config = Configuration.model_validate(dict(raw))
    except ValidationError as e:
        return ConfigValidationResult(False, issues_from_error(e))
    return ConfigValidationResult(True, [], config)


def ensure_valid_config(raw: Any) -> Configuration:
    """Validate ``raw`` and return the typed configuration.

    Raises:
        ConfigurationError: With every issue attached when validation fails.
    """
    result = validate_config(raw)
    if not result.valid or result.config is None:
        summary = "; ".join(str(issue) for issue in result.errors)
        raise ConfigurationError(
            f"Invalid configuration: {summary}", issues=result.errors
        )
    return result.config
