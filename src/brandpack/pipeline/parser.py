"""Parsing of raw adapter outputs according to the spec's response format."""

from __future__ import annotations

from collections.abc import Sequence
import json
import re
from typing import Any

from brandpack.core.types import ResponseFormat
from brandpack.exceptions import PipelineParseError

_FENCE_RE = re.compile(r"^\s*```[\w-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```), if present."""
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text.strip()


def parse_outputs(
    raw_outputs: Sequence[str],
    *,
    response_format: ResponseFormat,
    expected_count: int = 1,
) -> list[Any]:
    """Parse raw provider outputs.

    ``text`` outputs are returned unchanged. ``json`` and ``structured``
    outputs are decoded one by one. When a single output decodes to a list and
    more than one output is expected, the list's elements become the outputs.

    Raises:
        PipelineParseError: If any output is not valid JSON.
    """
    if response_format == "text":
        return list(raw_outputs)

    parsed: list[Any] = []
    for index, raw in enumerate(raw_outputs):
        try:
            parsed.append(json.loads(strip_code_fences(raw)))
        except (json.JSONDecodeError, TypeError) as e:
            raise PipelineParseError(
                f"Output {index} is not valid JSON: {e}", index=index
            ) from e

    if len(parsed) == 1 and isinstance(parsed[0], list) and expected_count > 1:
        return list(parsed[0])
    return parsed
