"""Banned-phrase ("slop") detection."""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple


class SlopFlag(NamedTuple):
    phrase: str
    position: int


def detect_slop(text: str, phrases: Iterable[str]) -> list[SlopFlag]:
    """Find every case-insensitive, non-overlapping occurrence of each phrase.

    Flags are grouped by phrase in the order given, then by position.
    """
    haystack = text.lower()
    flags: list[SlopFlag] = []
    for phrase in phrases:
        needle = phrase.lower()
        if not needle:
            continue
        start = haystack.find(needle)
        while start != -1:
            flags.append(SlopFlag(phrase, start))
            start = haystack.find(needle, start + len(needle))
    return flags
