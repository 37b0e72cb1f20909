"""General utility helpers for the soundz CLI."""

from __future__ import annotations

import re
import shlex
from typing import Iterable, Sequence

# Characters that no mainstream filesystem accepts in a file name.
INVALID_FILENAME_CHARS = re.compile(r"[\\/:*?\"<>|\x00-\x1f]")
UNSAFE_PATH_CHARS = re.compile(r"[\\/<>|\x00-\x1f]")
WHITESPACE_PATTERN = re.compile(r"\s+")


def format_command(command: Sequence[str]) -> str:
    """Return a shell-escaped representation of *command*."""
    return " ".join(shlex.quote(part) for part in command)


def next_delimiter(buffer: str) -> int | None:
    """Return the index of the next newline or carriage-return in *buffer*."""
    newline = buffer.find("\n")
    carriage = buffer.find("\r")
    indices = [idx for idx in (newline, carriage) if idx != -1]
    if not indices:
        return None
    return min(indices)


def collapse_whitespace(value: str | None) -> str:
    return WHITESPACE_PATTERN.sub(" ", value or "").strip()


def sanitize_filename_component(value: str | None) -> str:
    """Strip every character that is invalid in a file name."""
    cleaned = INVALID_FILENAME_CHARS.sub("", (value or "").strip())
    return collapse_whitespace(cleaned)


def substitute_filename_component(value: str | None) -> str:
    """Replace punctuation the way download tools usually rewrite titles.

    Colons become `` -``, question marks and asterisks are dropped and double
    quotes become single quotes; the remaining unsafe characters are stripped.
    """
    cleaned = (value or "").strip()
    cleaned = cleaned.replace(":", " -")
    cleaned = cleaned.replace("?", "").replace("*", "")
    cleaned = cleaned.replace('"', "'")
    cleaned = UNSAFE_PATH_CHARS.sub("", cleaned)
    return collapse_whitespace(cleaned)


def dedupe_preserve_order(items: Iterable[str]) -> list[str]:
    """Deduplicate while preserving iteration order."""
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def truncate_title(title: str, max_len: int = 40) -> str:
    """Trim and pad helper for fixed-width title columns."""
    clean = (title or "").strip()
    if len(clean) <= max_len:
        return clean.ljust(max_len)
    return clean[: max_len - 1] + "…"


__all__ = [
    "collapse_whitespace",
    "dedupe_preserve_order",
    "format_command",
    "next_delimiter",
    "sanitize_filename_component",
    "substitute_filename_component",
    "truncate_title",
]
