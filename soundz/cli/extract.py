"""Field extraction heuristics for provider HTML pages.

Selector lists are ordered fallback chains: each entry targets a different
page template the provider renders for the same content, and the first
selector producing a non-empty value wins.
"""

from __future__ import annotations

import html
import re
from datetime import datetime
from typing import Iterable, Optional

from bs4.element import Tag
from dateutil import parser as date_parser

from .urls import CANONICAL_ORIGIN
from .utils import collapse_whitespace

DATE_DECORATIONS = re.compile(r"first broadcast:|available now", re.IGNORECASE)
DATE_TOKEN_SEPARATORS = re.compile(r"[•·|\n-]")
WIDTH_DESCRIPTOR = re.compile(r"^(\d+)w$", re.IGNORECASE)


def clean_text(value: str | None) -> str:
    """Decode HTML entities and collapse whitespace."""
    return collapse_whitespace(html.unescape(value or ""))


def node_text(node: Tag | None) -> str:
    if node is None:
        return ""
    return clean_text(node.get_text(" "))


def extract_first_match(
    node: Tag,
    selectors: Iterable[str],
    attribute: str | None = None,
) -> Optional[str]:
    """Return the first non-empty value produced by *selectors*, in order."""
    for selector in selectors:
        match = node.select_one(selector)
        if match is None:
            continue
        if attribute is None:
            value = node_text(match)
        else:
            raw = match.get(attribute)
            if isinstance(raw, list):
                raw = " ".join(raw)
            value = clean_text(raw)
        if value:
            return value
    return None


def select_first_nodes(node: Tag, selectors: Iterable[str]) -> list[Tag]:
    """Return the matches of the first selector that matches anything."""
    for selector in selectors:
        matches = node.select(selector)
        if matches:
            return matches
    return []


def resolve_image_url(url: str | None) -> Optional[str]:
    """Force an image URL onto the secure scheme."""
    trimmed = (url or "").strip()
    if not trimmed:
        return None
    lowered = trimmed.lower()
    if lowered.startswith(("http://", "https://")):
        return trimmed
    if trimmed.startswith("//"):
        return f"https:{trimmed}"
    if trimmed.startswith("/"):
        return f"{CANONICAL_ORIGIN}{trimmed}"
    return f"https://{trimmed}"


def parse_srcset(srcset: str | None) -> list[tuple[str, int]]:
    """Parse ``url width`` pairs, skipping entries without a usable width."""
    candidates: list[tuple[str, int]] = []
    for part in (srcset or "").split(","):
        segments = part.split()
        if len(segments) < 2:
            continue
        match = WIDTH_DESCRIPTOR.match(segments[1])
        if not match:
            continue
        candidates.append((segments[0], int(match.group(1))))
    return candidates


def extract_best_image(srcset: str | None) -> Optional[str]:
    """Return the widest candidate of a responsive image ``srcset``."""
    best: tuple[str, int] | None = None
    for url, width in parse_srcset(srcset):
        if best is None or width > best[1]:
            best = (url, width)
    if best is None:
        return None
    return resolve_image_url(best[0])


def image_from_node(img: Tag | None) -> Optional[str]:
    """Best image URL of an ``<img>``: widest srcset entry, then data-src, then src."""
    if img is None:
        return None
    for attribute in ("srcset", "data-srcset"):
        best = extract_best_image(img.get(attribute))
        if best:
            return best
    for attribute in ("data-src", "src"):
        resolved = resolve_image_url(img.get(attribute))
        if resolved:
            return resolved
    return None


def _parse_date_token(token: str) -> Optional[datetime]:
    token = token.strip(" ,.")
    if not token or not any(ch.isdigit() for ch in token):
        return None
    if token.replace(" ", "").isdigit():
        # A bare number is a count or a duration, not a date.
        return None
    base = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
    try:
        parsed = date_parser.parse(token, dayfirst=True, default=base.replace(month=1, day=1))
        shifted = date_parser.parse(token, dayfirst=True, default=base.replace(month=12, day=1))
    except (ValueError, OverflowError):
        return None
    if parsed.month != shifted.month:
        # Times of day and durations such as "30 minutes" carry no calendar date.
        return None
    return parsed


def parse_broadcast_date(text: str | None) -> Optional[datetime]:
    """Parse a broadcast date out of a free-text metadata line.

    The whole line is tried first, then each separator-delimited token; the
    first token that parses wins.
    """
    if not text:
        return None
    cleaned = DATE_DECORATIONS.sub("", html.unescape(text)).strip()
    if not cleaned:
        return None

    parsed = _parse_date_token(cleaned)
    if parsed is not None:
        return parsed

    for token in DATE_TOKEN_SEPARATORS.split(cleaned):
        parsed = _parse_date_token(token)
        if parsed is not None:
            return parsed
    return None


__all__ = [
    "clean_text",
    "extract_best_image",
    "extract_first_match",
    "image_from_node",
    "node_text",
    "parse_broadcast_date",
    "parse_srcset",
    "resolve_image_url",
    "select_first_nodes",
]
