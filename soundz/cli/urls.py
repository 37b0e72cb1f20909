"""Programme URL normalisation helpers."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from .debug import debug_log

CANONICAL_SCHEME = "https"
CANONICAL_HOST = "www.bbc.co.uk"
CANONICAL_ORIGIN = f"{CANONICAL_SCHEME}://{CANONICAL_HOST}"
NON_PAGE_HREF_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:")


def normalise_url(value: str | None) -> str:
    """Return the canonical comparison key for a programme URL.

    Absolute URLs are forced onto ``https://www.bbc.co.uk`` with query,
    fragment and trailing slash removed and the path lower-cased. Values that
    do not parse as absolute URLs are only trimmed.
    """
    trimmed = (value or "").strip()
    if not trimmed:
        return ""

    try:
        parts = urlsplit(trimmed)
    except ValueError:
        parts = None

    if parts is None or not parts.scheme or not parts.netloc:
        result = trimmed.rstrip("/")
        debug_log(f"Not an absolute URL; keeping '{result}'")
        return result

    path = parts.path.rstrip("/")
    return urlunsplit((CANONICAL_SCHEME, CANONICAL_HOST, path, "", "")).lower()


def absolute_url(href: str | None) -> str:
    """Resolve *href* against the canonical host.

    In-page anchors and non-navigational schemes resolve to ``""``.
    """
    trimmed = (href or "").strip()
    if not trimmed:
        return ""
    lowered = trimmed.lower()
    if lowered.startswith(NON_PAGE_HREF_PREFIXES):
        return ""
    if lowered.startswith(("http://", "https://")):
        return trimmed
    if trimmed.startswith("//"):
        return f"{CANONICAL_SCHEME}:{trimmed}"
    if trimmed.startswith("/"):
        return f"{CANONICAL_ORIGIN}{trimmed}"
    return f"{CANONICAL_ORIGIN}/{trimmed}"


__all__ = ["CANONICAL_HOST", "CANONICAL_ORIGIN", "absolute_url", "normalise_url"]
