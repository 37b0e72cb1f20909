"""HTTP access to the provider's pages."""

from __future__ import annotations

import requests
from bs4 import BeautifulSoup

from .debug import debug_log

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 30


def fetch_html(url: str, timeout: int = DEFAULT_TIMEOUT, user_agent: str = USER_AGENT) -> str:
    """Fetch *url* and decode the body as UTF-8.

    The declared response charset is ignored: the provider's pages are UTF-8
    and some responses misreport it, which produces mojibake.
    """
    debug_log(f"GET {url}")
    response = requests.get(
        url,
        headers={"User-Agent": user_agent, "Accept-Charset": "UTF-8"},
        timeout=timeout,
    )
    response.raise_for_status()
    body = response.content or b""
    debug_log(f"GET {url} returned {response.status_code} ({len(body)} bytes)")
    return body.decode("utf-8", errors="replace")


def parse_html(text: str) -> BeautifulSoup:
    return BeautifulSoup(text, "html.parser")


def fetch_document(url: str, timeout: int = DEFAULT_TIMEOUT, user_agent: str = USER_AGENT) -> BeautifulSoup:
    return parse_html(fetch_html(url, timeout=timeout, user_agent=user_agent))


__all__ = ["DEFAULT_TIMEOUT", "USER_AGENT", "fetch_document", "fetch_html", "parse_html"]
