"""Programme detail (preview) metadata."""

from __future__ import annotations

import json
from typing import Optional

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from .debug import debug_log
from .extract import clean_text, extract_first_match, image_from_node, node_text
from .http import DEFAULT_TIMEOUT, USER_AGENT, fetch_document
from .models import ProgrammeDetail
from .utils import dedupe_preserve_order

TITLE_SELECTORS = (
    "h1[class*=hero__title]",
    "h1.no-margin",
    "h1",
)
SUBTITLE_SELECTORS = (
    "p[class*=hero__subtitle]",
    "h2[class*=episode__subtitle]",
)
DESCRIPTION_SELECTORS = (
    "div[class*=episode-synopsis] p",
    "div[class*=synopsis] p",
    "div[class*=programme-synopsis] p",
    "p[class*=programme__synopsis]",
)
BRAND_SELECTORS = (
    "span[class*=brand-title]",
    "a[class*=brand__title]",
)
DURATION_SELECTORS = (
    "span[class*=duration]",
    "body :-soup-contains-own('minutes')",
    "body :-soup-contains-own('hours')",
)
BROADCAST_SELECTORS = (
    "time",
    "span[class*=broadcast]",
    "[class*=date]",
)
PRIMARY_IMAGE_SELECTORS = (
    "div[class*=episode-playout] img[class*=image]",
    "img[class*=hero__image]",
    "img[class*=programme-image]",
)
FALLBACK_IMAGE_SELECTORS = (
    "div[class*=programme-image] img",
    "img[alt*=programme]",
    "img[alt*=episode]",
)
GENRE_SELECTORS = "span[class*=genre], a[class*=category]"


def _extract_broadcast(soup: BeautifulSoup, detail: ProgrammeDetail) -> None:
    for selector in BROADCAST_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = node_text(node)
        stamp = clean_text(node.get("datetime"))
        if not text and not stamp:
            continue
        detail.broadcast_date = text or stamp
        if stamp:
            try:
                detail.broadcast_datetime = date_parser.isoparse(stamp)
            except ValueError:
                try:
                    detail.broadcast_datetime = date_parser.parse(stamp, dayfirst=True)
                except (ValueError, OverflowError):
                    debug_log(f"Unparsable broadcast datetime '{stamp}'")
        return


def _extract_image(soup: BeautifulSoup) -> Optional[str]:
    for selectors in (PRIMARY_IMAGE_SELECTORS, FALLBACK_IMAGE_SELECTORS):
        for selector in selectors:
            image = image_from_node(soup.select_one(selector))
            if image:
                return image
    return None


def _extract_structured_data(soup: BeautifulSoup) -> list:
    blocks: list = []
    for script in soup.select("script[type='application/ld+json']"):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            blocks.append(json.loads(raw))
        except ValueError as exc:
            debug_log(f"Ignoring malformed JSON-LD block ({exc})")
    return blocks


def _extract_genres(soup: BeautifulSoup) -> list[str]:
    genres = (node_text(node) for node in soup.select(GENRE_SELECTORS))
    return dedupe_preserve_order(genre for genre in genres if genre)


def parse_detail(url: str, soup: BeautifulSoup) -> ProgrammeDetail:
    detail = ProgrammeDetail(url=url)
    detail.title = extract_first_match(soup, TITLE_SELECTORS) or ""
    detail.subtitle = extract_first_match(soup, SUBTITLE_SELECTORS) or ""
    detail.description = extract_first_match(soup, DESCRIPTION_SELECTORS) or ""
    detail.brand = extract_first_match(soup, BRAND_SELECTORS) or ""
    detail.duration = extract_first_match(soup, DURATION_SELECTORS) or ""
    _extract_broadcast(soup, detail)
    detail.image_url = _extract_image(soup) or ""
    detail.structured_data = _extract_structured_data(soup)
    detail.genres = _extract_genres(soup)
    return detail


def fetch_detail(
    url: str,
    timeout: int = DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT,
) -> ProgrammeDetail:
    """Fetch preview metadata for *url*.

    Never raises for network or parse problems: the returned record carries
    ``has_error`` and ``error_message`` instead, since previews are advisory.
    """
    if not (url or "").strip():
        return ProgrammeDetail.failed(url or "", "no programme URL")
    try:
        soup = fetch_document(url, timeout=timeout, user_agent=user_agent)
        detail = parse_detail(url, soup)
    except Exception as exc:
        debug_log(f"{url}: detail fetch failed ({exc!r})")
        return ProgrammeDetail.failed(url, str(exc) or type(exc).__name__)
    debug_log(f"{url}: detail title '{detail.title or '<none>'}'")
    return detail


__all__ = ["fetch_detail", "parse_detail"]
