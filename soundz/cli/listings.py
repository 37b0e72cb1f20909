"""Listing page scrapers: schedule weeks, genre highlights and show episodes."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Sequence

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag

from .config import DEFAULT_GENRE_URL
from .debug import debug_log
from .extract import (
    extract_first_match,
    image_from_node,
    node_text,
    parse_broadcast_date,
    select_first_nodes,
)
from .http import DEFAULT_TIMEOUT, USER_AGENT, fetch_document
from .models import ProgrammeItem
from .urls import absolute_url, normalise_url

TITLE_SELECTORS = (
    "span.programme__title",
    "h2.programme__titles",
    "[class*=episode-item__title]",
)
LINK_SELECTORS = (
    "a[class*=programme__titles]",
    "a[class*=br-blocklink__link]",
    "h2[class*=programme__titles] a",
    "a[href]",
)
SYNOPSIS_SELECTORS = (
    "p[class*=programme__synopsis]",
    "p[class*=text--description]",
)
META_SELECTORS = (
    "div[class*=programme__meta]",
    "div[class*=episode-item__info__secondary]",
    "ul[class*=episode-item__meta]",
)
IMAGE_SELECTORS = (
    "div[class*=programme__img] img",
    "img",
)


class ListingFetcher:
    """Shared fetch/parse/extract loop for listing pages.

    Subclasses describe the page template through ordered selector tuples and
    decorate each extracted item.
    """

    container_selectors: Sequence[str] = ()
    link_selectors: Sequence[str] = LINK_SELECTORS
    title_selectors: Sequence[str] = TITLE_SELECTORS
    synopsis_selectors: Sequence[str] = SYNOPSIS_SELECTORS
    meta_selectors: Sequence[str] = META_SELECTORS
    image_selectors: Sequence[str] = IMAGE_SELECTORS

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, user_agent: str = USER_AGENT) -> None:
        self._timeout = timeout
        self._user_agent = user_agent

    def fetch_page(self, url: str) -> BeautifulSoup:
        return fetch_document(url, timeout=self._timeout, user_agent=self._user_agent)

    def parse_items(self, soup: BeautifulSoup) -> list[ProgrammeItem]:
        containers = select_first_nodes(soup, self.container_selectors)
        debug_log(f"{type(self).__name__}: {len(containers)} candidate container(s)")
        items: list[ProgrammeItem] = []
        seen: set[str] = set()
        for node in containers:
            try:
                item = self.build_item(node)
            except Exception as exc:
                debug_log(f"{type(self).__name__}: skipping malformed entry ({exc!r})")
                continue
            if item is None or item.canonical_url in seen:
                continue
            seen.add(item.canonical_url)
            items.append(item)
        return items

    def find_link(self, node: Tag) -> Optional[Tag]:
        if node.name == "a" and absolute_url(node.get("href")):
            return node
        for selector in self.link_selectors:
            for link in node.select(selector):
                if absolute_url(link.get("href")):
                    return link
        return None

    def build_item(self, node: Tag) -> Optional[ProgrammeItem]:
        link = self.find_link(node)
        if link is None:
            return None
        title = extract_first_match(node, self.title_selectors) or node_text(link)
        if not title:
            return None
        canonical_url = normalise_url(absolute_url(link.get("href")))
        if not canonical_url:
            return None

        description = extract_first_match(node, self.synopsis_selectors) or ""
        meta = extract_first_match(node, self.meta_selectors)
        image_url = None
        for selector in self.image_selectors:
            image_url = image_from_node(node.select_one(selector))
            if image_url:
                break

        return ProgrammeItem(
            display_name=title,
            title=title,
            canonical_url=canonical_url,
            description=description,
            image_url=image_url,
            broadcast_date=parse_broadcast_date(meta),
        )


def week_start_from_url(url: str) -> Optional[datetime]:
    """Return the Monday of the ISO week encoded as ``.../{year}/w{week}``."""
    parts = (url or "").rstrip("/").split("/")
    if len(parts) < 2:
        return None
    year_part, week_part = parts[-2], parts[-1].lower()
    if not year_part.isdigit() or not week_part.startswith("w"):
        return None
    try:
        monday = date.fromisocalendar(int(year_part), int(week_part[1:]), 1)
    except ValueError:
        return None
    return datetime.combine(monday, time())


class ScheduleListingFetcher(ListingFetcher):
    """One week of a station schedule."""

    container_selectors = (
        "[class*=programme--episode]",
        "[class*=programme--radio]",
        "[class*=week-guide__table__item]",
        "a[href*='/programmes/'], a[href*='/sounds/']",
    )

    def fetch(self, page_url: str, filter_text: str = "") -> list[ProgrammeItem]:
        """Return the programmes of *page_url* whose title contains *filter_text*.

        Network and HTTP errors propagate to the caller.
        """
        soup = self.fetch_page(page_url)
        week_start = week_start_from_url(page_url)
        needle = (filter_text or "").strip().casefold()
        items: list[ProgrammeItem] = []
        for item in self.parse_items(soup):
            if needle and needle not in item.title.casefold():
                continue
            if week_start is not None:
                item.broadcast_date = week_start
                item.display_name = f"{item.title} ({week_start:%b %d, %Y})"
                if not item.description:
                    item.description = f"Found in week of {week_start:%B %d, %Y}"
            else:
                item.broadcast_date = None
            items.append(item)
        debug_log(f"{page_url}: {len(items)} matching programme(s)")
        return items


class GenreListingFetcher(ListingFetcher):
    """Curated highlights of a genre player page."""

    container_selectors = (
        "ol[class*=highlight-box-wrapper] div.programme",
        "div[class*=highlight-box] div.programme",
        "ol[class*=highlight-box-wrapper] div[class*=programme]",
        "div[class*=highlight-box] div[class*=programme]",
    )
    link_selectors = ("h2[class*=programme__titles] a",)
    title_selectors = ("h2[class*=programme__titles] a",)

    def build_item(self, node: Tag) -> Optional[ProgrammeItem]:
        item = super().build_item(node)
        if item is None:
            return None
        service = extract_first_match(node, ("p[class*=programme__service]",))
        if service:
            item.description = f"{service} • {item.description}".strip(" •")
        # Genre pages carry no broadcast date for the highlighted shows.
        item.broadcast_date = None
        return item

    def fetch(self, genre_url: str = DEFAULT_GENRE_URL) -> list[ProgrammeItem]:
        soup = self.fetch_page(genre_url)
        items = self.parse_items(soup)
        return sorted(items, key=lambda item: item.title.casefold())


class EpisodeListingFetcher(ListingFetcher):
    """Episode listing of a single show."""

    container_selectors = (
        "div[class*=programme--episode]",
        "li[class*=programme]:has(a[class*=programme__titles])",
        "div[class*=episode-item]",
    )
    synopsis_selectors = SYNOPSIS_SELECTORS + ("p",)

    @staticmethod
    def listing_url(show_url: str) -> str:
        normalised = normalise_url(show_url)
        if not normalised or "/episodes" in normalised.lower():
            return normalised
        return normalised.rstrip("/") + "/episodes/player"

    def build_item(self, node: Tag) -> Optional[ProgrammeItem]:
        item = super().build_item(node)
        if item is not None and item.broadcast_date is not None:
            item.display_name = f"{item.title} ({item.broadcast_date:%d %b %Y})"
        return item

    def fetch(self, show_url: str) -> list[ProgrammeItem]:
        """Return the episodes of *show_url*; fetch failures yield an empty list."""
        url = self.listing_url(show_url)
        if not url:
            return []
        try:
            soup = self.fetch_page(url)
        except requests.RequestException as exc:
            debug_log(f"{url}: unable to fetch episode listing ({exc})")
            return []
        return self.parse_items(soup)


__all__ = [
    "EpisodeListingFetcher",
    "GenreListingFetcher",
    "ListingFetcher",
    "ScheduleListingFetcher",
    "week_start_from_url",
]
