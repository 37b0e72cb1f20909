"""Parallel discovery across date-partitioned schedule pages."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from queue import Queue
from typing import Callable, Iterator, Optional, Sequence

from dateutil.relativedelta import relativedelta

from .config import DEFAULT_MAX_WORKERS, DEFAULT_MONTHS, ScheduleSource
from .debug import debug_log
from .events import DiscoveryOutcome, EventKind, ProgressEvent
from .http import DEFAULT_TIMEOUT, USER_AGENT
from .listings import ScheduleListingFetcher
from .models import ProgrammeItem
from .utils import dedupe_preserve_order


def _week_url(base_url: str, moment: datetime) -> str:
    iso_year, week, _ = moment.isocalendar()
    return f"{base_url.rstrip('/')}/{iso_year}/w{week:02d}"


def generate_week_urls(base_url: str, start: datetime, end: datetime) -> list[str]:
    """Return one ``{year}/w{week}`` page URL per week from *start* to *end*."""
    urls: list[str] = []
    current = start
    while current <= end:
        urls.append(_week_url(base_url, current))
        current += timedelta(days=7)
    if start <= end:
        urls.append(_week_url(base_url, end))
    return dedupe_preserve_order(urls)


def _date_sort_key(item: ProgrammeItem) -> datetime:
    if item.broadcast_date is None:
        return datetime.min
    return item.broadcast_date.replace(tzinfo=None)


def merge_items(pages: Sequence[Sequence[ProgrammeItem]]) -> list[ProgrammeItem]:
    """Merge per-page results: first canonical URL wins, newest first, undated last."""
    merged: list[ProgrammeItem] = []
    seen: set[str] = set()
    for page in pages:
        for item in page:
            if item.canonical_url in seen:
                continue
            seen.add(item.canonical_url)
            merged.append(item)
    # sorted() is stable with reverse=True, so ties keep discovery order.
    return sorted(merged, key=_date_sort_key, reverse=True)


class ScheduleDiscoveryPipeline:
    """Fan a title filter out over every configured schedule's weekly pages."""

    def __init__(
        self,
        sources: Sequence[ScheduleSource],
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        fetcher: ScheduleListingFetcher | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._sources = list(sources)
        self._max_workers = max(1, max_workers)
        self._fetcher = fetcher or ScheduleListingFetcher(timeout=timeout, user_agent=user_agent)

    def page_urls(self, start: datetime, end: datetime) -> list[str]:
        urls: list[str] = []
        for source in self._sources:
            urls.extend(generate_week_urls(source.base_url, start, end))
        return dedupe_preserve_order(urls)

    def iter_discover(
        self,
        filter_text: str,
        since_months: int = DEFAULT_MONTHS,
        now: Optional[datetime] = None,
    ) -> Iterator[ProgressEvent]:
        """Yield progress events for a discovery run, ending with one terminal event.

        The terminal event's ``outcome`` is a :class:`DiscoveryOutcome`.
        """
        end = now or datetime.now()
        start = end - relativedelta(months=since_months)
        urls = self.page_urls(start, end)
        total = len(urls)

        yield ProgressEvent.info("Starting scrape...")
        yield ProgressEvent.info(f"Processing {total} weeks in parallel...")

        pages: list[list[ProgrammeItem]] = [[] for _ in urls]
        errors: list[str] = []
        events: Queue[ProgressEvent] = Queue()
        lock = threading.Lock()
        processed = 0

        def _process(index: int, url: str) -> None:
            nonlocal processed
            failure: str | None = None
            items: list[ProgrammeItem] = []
            try:
                items = self._fetcher.fetch(url, filter_text)
            except Exception as exc:
                failure = f"Error processing {url}: {exc}"
                debug_log(failure)
            finally:
                with lock:
                    processed += 1
                    pages[index] = items
                    if failure is not None:
                        errors.append(failure)
                        event = ProgressEvent(
                            EventKind.ERROR, failure, processed=processed, total=total
                        )
                    else:
                        event = ProgressEvent(
                            EventKind.PROGRESS,
                            f"Processed {processed} of {total} weeks...",
                            percent=processed * 100.0 / total,
                            processed=processed,
                            total=total,
                        )
                    events.put(event)

        executor: ThreadPoolExecutor | None = None
        if total:
            executor = ThreadPoolExecutor(max_workers=self._max_workers)
        try:
            if executor is not None:
                for index, url in enumerate(urls):
                    executor.submit(_process, index, url)
            for _ in range(total):
                yield events.get()
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        items = merge_items(pages)
        yield ProgressEvent.terminal(
            f"Scraping complete. Found {len(items)} matching shows.",
            DiscoveryOutcome(items=items, errors=list(errors)),
        )

    def discover(
        self,
        filter_text: str,
        since_months: int = DEFAULT_MONTHS,
        now: Optional[datetime] = None,
        on_event: Callable[[ProgressEvent], None] | None = None,
    ) -> list[ProgrammeItem]:
        """Run a discovery to completion and return the items, newest first."""
        outcome = DiscoveryOutcome(items=[], errors=[])
        for event in self.iter_discover(filter_text, since_months, now):
            if on_event is not None:
                on_event(event)
            if event.is_terminal:
                outcome = event.outcome
        return outcome.items


__all__ = ["ScheduleDiscoveryPipeline", "generate_week_urls", "merge_items"]
