"""CLI application entry point orchestration."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Callable, Dict, Sequence

import requests
from tqdm import tqdm

from .arguments import build_parser
from .colours import ERROR, SUCCESS, colourise
from .config import Settings, load_settings
from .debug import is_debug_enabled, set_debug, warn
from .detail import fetch_detail
from .downloader import DownloadBusyError, DownloadOrchestrator
from .events import DownloadOutcome
from .filesystem import DownloadFileMatcher, scan_existing_downloads
from .listings import EpisodeListingFetcher, GenreListingFetcher
from .models import DownloadState, ProgrammeItem
from .progress import DiscoveryProgressBar, DownloadProgressBar
from .schedule import ScheduleDiscoveryPipeline
from .utils import truncate_title
from .ytdlp import get_ytdlp_invocation

MISSING_TOOL_WARNING = "yt-dlp not found in application directory. Download functionality will not work."


def _print_items(items: Sequence[ProgrammeItem]) -> None:
    for index, item in enumerate(items, start=1):
        marker = "*" if item.is_downloaded else " "
        stamp = f"{item.broadcast_date:%Y-%m-%d}" if item.broadcast_date else " " * 10
        location = item.downloaded_file_path if item.is_downloaded else item.canonical_url
        print(f"{index:3d}. {marker} {stamp}  {truncate_title(item.display_name)}  {location or ''}")


def _annotate(items: Sequence[ProgrammeItem], settings: Settings) -> None:
    matcher = DownloadFileMatcher(settings.downloads_dir)
    for item in items:
        matcher.apply(item)


def _run_search(args: argparse.Namespace, settings: Settings) -> int:
    months = args.months if args.months and args.months > 0 else settings.months
    workers = args.threads if args.threads and args.threads > 0 else settings.max_workers
    pipeline = ScheduleDiscoveryPipeline(
        settings.sources,
        max_workers=workers,
        timeout=settings.timeout,
        user_agent=settings.user_agent,
    )
    progress = DiscoveryProgressBar()
    try:
        items = pipeline.discover(args.filter, since_months=months, on_event=progress.handle)
    finally:
        progress.close()

    _annotate(items, settings)
    if not items:
        print(f"No shows found matching '{args.filter}' in the past {months} months.")
    else:
        _print_items(items)
    if progress.errors:
        warn(f"{progress.errors} schedule page(s) could not be processed")
    if get_ytdlp_invocation(settings.home) is None:
        warn(MISSING_TOOL_WARNING)
    return 1 if not items and progress.errors else 0


def _run_genre(args: argparse.Namespace, settings: Settings) -> int:
    url = args.url or settings.genre_url
    fetcher = GenreListingFetcher(timeout=settings.timeout, user_agent=settings.user_agent)
    try:
        items = fetcher.fetch(url)
    except requests.RequestException as exc:
        tqdm.write(colourise(f"ERROR: unable to fetch {url} ({exc})", ERROR))
        return 1
    _annotate(items, settings)
    _print_items(items)
    return 0


def _run_episodes(args: argparse.Namespace, settings: Settings) -> int:
    fetcher = EpisodeListingFetcher(timeout=settings.timeout, user_agent=settings.user_agent)
    items = fetcher.fetch(args.show_url)
    if not items:
        print(f"No episodes found for {args.show_url}.")
        return 1
    _annotate(items, settings)
    _print_items(items)
    return 0


def _run_detail(args: argparse.Namespace, settings: Settings) -> int:
    detail = fetch_detail(args.url, timeout=settings.timeout, user_agent=settings.user_agent)
    if detail.has_error:
        tqdm.write(colourise(f"ERROR: {detail.error_message}", ERROR))
        return 1
    fields = (
        ("Title", detail.title),
        ("Subtitle", detail.subtitle),
        ("Brand", detail.brand),
        ("Broadcast", detail.broadcast_date),
        ("Duration", detail.duration),
        ("Genres", ", ".join(detail.genres)),
        ("Image", detail.image_url),
        ("URL", detail.url),
    )
    for label, value in fields:
        if value:
            print(f"{label:>10}: {value}")
    if detail.description:
        print()
        print(detail.description)
    return 0


def _run_download(args: argparse.Namespace, settings: Settings) -> int:
    invocation = get_ytdlp_invocation(settings.home)
    if invocation is None:
        warn(MISSING_TOOL_WARNING)
        return 1
    output = Path(args.output) if args.output else settings.downloads_dir
    orchestrator = DownloadOrchestrator(invocation, user_agent=settings.user_agent)
    progress = DownloadProgressBar(truncate_title(args.url, 32))

    try:
        events = orchestrator.download(args.url, output)
    except DownloadBusyError as exc:
        tqdm.write(colourise(f"ERROR: {exc}", ERROR))
        return 1

    outcome: DownloadOutcome | None = None
    try:
        for event in events:
            progress.handle(event)
            if event.is_terminal:
                outcome = event.outcome
    except KeyboardInterrupt:
        orchestrator.cancel()
        # Closing the stream kills the process and releases the session.
        events.close()
    finally:
        progress.close()

    if outcome is None or outcome.state is DownloadState.CANCELLED:
        tqdm.write("Download interrupted by user")
        return 130
    if outcome.state is DownloadState.COMPLETED:
        if outcome.file_path is not None:
            tqdm.write(colourise(f"Downloaded file: {outcome.file_path.name}", SUCCESS))
        return 0
    return 1


def _run_downloads(args: argparse.Namespace, settings: Settings) -> int:
    items = scan_existing_downloads(settings.downloads_dir)
    count = len(items)
    print(f"Found {count} existing download{'' if count == 1 else 's'} in {settings.downloads_dir}.")
    _print_items(items)
    return 0


COMMANDS: Dict[str, Callable[[argparse.Namespace, Settings], int]] = {
    "search": _run_search,
    "genre": _run_genre,
    "episodes": _run_episodes,
    "detail": _run_detail,
    "download": _run_download,
    "downloads": _run_downloads,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    set_debug(bool(getattr(args, "debug", False)))
    if is_debug_enabled():
        tqdm.write("[debug] Debug logging enabled")

    settings = load_settings(args.home)
    handler = COMMANDS[args.command]
    try:
        return handler(args, settings)
    except KeyboardInterrupt:
        tqdm.write("Interrupted by user")
        return 130


__all__ = ["main"]
