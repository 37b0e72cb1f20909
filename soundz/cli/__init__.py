"""CLI package for the soundz application."""

from __future__ import annotations

import requests

from .app import main
from .arguments import build_parser
from .colours import ColourStyle, EVENT_STYLES, RESET, colourise
from .config import (
    DEFAULT_GENRE_URL,
    DEFAULT_SOURCES,
    ScheduleSource,
    Settings,
    load_settings,
    load_sources,
)
from .debug import debug_log, is_debug_enabled, set_debug, warn
from .detail import fetch_detail, parse_detail
from .downloader import POLL_INTERVAL, DownloadBusyError, DownloadOrchestrator
from .events import (
    DiscoveryOutcome,
    DownloadOutcome,
    EventKind,
    ProgressEvent,
    classify_output_line,
    detect_destination,
)
from .extract import (
    extract_best_image,
    extract_first_match,
    parse_broadcast_date,
    resolve_image_url,
)
from .filesystem import (
    MEDIA_EXTENSIONS,
    DownloadFileMatcher,
    find_latest_download,
    scan_existing_downloads,
)
from .http import USER_AGENT, fetch_document, fetch_html
from .listings import (
    EpisodeListingFetcher,
    GenreListingFetcher,
    ListingFetcher,
    ScheduleListingFetcher,
    week_start_from_url,
)
from .models import DownloadSession, DownloadState, ProgrammeDetail, ProgrammeItem
from .progress import DiscoveryProgressBar, DownloadProgressBar
from .schedule import ScheduleDiscoveryPipeline, generate_week_urls, merge_items
from .urls import CANONICAL_HOST, absolute_url, normalise_url
from .utils import (
    dedupe_preserve_order,
    format_command,
    next_delimiter,
    sanitize_filename_component,
    substitute_filename_component,
    truncate_title,
)
from .ytdlp import build_download_command, get_ytdlp_invocation, resolve_ytdlp_path

# re-export requests so tests and external callers can patch/inspect it
requests = requests

__all__ = [
    "CANONICAL_HOST",
    "ColourStyle",
    "DEFAULT_GENRE_URL",
    "DEFAULT_SOURCES",
    "DiscoveryOutcome",
    "DiscoveryProgressBar",
    "DownloadBusyError",
    "DownloadFileMatcher",
    "DownloadOrchestrator",
    "DownloadOutcome",
    "DownloadProgressBar",
    "DownloadSession",
    "DownloadState",
    "EVENT_STYLES",
    "EpisodeListingFetcher",
    "EventKind",
    "GenreListingFetcher",
    "ListingFetcher",
    "MEDIA_EXTENSIONS",
    "POLL_INTERVAL",
    "ProgrammeDetail",
    "ProgrammeItem",
    "ProgressEvent",
    "RESET",
    "ScheduleDiscoveryPipeline",
    "ScheduleListingFetcher",
    "ScheduleSource",
    "Settings",
    "USER_AGENT",
    "absolute_url",
    "build_download_command",
    "build_parser",
    "classify_output_line",
    "colourise",
    "debug_log",
    "dedupe_preserve_order",
    "detect_destination",
    "extract_best_image",
    "extract_first_match",
    "fetch_detail",
    "fetch_document",
    "fetch_html",
    "find_latest_download",
    "format_command",
    "generate_week_urls",
    "get_ytdlp_invocation",
    "is_debug_enabled",
    "load_settings",
    "load_sources",
    "main",
    "merge_items",
    "next_delimiter",
    "normalise_url",
    "parse_broadcast_date",
    "parse_detail",
    "requests",
    "resolve_image_url",
    "resolve_ytdlp_path",
    "sanitize_filename_component",
    "scan_existing_downloads",
    "set_debug",
    "substitute_filename_component",
    "truncate_title",
    "warn",
    "week_start_from_url",
]
