"""Filesystem helpers for matching programmes to downloaded files."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from .debug import debug_log
from .models import ProgrammeItem
from .utils import (
    collapse_whitespace,
    dedupe_preserve_order,
    sanitize_filename_component,
    substitute_filename_component,
)

MEDIA_EXTENSIONS = (".mp3", ".m4a", ".mp4", ".webm", ".ogg", ".wav", ".flac", ".aac")
# Order in which the download tool's usual output formats are probed.
CANDIDATE_EXTENSIONS = (".mp4", ".m4a", ".mp3", ".webm", ".ogg", ".wav", ".flac", ".aac")
PARTIAL_SUFFIXES = (".part", ".ytdl", ".json", ".tmp", ".temp")
PROVIDER_NAME = "BBC"

FILENAME_DATE_PATTERNS = (
    (re.compile(r"(\d{4}-\d{2}-\d{2})"), "%Y-%m-%d"),
    (re.compile(r"(\d{2}-\d{2}-\d{4})"), "%d-%m-%Y"),
    (re.compile(r"(\d{8})"), "%Y%m%d"),
)


def is_partial_file(path: Path) -> bool:
    return path.name.lower().endswith(PARTIAL_SUFFIXES)


def is_media_file(path: Path) -> bool:
    return path.suffix.lower() in MEDIA_EXTENSIONS and not is_partial_file(path)


class DownloadFileMatcher:
    """Map programmes to files already present in the downloads directory.

    Matching is exact on a bounded set of candidate names; there is no fuzzy
    matching, so short titles never match unrelated files.
    """

    def __init__(self, downloads_dir: Path) -> None:
        self._downloads_dir = Path(downloads_dir)

    @property
    def downloads_dir(self) -> Path:
        return self._downloads_dir

    def candidate_filenames(self, item: ProgrammeItem) -> Iterator[str]:
        titles = dedupe_preserve_order(
            title
            for title in (
                sanitize_filename_component(item.title),
                substitute_filename_component(item.title),
            )
            if title
        )
        stamp = f"{item.broadcast_date:%Y-%m-%d}" if item.broadcast_date else None
        for ext in CANDIDATE_EXTENSIONS:
            for title in titles:
                yield f"{title}{ext}"
                yield f"{title.replace(' ', '_')}{ext}"
                yield f"{title.replace(' ', '-')}{ext}"
                if stamp:
                    yield f"{stamp} - {title}{ext}"
                    yield f"{title} - {stamp}{ext}"
                yield f"{PROVIDER_NAME} - {title}{ext}"
                yield f"{title} - {PROVIDER_NAME}{ext}"

    def check_status(self, item: ProgrammeItem) -> tuple[bool, Optional[Path]]:
        try:
            for filename in self.candidate_filenames(item):
                candidate = self._downloads_dir / filename
                if candidate.is_file():
                    return True, candidate
        except OSError as exc:
            debug_log(f"Unable to check downloads for '{item.title}' ({exc})")
        return False, None

    def apply(self, item: ProgrammeItem) -> ProgrammeItem:
        """Record the match result on *item*."""
        downloaded, path = self.check_status(item)
        if downloaded and path is not None:
            item.mark_downloaded(path)
        else:
            item.mark_missing()
        return item


def cleanup_title_for_display(stem: str) -> str:
    cleaned = stem
    prefix = f"{PROVIDER_NAME} - "
    suffix = f" - {PROVIDER_NAME}"
    if cleaned.lower().startswith(prefix.lower()):
        cleaned = cleaned[len(prefix) :]
    if cleaned.lower().endswith(suffix.lower()):
        cleaned = cleaned[: -len(suffix)]
    cleaned = cleaned.replace("_", " ").replace("-", " ")
    return collapse_whitespace(cleaned)


def date_from_filename(path: Path) -> Optional[datetime]:
    """Return a date embedded in the file name, else the file's modification time."""
    for pattern, fmt in FILENAME_DATE_PATTERNS:
        match = pattern.search(path.stem)
        if not match:
            continue
        try:
            return datetime.strptime(match.group(1), fmt)
        except ValueError:
            continue
    try:
        return datetime.fromtimestamp(path.stat().st_mtime)
    except OSError:
        return None


def scan_existing_downloads(downloads_dir: Path) -> list[ProgrammeItem]:
    """Build items for media files already present in *downloads_dir*."""
    directory = Path(downloads_dir)
    if not directory.is_dir():
        return []
    items: list[ProgrammeItem] = []
    try:
        paths = sorted(path for path in directory.iterdir() if path.is_file())
    except OSError as exc:
        debug_log(f"Unable to scan {directory} ({exc})")
        return []
    for path in paths:
        if not is_media_file(path):
            continue
        title = cleanup_title_for_display(path.stem)
        items.append(
            ProgrammeItem(
                display_name=title,
                title=title,
                canonical_url="",
                broadcast_date=date_from_filename(path),
                is_downloaded=True,
                downloaded_file_path=path,
            )
        )
    debug_log(f"Found {len(items)} existing download(s) in {directory}")
    return items


def find_latest_download(directory: Path) -> Path | None:
    """Return the newest complete file in *directory*.

    Only reliable while a single download writes to the directory.
    """
    best_candidate: tuple[float, int, Path] | None = None
    try:
        entries = list(Path(directory).iterdir())
    except OSError:
        return None
    for path in entries:
        if not path.is_file() or is_partial_file(path):
            continue
        try:
            stat = path.stat()
        except FileNotFoundError:
            continue
        candidate_key = (stat.st_mtime, stat.st_size)
        if best_candidate is None or candidate_key > best_candidate[:2]:
            best_candidate = (stat.st_mtime, stat.st_size, path)
    if best_candidate is None:
        return None
    return best_candidate[2]


__all__ = [
    "CANDIDATE_EXTENSIONS",
    "DownloadFileMatcher",
    "MEDIA_EXTENSIONS",
    "PARTIAL_SUFFIXES",
    "cleanup_title_for_display",
    "date_from_filename",
    "find_latest_download",
    "is_media_file",
    "scan_existing_downloads",
]
