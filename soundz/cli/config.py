"""Application settings and schedule source configuration."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .debug import debug_log
from .http import DEFAULT_TIMEOUT, USER_AGENT

CONFIG_FILENAME = "soundz.json"
DOWNLOADS_DIRNAME = "Downloads"
HOME_ENV = "SOUNDZ_HOME"

DEFAULT_GENRE_URL = "https://www.bbc.co.uk/programmes/genres/music/danceandelectronica/player"
DEFAULT_MAX_WORKERS = 4
DEFAULT_MONTHS = 2


@dataclass(frozen=True)
class ScheduleSource:
    name: str
    base_url: str
    description: str = ""


DEFAULT_SOURCES: tuple[ScheduleSource, ...] = (
    ScheduleSource(
        "BBC Radio 1",
        "https://www.bbc.co.uk/schedules/p00fzl86",
        "BBC Radio 1 - Default fallback",
    ),
)


@dataclass
class Settings:
    home: Path
    sources: list[ScheduleSource] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    genre_url: str = DEFAULT_GENRE_URL
    max_workers: int = DEFAULT_MAX_WORKERS
    months: int = DEFAULT_MONTHS
    timeout: int = DEFAULT_TIMEOUT
    user_agent: str = USER_AGENT

    @property
    def downloads_dir(self) -> Path:
        return self.home / DOWNLOADS_DIRNAME


def _parse_source(entry: Any) -> ScheduleSource:
    if not isinstance(entry, dict):
        raise ValueError(f"schedule source is not an object: {entry!r}")
    name = str(entry.get("name") or "").strip()
    url = str(entry.get("url") or "").strip().rstrip("/")
    if not url:
        raise ValueError(f"schedule source {name or '<unnamed>'} has no url")
    return ScheduleSource(name or url, url, str(entry.get("description") or ""))


def _read_config(path: Path) -> dict:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("configuration payload is not an object")
    return payload


def load_sources(path: Path) -> list[ScheduleSource]:
    """Load the ordered schedule sources, falling back to the default source."""
    try:
        payload = _read_config(path)
        entries = payload.get("schedule_sources")
        if not isinstance(entries, list):
            raise ValueError("'schedule_sources' is not a list")
        sources = [_parse_source(entry) for entry in entries]
        if not sources:
            raise ValueError("no schedule sources configured")
    except (OSError, ValueError) as exc:
        debug_log(f"Unable to load schedule sources from {path} ({exc}); using default")
        return list(DEFAULT_SOURCES)
    debug_log(f"Loaded {len(sources)} schedule source(s) from {path}")
    return sources


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def resolve_home(home: str | os.PathLike | None = None) -> Path:
    if home:
        return Path(home).expanduser().resolve()
    override = os.environ.get(HOME_ENV)
    if override:
        debug_log(f"Using application home from {HOME_ENV}: {override}")
        return Path(override).expanduser().resolve()
    return Path.cwd()


def load_settings(home: str | os.PathLike | None = None) -> Settings:
    """Build the settings for *home*; configuration problems never abort startup."""
    base = resolve_home(home)
    path = base / CONFIG_FILENAME
    settings = Settings(home=base, sources=load_sources(path))
    try:
        payload = _read_config(path)
    except (OSError, ValueError):
        return settings
    genre_url = payload.get("genre_url")
    if isinstance(genre_url, str) and genre_url.strip():
        settings.genre_url = genre_url.strip()
    settings.max_workers = _positive_int(payload.get("max_workers"), settings.max_workers)
    settings.months = _positive_int(payload.get("months"), settings.months)
    settings.timeout = _positive_int(payload.get("timeout"), settings.timeout)
    return settings


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_GENRE_URL",
    "DEFAULT_MAX_WORKERS",
    "DEFAULT_MONTHS",
    "DEFAULT_SOURCES",
    "ScheduleSource",
    "Settings",
    "load_settings",
    "load_sources",
    "resolve_home",
]
