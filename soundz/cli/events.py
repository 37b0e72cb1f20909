"""Progress events produced by discovery runs and downloads."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .models import DownloadState, ProgrammeItem

PROGRESS_LINE = re.compile(
    r"^\[download\]\s+(?P<percent>\d+(?:\.\d+)?)%"
    r"(?:\s+of\s+~?\s*(?P<size>\S+))?"
    r"(?:\s+in\s+\S+)?"
    r"(?:\s+at\s+(?P<speed>\S+(?:\s+\S+/s)?))?"
    r"(?:\s+ETA\s+(?P<eta>\S+))?",
    re.IGNORECASE,
)
DESTINATION_LINE = re.compile(r"\[download\]\s+Destination:\s*(?P<path>.+?)\s*$")
ALREADY_DOWNLOADED_LINE = re.compile(r"\[download\]\s+(?P<path>.+?)\s+has already been downloaded")


class EventKind(str, Enum):
    INFO = "info"
    PROGRESS = "progress"
    WARNING = "warning"
    ERROR = "error"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class DownloadOutcome:
    state: DownloadState
    file_path: Optional[Path] = None
    exit_code: Optional[int] = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state is DownloadState.COMPLETED


@dataclass(frozen=True)
class DiscoveryOutcome:
    items: list[ProgrammeItem]
    errors: list[str]


@dataclass(frozen=True)
class ProgressEvent:
    kind: EventKind
    message: str
    percent: Optional[float] = None
    speed: Optional[str] = None
    eta: Optional[str] = None
    processed: Optional[int] = None
    total: Optional[int] = None
    outcome: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.kind is EventKind.TERMINAL

    @classmethod
    def info(cls, message: str) -> "ProgressEvent":
        return cls(EventKind.INFO, message)

    @classmethod
    def warning(cls, message: str) -> "ProgressEvent":
        return cls(EventKind.WARNING, message)

    @classmethod
    def error(cls, message: str) -> "ProgressEvent":
        return cls(EventKind.ERROR, message)

    @classmethod
    def terminal(cls, message: str, outcome: Any) -> "ProgressEvent":
        return cls(EventKind.TERMINAL, message, outcome=outcome)


def classify_output_line(line: str, stream: str = "stdout") -> Optional[ProgressEvent]:
    """Turn one line of download tool output into a progress event.

    Returns None for blank lines. Anything on stderr that is not a warning is
    reported as an error.
    """
    stripped = line.replace("\r", "").strip()
    if not stripped:
        return None

    upper = stripped.upper()
    if upper.startswith("WARNING:"):
        return ProgressEvent.warning(stripped)
    if upper.startswith("ERROR:"):
        return ProgressEvent.error(stripped)
    if stream == "stderr":
        return ProgressEvent.error(f"ERROR: {stripped}")

    match = PROGRESS_LINE.match(stripped)
    if match:
        return ProgressEvent(
            EventKind.PROGRESS,
            stripped,
            percent=float(match.group("percent")),
            speed=match.group("speed"),
            eta=match.group("eta"),
        )
    return ProgressEvent.info(stripped)


def detect_destination(line: str) -> Optional[str]:
    """Return the file name announced by a destination or already-downloaded line."""
    match = DESTINATION_LINE.search(line)
    if match:
        return match.group("path").strip() or None
    match = ALREADY_DOWNLOADED_LINE.search(line)
    if match:
        return match.group("path").strip() or None
    return None


__all__ = [
    "DiscoveryOutcome",
    "DownloadOutcome",
    "EventKind",
    "ProgressEvent",
    "classify_output_line",
    "detect_destination",
]
