"""Data model shared by the discovery and download code."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional


@dataclass
class ProgrammeItem:
    """A programme discovered on a listing page or in the downloads folder."""

    display_name: str
    title: str
    canonical_url: str
    description: str = ""
    image_url: Optional[str] = None
    # None means "unknown", never "epoch".
    broadcast_date: Optional[datetime] = None
    is_downloaded: bool = False
    downloaded_file_path: Optional[Path] = None

    def mark_downloaded(self, path: Path | str) -> None:
        self.is_downloaded = True
        self.downloaded_file_path = Path(path)

    def mark_missing(self) -> None:
        self.is_downloaded = False
        self.downloaded_file_path = None

    def __str__(self) -> str:
        return self.display_name


@dataclass
class ProgrammeDetail:
    url: str
    title: str = ""
    subtitle: str = ""
    description: str = ""
    brand: str = ""
    duration: str = ""
    broadcast_date: str = ""
    broadcast_datetime: Optional[datetime] = None
    image_url: str = ""
    genres: list[str] = field(default_factory=list)
    structured_data: list[Any] = field(default_factory=list)
    has_error: bool = False
    error_message: str = ""

    @classmethod
    def failed(cls, url: str, message: str) -> "ProgrammeDetail":
        return cls(
            url=url,
            title="Error loading programme",
            description=f"Failed to load programme content: {message}",
            has_error=True,
            error_message=message,
        )


class DownloadState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (DownloadState.COMPLETED, DownloadState.FAILED, DownloadState.CANCELLED)


@dataclass
class DownloadSession:
    """State of one download invocation."""

    target_url: str
    output_directory: Path
    cancellation_requested: bool = False
    detected_file_path: Optional[Path] = None
    exit_status: Optional[int] = None
    state: DownloadState = DownloadState.STARTING


__all__ = ["DownloadSession", "DownloadState", "ProgrammeDetail", "ProgrammeItem"]
