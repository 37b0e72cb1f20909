"""Helpers for locating and invoking yt-dlp."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .debug import debug_log
from .http import USER_AGENT
from .utils import format_command

YTDLP_ENV = "SOUNDZ_YTDLP"
OUTPUT_TEMPLATE = "%(title)s.%(ext)s"


def _binary_names() -> Tuple[str, ...]:
    if os.name == "nt":
        return ("yt-dlp.exe",)
    return ("yt-dlp", "yt-dlp.exe")


def resolve_ytdlp_path(home: Path) -> Optional[Path]:
    """Return the download tool, or None when it is not installed.

    Looks at ``SOUNDZ_YTDLP``, then next to the application in *home*, then
    on ``PATH``.
    """
    override = os.environ.get(YTDLP_ENV)
    if override:
        candidate = Path(override).expanduser()
        if candidate.is_file():
            debug_log(f"Using yt-dlp from {YTDLP_ENV}: {candidate}")
            return candidate
        debug_log(f"{YTDLP_ENV} points at missing file {candidate}")
    for name in _binary_names():
        candidate = Path(home) / name
        if candidate.is_file():
            debug_log(f"Found yt-dlp in application directory: {candidate}")
            return candidate
    for name in ("yt-dlp", "yt_dlp"):
        resolved = shutil.which(name)
        if resolved:
            debug_log(f"Found yt-dlp on PATH: {resolved}")
            return Path(resolved)
    debug_log("yt-dlp not found")
    return None


def get_ytdlp_invocation(home: Path) -> Optional[Tuple[str, ...]]:
    path = resolve_ytdlp_path(home)
    if path is None:
        return None
    invocation = (str(path),)
    debug_log(f"yt-dlp invocation: {format_command(invocation)}")
    return invocation


def build_download_command(
    invocation: Sequence[str],
    url: str,
    user_agent: str = USER_AGENT,
) -> list[str]:
    return [
        *invocation,
        "--format",
        "bestaudio",
        "--output",
        OUTPUT_TEMPLATE,
        "--user-agent",
        user_agent,
        "--newline",
        url,
    ]


__all__ = ["build_download_command", "get_ytdlp_invocation", "resolve_ytdlp_path"]
