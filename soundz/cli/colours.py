"""Colour handling for terminal output."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Dict, TextIO

from .events import EventKind

RESET = "\033[0m"


@dataclass(frozen=True)
class ColourStyle:
    tqdm_name: str
    ansi_code: str


# Muted emerald – for active/highlight state
ACTIVE = ColourStyle("#1a4d41", "\033[38;2;26;77;65m")
# Soft olive – for success/ok state
SUCCESS = ColourStyle("#657253", "\033[38;2;101;114;83m")
# Dusty teal – progress lines
PROGRESS = ColourStyle("#4e7f7b", "\033[38;2;78;127;123m")
# Warm mid-neutral – for secondary text
NEUTRAL = ColourStyle("#606060", "\033[38;2;96;96;96m")
# Cognac amber – for warnings or emphasis
WARNING = ColourStyle("#b37537", "\033[38;2;179;117;55m")
# Muted burgundy – for errors or critical/high state
ERROR = ColourStyle("#7a2f3b", "\033[38;2;122;47;59m")

EVENT_STYLES: Dict[EventKind, ColourStyle] = {
    EventKind.INFO: NEUTRAL,
    EventKind.PROGRESS: PROGRESS,
    EventKind.WARNING: WARNING,
    EventKind.ERROR: ERROR,
    EventKind.TERMINAL: SUCCESS,
}


def colourise(text: str, style: ColourStyle | None, stream: TextIO | None = None) -> str:
    """Wrap *text* in the style's ANSI code when writing to a terminal."""
    target = stream if stream is not None else sys.stdout
    if style is None or not style.ansi_code or not target.isatty():
        return text
    return f"{style.ansi_code}{text}{RESET}"


__all__ = [
    "ACTIVE",
    "ColourStyle",
    "ERROR",
    "EVENT_STYLES",
    "RESET",
    "SUCCESS",
    "WARNING",
    "colourise",
]
