"""Debug and warning output that cooperates with tqdm progress bars."""

from __future__ import annotations

from typing import Final

from tqdm import tqdm

DEBUG_PREFIX: Final[str] = "[debug] "
WARNING_PREFIX: Final[str] = "WARNING: "

_debug_enabled = False


def set_debug(enabled: bool) -> None:
    """Enable or disable verbose debug logging."""
    global _debug_enabled
    _debug_enabled = bool(enabled)


def is_debug_enabled() -> bool:
    return _debug_enabled


def debug_log(message: str) -> None:
    """Emit a debug log line if debugging is enabled."""
    if not _debug_enabled:
        return
    try:
        tqdm.write(f"{DEBUG_PREFIX}{message}")
    except Exception:
        # tqdm can raise exceptions while finalising progress bars; ignore them quietly.
        pass


def warn(message: str) -> None:
    """Emit a warning line regardless of the debug setting."""
    tqdm.write(f"{WARNING_PREFIX}{message}")


__all__ = ["debug_log", "is_debug_enabled", "set_debug", "warn"]
