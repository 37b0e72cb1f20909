"""Progress bars for discovery runs and downloads."""

from __future__ import annotations

import threading

from tqdm import tqdm

from .colours import ACTIVE, ERROR, EVENT_STYLES, SUCCESS, WARNING, colourise
from .events import EventKind, ProgressEvent
from .models import DownloadState

DEFAULT_SPEED = "--.- MiB/s"
DEFAULT_ETA = "--:--"
ETA_FIELD_WIDTH = 8
SPEED_FIELD_WIDTH = 12


def _format_meta(speed: str | None, eta: str | None) -> str:
    eta_val = (eta or DEFAULT_ETA)[:ETA_FIELD_WIDTH].ljust(ETA_FIELD_WIDTH)
    speed_val = (speed or DEFAULT_SPEED)[:SPEED_FIELD_WIDTH].rjust(SPEED_FIELD_WIDTH)
    return f"(ETA {eta_val}, {speed_val})"


class DiscoveryProgressBar:
    """Page counter for a schedule discovery run."""

    def __init__(self, desc: str = "schedule weeks") -> None:
        self._desc = desc
        self._bar: tqdm | None = None
        self.errors = 0

    def handle(self, event: ProgressEvent) -> None:
        if event.total and self._bar is None:
            self._bar = tqdm(
                total=event.total,
                desc=self._desc,
                unit="week",
                leave=False,
                dynamic_ncols=True,
                colour=ACTIVE.tqdm_name,
            )
        if event.kind is EventKind.ERROR:
            self.errors += 1
            tqdm.write(colourise(event.message, ERROR))
        if self._bar is not None and event.processed is not None:
            self._bar.n = event.processed
            self._bar.refresh()
        if event.is_terminal:
            self.close()
            tqdm.write(colourise(event.message, SUCCESS))

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


class DownloadProgressBar:
    """Percent bar for a single download session.

    Non-progress lines are written above the bar with colour coding.
    """

    def __init__(self, label: str) -> None:
        self._lock = threading.Lock()
        self._label = label
        self._bar: tqdm | None = None

    def _ensure_bar(self) -> tqdm:
        if self._bar is None:
            self._bar = tqdm(
                total=100.0,
                desc=self._label,
                leave=True,
                dynamic_ncols=True,
                colour=ACTIVE.tqdm_name,
                smoothing=0.0,
                bar_format="{desc} {percentage:5.1f}%|{bar}| {postfix}",
            )
        return self._bar

    def handle(self, event: ProgressEvent) -> None:
        with self._lock:
            if event.kind is EventKind.PROGRESS and event.percent is not None:
                bar = self._ensure_bar()
                clamped = max(0.0, min(100.0, event.percent))
                if clamped < bar.n:
                    # yt-dlp restarts at 0% for each fragment or format.
                    bar.reset(total=100.0)
                bar.update(clamped - bar.n)
                bar.set_postfix_str(_format_meta(event.speed, event.eta), refresh=True)
                return
            if event.is_terminal:
                self._finish(event)
                return
            tqdm.write(colourise(event.message, EVENT_STYLES.get(event.kind)))

    def _finish(self, event: ProgressEvent) -> None:
        outcome = event.outcome
        state = getattr(outcome, "state", None)
        if self._bar is not None:
            if state is DownloadState.COMPLETED:
                self._bar.update(self._bar.total - self._bar.n)
                self._bar.set_postfix_str("(completed)", refresh=True)
            self._bar.close()
            self._bar = None
        style = SUCCESS if state is DownloadState.COMPLETED else WARNING
        if state is DownloadState.FAILED:
            style = ERROR
        tqdm.write(colourise(event.message, style))

    def close(self) -> None:
        with self._lock:
            if self._bar is not None:
                self._bar.close()
                self._bar = None


__all__ = ["DiscoveryProgressBar", "DownloadProgressBar"]
