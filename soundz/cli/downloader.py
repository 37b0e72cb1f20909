"""Supervised execution of yt-dlp downloads."""

from __future__ import annotations

import codecs
import subprocess
import threading
from pathlib import Path
from queue import Empty, Queue
from typing import BinaryIO, Callable, Iterator, Optional, Sequence

from .debug import debug_log
from .events import DownloadOutcome, ProgressEvent, classify_output_line, detect_destination
from .filesystem import find_latest_download
from .http import USER_AGENT
from .models import DownloadSession, DownloadState, ProgrammeItem
from .utils import format_command, next_delimiter
from .ytdlp import build_download_command

POLL_INTERVAL = 0.1
READ_CHUNK = 1024


class DownloadBusyError(RuntimeError):
    """Raised when a download is requested while another one is active."""


def _drain(name: str, pipe: BinaryIO, queue: Queue[tuple[str, bytes]]) -> None:
    try:
        while True:
            chunk = pipe.read(READ_CHUNK)
            if not chunk:
                break
            queue.put((name, chunk))
    except (OSError, ValueError):
        # The pipe is closed underneath us when the process is killed.
        pass
    finally:
        queue.put((name, b""))


class _LineSplitter:
    """Incremental UTF-8 decoding and line splitting for one output stream."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, raw: bytes) -> list[str]:
        self._buffer += self._decoder.decode(raw)
        return self._split()

    def flush(self) -> list[str]:
        self._buffer += self._decoder.decode(b"", final=True)
        lines = self._split()
        if self._buffer:
            lines.append(self._buffer)
            self._buffer = ""
        return lines

    def _split(self) -> list[str]:
        lines: list[str] = []
        while True:
            delimiter_index = next_delimiter(self._buffer)
            if delimiter_index is None:
                break
            delimiter_char = self._buffer[delimiter_index]
            line = self._buffer[:delimiter_index]
            remainder = self._buffer[delimiter_index + 1 :]
            if delimiter_char == "\r" and remainder.startswith("\n"):
                remainder = remainder[1:]
            self._buffer = remainder
            lines.append(line)
        return lines


class DownloadOrchestrator:
    """Run one yt-dlp download at a time and stream its progress.

    States: IDLE -> STARTING -> RUNNING -> COMPLETED | FAILED | CANCELLED -> IDLE.
    A second download requested while one is active is rejected with
    :class:`DownloadBusyError`; it is never queued.
    """

    def __init__(
        self,
        invocation: Optional[Sequence[str]],
        *,
        user_agent: str = USER_AGENT,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self._invocation = tuple(invocation) if invocation else None
        self._user_agent = user_agent
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._session: DownloadSession | None = None
        self._process: subprocess.Popen | None = None
        self._started = False

    @property
    def available(self) -> bool:
        return self._invocation is not None

    @property
    def session(self) -> DownloadSession | None:
        return self._session

    @property
    def state(self) -> DownloadState:
        session = self._session
        return session.state if session is not None else DownloadState.IDLE

    @property
    def is_downloading(self) -> bool:
        return self._session is not None

    def download(
        self,
        url: str,
        output_directory: Path | str,
        item: ProgrammeItem | None = None,
    ) -> Iterator[ProgressEvent]:
        """Claim the session slot and return the download's event stream.

        The slot is claimed immediately; the subprocess starts when the
        stream is first advanced. The stream is finite, cannot be restarted
        and ends with exactly one terminal event carrying a
        :class:`~soundz.cli.events.DownloadOutcome`. A completed download
        marks *item* as downloaded.
        """
        session = DownloadSession(target_url=url, output_directory=Path(output_directory))
        with self._lock:
            if self._session is not None:
                raise DownloadBusyError(
                    f"a download of {self._session.target_url} is already {self._session.state.value}"
                )
            self._session = session
            self._started = False
        return self._run(session, item)

    def run(
        self,
        url: str,
        output_directory: Path | str,
        on_event: Callable[[ProgressEvent], None] | None = None,
        item: ProgrammeItem | None = None,
    ) -> DownloadOutcome:
        """Run a download to completion, forwarding every event to *on_event*."""
        outcome = DownloadOutcome(DownloadState.FAILED, message="no terminal event")
        for event in self.download(url, output_directory, item):
            if on_event is not None:
                on_event(event)
            if event.is_terminal:
                outcome = event.outcome
        return outcome

    def cancel(self) -> bool:
        """Request cancellation of the active download.

        Returns False when nothing is active. A session whose stream was never
        advanced is released straight away.
        """
        with self._lock:
            session = self._session
            if session is None:
                return False
            session.cancellation_requested = True
            process = self._process
            if not self._started:
                session.state = DownloadState.CANCELLED
                self._session = None
                debug_log(f"{session.target_url}: cancelled before start")
                return True
        if process is not None:
            self._kill(process)
        debug_log(f"{session.target_url}: cancellation requested")
        return True

    # Internal helpers -------------------------------------------------

    def _kill(self, process: subprocess.Popen) -> None:
        if process.poll() is not None:
            return
        try:
            process.kill()
        except OSError as exc:
            debug_log(f"Unable to kill download process ({exc})")

    def _wait(self, process: subprocess.Popen, session: DownloadSession) -> int:
        """Wait for *process*, honouring cancellation on every poll interval."""
        while True:
            if session.cancellation_requested:
                self._kill(process)
                return process.wait()
            try:
                return process.wait(timeout=self._poll_interval)
            except subprocess.TimeoutExpired:
                continue

    def _finish(
        self,
        session: DownloadSession,
        state: DownloadState,
        message: str,
    ) -> ProgressEvent:
        session.state = state
        outcome = DownloadOutcome(
            state=state,
            file_path=session.detected_file_path,
            exit_code=session.exit_status,
            message=message,
        )
        return ProgressEvent.terminal(message, outcome)

    def _run(self, session: DownloadSession, item: ProgrammeItem | None) -> Iterator[ProgressEvent]:
        with self._lock:
            released = session.cancellation_requested or self._session is not session
            if not released:
                self._started = True
        if released:
            yield self._finish(session, DownloadState.CANCELLED, "Download cancelled by user")
            return

        process: subprocess.Popen | None = None
        readers: list[threading.Thread] = []
        try:
            if self._invocation is None:
                yield ProgressEvent.error("ERROR: yt-dlp not found in application directory")
                yield self._finish(session, DownloadState.FAILED, "Download tool unavailable")
                return

            try:
                session.output_directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                yield ProgressEvent.error(f"ERROR: {exc}")
                yield self._finish(session, DownloadState.FAILED, f"Download failed: {exc}")
                return

            command = build_download_command(self._invocation, session.target_url, self._user_agent)
            yield ProgressEvent.info(f"Starting download: {session.target_url}")
            yield ProgressEvent.info(f"Command: {format_command(command)}")
            debug_log(f"{session.target_url}: launching yt-dlp in {session.output_directory}")

            try:
                process = subprocess.Popen(
                    command,
                    cwd=str(session.output_directory),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=False,
                    bufsize=0,
                )
            except FileNotFoundError:
                session.exit_status = 127
                yield ProgressEvent.error("ERROR: yt-dlp command not found")
                yield self._finish(session, DownloadState.FAILED, "Download failed with exit code: 127")
                return
            except OSError as exc:
                session.exit_status = 1
                yield ProgressEvent.error(f"ERROR: failed to start yt-dlp ({exc})")
                yield self._finish(session, DownloadState.FAILED, f"Download failed: {exc}")
                return

            with self._lock:
                self._process = process
                session.state = DownloadState.RUNNING
                cancelled_early = session.cancellation_requested
            if cancelled_early:
                self._kill(process)

            output_queue: Queue[tuple[str, bytes]] = Queue()
            for name, pipe in (("stdout", process.stdout), ("stderr", process.stderr)):
                if pipe is None:
                    continue
                reader = threading.Thread(
                    target=_drain, args=(name, pipe, output_queue), daemon=True
                )
                reader.start()
                readers.append(reader)

            splitters = {name: _LineSplitter() for name in ("stdout", "stderr")}
            open_streams = len(readers)

            while open_streams:
                if session.cancellation_requested:
                    self._kill(process)
                    break
                try:
                    name, raw = output_queue.get(timeout=self._poll_interval)
                except Empty:
                    continue
                if not raw:
                    open_streams -= 1
                    lines = splitters[name].flush()
                else:
                    lines = splitters[name].feed(raw)
                for line in lines:
                    event = self._handle_line(session, name, line)
                    if event is not None:
                        yield event

            return_code = self._wait(process, session)
            session.exit_status = return_code

            if session.cancellation_requested:
                yield ProgressEvent.warning("Download cancelled by user")
                yield self._finish(session, DownloadState.CANCELLED, "Download cancelled by user")
                return

            debug_log(f"{session.target_url}: yt-dlp exited with code {return_code}")

            if return_code != 0:
                message = f"Download failed with exit code: {return_code}"
                yield ProgressEvent.error(message)
                yield self._finish(session, DownloadState.FAILED, message)
                return

            if session.detected_file_path is None:
                session.detected_file_path = find_latest_download(session.output_directory)
                debug_log(f"{session.target_url}: newest file fallback -> {session.detected_file_path}")
            if item is not None and session.detected_file_path is not None:
                item.mark_downloaded(session.detected_file_path)
            yield ProgressEvent.info("Download completed successfully!")
            yield self._finish(session, DownloadState.COMPLETED, "Download completed successfully!")
        finally:
            if process is not None:
                self._kill(process)
                try:
                    process.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    debug_log(f"{session.target_url}: process did not exit after kill")
            for reader in readers:
                reader.join(timeout=1)
            if process is not None:
                for pipe in (process.stdout, process.stderr):
                    if pipe is None:
                        continue
                    try:
                        pipe.close()
                    except OSError:
                        pass
            if not session.state.is_terminal:
                # The consumer abandoned the stream before it finished.
                session.state = DownloadState.CANCELLED
            with self._lock:
                if self._session is session:
                    self._session = None
                self._process = None
                self._started = False

    def _handle_line(self, session: DownloadSession, stream: str, line: str) -> Optional[ProgressEvent]:
        event = classify_output_line(line, stream)
        if event is None:
            return None
        if stream == "stdout":
            destination = detect_destination(event.message)
            if destination:
                path = Path(destination)
                if not path.is_absolute():
                    path = session.output_directory / path
                session.detected_file_path = path
                debug_log(f"{session.target_url}: detected output file {path}")
        return event


__all__ = ["DownloadBusyError", "DownloadOrchestrator", "POLL_INTERVAL"]
