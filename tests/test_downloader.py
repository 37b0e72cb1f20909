import sys
import textwrap
import time

import pytest

from soundz import cli
from soundz.cli import downloader
from soundz.cli.events import EventKind


URL = "https://www.bbc.co.uk/programmes/m0025aaa"

SUCCESS_SCRIPT = """
import sys
print("[bbc] m0025aaa: Downloading playlist metadata", flush=True)
print("[download] Destination: show.mp3", flush=True)
sys.stdout.write("[download]  25.0% of 1.00MiB\\r[download]  50.0% of 1.00MiB at 1.00MiB/s ETA 00:01\\n")
sys.stdout.flush()
print("[download] 100% of 1.00MiB in 00:00:01 at 1.00MiB/s", flush=True)
sys.stderr.write("WARNING: slow network\\n")
sys.stderr.flush()
with open("show.mp3", "wb") as handle:
    handle.write(b"audio")
"""

FAILING_SCRIPT = """
import sys
sys.stderr.write("ERROR: Unsupported URL\\n")
sys.stderr.write("Traceback noise\\n")
sys.stderr.flush()
sys.exit(2)
"""

SLEEPING_SCRIPT = """
import time
print("[download]   5.0% of 10.00MiB at 1.00MiB/s ETA 00:10", flush=True)
time.sleep(30)
"""

SILENT_SCRIPT = """
with open("episode.m4a", "wb") as handle:
    handle.write(b"audio")
with open("episode.info.json", "w") as handle:
    handle.write("{}")
"""


def _fake_tool(tmp_path, body):
    script = tmp_path / "fake_ytdlp.py"
    script.write_text(textwrap.dedent(body), encoding="utf-8")
    return (sys.executable, str(script))


def test_successful_download_reports_progress_and_destination(tmp_path):
    out = tmp_path / "out"
    orchestrator = cli.DownloadOrchestrator(_fake_tool(tmp_path, SUCCESS_SCRIPT))
    events = []

    outcome = orchestrator.run(URL, out, on_event=events.append)

    assert outcome.state is cli.DownloadState.COMPLETED
    assert outcome.succeeded
    assert outcome.exit_code == 0
    assert outcome.file_path == out / "show.mp3"
    assert events[0].message == f"Starting download: {URL}"
    assert events[1].message.startswith("Command: ")
    percents = [event.percent for event in events if event.kind is EventKind.PROGRESS]
    assert percents == [25.0, 50.0, 100.0]
    assert any(
        event.kind is EventKind.WARNING and event.message == "WARNING: slow network" for event in events
    )
    assert events[-1].is_terminal
    assert events[-1].message == "Download completed successfully!"
    assert sum(1 for event in events if event.is_terminal) == 1
    assert orchestrator.state is cli.DownloadState.IDLE
    assert not orchestrator.is_downloading


def test_failed_download_reports_exit_code_and_stderr(tmp_path):
    orchestrator = cli.DownloadOrchestrator(_fake_tool(tmp_path, FAILING_SCRIPT))
    events = []

    outcome = orchestrator.run(URL, tmp_path / "out", on_event=events.append)

    assert outcome.state is cli.DownloadState.FAILED
    assert outcome.exit_code == 2
    errors = [event.message for event in events if event.kind is EventKind.ERROR]
    assert errors == [
        "ERROR: Unsupported URL",
        "ERROR: Traceback noise",
        "Download failed with exit code: 2",
    ]
    assert not orchestrator.is_downloading


def test_cancel_kills_running_download(tmp_path):
    orchestrator = cli.DownloadOrchestrator(_fake_tool(tmp_path, SLEEPING_SCRIPT))
    started = time.monotonic()
    events = []

    for event in orchestrator.download(URL, tmp_path / "out"):
        events.append(event)
        if event.kind is EventKind.PROGRESS:
            assert orchestrator.state is cli.DownloadState.RUNNING
            assert orchestrator.cancel()

    assert time.monotonic() - started < 10
    assert events[-1].outcome.state is cli.DownloadState.CANCELLED
    assert any(event.message == "Download cancelled by user" for event in events[:-1])
    assert not orchestrator.is_downloading


def test_second_download_is_rejected_while_one_is_active(tmp_path):
    orchestrator = cli.DownloadOrchestrator(_fake_tool(tmp_path, SLEEPING_SCRIPT))
    events = orchestrator.download(URL, tmp_path / "out")

    with pytest.raises(cli.DownloadBusyError):
        orchestrator.download("https://www.bbc.co.uk/programmes/other", tmp_path / "other")

    for event in events:
        if event.kind is EventKind.PROGRESS:
            with pytest.raises(cli.DownloadBusyError):
                orchestrator.download("https://www.bbc.co.uk/programmes/other", tmp_path / "other")
            assert orchestrator.session.target_url == URL
            assert orchestrator.session.state is cli.DownloadState.RUNNING
            orchestrator.cancel()

    assert orchestrator.session is None
    assert not (tmp_path / "other").exists()


def test_cancel_before_stream_starts_releases_slot(tmp_path):
    orchestrator = cli.DownloadOrchestrator(_fake_tool(tmp_path, SLEEPING_SCRIPT))
    events = orchestrator.download(URL, tmp_path / "out")

    assert orchestrator.cancel()
    assert not orchestrator.is_downloading
    assert not orchestrator.cancel()

    (terminal,) = list(events)
    assert terminal.outcome.state is cli.DownloadState.CANCELLED
    assert not (tmp_path / "out").exists()


def test_abandoned_stream_releases_slot(tmp_path):
    orchestrator = cli.DownloadOrchestrator(_fake_tool(tmp_path, SLEEPING_SCRIPT))
    events = orchestrator.download(URL, tmp_path / "out")
    session = orchestrator.session

    next(events)
    events.close()

    assert not orchestrator.is_downloading
    assert session.state is cli.DownloadState.CANCELLED


def test_newest_file_fallback_when_destination_not_announced(tmp_path):
    out = tmp_path / "out"
    orchestrator = cli.DownloadOrchestrator(_fake_tool(tmp_path, SILENT_SCRIPT))

    outcome = orchestrator.run(URL, out)

    assert outcome.state is cli.DownloadState.COMPLETED
    assert outcome.file_path is not None
    assert outcome.file_path.name == "episode.m4a"


def test_missing_tool_fails_without_spawning(tmp_path):
    orchestrator = cli.DownloadOrchestrator(None)
    events = []

    outcome = orchestrator.run(URL, tmp_path / "out", on_event=events.append)

    assert not orchestrator.available
    assert outcome.state is cli.DownloadState.FAILED
    assert events[0].kind is EventKind.ERROR
    assert not (tmp_path / "out").exists()


def test_unlaunchable_tool_reports_exit_code(tmp_path):
    orchestrator = cli.DownloadOrchestrator((str(tmp_path / "no-such-yt-dlp"),))

    outcome = orchestrator.run(URL, tmp_path / "out")

    assert outcome.state is cli.DownloadState.FAILED
    assert outcome.exit_code == 127
    assert not orchestrator.is_downloading


def test_line_splitter_handles_split_multibyte_and_crlf():
    splitter = downloader._LineSplitter()
    data = "café\r\nnext".encode("utf-8")

    assert splitter.feed(data[:4]) == []
    assert splitter.feed(data[4:]) == ["café"]
    assert splitter.flush() == ["next"]


def test_completed_download_marks_programme_item(tmp_path):
    out = tmp_path / "out"
    item = cli.ProgrammeItem(display_name="Show", title="Show", canonical_url=URL)
    orchestrator = cli.DownloadOrchestrator(_fake_tool(tmp_path, SUCCESS_SCRIPT))

    orchestrator.run(URL, out, item=item)

    assert item.is_downloaded
    assert item.downloaded_file_path == out / "show.mp3"


def test_failed_download_leaves_programme_item_untouched(tmp_path):
    item = cli.ProgrammeItem(display_name="Show", title="Show", canonical_url=URL)
    orchestrator = cli.DownloadOrchestrator(_fake_tool(tmp_path, FAILING_SCRIPT))

    orchestrator.run(URL, tmp_path / "out", item=item)

    assert not item.is_downloaded
