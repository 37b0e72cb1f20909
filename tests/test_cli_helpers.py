import os
import time
from datetime import datetime

import pytest

from soundz import cli
from soundz.cli import extract, utils
from soundz.cli.http import parse_html


def test_normalise_url_equivalent_forms_share_a_key():
    forms = [
        "https://www.bbc.co.uk/programmes/m0021abc",
        "http://bbc.co.uk/Programmes/M0021ABC/",
        " https://www.bbc.co.uk/programmes/m0021abc?autoplay=1#player ",
        "HTTPS://WWW.BBC.CO.UK/programmes/m0021abc/",
    ]
    keys = {cli.normalise_url(form) for form in forms}
    assert keys == {"https://www.bbc.co.uk/programmes/m0021abc"}


def test_normalise_url_keeps_relative_values_trimmed():
    assert cli.normalise_url("  programmes/b006wkfp/ ") == "programmes/b006wkfp"


def test_normalise_url_empty_input():
    assert cli.normalise_url(None) == ""
    assert cli.normalise_url("   ") == ""


def test_absolute_url_resolves_against_canonical_host():
    assert cli.absolute_url("/programmes/m0021abc") == "https://www.bbc.co.uk/programmes/m0021abc"
    assert cli.absolute_url("//www.bbc.co.uk/sounds") == "https://www.bbc.co.uk/sounds"
    assert cli.absolute_url("http://example.test/x") == "http://example.test/x"
    assert cli.absolute_url("") == ""


@pytest.mark.parametrize("href", ["#", "#main", "javascript:void(0)", "mailto:a@b", " MAILTO:a@b "])
def test_absolute_url_rejects_anchors_and_non_page_schemes(href):
    assert cli.absolute_url(href) == ""


def test_sanitize_filename_component_strips_invalid_characters():
    raw = ' Episode: "Pilot"*?/ '
    assert cli.sanitize_filename_component(raw) == "Episode Pilot"


def test_substitute_filename_component_rewrites_punctuation():
    raw = 'Friday Night: "Dance" Mix?*'
    assert cli.substitute_filename_component(raw) == "Friday Night - 'Dance' Mix"


def test_next_delimiter_finds_earliest_line_break():
    assert cli.next_delimiter("abc\rdef\n") == 3
    assert cli.next_delimiter("abc\ndef\r") == 3
    assert cli.next_delimiter("no breaks") is None


def test_format_command_quotes_arguments():
    assert cli.format_command(["yt-dlp", "--output", "%(title)s.%(ext)s", "a b"]) == (
        "yt-dlp --output '%(title)s.%(ext)s' 'a b'"
    )


def test_dedupe_preserve_order():
    assert cli.dedupe_preserve_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_truncate_title_pads_and_ellipsises():
    assert cli.truncate_title("short", 8) == "short   "
    assert cli.truncate_title("a much longer title", 8) == "a much …"


def test_collapse_whitespace():
    assert utils.collapse_whitespace("  a \n\t b  ") == "a b"


def test_extract_best_image_picks_widest_candidate():
    srcset = (
        "https://ichef.bbci.co.uk/a.jpg 160w, "
        "//ichef.bbci.co.uk/b.jpg 640w, "
        "https://ichef.bbci.co.uk/c.jpg 320w"
    )
    assert cli.extract_best_image(srcset) == "https://ichef.bbci.co.uk/b.jpg"


def test_extract_best_image_first_wins_on_equal_width():
    srcset = "https://x.test/first.jpg 320w, https://x.test/second.jpg 320w"
    assert cli.extract_best_image(srcset) == "https://x.test/first.jpg"


def test_extract_best_image_skips_unusable_widths():
    srcset = "https://x.test/bad.jpg widew, https://x.test/none.jpg, https://x.test/ok.jpg 80w"
    assert cli.extract_best_image(srcset) == "https://x.test/ok.jpg"
    assert cli.extract_best_image("https://x.test/bad.jpg 2x") is None
    assert cli.extract_best_image("") is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("//ichef.bbci.co.uk/p.jpg", "https://ichef.bbci.co.uk/p.jpg"),
        ("/images/p.jpg", "https://www.bbc.co.uk/images/p.jpg"),
        ("ichef.bbci.co.uk/p.jpg", "https://ichef.bbci.co.uk/p.jpg"),
        ("http://ichef.bbci.co.uk/p.jpg", "http://ichef.bbci.co.uk/p.jpg"),
        ("  ", None),
    ],
)
def test_resolve_image_url(raw, expected):
    assert cli.resolve_image_url(raw) == expected


def test_parse_broadcast_date_from_bulleted_metadata():
    text = "Radio 1 • Sat 12 Jul 2025 • 120 mins"
    assert cli.parse_broadcast_date(text) == datetime(2025, 7, 12)


def test_parse_broadcast_date_strips_decorations_and_prefers_day_first():
    assert cli.parse_broadcast_date("First broadcast: 05/07/2025") == datetime(2025, 7, 5)


def test_parse_broadcast_date_rejects_non_dates():
    assert cli.parse_broadcast_date("Available now") is None
    assert cli.parse_broadcast_date("120") is None
    assert cli.parse_broadcast_date("Radio 1 • 90 • mins") is None
    assert cli.parse_broadcast_date(None) is None


@pytest.mark.parametrize(
    "text",
    ["Radio 4 • 1 hour", "Radio 1 • 30 minutes", "Radio 1 • 2 hours", "Radio 6 Music • 22:00"],
)
def test_parse_broadcast_date_ignores_durations_and_times(text):
    assert cli.parse_broadcast_date(text) is None


def test_parse_broadcast_date_month_and_year_only():
    assert cli.parse_broadcast_date("Radio 1 • July 2025 • 2 hours") == datetime(2025, 7, 1)


def test_extract_first_match_follows_selector_order():
    soup = parse_html(
        "<div><p class='b'>second</p><p class='a'>  </p><p class='c'>third</p></div>"
    )
    assert cli.extract_first_match(soup, ["p.missing", "p.a", "p.c", "p.b"]) == "third"
    assert cli.extract_first_match(soup, ["p.missing"]) is None


def test_extract_first_match_reads_attributes():
    soup = parse_html("<a class='x' href=' /programmes/abc '>t</a>")
    assert cli.extract_first_match(soup, ["a.x"], attribute="href") == "/programmes/abc"


def test_clean_text_decodes_entities():
    assert extract.clean_text("Radio 1&#39;s  &amp; more") == "Radio 1's & more"


def test_find_latest_download_returns_most_recent_complete_file(tmp_path):
    old_audio = tmp_path / "old.mp3"
    recent_audio = tmp_path / "recent.m4a"
    partial = tmp_path / "newer.m4a.part"
    info = tmp_path / "recent.info.json"

    old_audio.write_bytes(b"a" * 10)
    recent_audio.write_bytes(b"a" * 20)
    partial.write_bytes(b"a" * 30)
    info.write_text("{}")

    now = time.time()
    os.utime(old_audio, (now - 100, now - 100))
    os.utime(recent_audio, (now - 10, now - 10))
    os.utime(partial, (now, now))
    os.utime(info, (now, now))

    assert cli.find_latest_download(tmp_path) == recent_audio


def test_find_latest_download_empty_or_missing_directory(tmp_path):
    assert cli.find_latest_download(tmp_path) is None
    assert cli.find_latest_download(tmp_path / "missing") is None


def test_week_start_from_url():
    url = "https://www.bbc.co.uk/schedules/p00fzl86/2025/w28"
    assert cli.week_start_from_url(url) == datetime(2025, 7, 7)
    assert cli.week_start_from_url(url + "/") == datetime(2025, 7, 7)
    assert cli.week_start_from_url("https://www.bbc.co.uk/schedules/p00fzl86") is None
    assert cli.week_start_from_url("https://www.bbc.co.uk/schedules/p00fzl86/2025/w99") is None


def test_build_download_command_appends_tool_arguments():
    command = cli.build_download_command(("yt-dlp",), "https://www.bbc.co.uk/programmes/m0025aaa", "agent/1.0")
    assert command == [
        "yt-dlp",
        "--format",
        "bestaudio",
        "--output",
        "%(title)s.%(ext)s",
        "--user-agent",
        "agent/1.0",
        "--newline",
        "https://www.bbc.co.uk/programmes/m0025aaa",
    ]


def test_resolve_ytdlp_path_prefers_environment_then_home(monkeypatch, tmp_path):
    from soundz.cli import ytdlp

    home_binary = tmp_path / "yt-dlp"
    home_binary.write_text("")
    override = tmp_path / "custom-yt-dlp"
    override.write_text("")
    monkeypatch.setattr(ytdlp.shutil, "which", lambda name: None)

    monkeypatch.setenv("SOUNDZ_YTDLP", str(override))
    assert cli.resolve_ytdlp_path(tmp_path) == override

    monkeypatch.setenv("SOUNDZ_YTDLP", str(tmp_path / "missing"))
    assert cli.resolve_ytdlp_path(tmp_path) == home_binary

    monkeypatch.delenv("SOUNDZ_YTDLP")
    home_binary.unlink()
    assert cli.resolve_ytdlp_path(tmp_path) is None
    assert cli.get_ytdlp_invocation(tmp_path) is None


def test_debug_log_only_writes_when_enabled(monkeypatch):
    written = []
    monkeypatch.setattr(cli.debug.tqdm, "write", lambda message, *a, **k: written.append(message))

    cli.debug_log("hidden")
    cli.set_debug(True)
    cli.debug_log("shown")
    cli.warn("careful")

    assert written == ["[debug] shown", "WARNING: careful"]
