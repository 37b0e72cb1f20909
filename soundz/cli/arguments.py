"""Argument parsing for the soundz CLI."""

from __future__ import annotations

import argparse

from .. import __version__
from .config import DEFAULT_MAX_WORKERS, DEFAULT_MONTHS


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="soundz",
        description="find BBC radio programmes and download them with yt-dlp.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="enable verbose debug logging of page fetches and yt-dlp interactions",
    )
    parser.add_argument(
        "--home",
        metavar="DIR",
        help="application directory holding soundz.json, yt-dlp and Downloads "
        "(defaults to $SOUNDZ_HOME or the current directory)",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="display the installed version and exit",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    search = commands.add_parser(
        "search",
        help="search the configured schedules for programmes whose title contains FILTER",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    search.add_argument("filter", metavar="FILTER", help="case-insensitive title filter")
    search.add_argument(
        "-m",
        "--months",
        type=int,
        default=None,
        help=f"how many months back to search (configured value, else {DEFAULT_MONTHS})",
    )
    search.add_argument(
        "-t",
        "--threads",
        type=int,
        default=None,
        help=f"maximum number of parallel page fetches (configured value, else {DEFAULT_MAX_WORKERS})",
    )

    genre = commands.add_parser("genre", help="list the highlighted shows of a genre page")
    genre.add_argument("--url", help="genre player page (defaults to the configured genre)")

    episodes = commands.add_parser("episodes", help="list the episodes of a show")
    episodes.add_argument("show_url", metavar="SHOW_URL", help="programme page of the show")

    detail = commands.add_parser("detail", help="show preview metadata for a programme")
    detail.add_argument("url", metavar="URL", help="programme page URL")

    download = commands.add_parser("download", help="download a programme with yt-dlp")
    download.add_argument("url", metavar="URL", help="programme page URL")
    download.add_argument(
        "-o",
        "--output",
        metavar="DIR",
        help="output directory (defaults to the Downloads folder of the application directory)",
    )

    commands.add_parser("downloads", help="list programmes already in the Downloads folder")
    return parser


__all__ = ["build_parser"]
