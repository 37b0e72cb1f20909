"""Find BBC radio programmes and download them with yt-dlp."""

from importlib import metadata

try:
    __version__ = metadata.version("soundz")
except metadata.PackageNotFoundError:
    # Source checkout without an installed distribution.
    __version__ = "0.0.0"

__all__ = ["__version__"]
