"""Entry point for ``python -m soundz``."""

from __future__ import annotations

from soundz.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
