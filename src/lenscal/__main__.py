"""Entry point for lenscal."""

from __future__ import annotations

from lenscal.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
