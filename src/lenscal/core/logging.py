"""Logging setup for the application."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(log_dir: str | None = "logs", level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger("lenscal")
    logger.setLevel(level)

    if log_dir is not None and not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_path / "app.log", maxBytes=2_000_000, backupCount=3)
        fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)

    # RotatingFileHandler is itself a StreamHandler subclass.
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(console)

    return logger
