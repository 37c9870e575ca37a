from __future__ import annotations

import logging
from pathlib import Path

from lenscal.core.progress import LoggingProgress, NullProgress, TqdmProgress


def _drive(progress) -> None:
    progress.phase("detecting chessboards")
    progress.image_started(Path("a.jpg"), 0, 2)
    progress.image_finished(Path("a.jpg"), True, "88 corners")
    progress.image_started(Path("b.jpg"), 1, 2)
    progress.image_finished(Path("b.jpg"), False, "chessboard not found")
    progress.phase("solving camera model")
    progress.close()


def test_null_progress_accepts_all_checkpoints():
    _drive(NullProgress())


def test_logging_progress_reports_skips_as_warnings(caplog):
    with caplog.at_level(logging.INFO, logger="lenscal.progress"):
        _drive(LoggingProgress())
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "chessboard not found" in warnings[0].getMessage()
    assert any("processing image a.jpg (1/2)" in r.getMessage() for r in caplog.records)


def test_tqdm_progress_closes_bar(capsys):
    progress = TqdmProgress()
    _drive(progress)
    assert progress._bar is None
    assert "[SKIP] b.jpg: chessboard not found" in capsys.readouterr().out
