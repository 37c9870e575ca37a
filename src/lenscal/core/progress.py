"""Progress reporting hooks for the batch pipelines."""

from __future__ import annotations

import logging
from pathlib import Path

from tqdm import tqdm


class ProgressReporter:
    """
    Observer called by the pipelines at fixed checkpoints.

    phase() marks a pipeline stage, image_started()/image_finished() bracket
    each image. The base class ignores everything.
    """

    def phase(self, name: str) -> None:
        pass

    def image_started(self, path: Path, index: int, total: int) -> None:
        pass

    def image_finished(self, path: Path, ok: bool, detail: str | None = None) -> None:
        pass

    def close(self) -> None:
        pass


class NullProgress(ProgressReporter):
    pass


class LoggingProgress(ProgressReporter):
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.log = logger or logging.getLogger("lenscal.progress")

    def phase(self, name: str) -> None:
        self.log.info("== %s", name)

    def image_started(self, path: Path, index: int, total: int) -> None:
        self.log.info("processing image %s (%d/%d)", path, index + 1, total)

    def image_finished(self, path: Path, ok: bool, detail: str | None = None) -> None:
        if ok:
            self.log.info("%s: %s", path.name, detail or "ok")
        else:
            self.log.warning("%s: %s", path.name, detail or "failed")


class TqdmProgress(ProgressReporter):
    """Terminal progress bar; failures are still written through logging."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.log = logger or logging.getLogger("lenscal.progress")
        self._bar: tqdm | None = None
        self._phase = ""

    def phase(self, name: str) -> None:
        self._close_bar()
        self._phase = name
        self.log.info("== %s", name)

    def image_started(self, path: Path, index: int, total: int) -> None:
        if self._bar is None:
            self._bar = tqdm(total=total, desc=self._phase or "images", unit="img")
        self._bar.set_postfix_str(path.name)

    def image_finished(self, path: Path, ok: bool, detail: str | None = None) -> None:
        if not ok:
            tqdm.write(f"[SKIP] {path.name}: {detail or 'failed'}")
            self.log.debug("%s skipped: %s", path, detail)
        if self._bar is not None:
            self._bar.update(1)

    def close(self) -> None:
        self._close_bar()

    def _close_bar(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
