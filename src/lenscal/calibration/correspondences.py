"""Accumulation of 3D grid / 2D corner correspondences across calibration images."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from lenscal.calibration.checkerboard import detect_corners, draw_detection
from lenscal.core.errors import ImageReadError
from lenscal.core.models import GridSpec, ImageSize, TermCriteria
from lenscal.core.progress import NullProgress, ProgressReporter
from lenscal.io.images import image_size, read_image, write_image


log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class Correspondence:
    object_points: np.ndarray  # (N, 3) float32
    image_points: np.ndarray  # (N, 2) float32
    source: str


@dataclass(slots=True)
class SkippedImage:
    path: str
    reason: str


class CorrespondenceSet:
    """
    Append-only list of (grid points, detected corners) pairs.

    All entries share the grid's object points and the size of the first
    image added (the reference size passed on to the solver).
    """

    def __init__(self, grid: GridSpec) -> None:
        self.grid = grid
        self._objp = grid.object_points()
        self._entries: List[Correspondence] = []
        self.image_size: Optional[ImageSize] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> Tuple[Correspondence, ...]:
        return tuple(self._entries)

    def add(self, image_points: np.ndarray, image_size: ImageSize, source: str = "") -> Correspondence:
        pts = np.array(image_points, dtype=np.float32).reshape(-1, 2)
        if pts.shape[0] != self.grid.point_count:
            raise ValueError(
                f"Expected {self.grid.point_count} image points for a "
                f"{self.grid.width_dim}x{self.grid.height_dim} grid, got {pts.shape[0]}"
            )
        size = (int(image_size[0]), int(image_size[1]))
        if self.image_size is None:
            self.image_size = size
        elif size != self.image_size:
            raise ValueError(f"resolution mismatch {size} != {self.image_size}")
        pts.setflags(write=False)
        entry = Correspondence(object_points=self._objp, image_points=pts, source=source)
        self._entries.append(entry)
        return entry

    def object_points(self) -> List[np.ndarray]:
        return [e.object_points for e in self._entries]

    def image_points(self) -> List[np.ndarray]:
        return [e.image_points for e in self._entries]

    def sources(self) -> List[str]:
        return [e.source for e in self._entries]


@dataclass(slots=True)
class AccumulationResult:
    correspondences: CorrespondenceSet
    skipped: List[SkippedImage] = field(default_factory=list)
    total: int = 0


def accumulate(
    paths: Sequence[Path] | Iterable[Path],
    grid: GridSpec,
    criteria: TermCriteria = TermCriteria(),
    window: Tuple[int, int] = (11, 11),
    progress: ProgressReporter | None = None,
    debug_dir: Path | None = None,
) -> AccumulationResult:
    """
    Detect the chessboard in each image and collect the successful detections.

    Images are processed in the given order and one at a time; unreadable
    images, missing patterns and size mismatches are recorded as skipped.
    """
    progress = progress or NullProgress()
    paths = list(paths)
    result = AccumulationResult(correspondences=CorrespondenceSet(grid), total=len(paths))
    corr = result.correspondences

    if debug_dir is not None:
        debug_dir.mkdir(parents=True, exist_ok=True)

    for index, path in enumerate(paths):
        path = Path(path)
        progress.image_started(path, index, len(paths))
        try:
            image = read_image(path)
        except ImageReadError as exc:
            _skip(result, progress, path, str(exc))
            continue

        size = image_size(image)
        if corr.image_size is not None and size != corr.image_size:
            _skip(result, progress, path, f"resolution mismatch {size} != {corr.image_size}")
            continue

        detection = detect_corners(image, grid, criteria=criteria, window=window)
        if debug_dir is not None:
            write_image(debug_dir / f"{path.stem}_corners.png", draw_detection(image, grid, detection))
            (debug_dir / f"{path.stem}_corners.json").write_text(json.dumps(detection.to_dict(), indent=2))
        del image

        if not detection.found or detection.corners is None:
            _skip(result, progress, path, detection.reason or "chessboard not found")
            continue

        corr.add(detection.corners, size, source=str(path))
        progress.image_finished(path, True, f"{detection.corner_count} corners")

    log.info("Accumulated %d/%d calibration views", len(corr), result.total)
    return result


def _skip(result: AccumulationResult, progress: ProgressReporter, path: Path, reason: str) -> None:
    result.skipped.append(SkippedImage(path=str(path), reason=reason))
    progress.image_finished(path, False, reason)
