from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from lenscal.calibration.checkerboard import detect_corners
from lenscal.calibration.correspondences import CorrespondenceSet
from lenscal.calibration.solver import calibrate_camera
from lenscal.core.models import GridSpec
from lenscal.io.images import write_image
from lenscal.patterns.chessboard import camera_matrix, random_board_poses, render_board_view

IMAGE_SIZE = (640, 480)
TRUE_K = camera_matrix(520.0, 520.0, 320.0, 240.0)
TRUE_DIST = np.array([-0.25, 0.08, 0.0, 0.0, 0.0])


@pytest.fixture(scope="session")
def grid() -> GridSpec:
    return GridSpec(11, 8)


@pytest.fixture(scope="session")
def board_poses(grid):
    return random_board_poses(grid, TRUE_K, TRUE_DIST, IMAGE_SIZE, count=10, seed=3)


@pytest.fixture(scope="session")
def board_views(grid, board_poses) -> list[np.ndarray]:
    return [render_board_view(grid, TRUE_K, TRUE_DIST, pose, IMAGE_SIZE) for pose in board_poses]


@pytest.fixture(scope="session")
def solved(grid, board_views):
    corr = CorrespondenceSet(grid)
    for i, view in enumerate(board_views):
        det = detect_corners(view, grid)
        assert det.found, f"view {i} not detected"
        corr.add(det.corners, det.image_size, source=f"view_{i:02d}")
    return calibrate_camera(corr, IMAGE_SIZE)


def write_views(folder: Path, views: list[np.ndarray], ext: str = "png") -> list[Path]:
    folder.mkdir(parents=True, exist_ok=True)
    paths = []
    for i, view in enumerate(views):
        paths.append(write_image(folder / f"view_{i:02d}.{ext}", view))
    return paths
