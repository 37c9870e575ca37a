from __future__ import annotations

import numpy as np

from lenscal.calibration.checkerboard import detect_corners, draw_detection, to_gray_u8
from lenscal.core.models import GridSpec
from lenscal.patterns.chessboard import project_corners

from conftest import IMAGE_SIZE, TRUE_DIST, TRUE_K


def _match_error(detected: np.ndarray, truth: np.ndarray) -> float:
    # The detector may enumerate the grid from either end.
    fwd = np.linalg.norm(detected - truth, axis=1).mean()
    rev = np.linalg.norm(detected[::-1] - truth, axis=1).mean()
    return float(min(fwd, rev))


def test_detects_full_grid_with_subpixel_accuracy(grid, board_views, board_poses):
    det = detect_corners(board_views[0], grid)
    assert det.found
    assert det.corners.shape == (grid.point_count, 2)
    assert det.corners.dtype == np.float32
    assert det.image_size == IMAGE_SIZE
    truth = project_corners(grid, TRUE_K, TRUE_DIST, board_poses[0])
    assert _match_error(det.corners, truth) < 0.5


def test_detection_is_deterministic(grid, board_views):
    a = detect_corners(board_views[1], grid)
    b = detect_corners(board_views[1], grid)
    assert a.found and b.found
    np.testing.assert_array_equal(a.corners, b.corners)


def test_detection_does_not_touch_source(grid, board_views):
    view = board_views[2].copy()
    rgb = np.stack([view, view, view], axis=2)
    before = rgb.copy()
    det = detect_corners(rgb, grid)
    assert det.found
    np.testing.assert_array_equal(rgb, before)


def test_blank_image_reports_not_found(grid):
    blank = np.full((480, 640), 200, dtype=np.uint8)
    det = detect_corners(blank, grid)
    assert not det.found
    assert det.corners is None
    assert det.corner_count == 0
    assert det.reason


def test_wrong_grid_size_is_not_found(board_views):
    det = detect_corners(board_views[0], GridSpec(9, 6))
    assert not det.found


def test_occluded_pattern_is_not_found(grid, board_views):
    view = board_views[3].copy()
    h, w = view.shape
    view[:, : w // 2] = 255
    assert not detect_corners(view, grid).found


def test_to_gray_returns_copy_for_gray_input():
    img = np.zeros((4, 4), dtype=np.uint8)
    gray = to_gray_u8(img)
    gray[0, 0] = 9
    assert img[0, 0] == 0


def test_overlay_is_rgb_and_leaves_input(grid, board_views):
    view = board_views[0]
    before = view.copy()
    det = detect_corners(view, grid)
    overlay = draw_detection(view, grid, det)
    assert overlay.shape == view.shape + (3,)
    np.testing.assert_array_equal(view, before)
    assert det.to_dict()["corner_count"] == grid.point_count
