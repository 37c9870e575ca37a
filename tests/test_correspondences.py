from __future__ import annotations

import json

import numpy as np
import pytest

from lenscal.calibration.correspondences import CorrespondenceSet, accumulate
from lenscal.core.models import GridSpec
from lenscal.core.progress import ProgressReporter
from lenscal.io.images import write_image

from conftest import IMAGE_SIZE, write_views


class RecordingProgress(ProgressReporter):
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def phase(self, name):
        self.events.append(("phase", name))

    def image_started(self, path, index, total):
        self.events.append(("start", path.name, index, total))

    def image_finished(self, path, ok, detail=None):
        self.events.append(("done", path.name, ok))


def test_add_enforces_point_count_and_size():
    grid = GridSpec(4, 3)
    corr = CorrespondenceSet(grid)
    corr.add(np.zeros((12, 2)), (100, 80), source="a")
    with pytest.raises(ValueError):
        corr.add(np.zeros((11, 2)), (100, 80))
    with pytest.raises(ValueError):
        corr.add(np.zeros((12, 2)), (101, 80))
    assert len(corr) == 1
    assert corr.image_size == (100, 80)


def test_entries_share_grid_points_and_are_frozen():
    grid = GridSpec(4, 3)
    corr = CorrespondenceSet(grid)
    a = corr.add(np.ones((12, 2)), (100, 80))
    b = corr.add(np.full((12, 1, 2), 2.0), (100, 80))
    np.testing.assert_array_equal(a.object_points, grid.object_points())
    np.testing.assert_array_equal(a.object_points, b.object_points)
    assert b.image_points.shape == (12, 2)
    with pytest.raises(ValueError):
        a.image_points[0, 0] = 3.0


def test_stored_points_are_copies():
    corr = CorrespondenceSet(GridSpec(4, 3))
    pts = np.ones((12, 2), dtype=np.float32)
    entry = corr.add(pts, (100, 80))
    pts[0, 0] = 42.0
    assert entry.image_points[0, 0] == 1.0


def test_accumulate_skips_bad_images(tmp_path, grid, board_views):
    paths = write_views(tmp_path, board_views[:3])
    blank = write_image(tmp_path / "view_03.png", np.full((480, 640), 255, dtype=np.uint8))
    corrupt = tmp_path / "view_04.png"
    corrupt.write_bytes(b"not an image")
    small = write_image(tmp_path / "view_05.png", board_views[0][::2, ::2].copy())
    all_paths = paths + [blank, corrupt, small]

    progress = RecordingProgress()
    result = accumulate(all_paths, grid, progress=progress)

    assert result.total == 6
    assert len(result.correspondences) == 3
    assert result.correspondences.image_size == IMAGE_SIZE
    reasons = {s.path.split("/")[-1]: s.reason for s in result.skipped}
    assert set(reasons) == {"view_03.png", "view_04.png", "view_05.png"}
    assert "not found" in reasons["view_03.png"]
    assert "decode" in reasons["view_04.png"]
    assert "resolution mismatch" in reasons["view_05.png"]
    done = [e for e in progress.events if e[0] == "done"]
    assert [e[2] for e in done] == [True, True, True, False, False, False]
    starts = [e for e in progress.events if e[0] == "start"]
    assert [e[2] for e in starts] == list(range(6))


def test_accumulate_is_deterministic_for_same_order(tmp_path, grid, board_views):
    paths = write_views(tmp_path, board_views[:3])
    a = accumulate(paths, grid)
    b = accumulate(paths, grid)
    assert a.correspondences.sources() == b.correspondences.sources()
    for x, y in zip(a.correspondences.image_points(), b.correspondences.image_points()):
        np.testing.assert_array_equal(x, y)


def test_accumulate_writes_debug_overlays(tmp_path, grid, board_views):
    paths = write_views(tmp_path / "in", board_views[:1])
    debug = tmp_path / "debug"
    result = accumulate(paths, grid, debug_dir=debug)
    assert (debug / "view_00_corners.png").exists()
    record = json.loads((debug / "view_00_corners.json").read_text())
    assert record["found"] is True
    assert record["corner_count"] == grid.point_count
    assert record["image_size"] == list(IMAGE_SIZE)
    np.testing.assert_allclose(
        np.array(record["corners_px"]), result.correspondences.image_points()[0], atol=1e-4
    )
