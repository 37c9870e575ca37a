from __future__ import annotations

import numpy as np
from PIL import Image

from lenscal.io.images import read_image, write_image
from lenscal.patterns.chessboard import smooth_scene

from conftest import IMAGE_SIZE


def _rgb(image: np.ndarray) -> np.ndarray:
    return np.array(Image.fromarray(image).convert("RGB"), dtype=float)


def test_jpeg_written_at_high_quality(tmp_path, board_views):
    view = board_views[0]
    path = write_image(tmp_path / "view.jpg", view)
    stock = tmp_path / "stock.jpg"
    Image.fromarray(view).save(stock)

    err = np.abs(read_image(path).astype(float) - _rgb(view)).mean()
    stock_err = np.abs(read_image(stock).astype(float) - _rgb(view)).mean()
    assert err < 0.3
    assert err < stock_err


def test_jpeg_keeps_full_chroma(tmp_path):
    scene = smooth_scene(IMAGE_SIZE)
    path = write_image(tmp_path / "scene.JPEG", scene)
    with Image.open(path) as img:
        assert img.format == "JPEG"
    assert np.abs(read_image(path).astype(float) - _rgb(scene)).mean() < 1.0


def test_png_round_trip_is_lossless(tmp_path, board_views):
    path = write_image(tmp_path / "view.png", board_views[0])
    np.testing.assert_array_equal(read_image(path), _rgb(board_views[0]).astype(np.uint8))
