"""Optimal new camera matrix for undistortion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from lenscal.core.models import ImageSize


@dataclass(slots=True)
class RectifiedMatrix:
    camera_matrix: np.ndarray
    roi: Tuple[int, int, int, int]  # x, y, w, h of the all-valid pixel region


def optimal_camera_matrix(
    camera_matrix: np.ndarray,
    dist_coeffs: np.ndarray,
    image_size: ImageSize,
    alpha: float = 1.0,
    new_size: ImageSize | None = None,
) -> RectifiedMatrix:
    """
    alpha=0 crops to valid pixels only, alpha=1 keeps every source pixel.
    The principal point is centred in the new image.
    """
    if not 0.0 <= float(alpha) <= 1.0:
        raise ValueError(f"alpha must be in [0, 1], got {alpha}")
    size = (int(image_size[0]), int(image_size[1]))
    out_size = size if new_size is None else (int(new_size[0]), int(new_size[1]))
    new_K, roi = cv2.getOptimalNewCameraMatrix(
        np.asarray(camera_matrix, dtype=np.float64),
        np.asarray(dist_coeffs, dtype=np.float64).reshape(1, -1),
        size,
        float(alpha),
        out_size,
        centerPrincipalPoint=True,
    )
    x, y, w, h = (int(v) for v in roi)
    return RectifiedMatrix(camera_matrix=np.asarray(new_K, dtype=np.float64), roi=(x, y, w, h))


def field_of_view(camera_matrix: np.ndarray, image_size: ImageSize) -> Tuple[float, float]:
    """Horizontal and vertical field of view in degrees."""
    K = np.asarray(camera_matrix, dtype=np.float64)
    W, H = image_size
    fov_x = float(2.0 * np.degrees(np.arctan((W / 2.0) / (K[0, 0] + 1e-9))))
    fov_y = float(2.0 * np.degrees(np.arctan((H / 2.0) / (K[1, 1] + 1e-9))))
    return fov_x, fov_y
