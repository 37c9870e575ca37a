"""Lens-distortion correction: direct undistort and precomputed remap."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import cv2
import numpy as np

from lenscal.core.models import ImageSize


log = logging.getLogger(__name__)


@dataclass(slots=True)
class UndistortMaps:
    map_x: np.ndarray  # float32 (H, W) source x per destination pixel
    map_y: np.ndarray
    image_size: ImageSize


def _as_arrays(camera_matrix: np.ndarray, dist_coeffs: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    K = np.asarray(camera_matrix, dtype=np.float64).reshape(3, 3)
    D = np.asarray(dist_coeffs, dtype=np.float64).reshape(1, -1)
    return K, D


def undistort_direct(
    image: np.ndarray,
    camera_matrix: np.ndarray,
    dist_coeffs: np.ndarray,
    new_camera_matrix: np.ndarray | None = None,
) -> np.ndarray:
    """Invert the distortion per destination pixel and sample bilinearly."""
    K, D = _as_arrays(camera_matrix, dist_coeffs)
    new_K = K if new_camera_matrix is None else np.asarray(new_camera_matrix, dtype=np.float64)
    return cv2.undistort(image, K, D, None, new_K)


def build_undistort_maps(
    camera_matrix: np.ndarray,
    dist_coeffs: np.ndarray,
    image_size: ImageSize,
    new_camera_matrix: np.ndarray | None = None,
) -> UndistortMaps:
    K, D = _as_arrays(camera_matrix, dist_coeffs)
    new_K = K if new_camera_matrix is None else np.asarray(new_camera_matrix, dtype=np.float64)
    size = (int(image_size[0]), int(image_size[1]))
    map_x, map_y = cv2.initUndistortRectifyMap(K, D, None, new_K, size, cv2.CV_32FC1)
    return UndistortMaps(map_x=map_x, map_y=map_y, image_size=size)


def undistort_remap(image: np.ndarray, maps: UndistortMaps) -> np.ndarray:
    h, w = image.shape[:2]
    if (w, h) != maps.image_size:
        raise ValueError(f"Image size {w}x{h} does not match map size {maps.image_size[0]}x{maps.image_size[1]}")
    return cv2.remap(image, maps.map_x, maps.map_y, cv2.INTER_LINEAR)


class UndistortMapCache:
    """Remap tables keyed on calibration and image size."""

    def __init__(self) -> None:
        self._maps: Dict[Tuple, UndistortMaps] = {}

    def __len__(self) -> int:
        return len(self._maps)

    def get(
        self,
        camera_matrix: np.ndarray,
        dist_coeffs: np.ndarray,
        image_size: ImageSize,
        new_camera_matrix: np.ndarray | None = None,
    ) -> UndistortMaps:
        K, D = _as_arrays(camera_matrix, dist_coeffs)
        new_key = None if new_camera_matrix is None else tuple(np.asarray(new_camera_matrix, dtype=np.float64).ravel())
        key = (tuple(K.ravel()), tuple(D.ravel()), (int(image_size[0]), int(image_size[1])), new_key)
        maps = self._maps.get(key)
        if maps is None:
            log.debug("Building undistort maps for %dx%d", int(image_size[0]), int(image_size[1]))
            maps = build_undistort_maps(K, D, image_size, new_camera_matrix)
            self._maps[key] = maps
        return maps
