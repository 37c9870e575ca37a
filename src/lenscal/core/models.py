"""
Core data models for calibration runs and persisted calibration records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import cv2
import numpy as np

from lenscal.core.errors import RecordFormatError


ImageSize = Tuple[int, int]  # (width, height)

CAMERA_MATRIX_LEN = 9
DIST_COEFFS_LEN = 5


@dataclass(frozen=True, slots=True)
class GridSpec:
    """
    Interior-corner layout of the chessboard target.

    Object points are laid out row-major over a width_dim-wide grid:
    point i is (i % width_dim, i // width_dim, 0), one unit per square.
    """
    width_dim: int = 11
    height_dim: int = 8

    def __post_init__(self) -> None:
        if int(self.width_dim) < 2 or int(self.height_dim) < 2:
            raise ValueError(f"Grid needs at least 2x2 interior corners, got {self.width_dim}x{self.height_dim}")

    @property
    def pattern_size(self) -> Tuple[int, int]:
        return int(self.width_dim), int(self.height_dim)

    @property
    def point_count(self) -> int:
        return int(self.width_dim) * int(self.height_dim)

    def object_points(self) -> np.ndarray:
        idx = np.arange(self.point_count)
        objp = np.zeros((self.point_count, 3), np.float32)
        objp[:, 0] = idx % self.width_dim
        objp[:, 1] = idx // self.width_dim
        objp.setflags(write=False)
        return objp


@dataclass(frozen=True, slots=True)
class TermCriteria:
    """Stop after max_count iterations or once a step moves less than epsilon."""
    max_count: int = 30
    epsilon: float = 0.001

    def to_cv(self) -> Tuple[int, int, float]:
        return (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, int(self.max_count), float(self.epsilon))


@dataclass(frozen=True, slots=True)
class CalibrationRecord:
    """
    Persisted calibration: 3x3 camera matrix (row-major) and k1, k2, p1, p2, k3.
    """
    camera_matrix: Tuple[float, ...]
    dist_coeffs: Tuple[float, ...]

    def __post_init__(self) -> None:
        _check_numbers("camera_matrix", self.camera_matrix, CAMERA_MATRIX_LEN)
        _check_numbers("dist_coeffs", self.dist_coeffs, DIST_COEFFS_LEN)

    @classmethod
    def from_arrays(cls, camera_matrix: np.ndarray, dist_coeffs: np.ndarray) -> "CalibrationRecord":
        k = np.asarray(camera_matrix, dtype=np.float64).reshape(-1)
        d = np.asarray(dist_coeffs, dtype=np.float64).reshape(-1)
        return cls(
            camera_matrix=tuple(float(v) for v in k),
            dist_coeffs=tuple(float(v) for v in d),
        )

    @classmethod
    def from_dict(cls, data: Any) -> "CalibrationRecord":
        if not isinstance(data, dict):
            raise RecordFormatError("Calibration record must be a JSON object")
        missing = [key for key in ("camera_matrix", "dist_coeffs") if key not in data]
        if missing:
            raise RecordFormatError(f"Calibration record is missing {', '.join(missing)}")
        km = data["camera_matrix"]
        dc = data["dist_coeffs"]
        if not isinstance(km, list) or not isinstance(dc, list):
            raise RecordFormatError("camera_matrix and dist_coeffs must be arrays")
        _check_numbers("camera_matrix", km, CAMERA_MATRIX_LEN)
        _check_numbers("dist_coeffs", dc, DIST_COEFFS_LEN)
        return cls(
            camera_matrix=tuple(float(v) for v in km),
            dist_coeffs=tuple(float(v) for v in dc),
        )

    def to_dict(self) -> Dict[str, List[float]]:
        return {
            "camera_matrix": [float(v) for v in self.camera_matrix],
            "dist_coeffs": [float(v) for v in self.dist_coeffs],
        }

    def camera_matrix_array(self) -> np.ndarray:
        return np.array(self.camera_matrix, dtype=np.float64).reshape(3, 3)

    def dist_coeffs_array(self) -> np.ndarray:
        return np.array(self.dist_coeffs, dtype=np.float64).reshape(1, DIST_COEFFS_LEN)


@dataclass(slots=True)
class CalibrationResult:
    rms: float
    camera_matrix: np.ndarray
    dist_coeffs: np.ndarray
    rvecs: List[np.ndarray]
    tvecs: List[np.ndarray]
    per_view_errors: List[float]
    image_size: ImageSize
    sources: List[str] = field(default_factory=list)

    @property
    def views_used(self) -> int:
        return len(self.per_view_errors)


def _check_numbers(name: str, values: Any, expected_len: int) -> None:
    if len(values) != expected_len:
        raise RecordFormatError(f"{name} must have {expected_len} numbers, got {len(values)}")
    for v in values:
        # bool is an int subclass; JSON true/false is not a coefficient.
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise RecordFormatError(f"{name} contains a non-numeric value: {v!r}")
        if not math.isfinite(float(v)):
            raise RecordFormatError(f"{name} contains a non-finite value: {v!r}")
