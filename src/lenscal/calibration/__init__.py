"""Chessboard calibration: detection, accumulation, solve and rectification."""

from .checkerboard import CornerDetection, detect_corners
from .correspondences import CorrespondenceSet, accumulate
from .rectify import RectifiedMatrix, field_of_view, optimal_camera_matrix
from .solver import calibrate_camera

__all__ = [
    "CornerDetection",
    "CorrespondenceSet",
    "RectifiedMatrix",
    "accumulate",
    "calibrate_camera",
    "detect_corners",
    "field_of_view",
    "optimal_camera_matrix",
]
