"""Lens-distortion correction strategies."""

from .undistort import (
    UndistortMapCache,
    UndistortMaps,
    build_undistort_maps,
    undistort_direct,
    undistort_remap,
)

__all__ = [
    "UndistortMapCache",
    "UndistortMaps",
    "build_undistort_maps",
    "undistort_direct",
    "undistort_remap",
]
