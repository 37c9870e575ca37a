"""Chessboard corner detection with sub-pixel refinement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import cv2
import numpy as np

from lenscal.core.models import GridSpec, ImageSize, TermCriteria


def to_gray_u8(image: np.ndarray) -> np.ndarray:
    """Convert RGB/gray image to a new uint8 gray array."""
    if image.ndim == 2:
        return image.astype(np.uint8, copy=True)
    if image.ndim == 3 and image.shape[2] >= 3:
        f = image.astype(np.float32)
        gray = 0.299 * f[:, :, 0] + 0.587 * f[:, :, 1] + 0.114 * f[:, :, 2]
        return np.clip(np.rint(gray), 0, 255).astype(np.uint8)
    raise ValueError("Unsupported image shape for grayscale conversion")


@dataclass(slots=True)
class CornerDetection:
    found: bool
    corners: np.ndarray | None  # (N, 2) float32, row-major grid order
    image_size: ImageSize
    method: str
    reason: str | None = None

    @property
    def corner_count(self) -> int:
        return 0 if self.corners is None else int(self.corners.shape[0])

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "corners_px": [] if self.corners is None else self.corners.astype(float).tolist(),
            "image_size": [int(self.image_size[0]), int(self.image_size[1])],
            "corner_count": self.corner_count,
            "method": self.method,
            "reason": self.reason,
        }


def detect_corners(
    image: np.ndarray,
    grid: GridSpec,
    criteria: TermCriteria = TermCriteria(),
    window: Tuple[int, int] = (11, 11),
    zero_zone: Tuple[int, int] = (-1, -1),
) -> CornerDetection:
    """
    Find the full interior-corner pattern and refine it with cornerSubPix.

    The source image is never written to; refinement runs on a private gray copy.
    """
    gray = to_gray_u8(image)
    size = (int(gray.shape[1]), int(gray.shape[0]))
    method = "findChessboardCorners"

    flags = cv2.CALIB_CB_ADAPTIVE_THRESH | cv2.CALIB_CB_NORMALIZE_IMAGE
    found, corners = cv2.findChessboardCorners(gray, grid.pattern_size, flags=flags)
    if not found or corners is None:
        return CornerDetection(found=False, corners=None, image_size=size, method=method, reason="chessboard not found")

    if corners.shape[0] != grid.point_count:
        return CornerDetection(
            found=False,
            corners=None,
            image_size=size,
            method=method,
            reason=f"corner count mismatch ({corners.shape[0]} != {grid.point_count})",
        )

    refined = cv2.cornerSubPix(gray, corners, tuple(window), tuple(zero_zone), criteria.to_cv())
    return CornerDetection(
        found=True,
        corners=refined.reshape(-1, 2).astype(np.float32),
        image_size=size,
        method=method + "+cornerSubPix",
    )


def draw_detection(image: np.ndarray, grid: GridSpec, detection: CornerDetection) -> np.ndarray:
    """RGB overlay with the detected corners, or a 'not found' banner."""
    if image.ndim == 2:
        overlay = np.stack([image, image, image], axis=2).astype(np.uint8)
    elif image.ndim == 3 and image.shape[2] >= 3:
        overlay = image[:, :, :3].astype(np.uint8).copy()
    else:
        raise ValueError("Unsupported image shape for overlay")

    if detection.found and detection.corners is not None:
        pts = detection.corners.reshape(-1, 1, 2).astype(np.float32)
        cv2.drawChessboardCorners(overlay, grid.pattern_size, pts, True)
    else:
        cv2.putText(
            overlay,
            detection.reason or "chessboard not found",
            (24, 42),
            cv2.FONT_HERSHEY_SIMPLEX,
            1.0,
            (255, 64, 64),
            2,
            cv2.LINE_AA,
        )
    return overlay
