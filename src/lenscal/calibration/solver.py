"""Camera intrinsics / distortion solve over accumulated correspondences."""

from __future__ import annotations

import logging
from typing import List

import cv2
import numpy as np

from lenscal.calibration.correspondences import CorrespondenceSet
from lenscal.calibration.rectify import field_of_view
from lenscal.core.errors import InsufficientDataError, SolverError
from lenscal.core.models import DIST_COEFFS_LEN, CalibrationResult, ImageSize


log = logging.getLogger(__name__)


def calibrate_camera(
    correspondences: CorrespondenceSet,
    image_size: ImageSize | None = None,
    flags: int = 0,
) -> CalibrationResult:
    """
    Jointly estimate K, (k1, k2, p1, p2, k3) and per-view poses.

    cv2.calibrateCamera runs Levenberg-Marquardt from the standard start:
    zero distortion, principal point at the image centre, focal length from
    the image size. image_size defaults to the set's reference size.
    """
    if len(correspondences) == 0:
        raise InsufficientDataError("insufficient calibration data: no chessboard detections to calibrate from")

    size = correspondences.image_size if image_size is None else image_size
    if size is None or int(size[0]) <= 0 or int(size[1]) <= 0:
        raise InsufficientDataError(f"insufficient calibration data: invalid image size {size}")
    size = (int(size[0]), int(size[1]))

    expected = correspondences.grid.point_count
    # Stored arrays are read-only; OpenCV gets writable copies.
    object_points = [np.array(p, dtype=np.float32) for p in correspondences.object_points()]
    image_points = [np.array(p, dtype=np.float32).reshape(-1, 1, 2) for p in correspondences.image_points()]
    for objp, imgp in zip(object_points, image_points):
        if objp.shape[0] != expected or imgp.shape[0] != expected:
            raise SolverError(f"correspondence length mismatch ({objp.shape[0]} vs {imgp.shape[0]}, expected {expected})")
    for i, imgp in enumerate(image_points):
        _check_view_spread(i, imgp.reshape(-1, 2))

    try:
        rms, K, dist, rvecs, tvecs = cv2.calibrateCamera(
            object_points,
            image_points,
            size,
            None,
            None,
            flags=flags,
        )
    except cv2.error as exc:
        raise SolverError(f"calibration solve failed: {exc}") from exc

    dist = np.asarray(dist, dtype=np.float64).reshape(-1)[:DIST_COEFFS_LEN]
    K = np.asarray(K, dtype=np.float64)
    _check_solution(float(rms), K, dist)

    per_view = compute_reprojection_errors(object_points, image_points, list(rvecs), list(tvecs), K, dist)
    result = CalibrationResult(
        rms=float(rms),
        camera_matrix=K,
        dist_coeffs=dist,
        rvecs=list(rvecs),
        tvecs=list(tvecs),
        per_view_errors=per_view,
        image_size=size,
        sources=correspondences.sources(),
    )
    _log_result(result)
    return result


def compute_reprojection_errors(
    object_points: List[np.ndarray],
    image_points: List[np.ndarray],
    rvecs: List[np.ndarray],
    tvecs: List[np.ndarray],
    K: np.ndarray,
    dist: np.ndarray,
) -> List[float]:
    errors: List[float] = []
    for objp, imgp, rvec, tvec in zip(object_points, image_points, rvecs, tvecs):
        projected, _ = cv2.projectPoints(objp, rvec, tvec, K, dist)
        err = np.linalg.norm(imgp.reshape(-1, 2) - projected.reshape(-1, 2), axis=1)
        errors.append(float(np.sqrt(np.mean(err * err))))
    return errors


def _check_view_spread(index: int, pts: np.ndarray) -> None:
    # A planar grid must cover an area in the image, not a line or a point.
    centred = pts.astype(np.float64) - pts.mean(axis=0)
    sv = np.linalg.svd(centred, compute_uv=False)
    if sv[0] <= 1e-6 or sv[-1] / sv[0] < 1e-3:
        raise SolverError(f"degenerate view {index}: image points are collinear or coincident")


def _check_solution(rms: float, K: np.ndarray, dist: np.ndarray) -> None:
    if K.shape != (3, 3) or dist.shape != (DIST_COEFFS_LEN,):
        raise SolverError(f"unexpected solver output shapes K={K.shape} dist={dist.shape}")
    if not (np.isfinite(rms) and np.all(np.isfinite(K)) and np.all(np.isfinite(dist))):
        raise SolverError("calibration diverged: non-finite camera matrix or distortion coefficients")
    if K[0, 0] <= 0.0 or K[1, 1] <= 0.0:
        raise SolverError(f"degenerate calibration: non-positive focal length fx={K[0, 0]:.3f} fy={K[1, 1]:.3f}")


def _log_result(result: CalibrationResult) -> None:
    K = result.camera_matrix
    fov_x, fov_y = field_of_view(K, result.image_size)
    log.info("rms=%.4f px over %d views", result.rms, result.views_used)
    log.info("fx=%.2f fy=%.2f cx=%.2f cy=%.2f (fov %.1f x %.1f deg)", K[0, 0], K[1, 1], K[0, 2], K[1, 2], fov_x, fov_y)
    log.info("dist=%s", np.array2string(result.dist_coeffs, precision=6))
    if result.per_view_errors:
        errs = result.per_view_errors
        log.info("per-view RMS: min=%.4f mean=%.4f max=%.4f", min(errs), float(np.mean(errs)), max(errs))
    W, H = result.image_size
    off_x = abs(float(K[0, 2]) - W / 2.0) / float(W)
    off_y = abs(float(K[1, 2]) - H / 2.0) / float(H)
    if off_x > 0.10 or off_y > 0.10:
        log.warning("Principal point far from image center (dx=%.1f%%, dy=%.1f%%)", off_x * 100, off_y * 100)
