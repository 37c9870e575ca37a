"""Synthetic chessboard views and test scenes with a known camera model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import cv2
import numpy as np

from lenscal.core.models import GridSpec, ImageSize


@dataclass(slots=True)
class BoardPose:
    rvec: np.ndarray  # (3,) Rodrigues rotation
    tvec: np.ndarray  # (3,) translation, board units


def camera_matrix(fx: float, fy: float, cx: float, cy: float) -> np.ndarray:
    return np.array([[fx, 0.0, cx], [0.0, fy, cy], [0.0, 0.0, 1.0]], dtype=np.float64)


def ideal_pixel_coords(K: np.ndarray, dist: np.ndarray | None, image_size: ImageSize, iterations: int = 30) -> Tuple[np.ndarray, np.ndarray]:
    """
    For every pixel of a distorted image, the pixel it shows in the ideal
    (distortion-free) image with the same K. The distortion model is inverted
    by fixed-point iteration on normalized coordinates.
    """
    W, H = int(image_size[0]), int(image_size[1])
    fx, fy, cx, cy = K[0, 0], K[1, 1], K[0, 2], K[1, 2]
    u, v = np.meshgrid(np.arange(W, dtype=np.float64), np.arange(H, dtype=np.float64))
    xd = (u - cx) / fx
    yd = (v - cy) / fy
    if dist is None or not np.any(dist):
        return u.astype(np.float32), v.astype(np.float32)

    k1, k2, p1, p2, k3 = (float(c) for c in np.asarray(dist, dtype=np.float64).reshape(-1)[:5])
    x, y = xd.copy(), yd.copy()
    for _ in range(iterations):
        r2 = x * x + y * y
        radial = 1.0 + r2 * (k1 + r2 * (k2 + r2 * k3))
        dx = 2.0 * p1 * x * y + p2 * (r2 + 2.0 * x * x)
        dy = p1 * (r2 + 2.0 * y * y) + 2.0 * p2 * x * y
        x = (xd - dx) / radial
        y = (yd - dy) / radial
    return (fx * x + cx).astype(np.float32), (fy * y + cy).astype(np.float32)


def board_texture(grid: GridSpec, square_px: int = 40, margin_squares: int = 1) -> np.ndarray:
    """Gray chessboard of (W+1)x(H+1) squares inside a white quiet zone."""
    cols, rows = grid.width_dim + 1, grid.height_dim + 1
    m = margin_squares * square_px
    tex = np.full((rows * square_px + 2 * m, cols * square_px + 2 * m), 255, dtype=np.uint8)
    for r in range(rows):
        for c in range(cols):
            if (r + c) % 2 == 0:
                y0, x0 = m + r * square_px, m + c * square_px
                tex[y0:y0 + square_px, x0:x0 + square_px] = 0
    return tex


def render_board_view(
    grid: GridSpec,
    K: np.ndarray,
    dist: np.ndarray | None,
    pose: BoardPose,
    image_size: ImageSize,
    square_px: int = 40,
    blur_sigma: float = 0.8,
) -> np.ndarray:
    """
    Gray image of the board seen through (K, dist) at pose.

    Board coordinates match GridSpec.object_points(): interior corner (c, r)
    sits at (c, r, 0), one unit per square.
    """
    margin_squares = 1
    tex = board_texture(grid, square_px=square_px, margin_squares=margin_squares)
    ui, vi = ideal_pixel_coords(K, dist, image_size)

    R, _ = cv2.Rodrigues(np.asarray(pose.rvec, dtype=np.float64))
    Hb = K @ np.column_stack([R[:, 0], R[:, 1], np.asarray(pose.tvec, dtype=np.float64).reshape(3)])
    Hinv = np.linalg.inv(Hb)

    pts = np.stack([ui.astype(np.float64), vi.astype(np.float64), np.ones_like(ui, dtype=np.float64)], axis=-1)
    board = pts @ Hinv.T
    X = board[..., 0] / board[..., 2]
    Y = board[..., 1] / board[..., 2]
    # Square edges fall between texture pixels, hence the half-pixel shift.
    offset = (margin_squares + 1) * square_px - 0.5
    map_u = (X * square_px + offset).astype(np.float32)
    map_v = (Y * square_px + offset).astype(np.float32)
    img = cv2.remap(tex, map_u, map_v, cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT, borderValue=255)
    if blur_sigma > 0:
        img = cv2.GaussianBlur(img, (0, 0), blur_sigma)
    return img


def project_corners(grid: GridSpec, K: np.ndarray, dist: np.ndarray | None, pose: BoardPose) -> np.ndarray:
    objp = np.array(grid.object_points(), dtype=np.float32)
    d = np.zeros(5) if dist is None else np.asarray(dist, dtype=np.float64)
    pts, _ = cv2.projectPoints(objp, np.asarray(pose.rvec, dtype=np.float64), np.asarray(pose.tvec, dtype=np.float64), K, d)
    return pts.reshape(-1, 2)


def _board_outline(grid: GridSpec, margin: float = 1.0) -> np.ndarray:
    x0, y0 = -1.0 - margin, -1.0 - margin
    x1, y1 = grid.width_dim + margin, grid.height_dim + margin
    xs = np.linspace(x0, x1, 16)
    ys = np.linspace(y0, y1, 12)
    edge = [(x, y0) for x in xs] + [(x, y1) for x in xs] + [(x0, y) for y in ys] + [(x1, y) for y in ys]
    return np.array([[x, y, 0.0] for x, y in edge], dtype=np.float64)


def random_board_poses(
    grid: GridSpec,
    K: np.ndarray,
    dist: np.ndarray | None,
    image_size: ImageSize,
    count: int,
    seed: int = 0,
    max_tilt_rad: float = 0.4,
    width_fraction: Tuple[float, float] = (0.55, 0.75),
    max_attempts: int = 500,
) -> List[BoardPose]:
    """
    Deterministic set of tilted board poses whose full quiet zone stays in frame.
    """
    rng = np.random.default_rng(seed)
    W, H = int(image_size[0]), int(image_size[1])
    fx = float(K[0, 0])
    centre = np.array([(grid.width_dim - 1) / 2.0, (grid.height_dim - 1) / 2.0, 0.0])
    outline = _board_outline(grid)
    d = np.zeros(5) if dist is None else np.asarray(dist, dtype=np.float64)

    poses: List[BoardPose] = []
    for _ in range(max_attempts):
        if len(poses) >= count:
            break
        rvec = np.array(
            [
                rng.uniform(-max_tilt_rad, max_tilt_rad),
                rng.uniform(-max_tilt_rad, max_tilt_rad),
                rng.uniform(-0.3, 0.3),
            ]
        )
        frac = rng.uniform(*width_fraction)
        Z = fx * (grid.width_dim + 1) / (frac * W)
        off_x = rng.uniform(-0.12, 0.12) * W
        off_y = rng.uniform(-0.12, 0.12) * H
        R, _ = cv2.Rodrigues(rvec)
        target = np.array([off_x / fx * Z, off_y / float(K[1, 1]) * Z, Z])
        tvec = target - R @ centre

        cam = outline @ R.T + tvec
        if np.any(cam[:, 2] <= 0.1 * Z):
            continue
        proj, _ = cv2.projectPoints(outline, rvec, tvec, K, d)
        proj = proj.reshape(-1, 2)
        if proj[:, 0].min() < 4 or proj[:, 1].min() < 4 or proj[:, 0].max() > W - 5 or proj[:, 1].max() > H - 5:
            continue
        poses.append(BoardPose(rvec=rvec, tvec=tvec))

    if len(poses) < count:
        raise RuntimeError(f"Could only place {len(poses)}/{count} board poses inside {W}x{H}")
    return poses


def smooth_scene(image_size: ImageSize, channels: int = 3) -> np.ndarray:
    """Low-frequency colour test pattern (no sharp edges)."""
    W, H = int(image_size[0]), int(image_size[1])
    x = np.linspace(0.0, 1.0, W)[None, :]
    y = np.linspace(0.0, 1.0, H)[:, None]
    base = 128.0 + 50.0 * np.sin(2.0 * np.pi * 1.5 * x) * np.cos(2.0 * np.pi * 1.0 * y) + 30.0 * (x - 0.5)
    planes = [
        base,
        128.0 + 60.0 * np.cos(2.0 * np.pi * (x + y)),
        128.0 + 40.0 * np.sin(2.0 * np.pi * 2.0 * y) + 20.0 * (y - 0.5),
    ]
    img = np.stack([np.broadcast_to(p, (H, W)) for p in planes[:channels]], axis=2)
    img = np.clip(np.rint(img), 0, 255).astype(np.uint8)
    return img[:, :, 0] if channels == 1 else img


def distort_image(image: np.ndarray, K: np.ndarray, dist: np.ndarray) -> np.ndarray:
    """Apply (K, dist) lens distortion to an ideal image."""
    h, w = image.shape[:2]
    map_u, map_v = ideal_pixel_coords(K, dist, (w, h))
    return cv2.remap(image, map_u, map_v, cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE)
