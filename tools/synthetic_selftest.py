#!/usr/bin/env python3
"""Calibrate on rendered chessboards with a known lens, then check the recovered model."""

from __future__ import annotations

import argparse
import tempfile
from pathlib import Path

import numpy as np

from lenscal.calibration.pipeline import calibrate_directory, correct_directory
from lenscal.core.config import AppConfig
from lenscal.core.logging import setup_logging
from lenscal.core.progress import LoggingProgress
from lenscal.io.images import read_image, write_image
from lenscal.patterns.chessboard import (
    camera_matrix,
    distort_image,
    random_board_poses,
    render_board_view,
    smooth_scene,
)


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--views", type=int, default=10)
    ap.add_argument("--width", type=int, default=640)
    ap.add_argument("--height", type=int, default=480)
    ap.add_argument("--k1", type=float, default=-0.25)
    ap.add_argument("--k2", type=float, default=0.08)
    ap.add_argument("--seed", type=int, default=7)
    ap.add_argument("--workdir", type=Path, default=None, help="keep generated files here")
    args = ap.parse_args()

    setup_logging(log_dir=None)
    size = (args.width, args.height)
    K = camera_matrix(0.8 * args.width, 0.8 * args.width, args.width / 2.0, args.height / 2.0)
    dist = np.array([args.k1, args.k2, 0.0, 0.0, 0.0])
    cfg = AppConfig(extensions=("png",), strategy="remap", alpha=1.0)

    with tempfile.TemporaryDirectory() as tmp:
        root = args.workdir or Path(tmp)
        calib_dir = root / "calib"
        scene_dir = root / "scene"
        out_dir = root / "out"
        for d in (calib_dir, scene_dir):
            d.mkdir(parents=True, exist_ok=True)

        poses = random_board_poses(cfg.grid, K, dist, size, args.views, seed=args.seed)
        for i, pose in enumerate(poses):
            write_image(calib_dir / f"view_{i:02d}.png", render_board_view(cfg.grid, K, dist, pose, size))
        write_image(scene_dir / "scene.png", distort_image(smooth_scene(size), K, dist))
        print(f"[SELFTEST] rendered {len(poses)} views into {calib_dir}")

        run = calibrate_directory(calib_dir, root / "calibration.json", cfg, progress=LoggingProgress())
        k1 = float(run.result.dist_coeffs[0])
        rel = abs(k1 - args.k1) / abs(args.k1)
        print(f"[SELFTEST] k1 recovered={k1:.5f} truth={args.k1:.5f} rel_err={rel:.3%} rms={run.result.rms:.4f}")
        if rel > 0.10:
            print("[SELFTEST] k1 outside 10% of ground truth")
            return 1

        correct_directory(root / "calibration.json", scene_dir, out_dir, cfg)
        corrected = read_image(out_dir / "u1_scene.png")
        if corrected.shape[:2] != (args.height, args.width):
            print(f"[SELFTEST] unexpected output shape {corrected.shape}")
            return 1

    print("[SELFTEST] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
