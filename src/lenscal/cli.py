"""CLI commands for calibrate/correct."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List

from lenscal.calibration.pipeline import STRATEGIES, calibrate_directory, correct_directory
from lenscal.core.config import AppConfig, build_app_config, load_config
from lenscal.core.errors import LensCalError
from lenscal.core.logging import setup_logging
from lenscal.core.models import GridSpec
from lenscal.core.progress import LoggingProgress, ProgressReporter, TqdmProgress


log = logging.getLogger("lenscal.cli")


def _progress(args) -> ProgressReporter:
    if getattr(args, "no_progress", False):
        return LoggingProgress()
    return TqdmProgress()


def _apply_overrides(cfg: AppConfig, args) -> AppConfig:
    width_dim = getattr(args, "width_dim", None)
    height_dim = getattr(args, "height_dim", None)
    if width_dim is not None or height_dim is not None:
        cfg.grid = GridSpec(
            width_dim=cfg.grid.width_dim if width_dim is None else int(width_dim),
            height_dim=cfg.grid.height_dim if height_dim is None else int(height_dim),
        )
    alpha = getattr(args, "alpha", None)
    if alpha is not None:
        cfg.alpha = float(alpha)
    strategy = getattr(args, "strategy", None)
    if strategy is not None:
        cfg.strategy = str(strategy)
    extensions = getattr(args, "extensions", None)
    if extensions:
        cfg.extensions = tuple(str(e).lstrip(".").lower() for e in extensions)
    return cfg


def cmd_calibrate(args, cfg: AppConfig) -> int:
    progress = _progress(args)
    try:
        run = calibrate_directory(
            Path(args.calibration_dir),
            Path(args.calibration_file),
            cfg,
            progress=progress,
            debug_dir=None if args.debug_dir is None else Path(args.debug_dir),
        )
    finally:
        progress.close()
    acc = run.accumulation
    print(f"[CALIB] views used={len(acc.correspondences)} / {acc.total}, rms={run.result.rms:.4f} px")
    print(f"[CALIB] camera_matrix={list(run.record.camera_matrix)}")
    print(f"[CALIB] dist_coeffs={list(run.record.dist_coeffs)}")
    print(f"[SAVE] {args.calibration_file}")
    return 0


def cmd_correct(args, cfg: AppConfig) -> int:
    progress = _progress(args)
    try:
        run = correct_directory(
            Path(args.calibration_file),
            Path(args.correction_dir),
            Path(args.output_dir),
            cfg,
            progress=progress,
        )
    finally:
        progress.close()
    print(f"[CORRECT] wrote {len(run.written)} images, skipped {len(run.skipped)} of {run.total}")
    return 0


def _add_common_options(p: argparse.ArgumentParser, default=None) -> None:
    p.add_argument("--config", type=str, default=default, help="YAML config (default: config/default.yaml if present)")
    p.add_argument("--log-dir", type=str, default=default)
    p.add_argument(
        "--no-progress",
        action="store_true",
        default=False if default is None else default,
        help="log per-image progress instead of a progress bar",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lenscal", description="Chessboard camera calibration and lens undistortion.")
    _add_common_options(p)
    # Subcommand copies set a value only when given.
    common = argparse.ArgumentParser(add_help=False)
    _add_common_options(common, default=argparse.SUPPRESS)
    sub = p.add_subparsers(dest="cmd")

    calibrate = sub.add_parser("calibrate", parents=[common], help="calibrate from a directory of chessboard images")
    calibrate.add_argument("-d", "--calibration-dir", required=True)
    calibrate.add_argument("-c", "--calibration-file", required=True)
    calibrate.add_argument("--alpha", type=float, default=None, help="0=crop to valid pixels, 1=keep all")
    calibrate.add_argument("--width-dim", type=int, default=None, help="interior corners per row")
    calibrate.add_argument("--height-dim", type=int, default=None, help="interior corners per column")
    calibrate.add_argument("--extensions", type=str, nargs="+", default=None)
    calibrate.add_argument("--debug-dir", type=str, default=None, help="write corner overlays and detection JSON here")

    correct = sub.add_parser("correct", parents=[common], help="undistort a directory of images")
    correct.add_argument("-c", "--calibration-file", required=True)
    correct.add_argument("-i", "--correction-dir", required=True)
    correct.add_argument("-o", "--output-dir", required=True)
    correct.add_argument("--strategy", type=str, choices=list(STRATEGIES), default=None)
    correct.add_argument("--extensions", type=str, nargs="+", default=None)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.cmd is None:
        parser.print_help()
        return 0

    try:
        cfg = _apply_overrides(build_app_config(load_config(args.config)), args)
    except (OSError, ValueError) as exc:
        print(f"[ERROR] {exc}")
        return 1

    try:
        setup_logging(log_dir=args.log_dir or cfg.log_dir, level=cfg.log_level)
        if args.cmd == "calibrate":
            return cmd_calibrate(args, cfg)
        if args.cmd == "correct":
            return cmd_correct(args, cfg)
    except (LensCalError, OSError, ValueError) as exc:
        log.error("%s failed: %s", args.cmd, exc)
        return 1
    parser.print_help()
    return 0
