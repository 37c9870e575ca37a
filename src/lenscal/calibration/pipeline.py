"""Calibrate and correct pipelines over image directories."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from lenscal.calibration.correspondences import AccumulationResult, SkippedImage, accumulate
from lenscal.calibration.rectify import optimal_camera_matrix
from lenscal.calibration.solver import calibrate_camera
from lenscal.core.config import AppConfig
from lenscal.core.errors import ImageReadError
from lenscal.core.models import CalibrationRecord, CalibrationResult
from lenscal.core.progress import NullProgress, ProgressReporter
from lenscal.correction.undistort import UndistortMapCache, undistort_direct, undistort_remap
from lenscal.io.images import image_size, list_image_files, read_image, write_image
from lenscal.io.record_store import load_record, save_record


log = logging.getLogger(__name__)

STRATEGIES = ("direct", "remap", "both")


@dataclass(slots=True)
class CalibrationRun:
    record: CalibrationRecord
    result: CalibrationResult
    accumulation: AccumulationResult


@dataclass(slots=True)
class CorrectionRun:
    written: List[Path] = field(default_factory=list)
    skipped: List[SkippedImage] = field(default_factory=list)
    total: int = 0


def run_calibration(
    paths: Sequence[Path],
    cfg: AppConfig,
    progress: ProgressReporter | None = None,
    debug_dir: Path | None = None,
) -> CalibrationRun:
    """
    Detect, solve and rectify. Returns the record to persist; writes nothing.
    """
    progress = progress or NullProgress()
    progress.phase("detecting chessboards")
    accumulation = accumulate(
        paths,
        cfg.grid,
        criteria=cfg.criteria,
        window=cfg.window,
        progress=progress,
        debug_dir=debug_dir,
    )
    for skip in accumulation.skipped:
        log.warning("Skipped %s: %s", skip.path, skip.reason)

    progress.phase("solving camera model")
    corr = accumulation.correspondences
    result = calibrate_camera(corr, corr.image_size)

    progress.phase("computing optimal camera matrix")
    rectified = optimal_camera_matrix(
        result.camera_matrix,
        result.dist_coeffs,
        result.image_size,
        alpha=cfg.alpha,
    )
    log.info("Optimal camera matrix (alpha=%.2f) valid roi=%s", cfg.alpha, rectified.roi)
    record = CalibrationRecord.from_arrays(rectified.camera_matrix, result.dist_coeffs)
    return CalibrationRun(record=record, result=result, accumulation=accumulation)


def calibrate_directory(
    calibration_dir: Path,
    calibration_file: Path,
    cfg: AppConfig,
    progress: ProgressReporter | None = None,
    debug_dir: Path | None = None,
) -> CalibrationRun:
    progress = progress or NullProgress()
    calibration_dir = Path(calibration_dir)
    calibration_file = Path(calibration_file)
    paths = list_image_files(calibration_dir, cfg.extensions)
    if not calibration_file.parent.is_dir():
        raise FileNotFoundError(f"Directory for calibration file does not exist: {calibration_file.parent}")
    log.info("Found %d calibration images in %s", len(paths), calibration_dir)

    run = run_calibration(paths, cfg, progress=progress, debug_dir=debug_dir)
    progress.phase("saving calibration")
    save_record(calibration_file, run.record)
    return run


def correct_images(
    paths: Sequence[Path],
    record: CalibrationRecord,
    output_dir: Path,
    cfg: AppConfig,
    strategy: str | None = None,
    progress: ProgressReporter | None = None,
) -> CorrectionRun:
    """
    Undistort each image with the record's matrix and coefficients.

    "direct" writes <prefix_direct><name>, "remap" writes <prefix_remap><name>,
    "both" writes the two.
    """
    strategy = cfg.strategy if strategy is None else strategy
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown strategy {strategy!r}, expected one of {', '.join(STRATEGIES)}")
    progress = progress or NullProgress()
    output_dir = Path(output_dir)
    K = record.camera_matrix_array()
    D = record.dist_coeffs_array()
    cache = UndistortMapCache()
    run = CorrectionRun(total=len(paths))

    progress.phase("correcting images")
    for index, path in enumerate(paths):
        path = Path(path)
        progress.image_started(path, index, len(paths))
        try:
            image = read_image(path)
        except ImageReadError as exc:
            run.skipped.append(SkippedImage(path=str(path), reason=str(exc)))
            progress.image_finished(path, False, str(exc))
            continue

        if strategy in ("direct", "both"):
            out = output_dir / f"{cfg.prefix_direct}{path.name}"
            run.written.append(write_image(out, undistort_direct(image, K, D)))
        if strategy in ("remap", "both"):
            maps = cache.get(K, D, image_size(image))
            out = output_dir / f"{cfg.prefix_remap}{path.name}"
            run.written.append(write_image(out, undistort_remap(image, maps)))
        progress.image_finished(path, True, f"saved to {output_dir}")

    log.info("Corrected %d/%d images", run.total - len(run.skipped), run.total)
    return run


def correct_directory(
    calibration_file: Path,
    correction_dir: Path,
    output_dir: Path,
    cfg: AppConfig,
    strategy: str | None = None,
    progress: ProgressReporter | None = None,
) -> CorrectionRun:
    record = load_record(Path(calibration_file))
    paths = list_image_files(Path(correction_dir), cfg.extensions)
    output_dir = Path(output_dir)
    if output_dir.exists() and not output_dir.is_dir():
        raise NotADirectoryError(f"Output path is not a directory: {output_dir}")
    output_dir.mkdir(parents=True, exist_ok=True)
    log.info("Correcting %d images from %s into %s", len(paths), correction_dir, output_dir)
    return correct_images(paths, record, output_dir, cfg, strategy=strategy, progress=progress)
