"""YAML-backed application configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Tuple

import yaml

from lenscal.core.models import GridSpec, TermCriteria


DEFAULT_CONFIG_PATH = Path("config/default.yaml")


@dataclass(slots=True)
class AppConfig:
    grid: GridSpec = field(default_factory=GridSpec)
    criteria: TermCriteria = field(default_factory=TermCriteria)
    window: Tuple[int, int] = (11, 11)
    alpha: float = 1.0
    extensions: Tuple[str, ...] = ("jpg",)
    strategy: str = "both"
    prefix_direct: str = "u_"
    prefix_remap: str = "u1_"
    log_dir: str | None = "logs"
    log_level: int = logging.INFO


def load_config(path: str | Path | None = None) -> dict:
    cfg_path = DEFAULT_CONFIG_PATH if path is None else Path(path)
    if not cfg_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        data = yaml.safe_load(cfg_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid config file {cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config file {cfg_path} must contain a mapping")
    return data


def build_app_config(cfg: dict[str, Any]) -> AppConfig:
    grid_cfg = cfg.get("grid", {}) or {}
    det_cfg = cfg.get("detector", {}) or {}
    rect_cfg = cfg.get("rectify", {}) or {}
    img_cfg = cfg.get("images", {}) or {}
    corr_cfg = cfg.get("correct", {}) or {}
    log_cfg = cfg.get("logging", {}) or {}

    window = det_cfg.get("window", [11, 11])
    exts = img_cfg.get("extensions", ["jpg"])
    if isinstance(exts, str):
        exts = [exts]
    level_name = str(log_cfg.get("level", "INFO")).upper()

    return AppConfig(
        grid=GridSpec(
            width_dim=int(grid_cfg.get("width_dim", 11)),
            height_dim=int(grid_cfg.get("height_dim", 8)),
        ),
        criteria=TermCriteria(
            max_count=int(det_cfg.get("max_count", 30)),
            epsilon=float(det_cfg.get("epsilon", 0.001)),
        ),
        window=(int(window[0]), int(window[1])),
        alpha=float(rect_cfg.get("alpha", 1.0)),
        extensions=tuple(str(e).lstrip(".").lower() for e in exts),
        strategy=str(corr_cfg.get("strategy", "both")),
        prefix_direct=str(corr_cfg.get("prefix_direct", "u_")),
        prefix_remap=str(corr_cfg.get("prefix_remap", "u1_")),
        log_dir=log_cfg.get("dir", "logs"),
        log_level=getattr(logging, level_name, logging.INFO),
    )
