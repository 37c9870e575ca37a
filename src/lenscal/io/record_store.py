"""JSON persistence for calibration records."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from lenscal.core.errors import RecordFormatError
from lenscal.core.models import CalibrationRecord


log = logging.getLogger(__name__)


def save_record(path: Path, record: CalibrationRecord) -> Path:
    path = Path(path)
    if path.parent and not path.parent.exists():
        raise FileNotFoundError(f"Directory for calibration file does not exist: {path.parent}")
    path.write_text(json.dumps(record.to_dict()))
    log.info("Calibration saved to %s", path)
    return path


def load_record(path: Path) -> CalibrationRecord:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Calibration file not found: {path}")
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RecordFormatError(f"{path} is not valid JSON: {exc}") from exc
    return CalibrationRecord.from_dict(data)
