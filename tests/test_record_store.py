from __future__ import annotations

import json

import numpy as np
import pytest

from lenscal.core.errors import RecordFormatError
from lenscal.core.models import CalibrationRecord
from lenscal.io.record_store import load_record, save_record


def test_round_trip_is_exact(tmp_path):
    rng = np.random.default_rng(12)
    K = np.array([[612.123456789012, 0.0, 319.87654321], [0.0, 611.000000001, 241.5], [0.0, 0.0, 1.0]])
    dist = rng.normal(scale=0.1, size=5)
    rec = CalibrationRecord.from_arrays(K, dist)
    path = save_record(tmp_path / "calibration.json", rec)
    loaded = load_record(path)
    assert loaded == rec
    assert loaded.camera_matrix == rec.camera_matrix
    assert loaded.dist_coeffs == rec.dist_coeffs


def test_file_layout_matches_record_shape(tmp_path):
    rec = CalibrationRecord(camera_matrix=(1.0,) * 9, dist_coeffs=(0.0,) * 5)
    path = save_record(tmp_path / "cal.json", rec)
    data = json.loads(path.read_text())
    assert list(data.keys()) == ["camera_matrix", "dist_coeffs"]
    assert len(data["camera_matrix"]) == 9
    assert len(data["dist_coeffs"]) == 5


def test_load_rejects_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(RecordFormatError):
        load_record(path)


def test_load_rejects_wrong_lengths(tmp_path):
    path = tmp_path / "short.json"
    path.write_text(json.dumps({"camera_matrix": [1.0] * 9, "dist_coeffs": [0.0] * 4}))
    with pytest.raises(RecordFormatError):
        load_record(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_record(tmp_path / "missing.json")


def test_save_into_missing_directory_fails(tmp_path):
    rec = CalibrationRecord(camera_matrix=(1.0,) * 9, dist_coeffs=(0.0,) * 5)
    with pytest.raises(FileNotFoundError):
        save_record(tmp_path / "nope" / "cal.json", rec)
