"""Error types raised by the calibration and correction pipelines."""

from __future__ import annotations


class LensCalError(RuntimeError):
    """Base class for all lenscal failures."""


class ImageReadError(LensCalError):
    """An image file could not be decoded. Recoverable per image."""


class InsufficientDataError(LensCalError):
    """Calibration was attempted without any usable correspondences."""


class SolverError(LensCalError):
    """The calibration solve failed or produced a degenerate result."""


class RecordFormatError(LensCalError, ValueError):
    """A persisted calibration record is malformed."""
