"""Chessboard camera calibration and lens-distortion correction."""

__version__ = "0.1.0"
