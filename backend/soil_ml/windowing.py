"""
windowing.py — Sliding Window Framing and Normalization
========================================================

Slices the scalar moisture series into fixed-size, stride-1 windows
that form the autoencoder's input vectors, then rescales them to [0, 1].

How it works:
    1. frame_windows() produces N − w + 1 windows of w consecutive values;
       neighbouring windows share w − 1 values. No padding: a series
       shorter than w yields no windows.
    2. normalize_windows() takes ONE global min and max across every value
       of every window and maps v → (v − min) / max(max − min, ε).
       A per-window scale would erase exactly the level shifts the
       autoencoder has to notice.
    3. Window i is attributed to timestep i + w // 2 (its center) when
       decisions are mapped back onto the series.
"""

import logging
from dataclasses import dataclass

import numpy as np

from . import config
from .generator import SoilSeries

logger = logging.getLogger("soil_ml.windowing")


@dataclass(frozen=True, eq=False)
class WindowBatch:
    """
    All windows of one series, raw and normalized.

    Attributes:
        raw (np.ndarray): Shape (n_windows, window_size), moisture units.
        normalized (np.ndarray): Same shape, values in [0, 1].
        global_min (float): Minimum over every value in the batch.
        global_max (float): Maximum over every value in the batch.
        window_size (int): Samples per window.
        token (str): Generation token of the source series.
    """

    raw: np.ndarray
    normalized: np.ndarray
    global_min: float
    global_max: float
    window_size: int
    token: str

    def __len__(self) -> int:
        return len(self.raw)

    @property
    def center_timestamps(self) -> np.ndarray:
        return np.arange(len(self.raw)) + self.window_size // 2


def frame_windows(values, window_size: int = None) -> np.ndarray:
    """
    Slice a series into overlapping windows with stride 1.

    Args:
        values: 1-D sequence of moisture readings.
        window_size: Samples per window. Defaults to config.WINDOW_SIZE.

    Returns:
        Array of shape (max(0, len(values) − window_size + 1), window_size).
    """
    window_size = window_size or config.WINDOW_SIZE
    values = np.asarray(values, dtype=np.float64)

    if len(values) < window_size:
        return np.empty((0, window_size), dtype=np.float64)

    return np.lib.stride_tricks.sliding_window_view(values, window_size).copy()


def normalize_windows(windows: np.ndarray) -> tuple[np.ndarray, float, float]:
    """
    Min-max normalize a window batch with a single global scale.

    Args:
        windows: Array of shape (n_windows, window_size).

    Returns:
        (normalized windows, global_min, global_max). An empty batch
        returns itself with min = max = 0.
    """
    windows = np.asarray(windows, dtype=np.float64)
    if windows.size == 0:
        return windows.copy(), 0.0, 0.0

    lower = float(windows.min())
    upper = float(windows.max())
    denom = max(upper - lower, config.NORMALIZATION_EPSILON)

    normalized = np.clip((windows - lower) / denom, 0.0, 1.0)
    return normalized, lower, upper


def build_window_batch(series: SoilSeries, window_size: int = None) -> WindowBatch:
    """Frame and normalize a series, carrying over its generation token."""
    window_size = window_size or config.WINDOW_SIZE
    raw = frame_windows(series.moisture, window_size)
    normalized, lower, upper = normalize_windows(raw)

    logger.info(f"Framed {len(raw)} windows of {window_size} samples "
                f"(global range [{lower:.2f}, {upper:.2f}])")

    return WindowBatch(
        raw=raw,
        normalized=normalized,
        global_min=lower,
        global_max=upper,
        window_size=window_size,
        token=series.token,
    )
