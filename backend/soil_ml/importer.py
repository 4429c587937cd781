"""
importer.py — CSV Series Importer
==================================

Parses an externally supplied moisture series.

Format:
    First line is a header. If it mentions "moisture" (case-insensitive)
    every row is  timestamp,moisture[,...]  otherwise every row is a
    single moisture value and timestamps are assigned sequentially.

Parsing is best-effort and never aborts on a bad row:
    - an unparseable timestamp falls back to the row index
    - an unparseable or missing moisture field becomes 50
    - a moisture field that reads as NaN or ±inf drops the row
    - values are clipped to [0, 100]

Imported series carry no anomaly labels, so every sample has
is_anomaly=False and the series is marked has_ground_truth=False.
Metrics computed against it are numerically valid but unverified.
"""

import logging

import numpy as np
import pandas as pd

from . import config
from .errors import InsufficientDataError
from .generator import IMPORTED, SoilSample, SoilSeries

logger = logging.getLogger("soil_ml.importer")

# Tokens that parse to a non-finite float; such rows are dropped, not defaulted
NON_FINITE_TOKENS = {"nan", "+nan", "-nan", "inf", "+inf", "-inf",
                     "infinity", "+infinity", "-infinity"}


def _read_rows(lines: list[str], has_moisture_column: bool) -> pd.DataFrame:
    """Split the data lines into raw string timestamp / moisture columns."""
    records = []
    for i, line in enumerate(lines):
        parts = [p.strip() for p in line.split(",")]
        if has_moisture_column:
            records.append({"timestamp": parts[0],
                            "moisture": parts[1] if len(parts) > 1 else ""})
        else:
            records.append({"timestamp": str(i), "moisture": parts[0]})
    return pd.DataFrame(records, columns=["timestamp", "moisture"])


def parse_series(text: str, window_size: int = None) -> SoilSeries:
    """
    Parse CSV text into a SoilSeries.

    Args:
        text: Raw CSV content including the header line.
        window_size: Minimum usable length is window_size + 1 samples.
            Defaults to config.WINDOW_SIZE.

    Returns:
        SoilSeries with source="imported" and has_ground_truth=False.

    Raises:
        InsufficientDataError: If fewer than window_size + 1 samples survive.
    """
    window_size = window_size or config.WINDOW_SIZE
    lines = (text or "").strip().splitlines()
    if not lines:
        raise InsufficientDataError("CSV is empty: a header and data rows are required")

    has_moisture_column = "moisture" in lines[0].lower()
    rows = [line for line in lines[1:] if line.strip()]
    if not rows:
        raise InsufficientDataError(
            f"Need at least {window_size + 1} data points, got 0"
        )
    df = _read_rows(rows, has_moisture_column)

    # ── Timestamps: non-numeric or non-finite fall back to the row index ──
    timestamps = pd.to_numeric(df["timestamp"], errors="coerce").to_numpy(
        dtype=float, na_value=np.nan)
    timestamps = np.where(np.isfinite(timestamps), timestamps, np.arange(len(df)))
    df["timestamp"] = np.trunc(timestamps).astype(int)

    # ── Moisture: unparseable → default, non-finite → dropped ─────
    moisture = pd.to_numeric(df["moisture"], errors="coerce").to_numpy(
        dtype=float, na_value=np.nan)
    non_finite = (df["moisture"].str.lower().isin(NON_FINITE_TOKENS).to_numpy()
                  | np.isinf(moisture))
    malformed = np.isnan(moisture) & ~non_finite
    moisture = np.where(malformed, float(config.DEFAULT_MOISTURE), moisture)

    kept = moisture[~non_finite]
    bounded = np.clip(kept, config.MOISTURE_MIN, config.MOISTURE_MAX)
    clipped = int((bounded != kept).sum())
    df = df[~non_finite].assign(moisture=bounded)

    defaulted = int(malformed.sum())
    dropped = int(non_finite.sum())
    if defaulted:
        logger.warning(f"{defaulted} malformed moisture values defaulted to "
                       f"{config.DEFAULT_MOISTURE}")
    if dropped:
        logger.warning(f"Dropped {dropped} rows with non-finite moisture")
    if clipped:
        logger.warning(f"Clipped {clipped} moisture values to "
                       f"[{config.MOISTURE_MIN}, {config.MOISTURE_MAX}]")

    if len(df) < window_size + 1:
        raise InsufficientDataError(
            f"Need at least {window_size + 1} data points, got {len(df)}"
        )

    samples = tuple(
        SoilSample(timestamp=int(ts), moisture=float(m), is_anomaly=False)
        for ts, m in zip(df["timestamp"], df["moisture"])
    )
    logger.info(f"Imported {len(samples)} timesteps "
                f"({'timestamp,moisture' if has_moisture_column else 'single column'} format)")
    return SoilSeries(samples=samples, source=IMPORTED, has_ground_truth=False)
