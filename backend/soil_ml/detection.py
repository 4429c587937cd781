"""
detection.py — Reconstruction-Error Threshold Classifier
=========================================================

Turns per-window reconstruction errors into anomaly / normal decisions.

Decision rule:
    is_anomaly = error > threshold            (strict)

Confidence (rounded to 3 decimals):
    anomaly → min(1, error / (2 · threshold))  saturates at twice the threshold
    normal  → min(1, 1 − error / threshold)    falls to 0 at the threshold

Degenerate thresholds:
    threshold = 0   → any error > 0 is an anomaly with confidence 1;
                      an error of exactly 0 is normal with confidence 0
    threshold = inf → every window is normal with confidence 1

Each window decision is attributed to the window's center timestep
(window_index + window_size // 2) so it lines up with the series.
"""

import logging
import math
from dataclasses import dataclass

from . import config

logger = logging.getLogger("soil_ml.detection")


@dataclass(frozen=True)
class DetectionResult:
    window_index: int
    timestamp_center: int
    reconstruction_error: float
    is_anomaly: bool
    confidence: float


def _confidence(error: float, threshold: float, is_anomaly: bool) -> float:
    if is_anomaly:
        if threshold <= 0:
            return 1.0
        return min(1.0, error / (2 * threshold))
    if threshold <= 0:
        return 0.0
    return min(1.0, 1 - error / threshold)


def classify(errors, threshold: float = None, window_size: int = None) -> list[DetectionResult]:
    """
    Classify each window by its reconstruction error.

    Args:
        errors: Per-window reconstruction errors, in window order.
        threshold: Error above which a window is anomalous.
            Defaults to config.ANOMALY_THRESHOLD.
        window_size: Used to map windows to center timestamps.
            Defaults to config.WINDOW_SIZE.

    Returns:
        One DetectionResult per window, in window order.
    """
    threshold = threshold if threshold is not None else config.ANOMALY_THRESHOLD
    window_size = window_size or config.WINDOW_SIZE
    half = window_size // 2

    results = []
    for i, error in enumerate(errors):
        error = float(error)
        is_anomaly = error > threshold
        confidence = _confidence(error, threshold, is_anomaly)
        results.append(DetectionResult(
            window_index=i,
            timestamp_center=i + half,
            reconstruction_error=error,
            is_anomaly=is_anomaly,
            confidence=round(confidence, 3),
        ))

    flagged = sum(1 for r in results if r.is_anomaly)
    shown = "inf" if math.isinf(threshold) else f"{threshold:.4f}"
    logger.info(f"Classified {len(results)} windows: {flagged} anomalous "
                f"(threshold={shown})")
    return results
