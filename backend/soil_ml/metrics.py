"""
metrics.py — Detection Quality vs. Ground Truth
================================================

Compares window decisions against the per-timestep anomaly labels.

Each detection is matched to the label at its center timestamp, clamped
to the last sample. The resulting 2×2 confusion matrix gives:

    accuracy  = (TP + TN) / total
    precision = TP / (TP + FP)      0 when nothing was flagged
    recall    = TP / (TP + FN)      0 when nothing was labelled
    f1        = 2·P·R / (P + R)     0 when P + R = 0

Ratios are reported as percentages rounded to one decimal.

Imported series have no real labels (all False). Metrics against them
are still returned, but with verified=False: every flagged window counts
as a false positive, so precision / recall say nothing about the model.
"""

import logging
from dataclasses import dataclass

from sklearn.metrics import confusion_matrix

from . import config
from .errors import InsufficientDataError

logger = logging.getLogger("soil_ml.metrics")


@dataclass(frozen=True)
class PerformanceMetrics:
    accuracy: float
    precision: float
    recall: float
    f1_score: float
    true_positives: int
    true_negatives: int
    false_positives: int
    false_negatives: int
    total_anomalies: int
    detected_anomalies: int
    verified: bool = True


def _percent(value: float) -> float:
    return round(value * 100, 1)


def evaluate(detections, ground_truth, window_size: int = None,
             verified: bool = True) -> PerformanceMetrics:
    """
    Build the confusion matrix and derived scores for one detection run.

    Args:
        detections: DetectionResult sequence from detection.classify().
        ground_truth: Per-timestep anomaly labels (index = timestamp).
        window_size: Window size used for framing. Center timestamps
            already encode it; kept for call-site symmetry.
        verified: False when `ground_truth` was synthesised rather
            than known (imported data).

    Returns:
        PerformanceMetrics.

    Raises:
        InsufficientDataError: If there are detections but no labels.
    """
    window_size = window_size or config.WINDOW_SIZE
    ground_truth = [bool(v) for v in ground_truth]

    if detections and not ground_truth:
        raise InsufficientDataError("No ground-truth labels to evaluate against")

    last = len(ground_truth) - 1
    actual = [ground_truth[min(d.timestamp_center, last)] for d in detections]
    predicted = [d.is_anomaly for d in detections]

    if detections:
        tn, fp, fn, tp = (int(v) for v in confusion_matrix(
            actual, predicted, labels=[False, True]).ravel())
    else:
        tn = fp = fn = tp = 0

    total = tp + tn + fp + fn
    accuracy = (tp + tn) / total if total > 0 else 0.0
    precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
    recall = tp / (tp + fn) if (tp + fn) > 0 else 0.0
    f1 = (2 * precision * recall / (precision + recall)
          if (precision + recall) > 0 else 0.0)

    metrics = PerformanceMetrics(
        accuracy=_percent(accuracy),
        precision=_percent(precision),
        recall=_percent(recall),
        f1_score=_percent(f1),
        true_positives=tp,
        true_negatives=tn,
        false_positives=fp,
        false_negatives=fn,
        total_anomalies=sum(ground_truth),
        detected_anomalies=sum(predicted),
        verified=verified,
    )

    logger.info(f"Metrics (window_size={window_size}): accuracy={metrics.accuracy}% "
                f"precision={metrics.precision}% recall={metrics.recall}% "
                f"f1={metrics.f1_score}% TP={tp} TN={tn} FP={fp} FN={fn}")
    if not verified:
        logger.warning("Metrics are UNVERIFIED: ground truth for this series is "
                       "synthesised (no known anomalies), scores do not reflect "
                       "detection quality")
    return metrics
