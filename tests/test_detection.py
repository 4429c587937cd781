"""Tests for the threshold classifier and the metrics evaluator."""

import math

import pytest

from backend.soil_ml.detection import DetectionResult, classify
from backend.soil_ml.errors import InsufficientDataError
from backend.soil_ml.metrics import evaluate

ERRORS = [0.0, 0.005, 0.01, 0.02, 0.03, 0.05, 0.2]


def test_infinite_threshold_flags_nothing() -> None:
    results = classify(ERRORS, math.inf, 10)
    assert not any(r.is_anomaly for r in results)
    assert all(r.confidence == 1.0 for r in results)


def test_zero_threshold_flags_every_positive_error() -> None:
    results = classify(ERRORS, 0.0, 10)
    assert [r.is_anomaly for r in results] == [e > 0 for e in ERRORS]
    assert results[0].confidence == 0.0
    assert all(r.confidence == 1.0 for r in results[1:])


def test_decision_is_strict_and_confidence_is_asymmetric() -> None:
    results = classify(ERRORS, 0.02, 10)
    by_error = {r.reconstruction_error: r for r in results}

    assert by_error[0.02].is_anomaly is False
    assert by_error[0.02].confidence == 0.0
    assert by_error[0.01].confidence == 0.5
    assert by_error[0.0].confidence == 1.0
    assert by_error[0.03].is_anomaly is True
    assert by_error[0.03].confidence == 0.75
    assert by_error[0.05].confidence == 1.0
    assert by_error[0.2].confidence == 1.0


def test_confidence_rounded_to_three_decimals() -> None:
    (result,) = classify([0.0123456], 0.01, 10)
    assert result.confidence == 0.617


def test_windows_map_to_center_timestamps() -> None:
    results = classify([0.1] * 4, 0.5, 7)
    assert [r.window_index for r in results] == [0, 1, 2, 3]
    assert [r.timestamp_center for r in results] == [3, 4, 5, 6]


def _detections(flags: list[bool], window_size: int = 10) -> list[DetectionResult]:
    return [
        DetectionResult(i, i + window_size // 2, 0.5 if f else 0.0, f, 1.0)
        for i, f in enumerate(flags)
    ]


def test_perfect_classifier_scores_one_hundred() -> None:
    truth = [False] * 5 + [False, True, False, True, True, False] + [False] * 4
    flags = truth[5:11]
    metrics = evaluate(_detections(flags), truth, 10)

    assert metrics.accuracy == 100.0
    assert metrics.precision == 100.0
    assert metrics.recall == 100.0
    assert metrics.f1_score == 100.0
    assert metrics.false_positives == 0
    assert metrics.false_negatives == 0
    assert metrics.true_positives == 3
    assert metrics.true_negatives == 3
    assert metrics.total_anomalies == 3
    assert metrics.detected_anomalies == 3


def test_confusion_counts_and_rounding() -> None:
    # centers 5..10 → truth F F T T F T
    truth = [False] * 7 + [True, True, False, True]
    flags = [True, False, True, False, False, True]
    metrics = evaluate(_detections(flags), truth, 10)

    assert (metrics.true_positives, metrics.true_negatives,
            metrics.false_positives, metrics.false_negatives) == (2, 2, 1, 1)
    assert metrics.accuracy == 66.7
    assert metrics.precision == 66.7
    assert metrics.recall == 66.7
    assert metrics.f1_score == 66.7


def test_centers_beyond_the_series_are_clamped() -> None:
    truth = [False, False, True]
    detections = [DetectionResult(0, 10, 0.5, True, 1.0)]
    metrics = evaluate(detections, truth, 10)
    assert metrics.true_positives == 1


def test_zero_denominators_give_zero_scores() -> None:
    metrics = evaluate(_detections([False] * 4), [False] * 20, 10)
    assert metrics.accuracy == 100.0
    assert metrics.precision == 0.0
    assert metrics.recall == 0.0
    assert metrics.f1_score == 0.0

    empty = evaluate([], [False] * 5, 10)
    assert empty.accuracy == 0.0


def test_unverified_metrics_are_labelled_not_suppressed() -> None:
    metrics = evaluate(_detections([True, False]), [False] * 20, 10, verified=False)
    assert metrics.verified is False
    assert metrics.false_positives == 1
    assert metrics.accuracy == 50.0


def test_missing_ground_truth_is_rejected() -> None:
    with pytest.raises(InsufficientDataError):
        evaluate(_detections([True]), [], 10)
