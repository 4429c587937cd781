"""Tests for the CSV and JSON export builders."""

import json
from datetime import datetime, timezone

from backend.soil_ml.detection import DetectionResult
from backend.soil_ml.generator import SoilSample
from backend.soil_ml.metrics import PerformanceMetrics
from backend.soil_ml.reports import (
    build_anomaly_report_csv,
    build_performance_summary_csv,
    export_model_summary_json,
)
from backend.soil_ml.tinyml import estimate_model_info


def test_anomaly_report_lists_flagged_windows_only() -> None:
    samples = [SoilSample(i, 40.0 + i / 3) for i in range(20)]
    detections = [
        DetectionResult(0, 5, 0.01, False, 0.5),
        DetectionResult(1, 6, 0.0312344, True, 0.781),
        DetectionResult(2, 7, 0.05, True, 1.0),
    ]

    lines = build_anomaly_report_csv(detections, samples).splitlines()

    assert lines[0] == "Timestamp,Moisture,Reconstruction_Error,Detected_Anomaly,Confidence"
    assert lines[1] == "6,42.00,0.031234,true,78.1%"
    assert lines[2] == "7,42.33,0.050000,true,100.0%"
    assert len(lines) == 3


def test_anomaly_report_without_anomalies_is_header_only() -> None:
    samples = [SoilSample(i, 50.0) for i in range(20)]
    detections = [DetectionResult(0, 5, 0.0, False, 1.0)]
    text = build_anomaly_report_csv(detections, samples)
    assert text.splitlines() == [
        "Timestamp,Moisture,Reconstruction_Error,Detected_Anomaly,Confidence"
    ]


def test_performance_summary_table() -> None:
    metrics = PerformanceMetrics(
        accuracy=96.2, precision=80.0, recall=66.7, f1_score=72.7,
        true_positives=4, true_negatives=276, false_positives=1, false_negatives=2,
        total_anomalies=6, detected_anomalies=5,
    )
    lines = build_performance_summary_csv(metrics).splitlines()

    assert len(lines) == 11
    assert lines[0] == "Metric,Value"
    assert lines[1] == "Accuracy,96.2%"
    assert lines[4] == "F1 Score,72.7%"
    assert lines[5] == "True Positives,4"
    assert lines[9] == "Total Ground Truth Anomalies,6"
    assert lines[10] == "Total Detected Anomalies,5"


def test_model_summary_json() -> None:
    info = estimate_model_info(186, rng=0)
    created = datetime(2024, 5, 1, tzinfo=timezone.utc)
    summary = json.loads(export_model_summary_json(info, created_at=created))

    assert summary["parameters"] == 186
    assert summary["quantization"] == "INT8"
    assert summary["architecture"]["input_shape"] == [10]
    assert [layer["units"] for layer in summary["architecture"]["layers"]] == [8, 10]
    assert summary["quantized_size_kb"] == info.quantized_size_kb
    assert summary["size_reduction_percent"] == info.reduction_percent
    assert summary["created_at"] == "2024-05-01T00:00:00+00:00"
    assert summary["target_devices"]


def test_model_summary_uses_reported_layer_shapes() -> None:
    info = estimate_model_info(93, rng=0, input_size=5)
    summary = json.loads(export_model_summary_json(info))

    assert summary["architecture"]["input_shape"] == [5]
    assert summary["architecture"]["layers"][1]["units"] == 5
    assert summary["architecture"]["layers"][0]["units"] == 8
