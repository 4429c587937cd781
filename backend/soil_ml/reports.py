"""
reports.py — Export Builders
=============================

Produces the text blobs handed to download / export collaborators:

    anomaly report       CSV, one row per flagged window
    performance summary  CSV, fixed Metric,Value table
    model summary        JSON, simulated .tflite metadata

Only strings are returned; writing them anywhere is the caller's job.
"""

import json
from datetime import datetime, timezone

import pandas as pd

from . import config
from .metrics import PerformanceMetrics
from .tinyml import ModelInfo

ANOMALY_REPORT_COLUMNS = [
    "Timestamp",
    "Moisture",
    "Reconstruction_Error",
    "Detected_Anomaly",
    "Confidence",
]


def build_anomaly_report_csv(detections, samples) -> str:
    """
    CSV of every anomalous window.

    Moisture is taken from the sample at the window center (clamped to
    the last sample); error has 6 decimals, confidence is a percentage.
    """
    last = len(samples) - 1
    rows = []
    for d in detections:
        if not d.is_anomaly:
            continue
        moisture = samples[min(d.timestamp_center, last)].moisture if last >= 0 else None
        rows.append({
            "Timestamp": d.timestamp_center,
            "Moisture": "" if moisture is None else f"{moisture:.2f}",
            "Reconstruction_Error": f"{d.reconstruction_error:.6f}",
            "Detected_Anomaly": "true",
            "Confidence": f"{d.confidence * 100:.1f}%",
        })

    df = pd.DataFrame(rows, columns=ANOMALY_REPORT_COLUMNS)
    return df.to_csv(index=False, lineterminator="\n")


def build_performance_summary_csv(metrics: PerformanceMetrics) -> str:
    """Ten-row Metric,Value table."""
    df = pd.DataFrame(
        [
            ("Accuracy", f"{metrics.accuracy}%"),
            ("Precision", f"{metrics.precision}%"),
            ("Recall", f"{metrics.recall}%"),
            ("F1 Score", f"{metrics.f1_score}%"),
            ("True Positives", metrics.true_positives),
            ("True Negatives", metrics.true_negatives),
            ("False Positives", metrics.false_positives),
            ("False Negatives", metrics.false_negatives),
            ("Total Ground Truth Anomalies", metrics.total_anomalies),
            ("Total Detected Anomalies", metrics.detected_anomalies),
        ],
        columns=["Metric", "Value"],
    )
    return df.to_csv(index=False, lineterminator="\n")


def export_model_summary_json(info: ModelInfo, created_at: datetime = None) -> str:
    """Simulated TFLite INT8 model summary as indented JSON."""
    created_at = created_at or datetime.now(tz=timezone.utc)
    summary = {
        "model_name": config.MODEL_NAME,
        "version": config.MODEL_VERSION,
        "format": config.MODEL_FORMAT,
        "architecture": {
            "type": "Dense Autoencoder",
            "input_shape": [info.input_size],
            "layers": [
                {"name": "encoder", "type": "Dense",
                 "units": info.encoding_units, "activation": "relu"},
                {"name": "decoder", "type": "Dense",
                 "units": info.input_size, "activation": "sigmoid"},
            ],
        },
        "parameters": info.parameter_count,
        "original_size_kb": info.original_size_kb,
        "quantized_size_kb": info.quantized_size_kb,
        "quantization": "INT8",
        "size_reduction_percent": info.reduction_percent,
        "estimated_ram_kb": info.estimated_ram_kb,
        "inference_time_ms": info.inference_time_ms,
        "target_devices": list(config.TARGET_DEVICES),
        "created_at": created_at.isoformat(),
    }
    return json.dumps(summary, indent=2, ensure_ascii=False)
