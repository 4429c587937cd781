"""
backend.soil_ml — Soil Moisture Anomaly Detection Pipeline
===========================================================

This package implements the unsupervised anomaly detection pipeline for
the Smart Soil moisture monitor and the rule engine that explains its
output as ranked, human-readable insights.

Architecture:
    Synthetic generator / CSV importer
                 ↓
         Sliding window framing
                 ↓
      Global min-max normalization
                 ↓
    Dense autoencoder (10 → 8 → 10), trained on normal windows only
                 ↓
    Reconstruction error per window
                 ↓
    Threshold classifier (anomaly / normal + confidence)
                 ↓
    ┌────────────┼──────────────┐
 Metrics     Insights     Simulated TinyML size figures

Modules:
    config      — Hyperparameters and system constants
    errors      — Exception taxonomy for unmet pipeline preconditions
    generator   — Synthetic soil moisture series with labelled anomalies
    importer    — CSV series parser (best-effort, never fatal per row)
    windowing   — Sliding window framing and global normalization
    model       — Dense autoencoder, training task, reconstruction error
    train       — Normal-window selection and training driver
    tinyml      — Simulated INT8 size / RAM / latency estimates
    detection   — Reconstruction-error threshold classifier
    metrics     — Confusion matrix and derived scores vs. ground truth
    insights    — Rule engine producing ranked alerts
    reports     — CSV / JSON export strings
    pipeline    — Generate → Train → Detect session boundary
    utils       — Logging helpers
"""

__version__ = "1.0.0"
__author__ = "Smart Soil AI Team"
