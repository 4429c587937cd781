"""
pipeline.py — Generate → Train → Detect Session
================================================

The caller-facing boundary of the package. Holds the current series,
its window batch and the trained model, validates caller parameters,
and runs one stage at a time.

Flow:
    generate() / load_csv()  → fresh SoilSeries + WindowBatch (new token)
    train() / start_training() → TrainedModel bound to that token
    detect(threshold)        → DetectionReport
                               (detections, metrics, insights, model info)

Only one training may be in flight per session; a concurrent request is
rejected with TrainingInProgressError. Detection against a model trained
on earlier data fails with StaleModelError rather than returning
meaningless errors.
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Optional

from . import config
from .detection import DetectionResult, classify
from .errors import (
    InsufficientDataError,
    InvalidConfigurationError,
    ModelNotTrainedError,
    TrainingInProgressError,
)
from .generator import SoilSeries, generate_soil_data
from .importer import parse_series
from .insights import Insight, generate_insights
from .metrics import PerformanceMetrics, evaluate
from .model import TrainedModel, TrainingRun, is_ready, reconstruction_errors
from .tinyml import ModelInfo, get_model_info
from .train import ProgressCallback, complete_training, start_training
from .utils import make_rng
from .windowing import WindowBatch, build_window_batch

logger = logging.getLogger("soil_ml.pipeline")


@dataclass(frozen=True)
class DetectionReport:
    """Everything one detection run produces."""

    threshold: float
    detections: tuple
    metrics: PerformanceMetrics
    insights: tuple
    model_info: ModelInfo

    @property
    def anomaly_count(self) -> int:
        return sum(1 for d in self.detections if d.is_anomaly)


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise InvalidConfigurationError(message)


class SoilAnomalyPipeline:
    """
    Stateful session over the pure pipeline stages.

    Usage:
        session = SoilAnomalyPipeline(seed=7)
        session.generate(num_points=300, anomaly_intensity=0.5)
        session.train(epochs=60)
        report = session.detect(threshold=0.02)

    Attributes:
        window_size (int): Samples per window for every stage.
        series (SoilSeries | None): Current data.
        windows (WindowBatch | None): Framed and normalized current data.
        model (TrainedModel | None): Last successfully trained model.
    """

    def __init__(self, window_size: int = None, seed: int = None):
        window_size = window_size if window_size is not None else config.WINDOW_SIZE
        _require(isinstance(window_size, int) and window_size >= 1,
                 f"Window size must be a positive integer, got {window_size!r}")

        self.window_size = window_size
        self.seed = seed if seed is not None else config.RANDOM_STATE
        self._rng = make_rng(self.seed)
        self.series: Optional[SoilSeries] = None
        self.windows: Optional[WindowBatch] = None
        self.model: Optional[TrainedModel] = None
        self._training_lock = threading.Lock()

    # ── Data ──────────────────────────────────────────────────────

    def _set_series(self, series: SoilSeries) -> SoilSeries:
        self.series = series
        self.windows = build_window_batch(series, self.window_size)
        if self.model is not None:
            logger.info("New data loaded; previous model no longer applies")
        self.model = None
        return series

    def generate(self, num_points: int = None, anomaly_intensity: float = None) -> SoilSeries:
        """Generate a synthetic series and frame it."""
        num_points = num_points if num_points is not None else config.NUM_POINTS
        if anomaly_intensity is None:
            anomaly_intensity = config.ANOMALY_INTENSITY
        _require(num_points >= self.window_size + 1,
                 f"Need at least {self.window_size + 1} points, got {num_points}")
        _require(0.0 <= anomaly_intensity <= 1.0,
                 f"Anomaly intensity must be within [0, 1], got {anomaly_intensity}")

        series = generate_soil_data(num_points, anomaly_intensity, rng=self._rng)
        return self._set_series(series)

    def load_csv(self, text: str) -> SoilSeries:
        """Import a CSV series (no ground truth) and frame it."""
        series = parse_series(text, window_size=self.window_size)
        return self._set_series(series)

    def _require_data(self) -> None:
        if self.series is None or self.windows is None:
            raise InsufficientDataError("No data loaded. Generate or import a series first.")

    # ── Training ──────────────────────────────────────────────────

    def start_training(self, epochs: int = None, batch_size: int = None) -> TrainingRun:
        """
        Create a TrainingRun for the current data without consuming it.

        The caller iterates the run (and may cancel it); the session does
        not see the resulting model. Use train() to have it stored.
        """
        self._require_data()
        epochs = epochs if epochs is not None else config.EPOCHS
        batch_size = batch_size if batch_size is not None else config.BATCH_SIZE
        _require(epochs >= 1, f"Epochs must be at least 1, got {epochs}")
        _require(batch_size >= 1, f"Batch size must be at least 1, got {batch_size}")
        return start_training(self.windows, self.series, epochs=epochs,
                              batch_size=batch_size, seed=self.seed)

    def train(self, epochs: int = None, batch_size: int = None,
              on_epoch_end: Optional[ProgressCallback] = None) -> TrainedModel:
        """
        Train on the normal windows of the current series and keep the model.

        Raises:
            TrainingInProgressError: If another training is running.
            InsufficientDataError: If there is no data or too few normal windows.
        """
        if not self._training_lock.acquire(blocking=False):
            raise TrainingInProgressError("A training run is already in progress")
        try:
            run = self.start_training(epochs, batch_size)
            self.model = None
            self.model = complete_training(run, on_epoch_end)
        finally:
            self._training_lock.release()

        logger.info(f"Session model trained ({self.model.epochs} epochs, "
                    f"final loss {self.model.final_loss:.6f})")
        return self.model

    @property
    def is_training(self) -> bool:
        return self._training_lock.locked()

    def is_ready(self) -> bool:
        """True when a model trained on the current data is available."""
        return (is_ready(self.model) and self.windows is not None
                and self.model.token == self.windows.token)

    # ── Detection ─────────────────────────────────────────────────

    def reconstruction_errors(self):
        self._require_data()
        if self.model is None:
            raise ModelNotTrainedError("Model has not been trained yet. Train it first.")
        return reconstruction_errors(self.model, self.windows)

    def detect(self, threshold: float = None) -> DetectionReport:
        """
        Classify every window and derive metrics, insights and size figures.

        Raises:
            InvalidConfigurationError: If the threshold is negative or NaN.
            ModelNotTrainedError / StaleModelError: Without a matching model.
        """
        threshold = threshold if threshold is not None else config.ANOMALY_THRESHOLD
        _require(not math.isnan(threshold) and threshold >= 0,
                 f"Threshold must be a non-negative number, got {threshold}")

        errors = self.reconstruction_errors()
        detections: list[DetectionResult] = classify(errors, threshold, self.window_size)
        metrics = evaluate(detections, self.series.ground_truth, self.window_size,
                           verified=self.series.has_ground_truth)
        insights: list[Insight] = generate_insights(self.series, detections, threshold)
        model_info = get_model_info(self.model, rng=self._rng)

        report = DetectionReport(
            threshold=threshold,
            detections=tuple(detections),
            metrics=metrics,
            insights=tuple(insights),
            model_info=model_info,
        )
        logger.info(f"Detection complete: {report.anomaly_count} anomalies, "
                    f"accuracy {metrics.accuracy}%"
                    f"{'' if metrics.verified else ' (unverified)'}")
        return report
