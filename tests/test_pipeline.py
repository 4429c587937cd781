"""End-to-end tests for the generate → train → detect session."""

import math

import pytest

from backend.soil_ml.errors import (
    InsufficientDataError,
    InvalidConfigurationError,
    ModelNotTrainedError,
    StaleModelError,
    TrainingInProgressError,
)
from backend.soil_ml.model import reconstruction_errors
from backend.soil_ml.pipeline import SoilAnomalyPipeline


@pytest.fixture(scope="module")
def trained_session() -> SoilAnomalyPipeline:
    session = SoilAnomalyPipeline(seed=7)
    session.generate(num_points=300, anomaly_intensity=0.5)
    session.train(epochs=3)
    return session


def test_full_cycle_produces_a_report(trained_session) -> None:
    report = trained_session.detect(threshold=0.02)

    assert len(report.detections) == 291
    assert report.threshold == 0.02
    assert report.anomaly_count == sum(d.is_anomaly for d in report.detections)
    assert report.metrics.verified is True
    m = report.metrics
    assert m.true_positives + m.true_negatives + m.false_positives + m.false_negatives == 291
    assert m.detected_anomalies == report.anomaly_count
    assert 0.0 <= m.accuracy <= 100.0
    assert 1 <= len(report.insights) <= 8
    assert report.model_info.parameter_count == 186
    assert trained_session.is_ready()


def test_threshold_sweep_is_monotonic(trained_session) -> None:
    counts = [trained_session.detect(t).anomaly_count for t in (0.0, 0.01, 0.05, math.inf)]
    assert counts == sorted(counts, reverse=True)
    assert counts[-1] == 0


def test_detect_without_data() -> None:
    with pytest.raises(InsufficientDataError):
        SoilAnomalyPipeline(seed=1).detect(0.02)


def test_detect_before_training() -> None:
    session = SoilAnomalyPipeline(seed=1)
    session.generate(num_points=100)
    assert not session.is_ready()
    with pytest.raises(ModelNotTrainedError):
        session.detect(0.02)


def test_new_data_invalidates_model() -> None:
    session = SoilAnomalyPipeline(seed=2)
    session.generate(num_points=100)
    old_model = session.train(epochs=1)

    session.generate(num_points=100)
    assert session.model is None
    assert not session.is_ready()
    with pytest.raises(ModelNotTrainedError):
        session.detect(0.02)
    with pytest.raises(StaleModelError):
        reconstruction_errors(old_model, session.windows)


@pytest.mark.parametrize(
    "action",
    [
        lambda s: s.generate(num_points=5),
        lambda s: s.generate(num_points=100, anomaly_intensity=1.5),
        lambda s: s.generate(num_points=100, anomaly_intensity=-0.1),
        lambda s: s.detect(-0.5),
        lambda s: s.detect(float("nan")),
    ],
)
def test_invalid_parameters_are_rejected(action) -> None:
    with pytest.raises(InvalidConfigurationError):
        action(SoilAnomalyPipeline(seed=3))


def test_invalid_training_and_window_parameters() -> None:
    with pytest.raises(InvalidConfigurationError):
        SoilAnomalyPipeline(window_size=0)

    session = SoilAnomalyPipeline(seed=3)
    session.generate(num_points=100)
    with pytest.raises(InvalidConfigurationError):
        session.train(epochs=0)
    with pytest.raises(InvalidConfigurationError):
        session.start_training(epochs=2, batch_size=0)
    assert not session.is_training


def test_imported_data_yields_unverified_metrics() -> None:
    rows = ["timestamp,moisture"] + [f"{i},{45 + (i % 5)}" for i in range(40)]
    session = SoilAnomalyPipeline(seed=4)
    series = session.load_csv("\n".join(rows))
    assert series.has_ground_truth is False

    session.train(epochs=2)
    report = session.detect(0.02)

    assert report.metrics.verified is False
    assert report.metrics.total_anomalies == 0
    assert len(report.detections) == 31


def test_concurrent_training_is_rejected() -> None:
    session = SoilAnomalyPipeline(seed=5)
    session.generate(num_points=100)
    seen = []

    def reenter(epoch, loss, percent):
        seen.append(session.is_training)
        session.train(epochs=1)

    with pytest.raises(TrainingInProgressError):
        session.train(epochs=2, on_epoch_end=reenter)

    assert seen == [True]
    assert not session.is_training
    assert session.model is None

    session.train(epochs=1)
    assert session.is_ready()


def test_start_training_returns_an_unconsumed_run() -> None:
    session = SoilAnomalyPipeline(seed=6)
    session.generate(num_points=100)
    run = session.start_training(epochs=2)

    events = list(run)
    assert [e.percent for e in events] == [50, 100]
    assert session.model is None
    assert run.result.token == session.windows.token
