"""Tests for the autoencoder, its training task and reconstruction error."""

import numpy as np
import pytest
import torch

from backend.soil_ml.detection import classify
from backend.soil_ml.errors import (
    InsufficientDataError,
    InvalidConfigurationError,
    ModelNotTrainedError,
    StaleModelError,
    TrainingCancelledError,
)
from backend.soil_ml.generator import SoilSample, SoilSeries, generate_soil_data
from backend.soil_ml.model import (
    CANCELLED,
    COMPLETED,
    DenseAutoencoder,
    TrainingRun,
    is_ready,
    reconstruction_errors,
)
from backend.soil_ml.tinyml import estimate_model_info, get_model_info
from backend.soil_ml.train import select_normal_windows, train_autoencoder
from backend.soil_ml.windowing import build_window_batch


@pytest.fixture(scope="module")
def series() -> SoilSeries:
    return generate_soil_data(200, 0.6, rng=21)


@pytest.fixture(scope="module")
def batch(series):
    return build_window_batch(series, 10)


@pytest.fixture(scope="module")
def trained(series, batch):
    return train_autoencoder(select_normal_windows(batch, series), token=batch.token,
                             epochs=5, seed=21)


def test_architecture_has_186_parameters() -> None:
    network = DenseAutoencoder(10, 8)
    assert sum(p.numel() for p in network.parameters()) == 186


def test_training_reports_every_epoch(series, batch) -> None:
    events = []
    model = train_autoencoder(
        select_normal_windows(batch, series), token=batch.token, epochs=4, seed=3,
        on_epoch_end=lambda epoch, loss, percent: events.append((epoch, loss, percent)),
    )

    assert [e[0] for e in events] == [1, 2, 3, 4]
    assert [e[2] for e in events] == [25, 50, 75, 100]
    assert len(model.loss_history) == 4
    assert len(model.val_loss_history) == 4
    assert all(loss >= 0 for loss in model.loss_history)
    assert is_ready(model)
    assert model.token == batch.token


def test_normal_window_selection_skips_anomalous_centers(series, batch) -> None:
    normal = select_normal_windows(batch, series)
    anomalous_centers = sum(
        1 for c in batch.center_timestamps if series.ground_truth[c]
    )
    assert len(normal) == len(batch) - anomalous_centers


def test_training_needs_ten_normal_windows() -> None:
    series = SoilSeries(samples=tuple(SoilSample(i, 50.0) for i in range(15)))
    batch = build_window_batch(series, 10)
    with pytest.raises(InsufficientDataError, match="normal data"):
        select_normal_windows(batch, series)


def test_reconstruction_error_per_window(trained, batch) -> None:
    errors = reconstruction_errors(trained, batch)
    assert errors.shape == (len(batch),)
    assert np.all(errors >= 0)


def test_inference_without_model_fails(batch) -> None:
    assert not is_ready(None)
    with pytest.raises(ModelNotTrainedError):
        reconstruction_errors(None, batch)


def test_inference_on_other_data_is_stale(trained) -> None:
    other = build_window_batch(generate_soil_data(200, 0.6, rng=22), 10)
    with pytest.raises(StaleModelError):
        reconstruction_errors(trained, other)


def test_constant_series_reconstructs_with_near_zero_error() -> None:
    series = SoilSeries(samples=tuple(SoilSample(i, 50.0) for i in range(30)))
    batch = build_window_batch(series, 10)
    model = train_autoencoder(select_normal_windows(batch, series), token=batch.token,
                              epochs=60, seed=0)

    errors = reconstruction_errors(model, batch)
    assert errors.shape == (21,)
    assert errors.max() < 1e-4

    for threshold in (1e-3, 0.02, 0.5):
        assert not any(d.is_anomaly for d in classify(errors, threshold, 10))


def test_run_can_be_cancelled_between_epochs(series, batch) -> None:
    run = TrainingRun(select_normal_windows(batch, series), token=batch.token,
                      epochs=10, seed=1)
    first = next(run)
    assert first.epoch == 1

    run.cancel()
    assert list(run) == []
    assert run.state == CANCELLED
    with pytest.raises(TrainingCancelledError):
        run.result


def test_run_is_lazy_and_not_restartable(series, batch) -> None:
    run = TrainingRun(select_normal_windows(batch, series), token=batch.token,
                      epochs=2, seed=1)
    with pytest.raises(ModelNotTrainedError):
        run.result

    assert len(list(run)) == 2
    assert run.state == COMPLETED
    assert list(run) == []
    assert run.result.epochs == 2


def test_size_estimate_from_parameter_count(trained) -> None:
    info = estimate_model_info(186, rng=0)
    assert info.parameter_count == 186
    assert info.original_size_kb == round(186 * 4 / 1024, 2)
    assert info.quantized_size_kb == round(186 / 1024 + 2, 2)
    assert info.reduction_percent == round(
        (186 * 4 / 1024 - (186 / 1024 + 2)) / (186 * 4 / 1024) * 100)
    assert info.estimated_ram_kb == round((186 / 1024 + 2) * 2 + 4, 2)
    assert 0.37 <= info.inference_time_ms <= 0.68

    assert get_model_info(trained, rng=0).parameter_count == 186
    assert get_model_info(None).parameter_count == 0


def test_direct_training_needs_ten_normal_windows() -> None:
    with pytest.raises(InsufficientDataError, match="normal data"):
        train_autoencoder(np.full((3, 10), 0.5), token="t", epochs=1)
    with pytest.raises(InsufficientDataError):
        TrainingRun(np.full((9, 10), 0.5), token="t", epochs=1)


@pytest.mark.parametrize("kwargs", [{"epochs": 0}, {"epochs": -2}, {"batch_size": 0}])
def test_run_rejects_non_positive_settings(kwargs) -> None:
    with pytest.raises(InvalidConfigurationError):
        TrainingRun(np.full((12, 10), 0.5), token="t", **kwargs)


def test_seeded_run_leaves_global_torch_rng_alone(series, batch) -> None:
    before = torch.get_rng_state()
    first = train_autoencoder(select_normal_windows(batch, series), token=batch.token,
                              epochs=2, seed=8)
    assert torch.equal(before, torch.get_rng_state())

    second = train_autoencoder(select_normal_windows(batch, series), token=batch.token,
                               epochs=2, seed=8)
    assert first.loss_history == second.loss_history
