"""
train.py — Training Driver
===========================

Selects the windows the autoencoder is allowed to learn from and runs a
training task to completion.

Training flow:
    1. Frame and normalize the whole series (windowing.build_window_batch)
    2. Keep only windows whose center timestamp is a normal sample
    3. Refuse to train on fewer than MIN_NORMAL_WINDOWS windows
    4. Run TrainingRun epoch by epoch, reporting progress to the caller
    5. Return the TrainedModel (its loss_history is the per-epoch loss)
"""

import logging
from typing import Callable, Optional

import numpy as np

from . import config
from .errors import InsufficientDataError
from .generator import SoilSeries
from .model import TrainedModel, TrainingRun
from .windowing import WindowBatch

logger = logging.getLogger("soil_ml.train")

ProgressCallback = Callable[[int, float, int], None]


def select_normal_windows(batch: WindowBatch, series: SoilSeries) -> np.ndarray:
    """
    Normalized windows centered on a non-anomalous ground-truth sample.

    Args:
        batch: Window batch framed from `series`.
        series: Source series with ground-truth labels.

    Returns:
        Array of shape (n_normal, window_size).

    Raises:
        InsufficientDataError: If fewer than config.MIN_NORMAL_WINDOWS
            windows qualify.
    """
    labels = series.ground_truth
    keep = [
        i for i, center in enumerate(batch.center_timestamps)
        if center < len(labels) and not labels[center]
    ]

    if len(keep) < config.MIN_NORMAL_WINDOWS:
        raise InsufficientDataError(
            f"Not enough normal data for training: {len(keep)} normal windows, "
            f"need at least {config.MIN_NORMAL_WINDOWS}"
        )

    logger.info(f"Selected {len(keep)}/{len(batch)} normal windows for training")
    return batch.normalized[keep]


def start_training(batch: WindowBatch, series: SoilSeries, epochs: int = None,
                   batch_size: int = None, seed: int = None) -> TrainingRun:
    """Build a TrainingRun over the normal windows of `series`."""
    normal_windows = select_normal_windows(batch, series)
    return TrainingRun(
        normal_windows,
        token=batch.token,
        epochs=epochs,
        batch_size=batch_size,
        seed=seed,
    )


def complete_training(run: TrainingRun,
                      on_epoch_end: Optional[ProgressCallback] = None) -> TrainedModel:
    """
    Drive `run` through every epoch and return its model.

    Exceptions raised by `on_epoch_end` propagate and leave the run
    unfinished.
    """
    logger.info("=" * 60)
    logger.info("STARTING AUTOENCODER TRAINING")
    logger.info("=" * 60)

    for event in run:
        if on_epoch_end is not None:
            on_epoch_end(event.epoch, event.loss, event.percent)

    model = run.result
    logger.info(f"Model ready: {model.parameter_count} parameters, "
                f"{model.epochs} epochs, final loss {model.final_loss:.6f}")
    return model


def train_autoencoder(normal_windows, token: str, epochs: int = None,
                      batch_size: int = None,
                      on_epoch_end: Optional[ProgressCallback] = None,
                      seed: int = None) -> TrainedModel:
    """
    Train the autoencoder to completion.

    Args:
        normal_windows: Normalized training windows, shape (n, window_size).
        token: Generation token of the series the windows came from.
        epochs: Defaults to config.EPOCHS (60).
        batch_size: Defaults to config.BATCH_SIZE (32).
        on_epoch_end: Optional observer called as
            on_epoch_end(epoch, loss, percent) after every epoch.
            It cannot pause or stop training.
        seed: Torch seed for weight init and shuffling.

    Returns:
        TrainedModel whose loss_history holds one loss per epoch.

    Raises:
        InsufficientDataError: If fewer than config.MIN_NORMAL_WINDOWS
            windows are supplied.
        InvalidConfigurationError: If epochs or batch_size is below 1.
    """
    run = TrainingRun(normal_windows, token=token, epochs=epochs,
                      batch_size=batch_size, seed=seed)
    return complete_training(run, on_epoch_end)
