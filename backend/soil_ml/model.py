"""
model.py — Dense Autoencoder, Training Task and Reconstruction Error
=====================================================================

Architecture:
    Input(10) → Dense(8, ReLU) [encoder] → Dense(10, sigmoid) [decoder]
    (10·8 + 8) + (8·10 + 10) = 186 parameters

The network is trained only on windows of normal soil behaviour, so it
learns to reproduce those shapes. A window it cannot reproduce well (high
mean squared reconstruction error) looks unlike anything it saw in
training; that error is the anomaly signal.

Training is a cooperative task: TrainingRun is a lazy, finite iterator
that performs one epoch per step and yields an EpochProgress event.
The caller may cancel() between epochs. Once exhausted it cannot be
restarted; a new run is needed for re-training.

The trained weights are returned as an explicit TrainedModel value and
passed into reconstruction_errors(); there is no module-level model.
TrainedModel carries the generation token of the series it was trained
on; inference against a window batch with another token is refused.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import torch
from sklearn.model_selection import train_test_split
from torch import nn
from torch.utils.data import DataLoader, Dataset

from . import config
from .errors import (
    InsufficientDataError,
    InvalidConfigurationError,
    ModelNotTrainedError,
    StaleModelError,
    TrainingCancelledError,
)
from .windowing import WindowBatch

logger = logging.getLogger("soil_ml.model")

PENDING = "pending"
RUNNING = "running"
COMPLETED = "completed"
CANCELLED = "cancelled"


class DenseAutoencoder(nn.Module):
    """Two-layer dense autoencoder with a ReLU bottleneck."""

    def __init__(self, input_size: int = None, encoding_units: int = None,
                 generator: Optional[torch.Generator] = None):
        super().__init__()
        input_size = input_size or config.WINDOW_SIZE
        encoding_units = encoding_units or config.ENCODER_UNITS

        self.encoder = nn.Linear(input_size, encoding_units)
        self.relu = nn.ReLU()
        self.decoder = nn.Linear(encoding_units, input_size)
        self.sigmoid = nn.Sigmoid()

        for layer in (self.encoder, self.decoder):
            nn.init.xavier_uniform_(layer.weight, generator=generator)
            nn.init.zeros_(layer.bias)

    @property
    def input_size(self) -> int:
        return self.encoder.in_features

    def forward(self, x):
        x = self.encoder(x)
        x = self.relu(x)
        x = self.decoder(x)
        return self.sigmoid(x)


class WindowDataset(Dataset):
    """Normalized windows served as float32 tensors."""

    def __init__(self, windows: np.ndarray):
        self.xs = torch.tensor(windows, dtype=torch.float32)

    def __len__(self) -> int:
        return len(self.xs)

    def __getitem__(self, idx: int):
        return self.xs[idx]


@dataclass(frozen=True)
class EpochProgress:
    """Progress event emitted after each training epoch."""

    epoch: int
    loss: float
    val_loss: Optional[float]
    percent: int


@dataclass(frozen=True, eq=False)
class TrainedModel:
    """
    Immutable handle on a trained autoencoder.

    Attributes:
        network (DenseAutoencoder): Fitted weights. Never mutated after
            training; re-training produces a new TrainedModel.
        token (str): Generation token of the training series.
        loss_history (tuple[float, ...]): Training MSE per epoch.
        val_loss_history (tuple[float, ...]): Hold-out MSE per epoch
            (empty when there was nothing to hold out).
        epochs (int): Completed epochs.
        ready (bool): True once training finished successfully.
    """

    network: DenseAutoencoder
    token: str
    loss_history: tuple
    val_loss_history: tuple
    epochs: int
    ready: bool = True

    @property
    def input_size(self) -> int:
        return self.network.input_size

    @property
    def encoding_units(self) -> int:
        return self.network.encoder.out_features

    @property
    def parameter_count(self) -> int:
        return sum(p.numel() for p in self.network.parameters())

    @property
    def final_loss(self) -> Optional[float]:
        return self.loss_history[-1] if self.loss_history else None


def _init_decoder_bias(network: DenseAutoencoder, windows: np.ndarray) -> None:
    """
    Start the decoder output at the mean training window.

    bias = logit(mean), so sigmoid(bias) reproduces the mean before the
    first step. A constant series then reconstructs with ~0 error.
    """
    clip = config.DECODER_BIAS_CLIP
    mean = np.clip(windows.mean(axis=0), clip, 1.0 - clip)
    logit = np.log(mean / (1.0 - mean))
    with torch.no_grad():
        network.decoder.bias.copy_(torch.tensor(logit, dtype=torch.float32))


def _evaluate(network: nn.Module, windows: np.ndarray, loss_fn: nn.Module) -> float:
    network.eval()
    with torch.no_grad():
        xs = torch.tensor(windows, dtype=torch.float32)
        return float(loss_fn(network(xs), xs).item())


class TrainingRun:
    """
    One training of the autoencoder, consumed as an iterator.

    Usage:
        run = TrainingRun(normal_windows, token=series.token, epochs=60)
        for event in run:
            print(event.epoch, event.loss, event.percent)
            if too_slow:
                run.cancel()
        model = run.result

    Attributes:
        epochs (int): Configured epoch count.
        batch_size (int): Mini-batch size.
        learning_rate (float): Adam learning rate.
        state (str): pending / running / completed / cancelled.
    """

    def __init__(self, normal_windows, token: str, epochs: int = None,
                 batch_size: int = None, learning_rate: float = None,
                 validation_split: float = None, seed: int = None):
        windows = np.asarray(normal_windows, dtype=np.float32)
        count = len(windows) if windows.ndim == 2 else 0
        if count < config.MIN_NORMAL_WINDOWS:
            raise InsufficientDataError(
                f"Not enough normal data for training: {count} normal windows, "
                f"need at least {config.MIN_NORMAL_WINDOWS}"
            )

        epochs = epochs if epochs is not None else config.EPOCHS
        batch_size = batch_size if batch_size is not None else config.BATCH_SIZE
        learning_rate = learning_rate if learning_rate is not None else config.LEARNING_RATE
        if epochs < 1:
            raise InvalidConfigurationError(f"Epochs must be at least 1, got {epochs}")
        if batch_size < 1:
            raise InvalidConfigurationError(f"Batch size must be at least 1, got {batch_size}")
        if not learning_rate > 0:
            raise InvalidConfigurationError(
                f"Learning rate must be positive, got {learning_rate}")

        self.windows = windows
        self.token = token
        self.epochs = epochs
        self.batch_size = batch_size
        self.learning_rate = learning_rate
        self.validation_split = (validation_split if validation_split is not None
                                 else config.VALIDATION_SPLIT)
        self.seed = seed if seed is not None else config.RANDOM_STATE
        self.state = PENDING

        self._cancel_requested = False
        self._result = None
        self._events = self._run()

    def __iter__(self):
        return self

    def __next__(self) -> EpochProgress:
        return next(self._events)

    def cancel(self) -> None:
        """Request a stop; honoured before the next epoch starts."""
        self._cancel_requested = True

    @property
    def result(self) -> TrainedModel:
        """
        The trained model.

        Raises:
            TrainingCancelledError: If the run was cancelled.
            ModelNotTrainedError: If the run has not finished yet.
        """
        if self.state == CANCELLED:
            raise TrainingCancelledError("Training was cancelled before completion")
        if self._result is None:
            raise ModelNotTrainedError("Training has not finished yet")
        return self._result

    def _split(self) -> tuple[np.ndarray, np.ndarray]:
        """Hold out the tail of the windows for validation loss."""
        if len(self.windows) < 2 or self.validation_split <= 0:
            return self.windows, self.windows[:0]
        train_x, val_x = train_test_split(
            self.windows, test_size=self.validation_split, shuffle=False
        )
        return train_x, val_x

    def _run(self):
        self.state = RUNNING
        init_gen = torch.Generator()
        shuffle_gen = torch.Generator()
        if self.seed is not None:
            init_gen.manual_seed(self.seed)
            shuffle_gen.manual_seed(self.seed)
        else:
            init_gen.seed()
            shuffle_gen.seed()

        train_x, val_x = self._split()
        # nn.Linear draws its default init from the global RNG before xavier
        with torch.random.fork_rng(devices=[]):
            network = DenseAutoencoder(input_size=train_x.shape[1],
                                       encoding_units=config.ENCODER_UNITS,
                                       generator=init_gen)
        _init_decoder_bias(network, train_x)

        optimizer = torch.optim.Adam(network.parameters(), lr=self.learning_rate)
        loss_fn = nn.MSELoss()

        loader = DataLoader(WindowDataset(train_x), batch_size=self.batch_size,
                            shuffle=True, drop_last=False, generator=shuffle_gen)

        logger.info(f"Training autoencoder on {len(train_x)} windows "
                    f"({len(val_x)} held out) for {self.epochs} epochs, "
                    f"batch_size={self.batch_size}, lr={self.learning_rate}")

        loss_history = []
        val_history = []

        for epoch in range(1, self.epochs + 1):
            if self._cancel_requested:
                self.state = CANCELLED
                logger.warning(f"Training cancelled after {epoch - 1}/{self.epochs} epochs")
                return

            network.train()
            total = 0.0
            for xb in loader:
                optimizer.zero_grad()
                loss = loss_fn(network(xb), xb)
                loss.backward()
                optimizer.step()
                total += float(loss.item()) * len(xb)
            epoch_loss = total / len(train_x)

            val_loss = _evaluate(network, val_x, loss_fn) if len(val_x) else None
            loss_history.append(epoch_loss)
            if val_loss is not None:
                val_history.append(val_loss)

            percent = round(100 * epoch / self.epochs)
            logger.debug(f"Epoch {epoch}/{self.epochs} loss={epoch_loss:.6f} "
                         f"val_loss={val_loss if val_loss is None else round(val_loss, 6)}")
            yield EpochProgress(epoch=epoch, loss=epoch_loss, val_loss=val_loss, percent=percent)

        network.eval()
        self._result = TrainedModel(
            network=network,
            token=self.token,
            loss_history=tuple(loss_history),
            val_loss_history=tuple(val_history),
            epochs=self.epochs,
        )
        self.state = COMPLETED
        logger.info(f"Training complete. Final loss={loss_history[-1]:.6f}")


def is_ready(model: Optional[TrainedModel]) -> bool:
    """True only for a model whose training completed."""
    return model is not None and model.ready


def reconstruction_errors(model: Optional[TrainedModel], batch: WindowBatch) -> np.ndarray:
    """
    Per-window mean squared reconstruction error.

    Every window (normal or not) is fed through the autoencoder and the
    squared error is averaged over its outputs.

    Args:
        model: Result of a completed training.
        batch: Window batch of the series to score.

    Returns:
        1-D float array with one non-negative error per window.

    Raises:
        ModelNotTrainedError: If no trained model is supplied.
        StaleModelError: If the model was trained on another series or
            with another window size.
    """
    if not is_ready(model):
        raise ModelNotTrainedError(
            "Model has not been trained yet. Train the autoencoder before detection."
        )
    if model.token != batch.token:
        raise StaleModelError(
            "Model was trained on a different data set. Retrain after "
            "generating or importing new data."
        )
    if batch.window_size != model.input_size:
        raise StaleModelError(
            f"Model expects windows of {model.input_size} samples, "
            f"got {batch.window_size}. Retrain with the new window size."
        )

    if len(batch) == 0:
        return np.empty(0, dtype=np.float64)

    model.network.eval()
    with torch.no_grad():
        xs = torch.tensor(batch.normalized, dtype=torch.float32)
        reconstructed = model.network(xs)
        mse = ((xs - reconstructed) ** 2).mean(dim=1)

    errors = mse.numpy().astype(np.float64)
    logger.debug(f"Reconstruction error range: [{errors.min():.6f}, {errors.max():.6f}]")
    return errors
