"""
generator.py — Synthetic Soil Moisture Series
==============================================

Produces a soil moisture time series with labelled anomalies so the
autoencoder can be trained and evaluated end-to-end without hardware.

Signal model (per timestep t):
    base(t) = 45 + 10·sin(0.05·t) + 5·sin(0.13·t + 1.2) + U(-2, 2)
    clamped to [20, 80]

The two sinusoids stand in for diurnal drying/wetting cycles; the uniform
term is sensor noise.

Anomaly injection:
    floor(0.08·N) distinct timesteps, never within 20 samples of either end,
    become a sudden spike (base + m) or drop (base − m) with
        m = 20 + 30·intensity
    clamped to [0, 100].

All randomness comes from an injectable numpy Generator so scenarios are
reproducible under a fixed seed.
"""

import logging
import uuid
from dataclasses import dataclass, field

import numpy as np

from . import config
from .errors import InvalidConfigurationError
from .utils import make_rng

logger = logging.getLogger("soil_ml.generator")

SYNTHETIC = "synthetic"
IMPORTED = "imported"


@dataclass(frozen=True)
class SoilSample:
    """One moisture reading; is_anomaly is the ground-truth label."""

    timestamp: int
    moisture: float
    is_anomaly: bool = False


@dataclass(frozen=True)
class SoilSeries:
    """
    Ordered, immutable series of SoilSample.

    Attributes:
        samples (tuple[SoilSample, ...]): Readings in timestamp order.
        source (str): "synthetic" or "imported".
        has_ground_truth (bool): True only when anomaly labels are known.
        token (str): Generation token. Windows and models derived from
            this series carry the same token so inference can reject a
            model trained on different data.
    """

    samples: tuple
    source: str = SYNTHETIC
    has_ground_truth: bool = True
    token: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __len__(self) -> int:
        return len(self.samples)

    def __getitem__(self, index):
        return self.samples[index]

    def __iter__(self):
        return iter(self.samples)

    @property
    def moisture(self) -> np.ndarray:
        return np.array([s.moisture for s in self.samples], dtype=np.float64)

    @property
    def ground_truth(self) -> list[bool]:
        return [s.is_anomaly for s in self.samples]

    @property
    def anomaly_count(self) -> int:
        return sum(1 for s in self.samples if s.is_anomaly)


def base_signal(t: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Noisy multi-frequency sinusoid, clamped to the normal band."""
    base = (
        config.BASE_LEVEL
        + config.BASE_AMPLITUDE_1 * np.sin(config.BASE_FREQUENCY_1 * t)
        + config.BASE_AMPLITUDE_2 * np.sin(config.BASE_FREQUENCY_2 * t + config.BASE_PHASE_2)
    )
    noise = rng.uniform(-config.NOISE_HALF_WIDTH, config.NOISE_HALF_WIDTH, size=t.shape)
    return np.clip(base + noise, config.NORMAL_MIN, config.NORMAL_MAX)


def generate_soil_data(num_points: int = None,
                       anomaly_intensity: float = None,
                       rng=None) -> SoilSeries:
    """
    Generate a synthetic soil moisture series with injected anomalies.

    Args:
        num_points: Number of timesteps. Defaults to config.NUM_POINTS.
        anomaly_intensity: 0–1 knob scaling spike/drop magnitude.
            Defaults to config.ANOMALY_INTENSITY.
        rng: numpy Generator or int seed. Defaults to config.RANDOM_STATE.

    Returns:
        SoilSeries with ground-truth labels.

    Raises:
        InvalidConfigurationError: If the series is too short to place
            the required number of distinct anomalies away from its edges.
    """
    num_points = num_points if num_points is not None else config.NUM_POINTS
    if anomaly_intensity is None:
        anomaly_intensity = config.ANOMALY_INTENSITY
    rng = make_rng(rng)

    t = np.arange(num_points, dtype=np.float64)
    moisture = base_signal(t, rng)
    labels = np.zeros(num_points, dtype=bool)

    anomaly_count = int(np.floor(num_points * config.ANOMALY_FRACTION))
    candidates = np.arange(config.EDGE_MARGIN, num_points - config.EDGE_MARGIN)
    if anomaly_count > len(candidates):
        raise InvalidConfigurationError(
            f"Cannot place {anomaly_count} anomalies in a series of "
            f"{num_points} points (first and last {config.EDGE_MARGIN} "
            f"samples are reserved)"
        )

    if anomaly_count > 0:
        positions = rng.choice(candidates, size=anomaly_count, replace=False)
        magnitude = (config.ANOMALY_BASE_MAGNITUDE
                     + anomaly_intensity * config.ANOMALY_INTENSITY_SCALE)
        is_spike = rng.random(anomaly_count) > 0.5

        spikes = np.minimum(config.MOISTURE_MAX, moisture[positions] + magnitude)
        drops = np.maximum(config.MOISTURE_MIN, moisture[positions] - magnitude)
        moisture[positions] = np.where(is_spike, spikes, drops)
        labels[positions] = True

    samples = tuple(
        SoilSample(timestamp=i, moisture=float(moisture[i]), is_anomaly=bool(labels[i]))
        for i in range(num_points)
    )
    series = SoilSeries(samples=samples, source=SYNTHETIC, has_ground_truth=True)

    logger.info(f"Generated {num_points} timesteps, {anomaly_count} anomalies "
                f"injected (intensity={anomaly_intensity:.2f})")
    return series
