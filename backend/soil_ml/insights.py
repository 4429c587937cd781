"""
insights.py — Rule-Based Insight Engine
========================================

Converts the raw series and the classifier output into short,
human-readable alerts for an agronomist.

Rules (each evaluated independently, in this order):
    1. stable               success   no window flagged
    2. high-rate            critical  > 15 % of windows flagged
    3. spike-<t> (many)     warning   |moisture[t] − moisture[t−1]| > 20
    4. rapid-decrease       warning   last 20 samples fell by > 10
       rapid-increase       info      last 20 samples rose by > 10
    5. low/high/optimal     critical / warning / info on the mean level
    6. threshold-suggestion info      2.5 × mean error differs by > 0.05
    7. cluster-<i>          critical  first 3 flagged centers within 15 steps

Results are stably sorted critical → warning → info → success (rule
order breaks ties) and truncated to 8.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from . import config

logger = logging.getLogger("soil_ml.insights")

CRITICAL = "critical"
WARNING = "warning"
INFO = "info"
SUCCESS = "success"


@dataclass(frozen=True)
class Insight:
    id: str
    severity: str
    icon: str
    message: str
    timestamp: datetime
    timestep: Optional[int] = None


def _stability(anomaly_count: int, now: datetime) -> list[Insight]:
    if anomaly_count:
        return []
    return [Insight("stable", SUCCESS, "✅",
                    "System stable. All moisture readings within normal parameters.", now)]


def _high_rate(anomaly_count: int, total: int, now: datetime) -> list[Insight]:
    rate = anomaly_count / max(total, 1)
    if rate <= config.HIGH_ANOMALY_RATE:
        return []
    return [Insight("high-rate", CRITICAL, "🚨",
                    f"High anomaly rate detected: {rate * 100:.1f}% of windows flagged. "
                    f"Sensor calibration recommended.", now)]


def _spikes(moisture: list[float], now: datetime) -> list[Insight]:
    found = []
    for t in range(1, len(moisture)):
        delta = moisture[t] - moisture[t - 1]
        if abs(delta) <= config.SPIKE_DELTA:
            continue
        direction = "spike" if delta > 0 else "drop"
        found.append(Insight(
            f"spike-{t}", WARNING, "📈" if delta > 0 else "📉",
            f"Sudden {direction} detected at timestep {t}: {abs(delta):.1f} unit change "
            f"({moisture[t - 1]:.1f}% → {moisture[t]:.1f}%).",
            now, timestep=t,
        ))
    return found


def _trend(moisture: list[float], now: datetime) -> list[Insight]:
    if len(moisture) < config.TREND_HORIZON:
        return []
    recent = moisture[-config.TREND_HORIZON:]
    trend = recent[-1] - recent[0]
    if trend < -config.TREND_DELTA:
        return [Insight("rapid-decrease", WARNING, "💧",
                        f"Moisture decreasing rapidly over last {config.TREND_HORIZON} "
                        f"samples: −{abs(trend):.1f}%. Consider irrigation.", now)]
    if trend > config.TREND_DELTA:
        return [Insight("rapid-increase", INFO, "🌧️",
                        f"Moisture increasing steadily over last {config.TREND_HORIZON} "
                        f"samples: +{trend:.1f}%. Possible rainfall or irrigation active.", now)]
    return []


def _level(moisture: list[float], now: datetime) -> list[Insight]:
    average = sum(moisture) / len(moisture)
    if average < config.LOW_MOISTURE:
        return [Insight("low-moisture", CRITICAL, "🏜️",
                        f"Average moisture critically low: {average:.1f}%. "
                        f"Immediate irrigation required.", now)]
    if average > config.HIGH_MOISTURE:
        return [Insight("high-moisture", WARNING, "🌊",
                        f"Average moisture high: {average:.1f}%. Risk of waterlogging; "
                        f"reduce irrigation.", now)]
    return [Insight("optimal-moisture", INFO, "🌱",
                    f"Average moisture optimal: {average:.1f}%. "
                    f"Ideal conditions for crop growth.", now)]


def _threshold_suggestion(detections, threshold: float, now: datetime) -> list[Insight]:
    if not detections:
        return []
    average_error = sum(d.reconstruction_error for d in detections) / len(detections)
    suggested = average_error * config.THRESHOLD_SUGGESTION_FACTOR
    if abs(suggested - threshold) <= config.THRESHOLD_SUGGESTION_MIN_DELTA:
        return []
    return [Insight("threshold-suggestion", INFO, "🎯",
                    f"AI suggestion: adjust threshold to {suggested:.3f} for optimal "
                    f"detection (current: {threshold:.3f}).", now)]


def _cluster(detections, now: datetime) -> list[Insight]:
    centers = [d.timestamp_center for d in detections if d.is_anomaly]
    for i in range(len(centers) - 2):
        if centers[i + 2] - centers[i] < config.CLUSTER_SPAN:
            middle = centers[i + 1]
            # only the first cluster is reported
            return [Insight(f"cluster-{i}", CRITICAL, "⚡",
                            f"Anomaly cluster detected around timestep {middle}. "
                            f"Persistent sensor fault or soil disturbance.",
                            now, timestep=middle)]
    return []


def generate_insights(samples, detections, threshold: float,
                      now: datetime = None) -> list[Insight]:
    """
    Evaluate every rule and return the ranked insights.

    Args:
        samples: SoilSample sequence (a SoilSeries works).
        detections: DetectionResult sequence for the same series.
        threshold: Threshold the detections were classified with.
        now: Timestamp stamped on every insight. Defaults to UTC now.

    Returns:
        At most config.MAX_INSIGHTS insights, most severe first.
    """
    if not len(samples):
        return []

    now = now or datetime.now(tz=timezone.utc)
    moisture = [s.moisture for s in samples]
    anomaly_count = sum(1 for d in detections if d.is_anomaly)

    insights = []
    insights += _stability(anomaly_count, now)
    insights += _high_rate(anomaly_count, len(detections), now)
    insights += _spikes(moisture, now)
    insights += _trend(moisture, now)
    insights += _level(moisture, now)
    insights += _threshold_suggestion(detections, threshold, now)
    insights += _cluster(detections, now)

    ranked = sorted(insights, key=lambda ins: config.SEVERITY_ORDER[ins.severity])
    logger.info(f"Generated {len(insights)} insights, returning "
                f"{min(len(ranked), config.MAX_INSIGHTS)}")
    return ranked[:config.MAX_INSIGHTS]
