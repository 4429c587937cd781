"""
tinyml.py — Simulated TinyML Size Estimates
============================================

Derives the figures an embedded deployment would care about from the
parameter count alone. Nothing is converted or measured on hardware:

    original_size_kb  = params · 4 B / 1024           (float32 weights)
    quantized_size_kb = params · 1 B / 1024 + 2 KB    (int8 + metadata)
    reduction_percent = round((original − quantized) / original · 100)
    estimated_ram_kb  = quantized · 2 + 4 KB          (activations + runtime)
    inference_time_ms = params · 0.002 + U[0, 0.3)    (Cortex-M ballpark)

For the default 186-parameter (10 → 8 → 10) autoencoder the quantized figure is larger
than the float one because the 2 KB overhead dominates; the reduction
is therefore negative. That is reported as-is.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from . import config
from .model import TrainedModel, is_ready
from .utils import make_rng

logger = logging.getLogger("soil_ml.tinyml")


@dataclass(frozen=True)
class ModelInfo:
    parameter_count: int
    original_size_kb: float
    quantized_size_kb: float
    reduction_percent: int
    estimated_ram_kb: float
    inference_time_ms: float
    input_size: int = config.WINDOW_SIZE
    encoding_units: int = config.ENCODER_UNITS


EMPTY_MODEL_INFO = ModelInfo(0, 0.0, 0.0, 0, 0.0, 0.0)


def estimate_model_info(parameter_count: int, rng=None, input_size: int = None,
                        encoding_units: int = None) -> ModelInfo:
    """
    Simulated size / RAM / latency figures for `parameter_count` weights.

    input_size and encoding_units describe the layer shapes for the
    model summary; they default to the configured architecture.
    """
    if parameter_count <= 0:
        return EMPTY_MODEL_INFO

    rng = make_rng(rng)
    original = parameter_count * config.FLOAT32_BYTES / 1024
    quantized = parameter_count * config.INT8_BYTES / 1024 + config.QUANTIZED_OVERHEAD_KB
    reduction = round((original - quantized) / original * 100)
    ram = quantized * 2 + config.RUNTIME_OVERHEAD_KB
    latency = (parameter_count * config.INFERENCE_MS_PER_PARAM
               + rng.random() * config.INFERENCE_JITTER_MS)

    return ModelInfo(
        parameter_count=parameter_count,
        original_size_kb=round(original, 2),
        quantized_size_kb=round(quantized, 2),
        reduction_percent=int(reduction),
        estimated_ram_kb=round(ram, 2),
        inference_time_ms=round(latency, 2),
        input_size=input_size or config.WINDOW_SIZE,
        encoding_units=encoding_units or config.ENCODER_UNITS,
    )


def get_model_info(model: Optional[TrainedModel], rng=None) -> ModelInfo:
    """Size estimate for a trained model; zeros when there is none."""
    if not is_ready(model):
        return EMPTY_MODEL_INFO
    info = estimate_model_info(model.parameter_count, rng,
                               input_size=model.input_size,
                               encoding_units=model.encoding_units)
    logger.debug(f"Model info: {info}")
    return info
