"""
utils.py — Shared Utility Functions and Logging Setup
======================================================

Common helpers used across the pipeline modules.
"""

import logging

import numpy as np

from . import config


def setup_logging(level: str = None) -> None:
    """
    Configure structured logging for the pipeline.

    Sets up a console handler with timestamp, logger name, level,
    and message. All soil_ml.* loggers inherit this configuration.

    Args:
        level: Log level string (DEBUG/INFO/WARNING/ERROR/CRITICAL).
               Defaults to config.LOG_LEVEL.
    """
    level = level or config.LOG_LEVEL
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(name)s] %(levelname)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    pipeline_logger = logging.getLogger("soil_ml")
    pipeline_logger.setLevel(numeric_level)

    # Avoid duplicate handlers on repeated calls
    if not pipeline_logger.handlers:
        pipeline_logger.addHandler(handler)


def make_rng(seed=None) -> np.random.Generator:
    """
    Return a numpy Generator.

    Args:
        seed: An int seed, an existing Generator (returned as-is) or None
              for config.RANDOM_STATE.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed if seed is not None else config.RANDOM_STATE)
