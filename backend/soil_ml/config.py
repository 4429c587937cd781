"""
config.py — Pipeline Configuration Constants
=============================================

Centralizes hyperparameters, thresholds and rule constants used by the
soil moisture anomaly detection pipeline. Tuning these values adjusts how
the synthetic data looks, how the autoencoder learns and how sensitive the
classifier and the insight rules are.

Operational knobs (log level, seed, threshold, epochs) can be overridden
through environment variables.
"""

import os

# ═══════════════════════════════════════════════════════════════════
# SYNTHETIC SIGNAL GENERATION
# ═══════════════════════════════════════════════════════════════════

# Default length of a generated series (one sample per timestep).
NUM_POINTS = 300

# Anomaly magnitude knob in [0, 1]; 0 → 20 units, 1 → 50 units.
ANOMALY_INTENSITY = 0.5

# Fraction of timesteps that receive an injected spike or drop.
ANOMALY_FRACTION = 0.08

# The first and last EDGE_MARGIN samples never carry an anomaly.
EDGE_MARGIN = 20

# Spike / drop magnitude = ANOMALY_BASE_MAGNITUDE + intensity * ANOMALY_INTENSITY_SCALE
ANOMALY_BASE_MAGNITUDE = 20.0
ANOMALY_INTENSITY_SCALE = 30.0

# Base signal: BASE_LEVEL + A1·sin(F1·t) + A2·sin(F2·t + PHASE2) + noise
BASE_LEVEL = 45.0
BASE_AMPLITUDE_1 = 10.0
BASE_FREQUENCY_1 = 0.05
BASE_AMPLITUDE_2 = 5.0
BASE_FREQUENCY_2 = 0.13
BASE_PHASE_2 = 1.2
NOISE_HALF_WIDTH = 2.0

# Normal readings are clamped to this band; anomalies to [0, 100].
NORMAL_MIN = 20.0
NORMAL_MAX = 80.0
MOISTURE_MIN = 0.0
MOISTURE_MAX = 100.0

# ═══════════════════════════════════════════════════════════════════
# CSV IMPORT
# ═══════════════════════════════════════════════════════════════════

# Substitute for moisture fields that cannot be parsed.
DEFAULT_MOISTURE = 50.0

# ═══════════════════════════════════════════════════════════════════
# SLIDING WINDOW CONFIGURATION
# ═══════════════════════════════════════════════════════════════════

# Number of consecutive samples per window (= autoencoder input size).
WINDOW_SIZE = 10

# Guards min-max normalization against a constant series.
NORMALIZATION_EPSILON = 1e-9

# ═══════════════════════════════════════════════════════════════════
# AUTOENCODER HYPERPARAMETERS
# ═══════════════════════════════════════════════════════════════════

# Bottleneck width of the encoder layer.
ENCODER_UNITS = 8

EPOCHS = int(os.environ.get("SOIL_ML_EPOCHS", "60"))
BATCH_SIZE = 32
LEARNING_RATE = 0.001

# Tail fraction of the training windows held out for validation loss.
# Monitoring only; there is no early stopping.
VALIDATION_SPLIT = 0.1

# Training refuses to start with fewer normal windows than this.
MIN_NORMAL_WINDOWS = 10

# Decoder bias starts at logit(mean input), clipped to this margin.
DECODER_BIAS_CLIP = 1e-4

# Seed for generation and training. None → fresh entropy every run.
_seed = os.environ.get("SOIL_ML_SEED")
RANDOM_STATE = int(_seed) if _seed else None

# ═══════════════════════════════════════════════════════════════════
# ANOMALY CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════

# Reconstruction MSE above which a window is anomalous.
ANOMALY_THRESHOLD = float(os.environ.get("SOIL_ML_THRESHOLD", "0.02"))

# ═══════════════════════════════════════════════════════════════════
# INSIGHT RULES
# ═══════════════════════════════════════════════════════════════════

MAX_INSIGHTS = 8
HIGH_ANOMALY_RATE = 0.15
SPIKE_DELTA = 20.0
TREND_HORIZON = 20
TREND_DELTA = 10.0
LOW_MOISTURE = 30.0
HIGH_MOISTURE = 70.0
THRESHOLD_SUGGESTION_FACTOR = 2.5
THRESHOLD_SUGGESTION_MIN_DELTA = 0.05
CLUSTER_SPAN = 15

SEVERITY_ORDER = {"critical": 0, "warning": 1, "info": 2, "success": 3}

# ═══════════════════════════════════════════════════════════════════
# TINYML SIZE ESTIMATES (simulated, not measured)
# ═══════════════════════════════════════════════════════════════════

FLOAT32_BYTES = 4
INT8_BYTES = 1
QUANTIZED_OVERHEAD_KB = 2.0
RUNTIME_OVERHEAD_KB = 4.0
INFERENCE_MS_PER_PARAM = 0.002
INFERENCE_JITTER_MS = 0.3

MODEL_NAME = "soil_moisture_autoencoder"
MODEL_VERSION = "1.0.0"
MODEL_FORMAT = "TFLite-INT8-simulated"
TARGET_DEVICES = ["ESP32", "Arduino Nano 33 BLE", "STM32", "Raspberry Pi Pico"]

# ═══════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════

# Log level for the pipeline (DEBUG, INFO, WARNING, ERROR, CRITICAL)
LOG_LEVEL = os.environ.get("SOIL_ML_LOG_LEVEL", "INFO")
