"""
errors.py — Pipeline Precondition Errors
=========================================

Every failure the pipeline surfaces to its caller is one of these.
Messages name the unmet precondition ("not enough normal data for
training") so the caller can report it verbatim.
"""


class SoilMLError(Exception):
    """Base class for all pipeline errors."""


class InsufficientDataError(SoilMLError):
    """Too few samples or normal windows to run a stage."""


class ModelNotTrainedError(SoilMLError):
    """Inference requested without a successfully trained model."""


class StaleModelError(ModelNotTrainedError):
    """The model was trained on a different series than the one supplied."""


class InvalidConfigurationError(SoilMLError, ValueError):
    """A caller-supplied parameter is out of range."""


class TrainingCancelledError(SoilMLError):
    """The training run was cancelled before its last epoch."""


class TrainingInProgressError(SoilMLError):
    """A second training was requested while one is still running."""
