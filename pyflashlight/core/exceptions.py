"""
Exceptions raised by the interpretability engine.
"""


class FlashlightError(Exception):
    """Base class for all pyflashlight errors."""


class SchemaMismatch(FlashlightError, ValueError):
    """A feature, grouping variable, weight or target column is missing."""

    def __init__(self, missing, where: str = "data", message: str = None):
        if isinstance(missing, str):
            missing = [missing]
        self.missing = list(missing)
        self.where = where
        super().__init__(message or f"Column(s) {self.missing} not found in {where}")


class PredictionFailure(FlashlightError, RuntimeError):
    """The prediction function raised or returned an unusable vector."""

    def __init__(self, label: str, reason: str):
        self.label = label
        self.reason = reason
        super().__init__(f"Prediction failed for '{label}': {reason}")
