"""Explainers, metrics, configuration and result types."""

from .config import (
    Settings,
    configure_logging,
    get_settings,
    load_settings,
    reload_settings
)
from .exceptions import (
    FlashlightError,
    SchemaMismatch,
    PredictionFailure
)
from .flashlight import (
    Flashlight,
    MultiFlashlight,
    flashlight,
    multiflashlight
)
from .metrics import (
    BUILTIN_METRICS,
    HIGHER_IS_BETTER,
    rmse,
    mse,
    mae,
    mape,
    r_squared,
    logloss,
    deviance_poisson,
    accuracy
)

__all__ = [
    'Settings',
    'configure_logging',
    'get_settings',
    'load_settings',
    'reload_settings',
    'FlashlightError',
    'SchemaMismatch',
    'PredictionFailure',
    'Flashlight',
    'MultiFlashlight',
    'flashlight',
    'multiflashlight',
    'BUILTIN_METRICS',
    'HIGHER_IS_BETTER',
    'rmse',
    'mse',
    'mae',
    'mape',
    'r_squared',
    'logloss',
    'deviance_poisson',
    'accuracy'
]
