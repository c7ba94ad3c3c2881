"""Model-agnostic interpretation of fitted models."""

from .core import (
    Flashlight,
    MultiFlashlight,
    flashlight,
    multiflashlight,
    FlashlightError,
    SchemaMismatch,
    PredictionFailure,
    configure_logging,
    get_settings
)
from .core.results import (
    LightPerformance,
    LightImportance,
    LightIce,
    LightProfile,
    LightEffects,
    LightInteraction,
    LightBreakdown,
    LightGlobalSurrogate
)
from .models import light_performance, light_importance
from .explainability import (
    light_ice,
    light_profile,
    light_effects,
    light_interaction,
    light_breakdown,
    light_global_surrogate,
    FlashlightReport
)

__version__ = '0.1.0'

__all__ = [
    'Flashlight',
    'MultiFlashlight',
    'flashlight',
    'multiflashlight',
    'FlashlightError',
    'SchemaMismatch',
    'PredictionFailure',
    'configure_logging',
    'get_settings',
    'LightPerformance',
    'LightImportance',
    'LightIce',
    'LightProfile',
    'LightEffects',
    'LightInteraction',
    'LightBreakdown',
    'LightGlobalSurrogate',
    'light_performance',
    'light_importance',
    'light_ice',
    'light_profile',
    'light_effects',
    'light_interaction',
    'light_breakdown',
    'light_global_surrogate',
    'FlashlightReport'
]
