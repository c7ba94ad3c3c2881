"""Feature effects, interactions and local explanations."""

from .ice import light_ice
from .profile import light_profile
from .effects import light_effects
from .interaction import light_interaction
from .breakdown import light_breakdown
from .surrogate import light_global_surrogate
from .report import FlashlightReport

__all__ = [
    'light_ice',
    'light_profile',
    'light_effects',
    'light_interaction',
    'light_breakdown',
    'light_global_surrogate',
    'FlashlightReport'
]
