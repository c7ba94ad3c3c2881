"""Model performance and permutation importance."""

from .performance import light_performance
from .importance import light_importance

__all__ = [
    'light_performance',
    'light_importance'
]
