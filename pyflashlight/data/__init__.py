"""Binning, sampling and grid expansion of evaluation data."""

from .binning import CutResult, auto_cut
from .sampling import sample_rows, spawn_seeds

__all__ = [
    'CutResult',
    'auto_cut',
    'sample_rows',
    'spawn_seeds'
]
