"""
Binning of feature columns into evaluation grids.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from ..core.config import get_settings
from .sampling import resolve_count

logger = logging.getLogger(__name__)

CUT_TYPES = ('equal', 'quantile')


@dataclass(frozen=True)
class CutResult:
    """Binned feature.

    Attributes:
        grid: One representative value per bin (distinct values for
            discrete features, bin midpoints otherwise)
        bins: Representative value of every row, aligned to the input index
        breaks: Bin edges for continuous features, None when discrete
        discrete: Whether the feature was treated as discrete
    """
    grid: np.ndarray
    bins: pd.Series
    breaks: Optional[np.ndarray]
    discrete: bool


def is_discrete(x: pd.Series, n_bins: int) -> bool:
    """Non-numeric features and those with few distinct values are discrete."""
    if is_bool_dtype(x) or not is_numeric_dtype(x):
        return True
    return x.nunique(dropna=True) <= n_bins


def bin_codes(values: np.ndarray, breaks: np.ndarray) -> np.ndarray:
    """Index of the right-closed bin of each value, -1 when outside.

    The first bin is closed on both sides.
    """
    values = np.asarray(values, dtype=float)
    codes = np.searchsorted(breaks, values, side='left') - 1
    codes[values == breaks[0]] = 0
    codes[(values < breaks[0]) | (values > breaks[-1]) | np.isnan(values)] = -1
    return codes


def _distinct_values(x: pd.Series) -> np.ndarray:
    if isinstance(x.dtype, pd.CategoricalDtype):
        present = set(x.dropna().unique())
        return np.asarray([cat for cat in x.cat.categories if cat in present], dtype=object)
    values = pd.unique(x.dropna())
    try:
        return np.sort(values)
    except TypeError:
        return np.asarray(sorted(values, key=str), dtype=object)


def make_breaks(x: pd.Series, n_bins: int, cut_type: str) -> np.ndarray:
    values = x.astype(float).to_numpy()
    if cut_type == 'quantile':
        breaks = np.nanquantile(values, np.linspace(0, 1, n_bins + 1))
    elif cut_type == 'equal':
        breaks = np.linspace(np.nanmin(values), np.nanmax(values), n_bins + 1)
    else:
        raise ValueError(f"Unknown cut_type: {cut_type}. Use one of {CUT_TYPES}")
    return np.unique(breaks)


def auto_cut(
    x: pd.Series,
    n_bins: Optional[int] = None,
    cut_type: Optional[str] = None,
    breaks: Optional[Sequence[float]] = None
) -> CutResult:
    """Bin a feature for profiles and effects.

    Args:
        x: Feature values
        n_bins: Maximum number of bins (default from settings)
        cut_type: 'equal' width or 'quantile' bins (default from settings)
        breaks: Explicit bin edges; forces continuous treatment

    Returns:
        CutResult with grid, per-row bin values and breaks
    """
    settings = get_settings().analysis
    n_bins = resolve_count(n_bins, settings.n_bins, 'n_bins', minimum=2)
    cut_type = cut_type or settings.cut_type

    if breaks is None and is_discrete(x, n_bins):
        return CutResult(grid=_distinct_values(x), bins=x, breaks=None, discrete=True)

    if breaks is None:
        breaks = make_breaks(x, n_bins, cut_type)
    else:
        breaks = np.unique(np.asarray(breaks, dtype=float))
    if len(breaks) < 2:
        raise ValueError(f"At least two distinct breaks are needed for '{x.name}'")

    mids = (breaks[:-1] + breaks[1:]) / 2
    codes = bin_codes(x.to_numpy(dtype=float), breaks)
    if (codes < 0).any():
        logger.debug(f"{int((codes < 0).sum())} values of '{x.name}' fall outside the breaks")

    bins = pd.Series(
        np.where(codes >= 0, mids[np.clip(codes, 0, None)], np.nan),
        index=x.index,
        name=x.name
    )
    return CutResult(grid=mids, bins=bins, breaks=breaks, discrete=False)
