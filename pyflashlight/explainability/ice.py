"""
Individual conditional expectation (ICE) curves.
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..core.config import get_settings
from ..core.flashlight import Flashlight, MultiFlashlight, as_flashlights
from ..core.results import LightIce
from ..data.binning import auto_cut
from ..data.frames import predict_on_grid
from ..data.sampling import iter_groups, resolve_by, resolve_count, resolve_seed, sample_indices

logger = logging.getLogger(__name__)

CENTER_OPTIONS = ('no', 'first', 'middle', 'last', 'mean')


def evaluation_grid(
    fl: Flashlight,
    v: str,
    evaluate_at: Optional[Sequence] = None,
    breaks: Optional[Sequence[float]] = None,
    n_bins: Optional[int] = None,
    cut_type: Optional[str] = None
) -> np.ndarray:
    """Values at which v is swept, computed on the full data of fl."""
    if evaluate_at is not None:
        return np.asarray(evaluate_at)
    return auto_cut(fl.require_data()[v], n_bins=n_bins, cut_type=cut_type, breaks=breaks).grid


def center_curves(values: np.ndarray, center: str) -> np.ndarray:
    """Shift each curve (row) to a common anchor."""
    if center not in CENTER_OPTIONS:
        raise ValueError(f"Unknown center: {center}. Use one of {CENTER_OPTIONS}")
    if center == 'no' or values.shape[1] == 0:
        return values
    if center == 'mean':
        return values - values.mean(axis=1, keepdims=True)

    column = {'first': 0, 'middle': (values.shape[1] - 1) // 2, 'last': -1}[center]
    return values - values[:, [column]]


def light_ice(
    x: Union[Flashlight, MultiFlashlight],
    v: str,
    by: Optional[Sequence[str]] = None,
    evaluate_at: Optional[Sequence] = None,
    breaks: Optional[Sequence[float]] = None,
    n_bins: Optional[int] = None,
    cut_type: Optional[str] = None,
    n_max: Optional[int] = None,
    seed: Optional[int] = None,
    center: str = 'no'
) -> LightIce:
    """ICE curves of one feature.

    Up to n_max rows (per group) are drawn without replacement; every
    explainer uses the same rows for the same seed.

    Args:
        x: Flashlight or MultiFlashlight
        v: Feature to sweep
        by: Grouping column(s)
        evaluate_at: Explicit grid; otherwise derived with ``auto_cut``
        breaks: Explicit bin edges for the grid
        n_bins: Maximum number of grid points for continuous features
        cut_type: 'equal' or 'quantile'
        n_max: Maximum number of curves per group
        seed: Random seed for the row sample
        center: 'no', 'first', 'middle', 'last' or 'mean'

    Returns:
        LightIce with one curve per sampled row
    """
    if center not in CENTER_OPTIONS:
        raise ValueError(f"Unknown center: {center}. Use one of {CENTER_OPTIONS}")
    n_max = resolve_count(n_max, get_settings().analysis.n_max, 'n_max')
    seed = resolve_seed(seed)

    fls = as_flashlights(x)
    frames = []
    n_curves = 0

    for fl in fls:
        group_cols = resolve_by(fl.by, by)
        fl.check_columns([v, *group_cols])
        data = fl.require_data()
        grid = evaluation_grid(fl, v, evaluate_at, breaks, n_bins, cut_type)
        rng = np.random.default_rng(seed)

        logger.info(f"ICE of '{v}' for '{fl.label}' on {len(grid)} grid points")

        for key, positions in iter_groups(data, group_cols):
            chosen = positions[sample_indices(len(positions), n_max, rng)]
            rows = data.iloc[chosen]
            values = center_curves(predict_on_grid(fl, rows, v, grid), center)

            curves = pd.DataFrame({
                'label': fl.label,
                **{col: [val] * values.size for col, val in key.items()},
                'id': np.repeat(rows.index.to_numpy(), len(grid)),
                'variable': v,
                'x': np.tile(grid, len(rows)),
                'value': values.reshape(-1)
            })
            frames.append(curves)
            n_curves += len(rows)

    group_cols = resolve_by(fls[0].by, by)
    columns = ['label', *group_cols, 'id', 'variable', 'x', 'value']
    result = pd.concat(frames, ignore_index=True).reindex(columns=columns)

    return LightIce(
        data=result,
        by=tuple(group_cols),
        variable=v,
        center=center,
        n_curves=n_curves
    )
