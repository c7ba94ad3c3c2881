"""
Feature profiles: partial dependence, accumulated local effects (ALE) and
binned averages of predictions, responses or residuals (M-plots).
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from ..core.config import get_settings
from ..core.flashlight import Flashlight, MultiFlashlight, as_flashlights
from ..core.results import LightProfile
from ..data.binning import CutResult, auto_cut, bin_codes, is_discrete, make_breaks
from ..data.frames import predict_on_grid, set_column
from ..data.sampling import iter_groups, resolve_by, resolve_count, resolve_seed, sample_indices

logger = logging.getLogger(__name__)

PROFILE_TYPES = ('partial dependence', 'ale', 'predicted', 'response', 'residual')
BINNED_TYPES = ('predicted', 'response', 'residual')
STATS = ('mean', 'quartiles')


def _weights_at(w: Optional[np.ndarray], positions: np.ndarray) -> Optional[np.ndarray]:
    return None if w is None else w[positions]


def _grid_index(grid: np.ndarray) -> pd.Index:
    return pd.Index(list(grid), dtype=object)


def bin_counts(bins: pd.Series, grid: np.ndarray) -> np.ndarray:
    """Number of rows whose bin value equals each grid value."""
    counts = pd.Series(np.asarray(bins, dtype=object)).value_counts(dropna=True)
    return counts.reindex(_grid_index(grid), fill_value=0).to_numpy(dtype=int)


def binned_profile(
    values: np.ndarray,
    bins: pd.Series,
    grid: np.ndarray,
    w: Optional[np.ndarray] = None,
    stats: str = 'mean'
) -> pd.DataFrame:
    """Weighted mean of values per bin, reported at every grid value.

    Returns:
        DataFrame with x, value, counts (and q1, q3 for quartiles)
    """
    frame = pd.DataFrame({
        'bin': np.asarray(bins, dtype=object),
        'value': np.asarray(values, dtype=float),
        'w': np.ones(len(values)) if w is None else np.asarray(w, dtype=float)
    })
    frame = frame[frame['bin'].notna()]
    frame['wv'] = frame['value'] * frame['w']

    grouped = frame.groupby('bin', sort=False)
    sums = grouped[['wv', 'w']].sum()
    with np.errstate(divide='ignore', invalid='ignore'):
        means = sums['wv'] / sums['w']

    index = _grid_index(grid)
    result = pd.DataFrame({
        'x': grid,
        'value': means.reindex(index).to_numpy(),
        'counts': grouped.size().reindex(index, fill_value=0).to_numpy()
    })

    if stats == 'quartiles':
        quartiles = grouped['value'].quantile([0.25, 0.75]).unstack()
        result['q1'] = quartiles[0.25].reindex(index).to_numpy()
        result['q3'] = quartiles[0.75].reindex(index).to_numpy()

    return result


def partial_dependence(
    fl: Flashlight,
    rows: pd.DataFrame,
    v: str,
    grid: np.ndarray,
    w: Optional[np.ndarray] = None
) -> np.ndarray:
    """Weighted average of the ICE curves of rows at each grid value."""
    if len(rows) == 0:
        return np.full(len(grid), np.nan)
    return np.average(predict_on_grid(fl, rows, v, grid), axis=0, weights=w)


def ale_breaks(
    x: pd.Series,
    breaks: Optional[Sequence[float]] = None,
    n_bins: Optional[int] = None,
    cut_type: Optional[str] = None
) -> np.ndarray:
    """Bin edges for ALE; distinct values serve as edges for discrete features."""
    if is_bool_dtype(x) or not is_numeric_dtype(x):
        raise ValueError(f"ALE profiles need a numeric feature, '{x.name}' is {x.dtype}")

    settings = get_settings().analysis
    n_bins = resolve_count(n_bins, settings.n_bins, 'n_bins', minimum=2)
    if breaks is not None:
        edges = np.unique(np.asarray(breaks, dtype=float))
    elif is_discrete(x, n_bins):
        edges = np.unique(x.dropna().to_numpy(dtype=float))
    else:
        edges = make_breaks(x, n_bins, cut_type or settings.cut_type)

    if len(edges) < 2:
        raise ValueError(f"ALE needs at least two distinct values of '{x.name}'")
    return edges


def accumulated_local_effects(
    fl: Flashlight,
    rows: pd.DataFrame,
    v: str,
    breaks: np.ndarray,
    w: Optional[np.ndarray] = None
) -> pd.DataFrame:
    """Centered ALE profile of v over the bins defined by breaks.

    Within each bin the local effect is the weighted mean prediction change
    when v moves from the lower to the upper edge; effects are accumulated
    and centered so that their mean weighted by ``counts`` is zero.

    Returns:
        DataFrame with x (bin midpoints), value, counts (sum of case weights
        per bin, the number of rows when unweighted)
    """
    n_bins = len(breaks) - 1
    codes = bin_codes(rows[v].to_numpy(dtype=float), breaks)
    inside = codes >= 0
    codes = codes[inside]
    in_rows = rows.iloc[np.flatnonzero(inside)]
    weights = np.ones(len(in_rows)) if w is None else np.asarray(w, dtype=float)[inside]

    bin_weight = np.bincount(codes, weights=weights, minlength=n_bins)

    effects = np.zeros(n_bins)
    if len(in_rows):
        upper = fl.predict(set_column(in_rows, v, breaks[codes + 1]))
        lower = fl.predict(set_column(in_rows, v, breaks[codes]))
        weighted_diff = np.bincount(codes, weights=weights * (upper - lower), minlength=n_bins)
        filled = bin_weight > 0
        effects[filled] = weighted_diff[filled] / bin_weight[filled]

    if (bin_weight <= 0).any():
        logger.warning(f"ALE of '{v}': {int((bin_weight <= 0).sum())} empty bin(s) contribute 0")

    accumulated = np.concatenate([[0.0], np.cumsum(effects)])
    uncentered = (accumulated[:-1] + accumulated[1:]) / 2
    if bin_weight.sum() > 0:
        uncentered = uncentered - np.average(uncentered, weights=bin_weight)

    return pd.DataFrame({
        'x': (breaks[:-1] + breaks[1:]) / 2,
        'value': uncentered,
        'counts': bin_weight
    })


def _profile_values(fl: Flashlight, type: str, rows: pd.DataFrame) -> np.ndarray:
    if type == 'predicted':
        return fl.predict(rows)
    y = np.asarray(fl.response(rows), dtype=float)
    if type == 'response':
        return y
    return y - fl.predict(rows)


def _group_profile(
    fl: Flashlight,
    type: str,
    data: pd.DataFrame,
    positions: np.ndarray,
    v: str,
    cut: Optional[CutResult],
    grid: Optional[np.ndarray],
    edges: Optional[np.ndarray],
    n_max: int,
    rng: np.random.Generator,
    stats: str
) -> pd.DataFrame:
    w = fl.weights(data)

    if type in BINNED_TYPES:
        rows = data.iloc[positions]
        return binned_profile(
            _profile_values(fl, type, rows),
            cut.bins.iloc[positions],
            cut.grid,
            _weights_at(w, positions),
            stats
        )

    chosen = positions[sample_indices(len(positions), n_max, rng)]
    rows = data.iloc[chosen]

    if type == 'ale':
        return accumulated_local_effects(fl, rows, v, edges, _weights_at(w, chosen))

    values = partial_dependence(fl, rows, v, grid, _weights_at(w, chosen))
    counts = (
        bin_counts(cut.bins.iloc[positions], grid) if cut is not None
        else np.full(len(grid), np.nan)
    )
    return pd.DataFrame({'x': grid, 'value': values, 'counts': counts})


def light_profile(
    x: Union[Flashlight, MultiFlashlight],
    v: str,
    type: str = 'partial dependence',
    by: Optional[Sequence[str]] = None,
    stats: str = 'mean',
    evaluate_at: Optional[Sequence] = None,
    breaks: Optional[Sequence[float]] = None,
    n_bins: Optional[int] = None,
    cut_type: Optional[str] = None,
    n_max: Optional[int] = None,
    seed: Optional[int] = None
) -> LightProfile:
    """Profile of one feature.

    Args:
        x: Flashlight or MultiFlashlight
        v: Feature name
        type: 'partial dependence', 'ale', 'predicted' (M-plot),
            'response' or 'residual'
        by: Grouping column(s), one curve per group
        stats: 'mean' or 'quartiles' (binned types only)
        evaluate_at: Explicit grid for partial dependence
        breaks: Explicit bin edges
        n_bins: Maximum number of bins
        cut_type: 'equal' or 'quantile'
        n_max: Maximum rows sampled per group for partial dependence and ALE
        seed: Random seed of the row sample

    Returns:
        LightProfile with columns label, *by*, variable, type, x, value, counts
    """
    if type not in PROFILE_TYPES:
        raise ValueError(f"Unknown profile type: {type}. Use one of {PROFILE_TYPES}")
    if stats not in STATS:
        raise ValueError(f"Unknown stats: {stats}. Use one of {STATS}")
    if stats == 'quartiles' and type not in BINNED_TYPES:
        raise ValueError(f"Quartiles are only available for {BINNED_TYPES}")

    n_max = resolve_count(n_max, get_settings().analysis.n_max, 'n_max')
    seed = resolve_seed(seed)

    fls = as_flashlights(x)
    frames = []

    for fl in fls:
        group_cols = resolve_by(fl.by, by)
        fl.check_columns([v, *group_cols])
        data = fl.require_data()

        cut = grid = edges = None
        if type == 'ale':
            edges = ale_breaks(data[v], breaks, n_bins, cut_type)
        elif type == 'partial dependence' and evaluate_at is not None:
            grid = np.asarray(evaluate_at)
        else:
            cut = auto_cut(data[v], n_bins=n_bins, cut_type=cut_type, breaks=breaks)
            grid = cut.grid

        logger.info(f"Computing {type} profile of '{v}' for '{fl.label}'")
        rng = np.random.default_rng(seed)

        for key, positions in iter_groups(data, group_cols):
            profile = _group_profile(
                fl, type, data, positions, v, cut, grid, edges, n_max, rng, stats
            )
            for col, val in key.items():
                profile[col] = val
            profile['label'] = fl.label
            profile['variable'] = v
            profile['type'] = type
            frames.append(profile)

    group_cols = resolve_by(fls[0].by, by)
    columns = ['label', *group_cols, 'variable', 'type', 'x', 'value', 'counts']
    if stats == 'quartiles':
        columns += ['q1', 'q3']
    result = pd.concat(frames, ignore_index=True).reindex(columns=columns)

    return LightProfile(data=result, by=tuple(group_cols), variable=v, type=type, stats=stats)
