"""
Interaction strength with Friedman's H-statistic.

Partial dependence functions are evaluated at the observed rows of a sample,
which costs n^2 predictions per feature (or pair). All terms are centered
with the case weights before the sums are formed.
"""

import logging
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..core.config import get_settings
from ..core.flashlight import Flashlight, MultiFlashlight, as_flashlights
from ..core.results import LightInteraction
from ..data.frames import set_column
from ..data.sampling import (
    iter_groups,
    resolve_by,
    resolve_count,
    resolve_features,
    resolve_seed,
    sample_indices,
)

logger = logging.getLogger(__name__)


def _center(values: np.ndarray, w: Optional[np.ndarray]) -> np.ndarray:
    return values - np.average(values, weights=w)


def _pd_at_observed(
    fl: Flashlight,
    rows: pd.DataFrame,
    cols: Sequence[str],
    w: Optional[np.ndarray] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """Partial dependence of cols and of the remaining features at every row.

    Builds M[k, i] = f(row i with cols taken from row k).

    Returns:
        (PD of cols at x_k, PD of the other features at x_i), both length n
    """
    n = len(rows)
    # block k holds all rows i with cols copied from row k
    stacked = rows.iloc[np.tile(np.arange(n), n)]
    donors = np.repeat(np.arange(n), n)
    for col in cols:
        stacked = set_column(stacked, col, rows[col].to_numpy()[donors])

    grid = fl.predict(stacked).reshape(n, n)
    pd_cols = np.average(grid, axis=1, weights=w)
    pd_rest = np.average(grid, axis=0, weights=w)
    return pd_cols, pd_rest


def _statistic(
    num: float,
    den: float,
    w_sum: float,
    normalize: bool,
    squared: bool,
    name: str
) -> float:
    if normalize:
        if den <= 0:
            logger.warning(f"H-statistic of '{name}' has a zero denominator, returning nan")
            return np.nan
        value = num / den
    else:
        value = num / w_sum
    return float(value if squared else np.sqrt(value))


def _overall(fl, rows, v, w, normalize, squared) -> float:
    f = _center(fl.predict(rows), w)
    pd_j, pd_rest = _pd_at_observed(fl, rows, [v], w)
    resid = f - _center(pd_j, w) - _center(pd_rest, w)

    weights = np.ones(len(rows)) if w is None else w
    num = np.sum(weights * resid ** 2)
    den = np.sum(weights * f ** 2)
    return _statistic(num, den, weights.sum(), normalize, squared, v)


def _single_pd(fl, rows, v, w) -> np.ndarray:
    return _center(_pd_at_observed(fl, rows, [v], w)[0], w)


def _pairwise(fl, rows, pair, pd_single, w, normalize, squared) -> float:
    a, b = pair
    pd_ab = _center(_pd_at_observed(fl, rows, [a, b], w)[0], w)
    resid = pd_ab - pd_single[a] - pd_single[b]

    weights = np.ones(len(rows)) if w is None else w
    num = np.sum(weights * resid ** 2)
    den = np.sum(weights * pd_ab ** 2)
    return _statistic(num, den, weights.sum(), normalize, squared, f"{a}:{b}")


def _group_interaction(
    fl: Flashlight,
    rows: pd.DataFrame,
    features: List[str],
    pairwise: bool,
    normalize: bool,
    squared: bool,
    n_jobs: int
) -> Dict[str, float]:
    w = fl.weights(rows)

    if not pairwise:
        values = Parallel(n_jobs=n_jobs)(
            delayed(_overall)(fl, rows, v, w, normalize, squared) for v in features
        )
        return dict(zip(features, values))

    pairs = list(combinations(features, 2))
    singles = Parallel(n_jobs=n_jobs)(delayed(_single_pd)(fl, rows, v, w) for v in features)
    pd_single = dict(zip(features, singles))
    values = Parallel(n_jobs=n_jobs)(
        delayed(_pairwise)(fl, rows, pair, pd_single, w, normalize, squared) for pair in pairs
    )
    return {f"{a}:{b}": value for (a, b), value in zip(pairs, values)}


def light_interaction(
    x: Union[Flashlight, MultiFlashlight],
    v: Optional[Sequence[str]] = None,
    by: Optional[Sequence[str]] = None,
    pairwise: bool = False,
    n_max: Optional[int] = None,
    seed: Optional[int] = None,
    normalize: Optional[bool] = None,
    squared: Optional[bool] = None,
    n_jobs: Optional[int] = None
) -> LightInteraction:
    """Friedman's H-statistic per feature or feature pair.

    Args:
        x: Flashlight or MultiFlashlight
        v: Features to assess, typically ``most_important(top_m)`` of an
            importance result (default: all features except grouping columns)
        by: Grouping column(s), statistics are computed within groups
        pairwise: Pairwise H_jk instead of the overall H_j
        n_max: Rows sampled per group; the cost grows with n_max squared
        seed: Random seed of the row sample
        normalize: Divide by the variance of the prediction (or joint PD)
        squared: Report H^2 instead of H
        n_jobs: Parallel jobs over features or pairs (joblib)

    Returns:
        LightInteraction; pairs are labelled "a:b" in the order of v
    """
    settings = get_settings()
    n_max = resolve_count(n_max, settings.interaction.n_max, 'n_max')
    normalize = settings.interaction.normalize if normalize is None else normalize
    squared = settings.interaction.squared if squared is None else squared
    n_jobs = settings.analysis.n_jobs if n_jobs is None else n_jobs
    seed = resolve_seed(seed)

    fls = as_flashlights(x)
    rows_out = []

    for fl in fls:
        group_cols = resolve_by(fl.by, by)
        features = resolve_features(fl, v, exclude=group_cols)
        fl.check_columns(features + list(group_cols))
        data = fl.require_data()
        rng = np.random.default_rng(seed)

        logger.info(
            f"{'Pairwise' if pairwise else 'Overall'} interaction strength of "
            f"{len(features)} features for '{fl.label}'"
        )

        for key, positions in iter_groups(data, group_cols):
            chosen = positions[sample_indices(len(positions), n_max, rng)]
            values = _group_interaction(
                fl, data.iloc[chosen], features, pairwise, normalize, squared, n_jobs
            )
            for name, value in values.items():
                rows_out.append({'label': fl.label, **key, 'variable': name, 'value': value})

    group_cols = resolve_by(fls[0].by, by)
    columns = ['label', *group_cols, 'variable', 'value']
    result = pd.DataFrame(rows_out, columns=columns)

    return LightInteraction(
        data=result,
        by=tuple(group_cols),
        pairwise=pairwise,
        normalize=normalize,
        squared=squared
    )
