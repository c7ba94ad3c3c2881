"""
Breakdown of a single prediction into additive feature contributions.
"""

import logging
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..core.config import get_settings
from ..core.exceptions import SchemaMismatch
from ..core.flashlight import Flashlight, MultiFlashlight, as_flashlights
from ..core.results import LightBreakdown
from ..data.frames import set_column
from ..data.sampling import (
    resolve_count,
    resolve_features,
    resolve_seed,
    sample_indices,
    spawn_seeds,
)

logger = logging.getLogger(__name__)

VISIT_STRATEGIES = ('importance', 'v', 'permutation')
OTHER_FEATURES = 'other features'


def _as_observation(new_obs: Union[pd.Series, pd.DataFrame]) -> pd.Series:
    if isinstance(new_obs, pd.DataFrame):
        if len(new_obs) != 1:
            raise ValueError(f"new_obs must hold exactly one row, got {len(new_obs)}")
        return new_obs.iloc[0]
    if isinstance(new_obs, pd.Series):
        return new_obs
    raise TypeError(f"new_obs must be a pandas Series or one-row DataFrame, got {type(new_obs).__name__}")


def _describe(feature: str, value) -> str:
    if isinstance(value, (float, np.floating)):
        return f"{feature} = {value:.4g}"
    return f"{feature} = {value}"


def _reference_rows(
    fl: Flashlight,
    obs: pd.Series,
    n_max: int,
    rng: np.random.Generator
) -> pd.DataFrame:
    """Seeded reference sample, restricted to the group of obs."""
    data = fl.require_data()
    if fl.by:
        mask = np.ones(len(data), dtype=bool)
        for col in fl.by:
            mask &= (data[col] == obs[col]).to_numpy()
        data = data[mask]
        if len(data) == 0:
            raise ValueError(f"No reference rows share the group of new_obs for '{fl.label}'")
    return data.iloc[sample_indices(len(data), n_max, rng)]


def _fix(rows: pd.DataFrame, obs: pd.Series, features: Sequence[str]) -> pd.DataFrame:
    for feature in features:
        rows = set_column(rows, feature, obs[feature])
    return rows


def _mean_prediction(fl: Flashlight, rows: pd.DataFrame, w: Optional[np.ndarray]) -> float:
    return float(np.average(fl.predict(rows), weights=w))


def visit_order(
    fl: Flashlight,
    rows: pd.DataFrame,
    obs: pd.Series,
    features: List[str],
    visit_strategy: str,
    baseline: float,
    w: Optional[np.ndarray],
    rng: np.random.Generator
) -> List[str]:
    """Order in which features are fixed to the values of obs."""
    if visit_strategy == 'v':
        return list(features)
    if visit_strategy == 'permutation':
        return [features[i] for i in rng.permutation(len(features))]

    effects = np.array([
        abs(_mean_prediction(fl, _fix(rows, obs, [feature]), w) - baseline)
        for feature in features
    ])
    order = np.argsort(-effects, kind='stable')
    return [features[i] for i in order]


def light_breakdown(
    x: Union[Flashlight, MultiFlashlight],
    new_obs: Union[pd.Series, pd.DataFrame],
    v: Optional[Sequence[str]] = None,
    visit_strategy: Optional[str] = None,
    n_max: Optional[int] = None,
    seed: Optional[int] = None,
    top_m: Optional[int] = None
) -> LightBreakdown:
    """Decompose one prediction into contributions of the features.

    Starting from the mean prediction over a reference sample (the
    baseline), the features are set to the values of new_obs one at a time.
    Each step's contribution is the change of the mean prediction, so the
    contributions sum to prediction minus baseline. Model features that are
    not visited are fixed together in a final "other features" step, so the
    last row always equals the prediction of new_obs.

    Args:
        x: Flashlight or MultiFlashlight
        new_obs: The observation to explain (Series or one-row DataFrame)
        v: Features to visit (default: all features except grouping columns)
        visit_strategy: 'importance', 'v' or 'permutation'
        n_max: Size of the reference sample
        seed: Random seed of the reference sample and of 'permutation'
        top_m: Visit only the first top_m features and collapse the rest
            into one "other features" step

    Returns:
        LightBreakdown with one baseline row, one row per step and a final
        prediction row per explainer
    """
    settings = get_settings().breakdown
    visit_strategy = visit_strategy or settings.visit_strategy
    if visit_strategy not in VISIT_STRATEGIES:
        raise ValueError(f"Unknown visit_strategy: {visit_strategy}. Use one of {VISIT_STRATEGIES}")
    if top_m is not None and top_m < 1:
        raise ValueError("top_m must be at least 1")
    n_max = resolve_count(n_max, settings.n_max, 'n_max')
    seed = resolve_seed(seed)

    obs = _as_observation(new_obs)
    fls = as_flashlights(x)
    rows_out = []

    for fl in fls:
        features = resolve_features(fl, v, exclude=fl.by)
        rest = [
            col for col in fl.feature_names()
            if col not in fl.by and col not in features
        ]
        fl.check_columns(features + rest + list(fl.by))
        missing = [col for col in [*features, *rest, *fl.by] if col not in obs.index]
        if missing:
            raise SchemaMismatch(missing, where='new_obs')

        sample_seed, order_seed = spawn_seeds(seed, 2)
        reference = _reference_rows(fl, obs, n_max, np.random.default_rng(sample_seed))
        w = fl.weights(reference)
        baseline = _mean_prediction(fl, reference, w)

        order = visit_order(
            fl, reference, obs, features, visit_strategy, baseline, w,
            np.random.default_rng(order_seed)
        )
        steps = [(feature, [feature]) for feature in order]
        if top_m is not None and top_m < len(order):
            rest = order[top_m:] + rest
            steps = steps[:top_m]
        if rest:
            steps.append((OTHER_FEATURES, rest))

        logger.info(
            f"Breakdown of '{fl.label}' over {len(features)} features ({visit_strategy})"
        )

        rows_out.append({
            'label': fl.label, 'step': 0, 'variable': 'baseline', 'description': 'baseline',
            'before': np.nan, 'after': baseline, 'contribution': np.nan
        })

        current = reference
        before = baseline
        for step, (variable, fixed) in enumerate(steps, start=1):
            current = _fix(current, obs, fixed)
            after = _mean_prediction(fl, current, w)
            if variable == OTHER_FEATURES:
                description = f"{len(fixed)} {OTHER_FEATURES}"
            else:
                description = _describe(variable, obs[variable])
            rows_out.append({
                'label': fl.label, 'step': step, 'variable': variable,
                'description': description, 'before': before, 'after': after,
                'contribution': after - before
            })
            before = after

        rows_out.append({
            'label': fl.label, 'step': len(steps) + 1, 'variable': 'prediction',
            'description': 'prediction', 'before': np.nan, 'after': before,
            'contribution': np.nan
        })

    columns = ['label', 'step', 'variable', 'description', 'before', 'after', 'contribution']
    result = pd.DataFrame(rows_out, columns=columns)

    return LightBreakdown(data=result, by=(), visit_strategy=visit_strategy)
