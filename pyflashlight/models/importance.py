"""
Permutation importance.

Each feature is shuffled with its own random stream spawned from the
top-level seed, so every explainer sees exactly the same permutations and the
result does not depend on the number of parallel jobs.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..core.config import get_settings
from ..core.flashlight import Flashlight, MultiFlashlight, as_flashlights
from ..core.metrics import BUILTIN_METRICS, Metric, is_higher_better
from ..core.results import LightImportance
from ..data.frames import set_column
from ..data.sampling import (
    iter_groups,
    resolve_by,
    resolve_count,
    resolve_features,
    resolve_seed,
    sample_rows,
    spawn_seeds,
)

logger = logging.getLogger(__name__)


def select_metric(fl: Flashlight, metric: Union[str, Metric, None]) -> Tuple[str, Metric]:
    """Pick one metric: the flashlight's first by default."""
    if metric is None:
        name, fn = next(iter(fl.metric_functions.items()))
        return name, fn
    if callable(metric):
        return getattr(metric, '__name__', 'metric'), metric
    if metric in fl.metric_functions:
        return metric, fl.metric_functions[metric]
    if metric.lower() in BUILTIN_METRICS:
        return metric, BUILTIN_METRICS[metric.lower()]
    raise ValueError(f"Unknown metric: {metric}")


def _group_scores(metric, y, pred, w, groups) -> np.ndarray:
    return np.array([
        metric(y[pos], pred[pos], sample_weight=None if w is None else w[pos])
        for _, pos in groups
    ], dtype=float)


def _permuted_scores(
    fl: Flashlight,
    data: pd.DataFrame,
    v: str,
    groups: List,
    y: np.ndarray,
    w: Optional[np.ndarray],
    metric: Callable,
    m_repetitions: int,
    seed: np.random.SeedSequence
) -> np.ndarray:
    """Metric after shuffling v within groups; shape (n_groups, m_repetitions)."""
    rng = np.random.default_rng(seed)
    values = data[v].to_numpy()
    scores = np.empty((len(groups), m_repetitions))

    for rep in range(m_repetitions):
        order = np.arange(len(data))
        for _, pos in groups:
            order[pos] = pos[rng.permutation(len(pos))]
        pred = fl.predict(set_column(data, v, values[order]))
        scores[:, rep] = _group_scores(metric, y, pred, w, groups)

    return scores


def light_importance(
    x: Union[Flashlight, MultiFlashlight],
    v: Optional[Sequence[str]] = None,
    by: Optional[Sequence[str]] = None,
    metric: Union[str, Metric, None] = None,
    m_repetitions: Optional[int] = None,
    lower_is_better: Optional[bool] = None,
    n_max: Optional[int] = None,
    seed: Optional[int] = None,
    n_jobs: Optional[int] = None
) -> LightImportance:
    """Permutation importance of features.

    Args:
        x: Flashlight or MultiFlashlight with data and response ``y``
        v: Features to shuffle (default: all features except grouping columns)
        by: Grouping column(s); shuffling and scoring happen within groups
        metric: Metric name or function (default: first metric of each flashlight;
            all flashlights must then agree on its name)
        m_repetitions: Number of shuffles per feature
        lower_is_better: Orientation of the metric; inferred from its name
        n_max: Maximum number of rows used
        seed: Random seed
        n_jobs: Parallel jobs over features (joblib)

    Returns:
        LightImportance where value = mean increase of the loss after
        shuffling and error = its standard error
    """
    settings = get_settings().analysis
    m_repetitions = resolve_count(m_repetitions, settings.m_repetitions, 'm_repetitions')
    n_max = resolve_count(n_max, settings.n_max, 'n_max')
    n_jobs = settings.n_jobs if n_jobs is None else n_jobs
    seed = resolve_seed(seed)

    fls = as_flashlights(x)
    selected = [select_metric(fl, metric) for fl in fls]
    metric_names = sorted({name for name, _ in selected})
    if len(metric_names) > 1:
        raise ValueError(
            f"Explainers resolve to different metrics {metric_names}; pass metric= to choose one"
        )
    metric_name = metric_names[0] if metric_names else ''

    frames = []
    orientation = None

    for fl, (_, metric_fn) in zip(fls, selected):
        group_cols = resolve_by(fl.by, by)
        features = resolve_features(fl, v, exclude=group_cols)
        fl.check_columns(features + list(group_cols))

        fl_lower = (
            lower_is_better if lower_is_better is not None
            else not is_higher_better(metric_name, metric_fn)
        )
        orientation = fl_lower if orientation is None else orientation

        logger.info(
            f"Permutation importance of {len(features)} features for '{fl.label}' "
            f"({metric_name}, {m_repetitions} repetition(s))"
        )

        sample_seed, *feature_seeds = spawn_seeds(seed, len(features) + 1)
        data = sample_rows(fl.require_data(), n_max, np.random.default_rng(sample_seed))
        y = fl.response(data)
        w = fl.weights(data)
        groups = list(iter_groups(data, group_cols))
        base = _group_scores(metric_fn, y, fl.predict(data), w, groups)

        scores = Parallel(n_jobs=n_jobs)(
            delayed(_permuted_scores)(fl, data, feature, groups, y, w, metric_fn, m_repetitions, fseed)
            for feature, fseed in zip(features, feature_seeds)
        )

        sign = 1.0 if fl_lower else -1.0
        rows = []
        for feature, perm in zip(features, scores):
            drops = sign * (perm - base[:, None])
            for (key, _), group_drops in zip(groups, drops):
                error = (
                    group_drops.std(ddof=1) / np.sqrt(m_repetitions)
                    if m_repetitions > 1 else np.nan
                )
                rows.append({
                    'label': fl.label,
                    **key,
                    'metric': metric_name,
                    'variable': feature,
                    'value': float(group_drops.mean()),
                    'error': float(error)
                })
        frames.append(pd.DataFrame(rows))

    group_cols = resolve_by(fls[0].by, by)
    columns = ['label', *group_cols, 'metric', 'variable', 'value', 'error']
    result = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()
    result = result.reindex(columns=columns)

    return LightImportance(
        data=result,
        by=tuple(group_cols),
        metric=metric_name,
        m_repetitions=m_repetitions,
        lower_is_better=bool(orientation) if orientation is not None else True
    )
