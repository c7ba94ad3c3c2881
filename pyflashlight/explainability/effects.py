"""
Combined effects of one feature: response, predicted, partial dependence and
ALE profiles evaluated on one shared grid.
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..core.config import get_settings
from ..core.flashlight import Flashlight, MultiFlashlight, as_flashlights
from ..core.results import LightEffects
from ..data.binning import auto_cut
from ..data.sampling import iter_groups, resolve_by, resolve_count, resolve_seed, sample_indices
from .profile import STATS, accumulated_local_effects, bin_counts, binned_profile, partial_dependence

logger = logging.getLogger(__name__)

EFFECT_TYPES = ('response', 'predicted', 'partial dependence', 'ale')


def light_effects(
    x: Union[Flashlight, MultiFlashlight],
    v: str,
    by: Optional[Sequence[str]] = None,
    stats: str = 'mean',
    breaks: Optional[Sequence[float]] = None,
    n_bins: Optional[int] = None,
    cut_type: Optional[str] = None,
    n_max: Optional[int] = None,
    seed: Optional[int] = None
) -> LightEffects:
    """Response, predicted, partial dependence and ALE profiles of v.

    All profiles share the bins of ``auto_cut``. The response profile needs
    ``y``; ALE is added for continuous numeric features.

    Args:
        x: Flashlight or MultiFlashlight
        v: Feature name
        by: Grouping column(s)
        stats: 'mean' or 'quartiles' for the response and predicted profiles
        breaks: Explicit bin edges
        n_bins: Maximum number of bins
        cut_type: 'equal' or 'quantile'
        n_max: Maximum rows sampled per group for partial dependence and ALE
        seed: Random seed of the row sample

    Returns:
        LightEffects with stacked profiles and per-bin counts
    """
    if stats not in STATS:
        raise ValueError(f"Unknown stats: {stats}. Use one of {STATS}")
    n_max = resolve_count(n_max, get_settings().analysis.n_max, 'n_max')
    seed = resolve_seed(seed)

    fls = as_flashlights(x)
    frames = []
    count_frames = []

    for fl in fls:
        group_cols = resolve_by(fl.by, by)
        fl.check_columns([v, *group_cols])
        data = fl.require_data()
        w = fl.weights(data)
        cut = auto_cut(data[v], n_bins=n_bins, cut_type=cut_type, breaks=breaks)
        with_ale = not cut.discrete

        logger.info(f"Computing effects of '{v}' for '{fl.label}' on {len(cut.grid)} bins")

        pred = fl.predict(data)
        y = np.asarray(fl.response(data), dtype=float) if fl.y is not None else None
        rng = np.random.default_rng(seed)

        for key, positions in iter_groups(data, group_cols):
            bins = cut.bins.iloc[positions]
            group_w = None if w is None else w[positions]
            chosen = positions[sample_indices(len(positions), n_max, rng)]
            rows = data.iloc[chosen]
            rows_w = None if w is None else w[chosen]

            profiles = {}
            if y is not None:
                profiles['response'] = binned_profile(y[positions], bins, cut.grid, group_w, stats)
            profiles['predicted'] = binned_profile(pred[positions], bins, cut.grid, group_w, stats)
            profiles['partial dependence'] = pd.DataFrame({
                'x': cut.grid,
                'value': partial_dependence(fl, rows, v, cut.grid, rows_w),
                'counts': bin_counts(bins, cut.grid)
            })
            if with_ale:
                profiles['ale'] = accumulated_local_effects(fl, rows, v, cut.breaks, rows_w)

            for type in EFFECT_TYPES:
                if type in profiles:
                    frames.append(profiles[type].assign(label=fl.label, variable=v, type=type, **key))

            count_frames.append(pd.DataFrame({
                'label': fl.label,
                **{col: [val] * len(cut.grid) for col, val in key.items()},
                'x': cut.grid,
                'counts': bin_counts(bins, cut.grid)
            }))

    group_cols = resolve_by(fls[0].by, by)
    columns = ['label', *group_cols, 'variable', 'type', 'x', 'value', 'counts']
    if stats == 'quartiles':
        columns += ['q1', 'q3']
    result = pd.concat(frames, ignore_index=True).reindex(columns=columns)
    counts = pd.concat(count_frames, ignore_index=True).reindex(
        columns=['label', *group_cols, 'x', 'counts']
    )

    return LightEffects(data=result, by=tuple(group_cols), variable=v, counts=counts)
