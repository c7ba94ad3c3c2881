"""
Model performance on the shared evaluation data.
"""

import logging
from typing import Dict, Mapping, Optional, Sequence, Union

import pandas as pd

from ..core.flashlight import Flashlight, MultiFlashlight, as_flashlights
from ..core.metrics import Metric, resolve_metrics
from ..core.results import LightPerformance
from ..data.sampling import iter_groups, resolve_by

logger = logging.getLogger(__name__)


def _weights_at(w, positions):
    return None if w is None else w[positions]


def light_performance(
    x: Union[Flashlight, MultiFlashlight],
    by: Optional[Sequence[str]] = None,
    metrics: Union[Mapping[str, Metric], Sequence, None] = None
) -> LightPerformance:
    """Evaluate every metric on every explainer.

    Args:
        x: Flashlight or MultiFlashlight with data and response ``y``
        by: Grouping column(s); defaults to the flashlights' own ``by``
        metrics: Metrics to use instead of the flashlights' metrics

    Returns:
        LightPerformance with one row per (label, group, metric)
    """
    fls = as_flashlights(x)
    override = resolve_metrics(metrics)
    rows = []

    for fl in fls:
        group_cols = resolve_by(fl.by, by)
        fl.check_columns(group_cols)
        metric_fns: Dict[str, Metric] = override or fl.metric_functions

        logger.info(f"Computing performance of '{fl.label}' ({', '.join(metric_fns)})")

        data = fl.require_data()
        y = fl.response()
        pred = fl.predict()
        w = fl.weights()

        for key, positions in iter_groups(data, group_cols):
            for name, metric in metric_fns.items():
                value = metric(y[positions], pred[positions], sample_weight=_weights_at(w, positions))
                rows.append({'label': fl.label, **key, 'metric': name, 'value': float(value)})

    group_cols = resolve_by(fls[0].by, by)
    columns = ['label', *group_cols, 'metric', 'value']
    result = pd.DataFrame(rows, columns=columns)

    return LightPerformance(
        data=result,
        by=tuple(group_cols),
        metrics=tuple(pd.unique(result['metric']))
    )
