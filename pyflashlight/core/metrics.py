"""
Weighted performance metrics.

All metrics share the scikit-learn signature
``metric(y_true, y_pred, sample_weight=None) -> float`` so that functions from
``sklearn.metrics`` can be registered next to the built-ins.
"""

import logging
from typing import Callable, Dict, Iterable, Mapping, Optional, Union

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    log_loss,
    mean_absolute_error,
    mean_poisson_deviance,
    mean_squared_error,
    r2_score,
)

logger = logging.getLogger(__name__)

Metric = Callable[..., float]


def mse(y_true, y_pred, sample_weight=None) -> float:
    """Mean squared error."""
    return float(mean_squared_error(y_true, y_pred, sample_weight=sample_weight))


def rmse(y_true, y_pred, sample_weight=None) -> float:
    """Root mean squared error."""
    return float(np.sqrt(mse(y_true, y_pred, sample_weight=sample_weight)))


def mae(y_true, y_pred, sample_weight=None) -> float:
    """Mean absolute error."""
    return float(mean_absolute_error(y_true, y_pred, sample_weight=sample_weight))


def mape(y_true, y_pred, sample_weight=None) -> float:
    """Mean absolute percentage error.

    Zero actuals give ``inf`` (or ``nan`` for a zero error); the value is
    returned as is.
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    with np.errstate(divide='ignore', invalid='ignore'):
        ape = np.abs((y_true - y_pred) / y_true)
    return float(np.average(ape, weights=sample_weight))


def r_squared(y_true, y_pred, sample_weight=None) -> float:
    """Coefficient of determination."""
    return float(r2_score(y_true, y_pred, sample_weight=sample_weight))


def logloss(y_true, y_pred, sample_weight=None) -> float:
    """Binary log loss of predicted probabilities."""
    return float(log_loss(y_true, y_pred, sample_weight=sample_weight, labels=[0, 1]))


def deviance_poisson(y_true, y_pred, sample_weight=None) -> float:
    """Mean Poisson deviance (predictions must be positive)."""
    return float(mean_poisson_deviance(y_true, y_pred, sample_weight=sample_weight))


def accuracy(y_true, y_pred, sample_weight=None) -> float:
    """Share of correct classes; predictions are rounded to the nearest class."""
    return float(accuracy_score(y_true, np.rint(y_pred), sample_weight=sample_weight))


BUILTIN_METRICS: Dict[str, Metric] = {
    'rmse': rmse,
    'mse': mse,
    'mae': mae,
    'mape': mape,
    'r_squared': r_squared,
    'logloss': logloss,
    'deviance_poisson': deviance_poisson,
    'accuracy': accuracy
}

HIGHER_IS_BETTER = {'r_squared', 'accuracy'}


def default_metrics(task: str = 'regression') -> Dict[str, Metric]:
    if task == 'classification':
        return {'logloss': logloss}
    return {'rmse': rmse}


def resolve_metrics(
    metrics: Union[Mapping[str, Metric], Iterable[Union[str, Metric]], None]
) -> Optional[Dict[str, Metric]]:
    """Turn user supplied metrics into a name -> function dict.

    Args:
        metrics: Mapping of names to metric functions, or an iterable of
            built-in names and/or callables (named after ``__name__``)

    Returns:
        Ordered metric registry, or None if nothing was given
    """
    if metrics is None:
        return None

    if isinstance(metrics, Mapping):
        items = list(metrics.items())
    else:
        if isinstance(metrics, str) or callable(metrics):
            metrics = [metrics]
        items = []
        for metric in metrics:
            if isinstance(metric, str):
                items.append((metric, metric))
            else:
                items.append((getattr(metric, '__name__', repr(metric)), metric))

    resolved = {}
    for name, metric in items:
        if isinstance(metric, str):
            if metric.lower() not in BUILTIN_METRICS:
                raise ValueError(f"Unknown metric: {metric}")
            metric = BUILTIN_METRICS[metric.lower()]
        if not callable(metric):
            raise ValueError(f"Metric '{name}' is not callable")
        resolved[name] = metric

    if not resolved:
        raise ValueError("At least one metric is required")
    return resolved


def is_higher_better(name: str, metric: Optional[Metric] = None) -> bool:
    """Check whether larger values of a metric are better."""
    if name.lower() in HIGHER_IS_BETTER:
        return True
    return metric is not None and getattr(metric, '__name__', None) in HIGHER_IS_BETTER
