"""
Explainer wrappers binding fitted models to data, metrics and metadata.

A ``Flashlight`` only needs a way to predict: any object works as a model as
long as its prediction function can call it.
"""

import logging
from dataclasses import dataclass, field, replace as dc_replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .metrics import Metric, default_metrics, resolve_metrics
from .exceptions import PredictionFailure, SchemaMismatch

logger = logging.getLogger(__name__)

TASKS = ('regression', 'classification')

PredictFunction = Callable[[Any, pd.DataFrame], Any]


def default_predict_function(task: str = 'regression') -> PredictFunction:
    """Native predict call of a fitted model.

    Classification models return the probability of the positive class when
    they offer ``predict_proba``.
    """
    if task == 'classification':
        def predict(model, data):
            if hasattr(model, 'predict_proba'):
                return np.asarray(model.predict_proba(data))[:, 1]
            return model.predict(data)
    else:
        def predict(model, data):
            return model.predict(data)
    return predict


def _as_tuple(value) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True, eq=False)
class Flashlight:
    """A fitted model plus everything needed to explain it.

    Args:
        model: Fitted model, owned by the caller
        label: Name of the explainer, unique within a MultiFlashlight
        predict_function: ``(model, data) -> vector``; defaults to the
            model's native predict call
        task: 'regression' or 'classification'
        data: Evaluation data including target, weight and grouping columns
        y: Name of the target column
        w: Name of the case weight column
        by: Grouping column(s)
        metrics: Named metric functions or built-in metric names
        linkinv: Transformation applied to raw predictions
        features: Explicit model features; defaults to all data columns
            except ``y`` and ``w``
    """

    model: Any
    label: str
    predict_function: Optional[PredictFunction] = None
    task: str = 'regression'
    data: Optional[pd.DataFrame] = field(default=None, repr=False)
    y: Optional[str] = None
    w: Optional[str] = None
    by: Tuple[str, ...] = ()
    metrics: Optional[Dict[str, Metric]] = field(default=None, repr=False)
    linkinv: Optional[Callable] = field(default=None, repr=False)
    features: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if not isinstance(self.label, str) or not self.label:
            raise ValueError("A flashlight needs a non-empty string label")
        if self.task not in TASKS:
            raise ValueError(f"Unknown task: {self.task}. Use one of {TASKS}")
        if self.predict_function is None:
            object.__setattr__(self, 'predict_function', default_predict_function(self.task))
        object.__setattr__(self, 'by', _as_tuple(self.by))
        if self.features is not None:
            object.__setattr__(self, 'features', _as_tuple(self.features))
        object.__setattr__(self, 'metrics', resolve_metrics(self.metrics))
        if self.data is not None:
            self.check_schema()

    def replace(self, **changes) -> 'Flashlight':
        """Return a copy with some fields changed."""
        return dc_replace(self, **changes)

    @property
    def required_columns(self) -> List[str]:
        columns = list(self.features or [])
        for col in (self.y, self.w, *self.by):
            if col is not None and col not in columns:
                columns.append(col)
        return columns

    @property
    def metric_functions(self) -> Dict[str, Metric]:
        return self.metrics if self.metrics is not None else default_metrics(self.task)

    def check_schema(self, data: Optional[pd.DataFrame] = None) -> None:
        """Raise SchemaMismatch if the data lacks a required column."""
        data = self.require_data(data)
        missing = [col for col in self.required_columns if col not in data.columns]
        if missing:
            raise SchemaMismatch(missing, where=f"data of '{self.label}'")

    def require_data(self, data: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        data = self.data if data is None else data
        if data is None:
            raise SchemaMismatch(
                [], where=self.label, message=f"Flashlight '{self.label}' has no data"
            )
        return data

    def feature_names(self, data: Optional[pd.DataFrame] = None) -> List[str]:
        if self.features is not None:
            return list(self.features)
        data = self.require_data(data)
        return [col for col in data.columns if col not in (self.y, self.w)]

    def check_columns(self, columns: Sequence[str], data: Optional[pd.DataFrame] = None) -> None:
        data = self.require_data(data)
        missing = [col for col in columns if col not in data.columns]
        if missing:
            raise SchemaMismatch(missing, where=f"data of '{self.label}'")

    def predict(self, data: Optional[pd.DataFrame] = None) -> np.ndarray:
        """Predict on data (defaults to the flashlight's own data).

        The prediction function receives the feature columns only.

        Returns:
            1-d float array with one prediction per row, after ``linkinv``
        """
        data = self.require_data(data)
        features = self.feature_names(data)
        self.check_columns(features, data)

        try:
            raw = self.predict_function(self.model, data[features])
        except Exception as e:
            raise PredictionFailure(self.label, f"{type(e).__name__}: {e}") from e

        try:
            pred = np.asarray(raw, dtype=float).reshape(-1)
        except (TypeError, ValueError) as e:
            raise PredictionFailure(self.label, "predictions are not numeric") from e

        if len(pred) != len(data):
            raise PredictionFailure(
                self.label, f"expected {len(data)} predictions, got {len(pred)}"
            )

        if self.linkinv is not None:
            pred = np.asarray(self.linkinv(pred), dtype=float)
        return pred

    def response(self, data: Optional[pd.DataFrame] = None) -> np.ndarray:
        data = self.require_data(data)
        if self.y is None:
            raise SchemaMismatch(
                [], where=self.label, message=f"Flashlight '{self.label}' has no response 'y'"
            )
        self.check_columns([self.y], data)
        return data[self.y].to_numpy()

    def weights(self, data: Optional[pd.DataFrame] = None) -> Optional[np.ndarray]:
        """Case weights, or None for equal weights."""
        if self.w is None:
            return None
        data = self.require_data(data)
        self.check_columns([self.w], data)
        return data[self.w].to_numpy(dtype=float)


class MultiFlashlight:
    """Ordered collection of flashlights with unique labels."""

    def __init__(self, flashlights: Sequence[Flashlight]):
        """Initialize container.

        Args:
            flashlights: Flashlights sharing one feature schema
        """
        flashlights = list(flashlights)
        if not flashlights:
            raise ValueError("A multiflashlight needs at least one flashlight")

        labels = [fl.label for fl in flashlights]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ValueError(f"Labels must be unique, duplicated: {duplicates}")

        self._flashlights = flashlights
        self._check_common_schema()

    def _check_common_schema(self):
        with_data = [fl for fl in self._flashlights if fl.data is not None or fl.features]
        if len(with_data) < 2:
            return

        reference = with_data[0]
        expected = set(reference.feature_names())
        for fl in with_data[1:]:
            found = set(fl.feature_names())
            if found != expected:
                raise SchemaMismatch(
                    sorted(expected.symmetric_difference(found)),
                    where=f"feature sets of '{reference.label}' and '{fl.label}'"
                )

    @property
    def labels(self) -> List[str]:
        return [fl.label for fl in self._flashlights]

    def __iter__(self) -> Iterator[Flashlight]:
        return iter(self._flashlights)

    def __len__(self) -> int:
        return len(self._flashlights)

    def __getitem__(self, key: Union[int, str]) -> Flashlight:
        if isinstance(key, str):
            for fl in self._flashlights:
                if fl.label == key:
                    return fl
            raise KeyError(key)
        return self._flashlights[key]

    def __repr__(self) -> str:
        return f"MultiFlashlight(labels={self.labels})"


def flashlight(model, label: str, **kwargs) -> Flashlight:
    """Create a Flashlight; see its docstring for the arguments."""
    return Flashlight(model=model, label=label, **kwargs)


def multiflashlight(
    flashlights: Sequence[Union[Flashlight, MultiFlashlight]],
    **shared
) -> MultiFlashlight:
    """Combine flashlights, setting shared fields on every member.

    Args:
        flashlights: Flashlights (or multiflashlights, which are flattened)
        **shared: Fields such as ``data``, ``y``, ``w``, ``by``, ``metrics``
            or ``linkinv`` that override the members' own values

    Returns:
        MultiFlashlight
    """
    members = []
    for fl in flashlights:
        if isinstance(fl, MultiFlashlight):
            members.extend(fl)
        else:
            members.append(fl)

    shared = {key: value for key, value in shared.items() if value is not None}
    if shared:
        members = [fl.replace(**shared) for fl in members]

    logger.debug(f"Combining {len(members)} flashlights: {[fl.label for fl in members]}")
    return MultiFlashlight(members)


def as_flashlights(x: Union[Flashlight, MultiFlashlight]) -> List[Flashlight]:
    """List the flashlights of x, checking that each carries data."""
    if isinstance(x, Flashlight):
        fls = [x]
    elif isinstance(x, MultiFlashlight):
        fls = list(x)
    else:
        raise TypeError(f"Expected Flashlight or MultiFlashlight, got {type(x).__name__}")

    for fl in fls:
        fl.require_data()
    return fls
