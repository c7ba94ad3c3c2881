"""
Result objects returned by the analysis functions.

Each result wraps a long-format DataFrame with a stable column layout that a
plotting layer can consume, plus a little metadata. Results are never
modified after creation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd


@dataclass(frozen=True, eq=False)
class LightResult:
    """Base class: a table plus the grouping columns used to build it."""

    data: pd.DataFrame
    by: Tuple[str, ...] = ()

    @property
    def labels(self) -> List[str]:
        return list(pd.unique(self.data['label'])) if 'label' in self.data else []

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True, eq=False)
class LightPerformance(LightResult):
    """Metric values; columns label, *by*, metric, value."""

    metrics: Tuple[str, ...] = ()


@dataclass(frozen=True, eq=False)
class LightImportance(LightResult):
    """Permutation importance; columns label, *by*, metric, variable, value, error."""

    metric: str = ''
    m_repetitions: int = 1
    lower_is_better: bool = True

    def most_important(self, top_m: Optional[int] = None) -> List[str]:
        """Features ordered by decreasing mean importance over explainers.

        Args:
            top_m: Number of features to return (all if None)

        Returns:
            List of feature names
        """
        if top_m is not None and top_m < 1:
            raise ValueError("top_m must be at least 1")

        ranking = (
            self.data.groupby('variable', sort=False)['value']
            .mean()
            .sort_values(ascending=False, kind='mergesort')
        )
        features = ranking.index.tolist()
        return features if top_m is None else features[:top_m]


@dataclass(frozen=True, eq=False)
class LightIce(LightResult):
    """ICE curves; columns label, *by*, id, variable, x, value."""

    variable: str = ''
    center: str = 'no'
    n_curves: int = 0


@dataclass(frozen=True, eq=False)
class LightProfile(LightResult):
    """Profile of one feature; columns label, *by*, variable, type, x, value, counts."""

    variable: str = ''
    type: str = 'partial dependence'
    stats: str = 'mean'


@dataclass(frozen=True, eq=False)
class LightEffects(LightResult):
    """Response, predicted, partial dependence and ALE profiles on one grid.

    ``data`` stacks the profiles (column ``type`` tells them apart);
    ``counts`` holds the number of rows per bin (label, *by*, x, counts).
    """

    variable: str = ''
    counts: pd.DataFrame = field(default_factory=pd.DataFrame)

    def profile(self, type: str) -> pd.DataFrame:
        return self.data[self.data['type'] == type].reset_index(drop=True)


@dataclass(frozen=True, eq=False)
class LightInteraction(LightResult):
    """Friedman's H; columns label, *by*, variable, value."""

    pairwise: bool = False
    normalize: bool = True
    squared: bool = False


@dataclass(frozen=True, eq=False)
class LightBreakdown(LightResult):
    """Step-wise attribution of one prediction.

    Columns label, step, variable, description, before, after, contribution.
    """

    visit_strategy: str = 'importance'


@dataclass(frozen=True, eq=False)
class LightGlobalSurrogate(LightResult):
    """Surrogate trees per explainer (and group).

    ``data`` has columns label, *by*, r_squared, n_leaves, depth, n_obs;
    ``trees`` and ``rules`` are keyed by label, or (label, group key) with
    grouping.
    """

    trees: Dict[Any, Any] = field(default_factory=dict)
    rules: Dict[Any, str] = field(default_factory=dict)
    max_depth: int = 2
