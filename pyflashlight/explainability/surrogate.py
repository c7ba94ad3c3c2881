"""
Global surrogate trees approximating the predictions of each explainer.
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.metrics import r2_score
from sklearn.tree import DecisionTreeRegressor, export_text

from ..core.config import get_settings
from ..core.flashlight import Flashlight, MultiFlashlight, as_flashlights
from ..core.results import LightGlobalSurrogate
from ..data.sampling import (
    iter_groups,
    resolve_by,
    resolve_count,
    resolve_features,
    resolve_seed,
)

logger = logging.getLogger(__name__)


def encode_features(data: pd.DataFrame, features: Sequence[str]) -> pd.DataFrame:
    """Numeric design matrix; non-numeric features are one-hot encoded."""
    return pd.get_dummies(data[list(features)], dtype=float)


def fit_surrogate(
    X: pd.DataFrame,
    pred: np.ndarray,
    w: Optional[np.ndarray],
    max_depth: int,
    seed: Optional[int]
) -> DecisionTreeRegressor:
    tree = DecisionTreeRegressor(max_depth=max_depth, random_state=seed)
    tree.fit(X, pred, sample_weight=w)
    return tree


def light_global_surrogate(
    x: Union[Flashlight, MultiFlashlight],
    v: Optional[Sequence[str]] = None,
    by: Optional[Sequence[str]] = None,
    max_depth: Optional[int] = None,
    seed: Optional[int] = None
) -> LightGlobalSurrogate:
    """Fit a shallow decision tree to the predictions of each explainer.

    Args:
        x: Flashlight or MultiFlashlight
        v: Features the tree may split on (default: all features except
            grouping columns)
        by: Grouping column(s), one tree per group
        max_depth: Depth of the tree
        seed: random_state of the tree

    Returns:
        LightGlobalSurrogate with the fidelity (R^2 against the explainer's
        predictions), the fitted trees and their text rules
    """
    max_depth = resolve_count(max_depth, get_settings().surrogate.max_depth, 'max_depth')
    seed = resolve_seed(seed)

    fls = as_flashlights(x)
    rows = []
    trees = {}
    rules = {}

    for fl in fls:
        group_cols = resolve_by(fl.by, by)
        features = resolve_features(fl, v, exclude=group_cols)
        fl.check_columns(features + list(group_cols))
        data = fl.require_data()
        pred = fl.predict(data)
        w = fl.weights(data)
        X = encode_features(data, features)

        logger.info(f"Fitting surrogate tree (max_depth={max_depth}) for '{fl.label}'")

        for key, positions in iter_groups(data, group_cols):
            X_group = X.iloc[positions]
            y_group = pred[positions]
            w_group = None if w is None else w[positions]

            tree = fit_surrogate(X_group, y_group, w_group, max_depth, seed)
            fidelity = r2_score(y_group, tree.predict(X_group), sample_weight=w_group)

            tree_key = (fl.label, tuple(key.values())) if group_cols else fl.label
            trees[tree_key] = tree
            rules[tree_key] = export_text(tree, feature_names=list(X.columns))

            rows.append({
                'label': fl.label,
                **key,
                'r_squared': float(fidelity),
                'n_leaves': int(tree.get_n_leaves()),
                'depth': int(tree.get_depth()),
                'n_obs': len(positions)
            })

    group_cols = resolve_by(fls[0].by, by)
    columns = ['label', *group_cols, 'r_squared', 'n_leaves', 'depth', 'n_obs']
    result = pd.DataFrame(rows, columns=columns)

    return LightGlobalSurrogate(
        data=result,
        by=tuple(group_cols),
        trees=trees,
        rules=rules,
        max_depth=max_depth
    )
