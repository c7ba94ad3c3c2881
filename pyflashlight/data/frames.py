"""
Private copies of evaluation data with modified feature columns.
"""

import numpy as np
import pandas as pd


def set_column(data: pd.DataFrame, v: str, values) -> pd.DataFrame:
    """Copy of data with column v replaced, keeping categorical dtypes."""
    out = data.copy()
    template = data[v]
    if isinstance(template.dtype, pd.CategoricalDtype):
        values = np.broadcast_to(np.asarray(values, dtype=object), len(out))
        out[v] = pd.Categorical(
            values,
            categories=template.cat.categories,
            ordered=template.cat.ordered
        )
    else:
        out[v] = values
    return out


def expand_grid(data: pd.DataFrame, v: str, grid) -> pd.DataFrame:
    """Stack one copy of data per grid value with v set to that value.

    Rows are ordered grid-major: all rows for grid[0], then grid[1], ...
    """
    grid = np.asarray(grid)
    n = len(data)
    stacked = data.iloc[np.tile(np.arange(n), len(grid))]
    return set_column(stacked, v, np.repeat(grid, n))


def predict_on_grid(fl, data: pd.DataFrame, v: str, grid) -> np.ndarray:
    """Predictions of fl with v swept over grid; shape (n_rows, len(grid))."""
    if len(data) == 0 or len(grid) == 0:
        return np.empty((len(data), len(grid)))
    pred = fl.predict(expand_grid(data, v, grid))
    return pred.reshape(len(grid), len(data)).T
