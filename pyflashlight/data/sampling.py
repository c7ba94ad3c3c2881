"""
Seeded row sampling and grouping helpers.

Randomness is always drawn from explicit ``numpy.random.Generator`` objects;
parallel work receives child seeds spawned from one top-level seed.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..core.config import get_settings

logger = logging.getLogger(__name__)


def resolve_seed(seed: Optional[int]) -> Optional[int]:
    """Fall back to the configured random seed."""
    return get_settings().analysis.random_seed if seed is None else seed


def spawn_seeds(seed: Optional[int], n: int) -> List[np.random.SeedSequence]:
    """Independent, reproducible child seeds for n parallel tasks."""
    return np.random.SeedSequence(seed).spawn(n)


def sample_indices(n_rows: int, n_max: Optional[int], rng: np.random.Generator) -> np.ndarray:
    """Positions of up to n_max rows drawn without replacement.

    A request larger than the data is clipped to all rows in original order.
    """
    if n_max is None or n_max >= n_rows:
        if n_max is not None and n_max > n_rows:
            logger.debug(f"n_max={n_max} exceeds {n_rows} rows, using all rows")
        return np.arange(n_rows)
    return np.sort(rng.choice(n_rows, size=n_max, replace=False))


def sample_rows(
    data: pd.DataFrame,
    n_max: Optional[int],
    rng: np.random.Generator
) -> pd.DataFrame:
    return data.iloc[sample_indices(len(data), n_max, rng)]


def resolve_by(default: Sequence[str], by: Optional[Sequence[str]]) -> Tuple[str, ...]:
    """Grouping columns: explicit ``by`` wins over the flashlight's own."""
    if by is None:
        return tuple(default)
    if isinstance(by, str):
        return (by,)
    return tuple(by)


def iter_groups(
    data: pd.DataFrame,
    by: Sequence[str] = ()
) -> Iterator[Tuple[Dict[str, Any], np.ndarray]]:
    """Yield (group key, row positions) pairs; a single pair without grouping."""
    by = list(by)
    if not by:
        yield {}, np.arange(len(data))
        return

    codes = data.groupby(by, sort=True, observed=True, dropna=False).ngroup().to_numpy()
    for code in range(codes.max() + 1 if len(codes) else 0):
        positions = np.flatnonzero(codes == code)
        first = data.iloc[positions[0]]
        yield {col: first[col] for col in by}, positions


def resolve_count(value: Optional[int], default: int, name: str, minimum: int = 1) -> int:
    """Explicit count, or the configured default when None."""
    if value is None:
        return default
    if value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {value}")
    return value


def resolve_features(fl, v: Optional[Sequence[str]], exclude: Sequence[str] = ()) -> List[str]:
    """Features to analyse: v (a name or a list), or all features of fl not in exclude."""
    if v is None:
        return [col for col in fl.feature_names() if col not in exclude]
    if isinstance(v, str):
        return [v]
    return list(v)
