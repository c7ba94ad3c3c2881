"""
Compare a LightGBM and an XGBoost regressor on the same held-out data.

Requires the ``examples`` extra: pip install pyflashlight[examples]
"""

import logging

import lightgbm as lgb
import numpy as np
import pandas as pd
import xgboost as xgb
from sklearn.model_selection import train_test_split

from pyflashlight import (
    configure_logging,
    flashlight,
    light_breakdown,
    light_effects,
    light_ice,
    light_importance,
    light_interaction,
    light_performance,
    multiflashlight,
)

logger = logging.getLogger(__name__)


def make_data(n: int = 2000, seed: int = 42) -> pd.DataFrame:
    """Synthetic car prices with one interaction."""
    rng = np.random.default_rng(seed)
    df = pd.DataFrame({
        'weight': rng.uniform(800, 2500, n),
        'cylinder': rng.choice([4, 6, 8, 12], n),
        'age': rng.integers(0, 20, n),
    })
    df['price'] = (
        10 * df['weight'] + 2000 * df['cylinder']
        - 500 * df['age'] + 2 * df['weight'] * (df['cylinder'] == 12)
        + rng.normal(0, 1000, n)
    )
    return df


def main():
    configure_logging()

    df = make_data()
    train, test = train_test_split(df, test_size=0.3, random_state=42)
    features = ['weight', 'cylinder', 'age']

    lgb_model = lgb.LGBMRegressor(n_estimators=200, learning_rate=0.05, verbose=-1)
    lgb_model.fit(train[features], train['price'])

    xgb_model = xgb.XGBRegressor(n_estimators=200, learning_rate=0.05, max_depth=4)
    xgb_model.fit(train[features], train['price'])

    fls = multiflashlight(
        [flashlight(lgb_model, 'lightgbm'), flashlight(xgb_model, 'xgboost')],
        data=test,
        y='price',
        metrics=['rmse', 'r_squared']
    )

    logger.info(f"Performance:\n{light_performance(fls).data}")

    importance = light_importance(fls, m_repetitions=4, seed=42)
    logger.info(f"Importance:\n{importance.data}")

    top = importance.most_important(3)
    logger.info(f"Interaction:\n{light_interaction(fls, v=top, pairwise=True, n_max=100).data}")

    ice = light_ice(fls, 'cylinder', n_max=10, seed=54, center='first')
    logger.info(f"ICE: {ice.n_curves} curves")

    effects = light_effects(fls, 'weight')
    logger.info(f"Partial dependence of weight:\n{effects.profile('partial dependence')}")

    breakdown = light_breakdown(fls, test.iloc[0], n_max=200)
    logger.info(f"Breakdown of the first test car:\n{breakdown.data}")


if __name__ == "__main__":
    main()
