"""
Shared fixtures for the pyflashlight test suite.

Provides a small synthetic dataset (100 rows, "Cylinder" with 4 distinct
values), hand-written models with known structure and sklearn models wrapped
in flashlights.
"""

import numpy as np
import pandas as pd
import pytest
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LinearRegression

from pyflashlight import flashlight, multiflashlight
from pyflashlight.core.config import reload_settings
from pyflashlight.core.metrics import rmse

FEATURES = ('Weight', 'Cylinder', 'Color', 'Region')
COLOR_EFFECT = {'red': 0.0, 'blue': 1.0, 'green': 2.0}


class AdditiveModel:
    """f = 2 * Weight + Cylinder + color effect; ignores Region."""

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        color = data['Color'].astype(str).map(COLOR_EFFECT).to_numpy(dtype=float)
        return 2.0 * data['Weight'].to_numpy(dtype=float) + data['Cylinder'].to_numpy(dtype=float) + color


class ProductModel:
    """f = Weight * Cylinder, a pure interaction."""

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        return data['Weight'].to_numpy(dtype=float) * data['Cylinder'].to_numpy(dtype=float)


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Every test starts from the packaged defaults."""
    monkeypatch.delenv("PYFLASHLIGHT_CONFIG", raising=False)
    reload_settings()
    yield
    reload_settings()


@pytest.fixture
def cars() -> pd.DataFrame:
    rng = np.random.default_rng(0)
    n = 100
    data = pd.DataFrame({
        'Weight': rng.uniform(0, 10, n),
        'Cylinder': rng.choice([4, 6, 8, 10], n),
        'Color': rng.choice(['red', 'blue', 'green'], n),
        'Region': rng.choice(['north', 'south'], n),
    })
    data['Weight'] = data['Weight'].round(3)
    # make sure every level is present
    data.loc[:3, 'Cylinder'] = [4, 6, 8, 10]
    data['price'] = AdditiveModel().predict(data) + rng.normal(0, 0.5, n)
    data['w'] = rng.integers(1, 4, n).astype(float)
    return data


@pytest.fixture
def additive_fl(cars):
    return flashlight(AdditiveModel(), 'additive', data=cars, y='price', features=FEATURES)


@pytest.fixture
def product_fl(cars):
    return flashlight(ProductModel(), 'product', data=cars, y='price', features=FEATURES)


@pytest.fixture
def numeric_features():
    return ('Weight', 'Cylinder')


@pytest.fixture
def linear_fl(cars, numeric_features):
    features = list(numeric_features)
    model = LinearRegression().fit(cars[features], cars['price'])
    return flashlight(model, 'linear', data=cars, y='price', features=numeric_features)


@pytest.fixture
def forest_fl(cars, numeric_features):
    features = list(numeric_features)
    model = RandomForestRegressor(n_estimators=20, max_depth=4, random_state=0)
    model.fit(cars[features], cars['price'])
    return flashlight(model, 'forest', data=cars, y='price', features=numeric_features)


@pytest.fixture
def fls(linear_fl, forest_fl, cars):
    return multiflashlight(
        [linear_fl, forest_fl],
        data=cars,
        y='price',
        metrics={'RMSE': rmse}
    )
