"""
Tests for pyflashlight.explainability.breakdown.
"""

import numpy as np
import pandas as pd
import pytest

from pyflashlight import SchemaMismatch, flashlight, light_breakdown

from conftest import AdditiveModel


def contributions(bd, label=None):
    data = bd.data if label is None else bd.data[bd.data['label'] == label]
    return data[~data['variable'].isin(['baseline', 'prediction'])]


# ── light_breakdown ──────────────────────────────────────────────────────────


class TestLightBreakdown:
    def test_columns_and_steps(self, additive_fl, cars):
        bd = light_breakdown(additive_fl, cars.iloc[0], seed=1)
        assert list(bd.data.columns) == [
            'label', 'step', 'variable', 'description', 'before', 'after', 'contribution'
        ]
        assert bd.data['variable'].iloc[0] == 'baseline'
        assert bd.data['variable'].iloc[-1] == 'prediction'
        assert list(bd.data['step']) == list(range(6))

    def test_contributions_sum_to_prediction_minus_baseline(self, forest_fl, cars):
        bd = light_breakdown(forest_fl, cars.iloc[[5]], seed=1)
        baseline = bd.data['after'].iloc[0]
        prediction = bd.data['after'].iloc[-1]
        assert contributions(bd)['contribution'].sum() == pytest.approx(prediction - baseline)
        assert prediction == pytest.approx(forest_fl.predict(cars.iloc[[5]])[0])

    def test_baseline_is_mean_prediction(self, additive_fl):
        bd = light_breakdown(additive_fl, additive_fl.data.iloc[0], seed=1)
        assert bd.data['after'].iloc[0] == pytest.approx(additive_fl.predict().mean())

    def test_importance_order(self, additive_fl, cars):
        bd = light_breakdown(additive_fl, cars.iloc[7], visit_strategy='importance', seed=1)
        effects = contributions(bd)['contribution'].abs().to_numpy()
        assert (np.diff(effects) <= 1e-9).all()

    def test_declared_order(self, additive_fl, cars):
        v = ['Color', 'Weight', 'Cylinder']
        bd = light_breakdown(additive_fl, cars.iloc[3], v=v, visit_strategy='v', seed=1)
        assert list(contributions(bd)['variable']) == v + ['other features']
        assert bd.visit_strategy == 'v'

    def test_unvisited_features_end_at_prediction(self, additive_fl, cars):
        obs = cars.iloc[[0]]
        bd = light_breakdown(additive_fl, obs, v=['Color'], visit_strategy='v', seed=1)
        steps = contributions(bd)
        assert list(steps['variable']) == ['Color', 'other features']
        assert steps['description'].iloc[-1] == '3 other features'
        prediction = bd.data['after'].iloc[-1]
        assert prediction == pytest.approx(additive_fl.predict(obs)[0])
        baseline = bd.data['after'].iloc[0]
        assert steps['contribution'].sum() == pytest.approx(prediction - baseline)

    def test_single_feature_name(self, additive_fl, cars):
        bd = light_breakdown(additive_fl, cars.iloc[0], v='Weight', visit_strategy='v', seed=1)
        assert list(contributions(bd)['variable']) == ['Weight', 'other features']

    def test_n_max_below_one(self, additive_fl, cars):
        with pytest.raises(ValueError):
            light_breakdown(additive_fl, cars.iloc[0], n_max=0)

    def test_additive_contributions(self, additive_fl, cars):
        obs = cars.iloc[2]
        bd = light_breakdown(additive_fl, obs, visit_strategy='v', seed=1)
        steps = contributions(bd).set_index('variable')['contribution']
        expected = 2 * (obs['Weight'] - cars['Weight'].mean())
        assert steps['Weight'] == pytest.approx(expected)
        assert steps['Region'] == pytest.approx(0.0)

    def test_permutation_reproducible(self, additive_fl, cars):
        first = light_breakdown(additive_fl, cars.iloc[0], visit_strategy='permutation', seed=9)
        second = light_breakdown(additive_fl, cars.iloc[0], visit_strategy='permutation', seed=9)
        pd.testing.assert_frame_equal(first.data, second.data)

    def test_top_m_collapses_rest(self, additive_fl, cars):
        bd = light_breakdown(additive_fl, cars.iloc[0], top_m=2, seed=1)
        assert list(bd.data['variable'])[-2] == 'other features'
        assert len(bd.data) == 5
        total = contributions(bd)['contribution'].sum()
        assert total == pytest.approx(bd.data['after'].iloc[-1] - bd.data['after'].iloc[0])

    def test_description(self, additive_fl, cars):
        bd = light_breakdown(additive_fl, cars.iloc[0], v=['Color'], visit_strategy='v', seed=1)
        assert contributions(bd)['description'].iloc[0] == f"Color = {cars['Color'].iloc[0]}"

    def test_reference_restricted_to_group(self, cars):
        fl = flashlight(AdditiveModel(), 'grouped', data=cars, y='price', by='Region')
        obs = cars.iloc[0]
        bd = light_breakdown(fl, obs, seed=1)
        group = cars[cars['Region'] == obs['Region']]
        assert bd.data['after'].iloc[0] == pytest.approx(fl.predict(group).mean())
        assert 'Region' not in set(bd.data['variable'])

    def test_weighted_baseline(self, cars):
        fl = flashlight(AdditiveModel(), 'weighted', data=cars, y='price', w='w')
        bd = light_breakdown(fl, cars.iloc[0], seed=1)
        assert bd.data['after'].iloc[0] == pytest.approx(np.average(fl.predict(), weights=cars['w']))

    def test_multiple_explainers(self, fls, cars):
        bd = light_breakdown(fls, cars.iloc[0], seed=1)
        assert bd.labels == ['linear', 'forest']
        assert len(bd.data) == 2 * 4

    def test_missing_feature_in_new_obs(self, additive_fl, cars):
        with pytest.raises(SchemaMismatch):
            light_breakdown(additive_fl, cars.iloc[0].drop('Weight'))

    def test_unknown_strategy(self, additive_fl, cars):
        with pytest.raises(ValueError):
            light_breakdown(additive_fl, cars.iloc[0], visit_strategy='random')

    def test_new_obs_must_be_one_row(self, additive_fl, cars):
        with pytest.raises(ValueError):
            light_breakdown(additive_fl, cars.iloc[:2])
