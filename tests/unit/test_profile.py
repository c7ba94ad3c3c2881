"""
Tests for pyflashlight.explainability.profile: partial dependence, ALE and
binned profiles.
"""

import numpy as np
import pandas as pd
import pytest

from pyflashlight import flashlight, light_profile

from conftest import FEATURES, AdditiveModel, ProductModel


# ── partial dependence ───────────────────────────────────────────────────────


class TestPartialDependence:
    def test_columns(self, additive_fl):
        prof = light_profile(additive_fl, 'Cylinder')
        assert list(prof.data.columns) == ['label', 'variable', 'type', 'x', 'value', 'counts']
        assert list(prof.data['x']) == [4, 6, 8, 10]
        assert prof.data['counts'].sum() == 100

    def test_additive_slope(self, additive_fl):
        values = light_profile(additive_fl, 'Cylinder').data['value'].to_numpy()
        np.testing.assert_allclose(np.diff(values), [2.0, 2.0, 2.0])

    def test_categorical_feature(self, additive_fl):
        prof = light_profile(additive_fl, 'Color').data.set_index('x')['value']
        assert prof['green'] - prof['red'] == pytest.approx(2.0)

    def test_evaluate_at(self, additive_fl):
        prof = light_profile(additive_fl, 'Weight', evaluate_at=[0.0, 1.0])
        np.testing.assert_allclose(np.diff(prof.data['value']), [2.0])
        assert prof.data['counts'].isna().all()

    def test_by_groups(self, additive_fl):
        prof = light_profile(additive_fl, 'Cylinder', by='Region')
        assert list(prof.data.columns)[:2] == ['label', 'Region']
        assert len(prof.data) == 8

    def test_weighted(self, cars):
        fl = flashlight(AdditiveModel(), 'weighted', data=cars, y='price', w='w')
        prof = light_profile(fl, 'Cylinder').data
        expected = np.average(fl.predict(cars.assign(Cylinder=4)), weights=cars['w'])
        assert prof['value'].iloc[0] == pytest.approx(expected)


# ── accumulated local effects ────────────────────────────────────────────────


class TestAle:
    def test_count_weighted_mean_is_zero(self, forest_fl):
        prof = light_profile(forest_fl, 'Weight', type='ale').data
        assert np.average(prof['value'], weights=prof['counts']) == pytest.approx(0.0, abs=1e-9)

    def test_linear_effect(self, additive_fl):
        prof = light_profile(additive_fl, 'Weight', type='ale', n_bins=5).data
        np.testing.assert_allclose(np.diff(prof['value']), 2 * np.diff(prof['x']))
        assert prof['counts'].sum() == 100

    def test_weighted_counts_center_the_profile(self, cars):
        fl = flashlight(
            ProductModel(), 'weighted', data=cars, y='price', w='w', features=FEATURES
        )
        prof = light_profile(fl, 'Weight', type='ale', n_bins=5).data
        assert prof['counts'].sum() == pytest.approx(cars['w'].sum())
        assert np.average(prof['value'], weights=prof['counts']) == pytest.approx(0.0, abs=1e-9)

    def test_n_bins_below_two(self, additive_fl):
        with pytest.raises(ValueError):
            light_profile(additive_fl, 'Weight', type='ale', n_bins=1)

    def test_discrete_numeric_feature(self, additive_fl):
        prof = light_profile(additive_fl, 'Cylinder', type='ale').data
        assert len(prof) == 3
        np.testing.assert_allclose(np.diff(prof['value']), [2.0, 2.0])

    def test_non_numeric_feature(self, additive_fl):
        with pytest.raises(ValueError):
            light_profile(additive_fl, 'Color', type='ale')


# ── binned profiles ──────────────────────────────────────────────────────────


class TestBinnedProfiles:
    def test_predicted_is_bin_average(self, additive_fl, cars):
        prof = light_profile(additive_fl, 'Cylinder', type='predicted').data.set_index('x')
        pred = pd.Series(additive_fl.predict(), index=cars.index)
        expected = pred[cars['Cylinder'] == 6].mean()
        assert prof.loc[6, 'value'] == pytest.approx(expected)

    def test_response(self, additive_fl, cars):
        prof = light_profile(additive_fl, 'Color', type='response').data.set_index('x')
        assert prof.loc['red', 'value'] == pytest.approx(cars.loc[cars['Color'] == 'red', 'price'].mean())

    def test_residual_is_small_for_true_model(self, additive_fl):
        prof = light_profile(additive_fl, 'Weight', type='residual').data
        assert prof['value'].abs().max() < 1.0

    def test_quartiles(self, additive_fl):
        prof = light_profile(additive_fl, 'Cylinder', type='predicted', stats='quartiles').data
        assert list(prof.columns)[-2:] == ['q1', 'q3']
        assert (prof['q1'] <= prof['q3']).all()

    def test_quartiles_need_binned_type(self, additive_fl):
        with pytest.raises(ValueError):
            light_profile(additive_fl, 'Cylinder', stats='quartiles')

    def test_unknown_type(self, additive_fl):
        with pytest.raises(ValueError):
            light_profile(additive_fl, 'Cylinder', type='shap')
