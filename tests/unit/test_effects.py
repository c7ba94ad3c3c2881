"""
Tests for pyflashlight.explainability.effects.
"""

import numpy as np
import pytest

from pyflashlight import flashlight, light_effects, light_profile

from conftest import AdditiveModel


# ── light_effects ────────────────────────────────────────────────────────────


class TestLightEffects:
    def test_continuous_feature_has_all_types(self, additive_fl):
        eff = light_effects(additive_fl, 'Weight')
        assert list(eff.data['type'].unique()) == ['response', 'predicted', 'partial dependence', 'ale']
        assert eff.variable == 'Weight'

    def test_discrete_feature_has_no_ale(self, additive_fl):
        eff = light_effects(additive_fl, 'Cylinder')
        assert set(eff.data['type']) == {'response', 'predicted', 'partial dependence'}

    def test_no_response_without_y(self, cars):
        fl = flashlight(AdditiveModel(), 'no_y', data=cars)
        eff = light_effects(fl, 'Cylinder')
        assert 'response' not in set(eff.data['type'])

    def test_shared_grid(self, additive_fl):
        eff = light_effects(additive_fl, 'Weight', n_bins=6)
        grids = [
            tuple(np.round(eff.profile(type)['x'], 10))
            for type in ('response', 'predicted', 'partial dependence', 'ale')
        ]
        assert len(set(grids)) == 1

    def test_counts(self, additive_fl):
        eff = light_effects(additive_fl, 'Cylinder')
        assert list(eff.counts.columns) == ['label', 'x', 'counts']
        assert eff.counts['counts'].sum() == 100

    def test_n_max_below_one(self, additive_fl):
        with pytest.raises(ValueError):
            light_effects(additive_fl, 'Weight', n_max=0)

    def test_partial_dependence_matches_profile(self, forest_fl):
        eff = light_effects(forest_fl, 'Weight', n_max=50, seed=4)
        prof = light_profile(forest_fl, 'Weight', n_max=50, seed=4)
        np.testing.assert_allclose(
            eff.profile('partial dependence')['value'].to_numpy(),
            prof.data['value'].to_numpy()
        )

    def test_multiple_explainers_and_groups(self, fls):
        eff = light_effects(fls, 'Cylinder', by='Region')
        assert set(eff.data['label']) == {'linear', 'forest'}
        assert list(eff.counts.columns) == ['label', 'Region', 'x', 'counts']
        assert len(eff.counts) == 2 * 2 * 4

    def test_unknown_stats(self, additive_fl):
        with pytest.raises(ValueError):
            light_effects(additive_fl, 'Weight', stats='median')
