"""
Tests for pyflashlight.models.importance: seeded permutation importance.
"""

import numpy as np
import pandas as pd
import pytest

from pyflashlight import light_importance, multiflashlight


# ── light_importance ─────────────────────────────────────────────────────────


class TestLightImportance:
    def test_columns(self, additive_fl):
        imp = light_importance(additive_fl, seed=1)
        assert list(imp.data.columns) == ['label', 'metric', 'variable', 'value', 'error']
        assert list(imp.data['variable']) == ['Weight', 'Cylinder', 'Color', 'Region']
        assert imp.metric == 'rmse'
        assert imp.lower_is_better

    def test_unused_feature_is_exactly_zero(self, additive_fl):
        imp = light_importance(additive_fl, seed=1).data.set_index('variable')['value']
        assert imp['Region'] == 0.0
        assert imp['Weight'] > imp['Cylinder'] > 0

    def test_most_important(self, additive_fl):
        imp = light_importance(additive_fl, seed=1, m_repetitions=4)
        assert imp.most_important(1) == ['Weight']
        assert imp.most_important()[-1] == 'Region'

    def test_reproducible_across_calls(self, fls):
        first = light_importance(fls, seed=3, m_repetitions=2)
        second = light_importance(fls, seed=3, m_repetitions=2)
        pd.testing.assert_frame_equal(first.data, second.data)

    def test_same_permutations_across_explainers(self, linear_fl):
        twin = linear_fl.replace(label='twin')
        imp = light_importance(multiflashlight([linear_fl, twin]), seed=5)
        values = imp.data.pivot(index='variable', columns='label', values='value')
        np.testing.assert_allclose(values['linear'], values['twin'])

    def test_independent_of_n_jobs(self, linear_fl):
        serial = light_importance(linear_fl, seed=3, m_repetitions=2, n_jobs=1)
        parallel = light_importance(linear_fl, seed=3, m_repetitions=2, n_jobs=2)
        pd.testing.assert_frame_equal(serial.data, parallel.data)

    def test_error_needs_repetitions(self, additive_fl):
        single = light_importance(additive_fl, v=['Weight'], seed=1)
        assert np.isnan(single.data['error'].iloc[0])

        repeated = light_importance(additive_fl, v=['Weight'], seed=1, m_repetitions=3)
        assert repeated.data['error'].iloc[0] >= 0
        assert repeated.m_repetitions == 3

    def test_higher_is_better_flips_sign(self, additive_fl):
        imp = light_importance(additive_fl, v=['Weight'], metric='r_squared', seed=1)
        assert not imp.lower_is_better
        assert imp.data['value'].iloc[0] > 0

    def test_by_groups(self, additive_fl):
        imp = light_importance(additive_fl, by='Region', seed=1)
        assert list(imp.data.columns) == ['label', 'Region', 'metric', 'variable', 'value', 'error']
        assert set(imp.data['variable']) == {'Weight', 'Cylinder', 'Color'}
        assert len(imp.data) == 6

    def test_n_max_subsample(self, additive_fl):
        imp = light_importance(additive_fl, v=['Weight'], n_max=20, seed=1)
        assert imp.data['value'].iloc[0] > 0

    def test_single_feature_name(self, additive_fl):
        imp = light_importance(additive_fl, v='Weight', seed=1)
        assert list(imp.data['variable']) == ['Weight']

    @pytest.mark.parametrize('kwargs', [{'n_max': 0}, {'m_repetitions': 0}])
    def test_counts_below_one(self, additive_fl, kwargs):
        with pytest.raises(ValueError):
            light_importance(additive_fl, **kwargs)

    def test_mixed_metrics_are_rejected(self, additive_fl, product_fl):
        fls = multiflashlight([
            additive_fl.replace(metrics=['rmse']),
            product_fl.replace(metrics=['mae'])
        ])
        with pytest.raises(ValueError, match='different metrics'):
            light_importance(fls, v=['Weight'], seed=1)

        imp = light_importance(fls, v=['Weight'], metric='mae', seed=1)
        assert imp.metric == 'mae'
        assert set(imp.data['metric']) == {'mae'}
