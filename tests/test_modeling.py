"""Tests for the regression battery."""
import numpy as np
import pandas as pd
import pytest

from dimcorpus.errors import SchemaMismatchError
from dimcorpus.modeling import (
    ModelResult,
    ModelSpec,
    StatsmodelsBackend,
    coefficient_table,
    fit_battery,
    model_frame,
    model_summary,
)


class RecordingBackend:
    """Returns a fixed coefficient for every model and records what it was given."""

    def __init__(self):
        self.frames = {}

    def fit(self, spec, data):
        self.frames[spec.name] = data
        params = pd.Series({'Intercept': 0.5, spec.predictors[0]: 1.5})
        return ModelResult(spec.name, spec.formula, spec.family, nobs=len(data),
                           params=params, bse=params / 10, pvalues=params / 100,
                           aic=10.0, fit_statistic=0.2)


@pytest.fixture
def synthetic():
    rng = np.random.default_rng(7)
    n = 400
    score = rng.uniform(20, 100, n)
    l1 = rng.choice(['English', 'Japanese', 'Spanish'], n)
    logits = -3 + 0.05 * score
    accurate = (rng.uniform(size=n) < 1 / (1 + np.exp(-logits))).astype(int)
    percent = 1.0 + 0.02 * score + rng.normal(0, 0.3, n)
    return pd.DataFrame({
        'l1': l1,
        'proficiency_score': score,
        'accurate': accurate,
        'percent_used': percent,
        'upos': rng.choice(['NOUN', 'ADJ'], n),
    })


class TestModelSpec:

    def test_formula_wraps_categoricals(self):
        spec = ModelSpec('m', 'accurate', ('l1', 'proficiency_score'), 'binomial')
        assert spec.formula == 'accurate ~ C(l1) + proficiency_score'

    def test_variables(self):
        spec = ModelSpec('m', 'percent_used', ('proficiency_range',))
        assert spec.variables == ['percent_used', 'proficiency_range']

    def test_from_dict(self):
        spec = ModelSpec.from_dict({'name': 'accuracy_pos', 'outcome': 'accurate',
                                    'predictors': ['upos'], 'family': 'binomial'})
        assert spec == ModelSpec('accuracy_pos', 'accurate', ('upos',), 'binomial')

    def test_unknown_family(self):
        with pytest.raises(ValueError):
            ModelSpec('m', 'accurate', ('l1',), 'poisson')

    def test_no_predictors(self):
        with pytest.raises(ValueError):
            ModelSpec('m', 'accurate', (), 'binomial')


class TestFitBattery:

    def test_backend_receives_complete_cases(self, synthetic):
        synthetic.loc[:9, 'proficiency_score'] = np.nan
        backend = RecordingBackend()
        specs = [ModelSpec('score', 'percent_used', ('proficiency_score',)),
                 ModelSpec('l1', 'percent_used', ('l1',))]

        results = fit_battery(synthetic, specs, backend)

        assert [r.name for r in results] == ['score', 'l1']
        assert len(backend.frames['score']) == 390
        assert len(backend.frames['l1']) == 400
        assert backend.frames['score'].columns.tolist() == ['percent_used', 'proficiency_score']

    def test_constant_outcome_skipped(self, synthetic):
        synthetic['accurate'] = 1
        backend = RecordingBackend()
        [result] = fit_battery(synthetic, [ModelSpec('m', 'accurate', ('l1',), 'binomial')], backend)

        assert not result.fitted
        assert 'constant' in result.skipped
        assert backend.frames == {}

    def test_single_level_predictor_skipped(self, synthetic):
        synthetic['l1'] = 'English'
        [result] = fit_battery(synthetic, [ModelSpec('m', 'percent_used', ('l1',))], RecordingBackend())
        assert result.skipped == 'l1 has a single value'

    def test_no_complete_rows_skipped(self, synthetic):
        synthetic['proficiency_score'] = np.nan
        [result] = fit_battery(synthetic, [ModelSpec('m', 'percent_used', ('proficiency_score',))],
                               RecordingBackend())
        assert result.skipped == 'no complete rows'
        assert result.nobs == 0

    def test_missing_column(self, synthetic):
        with pytest.raises(SchemaMismatchError) as excinfo:
            model_frame(synthetic, ModelSpec('m', 'percent_used', ('proficiency_range',)))
        assert excinfo.value.missing == ['proficiency_range']


class TestStatsmodelsBackend:

    def test_ols_recovers_slope(self, synthetic):
        spec = ModelSpec('percent_score', 'percent_used', ('proficiency_score',))
        result = StatsmodelsBackend().fit(spec, model_frame(synthetic, spec))

        assert result.fitted
        assert result.nobs == 400
        assert result.params['proficiency_score'] == pytest.approx(0.02, abs=0.005)
        assert 0 < result.fit_statistic <= 1

    def test_logit_positive_effect(self, synthetic):
        spec = ModelSpec('accuracy_score', 'accurate', ('proficiency_score',), 'binomial')
        result = StatsmodelsBackend().fit(spec, model_frame(synthetic, spec))

        assert result.fitted
        assert result.params['proficiency_score'] > 0
        assert result.pvalues['proficiency_score'] < 0.05
        assert result.aic is not None

    def test_perfect_separation_skipped(self):
        """A score that splits accurate from inaccurate forms exactly has no finite fit."""
        data = pd.DataFrame({
            'accurate': [0, 0, 0, 1, 1, 1],
            'proficiency_score': [20.0, 30.0, 40.0, 60.0, 70.0, 80.0],
        })
        spec = ModelSpec('accuracy_score', 'accurate', ('proficiency_score',), 'binomial')
        result = StatsmodelsBackend().fit(spec, data)

        assert not result.fitted
        assert result.skipped.startswith('not estimable')
        assert result.nobs == 6
        assert coefficient_table([result]).empty

    def test_categorical_terms(self, synthetic):
        spec = ModelSpec('percent_l1', 'percent_used', ('l1',))
        result = StatsmodelsBackend().fit(spec, model_frame(synthetic, spec))
        assert 'C(l1)[T.Japanese]' in result.params.index
        assert 'C(l1)[T.Spanish]' in result.params.index


class TestTables:

    def test_coefficient_table(self, synthetic):
        specs = [ModelSpec('a', 'percent_used', ('proficiency_score',)),
                 ModelSpec('b', 'accurate', ('upos',), 'binomial')]
        synthetic['upos'] = 'NOUN'
        results = fit_battery(synthetic, specs, RecordingBackend())
        table = coefficient_table(results)

        assert table.columns.tolist() == ['model', 'formula', 'family', 'term',
                                          'estimate', 'std_error', 'p_value', 'nobs']
        assert table['model'].unique().tolist() == ['a']
        assert table['term'].tolist() == ['Intercept', 'proficiency_score']
        assert table['std_error'].tolist() == pytest.approx([0.05, 0.15])

    def test_model_summary_lists_skipped(self, synthetic):
        synthetic['accurate'] = 0
        specs = [ModelSpec('a', 'percent_used', ('l1',)),
                 ModelSpec('b', 'accurate', ('l1',), 'binomial')]
        summary = model_summary(fit_battery(synthetic, specs, RecordingBackend()))

        assert summary['model'].tolist() == ['a', 'b']
        assert pd.isna(summary.loc[0, 'skipped'])
        assert summary.loc[1, 'skipped'] == 'accurate is constant'

    def test_empty_results(self):
        assert coefficient_table([]).empty
