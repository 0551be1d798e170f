import logging
from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest

from turnover_wrappers.data_loader import clean_dataset, correlation_matrix
from turnover_wrappers.model_selection import (MODEL_SPECS, ModelSpec, comparison_table,
                                               final_criteria_failures, flag_terms,
                                               max_predictor_correlation, meets_final_criteria,
                                               run_model_sequence, select_model)
from turnover_wrappers.modeling import ModelEvaluation


def _evaluation(name="M", coefs=None, vif=None, deviance=100.0):
    """Hand-built evaluation; only the fields the selector reads are filled."""
    if coefs is None:
        coefs = pd.DataFrame(
            {'Pr(>|z|)': [0.2, 1e-6, 1e-6], 'or_lower': [0.5, 0.1, 1.5], 'or_upper': [1.5, 0.5, 2.5]},
            index=['Intercept', 'satisfaction_level', 'tenure'],
        )
    if vif is None:
        terms = [t for t in coefs.index if t != 'Intercept']
        vif = pd.DataFrame({'GVIF': 1.2, 'tolerance': 1 / 1.2, 'serious': False}, index=terms)
    return ModelEvaluation(name=name, formula="", result=SimpleNamespace(deviance=deviance),
                           lr_test={}, pseudo_r2={}, coefficients=coefs, vif=vif)


@pytest.fixture
def corr():
    names = ['satisfaction_level', 'last_evaluation', 'number_project', 'average_monthly_hours',
             'tenure']
    matrix = pd.DataFrame(np.eye(5), index=names, columns=names)
    matrix.loc['number_project', 'average_monthly_hours'] = 0.42
    matrix.loc['average_monthly_hours', 'number_project'] = 0.42
    matrix.loc['satisfaction_level', 'tenure'] = -0.1
    matrix.loc['tenure', 'satisfaction_level'] = -0.1
    return matrix


class TestModelSpecs:
    def test_nine_variants(self):
        assert [s.name for s in MODEL_SPECS] == [f"Model {i}" for i in range(1, 10)]

    def test_department_replaced_from_model_4(self):
        for spec in MODEL_SPECS[:3]:
            assert 'department' in spec.terms
            assert 'management' not in spec.terms
        for spec in MODEL_SPECS[3:]:
            assert 'department' not in spec.terms
            assert {'management', 'RandD'} <= set(spec.terms)

    def test_terminal_variant(self):
        model_9 = MODEL_SPECS[8]
        assert model_9.formula == (
            "left_employer ~ satisfaction_level + salary + tenure + work_accident"
            " + number_project + promotion_last_5years + management + RandD"
        )

    def test_model_3_drops_both_workload_terms(self):
        terms = MODEL_SPECS[2].terms
        assert 'number_project' not in terms
        assert 'average_monthly_hours' not in terms
        assert 'last_evaluation' in terms


class TestFlagTerms:
    def test_clean_model_flags_nothing(self):
        assert flag_terms(_evaluation()) == []

    def test_insignificant_or_crossing_one(self):
        coefs = pd.DataFrame(
            {'Pr(>|z|)': [1e-5, 0.3, 0.01, 1e-6],
             'or_lower': [0.5, 0.8, 0.9, 1.1],
             'or_upper': [0.7, 1.4, 1.05, 1.3]},
            index=['satisfaction_level', 'department[T.IT]', 'last_evaluation', 'tenure'],
        )
        assert flag_terms(_evaluation(coefs=coefs)) == ['department[T.IT]', 'last_evaluation']

    def test_open_lower_bound(self):
        coefs = pd.DataFrame({'Pr(>|z|)': [1e-6, 1e-6], 'or_lower': [np.nan, np.nan],
                              'or_upper': [0.5, 1.5]},
                             index=['tenure', 'satisfaction_level'])
        # (0, 0.5] excludes 1, (0, 1.5] does not
        assert flag_terms(_evaluation(coefs=coefs)) == ['satisfaction_level']

    def test_open_upper_bound(self):
        coefs = pd.DataFrame({'Pr(>|z|)': [1e-6, 1e-6], 'or_lower': [1.2, 0.8],
                              'or_upper': [np.nan, np.nan]},
                             index=['tenure', 'satisfaction_level'])
        assert flag_terms(_evaluation(coefs=coefs)) == ['satisfaction_level']

    def test_low_tolerance(self):
        vif = pd.DataFrame({'GVIF': [20.0, 1.1], 'tolerance': [0.05, 1 / 1.1],
                            'serious': [True, False]},
                           index=['satisfaction_level', 'tenure'])
        assert flag_terms(_evaluation(vif=vif)) == ['satisfaction_level']


class TestFinalCriteria:
    def test_max_predictor_correlation(self, corr):
        assert max_predictor_correlation(corr, ['number_project', 'average_monthly_hours',
                                                'salary']) == pytest.approx(0.42)
        assert max_predictor_correlation(corr, ['satisfaction_level', 'tenure']) == pytest.approx(0.1)
        assert max_predictor_correlation(corr, ['tenure', 'management']) == 0.0

    def test_passing_model(self, corr):
        evaluation = _evaluation()
        assert final_criteria_failures(evaluation, corr) == []
        assert meets_final_criteria(evaluation, corr)

    def test_stringent_alpha(self, corr):
        coefs = pd.DataFrame({'Pr(>|z|)': [0.001], 'or_lower': [1.1], 'or_upper': [1.3]},
                             index=['tenure'])
        reasons = final_criteria_failures(_evaluation(coefs=coefs), corr)
        assert len(reasons) == 1
        assert "not significant" in reasons[0]

    def test_correlated_continuous_predictors(self, corr):
        coefs = pd.DataFrame({'Pr(>|z|)': [1e-8, 1e-8], 'or_lower': [1.1, 1.01],
                              'or_upper': [1.3, 1.02]},
                             index=['number_project', 'average_monthly_hours'])
        reasons = final_criteria_failures(_evaluation(coefs=coefs), corr)
        assert reasons == ["continuous predictors correlate at 0.42"]

    def test_select_lowest_deviance_among_passing(self, corr):
        failing = _evaluation("A", deviance=10.0, coefs=pd.DataFrame(
            {'Pr(>|z|)': [0.5], 'or_lower': [0.5], 'or_upper': [2.0]}, index=['tenure']))
        worse = _evaluation("B", deviance=120.0)
        better = _evaluation("C", deviance=110.0)
        assert select_model([failing, worse, better], corr).name == "C"

    def test_select_none(self, corr):
        failing = _evaluation("A", coefs=pd.DataFrame(
            {'Pr(>|z|)': [0.5], 'or_lower': [0.5], 'or_upper': [2.0]}, index=['tenure']))
        assert select_model([failing], corr) is None


class TestRunModelSequence:
    def test_fits_every_variant(self, raw_frame):
        df = clean_dataset(raw_frame)
        evaluations, failures = run_model_sequence(df, method="wald")
        assert failures == {}
        assert [e.name for e in evaluations] == [s.name for s in MODEL_SPECS]
        for e in evaluations:
            assert e.deviance <= e.result.null_deviance
            assert np.allclose(e.vif['GVIF'] * e.vif['tolerance'], 1.0)

    def test_unfittable_variant_is_a_dead_end(self, clean_frame):
        d = clean_frame.assign(satisfaction_copy=clean_frame['satisfaction_level'] * 3)
        specs = [
            ModelSpec("Broken", ["satisfaction_level", "satisfaction_copy"]),
            MODEL_SPECS[8],
        ]
        evaluations, failures = run_model_sequence(d, specs, method="wald")
        assert list(failures) == ["Broken"]
        assert [e.name for e in evaluations] == ["Model 9"]

    def test_default_profile_intervals(self, clean_frame):
        evaluations, failures = run_model_sequence(clean_frame, [MODEL_SPECS[3], MODEL_SPECS[8]])
        assert failures == {}
        for e in evaluations:
            coefs = e.coefficients
            assert np.isfinite(coefs[['or_lower', 'or_upper']].to_numpy()).all()
            assert (coefs['or_lower'] < coefs['odds_ratio']).all()
            assert (coefs['odds_ratio'] < coefs['or_upper']).all()
            assert e.flagged == flag_terms(e)

    def test_separated_variant_logs_partial_fit(self, clean_frame, caplog):
        d = clean_frame.assign(exit_interview=clean_frame['left_employer'])
        specs = [ModelSpec("Leaky", ["exit_interview"]), MODEL_SPECS[8]]
        with caplog.at_level(logging.ERROR):
            evaluations, failures = run_model_sequence(d, specs, method="wald")
        assert "separation" in failures["Leaky"]
        assert "when the solver stopped" in caplog.text
        assert [e.name for e in evaluations] == ["Model 9"]

    def test_comparison_table(self, clean_frame):
        evaluations, _ = run_model_sequence(clean_frame, MODEL_SPECS[3:5], method="wald")
        table = comparison_table(evaluations)
        assert list(table.index) == ["Model 4", "Model 5"]
        assert table.loc["Model 5", 'deviance'] >= table.loc["Model 4", 'deviance']
        assert (table['nagelkerke'] >= table['cox_snell']).all()

    def test_selection_on_synthetic_data(self, clean_frame):
        evaluations, _ = run_model_sequence(clean_frame, method="wald")
        corr = correlation_matrix(clean_frame)
        best = select_model(evaluations, corr)
        if best is not None:
            assert meets_final_criteria(best, corr)
            passing = [e for e in evaluations if meets_final_criteria(e, corr)]
            assert best.deviance == min(e.deviance for e in passing)
