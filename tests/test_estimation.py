import pytest
import numpy as np
import pandas as pd
import sys
import os
from numpy.random import default_rng

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.censoring.simulation.estimation import fit_ols, FittedEstimate, INTERCEPT
from src.censoring.simulation.estimators import (
    ESTIMATORS, get_estimator, EstimatorVariant,
    OracleEstimator, NaiveEstimator, CompleteCaseEstimator,
    OutcomeOracleEstimator, OutcomeCompleteCaseEstimator
)
from src.censoring.simulation.data_generators import SimulationConfig, generate_data
from src.censoring.simulation.errors import EmptyDatasetError, SingularDesignError

@pytest.fixture(scope="module")
def data():
    return generate_data(SimulationConfig(n=400, rate=0.5, seed=8))

@pytest.fixture
def exact_data():
    """Noise-free data with known coefficients."""
    rng = default_rng(0)
    x = rng.uniform(0, 10, 50)
    z = rng.normal(0, 1, 50)
    return pd.DataFrame({'X': x, 'Z': z, 'y': 2.0 + 3.0 * x - 1.5 * z, 'D': (x < 5).astype(int)})

# ----------------------------------------------------------------------
# fit_ols
# ----------------------------------------------------------------------
def test_01_recovers_exact_coefficients(exact_data):
    fitted = fit_ols(exact_data, 'y', ['X', 'Z'])
    assert list(fitted) == [INTERCEPT, 'X', 'Z']
    assert fitted[INTERCEPT] == pytest.approx(2.0)
    assert fitted['X'] == pytest.approx(3.0)
    assert fitted['Z'] == pytest.approx(-1.5)
    assert fitted.n_obs == 50
    assert fitted.df_resid == 47

def test_02_row_filter_uses_complete_cases_only(exact_data):
    fitted = fit_ols(exact_data, 'y', ['X', 'Z'], row_filter='D')
    assert fitted.n_obs == int(exact_data['D'].sum())
    assert fitted['X'] == pytest.approx(3.0)

def test_03_matches_normal_equations(data):
    fitted = fit_ols(data, 'y', ['W', 'Z'])
    design = np.column_stack([np.ones(len(data)), data[['W', 'Z']].values])
    coef = np.linalg.solve(design.T @ design, design.T @ data['y'].values)
    np.testing.assert_allclose(fitted.params.values, coef, rtol=1e-8)

    resid = data['y'].values - design @ coef
    sigma2 = resid @ resid / (len(data) - 3)
    se = np.sqrt(np.diag(sigma2 * np.linalg.inv(design.T @ design)))
    np.testing.assert_allclose([fitted.std_errors[t] for t in fitted], se, rtol=1e-6)

def test_04_p_values_in_unit_interval(data):
    fitted = fit_ols(data, 'y', ['X', 'Z'])
    for p in fitted.p_values.values():
        assert 0.0 <= p <= 1.0
    # X carries a large true effect
    assert fitted.p_values['X'] < 1e-6

def test_05_empty_filter_raises():
    df = pd.DataFrame({'y': [1.0, 2.0, 3.0], 'W': [0.1, 0.2, 0.3], 'Z': [0.0, 1.0, -1.0], 'D': [0, 0, 0]})
    with pytest.raises(EmptyDatasetError):
        fit_ols(df, 'y', ['W', 'Z'], row_filter='D')

def test_06_empty_frame_raises():
    df = pd.DataFrame({'y': [], 'X': [], 'Z': []})
    with pytest.raises(EmptyDatasetError):
        fit_ols(df, 'y', ['X', 'Z'])

def test_07_constant_predictor_raises(exact_data):
    df = exact_data.assign(Z=1.0)
    with pytest.raises(SingularDesignError):
        fit_ols(df, 'y', ['X', 'Z'])

@pytest.mark.parametrize("value", [0.1, 1.0, 7.3])
def test_07b_single_constant_predictor_raises(value):
    df = pd.DataFrame({'y': default_rng(1).normal(0, 1, 50), 'W': np.full(50, value)})
    with pytest.raises(SingularDesignError):
        fit_ols(df, 'y', ['W'])

def test_07c_collinear_predictors_raise(exact_data):
    df = exact_data.assign(Z=0.3 * exact_data['X'] + 0.1)
    with pytest.raises(SingularDesignError):
        fit_ols(df, 'y', ['X', 'Z'])

def test_08_too_few_rows_raises():
    df = pd.DataFrame({'y': [1.0, 2.0], 'X': [0.5, 1.5], 'Z': [0.3, -0.2]})
    with pytest.raises(SingularDesignError):
        fit_ols(df, 'y', ['X', 'Z'])

def test_09_exactly_determined_has_nan_standard_errors():
    df = pd.DataFrame({'y': [1.0, 2.0, 4.0], 'X': [0.0, 1.0, 2.0], 'Z': [0.0, 1.0, 0.0]})
    fitted = fit_ols(df, 'y', ['X', 'Z'])
    assert fitted.df_resid == 0
    assert all(np.isnan(se) for se in fitted.std_errors.values())
    assert all(np.isnan(p) for p in fitted.p_values.values())

def test_10_fitted_estimate_is_mapping(exact_data):
    fitted = fit_ols(exact_data, 'y', ['X', 'Z'], name='oracle')
    as_dict = dict(fitted)
    assert list(as_dict) == [INTERCEPT, 'X', 'Z']
    assert 'X' in fitted and 'W' not in fitted
    with pytest.raises(KeyError):
        fitted['W']
    frame = fitted.summary_frame()
    assert list(frame.columns) == ['estimate', 'std_error', 't_value', 'p_value']
    text = fitted.format_summary()
    assert 'oracle: y ~ X + Z' in text
    assert 'n = 50' in text

# ----------------------------------------------------------------------
# Estimator variants
# ----------------------------------------------------------------------
@pytest.mark.parametrize("estimator,response,predictors,row_filter", [
    (OracleEstimator(), 'y', ('X', 'Z'), None),
    (NaiveEstimator(), 'y', ('W', 'Z'), None),
    (CompleteCaseEstimator(), 'y', ('W', 'Z'), 'D'),
    (OutcomeOracleEstimator(), 'X', ('y', 'Z'), None),
    (OutcomeCompleteCaseEstimator(), 'W', ('y', 'Z'), 'D'),
])
def test_11_variant_formulas(data, estimator, response, predictors, row_filter):
    assert estimator.response == response
    assert tuple(estimator.predictors) == predictors
    assert estimator.row_filter == row_filter
    fitted = estimator.estimate(data)
    assert fitted.name == estimator.name
    assert fitted.response == response
    assert list(fitted) == [INTERCEPT] + list(predictors)
    expected_rows = len(data) if row_filter is None else int(data['D'].sum())
    assert fitted.n_obs == expected_rows

def test_12_registry_and_lookup():
    assert set(ESTIMATORS) == {'oracle', 'naive', 'complete_case', 'outcome_oracle', 'outcome_complete_case'}
    assert isinstance(get_estimator('oracle'), OracleEstimator)
    est = CompleteCaseEstimator()
    assert get_estimator(est) is est
    with pytest.raises(ValueError):
        get_estimator('tobit')

def test_13_base_class_is_abstract():
    with pytest.raises(TypeError):
        EstimatorVariant()

def test_14_target_coefficients():
    beta = (1.0, 2.0, 0.5)
    assert CompleteCaseEstimator().target_coefficients(beta) == {INTERCEPT: 1.0, 'W': 2.0, 'Z': 0.5}
    assert OracleEstimator().target_coefficients(beta) == {INTERCEPT: 1.0, 'X': 2.0, 'Z': 0.5}

    targets = OutcomeOracleEstimator().target_coefficients((1.0, 1.0, 1.0))
    gamma = (100 / 12) / (100 / 12 + 1)
    assert targets['y'] == pytest.approx(gamma)
    assert targets['Z'] == pytest.approx(-gamma)
    assert targets[INTERCEPT] == pytest.approx(5 - gamma * 6)
