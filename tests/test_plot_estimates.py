import os
import sys
import pytest
import logging
import pandas as pd

# Add parent directory to path to import from src
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import matplotlib
matplotlib.use('Agg')

from src.analysis.plot_estimates import (
    discover_report_dirs, load_results, bias_tests, plot_estimate_distribution,
    plot_estimator_comparison, covariate_estimates, compare_estimators
)
from src.censoring.simulation.simulator import SimulationStudy
from src.censoring.simulation.estimators import OracleEstimator, OutcomeCompleteCaseEstimator
from run_simulation import run_simulation


@pytest.fixture(scope="module")
def study():
    return SimulationStudy(n=500, rate=0.7)

@pytest.fixture
def report_dir(tmp_path):
    run_simulation(n=[200], rate=[0.5], num_trials=3, estimators=['oracle', 'complete_case'],
                   processes=1, output_dir=str(tmp_path / 'report'))
    return tmp_path / 'report'

def test_bias_tests_columns_and_direction(study):
    table = study.run('oracle', num_trials=10)
    tests = bias_tests(table, OracleEstimator().target_coefficients(study.beta))
    assert list(tests.index) == ['Intercept', 'X', 'Z']
    assert list(tests.columns) == ['mean', 'target', 't_stat', 'p_value']
    assert tests['p_value'].between(0, 1).all()

def test_bias_tests_detect_outcome_bias(study):
    estimator = OutcomeCompleteCaseEstimator()
    table = study.run(estimator, num_trials=10)
    tests = bias_tests(table, estimator.target_coefficients(study.beta))
    assert tests.loc['y', 'p_value'] < 0.01

def test_bias_tests_missing_target_warns(study, caplog):
    table = study.run('oracle', num_trials=3)
    with caplog.at_level(logging.WARNING):
        tests = bias_tests(table, {'X': 1.0})
    assert pd.isna(tests.loc['Z', 'p_value'])
    assert "no target" in caplog.text

def test_plot_estimate_distribution_writes_png(study, tmp_path):
    table = study.run('complete_case', num_trials=5)
    path = tmp_path / 'box.png'
    plot_estimate_distribution(table, str(path), targets={'Intercept': 1.0, 'W': 1.0, 'Z': 1.0})
    assert path.exists() and path.stat().st_size > 0

def test_covariate_estimates_pick_covariate_of_interest(report_dir):
    dirs = discover_report_dirs(str(report_dir))
    assert len(dirs) == 1
    results_all, results_summary = load_results(dirs[0])
    df = covariate_estimates(results_all)
    assert set(df['term']) == {'X', 'W'}
    assert df['estimate'].notna().all()
    assert len(df) == len(results_all)

def test_plot_estimator_comparison_writes_png(report_dir, tmp_path):
    results_all, _ = load_results(discover_report_dirs(str(report_dir))[0])
    path = tmp_path / 'comparison.png'
    plot_estimator_comparison(results_all, str(path))
    assert path.exists()

def test_compare_estimators_outputs(report_dir, tmp_path):
    combined = compare_estimators(discover_report_dirs(str(report_dir)),
                                  figures_dir=str(tmp_path / 'figures'), tables_dir=str(tmp_path / 'tables'))
    assert 'source' in combined.columns
    assert (tmp_path / 'tables' / 'combined_results_summary.csv').exists()
    assert (tmp_path / 'figures' / 'estimator_comparison.png').exists()

def test_discover_missing_base_dir(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        assert discover_report_dirs(str(tmp_path / 'missing')) == []
    assert "Base directory does not exist" in caplog.text

def test_load_results_missing_file(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        assert load_results(str(tmp_path)) == (None, None)
    assert "Missing results_all_runs.csv" in caplog.text

def test_run_simulation_with_plots(tmp_path):
    run_simulation(n=[200], rate=[0.5], num_trials=3, estimators=['naive'], processes=1,
                   output_dir=str(tmp_path), plot=True)
    figures = tmp_path / 'n_200_200_rate_0.5_0.5_trials_3_seed_1' / 'figures'
    assert (figures / 'naive_n_200_rate_0.5_boxplot.png').exists()
    assert (figures / 'estimator_comparison.png').exists()

def test_run_simulation_with_plots_writes_bias_tests(tmp_path):
    run_simulation(n=[200], rate=[0.5], num_trials=5, estimators=['oracle', 'outcome_complete_case'],
                   processes=1, output_dir=str(tmp_path), plot=True)
    path = tmp_path / 'n_200_200_rate_0.5_0.5_trials_5_seed_1' / 'bias_tests.csv'
    assert path.exists()
    tests = pd.read_csv(path)
    assert list(tests.columns) == ['estimator', 'n', 'rate', 'term', 'mean', 'target', 't_stat', 'p_value']
    assert set(tests['estimator']) == {'oracle', 'outcome_complete_case'}
    assert len(tests) == 6
    assert tests['p_value'].between(0, 1).all()
