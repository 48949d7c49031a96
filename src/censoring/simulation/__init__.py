"""Simulation study framework for regression with a right-censored variable.

This package simulates datasets where a covariate X is right-censored by an
independent threshold C (observed W = min(X, C) and D = 1{X <= C}) and compares
OLS estimators that use the latent X, the censored W, or only complete cases.

Basic Usage
-----------
>>> from src.censoring.simulation import SimulationStudy, CompleteCaseEstimator
>>>
>>> study = SimulationStudy(n=2000, rate=0.7, beta=(1, 1, 1))
>>> table = study.run(CompleteCaseEstimator(), num_trials=100, start_seed=1)
>>> print(table.means())

Modules
-------
errors : Exception types
data_generators : SimulationConfig and dataset generation
estimation : Shared OLS routine and FittedEstimate
estimators : Estimator variant classes
results : ResultTable
simulator : Study orchestration
"""

from .errors import SimulationError, ConfigError, EmptyDatasetError, SingularDesignError
from .data_generators import (
    SimulationConfig,
    generate_data,
    expected_censoring_rate,
    censoring_summary
)
from .estimation import FittedEstimate, fit_ols
from .estimators import (
    EstimatorVariant,
    OracleEstimator,
    NaiveEstimator,
    CompleteCaseEstimator,
    OutcomeOracleEstimator,
    OutcomeCompleteCaseEstimator,
    ESTIMATORS,
    get_estimator
)
from .results import ResultTable, TrialFailure
from .simulator import SimulationStudy

__version__ = '1.0.0'

__all__ = [
    # Errors
    'SimulationError',
    'ConfigError',
    'EmptyDatasetError',
    'SingularDesignError',

    # Data generation
    'SimulationConfig',
    'generate_data',
    'expected_censoring_rate',
    'censoring_summary',

    # Fitting
    'FittedEstimate',
    'fit_ols',

    # Estimator variants
    'EstimatorVariant',
    'OracleEstimator',
    'NaiveEstimator',
    'CompleteCaseEstimator',
    'OutcomeOracleEstimator',
    'OutcomeCompleteCaseEstimator',
    'ESTIMATORS',
    'get_estimator',

    # Aggregation
    'ResultTable',
    'TrialFailure',
    'SimulationStudy',
]
