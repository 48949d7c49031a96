"""
Demo script for the censored covariate / censored outcome simulation study.

It walks through one simulated dataset (model summaries for each estimator)
and then a repeated-trial comparison showing that complete-case OLS is
consistent when the covariate is censored but biased when the outcome is.
"""

import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from src.censoring.simulation.data_generators import SimulationConfig, generate_data, censoring_summary
from src.censoring.simulation.estimators import (
    OracleEstimator, NaiveEstimator, CompleteCaseEstimator,
    OutcomeOracleEstimator, OutcomeCompleteCaseEstimator
)
from src.censoring.simulation.simulator import SimulationStudy

COVARIATE_ESTIMATORS = [OracleEstimator(), NaiveEstimator(), CompleteCaseEstimator()]
OUTCOME_ESTIMATORS = [OutcomeOracleEstimator(), OutcomeCompleteCaseEstimator()]


def demo_single_dataset():
    """
    Fit every estimator to one dataset and print the model summaries.
    """
    print("=" * 70)
    print("DEMO: One Simulated Dataset")
    print("=" * 70)
    print()

    config = SimulationConfig(n=2000, rate=0.7, beta=(1, 1, 1), seed=1)
    data = generate_data(config)
    observed = censoring_summary(data)

    print(f"Sample size (n): {config.n}, target censoring rate: {config.rate}")
    print(f"Observed censored fraction: {observed['censored_fraction']:.3f} "
          f"({observed['n_complete']} complete cases)")
    print()
    print(data.head().to_string())
    print()

    print("Censored covariate: y ~ X + Z")
    print("-" * 70)
    for estimator in COVARIATE_ESTIMATORS:
        print(estimator.estimate(data).format_summary())
        print()

    print("Censored outcome: X ~ y + Z")
    print("-" * 70)
    for estimator in OUTCOME_ESTIMATORS:
        print(estimator.estimate(data).format_summary())
        print()


def demo_repeated_trials(num_trials=100):
    """
    Compare the mean estimate of each estimator across repeated trials.
    """
    print("=" * 70)
    print(f"DEMO: {num_trials} Trials per Estimator")
    print("=" * 70)
    print()

    study = SimulationStudy(n=2000, rate=0.7, beta=(1, 1, 1))
    tables = study.run_all(COVARIATE_ESTIMATORS + OUTCOME_ESTIMATORS,
                           num_trials=num_trials, start_seed=1, progress=True)

    print()
    print("Mean estimate (target) of the coefficient on the covariate of interest:")
    print("-" * 70)
    for estimator in COVARIATE_ESTIMATORS + OUTCOME_ESTIMATORS:
        table = tables[estimator.name]
        term = estimator.covariate_of_interest
        target = estimator.target_coefficients(study.beta)[term]
        print(f"  {estimator.name:25s} {term}: {table.means()[term]:.4f} ({target:.4f})")
    print()

    return tables


def main():
    print()
    print("Censoring and complete-case regression - demo script")
    print()
    print("For full-scale simulations, use 'run_simulation.py'.")
    print()

    demo_single_dataset()

    print("\n" + "=" * 70 + "\n")

    demo_repeated_trials()

    print("=" * 70)
    print("Demo complete!")
    print("=" * 70)
    print()
    print("Next steps:")
    print("  - Run full simulation: python run_simulation.py --estimators oracle naive complete_case --plot")
    print("  - Compare reports: python -m src.analysis.plot_estimates --latest")
    print()


if __name__ == "__main__":
    main()
