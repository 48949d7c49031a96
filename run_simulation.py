import os
import json
import logging
import argparse
import pandas as pd
from itertools import product
from pathlib import Path
from src.censoring.simulation.data_generators import generate_data, censoring_summary
from src.censoring.simulation.estimators import get_estimator
from src.censoring.simulation.simulator import SimulationStudy

logger = logging.getLogger()


def configure_logging(log_file='simulation.log.txt', level=logging.INFO):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def load_config(config_path):
    """
    Load simulation configuration from a JSON file.

    Parameters:
    -----------
    config_path : str or Path
        Path to the JSON configuration file

    Returns:
    --------
    dict : Configuration dictionary with simulation parameters

    Example JSON structure:
    {
        "n": [2000],
        "rate": [0.3, 0.7],
        "beta": [1, 1, 1],
        "num_trials": 100,
        "start_seed": 1,
        "estimators": ["oracle", "naive", "complete_case"]
    }
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = json.load(f)

    required_keys = ['n', 'rate', 'beta', 'num_trials', 'start_seed', 'estimators']
    missing_keys = [key for key in required_keys if key not in config]
    if missing_keys:
        raise ValueError(f"Missing required configuration keys: {missing_keys}")

    # Grid parameters may be given as scalars
    for param in ['n', 'rate', 'estimators']:
        if not isinstance(config[param], list):
            config[param] = [config[param]]

    logger.info(f"Loaded configuration from {config_path}")
    return config


def default_processes():
    return int(os.environ.get('NUM_PROCESSES', 1))


def report_dir_name(n, rate, num_trials, start_seed):
    return (f'n_{min(n)}_{max(n)}_rate_{min(rate)}_{max(rate)}_'
            f'trials_{num_trials}_seed_{start_seed}')


def run_simulation(
    config_file=None,
    n=[2000],
    rate=[0.7],
    beta=[1.0, 1.0, 1.0],
    num_trials=100,
    start_seed=1,
    estimators=['complete_case'],
    processes=None,
    skip_failures=False,
    output_dir='results/report/',
    plot=False
):
    """
    Run the censoring simulation over a full factorial grid of n x rate x estimator.

    Parameters can be provided either via a JSON config file or directly as function arguments.
    If config_file is provided, it takes precedence over direct arguments.

    Parameters:
    -----------
    config_file : str or Path, optional
        Path to JSON configuration file. If provided, grid arguments are ignored.
    n : list, default=[2000]
        Sample sizes to test
    rate : list, default=[0.7]
        Censoring rates to test, each in [0, 1)
    beta : list, default=[1, 1, 1]
        True coefficients (intercept, X, Z)
    num_trials : int, default=100
        Trials per grid cell, seeds start_seed .. start_seed + num_trials - 1
    start_seed : int, default=1
        First seed
    estimators : list, default=['complete_case']
        Estimator variant names
    processes : int, optional
        Worker processes per grid cell. Defaults to $NUM_PROCESSES or 1
    skip_failures : bool, default=False
        Record and skip failing seeds instead of aborting
    output_dir : str
        Base directory for report output
    plot : bool, default=False
        Also save box plots of the estimates and bias_tests.csv

    Returns:
    --------
    results_all : DataFrame
        One row per (grid cell, estimator, seed) with one column per coefficient
    results_summary : DataFrame
        Per-coefficient mean, empirical SE, target, bias and RMSE for each grid cell

    Example:
    --------
    results_all, results_summary = run_simulation(rate=[0.3, 0.7], estimators=['oracle', 'complete_case'])
    """
    if config_file is not None:
        config = load_config(config_file)
        n = config['n']
        rate = config['rate']
        beta = config['beta']
        num_trials = config['num_trials']
        start_seed = config['start_seed']
        estimators = config['estimators']
        skip_failures = config.get('skip_failures', skip_failures)
    n = n if isinstance(n, (list, tuple)) else [n]
    rate = rate if isinstance(rate, (list, tuple)) else [rate]
    estimators = estimators if isinstance(estimators, (list, tuple)) else [estimators]
    if processes is None:
        processes = default_processes()

    # Validate the whole grid before running any trial
    variants = [get_estimator(name) for name in estimators]
    studies = {
        (n_i, rate_i): SimulationStudy(n=n_i, rate=rate_i, beta=beta, skip_failures=skip_failures)
        for n_i, rate_i in product(n, rate)
    }
    seeds = SimulationStudy.make_seeds(num_trials, start_seed)

    logger.info(f"Starting censoring simulation: {len(studies)} grid cell(s), "
                f"{len(variants)} estimator(s), seeds {seeds[0]}..{seeds[-1]}")

    all_frames = []
    summaries = []
    failures = []
    tables = []
    for (n_i, rate_i), study in studies.items():
        observed = censoring_summary(generate_data(study.config_for(seeds[0])))
        logger.info(f"n={n_i}, rate={rate_i}: censored fraction at seed {seeds[0]} = "
                    f"{observed['censored_fraction']:.3f}")
        for variant in variants:
            table = study.run(variant, seeds=seeds, processes=processes)
            tables.append((table, n_i, rate_i, variant, study.beta))
            cell = {'estimator': variant.name, 'n': n_i, 'rate': rate_i}

            frame = table.to_frame().reset_index()
            all_frames.append(frame.assign(**cell))

            summary = table.summary(variant.target_coefficients(study.beta)).reset_index()
            summaries.append(summary.assign(**cell))

            if table.failures:
                failures.append(table.failures_frame().assign(**cell))

    results_all = pd.concat(all_frames, ignore_index=True)
    results_summary = pd.concat(summaries, ignore_index=True)
    key_cols = ['estimator', 'n', 'rate']
    results_all = results_all[key_cols + [c for c in results_all.columns if c not in key_cols]]
    results_summary = results_summary[key_cols + [c for c in results_summary.columns if c not in key_cols]]

    report_dir = os.path.join(output_dir, report_dir_name(n, rate, num_trials, start_seed))
    os.makedirs(report_dir, exist_ok=True)

    results_all.to_csv(os.path.join(report_dir, 'results_all_runs.csv'), index=False)
    logger.info(f"Saved all runs results to {os.path.join(report_dir, 'results_all_runs.csv')}")
    results_summary.to_csv(os.path.join(report_dir, 'results_summary.csv'), index=False)
    logger.info(f"Saved summary to {os.path.join(report_dir, 'results_summary.csv')}")
    if failures:
        failures_all = pd.concat(failures, ignore_index=True)
        failures_all.to_csv(os.path.join(report_dir, 'failures.csv'), index=False)
        logger.warning(f"{len(failures_all)} failed trial(s) recorded in {os.path.join(report_dir, 'failures.csv')}")

    if plot:
        from src.analysis.plot_estimates import bias_tests, plot_estimate_distribution, plot_estimator_comparison
        figures_dir = os.path.join(report_dir, 'figures')
        os.makedirs(figures_dir, exist_ok=True)
        tests = []
        for table, n_i, rate_i, variant, beta_i in tables:
            targets = variant.target_coefficients(beta_i)
            path = os.path.join(figures_dir, f'{variant.name}_n_{n_i}_rate_{rate_i}_boxplot.png')
            plot_estimate_distribution(table, path, targets=targets)
            cell = {'estimator': variant.name, 'n': n_i, 'rate': rate_i}
            tests.append(bias_tests(table, targets).reset_index().assign(**cell))
        bias_table = pd.concat(tests, ignore_index=True)
        bias_table = bias_table[key_cols + [c for c in bias_table.columns if c not in key_cols]]
        bias_table.to_csv(os.path.join(report_dir, 'bias_tests.csv'), index=False)
        logger.info(f"Saved bias tests to {os.path.join(report_dir, 'bias_tests.csv')}")
        plot_estimator_comparison(results_all, os.path.join(figures_dir, 'estimator_comparison.png'))

    logger.info(f"Censoring simulation complete. Results saved in {report_dir}")
    return results_all, results_summary


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Monte Carlo study of OLS under a right-censored covariate or outcome')
    parser.add_argument('--config', '-c', type=str, default=None,
                        help='JSON configuration file (overrides the grid arguments)')
    parser.add_argument('--n', type=int, nargs='+', default=[2000],
                        help='Sample size(s) (default: 2000)')
    parser.add_argument('--rate', '-r', type=float, nargs='+', default=[0.7],
                        help='Censoring rate(s) in [0, 1) (default: 0.7)')
    parser.add_argument('--beta', type=float, nargs=3, default=[1.0, 1.0, 1.0],
                        metavar=('B0', 'B1', 'B2'), help='True coefficients for intercept, X and Z')
    parser.add_argument('--num-trials', type=int, default=100,
                        help='Number of trials (seeds) per grid cell (default: 100)')
    parser.add_argument('--start-seed', type=int, default=1,
                        help='First seed (default: 1)')
    parser.add_argument('--estimators', '-e', type=str, nargs='+', default=['complete_case'],
                        help='Estimator variant(s): oracle, naive, complete_case, outcome_oracle, outcome_complete_case')
    parser.add_argument('--processes', '-p', type=int, default=None,
                        help='Worker processes (default: $NUM_PROCESSES or 1)')
    parser.add_argument('--skip-failures', action='store_true',
                        help='Record and skip seeds whose fit fails instead of aborting')
    parser.add_argument('--output-dir', '-o', type=str, default='results/report/',
                        help='Base directory for reports (default: results/report/)')
    parser.add_argument('--plot', action='store_true',
                        help='Save box plots of the estimates and bias tests')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging()
    results_all, results_summary = run_simulation(
        config_file=args.config, n=args.n, rate=args.rate, beta=args.beta,
        num_trials=args.num_trials, start_seed=args.start_seed, estimators=args.estimators,
        processes=args.processes, skip_failures=args.skip_failures,
        output_dir=args.output_dir, plot=args.plot
    )
    print(results_summary.to_string(index=False))
    return results_all, results_summary


if __name__ == "__main__":
    main()
