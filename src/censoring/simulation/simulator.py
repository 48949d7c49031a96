"""Simulation study orchestration."""

import logging
from multiprocessing import Pool

from tqdm import tqdm

from src.censoring.simulation.data_generators import SimulationConfig, generate_data
from src.censoring.simulation.errors import SimulationError
from src.censoring.simulation.estimators import get_estimator
from src.censoring.simulation.results import ResultTable
from numpy.random import default_rng

logger = logging.getLogger(__name__)


def run_single_trial(args):
    """Run one trial. Module level so it can be shipped to pool workers.

    Returns (seed, fitted, error); exactly one of fitted/error is None.
    """
    config, estimator = args
    # Every trial draws from its own generator seeded with the trial seed
    rng = default_rng(config.seed)
    try:
        data = generate_data(config, rng=rng)
        fitted = estimator.estimate(data)
    except SimulationError as exc:
        return config.seed, None, exc
    return config.seed, fitted, None


class SimulationStudy:
    """
    Repeated generate -> fit trials over an explicit seed sequence.

    Failure policy: with skip_failures=False (default) the first trial that
    raises ConfigError, EmptyDatasetError or SingularDesignError aborts the
    whole run and the error is re-raised. With skip_failures=True the failing
    seed is recorded on the ResultTable, logged, and left out of the rows.
    The policy is identical for sequential and pooled runs.
    """

    def __init__(self, n=2000, rate=0.7, beta=(1.0, 1.0, 1.0), skip_failures=False):
        # Validates n, rate and beta before any sampling
        self.template = SimulationConfig(n=n, rate=rate, beta=tuple(beta), seed=0)
        self.n = self.template.n
        self.rate = self.template.rate
        self.beta = self.template.beta
        self.skip_failures = skip_failures

    @staticmethod
    def make_seeds(num_trials=100, start_seed=1):
        if num_trials < 1:
            raise ValueError(f"num_trials must be >= 1. Got {num_trials}.")
        return list(range(start_seed, start_seed + num_trials))

    def config_for(self, seed):
        return self.template.with_seed(seed)

    def run_trial(self, seed, estimator):
        """Generate one dataset for `seed` and fit `estimator` to it."""
        estimator = get_estimator(estimator)
        _, fitted, error = run_single_trial((self.config_for(seed), estimator))
        if error is not None:
            raise error
        return fitted

    def _collect(self, table, outcomes):
        for seed, fitted, error in outcomes:
            if error is None:
                table.append(seed, fitted)
            elif self.skip_failures:
                logger.warning(f"Seed {seed} skipped ({type(error).__name__}): {error}")
                table.record_failure(seed, error)
            else:
                logger.error(f"Seed {seed} failed ({type(error).__name__}): {error}")
                raise error
        return table

    def run(self, estimator, seeds=None, num_trials=100, start_seed=1, processes=1, progress=False):
        """
        Run one trial per seed and collect the estimates.

        Parameters:
        -----------
        estimator : EstimatorVariant or str
            Estimator variant (or its registered name)
        seeds : sequence of int, optional
            Explicit seeds. Defaults to start_seed .. start_seed + num_trials - 1
        processes : int
            Worker processes; 1 runs in-process
        progress : bool
            Show a tqdm progress bar

        Returns:
        --------
        ResultTable with rows in seed order
        """
        estimator = get_estimator(estimator)
        if seeds is None:
            seeds = self.make_seeds(num_trials, start_seed)
        seeds = list(seeds)
        args_list = [(self.config_for(seed), estimator) for seed in seeds]
        table = ResultTable(estimator.name, estimator.terms, config=self.template)
        desc = f"{estimator.name} n={self.n} rate={self.rate}"

        logger.info(f"Running {len(seeds)} trials for {desc} on {processes} process(es)")
        if processes is None or processes <= 1:
            outcomes = (run_single_trial(args) for args in args_list)
            self._collect(table, tqdm(outcomes, total=len(seeds), desc=desc, disable=not progress))
        else:
            # imap keeps submission order, so each row stays attributed to its seed
            with Pool(processes=processes) as pool:
                outcomes = pool.imap(run_single_trial, args_list)
                self._collect(table, tqdm(outcomes, total=len(seeds), desc=desc, disable=not progress))

        if table.failures:
            logger.warning(f"{desc}: {len(table.failures)} seed(s) failed: {table.failed_seeds}")
        return table

    def run_all(self, estimators, seeds=None, num_trials=100, start_seed=1, processes=1, progress=False):
        """Run every estimator on the same seeds. Returns {name: ResultTable}."""
        results = {}
        for estimator in estimators:
            estimator = get_estimator(estimator)
            results[estimator.name] = self.run(
                estimator, seeds=seeds, num_trials=num_trials, start_seed=start_seed,
                processes=processes, progress=progress
            )
        return results
