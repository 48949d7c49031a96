"""Collection and summary of per-trial coefficient estimates."""

from collections import namedtuple

import numpy as np
import pandas as pd

TrialFailure = namedtuple('TrialFailure', ['seed', 'error', 'message'])


class ResultTable:
    """
    Coefficient estimates across trials, one row per seed in trial order.

    Parameters:
    -----------
    estimator : str
        Name of the estimator variant that produced the rows
    terms : list of str
        Coefficient names, used as column order
    config : SimulationConfig, optional
        Config template shared by all trials (seed excluded)
    """

    def __init__(self, estimator, terms, config=None):
        self.estimator = estimator
        self.terms = list(terms)
        self.config = config
        self.seeds = []
        self.failures = []
        self._rows = []

    def append(self, seed, fitted):
        self.seeds.append(seed)
        self._rows.append([fitted[t] for t in self.terms])

    def record_failure(self, seed, exc):
        self.failures.append(TrialFailure(seed, type(exc).__name__, str(exc)))

    def __len__(self):
        return len(self._rows)

    @property
    def failed_seeds(self):
        return [f.seed for f in self.failures]

    def to_frame(self):
        """Wide DataFrame indexed by seed with one column per coefficient."""
        index = pd.Index(self.seeds, name='seed', dtype='int64')
        return pd.DataFrame(self._rows, index=index, columns=self.terms, dtype=np.float64)

    def to_long(self):
        """Long format (seed, term, estimate) for grouped plots."""
        return (self.to_frame()
                .reset_index()
                .melt(id_vars='seed', var_name='term', value_name='estimate'))

    def means(self):
        """Per-coefficient arithmetic mean across trials."""
        return self.to_frame().mean()

    def std(self):
        """Per-coefficient standard deviation across trials (empirical SE)."""
        return self.to_frame().std(ddof=1)

    def summary(self, targets=None):
        """
        Per-coefficient summary across trials.

        Columns: mean, empirical_se, and when targets are given,
        target, bias (mean - target) and rmse.
        """
        frame = self.to_frame()
        summary = pd.DataFrame({
            'mean': frame.mean(),
            'empirical_se': frame.std(ddof=1),
        })
        summary.index.name = 'term'
        if targets is not None:
            target = pd.Series({t: targets.get(t, np.nan) for t in self.terms})
            summary['target'] = target
            summary['bias'] = summary['mean'] - target
            summary['rmse'] = np.sqrt(((frame - target) ** 2).mean())
        summary['n_trials'] = len(frame)
        summary['n_failed'] = len(self.failures)
        return summary

    def failures_frame(self):
        return pd.DataFrame(self.failures, columns=TrialFailure._fields)

    def __repr__(self):
        return f"ResultTable({self.estimator}, trials={len(self)}, failed={len(self.failures)})"
