"""Data generation for censoring simulation studies."""

import numbers
from dataclasses import dataclass, replace

import numpy as np
import pandas as pd
from numpy.random import default_rng

from src.censoring.simulation.errors import ConfigError

# X ~ Uniform(0, X_MAX). The censoring bound 20 * (1 - rate) is calibrated
# against this support so that P(D = 0) = rate for rate >= 0.5.
X_MAX = 10.0
CENSORING_SCALE = 20.0

COLUMNS = ['X', 'C', 'W', 'D', 'Z', 'y']


@dataclass(frozen=True)
class SimulationConfig:
    """Parameters for one trial.

    Parameters:
    - n: Sample size (>= 1)
    - rate: Target censoring rate, in [0, 1)
    - beta: (intercept, coefficient on X, coefficient on Z)
    - seed: Random seed for the trial
    """
    n: int = 2000
    rate: float = 0.7
    beta: tuple = (1.0, 1.0, 1.0)
    seed: int = 1

    def __post_init__(self):
        # Normalise beta so that configs built from lists compare and hash equal
        try:
            object.__setattr__(self, 'beta', tuple(float(b) for b in self.beta))
        except (TypeError, ValueError):
            raise ConfigError(f"beta must be a sequence of numbers. Got {self.beta!r}.") from None
        if (isinstance(self.n, bool) or not isinstance(self.n, numbers.Real) or not np.isfinite(self.n)
                or int(self.n) != self.n or self.n < 1):
            raise ConfigError(f"n must be a positive integer. Got {self.n!r}.")
        object.__setattr__(self, 'n', int(self.n))
        if isinstance(self.rate, bool) or not isinstance(self.rate, numbers.Real) or not (0 <= self.rate < 1):
            raise ConfigError(f"rate must be a number in [0, 1). Got {self.rate!r}.")
        if len(self.beta) != 3:
            raise ConfigError(f"beta must have length 3 (intercept, X, Z). Got {len(self.beta)}.")

    @property
    def censoring_upper(self):
        """Upper bound of the Uniform censoring distribution."""
        return CENSORING_SCALE * (1 - self.rate)

    def with_seed(self, seed):
        return replace(self, seed=seed)


def expected_censoring_rate(rate):
    """
    Expected fraction of censored rows (D = 0) for a given target rate.

    With X ~ U(0, 10) and C ~ U(0, b), b = 20 * (1 - rate):
    - b <= 10 (rate >= 0.5): P(X > C) = 1 - b / 20 = rate
    - b > 10 (rate < 0.5):  P(X > C) = 5 / b = 1 / (4 * (1 - rate))
    """
    if not (0 <= rate < 1):
        raise ConfigError(f"rate must be in [0, 1). Got {rate}.")
    upper = CENSORING_SCALE * (1 - rate)
    if upper <= X_MAX:
        return 1 - upper / CENSORING_SCALE
    return (X_MAX / 2) / upper


def generate_data(config, rng=None):
    """
    Generate one synthetic dataset with a right-censored covariate.

    Draw order is X, C, Z, eps; changing it changes every dataset for a given seed.

    Parameters:
    - config: SimulationConfig
    - rng: numpy Generator. Defaults to default_rng(config.seed)

    Returns:
    - data: DataFrame with columns X, C, W, D, Z, y
    """
    if rng is None:
        rng = default_rng(config.seed)

    n = config.n
    b0, b1, b2 = config.beta

    x = rng.uniform(0, X_MAX, n)
    c = rng.uniform(0, config.censoring_upper, n)
    z = rng.normal(0, 1, n)
    eps = rng.normal(0, 1, n)

    data = {
        'X': x,
        'C': c,
        'W': np.minimum(x, c),
        'D': (x <= c).astype(int),
        'Z': z,
        'y': b0 + b1 * x + b2 * z + eps,
    }
    return pd.DataFrame(data, columns=COLUMNS)


def censoring_summary(data):
    """Observed censoring counts and fraction for a generated dataset."""
    n = len(data)
    n_complete = int(data['D'].sum())
    return {
        'n': n,
        'n_complete': n_complete,
        'n_censored': n - n_complete,
        'censored_fraction': (n - n_complete) / n if n else np.nan,
    }
