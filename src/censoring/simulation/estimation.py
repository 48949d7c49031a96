"""Ordinary least-squares fitting shared by all estimator variants.

This module fits a linear model with an implicit intercept to a (possibly
row-filtered) view of a simulated dataset and returns a structured
FittedEstimate. Printing model summaries is left to the caller.
"""

from collections.abc import Mapping

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.linear_model import LinearRegression
import logging

from src.censoring.simulation.errors import EmptyDatasetError, SingularDesignError

logger = logging.getLogger(__name__)

INTERCEPT = 'Intercept'


class FittedEstimate(Mapping):
    """Read-only mapping from coefficient name to estimate.

    Coefficients are ordered Intercept first, then the predictors in formula
    order. Standard errors, t statistics and p-values are kept alongside for
    reporting.
    """

    def __init__(self, response, terms, coefficients, std_errors, df_resid, n_obs, name=None):
        self.response = response
        self.terms = list(terms)
        self.name = name
        self.df_resid = int(df_resid)
        self.n_obs = int(n_obs)
        self._coef = np.asarray(coefficients, dtype=np.float64)
        self.std_errors = dict(zip(self.terms, np.asarray(std_errors, dtype=np.float64)))

    def __getitem__(self, term):
        try:
            return float(self._coef[self.terms.index(term)])
        except ValueError:
            raise KeyError(term) from None

    def __iter__(self):
        return iter(self.terms)

    def __len__(self):
        return len(self.terms)

    @property
    def params(self):
        return pd.Series(self._coef, index=self.terms, name=self.response)

    @property
    def t_values(self):
        se = np.array([self.std_errors[t] for t in self.terms])
        with np.errstate(divide='ignore', invalid='ignore'):
            return dict(zip(self.terms, self._coef / se))

    @property
    def p_values(self):
        if self.df_resid <= 0:
            return {t: np.nan for t in self.terms}
        return {t: float(2 * stats.t.sf(abs(tv), self.df_resid)) for t, tv in self.t_values.items()}

    def summary_frame(self):
        """Coefficient table: estimate, std_error, t_value, p_value."""
        return pd.DataFrame({
            'estimate': self.params,
            'std_error': pd.Series(self.std_errors),
            't_value': pd.Series(self.t_values),
            'p_value': pd.Series(self.p_values),
        }, index=self.terms)

    def format_summary(self):
        """Plain-text model summary in the style of a regression printout."""
        predictors = ' + '.join(t for t in self.terms if t != INTERCEPT)
        header = f"{self.name or 'ols'}: {self.response} ~ {predictors}"
        lines = [header, '-' * len(header)]
        lines.append(self.summary_frame().to_string(float_format=lambda v: f"{v:.4f}"))
        lines.append(f"n = {self.n_obs}, residual df = {self.df_resid}")
        return '\n'.join(lines)

    def __repr__(self):
        coefs = ', '.join(f"{t}={v:.4f}" for t, v in zip(self.terms, self._coef))
        return f"FittedEstimate({self.response}; {coefs})"


def fit_ols(data, response, predictors, row_filter=None, name=None):
    """
    Fit y = a + X b by ordinary least squares.

    Parameters:
    -----------
    data : pd.DataFrame
        Simulated dataset
    response : str
        Response column
    predictors : list of str
        Predictor columns (an intercept is always added)
    row_filter : str, optional
        Name of a 0/1 indicator column; only rows where it equals 1 are used
    name : str, optional
        Estimator name, carried on the result

    Returns:
    --------
    FittedEstimate

    Raises:
    -------
    EmptyDatasetError
        If no rows remain after filtering
    SingularDesignError
        If the design (with intercept) is rank-deficient
    """
    predictors = list(predictors)
    view = data
    if row_filter is not None:
        view = data.loc[data[row_filter] == 1]

    n_obs = len(view)
    if n_obs == 0:
        raise EmptyDatasetError(
            f"No rows left to fit {response} ~ {' + '.join(predictors)}"
            + (f" after filtering on {row_filter} == 1" if row_filter else "")
        )

    X = view[predictors].to_numpy(dtype=np.float64)
    y = view[response].to_numpy(dtype=np.float64)
    k = len(predictors) + 1
    logger.debug(f"Fitting {response} ~ {' + '.join(predictors)} on {n_obs} rows"
                 + (f" ({row_filter} == 1)" if row_filter else ""))

    # Rank of the full design, intercept included. sklearn's rank_ is taken on
    # centred predictors and misses a constant column with rounding noise.
    design = np.column_stack([np.ones(n_obs), X])
    rank = np.linalg.matrix_rank(design)
    if n_obs < k or rank < k:
        raise SingularDesignError(
            f"Design for {response} ~ {' + '.join(predictors)} is rank-deficient "
            f"(rank {rank} < {k}, {n_obs} rows)"
        )

    model = LinearRegression(fit_intercept=True)
    model.fit(X, y)

    coefficients = np.concatenate([[model.intercept_], model.coef_])
    residuals = y - design @ coefficients
    df_resid = n_obs - k
    if df_resid > 0:
        sigma2 = residuals @ residuals / df_resid
        cov = sigma2 * np.linalg.inv(design.T @ design)
        std_errors = np.sqrt(np.clip(np.diag(cov), 0.0, None))
    else:
        std_errors = np.full(k, np.nan)

    return FittedEstimate(
        response=response,
        terms=[INTERCEPT] + predictors,
        coefficients=coefficients,
        std_errors=std_errors,
        df_resid=df_resid,
        n_obs=n_obs,
        name=name,
    )
