"""Estimator variant classes for censoring simulation studies."""

from abc import ABC, abstractmethod

from src.censoring.simulation.data_generators import X_MAX
from src.censoring.simulation.estimation import INTERCEPT, fit_ols

# Moments of X ~ Uniform(0, X_MAX)
X_MEAN = X_MAX / 2
X_VAR = X_MAX ** 2 / 12


class EstimatorVariant(ABC):
    """Abstract base class for estimator variants.

    All variants share one OLS routine and differ only in:
    - response: Response column
    - predictors: Predictor columns (intercept implied)
    - complete_case: Whether to keep only rows with D == 1
    - name: Property for descriptive name
    """

    complete_case = False

    @property
    @abstractmethod
    def response(self):
        pass

    @property
    @abstractmethod
    def predictors(self):
        pass

    @property
    @abstractmethod
    def name(self):
        pass

    @property
    def row_filter(self):
        return 'D' if self.complete_case else None

    @property
    def terms(self):
        return [INTERCEPT] + list(self.predictors)

    @property
    def covariate_of_interest(self):
        """The first predictor: the (possibly censored) variable under study."""
        return self.predictors[0]

    def estimate(self, data):
        return fit_ols(data, self.response, self.predictors, row_filter=self.row_filter, name=self.name)

    @abstractmethod
    def target_coefficients(self, beta):
        """Probability limit of the oracle fit of this variant's formula, keyed by term."""
        pass

    def __repr__(self):
        return f"{type(self).__name__}()"


class CovariateEstimator(EstimatorVariant):
    """y regressed on a covariate and Z; targets beta itself."""

    response = 'y'

    def target_coefficients(self, beta):
        b0, b1, b2 = beta
        return dict(zip(self.terms, (float(b0), float(b1), float(b2))))


class OutcomeEstimator(EstimatorVariant):
    """X (or its censored version W) regressed on y and Z.

    Target is the linear projection of X on (1, y, Z): with
    y = b0 + b1 X + b2 Z + eps and X independent of Z and eps,
    gamma = b1 Var(X) / (b1^2 Var(X) + 1).
    """

    predictors = ('y', 'Z')

    def target_coefficients(self, beta):
        b0, b1, b2 = (float(b) for b in beta)
        gamma = b1 * X_VAR / (b1 ** 2 * X_VAR + 1)
        intercept = X_MEAN - gamma * (b0 + b1 * X_MEAN)
        return dict(zip(self.terms, (intercept, gamma, -gamma * b2)))


class OracleEstimator(CovariateEstimator):
    predictors = ('X', 'Z')

    @property
    def name(self):
        return 'oracle'


class NaiveEstimator(CovariateEstimator):
    predictors = ('W', 'Z')

    @property
    def name(self):
        return 'naive'


class CompleteCaseEstimator(CovariateEstimator):
    predictors = ('W', 'Z')
    complete_case = True

    @property
    def name(self):
        return 'complete_case'


class OutcomeOracleEstimator(OutcomeEstimator):
    response = 'X'

    @property
    def name(self):
        return 'outcome_oracle'


class OutcomeCompleteCaseEstimator(OutcomeEstimator):
    response = 'W'
    complete_case = True

    @property
    def name(self):
        return 'outcome_complete_case'


ESTIMATORS = {
    est.name: est for est in (
        OracleEstimator(),
        NaiveEstimator(),
        CompleteCaseEstimator(),
        OutcomeOracleEstimator(),
        OutcomeCompleteCaseEstimator(),
    )
}


def get_estimator(name):
    """Resolve an estimator variant by name (instances pass through)."""
    if isinstance(name, EstimatorVariant):
        return name
    try:
        return ESTIMATORS[name]
    except KeyError:
        raise ValueError(f"Unknown estimator '{name}'. Choose from {sorted(ESTIMATORS)}.") from None
