"""
Implementation Shortfall Module
===============================
Expected cost and variance of executing a given discrete trajectory under
arithmetic price dynamics with permanent and temporary impact.

Mathematical Foundation (Almgren-Chriss 2000, eq. 2-3):
    n_k = x_{k-1} - x_k           (shares sold in interval k)
    v_k = |n_k| / τ_k
    E[x] = Σ τ_k x_k g(v_k) + Σ |n_k| h(v_k) - α Σ τ_k x_k
    V[x] = σ² Σ τ_k x_k²
with sums over k = 1..N and x_k the holdings at the end of interval k.
"""

import numpy as np
import pandas as pd
import structlog
from scipy import stats

from quantref.checks import require_valid
from quantref.dynamics import ArithmeticPriceEvolutionParameters
from quantref.strategy import DiscreteTradingTrajectory

logger = structlog.get_logger(__name__)


class R1UnivariateNormal:
    """Normal distribution on the real line, by mean and variance."""

    def __init__(self, mean: float, variance: float):
        self._mean = require_valid(mean, "mean")
        self._variance = require_valid(variance, "variance")
        if self._variance < 0.0:
            raise ValueError(f"variance must be non-negative, got {self._variance}")

    @property
    def mean(self) -> float:
        return self._mean

    @property
    def variance(self) -> float:
        return self._variance

    @property
    def standard_deviation(self) -> float:
        return float(np.sqrt(self._variance))

    def distribution(self):
        """Frozen ``scipy.stats.norm`` with the same moments."""
        return stats.norm(loc=self._mean, scale=self.standard_deviation)

    def quantile(self, probability: float) -> float:
        if not 0.0 < probability < 1.0:
            raise ValueError(f"probability must lie in (0, 1), got {probability}")
        return float(self._mean + stats.norm.ppf(probability) * self.standard_deviation)

    def __repr__(self) -> str:
        return f"R1UnivariateNormal(mean={self._mean:.6g}, variance={self._variance:.6g})"


class TrajectoryShortfallEstimator:
    """Cost distribution of a fixed discrete trajectory."""

    def __init__(self, trajectory: DiscreteTradingTrajectory):
        if trajectory is None:
            raise ValueError("trajectory must not be None")
        self._trajectory = trajectory

    @property
    def trajectory(self) -> DiscreteTradingTrajectory:
        return self._trajectory

    def _interval_components(self, parameters: ArithmeticPriceEvolutionParameters) -> pd.DataFrame:
        if parameters is None:
            raise ValueError("parameters must not be None")

        nodes = self._trajectory.execution_time_nodes
        holdings = self._trajectory.holdings
        tau = np.diff(nodes)
        sold = -self._trajectory.trade_list
        rate = np.abs(sold) / tau
        end_holdings = holdings[1:]

        settings = parameters.settings
        permanent = parameters.permanent_impact_function()
        temporary = parameters.temporary_impact_function()
        volatility = np.array([settings.volatility_at(float(t)) for t in nodes[:-1]])

        permanent_cost = tau * end_holdings * permanent(rate)
        temporary_cost = np.abs(sold) * temporary(rate)
        drift_gain = settings.drift * tau * end_holdings
        variance = volatility ** 2 * tau * end_holdings ** 2

        return pd.DataFrame(
            {
                "time_start": nodes[:-1],
                "time_end": nodes[1:],
                "holdings": end_holdings,
                "sold": sold,
                "trade_rate": rate,
                "permanent_cost": permanent_cost,
                "temporary_cost": temporary_cost,
                "drift_gain": drift_gain,
                "cost_expectation": permanent_cost + temporary_cost - drift_gain,
                "cost_variance": variance,
            }
        )

    def total_cost_distribution(self, parameters: ArithmeticPriceEvolutionParameters) -> R1UnivariateNormal:
        """
        Expectation and variance of the implementation shortfall.

        Parameters
        ----------
        parameters : ArithmeticPriceEvolutionParameters
            Drift, volatility and impact functions.

        Returns
        -------
        R1UnivariateNormal
            Total cost distribution.
        """
        frame = self._interval_components(parameters)
        mean = float(frame["cost_expectation"].sum())
        variance = float(frame["cost_variance"].sum())
        logger.debug("shortfall_estimated", mean=mean, variance=variance, intervals=len(frame))
        return R1UnivariateNormal(mean, variance)

    def interval_cost_frame(self, parameters: ArithmeticPriceEvolutionParameters) -> pd.DataFrame:
        """Per-interval breakdown of permanent, temporary and drift terms."""
        return self._interval_components(parameters)
