"""
Efficient Trajectory Results
============================
Result objects returned by the optimal execution generators: cost
expectation and variance of the efficient strategy, plus the discrete
holdings grid or the continuous holdings function and the generator's
characteristic parameters.
"""

import math
import numpy as np
import pandas as pd
from typing import Callable, Optional

from quantref.capture import R1UnivariateNormal
from quantref.checks import require_valid
from quantref.strategy import DiscreteTradingTrajectory


class EfficientTradingTrajectory:
    """
    Efficient execution summary.

    Parameters
    ----------
    execution_time : float
        Horizon T.
    transaction_cost_expectation : float
        E[x].
    transaction_cost_variance : float
        V[x], non-negative.
    market_power : float
        Temporary impact of the average trade rate in units of σ√T.
    """

    def __init__(
        self,
        execution_time: float,
        transaction_cost_expectation: float,
        transaction_cost_variance: float,
        market_power: float,
    ):
        self._execution_time = require_valid(execution_time, "execution_time")
        self._expectation = require_valid(transaction_cost_expectation, "transaction_cost_expectation")
        self._variance = require_valid(transaction_cost_variance, "transaction_cost_variance")
        if self._variance < 0.0:
            raise ValueError(f"transaction_cost_variance must be non-negative, got {self._variance}")
        self._market_power = float(market_power)

    @property
    def execution_time(self) -> float:
        return self._execution_time

    @property
    def transaction_cost_expectation(self) -> float:
        return self._expectation

    @property
    def transaction_cost_variance(self) -> float:
        return self._variance

    @property
    def transaction_cost_standard_deviation(self) -> float:
        return math.sqrt(self._variance)

    @property
    def market_power(self) -> float:
        return self._market_power

    def cost_distribution(self) -> R1UnivariateNormal:
        return R1UnivariateNormal(self._expectation, self._variance)

    def utility(self, risk_aversion: float) -> float:
        return self._expectation + risk_aversion * self._variance

    def summary(self) -> dict:
        return {
            "execution_time": self._execution_time,
            "cost_expectation": self._expectation,
            "cost_variance": self._variance,
            "cost_std": self.transaction_cost_standard_deviation,
            "market_power": self._market_power,
        }


class EfficientTradingTrajectoryDiscrete(EfficientTradingTrajectory):
    """Efficient trajectory on a discrete grid."""

    def __init__(
        self,
        trajectory: DiscreteTradingTrajectory,
        transaction_cost_expectation: float,
        transaction_cost_variance: float,
        market_power: float,
    ):
        if trajectory is None:
            raise ValueError("trajectory must not be None")
        super().__init__(
            trajectory.execution_time(),
            transaction_cost_expectation,
            transaction_cost_variance,
            market_power,
        )
        self._trajectory = trajectory

    @property
    def trajectory(self) -> DiscreteTradingTrajectory:
        return self._trajectory

    @property
    def execution_time_nodes(self) -> np.ndarray:
        return self._trajectory.execution_time_nodes

    @property
    def holdings(self) -> np.ndarray:
        return self._trajectory.holdings

    @property
    def trade_list(self) -> np.ndarray:
        return self._trajectory.trade_list

    def to_frame(self) -> pd.DataFrame:
        return self._trajectory.to_frame()


class AlmgrenChrissDiscrete(EfficientTradingTrajectoryDiscrete):
    """Discrete Almgren-Chriss optimum with its κ̃ and κ."""

    def __init__(
        self,
        trajectory: DiscreteTradingTrajectory,
        transaction_cost_expectation: float,
        transaction_cost_variance: float,
        market_power: float,
        kappa_tilda: float,
        kappa: float,
    ):
        super().__init__(trajectory, transaction_cost_expectation, transaction_cost_variance, market_power)
        self._kappa_tilda = float(kappa_tilda)
        self._kappa = float(kappa)

    @property
    def kappa_tilda(self) -> float:
        return self._kappa_tilda

    @property
    def kappa(self) -> float:
        return self._kappa

    @property
    def half_life(self) -> float:
        """Trade decay time 1/κ; infinite for a risk-neutral trader."""
        return math.inf if self._kappa == 0.0 else 1.0 / self._kappa

    def summary(self) -> dict:
        result = super().summary()
        result.update({"kappa_tilda": self._kappa_tilda, "kappa": self._kappa, "half_life": self.half_life})
        return result


class AlmgrenChrissDriftDiscrete(AlmgrenChrissDiscrete):
    """Discrete Almgren-Chriss optimum under drift α."""

    def __init__(
        self,
        trajectory: DiscreteTradingTrajectory,
        transaction_cost_expectation: float,
        transaction_cost_variance: float,
        market_power: float,
        kappa_tilda: float,
        kappa: float,
        drift_trade_adjustments: np.ndarray,
        holdings_drift_adjustments: np.ndarray,
        residual_holdings: float,
        drift_gain: float,
    ):
        super().__init__(
            trajectory,
            transaction_cost_expectation,
            transaction_cost_variance,
            market_power,
            kappa_tilda,
            kappa,
        )
        self._drift_trade_adjustments = np.asarray(drift_trade_adjustments, dtype=float)
        self._holdings_drift_adjustments = np.asarray(holdings_drift_adjustments, dtype=float)
        self._residual_holdings = float(residual_holdings)
        self._drift_gain = float(drift_gain)

    @property
    def drift_trade_adjustments(self) -> np.ndarray:
        return self._drift_trade_adjustments.copy()

    @property
    def holdings_drift_adjustments(self) -> np.ndarray:
        """Drift-induced shift of the holdings at each time node."""
        return self._holdings_drift_adjustments.copy()

    @property
    def residual_holdings(self) -> float:
        return self._residual_holdings

    @property
    def drift_gain(self) -> float:
        return self._drift_gain

    def summary(self) -> dict:
        result = super().summary()
        result.update({"residual_holdings": self._residual_holdings, "drift_gain": self._drift_gain})
        return result


class EfficientTradingTrajectoryContinuous(EfficientTradingTrajectory):
    """Efficient trajectory given by a holdings function of time."""

    def __init__(
        self,
        execution_time: float,
        transaction_cost_expectation: float,
        transaction_cost_variance: float,
        market_power: float,
        holdings_function: Callable[[float], float],
        trade_rate_function: Callable[[float], float],
        remaining_cost_expectation: Callable[[float], float],
        remaining_cost_variance: Callable[[float], float],
    ):
        super().__init__(execution_time, transaction_cost_expectation, transaction_cost_variance, market_power)
        if holdings_function is None:
            raise ValueError("holdings_function must not be None")
        self._holdings_function = holdings_function
        self._trade_rate_function = trade_rate_function
        self._remaining_cost_expectation = remaining_cost_expectation
        self._remaining_cost_variance = remaining_cost_variance

    def holdings(self, time):
        """Holdings at ``time`` (scalar or array)."""
        if np.ndim(time) == 0:
            return float(self._holdings_function(float(time)))
        return np.array([self._holdings_function(float(t)) for t in np.ravel(time)])

    def trade_rate(self, time):
        """Selling rate -dx/dt at ``time``."""
        if np.ndim(time) == 0:
            return float(self._trade_rate_function(float(time)))
        return np.array([self._trade_rate_function(float(t)) for t in np.ravel(time)])

    def remaining_cost_expectation(self, time: float) -> float:
        return float(self._remaining_cost_expectation(float(time)))

    def remaining_cost_variance(self, time: float) -> float:
        return float(self._remaining_cost_variance(float(time)))

    def sample(self, num_points: int = 101, horizon: Optional[float] = None) -> pd.DataFrame:
        """Holdings and trade rate on an even grid over [0, horizon]."""
        horizon = self.execution_time if horizon is None else horizon
        times = np.linspace(0.0, horizon, num_points)
        return pd.DataFrame(
            {"time": times, "holdings": self.holdings(times), "trade_rate": self.trade_rate(times)}
        )


class AlmgrenChrissContinuous(EfficientTradingTrajectoryContinuous):
    """Continuous Almgren-Chriss optimum, κ² = λσ²/η."""

    def __init__(self, kappa: float, **kwargs):
        super().__init__(**kwargs)
        self._kappa = float(kappa)

    @property
    def kappa(self) -> float:
        return self._kappa

    def summary(self) -> dict:
        result = super().summary()
        result["kappa"] = self._kappa
        return result


class PowerImpactContinuous(EfficientTradingTrajectoryContinuous):
    """
    Almgren (2003) optimum under power-law temporary impact η v^k.

    Carries the characteristic time T*, the liquidation time T_max (finite
    only for k > 1) and the hyperboloid constant E_temp · V^k.
    """

    def __init__(
        self,
        characteristic_time: float,
        t_max: float,
        hyperboloid_boundary_value: float,
        order_size: float,
        exponent: float,
        temporary_constant: float,
        permanent_slope: float,
        volatility: float,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._characteristic_time = float(characteristic_time)
        self._t_max = float(t_max)
        self._hyperboloid_boundary_value = float(hyperboloid_boundary_value)
        self._order_size = float(order_size)
        self._exponent = float(exponent)
        self._temporary_constant = float(temporary_constant)
        self._permanent_slope = float(permanent_slope)
        self._volatility = float(volatility)

    @property
    def characteristic_time(self) -> float:
        return self._characteristic_time

    @property
    def t_max(self) -> float:
        return self._t_max

    @property
    def hyperboloid_boundary_value(self) -> float:
        return self._hyperboloid_boundary_value

    @property
    def order_size(self) -> float:
        return self._order_size

    @property
    def exponent(self) -> float:
        return self._exponent

    @property
    def temporary_constant(self) -> float:
        return self._temporary_constant

    @property
    def permanent_slope(self) -> float:
        return self._permanent_slope

    @property
    def volatility(self) -> float:
        return self._volatility

    @property
    def cost_coefficient(self) -> float:
        """(k + 1) / (3k + 1)."""
        return (self._exponent + 1.0) / (3.0 * self._exponent + 1.0)

    def temporary_cost_expectation(self) -> float:
        return self.transaction_cost_expectation - 0.5 * self._permanent_slope * self._order_size ** 2

    def summary(self) -> dict:
        result = super().summary()
        result.update(
            {
                "exponent": self._exponent,
                "characteristic_time": self._characteristic_time,
                "t_max": self._t_max,
                "hyperboloid": self._hyperboloid_boundary_value,
            }
        )
        return result
