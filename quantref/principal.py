"""
Principal Bid Module
====================
Almgren (2003) estimator for a principal (guaranteed-price) bid on a block
liquidated along the power-impact optimal trajectory.

Mathematical Foundation:
    Gross principal profit  P = πX - E,  variance V
    Per unit horizon        P / T*,      V / T*
    Information ratio       IR = P / √(V T*)
Treating the horizon T as free with A = πX - ½γX², B = cηX^{k+1}:
    P(T) = A - B T^{-k},   V(T) = cσ²X² T
    IR maximised at T_opt = ((k + 1) B / A)^{1/k}
"""

import math
import structlog

from quantref.capture import R1UnivariateNormal
from quantref.checks import require_valid
from quantref.dynamics import ArithmeticPriceEvolutionParameters
from quantref.optimum import PowerImpactContinuous

logger = structlog.get_logger(__name__)


class Almgren2003Estimator:
    """Principal-bid analytics of a power-impact trajectory."""

    def __init__(self, trajectory: PowerImpactContinuous, parameters: ArithmeticPriceEvolutionParameters):
        if trajectory is None or parameters is None:
            raise ValueError("trajectory and parameters are required")
        self._trajectory = trajectory
        self._parameters = parameters

    @property
    def trajectory(self) -> PowerImpactContinuous:
        return self._trajectory

    @property
    def parameters(self) -> ArithmeticPriceEvolutionParameters:
        return self._parameters

    def breakeven_principal_discount(self) -> float:
        """Discount per share at which the expected profit is zero."""
        return self._trajectory.transaction_cost_expectation / self._trajectory.order_size

    def principal_measure(self, principal_discount: float) -> R1UnivariateNormal:
        principal_discount = require_valid(principal_discount, "principal_discount")
        trajectory = self._trajectory
        return R1UnivariateNormal(
            principal_discount * trajectory.order_size - trajectory.transaction_cost_expectation,
            trajectory.transaction_cost_variance,
        )

    def horizon_principal_measure(self, principal_discount: float) -> R1UnivariateNormal:
        """Gross profit distribution per unit characteristic time."""
        measure = self.principal_measure(principal_discount)
        t_star = self._trajectory.characteristic_time
        return R1UnivariateNormal(measure.mean / t_star, measure.variance / t_star)

    def information_ratio(self, principal_discount: float) -> float:
        measure = self.principal_measure(principal_discount)
        return measure.mean / math.sqrt(measure.variance * self._trajectory.characteristic_time)

    def _horizon_coefficients(self, principal_discount: float):
        trajectory = self._trajectory
        size = trajectory.order_size
        k = trajectory.exponent
        a = principal_discount * size - 0.5 * trajectory.permanent_slope * size ** 2
        b = trajectory.cost_coefficient * trajectory.temporary_constant * size ** (k + 1.0)
        return a, b, k

    def optimal_information_ratio_horizon(self, principal_discount: float) -> float:
        """
        Horizon maximising the information ratio.

        Returns
        -------
        float
            ((k + 1) B / A)^{1/k}; NaN when A <= 0 (no profitable horizon).
        """
        principal_discount = require_valid(principal_discount, "principal_discount")
        a, b, k = self._horizon_coefficients(principal_discount)
        if a <= 0.0:
            logger.warning("principal_discount_unprofitable", principal_discount=principal_discount, a=a)
            return math.nan
        return ((k + 1.0) * b / a) ** (1.0 / k)

    def information_ratio_at_horizon(self, principal_discount: float, horizon: float) -> float:
        """IR(T) = (A - B T^{-k}) / (T σ |X| √c)."""
        horizon = require_valid(horizon, "horizon")
        if horizon <= 0.0:
            raise ValueError(f"horizon must be positive, got {horizon}")
        trajectory = self._trajectory
        a, b, k = self._horizon_coefficients(principal_discount)
        scale = horizon * trajectory.volatility * abs(trajectory.order_size) * math.sqrt(trajectory.cost_coefficient)
        return (a - b * horizon ** (-k)) / scale

    def optimal_information_ratio(self, principal_discount: float) -> float:
        horizon = self.optimal_information_ratio_horizon(principal_discount)
        if math.isnan(horizon):
            return math.nan
        return self.information_ratio_at_horizon(principal_discount, horizon)
