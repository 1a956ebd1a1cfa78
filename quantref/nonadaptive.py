"""
Non-Adaptive Optimal Execution Module
=====================================
Closed-form static (non-adaptive) liquidation trajectories that minimise
E[x] + λ V[x] for a sell program of X shares over [0, T].

Mathematical Foundation:
    Discrete Almgren-Chriss (linear impact g(v) = γv, h(v) = ε sgn(v) + ηv):
        η̃ = η - ½γτ,   κ̃² = λσ²/η̃,   2(cosh κτ - 1) = κ̃²τ²
        x_j = X sinh(κ(T - t_j)) / sinh(κT)
    With drift α the trader holds back the residual x̄ = α / (2λσ²):
        x_j = X sinh(κ(T - t_j))/sinh(κT)
              + x̄ (1 - (sinh(κ(T - t_j)) + sinh(κ t_j)) / sinh(κT))
    Continuous Almgren-Chriss:
        κ² = λσ²/η,   x(t) = X sinh(κ(T - t)) / sinh(κT)
    Power-law temporary impact h(v) = ηv^k (Almgren 2003):
        T* = (kηX^{k-1} / (λσ²))^{1/(k+1)}
        E = ½γX² + c η (X/T*)^{k+1} T*,   V = c σ² T* X²,   c = (k+1)/(3k+1)

References:
    Almgren, R. and Chriss, N. (2000) Optimal execution of portfolio
    transactions. Journal of Risk 3(2).
    Almgren, R. (2003) Optimal execution with nonlinear impact functions
    and trading-enhanced risk. Applied Mathematical Finance 10.
"""

import math
import warnings
import numpy as np
import pandas as pd
import structlog
from abc import ABC, abstractmethod
from scipy import integrate
from typing import Callable, Iterable, Optional, Tuple

from quantref.checks import require_valid
from quantref.dynamics import ArithmeticPriceEvolutionParameters
from quantref.impact import TransactionFunctionLinear, TransactionFunctionPower
from quantref.optimum import (
    AlmgrenChrissContinuous,
    AlmgrenChrissDiscrete,
    AlmgrenChrissDriftDiscrete,
    EfficientTradingTrajectory,
    PowerImpactContinuous,
)
from quantref.risk import MeanVarianceObjectiveUtility
from quantref.strategy import (
    DiscreteTradingTrajectory,
    DiscreteTradingTrajectoryControl,
    OrderSpecification,
)

logger = structlog.get_logger(__name__)


# ─────────────────────────────────────────────────────────────
# Hyperbolic helpers (overflow-safe for large κT)
# ─────────────────────────────────────────────────────────────

def _sinh_ratio(kappa: float, horizon: float, time):
    """sinh(κ(T - t)) / sinh(κT); linear decay (T - t)/T when κ = 0."""
    time = np.asarray(time, dtype=float)
    if kappa == 0.0:
        return (horizon - time) / horizon
    full = kappa * horizon
    return np.exp(-kappa * time) * (-np.expm1(-2.0 * kappa * (horizon - time))) / (-math.expm1(-2.0 * full))


def _cosh_over_sinh(argument, kappa: float, horizon: float):
    """cosh(a) / sinh(κT) for 0 <= a <= κT."""
    argument = np.asarray(argument, dtype=float)
    full = kappa * horizon
    return (np.exp(argument - full) + np.exp(-argument - full)) / (-math.expm1(-2.0 * full))


def _remaining_square_integrals(kappa: float, horizon: float, remaining: float) -> Tuple[float, float]:
    """
    Integrals over the last ``remaining`` units of the horizon, per X².

    Returns
    -------
    tuple of float
        (∫ x² / X², ∫ ẋ² / X²) for x(t) = X sinh(κ(T - t)) / sinh(κT).
    """
    remaining = min(max(remaining, 0.0), horizon)
    if kappa == 0.0:
        return remaining ** 3 / (3.0 * horizon ** 2), remaining / horizon ** 2

    full = kappa * horizon
    denominator = math.expm1(-2.0 * full) ** 2
    sinh_term = 2.0 * (
        math.exp(2.0 * kappa * (remaining - horizon)) - math.exp(-2.0 * kappa * (remaining + horizon))
    ) / denominator / (4.0 * kappa)
    linear_term = 2.0 * remaining * math.exp(-2.0 * full) / denominator
    return sinh_term - linear_term, kappa ** 2 * (sinh_term + linear_term)


def _market_power(temporary_impact: float, horizon: float, volatility: float) -> float:
    if volatility <= 0.0:
        return math.nan
    return temporary_impact / (volatility * math.sqrt(horizon))


def _linear_coefficients(parameters: ArithmeticPriceEvolutionParameters, generator: str):
    """(γ, ε, η) of linear permanent and temporary impact, or None."""
    permanent = parameters.permanent_impact_function()
    temporary = parameters.temporary_impact_function()
    if not isinstance(permanent, TransactionFunctionLinear) or not isinstance(
        temporary, TransactionFunctionLinear
    ):
        logger.warning(
            "impact_form_unsupported",
            generator=generator,
            permanent=type(permanent).__name__,
            temporary=type(temporary).__name__,
        )
        return None
    return permanent.slope, temporary.offset, temporary.slope


# ─────────────────────────────────────────────────────────────
# Generators
# ─────────────────────────────────────────────────────────────

class OptimalTrajectoryScheme(ABC):
    """Order, price dynamics and objective shared by all generators."""

    def __init__(
        self,
        order: OrderSpecification,
        parameters: ArithmeticPriceEvolutionParameters,
        utility: MeanVarianceObjectiveUtility,
    ):
        if order is None or parameters is None or utility is None:
            raise ValueError("order, parameters and utility are required")
        self._order = order
        self._parameters = parameters
        self._utility = utility

    @property
    def order(self) -> OrderSpecification:
        return self._order

    @property
    def parameters(self) -> ArithmeticPriceEvolutionParameters:
        return self._parameters

    @property
    def utility(self) -> MeanVarianceObjectiveUtility:
        return self._utility

    @abstractmethod
    def generate(self) -> Optional[EfficientTradingTrajectory]:
        ...


class DiscreteAlmgrenChriss(OptimalTrajectoryScheme):
    """Discrete Almgren-Chriss liquidation on an even grid, no drift."""

    def __init__(
        self,
        control: DiscreteTradingTrajectoryControl,
        parameters: ArithmeticPriceEvolutionParameters,
        utility: MeanVarianceObjectiveUtility,
    ):
        if control is None or control.order is None:
            raise ValueError("control with an order specification is required")
        super().__init__(control.order, parameters, utility)
        self._control = control

    @classmethod
    def standard(
        cls,
        size: float,
        execution_time: float,
        num_interval: int,
        parameters: ArithmeticPriceEvolutionParameters,
        risk_aversion: float,
    ):
        order = OrderSpecification(size, execution_time)
        return cls(
            DiscreteTradingTrajectoryControl.fixed_interval(order, num_interval),
            parameters,
            MeanVarianceObjectiveUtility(risk_aversion),
        )

    @property
    def control(self) -> DiscreteTradingTrajectoryControl:
        return self._control

    def _kappas(self, gamma: float, eta: float, tau: float) -> Optional[Tuple[float, float, float]]:
        """(η̃, κ̃, κ) or None when η̃ <= 0."""
        eta_tilda = eta - 0.5 * gamma * tau
        if eta_tilda <= 0.0:
            logger.warning("adjusted_temporary_impact_not_positive", eta=eta, gamma=gamma, tau=tau)
            return None
        sigma = self._parameters.settings.epoch_volatility()
        kappa_tilda_sq = self._utility.risk_aversion * sigma ** 2 / eta_tilda
        kappa = math.acosh(1.0 + 0.5 * kappa_tilda_sq * tau ** 2) / tau
        return eta_tilda, math.sqrt(kappa_tilda_sq), kappa

    def _grid(self) -> Tuple[np.ndarray, float, float]:
        nodes = self._control.execution_time_nodes
        horizon = float(nodes[-1] - nodes[0])
        tau = horizon / self._control.num_interval
        lengths = self._control.interval_lengths()
        if not np.allclose(lengths, tau, rtol=1e-8, atol=0.0):
            warnings.warn("Almgren-Chriss grid is not evenly spaced; using the mean interval", UserWarning)
        return nodes - nodes[0], horizon, tau

    def _costs(self, holdings: np.ndarray, gamma: float, epsilon: float, eta_tilda: float, tau: float):
        size = holdings[0]
        sold = -np.diff(holdings)
        sigma = self._parameters.settings.epoch_volatility()
        drift = self._parameters.settings.drift
        expectation = (
            0.5 * gamma * size ** 2
            + epsilon * np.sum(np.abs(sold))
            + eta_tilda / tau * np.sum(sold ** 2)
            - drift * tau * np.sum(holdings[1:])
        )
        variance = sigma ** 2 * tau * np.sum(holdings[1:] ** 2)
        return float(expectation), float(variance)

    def generate(self) -> Optional[AlmgrenChrissDiscrete]:
        coefficients = _linear_coefficients(self._parameters, type(self).__name__)
        if coefficients is None:
            return None
        gamma, epsilon, eta = coefficients

        times, horizon, tau = self._grid()
        kappas = self._kappas(gamma, eta, tau)
        if kappas is None:
            return None
        eta_tilda, kappa_tilda, kappa = kappas

        size = self._order.size
        holdings = size * _sinh_ratio(kappa, horizon, times)
        holdings[-1] = 0.0
        trajectory = DiscreteTradingTrajectory(times, holdings, np.diff(holdings))

        expectation, variance = self._costs(holdings, gamma, epsilon, eta_tilda, tau)
        sigma = self._parameters.settings.epoch_volatility()
        result = AlmgrenChrissDiscrete(
            trajectory,
            expectation,
            variance,
            _market_power(eta * size / horizon, horizon, sigma),
            kappa_tilda,
            kappa,
        )
        logger.debug(
            "almgren_chriss_discrete_generated",
            risk_aversion=self._utility.risk_aversion,
            kappa=kappa,
            expectation=expectation,
            variance=variance,
        )
        return result


class DiscreteAlmgrenChrissDrift(DiscreteAlmgrenChriss):
    """Discrete Almgren-Chriss liquidation under drift α, λ > 0."""

    def generate(self) -> Optional[AlmgrenChrissDriftDiscrete]:
        coefficients = _linear_coefficients(self._parameters, type(self).__name__)
        if coefficients is None:
            return None
        gamma, epsilon, eta = coefficients

        settings = self._parameters.settings
        sigma = settings.epoch_volatility()
        drift = settings.drift
        risk_aversion = self._utility.risk_aversion
        if risk_aversion <= 0.0 or sigma <= 0.0:
            logger.warning("drift_scheme_requires_risk", risk_aversion=risk_aversion, volatility=sigma)
            return None

        times, horizon, tau = self._grid()
        kappas = self._kappas(gamma, eta, tau)
        if kappas is None:
            return None
        eta_tilda, kappa_tilda, kappa = kappas

        size = self._order.size
        residual = drift / (2.0 * risk_aversion * sigma ** 2)
        decay = _sinh_ratio(kappa, horizon, times)
        growth = _sinh_ratio(kappa, horizon, horizon - times)
        holdings_drift_adjustments = residual * (1.0 - decay - growth)
        holdings_drift_adjustments[-1] = 0.0
        holdings = size * decay + holdings_drift_adjustments
        holdings[-1] = 0.0
        trajectory = DiscreteTradingTrajectory(times, holdings, np.diff(holdings))

        midpoints = tau * (np.arange(self._control.num_interval) + 0.5)
        drift_trade_adjustments = (
            -residual
            * 2.0
            * math.sinh(0.5 * kappa * tau)
            * (
                _cosh_over_sinh(kappa * midpoints, kappa, horizon)
                - _cosh_over_sinh(kappa * (horizon - midpoints), kappa, horizon)
            )
        )
        drift_gain = drift * residual * horizon * (
            1.0 - tau * math.tanh(0.5 * kappa * horizon) / (horizon * math.tanh(0.5 * kappa * tau))
        )

        expectation, variance = self._costs(holdings, gamma, epsilon, eta_tilda, tau)
        result = AlmgrenChrissDriftDiscrete(
            trajectory,
            expectation,
            variance,
            _market_power(eta * size / horizon, horizon, sigma),
            kappa_tilda,
            kappa,
            drift_trade_adjustments,
            holdings_drift_adjustments,
            residual,
            drift_gain,
        )
        logger.debug(
            "almgren_chriss_drift_generated",
            risk_aversion=risk_aversion,
            residual_holdings=residual,
            drift_gain=drift_gain,
        )
        return result


class ContinuousAlmgrenChriss(OptimalTrajectoryScheme):
    """Continuous-time Almgren-Chriss liquidation."""

    @classmethod
    def standard(
        cls,
        size: float,
        execution_time: float,
        parameters: ArithmeticPriceEvolutionParameters,
        risk_aversion: float,
    ):
        return cls(
            OrderSpecification(size, execution_time),
            parameters,
            MeanVarianceObjectiveUtility(risk_aversion),
        )

    def generate(self) -> Optional[AlmgrenChrissContinuous]:
        coefficients = _linear_coefficients(self._parameters, type(self).__name__)
        if coefficients is None:
            return None
        gamma, epsilon, eta = coefficients
        if eta <= 0.0:
            logger.warning("temporary_impact_not_positive", eta=eta)
            return None

        sigma = self._parameters.settings.epoch_volatility()
        size = self._order.size
        horizon = self._order.max_execution_time
        kappa = math.sqrt(self._utility.risk_aversion * sigma ** 2 / eta)

        def holdings(t: float) -> float:
            t = min(max(t, 0.0), horizon)
            return float(size * _sinh_ratio(kappa, horizon, t))

        def trade_rate(t: float) -> float:
            if t < 0.0 or t > horizon:
                return 0.0
            if kappa == 0.0:
                return size / horizon
            return float(size * kappa * _cosh_over_sinh(kappa * (horizon - t), kappa, horizon))

        def remaining_expectation(t: float) -> float:
            x = holdings(t)
            _, rate_square = _remaining_square_integrals(kappa, horizon, horizon - t)
            return 0.5 * gamma * x ** 2 + epsilon * abs(x) + eta * size ** 2 * rate_square

        def remaining_variance(t: float) -> float:
            holdings_square, _ = _remaining_square_integrals(kappa, horizon, horizon - t)
            return sigma ** 2 * size ** 2 * holdings_square

        expectation = remaining_expectation(0.0)
        variance = remaining_variance(0.0)
        result = AlmgrenChrissContinuous(
            kappa=kappa,
            execution_time=horizon,
            transaction_cost_expectation=expectation,
            transaction_cost_variance=variance,
            market_power=_market_power(eta * size / horizon, horizon, sigma),
            holdings_function=holdings,
            trade_rate_function=trade_rate,
            remaining_cost_expectation=remaining_expectation,
            remaining_cost_variance=remaining_variance,
        )
        logger.debug("almgren_chriss_continuous_generated", kappa=kappa, expectation=expectation, variance=variance)
        return result


class ContinuousPowerImpact(OptimalTrajectoryScheme):
    """Continuous liquidation under power-law temporary impact ηv^k."""

    @classmethod
    def standard(
        cls,
        size: float,
        execution_time: float,
        parameters: ArithmeticPriceEvolutionParameters,
        risk_aversion: float,
    ):
        return cls(
            OrderSpecification(size, execution_time),
            parameters,
            MeanVarianceObjectiveUtility(risk_aversion),
        )

    def generate(self) -> Optional[PowerImpactContinuous]:
        permanent = self._parameters.permanent_impact_function()
        temporary = self._parameters.temporary_impact_function()
        if not isinstance(permanent, TransactionFunctionLinear) or not isinstance(
            temporary, TransactionFunctionPower
        ):
            logger.warning(
                "impact_form_unsupported",
                generator=type(self).__name__,
                permanent=type(permanent).__name__,
                temporary=type(temporary).__name__,
            )
            return None

        gamma = permanent.slope
        eta = temporary.constant
        k = temporary.exponent
        sigma = self._parameters.settings.epoch_volatility()
        risk_aversion = self._utility.risk_aversion
        size = self._order.size
        if eta <= 0.0 or risk_aversion <= 0.0 or sigma <= 0.0 or size <= 0.0:
            logger.warning(
                "power_impact_degenerate",
                eta=eta,
                risk_aversion=risk_aversion,
                volatility=sigma,
                size=size,
            )
            return None

        t_star = (k * eta * size ** (k - 1.0) / (risk_aversion * sigma ** 2)) ** (1.0 / (k + 1.0))
        c = (k + 1.0) / (3.0 * k + 1.0)

        if k < 1.0:
            decay = (1.0 - k) / ((1.0 + k) * t_star)
            power = (1.0 + k) / (1.0 - k)
            t_max = math.nan

            def holdings(t: float) -> float:
                return size * (1.0 + decay * max(t, 0.0)) ** (-power)

            def trade_rate(t: float) -> float:
                return size * power * decay * (1.0 + decay * max(t, 0.0)) ** (-power - 1.0)
        elif k == 1.0:
            t_max = math.nan

            def holdings(t: float) -> float:
                return size * math.exp(-max(t, 0.0) / t_star)

            def trade_rate(t: float) -> float:
                return size / t_star * math.exp(-max(t, 0.0) / t_star)
        else:
            decay = (k - 1.0) / ((k + 1.0) * t_star)
            power = (k + 1.0) / (k - 1.0)
            t_max = power * t_star

            def holdings(t: float) -> float:
                return size * max(1.0 - decay * max(t, 0.0), 0.0) ** power

            def trade_rate(t: float) -> float:
                return size * power * decay * max(1.0 - decay * max(t, 0.0), 0.0) ** (power - 1.0)

        upper = t_max if k > 1.0 else math.inf

        def remaining_expectation(t: float) -> float:
            t = max(t, 0.0)
            if t >= upper:
                return 0.0
            temporary_cost, _ = integrate.quad(lambda s: eta * trade_rate(s) ** (k + 1.0), t, upper, limit=200)
            return 0.5 * gamma * holdings(t) ** 2 + temporary_cost

        def remaining_variance(t: float) -> float:
            t = max(t, 0.0)
            if t >= upper:
                return 0.0
            value, _ = integrate.quad(lambda s: holdings(s) ** 2, t, upper, limit=200)
            return sigma ** 2 * value

        temporary_expectation = c * eta * (size / t_star) ** (k + 1.0) * t_star
        expectation = 0.5 * gamma * size ** 2 + temporary_expectation
        variance = c * sigma ** 2 * t_star * size ** 2
        hyperboloid = temporary_expectation * variance ** k

        result = PowerImpactContinuous(
            characteristic_time=t_star,
            t_max=t_max,
            hyperboloid_boundary_value=hyperboloid,
            order_size=size,
            exponent=k,
            temporary_constant=eta,
            permanent_slope=gamma,
            volatility=sigma,
            execution_time=self._order.max_execution_time,
            transaction_cost_expectation=expectation,
            transaction_cost_variance=variance,
            market_power=_market_power(eta * (size / t_star) ** k, t_star, sigma),
            holdings_function=holdings,
            trade_rate_function=trade_rate,
            remaining_cost_expectation=remaining_expectation,
            remaining_cost_variance=remaining_variance,
        )
        logger.debug(
            "power_impact_generated",
            exponent=k,
            characteristic_time=t_star,
            expectation=expectation,
            variance=variance,
        )
        return result


# ─────────────────────────────────────────────────────────────
# Efficient Frontier
# ─────────────────────────────────────────────────────────────

def efficient_frontier(
    generator_factory: Callable[[float], OptimalTrajectoryScheme],
    risk_aversions: Iterable[float],
) -> pd.DataFrame:
    """
    Sweep λ and collect the efficient (E, V) pairs.

    Parameters
    ----------
    generator_factory : callable
        Maps λ to a generator exposing ``generate()``.
    risk_aversions : iterable of float
        Risk aversion levels.

    Returns
    -------
    pd.DataFrame
        Columns risk_aversion, expectation, variance, std, utility.
        Levels where generation fails are skipped.
    """
    rows = []
    for risk_aversion in risk_aversions:
        risk_aversion = require_valid(risk_aversion, "risk_aversion")
        result = generator_factory(risk_aversion).generate()
        if result is None:
            logger.warning("frontier_point_skipped", risk_aversion=risk_aversion)
            continue
        rows.append(
            {
                "risk_aversion": risk_aversion,
                "expectation": result.transaction_cost_expectation,
                "variance": result.transaction_cost_variance,
                "std": result.transaction_cost_standard_deviation,
                "utility": result.utility(risk_aversion),
            }
        )
    return pd.DataFrame(rows, columns=["risk_aversion", "expectation", "variance", "std", "utility"])
