"""
Price Dynamics Module
=====================
Exogenous parameters of arithmetic price evolution under trading: drift,
volatility, serial correlation, and the four background participation
functions (permanent/temporary impact expectation and volatility).

Mathematical Foundation (Almgren-Chriss):
    S_k = S_{k-1} + σ τ^{1/2} ξ_k + α τ - τ g(n_k / τ)
    S̃_k = S_{k-1} - h(n_k / τ)
"""

import numpy as np
from dataclasses import dataclass
from typing import Callable, Union

from quantref.checks import is_valid, require_valid
from quantref.impact import (
    ParticipationRateLinear,
    TransactionFunction,
    TransactionFunctionLinear,
    UniformParticipationRate,
    zero_impact,
)

VolatilityFunction = Union[float, Callable[[float], float]]


@dataclass(frozen=True)
class ArithmeticPriceDynamicsSettings:
    """
    Drift, volatility and serial correlation of arithmetic price moves.

    ``volatility`` is either a flat level or a function of time; its value
    at t = 0 is the epoch volatility.
    """

    drift: float
    volatility: VolatilityFunction
    serial_correlation: float = 0.0

    def __post_init__(self):
        require_valid(self.drift, "drift")
        require_valid(self.serial_correlation, "serial_correlation")
        if abs(self.serial_correlation) > 1.0:
            raise ValueError(
                f"serial_correlation must lie in [-1, 1], got {self.serial_correlation}"
            )
        if self.volatility is None:
            raise ValueError("volatility must not be None")
        if not callable(self.volatility):
            volatility = require_valid(self.volatility, "volatility")
            if volatility < 0.0:
                raise ValueError(f"volatility must be non-negative, got {volatility}")

    def volatility_at(self, time: float) -> float:
        if callable(self.volatility):
            value = self.volatility(time)
            if not is_valid(value):
                raise ValueError(f"Volatility function returned {value!r} at t={time}")
            return float(value)
        return float(self.volatility)

    def epoch_volatility(self) -> float:
        return self.volatility_at(0.0)


class ArithmeticPriceEvolutionParameters:
    """
    Price dynamics settings plus the background participation functions.

    Raises
    ------
    ValueError
        If any component is None.
    """

    def __init__(
        self,
        settings: ArithmeticPriceDynamicsSettings,
        permanent_expectation: UniformParticipationRate,
        temporary_expectation: UniformParticipationRate,
        permanent_volatility: UniformParticipationRate,
        temporary_volatility: UniformParticipationRate,
    ):
        components = (
            settings,
            permanent_expectation,
            temporary_expectation,
            permanent_volatility,
            temporary_volatility,
        )
        if any(component is None for component in components):
            raise ValueError("ArithmeticPriceEvolutionParameters: all components are required")

        self._settings = settings
        self._permanent_expectation = permanent_expectation
        self._temporary_expectation = temporary_expectation
        self._permanent_volatility = permanent_volatility
        self._temporary_volatility = temporary_volatility

    @property
    def settings(self) -> ArithmeticPriceDynamicsSettings:
        return self._settings

    @property
    def permanent_expectation(self) -> UniformParticipationRate:
        return self._permanent_expectation

    @property
    def temporary_expectation(self) -> UniformParticipationRate:
        return self._temporary_expectation

    @property
    def permanent_volatility(self) -> UniformParticipationRate:
        return self._permanent_volatility

    @property
    def temporary_volatility(self) -> UniformParticipationRate:
        return self._temporary_volatility

    def permanent_impact_function(self) -> TransactionFunction:
        return self._permanent_expectation.epoch_impact_function()

    def temporary_impact_function(self) -> TransactionFunction:
        return self._temporary_expectation.epoch_impact_function()


class LinearPermanentExpectationParameters(ArithmeticPriceEvolutionParameters):
    """Evolution parameters whose permanent impact expectation is linear."""

    def __init__(
        self,
        settings: ArithmeticPriceDynamicsSettings,
        permanent_expectation: UniformParticipationRate,
        temporary_expectation: UniformParticipationRate,
        permanent_volatility: UniformParticipationRate,
        temporary_volatility: UniformParticipationRate,
    ):
        super().__init__(
            settings,
            permanent_expectation,
            temporary_expectation,
            permanent_volatility,
            temporary_volatility,
        )
        if not isinstance(self.permanent_impact_function(), TransactionFunctionLinear):
            raise ValueError("Permanent impact expectation must be linear")

    def linear_permanent_expectation(self) -> TransactionFunctionLinear:
        return self.permanent_impact_function()


def _as_participation(impact) -> UniformParticipationRate:
    if isinstance(impact, UniformParticipationRate):
        return impact
    if isinstance(impact, TransactionFunction):
        return UniformParticipationRate(impact)
    raise ValueError(f"Cannot interpret {impact!r} as a participation rate")


def almgren_chriss(
    settings: ArithmeticPriceDynamicsSettings,
    permanent_expectation,
    temporary_expectation,
) -> LinearPermanentExpectationParameters:
    """
    Almgren-Chriss (2000) parameters: linear permanent and temporary impact,
    deterministic impact (zero impact volatilities).
    """
    return LinearPermanentExpectationParameters(
        settings,
        _as_participation(permanent_expectation),
        _as_participation(temporary_expectation),
        zero_impact(),
        zero_impact(),
    )


def almgren_2003(
    settings: ArithmeticPriceDynamicsSettings,
    permanent_expectation,
    temporary_expectation,
) -> LinearPermanentExpectationParameters:
    """Almgren (2003) parameters: linear permanent, power-law temporary impact."""
    return almgren_chriss(settings, permanent_expectation, temporary_expectation)


def linear_impact_parameters(
    drift: float,
    volatility: float,
    permanent_slope: float,
    temporary_offset: float,
    temporary_slope: float,
) -> LinearPermanentExpectationParameters:
    """Convenience builder from raw Almgren-Chriss coefficients (α, σ, γ, ε, η)."""
    return almgren_chriss(
        ArithmeticPriceDynamicsSettings(drift, volatility),
        ParticipationRateLinear(0.0, permanent_slope),
        ParticipationRateLinear(temporary_offset, temporary_slope),
    )


def epoch_volatility_grid(settings: ArithmeticPriceDynamicsSettings, times) -> np.ndarray:
    """Volatility evaluated along a time grid."""
    return np.array([settings.volatility_at(float(t)) for t in np.ravel(times)])
