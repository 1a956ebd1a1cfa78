"""
Market Impact Module
====================
Transaction functions mapping a trade rate (or a participation rate) to a
price impact, and the Almgren (2003) parameterization of permanent and
temporary impact from asset transaction settings.

Mathematical Foundation:
    Linear:      h(v) = ε·sgn(v) + η·v
    Power law:   h(v) = η·sgn(v)·|v|^k
    Participation rate p = v / V, with V the background daily volume.

Impact factors follow the "trade ``execution_factor`` of daily volume,
move the price by ``factor`` of its level" convention:
    permanent:  g(p) = φ_perm · S0 · p / f
    temporary:  h(p) = s/2 + φ_temp · S0 · (p / f)^k
"""

import math
import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass

from quantref.checks import require_positive, require_valid


# ─────────────────────────────────────────────────────────────
# Transaction Functions
# ─────────────────────────────────────────────────────────────

class TransactionFunction(ABC):
    """Price impact as a function of a (signed) rate."""

    @abstractmethod
    def evaluate(self, rate: float) -> float:
        ...

    @abstractmethod
    def derivative(self, rate: float, order: int = 1) -> float:
        ...

    def __call__(self, rate):
        if np.ndim(rate) == 0:
            return self.evaluate(float(rate))
        return np.array([self.evaluate(float(v)) for v in np.ravel(rate)]).reshape(np.shape(rate))


class TransactionFunctionLinear(TransactionFunction):
    """
    Linear impact h(v) = offset·sgn(v) + slope·v.

    ``offset`` is the fixed cost per unit (half spread plus fees) and
    ``slope`` the impact per unit rate.
    """

    def __init__(self, offset: float, slope: float):
        self._offset = require_valid(offset, "offset")
        self._slope = require_valid(slope, "slope")

    @property
    def offset(self) -> float:
        return self._offset

    @property
    def slope(self) -> float:
        return self._slope

    def evaluate(self, rate: float) -> float:
        rate = require_valid(rate, "rate")
        sign = 0.0 if rate == 0.0 else math.copysign(1.0, rate)
        return self._offset * sign + self._slope * rate

    def derivative(self, rate: float, order: int = 1) -> float:
        require_valid(rate, "rate")
        if order < 1:
            raise ValueError(f"Derivative order must be >= 1, got {order}")
        return self._slope if order == 1 else 0.0

    def regularize(self, rate: float) -> float:
        """Impact per unit rate, h(v) / v."""
        rate = require_valid(rate, "rate")
        if rate == 0.0:
            return self._slope
        return self.evaluate(rate) / rate

    def __repr__(self) -> str:
        return f"TransactionFunctionLinear(offset={self._offset}, slope={self._slope})"


class TransactionFunctionPower(TransactionFunction):
    """Power-law impact h(v) = constant·sgn(v)·|v|^exponent, exponent > 0."""

    def __init__(self, constant: float, exponent: float):
        self._constant = require_valid(constant, "constant")
        self._exponent = require_positive(exponent, "exponent")

    @property
    def constant(self) -> float:
        return self._constant

    @property
    def exponent(self) -> float:
        return self._exponent

    def evaluate(self, rate: float) -> float:
        rate = require_valid(rate, "rate")
        if rate == 0.0:
            return 0.0
        return math.copysign(self._constant * abs(rate) ** self._exponent, rate)

    def derivative(self, rate: float, order: int = 1) -> float:
        rate = require_valid(rate, "rate")
        if order < 1:
            raise ValueError(f"Derivative order must be >= 1, got {order}")
        coefficient = self._constant
        power = self._exponent
        for _ in range(order):
            coefficient *= power
            power -= 1.0
        if rate == 0.0:
            return 0.0 if power > 0.0 else math.inf
        value = coefficient * abs(rate) ** power
        return value if order % 2 == 1 else math.copysign(1.0, rate) * value

    def __repr__(self) -> str:
        return f"TransactionFunctionPower(constant={self._constant}, exponent={self._exponent})"


class ParticipationRateLinear(TransactionFunctionLinear):
    """Linear impact expressed in participation rate p = v / V."""

    def to_trade_rate(self, volume: float) -> TransactionFunctionLinear:
        volume = require_positive(volume, "volume")
        return TransactionFunctionLinear(self.offset, self.slope / volume)


class ParticipationRatePower(TransactionFunctionPower):
    """Power-law impact expressed in participation rate p = v / V."""

    def to_trade_rate(self, volume: float) -> TransactionFunctionPower:
        volume = require_positive(volume, "volume")
        return TransactionFunctionPower(self.constant / volume ** self.exponent, self.exponent)


# ─────────────────────────────────────────────────────────────
# Background Participation
# ─────────────────────────────────────────────────────────────

class UniformParticipationRate:
    """
    Time-homogeneous background participation.

    Wraps a participation-rate impact function and the background volume
    it is measured against; ``epoch_impact_function`` returns the equivalent
    trade-rate function.
    """

    def __init__(self, participation_function: TransactionFunction, volume: float = 1.0):
        if participation_function is None:
            raise ValueError("participation_function must not be None")
        self._participation_function = participation_function
        self._volume = require_positive(volume, "volume")

    @property
    def participation_function(self) -> TransactionFunction:
        return self._participation_function

    @property
    def volume(self) -> float:
        return self._volume

    def epoch_impact_function(self) -> TransactionFunction:
        fn = self._participation_function
        if isinstance(fn, (ParticipationRateLinear, ParticipationRatePower)):
            return fn.to_trade_rate(self._volume)
        if isinstance(fn, TransactionFunctionPower):
            return TransactionFunctionPower(
                fn.constant / self._volume ** fn.exponent, fn.exponent
            )
        if isinstance(fn, TransactionFunctionLinear):
            return TransactionFunctionLinear(fn.offset, fn.slope / self._volume)
        return fn

    def impact(self, time: float, trade_rate: float) -> float:
        """Impact at ``time`` for ``trade_rate``; uniform in time."""
        require_valid(time, "time")
        return self.epoch_impact_function().evaluate(trade_rate)


def zero_impact() -> UniformParticipationRate:
    """Background participation with no impact (used for impact volatilities)."""
    return UniformParticipationRate(ParticipationRateLinear(0.0, 0.0))


# ─────────────────────────────────────────────────────────────
# Almgren (2003) Market Impact Parameterization
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AssetTransactionSettings:
    """Price level, background daily volume and bid-ask spread of an asset."""

    price: float
    daily_volume: float
    bid_ask_spread: float = 0.0

    def __post_init__(self):
        require_positive(self.price, "price")
        require_positive(self.daily_volume, "daily_volume")
        spread = require_valid(self.bid_ask_spread, "bid_ask_spread")
        if spread < 0.0:
            raise ValueError(f"bid_ask_spread must be non-negative, got {spread}")


class PriceMarketImpact(ABC):
    """
    Permanent and temporary impact implied by asset settings and factors.

    Parameters
    ----------
    asset_settings : AssetTransactionSettings
        Price, daily volume and spread.
    permanent_impact_factor : float
        Fraction of price moved permanently when trading
        ``execution_factor`` of daily volume.
    temporary_impact_factor : float
        Fraction of price paid temporarily at the same participation.
    daily_volume_execution_factor : float
        Reference participation rate, in (0, 1].
    """

    def __init__(
        self,
        asset_settings: AssetTransactionSettings,
        permanent_impact_factor: float,
        temporary_impact_factor: float,
        daily_volume_execution_factor: float,
    ):
        if asset_settings is None:
            raise ValueError("asset_settings must not be None")
        self._asset_settings = asset_settings
        self._permanent_impact_factor = require_valid(
            permanent_impact_factor, "permanent_impact_factor"
        )
        self._temporary_impact_factor = require_valid(
            temporary_impact_factor, "temporary_impact_factor"
        )
        self._execution_factor = require_positive(
            daily_volume_execution_factor, "daily_volume_execution_factor"
        )
        if self._permanent_impact_factor < 0.0 or self._temporary_impact_factor < 0.0:
            raise ValueError("Impact factors must be non-negative")

    @property
    def asset_settings(self) -> AssetTransactionSettings:
        return self._asset_settings

    @property
    def permanent_impact_factor(self) -> float:
        return self._permanent_impact_factor

    @property
    def temporary_impact_factor(self) -> float:
        return self._temporary_impact_factor

    @property
    def daily_volume_execution_factor(self) -> float:
        return self._execution_factor

    def permanent_transaction_function(self) -> ParticipationRateLinear:
        price = self._asset_settings.price
        return ParticipationRateLinear(
            0.0, self._permanent_impact_factor * price / self._execution_factor
        )

    @abstractmethod
    def temporary_transaction_function(self) -> TransactionFunction:
        ...

    def permanent_participation(self) -> UniformParticipationRate:
        return UniformParticipationRate(
            self.permanent_transaction_function(), self._asset_settings.daily_volume
        )

    def temporary_participation(self) -> UniformParticipationRate:
        return UniformParticipationRate(
            self.temporary_transaction_function(), self._asset_settings.daily_volume
        )


class PriceMarketImpactLinear(PriceMarketImpact):
    """Linear temporary impact with the half spread as offset."""

    def temporary_transaction_function(self) -> ParticipationRateLinear:
        settings = self._asset_settings
        return ParticipationRateLinear(
            0.5 * settings.bid_ask_spread,
            self._temporary_impact_factor * settings.price / self._execution_factor,
        )


class PriceMarketImpactPower(PriceMarketImpact):
    """Power-law temporary impact h(p) = φ_temp · S0 · (p / f)^k."""

    def __init__(
        self,
        asset_settings: AssetTransactionSettings,
        permanent_impact_factor: float,
        temporary_impact_factor: float,
        daily_volume_execution_factor: float,
        exponent: float,
    ):
        super().__init__(
            asset_settings,
            permanent_impact_factor,
            temporary_impact_factor,
            daily_volume_execution_factor,
        )
        self._exponent = require_positive(exponent, "exponent")

    @property
    def exponent(self) -> float:
        return self._exponent

    def temporary_transaction_function(self) -> ParticipationRatePower:
        settings = self._asset_settings
        return ParticipationRatePower(
            self._temporary_impact_factor * settings.price / self._execution_factor ** self._exponent,
            self._exponent,
        )
