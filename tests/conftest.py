"""
Shared test fixtures for the quantref test suite.

Provides consistent inputs across all test modules:
- Almgren-Chriss (2000) linear impact parameters, with and without drift
- Almgren (2003) power-impact parameters built from asset settings
- A seeded random generator
"""

import pytest
import numpy as np

from quantref.dynamics import ArithmeticPriceDynamicsSettings, almgren_2003, linear_impact_parameters
from quantref.impact import AssetTransactionSettings, PriceMarketImpactPower

# Almgren-Chriss (2000) worked example
AC_SIZE = 1_000_000.0
AC_HORIZON = 5.0
AC_INTERVALS = 5
AC_VOLATILITY = 0.95
AC_GAMMA = 2.5e-7
AC_EPSILON = 0.0625
AC_ETA = 2.5e-6
AC_RISK_AVERSION = 2e-6

# Almgren (2003) impact exponent example
PI_PRICE = 50.0
PI_SIZE = 100_000.0
PI_VOLUME = 1_000_000.0
PI_HORIZON = 5.0
PI_RISK_AVERSION = 1e-6


@pytest.fixture
def ac_parameters():
    """Linear permanent and temporary impact, zero drift.

    Returns:
        LinearPermanentExpectationParameters: σ = 0.95, γ = 2.5e-7,
            ε = 0.0625, η = 2.5e-6
    """
    return linear_impact_parameters(0.0, AC_VOLATILITY, AC_GAMMA, AC_EPSILON, AC_ETA)


@pytest.fixture
def ac_drift_parameters():
    """Same impact as ``ac_parameters`` with drift α = 0.02 per day."""
    return linear_impact_parameters(0.02, AC_VOLATILITY, AC_GAMMA, AC_EPSILON, AC_ETA)


@pytest.fixture
def power_parameters():
    """Factory of power-impact parameters for a given exponent k.

    Returns:
        Callable[[float], LinearPermanentExpectationParameters]: S0 = 50,
            V = 1e6, f = 0.1, zero permanent factor, temporary factor 0.01
    """
    def build(exponent, permanent_factor=0.0):
        impact = PriceMarketImpactPower(
            AssetTransactionSettings(PI_PRICE, PI_VOLUME),
            permanent_factor,
            0.01,
            0.1,
            exponent,
        )
        return almgren_2003(
            ArithmeticPriceDynamicsSettings(0.0, 1.0),
            impact.permanent_participation(),
            impact.temporary_participation(),
        )

    return build


@pytest.fixture
def rng():
    return np.random.default_rng(42)
