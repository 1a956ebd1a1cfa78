"""
CSA Discount Curve Module
=========================
Flat overnight curve and the multilateral CSA basis curve built on it.

Times are year fractions from the curve epoch.

    df_basis(t) = df_overnight(t) · exp(-b t)
    r(t1, t2)   = ln(df(t1) / df(t2)) / (t2 - t1)
"""

import math
import numpy as np

from quantref.checks import require_valid

# Trapezoid nodes used by the effective discount factor
EFFECTIVE_DF_QUADRATURE_COUNT: int = 5


class FlatOvernightCurve:
    """Continuously compounded flat overnight curve."""

    def __init__(self, rate: float):
        self._rate = require_valid(rate, "rate")

    @property
    def rate(self) -> float:
        return self._rate

    def discount_factor(self, time: float) -> float:
        time = require_valid(time, "time")
        if time < 0.0:
            raise ValueError(f"time must be non-negative, got {time}")
        return math.exp(-self._rate * time)


class MultilateralBasisCurve:
    """Overnight curve shifted by a constant CSA basis."""

    def __init__(self, overnight_curve: FlatOvernightCurve, basis: float):
        if overnight_curve is None:
            raise ValueError("overnight_curve must not be None")
        self._overnight_curve = overnight_curve
        self._basis = require_valid(basis, "basis")

    @property
    def overnight_curve(self) -> FlatOvernightCurve:
        return self._overnight_curve

    @property
    def basis(self) -> float:
        return self._basis

    def discount_factor(self, time: float) -> float:
        time = require_valid(time, "time")
        if time < 0.0:
            raise ValueError(f"time must be non-negative, got {time}")
        return self._overnight_curve.discount_factor(time) * math.exp(-self._basis * time)

    def zero_rate(self, time: float) -> float:
        time = require_valid(time, "time")
        if time <= 0.0:
            raise ValueError(f"Zero rate needs a positive time, got {time}")
        return -math.log(self.discount_factor(time)) / time

    def forward_rate(self, start: float, end: float) -> float:
        if not 0.0 <= start < end:
            raise ValueError(f"Forward rate needs 0 <= start < end, got {start}, {end}")
        return math.log(self.discount_factor(start) / self.discount_factor(end)) / (end - start)

    def effective_discount_factor(self, start: float, end: float) -> float:
        """Trapezoid average of the discount factor over [start, end]."""
        if not 0.0 <= start < end:
            raise ValueError(f"Effective discount factor needs 0 <= start < end, got {start}, {end}")
        times = np.linspace(start, end, EFFECTIVE_DF_QUADRATURE_COUNT + 1)
        factors = np.array([self.discount_factor(float(t)) for t in times])
        return float(0.5 * np.mean(factors[:-1] + factors[1:]))
