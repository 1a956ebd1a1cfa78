"""
B-Spline Basis Module
=====================
Segment basis functions spanning three knots (leading, following,
trailing) and the general Cox-de Boor basis.

A segment basis function rises from zero at the leading knot, peaks at the
following knot and returns to zero at the trailing knot. Its full integral
is the normalizer; the normalized cumulative runs from 0 to 1 across the
span.
"""

import math
import numpy as np
from abc import ABC, abstractmethod
from scipy import integrate
from scipy.interpolate import BSpline
from typing import Sequence

from quantref.checks import is_valid, require_positive


class SegmentBasisFunction(ABC):
    """
    Three-knot B-spline segment basis.

    Parameters
    ----------
    order : int
        B-spline order, at least 2.
    leading, following, trailing : float
        Knots, finite and strictly increasing.

    Raises
    ------
    ValueError
        On non-finite or non-increasing knots, or order < 2.
    """

    def __init__(self, order: int, leading: float, following: float, trailing: float):
        if not (is_valid(leading) and is_valid(following) and is_valid(trailing)):
            raise ValueError("Segment knots must be finite")
        if not leading < following < trailing:
            raise ValueError(
                f"Segment knots must be increasing, got {leading}, {following}, {trailing}"
            )
        if order is None or int(order) < 2:
            raise ValueError(f"B-spline order must be >= 2, got {order}")

        self._order = int(order)
        self._leading = float(leading)
        self._following = float(following)
        self._trailing = float(trailing)

    @property
    def order(self) -> int:
        return self._order

    @property
    def leading(self) -> float:
        return self._leading

    @property
    def following(self) -> float:
        return self._following

    @property
    def trailing(self) -> float:
        return self._trailing

    @abstractmethod
    def evaluate(self, x: float) -> float:
        """Basis value at ``x``; zero outside [leading, trailing]."""

    def __call__(self, x: float) -> float:
        return self.evaluate(x)

    def integrate(self, left: float, right: float) -> float:
        """Integral of the basis over [left, right], clipped to the span."""
        left = max(left, self._leading)
        right = min(right, self._trailing)
        if right <= left:
            return 0.0
        points = [self._following] if left < self._following < right else None
        value, _ = integrate.quad(self.evaluate, left, right, points=points)
        return float(value)

    def normalizer(self) -> float:
        """Integral over the whole span."""
        return self.integrate(self._leading, self._trailing)

    def normalized_cumulative(self, x: float) -> float:
        """Fraction of the normalizer accumulated up to ``x``."""
        if not is_valid(x):
            raise ValueError(f"Ordinate must be finite, got {x}")
        if x <= self._leading:
            return 0.0
        if x >= self._trailing:
            return 1.0
        return self.integrate(self._leading, x) / self.normalizer()


class LinearHatBasisFunction(SegmentBasisFunction):
    """Order-2 piecewise-linear hat with unit peak at the following knot."""

    def __init__(self, leading: float, following: float, trailing: float):
        super().__init__(2, leading, following, trailing)

    def evaluate(self, x: float) -> float:
        if x <= self._leading or x >= self._trailing:
            return 0.0
        if x <= self._following:
            return (x - self._leading) / (self._following - self._leading)
        return (self._trailing - x) / (self._trailing - self._following)

    def integrate(self, left: float, right: float) -> float:
        return self._primitive(min(max(right, self._leading), self._trailing)) - self._primitive(
            min(max(left, self._leading), self._trailing)
        )

    def _primitive(self, x: float) -> float:
        rise = self._following - self._leading
        if x <= self._following:
            return 0.5 * (x - self._leading) ** 2 / rise
        fall = self._trailing - self._following
        return 0.5 * rise + (
            0.5 * fall - 0.5 * (self._trailing - x) ** 2 / fall
        )


class ExponentialTensionHatBasisFunction(SegmentBasisFunction):
    """
    Hyperbolic-sine tension hat.

        left arm:   sinh(τ(x - l)) / sinh(τ(f - l))
        right arm:  sinh(τ(t - x)) / sinh(τ(t - f))

    Tension τ -> 0 recovers the linear hat.
    """

    def __init__(self, leading: float, following: float, trailing: float, tension: float):
        super().__init__(2, leading, following, trailing)
        self._tension = require_positive(tension, "tension")

    @property
    def tension(self) -> float:
        return self._tension

    def evaluate(self, x: float) -> float:
        tau = self._tension
        if x <= self._leading or x >= self._trailing:
            return 0.0
        if x <= self._following:
            return math.sinh(tau * (x - self._leading)) / math.sinh(
                tau * (self._following - self._leading)
            )
        return math.sinh(tau * (self._trailing - x)) / math.sinh(
            tau * (self._trailing - self._following)
        )

    def integrate(self, left: float, right: float) -> float:
        return self._primitive(min(max(right, self._leading), self._trailing)) - self._primitive(
            min(max(left, self._leading), self._trailing)
        )

    def _primitive(self, x: float) -> float:
        tau = self._tension
        rise = self._following - self._leading
        fall = self._trailing - self._following
        left_scale = tau * math.sinh(tau * rise)
        if x <= self._following:
            return (math.cosh(tau * (x - self._leading)) - 1.0) / left_scale
        left_area = (math.cosh(tau * rise) - 1.0) / left_scale
        right_scale = tau * math.sinh(tau * fall)
        return left_area + (
            math.cosh(tau * fall) - math.cosh(tau * (self._trailing - x))
        ) / right_scale


def bspline_basis(knots: Sequence[float], order: int, x) -> np.ndarray:
    """
    Cox-de Boor B-spline basis values.

    Parameters
    ----------
    knots : sequence of float
        Non-decreasing knot vector.
    order : int
        Spline order (degree + 1).
    x : float or array-like
        Evaluation ordinates.

    Returns
    -------
    np.ndarray
        Shape (len(x), len(knots) - order): value of every basis element at
        every ordinate. Rows sum to 1 strictly inside
        (knots[order-1], knots[-order]).
    """
    knot_array = np.asarray(knots, dtype=float)
    if knot_array.ndim != 1 or not is_valid(knot_array):
        raise ValueError("Knots must be a finite 1-D sequence")
    if np.any(np.diff(knot_array) < 0.0):
        raise ValueError("Knots must be non-decreasing")
    if order is None or int(order) < 1:
        raise ValueError(f"B-spline order must be >= 1, got {order}")

    basis_count = knot_array.size - int(order)
    if basis_count <= 0:
        raise ValueError(
            f"Need more than {order} knots for an order-{order} basis, got {knot_array.size}"
        )

    ordinates = np.atleast_1d(np.asarray(x, dtype=float))
    values = np.zeros((ordinates.size, basis_count))

    for i in range(basis_count):
        element = BSpline.basis_element(knot_array[i:i + int(order) + 1], extrapolate=False)
        evaluated = element(ordinates)
        values[:, i] = np.nan_to_num(evaluated, nan=0.0)

    return values
