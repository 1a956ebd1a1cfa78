"""
Special Functions Module
========================
Quadrature-based estimators for the Gamma function and the modified Bessel
function of the first kind, plus the Fuchsian-equation group descriptor.

Mathematical Foundation:
    Gamma (Euler integral of the second kind):
        Γ(s) = ∫_0^∞ t^{s-1} e^{-t} dt
        Generalized Gauss-Laguerre (weight t^{s-1} e^{-t}):  Γ(s) ≈ Σ w_i
    Gamma derivatives:
        Γ^{(n)}(s) = ∫_0^∞ t^{s-1} e^{-t} (ln t)^n dt
        On [0, 1] with t = u^{1/s}:
            ∫_0^1 t^{s-1} e^{-t} (ln t)^n dt = s^{-(n+1)} ∫_0^1 e^{-u^{1/s}} (ln u)^n du
    Modified Bessel, first kind (integral form):
        I_α(z) = 1/π ∫_0^π e^{z cos θ} cos(αθ) dθ
                 - sin(απ)/π ∫_0^∞ e^{-z cosh t - αt} dt
    Modified Bessel, first kind (series form):
        I_α(z) = Σ_m (z/2)^{2m+α} / (m! Γ(m+α+1))
"""

import math
import numpy as np
import structlog
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from scipy import integrate, special
from typing import Callable, Sequence, Tuple

from quantref.checks import factorial, require_valid

logger = structlog.get_logger(__name__)


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
DEFAULT_GAMMA_QUADRATURE_COUNT: int = 100
DEFAULT_BESSEL_QUADRATURE_COUNT: int = 64
DEFAULT_BESSEL_SERIES_TERMS: int = 60


@lru_cache(maxsize=32)
def gauss_laguerre_nodes(count: int) -> Tuple[np.ndarray, np.ndarray]:
    """Nodes and weights of the ``count``-point Gauss-Laguerre rule."""
    if count <= 0:
        raise ValueError(f"Quadrature count must be positive, got {count}")
    return np.polynomial.laguerre.laggauss(count)


@lru_cache(maxsize=64)
def generalized_laguerre_nodes(count: int, alpha: float) -> Tuple[np.ndarray, np.ndarray]:
    """Nodes and weights of the ``count``-point rule for the weight t^α e^{-t}."""
    if count <= 0:
        raise ValueError(f"Quadrature count must be positive, got {count}")
    if alpha <= -1.0:
        raise ValueError(f"Generalized Laguerre rule requires alpha > -1, got {alpha}")
    return special.roots_genlaguerre(count, alpha)


@lru_cache(maxsize=32)
def gauss_legendre_nodes(count: int) -> Tuple[np.ndarray, np.ndarray]:
    """Nodes and weights of the ``count``-point Gauss-Legendre rule on [-1, 1]."""
    if count <= 0:
        raise ValueError(f"Quadrature count must be positive, got {count}")
    return np.polynomial.legendre.leggauss(count)


def laguerre_integrate(
    integrand: Callable[[np.ndarray], np.ndarray],
    count: int,
) -> float:
    """
    Integrate ``f`` over [0, ∞) with the Gauss-Laguerre rule.

    The rule carries the e^{-t} weight, so ``f(t) e^{t}`` is summed.
    """
    nodes, weights = gauss_laguerre_nodes(count)
    return float(np.sum(weights * np.exp(nodes) * integrand(nodes)))


def legendre_integrate(
    integrand: Callable[[np.ndarray], np.ndarray],
    left: float,
    right: float,
    count: int,
) -> float:
    """Integrate ``f`` over [left, right] with the Gauss-Legendre rule."""
    nodes, weights = gauss_legendre_nodes(count)
    half_width = 0.5 * (right - left)
    midpoint = 0.5 * (right + left)
    return float(half_width * np.sum(weights * integrand(midpoint + half_width * nodes)))


# ─────────────────────────────────────────────────────────────
# Gamma Function
# ─────────────────────────────────────────────────────────────

def euler_gamma(s: float, quadrature_count: int = DEFAULT_GAMMA_QUADRATURE_COUNT) -> float:
    """
    Gamma function from the Euler integral of the second kind.

    The generalized Gauss-Laguerre weight t^{s-1} e^{-t} carries the whole
    integrand, including its singularity at t = 0 for s < 1, so Γ(s) is the
    sum of the weights.

    Parameters
    ----------
    s : float
        Argument, s > 0.
    quadrature_count : int
        Number of generalized Gauss-Laguerre nodes.

    Returns
    -------
    float
        Γ(s).
    """
    s = require_valid(s, "s")
    if s <= 0.0:
        raise ValueError(f"euler_gamma requires s > 0, got {s}")

    _, weights = generalized_laguerre_nodes(quadrature_count, s - 1.0)
    return float(np.sum(weights))


def gamma_derivative(s: float, order: int) -> float:
    """
    n-th derivative of Γ at ``s``.

    The log-moment Γ^{(n)}(s) = ∫_0^∞ t^{s-1} e^{-t} (ln t)^n dt is split at
    t = 1. On [0, 1] the substitution t = u^{1/s} leaves only the
    logarithmic endpoint singularity, which adaptive quadrature resolves.
    """
    s = require_valid(s, "s")
    if order < 1:
        raise ValueError(f"Derivative order must be >= 1, got {order}")
    if s <= 0.0:
        raise ValueError(f"gamma_derivative requires s > 0, got {s}")

    head, _ = integrate.quad(
        lambda u: math.exp(-u ** (1.0 / s)) * math.log(u) ** order,
        0.0, 1.0, limit=200, epsabs=1e-12, epsrel=1e-10,
    )
    tail, _ = integrate.quad(
        lambda t: t ** (s - 1.0) * math.exp(-t) * math.log(t) ** order,
        1.0, math.inf, limit=200, epsabs=1e-12, epsrel=1e-10,
    )
    return float(head / s ** (order + 1) + tail)


def nemes_gamma(z: float) -> float:
    """
    Nemes (2007) analytic approximation.

        Γ(z) ≈ sqrt(2π/z) · ((z + 1/(12z - 1/(10z))) / e)^z
    """
    z = require_valid(z, "z")
    if z <= 0.0:
        raise ValueError(f"nemes_gamma requires z > 0, got {z}")

    return math.sqrt(2.0 * math.pi / z) * (
        (z + 1.0 / (12.0 * z - 1.0 / (10.0 * z))) / math.e
    ) ** z


@dataclass(frozen=True)
class PoleResidue:
    """Pole location and residue; ``is_pole`` is False at regular points."""

    location: float
    residue: float
    is_pole: bool


def gamma_pole_residue(x: float) -> PoleResidue:
    """
    Residue of Γ at ``x``.

    Γ has simple poles at the non-positive integers with
    Res(Γ, -n) = (-1)^n / n!.
    """
    x = require_valid(x, "x")
    if x > 0.0 or x != math.floor(x):
        return PoleResidue(location=x, residue=0.0, is_pole=False)

    n = int(-x)
    sign = -1.0 if n % 2 == 1 else 1.0
    return PoleResidue(location=x, residue=sign / factorial(n), is_pole=True)


def digamma(s: float) -> float:
    """ψ(s) = Γ'(s) / Γ(s)."""
    return gamma_derivative(s, 1) / euler_gamma(s)


# ─────────────────────────────────────────────────────────────
# Modified Bessel Function of the First Kind
# ─────────────────────────────────────────────────────────────

class ModifiedBesselFirstKindEstimator(ABC):
    """Base for estimators of I_α(z)."""

    @abstractmethod
    def big_i(self, alpha: float, z: float) -> float:
        ...

    def __call__(self, alpha: float, z: float) -> float:
        return self.big_i(alpha, z)


class ModifiedBesselFirstIntegralEstimator(ModifiedBesselFirstKindEstimator):
    """
    I_α(z) from its integral representation.

    The finite θ-integral uses Gauss-Legendre on [0, π]; the semi-infinite
    correction (zero for integer α) uses Gauss-Laguerre.

    Parameters
    ----------
    quadrature_count : int
        Nodes used by each quadrature rule; must be positive.
    """

    def __init__(self, quadrature_count: int = DEFAULT_BESSEL_QUADRATURE_COUNT):
        if quadrature_count is None or int(quadrature_count) <= 0:
            raise ValueError(
                f"quadrature_count must be positive, got {quadrature_count}"
            )
        self._quadrature_count = int(quadrature_count)

    @property
    def quadrature_count(self) -> int:
        return self._quadrature_count

    def big_i(self, alpha: float, z: float) -> float:
        alpha = require_valid(alpha, "alpha")
        z = require_valid(z, "z")
        if z <= 0.0:
            raise ValueError(f"Integral form requires z > 0, got {z}")

        principal = legendre_integrate(
            lambda theta: np.exp(z * np.cos(theta)) * np.cos(alpha * theta),
            0.0,
            math.pi,
            self._quadrature_count,
        ) / math.pi

        sine = math.sin(alpha * math.pi)
        if sine == 0.0:
            return principal

        correction = laguerre_integrate(
            lambda t: np.exp(-z * np.cosh(t) - alpha * t),
            self._quadrature_count,
        )
        return principal - sine * correction / math.pi


class ModifiedBesselFirstSeriesEstimator(ModifiedBesselFirstKindEstimator):
    """I_α(z) from the truncated Frobenius series (α >= 0)."""

    def __init__(self, term_count: int = DEFAULT_BESSEL_SERIES_TERMS):
        if term_count is None or int(term_count) <= 0:
            raise ValueError(f"term_count must be positive, got {term_count}")
        self._term_count = int(term_count)

    @property
    def term_count(self) -> int:
        return self._term_count

    def big_i(self, alpha: float, z: float) -> float:
        alpha = require_valid(alpha, "alpha")
        z = require_valid(z, "z")
        if alpha < 0.0 or z < 0.0:
            raise ValueError(f"Series form requires alpha >= 0 and z >= 0, got alpha={alpha}, z={z}")

        half_z = 0.5 * z
        total = 0.0
        for m in range(self._term_count):
            log_denominator = math.lgamma(m + 1.0) + math.lgamma(m + alpha + 1.0)
            power = 2.0 * m + alpha
            if half_z == 0.0:
                term = math.exp(-log_denominator) if power == 0.0 else 0.0
            else:
                term = math.exp(power * math.log(half_z) - log_denominator)
            total += term
        return total


# ─────────────────────────────────────────────────────────────
# Fuchsian Equation
# ─────────────────────────────────────────────────────────────

class FuchsianEquation:
    """
    Klein group of isomorphic functions attached to a Fuchsian equation.

    The isomorphy order is n! · 2^{n-1} for n functions (the coxeter
    singularity index).
    """

    def __init__(self, klein_group_functions: Sequence[Callable[[float], float]]):
        if klein_group_functions is None or len(klein_group_functions) == 0:
            raise ValueError("FuchsianEquation requires at least one Klein group function")
        if any(fn is None for fn in klein_group_functions):
            raise ValueError("FuchsianEquation Klein group functions must not be None")

        self._functions = tuple(klein_group_functions)
        n = len(self._functions)
        self._isomorphy_order = factorial(n) * 2 ** (n - 1)

    @property
    def coxeter_singularity_index(self) -> int:
        return len(self._functions)

    @property
    def isomorphy_order(self) -> int:
        return self._isomorphy_order

    @property
    def klein_group_functions(self) -> Tuple[Callable[[float], float], ...]:
        return self._functions
