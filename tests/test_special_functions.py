"""
Unit tests for special_functions.py - Special Functions Module

Tests cover:
- Gauss-Laguerre Gamma (including arguments below one), its derivatives and the Nemes approximation
- Pole residues of Gamma
- Modified Bessel function (integral and series estimators)
- Fuchsian equation isomorphy order
"""

import math

import pytest
import numpy as np
from numpy.testing import assert_allclose
from scipy import special

from quantref.special_functions import (
    FuchsianEquation,
    ModifiedBesselFirstIntegralEstimator,
    ModifiedBesselFirstKindEstimator,
    ModifiedBesselFirstSeriesEstimator,
    digamma,
    euler_gamma,
    gamma_derivative,
    gamma_pole_residue,
    nemes_gamma,
)


class TestEulerGamma:
    """Tests for euler_gamma and nemes_gamma."""

    @pytest.mark.parametrize("n", [1, 2, 3, 5, 8])
    def test_integer_arguments_give_factorials(self, n):
        """Γ(n+1) = n!."""
        assert_allclose(euler_gamma(n + 1), math.factorial(n), rtol=1e-9)

    @pytest.mark.parametrize("s", [2.5, 3.7, 4.5])
    def test_non_integer_arguments(self, s):
        assert_allclose(euler_gamma(s), special.gamma(s), rtol=1e-8)

    @pytest.mark.parametrize("s", [0.25, 0.5, 0.75])
    def test_arguments_below_one(self, s):
        """The integrand is singular at t = 0 for s < 1."""
        assert_allclose(euler_gamma(s), special.gamma(s), rtol=1e-8)

    def test_non_positive_argument_raises(self):
        with pytest.raises(ValueError, match="s > 0"):
            euler_gamma(0.0)

    @pytest.mark.parametrize("z", [2.0, 4.5, 10.0])
    def test_nemes_approximation(self, z):
        assert_allclose(nemes_gamma(z), special.gamma(z), rtol=1e-4)

    def test_derivative_at_one(self):
        """Γ'(1) = -γ (Euler-Mascheroni)."""
        assert gamma_derivative(1.0, 1) == pytest.approx(-np.euler_gamma, rel=1e-8)

    @pytest.mark.parametrize("s", [0.25, 0.5, 1.0, 2.5, 4.0])
    def test_first_derivative(self, s):
        """Γ'(s) = Γ(s) ψ(s)."""
        expected = special.gamma(s) * special.digamma(s)
        assert gamma_derivative(s, 1) == pytest.approx(expected, rel=1e-7)

    @pytest.mark.parametrize("s", [0.25, 0.5, 1.0, 2.5])
    def test_second_derivative(self, s):
        """Γ''(s) = Γ(s) (ψ(s)² + ψ'(s))."""
        expected = special.gamma(s) * (special.digamma(s) ** 2 + special.polygamma(1, s))
        assert gamma_derivative(s, 2) == pytest.approx(expected, rel=1e-7)

    @pytest.mark.parametrize("s", [0.5, 2.0])
    def test_digamma(self, s):
        assert digamma(s) == pytest.approx(special.digamma(s), rel=1e-7)

    def test_derivative_order_validated(self):
        with pytest.raises(ValueError, match="order"):
            gamma_derivative(2.0, 0)


class TestGammaPoleResidue:
    """Tests for gamma_pole_residue."""

    @pytest.mark.parametrize("n", [0, 1, 2, 3])
    def test_residue_at_non_positive_integers(self, n):
        residue = gamma_pole_residue(-float(n))
        assert residue.is_pole
        assert residue.residue == pytest.approx((-1) ** n / math.factorial(n))

    @pytest.mark.parametrize("x", [1.0, -0.5, 2.3])
    def test_regular_points(self, x):
        residue = gamma_pole_residue(x)
        assert not residue.is_pole
        assert residue.residue == 0.0


class TestModifiedBessel:
    """Tests for the modified Bessel estimators."""

    @pytest.mark.parametrize("alpha", [0.0, 1.0, 2.0, 3.0])
    @pytest.mark.parametrize("z", [0.5, 1.0, 3.0])
    def test_integral_integer_order(self, alpha, z):
        estimator = ModifiedBesselFirstIntegralEstimator()
        assert_allclose(estimator.big_i(alpha, z), special.iv(alpha, z), rtol=1e-10)

    @pytest.mark.parametrize("alpha", [0.5, 1.5, 2.25])
    def test_integral_non_integer_order(self, alpha):
        """The sin(απ) correction term is needed away from integer orders."""
        estimator = ModifiedBesselFirstIntegralEstimator()
        assert_allclose(estimator(alpha, 1.0), special.iv(alpha, 1.0), rtol=5e-3)

    @pytest.mark.parametrize("alpha", [0.0, 0.5, 1.0, 2.5])
    @pytest.mark.parametrize("z", [0.0, 0.5, 2.0, 5.0])
    def test_series(self, alpha, z):
        estimator = ModifiedBesselFirstSeriesEstimator()
        assert_allclose(estimator(alpha, z), special.iv(alpha, z), rtol=1e-10, atol=1e-300)

    def test_integral_requires_positive_argument(self):
        with pytest.raises(ValueError, match="z > 0"):
            ModifiedBesselFirstIntegralEstimator().big_i(1.0, 0.0)

    def test_series_rejects_negative_order(self):
        with pytest.raises(ValueError, match="alpha >= 0"):
            ModifiedBesselFirstSeriesEstimator().big_i(-0.5, 1.0)

    def test_counts_validated(self):
        with pytest.raises(ValueError, match="quadrature_count"):
            ModifiedBesselFirstIntegralEstimator(0)
        with pytest.raises(ValueError, match="term_count"):
            ModifiedBesselFirstSeriesEstimator(0)

    def test_base_is_abstract(self):
        with pytest.raises(TypeError):
            ModifiedBesselFirstKindEstimator()


class TestFuchsianEquation:
    """Tests for FuchsianEquation."""

    def test_isomorphy_order(self):
        equation = FuchsianEquation([math.sin, math.cos, math.exp])
        assert equation.coxeter_singularity_index == 3
        assert equation.isomorphy_order == 24

    def test_empty_group_raises(self):
        with pytest.raises(ValueError, match="at least one"):
            FuchsianEquation([])
