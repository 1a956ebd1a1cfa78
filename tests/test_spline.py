"""
Unit tests for spline.py - B-Spline Basis Module

Tests cover:
- Linear and exponential-tension hat segment functions
- Normalizer and normalized cumulative
- Cox-de Boor basis partition of unity
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from quantref.spline import (
    ExponentialTensionHatBasisFunction,
    LinearHatBasisFunction,
    SegmentBasisFunction,
    bspline_basis,
)


class TestLinearHat:
    """Tests for LinearHatBasisFunction."""

    def test_shape(self):
        hat = LinearHatBasisFunction(0.0, 1.0, 3.0)
        assert hat(0.0) == 0.0
        assert hat(0.5) == pytest.approx(0.5)
        assert hat(1.0) == pytest.approx(1.0)
        assert hat(2.0) == pytest.approx(0.5)
        assert hat(4.0) == 0.0

    def test_normalizer_is_triangle_area(self):
        assert LinearHatBasisFunction(0.0, 1.0, 3.0).normalizer() == pytest.approx(1.5)

    def test_normalized_cumulative(self):
        hat = LinearHatBasisFunction(0.0, 1.0, 3.0)
        assert hat.normalized_cumulative(-1.0) == 0.0
        assert hat.normalized_cumulative(1.0) == pytest.approx(1.0 / 3.0)
        assert hat.normalized_cumulative(5.0) == 1.0

    def test_knots_must_increase(self):
        with pytest.raises(ValueError, match="increasing"):
            LinearHatBasisFunction(0.0, 2.0, 1.0)

    def test_knots_must_be_finite(self):
        with pytest.raises(ValueError, match="finite"):
            LinearHatBasisFunction(0.0, np.nan, 1.0)


class TestTensionHat:
    """Tests for ExponentialTensionHatBasisFunction."""

    def test_peak_and_support(self):
        hat = ExponentialTensionHatBasisFunction(0.0, 1.0, 3.0, tension=2.0)
        assert hat(1.0) == pytest.approx(1.0)
        assert hat(-0.1) == 0.0
        assert hat(3.0) == 0.0

    def test_closed_form_integral_matches_quadrature(self):
        hat = ExponentialTensionHatBasisFunction(0.0, 1.0, 3.0, tension=2.0)
        for left, right in [(0.0, 3.0), (0.2, 0.9), (0.5, 2.5)]:
            assert hat.integrate(left, right) == pytest.approx(
                SegmentBasisFunction.integrate(hat, left, right), rel=1e-8
            )

    def test_small_tension_recovers_linear_hat(self):
        tension = ExponentialTensionHatBasisFunction(0.0, 1.0, 3.0, tension=1e-4)
        linear = LinearHatBasisFunction(0.0, 1.0, 3.0)
        assert tension.normalizer() == pytest.approx(linear.normalizer(), rel=1e-6)

    def test_tension_must_be_positive(self):
        with pytest.raises(ValueError, match="tension"):
            ExponentialTensionHatBasisFunction(0.0, 1.0, 3.0, tension=0.0)


class TestBSplineBasis:
    """Tests for bspline_basis."""

    def test_partition_of_unity(self):
        knots = np.arange(8.0)
        x = np.array([2.5, 3.3, 4.1, 4.9])
        values = bspline_basis(knots, 3, x)
        assert values.shape == (4, 5)
        assert_allclose(values.sum(axis=1), 1.0, rtol=1e-12)
        assert np.all(values >= 0.0)

    def test_order_two_is_linear_hat(self):
        values = bspline_basis([0.0, 1.0, 3.0], 2, [0.5, 2.0])
        hat = LinearHatBasisFunction(0.0, 1.0, 3.0)
        assert_allclose(values[:, 0], [hat(0.5), hat(2.0)])

    def test_too_few_knots_raises(self):
        with pytest.raises(ValueError, match="knots"):
            bspline_basis([0.0, 1.0], 3, 0.5)
