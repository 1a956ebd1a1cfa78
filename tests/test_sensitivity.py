"""
Unit tests for sensitivity.py - Control Node Greeks

Tests cover:
- Gradient vanishing at the Almgren-Chriss optimum
- Gradient against finite differences of the objective
- Tridiagonal Hessian structure
- Input validation
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from quantref.nonadaptive import DiscreteAlmgrenChriss, DiscreteAlmgrenChrissDrift
from quantref.risk import MeanVarianceObjectiveUtility
from quantref.sensitivity import ControlNodesGreek, control_nodes_greeks
from quantref.strategy import trajectory_from_holdings

SIZE = 1_000_000.0
RISK_AVERSION = 2e-6


class TestControlNodesGreeks:
    """Tests for control_nodes_greeks."""

    def test_gradient_vanishes_at_optimum(self, ac_parameters):
        result = DiscreteAlmgrenChriss.standard(SIZE, 5.0, 5, ac_parameters, RISK_AVERSION).generate()
        greeks = control_nodes_greeks(result.trajectory, ac_parameters, MeanVarianceObjectiveUtility(RISK_AVERSION))
        assert_allclose(greeks.jacobian, 0.0, atol=1e-6)
        assert greeks.value == pytest.approx(result.utility(RISK_AVERSION), rel=1e-10)

    def test_gradient_vanishes_at_drift_optimum(self, ac_drift_parameters):
        result = DiscreteAlmgrenChrissDrift.standard(SIZE, 5.0, 5, ac_drift_parameters, RISK_AVERSION).generate()
        greeks = control_nodes_greeks(
            result.trajectory, ac_drift_parameters, MeanVarianceObjectiveUtility(RISK_AVERSION)
        )
        assert_allclose(greeks.jacobian, 0.0, atol=1e-6)

    def test_gradient_matches_finite_differences(self, ac_parameters):
        nodes = np.linspace(0.0, 5.0, 6)
        holdings = np.array([SIZE, 7e5, 4.5e5, 2.5e5, 1e5, 0.0])
        utility = MeanVarianceObjectiveUtility(RISK_AVERSION)
        greeks = control_nodes_greeks(trajectory_from_holdings(nodes, holdings), ac_parameters, utility)

        bump = 1.0
        numeric = []
        for k in range(1, 5):
            up, down = holdings.copy(), holdings.copy()
            up[k] += bump
            down[k] -= bump
            value_up = control_nodes_greeks(trajectory_from_holdings(nodes, up), ac_parameters, utility).value
            value_down = control_nodes_greeks(trajectory_from_holdings(nodes, down), ac_parameters, utility).value
            numeric.append((value_up - value_down) / (2.0 * bump))
        assert_allclose(greeks.jacobian, numeric, rtol=1e-5, atol=1e-6)

    def test_hessian_is_tridiagonal(self, ac_parameters):
        result = DiscreteAlmgrenChriss.standard(SIZE, 5.0, 5, ac_parameters, RISK_AVERSION).generate()
        hessian = control_nodes_greeks(
            result.trajectory, ac_parameters, MeanVarianceObjectiveUtility(RISK_AVERSION)
        ).hessian
        eta_tilda = 2.5e-6 - 0.5 * 2.5e-7
        assert hessian.shape == (4, 4)
        assert_allclose(np.diag(hessian), 4.0 * eta_tilda + 2.0 * RISK_AVERSION * 0.95 ** 2)
        assert_allclose(np.diag(hessian, k=1), -2.0 * eta_tilda)
        assert hessian[0, 2] == 0.0
        assert np.all(np.linalg.eigvalsh(hessian) > 0.0)

    def test_single_interval_raises(self, ac_parameters):
        trajectory = trajectory_from_holdings([0.0, 1.0], [100.0, 0.0])
        with pytest.raises(ValueError, match="at least two intervals"):
            control_nodes_greeks(trajectory, ac_parameters, MeanVarianceObjectiveUtility())

    def test_power_impact_returns_none(self, power_parameters):
        trajectory = trajectory_from_holdings(np.linspace(0.0, 2.0, 3), [100.0, 50.0, 0.0])
        assert control_nodes_greeks(trajectory, power_parameters(0.5), MeanVarianceObjectiveUtility()) is None


class TestControlNodesGreek:
    """Tests for the ControlNodesGreek container."""

    def test_hessian_shape_validated(self):
        with pytest.raises(ValueError, match="hessian"):
            ControlNodesGreek(1.0, [1.0, 2.0], np.eye(3))

    def test_empty_jacobian_raises(self):
        with pytest.raises(ValueError, match="jacobian"):
            ControlNodesGreek(1.0, [], np.zeros((0, 0)))
