"""
Unit tests for strategy.py, capture.py and risk.py - Trajectories, Shortfall and Risk

Tests cover:
- Order specifications and execution grids
- Discrete trajectories and their tabular view
- Implementation shortfall of a fixed trajectory
- Mean-variance objective, liquidation VaR and risk aversion calibration
- Unattainable variance targets
"""

import pytest
import numpy as np
import pandas as pd
from numpy.testing import assert_allclose
from scipy import stats

from quantref.capture import R1UnivariateNormal, TrajectoryShortfallEstimator
from quantref.nonadaptive import DiscreteAlmgrenChriss
from quantref.risk import (
    MeanVarianceObjectiveUtility,
    liquidation_value_at_risk,
    risk_aversion_for_target_variance,
)
from quantref.strategy import (
    DiscreteTradingTrajectory,
    DiscreteTradingTrajectoryControl,
    OrderSpecification,
    trajectory_from_holdings,
)


class TestStrategy:
    """Tests for orders, controls and trajectories."""

    def test_fixed_interval_grid(self):
        control = DiscreteTradingTrajectoryControl.fixed_interval(OrderSpecification(1000.0, 5.0), 5)
        assert_allclose(control.execution_time_nodes, [0.0, 1.0, 2.0, 3.0, 4.0, 5.0])
        assert control.num_interval == 5
        assert control.execution_time() == 5.0

    def test_order_needs_positive_time(self):
        with pytest.raises(ValueError, match="max_execution_time"):
            OrderSpecification(1000.0, 0.0)

    def test_nodes_must_increase(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            DiscreteTradingTrajectoryControl([0.0, 2.0, 1.0])

    def test_trajectory_lengths_validated(self):
        with pytest.raises(ValueError, match="Trade list length"):
            DiscreteTradingTrajectory([0.0, 1.0, 2.0], [10.0, 5.0, 0.0], [-5.0])

    def test_trade_rates(self):
        trajectory = trajectory_from_holdings([0.0, 1.0, 3.0], [10.0, 6.0, 0.0])
        assert_allclose(trajectory.trade_list, [-4.0, -6.0])
        assert_allclose(trajectory.trade_rate(), [-4.0, -3.0])
        assert_allclose(trajectory.instantaneous_trade_rate(), [4.0, 3.0])

    def test_uneven_grid_warns(self):
        with pytest.warns(UserWarning, match="not evenly spaced"):
            trajectory_from_holdings([0.0, 1.0, 3.0], [10.0, 6.0, 0.0])

    def test_to_frame(self):
        frame = trajectory_from_holdings([0.0, 1.0, 2.0], [10.0, 5.0, 0.0]).to_frame()
        assert list(frame.columns) == ["time", "holdings", "trade", "trade_rate"]
        assert len(frame) == 3
        assert np.isnan(frame["trade"].iloc[-1])


class TestShortfall:
    """Tests for TrajectoryShortfallEstimator and R1UnivariateNormal."""

    def test_linear_liquidation_cost(self, ac_parameters):
        """Uniform selling of X over N intervals: closed-form E and V."""
        size, horizon, intervals = 1e6, 5.0, 5
        nodes = np.linspace(0.0, horizon, intervals + 1)
        holdings = size * (1.0 - nodes / horizon)
        trajectory = trajectory_from_holdings(nodes, holdings)
        tau = horizon / intervals

        measure = TrajectoryShortfallEstimator(trajectory).total_cost_distribution(ac_parameters)

        gamma, epsilon, eta, sigma = 2.5e-7, 0.0625, 2.5e-6, 0.95
        expected_mean = (
            0.5 * gamma * size ** 2 + epsilon * size
            + (eta - 0.5 * gamma * tau) * size ** 2 / horizon
        )
        expected_variance = sigma ** 2 * size ** 2 * tau * np.sum((1.0 - nodes[1:] / horizon) ** 2)
        assert measure.mean == pytest.approx(expected_mean, rel=1e-12)
        assert measure.variance == pytest.approx(expected_variance, rel=1e-12)

    def test_interval_frame_sums_to_total(self, ac_drift_parameters):
        trajectory = trajectory_from_holdings(np.linspace(0.0, 5.0, 6), [1e6, 8e5, 6e5, 4e5, 2e5, 0.0])
        estimator = TrajectoryShortfallEstimator(trajectory)
        frame = estimator.interval_cost_frame(ac_drift_parameters)
        total = estimator.total_cost_distribution(ac_drift_parameters)
        assert isinstance(frame, pd.DataFrame)
        assert frame["cost_expectation"].sum() == pytest.approx(total.mean)
        assert (frame["drift_gain"] > 0.0).sum() == 4

    def test_normal_quantile(self):
        measure = R1UnivariateNormal(1.0, 4.0)
        assert measure.standard_deviation == 2.0
        assert measure.quantile(0.975) == pytest.approx(1.0 + 2.0 * stats.norm.ppf(0.975))
        assert measure.distribution().mean() == pytest.approx(1.0)

    def test_negative_variance_raises(self):
        with pytest.raises(ValueError, match="non-negative"):
            R1UnivariateNormal(0.0, -1.0)


class TestRisk:
    """Tests for the mean-variance objective and risk calibration."""

    def test_objective(self):
        utility = MeanVarianceObjectiveUtility(1e-3)
        assert utility.value(10.0, 1000.0) == pytest.approx(11.0)
        assert utility.evaluate(R1UnivariateNormal(10.0, 1000.0)) == pytest.approx(11.0)

    def test_negative_risk_aversion_raises(self):
        with pytest.raises(ValueError, match="risk_aversion"):
            MeanVarianceObjectiveUtility(-1.0)

    def test_liquidation_var(self):
        assert liquidation_value_at_risk(100.0, 400.0, 0.95) == pytest.approx(
            100.0 + stats.norm.ppf(0.95) * 20.0
        )

    def test_liquidation_var_confidence_validated(self):
        with pytest.raises(ValueError, match="confidence"):
            liquidation_value_at_risk(100.0, 400.0, 1.0)

    def test_risk_aversion_recovers_target(self, ac_parameters):
        def factory(risk_aversion):
            return DiscreteAlmgrenChriss.standard(1e6, 5.0, 5, ac_parameters, risk_aversion)

        reference = factory(2e-6).generate()
        calibrated = risk_aversion_for_target_variance(factory, reference.transaction_cost_variance)
        assert calibrated == pytest.approx(2e-6, rel=1e-6)

    def test_zero_variance_optimum_is_unattainable(self, ac_parameters):
        """A single-interval grid leaves no holdings at risk, so V = 0 for every λ."""
        def factory(risk_aversion):
            return DiscreteAlmgrenChriss.standard(1e6, 5.0, 1, ac_parameters, risk_aversion)

        assert factory(2e-6).generate().transaction_cost_variance == 0.0
        assert risk_aversion_for_target_variance(factory, 1.0) is None

    def test_failed_generation_is_unattainable(self):
        class FailingGenerator:
            def generate(self):
                return None

        assert risk_aversion_for_target_variance(lambda risk_aversion: FailingGenerator(), 1.0) is None
