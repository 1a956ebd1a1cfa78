"""
Unit tests for nonadaptive.py - Optimal Execution Generators

Tests cover:
- Discrete Almgren-Chriss holdings, κ and cost consistency
- Drift-adjusted discrete Almgren-Chriss
- Continuous Almgren-Chriss closed forms
- Power-law impact trajectories (Almgren 2003)
- Efficient frontier sweep
"""

import math

import pytest
import numpy as np
from numpy.testing import assert_allclose
from scipy import integrate

from quantref.capture import TrajectoryShortfallEstimator
from quantref.dynamics import ArithmeticPriceDynamicsSettings, almgren_2003, linear_impact_parameters
from quantref.impact import ParticipationRateLinear, ParticipationRatePower
from quantref.nonadaptive import (
    ContinuousAlmgrenChriss,
    ContinuousPowerImpact,
    DiscreteAlmgrenChriss,
    DiscreteAlmgrenChrissDrift,
    OptimalTrajectoryScheme,
    efficient_frontier,
)

SIZE = 1_000_000.0
HORIZON = 5.0
INTERVALS = 5
RISK_AVERSION = 2e-6
SIGMA = 0.95
GAMMA = 2.5e-7
EPSILON = 0.0625
ETA = 2.5e-6


class TestDiscreteAlmgrenChriss:
    """Tests for DiscreteAlmgrenChriss."""

    def test_kappa_from_adjusted_impact(self, ac_parameters):
        result = DiscreteAlmgrenChriss.standard(SIZE, HORIZON, INTERVALS, ac_parameters, RISK_AVERSION).generate()
        tau = HORIZON / INTERVALS
        eta_tilda = ETA - 0.5 * GAMMA * tau
        kappa_tilda_sq = RISK_AVERSION * SIGMA ** 2 / eta_tilda
        assert result.kappa_tilda == pytest.approx(math.sqrt(kappa_tilda_sq))
        assert 2.0 * (math.cosh(result.kappa * tau) - 1.0) / tau ** 2 == pytest.approx(kappa_tilda_sq)
        assert result.half_life == pytest.approx(1.0 / result.kappa)

    def test_holdings_shape(self, ac_parameters):
        result = DiscreteAlmgrenChriss.standard(SIZE, HORIZON, INTERVALS, ac_parameters, RISK_AVERSION).generate()
        times = result.execution_time_nodes
        expected = SIZE * np.sinh(result.kappa * (HORIZON - times)) / np.sinh(result.kappa * HORIZON)
        assert_allclose(result.holdings, expected, rtol=1e-12, atol=1e-6)
        assert result.holdings[0] == SIZE
        assert result.holdings[-1] == 0.0
        assert np.all(np.diff(result.holdings) < 0.0)

    def test_costs_match_shortfall_estimator(self, ac_parameters):
        result = DiscreteAlmgrenChriss.standard(SIZE, HORIZON, INTERVALS, ac_parameters, RISK_AVERSION).generate()
        measure = TrajectoryShortfallEstimator(result.trajectory).total_cost_distribution(ac_parameters)
        assert result.transaction_cost_expectation == pytest.approx(measure.mean, rel=1e-10)
        assert result.transaction_cost_variance == pytest.approx(measure.variance, rel=1e-10)

    def test_risk_neutral_trader_sells_uniformly(self, ac_parameters):
        result = DiscreteAlmgrenChriss.standard(SIZE, HORIZON, INTERVALS, ac_parameters, 0.0).generate()
        assert result.kappa == 0.0
        assert math.isinf(result.half_life)
        assert_allclose(result.trade_list, -SIZE / INTERVALS)

    def test_large_risk_aversion_does_not_overflow(self, ac_parameters):
        result = DiscreteAlmgrenChriss.standard(SIZE, HORIZON, 50, ac_parameters, 10.0).generate()
        assert np.all(np.isfinite(result.holdings))
        assert result.holdings[1] < 1e-3 * SIZE

    def test_non_positive_adjusted_impact_returns_none(self):
        parameters = linear_impact_parameters(0.0, SIGMA, 1e-5, EPSILON, 1e-6)
        assert DiscreteAlmgrenChriss.standard(SIZE, HORIZON, INTERVALS, parameters, RISK_AVERSION).generate() is None

    def test_power_impact_returns_none(self, power_parameters):
        assert DiscreteAlmgrenChriss.standard(SIZE, HORIZON, INTERVALS, power_parameters(0.5), 1e-6).generate() is None

    def test_base_is_abstract(self, ac_parameters):
        with pytest.raises(TypeError):
            OptimalTrajectoryScheme(None, ac_parameters, None)


class TestDiscreteAlmgrenChrissDrift:
    """Tests for DiscreteAlmgrenChrissDrift."""

    def test_residual_holdings(self, ac_drift_parameters):
        result = DiscreteAlmgrenChrissDrift.standard(
            SIZE, HORIZON, INTERVALS, ac_drift_parameters, RISK_AVERSION
        ).generate()
        assert result.residual_holdings == pytest.approx(0.02 / (2.0 * RISK_AVERSION * SIGMA ** 2))

    def test_drift_adjustments_are_trades_of_drift_component(self, ac_drift_parameters):
        result = DiscreteAlmgrenChrissDrift.standard(
            SIZE, HORIZON, INTERVALS, ac_drift_parameters, RISK_AVERSION
        ).generate()
        times = result.execution_time_nodes
        decay = np.sinh(result.kappa * (HORIZON - times)) / np.sinh(result.kappa * HORIZON)
        drift_component = result.holdings - SIZE * decay
        assert_allclose(result.drift_trade_adjustments, np.diff(drift_component), rtol=1e-8, atol=1e-6)

    def test_holdings_drift_adjustments(self, ac_drift_parameters):
        result = DiscreteAlmgrenChrissDrift.standard(
            SIZE, HORIZON, INTERVALS, ac_drift_parameters, RISK_AVERSION
        ).generate()
        times = result.execution_time_nodes
        kappa = result.kappa
        expected = result.residual_holdings * (
            1.0 - (np.sinh(kappa * (HORIZON - times)) + np.sinh(kappa * times)) / np.sinh(kappa * HORIZON)
        )
        assert_allclose(result.holdings_drift_adjustments, expected, rtol=1e-8, atol=1e-6)
        assert result.holdings_drift_adjustments[0] == pytest.approx(0.0, abs=1e-6)
        assert result.holdings_drift_adjustments[-1] == 0.0
        assert_allclose(np.diff(result.holdings_drift_adjustments), result.drift_trade_adjustments, rtol=1e-8, atol=1e-6)

    def test_drift_slows_liquidation(self, ac_parameters, ac_drift_parameters):
        plain = DiscreteAlmgrenChriss.standard(SIZE, HORIZON, INTERVALS, ac_parameters, RISK_AVERSION).generate()
        drift = DiscreteAlmgrenChrissDrift.standard(
            SIZE, HORIZON, INTERVALS, ac_drift_parameters, RISK_AVERSION
        ).generate()
        assert np.all(drift.holdings[1:-1] > plain.holdings[1:-1])
        assert drift.drift_gain > 0.0

    def test_costs_match_shortfall_estimator(self, ac_drift_parameters):
        result = DiscreteAlmgrenChrissDrift.standard(
            SIZE, HORIZON, INTERVALS, ac_drift_parameters, RISK_AVERSION
        ).generate()
        measure = TrajectoryShortfallEstimator(result.trajectory).total_cost_distribution(ac_drift_parameters)
        assert result.transaction_cost_expectation == pytest.approx(measure.mean, rel=1e-10)

    def test_zero_risk_aversion_returns_none(self, ac_drift_parameters):
        generator = DiscreteAlmgrenChrissDrift.standard(SIZE, HORIZON, INTERVALS, ac_drift_parameters, 0.0)
        assert generator.generate() is None


class TestContinuousAlmgrenChriss:
    """Tests for ContinuousAlmgrenChriss."""

    def test_risk_neutral_closed_form(self, ac_parameters):
        result = ContinuousAlmgrenChriss.standard(SIZE, HORIZON, ac_parameters, 0.0).generate()
        expected_mean = 0.5 * GAMMA * SIZE ** 2 + EPSILON * SIZE + ETA * SIZE ** 2 / HORIZON
        expected_variance = SIGMA ** 2 * SIZE ** 2 * HORIZON / 3.0
        assert result.transaction_cost_expectation == pytest.approx(expected_mean, rel=1e-12)
        assert result.transaction_cost_variance == pytest.approx(expected_variance, rel=1e-12)
        assert result.trade_rate(2.0) == pytest.approx(SIZE / HORIZON)

    def test_cost_integrals_match_quadrature(self, ac_parameters):
        result = ContinuousAlmgrenChriss.standard(SIZE, HORIZON, ac_parameters, RISK_AVERSION).generate()
        grid = np.linspace(0.0, HORIZON, 20001)
        holdings = result.holdings(grid)
        rates = result.trade_rate(grid)
        variance = SIGMA ** 2 * integrate.trapezoid(holdings ** 2, grid)
        expectation = 0.5 * GAMMA * SIZE ** 2 + EPSILON * SIZE + ETA * integrate.trapezoid(rates ** 2, grid)
        assert result.transaction_cost_variance == pytest.approx(variance, rel=1e-6)
        assert result.transaction_cost_expectation == pytest.approx(expectation, rel=1e-6)

    def test_remaining_costs_vanish_at_horizon(self, ac_parameters):
        result = ContinuousAlmgrenChriss.standard(SIZE, HORIZON, ac_parameters, RISK_AVERSION).generate()
        assert result.remaining_cost_variance(HORIZON) == pytest.approx(0.0, abs=1e-9)
        assert result.remaining_cost_expectation(HORIZON) == pytest.approx(0.0, abs=1e-9)
        assert result.remaining_cost_expectation(0.0) == pytest.approx(result.transaction_cost_expectation)

    def test_sample_frame(self, ac_parameters):
        frame = ContinuousAlmgrenChriss.standard(SIZE, HORIZON, ac_parameters, RISK_AVERSION).generate().sample(11)
        assert list(frame.columns) == ["time", "holdings", "trade_rate"]
        assert frame["holdings"].iloc[0] == pytest.approx(SIZE)
        assert frame["holdings"].iloc[-1] == pytest.approx(0.0, abs=1e-6)


class TestContinuousPowerImpact:
    """Tests for ContinuousPowerImpact."""

    def test_unit_exponent_example(self, power_parameters):
        result = ContinuousPowerImpact.standard(1e5, 5.0, power_parameters(1.0), 1e-6).generate()
        assert result.characteristic_time == pytest.approx(math.sqrt(5.0))
        assert result.transaction_cost_expectation == pytest.approx(0.5 * 5e-6 * 1e10 / math.sqrt(5.0))
        assert math.isnan(result.t_max)

    @pytest.mark.parametrize("exponent", [0.5, 1.0, 1.5])
    def test_initial_trade_rate(self, power_parameters, exponent):
        result = ContinuousPowerImpact.standard(1e5, 5.0, power_parameters(exponent), 1e-6).generate()
        assert result.trade_rate(0.0) == pytest.approx(1e5 / result.characteristic_time)

    def test_finite_liquidation_time_above_unit_exponent(self, power_parameters):
        result = ContinuousPowerImpact.standard(1e5, 5.0, power_parameters(1.5), 1e-6).generate()
        assert result.t_max == pytest.approx(5.0 * result.characteristic_time)
        assert result.holdings(result.t_max * 1.01) == 0.0

    @pytest.mark.parametrize("exponent", [0.3, 0.5, 1.0, 1.5])
    def test_closed_form_costs_match_quadrature(self, power_parameters, exponent):
        result = ContinuousPowerImpact.standard(1e5, 5.0, power_parameters(exponent, 0.001), 1e-6).generate()
        assert result.remaining_cost_expectation(0.0) == pytest.approx(result.transaction_cost_expectation, rel=1e-5)
        assert result.remaining_cost_variance(0.0) == pytest.approx(result.transaction_cost_variance, rel=1e-5)

    def test_hyperboloid_independent_of_risk_aversion(self, power_parameters):
        parameters = power_parameters(0.6)
        values = [
            ContinuousPowerImpact.standard(1e5, 5.0, parameters, risk_aversion).generate().hyperboloid_boundary_value
            for risk_aversion in (1e-7, 1e-6, 1e-5)
        ]
        assert_allclose(values, values[0], rtol=1e-10)

    def test_unit_exponent_matches_long_horizon_almgren_chriss(self):
        kappa = math.sqrt(1e-6 / 5e-6)
        linear = linear_impact_parameters(0.0, 1.0, 0.0, 0.0, 5e-6)
        horizon = 60.0 / kappa
        ac = ContinuousAlmgrenChriss.standard(1e5, horizon, linear, 1e-6).generate()


        power = almgren_2003(
            ArithmeticPriceDynamicsSettings(0.0, 1.0),
            ParticipationRateLinear(0.0, 0.0),
            ParticipationRatePower(5e-6, 1.0),
        )
        result = ContinuousPowerImpact.standard(1e5, horizon, power, 1e-6).generate()

        assert result.characteristic_time == pytest.approx(1.0 / kappa)
        assert result.holdings(3.0) == pytest.approx(ac.holdings(3.0), rel=1e-8)
        assert result.transaction_cost_expectation == pytest.approx(ac.transaction_cost_expectation, rel=1e-8)
        assert result.transaction_cost_variance == pytest.approx(ac.transaction_cost_variance, rel=1e-8)

    def test_degenerate_inputs_return_none(self, power_parameters):
        assert ContinuousPowerImpact.standard(1e5, 5.0, power_parameters(0.5), 0.0).generate() is None

    def test_linear_impact_returns_none(self, ac_parameters):
        assert ContinuousPowerImpact.standard(1e5, 5.0, ac_parameters, 1e-6).generate() is None


class TestEfficientFrontier:
    """Tests for efficient_frontier."""

    def test_frontier_is_monotone(self, ac_parameters):
        def factory(risk_aversion):
            return DiscreteAlmgrenChriss.standard(SIZE, HORIZON, INTERVALS, ac_parameters, risk_aversion)

        frontier = efficient_frontier(factory, [1e-8, 1e-7, 1e-6, 1e-5])
        assert list(frontier.columns) == ["risk_aversion", "expectation", "variance", "std", "utility"]
        assert np.all(np.diff(frontier["expectation"]) > 0.0)
        assert np.all(np.diff(frontier["variance"]) < 0.0)

    def test_failed_points_are_skipped(self, power_parameters):
        def factory(risk_aversion):
            return ContinuousPowerImpact.standard(1e5, 5.0, power_parameters(0.5), risk_aversion)

        frontier = efficient_frontier(factory, [0.0, 1e-6])
        assert len(frontier) == 1
