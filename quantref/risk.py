"""
Risk Objective Module
=====================
Mean-variance objective for execution, the liquidation value-at-risk and
calibration of the risk-aversion parameter to a target cost variance.

Mathematical Foundation:
    U(x) = E[x] + λ V[x]
    L-VaR_p = E[x] + z_p √V[x]       (z_p the standard normal quantile)
"""

import math
import structlog
from scipy import optimize, stats
from typing import Callable, Optional

from quantref.checks import require_valid

logger = structlog.get_logger(__name__)

# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
DEFAULT_RISK_AVERSION: float = 1e-6
DEFAULT_CONFIDENCE: float = 0.95
MAX_BRACKET_EXPANSIONS: int = 60


class MeanVarianceObjectiveUtility:
    """Linear mean-variance objective E + λV, λ >= 0."""

    def __init__(self, risk_aversion: float = DEFAULT_RISK_AVERSION):
        self._risk_aversion = require_valid(risk_aversion, "risk_aversion")
        if self._risk_aversion < 0.0:
            raise ValueError(f"risk_aversion must be non-negative, got {risk_aversion}")

    @property
    def risk_aversion(self) -> float:
        return self._risk_aversion

    def value(self, mean: float, variance: float) -> float:
        return float(mean + self._risk_aversion * variance)

    def evaluate(self, distribution) -> float:
        """Objective of any object exposing ``mean`` and ``variance``."""
        return self.value(distribution.mean, distribution.variance)

    def __repr__(self) -> str:
        return f"MeanVarianceObjectiveUtility(risk_aversion={self._risk_aversion})"


def liquidation_value_at_risk(mean: float, variance: float, confidence: float = DEFAULT_CONFIDENCE) -> float:
    """
    Liquidation value-at-risk of a trading strategy.

    Parameters
    ----------
    mean : float
        Expected implementation shortfall.
    variance : float
        Shortfall variance.
    confidence : float
        Confidence level p, in (0, 1).

    Returns
    -------
    float
        E + z_p √V.
    """
    mean = require_valid(mean, "mean")
    variance = require_valid(variance, "variance")
    if variance < 0.0:
        raise ValueError(f"variance must be non-negative, got {variance}")
    if not 0.0 < confidence < 1.0:
        raise ValueError(f"confidence must lie in (0, 1), got {confidence}")

    return float(mean + stats.norm.ppf(confidence) * math.sqrt(variance))


class _UnattainableVariance(Exception):
    """Raised inside the risk-aversion search when a trial λ has no usable variance."""


def risk_aversion_for_target_variance(
    generator_factory: Callable[[float], object],
    target_variance: float,
    lower: float = 1e-12,
    upper: float = 1e-4,
) -> Optional[float]:
    """
    Risk aversion whose optimal trajectory has the target cost variance.

    ``generator_factory(λ)`` must return a trajectory generator whose
    ``generate()`` yields an efficient trajectory (or None). Variance decreases in λ; the
    bracket is widened geometrically until it straddles the target.

    Returns
    -------
    float or None
        λ, or None when the target is not attainable: the bracket never
        straddles it, a trial generation fails, or a trial optimum has zero
        variance.
    """
    target_variance = require_valid(target_variance, "target_variance")
    if target_variance <= 0.0:
        raise ValueError(f"target_variance must be positive, got {target_variance}")

    def gap(log_lambda: float) -> float:
        trajectory = generator_factory(math.exp(log_lambda)).generate()
        if trajectory is None:
            raise _UnattainableVariance(f"generation failed at risk aversion {math.exp(log_lambda):.6g}")
        variance = trajectory.transaction_cost_variance
        if not variance > 0.0:
            raise _UnattainableVariance(f"variance {variance} at risk aversion {math.exp(log_lambda):.6g}")
        return math.log(variance) - math.log(target_variance)

    try:
        low, high = math.log(lower), math.log(upper)
        low_gap, high_gap = gap(low), gap(high)
        expansions = 0
        while low_gap * high_gap > 0.0 and expansions < MAX_BRACKET_EXPANSIONS:
            if low_gap < 0.0:
                low -= 2.0
                low_gap = gap(low)
            else:
                high += 2.0
                high_gap = gap(high)
            expansions += 1

        if low_gap * high_gap > 0.0:
            logger.warning(
                "risk_aversion_bracket_failed",
                target_variance=target_variance,
                expansions=expansions,
            )
            return None

        log_lambda = optimize.brentq(gap, low, high, xtol=1e-12)
    except _UnattainableVariance as exc:
        logger.warning("risk_aversion_unattainable", target_variance=target_variance, reason=str(exc))
        return None

    risk_aversion = math.exp(log_lambda)
    logger.debug("risk_aversion_calibrated", target_variance=target_variance, risk_aversion=risk_aversion)
    return risk_aversion
