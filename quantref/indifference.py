"""
Indifference Pricing Module
===========================
Reservation (utility indifference) price of a contingent claim for an
agent holding riskless and risky units.

Mathematical Foundation:
    Terminal wealth without the claim:
        W = B_T b(x) + S_T x
    with the claim (q units, payoff H):
        W_q = W + q H(S_T)
    Expected utilities are integrated against the terminal law of S_T with
    the composite Boole rule over its numerical support. The indifference
    price p solves
        E[U(W_q - q p B_T / B_0)] = E[U(W)]
"""

import math
import numpy as np
import structlog
from scipy import optimize
from typing import Callable, Tuple

from quantref.checks import require_positive, require_valid

logger = structlog.get_logger(__name__)

# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
DEFAULT_BOOLE_INTERVALS: int = 400
SUPPORT_TAIL_PROBABILITY: float = 1e-8
MAX_BRACKET_EXPANSIONS: int = 50


def boole_integrate(integrand: Callable[[np.ndarray], np.ndarray], left: float, right: float,
                    intervals: int = DEFAULT_BOOLE_INTERVALS) -> float:
    """
    Composite Boole rule on [left, right].

    ``intervals`` is rounded up to a multiple of four; weights per panel
    are 2h/45 · (7, 32, 12, 32, 7).
    """
    if right <= left:
        raise ValueError(f"Integration bounds must increase, got [{left}, {right}]")
    intervals = max(4, int(math.ceil(intervals / 4.0)) * 4)
    nodes = np.linspace(left, right, intervals + 1)
    step = (right - left) / intervals

    weights = np.empty(intervals + 1)
    weights[0::4] = 14.0
    weights[1::2] = 32.0
    weights[2::4] = 12.0
    weights[0] = weights[-1] = 7.0

    values = np.asarray(integrand(nodes), dtype=float)
    return float(2.0 * step / 45.0 * np.sum(weights * values))


def distribution_support(distribution) -> Tuple[float, float]:
    """Numerical support of a frozen ``scipy.stats`` distribution."""
    return (
        float(distribution.ppf(SUPPORT_TAIL_PROBABILITY)),
        float(distribution.ppf(1.0 - SUPPORT_TAIL_PROBABILITY)),
    )


class ReservationPricer:
    """
    Private valuation objective and claim payoff.

    Parameters
    ----------
    utility : callable
        Wealth -> utility; vectorised over numpy arrays.
    payoff : callable
        Terminal underlier price -> claim payoff; vectorised.
    """

    def __init__(self, utility: Callable, payoff: Callable):
        if utility is None or payoff is None:
            raise ValueError("utility and payoff are required")
        self._utility = utility
        self._payoff = payoff

    @property
    def utility(self) -> Callable:
        return self._utility

    @property
    def payoff(self) -> Callable:
        return self._payoff

    def claims_unadjusted_utility_value(
        self,
        riskless_units_function: Callable[[float], float],
        terminal_riskless_price: float,
        terminal_underlier_price,
        underlier_units: float,
    ):
        wealth = (
            terminal_riskless_price * riskless_units_function(underlier_units)
            + terminal_underlier_price * underlier_units
        )
        return self._utility(wealth)

    def claims_adjusted_utility_value(
        self,
        riskless_units_function: Callable[[float], float],
        terminal_riskless_price: float,
        terminal_underlier_price,
        underlier_units: float,
        claim_units: float,
    ):
        wealth = (
            terminal_riskless_price * riskless_units_function(underlier_units)
            + terminal_underlier_price * underlier_units
            + claim_units * self._payoff(terminal_underlier_price)
        )
        return self._utility(wealth)

    def _expectation(self, integrand: Callable[[np.ndarray], np.ndarray], distribution) -> float:
        if distribution is None:
            raise ValueError("terminal underlier distribution must not be None")
        left, right = distribution_support(distribution)
        return boole_integrate(lambda s: integrand(s) * distribution.pdf(s), left, right)

    def indifference_utility_value(
        self,
        riskless_units_function: Callable[[float], float],
        terminal_underlier_distribution,
        terminal_riskless_price: float,
        underlier_units: float,
    ) -> float:
        """Expected utility without the claim."""
        if riskless_units_function is None:
            raise ValueError("riskless_units_function must not be None")
        terminal_riskless_price = require_valid(terminal_riskless_price, "terminal_riskless_price")
        underlier_units = require_valid(underlier_units, "underlier_units")
        return self._expectation(
            lambda s: self.claims_unadjusted_utility_value(
                riskless_units_function, terminal_riskless_price, s, underlier_units
            ),
            terminal_underlier_distribution,
        )

    def claims_adjusted_expected_utility(
        self,
        riskless_units_function: Callable[[float], float],
        terminal_underlier_distribution,
        terminal_riskless_price: float,
        underlier_units: float,
        claim_units: float,
    ) -> float:
        """Expected utility holding ``claim_units`` of the claim."""
        if riskless_units_function is None:
            raise ValueError("riskless_units_function must not be None")
        terminal_riskless_price = require_valid(terminal_riskless_price, "terminal_riskless_price")
        underlier_units = require_valid(underlier_units, "underlier_units")
        claim_units = require_valid(claim_units, "claim_units")
        return self._expectation(
            lambda s: self.claims_adjusted_utility_value(
                riskless_units_function, terminal_riskless_price, s, underlier_units, claim_units
            ),
            terminal_underlier_distribution,
        )

    def claims_adjusted_price(
        self,
        optimal_utility_expectation_function: Callable[[float], float],
        initial_price: float,
    ) -> float:
        """Root of the claims-adjusted utility gap, from ``initial_price``."""
        if optimal_utility_expectation_function is None:
            raise ValueError("optimal_utility_expectation_function must not be None")
        initial_price = require_valid(initial_price, "initial_price")
        return float(optimize.newton(optimal_utility_expectation_function, initial_price))

    def indifference_price(
        self,
        riskless_units: float,
        terminal_underlier_distribution,
        terminal_riskless_price: float,
        underlier_units: float,
        claim_units: float = 1.0,
        initial_riskless_price: float = 1.0,
    ) -> float:
        """
        Price per claim unit leaving expected utility unchanged.

        Parameters
        ----------
        riskless_units : float
            Riskless units held before buying the claim.
        terminal_underlier_distribution : frozen scipy.stats distribution
            Law of S_T.
        terminal_riskless_price : float
            B_T.
        underlier_units : float
            Risky units held.
        claim_units : float
            Claim units bought, non-zero.
        initial_riskless_price : float
            B_0, used to fund the purchase.

        Returns
        -------
        float
            Indifference price p, or nan when no price within the
            expanded bracket equates the expected utilities.
        """
        claim_units = require_valid(claim_units, "claim_units")
        if claim_units == 0.0:
            raise ValueError("claim_units must be non-zero")
        initial_riskless_price = require_valid(initial_riskless_price, "initial_riskless_price")
        terminal_riskless_price = require_positive(terminal_riskless_price, "terminal_riskless_price")

        baseline = self.indifference_utility_value(
            lambda _: riskless_units, terminal_underlier_distribution, terminal_riskless_price, underlier_units
        )

        def gap(price: float) -> float:
            funded_units = riskless_units - claim_units * price / initial_riskless_price
            return self.claims_adjusted_expected_utility(
                lambda _: funded_units,
                terminal_underlier_distribution,
                terminal_riskless_price,
                underlier_units,
                claim_units,
            ) - baseline

        left, right = distribution_support(terminal_underlier_distribution)
        payoffs = np.asarray(self._payoff(np.linspace(left, right, 257)), dtype=float)
        scale = initial_riskless_price / terminal_riskless_price
        low = float(np.min(payoffs)) * scale
        high = float(np.max(payoffs)) * scale
        width = max(high - low, 1.0)
        low, high = low - width, high + width

        expansions = 0
        gap_low, gap_high = gap(low), gap(high)
        while gap_low * gap_high > 0.0 and expansions < MAX_BRACKET_EXPANSIONS:
            low, high = low - width, high + width
            width *= 2.0
            expansions += 1
            gap_low, gap_high = gap(low), gap(high)

        if not gap_low * gap_high <= 0.0:
            logger.warning(
                "indifference_price_unbracketed",
                low=low,
                high=high,
                gap_low=gap_low,
                gap_high=gap_high,
                claim_units=claim_units,
            )
            return float("nan")

        price = optimize.brentq(gap, low, high, xtol=1e-12)
        logger.debug("indifference_price_solved", price=price, claim_units=claim_units)
        return float(price)
