"""
Control Node Sensitivity Module
===============================
Value, gradient and Hessian of the mean-variance execution objective with
respect to the interior holdings nodes of a discrete trajectory.

Mathematical Foundation (linear impact, even grid τ):
    U = ½γX² + ε Σ|n_k| + (η̃/τ) Σ n_k² - ατ Σ x_k + λσ²τ Σ x_k²
    ∂U/∂x_k = (2η̃/τ)(2x_k - x_{k-1} - x_{k+1})
              + ε (sgn n_{k+1} - sgn n_k) + 2λσ²τ x_k - ατ
    ∂²U/∂x_k² = 4η̃/τ + 2λσ²τ,   ∂²U/∂x_k∂x_{k±1} = -2η̃/τ
The gradient vanishes on the Almgren-Chriss optimum.
"""

import warnings
import numpy as np
import structlog
from typing import Optional

from quantref.checks import is_valid, require_valid
from quantref.dynamics import ArithmeticPriceEvolutionParameters
from quantref.impact import TransactionFunctionLinear
from quantref.risk import MeanVarianceObjectiveUtility
from quantref.strategy import DiscreteTradingTrajectory

logger = structlog.get_logger(__name__)


class ControlNodesGreek:
    """
    Objective value with its gradient and Hessian over control nodes.

    Raises
    ------
    ValueError
        On a non-finite value, an empty or non-finite jacobian, or a
        hessian that is not square of the jacobian's size.
    """

    def __init__(self, value: float, jacobian, hessian):
        self._value = require_valid(value, "value")

        jacobian = np.asarray(jacobian, dtype=float)
        if jacobian.ndim != 1 or jacobian.size == 0 or not is_valid(jacobian):
            raise ValueError("jacobian must be a non-empty finite vector")

        hessian = np.asarray(hessian, dtype=float)
        if hessian.shape != (jacobian.size, jacobian.size) or not is_valid(hessian):
            raise ValueError(
                f"hessian must be a finite {jacobian.size}x{jacobian.size} matrix, got shape {hessian.shape}"
            )

        self._jacobian = jacobian
        self._hessian = hessian

    @property
    def value(self) -> float:
        return self._value

    @property
    def jacobian(self) -> np.ndarray:
        return self._jacobian.copy()

    @property
    def hessian(self) -> np.ndarray:
        return self._hessian.copy()


def control_nodes_greeks(
    trajectory: DiscreteTradingTrajectory,
    parameters: ArithmeticPriceEvolutionParameters,
    utility: MeanVarianceObjectiveUtility,
) -> Optional[ControlNodesGreek]:
    """
    Greeks of E + λV with respect to holdings x_1 .. x_{N-1}.

    Parameters
    ----------
    trajectory : DiscreteTradingTrajectory
        Trajectory with at least two intervals.
    parameters : ArithmeticPriceEvolutionParameters
        Linear permanent and temporary impact required.
    utility : MeanVarianceObjectiveUtility
        Supplies λ.

    Returns
    -------
    ControlNodesGreek or None
        None (with a warning logged) when impact is not linear.
    """
    if trajectory is None or parameters is None or utility is None:
        raise ValueError("trajectory, parameters and utility are required")
    if trajectory.num_interval < 2:
        raise ValueError("Control node greeks need at least two intervals")

    permanent = parameters.permanent_impact_function()
    temporary = parameters.temporary_impact_function()
    if not isinstance(permanent, TransactionFunctionLinear) or not isinstance(
        temporary, TransactionFunctionLinear
    ):
        logger.warning("control_node_greeks_need_linear_impact", temporary=type(temporary).__name__)
        return None

    if not trajectory.is_evenly_spaced():
        warnings.warn("Control node greeks assume an even grid; using the mean interval", UserWarning)

    holdings = trajectory.holdings
    tau = trajectory.execution_time() / trajectory.num_interval
    gamma, epsilon, eta = permanent.slope, temporary.offset, temporary.slope
    eta_tilda = eta - 0.5 * gamma * tau
    settings = parameters.settings
    sigma = settings.epoch_volatility()
    alpha = settings.drift
    risk_aversion = utility.risk_aversion

    sold = holdings[:-1] - holdings[1:]
    expectation = (
        0.5 * gamma * holdings[0] ** 2
        + epsilon * np.sum(np.abs(sold))
        + eta_tilda / tau * np.sum(sold ** 2)
        - alpha * tau * np.sum(holdings[1:])
    )
    variance = sigma ** 2 * tau * np.sum(holdings[1:] ** 2)
    value = utility.value(expectation, variance)

    interior = holdings[1:-1]
    jacobian = (
        2.0 * eta_tilda / tau * (2.0 * interior - holdings[:-2] - holdings[2:])
        + epsilon * (np.sign(sold[1:]) - np.sign(sold[:-1]))
        + 2.0 * risk_aversion * sigma ** 2 * tau * interior
        - alpha * tau
    )

    size = interior.size
    hessian = (
        np.eye(size) * (4.0 * eta_tilda / tau + 2.0 * risk_aversion * sigma ** 2 * tau)
        - 2.0 * eta_tilda / tau * (np.eye(size, k=1) + np.eye(size, k=-1))
    )

    logger.debug("control_node_greeks", nodes=size, value=value, gradient_norm=float(np.linalg.norm(jacobian)))
    return ControlNodesGreek(value, jacobian, hessian)
