"""
Trading Strategy Module
=======================
Order specifications, execution-time grids and discrete holdings
trajectories.

A trajectory over nodes t_0 < t_1 < ... < t_N carries holdings x_j at every
node and a trade list n_k = x_{k+1} - x_k per interval (negative for a sell
program).
"""

import warnings
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Optional, Sequence

from quantref.checks import is_valid, require_valid

# Relative tolerance on interval lengths before a grid is reported as uneven
EVEN_SPACING_TOLERANCE: float = 1e-8


@dataclass(frozen=True)
class OrderSpecification:
    """Order size (shares held at t = 0) and maximum execution time."""

    size: float
    max_execution_time: float

    def __post_init__(self):
        require_valid(self.size, "size")
        time = require_valid(self.max_execution_time, "max_execution_time")
        if time <= 0.0:
            raise ValueError(f"max_execution_time must be positive, got {time}")


def _as_nodes(execution_time_nodes) -> np.ndarray:
    nodes = np.asarray(execution_time_nodes, dtype=float)
    if nodes.ndim != 1 or nodes.size < 2:
        raise ValueError("Execution time nodes need at least two entries")
    if not is_valid(nodes):
        raise ValueError("Execution time nodes must be finite")
    if np.any(np.diff(nodes) <= 0.0):
        raise ValueError("Execution time nodes must be strictly increasing")
    return nodes


class DiscreteTradingTrajectoryControl:
    """Execution time grid for an order."""

    def __init__(self, execution_time_nodes: Sequence[float], order: Optional[OrderSpecification] = None):
        self._nodes = _as_nodes(execution_time_nodes)
        self._order = order

    @classmethod
    def fixed_interval(cls, order: OrderSpecification, num_interval: int) -> "DiscreteTradingTrajectoryControl":
        """Evenly spaced grid of ``num_interval`` intervals over [0, T]."""
        if order is None:
            raise ValueError("order must not be None")
        if num_interval is None or int(num_interval) < 1:
            raise ValueError(f"num_interval must be >= 1, got {num_interval}")
        nodes = np.linspace(0.0, order.max_execution_time, int(num_interval) + 1)
        return cls(nodes, order)

    @property
    def execution_time_nodes(self) -> np.ndarray:
        return self._nodes.copy()

    @property
    def order(self) -> Optional[OrderSpecification]:
        return self._order

    @property
    def num_interval(self) -> int:
        return self._nodes.size - 1

    def execution_time(self) -> float:
        return float(self._nodes[-1] - self._nodes[0])

    def interval_lengths(self) -> np.ndarray:
        return np.diff(self._nodes)


class DiscreteTradingTrajectory:
    """
    Holdings and trades along a discrete execution grid.

    Parameters
    ----------
    execution_time_nodes : array-like
        Strictly increasing time nodes t_0 .. t_N.
    holdings : array-like
        Holdings at every node (length N + 1).
    trade_list : array-like
        Trades per interval (length N).

    Raises
    ------
    ValueError
        On non-finite arrays or mismatched lengths.
    """

    def __init__(self, execution_time_nodes, holdings, trade_list):
        self._nodes = _as_nodes(execution_time_nodes)
        self._holdings = np.asarray(holdings, dtype=float)
        self._trade_list = np.asarray(trade_list, dtype=float)

        if not (is_valid(self._holdings) and is_valid(self._trade_list)):
            raise ValueError("Holdings and trade list must be finite")
        if self._holdings.shape != self._nodes.shape:
            raise ValueError(
                f"Holdings length {self._holdings.size} != node count {self._nodes.size}"
            )
        if self._trade_list.shape != (self._nodes.size - 1,):
            raise ValueError(
                f"Trade list length {self._trade_list.size} != interval count {self._nodes.size - 1}"
            )

    @property
    def execution_time_nodes(self) -> np.ndarray:
        return self._nodes.copy()

    @property
    def holdings(self) -> np.ndarray:
        return self._holdings.copy()

    @property
    def trade_list(self) -> np.ndarray:
        return self._trade_list.copy()

    @property
    def num_interval(self) -> int:
        return self._trade_list.size

    def execution_time(self) -> float:
        return float(self._nodes[-1] - self._nodes[0])

    def interval_lengths(self) -> np.ndarray:
        return np.diff(self._nodes)

    def trade_rate(self) -> np.ndarray:
        """Signed trading rate n_k / τ_k per interval."""
        return self._trade_list / self.interval_lengths()

    def instantaneous_trade_rate(self) -> np.ndarray:
        """Absolute trading rate |n_k| / τ_k per interval."""
        return np.abs(self.trade_rate())

    def is_evenly_spaced(self, tolerance: float = EVEN_SPACING_TOLERANCE) -> bool:
        lengths = self.interval_lengths()
        return bool(np.all(np.abs(lengths - lengths[0]) <= tolerance * lengths[0]))

    def to_frame(self) -> pd.DataFrame:
        """Node-indexed table of holdings and the trade out of each node."""
        trades = np.append(self._trade_list, np.nan)
        rates = np.append(self.trade_rate(), np.nan)
        return pd.DataFrame(
            {
                "time": self._nodes,
                "holdings": self._holdings,
                "trade": trades,
                "trade_rate": rates,
            }
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(T={self.execution_time():.4g}, "
            f"N={self.num_interval}, X={self._holdings[0]:.6g})"
        )


def trajectory_from_holdings(execution_time_nodes, holdings) -> DiscreteTradingTrajectory:
    """Build a trajectory whose trade list is the first difference of holdings."""
    nodes = _as_nodes(execution_time_nodes)
    holdings = require_valid(np.asarray(holdings, dtype=float), "holdings")
    trajectory = DiscreteTradingTrajectory(nodes, holdings, np.diff(holdings))

    if not trajectory.is_evenly_spaced():
        warnings.warn(
            "Execution time nodes are not evenly spaced; closed-form "
            "interval formulas assume a uniform grid",
            UserWarning,
        )
    return trajectory
