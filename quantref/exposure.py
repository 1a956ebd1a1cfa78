"""
Dense Exposure Module
=====================
Pykhtin (2009) Brownian-bridge interpolation of simulated exposures
between sparse pillar dates.

Mathematical Foundation:
    For t_L < t < t_R with w = (t - t_L) / (t_R - t_L):
        E(t) = E_L + w (E_R - E_L) + σ √((t - t_L)(t_R - t) / (t_R - t_L)) Z_t
    with Z_t the standard normal wander at t and times in years
    (day counts over 365.25). Pillar exposures are reproduced exactly.
"""

import datetime
import math
import numpy as np
import pandas as pd
import structlog
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Union

from quantref.checks import is_valid, require_valid

logger = structlog.get_logger(__name__)

DAYS_PER_YEAR: float = 365.25

DateLike = Union[int, datetime.date]
LocalVolatility = Union[float, Callable[[float], float]]


def _day_number(date: DateLike) -> int:
    if isinstance(date, datetime.date):
        return date.toordinal()
    return int(date)


@dataclass(frozen=True)
class PillarVertex:
    """Exposure simulated at a pillar date."""

    date: DateLike
    exposure: float

    def __post_init__(self):
        require_valid(self.exposure, "exposure")

    @property
    def day(self) -> int:
        return _day_number(self.date)


class BrownianBridgeSegment:
    """
    Bridge between two consecutive pillars.

    ``local_volatility`` is a level, or a function of the left pillar
    exposure.
    """

    def __init__(self, left: PillarVertex, right: PillarVertex, local_volatility: LocalVolatility):
        if left is None or right is None or local_volatility is None:
            raise ValueError("left, right and local_volatility are required")
        if left.day >= right.day:
            raise ValueError(f"Pillar dates must increase, got {left.date} and {right.date}")
        self._left = left
        self._right = right
        self._local_volatility = local_volatility

    @property
    def left(self) -> PillarVertex:
        return self._left

    @property
    def right(self) -> PillarVertex:
        return self._right

    def volatility(self) -> float:
        if callable(self._local_volatility):
            value = self._local_volatility(self._left.exposure)
        else:
            value = self._local_volatility
        value = require_valid(value, "local_volatility")
        if value < 0.0:
            raise ValueError(f"local volatility must be non-negative, got {value}")
        return value

    def interpolate(self, date: DateLike, wander: float) -> float:
        """Bridge exposure at ``date`` for the standard normal draw ``wander``."""
        day = _day_number(date)
        left_day, right_day = self._left.day, self._right.day
        if not left_day <= day <= right_day:
            raise ValueError(f"Date {date} outside segment [{self._left.date}, {self._right.date}]")
        wander = require_valid(wander, "wander")

        weight = (day - left_day) / (right_day - left_day)
        bridge_variance = (day - left_day) * (right_day - day) / (right_day - left_day) / DAYS_PER_YEAR
        return (
            self._left.exposure
            + weight * (self._right.exposure - self._left.exposure)
            + self.volatility() * math.sqrt(bridge_variance) * wander
        )

    def update_dense_exposure(self, dense: Dict[DateLike, float], wander: Mapping[DateLike, float]) -> None:
        """Write the left pillar and bridged interior dates into ``dense``."""
        dense[self._left.date] = self._left.exposure
        left_day, right_day = self._left.day, self._right.day
        for date, draw in wander.items():
            if left_day < _day_number(date) < right_day:
                dense[date] = self.interpolate(date, draw)
        dense[self._right.date] = self._right.exposure


class BrownianBridgePath:
    """
    Sparse pillar exposures with per-segment local volatilities.

    Parameters
    ----------
    sparse_vertex_exposures : mapping
        Pillar date -> exposure.
    local_volatilities : mapping
        Right pillar date of each segment -> local volatility.
    """

    def __init__(
        self,
        sparse_vertex_exposures: Mapping[DateLike, float],
        local_volatilities: Mapping[DateLike, LocalVolatility],
    ):
        if not sparse_vertex_exposures or local_volatilities is None:
            raise ValueError("sparse_vertex_exposures and local_volatilities are required")
        if not is_valid(np.array(list(sparse_vertex_exposures.values()), dtype=float)):
            raise ValueError("Pillar exposures must be finite")

        self._pillars = sorted(
            (PillarVertex(date, float(exposure)) for date, exposure in sparse_vertex_exposures.items()),
            key=lambda vertex: vertex.day,
        )
        for right in self._pillars[1:]:
            if right.date not in local_volatilities:
                raise ValueError(f"No local volatility for segment ending {right.date}")
        self._local_volatilities = dict(local_volatilities)

    @property
    def pillars(self):
        return list(self._pillars)

    def segments(self):
        return [
            BrownianBridgeSegment(left, right, self._local_volatilities[right.date])
            for left, right in zip(self._pillars[:-1], self._pillars[1:])
        ]

    def dense_exposure(self, wander: Mapping[DateLike, float]) -> Dict[DateLike, float]:
        """
        Dense exposure path over the pillars and every wander date inside.

        Returns
        -------
        dict
            Date -> exposure, ordered by date.
        """
        if wander is None:
            raise ValueError("wander must not be None")
        dense: Dict[DateLike, float] = {}
        if len(self._pillars) == 1:
            dense[self._pillars[0].date] = self._pillars[0].exposure
        for segment in self.segments():
            segment.update_dense_exposure(dense, wander)
        ordered = dict(sorted(dense.items(), key=lambda item: _day_number(item[0])))
        logger.debug("dense_exposure_built", pillars=len(self._pillars), points=len(ordered))
        return ordered

    def dense_exposure_frame(self, wander: Mapping[DateLike, float]) -> pd.DataFrame:
        dense = self.dense_exposure(wander)
        pillar_dates = {vertex.date for vertex in self._pillars}
        return pd.DataFrame(
            {
                "date": list(dense.keys()),
                "exposure": list(dense.values()),
                "is_pillar": [date in pillar_dates for date in dense],
            }
        )
