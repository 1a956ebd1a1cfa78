"""
ISDA SIMM Settings Module
=========================
Static parameter tables of the ISDA Standard Initial Margin Model used by
the delta aggregation:

    - Interest-rate concentration thresholds (SIMM 2.4)
    - Credit-qualifying buckets, risk weights and correlations (SIMM 2.1)
    - Credit-non-qualifying risk weights and correlations (SIMM 2.0)

Risk weights are in basis points per unit sensitivity; correlations are
fractions. Thresholds are in USD millions per basis point.
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union

from quantref.checks import is_valid


# ─────────────────────────────────────────────────────────────
# Labelled Correlation Matrix
# ─────────────────────────────────────────────────────────────

class LabelCorrelation:
    """
    Correlation matrix indexed by string labels.

    Raises
    ------
    ValueError
        If the matrix is not square, symmetric, unit-diagonal and bounded
        by one in absolute value, or the labels do not match its size.
    """

    def __init__(self, labels: Sequence[str], matrix):
        matrix = np.asarray(matrix, dtype=float)
        labels = [str(label) for label in labels]
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1] or matrix.shape[0] != len(labels):
            raise ValueError(f"Correlation matrix shape {matrix.shape} does not match {len(labels)} labels")
        if len(set(labels)) != len(labels):
            raise ValueError("Correlation labels must be unique")
        if not is_valid(matrix) or np.any(np.abs(matrix) > 1.0):
            raise ValueError("Correlations must be finite and within [-1, 1]")
        if not np.allclose(matrix, matrix.T) or not np.allclose(np.diag(matrix), 1.0):
            raise ValueError("Correlation matrix must be symmetric with unit diagonal")

        self._labels = labels
        self._index = {label: i for i, label in enumerate(labels)}
        self._matrix = matrix

    @property
    def label_list(self) -> List[str]:
        return list(self._labels)

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix.copy()

    def contains(self, label) -> bool:
        return str(label) in self._index

    def entry(self, first, second) -> float:
        try:
            return float(self._matrix[self._index[str(first)], self._index[str(second)]])
        except KeyError as exc:
            raise ValueError(f"Unknown correlation label {exc.args[0]!r}") from None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._matrix, index=self._labels, columns=self._labels)


# ─────────────────────────────────────────────────────────────
# Interest Rate Concentration Thresholds (SIMM 2.4)
# ─────────────────────────────────────────────────────────────

VOLATILITY_TYPE_HIGH = "HIGH"
VOLATILITY_TYPE_REGULAR = "REGULAR"
VOLATILITY_TYPE_LOW = "LOW"

TRADE_FREQUENCY_WELL_TRADED = "WELL_TRADED"
TRADE_FREQUENCY_LESS_WELL_TRADED = "LESS_WELL_TRADED"

OTHER_CURRENCIES = "Other"


@dataclass(frozen=True)
class CurrencyRiskGroup:
    volatility_type: str
    trade_frequency: str
    currencies: Tuple[str, ...]


@dataclass(frozen=True)
class DeltaVegaThreshold:
    delta: float
    vega: float

    def __post_init__(self):
        if not (is_valid(self.delta) and is_valid(self.vega)) or self.delta <= 0.0 or self.vega <= 0.0:
            raise ValueError(f"Thresholds must be positive, got delta={self.delta}, vega={self.vega}")


@dataclass(frozen=True)
class IRThreshold:
    currency_risk_group: CurrencyRiskGroup
    delta_vega: DeltaVegaThreshold


_IR_THRESHOLDS_24: Dict[int, IRThreshold] = {
    1: IRThreshold(
        CurrencyRiskGroup(VOLATILITY_TYPE_HIGH, TRADE_FREQUENCY_LESS_WELL_TRADED, (OTHER_CURRENCIES,)),
        DeltaVegaThreshold(22.0, 83.0),
    ),
    2: IRThreshold(
        CurrencyRiskGroup(VOLATILITY_TYPE_REGULAR, TRADE_FREQUENCY_WELL_TRADED, ("USD", "EUR", "GBP")),
        DeltaVegaThreshold(240.0, 2600.0),
    ),
    3: IRThreshold(
        CurrencyRiskGroup(
            VOLATILITY_TYPE_REGULAR,
            TRADE_FREQUENCY_LESS_WELL_TRADED,
            ("AUD", "CAD", "CHF", "DKK", "HKD", "KRW", "NOK", "NZD", "SEK", "SGD", "TWD"),
        ),
        DeltaVegaThreshold(44.0, 270.0),
    ),
    4: IRThreshold(
        CurrencyRiskGroup(VOLATILITY_TYPE_LOW, TRADE_FREQUENCY_WELL_TRADED, ("JPY",)),
        DeltaVegaThreshold(120.0, 980.0),
    ),
}

_CURRENCY_GROUP_24: Dict[str, int] = {
    currency: group
    for group, threshold in _IR_THRESHOLDS_24.items()
    for currency in threshold.currency_risk_group.currencies
    if currency != OTHER_CURRENCIES
}


class IRThresholdContainer24:
    """SIMM 2.4 interest-rate delta/vega concentration thresholds."""

    @staticmethod
    def index_set() -> Set[int]:
        return set(_IR_THRESHOLDS_24)

    @staticmethod
    def currency_set() -> Set[str]:
        return set(_CURRENCY_GROUP_24)

    @staticmethod
    def contains_threshold(key: Union[int, str]) -> bool:
        """True for a known group number or an explicitly listed currency."""
        if isinstance(key, str):
            return key.upper() in _CURRENCY_GROUP_24
        return key in _IR_THRESHOLDS_24

    @staticmethod
    def threshold(key: Union[int, str]) -> Optional[IRThreshold]:
        """
        Threshold by group number or by currency.

        Unknown currencies fall into the high-volatility group 1; unknown
        group numbers return None.
        """
        if isinstance(key, str):
            return _IR_THRESHOLDS_24[_CURRENCY_GROUP_24.get(key.upper(), 1)]
        return _IR_THRESHOLDS_24.get(key)

    @staticmethod
    def to_frame() -> pd.DataFrame:
        rows = []
        for group, threshold in sorted(_IR_THRESHOLDS_24.items()):
            risk_group = threshold.currency_risk_group
            rows.append(
                {
                    "group": group,
                    "volatility_type": risk_group.volatility_type,
                    "trade_frequency": risk_group.trade_frequency,
                    "currencies": ", ".join(risk_group.currencies),
                    "delta": threshold.delta_vega.delta,
                    "vega": threshold.delta_vega.vega,
                }
            )
        return pd.DataFrame(rows)


# ─────────────────────────────────────────────────────────────
# Credit Qualifying (SIMM 2.1)
# ─────────────────────────────────────────────────────────────

QUALITY_INVESTMENT_GRADE = "IG"
QUALITY_HIGH_YIELD = "HY/NR"
RESIDUAL_BUCKET = "residual"


@dataclass(frozen=True)
class CRBucket:
    number: int
    quality: str
    risk_weight: float
    sectors: Tuple[str, ...]


_SECTORS: Dict[int, Tuple[str, ...]] = {
    1: ("Sovereigns", "Central Banks"),
    2: ("Financials", "Government Backed Financials"),
    3: ("Basic Materials", "Energy", "Industrials"),
    4: ("Consumer",),
    5: ("Technology", "Telecommunications"),
    6: ("Health Care", "Utilities", "Local Government", "Government Backed Corporates"),
}

_CRQ_RISK_WEIGHTS_21: Dict[int, float] = {
    1: 69.0, 2: 107.0, 3: 72.0, 4: 55.0, 5: 48.0, 6: 41.0,
    7: 166.0, 8: 187.0, 9: 177.0, 10: 216.0, 11: 280.0, 12: 118.0,
}

_CRQ_BUCKETS_21: Dict[int, CRBucket] = {
    number: CRBucket(
        number,
        QUALITY_INVESTMENT_GRADE if number <= 6 else QUALITY_HIGH_YIELD,
        weight,
        _SECTORS[(number - 1) % 6 + 1],
    )
    for number, weight in _CRQ_RISK_WEIGHTS_21.items()
}


class CRQSystemics21:
    RESIDUAL_BUCKET_RISK_WEIGHT = 280.0
    VEGA_RISK_WEIGHT = 0.35
    BASE_CORRELATION_RISK_WEIGHT = 20.0
    BASE_CORRELATION_CORRELATION = 0.10


class CRQBucketCorrelation21:
    SAME_ISSUER_SENIORITY_NON_RESIDUAL = 0.96
    DIFFERENT_ISSUER_SENIORITY_NON_RESIDUAL = 0.39
    SAME_ISSUER_SENIORITY_RESIDUAL = 0.50
    DIFFERENT_ISSUER_SENIORITY_RESIDUAL = 0.50


_CRQ_CROSS_BUCKET_21 = [
    [100, 38, 38, 35, 37, 34, 42, 32, 34, 33, 34, 33],
    [38, 100, 48, 46, 48, 46, 39, 40, 41, 41, 43, 40],
    [38, 48, 100, 50, 51, 50, 40, 39, 45, 44, 47, 42],
    [35, 46, 50, 100, 50, 50, 37, 37, 41, 43, 45, 40],
    [37, 48, 51, 50, 100, 50, 39, 38, 43, 43, 46, 42],
    [34, 46, 50, 50, 50, 100, 37, 35, 39, 41, 44, 41],
    [42, 39, 40, 37, 39, 37, 100, 33, 37, 37, 35, 35],
    [32, 40, 39, 37, 38, 35, 33, 100, 36, 37, 37, 36],
    [34, 41, 45, 41, 43, 39, 37, 36, 100, 41, 40, 38],
    [33, 41, 44, 43, 43, 41, 37, 37, 41, 100, 41, 39],
    [34, 43, 47, 45, 46, 44, 35, 37, 40, 41, 100, 40],
    [33, 40, 42, 40, 42, 41, 35, 36, 38, 39, 40, 100],
]


class CRQSettingsContainer21:
    """SIMM 2.1 credit-qualifying buckets and cross-bucket correlation."""

    @staticmethod
    def bucket_set() -> Set[int]:
        return set(_CRQ_BUCKETS_21)

    @staticmethod
    def contains_bucket(number: int) -> bool:
        return number in _CRQ_BUCKETS_21

    @staticmethod
    def bucket(number: int) -> Optional[CRBucket]:
        return _CRQ_BUCKETS_21.get(number)

    @staticmethod
    def cross_bucket_correlation() -> LabelCorrelation:
        labels = [str(number) for number in sorted(_CRQ_BUCKETS_21)]
        return LabelCorrelation(labels, np.array(_CRQ_CROSS_BUCKET_21, dtype=float) / 100.0)

    @staticmethod
    def to_frame() -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "bucket": bucket.number,
                    "quality": bucket.quality,
                    "risk_weight": bucket.risk_weight,
                    "sectors": ", ".join(bucket.sectors),
                }
                for bucket in (_CRQ_BUCKETS_21[n] for n in sorted(_CRQ_BUCKETS_21))
            ]
        )


# ─────────────────────────────────────────────────────────────
# Credit Non-Qualifying (SIMM 2.0)
# ─────────────────────────────────────────────────────────────

class CRNQSystemics20:
    INVESTMENT_GRADE_RISK_WEIGHT = 280.0
    HIGH_YIELD_RISK_WEIGHT = 1300.0
    RESIDUAL_RISK_WEIGHT = 1300.0
    SAME_NAME_CORRELATION = 0.57
    DIFFERENT_NAME_CORRELATION = 0.20
    RESIDUAL_SAME_NAME_CORRELATION = 0.50
    RESIDUAL_DIFFERENT_NAME_CORRELATION = 0.50
    CROSS_BUCKET_CORRELATION = 0.21


@dataclass(frozen=True)
class BucketSensitivitySettings:
    """Risk weight and intra-bucket correlations of one credit bucket."""

    risk_weight: float
    same_name_correlation: float
    different_name_correlation: float

    def __post_init__(self):
        if not is_valid(self.risk_weight) or self.risk_weight < 0.0:
            raise ValueError(f"risk_weight must be non-negative, got {self.risk_weight}")
        for value in (self.same_name_correlation, self.different_name_correlation):
            if not is_valid(value) or abs(value) > 1.0:
                raise ValueError(f"Correlation must lie in [-1, 1], got {value}")


class RiskMeasureSensitivitySettingsCR:
    """
    Bucket settings plus cross-bucket correlation for a credit delta.

    Buckets are keyed by string ("1", "2", ... or "residual").
    """

    def __init__(
        self,
        bucket_settings: Dict[str, BucketSensitivitySettings],
        cross_bucket_correlation: LabelCorrelation,
    ):
        if not bucket_settings or cross_bucket_correlation is None:
            raise ValueError("bucket_settings and cross_bucket_correlation are required")
        self._bucket_settings = {str(key): value for key, value in bucket_settings.items()}
        self._cross_bucket_correlation = cross_bucket_correlation

    @property
    def bucket_settings(self) -> Dict[str, BucketSensitivitySettings]:
        return dict(self._bucket_settings)

    @property
    def cross_bucket_correlation(self) -> LabelCorrelation:
        return self._cross_bucket_correlation

    def settings(self, bucket: str) -> BucketSensitivitySettings:
        try:
            return self._bucket_settings[str(bucket)]
        except KeyError:
            raise ValueError(f"No settings for credit bucket {bucket!r}") from None

    @classmethod
    def isda_crnq_delta_20(cls) -> "RiskMeasureSensitivitySettingsCR":
        """Credit-non-qualifying delta: bucket 1 investment grade, bucket 2 high yield."""
        systemics = CRNQSystemics20
        bucket_settings = {
            "1": BucketSensitivitySettings(
                systemics.INVESTMENT_GRADE_RISK_WEIGHT,
                systemics.SAME_NAME_CORRELATION,
                systemics.DIFFERENT_NAME_CORRELATION,
            ),
            "2": BucketSensitivitySettings(
                systemics.HIGH_YIELD_RISK_WEIGHT,
                systemics.SAME_NAME_CORRELATION,
                systemics.DIFFERENT_NAME_CORRELATION,
            ),
            RESIDUAL_BUCKET: BucketSensitivitySettings(
                systemics.RESIDUAL_RISK_WEIGHT,
                systemics.RESIDUAL_SAME_NAME_CORRELATION,
                systemics.RESIDUAL_DIFFERENT_NAME_CORRELATION,
            ),
        }
        rho = systemics.CROSS_BUCKET_CORRELATION
        cross = LabelCorrelation(["1", "2"], [[1.0, rho], [rho, 1.0]])
        return cls(bucket_settings, cross)

    @classmethod
    def isda_crq_delta_21(cls) -> "RiskMeasureSensitivitySettingsCR":
        """Credit-qualifying delta across the twelve SIMM 2.1 buckets."""
        bucket_settings = {
            str(number): BucketSensitivitySettings(
                bucket.risk_weight,
                CRQBucketCorrelation21.SAME_ISSUER_SENIORITY_NON_RESIDUAL,
                CRQBucketCorrelation21.DIFFERENT_ISSUER_SENIORITY_NON_RESIDUAL,
            )
            for number, bucket in _CRQ_BUCKETS_21.items()
        }
        bucket_settings[RESIDUAL_BUCKET] = BucketSensitivitySettings(
            CRQSystemics21.RESIDUAL_BUCKET_RISK_WEIGHT,
            CRQBucketCorrelation21.SAME_ISSUER_SENIORITY_RESIDUAL,
            CRQBucketCorrelation21.DIFFERENT_ISSUER_SENIORITY_RESIDUAL,
        )
        return cls(bucket_settings, CRQSettingsContainer21.cross_bucket_correlation())
