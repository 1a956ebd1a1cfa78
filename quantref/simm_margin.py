"""
SIMM Credit Delta Margin Module
===============================
Linear aggregation of credit delta sensitivities into the SIMM
sensitivity-based-approach (SBA) margin.

Mathematical Foundation:
    Weighted sensitivity    WS_k = RW_b · s_k
    Bucket margin           K_b = √(Σ_k Σ_l ρ_kl WS_k WS_l)
    Bounded sum             S_b = max(min(Σ_k WS_k, K_b), -K_b)
    Core variance           Σ_b K_b² + Σ_{b≠c} γ_bc S_b S_c
    SBA                     √core + √residual

Within a bucket, ρ_kl is 1 for the same issuer and tenor, the same-name
correlation for the same issuer at different tenors, and the
different-name correlation across issuers.
"""

import math
import numpy as np
import pandas as pd
import structlog
from typing import Dict, List, Tuple

from quantref.checks import is_valid
from quantref.simm_settings import (
    RESIDUAL_BUCKET,
    BucketSensitivitySettings,
    RiskMeasureSensitivitySettingsCR,
)

logger = structlog.get_logger(__name__)


class RiskFactorTenorSensitivity:
    """Delta sensitivities of one risk factor, by tenor."""

    def __init__(self, sensitivity_map: Dict[str, float]):
        if not sensitivity_map:
            raise ValueError("sensitivity_map must not be empty")
        for tenor, delta in sensitivity_map.items():
            if not is_valid(delta):
                raise ValueError(f"Sensitivity at tenor {tenor!r} must be finite, got {delta}")
        self._sensitivity_map = {str(tenor): float(delta) for tenor, delta in sensitivity_map.items()}

    @property
    def sensitivity_map(self) -> Dict[str, float]:
        return dict(self._sensitivity_map)

    def cumulative(self) -> float:
        return float(sum(self._sensitivity_map.values()))


class SensitivityAggregateCR:
    """Weighted sensitivities and margin of one credit bucket."""

    def __init__(
        self,
        weighted_sensitivities: Dict[str, Dict[str, float]],
        component_margin_covariance_map: Dict[str, float],
    ):
        self._weighted_sensitivities = weighted_sensitivities
        self._component_margin_covariance_map = component_margin_covariance_map

    @property
    def weighted_sensitivities(self) -> Dict[str, Dict[str, float]]:
        return {component: dict(tenors) for component, tenors in self._weighted_sensitivities.items()}

    @property
    def component_margin_covariance_map(self) -> Dict[str, float]:
        """Covariance contributions keyed ``"<component>_<component>"``."""
        return dict(self._component_margin_covariance_map)

    def cumulative_margin_covariance(self) -> float:
        return float(sum(self._component_margin_covariance_map.values()))

    def margin(self) -> float:
        """K_b, floored at zero variance."""
        return math.sqrt(max(self.cumulative_margin_covariance(), 0.0))

    def cumulative_weighted_sensitivity(self) -> float:
        return float(sum(sum(tenors.values()) for tenors in self._weighted_sensitivities.values()))

    def bounded_weighted_sensitivity(self) -> float:
        """S_b = Σ WS clamped to [-K_b, K_b]."""
        margin = self.margin()
        return float(min(max(self.cumulative_weighted_sensitivity(), -margin), margin))


class BucketSensitivityCR:
    """Per-component tenor sensitivities of one credit bucket."""

    def __init__(self, component_sensitivity_map: Dict[str, RiskFactorTenorSensitivity]):
        if not component_sensitivity_map:
            raise ValueError("component_sensitivity_map must not be empty")
        if any(value is None for value in component_sensitivity_map.values()):
            raise ValueError("Component sensitivities must not be None")
        self._component_sensitivity_map = dict(component_sensitivity_map)

    @property
    def component_sensitivity_map(self) -> Dict[str, RiskFactorTenorSensitivity]:
        return dict(self._component_sensitivity_map)

    def _weighted_entries(self, settings: BucketSensitivitySettings) -> List[Tuple[str, str, float]]:
        return [
            (component, tenor, settings.risk_weight * delta)
            for component, sensitivity in self._component_sensitivity_map.items()
            for tenor, delta in sensitivity.sensitivity_map.items()
        ]

    def aggregate(self, settings: BucketSensitivitySettings) -> SensitivityAggregateCR:
        """Weight the sensitivities and build the component covariance map."""
        if settings is None:
            raise ValueError("settings must not be None")

        entries = self._weighted_entries(settings)
        weighted: Dict[str, Dict[str, float]] = {}
        for component, tenor, value in entries:
            weighted.setdefault(component, {})[tenor] = value

        covariance: Dict[str, float] = {}
        for first_component, first_tenor, first_value in entries:
            for second_component, second_tenor, second_value in entries:
                if first_component == second_component:
                    rho = 1.0 if first_tenor == second_tenor else settings.same_name_correlation
                else:
                    rho = settings.different_name_correlation
                key = f"{first_component}_{second_component}"
                covariance[key] = covariance.get(key, 0.0) + rho * first_value * second_value

        return SensitivityAggregateCR(weighted, covariance)


class RiskMeasureAggregateCR:
    """Bucket aggregates with the core and residual SBA variances."""

    def __init__(
        self,
        bucket_aggregate_map: Dict[str, SensitivityAggregateCR],
        core_sba_variance: float,
        residual_sba_variance: float,
    ):
        self._bucket_aggregate_map = bucket_aggregate_map
        self._core_sba_variance = float(core_sba_variance)
        self._residual_sba_variance = float(residual_sba_variance)

    @property
    def bucket_aggregate_map(self) -> Dict[str, SensitivityAggregateCR]:
        return dict(self._bucket_aggregate_map)

    @property
    def core_sba_variance(self) -> float:
        return self._core_sba_variance

    @property
    def residual_sba_variance(self) -> float:
        return self._residual_sba_variance

    def sba(self) -> float:
        return math.sqrt(max(self._core_sba_variance, 0.0)) + math.sqrt(max(self._residual_sba_variance, 0.0))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "bucket": bucket,
                    "weighted_sensitivity": aggregate.cumulative_weighted_sensitivity(),
                    "bounded_weighted_sensitivity": aggregate.bounded_weighted_sensitivity(),
                    "margin": aggregate.margin(),
                }
                for bucket, aggregate in self._bucket_aggregate_map.items()
            ]
        )


class RiskMeasureSensitivityCR:
    """Credit delta sensitivities across buckets."""

    def __init__(self, bucket_sensitivity_map: Dict[str, BucketSensitivityCR]):
        if not bucket_sensitivity_map:
            raise ValueError("bucket_sensitivity_map must not be empty")
        self._bucket_sensitivity_map = {str(key): value for key, value in bucket_sensitivity_map.items()}

    @property
    def bucket_sensitivity_map(self) -> Dict[str, BucketSensitivityCR]:
        return dict(self._bucket_sensitivity_map)

    def linear_aggregate(self, settings: RiskMeasureSensitivitySettingsCR) -> RiskMeasureAggregateCR:
        """
        Aggregate every bucket and combine them into the SBA variances.

        Parameters
        ----------
        settings : RiskMeasureSensitivitySettingsCR
            Risk weights, intra- and cross-bucket correlations.

        Returns
        -------
        RiskMeasureAggregateCR
            Bucket aggregates with core and residual variances.
        """
        if settings is None:
            raise ValueError("settings must not be None")

        aggregates = {
            bucket: sensitivity.aggregate(settings.settings(bucket))
            for bucket, sensitivity in self._bucket_sensitivity_map.items()
        }

        cross = settings.cross_bucket_correlation
        core_buckets = [bucket for bucket in aggregates if bucket != RESIDUAL_BUCKET]
        core_variance = 0.0
        for first in core_buckets:
            first_aggregate = aggregates[first]
            core_variance += first_aggregate.cumulative_margin_covariance()
            for second in core_buckets:
                if first == second:
                    continue
                core_variance += (
                    cross.entry(first, second)
                    * first_aggregate.bounded_weighted_sensitivity()
                    * aggregates[second].bounded_weighted_sensitivity()
                )

        residual_variance = (
            aggregates[RESIDUAL_BUCKET].cumulative_margin_covariance()
            if RESIDUAL_BUCKET in aggregates
            else 0.0
        )

        logger.debug(
            "credit_delta_aggregated",
            buckets=len(aggregates),
            core_variance=core_variance,
            residual_variance=residual_variance,
        )
        return RiskMeasureAggregateCR(aggregates, core_variance, residual_variance)


def random_credit_sensitivities(
    bucket_components: Dict[str, List[str]],
    tenors: List[str],
    notional: float,
    rng: np.random.Generator,
) -> RiskMeasureSensitivityCR:
    """Uniform sensitivities notional · (U - ½) per component and tenor."""
    buckets = {}
    for bucket, components in bucket_components.items():
        buckets[bucket] = BucketSensitivityCR(
            {
                component: RiskFactorTenorSensitivity(
                    {tenor: notional * (rng.random() - 0.5) for tenor in tenors}
                )
                for component in components
            }
        )
    return RiskMeasureSensitivityCR(buckets)
