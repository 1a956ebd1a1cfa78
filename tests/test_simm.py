"""
Unit tests for simm_settings.py and simm_margin.py - ISDA SIMM

Tests cover:
- Labelled correlation matrices
- Interest-rate concentration threshold lookup
- Credit-qualifying bucket tables
- Credit delta bucket margin and SBA aggregation
"""

import math

import pytest
import numpy as np
from numpy.testing import assert_allclose

from quantref.simm_margin import (
    BucketSensitivityCR,
    RiskFactorTenorSensitivity,
    RiskMeasureSensitivityCR,
    random_credit_sensitivities,
)
from quantref.simm_settings import (
    QUALITY_HIGH_YIELD,
    QUALITY_INVESTMENT_GRADE,
    RESIDUAL_BUCKET,
    BucketSensitivitySettings,
    CRQSettingsContainer21,
    IRThresholdContainer24,
    LabelCorrelation,
    RiskMeasureSensitivitySettingsCR,
)


class TestLabelCorrelation:
    """Tests for LabelCorrelation."""

    def test_entry_lookup(self):
        correlation = LabelCorrelation(["a", "b"], [[1.0, 0.3], [0.3, 1.0]])
        assert correlation.entry("a", "b") == 0.3
        assert correlation.contains("b")
        assert correlation.to_frame().loc["b", "a"] == 0.3

    def test_unknown_label_raises(self):
        correlation = LabelCorrelation(["a", "b"], np.eye(2))
        with pytest.raises(ValueError, match="Unknown correlation label"):
            correlation.entry("a", "z")

    def test_asymmetric_matrix_raises(self):
        with pytest.raises(ValueError, match="symmetric"):
            LabelCorrelation(["a", "b"], [[1.0, 0.3], [0.2, 1.0]])

    def test_shape_mismatch_raises(self):
        with pytest.raises(ValueError, match="does not match"):
            LabelCorrelation(["a"], np.eye(2))


class TestIRThresholds:
    """Tests for IRThresholdContainer24."""

    def test_well_traded_currency(self):
        threshold = IRThresholdContainer24.threshold("usd")
        assert threshold.delta_vega.delta == 240.0
        assert "EUR" in threshold.currency_risk_group.currencies

    def test_unknown_currency_falls_back_to_high_volatility_group(self):
        assert IRThresholdContainer24.threshold("XYZ") == IRThresholdContainer24.threshold(1)
        assert not IRThresholdContainer24.contains_threshold("XYZ")

    def test_unknown_group_returns_none(self):
        assert IRThresholdContainer24.threshold(7) is None
        assert IRThresholdContainer24.index_set() == {1, 2, 3, 4}

    def test_frame(self):
        frame = IRThresholdContainer24.to_frame()
        assert len(frame) == 4
        assert frame.loc[frame["group"] == 4, "currencies"].iloc[0] == "JPY"


class TestCRQSettings:
    """Tests for CRQSettingsContainer21."""

    def test_bucket_quality(self):
        assert CRQSettingsContainer21.bucket(1).quality == QUALITY_INVESTMENT_GRADE
        assert CRQSettingsContainer21.bucket(7).quality == QUALITY_HIGH_YIELD
        assert CRQSettingsContainer21.bucket(7).sectors == CRQSettingsContainer21.bucket(1).sectors
        assert CRQSettingsContainer21.bucket(13) is None

    def test_cross_bucket_correlation(self):
        correlation = CRQSettingsContainer21.cross_bucket_correlation()
        assert correlation.entry("1", "7") == pytest.approx(0.42)
        assert correlation.entry("7", "1") == correlation.entry("1", "7")
        assert len(correlation.label_list) == 12

    def test_crq_delta_settings_cover_residual(self):
        settings = RiskMeasureSensitivitySettingsCR.isda_crq_delta_21()
        assert settings.settings(RESIDUAL_BUCKET).risk_weight == 280.0
        with pytest.raises(ValueError, match="No settings"):
            settings.settings("13")

    def test_bucket_settings_validated(self):
        with pytest.raises(ValueError, match="Correlation"):
            BucketSensitivitySettings(100.0, 1.5, 0.2)


class TestCreditDeltaMargin:
    """Tests for the credit delta aggregation."""

    def test_bucket_margin_matches_quadratic_form(self):
        settings = BucketSensitivitySettings(280.0, 0.57, 0.20)
        bucket = BucketSensitivityCR({
            "A": RiskFactorTenorSensitivity({"1Y": 1.0, "5Y": 2.0}),
            "B": RiskFactorTenorSensitivity({"1Y": -0.5}),
        })
        aggregate = bucket.aggregate(settings)

        ws = 280.0 * np.array([1.0, 2.0, -0.5])
        rho = np.array([[1.0, 0.57, 0.20], [0.57, 1.0, 0.20], [0.20, 0.20, 1.0]])
        assert aggregate.margin() == pytest.approx(math.sqrt(ws @ rho @ ws))
        assert aggregate.cumulative_weighted_sensitivity() == pytest.approx(ws.sum())
        assert set(aggregate.component_margin_covariance_map) == {"A_A", "A_B", "B_A", "B_B"}

    def test_bounded_sensitivity_is_clamped(self):
        settings = BucketSensitivitySettings(100.0, 0.5, -0.9)
        bucket = BucketSensitivityCR({
            "A": RiskFactorTenorSensitivity({"1Y": 1.0}),
            "B": RiskFactorTenorSensitivity({"1Y": 1.0}),
        })
        aggregate = bucket.aggregate(settings)
        assert aggregate.margin() == pytest.approx(math.sqrt(2.0 * 100.0 ** 2 * (1.0 - 0.9)))
        assert aggregate.bounded_weighted_sensitivity() == pytest.approx(aggregate.margin())

    def test_sba_two_buckets_and_residual(self):
        sensitivities = RiskMeasureSensitivityCR({
            "1": BucketSensitivityCR({"01a": RiskFactorTenorSensitivity({"1Y": 1.0})}),
            "2": BucketSensitivityCR({"02a": RiskFactorTenorSensitivity({"1Y": -1.0})}),
            RESIDUAL_BUCKET: BucketSensitivityCR({"r": RiskFactorTenorSensitivity({"1Y": 0.5})}),
        })
        result = sensitivities.linear_aggregate(RiskMeasureSensitivitySettingsCR.isda_crnq_delta_20())

        expected_core = 280.0 ** 2 + 1300.0 ** 2 + 2.0 * 0.21 * 280.0 * (-1300.0)
        assert result.core_sba_variance == pytest.approx(expected_core)
        assert result.residual_sba_variance == pytest.approx(650.0 ** 2)
        assert result.sba() == pytest.approx(math.sqrt(expected_core) + 650.0)

    def test_random_sensitivities_frame(self, rng):
        components = {"1": ["01a", "01b"], "2": ["02a"]}
        sensitivities = random_credit_sensitivities(components, ["1Y", "5Y"], 100.0, rng)
        result = sensitivities.linear_aggregate(RiskMeasureSensitivitySettingsCR.isda_crnq_delta_20())
        frame = result.to_frame()
        assert list(frame["bucket"]) == ["1", "2"]
        assert np.all(frame["margin"] >= 0.0)
        assert result.residual_sba_variance == 0.0
        assert_allclose(result.sba(), math.sqrt(result.core_sba_variance))

    def test_empty_sensitivities_raise(self):
        with pytest.raises(ValueError, match="must not be empty"):
            RiskFactorTenorSensitivity({})
