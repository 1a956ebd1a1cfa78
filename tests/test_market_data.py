"""
Unit tests for market_data.py - Price Ingestion and Calibration

Tests cover:
- Synthetic price generation
- Arithmetic price dynamics calibration
- Asset transaction settings from history
- CSV loading
"""

import math

import pytest
import numpy as np
import pandas as pd

from quantref.market_data import (
    calibrate_asset_settings,
    calibrate_price_dynamics,
    load_prices,
    synthetic_prices,
)


class TestSyntheticPrices:
    """Tests for synthetic_prices."""

    def test_shape_and_start(self):
        frame = synthetic_prices(50.0, 0.0, 1.0, 20, 1e6, seed=7)
        assert list(frame.columns) == ["close", "volume"]
        assert len(frame) == 21
        assert frame["close"].iloc[0] == 50.0
        assert np.all(frame["volume"] > 0.0)

    def test_seed_reproducible(self):
        first = synthetic_prices(50.0, 0.0, 1.0, 20, 1e6, seed=7)
        second = synthetic_prices(50.0, 0.0, 1.0, 20, 1e6, seed=7)
        pd.testing.assert_frame_equal(first, second)


class TestCalibration:
    """Tests for calibrate_price_dynamics and calibrate_asset_settings."""

    def test_known_prices(self):
        settings, last_price = calibrate_price_dynamics([100.0, 101.0, 103.0, 102.0, 104.0])
        assert settings.drift == pytest.approx(1.0)
        assert settings.volatility == pytest.approx(math.sqrt(2.0))
        assert settings.serial_correlation == pytest.approx(-4.0 / math.sqrt(28.0))
        assert last_price == 104.0

    def test_recovers_synthetic_parameters(self):
        frame = synthetic_prices(100.0, 0.02, 1.0, 5000, 1e6, seed=3)
        settings, _ = calibrate_price_dynamics(frame["close"])
        assert settings.drift == pytest.approx(0.02, abs=0.05)
        assert settings.volatility == pytest.approx(1.0, rel=0.05)
        assert abs(settings.serial_correlation) < 0.05

    def test_too_few_prices_raise(self):
        with pytest.raises(ValueError, match="at least"):
            calibrate_price_dynamics([100.0, 101.0])

    def test_asset_settings(self):
        settings = calibrate_asset_settings([10.0, 11.0, 12.0], [100.0, 200.0, 300.0], 0.01)
        assert settings.price == 12.0
        assert settings.daily_volume == pytest.approx(200.0)
        assert settings.bid_ask_spread == 0.01

    def test_empty_history_raises(self):
        with pytest.raises(ValueError, match="non-empty"):
            calibrate_asset_settings([], [100.0])


class TestLoadPrices:
    """Tests for load_prices."""

    def test_round_trip_csv(self, tmp_path):
        path = tmp_path / "prices.csv"
        synthetic_prices(50.0, 0.0, 1.0, 10, 1e6).to_csv(path)
        frame = load_prices(str(path))
        assert len(frame) == 11
        assert isinstance(frame.index, pd.DatetimeIndex)

    def test_missing_columns_raise(self, tmp_path):
        path = tmp_path / "bad.csv"
        pd.DataFrame({"close": [1.0, 2.0]}, index=pd.bdate_range("2025-01-01", periods=2)).to_csv(path)
        with pytest.raises(ValueError, match="lacks columns"):
            load_prices(str(path))
