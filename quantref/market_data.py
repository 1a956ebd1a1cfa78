"""
Market Data Module
==================
Price and volume ingestion, and calibration of execution inputs from
history.

Mathematical Foundation:
    Price change:   ΔS_t = S_t - S_{t-1}
    Drift α = mean(ΔS),  volatility σ = std(ΔS)       (per trading day)
    Serial correlation ρ = corr(ΔS_t, ΔS_{t-1})

Changes are arithmetic, matching the arithmetic Brownian execution models.
"""

import numpy as np
import pandas as pd
import structlog
import yfinance as yf
from typing import Optional, Tuple

from quantref.dynamics import ArithmeticPriceDynamicsSettings
from quantref.impact import AssetTransactionSettings

logger = structlog.get_logger(__name__)


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
DEFAULT_TICKER: str = "SPY"
DEFAULT_START: str = "2024-01-01"
DEFAULT_END: str = "2026-01-01"
MIN_OBSERVATIONS: int = 3


def fetch_prices(
    ticker: str = DEFAULT_TICKER,
    start: str = DEFAULT_START,
    end: str = DEFAULT_END,
    save_path: Optional[str] = None,
    window: Optional[int] = None,
) -> pd.DataFrame:
    """
    Download daily close prices and volumes from Yahoo Finance.

    Parameters
    ----------
    ticker : str
        Ticker symbol.
    start, end : str
        Date range in YYYY-MM-DD format.
    save_path : str, optional
        If provided, saves the frame as CSV.
    window : int, optional
        Keep only the last ``window`` trading days.

    Returns
    -------
    pd.DataFrame
        Columns ``close`` and ``volume`` indexed by date.
    """
    raw = yf.download(ticker, start=start, end=end, auto_adjust=True, progress=False)

    if isinstance(raw.columns, pd.MultiIndex):
        raw = raw.xs(ticker, axis=1, level=1)

    frame = raw[["Close", "Volume"]].rename(columns={"Close": "close", "Volume": "volume"})
    frame = frame.dropna()

    if window is not None:
        frame = frame.iloc[-window:]

    if save_path:
        frame.to_csv(save_path)

    logger.info("prices_fetched", ticker=ticker, rows=len(frame))
    return frame


def load_prices(path: str) -> pd.DataFrame:
    """Load a ``close``/``volume`` frame written by ``fetch_prices``."""
    frame = pd.read_csv(path, index_col=0, parse_dates=True)
    missing = {"close", "volume"} - set(frame.columns)
    if missing:
        raise ValueError(f"Price file {path} lacks columns {sorted(missing)}")
    return frame.dropna()


def _price_changes(prices) -> pd.Series:
    series = pd.Series(prices, dtype=float).dropna()
    if len(series) < MIN_OBSERVATIONS:
        raise ValueError(f"Need at least {MIN_OBSERVATIONS} prices, got {len(series)}")
    return series.diff().dropna()


def calibrate_price_dynamics(prices) -> Tuple[ArithmeticPriceDynamicsSettings, float]:
    """
    Arithmetic price dynamics from a price history.

    Parameters
    ----------
    prices : pd.Series or array-like
        Daily prices in chronological order.

    Returns
    -------
    tuple
        (ArithmeticPriceDynamicsSettings, last price).
    """
    changes = _price_changes(prices)
    drift = float(changes.mean())
    volatility = float(changes.std(ddof=1))
    serial_correlation = float(changes.autocorr(lag=1)) if len(changes) > 2 else 0.0
    if not np.isfinite(serial_correlation):
        serial_correlation = 0.0

    last_price = float(pd.Series(prices, dtype=float).dropna().iloc[-1])
    logger.info(
        "price_dynamics_calibrated",
        drift=drift,
        volatility=volatility,
        serial_correlation=serial_correlation,
        last_price=last_price,
    )
    return ArithmeticPriceDynamicsSettings(drift, volatility, serial_correlation), last_price


def calibrate_asset_settings(prices, volumes, bid_ask_spread: float = 0.0) -> AssetTransactionSettings:
    """Last price and mean daily volume as asset transaction settings."""
    price_series = pd.Series(prices, dtype=float).dropna()
    volume_series = pd.Series(volumes, dtype=float).dropna()
    if price_series.empty or volume_series.empty:
        raise ValueError("Prices and volumes must be non-empty")
    return AssetTransactionSettings(
        float(price_series.iloc[-1]),
        float(volume_series.mean()),
        bid_ask_spread,
    )


def synthetic_prices(
    initial_price: float,
    drift: float,
    volatility: float,
    num_days: int,
    daily_volume: float,
    seed: int = 42,
) -> pd.DataFrame:
    """Arithmetic Brownian price path with lognormal volumes, business-day index."""
    rng = np.random.default_rng(seed)
    changes = drift + volatility * rng.standard_normal(num_days)
    close = initial_price + np.concatenate([[0.0], np.cumsum(changes)])
    volume = daily_volume * np.exp(0.25 * rng.standard_normal(num_days + 1) - 0.5 * 0.25 ** 2)
    index = pd.bdate_range("2025-01-01", periods=num_days + 1)
    return pd.DataFrame({"close": close, "volume": volume}, index=index)
