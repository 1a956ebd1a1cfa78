"""
Government Bond Conventions
===========================
Static coupon frequency, day count and holiday calendar of the benchmark
sovereign bond programs, with the benchmark program per currency.
"""

import pandas as pd
from dataclasses import dataclass, asdict
from typing import Dict, Optional


@dataclass(frozen=True)
class TreasurySetting:
    code: str
    currency: str
    frequency: int
    day_count: str
    calendar: str


_SETTINGS: Dict[str, TreasurySetting] = {
    setting.code: setting
    for setting in (
        TreasurySetting("AGB", "AUD", 2, "Act/Act", "AUD"),
        TreasurySetting("BTPS", "EUR", 2, "Act/Act", "EUR"),
        TreasurySetting("CAN", "CAD", 2, "Act/365", "CAD"),
        TreasurySetting("DBR", "EUR", 1, "Act/Act", "EUR"),
        TreasurySetting("DGB", "DKK", 1, "Act/Act", "DKK"),
        TreasurySetting("FRTR", "EUR", 1, "Act/Act", "EUR"),
        TreasurySetting("GGB", "EUR", 1, "Act/Act", "EUR"),
        TreasurySetting("GILT", "GBP", 2, "Act/Act", "GBP"),
        TreasurySetting("GSWISS", "CHF", 1, "30/360", "CHF"),
        TreasurySetting("JGB", "JPY", 2, "Act/365", "JPY"),
        TreasurySetting("MBONO", "MXN", 2, "Act/360", "MXN"),
        TreasurySetting("NGB", "NOK", 1, "Act/Act", "NOK"),
        TreasurySetting("NZGB", "NZD", 2, "Act/Act", "NZD"),
        TreasurySetting("SGB", "SEK", 1, "30/360", "SEK"),
        TreasurySetting("SPGB", "EUR", 1, "Act/Act", "EUR"),
        TreasurySetting("UST", "USD", 2, "Act/Act", "USD"),
    )
}

_BENCHMARKS: Dict[str, str] = {
    "AUD": "AGB",
    "CAD": "CAN",
    "CHF": "GSWISS",
    "DKK": "DGB",
    "EUR": "DBR",
    "GBP": "GILT",
    "JPY": "JGB",
    "MXN": "MBONO",
    "NOK": "NGB",
    "NZD": "NZGB",
    "SEK": "SGB",
    "USD": "UST",
}


def treasury_setting(code: str) -> Optional[TreasurySetting]:
    return _SETTINGS.get(code.upper())


def treasury_codes():
    return sorted(_SETTINGS)


def currency_benchmark_code(currency: str) -> Optional[str]:
    """Benchmark program code for ``currency``, None when not covered."""
    return _BENCHMARKS.get(currency.upper())


def treasury_frame() -> pd.DataFrame:
    return pd.DataFrame([asdict(_SETTINGS[code]) for code in treasury_codes()])
