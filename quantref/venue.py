"""
Venue Fee Module
================
Exchange fee schedules: maker (posting liquidity) and taker (sweeping
liquidity) fees per share. A regular venue charges takers and rebates
makers; an inverted venue does the reverse. Negative fees are rebates.
"""

from abc import ABC, abstractmethod

from quantref.checks import require_valid


class PricingRebateFunction(ABC):
    """Maker and taker fee for an order on a ticker."""

    @abstractmethod
    def maker_fee(self, ticker: str, price: float, size: float) -> float:
        ...

    @abstractmethod
    def taker_fee(self, ticker: str, price: float, size: float) -> float:
        ...


class FlatPricingRebateFunction(PricingRebateFunction):
    """Fixed fee per share, independent of ticker and price."""

    def __init__(self, maker_fee_rate: float, taker_fee_rate: float):
        self._maker_fee_rate = require_valid(maker_fee_rate, "maker_fee_rate")
        self._taker_fee_rate = require_valid(taker_fee_rate, "taker_fee_rate")

    @property
    def maker_fee_rate(self) -> float:
        return self._maker_fee_rate

    @property
    def taker_fee_rate(self) -> float:
        return self._taker_fee_rate

    def maker_fee(self, ticker: str, price: float, size: float) -> float:
        require_valid(price, "price")
        return self._maker_fee_rate * require_valid(size, "size")

    def taker_fee(self, ticker: str, price: float, size: float) -> float:
        require_valid(price, "price")
        return self._taker_fee_rate * require_valid(size, "size")


class VenueSettings:
    """Venue code, fee schedule and whether the venue is inverted."""

    def __init__(self, code: str, pricing_rebate_function: PricingRebateFunction, is_inverted: bool = False):
        if not code or pricing_rebate_function is None:
            raise ValueError("VenueSettings needs a code and a pricing rebate function")
        self._code = code
        self._pricing_rebate_function = pricing_rebate_function
        self._is_inverted = bool(is_inverted)

    @classmethod
    def regular(cls, code: str, pricing_rebate_function: PricingRebateFunction) -> "VenueSettings":
        return cls(code, pricing_rebate_function, False)

    @classmethod
    def inverted(cls, code: str, pricing_rebate_function: PricingRebateFunction) -> "VenueSettings":
        return cls(code, pricing_rebate_function, True)

    @property
    def code(self) -> str:
        return self._code

    @property
    def is_inverted(self) -> bool:
        return self._is_inverted

    @property
    def pricing_rebate_function(self) -> PricingRebateFunction:
        return self._pricing_rebate_function

    def post_fee(self, ticker: str, price: float, size: float) -> float:
        """Fee for resting liquidity (maker)."""
        return self._pricing_rebate_function.maker_fee(ticker, price, size)

    def sweep_fee(self, ticker: str, price: float, size: float) -> float:
        """Fee for removing liquidity (taker)."""
        return self._pricing_rebate_function.taker_fee(ticker, price, size)

    def __repr__(self) -> str:
        kind = "inverted" if self._is_inverted else "regular"
        return f"VenueSettings({self._code!r}, {kind})"
