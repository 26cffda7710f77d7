"""
pricing.py - Price conversion between collateral amounts and USD

Converts between a collateral asset quantity and its USD value using the
asset's spot price. Two layers, mirroring the rest of the package:

1. PURE CALCULATION FUNCTIONS (calculate_*):
   - Take price, feed decimals and amounts explicitly
   - No oracle access, trivially testable

2. PriceConverter:
   - Holds the asset -> oracle registry
   - Reads the oracle, then delegates to the pure functions

Rounding policy:
    Every conversion multiplies fully before dividing and truncates toward
    zero. The truncation is conservative: a converted amount can be minutely
    smaller than the true ratio, never larger. Do not reorder the operations.

Classes:
- PriceConverter: Registry-backed conversions
- MockPriceFeed: Settable in-memory feed for tests and simulations
"""

from __future__ import annotations
from typing import Dict, Mapping, Optional, Tuple

from .core import (
    AssetId, PriceOracle, OracleUnavailable,
    PRECISION, FEED_DECIMALS, ADDITIONAL_FEED_PRECISION,
    power_of_ten_exponent,
)


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def feed_adjustment(
    decimals: int,
    precision: int = PRECISION,
    additional_feed_precision: int = ADDITIONAL_FEED_PRECISION,
) -> int:
    """
    Factor that lifts a feed price to internal precision.

    An 8-decimal feed uses additional_feed_precision as configured. Any other
    feed is normalized by its own decimals.

    Raises:
        OracleUnavailable: If the feed reports more decimals than the internal
            precision can represent.
        ValueError: If precision is not a power of ten.
    """
    if decimals == FEED_DECIMALS:
        return additional_feed_precision
    internal_decimals = power_of_ten_exponent(precision)
    if decimals < 0 or decimals > internal_decimals:
        raise OracleUnavailable(f"Unsupported feed decimals: {decimals}")
    return 10 ** (internal_decimals - decimals)


def calculate_usd_value(
    price: int,
    amount: int,
    adjustment: int = ADDITIONAL_FEED_PRECISION,
    precision: int = PRECISION,
) -> int:
    """
    USD value (internal precision) of amount units of an asset.

    PURE FUNCTION.

        usd = price * adjustment * amount // precision

    Example:
        # 10 units at $2000 with an 8-decimal feed
        calculate_usd_value(2000 * 10**8, 10 * 10**18)  # 20000 * 10**18
    """
    return (price * adjustment * amount) // precision


def calculate_asset_amount(
    price: int,
    usd_amount: int,
    adjustment: int = ADDITIONAL_FEED_PRECISION,
    precision: int = PRECISION,
) -> int:
    """
    Quantity of an asset worth usd_amount.

    PURE FUNCTION. Inverse of calculate_usd_value:

        amount = usd_amount * precision // (price * adjustment)

    Truncates toward zero, which favors the protocol.
    """
    return (usd_amount * precision) // (price * adjustment)


# ============================================================================
# CONVERTER
# ============================================================================

class PriceConverter:
    """
    Registry-backed conversions between asset amounts and USD.

    Stateless apart from the immutable asset -> oracle mapping it is built
    with. Every call reads the oracle afresh.
    """

    def __init__(
        self,
        price_feeds: Mapping[AssetId, PriceOracle],
        precision: int = PRECISION,
        additional_feed_precision: int = ADDITIONAL_FEED_PRECISION,
    ):
        self._price_feeds: Dict[AssetId, PriceOracle] = dict(price_feeds)
        self.precision = precision
        self.additional_feed_precision = additional_feed_precision

    def price_feed(self, asset: AssetId) -> PriceOracle:
        """Return the oracle registered for asset."""
        feed = self._price_feeds.get(asset)
        if feed is None:
            raise OracleUnavailable(f"No price feed registered for {asset!r}")
        return feed

    def latest_price(self, asset: AssetId) -> Tuple[int, int]:
        """
        Read (price, adjustment) for an asset.

        Returns:
            The raw feed price and the factor that lifts it to internal precision.

        Raises:
            OracleUnavailable: If no oracle is registered or the price is not positive.
        """
        price, decimals = self.price_feed(asset).latest_price()
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            raise OracleUnavailable(f"Invalid price for {asset!r}: {price!r}")
        adjustment = feed_adjustment(decimals, self.precision, self.additional_feed_precision)
        return price, adjustment

    def to_usd_value(self, asset: AssetId, amount: int) -> int:
        """USD value of amount units of asset, at internal precision."""
        price, adjustment = self.latest_price(asset)
        return calculate_usd_value(price, amount, adjustment, self.precision)

    def from_usd_value(self, asset: AssetId, usd_amount: int) -> int:
        """Quantity of asset equivalent to usd_amount (truncated)."""
        price, adjustment = self.latest_price(asset)
        return calculate_asset_amount(price, usd_amount, adjustment, self.precision)

    def __repr__(self):
        return f"PriceConverter({len(self._price_feeds)} feeds)"


# ============================================================================
# MOCK FEED
# ============================================================================

class MockPriceFeed:
    """
    In-memory price feed with a settable answer.

    Only the latest answer is kept; round_id counts the answers published.

    Example:
        feed = MockPriceFeed(2000 * 10**8)
        feed.update_answer(18 * 10**8)     # crash
        feed.latest_price()                # (1800000000, 8)
    """

    def __init__(self, initial_answer: int, decimals: int = FEED_DECIMALS, description: Optional[str] = None):
        self.decimals = decimals
        self.description = description or "mock feed"
        self.latest_answer = initial_answer
        self.round_id = 1

    def latest_price(self) -> Tuple[int, int]:
        return self.latest_answer, self.decimals

    def update_answer(self, answer: int) -> None:
        """Publish a new price."""
        self.latest_answer = answer
        self.round_id += 1

    def __repr__(self):
        return f"MockPriceFeed({self.description}: {self.latest_answer} @ {self.decimals} decimals)"
