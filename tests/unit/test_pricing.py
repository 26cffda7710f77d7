"""
test_pricing.py - Unit tests for pricing.py

Tests:
- Pure conversions (calculate_usd_value, calculate_asset_amount)
- Truncation direction of the inverse conversion
- Feed decimals normalization
- PriceConverter registry lookups and bad prices
- MockPriceFeed
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from collateral_engine import (
    PriceConverter, MockPriceFeed, OracleUnavailable,
    calculate_usd_value, calculate_asset_amount, feed_adjustment,
    ADDITIONAL_FEED_PRECISION,
)


ONE = 10**18


class TestCalculateUsdValue:

    def test_fifteen_eth_at_2000(self):
        assert calculate_usd_value(2000 * 10**8, 15 * ONE) == 30_000 * ONE

    def test_ten_units_at_2000(self):
        assert calculate_usd_value(2000 * 10**8, 10 * ONE) == 20_000 * ONE

    def test_zero_amount(self):
        assert calculate_usd_value(2000 * 10**8, 0) == 0

    def test_sub_unit_amount_truncates(self):
        # 1 wei of an asset at $1 is worth 1 wei of USD; at $0.5 it rounds to 0
        assert calculate_usd_value(1 * 10**8, 1) == 1
        assert calculate_usd_value(5 * 10**7, 1) == 0


class TestCalculateAssetAmount:

    def test_hundred_dollars_of_eth(self):
        """$100 at $2000/ETH is 0.05 ETH."""
        assert calculate_asset_amount(2000 * 10**8, 100 * ONE) == 5 * 10**16

    def test_truncates_toward_zero(self):
        # $10 at $3 is 3.333... units
        amount = calculate_asset_amount(3 * 10**8, 10 * ONE)
        assert amount == 3_333_333_333_333_333_333

    def test_round_trip_never_exceeds_input(self):
        amount = calculate_asset_amount(3 * 10**8, 10 * ONE)
        assert calculate_usd_value(3 * 10**8, amount) == 9_999_999_999_999_999_999

    @given(
        price=st.integers(min_value=1, max_value=10**14),
        usd=st.integers(min_value=0, max_value=10**30),
    )
    @settings(max_examples=200)
    def test_inverse_is_conservative(self, price, usd):
        """PROPERTY: converting USD to an asset and back never yields more USD."""
        amount = calculate_asset_amount(price, usd)
        assert calculate_usd_value(price, amount) <= usd


class TestFeedAdjustment:

    def test_eight_decimals_uses_additional_feed_precision(self):
        assert feed_adjustment(8) == ADDITIONAL_FEED_PRECISION

    def test_configured_additional_precision_is_honored(self):
        assert feed_adjustment(8, additional_feed_precision=10**12) == 10**12

    def test_other_decimals_normalize_to_internal_precision(self):
        assert feed_adjustment(18) == 1
        assert feed_adjustment(6) == 10**12
        assert feed_adjustment(0) == 10**18

    @pytest.mark.parametrize("decimals", [-1, 19, 36])
    def test_unsupported_decimals(self, decimals):
        with pytest.raises(OracleUnavailable, match="Unsupported feed decimals"):
            feed_adjustment(decimals)

    def test_precision_must_be_a_power_of_ten(self):
        """Same digit count as 10**18, but not a scale."""
        assert feed_adjustment(6, precision=10**12) == 10**6
        with pytest.raises(ValueError, match="power of ten"):
            feed_adjustment(6, precision=10**18 + 1)


class TestPriceConverter:

    def test_to_usd_value(self):
        converter = PriceConverter({"WETH": MockPriceFeed(2000 * 10**8)})
        assert converter.to_usd_value("WETH", 15 * ONE) == 30_000 * ONE

    def test_from_usd_value(self):
        converter = PriceConverter({"WETH": MockPriceFeed(2000 * 10**8)})
        assert converter.from_usd_value("WETH", 100 * ONE) == 5 * 10**16

    def test_reads_the_latest_price(self):
        feed = MockPriceFeed(2000 * 10**8)
        converter = PriceConverter({"WETH": feed})
        feed.update_answer(18 * 10**8)
        assert converter.to_usd_value("WETH", 10 * ONE) == 180 * ONE

    def test_eighteen_decimal_feed(self):
        converter = PriceConverter({"WETH": MockPriceFeed(2000 * ONE, decimals=18)})
        assert converter.to_usd_value("WETH", ONE) == 2000 * ONE
        assert converter.from_usd_value("WETH", 2000 * ONE) == ONE

    def test_unregistered_asset(self):
        converter = PriceConverter({"WETH": MockPriceFeed(2000 * 10**8)})
        with pytest.raises(OracleUnavailable, match="No price feed registered"):
            converter.to_usd_value("DOGE", ONE)

    @pytest.mark.parametrize("bad_price", [0, -1])
    def test_non_positive_price(self, bad_price):
        feed = MockPriceFeed(2000 * 10**8)
        converter = PriceConverter({"WETH": feed})
        feed.update_answer(bad_price)
        with pytest.raises(OracleUnavailable, match="Invalid price"):
            converter.to_usd_value("WETH", ONE)

    def test_price_feed_lookup(self):
        feed = MockPriceFeed(2000 * 10**8)
        converter = PriceConverter({"WETH": feed})
        assert converter.price_feed("WETH") is feed


class TestMockPriceFeed:

    def test_latest_price(self):
        feed = MockPriceFeed(2000 * 10**8)
        assert feed.latest_price() == (2000 * 10**8, 8)

    def test_update_answer_counts_rounds(self):
        feed = MockPriceFeed(2000 * 10**8)
        feed.update_answer(1900 * 10**8)
        feed.update_answer(18 * 10**8)
        assert feed.latest_answer == 18 * 10**8
        assert feed.latest_price() == (18 * 10**8, 8)
        assert feed.round_id == 3

    def test_many_updates_keep_only_the_latest_answer(self):
        feed = MockPriceFeed(1)
        for answer in range(2, 10_002):
            feed.update_answer(answer)
        assert feed.round_id == 10_001
        assert feed.latest_answer == 10_001
        assert not any(isinstance(v, list) for v in vars(feed).values())

    def test_repr(self):
        assert "ETH / USD" in repr(MockPriceFeed(1, description="ETH / USD"))
