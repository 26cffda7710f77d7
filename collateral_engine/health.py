"""
health.py - Health factor computation

The health factor is a scale-normalized solvency ratio:

    adjusted_collateral = collateral_usd * liquidation_threshold // liquidation_precision
    health_factor       = adjusted_collateral * precision // debt_usd

With the default parameters a health factor of 1e18 means the position's
collateral is worth exactly twice its debt. Below min_health_factor the
position is liquidatable. A position without debt has MAX_HEALTH_FACTOR,
whatever its collateral.

ARCHITECTURE:
    calculate_health_factor() is a pure function of two USD integers.
    HealthFactorEngine loads (debt, collateral value) from the ledgers and
    calls it. It holds no state of its own.
"""

from __future__ import annotations
from typing import Sequence

from .core import (
    Address, AssetId, AccountInformation, EngineParameters, HealthFactorBroken,
    LIQUIDATION_THRESHOLD, LIQUIDATION_PRECISION, PRECISION, MAX_HEALTH_FACTOR,
)
from .ledgers import CollateralLedger, DebtLedger
from .pricing import PriceConverter


def calculate_health_factor(
    debt_usd: int,
    collateral_usd: int,
    liquidation_threshold: int = LIQUIDATION_THRESHOLD,
    liquidation_precision: int = LIQUIDATION_PRECISION,
    precision: int = PRECISION,
) -> int:
    """
    Health factor of a (debt, collateral value) pair.

    PURE FUNCTION - each multiply-divide step truncates, applied in order.

    Args:
        debt_usd: Outstanding debt (internal precision)
        collateral_usd: USD value of collateral (internal precision)

    Returns:
        MAX_HEALTH_FACTOR when debt_usd is 0, else the truncated ratio.

    Example:
        # $20,000 of collateral against 100 units of debt
        calculate_health_factor(100 * 10**18, 20_000 * 10**18)  # 100 * 10**18
    """
    if debt_usd == 0:
        return MAX_HEALTH_FACTOR
    adjusted_collateral = collateral_usd * liquidation_threshold // liquidation_precision
    return adjusted_collateral * precision // debt_usd


class HealthFactorEngine:
    """
    Derives health factors from current ledger state.

    Reads the collateral ledger, the debt ledger and prices; never mutates
    anything.
    """

    def __init__(
        self,
        collateral: CollateralLedger,
        debt: DebtLedger,
        converter: PriceConverter,
        assets: Sequence[AssetId],
        parameters: EngineParameters,
    ):
        self.collateral = collateral
        self.debt = debt
        self.converter = converter
        self.assets = tuple(assets)
        self.parameters = parameters

    def compute_health_factor(self, debt_usd: int, collateral_usd: int) -> int:
        """Health factor of a hypothetical (debt, collateral value) pair."""
        p = self.parameters
        return calculate_health_factor(
            debt_usd, collateral_usd,
            p.liquidation_threshold, p.liquidation_precision, p.precision,
        )

    def collateral_value(self, user: Address) -> int:
        return self.collateral.total_usd_value(user, self.converter, self.assets)

    def account_information(self, user: Address) -> AccountInformation:
        return AccountInformation(
            debt=self.debt.get(user),
            collateral_value_usd=self.collateral_value(user),
        )

    def health_factor(self, user: Address) -> int:
        """Health factor of user from current ledger state."""
        debt = self.debt.get(user)
        if debt == 0:
            # No debt: skip the oracle reads entirely.
            return MAX_HEALTH_FACTOR
        return self.compute_health_factor(debt, self.collateral_value(user))

    def is_healthy(self, user: Address) -> bool:
        return self.health_factor(user) >= self.parameters.min_health_factor

    def assert_healthy(self, user: Address) -> int:
        """
        Check user's solvency.

        Returns:
            The computed health factor.

        Raises:
            HealthFactorBroken: If the health factor is below the minimum.
        """
        health_factor = self.health_factor(user)
        if health_factor < self.parameters.min_health_factor:
            raise HealthFactorBroken(health_factor)
        return health_factor
