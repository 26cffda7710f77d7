"""
liquidation.py - Third-party liquidation of unhealthy positions

A liquidator repays part (or all) of a violator's debt with their own
synthetic tokens and receives the equivalent collateral plus a bonus:

    collateral_equivalent = from_usd_value(asset, debt_to_cover)
    bonus                 = collateral_equivalent * liquidation_bonus // liquidation_precision
    seized                = collateral_equivalent + bonus

Liquidation is ONLY allowed while the violator's health factor is below the
minimum, and it must strictly improve that health factor. A liquidation that
would leave the violator no better off (for example because the asset's
price collapses at the same time) reverts.

Steps, all inside one atomic scope:
    1. amount > 0, asset registered
    2. starting health factor < minimum, else HealthFactorIsOK
    3. size the seizure (truncating, protocol-favoring)
    4. debit the seized collateral from violator (credited to liquidator)
    5. debit debt_to_cover from violator's debt, paid by the liquidator
    6. ending health factor > starting, else HealthFactorIsNotImproved
    7. liquidator's own health factor is not broken
    8. pull and burn the liquidator's synthetic tokens, then send the
       seized collateral out of custody

Every check runs on the updated ledgers before any token moves. The
collateral transfer comes last: it is the one step the engine cannot take
back.

debt_to_cover larger than the violator's recorded debt is rejected by the
debt ledger (InsufficientBalance), as is a seizure larger than the
violator's collateral in that asset. Either way the whole liquidation
reverts.
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import (
    Address, AssetId, EngineParameters,
    HealthFactorIsOK, HealthFactorIsNotImproved,
    EVENT_LIQUIDATED,
    require_positive,
)
from .health import HealthFactorEngine
from .positions import PositionManager
from .pricing import PriceConverter


@dataclass(frozen=True, slots=True)
class LiquidationQuote:
    """
    Sizing of a liquidation before any state changes.

    Attributes:
        debt_to_cover: Debt the liquidator repays.
        collateral_equivalent: Collateral worth debt_to_cover (truncated).
        bonus_collateral: Extra collateral paid as incentive.
    """
    debt_to_cover: int
    collateral_equivalent: int
    bonus_collateral: int

    @property
    def total_collateral(self) -> int:
        return self.collateral_equivalent + self.bonus_collateral


def calculate_liquidation_quote(
    collateral_equivalent: int,
    debt_to_cover: int,
    liquidation_bonus: int,
    liquidation_precision: int,
) -> LiquidationQuote:
    """
    Size a liquidation from the collateral equivalent of the debt covered.

    PURE FUNCTION.
    """
    bonus = collateral_equivalent * liquidation_bonus // liquidation_precision
    return LiquidationQuote(
        debt_to_cover=debt_to_cover,
        collateral_equivalent=collateral_equivalent,
        bonus_collateral=bonus,
    )


class LiquidationEngine:
    """Runs liquidations on top of PositionManager's internal moves."""

    def __init__(
        self,
        positions: PositionManager,
        health: HealthFactorEngine,
        converter: PriceConverter,
        parameters: EngineParameters,
    ):
        self.positions = positions
        self.health = health
        self.converter = converter
        self.parameters = parameters

    def quote(self, asset: AssetId, debt_to_cover: int) -> LiquidationQuote:
        """Collateral a liquidation of debt_to_cover in asset would seize at current prices."""
        require_positive(debt_to_cover, "debt_to_cover")
        self.positions.require_allowed(asset)
        return calculate_liquidation_quote(
            self.converter.from_usd_value(asset, debt_to_cover),
            debt_to_cover,
            self.parameters.liquidation_bonus,
            self.parameters.liquidation_precision,
        )

    def liquidate(self, liquidator: Address, violator: Address, asset: AssetId, debt_to_cover: int) -> LiquidationQuote:
        """
        Liquidate debt_to_cover of violator's debt against their asset collateral.

        Args:
            liquidator: Pays the debt in synthetic tokens, receives the collateral.
            violator: The undercollateralized account.
            asset: Collateral asset to seize.
            debt_to_cover: Debt to repay.

        Returns:
            The LiquidationQuote that was executed.

        Raises:
            InvalidAmount, AssetNotAllowed
            HealthFactorIsOK: violator is not liquidatable.
            InsufficientBalance: debt_to_cover exceeds violator's debt, or the
                seizure exceeds violator's collateral in asset.
            TransferFailed: a token transfer failed.
            HealthFactorIsNotImproved: violator is not strictly better off.
            HealthFactorBroken: liquidator's own position is broken.
        """
        detail = {"liquidator": liquidator, "violator": violator, "asset": asset, "debt": debt_to_cover}
        with self.positions.journal.atomic("liquidate", detail):
            require_positive(debt_to_cover, "debt_to_cover")
            self.positions.require_allowed(asset)

            starting_health_factor = self.health.health_factor(violator)
            if starting_health_factor >= self.parameters.min_health_factor:
                raise HealthFactorIsOK(violator)

            quote = self.quote(asset, debt_to_cover)

            token = self.positions._debit_collateral(asset, quote.total_collateral, violator, liquidator)
            self.positions._debit_debt(debt_to_cover, violator, liquidator)

            ending_health_factor = self.health.health_factor(violator)
            if ending_health_factor <= starting_health_factor:
                raise HealthFactorIsNotImproved(starting_health_factor, ending_health_factor)

            self.positions.events.emit(
                EVENT_LIQUIDATED,
                liquidator=liquidator,
                violator=violator,
                asset=asset,
                debt_covered=debt_to_cover,
                collateral_seized=quote.total_collateral,
            )

            self.health.assert_healthy(liquidator)

            self.positions._collect_and_burn(debt_to_cover, liquidator)
            self.positions._send_collateral(token, asset, quote.total_collateral, liquidator)
            return quote
