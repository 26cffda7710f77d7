"""
engine.py - The collateral engine

CollateralEngine is the single owner of one system's mutable state: the
asset registry, the collateral and debt ledgers, the event log and the
journal that makes every operation atomic. It wires the components
together and is the surface callers use.

Key responsibilities:
    - Validates the asset/oracle registry at construction (ConfigMismatch)
    - Delegates operations to PositionManager and LiquidationEngine
    - Serves read-only queries (balances, values, health factors, constants)
    - Verifies custody: token balances held vs. ledger totals

Thread Safety:
    Operations and ledger queries share the journal's re-entrant lock, so a
    query from another thread waits for a running operation to finish and
    never sees it half done (for instance while a token call is in flight).
    Queries made from a token callback on the operating thread proceed and
    see the updated ledgers.

Example:
    weth = SimpleToken("WETH")
    dsc = StableCoin()
    engine = CollateralEngine([weth], [MockPriceFeed(2000 * 10**8)], dsc)
    dsc.transfer_ownership(None, engine.address)

    weth.mint_to("alice", 10 * 10**18)
    weth.approve("alice", engine.address, 10 * 10**18)
    engine.deposit_and_mint("alice", "WETH", 10 * 10**18, 100 * 10**18)
    engine.get_health_factor("alice")   # 100 * 10**18
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .core import (
    Address, AssetId, AccountInformation, CollateralToken, EngineParameters,
    PriceOracle, SyntheticToken, ConfigMismatch,
    DEFAULT_ENGINE_ADDRESS,
)
from .health import HealthFactorEngine
from .journal import EventLog, Journal
from .ledgers import CollateralLedger, DebtLedger
from .liquidation import LiquidationEngine, LiquidationQuote
from .positions import PositionManager
from .pricing import PriceConverter


class CollateralEngine:
    """
    Over-collateralized synthetic-token engine.

    Args:
        collateral_tokens: Accepted collateral, in registration order. Each
            token's symbol is its asset identifier.
        price_feeds: One oracle per collateral token, same order.
        synthetic_token: The token minted against collateral. The engine must
            be (or become) its owner before the first mint.
        address: Custody address of this engine on the tokens.
        parameters: Risk and precision parameters (defaults from core).
        verbose: Print one line per operation (default: True).

    Raises:
        ConfigMismatch: If the lists differ in length, contain a missing
            oracle, or register the same asset twice.
    """

    def __init__(
        self,
        collateral_tokens: Sequence[CollateralToken],
        price_feeds: Sequence[PriceOracle],
        synthetic_token: SyntheticToken,
        address: Address = DEFAULT_ENGINE_ADDRESS,
        parameters: Optional[EngineParameters] = None,
        verbose: bool = True,
    ):
        collateral_tokens = list(collateral_tokens)
        price_feeds = list(price_feeds)
        if len(collateral_tokens) != len(price_feeds):
            raise ConfigMismatch(
                f"{len(collateral_tokens)} collateral tokens but {len(price_feeds)} price feeds"
            )

        tokens: Dict[AssetId, CollateralToken] = {}
        feeds: Dict[AssetId, PriceOracle] = {}
        for token, feed in zip(collateral_tokens, price_feeds):
            if feed is None:
                raise ConfigMismatch(f"No price feed for {token.symbol}")
            if token.symbol in tokens:
                raise ConfigMismatch(f"Collateral {token.symbol} registered twice")
            tokens[token.symbol] = token
            feeds[token.symbol] = feed

        self.address = address
        self.parameters = parameters or EngineParameters()
        self.synthetic_token = synthetic_token
        self._collateral_assets: Tuple[AssetId, ...] = tuple(tokens)
        self._tokens = tokens
        self._price_feeds = feeds

        self.converter = PriceConverter(
            feeds, self.parameters.precision, self.parameters.additional_feed_precision,
        )
        self.journal = Journal(verbose=verbose)
        self.collateral = CollateralLedger(self.journal)
        self.debt = DebtLedger(self.journal)
        self.events = EventLog(self.journal)
        self.health = HealthFactorEngine(
            self.collateral, self.debt, self.converter, self._collateral_assets, self.parameters,
        )
        self.positions = PositionManager(
            address, tokens, synthetic_token,
            self.collateral, self.debt, self.health, self.journal, self.events,
        )
        self.liquidations = LiquidationEngine(
            self.positions, self.health, self.converter, self.parameters,
        )

    @property
    def verbose(self) -> bool:
        return self.journal.verbose

    @verbose.setter
    def verbose(self, value: bool) -> None:
        self.journal.verbose = value

    # ========================================================================
    # OPERATIONS (Mutating)
    # ========================================================================

    def deposit_collateral(self, user: Address, asset: AssetId, amount: int) -> None:
        self.positions.deposit_collateral(user, asset, amount)

    def mint_debt(self, user: Address, amount: int) -> None:
        self.positions.mint_debt(user, amount)

    def redeem_collateral(self, user: Address, asset: AssetId, amount: int, recipient: Optional[Address] = None) -> None:
        self.positions.redeem_collateral(user, asset, amount, recipient)

    def burn_debt(self, amount: int, debt_owner: Address, payer: Optional[Address] = None) -> None:
        self.positions.burn_debt(amount, debt_owner, payer)

    def deposit_and_mint(self, user: Address, asset: AssetId, collateral_amount: int, debt_amount: int) -> None:
        self.positions.deposit_and_mint(user, asset, collateral_amount, debt_amount)

    def redeem_and_burn(self, user: Address, asset: AssetId, collateral_amount: int, debt_amount: int) -> None:
        self.positions.redeem_and_burn(user, asset, collateral_amount, debt_amount)

    def liquidate(self, liquidator: Address, violator: Address, asset: AssetId, debt_to_cover: int) -> LiquidationQuote:
        return self.liquidations.liquidate(liquidator, violator, asset, debt_to_cover)

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    def get_account_collateral_value(self, user: Address) -> int:
        """USD value of all of user's collateral."""
        with self.journal.reading():
            return self.health.collateral_value(user)

    def get_collateral_balance_of_user(self, user: Address, asset: AssetId) -> int:
        with self.journal.reading():
            return self.collateral.get(user, asset)

    def get_debt(self, user: Address) -> int:
        with self.journal.reading():
            return self.debt.get(user)

    def get_account_information(self, user: Address) -> AccountInformation:
        with self.journal.reading():
            return self.health.account_information(user)

    def get_health_factor(self, user: Address) -> int:
        with self.journal.reading():
            return self.health.health_factor(user)

    def calculate_health_factor(self, debt_usd: int, collateral_usd: int) -> int:
        """Health factor of a hypothetical (debt, collateral value) pair."""
        return self.health.compute_health_factor(debt_usd, collateral_usd)

    def get_usd_value(self, asset: AssetId, amount: int) -> int:
        self.positions.require_allowed(asset)
        with self.journal.reading():
            return self.converter.to_usd_value(asset, amount)

    def get_token_amount_from_usd(self, asset: AssetId, usd_amount: int) -> int:
        self.positions.require_allowed(asset)
        with self.journal.reading():
            return self.converter.from_usd_value(asset, usd_amount)

    def quote_liquidation(self, asset: AssetId, debt_to_cover: int) -> LiquidationQuote:
        with self.journal.reading():
            return self.liquidations.quote(asset, debt_to_cover)

    def get_collateral_tokens(self) -> List[AssetId]:
        """Registered collateral assets, in registration order."""
        return list(self._collateral_assets)

    def get_collateral_token(self, asset: AssetId) -> CollateralToken:
        return self.positions.require_allowed(asset)

    def get_collateral_token_price_feed(self, asset: AssetId) -> PriceOracle:
        self.positions.require_allowed(asset)
        return self._price_feeds[asset]

    def is_allowed(self, asset: AssetId) -> bool:
        return asset in self._tokens

    # Constants

    @property
    def liquidation_threshold(self) -> int:
        return self.parameters.liquidation_threshold

    @property
    def liquidation_bonus(self) -> int:
        return self.parameters.liquidation_bonus

    @property
    def liquidation_precision(self) -> int:
        return self.parameters.liquidation_precision

    @property
    def min_health_factor(self) -> int:
        return self.parameters.min_health_factor

    @property
    def precision(self) -> int:
        return self.parameters.precision

    @property
    def additional_feed_precision(self) -> int:
        return self.parameters.additional_feed_precision

    # ========================================================================
    # PROTOCOL-LEVEL CHECKS
    # ========================================================================

    def total_collateral_value(self) -> int:
        """USD value of every asset recorded in the collateral ledger."""
        total = 0
        with self.journal.reading():
            for asset in self._collateral_assets:
                amount = self.collateral.total(asset)
                if amount:
                    total += self.converter.to_usd_value(asset, amount)
        return total

    def verify_custody(self) -> Dict[str, Any]:
        """
        Verify that the ledgers agree with the tokens.

        Checks:
        1. For every asset, the engine's token balance equals the collateral
           ledger total (tokens sent to the engine outside deposit() show up
           as a surplus).
        2. The debt ledger total equals the synthetic token's total supply.

        Returns:
            Dict with keys:
            - 'valid': bool - True if there are no discrepancies
            - 'collateral': Dict[str, int] - ledger total per asset
            - 'debt': int - total outstanding debt
            - 'discrepancies': List[Dict] - what disagrees, and by how much

        Example:
            result = engine.verify_custody()
            assert result['valid'], result['discrepancies']
        """
        with self.journal.reading():
            return self._custody_report()

    def _custody_report(self) -> Dict[str, Any]:
        collateral: Dict[AssetId, int] = {}
        discrepancies: List[Dict[str, Any]] = []

        for asset in self._collateral_assets:
            recorded = self.collateral.total(asset)
            held = self._tokens[asset].balance_of(self.address)
            collateral[asset] = recorded
            if held != recorded:
                discrepancies.append({
                    'asset': asset,
                    'recorded': recorded,
                    'held': held,
                    'difference': held - recorded,
                })

        total_debt = self.debt.total()
        supply = self.synthetic_token.total_supply()
        if supply != total_debt:
            discrepancies.append({
                'asset': self.synthetic_token.symbol,
                'recorded': total_debt,
                'held': supply,
                'difference': supply - total_debt,
            })

        return {
            'valid': len(discrepancies) == 0,
            'collateral': collateral,
            'debt': total_debt,
            'discrepancies': discrepancies,
        }

    def __repr__(self):
        return (
            f"CollateralEngine({self.address}, assets={list(self._collateral_assets)}, "
            f"debt={self.debt.total()}, events={len(self.events)})"
        )
