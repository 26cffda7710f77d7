"""
positions.py - Deposit, mint, redeem and burn

PositionManager exposes four primitive operations plus two composites. Each
public operation is all-or-nothing (it runs inside Journal.atomic) and
follows checks-effects-interactions:

    1. CHECKS       - amount > 0, asset registered
    2. EFFECTS      - ledger mutation and event emission
    3. SOLVENCY     - health factor assertion, where the operation requires it
    4. INTERACTIONS - the external token calls

Ledger state is always updated before the token is called, so a token that
calls back into the engine observes the post-mutation ledger and cannot
spend the same balance twice. This ordering is part of every primitive's
contract.

Token effects the engine can reverse are recorded with the journal as a
compensating call: collateral pulled into custody is sent back, synthetic
tokens pulled from a payer and burned are minted back and returned. The
others (collateral sent out of custody, a mint) come last and seal the
scope once they succeed.

    Operation          | Solvency check
    -------------------|------------------------------------------
    deposit_collateral | none (depositing never harms solvency)
    mint_debt          | user, before the token mint
    redeem_collateral  | user, before the transfer out
    burn_debt          | none (caller checks if it needs to)
"""

from __future__ import annotations
from functools import partial
from typing import Mapping, Optional

from .core import (
    Address, AssetId, AssetNotAllowed, CollateralToken, SyntheticToken,
    MintFailed, TransferFailed,
    EVENT_COLLATERAL_DEPOSITED, EVENT_COLLATERAL_REDEEMED,
    EVENT_DEBT_MINTED, EVENT_DEBT_BURNED,
    require_positive,
)
from .health import HealthFactorEngine
from .journal import EventLog, Journal
from .ledgers import CollateralLedger, DebtLedger


class PositionManager:
    """
    Orchestrates the user-facing position operations.

    Args:
        address: The engine's custody address (holds collateral and burns
            synthetic tokens).
        tokens: Registered collateral tokens, by asset symbol.
        synthetic: The synthetic token; the engine must be its owner.
        collateral, debt: The ledgers.
        health: Health factor engine over the same ledgers.
        journal: Atomic scope and lock.
        events: Audit trail.
    """

    def __init__(
        self,
        address: Address,
        tokens: Mapping[AssetId, CollateralToken],
        synthetic: SyntheticToken,
        collateral: CollateralLedger,
        debt: DebtLedger,
        health: HealthFactorEngine,
        journal: Journal,
        events: EventLog,
    ):
        self.address = address
        self.tokens = tokens
        self.synthetic = synthetic
        self.collateral = collateral
        self.debt = debt
        self.health = health
        self.journal = journal
        self.events = events

    # ========================================================================
    # CHECKS
    # ========================================================================

    def require_allowed(self, asset: AssetId) -> CollateralToken:
        """Return the token for asset, or raise AssetNotAllowed."""
        try:
            return self.tokens[asset]
        except (KeyError, TypeError):
            raise AssetNotAllowed(asset) from None

    # ========================================================================
    # PRIMITIVES
    # ========================================================================

    def deposit_collateral(self, user: Address, asset: AssetId, amount: int) -> None:
        """
        Deposit amount of asset as user's collateral.

        The ledger is credited and CollateralDeposited emitted before the
        tokens are pulled from user into custody.

        Raises:
            InvalidAmount: amount is not a positive int.
            AssetNotAllowed: asset is not registered.
            TransferFailed: the token refused the transfer.
        """
        with self.journal.atomic("deposit_collateral", {"user": user, "asset": asset, "amount": amount}):
            require_positive(amount)
            token = self.require_allowed(asset)

            self.collateral.increase(user, asset, amount)
            self.events.emit(EVENT_COLLATERAL_DEPOSITED, user=user, asset=asset, amount=amount)

            if not token.transfer_from(self.address, user, self.address, amount):
                raise TransferFailed(f"{asset} transfer from {user} failed")
            self.journal.record(partial(self._send_back, token, user, amount))

    def mint_debt(self, user: Address, amount: int) -> None:
        """
        Mint amount of synthetic token to user against their collateral.

        The debt increase is included in the health check; the token is
        minted last.

        Raises:
            InvalidAmount: amount is not a positive int.
            HealthFactorBroken: the new debt would leave user undercollateralized.
            MintFailed: the token reported a failed mint.
        """
        with self.journal.atomic("mint_debt", {"user": user, "amount": amount}):
            require_positive(amount)

            self.debt.increase(user, amount)
            self.events.emit(EVENT_DEBT_MINTED, user=user, amount=amount)
            self.health.assert_healthy(user)

            if not self.synthetic.mint(self.address, user, amount):
                raise MintFailed(f"mint of {amount} to {user} failed")
            self.journal.seal()

    def redeem_collateral(self, user: Address, asset: AssetId, amount: int, recipient: Optional[Address] = None) -> None:
        """
        Withdraw amount of user's collateral to recipient (default: user).

        A redeem that would break user's health factor reverts entirely. The
        check runs on the debited ledger before any collateral leaves custody.

        Raises:
            InvalidAmount, AssetNotAllowed
            InsufficientBalance: amount exceeds user's recorded collateral.
            TransferFailed: the token refused the transfer.
            HealthFactorBroken: user would be undercollateralized.
        """
        if recipient is None:
            recipient = user
        with self.journal.atomic("redeem_collateral", {"user": user, "asset": asset, "amount": amount, "to": recipient}):
            require_positive(amount)
            token = self._debit_collateral(asset, amount, user, recipient)
            self.health.assert_healthy(user)
            self._send_collateral(token, asset, amount, recipient)

    def burn_debt(self, amount: int, debt_owner: Address, payer: Optional[Address] = None) -> None:
        """
        Repay amount of debt_owner's debt with tokens pulled from payer.

        payer defaults to debt_owner. Separating the two lets a liquidator
        repay someone else's debt. No health check here: burning only helps
        debt_owner, and payer's own position is not touched.

        Raises:
            InvalidAmount
            InsufficientBalance: amount exceeds debt_owner's recorded debt.
            TransferFailed: payer's tokens could not be pulled into custody.
        """
        if payer is None:
            payer = debt_owner
        with self.journal.atomic("burn_debt", {"owner": debt_owner, "payer": payer, "amount": amount}):
            require_positive(amount)
            self._debit_debt(amount, debt_owner, payer)
            self._collect_and_burn(amount, payer)

    # ========================================================================
    # COMPOSITES
    # ========================================================================

    def deposit_and_mint(self, user: Address, asset: AssetId, collateral_amount: int, debt_amount: int) -> None:
        """Deposit collateral then mint debt, as one operation."""
        with self.journal.atomic("deposit_and_mint", {
            "user": user, "asset": asset, "collateral": collateral_amount, "debt": debt_amount,
        }):
            self.deposit_collateral(user, asset, collateral_amount)
            self.mint_debt(user, debt_amount)

    def redeem_and_burn(self, user: Address, asset: AssetId, collateral_amount: int, debt_amount: int) -> None:
        """
        Burn debt then redeem collateral, as one operation.

        Burning first means the redeem's health check sees the reduced debt.
        """
        with self.journal.atomic("redeem_and_burn", {
            "user": user, "asset": asset, "collateral": collateral_amount, "debt": debt_amount,
        }):
            self.burn_debt(debt_amount, user, user)
            self.redeem_collateral(user, asset, collateral_amount, user)

    # ========================================================================
    # EFFECTS (shared with liquidation; callers provide the atomic scope)
    # ========================================================================

    def _debit_collateral(self, asset: AssetId, amount: int, src: Address, dst: Address) -> CollateralToken:
        token = self.require_allowed(asset)
        self.collateral.decrease(src, asset, amount)
        self.events.emit(EVENT_COLLATERAL_REDEEMED, redeemed_from=src, redeemed_to=dst, asset=asset, amount=amount)
        return token

    def _debit_debt(self, amount: int, debt_owner: Address, payer: Address) -> None:
        self.debt.decrease(debt_owner, amount)
        self.events.emit(EVENT_DEBT_BURNED, debt_owner=debt_owner, payer=payer, amount=amount)

    # ========================================================================
    # INTERACTIONS
    # ========================================================================

    def _send_collateral(self, token: CollateralToken, asset: AssetId, amount: int, dst: Address) -> None:
        """Transfer collateral out of custody. Cannot be taken back, so it seals the scope."""
        if not token.transfer(self.address, dst, amount):
            raise TransferFailed(f"{asset} transfer to {dst} failed")
        self.journal.seal()

    def _collect_and_burn(self, amount: int, payer: Address) -> None:
        """Pull amount of synthetic token from payer into custody and burn it."""
        if not self.synthetic.transfer_from(self.address, payer, self.address, amount):
            raise TransferFailed(f"{self.synthetic.symbol} transfer from {payer} failed")
        self.journal.record(partial(self._send_back, self.synthetic, payer, amount))
        self.synthetic.burn(self.address, amount)
        self.journal.record(partial(self._mint_back, amount))

    # Compensations, run by the journal when a later step fails.

    def _send_back(self, token, to: Address, amount: int) -> None:
        if not token.transfer(self.address, to, amount):
            raise TransferFailed(f"{token.symbol} refund of {amount} to {to} failed")

    def _mint_back(self, amount: int) -> None:
        if not self.synthetic.mint(self.address, self.address, amount):
            raise MintFailed(f"re-mint of {amount} burned {self.synthetic.symbol} failed")
