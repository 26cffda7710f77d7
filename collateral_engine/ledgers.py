"""
ledgers.py - Collateral and debt balance stores

Two dumb keyed-balance stores. They know nothing about prices, health
factors or tokens; invariant enforcement lives in PositionManager and
LiquidationEngine. The only rule they keep is that no balance ever goes
negative: decrease() raises InsufficientBalance instead.

Accounts are created implicitly on first increase. Zero balances persist
as zero and read back as zero for accounts never seen.

Given a journal, every increase/decrease records its inverse so a failed
engine operation can take it back. Undo steps apply the opposite delta to
the one key that was written, so rolling back never touches other accounts
and an entry created by the undone write disappears again.
"""

from __future__ import annotations
from collections import defaultdict
from functools import partial
from typing import Dict, Iterable, Optional, Tuple

from .core import (
    Address, AssetId, CollateralBalances, InsufficientBalance,
)
from .journal import Journal
from .pricing import PriceConverter


class CollateralLedger:
    """
    Per-user, per-asset deposited collateral.

    Keeps an inverted index asset -> {user -> amount} of non-zero positions
    so per-asset totals never scan every account.
    """

    def __init__(self, journal: Optional[Journal] = None):
        self._balances: Dict[Address, Dict[AssetId, int]] = {}
        self._positions_by_asset: Dict[AssetId, Dict[Address, int]] = defaultdict(dict)
        self.journal = journal

    def get(self, user: Address, asset: AssetId) -> int:
        return self._balances.get(user, {}).get(asset, 0)

    def balances_of(self, user: Address) -> CollateralBalances:
        """All recorded balances of a user (including zeros)."""
        return dict(self._balances.get(user, {}))

    def increase(self, user: Address, asset: AssetId, amount: int) -> int:
        """Credit amount of asset to user. Returns the new balance."""
        created = asset not in self._balances.get(user, {})
        new_balance = self.get(user, asset) + amount
        self._set(user, asset, new_balance)
        self._record(user, asset, -amount, created)
        return new_balance

    def decrease(self, user: Address, asset: AssetId, amount: int) -> int:
        """
        Debit amount of asset from user.

        Returns:
            The new balance.

        Raises:
            InsufficientBalance: If amount exceeds the current balance. The
                ledger is left unchanged.
        """
        current = self.get(user, asset)
        if amount > current:
            raise InsufficientBalance(user, f"collateral {asset}", amount, current)
        new_balance = current - amount
        self._set(user, asset, new_balance)
        self._record(user, asset, amount, False)
        return new_balance

    def _record(self, user: Address, asset: AssetId, delta: int, created: bool) -> None:
        if self.journal is not None:
            self.journal.record(partial(self._undo, user, asset, delta, created))

    def _undo(self, user: Address, asset: AssetId, delta: int, created: bool) -> None:
        restored = self.get(user, asset) + delta
        self._set(user, asset, restored)
        if created and restored == 0:
            held = self._balances[user]
            del held[asset]
            if not held:
                del self._balances[user]

    def _set(self, user: Address, asset: AssetId, amount: int) -> None:
        self._balances.setdefault(user, {})[asset] = amount
        if amount:
            self._positions_by_asset[asset][user] = amount
        else:
            self._positions_by_asset[asset].pop(user, None)

    def total_usd_value(
        self,
        user: Address,
        converter: PriceConverter,
        assets: Iterable[AssetId],
    ) -> int:
        """
        USD value of everything user holds across the given assets.

        Zero balances are skipped without reading their oracle.
        """
        total = 0
        held = self._balances.get(user, {})
        for asset in assets:
            amount = held.get(asset, 0)
            if amount:
                total += converter.to_usd_value(asset, amount)
        return total

    def get_positions(self, asset: AssetId) -> Dict[Address, int]:
        """Non-zero positions in asset, by user."""
        return dict(self._positions_by_asset.get(asset, {}))

    def total(self, asset: AssetId) -> int:
        """Total amount of asset recorded across all users."""
        positions = self._positions_by_asset.get(asset, {})
        return sum(positions[u] for u in sorted(positions))

    def users(self) -> Tuple[Address, ...]:
        return tuple(sorted(self._balances))

    def __repr__(self):
        return f"CollateralLedger({len(self._balances)} accounts)"


class DebtLedger:
    """Per-user minted debt, at the synthetic token's precision."""

    def __init__(self, journal: Optional[Journal] = None):
        self._debts: Dict[Address, int] = {}
        self.journal = journal

    def get(self, user: Address) -> int:
        return self._debts.get(user, 0)

    def increase(self, user: Address, amount: int) -> int:
        created = user not in self._debts
        new_debt = self.get(user) + amount
        self._debts[user] = new_debt
        self._record(user, -amount, created)
        return new_debt

    def decrease(self, user: Address, amount: int) -> int:
        """
        Reduce user's debt by amount.

        Raises:
            InsufficientBalance: If amount exceeds the recorded debt.
        """
        current = self.get(user)
        if amount > current:
            raise InsufficientBalance(user, "debt", amount, current)
        self._debts[user] = current - amount
        self._record(user, amount, False)
        return current - amount

    def _record(self, user: Address, delta: int, created: bool) -> None:
        if self.journal is not None:
            self.journal.record(partial(self._undo, user, delta, created))

    def _undo(self, user: Address, delta: int, created: bool) -> None:
        restored = self.get(user) + delta
        if created and restored == 0:
            del self._debts[user]
        else:
            self._debts[user] = restored

    def total(self) -> int:
        """Total outstanding debt across all users."""
        return sum(self._debts[u] for u in sorted(self._debts))

    def users(self) -> Tuple[Address, ...]:
        return tuple(sorted(self._debts))

    def __repr__(self):
        return f"DebtLedger({len(self._debts)} accounts, total={self.total()})"
