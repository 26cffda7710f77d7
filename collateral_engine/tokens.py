"""
tokens.py - In-memory token collaborators

Reference implementations of the collaborator protocols in core.py, used by
the tests, the demo and simulations:

- SimpleToken: fungible token with balances and allowances
- StableCoin: ownable synthetic token, mintable/burnable only by its owner

Transfers that cannot be honored return False rather than raising, matching
how the engine expects collateral tokens to report failure. StableCoin's
mint/burn guards raise TokenError subclasses.

The engine never reaches into their state: it undoes its own token
effects through these same public calls.
"""

from __future__ import annotations
from typing import Dict, Optional, Tuple

from .core import Address, ZERO_ADDRESS


# ============================================================================
# EXCEPTIONS
# ============================================================================

class TokenError(Exception):
    """Base exception for token collaborator errors."""
    pass


class MustBeMoreThanZero(TokenError):
    """Raised when minting or burning a non-positive amount."""
    pass


class BurnAmountExceedsBalance(TokenError):
    """Raised when burning more than the caller holds."""
    pass


class NotZeroAddress(TokenError):
    """Raised when minting to the zero address."""
    pass


class NotOwner(TokenError):
    """Raised when someone other than the owner mints or burns."""
    pass


# ============================================================================
# FUNGIBLE TOKEN
# ============================================================================

class SimpleToken:
    """
    Fungible token with balances and allowances.

    transfer_from() spends the spender's allowance unless the spender is
    moving its own funds.

    Example:
        weth = SimpleToken("WETH", "Wrapped Ether")
        weth.mint_to("alice", 10 * 10**18)
        weth.approve("alice", "engine", 10 * 10**18)
        weth.transfer_from("engine", "alice", "engine", 10 * 10**18)  # True
    """

    def __init__(self, symbol: str, name: str = "", decimals: int = 18):
        self.symbol = symbol
        self.name = name or symbol
        self.decimals = decimals
        self._balances: Dict[Address, int] = {}
        self._allowances: Dict[Tuple[Address, Address], int] = {}
        self._total_supply = 0

    def balance_of(self, account: Address) -> int:
        return self._balances.get(account, 0)

    def total_supply(self) -> int:
        return self._total_supply

    def allowance(self, owner: Address, spender: Address) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: Address, spender: Address, amount: int) -> bool:
        self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, sender: Address, recipient: Address, amount: int) -> bool:
        """Move amount from sender to recipient. False if sender's balance is short."""
        if amount < 0 or self.balance_of(sender) < amount:
            return False
        self._move(sender, recipient, amount)
        return True

    def transfer_from(self, spender: Address, owner: Address, recipient: Address, amount: int) -> bool:
        """Move amount from owner to recipient on behalf of spender. False if balance or allowance is short."""
        if amount < 0 or self.balance_of(owner) < amount:
            return False
        if spender != owner:
            allowed = self.allowance(owner, spender)
            if allowed < amount:
                return False
            self._allowances[(owner, spender)] = allowed - amount
        self._move(owner, recipient, amount)
        return True

    def mint_to(self, account: Address, amount: int) -> None:
        """Create amount out of thin air for account. Test faucet."""
        self._balances[account] = self.balance_of(account) + amount
        self._total_supply += amount

    def _move(self, src: Address, dst: Address, amount: int) -> None:
        self._balances[src] = self.balance_of(src) - amount
        self._balances[dst] = self.balance_of(dst) + amount

    def _destroy(self, account: Address, amount: int) -> None:
        self._balances[account] = self.balance_of(account) - amount
        self._total_supply -= amount

    def __repr__(self):
        return f"{type(self).__name__}({self.symbol}, supply={self._total_supply})"


# ============================================================================
# SYNTHETIC TOKEN
# ============================================================================

class StableCoin(SimpleToken):
    """
    USD-pegged synthetic token owned by the engine that mints it.

    Only the owner may mint or burn. burn() destroys tokens from the owner's
    own balance, so the engine pulls tokens into custody first.
    """

    def __init__(self, symbol: str = "DSC", name: str = "Decentralized Stable Coin", owner: Optional[Address] = None):
        super().__init__(symbol, name, decimals=18)
        self.owner = owner

    def transfer_ownership(self, caller: Address, new_owner: Address) -> None:
        """Hand minting rights to new_owner. An unowned token may be claimed by anyone."""
        if self.owner is not None and caller != self.owner:
            raise NotOwner(f"{caller} is not the owner of {self.symbol}")
        if not new_owner or new_owner == ZERO_ADDRESS:
            raise NotZeroAddress("new owner cannot be the zero address")
        self.owner = new_owner

    def _require_owner(self, caller: Address) -> None:
        if caller != self.owner:
            raise NotOwner(f"{caller} is not the owner of {self.symbol}")

    def mint(self, caller: Address, to: Address, amount: int) -> bool:
        self._require_owner(caller)
        if not to or to == ZERO_ADDRESS:
            raise NotZeroAddress("cannot mint to the zero address")
        if amount <= 0:
            raise MustBeMoreThanZero(f"mint amount must be more than zero, got {amount}")
        self.mint_to(to, amount)
        return True

    def burn(self, caller: Address, amount: int) -> None:
        self._require_owner(caller)
        if amount <= 0:
            raise MustBeMoreThanZero(f"burn amount must be more than zero, got {amount}")
        if self.balance_of(caller) < amount:
            raise BurnAmountExceedsBalance(
                f"burn of {amount} exceeds balance {self.balance_of(caller)}"
            )
        self._destroy(caller, amount)
