"""
helpers.py - Test helpers for the collateral engine

Provides:
- Scenario constants (prices, amounts, accounts)
- System: a wired engine with its tokens and feeds
- build_system() / fund(): setup shortcuts
- Misbehaving collaborators: tokens that refuse transfers or mints, a
  token that calls back into the engine mid-transfer, and a token that
  blocks inside transfer_from until released
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional
import threading

from collateral_engine import (
    CollateralEngine, EngineParameters, MockPriceFeed, SimpleToken, StableCoin,
)


# Prices (8-decimal feeds)
ETH_USD_PRICE = 2000 * 10**8
BTC_USD_PRICE = 1000 * 10**8
CRASHED_ETH_USD_PRICE = 18 * 10**8

# Amounts (18 decimals)
ONE = 10**18
COLLATERAL_AMOUNT = 10 * ONE
AMOUNT_TO_MINT = 100 * ONE
COLLATERAL_TO_COVER = 20 * ONE
STARTING_BALANCE = 1_000 * ONE

USER = "alice"
OTHER_USER = "bob"
LIQUIDATOR = "liquidator"


@dataclass
class System:
    """An engine with the collaborators it was built with."""
    engine: CollateralEngine
    weth: SimpleToken
    wbtc: SimpleToken
    eth_usd: MockPriceFeed
    btc_usd: MockPriceFeed
    dsc: StableCoin


def build_system(
    weth: Optional[SimpleToken] = None,
    dsc: Optional[StableCoin] = None,
    parameters: Optional[EngineParameters] = None,
) -> System:
    """WETH and WBTC collateral at $2000 and $1000, engine owning the stablecoin."""
    weth = weth or SimpleToken("WETH", "Wrapped Ether")
    wbtc = SimpleToken("WBTC", "Wrapped Bitcoin")
    eth_usd = MockPriceFeed(ETH_USD_PRICE, description="ETH / USD")
    btc_usd = MockPriceFeed(BTC_USD_PRICE, description="BTC / USD")
    dsc = dsc or StableCoin()
    engine = CollateralEngine(
        [weth, wbtc], [eth_usd, btc_usd], dsc,
        parameters=parameters, verbose=False,
    )
    dsc.transfer_ownership(dsc.owner, engine.address)
    return System(engine, weth, wbtc, eth_usd, btc_usd, dsc)


def fund(token: SimpleToken, engine: CollateralEngine, account: str, amount: int = STARTING_BALANCE) -> None:
    """Give account tokens and approve the engine to pull all of them."""
    token.mint_to(account, amount)
    token.approve(account, engine.address, token.allowance(account, engine.address) + amount)


# ============================================================================
# MISBEHAVING COLLABORATORS
# ============================================================================

class RefusingToken(SimpleToken):
    """Token whose transfers report failure on demand."""

    def __init__(self, symbol: str = "WETH", refuse_transfer: bool = False, refuse_transfer_from: bool = False):
        super().__init__(symbol)
        self.refuse_transfer = refuse_transfer
        self.refuse_transfer_from = refuse_transfer_from

    def transfer(self, sender, recipient, amount):
        if self.refuse_transfer:
            return False
        return super().transfer(sender, recipient, amount)

    def transfer_from(self, spender, owner, recipient, amount):
        if self.refuse_transfer_from:
            return False
        return super().transfer_from(spender, owner, recipient, amount)


class RefusingStableCoin(StableCoin):
    """Stablecoin whose mint reports failure without minting."""

    def mint(self, caller, to, amount):
        self._require_owner(caller)
        return False


class CallbackToken(SimpleToken):
    """
    Token that invokes a one-shot hook before completing the next transfer().

    With refuse_after_hook set, that transfer then reports failure.
    """

    def __init__(self, symbol: str = "WETH"):
        super().__init__(symbol)
        self.on_transfer: Optional[Callable[[], None]] = None
        self.refuse_after_hook = False

    def transfer(self, sender, recipient, amount):
        hook, self.on_transfer = self.on_transfer, None
        if hook is not None:
            hook()
            if self.refuse_after_hook:
                return False
        return super().transfer(sender, recipient, amount)


class BlockingToken(SimpleToken):
    """Token whose transfer_from parks the calling thread until released, then refuses."""

    def __init__(self, symbol: str = "WETH"):
        super().__init__(symbol)
        self.entered = threading.Event()
        self.release = threading.Event()

    def transfer_from(self, spender, owner, recipient, amount):
        self.entered.set()
        self.release.wait(10)
        return False
