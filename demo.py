#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Collateral Engine Step by Step

This is a pedagogical demonstration of how an over-collateralized synthetic
token works. Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation   - The engine, collateral deposits, minting debt
  4-5:   Solvency     - Rejected operations, atomicity, redeeming
  6-8:   Liquidation  - A price crash, a liquidator, the payout
  9-10:  Audit        - The event log, the custody check

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from decimal import Decimal
import sys

from collateral_engine import (
    CollateralEngine, SimpleToken, StableCoin, MockPriceFeed,
    EngineError, MAX_HEALTH_FACTOR, PRECISION,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

ONE = 10**18


@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    # Prices (8-decimal feeds)
    eth_usd_price: int = 2000 * 10**8
    btc_usd_price: int = 1000 * 10**8
    crashed_eth_usd_price: int = 18 * 10**8

    # Alice's position
    alice_collateral: int = 10 * ONE
    alice_mint: int = 100 * ONE

    # The liquidator's own position
    liquidator_collateral: int = 20 * ONE
    liquidator_mint: int = 100 * ONE

    faucet_amount: int = 1_000 * ONE


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def fmt(amount: int) -> str:
    """Render an 18-decimal fixed-point amount."""
    return f"{Decimal(amount) / Decimal(PRECISION):,.6f}"


def fmt_hf(health_factor: int) -> str:
    if health_factor == MAX_HEALTH_FACTOR:
        return "MAX (no debt)"
    return fmt(health_factor)


def show_account(engine: CollateralEngine, user: str):
    info = engine.get_account_information(user)
    print(f"{user:<12} debt={fmt(info.debt):>14}  "
          f"collateral=${fmt(info.collateral_value_usd):>14}  "
          f"health={fmt_hf(engine.get_health_factor(user))}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_setup():
    """Create tokens, price feeds and the engine."""
    step_header(1, "The Engine",
        "An engine owns the ledgers; tokens and oracles are collaborators.")

    print("""
    The engine needs three kinds of collaborators:

    1. COLLATERAL TOKENS - What users lock up (WETH, WBTC)
    2. PRICE FEEDS       - One USD oracle per collateral token
    3. SYNTHETIC TOKEN   - The stablecoin it mints (DSC), which it must own

    Every amount is an integer with 18 decimals: 1 WETH is 10**18.
    """)

    wait_for_enter()

    weth = SimpleToken("WETH", "Wrapped Ether")
    wbtc = SimpleToken("WBTC", "Wrapped Bitcoin")
    eth_usd = MockPriceFeed(CONFIG.eth_usd_price, description="ETH / USD")
    btc_usd = MockPriceFeed(CONFIG.btc_usd_price, description="BTC / USD")
    dsc = StableCoin()

    print(">>> engine = CollateralEngine([weth, wbtc], [eth_usd, btc_usd], dsc)")
    engine = CollateralEngine([weth, wbtc], [eth_usd, btc_usd], dsc, verbose=True)
    print(">>> dsc.transfer_ownership(None, engine.address)")
    dsc.transfer_ownership(None, engine.address)

    section_header("Engine")
    print(f"Collateral:           {engine.get_collateral_tokens()}")
    print(f"Liquidation threshold: {engine.liquidation_threshold}% of collateral value")
    print(f"Liquidation bonus:     {engine.liquidation_bonus}%")
    print(f"DSC owner:             {dsc.owner}")

    for account in ("alice", "liquidator"):
        weth.mint_to(account, CONFIG.faucet_amount)
        weth.approve(account, engine.address, CONFIG.faucet_amount)
    print(f"\nalice and liquidator each hold {fmt(CONFIG.faucet_amount)} WETH and approved the engine.")

    return engine, weth, eth_usd, dsc


def step_02_deposit(engine: CollateralEngine, weth: SimpleToken):
    """Deposit collateral."""
    step_header(2, "Depositing Collateral",
        "Collateral moves into custody; the ledger records who owns it.")

    wait_for_enter()

    print(f'>>> engine.deposit_collateral("alice", "WETH", {CONFIG.alice_collateral})')
    engine.deposit_collateral("alice", "WETH", CONFIG.alice_collateral)

    section_header("Custody")
    print(f"Engine holds:      {fmt(weth.balance_of(engine.address))} WETH")
    print(f"Ledger says alice: {fmt(engine.get_collateral_balance_of_user('alice', 'WETH'))} WETH")
    show_account(engine, "alice")

    section_header("Key Insight")
    print("""
    Without debt the health factor is the MAX sentinel. Depositing never
    needs a solvency check: it can only make a position safer.
    """)


def step_03_mint(engine: CollateralEngine, dsc: StableCoin):
    """Mint DSC against collateral."""
    step_header(3, "Minting Debt",
        "Debt is allowed while collateral * threshold >= debt.")

    wait_for_enter()

    print(f'>>> engine.mint_debt("alice", {CONFIG.alice_mint})')
    engine.mint_debt("alice", CONFIG.alice_mint)

    section_header("Position")
    show_account(engine, "alice")
    print(f"alice's DSC: {fmt(dsc.balance_of('alice'))}")

    section_header("The Math")
    info = engine.get_account_information("alice")
    print(f"""
    health = (collateral * {engine.liquidation_threshold} / {engine.liquidation_precision}) / debt
           = ({fmt(info.collateral_value_usd)} * 0.5) / {fmt(info.debt)}
           = {fmt(engine.get_health_factor('alice'))}

    Anything >= 1.0 is healthy.
    """)


# ============================================================================
# PHASE 2: SOLVENCY (Steps 4-5)
# ============================================================================

def step_04_rejected_mint(engine: CollateralEngine, dsc: StableCoin):
    """Try to mint past the threshold."""
    step_header(4, "A Rejected Mint",
        "Operations that would break solvency revert completely.")

    wait_for_enter()

    too_much = 10_000 * ONE
    before_debt = engine.get_debt("alice")
    before_supply = dsc.total_supply()
    before_events = len(engine.events)

    print(f'>>> engine.mint_debt("alice", {too_much})')
    try:
        engine.mint_debt("alice", too_much)
    except EngineError as exc:
        print(f"Raised {type(exc).__name__}: {exc}")

    section_header("Nothing Changed")
    print(f"Debt:     {fmt(before_debt)} -> {fmt(engine.get_debt('alice'))}")
    print(f"Supply:   {fmt(before_supply)} -> {fmt(dsc.total_supply())}")
    print(f"Events:   {before_events} -> {len(engine.events)}")

    section_header("Key Insight")
    print("""
    The debt was recorded, checked and then rolled back together with the
    event it emitted. Every operation is all-or-nothing.
    """)


def step_05_redeem(engine: CollateralEngine):
    """Redeem some collateral, then try to redeem too much."""
    step_header(5, "Redeeming Collateral",
        "Collateral can leave only while the position stays healthy.")

    wait_for_enter()

    print('>>> engine.redeem_collateral("alice", "WETH", 1 WETH)')
    engine.redeem_collateral("alice", "WETH", ONE)
    show_account(engine, "alice")

    print('\n>>> engine.redeem_collateral("alice", "WETH", all remaining)')
    try:
        engine.redeem_collateral("alice", "WETH", engine.get_collateral_balance_of_user("alice", "WETH"))
    except EngineError as exc:
        print(f"Raised {type(exc).__name__}: {exc}")
    show_account(engine, "alice")

    print('\n>>> engine.deposit_collateral("alice", "WETH", 1 WETH)   # put it back')
    engine.deposit_collateral("alice", "WETH", ONE)


# ============================================================================
# PHASE 3: LIQUIDATION (Steps 6-8)
# ============================================================================

def step_06_crash(engine: CollateralEngine, eth_usd: MockPriceFeed):
    """Crash the ETH price."""
    step_header(6, "Price Crash",
        "Health factors move with the oracle, not with user actions.")

    wait_for_enter()

    print(f">>> eth_usd.update_answer({CONFIG.crashed_eth_usd_price})")
    eth_usd.update_answer(CONFIG.crashed_eth_usd_price)
    show_account(engine, "alice")

    section_header("Key Insight")
    print("""
    alice did nothing, yet her health factor is below 1.0. Her position
    is now open to liquidation by anyone holding DSC.
    """)


def step_07_liquidator(engine: CollateralEngine, dsc: StableCoin):
    """A liquidator acquires DSC through their own position."""
    step_header(7, "The Liquidator",
        "Liquidators repay debt with DSC, so they need some first.")

    wait_for_enter()

    print(">>> engine.deposit_and_mint('liquidator', 'WETH', 20 WETH, 100 DSC)")
    engine.deposit_and_mint("liquidator", "WETH", CONFIG.liquidator_collateral, CONFIG.liquidator_mint)
    print(">>> dsc.approve('liquidator', engine.address, 100 DSC)")
    dsc.approve("liquidator", engine.address, CONFIG.liquidator_mint)
    show_account(engine, "liquidator")

    quote = engine.quote_liquidation("WETH", engine.get_debt("alice"))
    section_header("Quote for covering all of alice's debt")
    print(f"Collateral equivalent: {fmt(quote.collateral_equivalent)} WETH")
    print(f"Bonus ({engine.liquidation_bonus}%):           {fmt(quote.bonus_collateral)} WETH")
    print(f"Seized in total:       {fmt(quote.total_collateral)} WETH")


def step_08_liquidate(engine: CollateralEngine, weth: SimpleToken):
    """Run the liquidation."""
    step_header(8, "Liquidation",
        "The liquidator repays debt and receives collateral plus a bonus.")

    wait_for_enter()

    weth_before = weth.balance_of("liquidator")
    print(">>> engine.liquidate('liquidator', 'alice', 'WETH', 100 DSC)")
    engine.liquidate("liquidator", "alice", "WETH", engine.get_debt("alice"))

    section_header("After")
    show_account(engine, "alice")
    show_account(engine, "liquidator")
    print(f"\nLiquidator received {fmt(weth.balance_of('liquidator') - weth_before)} WETH")
    print(f"alice keeps {fmt(engine.get_collateral_balance_of_user('alice', 'WETH'))} WETH of collateral")

    print("\n>>> engine.liquidate('liquidator', 'alice', 'WETH', 1)   # again")
    try:
        engine.liquidate("liquidator", "alice", "WETH", 1)
    except EngineError as exc:
        print(f"Raised {type(exc).__name__}: {exc}")


# ============================================================================
# PHASE 4: AUDIT (Steps 9-10)
# ============================================================================

def step_09_event_log(engine: CollateralEngine):
    """Walk the event log."""
    step_header(9, "The Event Log",
        "Every applied operation leaves events; rejected ones leave none.")

    wait_for_enter()

    for event in engine.events:
        print(f"  {event}")


def step_10_custody(engine: CollateralEngine):
    """Verify the books against the tokens."""
    step_header(10, "Custody Check",
        "Ledger totals must equal what the tokens say the engine holds.")

    wait_for_enter()

    result = engine.verify_custody()
    print(f"Valid:          {result['valid']}")
    for asset, amount in result['collateral'].items():
        print(f"  {asset:<6} recorded {fmt(amount)}")
    print(f"Debt:           {fmt(result['debt'])}")
    print(f"Discrepancies:  {result['discrepancies']}")
    print(f"Collateral USD: ${fmt(engine.total_collateral_value())}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       COLLATERAL ENGINE - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    engine, weth, eth_usd, dsc = step_01_setup()
    wait_for_enter()

    step_02_deposit(engine, weth)
    step_03_mint(engine, dsc)
    wait_for_enter()

    step_04_rejected_mint(engine, dsc)
    step_05_redeem(engine)
    wait_for_enter()

    step_06_crash(engine, eth_usd)
    step_07_liquidator(engine, dsc)
    step_08_liquidate(engine, weth)
    wait_for_enter()

    step_09_event_log(engine)
    step_10_custody(engine)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    You've learned:
      - Collateral is held in custody and recorded per user
      - Debt is bounded by the liquidation threshold
      - Failed operations leave no trace
      - Price drops expose positions to liquidation, paid with a bonus

    Next steps:
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
