"""
conftest.py - Shared pytest fixtures for collateral engine tests

Provides the standard scenario at each stage:
- system: engine with WETH/WBTC collateral, nothing deposited
- deposited: alice has deposited 10 WETH
- minted: alice has deposited 10 WETH and minted 100 DSC
- liquidated: ETH crashed to $18 and the liquidator covered all of alice's debt
"""

import pytest

from tests.helpers import (
    System, build_system, fund,
    USER, LIQUIDATOR,
    COLLATERAL_AMOUNT, AMOUNT_TO_MINT, COLLATERAL_TO_COVER,
    CRASHED_ETH_USD_PRICE,
)


@pytest.fixture
def system() -> System:
    """Fresh engine; alice and the liquidator hold WETH and have approved the engine."""
    s = build_system()
    fund(s.weth, s.engine, USER)
    fund(s.wbtc, s.engine, USER)
    fund(s.weth, s.engine, LIQUIDATOR)
    return s


@pytest.fixture
def engine(system):
    return system.engine


@pytest.fixture
def deposited(system) -> System:
    system.engine.deposit_collateral(USER, "WETH", COLLATERAL_AMOUNT)
    return system


@pytest.fixture
def minted(system) -> System:
    system.engine.deposit_and_mint(USER, "WETH", COLLATERAL_AMOUNT, AMOUNT_TO_MINT)
    return system


@pytest.fixture
def crashed(minted) -> System:
    """alice's position after ETH drops to $18 (health factor 0.9)."""
    minted.eth_usd.update_answer(CRASHED_ETH_USD_PRICE)
    return minted


@pytest.fixture
def liquidator_ready(crashed) -> System:
    """The liquidator has opened a healthy position and holds 100 DSC to repay with."""
    engine = crashed.engine
    engine.deposit_and_mint(LIQUIDATOR, "WETH", COLLATERAL_TO_COVER, AMOUNT_TO_MINT)
    crashed.dsc.approve(LIQUIDATOR, engine.address, AMOUNT_TO_MINT)
    return crashed


@pytest.fixture
def liquidated(liquidator_ready) -> System:
    liquidator_ready.engine.liquidate(LIQUIDATOR, USER, "WETH", AMOUNT_TO_MINT)
    return liquidator_ready
