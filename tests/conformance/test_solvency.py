"""
Solvency Conformance Tests

INVARIANT: At fixed prices, every successful operation leaves the system
over-collateralized and the books in agreement with the tokens.

    ∀ sequence of operations at constant prices:
        ∀ user u with debt: health_factor(u) ≥ MIN_HEALTH_FACTOR
        Σ collateral value ≥ synthetic supply / threshold share
        collateral ledger totals == engine token balances
        debt ledger total == synthetic supply
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from collateral_engine import EngineError, MIN_HEALTH_FACTOR

from tests.helpers import build_system, fund, USER, OTHER_USER, ONE


USERS = [USER, OTHER_USER]

operation = st.one_of(
    st.tuples(st.just("deposit"), st.sampled_from(USERS), st.sampled_from(["WETH", "WBTC"]),
              st.integers(min_value=0, max_value=20 * ONE)),
    st.tuples(st.just("mint"), st.sampled_from(USERS), st.just(None),
              st.integers(min_value=0, max_value=20_000 * ONE)),
    st.tuples(st.just("redeem"), st.sampled_from(USERS), st.sampled_from(["WETH", "WBTC"]),
              st.integers(min_value=0, max_value=20 * ONE)),
    st.tuples(st.just("burn"), st.sampled_from(USERS), st.just(None),
              st.integers(min_value=0, max_value=20_000 * ONE)),
)


def apply(engine, op):
    kind, user, asset, amount = op
    if kind == "deposit":
        engine.deposit_collateral(user, asset, amount)
    elif kind == "mint":
        engine.mint_debt(user, amount)
    elif kind == "redeem":
        engine.redeem_collateral(user, asset, amount)
    else:
        engine.burn_debt(amount, user)


def funded_system():
    s = build_system()
    for user in USERS:
        fund(s.weth, s.engine, user)
        fund(s.wbtc, s.engine, user)
        s.dsc.approve(user, s.engine.address, 10**40)
    return s


class TestSolvencyProperties:

    @given(st.lists(operation, max_size=30))
    @settings(max_examples=100, deadline=None)
    def test_random_sequences_stay_solvent(self, ops):
        """
        PROPERTY: No sequence of user operations at constant prices breaks solvency.
        """
        s = funded_system()
        engine = s.engine

        for op in ops:
            try:
                apply(engine, op)
            except EngineError:
                pass

            for user in USERS:
                if engine.get_debt(user):
                    assert engine.get_health_factor(user) >= MIN_HEALTH_FACTOR

            supply = s.dsc.total_supply()
            threshold_value = engine.total_collateral_value() * engine.liquidation_threshold // engine.liquidation_precision
            assert threshold_value >= supply

            custody = engine.verify_custody()
            assert custody['valid'], custody['discrepancies']

    @given(st.lists(operation, max_size=30))
    @settings(max_examples=50, deadline=None)
    def test_events_match_ledgers(self, ops):
        """
        PROPERTY: Replaying the event log reproduces the ledgers.
        """
        s = funded_system()
        engine = s.engine
        for op in ops:
            try:
                apply(engine, op)
            except EngineError:
                pass

        collateral = {}
        debt = {}
        for event in engine.events:
            data = event.data
            if event.event_type == "CollateralDeposited":
                key = (data["user"], data["asset"])
                collateral[key] = collateral.get(key, 0) + data["amount"]
            elif event.event_type == "CollateralRedeemed":
                key = (data["redeemed_from"], data["asset"])
                collateral[key] = collateral.get(key, 0) - data["amount"]
            elif event.event_type == "DebtMinted":
                debt[data["user"]] = debt.get(data["user"], 0) + data["amount"]
            elif event.event_type == "DebtBurned":
                debt[data["debt_owner"]] = debt.get(data["debt_owner"], 0) - data["amount"]

        for user in USERS:
            assert debt.get(user, 0) == engine.get_debt(user)
            for asset in ("WETH", "WBTC"):
                assert collateral.get((user, asset), 0) == engine.get_collateral_balance_of_user(user, asset)
