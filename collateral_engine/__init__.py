"""
collateral_engine - Over-Collateralized Synthetic Token Engine

Users deposit approved collateral, mint a USD-pegged synthetic token against
it, and the engine keeps every minted unit over-collateralized, letting third
parties liquidate positions whose health factor falls below the minimum.

Usage:
    from collateral_engine import (
        CollateralEngine, SimpleToken, StableCoin, MockPriceFeed,
    )

    weth = SimpleToken("WETH", "Wrapped Ether")
    feed = MockPriceFeed(2000 * 10**8)
    dsc = StableCoin()
    engine = CollateralEngine([weth], [feed], dsc, verbose=False)
    dsc.transfer_ownership(None, engine.address)

    weth.mint_to("alice", 10 * 10**18)
    weth.approve("alice", engine.address, 10 * 10**18)
    engine.deposit_and_mint("alice", "WETH", 10 * 10**18, 100 * 10**18)

    feed.update_answer(18 * 10**8)          # price crash
    engine.get_health_factor("alice")       # 9 * 10**17 -> liquidatable
"""

# Core types
from .core import (
    EngineParameters,
    EngineEvent,
    AccountInformation,
    PriceOracle,
    CollateralToken,
    SyntheticToken,
    EngineError,
    ConfigMismatch,
    InvalidAmount,
    AssetNotAllowed,
    OracleUnavailable,
    TransferFailed,
    MintFailed,
    InsufficientBalance,
    HealthFactorBroken,
    HealthFactorIsOK,
    HealthFactorIsNotImproved,
    PRECISION,
    FEED_PRECISION,
    ADDITIONAL_FEED_PRECISION,
    LIQUIDATION_THRESHOLD,
    LIQUIDATION_BONUS,
    LIQUIDATION_PRECISION,
    MIN_HEALTH_FACTOR,
    MAX_HEALTH_FACTOR,
    DEFAULT_ENGINE_ADDRESS,
    ZERO_ADDRESS,
    EVENT_COLLATERAL_DEPOSITED,
    EVENT_COLLATERAL_REDEEMED,
    EVENT_DEBT_MINTED,
    EVENT_DEBT_BURNED,
    EVENT_LIQUIDATED,
)

# Pricing
from .pricing import (
    PriceConverter,
    MockPriceFeed,
    calculate_usd_value,
    calculate_asset_amount,
    feed_adjustment,
)

# Ledgers
from .ledgers import CollateralLedger, DebtLedger

# Health factor
from .health import HealthFactorEngine, calculate_health_factor

# Atomicity (undo log, lock) and audit trail
from .journal import Journal, EventLog

# Operations
from .positions import PositionManager
from .liquidation import (
    LiquidationEngine,
    LiquidationQuote,
    calculate_liquidation_quote,
)

# Engine
from .engine import CollateralEngine

# Token collaborators
from .tokens import (
    SimpleToken,
    StableCoin,
    TokenError,
    MustBeMoreThanZero,
    BurnAmountExceedsBalance,
    NotZeroAddress,
    NotOwner,
)


__all__ = [
    # Core
    'EngineParameters', 'EngineEvent', 'AccountInformation',
    'PriceOracle', 'CollateralToken', 'SyntheticToken',
    # Exceptions
    'EngineError', 'ConfigMismatch', 'InvalidAmount', 'AssetNotAllowed',
    'OracleUnavailable', 'TransferFailed', 'MintFailed', 'InsufficientBalance',
    'HealthFactorBroken', 'HealthFactorIsOK', 'HealthFactorIsNotImproved',
    # Constants
    'PRECISION', 'FEED_PRECISION', 'ADDITIONAL_FEED_PRECISION',
    'LIQUIDATION_THRESHOLD', 'LIQUIDATION_BONUS', 'LIQUIDATION_PRECISION',
    'MIN_HEALTH_FACTOR', 'MAX_HEALTH_FACTOR', 'DEFAULT_ENGINE_ADDRESS', 'ZERO_ADDRESS',
    'EVENT_COLLATERAL_DEPOSITED', 'EVENT_COLLATERAL_REDEEMED',
    'EVENT_DEBT_MINTED', 'EVENT_DEBT_BURNED', 'EVENT_LIQUIDATED',
    # Pricing
    'PriceConverter', 'MockPriceFeed',
    'calculate_usd_value', 'calculate_asset_amount', 'feed_adjustment',
    # Ledgers
    'CollateralLedger', 'DebtLedger',
    # Health
    'HealthFactorEngine', 'calculate_health_factor',
    # Journal
    'Journal', 'EventLog',
    # Operations
    'PositionManager', 'LiquidationEngine', 'LiquidationQuote', 'calculate_liquidation_quote',
    # Engine
    'CollateralEngine',
    # Tokens
    'SimpleToken', 'StableCoin', 'TokenError', 'MustBeMoreThanZero',
    'BurnAmountExceedsBalance', 'NotZeroAddress', 'NotOwner',
]

__version__ = '1.0.0'
