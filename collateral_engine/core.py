"""
Core types and constants for the collateral engine.

This module provides the foundational pieces every other module builds on:
1. Constants: fixed-point precisions and the default risk parameters
2. Protocols: the collaborator shapes the engine consumes (tokens, oracles)
3. Exceptions: EngineError and the domain-specific error types
4. Immutable data structures: EngineParameters, EngineEvent, AccountInformation

All amounts are plain Python ints in fixed-point representation. The internal
precision is 1e18 (the synthetic token's precision); price feeds report with
their own precision (1e8 by default) and are normalized by PriceConverter.

Nothing in this module holds mutable state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Protocol, Tuple, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Internal fixed-point precision (the synthetic token uses 18 decimals).
PRECISION = 10 ** 18

# Price feeds report with 8 decimals by default.
FEED_DECIMALS = 8
FEED_PRECISION = 10 ** FEED_DECIMALS

# Factor that lifts an 8-decimal feed price to the 18-decimal internal precision.
ADDITIONAL_FEED_PRECISION = 10 ** 10

# Risk parameters, all expressed against LIQUIDATION_PRECISION.
# A threshold of 50 means collateral must be worth twice the debt (200%).
LIQUIDATION_THRESHOLD = 50
LIQUIDATION_BONUS = 10
LIQUIDATION_PRECISION = 100

# Health factor scale: 1e18 == 1.0
MIN_HEALTH_FACTOR = PRECISION

# Sentinel returned for positions without debt (uint256 max).
MAX_HEALTH_FACTOR = 2 ** 256 - 1

# Default custody address of an engine instance.
DEFAULT_ENGINE_ADDRESS = "collateral_engine"

# The null address; tokens refuse to mint to it.
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Event type constants.
EVENT_COLLATERAL_DEPOSITED = "CollateralDeposited"
EVENT_COLLATERAL_REDEEMED = "CollateralRedeemed"
EVENT_DEBT_MINTED = "DebtMinted"
EVENT_DEBT_BURNED = "DebtBurned"
EVENT_LIQUIDATED = "Liquidated"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Account identifier (a user, the engine, a liquidator, ...).
Address = str

# Symbol identifying a registered collateral asset.
AssetId = str

# Mapping from asset symbol to quantity held by one account.
CollateralBalances = Dict[AssetId, int]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class PriceOracle(Protocol):
    """
    Price feed for a single collateral asset.

    latest_price() returns (price, decimals): the USD price of one whole unit
    of the asset, scaled by 10 ** decimals. Prices are treated as always
    fresh; the engine performs no staleness checks.
    """

    def latest_price(self) -> Tuple[int, int]:
        ...


@runtime_checkable
class CollateralToken(Protocol):
    """
    Fungible asset accepted as collateral.

    The caller of a token operation is passed explicitly (sender/spender).
    Transfers report failure by returning False; the engine surfaces that
    as TransferFailed.
    """

    symbol: str

    def transfer(self, sender: Address, recipient: Address, amount: int) -> bool:
        ...

    def transfer_from(self, spender: Address, owner: Address, recipient: Address, amount: int) -> bool:
        ...

    def balance_of(self, account: Address) -> int:
        ...


@runtime_checkable
class SyntheticToken(Protocol):
    """
    The USD-pegged token minted against collateral.

    The engine must be the token's sole authorized minter/burner. burn()
    destroys tokens from the caller's own balance.
    """

    symbol: str

    def mint(self, caller: Address, to: Address, amount: int) -> bool:
        ...

    def burn(self, caller: Address, amount: int) -> None:
        ...

    def transfer(self, sender: Address, recipient: Address, amount: int) -> bool:
        ...

    def transfer_from(self, spender: Address, owner: Address, recipient: Address, amount: int) -> bool:
        ...

    def balance_of(self, account: Address) -> int:
        ...

    def total_supply(self) -> int:
        ...


# ============================================================================
# EXCEPTIONS
# ============================================================================

class EngineError(Exception):
    """Base exception for all collateral-engine errors."""
    pass


class ConfigMismatch(EngineError):
    """Raised at construction when the asset and oracle lists disagree."""
    pass


class InvalidAmount(EngineError):
    """Raised when an amount-taking operation receives zero, a negative or a non-int amount."""
    pass


class AssetNotAllowed(EngineError):
    """Raised when an operation references an unregistered collateral asset."""

    def __init__(self, asset: Any):
        self.asset = asset
        super().__init__(f"Collateral asset not allowed: {asset!r}")


class OracleUnavailable(EngineError):
    """Raised when no usable price can be read for an asset."""
    pass


class TransferFailed(EngineError):
    """Raised when an external token transfer reports failure."""
    pass


class MintFailed(EngineError):
    """Raised when the synthetic token reports a failed mint."""
    pass


class InsufficientBalance(EngineError):
    """Raised when a redeem/burn amount exceeds the recorded ledger balance."""

    def __init__(self, account: Address, what: str, requested: int, available: int):
        self.account = account
        self.what = what
        self.requested = requested
        self.available = available
        super().__init__(
            f"{account} {what}: requested {requested}, available {available}"
        )


class HealthFactorBroken(EngineError):
    """Raised when a post-operation solvency check fails. Carries the computed ratio."""

    def __init__(self, health_factor: int):
        self.health_factor = health_factor
        super().__init__(f"Health factor broken: {health_factor}")


class HealthFactorIsOK(EngineError):
    """Raised when liquidation is attempted against a healthy position."""

    def __init__(self, user: Address):
        self.user = user
        super().__init__(f"Health factor of {user} is OK, cannot liquidate")


class HealthFactorIsNotImproved(EngineError):
    """Raised when a liquidation does not strictly improve the violator's health factor."""

    def __init__(self, starting: int, ending: int):
        self.starting = starting
        self.ending = ending
        super().__init__(
            f"Health factor not improved: {starting} -> {ending}"
        )


# ============================================================================
# PARAMETERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class EngineParameters:
    """
    Immutable risk and precision parameters of one engine instance.

    Set at construction, never change afterwards. The defaults are the
    module-level constants.

    Attributes:
        liquidation_threshold: Share of collateral value counted toward solvency.
        liquidation_bonus: Extra collateral paid to a liquidator, as a share of
            the collateral equivalent of the debt covered.
        liquidation_precision: Denominator for threshold and bonus.
        min_health_factor: Health factor below which a position is liquidatable.
        precision: Internal fixed-point scale.
        additional_feed_precision: Factor lifting an 8-decimal feed to precision.
    """
    liquidation_threshold: int = LIQUIDATION_THRESHOLD
    liquidation_bonus: int = LIQUIDATION_BONUS
    liquidation_precision: int = LIQUIDATION_PRECISION
    min_health_factor: int = MIN_HEALTH_FACTOR
    precision: int = PRECISION
    additional_feed_precision: int = ADDITIONAL_FEED_PRECISION

    def __post_init__(self):
        for name in (
            'liquidation_threshold', 'liquidation_bonus', 'liquidation_precision',
            'min_health_factor', 'precision', 'additional_feed_precision',
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be int, got {type(value).__name__}")
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        for name in ('precision', 'additional_feed_precision'):
            power_of_ten_exponent(getattr(self, name), name)
        if self.liquidation_threshold > self.liquidation_precision:
            raise ValueError(
                f"liquidation_threshold {self.liquidation_threshold} exceeds "
                f"liquidation_precision {self.liquidation_precision}"
            )
        if self.liquidation_bonus > self.liquidation_precision:
            raise ValueError(
                f"liquidation_bonus {self.liquidation_bonus} exceeds "
                f"liquidation_precision {self.liquidation_precision}"
            )


# ============================================================================
# RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class EngineEvent:
    """
    An emitted, immutable audit record.

    Attributes:
        event_type: One of the EVENT_* constants.
        sequence_number: Monotonic position within the engine's event log.
        data: Event fields (user, asset, amount, ...).
    """
    event_type: str
    sequence_number: int
    data: Mapping[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.data.items())
        return f"{self.event_type}#{self.sequence_number}({fields})"


@dataclass(frozen=True, slots=True)
class AccountInformation:
    """Debt and USD collateral value of one account."""
    debt: int
    collateral_value_usd: int


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def require_positive(amount: Any, what: str = "amount") -> int:
    """
    Validate an amount argument.

    Raises:
        InvalidAmount: If amount is not an int (bools rejected) or is <= 0.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{what} must be int, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount(f"{what} must be more than zero, got {amount}")
    return amount


def power_of_ten_exponent(value: int, what: str = "precision") -> int:
    """
    Return n such that value == 10**n.

    Raises:
        ValueError: If value is not a positive power of ten.
    """
    exponent = 0
    remaining = value
    while remaining > 1 and remaining % 10 == 0:
        remaining //= 10
        exponent += 1
    if remaining != 1:
        raise ValueError(f"{what} must be a power of ten, got {value}")
    return exponent
