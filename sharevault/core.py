"""
Core types and helpers for the share vault system.

This module provides the foundational pieces every other module builds on:
1. Constants: null account, unlimited allowance sentinel, default precisions
2. Enums: Rounding direction for share/asset conversions
3. Protocols: LedgerView for read-only ledger access
4. Immutable data structures: Unit
5. Exceptions: VaultError and the domain-specific error kinds
6. Validation helpers for accounts and integer amounts

Amounts are plain Python ints in a unit's native precision. Decimal is only
used at the edges, to parse and format human-readable quantities.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, localcontext
from enum import Enum
from typing import Dict, Optional, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# The null account. Minting is a transfer from it, burning a transfer to it.
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Allowance sentinel meaning "unlimited". Never decremented when spent.
MAX_ALLOWANCE = 2 ** 256 - 1

# Native precision used when a unit does not specify one.
DEFAULT_DECIMALS = 18

# Extra share precision over the asset. 0 keeps a 1:1 initial exchange rate.
DEFAULT_DECIMALS_OFFSET = 0

# Share unit symbols are derived from the asset symbol with this prefix.
SHARE_SYMBOL_PREFIX = "sv"

# Decimal digits used when parsing and formatting; covers uint256 amounts.
AMOUNT_PRECISION = 100

# Unit kinds (strings, not enum, matching how units are tagged elsewhere).
UNIT_KIND_ASSET = "ASSET"
UNIT_KIND_SHARE = "SHARE"


# ============================================================================
# ENUMS
# ============================================================================

class Rounding(Enum):
    """
    Direction used when an exact integer result is not representable.

    DOWN: floor the quotient (never overestimates).
    UP: ceiling of the quotient (never underestimates).
    """
    DOWN = "down"
    UP = "up"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from account to balance for a single unit.
Positions = Dict[str, int]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to token ledger state.

    Functions accepting a LedgerView declare that they only read. The Ledger
    class implements this protocol but also provides mutation methods; for
    testing, FakeView provides a read-only implementation.
    """

    def balance_of(self, account: str, unit_symbol: str) -> int:
        """Return the balance of a unit held by an account (0 if none)."""
        ...

    def allowance(self, owner: str, spender: str, unit_symbol: str) -> int:
        """Return how much of owner's unit the spender may move."""
        ...

    def total_supply(self, unit_symbol: str) -> int:
        """Return the outstanding supply of a unit."""
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        """Return the Unit object for a given symbol."""
        ...


# ============================================================================
# EXCEPTIONS
# ============================================================================

class VaultError(Exception):
    """Base exception for all vault-related errors."""
    pass


class ZeroAmount(VaultError):
    """Raised when an operation's primary input amount is zero."""
    pass


class InsufficientBalance(VaultError):
    """Raised when a burn or transfer exceeds the holder's balance."""
    pass


class InsufficientAllowance(VaultError):
    """Raised when a delegated transfer or burn exceeds the granted allowance."""
    pass


class Unauthorized(VaultError):
    """Raised when a non-administrator calls a gated operation."""
    pass


class ZeroAddress(VaultError):
    """Raised when a ledger operation targets the null account."""
    pass


class UnitNotRegistered(VaultError):
    """Raised when operating on a unit that has not been registered with the ledger."""
    pass


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def is_zero_address(account: Optional[str]) -> bool:
    """
    Return True for the null account, None, or a blank string.

    Raises:
        ValueError: If account is neither None nor a str
    """
    if account is None:
        return True
    if not isinstance(account, str):
        raise ValueError(f"account must be str, got {type(account).__name__}")
    return not account.strip() or account == ZERO_ADDRESS


def require_account(account: Optional[str], role: str) -> str:
    """Return the account unchanged, or raise ZeroAddress naming its role."""
    if is_zero_address(account):
        raise ZeroAddress(f"{role} cannot be the zero address")
    return account


def require_amount(amount: int, name: str = "amount") -> int:
    """
    Validate an integer amount in native units.

    Raises:
        ValueError: If amount is not an int (bool is rejected) or is negative.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{name} must be int, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"{name} cannot be negative, got {amount}")
    return amount


# ============================================================================
# UNIT
# ============================================================================

@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a fungible unit (asset or share token) on the ledger.

    Attributes:
        symbol: Short identifier for the unit (e.g., "USDC", "svUSDC").
        name: Human-readable name for the unit.
        decimals: Native precision; 1 whole token == 10**decimals base units.
        kind: UNIT_KIND_ASSET or UNIT_KIND_SHARE.
    """
    symbol: str
    name: str
    decimals: int = DEFAULT_DECIMALS
    kind: str = UNIT_KIND_ASSET

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Unit symbol cannot be empty")
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int):
            raise ValueError(f"Unit decimals must be int, got {type(self.decimals).__name__}")
        if self.decimals < 0:
            raise ValueError(f"Unit decimals cannot be negative, got {self.decimals}")

    @property
    def one(self) -> int:
        """Base units in one whole token."""
        return 10 ** self.decimals

    def parse(self, value) -> int:
        """
        Convert a human-readable quantity to base units, rounding down.

        Example:
            usdc = Unit("USDC", "USD Coin", decimals=6)
            usdc.parse("1.5")  # 1500000
        """
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        if value.is_nan() or value.is_infinite():
            raise ValueError(f"Quantity must be finite, got {value}")
        with localcontext() as ctx:
            ctx.prec = AMOUNT_PRECISION
            scaled = (value * self.one).to_integral_value(rounding=ROUND_DOWN)
        return require_amount(int(scaled))

    def format(self, amount: int) -> Decimal:
        """Convert base units to a Decimal quantity of whole tokens."""
        with localcontext() as ctx:
            ctx.prec = AMOUNT_PRECISION
            return Decimal(require_amount(amount)).scaleb(-self.decimals)

    def __repr__(self) -> str:
        return f"Unit({self.symbol}, decimals={self.decimals}, {self.kind})"


def asset_unit(symbol: str, name: str, decimals: int = DEFAULT_DECIMALS) -> Unit:
    """
    Create an underlying asset unit.

    Args:
        symbol: Token symbol (e.g., "USDC").
        name: Full name of the token (e.g., "USD Coin").
        decimals: Native precision (default: 18).
    """
    return Unit(symbol=symbol, name=name, decimals=decimals, kind=UNIT_KIND_ASSET)


def share_unit(asset: Unit, decimals_offset: int = DEFAULT_DECIMALS_OFFSET, symbol: Optional[str] = None) -> Unit:
    """
    Create the share unit for a vault over `asset`.

    Share precision is the asset's precision widened by `decimals_offset`.
    """
    return Unit(
        symbol=symbol or f"{SHARE_SYMBOL_PREFIX}{asset.symbol}",
        name=f"Vault Shares: {asset.name}",
        decimals=asset.decimals + decimals_offset,
        kind=UNIT_KIND_SHARE,
    )
