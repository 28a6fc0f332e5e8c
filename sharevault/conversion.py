"""
conversion.py - Share/Asset Conversion Engine

This module maps asset amounts to share amounts and back, using a pure
function architecture with explicit inputs.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASS (explicit inputs):
   - PoolState: total_assets, total_shares, decimals_offset at one instant

2. PURE CALCULATION FUNCTIONS:
   - Take all inputs explicitly as parameters
   - No LedgerView, no hidden state
   - Exact integer arithmetic with an explicit rounding direction

3. ADAPTER FUNCTION (load_pool_state):
   - Reads the two totals from a LedgerView once
   - The ONLY place in this module that touches a LedgerView

Key Formulas:
    shares = assets * (total_shares + 10**d) / (total_assets + 1)
    assets = shares * (total_assets + 1) / (total_shares + 10**d)

The virtual share and virtual asset terms (10**d and 1) keep the exchange
rate defined on an empty pool and make donation-based inflation of a
near-empty pool cost the attacker more than it can capture.

Rounding policy: every conversion rounds in favour of the pool.
    preview_deposit   shares out for exact assets in     DOWN
    preview_mint      assets in for exact shares out     UP
    preview_withdraw  shares burned for exact assets out UP
    preview_redeem    assets out for exact shares burned DOWN
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import LedgerView, Rounding, DEFAULT_DECIMALS_OFFSET, require_amount


@dataclass(frozen=True, slots=True)
class PoolState:
    """
    Immutable snapshot of a pool's totals - everything a conversion needs.

    Attributes:
        total_assets: Assets held in the vault's custody, native precision
        total_shares: Outstanding share supply
        decimals_offset: Extra share precision over the asset (d >= 0)
    """
    total_assets: int
    total_shares: int
    decimals_offset: int = DEFAULT_DECIMALS_OFFSET

    def __post_init__(self):
        require_amount(self.total_assets, "total_assets")
        require_amount(self.total_shares, "total_shares")
        require_amount(self.decimals_offset, "decimals_offset")

    @property
    def virtual_shares(self) -> int:
        return self.total_shares + 10 ** self.decimals_offset

    @property
    def virtual_assets(self) -> int:
        return self.total_assets + 1

    def is_empty(self) -> bool:
        """True when no shares are outstanding."""
        return self.total_shares == 0


def mul_div(x: int, y: int, denominator: int, rounding: Rounding = Rounding.DOWN) -> int:
    """
    Compute x * y / denominator exactly, rounded in the requested direction.

    Python ints are arbitrary precision, so the product never overflows.

    Raises:
        ValueError: If x or y is negative/not an int, or denominator <= 0
    """
    require_amount(x, "x")
    require_amount(y, "y")
    if isinstance(denominator, bool) or not isinstance(denominator, int) or denominator <= 0:
        raise ValueError(f"denominator must be a positive int, got {denominator!r}")
    quotient, remainder = divmod(x * y, denominator)
    if rounding is Rounding.UP and remainder:
        quotient += 1
    return quotient


def convert_to_shares(state: PoolState, assets: int, rounding: Rounding = Rounding.DOWN) -> int:
    """Shares that `assets` are worth at the current exchange rate."""
    return mul_div(assets, state.virtual_shares, state.virtual_assets, rounding)


def convert_to_assets(state: PoolState, shares: int, rounding: Rounding = Rounding.DOWN) -> int:
    """Assets that `shares` are worth at the current exchange rate."""
    return mul_div(shares, state.virtual_assets, state.virtual_shares, rounding)


def preview_deposit(state: PoolState, assets: int) -> int:
    """Shares minted for depositing exactly `assets`. Never overestimated."""
    return convert_to_shares(state, assets, Rounding.DOWN)


def preview_mint(state: PoolState, shares: int) -> int:
    """Assets required to mint exactly `shares`. Never underestimated."""
    return convert_to_assets(state, shares, Rounding.UP)


def preview_withdraw(state: PoolState, assets: int) -> int:
    """Shares burned to withdraw exactly `assets`. Never underestimated."""
    return convert_to_shares(state, assets, Rounding.UP)


def preview_redeem(state: PoolState, shares: int) -> int:
    """Assets released for redeeming exactly `shares`. Never overestimated."""
    return convert_to_assets(state, shares, Rounding.DOWN)


def share_price(state: PoolState, one_share: int) -> int:
    """
    Assets redeemable for one whole share (`one_share` base units), rounded down.

    Reporting helper; a rising value means the pool has accrued yield.
    """
    return convert_to_assets(state, one_share, Rounding.DOWN)


def load_pool_state(
    view: LedgerView,
    custody: str,
    asset_symbol: str,
    share_symbol: str,
    decimals_offset: int = DEFAULT_DECIMALS_OFFSET,
) -> PoolState:
    """
    Load a pool's totals from ledger state as a frozen PoolState.

    total_assets is the custody account's asset balance, so assets sent to
    the vault directly count toward every holder's claim.

    Example:
        state = load_pool_state(ledger, "vault:USDC:0000", "USDC", "svUSDC")
        shares = preview_deposit(state, 1_000_000)
    """
    return PoolState(
        total_assets=view.balance_of(custody, asset_symbol),
        total_shares=view.total_supply(share_symbol),
        decimals_offset=decimals_offset,
    )
