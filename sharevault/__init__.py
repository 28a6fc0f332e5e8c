"""
sharevault - Single-Asset Share Vaults

Pooled deposit vaults over a fungible-token ledger. Depositors receive shares,
transferable claims whose value tracks the pool's yield or loss.

Usage:
    from sharevault import Ledger, VaultFactory, asset_unit

    ledger = Ledger("main", verbose=False)
    ledger.register_unit(asset_unit("USDC", "USD Coin", decimals=6))
    factory = VaultFactory(ledger, admin="admin")
    vault = factory.create_vault("USDC", sender="admin")

    ledger.mint("alice", 1_000_000, "USDC")
    ledger.approve("alice", vault.address, 1_000_000, "USDC")
    shares = vault.deposit(1_000_000, "alice", sender="alice")
    assets = vault.redeem(shares, "alice", "alice", sender="alice")
"""

# Core types
from .core import (
    LedgerView,
    Unit,
    Rounding,
    Positions,
    asset_unit,
    share_unit,
    is_zero_address,
    VaultError,
    ZeroAmount,
    InsufficientBalance,
    InsufficientAllowance,
    Unauthorized,
    ZeroAddress,
    UnitNotRegistered,
    ZERO_ADDRESS,
    MAX_ALLOWANCE,
    DEFAULT_DECIMALS,
    DEFAULT_DECIMALS_OFFSET,
    SHARE_SYMBOL_PREFIX,
    UNIT_KIND_ASSET,
    UNIT_KIND_SHARE,
)

# Events
from .events import (
    EventLog,
    Event,
    Transfer,
    Approval,
    Deposit,
    Withdraw,
    VaultCreated,
    OwnershipTransferred,
)

# Ledger
from .ledger import Ledger, LedgerSnapshot, ReceiveHook

# Conversion engine
from .conversion import (
    PoolState,
    mul_div,
    convert_to_shares,
    convert_to_assets,
    preview_deposit,
    preview_mint,
    preview_withdraw,
    preview_redeem,
    share_price,
    load_pool_state,
)

# Vault, access control, factory
from .vault import Vault
from .access import AccessControl, Ownable
from .factory import VaultFactory, VaultRecord

__all__ = [
    # Core
    'LedgerView', 'Unit', 'Rounding', 'Positions', 'asset_unit', 'share_unit',
    'is_zero_address',
    'VaultError', 'ZeroAmount', 'InsufficientBalance', 'InsufficientAllowance',
    'Unauthorized', 'ZeroAddress', 'UnitNotRegistered',
    'ZERO_ADDRESS', 'MAX_ALLOWANCE', 'DEFAULT_DECIMALS', 'DEFAULT_DECIMALS_OFFSET',
    'SHARE_SYMBOL_PREFIX', 'UNIT_KIND_ASSET', 'UNIT_KIND_SHARE',
    # Events
    'EventLog', 'Event', 'Transfer', 'Approval', 'Deposit', 'Withdraw',
    'VaultCreated', 'OwnershipTransferred',
    # Ledger
    'Ledger', 'LedgerSnapshot', 'ReceiveHook',
    # Conversion
    'PoolState', 'mul_div', 'convert_to_shares', 'convert_to_assets',
    'preview_deposit', 'preview_mint', 'preview_withdraw', 'preview_redeem',
    'share_price', 'load_pool_state',
    # Vault / registry
    'Vault', 'AccessControl', 'Ownable', 'VaultFactory', 'VaultRecord',
]

__version__ = '1.0.0'
