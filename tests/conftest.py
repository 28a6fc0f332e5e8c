"""
conftest.py - Shared pytest fixtures for sharevault tests

Provides common fixtures used across unit, conformance and functional tests:
- Ledgers (empty, with a registered asset, funded)
- Vaults parametrized over decimals offsets
- Factories with an administrator
- A FakeView of a populated pool

Plain helpers live in vault_helpers.py.
"""

import pytest

from sharevault import (
    Ledger, Vault, VaultFactory,
    asset_unit,
    MAX_ALLOWANCE,
)

from tests.fake_view import FakeView
from tests.vault_helpers import USDC_DECIMALS

# Offsets every rounding-sensitive test runs under.
DECIMALS_OFFSETS = [0, 3, 6]


# =============================================================================
# LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no registrations."""
    return Ledger("test", verbose=False, test_mode=True)


@pytest.fixture
def ledger():
    """Ledger with USDC (6 decimals) registered."""
    ledger = Ledger("test", verbose=False, test_mode=True)
    ledger.register_unit(asset_unit("USDC", "USD Coin", decimals=USDC_DECIMALS))
    return ledger


@pytest.fixture
def funded_ledger(ledger):
    """USDC ledger where alice, bob and carol each hold 1,000,000 base units."""
    for account in ("alice", "bob", "carol"):
        ledger.mint(account, 1_000_000, "USDC")
    return ledger


# =============================================================================
# VAULT FIXTURES
# =============================================================================

@pytest.fixture(params=DECIMALS_OFFSETS, ids=lambda d: f"offset{d}")
def offset(request):
    return request.param


@pytest.fixture
def vault(funded_ledger, offset):
    """USDC vault over the funded ledger, one per decimals offset."""
    return Vault(funded_ledger, "USDC", decimals_offset=offset)


@pytest.fixture
def plain_vault(funded_ledger):
    """USDC vault with decimals offset 0 (1:1 initial exchange rate)."""
    return Vault(funded_ledger, "USDC")


@pytest.fixture
def approved_vault(plain_vault):
    """Offset-0 vault that alice, bob and carol have approved without limit."""
    for account in ("alice", "bob", "carol"):
        plain_vault.ledger.approve(account, plain_vault.address, MAX_ALLOWANCE, "USDC")
    return plain_vault


# =============================================================================
# FACTORY FIXTURES
# =============================================================================

@pytest.fixture
def factory(funded_ledger):
    """Factory administered by "admin" on the funded USDC ledger."""
    funded_ledger.register_unit(asset_unit("WETH", "Wrapped Ether", decimals=18))
    return VaultFactory(funded_ledger, admin="admin")


# =============================================================================
# FAKE VIEW FIXTURES
# =============================================================================

@pytest.fixture
def pool_view():
    """FakeView of a vault holding 1,500 USDC against 1,000 shares."""
    return FakeView(
        balances={
            "vault:USDC": {"USDC": 1_500},
            "alice": {"svUSDC": 600, "USDC": 10},
            "bob": {"svUSDC": 400},
        },
        supplies={"USDC": 1_510, "svUSDC": 1_000},
    )
