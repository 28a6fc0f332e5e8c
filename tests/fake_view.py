"""
fake_view.py - Test Helper for LedgerView

Provides a minimal LedgerView implementation for testing pure functions
without requiring a full Ledger instance.
"""

from __future__ import annotations
from typing import Dict, Optional, Tuple

from sharevault.core import Unit


class FakeView:
    """
    Minimal read-only LedgerView for testing.

    Example:
        view = FakeView(
            balances={'vault:USDC': {'USDC': 1500}},
            supplies={'svUSDC': 1000},
        )
        view.balance_of('vault:USDC', 'USDC')  # 1500
    """

    def __init__(
        self,
        balances: Dict[str, Dict[str, int]],
        supplies: Optional[Dict[str, int]] = None,
        allowances: Optional[Dict[Tuple[str, str, str], int]] = None,
        units: Optional[Dict[str, Unit]] = None,
    ):
        self._balances = balances
        self._supplies = supplies or {}
        self._allowances = allowances or {}
        self._units = units or {}

    def balance_of(self, account: str, unit_symbol: str) -> int:
        return self._balances.get(account, {}).get(unit_symbol, 0)

    def allowance(self, owner: str, spender: str, unit_symbol: str) -> int:
        return self._allowances.get((unit_symbol, owner, spender), 0)

    def total_supply(self, unit_symbol: str) -> int:
        if unit_symbol in self._supplies:
            return self._supplies[unit_symbol]
        return sum(b.get(unit_symbol, 0) for b in self._balances.values())

    def get_unit(self, symbol: str) -> Unit:
        """Return the registered unit or a default 18-decimal one."""
        return self._units.get(symbol) or Unit(symbol, symbol)
