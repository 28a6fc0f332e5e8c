"""
ledger.py - Stateful Fungible-Token Ledger

The Ledger class is the state manager for every fungible unit in the system:
the underlying assets and the share units vaults issue. It is the only module
that mutates balances, keeping changes controlled and auditable.

Key responsibilities:
    - Implements the LedgerView protocol for read-only access by pure functions
    - Balances, allowances and supply per unit, with mint and burn
    - Receive hooks: lets an account run code when it is credited
    - All-or-nothing scopes via transaction() (undo journal, rolled back on failure)
    - Custody registry: one vault per custody account
    - Emits Transfer and Approval events into a shared EventLog
"""

from __future__ import annotations
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Any

from .core import (
    # Types
    Unit, Positions,
    # Constants
    MAX_ALLOWANCE, ZERO_ADDRESS,
    # Exceptions
    VaultError, InsufficientBalance, InsufficientAllowance, UnitNotRegistered,
    # Helpers
    require_account, require_amount,
)
from .events import EventLog, Transfer, Approval


# Called after `dest` is credited: hook(ledger, unit_symbol, source, dest, amount).
ReceiveHook = Callable[['Ledger', str, str, str, int], None]


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """
    Point-in-time copy of all mutable ledger state.

    Unit definitions and receive hooks are configuration and are not captured.
    """
    balances: Dict[str, Dict[str, int]]
    allowances: Dict[Tuple[str, str, str], int]
    supplies: Dict[str, int]
    event_count: int


class Ledger:
    """
    Multi-unit fungible-token ledger with allowances and an event trail.

    Implements the LedgerView protocol, so the ledger can be passed to pure
    functions that only read.

    Design Principles:
        - Always validates: zero-address targets, malformed amounts, balances
          and allowances are checked before any balance changes.
        - Supply is tracked explicitly and only changes on mint and burn;
          verify_supply() checks it against the sum of balances.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own Ledger instance.

    Example:
        ledger = Ledger("main")
        ledger.register_unit(asset_unit("USDC", "USD Coin", decimals=6))
        ledger.mint("alice", 1_000_000, "USDC")
        ledger.transfer("alice", "bob", 250_000, "USDC")
    """

    def __init__(
        self,
        name: str,
        verbose: bool = True,
        test_mode: bool = False,
        events: Optional[EventLog] = None,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            verbose: Enable debug output (default: True)
            test_mode: Enable test mode to allow set_balance() calls (default: False)
            events: Event log to write to (a fresh one is created if omitted)
        """
        self.name = name
        self.verbose = verbose
        self._test_mode = test_mode
        self.events = events if events is not None else EventLog()
        self.units: Dict[str, Unit] = {}
        self.balances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self.allowances: Dict[Tuple[str, str, str], int] = {}
        self.supplies: Dict[str, int] = {}
        # Inverted index mapping unit -> {account -> balance} for holder lookups
        self._positions_by_unit: Dict[str, Dict[str, int]] = defaultdict(dict)
        self._receive_hooks: Dict[str, ReceiveHook] = {}
        # Custody account -> share unit it backs
        self._custody: Dict[str, str] = {}
        # Undo entries (kind, key, previous value) while a transaction is open
        self._journal: Optional[List[Tuple[str, Any, Any]]] = None

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    def balance_of(self, account: str, unit_symbol: str) -> int:
        """
        Get the balance of a unit held by an account.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        self._require_unit(unit_symbol)
        return self.balances.get(account, {}).get(unit_symbol, 0)

    def allowance(self, owner: str, spender: str, unit_symbol: str) -> int:
        """Amount of owner's unit that spender may move or burn."""
        self._require_unit(unit_symbol)
        return self.allowances.get((unit_symbol, owner, spender), 0)

    def total_supply(self, unit_symbol: str) -> int:
        """
        Outstanding supply of a unit (everything minted and not yet burned).

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        self._require_unit(unit_symbol)
        return self.supplies[unit_symbol]

    def get_unit(self, symbol: str) -> Unit:
        """Return the Unit object for a given symbol."""
        return self._require_unit(symbol)

    def get_positions(self, unit_symbol: str) -> Positions:
        """
        Get all non-zero balances for a unit across all accounts.

        Uses an inverted index so the cost does not depend on the number of
        accounts holding other units.
        """
        self._require_unit(unit_symbol)
        return dict(self._positions_by_unit.get(unit_symbol, {}))

    def get_account_balances(self, account: str) -> Dict[str, int]:
        """Get all non-zero balances for an account."""
        return {u: q for u, q in self.balances.get(account, {}).items() if q}

    def list_units(self) -> List[str]:
        """List all registered unit symbols."""
        return sorted(self.units.keys())

    def verify_supply(self) -> Dict[str, Any]:
        """
        Verify that recorded supply equals the sum of balances for every unit.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every unit is consistent
            - 'supplies': Dict[str, int] - Recorded supply per unit
            - 'discrepancies': List[Dict] - unit, recorded, actual, difference

        Example:
            result = ledger.verify_supply()
            assert result['valid'], f"Supply drift: {result['discrepancies']}"
        """
        discrepancies = []
        for unit_symbol in sorted(self.units):
            recorded = self.supplies[unit_symbol]
            actual = sum(self._positions_by_unit.get(unit_symbol, {}).values())
            if actual != recorded:
                discrepancies.append({
                    'unit': unit_symbol,
                    'recorded': recorded,
                    'actual': actual,
                    'difference': actual - recorded,
                })
        return {
            'valid': not discrepancies,
            'supplies': dict(self.supplies),
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_unit(self, unit: Unit) -> Unit:
        """
        Register a new unit with zero supply.

        If verbose mode is enabled, prints registration confirmation.

        Raises:
            ValueError: If unit symbol is already registered
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        self.supplies[unit.symbol] = 0
        if self.verbose:
            print(f"📝 Registered: {unit.symbol} ({unit.name}) [{unit.kind}, decimals={unit.decimals}]")
        return unit

    def register_custody(self, account: str, share: Unit) -> Unit:
        """
        Register a vault's share unit together with its custody account.

        Each custody account backs exactly one share unit. Nothing is
        recorded unless both the account and the symbol are free.

        Raises:
            ZeroAddress: If account is the null account
            ValueError: If account already holds custody, or the share symbol is taken
        """
        require_account(account, "custody account")
        if account in self._custody:
            raise ValueError(f"{account} already holds custody for {self._custody[account]}")
        unit = self.register_unit(share)
        self._custody[account] = unit.symbol
        return unit

    def custody_of(self, account: str) -> Optional[str]:
        """Share unit backed by a custody account, or None."""
        return self._custody.get(account)

    def set_receive_hook(self, account: str, hook: Optional[ReceiveHook]) -> None:
        """
        Install (or with None, remove) the hook run after `account` is credited.

        The hook runs after the credit is visible, with full access to the
        ledger and anything else it closes over. Exceptions it raises
        propagate to the caller of the crediting operation.
        """
        if hook is None:
            self._receive_hooks.pop(account, None)
        else:
            self._receive_hooks[account] = hook

    def set_balance(self, account: str, unit_symbol: str, amount: int) -> None:
        """
        Set an account's balance directly, adjusting supply to match.

        WARNING: Bypasses transfers and events. Only available in test mode.

        Raises:
            VaultError: If called when test_mode is False
        """
        if not self._test_mode:
            raise VaultError(
                "set_balance() is disabled in production mode. "
                "Use mint() and transfer() to modify balances. "
                "Set test_mode=True when creating Ledger for testing."
            )
        self._require_unit(unit_symbol)
        require_account(account, "account")
        require_amount(amount)
        previous = self.balances[account][unit_symbol]
        self._write_supply(unit_symbol, self.supplies[unit_symbol] + amount - previous)
        self._write_balance(account, unit_symbol, amount)

    # ========================================================================
    # TOKEN OPERATIONS (Mutating)
    # ========================================================================

    def transfer(self, source: str, dest: str, amount: int, unit_symbol: str) -> None:
        """
        Move `amount` of a unit from source to dest.

        Raises:
            ZeroAddress: If source or dest is the null account
            InsufficientBalance: If source holds less than amount
        """
        self._require_unit(unit_symbol)
        require_account(source, "source")
        require_account(dest, "dest")
        require_amount(amount)
        with self.transaction():
            self._move(source, dest, amount, unit_symbol)
            self._notify_receiver(unit_symbol, source, dest, amount)

    def approve(self, owner: str, spender: str, amount: int, unit_symbol: str) -> None:
        """
        Set spender's allowance over owner's unit (overwrites the previous value).

        Raises:
            ZeroAddress: If owner or spender is the null account
        """
        self._require_unit(unit_symbol)
        require_account(owner, "owner")
        require_account(spender, "spender")
        require_amount(amount)
        self._write_allowance((unit_symbol, owner, spender), amount)
        self.events.emit(Approval(unit_symbol, owner, spender, amount))

    def transfer_from(self, spender: str, source: str, dest: str, amount: int, unit_symbol: str) -> None:
        """
        Move `amount` from source to dest on behalf of spender.

        Spends spender's allowance over source, unless it is MAX_ALLOWANCE.

        Raises:
            ZeroAddress: If source or dest is the null account
            InsufficientAllowance: If the allowance does not cover amount
            InsufficientBalance: If source holds less than amount
        """
        self._require_unit(unit_symbol)
        require_account(source, "source")
        require_account(dest, "dest")
        require_amount(amount)
        self._check_allowance(source, spender, amount, unit_symbol)
        self._check_balance(source, amount, unit_symbol)
        with self.transaction():
            self._spend_allowance(source, spender, amount, unit_symbol)
            self._move(source, dest, amount, unit_symbol)
            self._notify_receiver(unit_symbol, source, dest, amount)

    def spend_allowance(self, owner: str, spender: str, amount: int, unit_symbol: str) -> None:
        """
        Consume spender's allowance over owner without moving anything.

        Used when a third party burns shares on an owner's behalf.

        Raises:
            InsufficientAllowance: If the allowance does not cover amount
        """
        self._require_unit(unit_symbol)
        require_amount(amount)
        self._check_allowance(owner, spender, amount, unit_symbol)
        self._spend_allowance(owner, spender, amount, unit_symbol)

    def mint(self, dest: str, amount: int, unit_symbol: str) -> None:
        """
        Create `amount` new units in dest, increasing supply.

        Raises:
            ZeroAddress: If dest is the null account
        """
        self._require_unit(unit_symbol)
        require_account(dest, "dest")
        require_amount(amount)
        with self.transaction():
            self._write_supply(unit_symbol, self.supplies[unit_symbol] + amount)
            self._write_balance(dest, unit_symbol, self.balances[dest][unit_symbol] + amount)
            self.events.emit(Transfer(unit_symbol, ZERO_ADDRESS, dest, amount))
            self._notify_receiver(unit_symbol, ZERO_ADDRESS, dest, amount)

    def burn(self, source: str, amount: int, unit_symbol: str) -> None:
        """
        Destroy `amount` units held by source, decreasing supply.

        Raises:
            ZeroAddress: If source is the null account
            InsufficientBalance: If source holds less than amount
        """
        self._require_unit(unit_symbol)
        require_account(source, "source")
        require_amount(amount)
        self._check_balance(source, amount, unit_symbol)
        self._write_supply(unit_symbol, self.supplies[unit_symbol] - amount)
        self._write_balance(source, unit_symbol, self.balances[source][unit_symbol] - amount)
        self.events.emit(Transfer(unit_symbol, source, ZERO_ADDRESS, amount))

    # ========================================================================
    # ATOMICITY
    # ========================================================================

    def snapshot(self) -> LedgerSnapshot:
        """
        Capture balances, allowances, supplies and the event log position.

        This is a full copy. transaction() does not use it; it journals only
        the entries it touches.
        """
        return LedgerSnapshot(
            balances={a: dict(b) for a, b in self.balances.items()},
            allowances=dict(self.allowances),
            supplies=dict(self.supplies),
            event_count=len(self.events),
        )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        """
        Roll the ledger back to a snapshot.

        Units registered after the snapshot stay registered, with zero supply.
        """
        self.balances = defaultdict(lambda: defaultdict(int))
        self._positions_by_unit = defaultdict(dict)
        for account, bals in snapshot.balances.items():
            for unit_symbol, amount in bals.items():
                self._store_balance(account, unit_symbol, amount)
        self.allowances = dict(snapshot.allowances)
        self.supplies = {u: snapshot.supplies.get(u, 0) for u in self.units}
        self.events.truncate(snapshot.event_count)

    @contextmanager
    def transaction(self) -> Iterator['Ledger']:
        """
        All-or-nothing scope.

        If the body raises, every balance, allowance, supply and event change
        made inside it is undone and the exception propagates unchanged.
        Scopes nest: a failing inner scope undoes only its own changes.

        Each write records the previous value of the entry it touches, so the
        cost of a scope depends on what it changes, not on the ledger's size.

        Example:
            with ledger.transaction():
                ledger.transfer("alice", "vault", 100, "USDC")
                ledger.mint("alice", 100, "svUSDC")
        """
        outermost = self._journal is None
        if outermost:
            self._journal = []
        mark = len(self._journal)
        event_count = len(self.events)
        try:
            yield self
        except BaseException:
            self._rollback(mark)
            self.events.truncate(event_count)
            raise
        finally:
            if outermost:
                self._journal = None

    def clone(self) -> Ledger:
        """
        Create a deep copy of this ledger.

        Balances, allowances, supplies and events are independent of the
        original. Receive hooks are not copied; they close over the original.
        """
        cloned = Ledger(self.name, verbose=self.verbose, test_mode=self._test_mode)
        cloned.units = dict(self.units)
        cloned._custody = dict(self._custody)
        snap = self.snapshot()
        cloned.restore(LedgerSnapshot(snap.balances, snap.allowances, snap.supplies, event_count=0))
        for event in self.events:
            cloned.events.emit(event)
        return cloned

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _require_unit(self, unit_symbol: str) -> Unit:
        unit = self.units.get(unit_symbol)
        if unit is None:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return unit

    def _check_balance(self, account: str, amount: int, unit_symbol: str) -> None:
        held = self.balances.get(account, {}).get(unit_symbol, 0)
        if held < amount:
            raise InsufficientBalance(
                f"{account} {unit_symbol}: balance {held} < required {amount}"
            )

    def _check_allowance(self, owner: str, spender: str, amount: int, unit_symbol: str) -> None:
        granted = self.allowances.get((unit_symbol, owner, spender), 0)
        if granted < amount:
            raise InsufficientAllowance(
                f"{spender} may spend {granted} {unit_symbol} of {owner}, requested {amount}"
            )

    def _spend_allowance(self, owner: str, spender: str, amount: int, unit_symbol: str) -> None:
        key = (unit_symbol, owner, spender)
        granted = self.allowances.get(key, 0)
        if granted != MAX_ALLOWANCE:
            self._write_allowance(key, granted - amount)

    def _move(self, source: str, dest: str, amount: int, unit_symbol: str) -> None:
        self._check_balance(source, amount, unit_symbol)
        self._write_balance(source, unit_symbol, self.balances[source][unit_symbol] - amount)
        self._write_balance(dest, unit_symbol, self.balances[dest][unit_symbol] + amount)
        self.events.emit(Transfer(unit_symbol, source, dest, amount))

    def _notify_receiver(self, unit_symbol: str, source: str, dest: str, amount: int) -> None:
        hook = self._receive_hooks.get(dest)
        if hook is not None:
            hook(self, unit_symbol, source, dest, amount)

    def _write_balance(self, account: str, unit_symbol: str, amount: int) -> None:
        if self._journal is not None:
            self._journal.append(('balance', (account, unit_symbol), self.balances[account][unit_symbol]))
        self._store_balance(account, unit_symbol, amount)

    def _write_allowance(self, key: Tuple[str, str, str], amount: int) -> None:
        if self._journal is not None:
            self._journal.append(('allowance', key, self.allowances.get(key)))
        self.allowances[key] = amount

    def _write_supply(self, unit_symbol: str, amount: int) -> None:
        if self._journal is not None:
            self._journal.append(('supply', unit_symbol, self.supplies[unit_symbol]))
        self.supplies[unit_symbol] = amount

    def _rollback(self, mark: int) -> None:
        """Undo journal entries recorded after `mark`, newest first."""
        entries = self._journal[mark:]
        del self._journal[mark:]
        for kind, key, previous in reversed(entries):
            if kind == 'balance':
                self._store_balance(key[0], key[1], previous)
            elif kind == 'allowance':
                if previous is None:
                    self.allowances.pop(key, None)
                else:
                    self.allowances[key] = previous
            else:
                self.supplies[key] = previous

    def _store_balance(self, account: str, unit_symbol: str, amount: int) -> None:
        """Store a balance and keep the position index in step with it."""
        self.balances[account][unit_symbol] = amount
        if amount:
            self._positions_by_unit[unit_symbol][account] = amount
        else:
            self._positions_by_unit[unit_symbol].pop(account, None)

    def __repr__(self) -> str:
        return f"Ledger({self.name!r}, units={self.list_units()})"
