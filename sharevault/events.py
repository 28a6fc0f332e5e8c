"""
events.py - Event records and the append-only event log

Events are observations for outside readers: nothing in the vault reads them
back to make decisions. Every event is a frozen dataclass; the EventLog
assigns each one a monotonic sequence number when it is emitted.

The log supports truncation so that a rolled-back ledger transaction can
discard the events it emitted.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Tuple, Type, TypeVar, Union


@dataclass(frozen=True, slots=True)
class Transfer:
    """Units moved between accounts. Mints come from, burns go to, the zero address."""
    unit: str
    source: str
    dest: str
    amount: int


@dataclass(frozen=True, slots=True)
class Approval:
    """Owner granted spender an allowance on a unit."""
    unit: str
    owner: str
    spender: str
    amount: int


@dataclass(frozen=True, slots=True)
class Deposit:
    """Assets entered the vault and shares were minted to receiver."""
    vault: str
    sender: str
    receiver: str
    assets: int
    shares: int


@dataclass(frozen=True, slots=True)
class Withdraw:
    """Shares of owner were burned and assets left the vault to receiver."""
    vault: str
    sender: str
    receiver: str
    owner: str
    assets: int
    shares: int


@dataclass(frozen=True, slots=True)
class VaultCreated:
    """A factory deployed and registered a new vault."""
    vault: str
    asset: str


@dataclass(frozen=True, slots=True)
class OwnershipTransferred:
    previous_owner: str
    new_owner: str


Event = Union[Transfer, Approval, Deposit, Withdraw, VaultCreated, OwnershipTransferred]

E = TypeVar("E")


class EventLog:
    """
    Append-only, ordered record of emitted events.

    Example:
        log = EventLog()
        seq = log.emit(VaultCreated("vault:USDC:0000", "USDC"))
        log.of_type(VaultCreated)  # [VaultCreated(...)]
    """

    def __init__(self):
        self._entries: List[Event] = []

    def emit(self, event: Event) -> int:
        """Append an event and return its sequence number."""
        self._entries.append(event)
        return len(self._entries) - 1

    def of_type(self, event_type: Type[E]) -> List[E]:
        """Return all events of a given type, in emission order."""
        return [e for e in self._entries if isinstance(e, event_type)]

    def since(self, sequence: int) -> Tuple[Event, ...]:
        """Return events emitted at or after a sequence number."""
        return tuple(self._entries[sequence:])

    def truncate(self, length: int) -> None:
        """Drop every event at or after `length`. Used for rollback."""
        if length < 0 or length > len(self._entries):
            raise ValueError(f"Cannot truncate event log of length {len(self._entries)} to {length}")
        del self._entries[length:]

    @property
    def last(self) -> Event:
        if not self._entries:
            raise IndexError("Event log is empty")
        return self._entries[-1]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Event]:
        return iter(tuple(self._entries))

    def __getitem__(self, sequence: int) -> Event:
        return self._entries[sequence]

    def __repr__(self) -> str:
        return f"EventLog({len(self._entries)} events)"
