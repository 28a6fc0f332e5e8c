"""
access.py - Administrator gate for registry operations

Only registry bookkeeping is gated. Vault entry operations are open to any
account holding enough balance or allowance.
"""

from __future__ import annotations
from typing import Optional, Protocol, runtime_checkable

from .core import ZERO_ADDRESS, Unauthorized, require_account
from .events import EventLog, OwnershipTransferred


@runtime_checkable
class AccessControl(Protocol):
    """Anything that can answer whether a caller may perform a gated operation."""

    def is_authorized(self, caller: str) -> bool:
        ...


class Ownable:
    """
    Single-administrator gate.

    Ownership is not ledger state: a ledger transaction that rolls back does
    not undo an ownership change. Give the gate its own EventLog rather than
    a ledger's, so a rollback cannot drop OwnershipTransferred events either.

    Example:
        gate = Ownable("admin")
        gate.is_authorized("admin")   # True
        gate.only_owner("mallory")    # raises Unauthorized
    """

    def __init__(self, owner: str, events: Optional[EventLog] = None):
        """
        Args:
            owner: Initial administrator
            events: Log for OwnershipTransferred events (optional)

        Raises:
            ZeroAddress: If owner is the null account
        """
        self._owner = require_account(owner, "owner")
        self.events = events
        self._emit(ZERO_ADDRESS, self._owner)

    @property
    def owner(self) -> str:
        """Current administrator; ZERO_ADDRESS once renounced."""
        return self._owner

    def is_authorized(self, caller: str) -> bool:
        return self._owner != ZERO_ADDRESS and caller == self._owner

    def only_owner(self, caller: str) -> None:
        if not self.is_authorized(caller):
            raise Unauthorized(f"{caller} is not the owner")

    def transfer_ownership(self, new_owner: str, *, sender: str) -> None:
        """
        Hand the administrator role to new_owner.

        Raises:
            Unauthorized: If sender is not the current owner
            ZeroAddress: If new_owner is the null account
        """
        self.only_owner(sender)
        require_account(new_owner, "new_owner")
        previous, self._owner = self._owner, new_owner
        self._emit(previous, new_owner)

    def renounce_ownership(self, *, sender: str) -> None:
        """Give up the role; every gated operation is closed afterwards."""
        self.only_owner(sender)
        previous, self._owner = self._owner, ZERO_ADDRESS
        self._emit(previous, ZERO_ADDRESS)

    def _emit(self, previous: str, new_owner: str) -> None:
        if self.events is not None:
            self.events.emit(OwnershipTransferred(previous, new_owner))

    def __repr__(self) -> str:
        return f"Ownable(owner={self._owner})"
