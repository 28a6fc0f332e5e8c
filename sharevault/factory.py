"""
factory.py - Vault Registry / Factory

Deploys vaults on a shared ledger and keeps an ordered, append-only registry
of them. Creating a vault is restricted to the administrator; reading the
registry is open.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from .access import AccessControl, Ownable
from .core import (
    DEFAULT_DECIMALS_OFFSET, SHARE_SYMBOL_PREFIX,
    Unauthorized, require_amount,
)
from .events import EventLog, VaultCreated
from .ledger import Ledger
from .vault import Vault


@dataclass(frozen=True, slots=True)
class VaultRecord:
    """
    Registry entry, written once per successful create_vault() and never changed.

    Attributes:
        vault: Custody address of the vault
        asset: Symbol of the underlying asset
        index: Position in the registry (0-based, creation order)
    """
    vault: str
    asset: str
    index: int


class VaultFactory:
    """
    Administrator-gated vault factory with an append-only registry.

    Example:
        factory = VaultFactory(ledger, admin="admin")
        usdc_vault = factory.create_vault("USDC", sender="admin")
        factory.total_vaults()  # 1
    """

    def __init__(
        self,
        ledger: Ledger,
        admin: Union[str, AccessControl],
        default_decimals_offset: int = DEFAULT_DECIMALS_OFFSET,
        verbose: Optional[bool] = None,
    ):
        """
        Args:
            ledger: Ledger the vaults and their share units live on
            admin: Administrator account (wrapped in an Ownable with its own
                event log), or any AccessControl gate
            default_decimals_offset: Offset used when create_vault() is not given one
            verbose: Print vault creation (default: follow the ledger)
        """
        if isinstance(admin, str):
            admin = Ownable(admin, events=EventLog())
        elif not isinstance(admin, AccessControl):
            raise TypeError(f"admin must be an account or AccessControl, got {type(admin).__name__}")
        self.ledger = ledger
        self.gate = admin
        self.default_decimals_offset = require_amount(default_decimals_offset, "default_decimals_offset")
        self.verbose = ledger.verbose if verbose is None else verbose
        self._records: List[VaultRecord] = []
        self._vaults: List[Vault] = []
        self._by_asset: Dict[str, List[int]] = {}

    def create_vault(self, asset: str, *, sender: str, decimals_offset: Optional[int] = None) -> Vault:
        """
        Deploy a vault over `asset` and append it to the registry.

        Each call creates a distinct vault, even for an asset that already has
        one. The first vault for an asset gets share symbol "sv<asset>", later
        ones "sv<asset>.<n>".

        Returns:
            The new Vault

        Raises:
            Unauthorized: If sender is not the administrator (registry unchanged)
            UnitNotRegistered: If asset is not registered on the ledger
        """
        if not self.gate.is_authorized(sender):
            raise Unauthorized(f"{sender} may not create vaults")
        if decimals_offset is None:
            decimals_offset = self.default_decimals_offset

        index = len(self._records)
        existing = len(self._by_asset.get(asset, ()))
        share_symbol = f"{SHARE_SYMBOL_PREFIX}{asset}" if existing == 0 else f"{SHARE_SYMBOL_PREFIX}{asset}.{existing}"
        vault = Vault(
            self.ledger,
            asset,
            decimals_offset=decimals_offset,
            address=f"vault:{asset}:{index:04d}",
            share_symbol=share_symbol,
            verbose=self.verbose,
        )

        record = VaultRecord(vault=vault.address, asset=vault.asset, index=index)
        self._records.append(record)
        self._vaults.append(vault)
        self._by_asset.setdefault(asset, []).append(index)
        self.ledger.events.emit(VaultCreated(vault.address, vault.asset))
        if self.verbose:
            print(f"🏦 Created: {vault.address} over {asset} (shares={share_symbol}, offset={decimals_offset})")
        return vault

    def total_vaults(self) -> int:
        return len(self._records)

    def vault_at(self, index: int) -> Vault:
        """
        Raises:
            IndexError: If no vault has that index
        """
        if index < 0 or index >= len(self._vaults):
            raise IndexError(f"No vault at index {index} (registry has {len(self._vaults)})")
        return self._vaults[index]

    def vaults_for(self, asset: str) -> List[Vault]:
        """All vaults over an asset, in creation order."""
        return [self._vaults[i] for i in self._by_asset.get(asset, ())]

    def records(self) -> Tuple[VaultRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"VaultFactory({len(self._records)} vaults)"
