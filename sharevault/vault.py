"""
vault.py - Vault Accounting Core

A Vault pools one underlying asset and issues shares that are proportional,
transferable claims on everything the vault holds. Yield or loss (assets sent
to or taken from the custody account directly) is shared pro rata.

Entry operations:
    deposit(assets, receiver)          exact assets in  -> shares minted
    mint(shares, receiver)             exact shares out -> assets pulled in
    withdraw(assets, receiver, owner)  exact assets out -> shares burned
    redeem(shares, receiver, owner)    exact shares burned -> assets out

Effect ordering (the only reentrancy defence, do not reorder):
    deposit/mint:     pull assets into custody, then mint, then emit
    withdraw/redeem:  burn shares, then push assets out, then emit

Pool totals are read from the ledger (custody balance, share supply), so each
ledger operation updates them exactly once. Every entry operation runs inside
a ledger transaction: on any failure nothing it did remains.

The acting party is passed explicitly as the keyword-only `sender`.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional

from .core import (
    Unit, Rounding,
    DEFAULT_DECIMALS_OFFSET, MAX_ALLOWANCE,
    ZeroAmount, InsufficientBalance,
    require_account, require_amount, share_unit,
)
from .conversion import (
    PoolState,
    convert_to_shares as _convert_to_shares,
    convert_to_assets as _convert_to_assets,
    preview_deposit as _preview_deposit,
    preview_mint as _preview_mint,
    preview_withdraw as _preview_withdraw,
    preview_redeem as _preview_redeem,
    share_price as _share_price,
    load_pool_state,
)
from .events import Deposit, Withdraw
from .ledger import Ledger


class Vault:
    """
    Single-asset deposit vault.

    Example:
        ledger = Ledger("main", verbose=False)
        ledger.register_unit(asset_unit("USDC", "USD Coin", decimals=6))
        vault = Vault(ledger, "USDC")

        ledger.mint("alice", 1_000, "USDC")
        ledger.approve("alice", vault.address, 1_000, "USDC")
        shares = vault.deposit(1_000, "alice", sender="alice")
    """

    def __init__(
        self,
        ledger: Ledger,
        asset: str,
        decimals_offset: int = DEFAULT_DECIMALS_OFFSET,
        address: Optional[str] = None,
        share_symbol: Optional[str] = None,
        verbose: Optional[bool] = None,
    ):
        """
        Create a vault over a registered asset and register its share unit.

        Args:
            ledger: Ledger holding the asset; the share unit is added to it
            asset: Symbol of the underlying asset
            decimals_offset: Extra share precision over the asset (immutable)
            address: Custody account for pooled assets (default: "vault:<asset>",
                or "vault:<share_symbol>" when a share symbol is given)
            share_symbol: Share unit symbol (default: "sv<asset>")
            verbose: Print operations (default: follow the ledger)

        Raises:
            UnitNotRegistered: If the asset is not registered on the ledger
            ValueError: If decimals_offset is negative, the share symbol is taken,
                or the custody address already backs another vault
        """
        asset_def = ledger.get_unit(asset)
        require_amount(decimals_offset, "decimals_offset")
        self._ledger = ledger
        self._asset = asset_def.symbol
        self._decimals_offset = decimals_offset
        if address is None:
            address = f"vault:{share_symbol or asset_def.symbol}"
        self._address = require_account(address, "address")
        self._share = ledger.register_custody(
            self._address, share_unit(asset_def, decimals_offset, share_symbol)
        )
        self.verbose = ledger.verbose if verbose is None else verbose

    # ========================================================================
    # IDENTITY
    # ========================================================================

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def address(self) -> str:
        """Custody account holding the pooled assets."""
        return self._address

    @property
    def asset(self) -> str:
        return self._asset

    @property
    def share_symbol(self) -> str:
        return self._share.symbol

    @property
    def share(self) -> Unit:
        return self._share

    @property
    def decimals(self) -> int:
        """Share precision: asset decimals + decimals_offset."""
        return self._share.decimals

    @property
    def decimals_offset(self) -> int:
        return self._decimals_offset

    # ========================================================================
    # ACCOUNTING VIEWS
    # ========================================================================

    def total_assets(self) -> int:
        """Assets held in custody, including anything sent here directly."""
        return self._ledger.balance_of(self._address, self._asset)

    def total_supply(self) -> int:
        """Outstanding shares."""
        return self._ledger.total_supply(self.share_symbol)

    def balance_of(self, account: str) -> int:
        """Shares held by an account."""
        return self._ledger.balance_of(account, self.share_symbol)

    def pool_state(self) -> PoolState:
        return load_pool_state(
            self._ledger, self._address, self._asset, self.share_symbol, self._decimals_offset
        )

    def convert_to_shares(self, assets: int) -> int:
        return _convert_to_shares(self.pool_state(), assets, Rounding.DOWN)

    def convert_to_assets(self, shares: int) -> int:
        return _convert_to_assets(self.pool_state(), shares, Rounding.DOWN)

    def preview_deposit(self, assets: int) -> int:
        return _preview_deposit(self.pool_state(), assets)

    def preview_mint(self, shares: int) -> int:
        return _preview_mint(self.pool_state(), shares)

    def preview_withdraw(self, assets: int) -> int:
        return _preview_withdraw(self.pool_state(), assets)

    def preview_redeem(self, shares: int) -> int:
        return _preview_redeem(self.pool_state(), shares)

    def share_price(self) -> int:
        """Assets redeemable for one whole share, rounded down."""
        return _share_price(self.pool_state(), self._share.one)

    def max_deposit(self, receiver: str) -> int:
        """Deposits are not capped."""
        return MAX_ALLOWANCE

    def max_mint(self, receiver: str) -> int:
        """Mints are not capped."""
        return MAX_ALLOWANCE

    def max_withdraw(self, owner: str) -> int:
        """Assets owner could withdraw by burning every share they hold."""
        return _convert_to_assets(self.pool_state(), self.balance_of(owner), Rounding.DOWN)

    def max_redeem(self, owner: str) -> int:
        return self.balance_of(owner)

    # ========================================================================
    # ENTRY OPERATIONS (Mutating)
    # ========================================================================

    def deposit(self, assets: int, receiver: str, *, sender: str) -> int:
        """
        Deposit exactly `assets` from sender and mint shares to receiver.

        Sender must have approved this vault's address on the asset.

        Returns:
            Shares minted (preview_deposit, rounded down)

        Raises:
            ZeroAmount: If assets is 0
            ZeroAddress: If sender or receiver is the null account
            InsufficientAllowance / InsufficientBalance: From the asset transfer
        """
        self._require_nonzero(assets, "assets")
        require_account(sender, "sender")
        require_account(receiver, "receiver")
        shares = self.preview_deposit(assets)
        self._deposit(sender, receiver, assets, shares)
        return shares

    def mint(self, shares: int, receiver: str, *, sender: str) -> int:
        """
        Mint exactly `shares` to receiver, pulling the required assets from sender.

        Returns:
            Assets pulled in (preview_mint, rounded up)

        Raises:
            ZeroAmount: If shares is 0
        """
        self._require_nonzero(shares, "shares")
        require_account(sender, "sender")
        require_account(receiver, "receiver")
        assets = self.preview_mint(shares)
        self._deposit(sender, receiver, assets, shares)
        return assets

    def withdraw(self, assets: int, receiver: str, owner: str, *, sender: str) -> int:
        """
        Send exactly `assets` to receiver, burning owner's shares.

        If sender is not owner, sender's share allowance over owner is spent.

        Returns:
            Shares burned (preview_withdraw, rounded up)

        Raises:
            ZeroAmount: If assets is 0
            InsufficientBalance: If owner holds fewer shares than must be burned
            InsufficientAllowance: If sender != owner and the allowance is short
        """
        self._require_nonzero(assets, "assets")
        require_account(sender, "sender")
        require_account(receiver, "receiver")
        require_account(owner, "owner")
        shares = self.preview_withdraw(assets)
        self._withdraw(sender, receiver, owner, assets, shares)
        return shares

    def redeem(self, shares: int, receiver: str, owner: str, *, sender: str) -> int:
        """
        Burn exactly `shares` of owner and send the assets they are worth to receiver.

        The result may be 0 if the pool has lost nearly all its value.

        Returns:
            Assets released (preview_redeem, rounded down)

        Raises:
            ZeroAmount: If shares is 0
            InsufficientBalance: If owner holds fewer than `shares`
            InsufficientAllowance: If sender != owner and the allowance is short
        """
        self._require_nonzero(shares, "shares")
        require_account(sender, "sender")
        require_account(receiver, "receiver")
        require_account(owner, "owner")
        assets = self.preview_redeem(shares)
        self._withdraw(sender, receiver, owner, assets, shares)
        return assets

    # ========================================================================
    # SHARE TOKEN CONVENIENCE
    # ========================================================================

    def transfer(self, dest: str, shares: int, *, sender: str) -> None:
        self._ledger.transfer(sender, dest, shares, self.share_symbol)

    def approve(self, spender: str, shares: int, *, sender: str) -> None:
        self._ledger.approve(sender, spender, shares, self.share_symbol)

    def allowance(self, owner: str, spender: str) -> int:
        return self._ledger.allowance(owner, spender, self.share_symbol)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @staticmethod
    def _require_nonzero(amount: int, name: str) -> None:
        if require_amount(amount, name) == 0:
            raise ZeroAmount(f"{name} must be greater than zero")

    def _deposit(self, sender: str, receiver: str, assets: int, shares: int) -> None:
        with self._operation("DEPOSIT"):
            # Assets must be in custody before any share exists for them.
            self._ledger.transfer_from(self._address, sender, self._address, assets, self._asset)
            self._ledger.mint(receiver, shares, self.share_symbol)
            self._ledger.events.emit(Deposit(self._address, sender, receiver, assets, shares))
        if self.verbose:
            print(f"✓ DEPOSIT {self._address}: {sender} → {receiver} "
                  f"{assets} {self._asset} for {shares} {self.share_symbol}")

    def _withdraw(self, sender: str, receiver: str, owner: str, assets: int, shares: int) -> None:
        with self._operation("WITHDRAW"):
            held = self.balance_of(owner)
            if held < shares:
                raise InsufficientBalance(
                    f"{owner} {self.share_symbol}: balance {held} < required {shares}"
                )
            if sender != owner:
                self._ledger.spend_allowance(owner, sender, shares, self.share_symbol)
            # Shares must be gone before assets leave custody.
            self._ledger.burn(owner, shares, self.share_symbol)
            self._ledger.transfer(self._address, receiver, assets, self._asset)
            self._ledger.events.emit(Withdraw(self._address, sender, receiver, owner, assets, shares))
        if self.verbose:
            print(f"✓ WITHDRAW {self._address}: {owner} → {receiver} "
                  f"{shares} {self.share_symbol} for {assets} {self._asset}")

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        try:
            with self._ledger.transaction():
                yield
        except Exception as e:
            if self.verbose:
                print(f"✗ {name} REJECTED {self._address}: {type(e).__name__}: {e}")
            raise

    def __repr__(self) -> str:
        return (f"Vault({self._address}, asset={self._asset}, share={self.share_symbol}, "
                f"total_assets={self.total_assets()}, total_supply={self.total_supply()})")
