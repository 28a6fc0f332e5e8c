"""
Example: A USDC share vault from first deposit to final exit.

Walks through deposit, yield, a late joiner, a delegated withdrawal, a
rejected over-withdrawal and the final redemptions, printing the pool
after each step.
"""

from sharevault import (
    Ledger, VaultFactory, asset_unit, MAX_ALLOWANCE, VaultError,
)


def show_pool(vault, holders):
    usdc = vault.ledger.get_unit(vault.asset)
    print(f"  total assets: {usdc.format(vault.total_assets())} {vault.asset}")
    print(f"  total shares: {vault.share.format(vault.total_supply())} {vault.share_symbol}")
    print(f"  share price:  {usdc.format(vault.share_price())} {vault.asset} per share")
    for holder in holders:
        print(f"  {holder:>8}: {vault.share.format(vault.balance_of(holder))} shares"
              f" -> {usdc.format(vault.max_withdraw(holder))} {vault.asset}")
    print()


def main():
    print("=" * 80)
    print("SHARE VAULT - Deposit, Yield and Redemption Example")
    print("=" * 80)
    print()

    ledger = Ledger("demo", verbose=True)
    usdc = ledger.register_unit(asset_unit("USDC", "USD Coin", decimals=6))

    factory = VaultFactory(ledger, admin="admin", default_decimals_offset=3)
    vault = factory.create_vault("USDC", sender="admin")
    holders = ["alice", "bob"]

    for account, amount in (("alice", "10000"), ("bob", "5000"), ("strategy", "2000")):
        ledger.mint(account, usdc.parse(amount), "USDC")
    for account in holders:
        ledger.approve(account, vault.address, MAX_ALLOWANCE, "USDC")
    print()

    print("Example 1: First Deposit")
    print("-" * 80)
    vault.deposit(usdc.parse("10000"), "alice", sender="alice")
    show_pool(vault, holders)

    print("Example 2: Yield Arrives")
    print("-" * 80)
    print("The strategy sends 2,000 USDC straight to custody. No shares are minted,")
    print("so every existing share is now worth 20% more.")
    ledger.transfer("strategy", vault.address, usdc.parse("2000"), "USDC")
    show_pool(vault, holders)

    print("Example 3: Late Joiner")
    print("-" * 80)
    print("Bob deposits 5,000 USDC at the new price and receives fewer shares.")
    vault.deposit(usdc.parse("5000"), "bob", sender="bob")
    show_pool(vault, holders)

    print("Example 4: Delegated Withdrawal")
    print("-" * 80)
    print("Alice lets a keeper withdraw 1,200 USDC of her position to her account.")
    vault.approve("keeper", vault.preview_withdraw(usdc.parse("1200")), sender="alice")
    vault.withdraw(usdc.parse("1200"), "alice", "alice", sender="keeper")
    print(f"  keeper allowance left: {vault.allowance('alice', 'keeper')}")
    show_pool(vault, holders)

    print("Example 5: Over-withdrawal")
    print("-" * 80)
    try:
        vault.withdraw(usdc.parse("50000"), "bob", "bob", sender="bob")
    except VaultError as e:
        print(f"  Rejected as expected: {type(e).__name__}")
    show_pool(vault, holders)

    print("Example 6: Everyone Exits")
    print("-" * 80)
    for holder in holders:
        vault.redeem(vault.max_redeem(holder), holder, holder, sender=holder)
    show_pool(vault, holders)

    for holder in holders:
        print(f"{holder} final USDC: {usdc.format(ledger.balance_of(holder, 'USDC'))}")
    print(f"Supply check: {'OK' if ledger.verify_supply()['valid'] else 'FAILED'}")


if __name__ == "__main__":
    main()
