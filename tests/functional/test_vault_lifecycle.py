"""
test_vault_lifecycle.py - End-to-end vault scenarios

Tests complete vault lifecycles:
- Yield realization by direct transfer into custody
- Zero-input and over-withdrawal rejection
- Multi-party deposit, yield, loss and exit
- Delegated exits by an approved operator
- Donation (inflation) attack blunted by a decimals offset
- Factory-deployed vaults kept isolated from each other
"""

import pytest

from sharevault import (
    Ledger, VaultFactory, Deposit, Withdraw,
    asset_unit,
    ZeroAmount, InsufficientBalance, InsufficientAllowance,
    MAX_ALLOWANCE,
)
from tests.vault_helpers import make_funded_vault, donate, ledger_balances


class TestYieldRealization:

    def test_donation_raises_share_value(self):
        vault = make_funded_vault(offset=0)
        assert vault.deposit(100, "alice", sender="alice") == 100

        donate(vault, "carol", 50)

        assert vault.total_assets() == 150
        assert abs(vault.convert_to_assets(100) - 150) <= 1

    @pytest.mark.parametrize("offset", [0, 3, 6])
    def test_yield_is_realized_on_exit(self, offset):
        vault = make_funded_vault(offset)
        shares = vault.deposit(1_000, "alice", sender="alice")
        donate(vault, "carol", 500)

        paid = vault.redeem(shares, "alice", "alice", sender="alice")

        assert 1_499 <= paid <= 1_500
        assert vault.ledger.balance_of("alice", "USDC") == 1_000_000 - 1_000 + paid


class TestRejections:

    def test_zero_inputs_leave_totals_unchanged(self):
        vault = make_funded_vault()
        vault.deposit(100, "alice", sender="alice")

        for call in (
            lambda: vault.deposit(0, "alice", sender="alice"),
            lambda: vault.withdraw(0, "alice", "alice", sender="alice"),
            lambda: vault.redeem(0, "alice", "alice", sender="alice"),
            lambda: vault.mint(0, "alice", sender="alice"),
        ):
            with pytest.raises(ZeroAmount):
                call()
            assert vault.total_assets() == 100
            assert vault.total_supply() == 100

    def test_over_withdrawal_is_not_partially_applied(self):
        vault = make_funded_vault()
        vault.deposit(100, "alice", sender="alice")
        before = ledger_balances(vault.ledger)

        with pytest.raises(InsufficientBalance):
            vault.withdraw(200, "alice", "alice", sender="alice")

        assert ledger_balances(vault.ledger) == before
        assert vault.balance_of("alice") == 100
        assert vault.total_assets() == 100


class TestMultiPartyLifecycle:

    def test_deposit_yield_loss_and_exit(self):
        vault = make_funded_vault(offset=3, accounts=("alice", "bob", "carol", "treasury"))
        ledger = vault.ledger

        # Alice seeds, the strategy earns 20%, Bob joins at the higher price.
        alice_shares = vault.deposit(10_000, "alice", sender="alice")
        donate(vault, "treasury", 2_000)
        bob_shares = vault.deposit(6_000, "bob", sender="bob")
        assert bob_shares < alice_shares * 6 // 10

        # A 25% loss hits custody.
        ledger.set_balance(vault.address, "USDC", vault.total_assets() * 3 // 4)

        # Carol mints an exact share amount at the reduced price.
        carol_cost = vault.mint(bob_shares, "carol", sender="carol")
        assert carol_cost < 6_000

        # Everyone exits.
        paid = {
            "alice": vault.redeem(alice_shares, "alice", "alice", sender="alice"),
            "bob": vault.redeem(bob_shares, "bob", "bob", sender="bob"),
            "carol": vault.redeem(bob_shares, "carol", "carol", sender="carol"),
        }

        assert vault.total_supply() == 0
        assert 0 <= vault.total_assets() <= 3
        assert paid["alice"] > 9_000 - 3
        assert paid["bob"] < 6_000
        assert paid["carol"] <= carol_cost
        assert ledger.verify_supply()["valid"]

        deposits = ledger.events.of_type(Deposit)
        withdrawals = ledger.events.of_type(Withdraw)
        assert [d.receiver for d in deposits] == ["alice", "bob", "carol"]
        assert [w.owner for w in withdrawals] == ["alice", "bob", "carol"]
        assert sum(w.shares for w in withdrawals) == sum(d.shares for d in deposits)

    def test_shares_change_hands_then_exit(self):
        vault = make_funded_vault()
        vault.deposit(1_000, "alice", sender="alice")
        vault.transfer("bob", 400, sender="alice")
        donate(vault, "carol", 1_000)

        bob_paid = vault.redeem(400, "bob", "bob", sender="bob")
        alice_paid = vault.redeem(600, "alice", "alice", sender="alice")

        assert bob_paid == 799
        assert alice_paid == 1_200
        assert vault.total_assets() == 1


class TestDelegatedExit:

    def test_operator_redeems_to_owner(self):
        vault = make_funded_vault()
        shares = vault.deposit(5_000, "alice", sender="alice")
        vault.approve("keeper", MAX_ALLOWANCE, sender="alice")

        paid = vault.redeem(shares, "alice", "alice", sender="keeper")

        assert paid == 5_000
        assert vault.ledger.balance_of("alice", "USDC") == 1_000_000
        assert vault.allowance("alice", "keeper") == MAX_ALLOWANCE
        assert vault.ledger.events.last == Withdraw(vault.address, "keeper", "alice", "alice", 5_000, shares)

    def test_bounded_operator_runs_out(self):
        vault = make_funded_vault()
        vault.deposit(5_000, "alice", sender="alice")
        vault.approve("keeper", 3_000, sender="alice")

        vault.withdraw(2_000, "keeper", "alice", sender="keeper")
        with pytest.raises(InsufficientAllowance):
            vault.withdraw(2_000, "keeper", "alice", sender="keeper")

        assert vault.allowance("alice", "keeper") == 1_000
        assert vault.ledger.balance_of("keeper", "USDC") == 2_000


class TestDonationAttack:
    """Front-running first depositor who donates to skew the exchange rate."""

    def run_attack(self, offset):
        vault = make_funded_vault(offset, accounts=("mallory", "victim"))
        vault.deposit(1, "mallory", sender="mallory")
        donate(vault, "mallory", 10_000)
        victim_shares = vault.deposit(10_000, "victim", sender="victim")
        return vault, victim_shares

    def test_without_offset_victim_loses_a_third(self):
        vault, victim_shares = self.run_attack(offset=0)
        assert victim_shares == 1
        assert vault.convert_to_assets(victim_shares) < 7_000

    def test_offset_blunts_the_attack(self):
        vault, victim_shares = self.run_attack(offset=6)
        assert vault.convert_to_assets(victim_shares) >= 9_999
        mallory_value = vault.convert_to_assets(vault.balance_of("mallory"))
        assert mallory_value < 10_001


class TestFactoryDeployedVaults:

    def test_vaults_are_isolated(self):
        ledger = Ledger("main", verbose=False)
        ledger.register_unit(asset_unit("USDC", "USD Coin", decimals=6))
        ledger.register_unit(asset_unit("WETH", "Wrapped Ether", decimals=18))
        factory = VaultFactory(ledger, admin="admin")

        usdc = factory.create_vault("USDC", sender="admin")
        weth = factory.create_vault("WETH", sender="admin", decimals_offset=0)
        usdc_2 = factory.create_vault("USDC", sender="admin", decimals_offset=6)

        ledger.mint("alice", 10_000, "USDC")
        ledger.mint("alice", 10 ** 18, "WETH")
        for vault in (usdc, weth, usdc_2):
            ledger.approve("alice", vault.address, MAX_ALLOWANCE, vault.asset)

        usdc.deposit(4_000, "alice", sender="alice")
        usdc_2.deposit(4_000, "alice", sender="alice")
        weth.deposit(10 ** 18, "alice", sender="alice")

        ledger.mint("yield", 4_000, "USDC")
        ledger.transfer("yield", usdc.address, 4_000, "USDC")

        assert usdc.convert_to_assets(usdc.balance_of("alice")) >= 7_999
        assert usdc_2.convert_to_assets(usdc_2.balance_of("alice")) == 4_000
        assert usdc_2.balance_of("alice") == 4_000 * 10 ** 6
        assert weth.total_assets() == 10 ** 18
        assert factory.vaults_for("USDC") == [usdc, usdc_2]
        assert [r.asset for r in factory.records()] == ["USDC", "WETH", "USDC"]
