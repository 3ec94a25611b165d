"""
Tests for the account ledger: balance commands, invariants and concurrency
"""

import threading
import pytest
from decimal import Decimal
from datetime import date

from deposito_ledger.storage import InMemoryStorage, SQLiteStorage
from deposito_ledger.audit import AuditTrail, AuditEventType
from deposito_ledger.accounts import AccountRepository
from deposito_ledger.customers import CustomerManager
from deposito_ledger.deposito_types import DepositoTypeRegistry
from deposito_ledger.ledger import AccountLedger, IntegrityReport
from deposito_ledger.locking import LockArena, account_key
from deposito_ledger.transactions import TransactionType
from deposito_ledger.exceptions import (
    ConcurrencyConflictError, HasTransactionsError, InsufficientFundsError,
    InUseError, InvalidAmountError, NegativeBalanceError, NotFoundError
)


DAY_1 = date(2024, 1, 1)
DAY_2 = date(2024, 1, 2)


def build_ledger(storage, **kwargs):
    audit = AuditTrail(storage)
    locks = LockArena(timeout_seconds=5.0)
    registry = DepositoTypeRegistry(storage, audit, locks)
    customers = CustomerManager(storage, audit, locks)
    ledger = AccountLedger(storage, audit, registry, customers, locks=locks, **kwargs)
    return ledger, registry, customers, audit


class FailingLogStorage(InMemoryStorage):
    """Fails every write to the transactions table once armed"""

    def __init__(self):
        super().__init__()
        self.fail_log_writes = False

    def save(self, table, record_id, data):
        if self.fail_log_writes and table == "transactions":
            raise RuntimeError("disk full")
        super().save(table, record_id, data)


class FlakyAccountRepository(AccountRepository):
    """Raises a version conflict on the first `conflicts` updates"""

    def __init__(self, storage, conflicts):
        super().__init__(storage)
        self.conflicts = conflicts
        self.attempts = 0

    def update(self, account):
        self.attempts += 1
        if self.attempts <= self.conflicts:
            raise ConcurrencyConflictError("simulated conflict", "account", account.id)
        return super().update(account)


class TestScenarios:
    """End-to-end ledger scenarios on a 12% (1% monthly) tier"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.ledger, self.registry, self.customers, self.audit = build_ledger(self.storage)

        self.customer = self.customers.create_customer("Alice")
        self.tier = self.registry.create("Gold", 12)
        self.account = self.ledger.open_account(
            self.customer.id, self.tier.id, initial_balance=1000, opened_on=DAY_1
        )

    def test_scenario_a_deposit(self):
        transaction = self.ledger.deposit(self.account.id, 500, DAY_1)

        assert transaction.transaction_type == TransactionType.DEPOSIT
        assert transaction.amount == Decimal("500.00")
        assert transaction.ending_balance == Decimal("1500.00")
        assert self.ledger.get_balance(self.account.id) == Decimal("1500.00")

    def test_scenario_b_withdraw_under_ceiling(self):
        self.ledger.deposit(self.account.id, 500, DAY_1)

        ceiling = self.ledger.project_ceiling(self.account.id, 3).accrued_balance
        assert ceiling == Decimal("1545.451500")

        transaction = self.ledger.withdraw(self.account.id, 200, DAY_2, ceiling)

        assert transaction.transaction_type == TransactionType.WITHDRAWAL
        assert transaction.amount == Decimal("200.00")
        assert transaction.ending_balance == Decimal("1300.00")
        assert self.ledger.get_balance(self.account.id) == Decimal("1300.00")

    def test_scenario_c_withdraw_over_ceiling(self):
        self.ledger.deposit(self.account.id, 500, DAY_1)
        ceiling = self.ledger.project_ceiling(self.account.id, 3).accrued_balance
        self.ledger.withdraw(self.account.id, 200, DAY_2, ceiling)
        entries_before = len(self.ledger.transactions.list_by_account(self.account.id))

        with pytest.raises(InsufficientFundsError):
            self.ledger.withdraw(self.account.id, 2000, DAY_2, ceiling)

        assert self.ledger.get_balance(self.account.id) == Decimal("1300.00")
        assert len(self.ledger.transactions.list_by_account(self.account.id)) == entries_before

    def test_scenario_d_delete_tier_in_use(self):
        with pytest.raises(InUseError):
            self.registry.delete(self.tier.id)

        assert self.registry.get(self.tier.id).yearly_return == Decimal("12")

    def test_scenario_e_close_account_with_transactions(self):
        self.ledger.deposit(self.account.id, 500, DAY_1)

        with pytest.raises(HasTransactionsError):
            self.ledger.close_account(self.account.id)

        assert self.ledger.get_account(self.account.id).id == self.account.id

    def test_log_replays_to_stored_balance(self):
        self.ledger.deposit(self.account.id, 500, DAY_1)
        self.ledger.withdraw_with_projection(self.account.id, 200, DAY_2, months=3)
        self.ledger.post_interest(self.account.id, 1, DAY_2)

        report = self.ledger.verify_integrity(self.account.id)
        assert isinstance(report, IntegrityReport)
        assert report.consistent
        assert report.stored_balance == report.reconstructed_balance
        assert report.transaction_count == 4


class TestOpenAndClose:
    """Account lifecycle"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.ledger, self.registry, self.customers, self.audit = build_ledger(self.storage)
        self.customer = self.customers.create_customer("Budi")
        self.tier = self.registry.create("Silver", 6)

    def test_open_with_zero_balance_writes_no_transaction(self):
        account = self.ledger.open_account(self.customer.id, self.tier.id)

        assert account.balance == Decimal("0")
        assert account.version == 0
        assert self.ledger.transactions.list_by_account(account.id) == []

    def test_open_with_initial_balance_posts_opening_deposit(self):
        account = self.ledger.open_account(
            self.customer.id, self.tier.id, initial_balance="250.50", opened_on=DAY_1
        )

        entries = self.ledger.transactions.list_by_account(account.id)
        assert len(entries) == 1
        assert entries[0].transaction_type == TransactionType.DEPOSIT
        assert entries[0].amount == Decimal("250.50")
        assert entries[0].transaction_date == DAY_1
        assert self.ledger.get_balance(account.id) == Decimal("250.50")

    def test_open_for_missing_customer(self):
        with pytest.raises(NotFoundError):
            self.ledger.open_account(99, self.tier.id)
        assert self.ledger.list_accounts() == []

    def test_open_for_missing_tier(self):
        with pytest.raises(NotFoundError):
            self.ledger.open_account(self.customer.id, 99)

    def test_open_with_negative_balance(self):
        with pytest.raises(InvalidAmountError):
            self.ledger.open_account(self.customer.id, self.tier.id, initial_balance=-1)

    def test_close_empty_account(self):
        account = self.ledger.open_account(self.customer.id, self.tier.id)
        self.ledger.close_account(account.id)

        with pytest.raises(NotFoundError):
            self.ledger.get_account(account.id)

    def test_close_missing_account(self):
        with pytest.raises(NotFoundError):
            self.ledger.close_account(5)

    def test_list_accounts_by_customer(self):
        other = self.customers.create_customer("Citra")
        first = self.ledger.open_account(self.customer.id, self.tier.id)
        self.ledger.open_account(other.id, self.tier.id)
        second = self.ledger.open_account(self.customer.id, self.tier.id)

        owned = self.ledger.list_accounts_by_customer(self.customer.id)
        assert [a.id for a in owned] == [first.id, second.id]
        assert len(self.ledger.list_accounts()) == 3

    def test_list_accounts_for_missing_customer(self):
        with pytest.raises(NotFoundError):
            self.ledger.list_accounts_by_customer(42)


class TestChangeTier:
    """Tier changes are metadata only"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.ledger, self.registry, self.customers, self.audit = build_ledger(self.storage)
        self.customer = self.customers.create_customer("Dewi")
        self.silver = self.registry.create("Silver", 6)
        self.gold = self.registry.create("Gold", 12)
        self.account = self.ledger.open_account(self.customer.id, self.silver.id, initial_balance=1000)

    def test_change_tier_keeps_balance_and_log(self):
        entries_before = self.ledger.transactions.list_by_account(self.account.id)

        account = self.ledger.change_tier(self.account.id, self.gold.id)

        assert account.deposito_type_id == self.gold.id
        assert account.balance == Decimal("1000.00")
        assert self.ledger.transactions.list_by_account(self.account.id) == entries_before

    def test_projection_follows_new_tier(self):
        before = self.ledger.project_ceiling(self.account.id, 1).accrued_balance
        self.ledger.change_tier(self.account.id, self.gold.id)
        after = self.ledger.project_ceiling(self.account.id, 1).accrued_balance

        assert before == Decimal("1005.000000")
        assert after == Decimal("1010.000000")

    def test_change_to_missing_tier(self):
        with pytest.raises(NotFoundError):
            self.ledger.change_tier(self.account.id, 77)
        assert self.ledger.get_account(self.account.id).deposito_type_id == self.silver.id

    def test_old_tier_deletable_after_move(self):
        self.ledger.change_tier(self.account.id, self.gold.id)
        self.registry.delete(self.silver.id)
        assert not self.registry.exists(self.silver.id)


class TestWithdrawRules:
    """Ordering and edge cases of the withdrawal checks"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.ledger, self.registry, self.customers, self.audit = build_ledger(self.storage)
        customer = self.customers.create_customer("Eko")
        self.tier = self.registry.create("Gold", 12)
        self.account = self.ledger.open_account(customer.id, self.tier.id, initial_balance=100)

    def test_non_positive_amount_checked_first(self):
        # Amount is validated before the account lookup
        with pytest.raises(InvalidAmountError):
            self.ledger.withdraw(9999, 0, DAY_1, Decimal("1000"))
        with pytest.raises(InvalidAmountError):
            self.ledger.withdraw(self.account.id, "-5", DAY_1, Decimal("1000"))

    def test_missing_account_checked_before_ceiling(self):
        with pytest.raises(NotFoundError):
            self.ledger.withdraw(9999, 5000, DAY_1, Decimal("1"))

    def test_ceiling_checked_before_balance(self):
        with pytest.raises(InsufficientFundsError):
            self.ledger.withdraw(self.account.id, 150, DAY_1, Decimal("120"))

    def test_negative_balance_rejected(self):
        # Within the ceiling but above the principal
        with pytest.raises(NegativeBalanceError):
            self.ledger.withdraw(self.account.id, 101, DAY_1, Decimal("200"))
        assert self.ledger.get_balance(self.account.id) == Decimal("100.00")

    def test_withdraw_entire_balance(self):
        transaction = self.ledger.withdraw(self.account.id, 100, DAY_1, Decimal("100"))
        assert transaction.ending_balance == Decimal("0.00")

    def test_withdraw_with_projection_requires_positive_months(self):
        with pytest.raises(InvalidAmountError):
            self.ledger.withdraw_with_projection(self.account.id, 10, DAY_1, months=0)
        with pytest.raises(InvalidAmountError):
            self.ledger.withdraw_with_projection(self.account.id, 10, DAY_1, months=-2)

    def test_withdraw_with_projection_uses_current_tier(self):
        # 100 * 1.01 = 101 ceiling, but only 100 of principal
        with pytest.raises(NegativeBalanceError):
            self.ledger.withdraw_with_projection(self.account.id, "100.50", DAY_1, months=1)
        with pytest.raises(InsufficientFundsError):
            self.ledger.withdraw_with_projection(self.account.id, "101.01", DAY_1, months=1)

        transaction = self.ledger.withdraw_with_projection(self.account.id, 40, DAY_1, months=1)
        assert transaction.ending_balance == Decimal("60.00")

    def test_deposit_rejects_non_positive(self):
        with pytest.raises(InvalidAmountError):
            self.ledger.deposit(self.account.id, 0, DAY_1)
        with pytest.raises(InvalidAmountError):
            self.ledger.deposit(self.account.id, "abc", DAY_1)

    def test_deposit_to_missing_account(self):
        with pytest.raises(NotFoundError):
            self.ledger.deposit(321, 10, DAY_1)

    def test_amounts_rounded_to_cents(self):
        transaction = self.ledger.deposit(self.account.id, "0.005", DAY_1)
        assert transaction.amount == Decimal("0.01")
        assert self.ledger.get_balance(self.account.id) == Decimal("100.01")

    def test_transaction_date_defaults_to_today(self):
        transaction = self.ledger.deposit(self.account.id, 1)
        assert transaction.transaction_date == date.today()

    def test_transaction_date_from_iso_string(self):
        transaction = self.ledger.deposit(self.account.id, 1, "2024-06-30")
        assert transaction.transaction_date == date(2024, 6, 30)

    def test_amount_too_large_for_cents_is_rejected(self):
        with pytest.raises(InvalidAmountError):
            self.ledger.deposit(self.account.id, Decimal("1e27"), DAY_1)

        assert self.ledger.get_balance(self.account.id) == Decimal("100.00")
        assert len(self.audit.get_events_by_type(AuditEventType.TRANSACTION_REJECTED)) == 1

    def test_balance_growing_past_precision_is_rejected(self):
        self.ledger.deposit(self.account.id, Decimal("5e25"), DAY_1)

        with pytest.raises(InvalidAmountError):
            self.ledger.deposit(self.account.id, Decimal("5e25"), DAY_2)

        assert self.ledger.get_balance(self.account.id) == Decimal("50000000000000000000000100.00")
        assert len(self.ledger.list_transactions(self.account.id)) == 2

    def test_overflowing_projection_is_rejected(self):
        with pytest.raises(InvalidAmountError):
            self.ledger.withdraw_with_projection(self.account.id, 10, DAY_1, months=10 ** 9)
        with pytest.raises(InvalidAmountError):
            self.ledger.post_interest(self.account.id, 10 ** 9, DAY_1)
        with pytest.raises(InvalidAmountError):
            self.ledger.project_ceiling(self.account.id, 10 ** 9)

        assert self.ledger.get_balance(self.account.id) == Decimal("100.00")
        assert len(self.audit.get_events_by_type(AuditEventType.TRANSACTION_REJECTED)) == 2


class TestPostInterest:
    """Interest posting as a logged transaction"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.ledger, self.registry, self.customers, self.audit = build_ledger(self.storage)
        self.customer = self.customers.create_customer("Fajar")
        self.tier = self.registry.create("Gold", 12)
        self.account = self.ledger.open_account(self.customer.id, self.tier.id, initial_balance=1000)

    def test_post_one_month(self):
        transaction = self.ledger.post_interest(self.account.id, 1, DAY_2)

        assert transaction.transaction_type == TransactionType.INTEREST
        assert transaction.amount == Decimal("10.00")
        assert self.ledger.get_balance(self.account.id) == Decimal("1010.00")

    def test_post_twelve_months_rounds_to_cents(self):
        transaction = self.ledger.post_interest(self.account.id, 12, DAY_2)
        assert transaction.amount == Decimal("126.83")
        assert self.ledger.get_balance(self.account.id) == Decimal("1126.83")

    def test_replay_matches_after_interest(self):
        self.ledger.post_interest(self.account.id, 3, DAY_2)
        self.ledger.deposit(self.account.id, 50, DAY_2)

        stored = self.ledger.get_balance(self.account.id)
        assert self.ledger.transactions.reconstruct_balance(self.account.id) == stored

    def test_zero_rate_rejected(self):
        flat = self.registry.create("Flat", 0)
        account = self.ledger.open_account(self.customer.id, flat.id, initial_balance=500)

        with pytest.raises(InvalidAmountError):
            self.ledger.post_interest(account.id, 12, DAY_2)
        assert self.ledger.get_balance(account.id) == Decimal("500.00")

    def test_zero_months_rejected(self):
        with pytest.raises(InvalidAmountError):
            self.ledger.post_interest(self.account.id, 0, DAY_2)

    def test_audited_as_interest(self):
        self.ledger.post_interest(self.account.id, 1, DAY_2)
        events = self.audit.get_events_by_type(AuditEventType.INTEREST_POSTED)
        assert len(events) == 1
        assert events[0].metadata["amount"] == "10.00"


class TestProjectionQueries:
    """Projections never change state"""

    def test_project_ceiling_is_read_only(self):
        storage = InMemoryStorage()
        ledger, registry, customers, _ = build_ledger(storage)
        customer = customers.create_customer("Gita")
        tier = registry.create("Gold", 12)
        account = ledger.open_account(customer.id, tier.id, initial_balance=1000)

        projection = ledger.project_ceiling(account.id, 12)

        assert projection.rounded().accrued_balance == Decimal("1126.83")
        assert ledger.get_account(account.id).version == account.version
        assert len(ledger.transactions.list_by_account(account.id)) == 1

    def test_project_zero_months(self):
        storage = InMemoryStorage()
        ledger, registry, customers, _ = build_ledger(storage)
        customer = customers.create_customer("Hadi")
        tier = registry.create("Gold", 12)
        account = ledger.open_account(customer.id, tier.id, initial_balance="321.09")

        assert ledger.project_ceiling(account.id, 0).accrued_balance == Decimal("321.09")


class TestConcurrency:
    """Per-account serialization"""

    @pytest.mark.parametrize("backend", ["memory", "sqlite"])
    def test_concurrent_deposits(self, backend, tmp_path):
        if backend == "memory":
            storage = InMemoryStorage()
        else:
            storage = SQLiteStorage(tmp_path / "concurrency.db")
        ledger, registry, customers, _ = build_ledger(storage)
        customer = customers.create_customer("Indra")
        tier = registry.create("Gold", 12)
        account = ledger.open_account(customer.id, tier.id)

        threads_count = 20
        amount = Decimal("12.34")
        errors = []

        def deposit():
            try:
                ledger.deposit(account.id, amount, DAY_1)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=deposit) for _ in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert ledger.get_balance(account.id) == amount * threads_count
        entries = ledger.transactions.list_by_account(account.id)
        assert len(entries) == threads_count
        assert sorted(t.ending_balance for t in entries) == [amount * n for n in range(1, threads_count + 1)]
        storage.close()

    def test_different_accounts_do_not_block(self):
        storage = InMemoryStorage()
        ledger, registry, customers, _ = build_ledger(storage)
        customer = customers.create_customer("Joko")
        tier = registry.create("Gold", 12)
        first = ledger.open_account(customer.id, tier.id)
        second = ledger.open_account(customer.id, tier.id)

        with ledger.locks.hold(account_key(first.id)):
            ledger.deposit(second.id, 10, DAY_1)

        assert ledger.get_balance(second.id) == Decimal("10.00")

    def test_lock_timeout_surfaces_conflict(self):
        storage = InMemoryStorage()
        ledger, registry, customers, _ = build_ledger(
            storage, max_conflict_retries=1, conflict_backoff_seconds=0
        )
        ledger.locks.timeout_seconds = 0.05
        customer = customers.create_customer("Kiki")
        tier = registry.create("Gold", 12)
        account = ledger.open_account(customer.id, tier.id)

        acquired = threading.Event()
        release = threading.Event()

        def hold_lock():
            with ledger.locks.hold(account_key(account.id)):
                acquired.set()
                release.wait(5)

        holder = threading.Thread(target=hold_lock)
        holder.start()
        acquired.wait(5)
        try:
            with pytest.raises(ConcurrencyConflictError):
                ledger.deposit(account.id, 10, DAY_1)
        finally:
            release.set()
            holder.join()

        assert ledger.get_balance(account.id) == Decimal("0")


class TestFailureInjection:
    """A failed log append leaves nothing behind"""

    def test_failed_append_keeps_balance(self):
        storage = FailingLogStorage()
        ledger, registry, customers, _ = build_ledger(storage)
        customer = customers.create_customer("Lina")
        tier = registry.create("Gold", 12)
        account = ledger.open_account(customer.id, tier.id, initial_balance=100)

        storage.fail_log_writes = True
        with pytest.raises(RuntimeError):
            ledger.deposit(account.id, 50, DAY_1)
        storage.fail_log_writes = False

        assert ledger.get_balance(account.id) == Decimal("100.00")
        assert ledger.get_account(account.id).version == 0
        assert len(ledger.transactions.list_by_account(account.id)) == 1
        assert ledger.verify_integrity(account.id).consistent

        # The account is still usable afterwards
        ledger.deposit(account.id, 50, DAY_1)
        assert ledger.get_balance(account.id) == Decimal("150.00")

    def test_failed_opening_deposit_leaves_no_account(self):
        storage = FailingLogStorage()
        ledger, registry, customers, _ = build_ledger(storage)
        customer = customers.create_customer("Maya")
        tier = registry.create("Gold", 12)

        storage.fail_log_writes = True
        with pytest.raises(RuntimeError):
            ledger.open_account(customer.id, tier.id, initial_balance=100)

        assert ledger.list_accounts() == []


class TestConflictRetry:
    """Version conflicts are retried, then surfaced"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.ledger, self.registry, self.customers, self.audit = build_ledger(
            self.storage, max_conflict_retries=3, conflict_backoff_seconds=0
        )
        customer = self.customers.create_customer("Nina")
        tier = self.registry.create("Gold", 12)
        self.account = self.ledger.open_account(customer.id, tier.id, initial_balance=100)

    def test_conflict_retried_until_success(self):
        flaky = FlakyAccountRepository(self.storage, conflicts=2)
        self.ledger.accounts = flaky

        transaction = self.ledger.deposit(self.account.id, 25, DAY_1)

        assert flaky.attempts == 3
        assert transaction.ending_balance == Decimal("125.00")
        assert len(self.ledger.transactions.list_by_account(self.account.id)) == 2

    def test_conflict_surfaced_after_retry_budget(self):
        flaky = FlakyAccountRepository(self.storage, conflicts=100)
        self.ledger.accounts = flaky

        with pytest.raises(ConcurrencyConflictError):
            self.ledger.deposit(self.account.id, 25, DAY_1)

        assert flaky.attempts == 4
        assert self.ledger.get_balance(self.account.id) == Decimal("100.00")
        assert len(self.ledger.transactions.list_by_account(self.account.id)) == 1

    def test_stale_version_detected(self):
        repository = AccountRepository(self.storage)
        stale = repository.require(self.account.id)
        fresh = repository.require(self.account.id)

        fresh.balance = Decimal("1.00")
        repository.update(fresh)

        with pytest.raises(ConcurrencyConflictError):
            repository.update(stale)


class TestSnapshotAndIntegrity:
    """Consistent reads and drift detection"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.ledger, self.registry, self.customers, self.audit = build_ledger(self.storage)
        customer = self.customers.create_customer("Oka")
        tier = self.registry.create("Gold", 12)
        self.account = self.ledger.open_account(customer.id, tier.id, initial_balance=10)
        self.ledger.deposit(self.account.id, 5, DAY_1)

    def test_snapshot_pairs_account_and_log(self):
        account, transactions = self.ledger.snapshot(self.account.id)

        assert account.balance == Decimal("15.00")
        assert [t.ending_balance for t in transactions] == [Decimal("10.00"), Decimal("15.00")]
        assert transactions[-1].ending_balance == account.balance

    def test_integrity_detects_drift(self):
        stored = self.storage.load("accounts", self.account.id)
        stored["balance"] = "999.00"
        self.storage.save("accounts", self.account.id, stored)

        report = self.ledger.verify_integrity(self.account.id)

        assert not report.consistent
        assert report.difference == Decimal("984.00")
        assert report.to_dict()["consistent"] is False

    def test_integrity_check_audited(self):
        self.ledger.verify_integrity(self.account.id)
        assert len(self.audit.get_events_by_type(AuditEventType.INTEGRITY_CHECK)) == 1


class TestAuditAfterOperations:
    """The audit chain stays valid through every command"""

    def test_chain_valid_after_mixed_operations(self):
        storage = InMemoryStorage()
        ledger, registry, customers, audit = build_ledger(storage)
        customer = customers.create_customer("Putu")
        tier = registry.create("Gold", 12)
        account = ledger.open_account(customer.id, tier.id, initial_balance=1000)

        ledger.deposit(account.id, 500, DAY_1)
        ledger.withdraw_with_projection(account.id, 200, DAY_2, months=3)
        ledger.post_interest(account.id, 1, DAY_2)
        with pytest.raises(InsufficientFundsError):
            ledger.withdraw_with_projection(account.id, 5000, DAY_2, months=3)

        result = audit.verify_integrity()
        assert result["valid"]
        assert result["hash_errors"] == []
        assert result["chain_breaks"] == []
        assert len(audit.get_events_by_type(AuditEventType.TRANSACTION_REJECTED)) == 1
