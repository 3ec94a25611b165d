"""
Account Ledger Module

The ledger core: every balance-mutating command on an account. Each command
runs under the account's lock, and the balance update and log append happen
inside one storage atomic scope, so the stored balance always equals the
fold of the transaction log.

Withdrawals are drawn against the stored principal and validated against an
accrued ceiling (a compound-interest projection). Interest only becomes real
money through post_interest, which logs it.
"""

import time
from decimal import Decimal
from datetime import date, datetime
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar, Union

from .storage import StorageInterface, utcnow
from .audit import AuditTrail, AuditEventType
from .accounts import Account, AccountRepository
from .customers import CustomerManager
from .deposito_types import DepositoTypeRegistry
from .transactions import Transaction, TransactionLog, TransactionType
from .projection import Projection, ProjectionEngine
from .locking import LockArena, account_key, customer_key, deposito_type_key
from .exceptions import (
    LedgerError, ConcurrencyConflictError, HasTransactionsError,
    InsufficientFundsError, InvalidAmountError, NegativeBalanceError,
    ValidationError
)
from .money import (
    ACCRUAL_PLACES, MONEY_PLACES, ZERO, Numeric,
    positive_amount, round_money, to_decimal
)
from .logging_config import get_logger, log_action


T = TypeVar("T")

DateLike = Union[date, datetime, str, None]


def _effective_date(value: DateLike) -> date:
    """Normalize a transaction date; defaults to today"""
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid transaction date: {value!r}")


def _positive_months(months: int) -> int:
    if isinstance(months, bool) or not isinstance(months, int) or months <= 0:
        raise InvalidAmountError(f"months must be a whole number greater than 0, got {months!r}")
    return months


@dataclass(frozen=True)
class IntegrityReport:
    """Stored balance compared with the balance replayed from the log"""
    account_id: int
    stored_balance: Decimal
    reconstructed_balance: Decimal
    transaction_count: int

    @property
    def consistent(self) -> bool:
        return self.stored_balance == self.reconstructed_balance

    @property
    def difference(self) -> Decimal:
        return self.stored_balance - self.reconstructed_balance

    def to_dict(self) -> Dict[str, Any]:
        return {
            'account_id': self.account_id,
            'stored_balance': str(self.stored_balance),
            'reconstructed_balance': str(self.reconstructed_balance),
            'difference': str(self.difference),
            'transaction_count': self.transaction_count,
            'consistent': self.consistent
        }


class AccountLedger:
    """
    Balance-mutating commands with per-account serialization

    Commands on different accounts run in parallel; commands on one account
    are applied one at a time. Conflicts (lock timeouts, version mismatches)
    are retried with exponential backoff and surfaced once the retry budget
    is spent.
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        registry: DepositoTypeRegistry,
        customers: CustomerManager,
        locks: Optional[LockArena] = None,
        transaction_log: Optional[TransactionLog] = None,
        max_conflict_retries: int = 3,
        conflict_backoff_seconds: float = 0.05,
        accrual_places: int = ACCRUAL_PLACES,
        money_places: int = MONEY_PLACES
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.registry = registry
        self.customers = customers
        self.locks = locks or LockArena()
        self.accounts = AccountRepository(storage)
        self.transactions = transaction_log or TransactionLog(storage)
        self.projections = ProjectionEngine(accrual_places)
        self.max_conflict_retries = max_conflict_retries
        self.conflict_backoff_seconds = conflict_backoff_seconds
        self.money_places = money_places
        self.logger = get_logger("deposito.ledger")

    def _serialized(self, keys: Iterable[str], work: Callable[[], T]) -> T:
        """
        Run work under the given locks inside one atomic scope

        The whole unit (re-read, validate, write) is repeated on a
        ConcurrencyConflictError until max_conflict_retries is exhausted.
        """
        keys = list(keys)
        attempt = 0
        while True:
            attempt += 1
            try:
                with self.locks.hold_all(keys):
                    with self.storage.atomic():
                        return work()
            except ConcurrencyConflictError as e:
                if attempt > self.max_conflict_retries:
                    raise

                delay = self.conflict_backoff_seconds * (2 ** (attempt - 1))
                log_action(
                    self.logger, "warning", f"Conflict, retrying in {delay:.3f}s",
                    action="retry", resource=",".join(keys),
                    extra={"attempt": attempt, "error": e.message}
                )
                time.sleep(delay)

    def _rejected(
        self,
        action: str,
        account_id: Optional[int],
        error: LedgerError,
        resource: Optional[str] = None
    ) -> None:
        log_action(
            self.logger, "warning", f"{action} rejected: {error.message}",
            action=action, resource=resource or f"account:{account_id}",
            extra={"error": type(error).__name__}
        )
        if action in ("deposit", "withdraw", "post_interest") and account_id is not None:
            self.audit_trail.log_event(
                event_type=AuditEventType.TRANSACTION_REJECTED,
                entity_type="account",
                entity_id=account_id,
                metadata={"action": action, "error": type(error).__name__, "reason": error.message}
            )

    def _posted(self, transaction: Transaction) -> None:
        event_type = (
            AuditEventType.INTEREST_POSTED
            if transaction.transaction_type is TransactionType.INTEREST
            else AuditEventType.TRANSACTION_POSTED
        )
        self.audit_trail.log_event(
            event_type=event_type,
            entity_type="account",
            entity_id=transaction.account_id,
            metadata={
                "transaction_id": transaction.id,
                "transaction_type": transaction.transaction_type.value,
                "amount": transaction.amount,
                "ending_balance": transaction.ending_balance,
                "transaction_date": transaction.transaction_date.isoformat()
            }
        )
        log_action(
            self.logger, "info",
            f"{transaction.transaction_type.value.capitalize()} posted",
            action=transaction.transaction_type.value,
            resource=f"account:{transaction.account_id}",
            extra={
                "transaction_id": transaction.id,
                "amount": str(transaction.amount),
                "ending_balance": str(transaction.ending_balance)
            }
        )

    def _apply(
        self,
        account: Account,
        transaction_type: TransactionType,
        amount: Decimal,
        transaction_date: date
    ) -> Transaction:
        """Update the balance and append the log entry; caller holds the lock and scope"""
        new_balance = round_money(
            account.balance + amount * transaction_type.sign, self.money_places
        )
        if new_balance < ZERO:
            raise NegativeBalanceError(
                f"Withdrawal of {amount} would leave account {account.id} "
                f"at {new_balance}",
                "account", account.id
            )

        account.balance = new_balance
        self.accounts.update(account)

        return self.transactions.append(
            account_id=account.id,
            transaction_type=transaction_type,
            amount=amount,
            transaction_date=transaction_date,
            ending_balance=new_balance
        )

    def open_account(
        self,
        customer_id: int,
        deposito_type_id: int,
        initial_balance: Numeric = 0,
        opened_on: DateLike = None
    ) -> Account:
        """
        Open an account for a customer under a deposito type

        A non-zero initial balance is recorded as an opening deposit so the
        log replays to the stored balance.

        Raises:
            NotFoundError: If the customer or deposito type is missing
            InvalidAmountError: If initial_balance is negative
        """
        try:
            initial = round_money(to_decimal(initial_balance, "initial_balance"), self.money_places)
            if initial < ZERO:
                raise InvalidAmountError(f"Initial balance cannot be negative, got {initial_balance}")
            opened_on = _effective_date(opened_on)

            def work() -> Tuple[Account, Optional[Transaction]]:
                self.customers.get_customer(customer_id)
                self.registry.get(deposito_type_id)

                now = utcnow()
                account = Account(
                    id=self.accounts.next_id(),
                    created_at=now,
                    updated_at=now,
                    customer_id=customer_id,
                    deposito_type_id=deposito_type_id,
                    balance=initial
                )
                self.accounts.insert(account)

                opening = None
                if initial > ZERO:
                    opening = self.transactions.append(
                        account_id=account.id,
                        transaction_type=TransactionType.DEPOSIT,
                        amount=initial,
                        transaction_date=opened_on,
                        ending_balance=initial
                    )
                return account, opening

            account, opening = self._serialized(
                [customer_key(customer_id), deposito_type_key(deposito_type_id)], work
            )
        except LedgerError as e:
            self._rejected("open_account", None, e, resource=f"customer:{customer_id}")
            raise

        self.audit_trail.log_event(
            event_type=AuditEventType.ACCOUNT_OPENED,
            entity_type="account",
            entity_id=account.id,
            metadata={
                "customer_id": customer_id,
                "deposito_type_id": deposito_type_id,
                "initial_balance": initial
            }
        )
        log_action(
            self.logger, "info", "Account opened",
            action="open_account", resource=f"account:{account.id}",
            extra={"customer_id": customer_id, "deposito_type_id": deposito_type_id}
        )
        if opening is not None:
            self._posted(opening)

        return account

    def change_tier(self, account_id: int, new_deposito_type_id: int) -> Account:
        """
        Move an account to another deposito type

        Metadata only: no transaction is written and the balance is untouched.
        Earlier projections are invalid afterwards.
        """
        try:
            def work() -> Tuple[Account, int]:
                account = self.accounts.require(account_id)
                self.registry.get(new_deposito_type_id)

                old_tier = account.deposito_type_id
                account.deposito_type_id = new_deposito_type_id
                self.accounts.update(account)
                return account, old_tier

            account, old_tier = self._serialized(
                [account_key(account_id), deposito_type_key(new_deposito_type_id)], work
            )
        except LedgerError as e:
            self._rejected("change_tier", account_id, e)
            raise

        self.audit_trail.log_event(
            event_type=AuditEventType.ACCOUNT_TIER_CHANGED,
            entity_type="account",
            entity_id=account_id,
            metadata={"old_deposito_type_id": old_tier, "new_deposito_type_id": new_deposito_type_id}
        )
        log_action(
            self.logger, "info", "Account tier changed",
            action="change_tier", resource=f"account:{account_id}",
            extra={"old_deposito_type_id": old_tier, "new_deposito_type_id": new_deposito_type_id}
        )

        return account

    def close_account(self, account_id: int) -> None:
        """
        Delete an account with an empty log

        Raises:
            NotFoundError: If the account is missing
            HasTransactionsError: If any transaction references the account
        """
        try:
            def work() -> Account:
                account = self.accounts.require(account_id)
                if self.transactions.has_transactions(account_id):
                    raise HasTransactionsError(
                        f"Account {account_id} has transactions and cannot be closed",
                        "account", account_id
                    )
                self.accounts.delete(account_id)
                return account

            account = self._serialized([account_key(account_id)], work)
        except LedgerError as e:
            self._rejected("close_account", account_id, e)
            raise

        self.audit_trail.log_event(
            event_type=AuditEventType.ACCOUNT_CLOSED,
            entity_type="account",
            entity_id=account_id,
            metadata={"customer_id": account.customer_id}
        )
        log_action(
            self.logger, "info", "Account closed",
            action="close_account", resource=f"account:{account_id}"
        )

    def deposit(self, account_id: int, amount: Numeric, transaction_date: DateLike = None) -> Transaction:
        """
        Add money to an account

        Raises:
            InvalidAmountError: If amount is not greater than 0
            NotFoundError: If the account is missing
        """
        try:
            amount = positive_amount(amount, places=self.money_places)
            transaction_date = _effective_date(transaction_date)

            def work() -> Transaction:
                account = self.accounts.require(account_id)
                return self._apply(account, TransactionType.DEPOSIT, amount, transaction_date)

            transaction = self._serialized([account_key(account_id)], work)
        except LedgerError as e:
            self._rejected("deposit", account_id, e)
            raise

        self._posted(transaction)
        return transaction

    def withdraw(
        self,
        account_id: int,
        amount: Numeric,
        transaction_date: DateLike = None,
        accrued_ceiling: Numeric = None
    ) -> Transaction:
        """
        Withdraw from the principal, capped by an accrued ceiling

        Checks run in order: amount > 0, account exists, amount <= ceiling,
        balance - amount >= 0. Without a ceiling only the balance check
        applies.

        Raises:
            InvalidAmountError: If amount is not greater than 0
            NotFoundError: If the account is missing
            InsufficientFundsError: If amount exceeds the ceiling
            NegativeBalanceError: If the balance would drop below zero
        """
        try:
            amount = positive_amount(amount, places=self.money_places)
            transaction_date = _effective_date(transaction_date)
            ceiling = None
            if accrued_ceiling is not None:
                ceiling = to_decimal(accrued_ceiling, "accrued_ceiling")

            transaction = self._serialized(
                [account_key(account_id)],
                lambda: self._withdraw_locked(account_id, amount, transaction_date, lambda account: ceiling)
            )
        except LedgerError as e:
            self._rejected("withdraw", account_id, e)
            raise

        self._posted(transaction)
        return transaction

    def withdraw_with_projection(
        self,
        account_id: int,
        amount: Numeric,
        transaction_date: DateLike = None,
        months: int = 1
    ) -> Transaction:
        """
        Withdraw against a ceiling projected from the account's current tier

        The projection is taken under the account lock, so a concurrent tier
        change can never leave it stale.

        Raises:
            InvalidAmountError: If amount or months is not greater than 0
        """
        try:
            amount = positive_amount(amount, places=self.money_places)
            months = _positive_months(months)
            transaction_date = _effective_date(transaction_date)

            def current_ceiling(account: Account) -> Decimal:
                tier = self.registry.get(account.deposito_type_id)
                return self.projections.project(account.balance, tier.monthly_rate, months).accrued_balance

            transaction = self._serialized(
                [account_key(account_id)],
                lambda: self._withdraw_locked(account_id, amount, transaction_date, current_ceiling)
            )
        except LedgerError as e:
            self._rejected("withdraw", account_id, e)
            raise

        self._posted(transaction)
        return transaction

    def _withdraw_locked(
        self,
        account_id: int,
        amount: Decimal,
        transaction_date: date,
        ceiling_for: Callable[[Account], Optional[Decimal]]
    ) -> Transaction:
        account = self.accounts.require(account_id)

        ceiling = ceiling_for(account)
        if ceiling is not None and amount > ceiling:
            raise InsufficientFundsError(
                f"Withdrawal of {amount} exceeds accrued ceiling {ceiling}",
                "account", account_id
            )

        return self._apply(account, TransactionType.WITHDRAWAL, amount, transaction_date)

    def post_interest(self, account_id: int, months: int, transaction_date: DateLike = None) -> Transaction:
        """
        Credit the interest the current balance earns over a number of months

        Posts round(accrued - balance) as an interest transaction.

        Raises:
            InvalidAmountError: If months is invalid or the interest rounds to zero
        """
        try:
            months = _positive_months(months)
            transaction_date = _effective_date(transaction_date)

            def work() -> Transaction:
                account = self.accounts.require(account_id)
                tier = self.registry.get(account.deposito_type_id)
                projection = self.projections.project(account.balance, tier.monthly_rate, months)

                interest = round_money(projection.interest_earned, self.money_places)
                if interest <= ZERO:
                    raise InvalidAmountError(
                        f"No interest accrued on account {account_id} over {months} month(s)",
                        "account", account_id
                    )
                return self._apply(account, TransactionType.INTEREST, interest, transaction_date)

            transaction = self._serialized([account_key(account_id)], work)
        except LedgerError as e:
            self._rejected("post_interest", account_id, e)
            raise

        self._posted(transaction)
        return transaction

    def project_ceiling(self, account_id: int, months: int) -> Projection:
        """Advisory projection of the account's balance; never mutates state"""
        account = self.accounts.require(account_id)
        tier = self.registry.get(account.deposito_type_id)
        return self.projections.project(account.balance, tier.monthly_rate, months)

    def get_balance(self, account_id: int) -> Decimal:
        return self.accounts.require(account_id).balance

    def get_account(self, account_id: int) -> Account:
        return self.accounts.require(account_id)

    def list_accounts(self) -> List[Account]:
        return self.accounts.list_all()

    def list_accounts_by_customer(self, customer_id: int) -> List[Account]:
        self.customers.get_customer(customer_id)
        return self.accounts.find_by_customer(customer_id)

    def list_transactions(self, account_id: int) -> List[Transaction]:
        self.accounts.require(account_id)
        return self.transactions.list_by_account(account_id)

    def snapshot(self, account_id: int) -> Tuple[Account, List[Transaction]]:
        """Account and its log read under the account lock"""
        with self.locks.hold(account_key(account_id)):
            account = self.accounts.require(account_id)
            transactions = self.transactions.list_by_account(account_id)
        return account, transactions

    def verify_integrity(self, account_id: int) -> IntegrityReport:
        """Compare the stored balance with the log replayed from zero"""
        account, transactions = self.snapshot(account_id)
        report = IntegrityReport(
            account_id=account_id,
            stored_balance=account.balance,
            reconstructed_balance=self.transactions.reconstruct_balance(account_id, transactions),
            transaction_count=len(transactions)
        )

        self.audit_trail.log_event(
            event_type=AuditEventType.INTEGRITY_CHECK,
            entity_type="account",
            entity_id=account_id,
            metadata=report.to_dict()
        )
        log_action(
            self.logger, "info" if report.consistent else "warning",
            "Integrity check passed" if report.consistent else "Integrity check failed",
            action="verify_integrity", resource=f"account:{account_id}",
            extra=report.to_dict()
        )

        return report
