"""
Transaction Log Module

Append-only, immutable record of every balance-affecting operation. The log
is the source of truth: folding it from zero reproduces each account's
stored balance. Records are never updated or deleted; corrections are new
offsetting transactions.
"""

from decimal import Decimal
from datetime import datetime, date
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from enum import Enum

from .storage import StorageInterface, utcnow
from .exceptions import InvalidAmountError, NotFoundError
from .money import ZERO


class TransactionType(Enum):
    """Closed set of balance-affecting operations"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    INTEREST = "interest"  # Posted interest accrual

    @property
    def sign(self) -> int:
        """+1 if the transaction raises the balance, -1 if it lowers it"""
        return -1 if self is TransactionType.WITHDRAWAL else 1


@dataclass(frozen=True)
class Transaction:
    """
    Immutable log entry

    ending_balance is the account balance right after this transaction was
    applied, recorded at post time.
    """
    id: int
    account_id: int
    transaction_type: TransactionType
    amount: Decimal
    transaction_date: date
    ending_balance: Decimal
    created_at: datetime

    def __post_init__(self):
        if not isinstance(self.transaction_type, TransactionType):
            raise ValueError(f"Unknown transaction type: {self.transaction_type!r}")

        if self.amount <= ZERO:
            raise InvalidAmountError(
                f"Transaction amount must be positive, got {self.amount}",
                "transaction", self.id
            )

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.transaction_type.sign

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'account_id': self.account_id,
            'transaction_type': self.transaction_type.value,
            'amount': str(self.amount),
            'transaction_date': self.transaction_date.isoformat(),
            'ending_balance': str(self.ending_balance),
            'created_at': self.created_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        # TransactionType(...) rejects any value outside the closed set
        return cls(
            id=int(data['id']),
            account_id=int(data['account_id']),
            transaction_type=TransactionType(data['transaction_type']),
            amount=Decimal(data['amount']),
            transaction_date=date.fromisoformat(data['transaction_date']),
            ending_balance=Decimal(data['ending_balance']),
            created_at=datetime.fromisoformat(data['created_at'])
        )


class TransactionLog:
    """
    Append-only transaction log

    Ids come from a storage sequence, so they are strictly increasing in
    insertion order and double as the log order.
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "transactions"

    def append(
        self,
        account_id: int,
        transaction_type: TransactionType,
        amount: Decimal,
        transaction_date: date,
        ending_balance: Decimal
    ) -> Transaction:
        """
        Append a new entry

        Returns:
            The stored, immutable Transaction
        """
        transaction = Transaction(
            id=self.storage.next_sequence(self.table_name),
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            transaction_date=transaction_date,
            ending_balance=ending_balance,
            created_at=utcnow()
        )

        if self.storage.exists(self.table_name, transaction.id):
            raise ValueError(f"Transaction {transaction.id} already logged")

        self.storage.save(self.table_name, transaction.id, transaction.to_dict())
        return transaction

    def get(self, transaction_id: int) -> Transaction:
        """
        Get a single transaction

        Raises:
            NotFoundError: If no such transaction exists
        """
        data = self.storage.load(self.table_name, transaction_id)
        if not data:
            raise NotFoundError.for_entity("transaction", transaction_id)
        return Transaction.from_dict(data)

    def list_by_account(self, account_id: int) -> List[Transaction]:
        """All transactions for an account, ordered by id ascending"""
        transactions = [
            Transaction.from_dict(data)
            for data in self.storage.find(self.table_name, {"account_id": account_id})
        ]
        transactions.sort(key=lambda t: t.id)
        return transactions

    def list_all(self) -> List[Transaction]:
        transactions = [Transaction.from_dict(data) for data in self.storage.load_all(self.table_name)]
        transactions.sort(key=lambda t: t.id)
        return transactions

    def has_transactions(self, account_id: int) -> bool:
        return bool(self.storage.find(self.table_name, {"account_id": account_id}))

    def reconstruct_balance(self, account_id: int, transactions: Optional[List[Transaction]] = None) -> Decimal:
        """
        Fold the log from zero: +deposit, +interest, -withdrawal

        Args:
            account_id: Account to replay
            transactions: Already-loaded entries for the account, if any
        """
        if transactions is None:
            transactions = self.list_by_account(account_id)

        balance = ZERO
        for transaction in transactions:
            balance += transaction.signed_amount
        return balance
