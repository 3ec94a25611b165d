"""
Account Records

Savings account record and its storage repository. The stored balance is a
cache of the transaction log fold; only the ledger writes it. Every write
bumps the record version so stale read-modify-write cycles are detected.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional

from .storage import StorageInterface, StorageRecord, utcnow
from .exceptions import NegativeBalanceError, ConcurrencyConflictError, NotFoundError
from .money import ZERO


ACCOUNTS_TABLE = "accounts"


@dataclass
class Account(StorageRecord):
    """
    Savings account under a deposito tier

    customer_id is fixed at creation; deposito_type_id may be reassigned.
    """
    customer_id: int
    deposito_type_id: int
    balance: Decimal = ZERO
    version: int = 0

    def __post_init__(self):
        if not isinstance(self.balance, Decimal):
            self.balance = Decimal(str(self.balance))

        if self.balance < ZERO:
            raise NegativeBalanceError(
                f"Account balance cannot be negative: {self.balance}",
                "account", self.id
            )

    @classmethod
    def from_dict(cls, data: Dict) -> 'Account':
        return cls(
            id=int(data['id']),
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            customer_id=int(data['customer_id']),
            deposito_type_id=int(data['deposito_type_id']),
            balance=Decimal(data['balance']),
            version=int(data.get('version', 0))
        )


class AccountRepository:
    """Storage mapping for accounts with optimistic version checks"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = ACCOUNTS_TABLE

    def next_id(self) -> int:
        return self.storage.next_sequence(self.table_name)

    def get(self, account_id: int) -> Optional[Account]:
        """Get account by ID, or None"""
        data = self.storage.load(self.table_name, account_id)
        if data:
            return Account.from_dict(data)
        return None

    def require(self, account_id: int) -> Account:
        """Get account by ID or raise NotFoundError"""
        account = self.get(account_id)
        if not account:
            raise NotFoundError.for_entity("account", account_id)
        return account

    def list_all(self) -> List[Account]:
        accounts = [Account.from_dict(data) for data in self.storage.load_all(self.table_name)]
        accounts.sort(key=lambda a: a.id)
        return accounts

    def find_by_customer(self, customer_id: int) -> List[Account]:
        accounts = [
            Account.from_dict(data)
            for data in self.storage.find(self.table_name, {"customer_id": customer_id})
        ]
        accounts.sort(key=lambda a: a.id)
        return accounts

    def find_by_deposito_type(self, deposito_type_id: int) -> List[Account]:
        accounts = [
            Account.from_dict(data)
            for data in self.storage.find(self.table_name, {"deposito_type_id": deposito_type_id})
        ]
        accounts.sort(key=lambda a: a.id)
        return accounts

    def insert(self, account: Account) -> Account:
        self.storage.save(self.table_name, account.id, account.to_dict())
        return account

    def update(self, account: Account) -> Account:
        """
        Write an account read earlier in the same operation

        Raises:
            ConcurrencyConflictError: If the stored version moved since the read
        """
        stored = self.storage.load(self.table_name, account.id)
        if stored is None:
            raise NotFoundError.for_entity("account", account.id)

        stored_version = int(stored.get('version', 0))
        if stored_version != account.version:
            raise ConcurrencyConflictError(
                f"Account {account.id} changed concurrently "
                f"(expected version {account.version}, found {stored_version})",
                "account", account.id
            )

        account.version += 1
        account.updated_at = utcnow()
        self.storage.save(self.table_name, account.id, account.to_dict())
        return account

    def delete(self, account_id: int) -> bool:
        return self.storage.delete(self.table_name, account_id)
