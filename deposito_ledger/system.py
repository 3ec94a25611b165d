"""
Deposito System Composition Root

Builds every component on one storage backend and one shared lock arena.
"""

from typing import Optional

from .config import DepositoConfig, get_config
from .storage import StorageInterface, InMemoryStorage, create_storage
from .audit import AuditTrail, NullAuditTrail
from .locking import LockArena
from .accounts import AccountRepository
from .customers import CustomerManager
from .deposito_types import DepositoTypeRegistry
from .transactions import TransactionLog
from .ledger import AccountLedger
from .logging_config import get_logger


class DepositoSystem:
    """Deposito ledger with all components initialized"""

    def __init__(
        self,
        storage: Optional[StorageInterface] = None,
        config: Optional[DepositoConfig] = None
    ):
        self.config = config or get_config()
        self.storage = storage if storage is not None else InMemoryStorage()
        self.logger = get_logger("deposito.system")

        if self.config.enable_audit_logging:
            self.audit_trail = AuditTrail(self.storage)
        else:
            self.audit_trail = NullAuditTrail()

        # One arena for every component so cross-entity guards see each other
        self.locks = LockArena(timeout_seconds=self.config.lock_timeout_seconds)

        self.deposito_types = DepositoTypeRegistry(self.storage, self.audit_trail, self.locks)
        self.customers = CustomerManager(self.storage, self.audit_trail, self.locks)
        self.accounts = AccountRepository(self.storage)
        self.transaction_log = TransactionLog(self.storage)
        self.ledger = AccountLedger(
            self.storage,
            self.audit_trail,
            self.deposito_types,
            self.customers,
            locks=self.locks,
            transaction_log=self.transaction_log,
            max_conflict_retries=self.config.max_conflict_retries,
            conflict_backoff_seconds=self.config.conflict_backoff_seconds,
            accrual_places=self.config.accrual_precision,
            money_places=self.config.display_precision
        )

    @classmethod
    def from_config(cls, config: Optional[DepositoConfig] = None) -> "DepositoSystem":
        """Build a system on the backend named by config.database_url"""
        config = config or get_config()
        system = cls(storage=create_storage(config.database_url), config=config)
        system.logger.info(f"Deposito system started on {config.database_url}")
        return system

    def close(self) -> None:
        self.storage.close()
