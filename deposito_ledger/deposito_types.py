"""
Deposito Type Registry

Named interest tiers. Each tier stores only its yearly return as a
percentage; the monthly rate is always derived so the two can never drift.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional

from .storage import StorageInterface, StorageRecord, utcnow
from .audit import AuditTrail, AuditEventType
from .accounts import AccountRepository
from .exceptions import InvalidAmountError, InUseError, NotFoundError, ValidationError
from .locking import LockArena, deposito_type_key
from .logging_config import get_logger, log_action
from .money import Numeric, ZERO, to_decimal


MONTHS_PER_YEAR = Decimal('12')
PERCENT = Decimal('100')


@dataclass
class DepositoType(StorageRecord):
    """Interest tier, e.g. "Gold" at 5.0 (% per year)"""
    name: str
    yearly_return: Decimal

    def __post_init__(self):
        if not isinstance(self.yearly_return, Decimal):
            self.yearly_return = to_decimal(self.yearly_return, "yearly_return")

        if self.yearly_return < ZERO:
            raise InvalidAmountError(
                f"Yearly return cannot be negative: {self.yearly_return}",
                "deposito_type", self.id
            )

    @property
    def monthly_rate(self) -> Decimal:
        """Monthly rate as a fraction: yearly_return / 12 / 100"""
        return self.yearly_return / MONTHS_PER_YEAR / PERCENT

    @classmethod
    def from_dict(cls, data: Dict) -> 'DepositoType':
        return cls(
            id=int(data['id']),
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name'],
            yearly_return=Decimal(data['yearly_return'])
        )


def _clean_name(name: str) -> str:
    if name is None or not str(name).strip():
        raise ValidationError("Deposito type name is required")
    return str(name).strip()


class DepositoTypeRegistry:
    """
    Manages deposito type lifecycle with referential integrity against accounts
    """

    def __init__(
        self,
        storage: StorageInterface,
        audit_trail: AuditTrail,
        locks: Optional[LockArena] = None
    ):
        self.storage = storage
        self.audit_trail = audit_trail
        self.locks = locks or LockArena()
        self.accounts = AccountRepository(storage)
        self.table_name = "deposito_types"
        self.logger = get_logger("deposito.deposito_types")

    def create(self, name: str, yearly_return: Numeric) -> DepositoType:
        """
        Create a new deposito type

        Args:
            name: Tier label
            yearly_return: Annual rate as a percentage (5.0 means 5%)

        Returns:
            Created DepositoType
        """
        name = _clean_name(name)
        rate = to_decimal(yearly_return, "yearly_return")

        now = utcnow()
        deposito_type = DepositoType(
            id=self.storage.next_sequence(self.table_name),
            created_at=now,
            updated_at=now,
            name=name,
            yearly_return=rate
        )
        self.storage.save(self.table_name, deposito_type.id, deposito_type.to_dict())

        self.audit_trail.log_event(
            event_type=AuditEventType.DEPOSITO_TYPE_CREATED,
            entity_type="deposito_type",
            entity_id=deposito_type.id,
            metadata={"name": name, "yearly_return": rate}
        )
        log_action(
            self.logger, "info", f"Deposito type created: {name}",
            action="create_deposito_type", resource=f"deposito_type:{deposito_type.id}",
            extra={"yearly_return": str(rate)}
        )

        return deposito_type

    def get(self, deposito_type_id: int) -> DepositoType:
        """
        Get deposito type by ID

        Raises:
            NotFoundError: If no such tier exists
        """
        data = self.storage.load(self.table_name, deposito_type_id)
        if not data:
            raise NotFoundError.for_entity("deposito_type", deposito_type_id)
        return DepositoType.from_dict(data)

    def exists(self, deposito_type_id: int) -> bool:
        return self.storage.exists(self.table_name, deposito_type_id)

    def list(self) -> List[DepositoType]:
        """All deposito types ordered by id"""
        types = [DepositoType.from_dict(data) for data in self.storage.load_all(self.table_name)]
        types.sort(key=lambda t: t.id)
        return types

    def update(self, deposito_type_id: int, name: str, yearly_return: Numeric) -> DepositoType:
        """Rename a tier and/or change its rate; past transactions are untouched"""
        name = _clean_name(name)
        rate = to_decimal(yearly_return, "yearly_return")

        with self.locks.hold(deposito_type_key(deposito_type_id)):
            deposito_type = self.get(deposito_type_id)
            old_name, old_rate = deposito_type.name, deposito_type.yearly_return

            updated = DepositoType(
                id=deposito_type.id,
                created_at=deposito_type.created_at,
                updated_at=utcnow(),
                name=name,
                yearly_return=rate
            )
            self.storage.save(self.table_name, updated.id, updated.to_dict())

        self.audit_trail.log_event(
            event_type=AuditEventType.DEPOSITO_TYPE_UPDATED,
            entity_type="deposito_type",
            entity_id=updated.id,
            metadata={
                "old_name": old_name,
                "new_name": name,
                "old_yearly_return": old_rate,
                "new_yearly_return": rate
            }
        )
        log_action(
            self.logger, "info", f"Deposito type updated: {name}",
            action="update_deposito_type", resource=f"deposito_type:{updated.id}"
        )

        return updated

    def delete(self, deposito_type_id: int) -> None:
        """
        Delete a deposito type

        Raises:
            NotFoundError: If no such tier exists
            InUseError: If any account still references the tier
        """
        with self.locks.hold(deposito_type_key(deposito_type_id)):
            deposito_type = self.get(deposito_type_id)

            referencing = self.accounts.find_by_deposito_type(deposito_type_id)
            if referencing:
                log_action(
                    self.logger, "warning", "Deposito type delete refused: in use",
                    action="delete_deposito_type", resource=f"deposito_type:{deposito_type_id}",
                    extra={"account_ids": [a.id for a in referencing]}
                )
                raise InUseError(
                    f"Deposito type {deposito_type_id} is used by "
                    f"{len(referencing)} account(s)",
                    "deposito_type", deposito_type_id
                )

            self.storage.delete(self.table_name, deposito_type_id)

        self.audit_trail.log_event(
            event_type=AuditEventType.DEPOSITO_TYPE_DELETED,
            entity_type="deposito_type",
            entity_id=deposito_type_id,
            metadata={"name": deposito_type.name}
        )
        log_action(
            self.logger, "info", f"Deposito type deleted: {deposito_type.name}",
            action="delete_deposito_type", resource=f"deposito_type:{deposito_type_id}"
        )
