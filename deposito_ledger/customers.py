"""
Customer Management Module

Manages customer profiles. Customers own accounts; a customer who still
owns accounts cannot be deleted.
"""

from datetime import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional

from .storage import StorageInterface, StorageRecord, utcnow
from .audit import AuditTrail, AuditEventType
from .accounts import AccountRepository
from .exceptions import InUseError, NotFoundError, ValidationError
from .locking import LockArena, customer_key
from .logging_config import get_logger, log_action


@dataclass
class Customer(StorageRecord):
    """Customer profile"""
    name: str

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Customer name is required")

    @classmethod
    def from_dict(cls, data: Dict) -> 'Customer':
        return cls(
            id=int(data['id']),
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name']
        )


class CustomerManager:
    """
    Manages customer lifecycle
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
        self.table_name = "customers"
        self.logger = get_logger("deposito.customers")

    def create_customer(self, name: str) -> Customer:
        """Create a new customer"""
        now = utcnow()
        customer = Customer(
            id=0,
            created_at=now,
            updated_at=now,
            name=(name or "").strip()
        )
        customer.id = self.storage.next_sequence(self.table_name)
        self.storage.save(self.table_name, customer.id, customer.to_dict())

        self.audit_trail.log_event(
            event_type=AuditEventType.CUSTOMER_CREATED,
            entity_type="customer",
            entity_id=customer.id,
            metadata={"name": customer.name}
        )
        log_action(
            self.logger, "info", "Customer created",
            action="create_customer", resource=f"customer:{customer.id}"
        )

        return customer

    def get_customer(self, customer_id: int) -> Customer:
        """
        Get customer by ID

        Raises:
            NotFoundError: If no such customer exists
        """
        data = self.storage.load(self.table_name, customer_id)
        if not data:
            raise NotFoundError.for_entity("customer", customer_id)
        return Customer.from_dict(data)

    def exists(self, customer_id: int) -> bool:
        return self.storage.exists(self.table_name, customer_id)

    def list_customers(self) -> List[Customer]:
        """All customers ordered by id"""
        customers = [Customer.from_dict(data) for data in self.storage.load_all(self.table_name)]
        customers.sort(key=lambda c: c.id)
        return customers

    def update_customer(self, customer_id: int, name: str) -> Customer:
        """Rename a customer"""
        with self.locks.hold(customer_key(customer_id)):
            customer = self.get_customer(customer_id)
            old_name = customer.name

            updated = Customer(
                id=customer.id,
                created_at=customer.created_at,
                updated_at=utcnow(),
                name=(name or "").strip()
            )
            self.storage.save(self.table_name, updated.id, updated.to_dict())

        self.audit_trail.log_event(
            event_type=AuditEventType.CUSTOMER_UPDATED,
            entity_type="customer",
            entity_id=customer_id,
            metadata={"old_name": old_name, "new_name": updated.name}
        )
        log_action(
            self.logger, "info", "Customer updated",
            action="update_customer", resource=f"customer:{customer_id}"
        )

        return updated

    def delete_customer(self, customer_id: int) -> None:
        """
        Delete a customer

        Raises:
            NotFoundError: If no such customer exists
            InUseError: If the customer still owns accounts
        """
        with self.locks.hold(customer_key(customer_id)):
            customer = self.get_customer(customer_id)

            owned = self.accounts.find_by_customer(customer_id)
            if owned:
                log_action(
                    self.logger, "warning", "Customer delete refused: owns accounts",
                    action="delete_customer", resource=f"customer:{customer_id}",
                    extra={"account_ids": [a.id for a in owned]}
                )
                raise InUseError(
                    f"Customer {customer_id} still owns {len(owned)} account(s)",
                    "customer", customer_id
                )

            self.storage.delete(self.table_name, customer_id)

        self.audit_trail.log_event(
            event_type=AuditEventType.CUSTOMER_DELETED,
            entity_type="customer",
            entity_id=customer_id,
            metadata={"name": customer.name}
        )
        log_action(
            self.logger, "info", "Customer deleted",
            action="delete_customer", resource=f"customer:{customer_id}"
        )
