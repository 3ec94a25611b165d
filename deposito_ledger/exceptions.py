"""
Ledger Error Taxonomy

Every domain failure raised by the ledger core derives from LedgerError.
LedgerError subclasses ValueError so callers that only know about
ValueError keep working.
"""

from typing import Optional


class LedgerError(ValueError):
    """Base exception for the ledger core"""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[object] = None
    ):
        super().__init__(message)
        self.message = message
        self.entity_type = entity_type
        self.entity_id = entity_id


class NotFoundError(LedgerError):
    """Referenced customer, deposito type, account or transaction is missing"""

    @classmethod
    def for_entity(cls, entity_type: str, entity_id: object) -> "NotFoundError":
        label = entity_type.replace("_", " ").capitalize()
        return cls(f"{label} {entity_id} not found", entity_type, entity_id)


class ValidationError(LedgerError):
    """Malformed command input that is not an amount (e.g. blank names)"""


class InvalidAmountError(LedgerError):
    """Amount, rate or month count outside its allowed range"""


class InUseError(LedgerError):
    """Entity is still referenced elsewhere and cannot be deleted"""


class HasTransactionsError(InUseError):
    """Account has logged transactions and cannot be closed"""


class InsufficientFundsError(LedgerError):
    """Withdrawal exceeds the accrued ceiling"""


class NegativeBalanceError(LedgerError):
    """Operation would leave the stored balance below zero"""


class ConcurrencyConflictError(LedgerError):
    """Lock or version contention that outlived the retry budget"""
