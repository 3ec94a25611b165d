"""
Shared API dependencies: the system instance and error mapping
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException

from ..system import DepositoSystem
from ..exceptions import (
    LedgerError, NotFoundError, InUseError, ConcurrencyConflictError,
    InvalidAmountError, ValidationError, InsufficientFundsError,
    NegativeBalanceError
)


# Global system instance, built on first use from configuration
_system: Optional[DepositoSystem] = None


def get_system() -> DepositoSystem:
    """Dependency to get the deposito system"""
    global _system
    if _system is None:
        _system = DepositoSystem.from_config()
    return _system


# Most specific classes first: HasTransactionsError is an InUseError
_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (InUseError, 409),
    (ConcurrencyConflictError, 409),
    (InvalidAmountError, 400),
    (ValidationError, 400),
    (InsufficientFundsError, 422),
    (NegativeBalanceError, 422),
)


def http_error(error: LedgerError) -> HTTPException:
    """Translate a ledger error into the matching HTTPException"""
    for error_class, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_class):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=400, detail=error.message)


def envelope(data: Any = None, message: str = "") -> Dict[str, Any]:
    """Standard response body"""
    return {"success": True, "data": data, "message": message}
