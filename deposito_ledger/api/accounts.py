"""
Account management endpoints
"""

from fastapi import APIRouter, Depends, Query, status

from .dependencies import get_system, http_error, envelope
from .schemas import (
    OpenAccountRequest,
    ChangeTierRequest,
    account_payload,
    projection_payload
)
from ..system import DepositoSystem
from ..exceptions import LedgerError


router = APIRouter()


@router.get("")
async def list_accounts(system: DepositoSystem = Depends(get_system)):
    """List all accounts"""
    accounts = system.ledger.list_accounts()
    return envelope([account_payload(a) for a in accounts])


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_account(
    request: OpenAccountRequest,
    system: DepositoSystem = Depends(get_system)
):
    """Open an account; a non-zero balance is posted as an opening deposit"""
    try:
        account = system.ledger.open_account(
            customer_id=request.customer_id,
            deposito_type_id=request.deposito_type_id,
            initial_balance=request.balance,
            opened_on=request.opened_on
        )
        return envelope(account_payload(account), "Account created successfully")

    except LedgerError as e:
        raise http_error(e)


@router.get("/customer/{customer_id}")
async def get_accounts_by_customer(
    customer_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Get all accounts owned by a customer"""
    try:
        accounts = system.ledger.list_accounts_by_customer(customer_id)
        return envelope([account_payload(a) for a in accounts])

    except LedgerError as e:
        raise http_error(e)


@router.get("/{account_id}")
async def get_account(
    account_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Get account details"""
    try:
        account = system.ledger.get_account(account_id)
        return envelope(account_payload(account))

    except LedgerError as e:
        raise http_error(e)


@router.put("/{account_id}")
async def change_tier(
    account_id: int,
    request: ChangeTierRequest,
    system: DepositoSystem = Depends(get_system)
):
    """Move an account to another deposito type"""
    try:
        account = system.ledger.change_tier(account_id, request.deposito_type_id)
        return envelope(account_payload(account), "Account updated successfully")

    except LedgerError as e:
        raise http_error(e)


@router.delete("/{account_id}")
async def close_account(
    account_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Close an account with no transactions"""
    try:
        system.ledger.close_account(account_id)
        return envelope(None, "Account deleted successfully")

    except LedgerError as e:
        raise http_error(e)


@router.get("/{account_id}/projection")
async def project_ceiling(
    account_id: int,
    months: int = Query(..., ge=0),
    system: DepositoSystem = Depends(get_system)
):
    """Advisory accrued-balance projection for the account"""
    try:
        projection = system.ledger.project_ceiling(account_id, months)
        return envelope(projection_payload(account_id, projection))

    except LedgerError as e:
        raise http_error(e)


@router.get("/{account_id}/integrity")
async def verify_integrity(
    account_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Compare the stored balance with the balance replayed from the log"""
    try:
        report = system.ledger.verify_integrity(account_id)
        return envelope(report.to_dict())

    except LedgerError as e:
        raise http_error(e)
