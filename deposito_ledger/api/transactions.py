"""
Transaction endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_system, http_error, envelope
from .schemas import (
    DepositRequest,
    WithdrawRequest,
    PostInterestRequest,
    account_payload,
    transaction_payload
)
from ..system import DepositoSystem
from ..exceptions import LedgerError


router = APIRouter()


@router.get("/account/{account_id}")
async def get_account_transactions(
    account_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Transactions for an account, oldest first"""
    try:
        transactions = system.ledger.list_transactions(account_id)
        return envelope([transaction_payload(t) for t in transactions])

    except LedgerError as e:
        raise http_error(e)


@router.post("/deposit", status_code=status.HTTP_201_CREATED)
async def deposit(
    request: DepositRequest,
    system: DepositoSystem = Depends(get_system)
):
    """Deposit into an account"""
    try:
        transaction = system.ledger.deposit(
            request.account_id, request.amount, request.transaction_date
        )
        account = system.ledger.get_account(request.account_id)
        return envelope(
            {"transaction": transaction_payload(transaction), "account": account_payload(account)},
            "Deposit successfully processed"
        )

    except LedgerError as e:
        raise http_error(e)


@router.post("/withdraw", status_code=status.HTTP_201_CREATED)
async def withdraw(
    request: WithdrawRequest,
    system: DepositoSystem = Depends(get_system)
):
    """Withdraw against the ceiling projected over the given months"""
    try:
        transaction = system.ledger.withdraw_with_projection(
            request.account_id, request.amount, request.transaction_date, request.months
        )
        account = system.ledger.get_account(request.account_id)
        return envelope(
            {"transaction": transaction_payload(transaction), "account": account_payload(account)},
            "Withdrawal successfully processed"
        )

    except LedgerError as e:
        raise http_error(e)


@router.post("/interest", status_code=status.HTTP_201_CREATED)
async def post_interest(
    request: PostInterestRequest,
    system: DepositoSystem = Depends(get_system)
):
    """Credit accrued interest for the given months"""
    try:
        transaction = system.ledger.post_interest(
            request.account_id, request.months, request.transaction_date
        )
        account = system.ledger.get_account(request.account_id)
        return envelope(
            {"transaction": transaction_payload(transaction), "account": account_payload(account)},
            "Interest posted"
        )

    except LedgerError as e:
        raise http_error(e)
