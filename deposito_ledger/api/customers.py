"""
Customer management endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_system, http_error, envelope
from .schemas import CreateCustomerRequest, UpdateCustomerRequest, customer_payload, account_payload
from ..system import DepositoSystem
from ..exceptions import LedgerError


router = APIRouter()


@router.get("")
async def list_customers(system: DepositoSystem = Depends(get_system)):
    """List all customers"""
    customers = system.customers.list_customers()
    return envelope([customer_payload(c) for c in customers])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_customer(
    request: CreateCustomerRequest,
    system: DepositoSystem = Depends(get_system)
):
    """Create a new customer"""
    try:
        customer = system.customers.create_customer(request.name)
        return envelope(customer_payload(customer), "Customer created successfully")

    except LedgerError as e:
        raise http_error(e)


@router.get("/{customer_id}")
async def get_customer(
    customer_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Get customer by ID"""
    try:
        customer = system.customers.get_customer(customer_id)
        return envelope(customer_payload(customer))

    except LedgerError as e:
        raise http_error(e)


@router.put("/{customer_id}")
async def update_customer(
    customer_id: int,
    request: UpdateCustomerRequest,
    system: DepositoSystem = Depends(get_system)
):
    """Rename a customer"""
    try:
        customer = system.customers.update_customer(customer_id, request.name)
        return envelope(customer_payload(customer), "Customer updated successfully")

    except LedgerError as e:
        raise http_error(e)


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Delete a customer who owns no accounts"""
    try:
        system.customers.delete_customer(customer_id)
        return envelope(None, "Customer deleted successfully")

    except LedgerError as e:
        raise http_error(e)


@router.get("/{customer_id}/accounts")
async def get_customer_accounts(
    customer_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Get all accounts for a customer"""
    try:
        accounts = system.ledger.list_accounts_by_customer(customer_id)
        return envelope([account_payload(a) for a in accounts])

    except LedgerError as e:
        raise http_error(e)
