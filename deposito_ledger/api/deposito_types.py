"""
Deposito type endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_system, http_error, envelope
from .schemas import DepositoTypeRequest, deposito_type_payload
from ..system import DepositoSystem
from ..exceptions import LedgerError


router = APIRouter()


@router.get("")
async def list_deposito_types(system: DepositoSystem = Depends(get_system)):
    """List all deposito types"""
    types = system.deposito_types.list()
    return envelope([deposito_type_payload(t) for t in types])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_deposito_type(
    request: DepositoTypeRequest,
    system: DepositoSystem = Depends(get_system)
):
    """Create a new deposito type"""
    try:
        deposito_type = system.deposito_types.create(request.name, request.yearly_return)
        return envelope(deposito_type_payload(deposito_type), "Deposito type created successfully")

    except LedgerError as e:
        raise http_error(e)


@router.get("/{deposito_type_id}")
async def get_deposito_type(
    deposito_type_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Get deposito type by ID"""
    try:
        deposito_type = system.deposito_types.get(deposito_type_id)
        return envelope(deposito_type_payload(deposito_type))

    except LedgerError as e:
        raise http_error(e)


@router.put("/{deposito_type_id}")
async def update_deposito_type(
    deposito_type_id: int,
    request: DepositoTypeRequest,
    system: DepositoSystem = Depends(get_system)
):
    """Update a deposito type's name and yearly return"""
    try:
        deposito_type = system.deposito_types.update(
            deposito_type_id, request.name, request.yearly_return
        )
        return envelope(deposito_type_payload(deposito_type), "Deposito type updated successfully")

    except LedgerError as e:
        raise http_error(e)


@router.delete("/{deposito_type_id}")
async def delete_deposito_type(
    deposito_type_id: int,
    system: DepositoSystem = Depends(get_system)
):
    """Delete a deposito type no account uses"""
    try:
        system.deposito_types.delete(deposito_type_id)
        return envelope(None, "Deposito type deleted successfully")

    except LedgerError as e:
        raise http_error(e)
