"""
Pydantic schemas for API requests and response payload helpers
"""

from decimal import Decimal
from datetime import date
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from ..accounts import Account
from ..customers import Customer
from ..deposito_types import DepositoType
from ..transactions import Transaction
from ..projection import Projection


# Customer schemas
class CreateCustomerRequest(BaseModel):
    name: str


class UpdateCustomerRequest(BaseModel):
    name: str


# Deposito type schemas
class DepositoTypeRequest(BaseModel):
    name: str
    yearly_return: Decimal = Field(..., description="Annual return in percent (5.0 means 5%)")


# Account schemas
class OpenAccountRequest(BaseModel):
    customer_id: int
    deposito_type_id: int
    balance: Decimal = Field(Decimal('0'), description="Initial balance, posted as an opening deposit")
    opened_on: Optional[date] = None


class ChangeTierRequest(BaseModel):
    deposito_type_id: int


# Transaction schemas
class DepositRequest(BaseModel):
    account_id: int
    amount: Decimal
    transaction_date: Optional[date] = None


class WithdrawRequest(BaseModel):
    account_id: int
    amount: Decimal
    transaction_date: Optional[date] = None
    months: int = Field(..., description="Months of projected accrual that cap the withdrawal")


class PostInterestRequest(BaseModel):
    account_id: int
    months: int
    transaction_date: Optional[date] = None


def customer_payload(customer: Customer) -> Dict[str, Any]:
    return customer.to_dict()


def deposito_type_payload(deposito_type: DepositoType) -> Dict[str, Any]:
    payload = deposito_type.to_dict()
    payload['monthly_rate'] = str(deposito_type.monthly_rate)
    return payload


def account_payload(account: Account) -> Dict[str, Any]:
    return account.to_dict()


def transaction_payload(transaction: Transaction) -> Dict[str, Any]:
    payload = transaction.to_dict()
    # Field name the web front-end reads
    payload['balance_after'] = payload['ending_balance']
    return payload


def projection_payload(account_id: int, projection: Projection) -> Dict[str, Any]:
    display = projection.rounded()
    return {
        'account_id': account_id,
        'months': projection.months,
        'balance': str(projection.balance),
        'monthly_rate': str(projection.monthly_rate),
        'accrued_balance': str(projection.accrued_balance),
        'interest_earned': str(projection.interest_earned),
        'display_accrued_balance': str(display.accrued_balance)
    }
