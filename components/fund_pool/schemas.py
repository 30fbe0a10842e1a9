"""Pydantic schemas for fund pool data validation."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from components.fund_pool.models import TransactionStatus, TransactionType


class FundOperation(BaseModel):
    """Schema for a deposit into or a withdrawal from the pool."""
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)


class FundPool(BaseModel):
    """Schema for fund pool response."""
    id: int
    balance: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Transaction(BaseModel):
    """Schema for ledger transaction response."""
    id: int
    type: TransactionType
    amount: float
    description: Optional[str] = None
    status: TransactionStatus
    date: datetime
    fund_pool_id: int
    user_id: int
    credit_id: Optional[int] = None
    payment_id: Optional[int] = None

    class Config:
        from_attributes = True


class FundOperationResult(BaseModel):
    """Schema for the outcome of a balance-changing operation."""
    message: str
    fund_pool: FundPool
    transaction: Transaction


class PendingCredit(BaseModel):
    """Schema for a credit waiting for a decision."""
    id: int
    amount: float
    client_name: str
    request_date: datetime


class FundPoolOverview(BaseModel):
    """Schema for the fund pool dashboard."""
    fund_pool: FundPool
    recent_transactions: List[Transaction]
    pending_credits: List[PendingCredit]
    pending_count: int
    total_pending_amount: float
    balance_after_pending: float


class Reconciliation(BaseModel):
    """Schema comparing the stored balance with the balance rebuilt from the ledger."""
    balance: float
    ledger_balance: float
    difference: float
    is_balanced: bool
    transaction_count: int
