"""Pydantic schemas for payment data validation."""

import enum
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from components.fund_pool import schemas as fund_pool_schemas


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    MOBILE_MONEY = "MOBILE_MONEY"
    BANK_TRANSFER = "BANK_TRANSFER"


class PaymentDetails(BaseModel):
    """Annotations stored with a payment."""
    method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None
    processed_by: Optional[int] = None


class PaymentCreate(BaseModel):
    """Schema for payment recording."""
    credit_id: int
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = Field(None, max_length=1000)


class Payment(BaseModel):
    """Schema for payment response."""
    id: int
    amount: float
    date: datetime
    credit_id: int
    details: PaymentDetails = PaymentDetails()

    class Config:
        from_attributes = True


class PaymentRecorded(BaseModel):
    """Schema for the outcome of a recorded payment."""
    message: str
    payment: Payment
    is_fully_paid: bool
    remaining_amount: float
    fund_pool: fund_pool_schemas.FundPool
    transaction: fund_pool_schemas.Transaction


class RecentPayment(BaseModel):
    """Schema for a payment line in dashboards."""
    id: int
    amount: float
    date: datetime
    credit_id: int
    client_name: str


class PaymentSummary(BaseModel):
    """Schema for payment totals."""
    total_payments: int
    total_amount: float
    last_payment_date: Optional[datetime] = None
    recent_payments: Optional[List[RecentPayment]] = None
