"""Pydantic schemas for credit data validation."""

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, computed_field, field_validator

from components.core.config import get_settings
from components.credit.models import CreditStatus
from components.fund_pool import schemas as fund_pool_schemas
from components.payment import schemas as payment_schemas
from components.payment import utils as accumulator

settings = get_settings()


class ActivityType(str, enum.Enum):
    COMMERCE = "commerce"
    AGRICULTURE = "agriculture"
    CRAFTS = "crafts"
    SERVICES = "services"
    SALARIED = "salaried"
    OTHER = "other"


class ActivityDuration(str, enum.Enum):
    LESS_THAN_6_MONTHS = "less_than_6_months"
    SIX_TO_12_MONTHS = "6_to_12_months"
    ONE_TO_3_YEARS = "1_to_3_years"
    MORE_THAN_3_YEARS = "more_than_3_years"


class GuaranteeType(str, enum.Enum):
    ASSET = "asset"
    JOINT_SURETY = "joint_surety"
    BLOCKED_SAVINGS = "blocked_savings"
    OTHER = "other"


class ApplicantDeclarations(BaseModel):
    """Identity, activity and guarantee information given with a request."""
    date_of_birth: Optional[date] = None
    id_type: Optional[str] = Field(None, max_length=50)
    id_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    address_proof_type: Optional[str] = Field(None, max_length=50)
    activity_type: Optional[ActivityType] = None
    activity_duration: Optional[ActivityDuration] = None
    monthly_income: Optional[Decimal] = Field(None, ge=0)
    monthly_expenses: Optional[Decimal] = Field(None, ge=0)
    guarantee_type: Optional[GuaranteeType] = None
    guarantee_description: Optional[str] = Field(None, max_length=1000)
    no_outstanding_debt: Optional[bool] = None
    accepts_fees: Optional[bool] = None


class RequestDetails(BaseModel):
    purpose: str
    duration_months: int
    applicant: Optional[ApplicantDeclarations] = None


class ApprovalDetails(BaseModel):
    interest_rate: float
    notes: Optional[str] = None
    approved_by: int
    approved_at: datetime


class RejectionDetails(BaseModel):
    reason: str
    rejected_by: int
    rejected_at: datetime


class CreditDetails(BaseModel):
    """Annotations of a credit, one section per lifecycle stage."""
    request: Optional[RequestDetails] = None
    approval: Optional[ApprovalDetails] = None
    rejection: Optional[RejectionDetails] = None

    def to_json(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


def _ensure_future(value: date) -> date:
    if value <= date.today():
        raise ValueError("Date must be in the future")
    return value


class CreditCreate(BaseModel):
    """Schema for credit request."""
    user_id: int
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    purpose: str = Field(..., min_length=10, max_length=1000)
    duration_months: int = Field(..., ge=1)
    expected_repayment_date: date
    applicant: Optional[ApplicantDeclarations] = None

    @field_validator("duration_months")
    @classmethod
    def check_duration(cls, value: int) -> int:
        if value > settings.MAX_CREDIT_DURATION_MONTHS:
            raise ValueError(
                f"Duration cannot exceed {settings.MAX_CREDIT_DURATION_MONTHS} months"
            )
        return value

    @field_validator("expected_repayment_date")
    @classmethod
    def check_repayment_date(cls, value: date) -> date:
        return _ensure_future(value)


class CreditApprove(BaseModel):
    """Schema for credit approval."""
    due_date: date
    interest_rate: float = Field(..., ge=0, le=100)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("interest_rate", mode="before")
    @classmethod
    def parse_interest_rate(cls, value):
        # Accept form input such as "5,5" or "12 5"
        if isinstance(value, str):
            return value.replace(" ", "").replace(",", ".")
        return value

    @field_validator("due_date")
    @classmethod
    def check_due_date(cls, value: date) -> date:
        return _ensure_future(value)


class CreditReject(BaseModel):
    """Schema for credit rejection."""
    rejection_reason: str = Field(..., min_length=10, max_length=1000)


class Credit(BaseModel):
    """Schema for credit response."""
    id: int
    user_id: int
    supervisor_id: Optional[int] = None
    amount: float
    status: CreditStatus
    request_date: datetime
    approval_date: Optional[datetime] = None
    due_date: Optional[date] = None
    details: CreditDetails = CreditDetails()

    class Config:
        from_attributes = True


class CreditWithPayments(Credit):
    """Schema for credit response with its repayments."""
    payments: List[payment_schemas.Payment] = []

    def _balance(self) -> accumulator.CreditBalance:
        return accumulator.balance_of(self.amount, self.payments)

    @computed_field
    @property
    def total_paid(self) -> float:
        return float(self._balance().total_paid)

    @computed_field
    @property
    def remaining_amount(self) -> float:
        return float(self._balance().remaining)

    @computed_field
    @property
    def progress_percentage(self) -> float:
        return self._balance().progress_percentage

    @computed_field
    @property
    def is_fully_paid(self) -> bool:
        return self._balance().is_fully_paid


class CreditCreated(BaseModel):
    message: str
    credit: Credit


class CreditDecision(BaseModel):
    """Schema for the outcome of an approval or a rejection."""
    message: str
    credit: Credit
    fund_pool: Optional[fund_pool_schemas.FundPool] = None
    transaction: Optional[fund_pool_schemas.Transaction] = None


class CreditDeleted(BaseModel):
    message: str
    reversal: Optional[fund_pool_schemas.Transaction] = None
