"""Pydantic schemas for dashboard summaries."""

from datetime import datetime
from typing import Dict, List
from pydantic import BaseModel

from components.credit.models import CreditStatus
from components.user.models import UserRole


class CreditStatusCounts(BaseModel):
    """Schema for credit counts per status."""
    total: int
    pending: int
    approved: int
    rejected: int
    repaid: int


class SupervisorSummary(BaseModel):
    """Schema for the supervisor dashboard."""
    credits: CreditStatusCounts
    total_approved_amount: float
    total_repaid_amount: float
    total_clients: int


class RecentUser(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    created_at: datetime


class RecentCredit(BaseModel):
    id: int
    amount: float
    status: CreditStatus
    client_name: str
    request_date: datetime


class AdminSummary(BaseModel):
    """Schema for the administrator dashboard."""
    total_users: int
    users_by_role: Dict[UserRole, int]
    credits: CreditStatusCounts
    total_credit_amount: float
    total_repaid_amount: float
    fund_pool_balance: float
    recent_users: List[RecentUser]
    recent_credits: List[RecentCredit]


class MonthAnalytics(BaseModel):
    """Schema for one month of activity."""
    month: int
    requested_count: int
    requested_amount: float
    approved_count: int
    approved_amount: float
    payments_count: int
    repaid_amount: float
    repayment_rate: float


class YearAnalytics(BaseModel):
    """Schema for a year of activity."""
    year: int
    total_requested_amount: float
    total_approved_amount: float
    total_repaid_amount: float
    status_distribution: Dict[CreditStatus, int]
    monthly: List[MonthAnalytics]
