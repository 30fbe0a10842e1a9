"""Repository for dashboard summaries and yearly analytics."""

from datetime import datetime, timezone
from typing import List

import pandas as pd
from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from components.credit.models import Credit, CreditStatus
from components.fund_pool.repository import FundPoolRepository
from components.payment.models import Payment
from components.summary import schemas
from components.user.models import User, UserRole

MONTHS = range(1, 13)
DISBURSED = (CreditStatus.APPROVED, CreditStatus.REPAID)


def _monthly(frame: pd.DataFrame, date_column: str, year: int) -> pd.DataFrame:
    """Count and sum ``amount`` per month of ``year`` using ``date_column``."""
    empty = pd.DataFrame({"count": 0, "sum": 0.0}, index=pd.Index(MONTHS, name="month"))
    if frame.empty:
        return empty

    dates = pd.to_datetime(frame[date_column], utc=True)
    mask = dates.dt.year == year
    if not mask.any():
        return empty

    in_year = frame.loc[mask].assign(month=dates[mask].dt.month)
    grouped = in_year.groupby("month")["amount"].agg(["count", "sum"])
    return grouped.reindex(MONTHS, fill_value=0)


class SummaryRepository:
    """Repository for summary operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def _credit_counts(self) -> schemas.CreditStatusCounts:
        result = await self.session.execute(
            select(Credit.status, func.count(Credit.id)).group_by(Credit.status)
        )
        counts = {status: count for status, count in result.all()}
        return schemas.CreditStatusCounts(
            total=sum(counts.values()),
            pending=counts.get(CreditStatus.PENDING, 0),
            approved=counts.get(CreditStatus.APPROVED, 0),
            rejected=counts.get(CreditStatus.REJECTED, 0),
            repaid=counts.get(CreditStatus.REPAID, 0),
        )

    async def _disbursed_amount(self) -> float:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Credit.amount), 0)).where(Credit.status.in_(DISBURSED))
        )
        return float(result.scalar_one())

    async def _repaid_amount(self) -> float:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Payment.amount), 0))
        )
        return float(result.scalar_one())

    async def get_supervisor_summary(self) -> schemas.SupervisorSummary:
        """Credit counts and totals for the supervisor dashboard."""
        clients = await self.session.execute(
            select(func.count(User.id)).where(User.role == UserRole.CLIENT)
        )
        return schemas.SupervisorSummary(
            credits=await self._credit_counts(),
            total_approved_amount=await self._disbursed_amount(),
            total_repaid_amount=await self._repaid_amount(),
            total_clients=clients.scalar_one(),
        )

    async def get_admin_summary(self, recent_limit: int) -> schemas.AdminSummary:
        """User, credit and fund figures for the administrator dashboard."""
        result = await self.session.execute(
            select(User.role, func.count(User.id)).group_by(User.role)
        )
        by_role = {role: 0 for role in UserRole}
        by_role.update({role: count for role, count in result.all()})

        recent_users = await self.session.execute(
            select(User).order_by(User.created_at.desc(), User.id.desc()).limit(recent_limit)
        )
        recent_credits = await self.session.execute(
            select(Credit)
            .options(selectinload(Credit.user))
            .order_by(Credit.request_date.desc(), Credit.id.desc())
            .limit(recent_limit)
        )
        pool = await FundPoolRepository(self.session).ensure_pool()

        return schemas.AdminSummary(
            total_users=sum(by_role.values()),
            users_by_role=by_role,
            credits=await self._credit_counts(),
            total_credit_amount=await self._disbursed_amount(),
            total_repaid_amount=await self._repaid_amount(),
            fund_pool_balance=pool.balance,
            recent_users=[
                schemas.RecentUser(
                    id=u.id, name=u.name, email=u.email, role=u.role, created_at=u.created_at
                )
                for u in recent_users.scalars().all()
            ],
            recent_credits=[
                schemas.RecentCredit(
                    id=c.id,
                    amount=c.amount,
                    status=c.status,
                    client_name=c.user.name,
                    request_date=c.request_date,
                )
                for c in recent_credits.scalars().all()
            ],
        )

    async def get_year_analytics(self, year: int) -> schemas.YearAnalytics:
        """Monthly requests, approvals and repayments for ``year``."""
        start = datetime(year, 1, 1, tzinfo=timezone.utc)
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)

        credit_rows = await self.session.execute(
            select(Credit.amount, Credit.status, Credit.request_date, Credit.approval_date).where(
                or_(
                    and_(Credit.request_date >= start, Credit.request_date < end),
                    and_(Credit.approval_date >= start, Credit.approval_date < end),
                )
            )
        )
        credits = pd.DataFrame(
            credit_rows.all(), columns=["amount", "status", "request_date", "approval_date"]
        )
        payment_rows = await self.session.execute(
            select(Payment.amount, Payment.date).where(Payment.date >= start, Payment.date < end)
        )
        payments = pd.DataFrame(payment_rows.all(), columns=["amount", "date"])
        credits["amount"] = credits["amount"].astype(float)
        payments["amount"] = payments["amount"].astype(float)

        requested = _monthly(credits, "request_date", year)
        approved = _monthly(credits.dropna(subset=["approval_date"]), "approval_date", year)
        repaid = _monthly(payments, "date", year)

        monthly: List[schemas.MonthAnalytics] = []
        for month in MONTHS:
            approved_amount = float(approved.at[month, "sum"])
            repaid_amount = float(repaid.at[month, "sum"])
            monthly.append(schemas.MonthAnalytics(
                month=month,
                requested_count=int(requested.at[month, "count"]),
                requested_amount=float(requested.at[month, "sum"]),
                approved_count=int(approved.at[month, "count"]),
                approved_amount=approved_amount,
                payments_count=int(repaid.at[month, "count"]),
                repaid_amount=repaid_amount,
                repayment_rate=round(repaid_amount / approved_amount * 100, 2) if approved_amount else 0.0,
            ))

        distribution = {status: 0 for status in CreditStatus}
        if not credits.empty:
            requested_in_year = pd.to_datetime(credits["request_date"], utc=True).dt.year == year
            for status, count in credits.loc[requested_in_year, "status"].value_counts().items():
                distribution[CreditStatus(status)] = int(count)

        return schemas.YearAnalytics(
            year=year,
            total_requested_amount=float(requested["sum"].sum()),
            total_approved_amount=float(approved["sum"].sum()),
            total_repaid_amount=float(repaid["sum"].sum()),
            status_distribution=distribution,
            monthly=monthly,
        )
