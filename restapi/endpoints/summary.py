"""Dashboard endpoints."""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.config import get_settings
from components.core.init_db import get_db
from components.core.permissions import Capability, Principal, authorize
from components.summary.repository import SummaryRepository
from components.summary import schemas
from restapi.endpoints.auth import get_current_principal

settings = get_settings()

router = APIRouter(
    prefix="/summary",
    tags=["summary"],
)


@router.get("/supervisor", response_model=schemas.SupervisorSummary)
async def supervisor_summary(
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Credit counts per status, approved and repaid totals, number of clients."""
    authorize(principal, Capability.VIEW_SUPERVISOR_SUMMARY)
    return await SummaryRepository(db).get_supervisor_summary()


@router.get("/admin", response_model=schemas.AdminSummary)
async def admin_summary(
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Users, credits and fund figures with the most recent users and credits."""
    authorize(principal, Capability.VIEW_ADMIN_SUMMARY)
    return await SummaryRepository(db).get_admin_summary(settings.RECENT_ITEMS_LIMIT)


@router.get("/analytics", response_model=schemas.YearAnalytics)
async def year_analytics(
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Defaults to the current year"),
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """
    Get monthly activity for a year.

    For each month: requested and approved credits (count and amount),
    repayments and the repayment rate. Also returns the distribution of
    statuses among credits requested that year.
    """
    authorize(principal, Capability.VIEW_SUPERVISOR_SUMMARY)
    return await SummaryRepository(db).get_year_analytics(year or date.today().year)
