"""Payment endpoints: recording repayments and reading them back."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.config import get_settings
from components.core.init_db import get_db
from components.core.permissions import Capability, Principal, authorize, authorize_owned, is_staff, require_principal
from components.credit.repository import CreditRepository
from components.fund_pool import schemas as fund_pool_schemas
from components.payment.repository import PaymentRepository
from components.payment import schemas
from restapi.endpoints.auth import get_current_principal

settings = get_settings()

router = APIRouter(
    prefix="/payments",
    tags=["payments"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.PaymentRecorded, status_code=status.HTTP_201_CREATED)
async def record_payment(
    payment: schemas.PaymentCreate,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """
    Record a repayment on an approved credit.

    The amount cannot exceed what remains to be repaid. The fund pool is
    credited, and the credit becomes REPAID once the last unit is paid.
    """
    require_principal(principal)
    credit = await CreditRepository(db).get_by_id(payment.credit_id)
    principal = authorize_owned(
        principal, Capability.RECORD_PAYMENT, credit, "Credit not found",
        owner_allowed=settings.ALLOW_CLIENT_SELF_PAYMENT,
    )

    repo = PaymentRepository(db)
    recorded, pool, transaction, still_owed = await repo.record(payment, actor_id=principal.id)
    fully_paid = still_owed <= 0
    return schemas.PaymentRecorded(
        message="Credit fully repaid" if fully_paid else "Payment recorded successfully",
        payment=schemas.Payment.model_validate(recorded),
        is_fully_paid=fully_paid,
        remaining_amount=still_owed,
        fund_pool=fund_pool_schemas.FundPool.model_validate(pool),
        transaction=fund_pool_schemas.Transaction.model_validate(transaction),
    )


@router.get("/", response_model=List[schemas.Payment])
async def read_payments(
    credit_id: Optional[int] = Query(None, description="Only payments of this credit"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of records to return"),
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Get payments, newest first. Clients only see payments on their own credits."""
    principal = require_principal(principal)
    user_id = None
    if credit_id is not None:
        credit = await CreditRepository(db).get_by_id(credit_id)
        authorize_owned(principal, Capability.READ_PAYMENTS, credit, "Credit not found")
    elif not is_staff(principal):
        user_id = principal.id

    repo = PaymentRepository(db)
    return await repo.get_all(user_id=user_id, credit_id=credit_id, skip=skip, limit=limit)


@router.get("/summary", response_model=schemas.PaymentSummary)
async def read_payment_summary(
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """
    Get payment totals.

    Clients get the count, total and last date of their own payments; staff
    get the same over every payment plus the most recent ones.
    """
    principal = authorize(principal, Capability.VIEW_OWN_SUMMARY)
    repo = PaymentRepository(db)
    if is_staff(principal):
        return await repo.get_summary(recent_limit=settings.RECENT_ITEMS_LIMIT)
    return await repo.get_summary(user_id=principal.id)
