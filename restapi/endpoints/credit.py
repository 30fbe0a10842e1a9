"""Credit endpoints: requests, decisions, listing and deletion."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.core.permissions import Capability, Principal, authorize, authorize_owned, is_staff, require_principal
from components.credit.models import CreditStatus
from components.credit.repository import CreditRepository
from components.credit import schemas
from components.fund_pool import schemas as fund_pool_schemas
from components.payment.repository import PaymentRepository
from components.payment import schemas as payment_schemas
from restapi.endpoints.auth import get_current_principal

router = APIRouter(
    prefix="/credits",
    tags=["credits"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.CreditCreated, status_code=status.HTTP_201_CREATED)
async def create_credit(
    credit: schemas.CreditCreate,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """
    Request a credit.

    A client may only request credits for themselves; an administrator may
    request one on behalf of any client. The credit starts PENDING.
    """
    authorize(principal, Capability.CREATE_CREDIT, owner_id=credit.user_id)
    repo = CreditRepository(db)
    created = await repo.request(credit)
    return schemas.CreditCreated(
        message="Credit request submitted successfully",
        credit=schemas.Credit.model_validate(created),
    )


@router.get("/", response_model=List[schemas.CreditWithPayments])
async def read_credits(
    user_id: Optional[int] = Query(None, description="Only credits of this client"),
    status: Optional[CreditStatus] = Query(None, description="Only credits in this status"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of records to return"),
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Get credits with their payments. Clients only ever see their own."""
    principal = require_principal(principal)
    if not is_staff(principal) and user_id is None:
        user_id = principal.id
    authorize(principal, Capability.LIST_CREDITS, owner_id=user_id)

    repo = CreditRepository(db)
    return await repo.get_all(user_id=user_id, status=status, skip=skip, limit=limit)


@router.get("/{credit_id}", response_model=schemas.CreditWithPayments)
async def read_credit(
    credit_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Get a specific credit with its payments and repayment progress."""
    require_principal(principal)
    repo = CreditRepository(db)
    credit = await repo.get_by_id(credit_id)
    authorize_owned(principal, Capability.READ_CREDIT, credit, "Credit not found")
    return credit


@router.get("/{credit_id}/payments", response_model=List[payment_schemas.Payment])
async def read_credit_payments(
    credit_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Get the payments of a credit, newest first."""
    require_principal(principal)
    repo = CreditRepository(db)
    credit = await repo.get_by_id(credit_id)
    authorize_owned(principal, Capability.READ_PAYMENTS, credit, "Credit not found")
    return await PaymentRepository(db).get_all(credit_id=credit_id)


@router.post("/{credit_id}/approve", response_model=schemas.CreditDecision)
async def approve_credit(
    credit_id: int,
    decision: schemas.CreditApprove,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """
    Approve a pending credit.

    The credit amount is taken from the fund pool and a CREDIT_APPROVAL
    transaction is appended; fails with 400 when the pool cannot cover it.
    """
    principal = authorize(principal, Capability.APPROVE_CREDIT)
    repo = CreditRepository(db)
    credit, pool, transaction = await repo.approve(credit_id, decision, actor_id=principal.id)
    return schemas.CreditDecision(
        message="Credit approved successfully",
        credit=schemas.Credit.model_validate(credit),
        fund_pool=fund_pool_schemas.FundPool.model_validate(pool),
        transaction=fund_pool_schemas.Transaction.model_validate(transaction),
    )


@router.post("/{credit_id}/reject", response_model=schemas.CreditDecision)
async def reject_credit(
    credit_id: int,
    decision: schemas.CreditReject,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Reject a pending credit."""
    principal = authorize(principal, Capability.REJECT_CREDIT)
    repo = CreditRepository(db)
    credit = await repo.reject(credit_id, decision, actor_id=principal.id)
    return schemas.CreditDecision(
        message="Credit rejected",
        credit=schemas.Credit.model_validate(credit),
    )


@router.delete("/{credit_id}", response_model=schemas.CreditDeleted)
async def delete_credit(
    credit_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Delete a credit and its payments, returning any outstanding principal to the pool."""
    principal = authorize(principal, Capability.DELETE_CREDIT)
    repo = CreditRepository(db)
    reversal = await repo.delete(credit_id, actor_id=principal.id)
    return schemas.CreditDeleted(
        message="Credit deleted successfully",
        reversal=(
            fund_pool_schemas.Transaction.model_validate(reversal)
            if reversal is not None else None
        ),
    )
