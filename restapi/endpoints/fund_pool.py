"""Fund pool endpoints for administrators."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.config import get_settings
from components.core.init_db import get_db
from components.core.permissions import Capability, Principal, authorize
from components.fund_pool.models import TransactionType
from components.fund_pool.repository import FundPoolRepository
from components.fund_pool import schemas
from restapi.endpoints.auth import get_current_principal

settings = get_settings()

router = APIRouter(
    prefix="/fund-pool",
    tags=["fund pool"],
)


@router.get("/", response_model=schemas.FundPoolOverview)
async def read_fund_pool(
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """
    Get the fund pool dashboard.

    Returns the balance, the latest transactions, and the pending credits
    with the balance that would remain once all of them are approved.
    """
    authorize(principal, Capability.VIEW_FUND_POOL)
    repo = FundPoolRepository(db)
    return await repo.get_overview(recent_limit=settings.RECENT_ITEMS_LIMIT)


def _result(message, pool, transaction) -> schemas.FundOperationResult:
    return schemas.FundOperationResult(
        message=message,
        fund_pool=schemas.FundPool.model_validate(pool),
        transaction=schemas.Transaction.model_validate(transaction),
    )


@router.post("/deposit", response_model=schemas.FundOperationResult)
async def deposit(
    operation: schemas.FundOperation,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Add capital to the pool."""
    principal = authorize(principal, Capability.MANAGE_FUND_POOL)
    repo = FundPoolRepository(db)
    pool, transaction = await repo.deposit(
        operation.amount, principal.id, operation.description or "Deposit"
    )
    return _result("Deposit recorded successfully", pool, transaction)


@router.post("/withdraw", response_model=schemas.FundOperationResult)
async def withdraw(
    operation: schemas.FundOperation,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Take capital out of the pool. Fails with 400 when the balance is too low."""
    principal = authorize(principal, Capability.MANAGE_FUND_POOL)
    repo = FundPoolRepository(db)
    pool, transaction = await repo.withdraw(
        operation.amount, principal.id, operation.description or "Withdrawal"
    )
    return _result("Withdrawal recorded successfully", pool, transaction)


@router.get("/transactions", response_model=List[schemas.Transaction])
async def read_transactions(
    type: Optional[TransactionType] = Query(None, description="Only transactions of this type"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of records to return"),
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Get the ledger, newest first."""
    authorize(principal, Capability.VIEW_FUND_POOL)
    repo = FundPoolRepository(db)
    return await repo.get_transactions(type=type, skip=skip, limit=limit)


@router.get("/reconciliation", response_model=schemas.Reconciliation)
async def reconcile(
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Compare the stored balance with the balance rebuilt from the ledger."""
    authorize(principal, Capability.VIEW_FUND_POOL)
    repo = FundPoolRepository(db)
    return await repo.reconcile()
