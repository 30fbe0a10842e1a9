"""Repository for the credit lifecycle.

A credit moves PENDING -> APPROVED | REJECTED, and APPROVED -> REPAID once
fully repaid (see ``components.payment.repository``). Each transition is a
conditional UPDATE on the expected prior status, executed in the same
database transaction as the fund pool movement it implies; any failure
rolls the whole unit back.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from components.core.exceptions import InvalidInput, InvalidState, NotFound
from components.credit.models import Credit, CreditStatus, can_transition
from components.credit import schemas
from components.fund_pool.models import FundPool, Transaction, TransactionType
from components.fund_pool.repository import FundPoolRepository
from components.payment.models import Payment
from components.user.models import User, UserRole

logger = logging.getLogger(__name__)


class CreditRepository:
    """Repository for credit operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session
        self.fund_pool = FundPoolRepository(session)

    async def get_by_id(self, credit_id: int) -> Optional[Credit]:
        """Get credit by ID with its payments, as currently stored."""
        result = await self.session.execute(
            select(Credit)
            .options(selectinload(Credit.payments))
            .where(Credit.id == credit_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        user_id: Optional[int] = None,
        status: Optional[CreditStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Credit]:
        """Get credits with their payments, newest request first."""
        query = select(Credit).options(selectinload(Credit.payments))
        if user_id is not None:
            query = query.where(Credit.user_id == user_id)
        if status is not None:
            query = query.where(Credit.status == status)
        query = (
            query.order_by(Credit.request_date.desc(), Credit.id.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def lock_for_update(self, credit_id: int) -> Credit:
        """Load the credit row for update; concurrent writers wait on it."""
        result = await self.session.execute(
            select(Credit)
            .where(Credit.id == credit_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        credit = result.scalar_one_or_none()
        if credit is None:
            raise NotFound("Credit not found")
        return credit

    async def transition(
        self,
        credit: Credit,
        target: CreditStatus,
        **values,
    ) -> None:
        """Move ``credit`` to ``target`` if it is still in the status it was read with.

        Does not commit.
        """
        expected = credit.status
        if not can_transition(expected, target):
            logger.warning(
                "Refused move of credit %s from %s to %s", credit.id, expected.value, target.value
            )
            raise InvalidState(
                f"Credit cannot move from {expected.value} to {target.value}"
            )
        result = await self.session.execute(
            update(Credit)
            .where(Credit.id == credit.id, Credit.status == expected)
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Refused move of credit %s to %s, status changed concurrently", credit.id, target.value
            )
            raise InvalidState("Credit was modified concurrently")

    async def request(self, data: schemas.CreditCreate) -> Credit:
        """Create a credit request for a client. No fund movement happens yet."""
        owner = await self.session.get(User, data.user_id)
        if owner is None:
            raise NotFound("User not found")
        if owner.role != UserRole.CLIENT:
            raise InvalidInput("Credits can only be requested for clients")

        details = schemas.CreditDetails(
            request=schemas.RequestDetails(
                purpose=data.purpose,
                duration_months=data.duration_months,
                applicant=data.applicant,
            )
        )
        credit = Credit(
            user_id=data.user_id,
            amount=data.amount,
            status=CreditStatus.PENDING,
            request_date=datetime.now(timezone.utc),
            due_date=data.expected_repayment_date,
            details=details.to_json(),
        )
        self.session.add(credit)
        await self.session.commit()
        await self.session.refresh(credit)
        logger.info(
            "Credit %s requested for user %s, amount %s", credit.id, credit.user_id, credit.amount
        )
        return credit

    async def approve(
        self, credit_id: int, data: schemas.CreditApprove, actor_id: int
    ) -> Tuple[Credit, FundPool, Transaction]:
        """Approve a pending credit and disburse its amount from the fund pool."""
        await self.fund_pool.ensure_pool()
        try:
            credit = await self.lock_for_update(credit_id)
            if credit.status != CreditStatus.PENDING:
                logger.warning(
                    "Refused decision on credit %s in status %s", credit_id, credit.status.value
                )
                raise InvalidState("This credit is not awaiting approval")

            amount = Decimal(str(credit.amount))
            await self.fund_pool.apply_debit(amount)

            now = datetime.now(timezone.utc)
            details = schemas.CreditDetails.model_validate(credit.details or {})
            details.approval = schemas.ApprovalDetails(
                interest_rate=data.interest_rate,
                notes=data.notes,
                approved_by=actor_id,
                approved_at=now,
            )
            await self.transition(
                credit,
                CreditStatus.APPROVED,
                approval_date=now,
                due_date=data.due_date,
                supervisor_id=actor_id,
                details=details.to_json(),
            )
            transaction = await self.fund_pool.record_transaction(
                TransactionType.CREDIT_APPROVAL,
                amount,
                actor_id,
                description=f"Disbursement of credit #{credit.id}",
                credit_id=credit.id,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Credit %s approved by user %s, %s disbursed", credit_id, actor_id, amount)
        return await self.get_by_id(credit_id), await self.fund_pool.get_pool(), transaction

    async def reject(
        self, credit_id: int, data: schemas.CreditReject, actor_id: int
    ) -> Credit:
        """Reject a pending credit. No fund movement."""
        try:
            credit = await self.lock_for_update(credit_id)
            if credit.status != CreditStatus.PENDING:
                logger.warning(
                    "Refused decision on credit %s in status %s", credit_id, credit.status.value
                )
                raise InvalidState("This credit is not awaiting approval")

            details = schemas.CreditDetails.model_validate(credit.details or {})
            details.rejection = schemas.RejectionDetails(
                reason=data.rejection_reason,
                rejected_by=actor_id,
                rejected_at=datetime.now(timezone.utc),
            )
            await self.transition(
                credit,
                CreditStatus.REJECTED,
                supervisor_id=actor_id,
                details=details.to_json(),
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Credit %s rejected by user %s", credit_id, actor_id)
        return await self.get_by_id(credit_id)

    async def delete(self, credit_id: int, actor_id: int) -> Optional[Transaction]:
        """Delete a credit and its payments.

        A disbursed credit still owes ``amount - paid`` to the pool; that
        outstanding principal is returned with a REVERSAL transaction so the
        ledger keeps matching the balance.
        """
        await self.fund_pool.ensure_pool()
        reversal = None
        try:
            credit = await self.lock_for_update(credit_id)

            if credit.status in (CreditStatus.APPROVED, CreditStatus.REPAID):
                outstanding = Decimal(str(credit.amount)) - Decimal(str(credit.paid_amount))
                if outstanding > 0:
                    await self.fund_pool.apply_credit(outstanding)
                    reversal = await self.fund_pool.record_transaction(
                        TransactionType.REVERSAL,
                        outstanding,
                        actor_id,
                        description=f"Reversal of deleted credit #{credit_id}",
                        credit_id=credit_id,
                    )

            await self.session.execute(
                delete(Payment).where(Payment.credit_id == credit_id)
            )
            await self.session.execute(
                delete(Credit).where(Credit.id == credit_id)
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Credit %s deleted by user %s%s",
            credit_id,
            actor_id,
            f", {reversal.amount} returned to the pool" if reversal is not None else "",
        )
        return reversal
