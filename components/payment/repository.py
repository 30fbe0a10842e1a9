"""Repository for payment operations."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from components.core.exceptions import AmountExceedsRemaining, InvalidState, NotFound
from components.credit.models import Credit, CreditStatus
from components.credit.repository import CreditRepository
from components.fund_pool.models import FundPool, Transaction, TransactionType
from components.payment.models import Payment
from components.payment import schemas
from components.payment import utils as accumulator

logger = logging.getLogger(__name__)


class PaymentRepository:
    """Repository for payment operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session
        self.credits = CreditRepository(session)

    async def _claim(self, credit_id: int, amount: Decimal) -> None:
        """Add ``amount`` to the credit's paid total if it still fits. Does not commit.

        Status, cap and increment are one statement evaluated against the
        stored row, so concurrent payments cannot both fit in the same
        remaining amount.
        """
        result = await self.session.execute(
            update(Credit)
            .where(
                Credit.id == credit_id,
                Credit.status == CreditStatus.APPROVED,
                Credit.paid_amount + amount <= Credit.amount,
            )
            .values(paid_amount=Credit.paid_amount + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        credit = await self.credits.get_by_id(credit_id)
        if credit is None:
            raise NotFound("Credit not found")
        if credit.status != CreditStatus.APPROVED:
            logger.warning(
                "Refused payment of %s on credit %s in status %s",
                amount, credit_id, credit.status.value,
            )
            raise InvalidState("This credit is not in a state allowing repayment")
        remaining = accumulator.remaining(credit.amount, credit.paid_amount)
        logger.warning(
            "Refused payment of %s on credit %s, remaining %s", amount, credit_id, remaining
        )
        raise AmountExceedsRemaining(
            f"Payment amount cannot exceed the remaining amount ({remaining})"
        )

    async def record(
        self, data: schemas.PaymentCreate, actor_id: int
    ) -> Tuple[Payment, FundPool, Transaction, Decimal]:
        """Record a repayment against an approved credit.

        Returns the payment, the updated pool, the ledger transaction and the
        amount still owed.
        """
        await self.credits.fund_pool.ensure_pool()
        try:
            await self._claim(data.credit_id, data.amount)
            # Re-read after our own write; the row stays locked until commit
            credit = await self.credits.lock_for_update(data.credit_id)

            payment = Payment(
                amount=data.amount,
                date=datetime.now(timezone.utc),
                credit_id=credit.id,
                details=schemas.PaymentDetails(
                    method=data.method,
                    notes=data.notes,
                    processed_by=actor_id,
                ).model_dump(mode="json"),
            )
            self.session.add(payment)
            await self.session.flush()

            await self.credits.fund_pool.apply_credit(data.amount)
            transaction = await self.credits.fund_pool.record_transaction(
                TransactionType.PAYMENT,
                data.amount,
                actor_id,
                description=f"Repayment of credit #{credit.id}",
                credit_id=credit.id,
                payment_id=payment.id,
            )

            still_owed = accumulator.remaining(credit.amount, credit.paid_amount)
            if accumulator.is_fully_paid(credit.amount, credit.paid_amount):
                await self.credits.transition(credit, CreditStatus.REPAID)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Payment %s of %s recorded on credit %s by user %s, remaining %s",
            payment.id, data.amount, credit.id, actor_id, still_owed,
        )
        if still_owed <= 0:
            logger.info("Credit %s fully repaid", credit.id)
        pool = await self.credits.fund_pool.get_pool()
        return payment, pool, transaction, still_owed

    async def get_all(
        self,
        user_id: Optional[int] = None,
        credit_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Payment]:
        """Get payments, newest first, optionally for one client or one credit."""
        query = select(Payment)
        if user_id is not None:
            query = query.join(Payment.credit).where(Credit.user_id == user_id)
        if credit_id is not None:
            query = query.where(Payment.credit_id == credit_id)
        query = query.order_by(Payment.date.desc(), Payment.id.desc())
        result = await self.session.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def get_summary(
        self, user_id: Optional[int] = None, recent_limit: Optional[int] = None
    ) -> schemas.PaymentSummary:
        """Count, total and last date of payments; with recent lines when asked."""
        query = select(
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0),
            func.max(Payment.date),
        )
        if user_id is not None:
            query = query.select_from(Payment).join(Credit, Payment.credit_id == Credit.id).where(
                Credit.user_id == user_id
            )
        count, total, last_date = (await self.session.execute(query)).one()

        recent_payments = None
        if recent_limit:
            result = await self.session.execute(
                select(Payment)
                .options(selectinload(Payment.credit).selectinload(Credit.user))
                .order_by(Payment.date.desc(), Payment.id.desc())
                .limit(recent_limit)
            )
            recent_payments = [
                schemas.RecentPayment(
                    id=p.id,
                    amount=p.amount,
                    date=p.date,
                    credit_id=p.credit_id,
                    client_name=p.credit.user.name,
                )
                for p in result.scalars().all()
            ]

        return schemas.PaymentSummary(
            total_payments=count,
            total_amount=accumulator.to_decimal(total),
            last_payment_date=last_date,
            recent_payments=recent_payments,
        )
