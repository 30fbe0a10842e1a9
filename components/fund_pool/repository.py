"""Repository for the fund pool and its ledger.

Every balance change is a single SQL statement evaluated by the database
(``balance = balance +/- :amount``), debits are conditional on the stored
balance covering the amount, and the matching ledger transaction is written
in the same database transaction. Callers that combine a balance change
with other writes (credit approval, payments, credit deletion) use the
``apply_*`` helpers, which never commit, and commit once at the end.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from components.core.exceptions import InsufficientFunds, NotFound
from components.credit.models import Credit, CreditStatus
from components.fund_pool.models import (
    BALANCE_SIGN,
    FUND_POOL_ID,
    FundPool,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from components.fund_pool import schemas

logger = logging.getLogger(__name__)


class FundPoolRepository:
    """Repository for fund pool operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_pool(self) -> Optional[FundPool]:
        """Get the pool as currently stored, bypassing the identity map."""
        result = await self.session.execute(
            select(FundPool)
            .where(FundPool.id == FUND_POOL_ID)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def ensure_pool(self) -> FundPool:
        """Return the pool, creating it with a zero balance on first access."""
        pool = await self.get_pool()
        if pool is not None:
            return pool

        self.session.add(FundPool(id=FUND_POOL_ID, balance=Decimal("0")))
        try:
            await self.session.commit()
            logger.info("Fund pool created")
        except IntegrityError:
            # Another request created it first
            await self.session.rollback()
        pool = await self.get_pool()
        if pool is None:
            raise NotFound("Fund pool not found")
        return pool

    async def apply_credit(self, amount: Decimal) -> None:
        """Add ``amount`` to the balance. Does not commit."""
        await self.session.execute(
            update(FundPool)
            .where(FundPool.id == FUND_POOL_ID)
            .values(balance=FundPool.balance + amount)
            .execution_options(synchronize_session=False)
        )

    async def apply_debit(self, amount: Decimal) -> None:
        """Subtract ``amount`` when the balance covers it. Does not commit.

        The check and the update are one statement, so two concurrent debits
        can never both pass against the same balance.
        """
        result = await self.session.execute(
            update(FundPool)
            .where(FundPool.id == FUND_POOL_ID, FundPool.balance >= amount)
            .values(balance=FundPool.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            pool = await self.get_pool()
            balance = pool.balance if pool is not None else Decimal("0")
            logger.warning(
                "Refused debit of %s, pool balance is %s", amount, balance
            )
            raise InsufficientFunds(
                f"Insufficient funds in the fund pool (available: {balance})"
            )

    async def record_transaction(
        self,
        type: TransactionType,
        amount: Decimal,
        user_id: int,
        description: Optional[str] = None,
        credit_id: Optional[int] = None,
        payment_id: Optional[int] = None,
    ) -> Transaction:
        """Append a ledger transaction. Does not commit."""
        transaction = Transaction(
            type=type,
            amount=amount,
            description=description,
            status=TransactionStatus.COMPLETED,
            date=datetime.now(timezone.utc),
            fund_pool_id=FUND_POOL_ID,
            user_id=user_id,
            credit_id=credit_id,
            payment_id=payment_id,
        )
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    async def deposit(
        self, amount: Decimal, user_id: int, description: Optional[str] = None
    ) -> Tuple[FundPool, Transaction]:
        """Add capital to the pool."""
        await self.ensure_pool()
        try:
            await self.apply_credit(amount)
            transaction = await self.record_transaction(
                TransactionType.DEPOSIT, amount, user_id, description
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Deposit of %s by user %s", amount, user_id)
        return await self.get_pool(), transaction

    async def withdraw(
        self, amount: Decimal, user_id: int, description: Optional[str] = None
    ) -> Tuple[FundPool, Transaction]:
        """Take capital out of the pool when the balance allows it."""
        await self.ensure_pool()
        try:
            await self.apply_debit(amount)
            transaction = await self.record_transaction(
                TransactionType.WITHDRAWAL, amount, user_id, description
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Withdrawal of %s by user %s", amount, user_id)
        return await self.get_pool(), transaction

    async def get_transactions(
        self,
        type: Optional[TransactionType] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Transaction]:
        """Get ledger transactions, newest first."""
        query = select(Transaction)
        if type is not None:
            query = query.where(Transaction.type == type)
        query = query.order_by(Transaction.date.desc(), Transaction.id.desc())
        result = await self.session.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def get_overview(self, recent_limit: int) -> schemas.FundPoolOverview:
        """Pool state, latest transactions and what pending credits would consume."""
        pool = await self.ensure_pool()
        recent = await self.get_transactions(limit=recent_limit)

        result = await self.session.execute(
            select(Credit)
            .options(selectinload(Credit.user))
            .where(Credit.status == CreditStatus.PENDING)
            .order_by(Credit.request_date.desc())
        )
        pending = list(result.scalars().all())
        total_pending = sum((Decimal(str(c.amount)) for c in pending), Decimal("0"))

        return schemas.FundPoolOverview(
            fund_pool=schemas.FundPool.model_validate(pool),
            recent_transactions=[schemas.Transaction.model_validate(t) for t in recent],
            pending_credits=[
                schemas.PendingCredit(
                    id=c.id,
                    amount=c.amount,
                    client_name=c.user.name,
                    request_date=c.request_date,
                )
                for c in pending
            ],
            pending_count=len(pending),
            total_pending_amount=total_pending,
            balance_after_pending=Decimal(str(pool.balance)) - total_pending,
        )

    async def reconcile(self) -> schemas.Reconciliation:
        """Rebuild the balance from the ledger and compare it with the stored one."""
        pool = await self.ensure_pool()
        result = await self.session.execute(
            select(Transaction.type, func.sum(Transaction.amount), func.count(Transaction.id))
            .where(Transaction.fund_pool_id == FUND_POOL_ID)
            .group_by(Transaction.type)
        )
        ledger_balance = Decimal("0")
        count = 0
        for type_, total, type_count in result.all():
            ledger_balance += BALANCE_SIGN[TransactionType(type_)] * Decimal(str(total or 0))
            count += type_count

        balance = Decimal(str(pool.balance))
        difference = balance - ledger_balance
        if difference:
            logger.warning(
                "Fund pool out of balance: stored %s, ledger %s", balance, ledger_balance
            )
        return schemas.Reconciliation(
            balance=balance,
            ledger_balance=ledger_balance,
            difference=difference,
            is_balanced=difference == 0,
            transaction_count=count,
        )
