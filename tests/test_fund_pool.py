"""Tests for the fund pool balance and its ledger."""

from decimal import Decimal

import pytest
from sqlalchemy import update

from components.core.exceptions import InsufficientFunds
from components.credit.repository import CreditRepository
from components.fund_pool.models import FUND_POOL_ID, FundPool, TransactionType
from components.fund_pool.repository import FundPoolRepository

from tests.helpers import credit_request


class TestPool:

    @pytest.mark.asyncio
    async def test_created_lazily_with_zero_balance(self, session):
        repo = FundPoolRepository(session)
        assert await repo.get_pool() is None

        pool = await repo.ensure_pool()
        assert pool.id == FUND_POOL_ID
        assert Decimal(str(pool.balance)) == Decimal("0")

        again = await repo.ensure_pool()
        assert again.id == FUND_POOL_ID

    @pytest.mark.asyncio
    async def test_deposit(self, session, admin):
        repo = FundPoolRepository(session)
        pool, transaction = await repo.deposit(Decimal("250000"), admin.id, "Capital")

        assert Decimal(str(pool.balance)) == Decimal("250000")
        assert transaction.type == TransactionType.DEPOSIT
        assert Decimal(str(transaction.amount)) == Decimal("250000")
        assert transaction.user_id == admin.id
        assert transaction.description == "Capital"

    @pytest.mark.asyncio
    async def test_withdraw(self, session, admin, funded_pool):
        repo = FundPoolRepository(session)
        pool, transaction = await repo.withdraw(Decimal("300000"), admin.id)

        assert Decimal(str(pool.balance)) == Decimal("700000")
        assert transaction.type == TransactionType.WITHDRAWAL

    @pytest.mark.asyncio
    async def test_withdraw_more_than_balance_changes_nothing(self, session, admin, funded_pool):
        admin_id = admin.id
        repo = FundPoolRepository(session)
        with pytest.raises(InsufficientFunds):
            await repo.withdraw(Decimal("1000000.01"), admin_id)

        pool = await repo.get_pool()
        assert Decimal(str(pool.balance)) == Decimal("1000000")
        transactions = await repo.get_transactions(type=TransactionType.WITHDRAWAL)
        assert transactions == []

    @pytest.mark.asyncio
    async def test_withdraw_whole_balance(self, session, admin, funded_pool):
        repo = FundPoolRepository(session)
        pool, _ = await repo.withdraw(Decimal("1000000"), admin.id)
        assert Decimal(str(pool.balance)) == Decimal("0")

    @pytest.mark.asyncio
    async def test_debit_is_checked_against_the_stored_balance(self, session, admin, funded_pool):
        """A stale in-memory balance cannot authorize an overdraft."""
        admin_id = admin.id
        repo = FundPoolRepository(session)
        stale = await repo.get_pool()
        await session.execute(
            update(FundPool)
            .where(FundPool.id == FUND_POOL_ID)
            .values(balance=Decimal("100000"))
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        assert Decimal(str(stale.balance)) == Decimal("1000000")

        with pytest.raises(InsufficientFunds):
            await repo.withdraw(Decimal("500000"), admin_id)

        pool = await repo.get_pool()
        assert Decimal(str(pool.balance)) == Decimal("100000")


class TestLedger:

    @pytest.mark.asyncio
    async def test_transactions_newest_first_and_filtered(self, session, admin, funded_pool):
        repo = FundPoolRepository(session)
        await repo.withdraw(Decimal("1000"), admin.id)
        await repo.deposit(Decimal("2000"), admin.id)

        transactions = await repo.get_transactions()
        assert [t.type for t in transactions] == [
            TransactionType.DEPOSIT, TransactionType.WITHDRAWAL, TransactionType.DEPOSIT,
        ]
        deposits = await repo.get_transactions(type=TransactionType.DEPOSIT)
        assert len(deposits) == 2

    @pytest.mark.asyncio
    async def test_reconciliation_balanced(self, session, admin, funded_pool):
        repo = FundPoolRepository(session)
        await repo.withdraw(Decimal("125000.50"), admin.id)

        result = await repo.reconcile()
        assert result.is_balanced
        assert result.balance == 874999.5
        assert result.ledger_balance == 874999.5
        assert result.transaction_count == 2

    @pytest.mark.asyncio
    async def test_reconciliation_detects_drift(self, session, admin, funded_pool):
        repo = FundPoolRepository(session)
        await repo.apply_credit(Decimal("10"))
        await session.commit()

        result = await repo.reconcile()
        assert not result.is_balanced
        assert result.difference == 10.0


class TestOverview:

    @pytest.mark.asyncio
    async def test_pending_credits_and_projection(self, session, funded_pool, client_user):
        credits = CreditRepository(session)
        await credits.request(credit_request(client_user.id, "300000"))
        await credits.request(credit_request(client_user.id, "200000"))

        overview = await FundPoolRepository(session).get_overview(recent_limit=5)
        assert overview.fund_pool.balance == 1000000.0
        assert overview.pending_count == 2
        assert overview.total_pending_amount == 500000.0
        assert overview.balance_after_pending == 500000.0
        assert {c.client_name for c in overview.pending_credits} == {"Awa Diallo"}
        assert len(overview.recent_transactions) == 1
