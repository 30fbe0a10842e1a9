"""Tests for repayments and their effect on the credit and the fund pool."""

import logging
from decimal import Decimal

import pytest
from pydantic import ValidationError

from components.core.exceptions import AmountExceedsRemaining, InvalidInput, InvalidState, NotFound
from components.credit.models import CreditStatus
from components.credit.repository import CreditRepository
from components.credit import schemas as credit_schemas
from components.fund_pool.models import TransactionType
from components.fund_pool.repository import FundPoolRepository
from components.payment.repository import PaymentRepository
from components.payment.schemas import PaymentCreate, PaymentMethod

from tests.helpers import credit_request


def pay(credit_id, amount, **kwargs) -> PaymentCreate:
    return PaymentCreate(credit_id=credit_id, amount=Decimal(str(amount)), **kwargs)


class TestRecord:

    @pytest.mark.asyncio
    async def test_partial_then_full_repayment(self, session, approved_credit, supervisor):
        credit_id = approved_credit.id
        repo = PaymentRepository(session)

        payment, pool, transaction, still_owed = await repo.record(
            pay(credit_id, 40000, method=PaymentMethod.MOBILE_MONEY, notes="First instalment"),
            actor_id=supervisor.id,
        )
        assert still_owed == Decimal("60000")
        assert Decimal(str(pool.balance)) == Decimal("940000")
        assert transaction.type == TransactionType.PAYMENT
        assert transaction.payment_id == payment.id
        assert transaction.credit_id == credit_id
        assert payment.details == {
            "method": "MOBILE_MONEY", "notes": "First instalment", "processed_by": supervisor.id,
        }
        assert (await CreditRepository(session).get_by_id(credit_id)).status == CreditStatus.APPROVED

        _, pool, _, still_owed = await repo.record(pay(credit_id, 60000), actor_id=supervisor.id)
        assert still_owed == Decimal("0")
        assert Decimal(str(pool.balance)) == Decimal("1000000")

        credit = await CreditRepository(session).get_by_id(credit_id)
        assert credit.status == CreditStatus.REPAID
        assert credit_schemas.CreditWithPayments.model_validate(credit).is_fully_paid

        reconciliation = await FundPoolRepository(session).reconcile()
        assert reconciliation.is_balanced

    @pytest.mark.asyncio
    async def test_payment_over_remaining_is_refused(self, session, approved_credit, supervisor):
        credit_id = approved_credit.id
        supervisor_id = supervisor.id
        repo = PaymentRepository(session)

        with pytest.raises(AmountExceedsRemaining):
            await repo.record(pay(credit_id, 150000), actor_id=supervisor_id)

        assert await repo.get_all(credit_id=credit_id) == []
        pool = await FundPoolRepository(session).get_pool()
        assert Decimal(str(pool.balance)) == Decimal("900000")
        assert (await CreditRepository(session).get_by_id(credit_id)).status == CreditStatus.APPROVED

    @pytest.mark.asyncio
    async def test_cap_applies_to_what_is_left(self, session, approved_credit, admin):
        credit_id = approved_credit.id
        admin_id = admin.id
        repo = PaymentRepository(session)
        await repo.record(pay(credit_id, 90000), actor_id=admin_id)

        with pytest.raises(InvalidInput):
            await repo.record(pay(credit_id, "10000.01"), actor_id=admin_id)

        _, _, _, still_owed = await repo.record(pay(credit_id, 10000), actor_id=admin_id)
        assert still_owed == Decimal("0")

    @pytest.mark.asyncio
    async def test_pending_credit_refuses_payment(self, session, funded_pool, client_user, supervisor):
        supervisor_id = supervisor.id
        credit = await CreditRepository(session).request(credit_request(client_user.id))
        credit_id = credit.id

        with pytest.raises(InvalidState):
            await PaymentRepository(session).record(pay(credit_id, 1000), actor_id=supervisor_id)

    @pytest.mark.asyncio
    async def test_repaid_credit_refuses_payment(self, session, approved_credit, supervisor):
        credit_id = approved_credit.id
        supervisor_id = supervisor.id
        repo = PaymentRepository(session)
        await repo.record(pay(credit_id, 100000), actor_id=supervisor_id)

        with pytest.raises(InvalidState):
            await repo.record(pay(credit_id, 1), actor_id=supervisor_id)

    @pytest.mark.asyncio
    async def test_refusals_are_logged_as_warnings(self, session, approved_credit, supervisor, caplog):
        credit_id = approved_credit.id
        repo = PaymentRepository(session)

        with caplog.at_level(logging.WARNING, logger="components.payment.repository"):
            with pytest.raises(AmountExceedsRemaining):
                await repo.record(pay(credit_id, 150000), actor_id=supervisor.id)
            await repo.record(pay(credit_id, 100000), actor_id=supervisor.id)
            with pytest.raises(InvalidState):
                await repo.record(pay(credit_id, 1), actor_id=supervisor.id)

        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 2
        assert warnings[0].startswith("Refused payment of 150000")
        assert "remaining 100000" in warnings[0]
        assert warnings[1].endswith(f"on credit {credit_id} in status REPAID")

    @pytest.mark.asyncio
    async def test_paid_amount_follows_payments(self, session, approved_credit, supervisor):
        credit_id = approved_credit.id
        repo = PaymentRepository(session)
        await repo.record(pay(credit_id, "12500.25"), actor_id=supervisor.id)
        await repo.record(pay(credit_id, "7499.75"), actor_id=supervisor.id)

        credit = await CreditRepository(session).get_by_id(credit_id)
        assert Decimal(str(credit.paid_amount)) == Decimal("20000")
        assert sum(Decimal(str(p.amount)) for p in credit.payments) == Decimal("20000")

    @pytest.mark.asyncio
    async def test_unknown_credit(self, session, funded_pool, supervisor):
        with pytest.raises(NotFound):
            await PaymentRepository(session).record(pay(999, 1000), actor_id=supervisor.id)

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError):
            pay(1, amount)


class TestReads:

    @pytest.mark.asyncio
    async def test_listing_and_summary(
        self, session, approved_credit, supervisor, client_user, other_client
    ):
        credit_id = approved_credit.id
        repo = PaymentRepository(session)
        first, *_ = await repo.record(pay(credit_id, 10000), actor_id=supervisor.id)
        second, *_ = await repo.record(pay(credit_id, 25000), actor_id=supervisor.id)

        payments = await repo.get_all(credit_id=credit_id)
        assert [p.id for p in payments] == [second.id, first.id]
        assert len(await repo.get_all(user_id=client_user.id)) == 2
        assert await repo.get_all(user_id=other_client.id) == []

        mine = await repo.get_summary(user_id=client_user.id)
        assert mine.total_payments == 2
        assert mine.total_amount == 35000.0
        assert mine.last_payment_date is not None
        assert mine.recent_payments is None

        nobody = await repo.get_summary(user_id=other_client.id)
        assert nobody.total_payments == 0
        assert nobody.total_amount == 0.0
        assert nobody.last_payment_date is None

        everything = await repo.get_summary(recent_limit=1)
        assert everything.total_payments == 2
        assert [p.id for p in everything.recent_payments] == [second.id]
        assert everything.recent_payments[0].client_name == "Awa Diallo"
