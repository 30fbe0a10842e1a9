"""Script to seed demo data into the database."""

from datetime import date, timedelta
from decimal import Decimal
import asyncio
from sqlalchemy import delete
from components.core.init_db import db_manager, get_db
from components.user.models import User, UserRole
from components.credit.models import Credit
from components.payment.models import Payment
from components.fund_pool.models import FundPool, Transaction
from components.user.repository import UserRepository
from components.user.schemas import UserCreate
from components.credit.repository import CreditRepository
from components.credit import schemas as credit_schemas
from components.fund_pool.repository import FundPoolRepository
from components.payment.repository import PaymentRepository
from components.payment.schemas import PaymentCreate, PaymentMethod

DEMO_PASSWORD = "password123"


async def seed_data():
    """Seed demo users, capital, credits and a repayment."""
    await db_manager.create_tables()
    async for db in get_db():
        # Clear existing data
        await db.execute(delete(Payment))
        await db.execute(delete(Transaction))
        await db.execute(delete(Credit))
        await db.execute(delete(FundPool))
        await db.execute(delete(User))
        await db.commit()

        users = UserRepository(db)
        admin = await users.create(UserCreate(
            name="Admin", email="admin@example.com",
            password=DEMO_PASSWORD, role=UserRole.ADMINISTRATOR,
        ))
        supervisor = await users.create(UserCreate(
            name="Supervisor", email="supervisor@example.com",
            password=DEMO_PASSWORD, role=UserRole.SUPERVISOR,
        ))
        clients = [
            await users.create(UserCreate(
                name=name, email=f"{name.split()[0].lower()}@example.com",
                password=DEMO_PASSWORD, role=UserRole.CLIENT,
            ))
            for name in ("Awa Diallo", "Moussa Traore", "Fatou Ndiaye")
        ]

        await FundPoolRepository(db).deposit(
            Decimal("5000000"), admin.id, "Initial capital"
        )

        credits = CreditRepository(db)
        requested = []
        for i, client in enumerate(clients):
            requested.append(await credits.request(credit_schemas.CreditCreate(
                user_id=client.id,
                amount=Decimal(250000 * (i + 1)),
                purpose="Stock purchase for a market stall",
                duration_months=6 * (i + 1),
                expected_repayment_date=date.today() + timedelta(days=180 * (i + 1)),
            )))

        approved, _, _ = await credits.approve(
            requested[0].id,
            credit_schemas.CreditApprove(
                due_date=date.today() + timedelta(days=180), interest_rate=5.5
            ),
            actor_id=supervisor.id,
        )
        await credits.reject(
            requested[2].id,
            credit_schemas.CreditReject(rejection_reason="Insufficient guarantee provided"),
            actor_id=supervisor.id,
        )
        await PaymentRepository(db).record(
            PaymentCreate(
                credit_id=approved.id, amount=Decimal("50000"), method=PaymentMethod.MOBILE_MONEY
            ),
            actor_id=supervisor.id,
        )


if __name__ == "__main__":
    asyncio.run(seed_data())
