"""Repository for user operations."""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from components.core.exceptions import Conflict, InvalidInput, NotFound
from components.core.security import get_password_hash
from components.credit.models import Credit, CreditStatus
from components.credit import schemas as credit_schemas
from components.fund_pool.models import Transaction
from components.payment import utils as accumulator
from components.user.models import User, UserRole
from components.user import schemas

logger = logging.getLogger(__name__)

DISBURSED = (CreditStatus.APPROVED, CreditStatus.REPAID)


class UserRepository:
    """Repository for user operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, user: schemas.UserCreate) -> User:
        """Create a new user."""
        if await self.exists(user.email):
            raise Conflict("A user with this email already exists")

        db_user = User(
            name=user.name,
            email=user.email,
            password=get_password_hash(user.password),
            role=user.role,
        )
        self.session.add(db_user)
        await self.session.commit()
        await self.session.refresh(db_user)
        logger.info("User %s created with role %s", db_user.id, db_user.role.value)
        return db_user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_404(self, user_id: int) -> User:
        user = await self.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        result = await self.session.execute(
            select(User).where(User.email == email)
        )
        return result.scalar_one_or_none()

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        role: Optional[UserRole] = None,
    ) -> List[User]:
        """Get all users with optional filtering."""
        query = select(User)

        if role:
            query = query.where(User.role == role)

        query = query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update(self, user_id: int, user: schemas.UserUpdate) -> User:
        """Update user by ID."""
        db_user = await self.get_or_404(user_id)

        if user.email != db_user.email:
            existing_user = await self.get_by_email(user.email)
            if existing_user and existing_user.id != user_id:
                raise Conflict("This email is already used by another user")

        db_user.name = user.name
        db_user.email = user.email
        db_user.role = user.role
        if user.password:
            db_user.password = get_password_hash(user.password)

        await self.session.commit()
        await self.session.refresh(db_user)
        logger.info("User %s updated", user_id)
        return db_user

    async def delete(self, user_id: int, actor_id: int) -> None:
        """Delete a user that nothing references."""
        db_user = await self.get_or_404(user_id)
        if user_id == actor_id:
            raise InvalidInput("You cannot delete your own account")

        credits = await self.session.execute(
            select(func.count(Credit.id)).where(
                or_(Credit.user_id == user_id, Credit.supervisor_id == user_id)
            )
        )
        if credits.scalar_one():
            raise Conflict(
                "This user owns or handled credits and cannot be deleted. "
                "Delete or reassign the credits first."
            )
        transactions = await self.session.execute(
            select(func.count(Transaction.id)).where(Transaction.user_id == user_id)
        )
        if transactions.scalar_one():
            raise Conflict("This user appears in the fund pool ledger and cannot be deleted")

        await self.session.delete(db_user)
        await self.session.commit()
        logger.info("User %s deleted by user %s", user_id, actor_id)

    async def exists(self, email: str) -> bool:
        """Check if user with given email exists."""
        result = await self.session.execute(
            select(User.id).where(User.email == email)
        )
        return result.scalar_one_or_none() is not None

    async def _get_clients(self, user_id: Optional[int] = None) -> List[User]:
        query = (
            select(User)
            .options(selectinload(User.credits).selectinload(Credit.payments))
            .where(User.role == UserRole.CLIENT)
        )
        if user_id is not None:
            query = query.where(User.id == user_id)
        result = await self.session.execute(
            query.order_by(User.name).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @staticmethod
    def _client_totals(client: User) -> dict:
        borrowed = sum(
            (accumulator.to_decimal(c.amount) for c in client.credits if c.status in DISBURSED),
            Decimal("0"),
        )
        repaid = sum(
            (accumulator.total_paid(c.payments) for c in client.credits),
            Decimal("0"),
        )
        return {
            "credit_count": len(client.credits),
            "pending_credits": sum(1 for c in client.credits if c.status == CreditStatus.PENDING),
            "active_credits": sum(1 for c in client.credits if c.status == CreditStatus.APPROVED),
            "total_borrowed": borrowed,
            "total_repaid": repaid,
            "outstanding": borrowed - repaid,
        }

    async def get_clients_overview(self) -> List[schemas.ClientOverview]:
        """Get every client with their borrowing totals."""
        return [
            schemas.ClientOverview(
                id=client.id,
                name=client.name,
                email=client.email,
                created_at=client.created_at,
                **self._client_totals(client),
            )
            for client in await self._get_clients()
        ]

    async def get_client_profile(self, user_id: int) -> schemas.ClientProfile:
        """Get one client with their credits, repayments and totals."""
        clients = await self._get_clients(user_id)
        if not clients:
            raise NotFound("Client not found")
        client = clients[0]
        credits = sorted(client.credits, key=lambda c: c.request_date, reverse=True)
        return schemas.ClientProfile(
            client=schemas.User.model_validate(client),
            credits=[credit_schemas.CreditWithPayments.model_validate(c) for c in credits],
            **self._client_totals(client),
        )
