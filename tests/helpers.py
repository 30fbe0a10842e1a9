"""Builders shared by the test modules."""

from datetime import date, timedelta
from decimal import Decimal

from components.core.security import create_access_token
from components.credit import schemas as credit_schemas
from components.user.utils import create_jwt_token_payload_from_user


def future(days: int = 90) -> date:
    return date.today() + timedelta(days=days)


def credit_request(user_id: int, amount="100000", **overrides) -> credit_schemas.CreditCreate:
    """Build a valid credit request for ``user_id``."""
    data = dict(
        user_id=user_id,
        amount=Decimal(str(amount)),
        purpose="Working capital for a tailoring shop",
        duration_months=12,
        expected_repayment_date=future(365),
    )
    data.update(overrides)
    return credit_schemas.CreditCreate(**data)


def approval(**overrides) -> credit_schemas.CreditApprove:
    data = dict(due_date=future(180), interest_rate=5.5)
    data.update(overrides)
    return credit_schemas.CreditApprove(**data)


def auth_headers(user) -> dict:
    token = create_access_token(data=create_jwt_token_payload_from_user(user))
    return {"Authorization": f"Bearer {token}"}
