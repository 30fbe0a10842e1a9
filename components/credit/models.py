"""Credit model for the database."""

import enum

from sqlalchemy import Column, Integer, Date, DateTime, Enum, ForeignKey, Numeric, JSON
from sqlalchemy.orm import relationship

from components.core.database import Base


class CreditStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REPAID = "REPAID"


# REJECTED and REPAID are terminal
ALLOWED_TRANSITIONS = {
    CreditStatus.PENDING: frozenset({CreditStatus.APPROVED, CreditStatus.REJECTED}),
    CreditStatus.APPROVED: frozenset({CreditStatus.REPAID}),
    CreditStatus.REJECTED: frozenset(),
    CreditStatus.REPAID: frozenset(),
}


def can_transition(current: CreditStatus, target: CreditStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class Credit(Base):
    """Credit model representing a loan request and, once approved, the loan itself."""
    __tablename__ = "credits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    supervisor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    # Running total of payments, only ever changed by a conditional UPDATE
    paid_amount = Column(Numeric(14, 2), nullable=False, default=0, server_default="0")
    status = Column(Enum(CreditStatus), nullable=False, default=CreditStatus.PENDING, index=True)
    request_date = Column(DateTime(timezone=True), nullable=False)
    approval_date = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(Date, nullable=True)
    # Lifecycle annotations, one section per stage (see credit.schemas.CreditDetails)
    details = Column("metadata", JSON, nullable=False, default=dict)

    # Relationships
    user = relationship("User", back_populates="credits", foreign_keys=[user_id])
    supervisor = relationship("User", foreign_keys=[supervisor_id])
    payments = relationship("Payment", back_populates="credit", order_by="Payment.date")
