"""Fund pool and ledger transaction models for the database."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Numeric, func
from sqlalchemy.orm import relationship

from components.core.database import Base

# The pool is a single row with a fixed primary key
FUND_POOL_ID = 1


class TransactionType(str, enum.Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    CREDIT_APPROVAL = "CREDIT_APPROVAL"
    PAYMENT = "PAYMENT"
    REVERSAL = "REVERSAL"


class TransactionStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"


# Sign applied to each transaction type when recomputing the balance
BALANCE_SIGN = {
    TransactionType.DEPOSIT: 1,
    TransactionType.PAYMENT: 1,
    TransactionType.REVERSAL: 1,
    TransactionType.WITHDRAWAL: -1,
    TransactionType.CREDIT_APPROVAL: -1,
}


class FundPool(Base):
    """Lendable capital of the institution."""
    __tablename__ = "fund_pool"

    id = Column(Integer, primary_key=True)
    balance = Column(Numeric(16, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    transactions = relationship("Transaction", back_populates="fund_pool")


class Transaction(Base):
    """Append-only record of a fund pool balance change."""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(Enum(TransactionType), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(String(255), nullable=True)
    status = Column(Enum(TransactionStatus), nullable=False, default=TransactionStatus.COMPLETED)
    date = Column(DateTime(timezone=True), nullable=False)
    fund_pool_id = Column(Integer, ForeignKey("fund_pool.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Back-references only; the ledger outlives deleted credits and payments
    credit_id = Column(Integer, nullable=True, index=True)
    payment_id = Column(Integer, nullable=True, index=True)

    fund_pool = relationship("FundPool", back_populates="transactions")
    user = relationship("User")
