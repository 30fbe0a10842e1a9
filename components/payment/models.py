"""Payment model for the database."""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric, JSON
from sqlalchemy.orm import relationship

from components.core.database import Base


class Payment(Base):
    """Payment model for storing loan repayments."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    credit_id = Column(Integer, ForeignKey("credits.id"), nullable=False, index=True)
    details = Column("metadata", JSON, nullable=False, default=dict)

    # Relationships
    credit = relationship("Credit", back_populates="payments")
