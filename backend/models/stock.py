"""Stock model - a named instrument tracked by one user."""

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid
from utils.timestamps import utc_now


class Stock(Base):
    """A stock in a user's portfolio.

    Names are trimmed on write and unique per owner (case-sensitive).
    """

    __tablename__ = "stocks"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uix_stock_user_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    user = relationship("User", back_populates="stocks")
    transactions = relationship("Transaction", back_populates="stock")
    share_lots = relationship("ShareLot", back_populates="stock")
