"""Transaction model - a buy or sell entry in the journal."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid
from utils.timestamps import utc_now

TRANSACTION_TYPE_BUY = "buy"
TRANSACTION_TYPE_SELL = "sell"
TRANSACTION_TYPES = (TRANSACTION_TYPE_BUY, TRANSACTION_TYPE_SELL)


class Transaction(Base):
    """A buy or sell event for a stock.

    ``total_amount`` is fixed at creation (shares * price) and stored; it is
    only rewritten when the lot it spawned is edited or deleted.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint(
            "transaction_type IN ('buy', 'sell')",
            name="ck_transaction_type_valid",
        ),
        CheckConstraint("shares > 0", name="ck_transaction_shares_positive"),
        CheckConstraint("price_per_share > 0", name="ck_transaction_price_positive"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    stock_id = Column(String(36), ForeignKey("stocks.id"), nullable=False, index=True)
    transaction_type = Column(String(10), nullable=False)
    shares = Column(Integer, nullable=False)
    price_per_share = Column(Numeric(18, 6), nullable=False)
    total_amount = Column(Numeric(18, 6), nullable=False)
    transaction_date = Column(DateTime, nullable=False, default=utc_now, index=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    stock = relationship("Stock", back_populates="transactions")
    sold_lots = relationship(
        "ShareLot",
        back_populates="sell_transaction",
        foreign_keys="ShareLot.sell_transaction_id",
        passive_deletes=True,
    )
