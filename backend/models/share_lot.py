"""ShareLot model - one batch of shares from a single buy."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid
from utils.timestamps import utc_now

LOT_STATUS_ACTIVE = "active"
LOT_STATUS_SOLD = "sold"


class ShareLot(Base):
    """A lot of shares created by a buy transaction.

    Active lots have all sell fields null; sold lots have all of them set.
    ``buy_transaction_id`` is a weak reference: it has no foreign key and
    may point at a transaction that has since been deleted.
    """

    __tablename__ = "share_lots"
    __table_args__ = (
        CheckConstraint("status IN ('active', 'sold')", name="ck_share_lot_status_valid"),
        CheckConstraint("shares > 0", name="ck_share_lot_shares_positive"),
        CheckConstraint("buy_price_per_share > 0", name="ck_share_lot_buy_price_positive"),
        CheckConstraint(
            "(status = 'active' AND sell_transaction_id IS NULL "
            "AND sell_price_per_share IS NULL AND sell_date IS NULL) OR "
            "(status = 'sold' AND sell_transaction_id IS NOT NULL "
            "AND sell_price_per_share IS NOT NULL AND sell_date IS NOT NULL)",
            name="ck_share_lot_sell_fields_match_status",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    stock_id = Column(String(36), ForeignKey("stocks.id"), nullable=False, index=True)
    buy_transaction_id = Column(String(36), nullable=True, index=True)
    shares = Column(Integer, nullable=False)
    buy_price_per_share = Column(Numeric(18, 6), nullable=False)
    buy_date = Column(DateTime, nullable=False)
    status = Column(String(10), nullable=False, default=LOT_STATUS_ACTIVE, index=True)
    sell_transaction_id = Column(
        String(36), ForeignKey("transactions.id"), nullable=True, index=True
    )
    sell_price_per_share = Column(Numeric(18, 6), nullable=True)
    sell_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    stock = relationship("Stock", back_populates="share_lots")
    sell_transaction = relationship(
        "Transaction",
        back_populates="sold_lots",
        foreign_keys=[sell_transaction_id],
    )

    @property
    def is_active(self) -> bool:
        return self.status == LOT_STATUS_ACTIVE

    @property
    def realized_gain(self) -> Decimal | None:
        """(sell price - buy price) * shares, or None while the lot is active."""
        if self.status != LOT_STATUS_SOLD or self.sell_price_per_share is None:
            return None
        return (self.sell_price_per_share - self.buy_price_per_share) * self.shares
