"""Read-only portfolio and earnings calculations.

Everything here is derived from share lots on every call; nothing is cached
and no stored balance is trusted. Month and year buckets come from the
stored UTC timestamps, extracted in Python so every database engine buckets
the same way.
"""

import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from models import LOT_STATUS_ACTIVE, LOT_STATUS_SOLD, TRANSACTION_TYPE_SELL, ShareLot, Stock, Transaction

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
MONTH_NAMES = list(calendar.month_name)[1:]
CENTS = Decimal("0.01")


@dataclass
class StockHolding:
    """Current position and realized earnings for one stock.

    ``avg_buy_price`` is rounded half-up to cents for display; the other
    amounts are exact sums of stored values.
    """

    stock_id: str
    stock_name: str
    created_at: datetime
    current_shares: int
    total_invested: Decimal
    avg_buy_price: Decimal
    actual_earned: Decimal


@dataclass
class MonthEarnings:
    """Realized earnings for one calendar month."""

    month: str
    month_number: int
    earnings: Decimal = ZERO
    count: int = 0


@dataclass
class MonthlyEarnings:
    """Twelve month buckets for one year."""

    year: int
    months: list[MonthEarnings]
    total: Decimal


@dataclass
class MonthStockEarnings:
    """One month of realized earnings split by stock name."""

    month: str
    month_number: int
    per_stock: dict[str, Decimal] = field(default_factory=dict)
    total: Decimal = ZERO
    count: int = 0


@dataclass
class MonthlyEarningsByStock:
    """Twelve month buckets for one year, cross-tabulated by stock."""

    year: int
    stocks: list[str]
    months: list[MonthStockEarnings]
    total: Decimal


@dataclass
class TransactionWithEarnings:
    """A journal entry annotated with what it realized."""

    transaction: Transaction
    stock_name: str
    earned_amount: Decimal


class PortfolioService:
    """Derives holdings and realized earnings from share lots."""

    @staticmethod
    def get_holdings(db: Session, user_id: str) -> list[StockHolding]:
        """Get per-stock holdings, newest stock first.

        avg_buy_price is 0 for a stock with no active lots and is rounded
        to cents otherwise. actual_earned only counts sold lots that carry
        a sell date.
        """
        stocks = (
            db.query(Stock)
            .filter_by(user_id=user_id)
            .order_by(Stock.created_at.desc())
            .all()
        )
        lots_by_stock: dict[str, list[ShareLot]] = defaultdict(list)
        for lot in db.query(ShareLot).filter_by(user_id=user_id).all():
            lots_by_stock[lot.stock_id].append(lot)

        holdings = []
        for stock in stocks:
            lots = lots_by_stock.get(stock.id, [])
            active = [lot for lot in lots if lot.status == LOT_STATUS_ACTIVE]
            current_shares = sum(lot.shares for lot in active)
            total_invested = sum(
                (lot.buy_price_per_share * lot.shares for lot in active), ZERO
            )
            avg_buy_price = ZERO
            if current_shares > 0:
                avg_buy_price = (total_invested / current_shares).quantize(
                    CENTS, rounding=ROUND_HALF_UP
                )
            actual_earned = sum(
                (
                    lot.realized_gain
                    for lot in lots
                    if lot.status == LOT_STATUS_SOLD and lot.sell_date is not None
                ),
                ZERO,
            )
            holdings.append(
                StockHolding(
                    stock_id=stock.id,
                    stock_name=stock.name,
                    created_at=stock.created_at,
                    current_shares=current_shares,
                    total_invested=total_invested,
                    avg_buy_price=avg_buy_price,
                    actual_earned=actual_earned,
                )
            )
        return holdings

    @staticmethod
    def get_monthly_earnings(db: Session, user_id: str, year: int) -> MonthlyEarnings:
        """Get realized earnings for each month of ``year``.

        Args:
            db: Database session
            user_id: Owner of the lots
            year: Calendar year (UTC) of the sell date

        Returns:
            MonthlyEarnings with all 12 months present, zero-filled.
        """
        months = [
            MonthEarnings(month=name, month_number=index)
            for index, name in enumerate(MONTH_NAMES, start=1)
        ]
        for lot in PortfolioService._sold_lots_in_year(db, user_id, year):
            bucket = months[lot.sell_date.month - 1]
            bucket.earnings += lot.realized_gain
            bucket.count += 1

        total = sum((m.earnings for m in months), ZERO)
        return MonthlyEarnings(year=year, months=months, total=total)

    @staticmethod
    def get_monthly_earnings_by_stock(
        db: Session, user_id: str, year: int
    ) -> MonthlyEarningsByStock:
        """Get realized earnings per month of ``year``, split by stock name.

        Only stocks with a sale during the year are listed. Within each
        month every listed stock has an entry, zero when it had no sale.
        """
        rows = (
            db.query(ShareLot, Stock.name)
            .join(Stock, ShareLot.stock_id == Stock.id)
            .filter(
                ShareLot.user_id == user_id,
                ShareLot.status == LOT_STATUS_SOLD,
                ShareLot.sell_date.isnot(None),
            )
            .all()
        )
        in_year = [(lot, name) for lot, name in rows if lot.sell_date.year == year]
        stock_names = sorted({name for _, name in in_year})

        months = [
            MonthStockEarnings(
                month=month_name,
                month_number=index,
                per_stock={name: ZERO for name in stock_names},
            )
            for index, month_name in enumerate(MONTH_NAMES, start=1)
        ]
        for lot, name in in_year:
            bucket = months[lot.sell_date.month - 1]
            gain = lot.realized_gain
            bucket.per_stock[name] += gain
            bucket.total += gain
            bucket.count += 1

        total = sum((m.total for m in months), ZERO)
        return MonthlyEarningsByStock(
            year=year, stocks=stock_names, months=months, total=total
        )

    @staticmethod
    def get_transactions_with_earnings(
        db: Session, user_id: str
    ) -> list[TransactionWithEarnings]:
        """List every transaction newest first with its realized earnings.

        Buys earn 0. A sell earns the summed realized gain of the lots that
        point at it, recomputed here rather than stored.
        """
        rows = (
            db.query(Transaction, Stock.name)
            .join(Stock, Transaction.stock_id == Stock.id)
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
            .all()
        )

        earned_by_sell: dict[str, Decimal] = defaultdict(lambda: ZERO)
        sold_lots = (
            db.query(ShareLot)
            .filter(
                ShareLot.user_id == user_id,
                ShareLot.status == LOT_STATUS_SOLD,
                ShareLot.sell_transaction_id.isnot(None),
            )
            .all()
        )
        for lot in sold_lots:
            earned_by_sell[lot.sell_transaction_id] += lot.realized_gain

        result = []
        for transaction, stock_name in rows:
            earned = ZERO
            if transaction.transaction_type == TRANSACTION_TYPE_SELL:
                earned = earned_by_sell.get(transaction.id, ZERO)
            result.append(
                TransactionWithEarnings(
                    transaction=transaction,
                    stock_name=stock_name,
                    earned_amount=earned,
                )
            )
        return result

    @staticmethod
    def _sold_lots_in_year(db: Session, user_id: str, year: int) -> list[ShareLot]:
        lots = (
            db.query(ShareLot)
            .filter(
                ShareLot.user_id == user_id,
                ShareLot.status == LOT_STATUS_SOLD,
                ShareLot.sell_date.isnot(None),
            )
            .all()
        )
        return [lot for lot in lots if lot.sell_date.year == year]
