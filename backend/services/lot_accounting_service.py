"""Service for share-lot accounting.

Turns buys and sells into individually tracked share lots and keeps the
journal in step with them:

- a buy creates one transaction and exactly one active lot
- a sell consumes user-chosen active lots and records one sell transaction
  covering all of them
- editing or deleting an active lot re-syncs the buy transaction it came from
- deleting sell transactions puts their lots back to active

Every method only flushes. The caller commits once the whole operation has
succeeded and rolls back on any exception, which makes each method one
atomic unit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from models import (
    LOT_STATUS_ACTIVE,
    LOT_STATUS_SOLD,
    TRANSACTION_TYPE_BUY,
    TRANSACTION_TYPE_SELL,
    ShareLot,
    Transaction,
)
from services.exceptions import ConflictError, NotFoundError, ValidationError
from services.stock_service import StockService
from services.transaction_journal_service import TransactionJournalService
from services.validation import (
    require_ids,
    require_positive_price,
    require_positive_shares,
    require_storable_amount,
)
from utils.timestamps import to_utc_naive, utc_now

logger = logging.getLogger(__name__)

LOTS_UNAVAILABLE_MESSAGE = "Some selected lots are not available for sale"


@dataclass
class BuyResult:
    """The journal entry and lot created by a buy."""

    transaction: Transaction
    lot: ShareLot


@dataclass
class SellResult:
    """The sell transaction and what it consumed."""

    transaction: Transaction
    total_shares: int
    total_amount: Decimal
    lot_ids: list[str] = field(default_factory=list)


@dataclass
class DeletedLot:
    """What a lot deletion removed."""

    lot_id: str
    stock_id: str
    deleted_shares: int
    transaction_deleted: bool


class LotAccountingService:
    """Owns the rules linking share lots to buy and sell transactions."""

    # --- Buy / sell ---

    @staticmethod
    def record_buy(
        db: Session,
        user_id: str,
        stock_id: str,
        shares: int,
        price_per_share,
        buy_date: datetime | None = None,
    ) -> BuyResult:
        """Record a buy and open a lot for it.

        Raises:
            ValidationError: shares or price are not positive
            NotFoundError: the stock does not belong to the user
        """
        shares = require_positive_shares(shares)
        price = require_positive_price(price_per_share)
        StockService.get_owned(db, user_id, stock_id)
        buy_date = to_utc_naive(buy_date)

        transaction = TransactionJournalService.create(
            db, user_id, stock_id, TRANSACTION_TYPE_BUY, shares, price, buy_date
        )
        lot = ShareLot(
            user_id=user_id,
            stock_id=stock_id,
            buy_transaction_id=transaction.id,
            shares=shares,
            buy_price_per_share=price,
            buy_date=buy_date,
            status=LOT_STATUS_ACTIVE,
        )
        db.add(lot)
        db.flush()
        logger.info(
            "Opened lot %s: %s shares @ %s from transaction %s",
            lot.id,
            shares,
            price,
            transaction.id,
        )
        return BuyResult(transaction=transaction, lot=lot)

    @staticmethod
    def record_sell(
        db: Session,
        user_id: str,
        stock_id: str,
        lot_ids: list[str],
        sell_price_per_share,
        sell_date: datetime | None = None,
    ) -> SellResult:
        """Sell the chosen active lots at one price.

        All lots share the sell price and date; realized gain still differs
        per lot because buy prices differ. The lots are fetched with a row
        lock and then flipped to sold with a compare-and-set on
        ``status = 'active'``. If another sell took any of them first the
        whole call fails with ConflictError and the caller rolls back.

        Raises:
            ValidationError: no lots selected, or price not positive
            NotFoundError: the stock does not belong to the user
            ConflictError: a selected lot is missing, sold, or for another stock
        """
        lot_ids = require_ids(lot_ids, "lot to sell")
        price = require_positive_price(sell_price_per_share, "Sell price")
        StockService.get_owned(db, user_id, stock_id)
        sell_date = to_utc_naive(sell_date)

        lots = LotAccountingService._fetch_sellable_lots(db, user_id, stock_id, lot_ids)
        if len(lots) != len(lot_ids):
            logger.warning(
                "Sell rejected for stock %s: %d of %d lots available",
                stock_id,
                len(lots),
                len(lot_ids),
            )
            raise ConflictError(LOTS_UNAVAILABLE_MESSAGE)

        total_shares = sum(lot.shares for lot in lots)
        transaction = TransactionJournalService.create(
            db, user_id, stock_id, TRANSACTION_TYPE_SELL, total_shares, price, sell_date
        )

        result = db.execute(
            update(ShareLot)
            .where(
                ShareLot.id.in_(lot_ids),
                ShareLot.user_id == user_id,
                ShareLot.stock_id == stock_id,
                ShareLot.status == LOT_STATUS_ACTIVE,
            )
            .values(
                status=LOT_STATUS_SOLD,
                sell_transaction_id=transaction.id,
                sell_price_per_share=price,
                sell_date=sell_date,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != len(lot_ids):
            logger.warning(
                "Sell lost a race for stock %s: %d of %d lots still active",
                stock_id,
                result.rowcount,
                len(lot_ids),
            )
            raise ConflictError(LOTS_UNAVAILABLE_MESSAGE)

        for lot in lots:
            db.refresh(lot)
        logger.info(
            "Sold %d lots (%s shares @ %s) in transaction %s",
            len(lot_ids),
            total_shares,
            price,
            transaction.id,
        )
        return SellResult(
            transaction=transaction,
            total_shares=total_shares,
            total_amount=transaction.total_amount,
            lot_ids=lot_ids,
        )

    @staticmethod
    def _fetch_sellable_lots(
        db: Session, user_id: str, stock_id: str, lot_ids: list[str]
    ) -> list[ShareLot]:
        """Lock and return the requested lots that are still active for this stock."""
        return (
            db.query(ShareLot)
            .filter(
                ShareLot.id.in_(lot_ids),
                ShareLot.user_id == user_id,
                ShareLot.stock_id == stock_id,
                ShareLot.status == LOT_STATUS_ACTIVE,
            )
            .with_for_update()
            .all()
        )

    # --- Lot edits ---

    @staticmethod
    def edit_lot(
        db: Session,
        user_id: str,
        lot_id: str,
        buy_date: datetime | None,
        buy_price_per_share,
        shares: int,
    ) -> ShareLot:
        """Overwrite an active lot and re-sync its buy transaction.

        The buy transaction gets the same date, price and shares, and its
        total is recomputed as shares * price. A lot whose buy transaction
        was deleted is edited on its own. The lot row is overwritten with a
        compare-and-set on ``status = 'active'`` so a lot sold by a
        concurrent request is never edited.

        Raises:
            ValidationError: missing date, non-positive price or shares
            NotFoundError: no such lot for this user
            ConflictError: the lot has been sold
        """
        if buy_date is None:
            raise ValidationError("Valid buy date, price, and shares are required")
        price = require_positive_price(buy_price_per_share)
        shares = require_positive_shares(shares)
        total = require_storable_amount(price * shares)
        buy_date = to_utc_naive(buy_date)

        lot = LotAccountingService._get_active_lot(db, user_id, lot_id, "edited")
        result = db.execute(
            update(ShareLot)
            .where(
                ShareLot.id == lot_id,
                ShareLot.user_id == user_id,
                ShareLot.status == LOT_STATUS_ACTIVE,
            )
            .values(
                buy_date=buy_date,
                buy_price_per_share=price,
                shares=shares,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("Edit of lot %s lost a race with a sell", lot_id)
            raise ConflictError("Sold share lots cannot be edited")
        db.refresh(lot)

        transaction = LotAccountingService._get_buy_transaction(db, lot)
        if transaction is not None:
            transaction.transaction_date = buy_date
            transaction.price_per_share = price
            transaction.shares = shares
            transaction.total_amount = total
        else:
            logger.info("Lot %s has no buy transaction left to re-sync", lot_id)

        db.flush()
        logger.info("Updated lot %s: %s shares @ %s", lot_id, shares, price)
        return lot

    @staticmethod
    def delete_lot(db: Session, user_id: str, lot_id: str) -> DeletedLot:
        """Delete an active lot and shrink the buy transaction behind it.

        The transaction loses the lot's shares and ``shares * price`` from
        its total, using the transaction's own stored price rather than the
        lot's (the two can differ after edits). A transaction left with no
        shares is deleted. Like a sell, the delete only matches the lot
        while it is still active.

        Raises:
            NotFoundError: no such lot for this user
            ConflictError: the lot has been sold
        """
        lot = LotAccountingService._get_active_lot(db, user_id, lot_id, "deleted")
        deleted_shares = lot.shares
        stock_id = lot.stock_id
        transaction = LotAccountingService._get_buy_transaction(db, lot)

        result = db.execute(
            delete(ShareLot)
            .where(
                ShareLot.id == lot_id,
                ShareLot.user_id == user_id,
                ShareLot.status == LOT_STATUS_ACTIVE,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("Delete of lot %s lost a race with a sell", lot_id)
            raise ConflictError("Sold share lots cannot be deleted")
        db.expunge(lot)

        transaction_deleted = False
        if transaction is not None:
            remaining = transaction.shares - deleted_shares
            if remaining <= 0:
                db.delete(transaction)
                transaction_deleted = True
                logger.info("Deleted emptied buy transaction %s", transaction.id)
            else:
                transaction.shares = remaining
                transaction.total_amount -= deleted_shares * transaction.price_per_share
            db.flush()

        logger.info("Deleted lot %s (%s shares of stock %s)", lot_id, deleted_shares, stock_id)
        return DeletedLot(
            lot_id=lot_id,
            stock_id=stock_id,
            deleted_shares=deleted_shares,
            transaction_deleted=transaction_deleted,
        )

    # --- Transaction / stock deletion ---

    @staticmethod
    def delete_transactions(db: Session, user_id: str, transaction_ids: list[str]) -> int:
        """Delete transactions, un-selling the lots of any sell among them.

        Either every requested id belongs to the user or nothing is deleted.
        Deleting a buy transaction leaves its lot in place; the lot keeps
        the now-dangling ``buy_transaction_id``.

        Returns:
            Number of transactions deleted.

        Raises:
            ValidationError: empty id set, or an id is unknown/not owned
        """
        transaction_ids = require_ids(transaction_ids, "transaction to delete")
        transactions = TransactionJournalService.get_owned(db, user_id, transaction_ids)
        if len(transactions) != len(transaction_ids):
            raise ValidationError("Some transactions not found or not accessible")

        sell_ids = [
            t.id for t in transactions if t.transaction_type == TRANSACTION_TYPE_SELL
        ]
        reverted = 0
        if sell_ids:
            lots = (
                db.query(ShareLot)
                .filter(ShareLot.sell_transaction_id.in_(sell_ids))
                .all()
            )
            for lot in lots:
                lot.status = LOT_STATUS_ACTIVE
                lot.sell_transaction_id = None
                lot.sell_price_per_share = None
                lot.sell_date = None
            reverted = len(lots)
            db.flush()

        for transaction in transactions:
            db.delete(transaction)
        db.flush()

        logger.info(
            "Deleted %d transactions for user %s (%d lots returned to active)",
            len(transactions),
            user_id,
            reverted,
        )
        return len(transactions)

    @staticmethod
    def delete_stock(db: Session, user_id: str, stock_id: str) -> None:
        """Delete a stock with all of its lots and transactions.

        Raises:
            NotFoundError: the stock does not belong to the user
        """
        stock = StockService.get_owned(db, user_id, stock_id)

        # Lots reference transactions (sell side), transactions reference the stock
        lots = db.query(ShareLot).filter_by(stock_id=stock_id).all()
        for lot in lots:
            db.delete(lot)
        db.flush()

        transactions = db.query(Transaction).filter_by(stock_id=stock_id).all()
        for transaction in transactions:
            db.delete(transaction)
        db.flush()

        db.delete(stock)
        db.flush()
        logger.info(
            "Deleted stock %s with %d lots and %d transactions",
            stock_id,
            len(lots),
            len(transactions),
        )

    # --- Queries ---

    @staticmethod
    def get_active_lots(db: Session, user_id: str, stock_id: str) -> list[ShareLot]:
        """Get the lots of a stock that can be sold, oldest buy first."""
        StockService.get_owned(db, user_id, stock_id)
        return (
            db.query(ShareLot)
            .filter_by(user_id=user_id, stock_id=stock_id, status=LOT_STATUS_ACTIVE)
            .order_by(ShareLot.buy_date.asc(), ShareLot.created_at.asc())
            .all()
        )

    @staticmethod
    def _get_active_lot(db: Session, user_id: str, lot_id: str, action: str) -> ShareLot:
        """Lock and return the user's lot, raising unless it is still active."""
        lot = (
            db.query(ShareLot)
            .filter_by(id=lot_id, user_id=user_id)
            .with_for_update()
            .first()
        )
        if not lot:
            raise NotFoundError("Share lot not found")
        if lot.status != LOT_STATUS_ACTIVE:
            raise ConflictError(f"Sold share lots cannot be {action}")
        return lot

    @staticmethod
    def _get_buy_transaction(db: Session, lot: ShareLot) -> Transaction | None:
        """Resolve the lot's weak reference to its buy transaction, if it still exists."""
        if lot.buy_transaction_id is None:
            return None
        return (
            db.query(Transaction)
            .filter_by(id=lot.buy_transaction_id, user_id=lot.user_id)
            .first()
        )
