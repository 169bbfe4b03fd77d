"""Service for the buy/sell transaction journal.

The journal records what the user sees in their history. It holds no rules
beyond ``total = shares * price`` at creation; keeping transactions and
share lots consistent is the job of ``LotAccountingService``.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from models import TRANSACTION_TYPES, Transaction
from services.exceptions import ValidationError
from services.validation import (
    require_positive_price,
    require_positive_shares,
    require_storable_amount,
)
from utils.timestamps import to_utc_naive

logger = logging.getLogger(__name__)


class TransactionJournalService:
    """Creates and lists journal entries."""

    @staticmethod
    def create(
        db: Session,
        user_id: str,
        stock_id: str,
        transaction_type: str,
        shares: int,
        price_per_share,
        transaction_date: datetime | None = None,
    ) -> Transaction:
        """Append a transaction to the journal.

        Args:
            db: Database session
            user_id: Owner of the transaction
            stock_id: Stock the transaction belongs to (ownership is the
                caller's responsibility)
            transaction_type: "buy" or "sell"
            shares: Positive whole number of shares
            price_per_share: Positive decimal price
            transaction_date: When it happened; defaults to now (UTC)

        Returns:
            The flushed Transaction.
        """
        if transaction_type not in TRANSACTION_TYPES:
            raise ValidationError("Transaction type must be buy or sell")
        shares = require_positive_shares(shares)
        price = require_positive_price(price_per_share)
        total = require_storable_amount(price * shares)

        transaction = Transaction(
            user_id=user_id,
            stock_id=stock_id,
            transaction_type=transaction_type,
            shares=shares,
            price_per_share=price,
            total_amount=total,
            transaction_date=to_utc_naive(transaction_date),
        )
        db.add(transaction)
        db.flush()
        logger.info(
            "Recorded %s transaction %s: %s shares @ %s (stock %s)",
            transaction_type,
            transaction.id,
            shares,
            price,
            stock_id,
        )
        return transaction

    @staticmethod
    def list_for_stock(db: Session, user_id: str, stock_id: str) -> list[Transaction]:
        """Get a stock's transactions, newest first."""
        return (
            db.query(Transaction)
            .filter_by(user_id=user_id, stock_id=stock_id)
            .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
            .all()
        )

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> list[Transaction]:
        """Get every transaction the user owns, newest first."""
        return (
            db.query(Transaction)
            .filter_by(user_id=user_id)
            .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
            .all()
        )

    @staticmethod
    def get_owned(db: Session, user_id: str, transaction_ids: list[str]) -> list[Transaction]:
        """Get the user's transactions among ``transaction_ids``.

        Ids that do not exist or belong to another user are silently left
        out; callers compare counts to detect them.
        """
        if not transaction_ids:
            return []
        return (
            db.query(Transaction)
            .filter(
                Transaction.user_id == user_id,
                Transaction.id.in_(transaction_ids),
            )
            .all()
        )
