"""Service for managing a user's Stock records."""

import logging

from sqlalchemy.orm import Session

from models import Stock
from services.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _normalize_name(name: str | None) -> str:
    """Trim a stock name, raising if nothing is left."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Stock name is required")
    return name


class StockService:
    """CRUD on the stocks a user tracks. Deletion lives in LotAccountingService."""

    @staticmethod
    def get_owned(db: Session, user_id: str, stock_id: str) -> Stock:
        """Fetch a stock owned by ``user_id`` or raise NotFoundError."""
        stock = db.query(Stock).filter_by(id=stock_id, user_id=user_id).first()
        if not stock:
            raise NotFoundError("Stock not found")
        return stock

    @staticmethod
    def create_stock(db: Session, user_id: str, name: str) -> Stock:
        """Create a stock for the user.

        The name is trimmed and must be unique among the user's stocks
        (case-sensitive).
        """
        name = _normalize_name(name)
        existing = db.query(Stock).filter_by(user_id=user_id, name=name).first()
        if existing:
            raise ConflictError("Stock already exists in your portfolio")

        stock = Stock(user_id=user_id, name=name)
        db.add(stock)
        db.flush()
        logger.info("Created stock %s (%s) for user %s", name, stock.id, user_id)
        return stock

    @staticmethod
    def list_stocks(db: Session, user_id: str) -> list[Stock]:
        """Get the user's stocks, most recently created first."""
        return (
            db.query(Stock)
            .filter_by(user_id=user_id)
            .order_by(Stock.created_at.desc())
            .all()
        )

    @staticmethod
    def rename_stock(db: Session, user_id: str, stock_id: str, name: str) -> Stock:
        """Rename a stock, keeping names unique per user."""
        stock = StockService.get_owned(db, user_id, stock_id)
        name = _normalize_name(name)

        duplicate = (
            db.query(Stock)
            .filter(
                Stock.user_id == user_id,
                Stock.name == name,
                Stock.id != stock_id,
            )
            .first()
        )
        if duplicate:
            raise ConflictError("Stock name already exists")

        old_name = stock.name
        stock.name = name
        db.flush()
        logger.info("Renamed stock %s: %s -> %s", stock_id, old_name, name)
        return stock
