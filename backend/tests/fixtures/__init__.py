"""Test fixtures and sample data."""
import pytest
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Stock, User
from services.lot_accounting_service import BuyResult, LotAccountingService


def create_stock(db: Session, user: User, name: str) -> Stock:
    """Create and commit a stock owned by ``user``.

    This is a helper function (not a fixture) for tests that need more
    than the default ``stock`` fixture.
    """
    stock = Stock(user_id=user.id, name=name)
    db.add(stock)
    db.commit()
    db.refresh(stock)
    return stock


def buy(
    db: Session,
    stock: Stock,
    shares: int,
    price: str,
    buy_date: datetime | None = None,
) -> BuyResult:
    """Record a committed buy through the lot accounting service.

    Args:
        db: Database session
        stock: Stock to buy (its owner is the buyer)
        shares: Number of shares
        price: Price per share as a decimal string, e.g. "100.50"
        buy_date: Optional buy date (defaults to now)
    """
    result = LotAccountingService.record_buy(
        db, stock.user_id, stock.id, shares, Decimal(price), buy_date
    )
    db.commit()
    return result


@pytest.fixture
def user(db: Session) -> User:
    """Create the calling test user."""
    u = User(username="alice")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def other_user(db: Session) -> User:
    """Create a second user whose data must stay invisible to ``user``."""
    u = User(username="bob")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def stock(db: Session, user: User) -> Stock:
    """Create a stock owned by the test user."""
    return create_stock(db, user, "ACME")
