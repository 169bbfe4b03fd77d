"""SQLAlchemy ORM models."""

from .share_lot import LOT_STATUS_ACTIVE, LOT_STATUS_SOLD, ShareLot
from .stock import Stock
from .transaction import TRANSACTION_TYPE_BUY, TRANSACTION_TYPE_SELL, TRANSACTION_TYPES, Transaction
from .user import User
from .utils import generate_uuid

__all__ = [
    "LOT_STATUS_ACTIVE",
    "LOT_STATUS_SOLD",
    "ShareLot",
    "Stock",
    "TRANSACTION_TYPE_BUY",
    "TRANSACTION_TYPE_SELL",
    "TRANSACTION_TYPES",
    "Transaction",
    "User",
    "generate_uuid",
]
