"""API route handlers."""
from . import portfolio, share_lots, stocks, transactions, users

__all__ = ["portfolio", "share_lots", "stocks", "transactions", "users"]
