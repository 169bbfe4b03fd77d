"""Pydantic schemas for journal transactions."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class TransactionCreate(BaseModel):
    """Schema for recording a buy.

    Sells go through ``POST /api/stocks/{stock_id}/sell-lots`` so that the
    lots they consume are always named.
    """

    stock_id: str
    transaction_type: str = "buy"
    shares: int
    price_per_share: Decimal
    transaction_date: datetime | None = None


class TransactionResponse(BaseModel):
    """Schema for Transaction API response."""

    id: str
    user_id: str
    stock_id: str
    transaction_type: str
    shares: int
    price_per_share: Decimal
    total_amount: Decimal
    transaction_date: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionWithEarningsResponse(TransactionResponse):
    """A transaction with its stock name and realized earnings (0 for buys)."""

    stock_name: str
    earned_amount: Decimal


class BuyResponse(BaseModel):
    """Result of recording a buy: the journal entry and the lot it opened."""

    transaction_id: str
    lot_id: str
    transaction: TransactionResponse


class TransactionDeleteRequest(BaseModel):
    """Schema for deleting a batch of transactions."""

    transaction_ids: list[str]


class TransactionDeleteResponse(BaseModel):
    """Number of transactions removed."""

    deleted_count: int
