"""Pydantic schemas for share lots."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from schemas.transaction import TransactionResponse


class ShareLotResponse(BaseModel):
    """Schema for ShareLot API response."""

    id: str
    stock_id: str
    buy_transaction_id: str | None = None
    shares: int
    buy_price_per_share: Decimal
    buy_date: datetime
    status: str
    sell_transaction_id: str | None = None
    sell_price_per_share: Decimal | None = None
    sell_date: datetime | None = None
    created_at: datetime
    updated_at: datetime

    # Computed on the model, None while the lot is active
    realized_gain: Decimal | None = None

    model_config = ConfigDict(from_attributes=True)


class ShareLotUpdate(BaseModel):
    """Schema for editing an active lot.

    All three fields are required; the lot's buy transaction is rewritten
    to match.
    """

    buy_date: datetime | None = None
    buy_price_per_share: Decimal
    shares: int


class SellLotsRequest(BaseModel):
    """Schema for selling specific lots of one stock."""

    lot_ids: list[str]
    sell_price_per_share: Decimal
    sell_date: datetime | None = None


class SellLotsResponse(BaseModel):
    """Result of a sell: one transaction covering every sold lot."""

    transaction_id: str
    total_shares: int
    total_amount: Decimal
    lot_ids: list[str]
    transaction: TransactionResponse


class DeletedLotResponse(BaseModel):
    """What a lot deletion removed."""

    lot_id: str
    stock_id: str
    deleted_shares: int
    transaction_deleted: bool
