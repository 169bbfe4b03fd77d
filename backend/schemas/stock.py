"""Pydantic schemas for stocks."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class StockCreate(BaseModel):
    """Schema for adding a stock to the portfolio."""

    stock_name: str


class StockUpdate(BaseModel):
    """Schema for renaming a stock."""

    stock_name: str


class StockResponse(BaseModel):
    """Schema for Stock API response."""

    id: str
    user_id: str
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
