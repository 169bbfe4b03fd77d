"""Pydantic schemas for holdings and realized earnings."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class StockHoldingResponse(BaseModel):
    """Current position and realized earnings for one stock."""

    stock_id: str
    stock_name: str
    created_at: datetime
    current_shares: int
    avg_buy_price: Decimal
    total_invested: Decimal
    actual_earned: Decimal

    model_config = ConfigDict(from_attributes=True)


class MonthEarningsResponse(BaseModel):
    month: str
    month_number: int
    earnings: Decimal
    count: int

    model_config = ConfigDict(from_attributes=True)


class MonthlyEarningsResponse(BaseModel):
    """Realized earnings for each month of a year."""

    year: int
    months: list[MonthEarningsResponse]
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class MonthStockEarningsResponse(BaseModel):
    month: str
    month_number: int
    per_stock: dict[str, Decimal]
    total: Decimal
    count: int

    model_config = ConfigDict(from_attributes=True)


class MonthlyEarningsByStockResponse(BaseModel):
    """Realized earnings for each month of a year, split by stock name."""

    year: int
    stocks: list[str]
    months: list[MonthStockEarningsResponse]
    total: Decimal

    model_config = ConfigDict(from_attributes=True)
