"""Portfolio and earnings API endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.helpers import get_current_user
from database import get_db
from models import User
from schemas.portfolio import (
    MonthlyEarningsByStockResponse,
    MonthlyEarningsResponse,
    StockHoldingResponse,
)
from services.portfolio_service import PortfolioService
from utils.query_params import resolve_year

router = APIRouter(prefix="/api", tags=["portfolio"])


@router.get("/portfolio", response_model=list[StockHoldingResponse])
def get_portfolio(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get current shares, cost and realized earnings per stock."""
    holdings = PortfolioService.get_holdings(db, user.id)
    return [StockHoldingResponse.model_validate(h) for h in holdings]


@router.get("/earnings/monthly", response_model=MonthlyEarningsResponse)
def get_monthly_earnings(
    year: int | None = Query(default=None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get realized earnings for each month of a year (default: this year, UTC)."""
    result = PortfolioService.get_monthly_earnings(db, user.id, resolve_year(year))
    return MonthlyEarningsResponse.model_validate(result)


@router.get("/earnings/monthly-by-stock", response_model=MonthlyEarningsByStockResponse)
def get_monthly_earnings_by_stock(
    year: int | None = Query(default=None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get realized earnings for each month of a year, split by stock."""
    result = PortfolioService.get_monthly_earnings_by_stock(
        db, user.id, resolve_year(year)
    )
    return MonthlyEarningsByStockResponse.model_validate(result)
