"""Stock API endpoints, including per-stock lots and selling."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.helpers import get_current_user, ledger_http_error, transaction_response_dict
from database import get_db
from models import User
from schemas.lot import SellLotsRequest, SellLotsResponse, ShareLotResponse
from schemas.stock import StockCreate, StockResponse, StockUpdate
from schemas.transaction import TransactionResponse
from services.exceptions import LedgerError
from services.lot_accounting_service import LotAccountingService
from services.stock_service import StockService
from services.transaction_journal_service import TransactionJournalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stocks", tags=["stocks"])


@router.post("", response_model=StockResponse, status_code=201)
def create_stock(
    stock_data: StockCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add a stock to the caller's portfolio."""
    try:
        stock = StockService.create_stock(db, user.id, stock_data.stock_name)
        db.commit()
        db.refresh(stock)
        return stock
    except LedgerError as e:
        raise ledger_http_error(db, e)


@router.get("", response_model=list[StockResponse])
def list_stocks(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the caller's stocks, newest first."""
    return StockService.list_stocks(db, user.id)


@router.put("/{stock_id}", response_model=StockResponse)
def rename_stock(
    stock_id: str,
    stock_data: StockUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rename a stock."""
    try:
        stock = StockService.rename_stock(db, user.id, stock_id, stock_data.stock_name)
        db.commit()
        db.refresh(stock)
        return stock
    except LedgerError as e:
        raise ledger_http_error(db, e)


@router.delete("/{stock_id}", status_code=204)
def delete_stock(
    stock_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a stock together with its lots and transactions."""
    try:
        LotAccountingService.delete_stock(db, user.id, stock_id)
        db.commit()
    except LedgerError as e:
        raise ledger_http_error(db, e)


@router.get("/{stock_id}/transactions", response_model=list[TransactionResponse])
def get_stock_transactions(
    stock_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get a stock's transactions, newest first."""
    try:
        StockService.get_owned(db, user.id, stock_id)
    except LedgerError as e:
        raise ledger_http_error(db, e)
    transactions = TransactionJournalService.list_for_stock(db, user.id, stock_id)
    return [transaction_response_dict(t) for t in transactions]


@router.get("/{stock_id}/share-lots", response_model=list[ShareLotResponse])
def get_active_share_lots(
    stock_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get the lots of a stock that are available to sell, oldest first."""
    try:
        return LotAccountingService.get_active_lots(db, user.id, stock_id)
    except LedgerError as e:
        raise ledger_http_error(db, e)


@router.post("/{stock_id}/sell-lots", response_model=SellLotsResponse, status_code=201)
def sell_lots(
    stock_id: str,
    sell_data: SellLotsRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Sell the selected lots of a stock at one price."""
    try:
        result = LotAccountingService.record_sell(
            db,
            user.id,
            stock_id,
            sell_data.lot_ids,
            sell_data.sell_price_per_share,
            sell_data.sell_date,
        )
        db.commit()
    except LedgerError as e:
        raise ledger_http_error(db, e)

    db.refresh(result.transaction)
    return {
        "transaction_id": result.transaction.id,
        "total_shares": result.total_shares,
        "total_amount": result.total_amount,
        "lot_ids": result.lot_ids,
        "transaction": transaction_response_dict(result.transaction),
    }
