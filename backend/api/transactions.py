"""Transaction journal API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import get_current_user, ledger_http_error, transaction_response_dict
from database import get_db
from models import TRANSACTION_TYPE_BUY, TRANSACTION_TYPE_SELL, User
from schemas.transaction import (
    BuyResponse,
    TransactionCreate,
    TransactionDeleteRequest,
    TransactionDeleteResponse,
    TransactionWithEarningsResponse,
)
from services.exceptions import LedgerError
from services.lot_accounting_service import LotAccountingService
from services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.post("", response_model=BuyResponse, status_code=201)
def create_transaction(
    transaction_data: TransactionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Record a buy and open its share lot."""
    if transaction_data.transaction_type == TRANSACTION_TYPE_SELL:
        raise HTTPException(
            status_code=400,
            detail="Sell transactions must name the lots they sell; use the sell-lots endpoint",
        )
    if transaction_data.transaction_type != TRANSACTION_TYPE_BUY:
        raise HTTPException(status_code=400, detail="Transaction type must be buy or sell")

    try:
        result = LotAccountingService.record_buy(
            db,
            user.id,
            transaction_data.stock_id,
            transaction_data.shares,
            transaction_data.price_per_share,
            transaction_data.transaction_date,
        )
        db.commit()
    except LedgerError as e:
        raise ledger_http_error(db, e)

    db.refresh(result.transaction)
    return {
        "transaction_id": result.transaction.id,
        "lot_id": result.lot.id,
        "transaction": transaction_response_dict(result.transaction),
    }


@router.get("", response_model=list[TransactionWithEarningsResponse])
def list_transactions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List every transaction, newest first, with realized earnings per sell."""
    rows = PortfolioService.get_transactions_with_earnings(db, user.id)
    return [
        {
            **transaction_response_dict(row.transaction),
            "stock_name": row.stock_name,
            "earned_amount": row.earned_amount,
        }
        for row in rows
    ]


@router.delete("", response_model=TransactionDeleteResponse)
def delete_transactions(
    delete_data: TransactionDeleteRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete transactions; lots sold by a deleted sell become active again."""
    try:
        deleted = LotAccountingService.delete_transactions(
            db, user.id, delete_data.transaction_ids
        )
        db.commit()
        return {"deleted_count": deleted}
    except LedgerError as e:
        raise ledger_http_error(db, e)
