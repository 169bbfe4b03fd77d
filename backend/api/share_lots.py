"""Share lot API endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.helpers import get_current_user, ledger_http_error
from database import get_db
from models import User
from schemas.lot import DeletedLotResponse, ShareLotResponse, ShareLotUpdate
from services.exceptions import LedgerError
from services.lot_accounting_service import LotAccountingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/share-lots", tags=["share-lots"])


@router.put("/{lot_id}", response_model=ShareLotResponse)
def update_share_lot(
    lot_id: str,
    lot_data: ShareLotUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit an active lot; its buy transaction is updated to match."""
    try:
        lot = LotAccountingService.edit_lot(
            db,
            user.id,
            lot_id,
            lot_data.buy_date,
            lot_data.buy_price_per_share,
            lot_data.shares,
        )
        db.commit()
        db.refresh(lot)
        return lot
    except LedgerError as e:
        raise ledger_http_error(db, e)


@router.delete("/{lot_id}", response_model=DeletedLotResponse)
def delete_share_lot(
    lot_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete an active lot and shrink (or remove) its buy transaction."""
    try:
        deleted = LotAccountingService.delete_lot(db, user.id, lot_id)
        db.commit()
    except LedgerError as e:
        raise ledger_http_error(db, e)
    return {
        "lot_id": deleted.lot_id,
        "stock_id": deleted.stock_id,
        "deleted_shares": deleted.deleted_shares,
        "transaction_deleted": deleted.transaction_deleted,
    }
