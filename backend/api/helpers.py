"""Shared API helpers for route handlers.

Caller resolution and the mapping from ledger errors to HTTP responses.
"""

import logging

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from database import get_db
from models import Transaction, User
from services.exceptions import LedgerError

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


def get_current_user(
    x_user_id: str | None = Header(default=None, alias=USER_HEADER),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the calling user.

    The token-verifying auth layer in front of the API forwards the
    authenticated user id in the ``X-User-Id`` header. Deployments that
    verify tokens in-process override this dependency.

    Raises:
        HTTPException: 401 if the header is missing or names no user.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    user = db.query(User).filter(User.id == x_user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def ledger_http_error(db: Session, exc: LedgerError) -> HTTPException:
    """Roll back the request's work and build the HTTP error for ``exc``.

    Args:
        db: Database session used by the failed operation.
        exc: The ledger error raised by a service.

    Returns:
        HTTPException carrying the error's status code and message.
    """
    db.rollback()
    logger.info("Request rejected (%s): %s", type(exc).__name__, exc.message)
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def transaction_response_dict(transaction: Transaction) -> dict:
    """Build a TransactionResponse-compatible dict from a Transaction."""
    return {
        "id": transaction.id,
        "user_id": transaction.user_id,
        "stock_id": transaction.stock_id,
        "transaction_type": transaction.transaction_type,
        "shares": transaction.shares,
        "price_per_share": transaction.price_per_share,
        "total_amount": transaction.total_amount,
        "transaction_date": transaction.transaction_date,
        "created_at": transaction.created_at,
    }
