#!/usr/bin/env python
"""Create a ledger user.

Prints the new user's id, which the auth layer forwards as the
``X-User-Id`` header.

Usage:
    python -m scripts.create_user alice
    python -m scripts.create_user alice --if-missing
"""

import argparse
import sys

from sqlalchemy.orm import Session

from database import get_session_local
from logging_config import setup_logging
from models import User


def create_user(db: Session, username: str, if_missing: bool = False) -> User:
    """Create a user, or return the existing one when ``if_missing`` is set.

    Raises ValueError for a blank or already-taken username.
    """
    username = (username or "").strip()
    if not username:
        raise ValueError("Username is required")

    existing = db.query(User).filter_by(username=username).first()
    if existing:
        if if_missing:
            return existing
        raise ValueError(f"User already exists: {username}")

    user = User(username=username)
    db.add(user)
    db.flush()
    return user


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a stock ledger user")
    parser.add_argument("username", help="Unique username")
    parser.add_argument(
        "--if-missing",
        action="store_true",
        help="Print the existing user's id instead of failing when taken",
    )
    args = parser.parse_args(argv)
    setup_logging("WARNING")

    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        user = create_user(db, args.username, if_missing=args.if_missing)
        db.commit()
        print(f"{user.username}: {user.id}")
        return 0
    except ValueError as e:
        db.rollback()
        print(f"Error: {e}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
