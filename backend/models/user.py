"""User model - owner of every stock, transaction and lot."""

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid
from utils.timestamps import utc_now


class User(Base):
    """A ledger owner.

    Credentials live with the external auth collaborator; this table only
    anchors ownership.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    username = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    stocks = relationship("Stock", back_populates="user")
