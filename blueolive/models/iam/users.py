"""
User model. Analyses reference users only through their owner key, so there
is no relationship back to the analyses table.
"""

from sqlalchemy import Column, String, Boolean, DateTime, Uuid
import uuid

from blueolive.db.base import Base
from blueolive.utils import utcnow


class User(Base):
    __tablename__ = "users"

    user_id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        unique=True,
        index=True,
        nullable=False,
        default=uuid.uuid4,
    )
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
    last_login = Column(DateTime(timezone=True), nullable=True)
