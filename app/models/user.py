"""
SQLAlchemy ORM Models - User accounts
HealthMate API
"""

import uuid
from sqlalchemy import Column, String, Date, DateTime, JSON, Index

from app.database.session import Base
from app.utils.time_utils import utcnow

DEFAULT_PREFERENCES = {"language": "both", "notifications": True, "theme": "light"}


class UserStatus:
    ACTIVE = "active"
    DELETED = "deleted"


class User(Base):
    """Account holder; root of data isolation for every other record."""

    __tablename__ = "users"

    id = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        index=True,
    )

    # Identity
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)

    # Optional profile
    phone = Column(String(32), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)

    preferences = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_PREFERENCES))

    # Lifecycle
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE, index=True)
    deleted_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (Index("ix_users_email", "email", unique=True),)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<User id={self.id} status={self.status}>"
