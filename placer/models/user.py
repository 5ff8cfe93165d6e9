"""User model."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from placer.db.base import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"


def _uuid() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Account record. ``password_hash`` never leaves the service layer."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False, unique=True, index=True)  # 항상 소문자로 저장
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False, default="")
    bio = Column(Text)
    location = Column(String(100))
    avatar = Column(Text)
    avatar_storage_id = Column(String(255))
    role = Column(String(20), nullable=False, default=ROLE_USER)
    is_approved = Column(Boolean, nullable=False, default=False, index=True)
    places_count = Column(Integer, nullable=False, default=0)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    last_login_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    places = relationship("Place", back_populates="author", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
