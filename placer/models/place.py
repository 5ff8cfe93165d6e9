"""Place model and its child rows (tags, photos, likes, comments)."""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from placer.db.base import Base
from placer.models.user import _now, _uuid

CATEGORIES = (
    "restaurant",
    "attraction",
    "outdoor",
    "shopping",
    "entertainment",
    "accommodation",
    "transport",
    "services",
    "other",
)

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"
STATUS_ARCHIVED = "archived"
STATUSES = (STATUS_DRAFT, STATUS_PUBLISHED, STATUS_ARCHIVED)


class Place(Base):
    """A shared place with a geographic point."""

    __tablename__ = "places"

    id = Column(String(36), primary_key=True, default=_uuid)
    author_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(30), nullable=False, default="other", index=True)
    rating = Column(Integer)
    visit_date = Column(Date)
    address = Column(Text, nullable=False)
    latitude = Column(Float, nullable=False, index=True)
    longitude = Column(Float, nullable=False, index=True)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    is_public = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default=STATUS_PUBLISHED)
    is_featured = Column(Boolean, nullable=False, default=False)
    views = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    author = relationship("User", back_populates="places")
    tags = relationship(
        "PlaceTag", cascade="all, delete-orphan", passive_deletes=True, order_by="PlaceTag.position"
    )
    photos = relationship(
        "PlacePhoto", cascade="all, delete-orphan", passive_deletes=True, order_by="PlacePhoto.position"
    )
    likes = relationship("PlaceLike", cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship(
        "Comment",
        back_populates="place",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Comment.created_at",
    )

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags]


class PlaceTag(Base):
    __tablename__ = "place_tags"

    place_id = Column(String(36), ForeignKey("places.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(30), primary_key=True, index=True)
    position = Column(Integer, nullable=False, default=0)


class PlacePhoto(Base):
    """Externally stored photo; ``storage_id`` is the key used for deletion."""

    __tablename__ = "place_photos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    place_id = Column(String(36), ForeignKey("places.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    url = Column(Text, nullable=False)
    storage_id = Column(String(255), nullable=False)
    caption = Column(String(200))


class PlaceLike(Base):
    """One row per (place, user); the composite key rules out duplicate likes."""

    __tablename__ = "place_likes"

    place_id = Column(String(36), ForeignKey("places.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
