"""Pydantic schemas for places, comments and likes."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from placer.models.comment import Comment
from placer.models.place import CATEGORIES, STATUS_PUBLISHED, STATUSES, Place
from placer.models.user import User
from placer.schemas.common import CamelModel, Pagination
from placer.schemas.user import UserPublic


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def parse_coordinates(value: Any) -> tuple[float, float]:
    """Parse ``[lng, lat]`` given as a list or a JSON string."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ValueError("Invalid coordinates format")
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError("Valid coordinates must be an array of 2 numbers")
    try:
        lng, lat = float(value[0]), float(value[1])
    except (TypeError, ValueError):
        raise ValueError("Valid coordinates must be an array of 2 numbers")
    if not (-180 <= lng <= 180 and -90 <= lat <= 90):
        raise ValueError("Invalid coordinates")
    return lng, lat


def parse_tags(value: Any) -> list[str]:
    """Accept a comma separated string or a list; trims and de-duplicates."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    tags: list[str] = []
    for raw in value:
        tag = str(raw).strip()
        if not tag:
            continue
        if len(tag) > 30:
            raise ValueError("Tag cannot be more than 30 characters")
        if tag not in tags:
            tags.append(tag)
    return tags


class _PlaceFieldValidators(CamelModel):
    """Validators shared by the create and update forms."""

    @field_validator("name", check_fields=False)
    @classmethod
    def _name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Place name is required")
        if len(value) > 100:
            raise ValueError("Place name cannot be more than 100 characters")
        return value

    @field_validator("description", check_fields=False)
    @classmethod
    def _description(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Description is required")
        if len(value) > 2000:
            raise ValueError("Description cannot be more than 2000 characters")
        return value

    @field_validator("address", check_fields=False)
    @classmethod
    def _address(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Address is required")
        return value

    @field_validator("category", check_fields=False)
    @classmethod
    def _category(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        if value not in CATEGORIES:
            raise ValueError(f"Category must be one of: {', '.join(CATEGORIES)}")
        return value

    @field_validator("status", check_fields=False)
    @classmethod
    def _status(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if value not in STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(STATUSES)}")
        return value

    @field_validator("tags", mode="before", check_fields=False)
    @classmethod
    def _tags(cls, value: Any) -> Any:
        return None if value is None else parse_tags(value)

    @field_validator("coordinates", mode="before", check_fields=False)
    @classmethod
    def _coordinates(cls, value: Any) -> Any:
        return None if value is None else parse_coordinates(value)

    @field_validator("rating", "visit_date", mode="before", check_fields=False)
    @classmethod
    def _optional_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class PlaceCreate(_PlaceFieldValidators):
    name: str
    description: str
    category: str = "other"
    tags: list[str] = Field(default_factory=list)
    rating: Optional[int] = Field(None, ge=1, le=5)
    visit_date: Optional[date] = None
    is_anonymous: bool = False
    is_public: bool = True
    status: str = STATUS_PUBLISHED
    address: str
    coordinates: tuple[float, float]


class PlaceUpdate(_PlaceFieldValidators):
    """Partial update: only fields that were sent are applied."""

    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    visit_date: Optional[date] = None
    is_anonymous: Optional[bool] = None
    is_public: Optional[bool] = None
    status: Optional[str] = None
    address: Optional[str] = None
    coordinates: Optional[tuple[float, float]] = None


class CommentCreate(CamelModel):
    content: str
    is_anonymous: bool = False

    @field_validator("content")
    @classmethod
    def content_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment content is required")
        if len(value) > 1000:
            raise ValueError("Comment cannot be more than 1000 characters")
        return value


class AuthorOut(CamelModel):
    id: str
    first_name: str
    last_name: str
    avatar: Optional[str] = None
    is_approved: bool


class LocationOut(CamelModel):
    address: str
    coordinates: tuple[float, float]


class PhotoOut(CamelModel):
    url: str
    storage_id: str
    caption: Optional[str] = None


class CommentOut(CamelModel):
    id: str
    place_id: str
    content: str
    is_anonymous: bool
    author: Optional[AuthorOut] = None
    created_at: datetime

    @classmethod
    def from_model(cls, comment: Comment, viewer: Optional[User]) -> "CommentOut":
        return cls(
            id=comment.id,
            place_id=comment.place_id,
            content=comment.content,
            is_anonymous=comment.is_anonymous,
            author=_visible_author(comment.author, comment.is_anonymous, viewer),
            created_at=comment.created_at,
        )


class PlaceSummary(CamelModel):
    id: str
    name: str


class UserCommentOut(CommentOut):
    place: PlaceSummary


class PlaceOut(CamelModel):
    id: str
    name: str
    description: str
    category: str
    tags: list[str]
    rating: Optional[int] = None
    visit_date: Optional[date] = None
    location: LocationOut
    photos: list[PhotoOut]
    author: Optional[AuthorOut] = None
    is_anonymous: bool
    is_public: bool
    status: str
    is_featured: bool
    views: int
    likes_count: int
    comments_count: int
    is_liked: bool
    distance_km: Optional[float] = None
    comments: Optional[list[CommentOut]] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(
        cls,
        place: Place,
        viewer: Optional[User] = None,
        distance_km: Optional[float] = None,
        include_comments: bool = False,
    ) -> "PlaceOut":
        viewer_id = viewer.id if viewer else None
        return cls(
            id=place.id,
            name=place.name,
            description=place.description,
            category=place.category,
            tags=place.tag_names,
            rating=place.rating,
            visit_date=place.visit_date,
            location=LocationOut(address=place.address, coordinates=(place.longitude, place.latitude)),
            photos=[PhotoOut.model_validate(p) for p in place.photos],
            author=_visible_author(place.author, place.is_anonymous, viewer),
            is_anonymous=place.is_anonymous,
            is_public=place.is_public,
            status=place.status,
            is_featured=place.is_featured,
            views=place.views,
            likes_count=len(place.likes),
            comments_count=len(place.comments),
            is_liked=viewer_id is not None and any(like.user_id == viewer_id for like in place.likes),
            distance_km=round(distance_km, 3) if distance_km is not None else None,
            comments=[CommentOut.from_model(c, viewer) for c in place.comments] if include_comments else None,
            created_at=place.created_at,
            updated_at=place.updated_at,
        )


def _visible_author(author: Optional[User], is_anonymous: bool, viewer: Optional[User]) -> Optional[AuthorOut]:
    """Anonymous content hides its author from everyone but the author and admins."""
    if author is None:
        return None
    if is_anonymous and not (viewer and (viewer.id == author.id or viewer.is_admin)):
        return None
    return AuthorOut.model_validate(author)


class PlaceResponse(CamelModel):
    place: PlaceOut


class PlaceListResponse(CamelModel):
    places: list[PlaceOut]
    pagination: Pagination


class LikeResponse(CamelModel):
    is_liked: bool
    likes_count: int


class CommentResponse(CamelModel):
    comment: CommentOut


class UserCommentListResponse(CamelModel):
    comments: list[UserCommentOut]
    pagination: Pagination


class TagCount(CamelModel):
    name: str
    count: int


class TagListResponse(CamelModel):
    tags: list[TagCount]


class FeaturedResponse(CamelModel):
    is_featured: bool


class PublicProfileResponse(CamelModel):
    user: UserPublic
    recent_places: list[PlaceOut]
