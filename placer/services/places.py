"""Place mutations: create, update, delete, likes, comments, tags."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from placer.core.errors import NotFound, PermissionDenied
from placer.models.comment import Comment
from placer.models.place import STATUS_PUBLISHED, Place, PlaceLike, PlacePhoto, PlaceTag
from placer.models.user import User
from placer.schemas.place import PlaceCreate, PlaceUpdate
from placer.services.approval import ensure_can_create_content
from placer.utils.storage_manager import StoredPhoto

logger = logging.getLogger(__name__)


def _load_place(db: Session, place_id: str) -> Place:
    stmt = (
        select(Place)
        .options(
            selectinload(Place.author),
            selectinload(Place.tags),
            selectinload(Place.photos),
            selectinload(Place.likes),
            selectinload(Place.comments).selectinload(Comment.author),
        )
        .where(Place.id == place_id)
    )
    place = db.execute(stmt).scalar_one_or_none()
    if place is None:
        raise NotFound("Place not found")
    return place


def _can_manage(place: Place, user: User) -> bool:
    return place.author_id == user.id or user.is_admin


def is_visible_to(place: Place, viewer: Optional[User]) -> bool:
    if place.is_public and place.status == STATUS_PUBLISHED:
        return True
    return viewer is not None and _can_manage(place, viewer)


def get_place(db: Session, place_id: str, viewer: Optional[User]) -> Place:
    """Fetch a place for its detail page and count the view atomically."""
    place = _load_place(db, place_id)
    if not is_visible_to(place, viewer):
        raise NotFound("Place not found")
    db.execute(update(Place).where(Place.id == place.id).values(views=Place.views + 1))
    db.commit()
    db.refresh(place, attribute_names=["views"])
    return place


def _set_tags(place: Place, tags: list[str]) -> None:
    place.tags = [PlaceTag(name=name, position=i) for i, name in enumerate(tags)]


def create_place(
    db: Session,
    author: User,
    data: PlaceCreate,
    photos: list[StoredPhoto],
    captions: Optional[list[Optional[str]]] = None,
) -> Place:
    """Insert a place and bump the author's counter in one transaction."""
    ensure_can_create_content(author)
    lng, lat = data.coordinates
    place = Place(
        author_id=author.id,
        name=data.name,
        description=data.description,
        category=data.category,
        rating=data.rating,
        visit_date=data.visit_date,
        address=data.address,
        latitude=lat,
        longitude=lng,
        is_anonymous=data.is_anonymous,
        is_public=data.is_public,
        status=data.status,
    )
    _set_tags(place, data.tags)
    place.photos = _photo_rows(photos, captions, start=0)
    try:
        db.add(place)
        db.flush()
        db.execute(update(User).where(User.id == author.id).values(places_count=User.places_count + 1))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("place %s created by %s", place.id, author.id)
    return _load_place(db, place.id)


def _photo_rows(photos: list[StoredPhoto], captions: Optional[list[Optional[str]]], start: int) -> list[PlacePhoto]:
    captions = captions or []
    rows = []
    for i, photo in enumerate(photos):
        caption = captions[i] if i < len(captions) else None
        rows.append(
            PlacePhoto(
                url=photo.url,
                storage_id=photo.storage_id,
                caption=(caption or None) and str(caption)[:200],
                position=start + i,
            )
        )
    return rows


def get_manageable_place(db: Session, place_id: str, user: User) -> Place:
    place = _load_place(db, place_id)
    if not _can_manage(place, user):
        raise PermissionDenied("Not authorized to modify this place")
    return place


def update_place(
    db: Session,
    place: Place,
    actor: User,
    data: PlaceUpdate,
    new_photos: list[StoredPhoto],
    captions: Optional[list[Optional[str]]] = None,
    keep_storage_ids: Optional[list[str]] = None,
) -> tuple[Place, list[str]]:
    """Apply sent fields; photos are replaced as a whole list, never patched.

    ``keep_storage_ids`` (when given) is the full set of existing photos to
    keep; new uploads are appended after them. Returns the updated place and
    the storage ids that were dropped.
    """
    ensure_can_create_content(actor)
    sent = data.model_dump(exclude_unset=True)
    coordinates = sent.pop("coordinates", None)
    tags = sent.pop("tags", None)
    for key, value in sent.items():
        if value is None and key not in ("rating", "visit_date"):
            continue
        setattr(place, key, value)
    if coordinates is not None:
        place.longitude, place.latitude = coordinates
    if tags is not None:
        _set_tags(place, tags)

    dropped: list[str] = []
    kept = list(place.photos)
    if keep_storage_ids is not None:
        wanted = set(keep_storage_ids)
        dropped = [p.storage_id for p in kept if p.storage_id not in wanted]
        kept = [p for p in kept if p.storage_id in wanted]
    for i, photo in enumerate(kept):
        photo.position = i
    place.photos = kept + _photo_rows(new_photos, captions, start=len(kept))

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    return _load_place(db, place.id), dropped


def delete_place(db: Session, place: Place, actor: User) -> list[str]:
    """Delete a place and decrement its author's counter in one transaction."""
    storage_ids = [p.storage_id for p in place.photos]
    author_id = place.author_id
    place_id = place.id
    try:
        db.execute(delete(Place).where(Place.id == place_id))
        db.execute(
            update(User)
            .where(User.id == author_id, User.places_count > 0)
            .values(places_count=User.places_count - 1)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("place %s deleted by %s", place_id, actor.id)
    return storage_ids


def toggle_like(db: Session, place_id: str, user: User) -> tuple[bool, int]:
    """Unlike if a like row exists, otherwise like.

    The (place, user) primary key makes a concurrent second insert fail, which
    resolves to "liked" instead of a duplicate entry.
    """
    ensure_can_create_content(user)
    place = db.get(Place, place_id)
    if place is None or not is_visible_to(place, user):
        raise NotFound("Place not found")

    removed = db.execute(
        delete(PlaceLike).where(PlaceLike.place_id == place_id, PlaceLike.user_id == user.id)
    ).rowcount
    if removed:
        db.commit()
        is_liked = False
    else:
        try:
            db.add(PlaceLike(place_id=place_id, user_id=user.id))
            db.commit()
        except IntegrityError:
            db.rollback()
        is_liked = True

    count = db.execute(select(func.count()).select_from(PlaceLike).where(PlaceLike.place_id == place_id)).scalar_one()
    return is_liked, count


def add_comment(db: Session, place_id: str, user: User, content: str, is_anonymous: bool) -> Comment:
    ensure_can_create_content(user)
    place = db.get(Place, place_id)
    if place is None or not is_visible_to(place, user):
        raise NotFound("Place not found")
    comment = Comment(place_id=place_id, author_id=user.id, content=content, is_anonymous=is_anonymous)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def delete_comment(db: Session, place_id: str, comment_id: str, user: User) -> None:
    """Remove one comment by id; allowed to its author or an admin."""
    if db.get(Place, place_id) is None:
        raise NotFound("Place not found")
    comment = db.execute(
        select(Comment).where(Comment.id == comment_id, Comment.place_id == place_id)
    ).scalar_one_or_none()
    if comment is None:
        raise NotFound("Comment not found")
    if comment.author_id != user.id and not user.is_admin:
        raise PermissionDenied("Not authorized to delete this comment")
    db.execute(delete(Comment).where(Comment.id == comment_id))
    db.commit()


def toggle_featured(db: Session, place_id: str) -> bool:
    place = db.get(Place, place_id)
    if place is None:
        raise NotFound("Place not found")
    db.execute(update(Place).where(Place.id == place_id).values(is_featured=~Place.is_featured))
    db.commit()
    db.refresh(place)
    return place.is_featured


def list_tags(db: Session, limit: int = 100) -> list[tuple[str, int]]:
    """Tags of visible places with usage counts, most used first."""
    stmt = (
        select(PlaceTag.name, func.count().label("count"))
        .join(Place, Place.id == PlaceTag.place_id)
        .where(Place.is_public.is_(True), Place.status == STATUS_PUBLISHED)
        .group_by(PlaceTag.name)
        .order_by(func.count().desc(), PlaceTag.name)
        .limit(limit)
    )
    return [(name, count) for name, count in db.execute(stmt).all()]
