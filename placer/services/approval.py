"""User approval state machine.

States are derived from ``role`` and ``is_approved``::

    pending  --approve-->  approved  --toggle_admin-->  admin
       |                      |      <--toggle_admin--
       +------reject----------+-----> (deleted)

Admins are always authorized to create content and can never be rejected.
All content gating funnels through ``ensure_can_create_content``.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from placer.core.errors import InvalidOperation, NotFound, PermissionDenied
from placer.models.place import Place, PlacePhoto
from placer.models.user import ROLE_ADMIN, ROLE_USER, User

logger = logging.getLogger(__name__)

STATE_PENDING = "pending"
STATE_APPROVED = "approved"
STATE_ADMIN = "admin"

PENDING_APPROVAL_MESSAGE = (
    "Your account is pending admin approval. "
    "You can update your profile but cannot create posts yet."
)


def user_state(user: User) -> str:
    if user.role == ROLE_ADMIN:
        return STATE_ADMIN
    return STATE_APPROVED if user.is_approved else STATE_PENDING


def can_create_content(user: User) -> bool:
    return user.role == ROLE_ADMIN or bool(user.is_approved)


def ensure_can_create_content(user: User) -> None:
    """Raise PermissionDenied with the pending-approval message."""
    if not can_create_content(user):
        raise PermissionDenied(PENDING_APPROVAL_MESSAGE)


def _get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def approve(db: Session, user_id: str) -> User:
    """pending -> approved. Approving an approved user (or admin) is a no-op."""
    user = _get_user(db, user_id)
    if user.is_approved:
        return user
    user.is_approved = True
    db.commit()
    db.refresh(user)
    logger.info("user %s approved", user.id)
    return user


def reject(db: Session, user_id: str) -> list[str]:
    """pending|approved -> deleted, removing every place the user authored.

    Returns the storage ids of photos (and avatar) that belonged to the user so
    the caller can clean up external storage after the commit.
    """
    user = _get_user(db, user_id)
    if user.role == ROLE_ADMIN:
        raise InvalidOperation("Admins cannot be rejected")

    place_ids = select(Place.id).where(Place.author_id == user.id)
    storage_ids = list(
        db.execute(select(PlacePhoto.storage_id).where(PlacePhoto.place_id.in_(place_ids))).scalars()
    )
    if user.avatar_storage_id:
        storage_ids.append(user.avatar_storage_id)

    try:
        removed = db.execute(delete(Place).where(Place.author_id == user.id)).rowcount
        db.delete(user)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("user %s rejected; %s places removed", user_id, removed)
    return storage_ids


def toggle_admin(db: Session, actor: User, user_id: str) -> User:
    """approved <-> admin. Promoting a pending user also approves them."""
    if actor.id == user_id:
        raise InvalidOperation("You cannot change your own admin status")
    user = _get_user(db, user_id)
    if user.role == ROLE_ADMIN:
        user.role = ROLE_USER
    else:
        user.role = ROLE_ADMIN
        user.is_approved = True
    db.commit()
    db.refresh(user)
    logger.info("user %s is now %s (changed by %s)", user.id, user_state(user), actor.id)
    return user
