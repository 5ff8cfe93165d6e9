"""Account and profile operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from placer.core.errors import Conflict, NotFound, Unauthorized
from placer.core.security import hash_password, verify_password
from placer.models.comment import Comment
from placer.models.user import ROLE_ADMIN, ROLE_USER, User
from placer.schemas.user import ProfileUpdate, SignupRequest
from placer.services.place_query import contains_pattern, parse_paging
from placer.utils.storage_manager import StoredPhoto

logger = logging.getLogger(__name__)

USER_STATUSES = ("all", "pending", "approved", "admin")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def signup(db: Session, payload: SignupRequest) -> User:
    """Create a pending user. Email uniqueness is case-insensitive."""
    email = payload.email.lower()
    if get_user_by_email(db, email):
        raise Conflict("User already exists with this email")
    now = _now()
    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=ROLE_USER,
        is_approved=False,
        joined_at=now,
        last_login_at=now,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race against a concurrent signup with the same email
        db.rollback()
        raise Conflict("User already exists with this email")
    db.refresh(user)
    logger.info("user %s signed up (pending approval)", user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    """Return the user for valid credentials and stamp the login time."""
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("failed login for %s", email)
        raise Unauthorized("Invalid credentials")
    user.last_login_at = _now()
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise Unauthorized("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.commit()


def reset_password(db: Session, email: str, new_password: str) -> User:
    user = get_user_by_email(db, email)
    if user is None:
        raise NotFound("User not found")
    user.password_hash = hash_password(new_password)
    db.commit()
    return user


def make_admin(db: Session, email: str) -> User:
    """Promote and approve a user by email (operator script)."""
    user = get_user_by_email(db, email)
    if user is None:
        raise NotFound("User not found")
    user.role = ROLE_ADMIN
    user.is_approved = True
    db.commit()
    db.refresh(user)
    return user


def update_profile(
    db: Session, user: User, data: ProfileUpdate, avatar: Optional[StoredPhoto] = None
) -> tuple[User, Optional[str]]:
    """Apply sent profile fields. Returns the user and a replaced avatar's storage id."""
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(user, key, value)
    replaced = None
    if avatar is not None:
        replaced = user.avatar_storage_id
        user.avatar = avatar.url
        user.avatar_storage_id = avatar.storage_id
    db.commit()
    db.refresh(user)
    return user, replaced


@dataclass
class UserPage:
    users: list[User]
    page: int
    limit: int
    total: int


def list_users(
    db: Session,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: object = None,
    limit: object = None,
) -> UserPage:
    """Admin listing of users, one parameterized query for every moderation tab."""
    page, limit = parse_paging(page, limit)
    status = (status or "all").strip().lower()
    if status not in USER_STATUSES:
        status = "all"

    conds = []
    if status == "pending":
        conds += [User.role == ROLE_USER, User.is_approved.is_(False)]
    elif status == "approved":
        conds += [User.role == ROLE_USER, User.is_approved.is_(True)]
    elif status == "admin":
        conds.append(User.role == ROLE_ADMIN)
    search = (search or "").strip()
    if search:
        pattern = contains_pattern(search)
        conds.append(
            or_(
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            )
        )

    total = db.execute(select(func.count()).select_from(User).where(*conds)).scalar_one()
    users = db.execute(
        select(User)
        .where(*conds)
        .order_by(User.created_at.desc(), User.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()
    return UserPage(users=list(users), page=page, limit=limit, total=total)


@dataclass
class CommentPage:
    comments: list[Comment]
    page: int
    limit: int
    total: int


def list_user_comments(db: Session, user: User, page: object = None, limit: object = None) -> CommentPage:
    page, limit = parse_paging(page, limit)
    total = db.execute(select(func.count()).select_from(Comment).where(Comment.author_id == user.id)).scalar_one()
    comments = db.execute(
        select(Comment)
        .options(selectinload(Comment.place), selectinload(Comment.author))
        .where(Comment.author_id == user.id)
        .order_by(Comment.created_at.desc(), Comment.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()
    return CommentPage(comments=list(comments), page=page, limit=limit, total=total)
