"""Auth gateway dependencies.

``get_current_user`` resolves the bearer token; ``require_approval`` and
``require_admin`` layer on top of it. Missing, malformed, expired and forged
tokens all produce the same 401.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from placer.core.errors import PermissionDenied, Unauthorized
from placer.core.security import decode_access_token
from placer.db.session import get_db
from placer.models.user import User
from placer.services.approval import ensure_can_create_content

INVALID_CREDENTIALS = "Token is not valid"


def _extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return None


def _resolve_user(request: Request, db: Session) -> Optional[User]:
    token = _extract_token(request)
    if not token:
        return None
    user_id = decode_access_token(token)
    if user_id is None:
        return None
    return db.get(User, user_id)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    user = _resolve_user(request, db)
    if user is None:
        raise Unauthorized(INVALID_CREDENTIALS)
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """Identity for public reads; an unusable token reads as anonymous."""
    return _resolve_user(request, db)


def require_approval(user: User = Depends(get_current_user)) -> User:
    ensure_can_create_content(user)
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise PermissionDenied("Admin access required")
    return user
