"""User endpoints: own profile, own content, admin moderation, public profiles."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from placer.api.deps import get_current_user, get_optional_user, require_admin
from placer.api.endpoints.places import place_page_response
from placer.core.errors import ValidationError, field_errors_from_pydantic
from placer.db.session import get_db
from placer.models.user import User
from placer.schemas.common import MessageResponse, Pagination
from placer.schemas.place import (
    CommentOut,
    PlaceListResponse,
    PlaceOut,
    PlaceSummary,
    PublicProfileResponse,
    UserCommentListResponse,
    UserCommentOut,
)
from placer.schemas.user import ProfileUpdate, UserListResponse, UserPublic, UserResponse, user_out
from placer.services import approval
from placer.services import users as user_service
from placer.services.place_query import PlaceFilter, list_places, recent_places_by
from placer.utils.storage_manager import PhotoStorage, discard_photos, get_photo_storage, read_images

router = APIRouter(prefix="/users", tags=["users"])

AVATAR_FOLDER = "avatars"


@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(user=user_out(current_user))


def _save_profile(
    db: Session,
    storage: PhotoStorage,
    user: User,
    data: ProfileUpdate,
    images: list[tuple[bytes, str]],
) -> UserResponse:
    stored = storage.save(AVATAR_FOLDER, *images[0]) if images else None
    try:
        user, replaced = user_service.update_profile(db, user, data, stored)
    except Exception:
        if stored is not None:
            discard_photos(storage, [stored.storage_id])
        raise
    if replaced:
        discard_photos(storage, [replaced])
    return UserResponse(user=user_out(user))


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    request: Request,
    first_name: Optional[str] = Form(None, alias="firstName"),
    last_name: Optional[str] = Form(None, alias="lastName"),
    bio: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> UserResponse:
    """Pending users may edit their profile; only content creation is gated.

    Sending ``bio`` or ``location`` empty clears it.
    """
    fields = {"firstName": first_name, "lastName": last_name, "bio": bio, "location": location}
    payload = {k: v for k, v in fields.items() if v is not None}
    form = await request.form()
    for key in ("bio", "location"):
        if key in form and key not in payload:
            payload[key] = ""
    try:
        data = ProfileUpdate.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(errors=field_errors_from_pydantic(exc.errors()))

    images = await read_images([avatar] if avatar is not None else [], field="avatar")
    return await run_in_threadpool(_save_profile, db, storage, current_user, data, images)


@router.get("/places", response_model=PlaceListResponse)
def get_my_places(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PlaceListResponse:
    """The caller's own places, including private and draft ones."""
    flt = PlaceFilter.from_params(
        page=page,
        limit=limit,
        search=search,
        category=category,
        author=current_user.id,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    flt.visible_only = False
    return place_page_response(list_places(db, flt), current_user)


@router.get("/comments", response_model=UserCommentListResponse)
def get_my_comments(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserCommentListResponse:
    result = user_service.list_user_comments(db, current_user, page, limit)
    comments = [
        UserCommentOut(
            **CommentOut.from_model(c, current_user).model_dump(),
            place=PlaceSummary(id=c.place.id, name=c.place.name),
        )
        for c in result.comments
    ]
    return UserCommentListResponse(
        comments=comments,
        pagination=Pagination.build(result.page, result.limit, result.total),
    )


@router.get("/admin/all", response_model=UserListResponse)
def admin_list_users(
    user_status: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserListResponse:
    result = user_service.list_users(db, user_status, search, page, limit)
    return UserListResponse(
        users=[user_out(u) for u in result.users],
        pagination=Pagination.build(result.page, result.limit, result.total),
    )


@router.get("/admin/pending", response_model=UserListResponse)
def admin_list_pending(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserListResponse:
    result = user_service.list_users(db, "pending", None, page, limit)
    return UserListResponse(
        users=[user_out(u) for u in result.users],
        pagination=Pagination.build(result.page, result.limit, result.total),
    )


@router.put("/admin/approve/{user_id}", response_model=UserResponse)
def admin_approve(
    user_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserResponse:
    return UserResponse(user=user_out(approval.approve(db, user_id)))


@router.delete("/admin/reject/{user_id}", response_model=MessageResponse)
def admin_reject(
    user_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> MessageResponse:
    """Delete a non-admin user together with everything they posted."""
    storage_ids = approval.reject(db, user_id)
    discard_photos(storage, storage_ids)
    return MessageResponse(message="User rejected and removed")


@router.put("/admin/toggle-admin/{user_id}", response_model=UserResponse)
def admin_toggle_admin(
    user_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserResponse:
    return UserResponse(user=user_out(approval.toggle_admin(db, admin, user_id)))


@router.get("/{user_id}", response_model=PublicProfileResponse)
def get_public_profile(
    user_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> PublicProfileResponse:
    user = user_service.get_user(db, user_id)
    recent = recent_places_by(db, user)
    return PublicProfileResponse(
        user=UserPublic.model_validate(user),
        recent_places=[PlaceOut.from_model(p, viewer) for p in recent],
    )
