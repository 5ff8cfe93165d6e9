"""Place endpoints: listing, detail, create/update/delete, likes, comments."""

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from placer.api.deps import get_current_user, get_optional_user, require_admin, require_approval
from placer.core.errors import ValidationError, field_errors_from_pydantic
from placer.db.session import get_db
from placer.models.place import Place
from placer.models.user import User
from placer.schemas.common import MessageResponse, Pagination
from placer.schemas.place import (
    CommentCreate,
    CommentOut,
    CommentResponse,
    FeaturedResponse,
    LikeResponse,
    PlaceCreate,
    PlaceListResponse,
    PlaceOut,
    PlaceResponse,
    PlaceUpdate,
    TagCount,
    TagListResponse,
)
from placer.services import places as place_service
from placer.services.place_query import PlaceFilter, PlacePage, list_places
from placer.utils.storage_manager import (
    PhotoStorage,
    StoredPhoto,
    discard_photos,
    get_photo_storage,
    read_images,
)

router = APIRouter(prefix="/places", tags=["places"])

PHOTO_FOLDER = "places"

# 빈 값으로 보내면 지워지는 선택 필드
CLEARABLE_FIELDS = ("rating", "visitDate")


def place_page_response(page: PlacePage, viewer: Optional[User]) -> PlaceListResponse:
    return PlaceListResponse(
        places=[PlaceOut.from_model(place, viewer, distance_km=distance) for place, distance in page.items],
        pagination=Pagination.build(page.page, page.limit, page.total),
    )


def _validate(model: type[BaseModel], payload: dict[str, Any]) -> Any:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(errors=field_errors_from_pydantic(exc.errors()))


def _json_list(raw: Optional[str], field: str) -> Optional[list]:
    """Parse a JSON array sent as a form field."""
    if raw is None or not raw.strip():
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = None
    if not isinstance(value, list):
        raise ValidationError(errors=[{"field": field, "message": f"{field} must be a JSON array"}])
    return value


def _form_payload(**fields: Optional[str]) -> dict[str, Any]:
    # 폼에서 보내지 않은 필드는 제외, 키는 wire 이름(camelCase)으로
    return {to_camel(key): value for key, value in fields.items() if value is not None}


def _store(storage: PhotoStorage, images: list[tuple[bytes, str]]) -> list[StoredPhoto]:
    stored: list[StoredPhoto] = []
    try:
        for data, content_type in images:
            stored.append(storage.save(PHOTO_FOLDER, data, content_type))
    except Exception:
        discard_photos(storage, [p.storage_id for p in stored])
        raise
    return stored


@router.get("", response_model=PlaceListResponse)
def get_places(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    author: Optional[str] = None,
    tag: Optional[str] = None,
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    radius: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> PlaceListResponse:
    """Search places. Unparseable parameters fall back to their defaults."""
    flt = PlaceFilter.from_params(
        page=page,
        limit=limit,
        search=search,
        category=category,
        author=author,
        tag=tag,
        lat=lat,
        lng=lng,
        radius=radius,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    if viewer is not None and flt.author == viewer.id:
        flt.visible_only = False
    return place_page_response(list_places(db, flt), viewer)


@router.get("/tags", response_model=TagListResponse)
def get_tags(db: Session = Depends(get_db)) -> TagListResponse:
    return TagListResponse(tags=[TagCount(name=name, count=count) for name, count in place_service.list_tags(db)])


@router.get("/{place_id}", response_model=PlaceResponse)
def get_place(
    place_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> PlaceResponse:
    place = place_service.get_place(db, place_id, viewer)
    return PlaceResponse(place=PlaceOut.from_model(place, viewer, include_comments=True))


def _save_new_place(
    db: Session,
    storage: PhotoStorage,
    author: User,
    data: PlaceCreate,
    images: list[tuple[bytes, str]],
    captions: Optional[list],
) -> PlaceResponse:
    stored = _store(storage, images)
    try:
        place = place_service.create_place(db, author, data, stored, captions)
    except Exception:
        discard_photos(storage, [p.storage_id for p in stored])
        raise
    return PlaceResponse(place=PlaceOut.from_model(place, author))


def _save_place_changes(
    db: Session,
    storage: PhotoStorage,
    place: Place,
    actor: User,
    data: PlaceUpdate,
    images: list[tuple[bytes, str]],
    captions: Optional[list],
    keep: Optional[list],
) -> PlaceResponse:
    stored = _store(storage, images)
    try:
        place, dropped = place_service.update_place(
            db,
            place,
            actor,
            data,
            stored,
            captions,
            keep_storage_ids=[str(s) for s in keep] if keep is not None else None,
        )
    except Exception:
        discard_photos(storage, [p.storage_id for p in stored])
        raise
    discard_photos(storage, dropped)
    return PlaceResponse(place=PlaceOut.from_model(place, actor))


@router.post("", response_model=PlaceResponse, status_code=status.HTTP_201_CREATED)
async def create_place(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    rating: Optional[str] = Form(None),
    visit_date: Optional[str] = Form(None, alias="visitDate"),
    is_anonymous: Optional[str] = Form(None, alias="isAnonymous"),
    is_public: Optional[str] = Form(None, alias="isPublic"),
    place_status: Optional[str] = Form(None, alias="status"),
    address: Optional[str] = Form(None, alias="location[address]"),
    coordinates: Optional[str] = Form(None, alias="location[coordinates]"),
    captions: Optional[str] = Form(None),
    photos: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(require_approval),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> PlaceResponse:
    """Create a place from a multipart form; photos are optional."""
    data = _validate(
        PlaceCreate,
        _form_payload(
            name=name,
            description=description,
            category=category,
            tags=tags,
            rating=rating,
            visit_date=visit_date,
            is_anonymous=is_anonymous,
            is_public=is_public,
            status=place_status,
            address=address,
            coordinates=coordinates,
        ),
    )
    caption_list = _json_list(captions, "captions")
    images = await read_images(photos)

    # DB와 저장소 호출은 블로킹이므로 스레드풀에서 실행
    return await run_in_threadpool(_save_new_place, db, storage, current_user, data, images, caption_list)


@router.put("/{place_id}", response_model=PlaceResponse)
async def update_place(
    request: Request,
    place_id: str,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    rating: Optional[str] = Form(None),
    visit_date: Optional[str] = Form(None, alias="visitDate"),
    is_anonymous: Optional[str] = Form(None, alias="isAnonymous"),
    is_public: Optional[str] = Form(None, alias="isPublic"),
    place_status: Optional[str] = Form(None, alias="status"),
    address: Optional[str] = Form(None, alias="location[address]"),
    coordinates: Optional[str] = Form(None, alias="location[coordinates]"),
    captions: Optional[str] = Form(None),
    existing_photos: Optional[str] = Form(None, alias="existingPhotos"),
    photos: Optional[list[UploadFile]] = File(None),
    current_user: User = Depends(require_approval),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> PlaceResponse:
    """Update a place owned by the caller (admins may edit any place).

    An empty ``rating`` or ``visitDate`` clears the value. ``existingPhotos``
    lists the storage ids to keep; omitted means keep all, empty means keep none.
    """
    place = await run_in_threadpool(place_service.get_manageable_place, db, place_id, current_user)
    payload = _form_payload(
        name=name,
        description=description,
        category=category,
        tags=tags,
        rating=rating,
        visit_date=visit_date,
        is_anonymous=is_anonymous,
        is_public=is_public,
        status=place_status,
        address=address,
        coordinates=coordinates,
    )
    # FastAPI는 빈 문자열 폼 값을 기본값(None)으로 바꾸므로 원본 폼에서 키 존재 여부를 확인
    form = await request.form()
    for key in CLEARABLE_FIELDS:
        if key in form and key not in payload:
            payload[key] = ""
    data = _validate(PlaceUpdate, payload)

    caption_list = _json_list(captions, "captions")
    keep = _json_list(existing_photos, "existingPhotos")
    if keep is None and "existingPhotos" in form:
        keep = []
    images = await read_images(photos)

    return await run_in_threadpool(
        _save_place_changes, db, storage, place, current_user, data, images, caption_list, keep
    )


@router.delete("/{place_id}", response_model=MessageResponse)
def delete_place(
    place_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: PhotoStorage = Depends(get_photo_storage),
) -> MessageResponse:
    place = place_service.get_manageable_place(db, place_id, current_user)
    storage_ids = place_service.delete_place(db, place, current_user)
    discard_photos(storage, storage_ids)
    return MessageResponse(message="Place deleted successfully")


@router.post("/{place_id}/like", response_model=LikeResponse)
def toggle_like(
    place_id: str,
    current_user: User = Depends(require_approval),
    db: Session = Depends(get_db),
) -> LikeResponse:
    is_liked, count = place_service.toggle_like(db, place_id, current_user)
    return LikeResponse(is_liked=is_liked, likes_count=count)


@router.post("/{place_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def add_comment(
    place_id: str,
    payload: CommentCreate,
    current_user: User = Depends(require_approval),
    db: Session = Depends(get_db),
) -> CommentResponse:
    comment = place_service.add_comment(db, place_id, current_user, payload.content, payload.is_anonymous)
    return CommentResponse(comment=CommentOut.from_model(comment, current_user))


@router.delete("/{place_id}/comments/{comment_id}", response_model=MessageResponse)
def delete_comment(
    place_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    place_service.delete_comment(db, place_id, comment_id, current_user)
    return MessageResponse(message="Comment deleted successfully")


@router.patch("/{place_id}/featured", response_model=FeaturedResponse)
def toggle_featured(
    place_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> FeaturedResponse:
    return FeaturedResponse(is_featured=place_service.toggle_featured(db, place_id))
