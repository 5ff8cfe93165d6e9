"""Expose schemas for easier import."""

from placer.schemas.common import MessageResponse, Pagination  # noqa: F401
from placer.schemas.user import (  # noqa: F401
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    SignupRequest,
    UserListResponse,
    UserOut,
    UserPublic,
    UserResponse,
)
from placer.schemas.place import (  # noqa: F401
    CommentCreate,
    CommentOut,
    CommentResponse,
    LikeResponse,
    PlaceCreate,
    PlaceListResponse,
    PlaceOut,
    PlaceResponse,
    PlaceUpdate,
    PublicProfileResponse,
    TagListResponse,
)
