"""Auth endpoints."""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from placer.api.deps import get_current_user
from placer.core.security import create_access_token
from placer.db.session import get_db
from placer.models.user import User
from placer.schemas.common import MessageResponse
from placer.schemas.user import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    SignupRequest,
    UserResponse,
    user_out,
)
from placer.services import users as user_service
from placer.services.notifications import send_signup_notification

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> AuthResponse:
    """Register a new account; it stays pending until an admin approves it."""
    user = user_service.signup(db, payload)
    background_tasks.add_task(
        send_signup_notification, user.first_name, user.last_name, user.email, user.role
    )
    return AuthResponse(
        message="Account created successfully! Your account is pending admin approval.",
        token=create_access_token(user.id),
        user=user_out(user),
    )


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> AuthResponse:
    user = user_service.authenticate_user(db, payload.email, payload.password)
    return AuthResponse(message="Login successful", token=create_access_token(user.id), user=user_out(user))


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(user=user_out(current_user))


@router.post("/logout", response_model=MessageResponse)
def logout(current_user: User = Depends(get_current_user)) -> MessageResponse:
    """Tokens are stateless; the client discards its copy."""
    return MessageResponse(message="Logout successful")


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    user_service.change_password(db, current_user, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")
