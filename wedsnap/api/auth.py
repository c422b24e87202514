"""Owner authentication API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from wedsnap.api.deps import get_current_user
from wedsnap.database import get_session
from wedsnap.models.user import User
from wedsnap.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserProfileResponse,
)
from wedsnap.services.auth_service import login_owner, register_owner

router = APIRouter(tags=["auth"])


def _error_detail(e: ValueError) -> dict:
    parts = str(e).split(":", 1)
    return {
        "error": parts[0],
        "message": parts[1] if len(parts) > 1 else str(e),
    }


@router.post("/auth/register", response_model=TokenResponse, status_code=201)
def register(request: RegisterRequest, session: Session = Depends(get_session)):
    """Create an album owner account and return an access token."""
    try:
        result = register_owner(request.email, request.password, request.display_name, session)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_error_detail(e))
    return TokenResponse(**result)


@router.post("/auth/login", response_model=TokenResponse)
def login(request: LoginRequest, session: Session = Depends(get_session)):
    try:
        result = login_owner(request.email, request.password, session)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=_error_detail(e))
    return TokenResponse(**result)


@router.get("/users/me", response_model=UserProfileResponse)
def get_my_profile(user: User = Depends(get_current_user)):
    """Get current owner's profile."""
    return UserProfileResponse(id=user.id, email=user.email, display_name=user.display_name)
