"""Common API dependencies: owner extraction, shared app objects, result mapping."""

import uuid

from fastapi import Depends, Header, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from wedsnap.database import get_session
from wedsnap.models.user import User
from wedsnap.services.errors import (
    InvalidRequest,
    NoGuestsAvailable,
    NotFound,
    PermissionDenied,
    RemoteCallFailed,
    Result,
)
from wedsnap.services.realtime import ChangeBus
from wedsnap.utils.kvstore import KeyValueStore
from wedsnap.utils.security import decode_token
from wedsnap.utils.storage import ObjectStore

bearer_scheme = HTTPBearer()
optional_bearer = HTTPBearer(auto_error=False)

DEVICE_HEADER = "X-Device-Id"

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    PermissionDenied: status.HTTP_403_FORBIDDEN,
    InvalidRequest: status.HTTP_400_BAD_REQUEST,
    NoGuestsAvailable: status.HTTP_409_CONFLICT,
    RemoteCallFailed: status.HTTP_502_BAD_GATEWAY,
}


def unwrap(result: Result):
    """Return ``result.data`` or raise the matching HTTP error."""
    if result.ok:
        return result.data
    error = result.error
    raise HTTPException(
        status_code=ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"error": error.code, "message": error.message},
    )


def _user_from_token(token: str, session: Session) -> User | None:
    try:
        payload = decode_token(token)
    except Exception:
        return None
    if payload.get("type") != "access":
        return None
    return session.get(User, payload.get("sub", ""))


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Extract and validate the album owner from a JWT access token."""
    user = _user_from_token(credentials.credentials, session)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return user


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
    session: Session = Depends(get_session),
) -> User | None:
    """Owner if a valid token is sent, otherwise an anonymous guest."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, session)


def get_bus(request: Request) -> ChangeBus:
    return request.app.state.bus


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_kv_store(request: Request) -> KeyValueStore:
    return request.app.state.kv_store


def get_device_id(
    response: Response,
    x_device_id: str | None = Header(default=None),
) -> str:
    """The caller's device identifier; a new one is issued when none is sent."""
    device_id = (x_device_id or "").strip()
    if not device_id:
        device_id = str(uuid.uuid4())
    response.headers[DEVICE_HEADER] = device_id
    return device_id
