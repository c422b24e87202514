"""Photo API endpoints: upload, visibility-filtered listing, moderation."""

import json

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlmodel import Session

from wedsnap.api.deps import (
    get_bus,
    get_current_user,
    get_object_store,
    get_optional_user,
    unwrap,
)
from wedsnap.config import settings
from wedsnap.database import get_session
from wedsnap.models.photo import Photo
from wedsnap.models.user import User
from wedsnap.schemas.photo import (
    ModerateRequest,
    PhotoListResponse,
    PhotoResponse,
    SlideshowResponse,
)
from wedsnap.services.album_service import get_album, get_owned_album, is_owner
from wedsnap.services.moderation_service import (
    delete_photo,
    list_pending,
    list_visible,
    moderate,
    toggle_visibility,
)
from wedsnap.services.photo_service import IMAGE_TYPES, get_photo, upload_photo
from wedsnap.services.realtime import ChangeBus
from wedsnap.utils.storage import ObjectStore

router = APIRouter(tags=["photos"])


def photo_to_response(p: Photo) -> PhotoResponse:
    return PhotoResponse(
        id=p.id,
        album_id=p.album_id,
        url=p.url,
        thumbnail_url=p.thumbnail_url,
        approved=bool(p.approved),
        metadata=p.meta,
        created_at=p.created_at.isoformat() if p.created_at else "",
    )


def _owned_photo(photo_id: str, user: User, session: Session) -> Photo:
    photo = unwrap(get_photo(photo_id, session))
    unwrap(get_owned_album(photo.album_id, user.id, session))
    return photo


@router.post("/albums/{album_id}/photos", response_model=PhotoResponse, status_code=201)
def upload(
    album_id: str,
    file: UploadFile = File(...),
    metadata: str = Form(default=""),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
    bus: ChangeBus = Depends(get_bus),
):
    """Upload a photo. Approved at once unless the album is moderated."""
    content_type = file.content_type or "application/octet-stream"
    if content_type not in IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Only JPEG, PNG, WebP and GIF images are supported")

    file_data = file.file.read()
    if not file_data:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(file_data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File too large")

    meta = {}
    if metadata:
        try:
            meta = json.loads(metadata)
        except ValueError:
            raise HTTPException(status_code=400, detail="metadata must be a JSON object")
        if not isinstance(meta, dict):
            raise HTTPException(status_code=400, detail="metadata must be a JSON object")

    photo = unwrap(upload_photo(
        album_id=album_id,
        file_data=file_data,
        filename=file.filename or "photo",
        content_type=content_type,
        session=session,
        store=store,
        bus=bus,
        metadata=meta,
    ))
    return photo_to_response(photo)


@router.get("/albums/{album_id}/photos", response_model=PhotoListResponse)
def list_photos(
    album_id: str,
    user: User | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    """Album photos in upload order. Only the owner sees unapproved ones."""
    album = unwrap(get_album(album_id, session))
    owner = is_owner(album, user.id if user else None)
    photos = unwrap(list_visible(album_id, owner, session))
    return PhotoListResponse(
        photos=[photo_to_response(p) for p in photos],
        total_count=len(photos),
    )


@router.get("/albums/{album_id}/photos/pending", response_model=PhotoListResponse)
def pending_photos(
    album_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Photos awaiting moderation. Owner only."""
    unwrap(get_owned_album(album_id, user.id, session))
    photos = unwrap(list_pending(album_id, session))
    return PhotoListResponse(
        photos=[photo_to_response(p) for p in photos],
        total_count=len(photos),
    )


@router.get("/albums/{album_id}/slideshow", response_model=SlideshowResponse)
def slideshow(album_id: str, session: Session = Depends(get_session)):
    """Approved photos and the advance interval for a slideshow screen."""
    unwrap(get_album(album_id, session))
    photos = unwrap(list_visible(album_id, False, session))
    return SlideshowResponse(
        album_id=album_id,
        interval=settings.slideshow_interval_ms,
        photos=[photo_to_response(p) for p in photos],
    )


@router.post("/photos/{photo_id}/moderate", response_model=PhotoResponse)
def moderate_photo(
    photo_id: str,
    request: ModerateRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    bus: ChangeBus = Depends(get_bus),
):
    """Approve or reject a photo."""
    _owned_photo(photo_id, user, session)
    return photo_to_response(unwrap(moderate(photo_id, request.approve, session, bus)))


@router.post("/photos/{photo_id}/toggle-visibility", response_model=PhotoResponse)
def toggle_photo(
    photo_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    bus: ChangeBus = Depends(get_bus),
):
    """Hide a visible photo or show a hidden one."""
    _owned_photo(photo_id, user, session)
    return photo_to_response(unwrap(toggle_visibility(photo_id, session, bus)))


@router.delete("/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_photo(
    photo_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
    bus: ChangeBus = Depends(get_bus),
):
    """Delete a photo and its stored image files."""
    _owned_photo(photo_id, user, session)
    unwrap(delete_photo(photo_id, session, store, bus))
