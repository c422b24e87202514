"""Guest directory API endpoints."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlmodel import Session

from wedsnap.api.deps import get_bus, get_current_user, get_object_store, unwrap
from wedsnap.api.photos import photo_to_response
from wedsnap.config import settings
from wedsnap.database import get_session
from wedsnap.models.guest import Guest
from wedsnap.models.user import User
from wedsnap.schemas.guest import GuestCreateRequest, GuestPhotoRequest, GuestResponse
from wedsnap.schemas.photo import PhotoListResponse
from wedsnap.services.album_service import get_album, get_owned_album
from wedsnap.services.guest_service import (
    add_guest,
    approve_guest,
    delete_guest,
    get_guest,
    list_guest_photos,
    list_guests,
    update_guest_photo,
    upload_guest_photo,
)
from wedsnap.services.photo_service import IMAGE_TYPES
from wedsnap.services.realtime import ChangeBus
from wedsnap.utils.storage import ObjectStore

router = APIRouter(tags=["guests"])


def guest_share_link(guest: Guest) -> str:
    return f"/guest/{guest.album_id}/{guest.id}"


def _guest_to_response(g: Guest) -> GuestResponse:
    return GuestResponse(
        id=g.id,
        album_id=g.album_id,
        guest_name=g.guest_name,
        email=g.email,
        phone=g.phone,
        approved=bool(g.approved),
        assigned=bool(g.assigned),
        photo_url=g.photo_url,
        created_at=g.created_at.isoformat() if g.created_at else "",
        share_link=guest_share_link(g),
    )


def _owned_guest(guest_id: str, user: User, session: Session) -> Guest:
    guest = unwrap(get_guest(guest_id, session))
    unwrap(get_owned_album(guest.album_id, user.id, session))
    return guest


def _selfie_extension(photo: UploadFile) -> str:
    ext = IMAGE_TYPES.get(photo.content_type or "")
    if ext is None:
        raise HTTPException(status_code=400, detail="Only JPEG, PNG, WebP and GIF images are supported")
    return ext


@router.get("/albums/{album_id}/guests", response_model=list[GuestResponse])
def list_album_guests(
    album_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """All guests of an album, approved or not. Owner only."""
    unwrap(get_owned_album(album_id, user.id, session))
    return [_guest_to_response(g) for g in unwrap(list_guests(album_id, session))]


@router.post("/albums/{album_id}/guests", response_model=GuestResponse, status_code=201)
def organizer_add_guest(
    album_id: str,
    request: GuestCreateRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    bus: ChangeBus = Depends(get_bus),
):
    """Organizer adds a guest. The guest still needs approval."""
    unwrap(get_owned_album(album_id, user.id, session))
    guest = unwrap(add_guest(
        album_id,
        request.guest_name,
        session,
        bus,
        email=request.email,
        phone=request.phone,
        photo_url=request.photo_url,
    ))
    return _guest_to_response(guest)


@router.post("/albums/{album_id}/guests/register", response_model=GuestResponse, status_code=201)
def self_register(
    album_id: str,
    guest_name: str = Form(...),
    email: str = Form(default=""),
    phone: str = Form(default=""),
    photo: UploadFile | None = File(default=None),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
    bus: ChangeBus = Depends(get_bus),
):
    """Guest self-registration with an optional selfie."""
    data, ext = b"", ""
    if photo is not None and photo.filename:
        ext = _selfie_extension(photo)
        data = photo.file.read()
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(status_code=413, detail="File too large")

    guest = unwrap(add_guest(album_id, guest_name, session, bus, email=email, phone=phone))
    if data:
        guest = unwrap(upload_guest_photo(guest.id, data, ext, session, store, bus))
    return _guest_to_response(guest)


@router.post("/guests/{guest_id}/approve", response_model=GuestResponse)
def approve(
    guest_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    bus: ChangeBus = Depends(get_bus),
):
    _owned_guest(guest_id, user, session)
    return _guest_to_response(unwrap(approve_guest(guest_id, session, bus)))


@router.put("/guests/{guest_id}/photo", response_model=GuestResponse)
def set_guest_photo(
    guest_id: str,
    request: GuestPhotoRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    bus: ChangeBus = Depends(get_bus),
):
    """Point a guest at an already stored photo URL."""
    _owned_guest(guest_id, user, session)
    return _guest_to_response(unwrap(update_guest_photo(guest_id, request.photo_url, session, bus)))


@router.post("/guests/{guest_id}/selfie", response_model=GuestResponse)
def upload_selfie(
    guest_id: str,
    photo: UploadFile = File(...),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
    bus: ChangeBus = Depends(get_bus),
):
    """Replace a guest's selfie from their personal share link."""
    ext = _selfie_extension(photo)
    data = photo.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File too large")
    return _guest_to_response(unwrap(upload_guest_photo(guest_id, data, ext, session, store, bus)))


@router.delete("/guests/{guest_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_guest(
    guest_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
    bus: ChangeBus = Depends(get_bus),
):
    _owned_guest(guest_id, user, session)
    unwrap(delete_guest(guest_id, session, store, bus))


@router.get("/albums/{album_id}/guests/{guest_id}/photos", response_model=PhotoListResponse)
def guest_photos(
    album_id: str,
    guest_id: str,
    session: Session = Depends(get_session),
):
    """Approved photos tagged with this guest."""
    unwrap(get_album(album_id, session))
    guest = unwrap(get_guest(guest_id, session))
    if guest.album_id != album_id:
        raise HTTPException(status_code=404, detail="Guest not found")
    photos = unwrap(list_guest_photos(album_id, guest, session))
    return PhotoListResponse(
        photos=[photo_to_response(p) for p in photos],
        total_count=len(photos),
    )
