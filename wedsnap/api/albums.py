"""Album API endpoints."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select

from wedsnap.api.deps import (
    get_bus,
    get_current_user,
    get_kv_store,
    get_object_store,
    get_optional_user,
    unwrap,
)
from wedsnap.database import get_session
from wedsnap.models.album import Album
from wedsnap.models.user import User
from wedsnap.schemas.album import AlbumCreateRequest, AlbumLinks, AlbumResponse
from wedsnap.services.album_service import (
    create_album,
    delete_album,
    get_album,
    get_owned_album,
    is_owner,
    list_owned_albums,
)
from wedsnap.services.realtime import ChangeBus
from wedsnap.utils.kvstore import KeyValueStore
from wedsnap.utils.storage import ObjectStore

router = APIRouter(prefix="/albums", tags=["albums"])


def album_links(album_id: str) -> AlbumLinks:
    upload = f"/upload/{album_id}"
    return AlbumLinks(
        upload=upload,
        register=f"/register/{album_id}",
        game=f"/game/{album_id}",
        slideshow=f"/slideshow/{album_id}",
        qr_data=upload,
    )


def _album_to_response(album: Album, user: User | None = None) -> AlbumResponse:
    return AlbumResponse(
        id=album.id,
        title=album.title,
        description=album.description,
        moderation_enabled=bool(album.moderation_enabled),
        is_private=bool(album.is_private),
        owner_id=album.owner_id,
        created_at=album.created_at.isoformat() if album.created_at else "",
        is_owner=is_owner(album, user.id if user else None),
        links=album_links(album.id),
    )


@router.get("", response_model=list[AlbumResponse])
def list_albums(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """List the current owner's albums."""
    albums = unwrap(list_owned_albums(user.id, session))
    return [_album_to_response(a, user) for a in albums]


@router.get("/public", response_model=list[AlbumResponse])
def list_public_albums(session: Session = Depends(get_session)):
    """Albums not marked private."""
    albums = session.exec(
        select(Album).where(Album.is_private == False).order_by(Album.created_at)  # noqa: E712
    ).all()
    return [_album_to_response(a) for a in albums]


@router.post("", response_model=AlbumResponse, status_code=201)
def create(
    request: AlbumCreateRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Create a new album. Moderation cannot be changed afterwards."""
    album = unwrap(create_album(
        owner_id=user.id,
        title=request.title,
        session=session,
        description=request.description,
        moderation_enabled=request.moderation_enabled,
        is_private=request.is_private,
    ))
    return _album_to_response(album, user)


@router.get("/{album_id}", response_model=AlbumResponse)
def get_one(
    album_id: str,
    user: User | None = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    """Album details; anyone holding the link may view them."""
    album = unwrap(get_album(album_id, session))
    return _album_to_response(album, user)


@router.delete("/{album_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete(
    album_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
    bus: ChangeBus = Depends(get_bus),
    kv: KeyValueStore = Depends(get_kv_store),
):
    """Delete an album with all its photos and guests."""
    unwrap(get_owned_album(album_id, user.id, session))
    unwrap(delete_album(album_id, session, store, bus, kv))
