"""Album lookup, creation and ownership checks."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from wedsnap.models.album import Album
from wedsnap.models.guest import Guest
from wedsnap.models.photo import Photo
from wedsnap.services.errors import NotFound, PermissionDenied, Result, remote_failure
from wedsnap.services.guest_service import GUESTS_TABLE
from wedsnap.services.photo_service import PHOTOS_TABLE
from wedsnap.services.realtime import DELETE, ChangeBus, ChangeEvent
from wedsnap.utils.kvstore import KeyValueStore, album_key_prefix
from wedsnap.utils.storage import ObjectStore

logger = logging.getLogger(__name__)


def is_owner(album: Album, user_id: str | None) -> bool:
    return bool(user_id) and album.owner_id == user_id


def get_album(album_id: str, session: Session) -> Result[Album]:
    try:
        album = session.get(Album, album_id)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "fetching album")
    if not album:
        return Result.failure(NotFound("Album not found"))
    return Result.success(album)


def get_owned_album(album_id: str, user_id: str | None, session: Session) -> Result[Album]:
    """Fetch an album the requester owns."""
    result = get_album(album_id, session)
    if not result.ok:
        return result
    if not is_owner(result.data, user_id):
        return Result.failure(PermissionDenied("Album owner access required"))
    return result


def create_album(
    owner_id: str,
    title: str,
    session: Session,
    description: str | None = None,
    moderation_enabled: bool = False,
    is_private: bool = False,
) -> Result[Album]:
    album = Album(
        owner_id=owner_id,
        title=title,
        description=description,
        moderation_enabled=moderation_enabled,
        is_private=is_private,
    )
    try:
        session.add(album)
        session.commit()
        session.refresh(album)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "creating album")
    logger.info("Created album %s (moderation=%s)", album.id, album.moderation_enabled)
    return Result.success(album)


def list_owned_albums(owner_id: str, session: Session) -> Result[list[Album]]:
    try:
        albums = session.exec(
            select(Album).where(Album.owner_id == owner_id).order_by(Album.created_at)
        ).all()
    except SQLAlchemyError as e:
        return remote_failure(session, e, "listing albums")
    return Result.success(list(albums))


def delete_album(
    album_id: str,
    session: Session,
    store: ObjectStore,
    bus: ChangeBus | None = None,
    kv: KeyValueStore | None = None,
) -> Result[bool]:
    """Hard delete an album with its photos, guests, stored objects and device keys."""
    result = get_album(album_id, session)
    if not result.ok:
        return result

    try:
        photos = session.exec(select(Photo).where(Photo.album_id == album_id)).all()
        urls = [u for p in photos for u in (p.url, p.thumbnail_url)]
        removed_photos = [p.to_row() for p in photos]
        for photo in photos:
            session.delete(photo)
        guests = session.exec(select(Guest).where(Guest.album_id == album_id)).all()
        removed_guests = [g.to_row() for g in guests]
        for guest in guests:
            if guest.photo_url:
                urls.append(guest.photo_url)
            session.delete(guest)
        session.delete(result.data)
        session.commit()
    except SQLAlchemyError as e:
        return remote_failure(session, e, "deleting album")

    if bus is not None:
        for row in removed_photos:
            bus.publish(ChangeEvent(PHOTOS_TABLE, DELETE, album_id, old=row, new=None))
        for row in removed_guests:
            bus.publish(ChangeEvent(GUESTS_TABLE, DELETE, album_id, old=row, new=None))

    if kv is not None:
        try:
            kv.remove_prefix(album_key_prefix(album_id))
        except OSError as e:
            logger.warning("Could not drop device assignments for album %s: %s", album_id, e)

    for url in urls:
        path = store.path_from_url(url)
        if path is None:
            continue
        try:
            store.delete(path)
        except (OSError, ValueError) as e:
            logger.warning("Could not remove object %s: %s", path, e)
    return Result.success(True)
