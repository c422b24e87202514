"""Guest directory: registration, organizer review and selfie photos."""

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from wedsnap.models.album import Album
from wedsnap.models.guest import Guest
from wedsnap.models.photo import Photo
from wedsnap.services.errors import (
    InvalidRequest,
    NotFound,
    RemoteCallFailed,
    Result,
    remote_failure,
)
from wedsnap.services.photo_service import IMAGE_TYPES
from wedsnap.services.realtime import DELETE, INSERT, UPDATE, ChangeBus, ChangeEvent
from wedsnap.utils.image import make_thumbnail
from wedsnap.utils.storage import ObjectStore

logger = logging.getLogger(__name__)

GUESTS_TABLE = "guests"


def _publish(bus: ChangeBus | None, kind: str, album_id: str, old: dict | None, new: dict | None) -> None:
    if bus is not None:
        bus.publish(ChangeEvent(GUESTS_TABLE, kind, album_id, old=old, new=new))


def list_guests(album_id: str, session: Session) -> Result[list[Guest]]:
    logger.info("Fetching guests for album %s", album_id)
    try:
        guests = session.exec(
            select(Guest).where(Guest.album_id == album_id).order_by(col(Guest.created_at), col(Guest.id))
        ).all()
    except SQLAlchemyError as e:
        return remote_failure(session, e, "fetching guests")
    return Result.success(list(guests))


def get_guest(guest_id: str, session: Session) -> Result[Guest]:
    try:
        guest = session.get(Guest, guest_id)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "fetching guest")
    if not guest:
        return Result.failure(NotFound("Guest not found"))
    return Result.success(guest)


def add_guest(
    album_id: str,
    guest_name: str,
    session: Session,
    bus: ChangeBus | None = None,
    email: str | None = None,
    phone: str | None = None,
    photo_url: str | None = None,
) -> Result[Guest]:
    """Register a guest. New guests start unapproved and unassigned."""
    guest_name = (guest_name or "").strip()
    if not guest_name:
        return Result.failure(InvalidRequest("Guest name is required"))

    try:
        if session.get(Album, album_id) is None:
            return Result.failure(NotFound("Album not found"))
        guest = Guest(
            album_id=album_id,
            guest_name=guest_name,
            email=email or None,
            phone=phone or None,
            photo_url=photo_url or None,
        )
        session.add(guest)
        session.commit()
        session.refresh(guest)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "adding guest")

    logger.info("Added guest %s to album %s", guest.id, album_id)
    _publish(bus, INSERT, album_id, None, guest.to_row())
    return Result.success(guest)


def approve_guest(guest_id: str, session: Session, bus: ChangeBus | None = None) -> Result[Guest]:
    logger.info("Approving guest %s", guest_id)
    try:
        guest = session.get(Guest, guest_id)
        if not guest:
            return Result.failure(NotFound("Guest not found"))
        old = guest.to_row()
        guest.approved = True
        session.add(guest)
        session.commit()
        session.refresh(guest)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "approving guest")

    _publish(bus, UPDATE, guest.album_id, old, guest.to_row())
    return Result.success(guest)


def update_guest_photo(
    guest_id: str,
    photo_url: str,
    session: Session,
    bus: ChangeBus | None = None,
) -> Result[Guest]:
    try:
        guest = session.get(Guest, guest_id)
        if not guest:
            return Result.failure(NotFound("Guest not found"))
        old = guest.to_row()
        guest.photo_url = photo_url
        session.add(guest)
        session.commit()
        session.refresh(guest)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "updating guest photo")

    _publish(bus, UPDATE, guest.album_id, old, guest.to_row())
    return Result.success(guest)


def upload_guest_photo(
    guest_id: str,
    file_data: bytes,
    ext: str,
    session: Session,
    store: ObjectStore,
    bus: ChangeBus | None = None,
    max_edge: int = 600,
) -> Result[Guest]:
    """Store a guest's selfie under ``guests/<guest_id>/`` and link it."""
    if ext not in IMAGE_TYPES.values():
        return Result.failure(InvalidRequest(f"Unsupported image type: {ext}"))

    found = get_guest(guest_id, session)
    if not found.ok:
        return found

    path = f"guests/{guest_id}/{uuid.uuid4()}{ext}"
    try:
        url = store.upload(path, make_thumbnail(file_data, max_edge, ext))
    except (OSError, ValueError) as e:
        logger.error("Error uploading guest photo: %s", e)
        return Result.failure(RemoteCallFailed(f"Failed to upload guest photo: {e}"))

    previous = found.data.photo_url
    result = update_guest_photo(guest_id, url, session, bus)
    if not result.ok:
        try:
            store.delete(path)
        except OSError as e:
            logger.warning("Could not discard guest photo %s: %s", path, e)
        return result

    old_path = store.path_from_url(previous)
    if old_path:
        try:
            store.delete(old_path)
        except OSError as e:
            logger.warning("Could not remove previous guest photo %s: %s", old_path, e)
    return result


def delete_guest(
    guest_id: str,
    session: Session,
    store: ObjectStore | None = None,
    bus: ChangeBus | None = None,
) -> Result[bool]:
    """Hard delete; there is no tombstone."""
    logger.info("Deleting guest %s", guest_id)
    try:
        guest = session.get(Guest, guest_id)
        if not guest:
            return Result.failure(NotFound("Guest not found"))
        old = guest.to_row()
        session.delete(guest)
        session.commit()
    except SQLAlchemyError as e:
        return remote_failure(session, e, "deleting guest")

    if store is not None:
        path = store.path_from_url(old["photo_url"])
        if path:
            try:
                store.delete(path)
            except OSError as e:
                logger.warning("Could not remove guest photo %s: %s", path, e)

    _publish(bus, DELETE, old["album_id"], old, None)
    return Result.success(True)


def list_guest_photos(album_id: str, guest: Guest, session: Session) -> Result[list[Photo]]:
    """Approved photos tagged with the guest, by id or by challenge assignment name."""
    try:
        photos = session.exec(
            select(Photo)
            .where(Photo.album_id == album_id, Photo.approved == True)  # noqa: E712
            .order_by(col(Photo.created_at), col(Photo.id))
        ).all()
    except SQLAlchemyError as e:
        return remote_failure(session, e, "loading guest photos")

    matches = []
    for photo in photos:
        meta = photo.meta
        guest_ids = meta.get("guestIds")
        tagged = isinstance(guest_ids, list) and guest.id in guest_ids
        if tagged or meta.get("assignment") == guest.guest_name:
            matches.append(photo)
    return Result.success(matches)
