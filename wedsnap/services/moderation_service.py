"""Photo visibility policy and the owner's approve/reject/hide/show actions."""

import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from wedsnap.models.photo import Photo
from wedsnap.services.errors import (
    NotFound,
    Result,
    StorageCleanupFailed,
    remote_failure,
)
from wedsnap.services.photo_service import PHOTOS_TABLE
from wedsnap.services.realtime import DELETE, UPDATE, ChangeBus, ChangeEvent
from wedsnap.utils.storage import ObjectStore

logger = logging.getLogger(__name__)


def list_visible(album_id: str, requester_is_owner: bool, session: Session) -> Result[list[Photo]]:
    """Photos in insertion order. Non-owners only ever see approved ones."""
    query = select(Photo).where(Photo.album_id == album_id)
    if not requester_is_owner:
        query = query.where(Photo.approved == True)  # noqa: E712
    query = query.order_by(col(Photo.created_at), col(Photo.id))
    try:
        photos = session.exec(query).all()
    except SQLAlchemyError as e:
        return remote_failure(session, e, "fetching photos")
    return Result.success(list(photos))


def list_pending(album_id: str, session: Session) -> Result[list[Photo]]:
    query = (
        select(Photo)
        .where(Photo.album_id == album_id, Photo.approved == False)  # noqa: E712
        .order_by(col(Photo.created_at), col(Photo.id))
    )
    try:
        photos = session.exec(query).all()
    except SQLAlchemyError as e:
        return remote_failure(session, e, "fetching pending photos")
    return Result.success(list(photos))


def _publish_update(bus: ChangeBus | None, old: dict, photo: Photo) -> None:
    if bus is not None:
        bus.publish(ChangeEvent(PHOTOS_TABLE, UPDATE, photo.album_id, old=old, new=photo.to_row()))


def moderate(photo_id: str, approve: bool, session: Session, bus: ChangeBus | None = None) -> Result[Photo]:
    """Set a photo's approved flag."""
    try:
        photo = session.get(Photo, photo_id)
        if not photo:
            return Result.failure(NotFound("Photo not found"))
        old = photo.to_row()
        photo.approved = approve
        session.add(photo)
        session.commit()
        session.refresh(photo)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "moderating photo")

    logger.info("Photo %s %s", photo_id, "approved" if approve else "rejected")
    _publish_update(bus, old, photo)
    return Result.success(photo)


def toggle_visibility(photo_id: str, session: Session, bus: ChangeBus | None = None) -> Result[Photo]:
    """Flip a photo's approved flag.

    The negation happens inside a single UPDATE so concurrent toggles
    never both write the same value.
    """
    try:
        photo = session.get(Photo, photo_id)
        if not photo:
            return Result.failure(NotFound("Photo not found"))
        old = photo.to_row()
        session.exec(
            update(Photo)
            .where(col(Photo.id) == photo_id)
            .values(approved=~col(Photo.approved))
        )
        session.commit()
        session.refresh(photo)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "toggling photo visibility")

    logger.info("Photo %s visibility -> %s", photo_id, photo.approved)
    _publish_update(bus, old, photo)
    return Result.success(photo)


def delete_photo(
    photo_id: str,
    session: Session,
    store: ObjectStore,
    bus: ChangeBus | None = None,
) -> Result[bool]:
    """Remove the photo row, then best-effort remove its two stored objects."""
    try:
        photo = session.get(Photo, photo_id)
        if not photo:
            return Result.failure(NotFound("Photo not found"))
        old = photo.to_row()
        urls = (photo.url, photo.thumbnail_url)
        session.delete(photo)
        session.commit()
    except SQLAlchemyError as e:
        return remote_failure(session, e, "deleting photo")

    if bus is not None:
        bus.publish(ChangeEvent(PHOTOS_TABLE, DELETE, old["album_id"], old=old, new=None))

    for error in cleanup_objects(store, urls):
        logger.warning("Storage cleanup for photo %s: %s", photo_id, error.message)
    return Result.success(True)


def cleanup_objects(store: ObjectStore, urls) -> list[StorageCleanupFailed]:
    """Delete the objects behind ``urls``; URLs with no derivable path are skipped."""
    errors = []
    for url in urls:
        path = store.path_from_url(url)
        if path is None:
            logger.info("Skipping cleanup, no storage path in URL: %s", url)
            continue
        try:
            store.delete(path)
        except (OSError, ValueError) as e:
            errors.append(StorageCleanupFailed(f"{path}: {e}"))
    return errors
