"""Photo upload and storage business logic."""

import json
import logging
import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from wedsnap.config import settings
from wedsnap.models.album import Album
from wedsnap.models.photo import Photo
from wedsnap.services.errors import (
    InvalidRequest,
    NotFound,
    RemoteCallFailed,
    Result,
    remote_failure,
)
from wedsnap.services.realtime import INSERT, ChangeBus, ChangeEvent
from wedsnap.utils.image import make_thumbnail
from wedsnap.utils.storage import ObjectStore

logger = logging.getLogger(__name__)

PHOTOS_TABLE = "photos"

# Supported MIME types
IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def storage_paths(album_id: str, ext: str) -> tuple[str, str]:
    """Object paths for an upload: ``<album>/<uuid><ext>`` and ``<album>/<uuid>_thumbnail<ext>``."""
    name = uuid.uuid4()
    return f"{album_id}/{name}{ext}", f"{album_id}/{name}_thumbnail{ext}"


def upload_photo(
    album_id: str,
    file_data: bytes,
    filename: str,
    content_type: str,
    session: Session,
    store: ObjectStore,
    bus: ChangeBus | None = None,
    metadata: dict[str, Any] | None = None,
) -> Result[Photo]:
    """Store an uploaded image and insert its photo row.

    1. Resolve the album (its moderation flag decides the initial approval)
    2. Upload original and thumbnail objects
    3. Insert DB record
    4. Publish the INSERT
    """
    try:
        album = session.get(Album, album_id)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "fetching album for upload")
    if not album:
        return Result.failure(NotFound("Album not found"))

    # Extension follows the declared image type, never the client filename
    ext = IMAGE_TYPES.get(content_type)
    if ext is None:
        logger.info("Rejected upload %s with type %s", filename, content_type)
        return Result.failure(InvalidRequest(f"Unsupported image type: {content_type}"))
    original_path, thumb_path = storage_paths(album_id, ext)
    thumb_data = make_thumbnail(file_data, settings.thumbnail_max_edge, ext)

    uploaded: list[str] = []
    try:
        url = store.upload(original_path, file_data)
        uploaded.append(original_path)
        thumbnail_url = store.upload(thumb_path, thumb_data)
        uploaded.append(thumb_path)
    except (OSError, ValueError) as e:
        logger.error("Error uploading image: %s", e)
        _discard(store, uploaded)
        return Result.failure(RemoteCallFailed(f"Failed to upload photo: {e}"))

    photo = Photo(
        album_id=album_id,
        url=url,
        thumbnail_url=thumbnail_url,
        approved=not album.moderation_enabled,
        metadata_json=json.dumps(metadata or {}),
    )
    try:
        session.add(photo)
        session.commit()
        session.refresh(photo)
    except SQLAlchemyError as e:
        _discard(store, uploaded)
        return remote_failure(session, e, "adding photo")

    logger.info("Uploaded photo %s to album %s (approved=%s)", photo.id, album_id, photo.approved)
    if bus is not None:
        bus.publish(ChangeEvent(PHOTOS_TABLE, INSERT, album_id, old=None, new=photo.to_row()))
    return Result.success(photo)


def _discard(store: ObjectStore, paths: list[str]) -> None:
    for path in paths:
        try:
            store.delete(path)
        except OSError as e:
            logger.warning("Could not discard object %s: %s", path, e)


def get_photo(photo_id: str, session: Session) -> Result[Photo]:
    try:
        photo = session.get(Photo, photo_id)
    except SQLAlchemyError as e:
        return remote_failure(session, e, "fetching photo")
    if not photo:
        return Result.failure(NotFound("Photo not found"))
    return Result.success(photo)
