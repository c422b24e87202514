"""Live photo list for one album view, kept in step with change notifications.

A feed starts ``disconnected``, moves through ``subscribing`` while it
loads its snapshot and registers with the change bus, and is ``live``
once events are being applied. Events are applied once each, in the
order the bus delivers them.

Gallery views append new photos. Slideshow views drop a new photo at a
random position so late arrivals are not always shown last.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from wedsnap.services.photo_service import PHOTOS_TABLE
from wedsnap.services.realtime import (
    DELETE,
    INSERT,
    UPDATE,
    ChangeBus,
    ChangeEvent,
    Subscription,
)

logger = logging.getLogger(__name__)

GALLERY = "gallery"
SLIDESHOW = "slideshow"


class FeedState(str, Enum):
    DISCONNECTED = "disconnected"
    SUBSCRIBING = "subscribing"
    LIVE = "live"


@dataclass
class FeedChange:
    kind: str  # 'added' | 'removed' | 'updated'
    index: int
    photo: dict[str, Any]


Row = dict[str, Any]
Dispatch = Callable[[Callable[[ChangeEvent], None], ChangeEvent], None]


class PhotoFeed:
    def __init__(
        self,
        bus: ChangeBus,
        mode: str = GALLERY,
        rng: Optional[random.Random] = None,
        dispatch: Optional[Dispatch] = None,
    ):
        if mode not in (GALLERY, SLIDESHOW):
            raise ValueError(f"Unknown feed mode: {mode}")
        self.bus = bus
        self.mode = mode
        self.rng = rng or random.Random()
        self.album_id: str | None = None
        self.state = FeedState.DISCONNECTED
        self.photos: list[Row] = []
        self._dispatch = dispatch
        self._subscription: Subscription | None = None
        self._listeners: list[Callable[[FeedChange], None]] = []

    # --- Observers ---

    def add_listener(self, listener: Callable[[FeedChange], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[FeedChange], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, change: FeedChange) -> None:
        for listener in list(self._listeners):
            listener(change)

    # --- Lifecycle ---

    def connect(self, album_id: str, snapshot: list[Row]) -> None:
        """Load the approved photos of ``snapshot`` and start following the album."""
        if self.state != FeedState.DISCONNECTED:
            self.disconnect()

        self.state = FeedState.SUBSCRIBING
        self.album_id = album_id
        self.photos = [dict(p) for p in snapshot if p.get("approved")]
        self._subscription = self.bus.subscribe(PHOTOS_TABLE, album_id, self._on_event)
        self.state = FeedState.LIVE
        logger.debug("Feed live for album %s with %d photos", album_id, len(self.photos))

    def disconnect(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.state = FeedState.DISCONNECTED

    def switch_album(self, album_id: str, snapshot: list[Row]) -> None:
        """Drop the current subscription and follow another album."""
        self.disconnect()
        self.connect(album_id, snapshot)

    def _on_event(self, event: ChangeEvent) -> None:
        if self._dispatch is not None:
            self._dispatch(self.handle, event)
        else:
            self.handle(event)

    # --- Reconciliation ---

    def index_of(self, photo_id: str) -> int:
        for i, photo in enumerate(self.photos):
            if photo.get("id") == photo_id:
                return i
        return -1

    def handle(self, event: ChangeEvent) -> Optional[FeedChange]:
        """Fold one change notification into the photo list."""
        if self.state != FeedState.LIVE or event.album_id != self.album_id:
            # Late delivery for an album this feed no longer follows
            return None

        new = event.new or {}
        old = event.old or {}

        if event.type == INSERT:
            if new.get("approved"):
                return self._add(new)
            return None

        if event.type == UPDATE:
            photo_id = new.get("id") or old.get("id")
            present = self.index_of(photo_id) >= 0
            was_approved = old["approved"] if "approved" in old else present
            if new.get("approved") and not was_approved:
                return self._add(new)
            if was_approved and not new.get("approved"):
                return self._remove(photo_id)
            if present and new.get("approved"):
                return self._replace(new)
            return None

        if event.type == DELETE:
            return self._remove(old.get("id") or new.get("id"))

        logger.warning("Ignoring unknown change type: %s", event.type)
        return None

    def _add(self, row: Row) -> FeedChange:
        if self.mode == SLIDESHOW:
            index = self.rng.randint(0, len(self.photos))
        else:
            index = len(self.photos)
        self.photos.insert(index, dict(row))
        change = FeedChange("added", index, dict(row))
        self._notify(change)
        return change

    def _remove(self, photo_id: str | None) -> Optional[FeedChange]:
        index = self.index_of(photo_id) if photo_id else -1
        if index < 0:
            return None
        photo = self.photos.pop(index)
        change = FeedChange("removed", index, photo)
        self._notify(change)
        return change

    def _replace(self, row: Row) -> FeedChange:
        index = self.index_of(row["id"])
        self.photos[index] = dict(row)
        change = FeedChange("updated", index, dict(row))
        self._notify(change)
        return change
