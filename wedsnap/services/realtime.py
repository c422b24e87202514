"""In-process change notifications for album rows.

Services publish a ``ChangeEvent`` after each successful commit; views
subscribe per (table, album) and receive ``{old, new}`` row snapshots.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
ALL_EVENTS = (INSERT, UPDATE, DELETE)


@dataclass
class ChangeEvent:
    table: str
    type: str  # INSERT | UPDATE | DELETE
    album_id: str
    old: Optional[dict[str, Any]] = None
    new: Optional[dict[str, Any]] = None


Listener = Callable[[ChangeEvent], None]


@dataclass(eq=False)
class Subscription:
    table: str
    album_id: str
    events: tuple[str, ...]
    callback: Listener
    _bus: Optional["ChangeBus"] = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self._bus is not None

    def matches(self, event: ChangeEvent) -> bool:
        return (
            event.table == self.table
            and event.album_id == self.album_id
            and event.type in self.events
        )

    def unsubscribe(self) -> None:
        if self._bus is not None:
            self._bus._remove(self)
            self._bus = None


class ChangeBus:
    """Fan-out of row changes to subscribers filtered by table and album."""

    def __init__(self):
        self._subs: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        table: str,
        album_id: str,
        callback: Listener,
        events: tuple[str, ...] = ALL_EVENTS,
    ) -> Subscription:
        sub = Subscription(table=table, album_id=album_id, events=tuple(events), callback=callback, _bus=self)
        with self._lock:
            self._subs.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subs:
                self._subs.remove(sub)

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [s for s in self._subs if s.matches(event)]
        for sub in targets:
            try:
                sub.callback(event)
            except Exception:
                logger.exception("Change listener failed for %s %s", event.table, event.type)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)
