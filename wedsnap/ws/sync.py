"""WebSocket handler for live album views (gallery and slideshow)."""

import asyncio
import json
import logging
from typing import Dict

from fastapi import WebSocket, WebSocketDisconnect

from wedsnap.config import settings
from wedsnap.database import open_session
from wedsnap.services.album_service import get_album
from wedsnap.services.moderation_service import list_visible
from wedsnap.services.photo_feed import GALLERY, SLIDESHOW, FeedChange, PhotoFeed
from wedsnap.services.slideshow_service import Slideshow

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks open album feed connections."""

    def __init__(self):
        self._connections: Dict[str, list[WebSocket]] = {}  # album_id -> [ws]

    async def connect(self, ws: WebSocket, album_id: str):
        await ws.accept()
        self._connections.setdefault(album_id, []).append(ws)

    def disconnect(self, ws: WebSocket, album_id: str):
        conns = self._connections.get(album_id, [])
        if ws in conns:
            conns.remove(ws)
        if not conns:
            self._connections.pop(album_id, None)

    @property
    def connection_count(self) -> int:
        return sum(len(v) for v in self._connections.values())


def _load_snapshot(album_id: str) -> list[dict] | None:
    with open_session() as session:
        if not get_album(album_id, session).ok:
            return None
        result = list_visible(album_id, False, session)
        if not result.ok:
            return None
        return [p.to_row() for p in result.data]


def _change_message(change: FeedChange) -> dict:
    if change.kind == "removed":
        return {"type": "photo_removed", "id": change.photo["id"], "index": change.index}
    if change.kind == "added":
        return {"type": "photo_added", "index": change.index, "photo": change.photo}
    return {"type": "photo_updated", "index": change.index, "photo": change.photo}


async def websocket_album_feed(ws: WebSocket, album_id: str, view: str = GALLERY):
    """Stream an album's approved photos and their changes to one client."""
    if view not in (GALLERY, SLIDESHOW):
        await ws.close(code=4000, reason="Unknown view")
        return

    snapshot = _load_snapshot(album_id)
    if snapshot is None:
        await ws.close(code=4004, reason="Album not found")
        return

    manager: ConnectionManager = ws.app.state.feeds
    loop = asyncio.get_running_loop()
    outbox: asyncio.Queue = asyncio.Queue()

    # Bus callbacks arrive on worker threads; apply them on this loop
    feed = PhotoFeed(
        ws.app.state.bus,
        mode=view,
        dispatch=lambda fn, event: loop.call_soon_threadsafe(fn, event),
    )
    slideshow = Slideshow(interval_ms=settings.slideshow_interval_ms) if view == SLIDESHOW else None

    def on_change(change: FeedChange):
        outbox.put_nowait(_change_message(change))
        if slideshow is not None:
            slideshow.sync_length(len(feed.photos))

    async def on_advance(index: int):
        if 0 <= index < len(feed.photos):
            outbox.put_nowait({"type": "slide", "index": index, "photo_id": feed.photos[index]["id"]})

    async def sender():
        while True:
            message = await outbox.get()
            await ws.send_json(message)

    await manager.connect(ws, album_id)
    feed.add_listener(on_change)
    feed.connect(album_id, snapshot)

    hello = {"type": "snapshot", "view": view, "album_id": album_id, "photos": feed.photos}
    if slideshow is not None:
        slideshow.sync_length(len(feed.photos))
        hello["slideshow"] = slideshow.status()
    await ws.send_json(hello)

    tasks = [asyncio.create_task(sender())]
    if slideshow is not None:
        tasks.append(asyncio.create_task(slideshow.run(on_advance)))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                outbox.put_nowait({"type": "error", "message": "Invalid JSON"})
                continue

            msg_type = msg.get("type", "") if isinstance(msg, dict) else ""
            if msg_type == "ping":
                outbox.put_nowait({"type": "pong"})
            elif slideshow is not None and msg_type in ("play", "pause", "toggle", "next", "prev"):
                if msg_type == "play":
                    slideshow.play()
                elif msg_type == "pause":
                    slideshow.pause()
                elif msg_type == "toggle":
                    slideshow.toggle()
                elif msg_type == "next":
                    await on_advance(slideshow.advance())
                else:
                    await on_advance(slideshow.previous())
                outbox.put_nowait({"type": "slideshow", **slideshow.status()})
            else:
                outbox.put_nowait({"type": "error", "message": f"Unknown type: {msg_type}"})
    except WebSocketDisconnect:
        pass
    finally:
        feed.remove_listener(on_change)
        feed.disconnect()
        if slideshow is not None:
            slideshow.stop()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        manager.disconnect(ws, album_id)
        logger.debug("Feed closed for album %s", album_id)
