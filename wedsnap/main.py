"""WedSnap Server - FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from wedsnap.config import settings
from wedsnap.database import init_db
from wedsnap.services.realtime import ChangeBus
from wedsnap.utils.kvstore import FileKeyValueStore
from wedsnap.utils.storage import STORAGE_ROUTE, ObjectStore
from wedsnap.ws.sync import ConnectionManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Set up logging, the database and the shared service objects."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()

    app.state.bus = ChangeBus()
    app.state.object_store = ObjectStore(settings.storage_dir, settings.public_base_url, settings.storage_bucket)
    app.state.kv_store = FileKeyValueStore(settings.kv_file)
    app.state.feeds = ConnectionManager()
    logger.info("%s ready, storage at %s", settings.server_name, settings.storage_dir)

    yield

    logger.info("%s shutting down", settings.server_name)


app = FastAPI(
    title="WedSnap",
    description="Event photo sharing with guest moderation and a find-the-guest game",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS - guests open the app from QR codes on their own phones
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Device-Id"],
)

# --- Register API routers ---
from wedsnap.api.auth import router as auth_router  # noqa: E402
from wedsnap.api.albums import router as albums_router  # noqa: E402
from wedsnap.api.photos import router as photos_router  # noqa: E402
from wedsnap.api.guests import router as guests_router  # noqa: E402
from wedsnap.api.game import router as game_router  # noqa: E402

API_PREFIX = "/api/v1"

app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(albums_router, prefix=API_PREFIX)
app.include_router(photos_router, prefix=API_PREFIX)
app.include_router(guests_router, prefix=API_PREFIX)
app.include_router(game_router, prefix=API_PREFIX)


# --- WebSocket endpoints ---
from wedsnap.ws.sync import websocket_album_feed  # noqa: E402


@app.websocket("/ws/albums/{album_id}")
async def ws_album_endpoint(ws: WebSocket, album_id: str, view: str = Query(default="gallery")):
    await websocket_album_feed(ws, album_id, view)


@app.get("/")
def root():
    """Health check / server info."""
    return {
        "name": settings.server_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/api/v1/health")
def health(request: Request):
    return {"status": "ok", "live_feeds": request.app.state.feeds.connection_count}


# --- Stored photos ---
app.mount(
    f"{STORAGE_ROUTE}/{settings.storage_bucket}",
    StaticFiles(directory=str(settings.storage_dir / settings.storage_bucket), check_dir=False),
    name="storage",
)
