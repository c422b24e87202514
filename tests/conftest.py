"""Shared fixtures. Every WEDSNAP_* path points at a temp dir before import."""

import os
import tempfile
import uuid
from io import BytesIO

os.environ["WEDSNAP_DATA_DIR"] = tempfile.mkdtemp()
os.environ["WEDSNAP_STORAGE_DIR"] = tempfile.mkdtemp()
os.environ["WEDSNAP_DB_PATH"] = os.path.join(os.environ["WEDSNAP_DATA_DIR"], "test.db")
os.environ["WEDSNAP_KV_FILE"] = os.path.join(os.environ["WEDSNAP_DATA_DIR"], "devices.json")
os.environ["WEDSNAP_PUBLIC_BASE_URL"] = "http://testserver"

import pytest
from PIL import Image
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import wedsnap.models  # noqa: F401
from wedsnap.models.album import Album
from wedsnap.models.guest import Guest
from wedsnap.models.user import User
from wedsnap.services.realtime import ChangeBus
from wedsnap.utils.kvstore import KeyValueStore
from wedsnap.utils.storage import ObjectStore


def jpeg_bytes(size=(640, 480), color=(200, 40, 90)) -> bytes:
    out = BytesIO()
    Image.new("RGB", size, color).save(out, "JPEG")
    return out.getvalue()


@pytest.fixture
def session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


@pytest.fixture
def bus():
    return ChangeBus()


@pytest.fixture
def kv():
    return KeyValueStore()


@pytest.fixture
def store(tmp_path):
    return ObjectStore(tmp_path / "objects", "http://testserver")


@pytest.fixture
def owner(session):
    user = User(email=f"{uuid.uuid4().hex[:8]}@example.com", display_name="Owner", password_hash="")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def make_album(session, owner):
    def _make(moderation_enabled=False, is_private=False):
        album = Album(
            owner_id=owner.id,
            title="Ana & Ben",
            moderation_enabled=moderation_enabled,
            is_private=is_private,
        )
        session.add(album)
        session.commit()
        session.refresh(album)
        return album
    return _make


@pytest.fixture
def make_guest(session):
    def _make(album_id, name="Guest", approved=True, photo_url="http://testserver/storage/photos/g.jpg", assigned=False):
        guest = Guest(
            album_id=album_id,
            guest_name=name,
            approved=approved,
            photo_url=photo_url,
            assigned=assigned,
        )
        session.add(guest)
        session.commit()
        session.refresh(guest)
        return guest
    return _make


@pytest.fixture(scope="session")
def client():
    from fastapi.testclient import TestClient

    from wedsnap.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def owner_headers(client):
    r = client.post("/api/v1/auth/register", json={
        "email": f"owner-{uuid.uuid4().hex[:8]}@example.com",
        "password": "secret123",
        "display_name": "Couple",
    })
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
