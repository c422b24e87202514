"""SQLite engine for the album, photo and guest tables."""

import logging

from sqlmodel import SQLModel, Session, create_engine

from wedsnap.config import settings

# Import all models so SQLModel registers them
import wedsnap.models  # noqa: F401

logger = logging.getLogger(__name__)

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=settings.debug,
    connect_args={"check_same_thread": False},
)


def init_db() -> None:
    """Create tables. WAL lets live feeds read while uploads write."""
    SQLModel.metadata.create_all(engine)

    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL")
        conn.exec_driver_sql("PRAGMA synchronous=NORMAL")
        conn.commit()
    logger.info("Database ready at %s", settings.db_path)


def get_session():
    """FastAPI dependency: one session per request."""
    with Session(engine) as session:
        yield session


def open_session() -> Session:
    """Session for code running outside a request, e.g. WebSocket feeds."""
    return Session(engine)
