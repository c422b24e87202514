"""Photo model."""

import json
import secrets
from datetime import datetime, timezone
from typing import Any

from sqlmodel import Field, SQLModel


class Photo(SQLModel, table=True):
    __tablename__ = "photos"

    id: str = Field(default_factory=lambda: f"pho_{secrets.token_hex(4)}", primary_key=True)
    album_id: str = Field(foreign_key="albums.id", index=True)
    url: str
    thumbnail_url: str
    approved: bool = Field(default=True, index=True)
    metadata_json: str = "{}"  # gameChallenge, assignment, guestIds, ...
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def meta(self) -> dict[str, Any]:
        try:
            value = json.loads(self.metadata_json or "{}")
        except ValueError:
            return {}
        return value if isinstance(value, dict) else {}

    def to_row(self) -> dict[str, Any]:
        """Plain-dict snapshot used for change notifications."""
        return {
            "id": self.id,
            "album_id": self.album_id,
            "url": self.url,
            "thumbnail_url": self.thumbnail_url,
            "approved": bool(self.approved),
            "metadata": self.meta,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
