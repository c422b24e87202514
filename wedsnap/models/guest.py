"""Guest model (find-the-guest challenge participants)."""

import secrets
from datetime import datetime, timezone
from typing import Any, Optional

from sqlmodel import Field, SQLModel


class Guest(SQLModel, table=True):
    __tablename__ = "guests"

    id: str = Field(default_factory=lambda: f"gst_{secrets.token_hex(4)}", primary_key=True)
    album_id: str = Field(foreign_key="albums.id", index=True)
    guest_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    approved: bool = Field(default=False)  # pending organizer review
    assigned: bool = Field(default=False)  # handed out as a challenge target
    photo_url: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_eligible_target(self) -> bool:
        return bool(self.approved) and bool(self.photo_url)

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "album_id": self.album_id,
            "guest_name": self.guest_name,
            "approved": bool(self.approved),
            "assigned": bool(self.assigned),
            "photo_url": self.photo_url,
        }
