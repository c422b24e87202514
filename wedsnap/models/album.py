"""Album model."""

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class Album(SQLModel, table=True):
    __tablename__ = "albums"

    id: str = Field(default_factory=lambda: f"alb_{secrets.token_hex(4)}", primary_key=True)
    owner_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True)
    title: str
    description: Optional[str] = None
    # Only consulted when a photo is inserted; never applied retroactively
    moderation_enabled: bool = Field(default=False)
    is_private: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
