"""Album request/response schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class AlbumCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    moderation_enabled: bool = False
    is_private: bool = False


class AlbumLinks(BaseModel):
    upload: str
    register: str
    game: str
    slideshow: str
    qr_data: str  # what the printed QR code encodes


class AlbumResponse(BaseModel):
    id: str
    title: str
    description: Optional[str]
    moderation_enabled: bool
    is_private: bool
    owner_id: Optional[str]
    created_at: str
    is_owner: bool = False
    links: AlbumLinks
