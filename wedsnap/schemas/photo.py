"""Photo request/response schemas."""

from typing import Any

from pydantic import BaseModel


class PhotoResponse(BaseModel):
    id: str
    album_id: str
    url: str
    thumbnail_url: str
    approved: bool
    metadata: dict[str, Any]
    created_at: str


class PhotoListResponse(BaseModel):
    photos: list[PhotoResponse]
    total_count: int


class ModerateRequest(BaseModel):
    approve: bool


class SlideshowResponse(BaseModel):
    album_id: str
    interval: int  # milliseconds
    photos: list[PhotoResponse]
