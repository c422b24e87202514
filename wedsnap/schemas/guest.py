"""Guest and challenge request/response schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class GuestCreateRequest(BaseModel):
    guest_name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    photo_url: Optional[str] = None


class GuestPhotoRequest(BaseModel):
    photo_url: str = Field(min_length=1)


class GuestResponse(BaseModel):
    id: str
    album_id: str
    guest_name: str
    email: Optional[str]
    phone: Optional[str]
    approved: bool
    assigned: bool
    photo_url: Optional[str]
    created_at: str
    share_link: str


class GuestPublicResponse(BaseModel):
    """What a playing device sees about its target."""
    id: str
    guest_name: str
    photo_url: Optional[str]


class AssignmentResponse(BaseModel):
    album_id: str
    device_id: str
    guest: GuestPublicResponse


class ResetResponse(BaseModel):
    reset_count: int
