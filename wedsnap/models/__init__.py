"""WedSnap Database Models."""

from wedsnap.models.user import User
from wedsnap.models.album import Album
from wedsnap.models.photo import Photo
from wedsnap.models.guest import Guest

__all__ = [
    "User",
    "Album",
    "Photo",
    "Guest",
]
