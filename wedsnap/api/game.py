"""Find-the-guest game API endpoints.

Devices identify themselves with the ``X-Device-Id`` header; a missing
header gets a fresh id echoed back in the response.
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from wedsnap.api.deps import (
    get_bus,
    get_current_user,
    get_device_id,
    get_kv_store,
    unwrap,
)
from wedsnap.database import get_session
from wedsnap.models.guest import Guest
from wedsnap.models.user import User
from wedsnap.schemas.guest import AssignmentResponse, GuestPublicResponse, ResetResponse
from wedsnap.services.album_service import get_album, get_owned_album
from wedsnap.services.assignment_service import AssignmentCoordinator
from wedsnap.services.realtime import ChangeBus
from wedsnap.utils.kvstore import KeyValueStore

router = APIRouter(prefix="/albums/{album_id}/game", tags=["game"])


def get_coordinator(
    session: Session = Depends(get_session),
    store: KeyValueStore = Depends(get_kv_store),
    bus: ChangeBus = Depends(get_bus),
) -> AssignmentCoordinator:
    return AssignmentCoordinator(session, store, bus)


def _assignment(album_id: str, device_id: str, guest: Guest) -> AssignmentResponse:
    return AssignmentResponse(
        album_id=album_id,
        device_id=device_id,
        guest=GuestPublicResponse(id=guest.id, guest_name=guest.guest_name, photo_url=guest.photo_url),
    )


@router.get("/assignment", response_model=AssignmentResponse)
def current_assignment(
    album_id: str,
    device_id: str = Depends(get_device_id),
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """This device's target guest, assigning one if it has none."""
    guest = unwrap(coordinator.current_or_new(album_id, device_id))
    return _assignment(album_id, device_id, guest)


@router.post("/next", response_model=AssignmentResponse)
def next_assignment(
    album_id: str,
    device_id: str = Depends(get_device_id),
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """Swap the current target for another guest."""
    guest = unwrap(coordinator.next_guest(album_id, device_id))
    return _assignment(album_id, device_id, guest)


@router.delete("/assignment")
def clear_assignment(
    album_id: str,
    device_id: str = Depends(get_device_id),
    session: Session = Depends(get_session),
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """Give up the current target. Safe to repeat."""
    unwrap(get_album(album_id, session))
    cleared = unwrap(coordinator.clear_assignment(album_id, device_id))
    return {"cleared": cleared}


@router.post("/reset", response_model=ResetResponse)
def reset_game(
    album_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """Restart the game: every guest becomes assignable again. Owner only."""
    unwrap(get_owned_album(album_id, user.id, session))
    count = unwrap(coordinator.reset_all_assignments(album_id))
    return ResetResponse(reset_count=count)
