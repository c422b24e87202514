"""Find-the-guest challenge: hands each device one target guest at a time.

Candidates are approved guests with a photo. Guests not already assigned
to another device are preferred, and the device's own previous target is
avoided unless nothing else is left. When the pool runs dry all
assignments in the album are reset once and the search repeats.

The device -> guest mapping lives in the device key-value store under
``album_<album_id>_device_<device_id>``; the guest's ``assigned`` flag
mirrors it in the database.
"""

import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from wedsnap.models.album import Album
from wedsnap.models.guest import Guest
from wedsnap.services.errors import (
    NoGuestsAvailable,
    NotFound,
    RemoteCallFailed,
    Result,
    remote_failure,
)
from wedsnap.services.guest_service import GUESTS_TABLE
from wedsnap.services.realtime import UPDATE, ChangeBus, ChangeEvent
from wedsnap.utils.kvstore import KeyValueStore, assignment_key

logger = logging.getLogger(__name__)


class AssignmentCoordinator:
    """Assignment operations for one database session and one device store."""

    def __init__(self, session: Session, store: KeyValueStore, bus: ChangeBus | None = None):
        self.session = session
        self.store = store
        self.bus = bus

    # --- Queries ---

    def _candidates(self, album_id: str, exclude_id: str | None, only_unassigned: bool) -> list[Guest]:
        query = select(Guest).where(
            Guest.album_id == album_id,
            Guest.approved == True,  # noqa: E712
            col(Guest.photo_url).is_not(None),
            Guest.photo_url != "",
        )
        if only_unassigned:
            query = query.where(Guest.assigned == False)  # noqa: E712
        if exclude_id:
            query = query.where(Guest.id != exclude_id)
        query = query.order_by(col(Guest.created_at), col(Guest.id))
        return list(self.session.exec(query).all())

    def _claim(self, guest: Guest) -> bool:
        """Mark a guest assigned only if it is still unassigned."""
        result = self.session.exec(
            update(Guest)
            .where(col(Guest.id) == guest.id, col(Guest.assigned) == False)  # noqa: E712
            .values(assigned=True)
        )
        self.session.commit()
        return result.rowcount == 1

    def _pick(self, album_id: str, exclude_id: str | None) -> Guest | None:
        for guest in self._candidates(album_id, exclude_id, only_unassigned=True):
            if self._claim(guest):
                return guest
            logger.info("Guest %s was claimed by another device, trying next", guest.id)
        return None

    # --- Operations ---

    def current_guest_id(self, album_id: str, device_id: str) -> str | None:
        return self.store.get(assignment_key(album_id, device_id))

    def get_unassigned_guest(self, album_id: str, device_id: str) -> Result[Guest]:
        """Choose and mark a target guest for this device.

        Does not record the device mapping; see ``store_assignment``.
        """
        logger.info("Fetching unassigned guest for album %s", album_id)
        try:
            if self.session.get(Album, album_id) is None:
                return Result.failure(NotFound("Album not found"))

            exclude_id = self.current_guest_id(album_id, device_id)
            guest = self._pick(album_id, exclude_id)

            if guest is None:
                logger.info("No unassigned guests left in album %s, resetting", album_id)
                reset = self.reset_all_assignments(album_id)
                if not reset.ok:
                    return Result.failure(reset.error)
                guest = self._pick(album_id, exclude_id)

            if guest is None:
                # Last resort: the device may get its own previous target back
                fallback = self._candidates(album_id, None, only_unassigned=False)
                if not fallback:
                    return Result.failure(NoGuestsAvailable("No approved guests available"))
                guest = fallback[0]
                self.session.exec(
                    update(Guest).where(col(Guest.id) == guest.id).values(assigned=True)
                )
                self.session.commit()

            self.session.refresh(guest)
        except SQLAlchemyError as e:
            return remote_failure(self.session, e, "fetching unassigned guest")

        self._publish(guest)
        return Result.success(guest)

    def store_assignment(self, album_id: str, guest_id: str, device_id: str) -> Result[bool]:
        """Record device -> guest locally and mark the guest assigned remotely."""
        try:
            guest = self.session.get(Guest, guest_id)
            if guest is None or guest.album_id != album_id:
                return Result.failure(NotFound("Guest not found"))
            was_assigned = bool(guest.assigned)
            guest.assigned = True
            self.session.add(guest)
            self.session.commit()
            self.session.refresh(guest)
        except SQLAlchemyError as e:
            return remote_failure(self.session, e, "storing guest assignment")

        try:
            self.store.set(assignment_key(album_id, device_id), guest_id)
        except OSError as e:
            logger.error("Error saving device assignment: %s", e)
            if not was_assigned:
                self._mark(guest_id, False)
            return Result.failure(RemoteCallFailed(f"Failed to save assignment: {e}"))
        self._publish(guest)
        return Result.success(True)

    def clear_assignment(self, album_id: str, device_id: str) -> Result[bool]:
        """Release this device's target. No-op when it has none."""
        key = assignment_key(album_id, device_id)
        guest_id = self.store.get(key)
        if not guest_id:
            return Result.success(False)

        logger.info("Marking guest as unassigned: %s", guest_id)
        try:
            guest = self.session.get(Guest, guest_id)
            if guest is not None:
                guest.assigned = False
                self.session.add(guest)
                self.session.commit()
                self.session.refresh(guest)
        except SQLAlchemyError as e:
            return remote_failure(self.session, e, "clearing guest assignment")

        try:
            self.store.remove(key)
        except OSError as e:
            logger.error("Error removing device assignment: %s", e)
            if guest is not None:
                self._mark(guest.id, True)
            return Result.failure(RemoteCallFailed(f"Failed to clear assignment: {e}"))
        if guest is not None:
            self._publish(guest)
        return Result.success(True)

    def reset_all_assignments(self, album_id: str) -> Result[int]:
        """Set ``assigned=False`` for every guest in the album."""
        logger.info("Resetting all guest assignments for album %s", album_id)
        try:
            result = self.session.exec(
                update(Guest).where(col(Guest.album_id) == album_id).values(assigned=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            return remote_failure(self.session, e, "resetting guest assignments")
        return Result.success(result.rowcount)

    def get_guest_for_device(self, album_id: str, device_id: str) -> Result[Guest]:
        """The device's stored target if it is still approved with a photo, else data=None."""
        guest_id = self.current_guest_id(album_id, device_id)
        if not guest_id:
            return Result.success(None)
        try:
            guest = self.session.get(Guest, guest_id)
        except SQLAlchemyError as e:
            return remote_failure(self.session, e, "fetching assigned guest")
        if guest is None or guest.album_id != album_id or not guest.is_eligible_target:
            return Result.success(None)
        return Result.success(guest)

    def current_or_new(self, album_id: str, device_id: str) -> Result[Guest]:
        """The device's live target, or a freshly assigned one."""
        current = self.get_guest_for_device(album_id, device_id)
        if not current.ok or current.data is not None:
            return current
        return self.next_guest(album_id, device_id)

    def next_guest(self, album_id: str, device_id: str) -> Result[Guest]:
        """Swap this device's target for a different one where possible."""
        previous_id = self.current_guest_id(album_id, device_id)
        result = self.get_unassigned_guest(album_id, device_id)
        if not result.ok:
            return result

        guest = result.data
        if previous_id and previous_id != guest.id:
            cleared = self.clear_assignment(album_id, device_id)
            if not cleared.ok:
                self._mark(guest.id, False)
                return Result.failure(cleared.error)
        stored = self.store_assignment(album_id, guest.id, device_id)
        if not stored.ok:
            self._mark(guest.id, False)
            return Result.failure(stored.error)
        self.session.refresh(guest)
        return Result.success(guest)

    def _mark(self, guest_id: str, assigned: bool) -> None:
        """Undo a half-finished change to a guest's ``assigned`` flag."""
        try:
            self.session.exec(
                update(Guest).where(col(Guest.id) == guest_id).values(assigned=assigned)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Error resetting guest %s to assigned=%s: %s", guest_id, assigned, e)

    def _publish(self, guest: Guest) -> None:
        if self.bus is not None:
            self.bus.publish(
                ChangeEvent(GUESTS_TABLE, UPDATE, guest.album_id, old={"id": guest.id}, new=guest.to_row())
            )
