"""Find-the-guest assignment coordinator."""

from sqlalchemy.exc import OperationalError
from sqlmodel import select

from wedsnap.models.guest import Guest
from wedsnap.services.assignment_service import AssignmentCoordinator
from wedsnap.services.errors import NoGuestsAvailable, NotFound, RemoteCallFailed, Result
from wedsnap.utils.kvstore import KeyValueStore, assignment_key


def _flags(session, album_id):
    session.expire_all()
    return {g.id: g.assigned for g in session.exec(select(Guest).where(Guest.album_id == album_id)).all()}


def test_returned_guest_is_assigned_approved_and_has_photo(session, kv, make_album, make_guest):
    album = make_album()
    make_guest(album.id, "Unapproved", approved=False)
    make_guest(album.id, "No photo", photo_url=None)
    target = make_guest(album.id, "Carla")

    coordinator = AssignmentCoordinator(session, kv)
    result = coordinator.get_unassigned_guest(album.id, "dev-a")

    assert result.ok
    guest = result.data
    assert guest.id == target.id
    assert guest.assigned is True
    assert guest.approved is True
    assert guest.photo_url


def test_prefers_guests_not_assigned_elsewhere(session, kv, make_album, make_guest):
    album = make_album()
    taken = make_guest(album.id, "Taken", assigned=True)
    free = make_guest(album.id, "Free")

    result = AssignmentCoordinator(session, kv).get_unassigned_guest(album.id, "dev-a")

    assert result.data.id == free.id
    assert _flags(session, album.id)[taken.id] is True


def test_avoids_device_previous_target(session, kv, make_album, make_guest):
    album = make_album()
    first = make_guest(album.id, "First")
    second = make_guest(album.id, "Second")
    kv.set(assignment_key(album.id, "dev-a"), first.id)

    result = AssignmentCoordinator(session, kv).get_unassigned_guest(album.id, "dev-a")

    assert result.data.id == second.id


def test_exhausted_pool_resets_then_serves(session, kv, make_album, make_guest):
    album = make_album()
    a = make_guest(album.id, "A", assigned=True)
    b = make_guest(album.id, "B", assigned=True)

    result = AssignmentCoordinator(session, kv).get_unassigned_guest(album.id, "dev-c")

    assert result.ok
    assert result.data.id in (a.id, b.id)
    flags = _flags(session, album.id)
    # Reset cleared everyone, then exactly the chosen guest was marked again
    assert sum(flags.values()) == 1
    assert flags[result.data.id] is True


def test_last_resort_reserves_own_previous_target(session, kv, make_album, make_guest):
    album = make_album()
    only = make_guest(album.id, "Only", assigned=True)
    kv.set(assignment_key(album.id, "dev-a"), only.id)

    result = AssignmentCoordinator(session, kv).get_unassigned_guest(album.id, "dev-a")

    assert result.ok
    assert result.data.id == only.id
    assert result.data.assigned is True


def test_single_guest_can_be_handed_to_two_devices(session, kv, make_album, make_guest):
    album = make_album()
    g = make_guest(album.id, "G")
    coordinator = AssignmentCoordinator(session, kv)

    first = coordinator.next_guest(album.id, "dev-a")
    second = coordinator.next_guest(album.id, "dev-b")

    assert first.data.id == g.id
    assert second.data.id == g.id
    assert kv.get(assignment_key(album.id, "dev-a")) == g.id
    assert kv.get(assignment_key(album.id, "dev-b")) == g.id


def test_no_eligible_guests(session, kv, make_album, make_guest):
    album = make_album()
    make_guest(album.id, "Pending", approved=False)

    result = AssignmentCoordinator(session, kv).get_unassigned_guest(album.id, "dev-a")

    assert not result.ok
    assert isinstance(result.error, NoGuestsAvailable)


def test_unknown_album(session, kv):
    result = AssignmentCoordinator(session, kv).get_unassigned_guest("alb_missing", "dev-a")
    assert isinstance(result.error, NotFound)


def test_reset_all_assignments(session, kv, make_album, make_guest):
    album = make_album()
    other = make_album()
    for name in ("A", "B", "C"):
        make_guest(album.id, name, assigned=True)
    outsider = make_guest(other.id, "Elsewhere", assigned=True)

    result = AssignmentCoordinator(session, kv).reset_all_assignments(album.id)

    assert result.ok
    assert result.data == 3
    assert not any(_flags(session, album.id).values())
    assert _flags(session, other.id)[outsider.id] is True


def test_store_and_clear_assignment(session, kv, make_album, make_guest):
    album = make_album()
    g = make_guest(album.id, "G")
    coordinator = AssignmentCoordinator(session, kv)

    assert coordinator.store_assignment(album.id, g.id, "dev-a").ok
    assert kv.get(assignment_key(album.id, "dev-a")) == g.id
    assert _flags(session, album.id)[g.id] is True

    first = coordinator.clear_assignment(album.id, "dev-a")
    assert first.ok and first.data is True
    assert kv.get(assignment_key(album.id, "dev-a")) is None
    assert _flags(session, album.id)[g.id] is False


def test_clear_assignment_is_idempotent(session, kv, make_album, make_guest):
    album = make_album()
    g = make_guest(album.id, "G")
    coordinator = AssignmentCoordinator(session, kv)
    coordinator.store_assignment(album.id, g.id, "dev-a")

    coordinator.clear_assignment(album.id, "dev-a")
    state_after_first = (_flags(session, album.id), kv.get(assignment_key(album.id, "dev-a")))
    second = coordinator.clear_assignment(album.id, "dev-a")

    assert second.ok and second.data is False
    assert (_flags(session, album.id), kv.get(assignment_key(album.id, "dev-a"))) == state_after_first


def test_next_guest_releases_previous_target(session, kv, make_album, make_guest):
    album = make_album()
    make_guest(album.id, "A")
    make_guest(album.id, "B")
    coordinator = AssignmentCoordinator(session, kv)

    first = coordinator.next_guest(album.id, "dev-a").data
    second = coordinator.next_guest(album.id, "dev-a").data

    assert first.id != second.id
    flags = _flags(session, album.id)
    assert flags[first.id] is False
    assert flags[second.id] is True
    assert kv.get(assignment_key(album.id, "dev-a")) == second.id


def test_current_or_new_keeps_existing_target(session, kv, make_album, make_guest):
    album = make_album()
    make_guest(album.id, "A")
    make_guest(album.id, "B")
    coordinator = AssignmentCoordinator(session, kv)

    first = coordinator.current_or_new(album.id, "dev-a").data
    again = coordinator.current_or_new(album.id, "dev-a").data

    assert again.id == first.id


def test_store_failure_leaves_state_unchanged(session, kv, make_album, make_guest, monkeypatch):
    album = make_album()
    g = make_guest(album.id, "G")
    coordinator = AssignmentCoordinator(session, kv)

    def broken_commit():
        raise OperationalError("UPDATE guests", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "commit", broken_commit)
    result = coordinator.store_assignment(album.id, g.id, "dev-a")
    monkeypatch.undo()

    assert isinstance(result.error, RemoteCallFailed)
    assert "database is locked" in result.error.message
    assert kv.get(assignment_key(album.id, "dev-a")) is None
    assert _flags(session, album.id)[g.id] is False


def test_assignment_changes_are_published(session, kv, bus, make_album, make_guest):
    album = make_album()
    make_guest(album.id, "G")
    seen = []
    bus.subscribe("guests", album.id, seen.append)

    AssignmentCoordinator(session, kv, bus).next_guest(album.id, "dev-a")

    assert seen
    assert all(e.type == "UPDATE" for e in seen)
    assert seen[-1].new["assigned"] is True


def test_failed_clear_releases_the_new_claim(session, kv, make_album, make_guest, monkeypatch):
    album = make_album()
    a = make_guest(album.id, "A")
    b = make_guest(album.id, "B")
    coordinator = AssignmentCoordinator(session, kv)
    assert coordinator.next_guest(album.id, "dev-a").data.id == a.id

    monkeypatch.setattr(
        coordinator, "clear_assignment",
        lambda album_id, device_id: Result.failure(RemoteCallFailed("database is locked")),
    )
    result = coordinator.next_guest(album.id, "dev-a")

    assert isinstance(result.error, RemoteCallFailed)
    assert _flags(session, album.id) == {a.id: True, b.id: False}
    assert kv.get(assignment_key(album.id, "dev-a")) == a.id


class UnwritableStore(KeyValueStore):
    def _flush(self):
        raise OSError("No space left on device")


def test_key_store_failure_unmarks_claimed_guest(session, make_album, make_guest):
    album = make_album()
    g = make_guest(album.id, "G")
    kv = UnwritableStore()

    result = AssignmentCoordinator(session, kv).next_guest(album.id, "dev-a")

    assert isinstance(result.error, RemoteCallFailed)
    assert "No space left" in result.error.message
    assert kv.get(assignment_key(album.id, "dev-a")) is None
    assert _flags(session, album.id)[g.id] is False


def test_store_assignment_keeps_existing_flag_on_key_failure(session, make_album, make_guest):
    album = make_album()
    g = make_guest(album.id, "G", assigned=True)

    result = AssignmentCoordinator(session, UnwritableStore()).store_assignment(album.id, g.id, "dev-b")

    assert isinstance(result.error, RemoteCallFailed)
    # Another device still holds this guest
    assert _flags(session, album.id)[g.id] is True


def test_clear_failure_keeps_mapping_and_flag(session, kv, make_album, make_guest, monkeypatch):
    album = make_album()
    g = make_guest(album.id, "G")
    coordinator = AssignmentCoordinator(session, kv)
    coordinator.store_assignment(album.id, g.id, "dev-a")

    def broken_flush():
        raise OSError("read-only file system")

    monkeypatch.setattr(kv, "_flush", broken_flush)
    result = coordinator.clear_assignment(album.id, "dev-a")

    assert isinstance(result.error, RemoteCallFailed)
    assert kv.get(assignment_key(album.id, "dev-a")) == g.id
    assert _flags(session, album.id)[g.id] is True


def test_stored_target_without_photo_is_not_current(session, kv, make_album, make_guest):
    album = make_album()
    g = make_guest(album.id, "G")
    coordinator = AssignmentCoordinator(session, kv)
    coordinator.store_assignment(album.id, g.id, "dev-a")

    g.photo_url = ""
    session.add(g)
    session.commit()

    assert coordinator.get_guest_for_device(album.id, "dev-a").data is None
