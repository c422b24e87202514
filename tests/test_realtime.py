"""Change bus filtering and subscription lifecycle."""

from wedsnap.services.realtime import ChangeBus, ChangeEvent


def test_subscribers_filtered_by_table_album_and_event():
    bus = ChangeBus()
    photos, deletes, guests = [], [], []
    bus.subscribe("photos", "alb_1", photos.append)
    bus.subscribe("photos", "alb_1", deletes.append, events=("DELETE",))
    bus.subscribe("guests", "alb_1", guests.append)

    bus.publish(ChangeEvent("photos", "INSERT", "alb_1", new={"id": "p1"}))
    bus.publish(ChangeEvent("photos", "DELETE", "alb_1", old={"id": "p1"}))
    bus.publish(ChangeEvent("photos", "INSERT", "alb_2", new={"id": "p2"}))

    assert [e.type for e in photos] == ["INSERT", "DELETE"]
    assert [e.type for e in deletes] == ["DELETE"]
    assert guests == []


def test_unsubscribe_twice_is_harmless():
    bus = ChangeBus()
    seen = []
    sub = bus.subscribe("photos", "alb_1", seen.append)

    sub.unsubscribe()
    sub.unsubscribe()
    bus.publish(ChangeEvent("photos", "INSERT", "alb_1", new={"id": "p1"}))

    assert not sub.active
    assert seen == []
    assert bus.subscriber_count == 0


def test_failing_listener_does_not_block_others():
    bus = ChangeBus()
    seen = []

    def broken(event):
        raise RuntimeError("listener bug")

    bus.subscribe("photos", "alb_1", broken)
    bus.subscribe("photos", "alb_1", seen.append)
    bus.publish(ChangeEvent("photos", "INSERT", "alb_1", new={"id": "p1"}))

    assert len(seen) == 1
