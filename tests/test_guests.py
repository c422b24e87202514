"""Guest directory service."""

import json

from wedsnap.models.photo import Photo
from wedsnap.services.errors import InvalidRequest
from wedsnap.services.guest_service import add_guest, list_guest_photos, upload_guest_photo

from conftest import jpeg_bytes


def _photo(session, album_id, metadata):
    photo = Photo(
        album_id=album_id,
        url="http://testserver/storage/photos/a.jpg",
        thumbnail_url="http://testserver/storage/photos/a_thumbnail.jpg",
        approved=True,
        metadata_json=json.dumps(metadata),
    )
    session.add(photo)
    session.commit()
    session.refresh(photo)
    return photo


def test_guest_photos_ignore_malformed_guest_ids(session, make_album, make_guest):
    album = make_album()
    guest = make_guest(album.id, "Carla")
    tagged = _photo(session, album.id, {"guestIds": [guest.id]})
    _photo(session, album.id, {"guestIds": 5})
    _photo(session, album.id, {"guestIds": f"xx{guest.id}xx"})
    _photo(session, album.id, {"guestIds": {guest.id: True}})

    result = list_guest_photos(album.id, guest, session)

    assert result.ok
    assert [p.id for p in result.data] == [tagged.id]


def test_guest_photos_match_assignment_name(session, make_album, make_guest):
    album = make_album()
    guest = make_guest(album.id, "Carla")
    named = _photo(session, album.id, {"assignment": "Carla", "gameChallenge": True})
    _photo(session, album.id, {"assignment": "Carlos"})

    assert [p.id for p in list_guest_photos(album.id, guest, session).data] == [named.id]


def test_new_guest_starts_unapproved(session, bus, make_album):
    album = make_album()
    events = []
    bus.subscribe("guests", album.id, events.append)

    guest = add_guest(album.id, "  Dana  ", session, bus).data

    assert guest.guest_name == "Dana"
    assert guest.approved is False and guest.assigned is False
    assert [e.type for e in events] == ["INSERT"]


def test_blank_guest_name_rejected(session, make_album):
    album = make_album()
    assert isinstance(add_guest(album.id, " ", session).error, InvalidRequest)


def test_selfie_with_unknown_extension_rejected(session, store, make_album, make_guest):
    album = make_album()
    guest = make_guest(album.id, "Carla", photo_url=None)

    result = upload_guest_photo(guest.id, b"<script>alert(1)</script>", ".html", session, store)

    assert isinstance(result.error, InvalidRequest)
    assert not (store.root / store.bucket / "guests").exists()


def test_selfie_replaces_previous_object(session, store, make_album, make_guest):
    album = make_album()
    guest = make_guest(album.id, "Carla", photo_url=None)

    first = upload_guest_photo(guest.id, jpeg_bytes(), ".jpg", session, store).data.photo_url
    second = upload_guest_photo(guest.id, jpeg_bytes(), ".jpg", session, store).data.photo_url

    assert first != second
    assert store.path_from_url(second).startswith(f"guests/{guest.id}/")
    assert not store.exists(store.path_from_url(first))
