import pytest

from models.plant import Plant
from models.room import Room
from services import room_service
from services.errors import NotFoundOrUnauthorized, QuotaExceeded, ValidationError
from conftest import make_plant


def test_create_and_list_rooms_by_name(db, user):
    room_service.create_room(db, user.user_id, "Office")
    room_service.create_room(db, user.user_id, " Bedroom ")

    assert [r.name for r in room_service.get_user_rooms(db, user.user_id)] == ["Bedroom", "Office"]


@pytest.mark.parametrize("name", ["", "  ", "r" * 51])
def test_room_name_is_validated(db, user, name):
    with pytest.raises(ValidationError) as exc:
        room_service.create_room(db, user.user_id, name)

    assert "name" in exc.value.fields


def test_room_limit(db, user, monkeypatch):
    monkeypatch.setattr(room_service, "MAX_ROOMS_PER_USER", 1)
    room_service.create_room(db, user.user_id, "Only")

    with pytest.raises(QuotaExceeded) as exc:
        room_service.create_room(db, user.user_id, "One more")

    assert exc.value.kind == "rooms"


def test_rename_room(db, user):
    room = room_service.create_room(db, user.user_id, "Lounge")

    assert room_service.rename_room(db, room.id, user.user_id, "Living room").name == "Living room"


def test_foreign_room_is_hidden(db, user, other_user):
    room = room_service.create_room(db, other_user.user_id, "Theirs")

    with pytest.raises(NotFoundOrUnauthorized):
        room_service.get_room(db, room.id, user.user_id)
    with pytest.raises(NotFoundOrUnauthorized):
        room_service.delete_room(db, room.id, user.user_id)


def test_deleting_room_unassigns_plants(db, user):
    room = room_service.create_room(db, user.user_id, "Balcony")
    first = make_plant(db, user, "Tomato", room=room)
    second = make_plant(db, user, "Pepper", room=room)

    assert room_service.delete_room(db, room.id, user.user_id) == 2

    assert db.query(Room).count() == 0
    assert db.query(Plant).count() == 2
    for plant in (first, second):
        db.refresh(plant)
        assert plant.room_id is None


def test_rooms_with_plant_counts(db, user):
    kitchen = room_service.create_room(db, user.user_id, "Kitchen")
    room_service.create_room(db, user.user_id, "Hall")
    make_plant(db, user, "Basil", room=kitchen)
    make_plant(db, user, "Mint", room=kitchen)

    counts = {r.name: r.plant_count for r in room_service.get_rooms_with_counts(db, user.user_id)}

    assert counts == {"Hall": 0, "Kitchen": 2}
