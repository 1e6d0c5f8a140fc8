import logging
import uuid
from typing import Any, List

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import store
from models.plant import Plant
from models.room import Room
from models.user import utcnow
from schemas.room import RoomWithCount
from services.constants import MAX_ROOM_NAME_LENGTH, MAX_ROOMS_PER_USER
from services.errors import NotFoundOrUnauthorized, QuotaExceeded, StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)


def _validate_room_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError({"name": "Room name is required"})
    name = name.strip()
    if len(name) > MAX_ROOM_NAME_LENGTH:
        raise ValidationError({"name": f"Room name must be {MAX_ROOM_NAME_LENGTH} characters or less"})
    return name


def get_user_rooms(db: Session, user_id: uuid.UUID) -> List[Room]:
    try:
        return store.fetch_rooms_by_user(db, user_id)
    except SQLAlchemyError:
        logger.exception("failed to load rooms for user %s", user_id)
        return []


def get_rooms_with_counts(db: Session, user_id: uuid.UUID) -> List[RoomWithCount]:
    return [
        RoomWithCount(
            id=room.id,
            user_id=room.user_id,
            name=room.name,
            created_at=room.created_at,
            plant_count=store.count_plants_in_room(db, room.id, user_id),
        )
        for room in get_user_rooms(db, user_id)
    ]


def get_room(db: Session, room_id: uuid.UUID, user_id: uuid.UUID) -> Room:
    room = store.fetch_room(db, room_id, user_id)
    if room is None:
        raise NotFoundOrUnauthorized("Room not found or unauthorized")
    return room


def create_room(db: Session, user_id: uuid.UUID, name: str) -> Room:
    name = _validate_room_name(name)

    used = store.count_rooms_by_user(db, user_id)
    if used >= MAX_ROOMS_PER_USER:
        raise QuotaExceeded("rooms", MAX_ROOMS_PER_USER, used)

    try:
        room = Room(user_id=user_id, name=name, created_at=utcnow())
        db.add(room)
        db.commit()
        db.refresh(room)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to create room: {e}") from e
    return room


def rename_room(db: Session, room_id: uuid.UUID, user_id: uuid.UUID, name: str) -> Room:
    name = _validate_room_name(name)
    room = get_room(db, room_id, user_id)
    try:
        room.name = name
        db.commit()
        db.refresh(room)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to update room: {e}") from e
    return room


def delete_room(db: Session, room_id: uuid.UUID, user_id: uuid.UUID) -> int:
    """
    部屋を削除する。中の植物は削除せず「部屋なし」に戻す。外した植物の数を返す
    """
    room = get_room(db, room_id, user_id)
    try:
        result = db.execute(
            update(Plant)
            .where(Plant.room_id == room_id, Plant.user_id == user_id)
            .values(room_id=None, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        db.delete(room)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to delete room: {e}") from e

    logger.info("room %s deleted, %d plants unassigned", room_id, result.rowcount)
    return result.rowcount
