# routers/rooms.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from db.database import get_db
from auth.deps import get_current_user
from models.user import User
from schemas.room import RoomCreate, RoomUpdate, RoomResponse, RoomWithCount
from services import room_service
from typing import List
from uuid import UUID

router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.get("/", response_model=List[RoomWithCount])
def list_rooms(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return room_service.get_rooms_with_counts(db, user.user_id)


@router.post("/", response_model=RoomResponse, status_code=201)
def create_room(data: RoomCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return room_service.create_room(db, user.user_id, data.name)


@router.put("/{room_id}", response_model=RoomResponse)
def rename_room(
    room_id: UUID,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    return room_service.rename_room(db, room_id, user.user_id, data.name)


@router.delete("/{room_id}")
def delete_room(room_id: UUID, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    unassigned = room_service.delete_room(db, room_id, user.user_id)
    return {"message": "Room deleted", "plants_unassigned": unassigned}
