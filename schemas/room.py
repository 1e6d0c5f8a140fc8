# schemas/room.py
from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID

from services.constants import MAX_ROOM_NAME_LENGTH


class RoomCreate(BaseModel):
    name: str = Field(..., max_length=MAX_ROOM_NAME_LENGTH)


class RoomUpdate(RoomCreate):
    pass


class RoomResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class RoomWithCount(RoomResponse):
    plant_count: int
