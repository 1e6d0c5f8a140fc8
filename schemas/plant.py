# schemas/plant.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from uuid import UUID

from services.constants import (
    MAX_PLANT_NAME_LENGTH,
    MIN_WATERING_FREQUENCY_DAYS,
    MAX_WATERING_FREQUENCY_DAYS,
)
from schemas.watering import WateringEventResponse


class ScheduleStatus(BaseModel):
    """水やり予定（DB には保存しない。毎回計算する）"""
    next_watering_date: Optional[datetime] = None
    last_watered_date: Optional[datetime] = None
    days_until_watering: Optional[int] = None
    is_overdue: bool = False


class PlantBase(BaseModel):
    name: str = Field(..., max_length=MAX_PLANT_NAME_LENGTH)
    watering_frequency_days: int = Field(..., ge=MIN_WATERING_FREQUENCY_DAYS, le=MAX_WATERING_FREQUENCY_DAYS)
    photo_url: Optional[str] = None
    room_id: Optional[UUID] = None
    light_requirements: Optional[str] = None
    fertilizing_tips: Optional[str] = None
    pruning_tips: Optional[str] = None
    troubleshooting: Optional[str] = None


class PlantCreate(PlantBase):
    pass


class PlantUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=MAX_PLANT_NAME_LENGTH)
    watering_frequency_days: Optional[int] = Field(None, ge=MIN_WATERING_FREQUENCY_DAYS, le=MAX_WATERING_FREQUENCY_DAYS)
    photo_url: Optional[str] = None
    room_id: Optional[UUID] = None
    light_requirements: Optional[str] = None
    fertilizing_tips: Optional[str] = None
    pruning_tips: Optional[str] = None
    troubleshooting: Optional[str] = None


class PlantResponse(PlantBase):
    id: UUID
    user_id: UUID
    created_with_ai: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True  # pydantic v2


class PlantWithSchedule(PlantResponse):
    room_name: Optional[str] = None
    next_watering_date: Optional[datetime] = None
    last_watered_date: Optional[datetime] = None
    days_until_watering: Optional[int] = None
    is_overdue: bool = False


class PlantWithDetails(PlantWithSchedule):
    watering_history: List[WateringEventResponse] = []
