# schemas/watering.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List
from uuid import UUID


class WateringCreate(BaseModel):
    watered_at: Optional[datetime] = None  # 省略時は現在時刻


class WateringEventResponse(BaseModel):
    id: UUID
    plant_id: UUID
    watered_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class WateringResult(BaseModel):
    success: bool
    plant_id: UUID
    watered_at: datetime


class PlantNeedingWater(BaseModel):
    plant_id: UUID
    plant_name: str
    photo_url: Optional[str] = None
    last_watered: datetime
    next_watering: datetime
    days_overdue: int  # 正: 遅れている日数 / 0: 今日 / 負: あと何日


class NotificationsResponse(BaseModel):
    notifications: List[PlantNeedingWater]
    count: int
