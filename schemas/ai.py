# schemas/ai.py
from pydantic import BaseModel, Field
from enum import Enum
from typing import Optional, List, Dict, Any
from uuid import UUID

from services.constants import (
    MAX_PLANT_NAME_LENGTH,
    MIN_WATERING_FREQUENCY_DAYS,
    MAX_WATERING_FREQUENCY_DAYS,
)
from schemas.room import RoomResponse
from schemas.usage import QuotaStatus


class WateringAmount(str, Enum):
    LOW = "low"
    MID = "mid"
    HEAVY = "heavy"


class FeedbackType(str, Enum):
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"


# -------------------------
# provider data
# -------------------------
class Identification(BaseModel):
    scientific_name: str
    common_names: List[str] = []
    confidence: float  # 0.0 - 1.0


class CareInstructions(BaseModel):
    watering_frequency_days: int = Field(..., ge=MIN_WATERING_FREQUENCY_DAYS, le=MAX_WATERING_FREQUENCY_DAYS)
    watering_amount: WateringAmount = WateringAmount.MID
    light_requirements: str
    fertilizing_tips: List[str] = []
    pruning_tips: List[str] = []
    troubleshooting: List[str] = []


# -------------------------
# wizard requests / responses
# -------------------------
class IdentifyRequest(BaseModel):
    image_base64: str  # "data:image/jpeg;base64,..." 形式でもOK


class CareRequest(BaseModel):
    plant_name: str = Field(..., min_length=1, max_length=MAX_PLANT_NAME_LENGTH)


class AIPlantCreate(BaseModel):
    name: str = Field(..., max_length=MAX_PLANT_NAME_LENGTH)
    watering_frequency_days: int = Field(..., ge=MIN_WATERING_FREQUENCY_DAYS, le=MAX_WATERING_FREQUENCY_DAYS)
    light_requirements: Optional[str] = None
    fertilizing_tips: List[str] = []
    pruning_tips: List[str] = []
    troubleshooting: List[str] = []
    room_id: Optional[UUID] = None
    photo_url: Optional[str] = None


class AIPlantCreated(BaseModel):
    success: bool
    plant_id: UUID
    ai_remaining: int


class AIFeedbackCreate(BaseModel):
    plant_id: UUID
    feedback_type: FeedbackType
    comment: Optional[str] = ""
    ai_response_snapshot: Optional[Dict[str, Any]] = None


class WizardStatus(BaseModel):
    plants: QuotaStatus
    ai_generations: QuotaStatus
    ai_remaining: int
    rooms: List[RoomResponse]
