# routers/watering.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from db.database import get_db
from auth.deps import get_current_user
from models.user import User
from schemas.watering import WateringCreate, WateringResult, NotificationsResponse
from services import watering_service
from services.notification_service import list_plants_needing_water
from typing import Optional
from uuid import UUID

router = APIRouter(tags=["Watering"])


@router.post("/water/{plant_id}", response_model=WateringResult)
def water_plant(
    plant_id: UUID,
    data: Optional[WateringCreate] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """水やりを記録する。通知一覧はクライアント側で取り直すこと"""
    watered_at = data.watered_at if data else None
    event = watering_service.record_watering(db, plant_id, user.user_id, watered_at)
    return {"success": True, "plant_id": plant_id, "watered_at": event.watered_at}


@router.get("/notifications", response_model=NotificationsResponse)
def get_notifications(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    notifications = list_plants_needing_water(db, user.user_id)
    return {"notifications": notifications, "count": len(notifications)}
