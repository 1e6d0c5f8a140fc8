# routers/plants.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from db.database import get_db
from auth.deps import get_current_user
from models.user import User
from schemas.plant import PlantCreate, PlantUpdate, PlantResponse, PlantWithSchedule, PlantWithDetails
from schemas.watering import WateringEventResponse
from services import plant_service, watering_service
from services.constants import DEFAULT_WATERING_HISTORY_LIMIT
from typing import List, Optional
from uuid import UUID

router = APIRouter(
    prefix="/plants",
    tags=["Plants"],
)


@router.get("/", response_model=List[PlantWithSchedule])
def list_plants(
    room_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """自分の植物一覧（次の水やりが近い順）。room_id で部屋ごとに絞り込める"""
    return plant_service.get_user_plants(db, user.user_id, room_id)


@router.post("/", response_model=PlantResponse, status_code=201)
def create_plant(
    data: PlantCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    return plant_service.create_plant(db, user.user_id, data.model_dump())


@router.get("/{plant_id}", response_model=PlantWithDetails)
def get_plant(plant_id: UUID, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return plant_service.get_plant_by_id(db, plant_id, user.user_id)


@router.put("/{plant_id}", response_model=PlantResponse)
def update_plant(
    plant_id: UUID,
    data: PlantUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    return plant_service.update_plant(db, plant_id, user.user_id, data.model_dump(exclude_unset=True))


@router.delete("/{plant_id}")
def delete_plant(plant_id: UUID, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    plant_service.delete_plant(db, plant_id, user.user_id)
    return {"message": "Plant deleted"}


@router.get("/{plant_id}/history", response_model=List[WateringEventResponse])
def get_history(
    plant_id: UUID,
    limit: int = Query(DEFAULT_WATERING_HISTORY_LIMIT, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    return watering_service.get_watering_history(db, plant_id, user.user_id, limit)
