# routers/ai.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from db.database import get_db
from auth.deps import get_current_user
from models.user import User

from schemas.ai import (
    AIFeedbackCreate,
    AIPlantCreate,
    AIPlantCreated,
    CareInstructions,
    CareRequest,
    Identification,
    IdentifyRequest,
    WizardStatus,
)
from services import wizard_service
from services.ai_service import PlantAIProvider, get_plant_ai

import base64
import binascii

router = APIRouter(prefix="/ai", tags=["AI"])


# -------------------------
# utils
# -------------------------
def _decode_image(image_base64: str) -> bytes:
    """data URL（data:image/jpeg;base64,...）でも素の base64 でも受け付ける"""
    data = image_base64.split(",", 1)[1] if image_base64.startswith("data:") else image_base64
    try:
        image = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="image_base64 is not valid base64")
    if not image:
        raise HTTPException(status_code=400, detail="image is empty")
    return image


# -------------------------
# endpoints
# -------------------------
@router.get("/status", response_model=WizardStatus)
def wizard_status(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """wizard 開始前のチェック（上限に達していれば 429）"""
    return wizard_service.get_wizard_status(db, user.user_id)


@router.post("/identify", response_model=Identification)
def identify(
    data: IdentifyRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    provider: PlantAIProvider = Depends(get_plant_ai),
):
    image = _decode_image(data.image_base64)
    return wizard_service.identify_plant(db, user.user_id, image, provider)


@router.post("/care", response_model=CareInstructions)
def care(
    data: CareRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    provider: PlantAIProvider = Depends(get_plant_ai),
):
    return wizard_service.generate_care(db, user.user_id, data.plant_name, provider)


@router.post("/plants", response_model=AIPlantCreated, status_code=201)
def save_plant(data: AIPlantCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    plant, remaining = wizard_service.save_ai_plant(db, user.user_id, data.model_dump())
    return {"success": True, "plant_id": plant.id, "ai_remaining": remaining}


@router.post("/feedback")
def feedback(data: AIFeedbackCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    wizard_service.record_ai_feedback(
        db,
        user.user_id,
        data.plant_id,
        data.feedback_type.value,
        data.comment or "",
        data.ai_response_snapshot,
    )
    return {"success": True, "plant_id": data.plant_id}
