"""
AI wizard: 写真 → 識別 → ケア生成 → 保存 → フィードバック

どのステップでも先に植物数 / 今月の AI 生成回数をチェックする。
AI 生成回数の加算は save_ai_plant で植物の保存が成功したときだけ行い、
植物の INSERT と同じトランザクションで commit する
（＝「AI で植物が作られた」⇔「1回分消費した」）
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.ai_feedback import AIFeedback
from models.plant import Plant
from models.user import utcnow
from schemas.ai import CareInstructions, Identification, WizardStatus
from schemas.room import RoomResponse
from services import plant_service, quota_service, room_service
from services.constants import FREE_AI_GENERATIONS_PER_MONTH
from services.ai_service import PlantAIProvider
from services.errors import QuotaExceeded, StoreUnavailable
from services.schedule_service import to_naive_utc
from services.watering_service import get_owned_plant

logger = logging.getLogger(__name__)


def _require_quotas(db: Session, user_id: uuid.UUID, now: Optional[datetime] = None):
    plants = quota_service.require_plant_slot(db, user_id)
    ai = quota_service.require_ai_generation(db, user_id, now)
    return plants, ai


def get_wizard_status(db: Session, user_id: uuid.UUID, now: Optional[datetime] = None) -> WizardStatus:
    """wizard に入れるかどうか（入れなければ QuotaExceeded）"""
    plants, ai = _require_quotas(db, user_id, now)
    rooms = room_service.get_user_rooms(db, user_id)
    return WizardStatus(
        plants=plants,
        ai_generations=ai,
        ai_remaining=ai.limit - ai.used,
        rooms=[RoomResponse.model_validate(r) for r in rooms],
    )


def identify_plant(
    db: Session,
    user_id: uuid.UUID,
    image: bytes,
    provider: PlantAIProvider,
    now: Optional[datetime] = None,
) -> Identification:
    _require_quotas(db, user_id, now)
    result = provider.identify(image)
    logger.info("identified %s (%.2f) for user %s", result.scientific_name, result.confidence, user_id)
    return result


def generate_care(
    db: Session,
    user_id: uuid.UUID,
    plant_name: str,
    provider: PlantAIProvider,
    now: Optional[datetime] = None,
) -> CareInstructions:
    _require_quotas(db, user_id, now)
    return provider.generate_care(plant_name)


def save_ai_plant(
    db: Session,
    user_id: uuid.UUID,
    data: Dict[str, Any],
    now: Optional[datetime] = None,
) -> tuple[Plant, int]:
    """
    AI で作った植物を保存し、今月の AI 生成回数を +1 する。
    (plant, 今月の残り回数) を返す。途中で失敗したら何も残らない
    """
    # チェックと加算で同じ月を見るよう、時刻はここで1回だけ取る
    now = to_naive_utc(now) or utcnow()
    _require_quotas(db, user_id, now)

    plant = plant_service.create_ai_plant(db, user_id, data, commit=False)
    try:
        used = quota_service.increment_ai_usage(db, user_id, now, commit=False)
        db.commit()
        db.refresh(plant)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to save AI plant: {e}") from e
    except (StoreUnavailable, QuotaExceeded):
        # 別リクエストが先に最後の枠を使った場合も植物は残さない
        db.rollback()
        raise

    remaining = max(FREE_AI_GENERATIONS_PER_MONTH - used, 0)
    logger.info("AI plant %s saved for user %s (%d AI generations left)", plant.id, user_id, remaining)
    return plant, remaining


def record_ai_feedback(
    db: Session,
    user_id: uuid.UUID,
    plant_id: uuid.UUID,
    feedback_type: str,
    comment: str = "",
    ai_response_snapshot: Optional[Dict[str, Any]] = None,
) -> AIFeedback:
    get_owned_plant(db, plant_id, user_id)

    try:
        feedback = AIFeedback(
            user_id=user_id,
            plant_id=plant_id,
            feedback_type=feedback_type,
            comment=(comment or "").strip() or None,
            ai_response_snapshot=ai_response_snapshot,
            created_at=utcnow(),
        )
        db.add(feedback)
        db.commit()
        db.refresh(feedback)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to record feedback: {e}") from e
    return feedback
