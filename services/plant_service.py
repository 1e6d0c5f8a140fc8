import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import store
from models.plant import Plant
from models.user import utcnow
from schemas.plant import PlantWithDetails, PlantWithSchedule
from schemas.watering import WateringEventResponse
from services.constants import (
    DEFAULT_WATERING_HISTORY_LIMIT,
    MAX_PLANT_NAME_LENGTH,
    MAX_WATERING_FREQUENCY_DAYS,
    MIN_WATERING_FREQUENCY_DAYS,
)
from services.errors import NotFoundOrUnauthorized, StoreUnavailable, ValidationError
from services import quota_service
from services.schedule_service import attach_schedule, sort_by_next_watering, to_naive_utc
from services.watering_service import get_owned_plant

logger = logging.getLogger(__name__)

CARE_FIELDS = ("light_requirements", "fertilizing_tips", "pruning_tips", "troubleshooting")
UPDATABLE_FIELDS = ("name", "watering_frequency_days", "photo_url", "room_id") + CARE_FIELDS


# -------------------------
# validation
# -------------------------
def _validate_name(name: Any, errors: Dict[str, str]) -> Optional[str]:
    if not isinstance(name, str) or not name.strip():
        errors["name"] = "Plant name is required"
        return None
    name = name.strip()
    if len(name) > MAX_PLANT_NAME_LENGTH:
        errors["name"] = f"Plant name must be {MAX_PLANT_NAME_LENGTH} characters or less"
        return None
    return name


def _validate_frequency(value: Any, errors: Dict[str, str]) -> Optional[int]:
    try:
        days = int(value)
    except (TypeError, ValueError):
        days = None
    if days is None or isinstance(value, bool) or not (MIN_WATERING_FREQUENCY_DAYS <= days <= MAX_WATERING_FREQUENCY_DAYS):
        errors["watering_frequency_days"] = (
            f"Watering frequency must be between {MIN_WATERING_FREQUENCY_DAYS} "
            f"and {MAX_WATERING_FREQUENCY_DAYS} days"
        )
        return None
    return days


def validate_plant_data(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    植物データを検証して正規化した dict を返す。
    partial=True（更新）なら渡されたフィールドだけ検証する
    """
    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    if not partial or "name" in data:
        cleaned["name"] = _validate_name(data.get("name"), errors)
    if not partial or "watering_frequency_days" in data:
        cleaned["watering_frequency_days"] = _validate_frequency(data.get("watering_frequency_days"), errors)

    if errors:
        raise ValidationError(errors)

    for field in ("photo_url", "room_id") + CARE_FIELDS:
        if field in data:
            value = data[field]
            if isinstance(value, (list, tuple)):
                # AI のケア情報は箇条書きで来るので改行区切りで保存
                value = "\n".join(str(v) for v in value)
            cleaned[field] = value or None
        elif not partial:
            cleaned[field] = None

    return cleaned


def _check_room(db: Session, room_id: Optional[uuid.UUID], user_id: uuid.UUID) -> None:
    if room_id is not None and store.fetch_room(db, room_id, user_id) is None:
        raise NotFoundOrUnauthorized("Room not found or unauthorized")


# -------------------------
# create / update / delete
# -------------------------
def create_plant(
    db: Session,
    user_id: uuid.UUID,
    data: Dict[str, Any],
    created_with_ai: bool = False,
    commit: bool = True,
) -> Plant:
    """
    植物を作成する。上限（MAX_PLANTS_PER_USER）チェック込み
    commit=False なら flush まで（AI wizard で使用量の加算と同じトランザクションにする）
    """
    cleaned = validate_plant_data(data)
    quota_service.require_plant_slot(db, user_id)

    try:
        _check_room(db, cleaned["room_id"], user_id)
        now = utcnow()
        plant = Plant(
            user_id=user_id,
            created_with_ai=created_with_ai,
            created_at=now,
            updated_at=now,
            **cleaned,
        )
        db.add(plant)
        db.flush()
        if commit:
            db.commit()
            db.refresh(plant)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to create plant: {e}") from e

    logger.info("plant %s created for user %s (ai=%s)", plant.id, user_id, created_with_ai)
    return plant


def create_ai_plant(db: Session, user_id: uuid.UUID, data: Dict[str, Any], commit: bool = True) -> Plant:
    return create_plant(db, user_id, data, created_with_ai=True, commit=commit)


def update_plant(
    db: Session,
    plant_id: uuid.UUID,
    user_id: uuid.UUID,
    data: Dict[str, Any],
) -> Plant:
    plant = get_owned_plant(db, plant_id, user_id)
    cleaned = validate_plant_data(
        {k: v for k, v in data.items() if k in UPDATABLE_FIELDS},
        partial=True,
    )

    try:
        if "room_id" in cleaned:
            _check_room(db, cleaned["room_id"], user_id)
        for field, value in cleaned.items():
            setattr(plant, field, value)
        plant.updated_at = utcnow()
        db.commit()
        db.refresh(plant)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to update plant: {e}") from e

    return plant


def delete_plant(db: Session, plant_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """植物を削除する（水やり履歴も一緒に消える）"""
    plant = get_owned_plant(db, plant_id, user_id)
    try:
        db.delete(plant)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Failed to delete plant: {e}") from e

    logger.info("plant %s deleted by user %s", plant_id, user_id)


# -------------------------
# queries
# -------------------------
def get_user_plants(
    db: Session,
    user_id: uuid.UUID,
    room_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> List[PlantWithSchedule]:
    """ユーザーの植物一覧（水やり予定つき、次回が近い順）"""
    now = to_naive_utc(now) or utcnow()
    try:
        plants = store.fetch_plants_by_user(db, user_id, room_id)
        last_watered = store.fetch_last_watered_by_user(db, user_id)
    except SQLAlchemyError:
        logger.exception("failed to load plants for user %s", user_id)
        return []

    views = [attach_schedule(p, last_watered.get(p.id), now) for p in plants]
    return sort_by_next_watering(views)


def get_plant_by_id(
    db: Session,
    plant_id: uuid.UUID,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> PlantWithDetails:
    now = to_naive_utc(now) or utcnow()
    plant = get_owned_plant(db, plant_id, user_id)

    history = store.fetch_watering_events(db, plant_id, DEFAULT_WATERING_HISTORY_LIMIT)
    last = history[0].watered_at if history else None

    view = attach_schedule(plant, last, now)
    return PlantWithDetails(
        **view.model_dump(),
        watering_history=[WateringEventResponse.model_validate(e) for e in history],
    )
