import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import store
from models.plant import Plant
from models.user import utcnow
from models.watering_event import WateringEvent
from services.constants import DEFAULT_WATERING_HISTORY_LIMIT
from services.errors import NotFoundOrUnauthorized, StoreUnavailable
from services.schedule_service import to_naive_utc

logger = logging.getLogger(__name__)


def get_owned_plant(db: Session, plant_id: uuid.UUID, user_id: uuid.UUID) -> Plant:
    """
    自分の植物を取得する。存在しない / 他人の植物は同じエラーにする
    """
    try:
        plant = store.fetch_plant(db, plant_id)
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Could not load plant: {e}") from e

    if plant is None or plant.user_id != user_id:
        raise NotFoundOrUnauthorized()
    return plant


def record_watering(
    db: Session,
    plant_id: uuid.UUID,
    user_id: uuid.UUID,
    watered_at: Optional[datetime] = None,
) -> WateringEvent:
    """
    水やりを記録する。次回予定はキャッシュしないので、次に読むときに再計算される
    """
    get_owned_plant(db, plant_id, user_id)

    when = to_naive_utc(watered_at) or utcnow()
    try:
        event = store.append_watering_event(db, plant_id, when)
        db.commit()
        db.refresh(event)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("failed to record watering for plant %s: %s", plant_id, e)
        raise StoreUnavailable(f"Could not record watering: {e}") from e

    logger.info("plant %s watered at %s", plant_id, when.isoformat())
    return event


def get_watering_history(
    db: Session,
    plant_id: uuid.UUID,
    user_id: uuid.UUID,
    limit: int = DEFAULT_WATERING_HISTORY_LIMIT,
) -> List[WateringEvent]:
    """新しい順の水やり履歴。他人の植物なら空リスト"""
    try:
        get_owned_plant(db, plant_id, user_id)
    except NotFoundOrUnauthorized:
        return []
    return store.fetch_watering_events(db, plant_id, limit)
