import logging
import os
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import store
from models.user import utcnow
from schemas.watering import PlantNeedingWater
from services.constants import DEFAULT_PLANTS_DUE_SOON_THRESHOLD_DAYS
from services.errors import StoreUnavailable
from services.schedule_service import compute_schedule, to_naive_utc

logger = logging.getLogger(__name__)


def due_soon_threshold_days() -> int:
    """DUE_SOON_THRESHOLD_DAYS（env）で上書きできる。今日 / overdue は常に含まれる"""
    raw = os.getenv("DUE_SOON_THRESHOLD_DAYS")
    if raw is None:
        return DEFAULT_PLANTS_DUE_SOON_THRESHOLD_DAYS
    try:
        return max(int(raw), 0)
    except ValueError:
        logger.warning("invalid DUE_SOON_THRESHOLD_DAYS=%r, using default", raw)
        return DEFAULT_PLANTS_DUE_SOON_THRESHOLD_DAYS


def list_plants_needing_water(
    db: Session,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
    threshold_days: Optional[int] = None,
) -> List[PlantNeedingWater]:
    """
    水やりが必要（今日 / overdue / threshold 日以内）な植物を急ぎの順に返す

    並び順: days_until_watering 昇順（一番遅れているものが先頭）→ 同じなら名前順
    DB エラー時は空リスト（通知が出ないだけで他の画面は動くようにする）
    """
    now = to_naive_utc(now) or utcnow()
    if threshold_days is None:
        threshold_days = due_soon_threshold_days()
    # 今日 / overdue の植物は threshold に関係なく含める
    threshold_days = max(threshold_days, 0)

    try:
        plants = store.fetch_plants_by_user(db, user_id)
        last_watered = store.fetch_last_watered_by_user(db, user_id)
    except (SQLAlchemyError, StoreUnavailable):
        logger.exception("failed to load plants needing water for user %s", user_id)
        return []

    due = []
    for plant in plants:
        schedule = compute_schedule(plant.watering_frequency_days, last_watered.get(plant.id), now)
        if schedule.days_until_watering is None:
            continue
        if schedule.days_until_watering > threshold_days:
            continue
        due.append((schedule.days_until_watering, plant.name, plant, schedule))

    due.sort(key=lambda item: (item[0], item[1]))

    return [
        PlantNeedingWater(
            plant_id=plant.id,
            plant_name=plant.name,
            photo_url=plant.photo_url,
            last_watered=schedule.last_watered_date,
            next_watering=schedule.next_watering_date,
            days_overdue=-days_until,
        )
        for days_until, _, plant, schedule in due
    ]
