from datetime import datetime, timedelta, timezone
from typing import List, Optional
import math

from models.plant import Plant
from schemas.plant import ScheduleStatus, PlantWithSchedule
from services.constants import DEFAULT_PLANTS_OVERDUE_THRESHOLD_DAYS, SECONDS_PER_DAY


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    aware / naive を問わず UTC naive に揃える
    """
    if dt is None:
        return None
    if dt.tzinfo is not None and dt.utcoffset() is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def compute_schedule(
    frequency_days: int,
    last_watered_at: Optional[datetime],
    now: datetime,
) -> ScheduleStatus:
    """
    最後の水やり時刻と頻度から次回の水やり予定を計算する（副作用なし）

    - 水やり履歴が無い植物はまだスケジュールされていない扱い（overdue にもしない）
    - days_until_watering は切り上げ。0 は「今日」、負なら overdue
    """
    if last_watered_at is None:
        return ScheduleStatus()

    last = to_naive_utc(last_watered_at)
    next_date = last + timedelta(days=frequency_days)
    remaining = (next_date - to_naive_utc(now)).total_seconds() / SECONDS_PER_DAY
    days_until = math.ceil(remaining)

    return ScheduleStatus(
        next_watering_date=next_date,
        last_watered_date=last,
        days_until_watering=days_until,
        is_overdue=days_until <= DEFAULT_PLANTS_OVERDUE_THRESHOLD_DAYS,
    )


def attach_schedule(
    plant: Plant,
    last_watered_at: Optional[datetime],
    now: datetime,
) -> PlantWithSchedule:
    schedule = compute_schedule(plant.watering_frequency_days, last_watered_at, now)
    view = PlantWithSchedule.model_validate(plant)
    return view.model_copy(update={
        "room_name": plant.room.name if plant.room is not None else None,
        **schedule.model_dump(),
    })


def sort_by_next_watering(plants: List[PlantWithSchedule]) -> List[PlantWithSchedule]:
    """次回の水やりが近い順。未スケジュールの植物は最後"""
    return sorted(
        plants,
        key=lambda p: (p.next_watering_date is None, p.next_watering_date or datetime.max),
    )
