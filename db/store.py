# db/store.py
"""
サービス層から使う DB アクセス関数。
ここでは commit しない（flush まで）。トランザクション境界は呼び出し側が決める。
"""
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from models.plant import Plant
from models.room import Room
from models.usage_record import UsageRecord
from models.user import utcnow
from models.watering_event import WateringEvent

UPSERT_RETRIES = 3


# -------------------------
# plants
# -------------------------
def fetch_plants_by_user(db: Session, user_id: uuid.UUID, room_id: Optional[uuid.UUID] = None) -> List[Plant]:
    q = db.query(Plant).filter(Plant.user_id == user_id)
    if room_id is not None:
        q = q.filter(Plant.room_id == room_id)
    return q.order_by(Plant.updated_at.desc()).all()


def fetch_plant(db: Session, plant_id: uuid.UUID) -> Optional[Plant]:
    return db.query(Plant).filter(Plant.id == plant_id).first()


def count_plants_by_user(db: Session, user_id: uuid.UUID) -> int:
    return db.query(func.count(Plant.id)).filter(Plant.user_id == user_id).scalar() or 0


def count_plants_in_room(db: Session, room_id: uuid.UUID, user_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Plant.id))
        .filter(Plant.room_id == room_id, Plant.user_id == user_id)
        .scalar()
        or 0
    )


# -------------------------
# watering history
# -------------------------
def fetch_most_recent_watering_event(db: Session, plant_id: uuid.UUID) -> Optional[WateringEvent]:
    return (
        db.query(WateringEvent)
        .filter(WateringEvent.plant_id == plant_id)
        .order_by(WateringEvent.watered_at.desc())
        .first()
    )


def fetch_last_watered_by_user(db: Session, user_id: uuid.UUID) -> Dict[uuid.UUID, datetime]:
    """ユーザーの全植物について {plant_id: 最後の水やり時刻} を1クエリで返す"""
    rows = (
        db.query(WateringEvent.plant_id, func.max(WateringEvent.watered_at))
        .join(Plant, Plant.id == WateringEvent.plant_id)
        .filter(Plant.user_id == user_id)
        .group_by(WateringEvent.plant_id)
        .all()
    )
    return {plant_id: last for plant_id, last in rows}


def fetch_watering_events(db: Session, plant_id: uuid.UUID, limit: int) -> List[WateringEvent]:
    return (
        db.query(WateringEvent)
        .filter(WateringEvent.plant_id == plant_id)
        .order_by(WateringEvent.watered_at.desc())
        .limit(limit)
        .all()
    )


def append_watering_event(db: Session, plant_id: uuid.UUID, watered_at: datetime) -> WateringEvent:
    event = WateringEvent(plant_id=plant_id, watered_at=watered_at, created_at=utcnow())
    db.add(event)
    db.flush()
    return event


# -------------------------
# rooms
# -------------------------
def fetch_rooms_by_user(db: Session, user_id: uuid.UUID) -> List[Room]:
    return db.query(Room).filter(Room.user_id == user_id).order_by(Room.name.asc()).all()


def fetch_room(db: Session, room_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Room]:
    return db.query(Room).filter(Room.id == room_id, Room.user_id == user_id).first()


def count_rooms_by_user(db: Session, user_id: uuid.UUID) -> int:
    return db.query(func.count(Room.id)).filter(Room.user_id == user_id).scalar() or 0


# -------------------------
# usage records
# -------------------------
def fetch_usage_record(db: Session, user_id: uuid.UUID, month_key: str) -> Optional[UsageRecord]:
    return (
        db.query(UsageRecord)
        .filter(UsageRecord.user_id == user_id, UsageRecord.month_year == month_key)
        .first()
    )


def upsert_usage_record(
    db: Session,
    user_id: uuid.UUID,
    month_key: str,
    delta: int,
    limit: Optional[int] = None,
) -> Optional[UsageRecord]:
    """
    (user, month) のレコードを作成 or 加算して返す。
    delta=0 なら「無ければ 0 で作る」だけ。
    加算は DB 側で count = count + delta として行う（read-modify-write はしない）
    limit を渡すと count + delta <= limit のときだけ加算し、上限に達していれば None を返す
    """
    if limit is not None and delta > limit:
        return None

    dialect = db.get_bind().dialect.name

    if dialect in ("postgresql", "sqlite"):
        applied = _upsert_on_conflict(db, dialect, user_id, month_key, delta, limit)
    else:
        applied = _upsert_with_retry(db, user_id, month_key, delta, limit)
    if not applied:
        return None

    record = fetch_usage_record(db, user_id, month_key)
    db.refresh(record)
    return record


def _upsert_on_conflict(
    db: Session,
    dialect: str,
    user_id: uuid.UUID,
    month_key: str,
    delta: int,
    limit: Optional[int],
) -> bool:
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    now = utcnow()

    stmt = insert(UsageRecord).values(
        id=uuid.uuid4(),
        user_id=user_id,
        month_year=month_key,
        ai_generations_this_month=delta,
        created_at=now,
        updated_at=now,
    )
    if delta == 0:
        db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id", "month_year"]))
        return True

    counter = UsageRecord.ai_generations_this_month
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "month_year"],
        set_={"ai_generations_this_month": counter + delta, "updated_at": now},
        where=(counter + delta <= limit) if limit is not None else None,
    )
    # WHERE で弾かれた UPDATE は rowcount 0
    return db.execute(stmt).rowcount > 0


def _upsert_with_retry(
    db: Session,
    user_id: uuid.UUID,
    month_key: str,
    delta: int,
    limit: Optional[int],
) -> bool:
    # ON CONFLICT が無い DB 用: 原子的 UPDATE → 無ければ INSERT → 競合したらやり直し
    counter = UsageRecord.ai_generations_this_month
    for attempt in range(UPSERT_RETRIES):
        stmt = update(UsageRecord).where(UsageRecord.user_id == user_id, UsageRecord.month_year == month_key)
        if limit is not None:
            stmt = stmt.where(counter + delta <= limit)
        result = db.execute(stmt.values(ai_generations_this_month=counter + delta, updated_at=utcnow()))
        if result.rowcount:
            return True
        if limit is not None and fetch_usage_record(db, user_id, month_key) is not None:
            # レコードはあるのに更新されなかった = 上限
            return False

        try:
            with db.begin_nested():
                db.add(UsageRecord(user_id=user_id, month_year=month_key, ai_generations_this_month=delta))
            return True
        except IntegrityError:
            # 他リクエストが先に作った → UPDATE からやり直す
            if attempt == UPSERT_RETRIES - 1:
                raise
    return False
