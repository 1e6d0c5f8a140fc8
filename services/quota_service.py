import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import store
from models.user import utcnow
from schemas.usage import QuotaStatus, UsageDetail, UsageSummary
from services.constants import FREE_AI_GENERATIONS_PER_MONTH, MAX_PLANTS_PER_USER
from services.errors import QuotaExceeded, StoreUnavailable
from services.schedule_service import to_naive_utc

logger = logging.getLogger(__name__)


# -------------------------
# month helpers (UTC 固定)
# -------------------------
def current_month_key(now: Optional[datetime] = None) -> str:
    """
    "YYYY-MM"（UTC）。長時間動くプロセスでも月をまたいだら変わるよう、毎回時計から求める
    """
    now = to_naive_utc(now) or utcnow()
    return f"{now.year:04d}-{now.month:02d}"


def next_month_start(now: Optional[datetime] = None) -> datetime:
    """AI 生成枠がリセットされる日時（翌月1日 00:00 UTC）"""
    now = to_naive_utc(now) or utcnow()
    if now.month == 12:
        return datetime(now.year + 1, 1, 1)
    return datetime(now.year, now.month + 1, 1)


# -------------------------
# plant count
# -------------------------
def check_plant_limit(db: Session, user_id: uuid.UUID) -> QuotaStatus:
    try:
        used = store.count_plants_by_user(db, user_id)
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Could not count plants: {e}") from e

    return QuotaStatus(
        allowed=used < MAX_PLANTS_PER_USER,
        limit=MAX_PLANTS_PER_USER,
        used=used,
    )


def require_plant_slot(db: Session, user_id: uuid.UUID) -> QuotaStatus:
    status = check_plant_limit(db, user_id)
    if not status.allowed:
        logger.info("plant limit reached for user %s (%d/%d)", user_id, status.used, status.limit)
        raise QuotaExceeded("plants", status.limit, status.used)
    return status


# -------------------------
# AI generations (monthly)
# -------------------------
def check_ai_generation_limit(
    db: Session,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> QuotaStatus:
    """
    今月の AI 生成回数を確認する。今月のレコードが無ければ 0 で作る
    """
    month_key = current_month_key(now)

    try:
        record = store.fetch_usage_record(db, user_id, month_key)
        if record is None:
            record = store.upsert_usage_record(db, user_id, month_key, 0)
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Could not load AI usage: {e}") from e

    used = record.ai_generations_this_month or 0
    return QuotaStatus(
        allowed=used < FREE_AI_GENERATIONS_PER_MONTH,
        limit=FREE_AI_GENERATIONS_PER_MONTH,
        used=used,
        resets_on=next_month_start(now),
    )


def require_ai_generation(
    db: Session,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> QuotaStatus:
    status = check_ai_generation_limit(db, user_id, now)
    if not status.allowed:
        logger.info("AI generation limit reached for user %s (%d/%d)", user_id, status.used, status.limit)
        raise QuotaExceeded("ai_generations", status.limit, status.used)
    return status


def increment_ai_usage(
    db: Session,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> int:
    """
    今月の AI 生成回数を +1 する（DB 側で原子的に加算）。加算後の回数を返す

    AI での植物作成が「成功した後」にだけ呼ぶこと。
    commit=False なら呼び出し側のトランザクションに含める
    加算は上限未満のときだけ行う。先にチェックを通った別リクエストに枠を取られていたら QuotaExceeded
    """
    month_key = current_month_key(now)

    try:
        record = store.upsert_usage_record(db, user_id, month_key, 1, limit=FREE_AI_GENERATIONS_PER_MONTH)
        if record is None:
            current = store.fetch_usage_record(db, user_id, month_key)
            if current is not None:
                db.refresh(current)
            used = current.ai_generations_this_month if current is not None else 0
        elif commit:
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("failed to increment AI usage for user %s (%s): %s", user_id, month_key, e)
        raise StoreUnavailable(f"Could not update AI usage: {e}") from e

    if record is None:
        if commit:
            db.rollback()
        logger.info(
            "AI generation limit reached for user %s on increment (%d/%d)",
            user_id, used, FREE_AI_GENERATIONS_PER_MONTH,
        )
        raise QuotaExceeded("ai_generations", FREE_AI_GENERATIONS_PER_MONTH, used)

    return record.ai_generations_this_month


# -------------------------
# summary
# -------------------------
def get_usage_summary(
    db: Session,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> UsageSummary:
    ai = check_ai_generation_limit(db, user_id, now)
    plants = check_plant_limit(db, user_id)

    ai_remaining = max(ai.limit - ai.used, 0)
    plant_remaining = max(plants.limit - plants.used, 0)

    return UsageSummary(
        month_year=current_month_key(now),
        ai=UsageDetail(
            used=ai.used,
            limit=ai.limit,
            remaining=ai_remaining,
            allowed=ai.allowed,
            display=f"{ai.used}/{ai.limit}",
            remaining_display=f"{ai_remaining} left this month",
            resets_on=ai.resets_on,
        ),
        plants=UsageDetail(
            used=plants.used,
            limit=plants.limit,
            remaining=plant_remaining,
            allowed=plants.allowed,
            display=f"{plants.used}/{plants.limit}",
            remaining_display=f"{plant_remaining} plant slots available",
        ),
    )
