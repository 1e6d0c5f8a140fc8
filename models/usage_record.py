from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from db.database import Base
from models.user import utcnow
import uuid


class UsageRecord(Base):
    """ユーザー×月ごとの AI 生成回数。月キーは "YYYY-MM"（UTC）"""

    __tablename__ = "usage_limits"
    __table_args__ = (
        UniqueConstraint("user_id", "month_year", name="uq_usage_limits_user_month"),
        CheckConstraint("ai_generations_this_month >= 0", name="ck_usage_limits_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=False)
    month_year = Column(String(7), nullable=False)
    ai_generations_this_month = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
