from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from db.database import Base
import uuid
from datetime import datetime, timezone


def utcnow() -> datetime:
    """naive UTC の現在時刻（DB は naive UTC で保存する）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    user_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String)
    created_at = Column(DateTime, default=utcnow)

    plants = relationship("Plant", back_populates="owner", cascade="all, delete-orphan")
    rooms = relationship("Room", back_populates="owner", cascade="all, delete-orphan")
