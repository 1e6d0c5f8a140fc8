from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from db.database import Base
from models.user import utcnow
import uuid


class Plant(Base):
    __tablename__ = "plants"
    __table_args__ = (
        CheckConstraint(
            "watering_frequency_days BETWEEN 1 AND 365",
            name="ck_plants_watering_frequency_range",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=False, index=True)
    room_id = Column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)

    name = Column(String(100), nullable=False)
    photo_url = Column(String)
    watering_frequency_days = Column(Integer, nullable=False)

    # AI wizard で生成されたケア情報（手動登録なら空でもOK）
    light_requirements = Column(Text)
    fertilizing_tips = Column(Text)
    pruning_tips = Column(Text)
    troubleshooting = Column(Text)

    created_with_ai = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="plants")
    room = relationship("Room", back_populates="plants")
    watering_events = relationship(
        "WateringEvent",
        back_populates="plant",
        cascade="all, delete-orphan",
        order_by="WateringEvent.watered_at.desc()",
    )
    feedback = relationship(
        "AIFeedback",
        back_populates="plant",
        cascade="all, delete-orphan",
    )
