from sqlalchemy import Column, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from db.database import Base
from models.user import utcnow
import uuid


class WateringEvent(Base):
    """水やり履歴。追記のみで、植物の削除時だけ一緒に消える"""

    __tablename__ = "watering_history"
    __table_args__ = (
        Index("ix_watering_history_plant_watered_at", "plant_id", "watered_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plant_id = Column(UUID(as_uuid=True), ForeignKey("plants.id", ondelete="CASCADE"), nullable=False)
    watered_at = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, default=utcnow)

    plant = relationship("Plant", back_populates="watering_events")
