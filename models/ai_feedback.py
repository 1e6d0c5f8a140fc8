from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from db.database import Base
from models.user import utcnow
import uuid


class AIFeedback(Base):
    __tablename__ = "ai_feedback"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=False)
    plant_id = Column(UUID(as_uuid=True), ForeignKey("plants.id", ondelete="CASCADE"), nullable=False)
    feedback_type = Column(String, nullable=False)  # thumbs_up / thumbs_down
    comment = Column(Text)
    ai_response_snapshot = Column(JSON)
    created_at = Column(DateTime, default=utcnow)

    plant = relationship("Plant", back_populates="feedback")
