from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from db.database import Base
from models.user import utcnow
import uuid


class Room(Base):
    __tablename__ = "rooms"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.user_id"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    owner = relationship("User", back_populates="rooms")
    plants = relationship("Plant", back_populates="room")
