from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from nursery.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Measurement(Base):
    """A girth/height sample taken from a batch."""

    __tablename__ = "measurement"

    id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(Uuid, ForeignKey("batch.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    girth = Column(Float, nullable=False)  # cm
    height = Column(Float, nullable=False)  # cm
    sample_size = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    batch = relationship("Batch")
    user = relationship("User")
