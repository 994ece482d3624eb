"""Audit log model for tracking batch actions."""
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from nursery.database import Base


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    batch_id = Column(Uuid, ForeignKey("batch.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(50), nullable=False)  # e.g. 'CREATE_BATCH', 'UPDATE_STAGE'
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)

    user = relationship("User")
