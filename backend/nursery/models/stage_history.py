from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from nursery.database import Base
from nursery.models.batch import BatchStage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StageHistory(Base):
    """Append-only record of a batch moving between stages."""

    __tablename__ = "stage_history"

    # Autoincrement id breaks ties between rows written within one clock tick.
    id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(Uuid, ForeignKey("batch.id", ondelete="CASCADE"), nullable=False, index=True)
    from_stage = Column(
        Enum(BatchStage, name="batch_stage", values_callable=lambda cls: [e.value for e in cls]),
        nullable=True,  # NULL for the creation record
    )
    to_stage = Column(
        Enum(BatchStage, name="batch_stage", values_callable=lambda cls: [e.value for e in cls]),
        nullable=False,
    )
    quantity = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    batch = relationship("Batch")
