"""Batch model and its lifecycle enums."""
import enum
import uuid

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey, Integer, String,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from nursery.database import Base


class Pathway(str, enum.Enum):
    PURCHASING = "PURCHASING"
    SEED_GERMINATION = "SEED_GERMINATION"
    CUTTING_GERMINATION = "CUTTING_GERMINATION"
    OUT_SOURCING = "OUT_SOURCING"


class BatchStatus(str, enum.Enum):
    CREATED = "CREATED"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class BatchStage(str, enum.Enum):
    INITIAL = "INITIAL"
    PROPAGATION = "PROPAGATION"
    SHADE_60 = "SHADE_60"
    SHADE_80 = "SHADE_80"
    GROWING = "GROWING"
    HARDENING = "HARDENING"
    RE_POTTING = "RE_POTTING"
    PHYTOSANITARY = "PHYTOSANITARY"


# Statuses whose plants still sit in their bed.
OCCUPYING_STATUSES = (BatchStatus.CREATED, BatchStatus.IN_PROGRESS, BatchStatus.READY)
TERMINAL_STATUSES = (BatchStatus.DELIVERED, BatchStatus.CANCELLED)


def _enum(enum_cls, name):
    return Enum(enum_cls, name=name, values_callable=lambda cls: [e.value for e in cls])


class Batch(Base):
    __tablename__ = "batch"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    batch_number = Column(String(50), nullable=False, unique=True, index=True)
    custom_name = Column(String(100), nullable=True)
    pathway = Column(_enum(Pathway, "pathway_type"), nullable=False)
    species_id = Column(Uuid, ForeignKey("species.id"), nullable=False, index=True)

    initial_qty = Column(Integer, nullable=False)
    current_qty = Column(Integer, nullable=False)
    status = Column(_enum(BatchStatus, "batch_status"), nullable=False, default=BatchStatus.CREATED, index=True)
    stage = Column(_enum(BatchStage, "batch_stage"), nullable=False, default=BatchStage.INITIAL, index=True)
    is_ready = Column(Boolean, nullable=False, default=False)
    ready_date = Column(DateTime(timezone=True), nullable=True)
    loss_reason = Column(String(255), nullable=True)
    loss_qty = Column(Integer, nullable=False, default=0)

    created_by_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    zone_id = Column(Uuid, ForeignKey("zone.id"), nullable=True, index=True)
    bed_id = Column(Uuid, ForeignKey("bed.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    species = relationship("Species", back_populates="batches")
    zone = relationship("Zone", back_populates="batches")
    bed = relationship("Bed", back_populates="batches")
    created_by = relationship("User")

    @property
    def holds_occupancy(self) -> bool:
        return self.bed_id is not None and self.status in OCCUPYING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<Batch(id={self.id}, batch_number='{self.batch_number}', status={self.status})>"
