"""Zone and Bed models: the physical places batches occupy."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from nursery.database import Base


class Zone(Base):
    __tablename__ = "zone"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    beds = relationship("Bed", back_populates="zone", cascade="all, delete-orphan", order_by="Bed.name")
    batches = relationship("Batch", back_populates="zone")


class Bed(Base):
    __tablename__ = "bed"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    zone_id = Column(Uuid, ForeignKey("zone.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    # Cached sum of currentQty of occupying batches; written only by CapacityLedger.
    occupied = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    zone = relationship("Zone", back_populates="beds")
    batches = relationship("Batch", back_populates="bed")

    @property
    def available(self) -> int:
        return self.capacity - (self.occupied or 0)
