import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from nursery.database import Base


class Species(Base):
    """Plant species grown in the nursery, with the sizes a batch must reach."""

    __tablename__ = "species"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True, index=True)
    scientific_name = Column(String(150), nullable=True, unique=True)
    target_girth = Column(Float, nullable=False)  # cm
    target_height = Column(Float, nullable=False)  # cm
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    batches = relationship("Batch", back_populates="species")

    def __repr__(self):
        return f"<Species(id={self.id}, name='{self.name}')>"
