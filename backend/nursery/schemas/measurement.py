"""Measurement request/response schemas."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field, model_validator

from nursery.schemas.common import CamelModel


class MeasurementCreate(CamelModel):
    batch_id: UUID
    girth: float = Field(ge=0)
    height: float = Field(ge=0)
    sample_size: int = Field(ge=1)
    notes: Optional[str] = Field(default=None, max_length=500)


class ValueRange(CamelModel):
    min: float = Field(ge=0)
    max: float = Field(ge=0)

    @model_validator(mode="after")
    def check_order(self):
        if self.max < self.min:
            raise ValueError("max must be >= min")
        return self


class RangeMeasurementCreate(CamelModel):
    batch_id: UUID
    girth_range: ValueRange
    height_range: ValueRange
    sample_size: int = Field(ge=1)
    notes: Optional[str] = Field(default=None, max_length=500)


class MeasurementUpdate(CamelModel):
    girth: Optional[float] = Field(default=None, ge=0)
    height: Optional[float] = Field(default=None, ge=0)
    sample_size: Optional[int] = Field(default=None, ge=1)
    notes: Optional[str] = Field(default=None, max_length=500)


class RecorderBrief(CamelModel):
    id: UUID
    first_name: str
    last_name: str
    email: str


class MeasurementOut(CamelModel):
    id: int
    batch_id: UUID
    user_id: UUID
    girth: float
    height: float
    sample_size: int
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    user: Optional[RecorderBrief] = None


class RangeOption(CamelModel):
    label: str
    value: str
    min: float
    max: float


class GrowthRangesOut(CamelModel):
    unit: str
    girth: List[RangeOption]
    height: List[RangeOption]
