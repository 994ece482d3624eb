"""Batch lifecycle request/response schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from nursery.models.batch import BatchStage, BatchStatus, Pathway
from nursery.schemas.catalog import BedBrief, SpeciesBrief, ZoneBrief
from nursery.schemas.common import ApiResponse, CamelModel


class BatchCreate(CamelModel):
    batch_number: Optional[str] = Field(default=None, max_length=50)
    custom_name: Optional[str] = Field(default=None, max_length=100)
    pathway: str
    species_id: UUID
    initial_qty: int = Field(ge=1)
    zone_id: Optional[UUID] = None
    bed_id: Optional[UUID] = None

    @field_validator("batch_number", "custom_name", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value


class BatchUpdate(CamelModel):
    custom_name: Optional[str] = Field(default=None, max_length=100)
    current_qty: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None
    is_ready: Optional[bool] = None
    ready_date: Optional[datetime] = None
    loss_reason: Optional[str] = Field(default=None, max_length=255)
    loss_qty: Optional[int] = Field(default=None, ge=0)


class StageUpdate(CamelModel):
    to_stage: str
    quantity: int = Field(ge=1)
    notes: Optional[str] = Field(default=None, max_length=500)


class BatchCancel(CamelModel):
    reason: Optional[str] = Field(default=None, max_length=255)


class LossRecord(CamelModel):
    quantity: int = Field(ge=1)
    reason: str = Field(min_length=1, max_length=255)


class BatchMove(CamelModel):
    zone_id: Optional[UUID] = None
    bed_id: Optional[UUID] = None


class BatchOut(CamelModel):
    id: UUID
    batch_number: str
    custom_name: Optional[str] = None
    pathway: Pathway
    species_id: UUID
    initial_qty: int
    current_qty: int
    status: BatchStatus
    stage: BatchStage
    is_ready: bool
    ready_date: Optional[datetime] = None
    loss_reason: Optional[str] = None
    loss_qty: int
    created_by_id: UUID
    zone_id: Optional[UUID] = None
    bed_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    species: Optional[SpeciesBrief] = None
    zone: Optional[ZoneBrief] = None
    bed: Optional[BedBrief] = None


class StageHistoryOut(CamelModel):
    id: int
    batch_id: UUID
    from_stage: Optional[BatchStage] = None
    to_stage: BatchStage
    quantity: int
    notes: Optional[str] = None
    created_at: datetime


class StageUpdateResponse(ApiResponse[BatchOut]):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    history_appended: bool = True


class ReadinessOut(CamelModel):
    batch_id: UUID
    meets_targets: bool
    estimated_ready_date: Optional[datetime] = None
    target_girth: float
    target_height: float
    latest_girth: Optional[float] = None
    latest_height: Optional[float] = None
    measurement_count: int


class NextBatchNumberOut(CamelModel):
    pathway: str
    batch_number: str
