"""Dashboard and audit trail response schemas."""
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from nursery.models.batch import BatchStage
from nursery.schemas.common import CamelModel


class ActivityItem(CamelModel):
    id: UUID
    type: str
    message: str
    created_at: Optional[datetime] = None


class DashboardStats(CamelModel):
    total_batches: int
    active_batches: int
    ready_batches: int
    total_plants: int
    total_species: int
    total_zones: int
    measurements_today: int
    measurements_this_week: int
    recent_activity: List[ActivityItem] = []


class ZoneUtilization(CamelModel):
    zone_id: UUID
    zone_name: str
    capacity: int
    occupied: int
    utilization_percentage: int


class SpeciesDistribution(CamelModel):
    species_id: UUID
    species_name: str
    batch_count: int
    plant_count: int


class StagePipelineItem(CamelModel):
    stage: BatchStage
    batch_count: int
    plant_count: int


class GrowthTrendPoint(CamelModel):
    date: str
    average_girth: float
    average_height: float
    measurement_count: int


class LossReasonItem(CamelModel):
    reason: Optional[str] = None
    batch_count: int
    plants_lost: int


class ProductionMetrics(CamelModel):
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    batches_created: int
    batches_delivered: int
    plants_delivered: int
    average_processing_days: int
    total_loss: int
    completion_rate: int
    loss_by_reason: List[LossReasonItem] = []


class AuditLogOut(CamelModel):
    id: int
    created_at: Optional[datetime] = None
    user_id: Optional[UUID] = None
    batch_id: Optional[UUID] = None
    action: str
    old_values: Optional[Any] = None
    new_values: Optional[Any] = None
