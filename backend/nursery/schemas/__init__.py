"""Pydantic schemas for API request/response validation."""
from nursery.schemas.common import ApiResponse, CamelModel, Page, Pagination
from nursery.schemas.catalog import (
    BedBrief, BedCreate, BedOut, BedReconcileOut, BedUpdate,
    LoginRequest, PasswordChange, ProfileUpdate, SpeciesBrief, SpeciesCreate, SpeciesOut,
    SpeciesUpdate, TokenResponse, UserCreate, UserOut, UserStats, UserUpdate, ZoneBrief,
    ZoneCreate, ZoneOut, ZoneUpdate,
)
from nursery.schemas.batch import (
    BatchCancel, BatchCreate, BatchMove, BatchOut, BatchUpdate, LossRecord,
    NextBatchNumberOut, ReadinessOut, StageHistoryOut, StageUpdate,
    StageUpdateResponse,
)
from nursery.schemas.measurement import (
    GrowthRangesOut, MeasurementCreate, MeasurementOut, MeasurementUpdate,
    RangeMeasurementCreate, RangeOption, ValueRange,
)
from nursery.schemas.analytics import (
    ActivityItem, AuditLogOut, DashboardStats, GrowthTrendPoint, LossReasonItem,
    ProductionMetrics, SpeciesDistribution, StagePipelineItem, ZoneUtilization,
)

__all__ = [
    "ApiResponse", "CamelModel", "Page", "Pagination",
    "BedBrief", "BedCreate", "BedOut", "BedReconcileOut", "BedUpdate",
    "LoginRequest", "PasswordChange", "ProfileUpdate", "SpeciesBrief", "SpeciesCreate", "SpeciesOut",
    "SpeciesUpdate", "TokenResponse", "UserCreate", "UserOut", "UserStats", "UserUpdate", "ZoneBrief",
    "ZoneCreate", "ZoneOut", "ZoneUpdate",
    "BatchCancel", "BatchCreate", "BatchMove", "BatchOut", "BatchUpdate", "LossRecord",
    "NextBatchNumberOut", "ReadinessOut", "StageHistoryOut", "StageUpdate",
    "StageUpdateResponse",
    "GrowthRangesOut", "MeasurementCreate", "MeasurementOut", "MeasurementUpdate",
    "RangeMeasurementCreate", "RangeOption", "ValueRange",
    "ActivityItem", "AuditLogOut", "DashboardStats", "GrowthTrendPoint", "LossReasonItem",
    "ProductionMetrics", "SpeciesDistribution", "StagePipelineItem", "ZoneUtilization",
]
