"""Dashboard and audit trail endpoints."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from nursery.auth import require_manager, require_staff
from nursery.database import get_db
from nursery.models import AuditLog, User
from nursery.schemas import (
    ApiResponse, AuditLogOut, DashboardStats, GrowthTrendPoint, Page, Pagination,
    ProductionMetrics, SpeciesDistribution, StagePipelineItem, ZoneUtilization,
)
from nursery.services import analytics

router = APIRouter(prefix="/analytics", tags=["analytics"])
audit_router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("/dashboard", response_model=ApiResponse[DashboardStats])
def dashboard(db: Session = Depends(get_db), _: User = Depends(require_staff)):
    return ApiResponse[DashboardStats](data=DashboardStats(**analytics.dashboard_stats(db)))


@router.get("/zones", response_model=ApiResponse[List[ZoneUtilization]])
def zones(db: Session = Depends(get_db), _: User = Depends(require_staff)):
    return ApiResponse[List[ZoneUtilization]](
        data=[ZoneUtilization(**row) for row in analytics.zone_utilization(db)]
    )


@router.get("/species", response_model=ApiResponse[List[SpeciesDistribution]])
def species(db: Session = Depends(get_db), _: User = Depends(require_staff)):
    return ApiResponse[List[SpeciesDistribution]](
        data=[SpeciesDistribution(**row) for row in analytics.species_distribution(db)]
    )


@router.get("/stages", response_model=ApiResponse[List[StagePipelineItem]])
def stages(db: Session = Depends(get_db), _: User = Depends(require_staff)):
    return ApiResponse[List[StagePipelineItem]](
        data=[StagePipelineItem(**row) for row in analytics.stage_pipeline(db)]
    )


@router.get("/growth", response_model=ApiResponse[List[GrowthTrendPoint]])
def growth(
    species_id: Optional[UUID] = Query(None, alias="speciesId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    _: User = Depends(require_manager),
):
    """Daily average girth/height; the last 30 days unless a range is given."""
    rows = analytics.growth_trends(db, species_id=species_id, start_date=start_date, end_date=end_date)
    return ApiResponse[List[GrowthTrendPoint]](data=[GrowthTrendPoint(**row) for row in rows])


@router.get("/production", response_model=ApiResponse[ProductionMetrics])
def production(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    _: User = Depends(require_manager),
):
    metrics = analytics.production_metrics(db, start_date=start_date, end_date=end_date)
    return ApiResponse[ProductionMetrics](data=ProductionMetrics(**metrics))


@audit_router.get("", response_model=Page[AuditLogOut])
def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    batch_id: Optional[UUID] = Query(None, alias="batchId"),
    user_id: Optional[UUID] = Query(None, alias="userId"),
    action: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_manager),
):
    query = db.query(AuditLog)
    if batch_id:
        query = query.filter(AuditLog.batch_id == batch_id)
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    if action:
        query = query.filter(AuditLog.action == action.upper())
    total = query.count()
    rows = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return Page[AuditLogOut](
        data=[AuditLogOut.model_validate(r) for r in rows],
        pagination=Pagination.build(page, limit, total),
    )
