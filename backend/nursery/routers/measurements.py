"""Measurement API endpoints."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from nursery.auth import require_staff
from nursery.database import get_db
from nursery.models import User
from nursery.schemas import (
    ApiResponse, GrowthRangesOut, MeasurementCreate, MeasurementOut,
    MeasurementUpdate, Page, Pagination, RangeMeasurementCreate,
)
from nursery.services import MeasurementRecorder
from nursery.services.units import LengthUnit, growth_ranges

router = APIRouter(prefix="/measurements", tags=["measurements"])


@router.get("", response_model=Page[MeasurementOut])
def list_measurements(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    batch_id: Optional[UUID] = Query(None, alias="batchId"),
    user_id: Optional[UUID] = Query(None, alias="userId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    items, total = MeasurementRecorder(db).list_measurements(
        page=page, limit=limit, batch_id=batch_id, user_id=user_id,
        start_date=start_date, end_date=end_date,
    )
    return Page[MeasurementOut](
        data=[MeasurementOut.model_validate(m) for m in items],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/ranges", response_model=ApiResponse[GrowthRangesOut])
def list_growth_ranges(
    unit: LengthUnit = LengthUnit.CM,
    current_user: User = Depends(require_staff),
):
    """Predefined girth/height options, shown in ``unit``."""
    return ApiResponse[GrowthRangesOut](data=GrowthRangesOut(**growth_ranges(unit)))


@router.post("", response_model=ApiResponse[MeasurementOut], status_code=201)
def create_measurement(
    data: MeasurementCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    measurement = MeasurementRecorder(db).record(
        data.batch_id, current_user, data.girth, data.height, data.sample_size, data.notes
    )
    return ApiResponse[MeasurementOut](
        data=MeasurementOut.model_validate(measurement),
        message="Measurement created successfully",
    )


@router.post("/range", response_model=ApiResponse[MeasurementOut], status_code=201)
def create_range_measurement(
    data: RangeMeasurementCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    measurement = MeasurementRecorder(db).record_range(
        data.batch_id,
        current_user,
        (data.girth_range.min, data.girth_range.max),
        (data.height_range.min, data.height_range.max),
        data.sample_size,
        data.notes,
    )
    return ApiResponse[MeasurementOut](
        data=MeasurementOut.model_validate(measurement),
        message="Range measurement created successfully",
    )


@router.get("/{measurement_id}", response_model=ApiResponse[MeasurementOut])
def get_measurement(
    measurement_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    measurement = MeasurementRecorder(db).get(measurement_id)
    return ApiResponse[MeasurementOut](data=MeasurementOut.model_validate(measurement))


@router.put("/{measurement_id}", response_model=ApiResponse[MeasurementOut])
def update_measurement(
    measurement_id: int,
    data: MeasurementUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    measurement = MeasurementRecorder(db).update(
        measurement_id, current_user, data.model_dump(exclude_unset=True)
    )
    return ApiResponse[MeasurementOut](
        data=MeasurementOut.model_validate(measurement),
        message="Measurement updated successfully",
    )


@router.delete("/{measurement_id}", response_model=ApiResponse[None])
def delete_measurement(
    measurement_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    MeasurementRecorder(db).delete(measurement_id, current_user)
    return ApiResponse[None](message="Measurement deleted successfully")
