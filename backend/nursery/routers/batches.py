"""Batch lifecycle API endpoints."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from nursery.auth import require_manager, require_staff
from nursery.database import get_db
from nursery.models import Pathway, User
from nursery.errors import InvalidPathway
from nursery.schemas import (
    ApiResponse, BatchCancel, BatchCreate, BatchMove, BatchOut, BatchUpdate,
    LossRecord, MeasurementOut, NextBatchNumberOut, Page, Pagination,
    ReadinessOut, StageHistoryOut, StageUpdate, StageUpdateResponse,
)
from nursery.services import BatchLifecycleManager, MeasurementRecorder, ReadinessEstimator
from nursery.services.batch_lifecycle import parse_enum
from nursery.services.batch_numbers import generate_batch_number

router = APIRouter(prefix="/batches", tags=["batches"])


def _out(batch) -> BatchOut:
    return BatchOut.model_validate(batch)


@router.get("", response_model=Page[BatchOut])
def list_batches(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    species_id: Optional[UUID] = Query(None, alias="speciesId"),
    zone_id: Optional[UUID] = Query(None, alias="zoneId"),
    bed_id: Optional[UUID] = Query(None, alias="bedId"),
    status: Optional[str] = None,
    stage: Optional[str] = None,
    pathway: Optional[str] = None,
    is_ready: Optional[bool] = Query(None, alias="isReady"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    items, total = BatchLifecycleManager(db).list_batches(
        page=page, limit=limit, search=search, species_id=species_id,
        zone_id=zone_id, bed_id=bed_id, status=status, stage=stage,
        pathway=pathway, is_ready=is_ready,
    )
    return Page[BatchOut](
        data=[_out(b) for b in items],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/next-number", response_model=ApiResponse[NextBatchNumberOut])
def next_batch_number(
    pathway: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Preview the number a batch created now would receive."""
    value = parse_enum(Pathway, pathway, InvalidPathway, "pathway")
    number = generate_batch_number(db, value)
    return ApiResponse[NextBatchNumberOut](
        data=NextBatchNumberOut(pathway=value.value, batch_number=number),
    )


@router.post("", response_model=ApiResponse[BatchOut], status_code=201)
def create_batch(
    data: BatchCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    batch = BatchLifecycleManager(db).create_batch(
        batch_number=data.batch_number,
        custom_name=data.custom_name,
        pathway=data.pathway,
        species_id=data.species_id,
        initial_qty=data.initial_qty,
        zone_id=data.zone_id,
        bed_id=data.bed_id,
        created_by=current_user,
    )
    return ApiResponse[BatchOut](data=_out(batch), message="Batch created successfully")


@router.get("/{batch_id}", response_model=ApiResponse[BatchOut])
def get_batch(
    batch_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return ApiResponse[BatchOut](data=_out(BatchLifecycleManager(db).get_batch(batch_id)))


@router.put("/{batch_id}", response_model=ApiResponse[BatchOut])
def update_batch(
    batch_id: UUID,
    data: BatchUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    batch = BatchLifecycleManager(db).update_batch_fields(
        batch_id, data.model_dump(exclude_unset=True), actor=current_user
    )
    return ApiResponse[BatchOut](data=_out(batch), message="Batch updated successfully")


@router.post("/{batch_id}/stage", response_model=StageUpdateResponse)
def update_stage(
    batch_id: UUID,
    data: StageUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    batch = BatchLifecycleManager(db).update_stage(
        batch_id, data.to_stage, data.quantity, data.notes, actor=current_user
    )
    return StageUpdateResponse(data=_out(batch), message="Batch stage updated successfully")


@router.post("/{batch_id}/ready", response_model=ApiResponse[BatchOut])
def mark_ready(
    batch_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    batch = BatchLifecycleManager(db).mark_ready(batch_id, actor=current_user)
    return ApiResponse[BatchOut](data=_out(batch), message="Batch marked as ready")


@router.post("/{batch_id}/deliver", response_model=ApiResponse[BatchOut])
def deliver_batch(
    batch_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    batch = BatchLifecycleManager(db).deliver_batch(batch_id, actor=current_user)
    return ApiResponse[BatchOut](data=_out(batch), message="Batch delivered successfully")


@router.post("/{batch_id}/cancel", response_model=ApiResponse[BatchOut])
def cancel_batch(
    batch_id: UUID,
    data: Optional[BatchCancel] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    reason = data.reason if data else None
    batch = BatchLifecycleManager(db).cancel_batch(batch_id, reason, actor=current_user)
    return ApiResponse[BatchOut](data=_out(batch), message="Batch cancelled")


@router.post("/{batch_id}/loss", response_model=ApiResponse[BatchOut])
def record_loss(
    batch_id: UUID,
    data: LossRecord,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    batch = BatchLifecycleManager(db).record_loss(batch_id, data.quantity, data.reason, actor=current_user)
    return ApiResponse[BatchOut](data=_out(batch), message="Loss recorded")


@router.post("/{batch_id}/move", response_model=ApiResponse[BatchOut])
def move_batch(
    batch_id: UUID,
    data: BatchMove,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    batch = BatchLifecycleManager(db).move_batch(batch_id, data.zone_id, data.bed_id, actor=current_user)
    return ApiResponse[BatchOut](data=_out(batch), message="Batch moved")


@router.delete("/{batch_id}", response_model=ApiResponse[None])
def delete_batch(
    batch_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    BatchLifecycleManager(db).delete_batch(batch_id, actor=current_user)
    return ApiResponse[None](message="Batch deleted successfully")


@router.get("/{batch_id}/history", response_model=ApiResponse[List[StageHistoryOut]])
def read_history(
    batch_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    entries = BatchLifecycleManager(db).read_history(batch_id)
    return ApiResponse[List[StageHistoryOut]](data=[StageHistoryOut.model_validate(e) for e in entries])


@router.get("/{batch_id}/readiness", response_model=ApiResponse[ReadinessOut])
def batch_readiness(
    batch_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    report = ReadinessEstimator(db).report(batch_id)
    return ApiResponse[ReadinessOut](data=ReadinessOut(**report))


@router.get("/{batch_id}/measurements", response_model=ApiResponse[List[MeasurementOut]])
def batch_measurements(
    batch_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    items = MeasurementRecorder(db).list_for_batch(batch_id)
    return ApiResponse[List[MeasurementOut]](data=[MeasurementOut.model_validate(m) for m in items])
