"""Zone and bed API endpoints."""
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from nursery.auth import require_admin, require_manager, require_staff
from nursery.database import get_db, transaction
from nursery.models import Batch, Bed, User, Zone
from nursery.schemas import (
    ApiResponse, BedCreate, BedOut, BedReconcileOut, BedUpdate, ZoneCreate,
    ZoneOut, ZoneUpdate,
)
from nursery.services import CapacityLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/zones", tags=["zones"])


def _out(zone: Zone) -> ZoneOut:
    out = ZoneOut.model_validate(zone)
    out.current_occupancy = sum(bed.occupied or 0 for bed in zone.beds)
    out.utilization_percentage = (
        round(out.current_occupancy / zone.capacity * 100) if zone.capacity > 0 else 0
    )
    return out


def _get_zone(db: Session, zone_id: UUID) -> Zone:
    zone = db.query(Zone).options(selectinload(Zone.beds)).filter(Zone.id == zone_id).first()
    if not zone:
        raise HTTPException(status_code=404, detail="Zone not found")
    return zone


def _ensure_unique_name(db: Session, name: str, exclude_id=None) -> None:
    query = db.query(Zone).filter(func.lower(Zone.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Zone.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail="Zone with this name already exists")


def _ensure_unique_bed_names(names: List[str]) -> None:
    lowered = [n.lower() for n in names]
    if len(set(lowered)) != len(lowered):
        raise HTTPException(status_code=409, detail="Bed names must be unique within a zone")


@router.get("", response_model=ApiResponse[List[ZoneOut]])
def list_zones(
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    query = db.query(Zone).options(selectinload(Zone.beds))
    if not include_inactive:
        query = query.filter(Zone.is_active.is_(True))
    return ApiResponse[List[ZoneOut]](data=[_out(z) for z in query.order_by(Zone.name).all()])


@router.post("", response_model=ApiResponse[ZoneOut], status_code=201)
def create_zone(
    data: ZoneCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Create a zone together with its initial beds."""
    _ensure_unique_name(db, data.name)
    _ensure_unique_bed_names([bed.name for bed in data.beds])

    zone = Zone(name=data.name, capacity=data.capacity)
    zone.beds = [Bed(name=bed.name, capacity=bed.capacity, occupied=0) for bed in data.beds]
    try:
        db.add(zone)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Zone with this name already exists")

    logger.info(f"Zone {zone.name} created with {len(data.beds)} beds")
    return ApiResponse[ZoneOut](data=_out(_get_zone(db, zone.id)), message="Zone created successfully")


@router.get("/{zone_id}", response_model=ApiResponse[ZoneOut])
def get_zone(
    zone_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return ApiResponse[ZoneOut](data=_out(_get_zone(db, zone_id)))


@router.put("/{zone_id}", response_model=ApiResponse[ZoneOut])
def update_zone(
    zone_id: UUID,
    data: ZoneUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    zone = _get_zone(db, zone_id)
    if data.name is not None:
        if data.name.lower() != zone.name.lower():
            _ensure_unique_name(db, data.name, exclude_id=zone.id)
        zone.name = data.name
    if data.capacity is not None:
        zone.capacity = data.capacity
    if data.is_active is not None:
        zone.is_active = data.is_active

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Zone with this name already exists")
    return ApiResponse[ZoneOut](data=_out(_get_zone(db, zone_id)), message="Zone updated successfully")


@router.delete("/{zone_id}", response_model=ApiResponse[None])
def delete_zone(
    zone_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Delete a zone and its beds; refused while any batch is placed in it."""
    zone = _get_zone(db, zone_id)
    bed_ids = [bed.id for bed in zone.beds]
    placed = db.query(func.count(Batch.id)).filter(
        (Batch.zone_id == zone.id) | (Batch.bed_id.in_(bed_ids))
    ).scalar()
    if placed:
        raise HTTPException(status_code=409, detail="Cannot delete zone with existing batches")

    db.delete(zone)
    db.commit()
    logger.info(f"Zone {zone_id} deleted")
    return ApiResponse[None](message="Zone deleted successfully")


@router.post("/{zone_id}/beds", response_model=ApiResponse[BedOut], status_code=201)
def add_bed(
    zone_id: UUID,
    data: BedCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    zone = _get_zone(db, zone_id)
    _ensure_unique_bed_names([bed.name for bed in zone.beds] + [data.name])

    bed = Bed(zone_id=zone.id, name=data.name, capacity=data.capacity, occupied=0)
    db.add(bed)
    db.commit()
    db.refresh(bed)
    return ApiResponse[BedOut](data=BedOut.model_validate(bed), message="Bed created successfully")


@router.put("/beds/{bed_id}", response_model=ApiResponse[BedOut])
def update_bed(
    bed_id: UUID,
    data: BedUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """Capacity edits are not checked against the current occupancy."""
    bed = db.get(Bed, bed_id)
    if not bed:
        raise HTTPException(status_code=404, detail="Bed not found")

    if data.name is not None and data.name != bed.name:
        siblings = [b.name for b in bed.zone.beds if b.id != bed.id]
        _ensure_unique_bed_names(siblings + [data.name])
        bed.name = data.name
    if data.capacity is not None:
        if data.capacity < bed.occupied:
            logger.warning(f"Bed {bed_id} capacity set to {data.capacity} below occupancy {bed.occupied}")
        bed.capacity = data.capacity
    if data.is_active is not None:
        bed.is_active = data.is_active

    db.commit()
    db.refresh(bed)
    return ApiResponse[BedOut](data=BedOut.model_validate(bed), message="Bed updated successfully")


@router.post("/beds/{bed_id}/reconcile", response_model=ApiResponse[BedReconcileOut])
def reconcile_bed(
    bed_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Recompute the cached occupancy of a bed from its batches."""
    with transaction(db):
        before, after = CapacityLedger(db).reconcile(bed_id)
    return ApiResponse[BedReconcileOut](
        data=BedReconcileOut(bed_id=bed_id, previous_occupied=before, occupied=after),
        message="Bed occupancy reconciled" if before != after else "Bed occupancy already consistent",
    )
