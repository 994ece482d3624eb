"""Dashboard, growth and production aggregations."""
import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from nursery.models import (
    Batch, BatchStage, BatchStatus, Bed, Measurement, Species, Zone,
)

ACTIVE_STATUSES = (BatchStatus.CREATED, BatchStatus.IN_PROGRESS)
DEFAULT_WINDOW_DAYS = 30


def _utilization(occupied: int, capacity: int) -> int:
    return round(occupied / capacity * 100) if capacity > 0 else 0


def dashboard_stats(db: Session) -> dict:
    now = datetime.now(timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    not_delivered = Batch.status != BatchStatus.DELIVERED

    recent = (
        db.query(Batch)
        .options(joinedload(Batch.species))
        .order_by(Batch.updated_at.desc(), Batch.created_at.desc())
        .limit(10)
        .all()
    )

    return {
        "total_batches": db.query(func.count(Batch.id)).scalar(),
        "active_batches": db.query(func.count(Batch.id)).filter(Batch.status.in_(ACTIVE_STATUSES)).scalar(),
        "ready_batches": db.query(func.count(Batch.id)).filter(Batch.is_ready.is_(True), not_delivered).scalar(),
        "total_plants": int(
            db.query(func.coalesce(func.sum(Batch.current_qty), 0)).filter(not_delivered).scalar() or 0
        ),
        "total_species": db.query(func.count(Species.id)).filter(Species.is_active.is_(True)).scalar(),
        "total_zones": db.query(func.count(Zone.id)).filter(Zone.is_active.is_(True)).scalar(),
        "measurements_today": db.query(func.count(Measurement.id)).filter(
            Measurement.created_at >= start_of_day
        ).scalar(),
        "measurements_this_week": db.query(func.count(Measurement.id)).filter(
            Measurement.created_at >= now - timedelta(days=7)
        ).scalar(),
        "recent_activity": [
            {
                "id": batch.id,
                "type": "batch_update",
                "message": f"Batch {batch.batch_number} ({batch.species.name}) updated to {batch.stage.value}",
                "created_at": batch.updated_at or batch.created_at,
            }
            for batch in recent
        ],
    }


def zone_utilization(db: Session) -> List[dict]:
    rows = (
        db.query(Zone, func.coalesce(func.sum(Bed.occupied), 0))
        .outerjoin(Bed, Bed.zone_id == Zone.id)
        .filter(Zone.is_active.is_(True))
        .group_by(Zone.id)
        .order_by(Zone.name)
        .all()
    )
    return [
        {
            "zone_id": zone.id,
            "zone_name": zone.name,
            "capacity": zone.capacity,
            "occupied": int(occupied),
            "utilization_percentage": _utilization(int(occupied), zone.capacity),
        }
        for zone, occupied in rows
    ]


def species_distribution(db: Session) -> List[dict]:
    rows = (
        db.query(
            Species,
            func.count(Batch.id),
            func.coalesce(func.sum(Batch.current_qty), 0),
        )
        .outerjoin(Batch, (Batch.species_id == Species.id) & (Batch.status != BatchStatus.DELIVERED))
        .filter(Species.is_active.is_(True))
        .group_by(Species.id)
        .order_by(Species.name)
        .all()
    )
    return [
        {
            "species_id": species.id,
            "species_name": species.name,
            "batch_count": batch_count,
            "plant_count": int(plant_count),
        }
        for species, batch_count, plant_count in rows
    ]


def stage_pipeline(db: Session) -> List[dict]:
    counts = dict(
        (stage, (batch_count, int(plant_count)))
        for stage, batch_count, plant_count in (
            db.query(Batch.stage, func.count(Batch.id), func.coalesce(func.sum(Batch.current_qty), 0))
            .filter(Batch.status.in_(ACTIVE_STATUSES))
            .group_by(Batch.stage)
            .all()
        )
    )
    return [
        {
            "stage": stage,
            "batch_count": counts.get(stage, (0, 0))[0],
            "plant_count": counts.get(stage, (0, 0))[1],
        }
        for stage in BatchStage
    ]


def _period(start: Optional[datetime], end: Optional[datetime]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Without explicit bounds, the last DEFAULT_WINDOW_DAYS days."""
    if start is None and end is None:
        start = datetime.now(timezone.utc) - timedelta(days=DEFAULT_WINDOW_DAYS)
    return start, end


def _within(column, start: Optional[datetime], end: Optional[datetime]) -> list:
    clauses = []
    if start is not None:
        clauses.append(column >= start)
    if end is not None:
        clauses.append(column <= end)
    return clauses


def growth_trends(
    db: Session,
    species_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[dict]:
    """Daily mean girth and height over the measurements in the period."""
    start, end = _period(start_date, end_date)
    day = func.date(Measurement.created_at)

    query = db.query(
        day,
        func.avg(Measurement.girth),
        func.avg(Measurement.height),
        func.count(Measurement.id),
    )
    if species_id:
        query = query.join(Batch, Batch.id == Measurement.batch_id).filter(Batch.species_id == species_id)
    rows = query.filter(*_within(Measurement.created_at, start, end)).group_by(day).order_by(day).all()

    return [
        {
            "date": str(measured_on),
            "average_girth": round(float(girth), 2),
            "average_height": round(float(height), 2),
            "measurement_count": count,
        }
        for measured_on, girth, height, count in rows
    ]


def production_metrics(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> dict:
    """Batches started and delivered in the period, processing time and losses.

    Deliveries and losses are attributed to the period by ``updated_at``.
    Processing time runs from creation to the ready date, in whole days
    rounded up; delivered batches without a ready date count as zero.
    """
    start, end = _period(start_date, end_date)

    batches_created = (
        db.query(func.count(Batch.id)).filter(*_within(Batch.created_at, start, end)).scalar()
    )

    delivered = [Batch.status == BatchStatus.DELIVERED, *_within(Batch.updated_at, start, end)]
    batches_delivered, plants_delivered = (
        db.query(func.count(Batch.id), func.coalesce(func.sum(Batch.current_qty), 0))
        .filter(*delivered)
        .one()
    )
    timings = db.query(Batch.created_at, Batch.ready_date).filter(*delivered).all()
    processing_days = [
        math.ceil((ready - created).total_seconds() / 86400)
        for created, ready in timings
        if ready is not None and created is not None
    ]
    average_processing_days = round(sum(processing_days) / len(timings)) if timings else 0

    lost = func.sum(Batch.loss_qty)
    loss_rows = (
        db.query(Batch.loss_reason, func.count(Batch.id), lost)
        .filter(Batch.loss_qty > 0, *_within(Batch.updated_at, start, end))
        .group_by(Batch.loss_reason)
        .order_by(lost.desc())
        .all()
    )
    loss_by_reason = [
        {"reason": reason, "batch_count": count, "plants_lost": int(plants)}
        for reason, count, plants in loss_rows
    ]

    return {
        "period_start": start,
        "period_end": end,
        "batches_created": batches_created,
        "batches_delivered": batches_delivered,
        "plants_delivered": int(plants_delivered),
        "average_processing_days": average_processing_days,
        "total_loss": sum(item["plants_lost"] for item in loss_by_reason),
        "completion_rate": round(batches_delivered / batches_created * 100) if batches_created else 0,
        "loss_by_reason": loss_by_reason,
    }
