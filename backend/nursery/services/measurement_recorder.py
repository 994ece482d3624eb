"""Girth/height samples recorded against batches."""
import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from nursery.database import transaction
from nursery.errors import NotFound, SampleSizeExceedsQuantity, Unauthorized
from nursery.models import Batch, Measurement, Role, User

logger = logging.getLogger(__name__)


def _fmt(value: float) -> str:
    return f"{value:g}"


def range_notes(girth: Tuple[float, float], height: Tuple[float, float], notes: Optional[str] = None) -> str:
    text = (
        f"Range measurement - Girth: {_fmt(girth[0])}-{_fmt(girth[1])}cm, "
        f"Height: {_fmt(height[0])}-{_fmt(height[1])}cm"
    )
    if notes:
        text = f"{text}. {notes}"
    return text


class MeasurementRecorder:
    """Inserts and edits samples. Never touches batch quantities or beds."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, measurement_id: int) -> Measurement:
        measurement = (
            self.db.query(Measurement)
            .options(joinedload(Measurement.user))
            .filter(Measurement.id == measurement_id)
            .first()
        )
        if not measurement:
            raise NotFound("Measurement not found")
        return measurement

    def list_measurements(
        self,
        page: int = 1,
        limit: int = 10,
        batch_id: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[Measurement], int]:
        query = self.db.query(Measurement)
        if batch_id:
            query = query.filter(Measurement.batch_id == batch_id)
        if user_id:
            query = query.filter(Measurement.user_id == user_id)
        if start_date:
            query = query.filter(Measurement.created_at >= start_date)
        if end_date:
            query = query.filter(Measurement.created_at <= end_date)

        total = query.count()
        items = (
            query.options(joinedload(Measurement.user))
            .order_by(Measurement.created_at.desc(), Measurement.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def list_for_batch(self, batch_id: UUID) -> List[Measurement]:
        if not self.db.get(Batch, batch_id):
            raise NotFound("Batch not found")
        return (
            self.db.query(Measurement)
            .options(joinedload(Measurement.user))
            .filter(Measurement.batch_id == batch_id)
            .order_by(Measurement.created_at.desc(), Measurement.id.desc())
            .all()
        )

    def record(
        self,
        batch_id: UUID,
        user: User,
        girth: float,
        height: float,
        sample_size: int,
        notes: Optional[str] = None,
    ) -> Measurement:
        with transaction(self.db):
            batch = self._batch_for_sample(batch_id, sample_size)
            measurement = Measurement(
                batch_id=batch.id,
                user_id=user.id,
                girth=girth,
                height=height,
                sample_size=sample_size,
                notes=notes,
            )
            self.db.add(measurement)
            self.db.flush()

        logger.info(f"Measurement {measurement.id} recorded for batch {batch.batch_number}")
        return self.get(measurement.id)

    def record_range(
        self,
        batch_id: UUID,
        user: User,
        girth_range: Tuple[float, float],
        height_range: Tuple[float, float],
        sample_size: int,
        notes: Optional[str] = None,
    ) -> Measurement:
        """Store the mean of each min/max pair; the ranges go into the notes."""
        return self.record(
            batch_id,
            user,
            girth=(girth_range[0] + girth_range[1]) / 2,
            height=(height_range[0] + height_range[1]) / 2,
            sample_size=sample_size,
            notes=range_notes(girth_range, height_range, notes),
        )

    def update(self, measurement_id: int, caller: User, changes: dict) -> Measurement:
        with transaction(self.db):
            measurement = self.get(measurement_id)
            self._ensure_owner(measurement, caller, "update")

            if changes.get("sample_size") is not None:
                self._batch_for_sample(measurement.batch_id, changes["sample_size"])
                measurement.sample_size = changes["sample_size"]
            for field in ("girth", "height"):
                if changes.get(field) is not None:
                    setattr(measurement, field, changes[field])
            if "notes" in changes:
                measurement.notes = changes["notes"]
            self.db.flush()

        self.db.refresh(measurement)
        return measurement

    def delete(self, measurement_id: int, caller: User) -> None:
        with transaction(self.db):
            measurement = self.get(measurement_id)
            self._ensure_owner(measurement, caller, "delete")
            self.db.delete(measurement)
        logger.info(f"Measurement {measurement_id} deleted by {caller.email}")

    def _batch_for_sample(self, batch_id: UUID, sample_size: int) -> Batch:
        batch = self.db.get(Batch, batch_id)
        if not batch:
            raise NotFound("Batch not found", status_code=400)
        if sample_size > batch.current_qty:
            raise SampleSizeExceedsQuantity(
                "Sample size cannot exceed batch quantity",
                details={"sampleSize": sample_size, "currentQty": batch.current_qty},
            )
        return batch

    @staticmethod
    def _ensure_owner(measurement: Measurement, caller: User, verb: str) -> None:
        if measurement.user_id != caller.id and caller.role != Role.SUPER_ADMIN:
            raise Unauthorized(f"Not authorized to {verb} this measurement")
