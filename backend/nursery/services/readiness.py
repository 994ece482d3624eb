"""Readiness checks against species size targets."""
import math
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from nursery.errors import NotFound
from nursery.models import Batch, Measurement


def _measurements(db: Session, batch_id: UUID) -> List[Measurement]:
    return (
        db.query(Measurement)
        .filter(Measurement.batch_id == batch_id)
        .order_by(Measurement.created_at.asc(), Measurement.id.asc())
        .all()
    )


def _days_to_target(target: float, first: float, last: float, days: float) -> Optional[int]:
    if last >= target:
        return 0
    rate = (last - first) / days
    if rate <= 0:
        return None
    return math.ceil((target - last) / rate)


def estimate_ready_date(batch: Batch, measurements: List[Measurement]) -> Optional[datetime]:
    """Project when both targets are reached, using linear growth between the
    first and the last measurement. None with fewer than two measurements or
    when either dimension is not growing."""
    if len(measurements) < 2:
        return None
    first, last = measurements[0], measurements[-1]
    days = max(1.0, (last.created_at - first.created_at).total_seconds() / 86400)

    girth_days = _days_to_target(batch.species.target_girth, first.girth, last.girth, days)
    height_days = _days_to_target(batch.species.target_height, first.height, last.height, days)
    if girth_days is None or height_days is None:
        return None
    return last.created_at + timedelta(days=max(girth_days, height_days))


class ReadinessEstimator:
    def __init__(self, db: Session):
        self.db = db

    def _batch(self, batch_id: UUID) -> Batch:
        batch = (
            self.db.query(Batch)
            .options(joinedload(Batch.species))
            .filter(Batch.id == batch_id)
            .first()
        )
        if not batch:
            raise NotFound("Batch not found")
        return batch

    def check_readiness(self, batch_id: UUID) -> bool:
        """True when the latest measurement meets both species targets."""
        batch = self._batch(batch_id)
        measurements = _measurements(self.db, batch_id)
        return self._meets_targets(batch, measurements)

    def estimate_ready_date(self, batch_id: UUID) -> Optional[datetime]:
        batch = self._batch(batch_id)
        return estimate_ready_date(batch, _measurements(self.db, batch_id))

    def report(self, batch_id: UUID) -> dict:
        batch = self._batch(batch_id)
        measurements = _measurements(self.db, batch_id)
        latest = measurements[-1] if measurements else None
        return {
            "batch_id": batch.id,
            "meets_targets": self._meets_targets(batch, measurements),
            "estimated_ready_date": estimate_ready_date(batch, measurements),
            "target_girth": batch.species.target_girth,
            "target_height": batch.species.target_height,
            "latest_girth": latest.girth if latest else None,
            "latest_height": latest.height if latest else None,
            "measurement_count": len(measurements),
        }

    @staticmethod
    def _meets_targets(batch: Batch, measurements: List[Measurement]) -> bool:
        if not measurements:
            return False
        latest = measurements[-1]
        return latest.girth >= batch.species.target_girth and latest.height >= batch.species.target_height
