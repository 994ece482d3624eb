"""
Capacity ledger for nursery beds.

``Bed.occupied`` is a cached sum of ``current_qty`` over the batches that
still sit in the bed. This module is the only writer of that column. Every
method runs inside the caller's transaction and never commits.

Overcommit protection is two-layered: ``check_capacity`` takes a row lock on
the bed (``SELECT ... FOR UPDATE``) before summing batch quantities, and
``increment`` is a conditional ``UPDATE`` that matches no row when the bed
would go over capacity.
"""
import logging
from typing import Dict, Iterable, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from nursery.errors import CapacityExceeded, NotFound, ValidationError
from nursery.models import Batch, Bed, OCCUPYING_STATUSES

logger = logging.getLogger(__name__)


class CapacityLedger:
    def __init__(self, db: Session):
        self.db = db

    def lock_bed(self, bed_id: UUID, status_code: Optional[int] = None) -> Bed:
        bed = self.db.query(Bed).filter(Bed.id == bed_id).with_for_update().first()
        if not bed:
            raise NotFound("Bed not found", status_code=status_code)
        return bed

    def lock_beds(self, bed_ids: Iterable[Optional[UUID]], status_code: Optional[int] = None) -> Dict[UUID, Bed]:
        """Lock several beds, always in ascending id order.

        Callers that touch more than one bed take all locks up front through
        this method, so two transactions never wait on each other in a cycle.
        """
        ordered = sorted({bed_id for bed_id in bed_ids if bed_id is not None})
        return {bed_id: self.lock_bed(bed_id, status_code) for bed_id in ordered}

    def occupancy(self, bed_id: UUID) -> int:
        """Sum of current_qty of the batches occupying the bed, as stored."""
        total = (
            self.db.query(func.coalesce(func.sum(Batch.current_qty), 0))
            .filter(Batch.bed_id == bed_id, Batch.status.in_(OCCUPYING_STATUSES))
            .scalar()
        )
        return int(total or 0)

    def check_capacity(self, bed_id: UUID, additional_qty: int) -> Bed:
        """Lock the bed and fail if ``additional_qty`` more plants do not fit."""
        bed = self.lock_bed(bed_id, status_code=400)
        current = self.occupancy(bed_id)
        if current + additional_qty > bed.capacity:
            logger.info(
                f"Capacity check failed for bed {bed_id}: "
                f"{current} + {additional_qty} > {bed.capacity}"
            )
            raise CapacityExceeded(
                "Bed capacity exceeded",
                details={
                    "bedId": str(bed_id),
                    "capacity": bed.capacity,
                    "occupied": current,
                    "requested": additional_qty,
                },
            )
        return bed

    def increment(self, bed_id: UUID, qty: int) -> None:
        if qty < 0:
            raise ValidationError("Occupancy increment must not be negative")
        result = self.db.execute(
            update(Bed)
            .where(Bed.id == bed_id, Bed.occupied + qty <= Bed.capacity)
            .values(occupied=Bed.occupied + qty)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise CapacityExceeded("Bed capacity exceeded", details={"bedId": str(bed_id), "requested": qty})
        self._expire(bed_id)

    def decrement(self, bed_id: UUID, qty: int) -> None:
        if qty < 0:
            raise ValidationError("Occupancy decrement must not be negative")
        self.db.execute(
            update(Bed)
            .where(Bed.id == bed_id)
            .values(occupied=Bed.occupied - qty)
            .execution_options(synchronize_session=False)
        )
        self._expire(bed_id)

    def reserve(self, bed_id: UUID, qty: int) -> Bed:
        """Check and increment in one step."""
        bed = self.check_capacity(bed_id, qty)
        self.increment(bed_id, qty)
        return bed

    def adjust(self, bed_id: UUID, delta: int) -> None:
        """Apply a quantity change of an occupying batch to its bed."""
        if delta > 0:
            self.reserve(bed_id, delta)
        elif delta < 0:
            self.decrement(bed_id, -delta)

    def reconcile(self, bed_id: UUID) -> Tuple[int, int]:
        """Rewrite the cached ``occupied`` from the batches. Returns (before, after)."""
        bed = self.lock_bed(bed_id)
        before = bed.occupied
        after = self.occupancy(bed_id)
        if before != after:
            logger.warning(f"Bed {bed_id} occupancy drifted: cached={before}, actual={after}")
            self.db.execute(
                update(Bed)
                .where(Bed.id == bed_id)
                .values(occupied=after)
                .execution_options(synchronize_session=False)
            )
            self._expire(bed_id)
        return before, after

    def _expire(self, bed_id: UUID) -> None:
        bed = self.db.get(Bed, bed_id)
        if bed is not None:
            self.db.expire(bed, ["occupied"])
