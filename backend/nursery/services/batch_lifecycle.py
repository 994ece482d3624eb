"""
Batch lifecycle manager.

Owns the (status, stage) state machine of a batch. Every mutating operation
runs in a single transaction that updates the batch, the bed occupancy
ledger and the stage history together, so either all of them change or
none do.

Status moves CREATED -> IN_PROGRESS -> READY -> DELIVERED, with CANCELLED
reachable from CREATED and IN_PROGRESS. Stages are caller-directed: any
declared stage may follow any other.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nursery.audit import entity_to_dict, log_action
from nursery.database import transaction
from nursery.errors import (
    Conflict, DuplicateBatchNumber, InvalidEnum, InvalidPathway, InvalidStage,
    InvalidStatus, NotFound, NotReady, ValidationError,
)
from nursery.models import (
    Batch, BatchStage, BatchStatus, Bed, Measurement, Pathway, Species, User,
    Zone, TERMINAL_STATUSES,
)
from nursery.services.batch_numbers import generate_batch_number, normalize_batch_number
from nursery.services.capacity_ledger import CapacityLedger
from nursery.services.stage_history import StageHistoryLog

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS = {
    BatchStatus.CREATED: {BatchStatus.IN_PROGRESS, BatchStatus.READY, BatchStatus.CANCELLED},
    BatchStatus.IN_PROGRESS: {BatchStatus.READY, BatchStatus.CANCELLED},
    BatchStatus.READY: {BatchStatus.IN_PROGRESS, BatchStatus.DELIVERED},
    BatchStatus.DELIVERED: set(),
    BatchStatus.CANCELLED: set(),
}

UPDATABLE_FIELDS = {
    "custom_name", "current_qty", "status", "is_ready",
    "ready_date", "loss_reason", "loss_qty",
}


def parse_enum(enum_cls, value: Any, error_cls: Type[InvalidEnum], label: str):
    """Resolve ``value`` to a member of ``enum_cls`` or raise ``error_cls``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise error_cls(f"Invalid {label} '{value}'. Expected one of: {allowed}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BatchLifecycleManager:
    def __init__(
        self,
        db: Session,
        ledger: Optional[CapacityLedger] = None,
        history: Optional[StageHistoryLog] = None,
    ):
        self.db = db
        self.ledger = ledger or CapacityLedger(db)
        self.history = history or StageHistoryLog(db)

    # ── Reads ──────────────────────────────────────────────────

    def get_batch(self, batch_id: UUID) -> Batch:
        batch = self.db.get(Batch, batch_id)
        if not batch:
            raise NotFound("Batch not found")
        return batch

    def list_batches(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        species_id: Optional[UUID] = None,
        zone_id: Optional[UUID] = None,
        bed_id: Optional[UUID] = None,
        status: Optional[str] = None,
        stage: Optional[str] = None,
        pathway: Optional[str] = None,
        is_ready: Optional[bool] = None,
    ) -> Tuple[List[Batch], int]:
        query = self.db.query(Batch)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(or_(
                func.lower(Batch.batch_number).like(pattern),
                func.lower(Batch.custom_name).like(pattern),
            ))
        if species_id:
            query = query.filter(Batch.species_id == species_id)
        if zone_id:
            query = query.filter(Batch.zone_id == zone_id)
        if bed_id:
            query = query.filter(Batch.bed_id == bed_id)
        if status:
            query = query.filter(Batch.status == parse_enum(BatchStatus, status, InvalidStatus, "status"))
        if stage:
            query = query.filter(Batch.stage == parse_enum(BatchStage, stage, InvalidStage, "stage"))
        if pathway:
            query = query.filter(Batch.pathway == parse_enum(Pathway, pathway, InvalidPathway, "pathway"))
        if is_ready is not None:
            query = query.filter(Batch.is_ready.is_(is_ready))

        total = query.count()
        items = (
            query.order_by(Batch.created_at.desc(), Batch.batch_number.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def read_history(self, batch_id: UUID):
        self.get_batch(batch_id)
        return self.history.read_history(batch_id)

    # ── Creation ───────────────────────────────────────────────

    def create_batch(
        self,
        *,
        species_id: UUID,
        pathway: Any,
        initial_qty: int,
        created_by: User,
        batch_number: Optional[str] = None,
        custom_name: Optional[str] = None,
        zone_id: Optional[UUID] = None,
        bed_id: Optional[UUID] = None,
    ) -> Batch:
        pathway_value = parse_enum(Pathway, pathway, InvalidPathway, "pathway")
        if initial_qty < 1:
            raise ValidationError("Initial quantity must be a positive integer")

        with transaction(self.db):
            if batch_number:
                number = normalize_batch_number(batch_number, pathway_value)
            else:
                number = generate_batch_number(self.db, pathway_value)

            existing = (
                self.db.query(Batch.id)
                .filter(func.lower(Batch.batch_number) == number.lower())
                .first()
            )
            if existing:
                raise DuplicateBatchNumber("Batch number already exists")

            if not self.db.get(Species, species_id):
                raise NotFound("Species not found", status_code=400)

            if zone_id and not self.db.get(Zone, zone_id):
                raise NotFound("Zone not found", status_code=400)

            if bed_id:
                bed = self.ledger.check_capacity(bed_id, initial_qty)
                if zone_id and bed.zone_id != zone_id:
                    raise ValidationError("Bed does not belong to the selected zone")
                zone_id = bed.zone_id

            batch = Batch(
                batch_number=number,
                custom_name=custom_name,
                pathway=pathway_value,
                species_id=species_id,
                initial_qty=initial_qty,
                current_qty=initial_qty,
                status=BatchStatus.CREATED,
                stage=BatchStage.INITIAL,
                is_ready=False,
                loss_qty=0,
                created_by_id=created_by.id,
                zone_id=zone_id,
                bed_id=bed_id,
            )
            self.db.add(batch)
            try:
                self.db.flush()
            except IntegrityError:
                raise DuplicateBatchNumber("Batch number already exists")

            self.history.append(batch.id, None, BatchStage.INITIAL, initial_qty, "Batch created")
            if bed_id:
                self.ledger.increment(bed_id, initial_qty)
            snapshot = entity_to_dict(batch)

        logger.info(f"Batch {number} created with {initial_qty} plants (bed={bed_id})")
        log_action(self.db, created_by, "CREATE_BATCH", batch.id, None, snapshot)
        self.db.refresh(batch)
        return batch

    # ── Transitions ────────────────────────────────────────────

    def update_stage(
        self,
        batch_id: UUID,
        to_stage: Any,
        quantity: int,
        notes: Optional[str] = None,
        actor: Optional[User] = None,
    ) -> Batch:
        if quantity < 1:
            raise ValidationError("Quantity must be a positive integer")

        with transaction(self.db):
            batch = self._lock_batch(batch_id)
            stage = parse_enum(BatchStage, to_stage, InvalidStage, "stage")
            self._ensure_mutable(batch)
            before = entity_to_dict(batch)
            previous_stage = batch.stage

            if batch.holds_occupancy:
                self.ledger.adjust(batch.bed_id, quantity - batch.current_qty)

            batch.stage = stage
            batch.current_qty = quantity
            batch.status = BatchStatus.IN_PROGRESS
            # back in production: readiness has to be confirmed again
            batch.is_ready = False
            batch.ready_date = None
            self.history.append(batch.id, previous_stage, stage, quantity, notes)
            after = entity_to_dict(batch)

        logger.info(f"Batch {batch.batch_number} moved {previous_stage.value} -> {stage.value} ({quantity} plants)")
        log_action(self.db, actor, "UPDATE_STAGE", batch.id, before, after)
        self.db.refresh(batch)
        return batch

    def mark_ready(self, batch_id: UUID, actor: Optional[User] = None) -> Batch:
        with transaction(self.db):
            batch = self._lock_batch(batch_id)
            self._ensure_mutable(batch)
            before = entity_to_dict(batch)
            batch.is_ready = True
            batch.ready_date = _utcnow()
            batch.status = BatchStatus.READY
            self.db.flush()
            after = entity_to_dict(batch)

        log_action(self.db, actor, "MARK_READY", batch.id, before, after)
        self.db.refresh(batch)
        return batch

    def deliver_batch(self, batch_id: UUID, actor: Optional[User] = None) -> Batch:
        with transaction(self.db):
            batch = self._lock_batch(batch_id)
            if batch.status == BatchStatus.DELIVERED:
                raise Conflict("Batch has already been delivered")
            if batch.status == BatchStatus.CANCELLED:
                raise Conflict("Cancelled batches cannot be delivered")
            if batch.status != BatchStatus.READY or not batch.is_ready:
                raise NotReady("Batch is not ready for delivery")
            before = entity_to_dict(batch)

            if batch.holds_occupancy:
                self.ledger.decrement(batch.bed_id, batch.current_qty)
            batch.status = BatchStatus.DELIVERED
            self.db.flush()
            after = entity_to_dict(batch)

        logger.info(f"Batch {batch.batch_number} delivered ({batch.current_qty} plants)")
        log_action(self.db, actor, "DELIVER_BATCH", batch.id, before, after)
        self.db.refresh(batch)
        return batch

    def cancel_batch(self, batch_id: UUID, reason: Optional[str] = None, actor: Optional[User] = None) -> Batch:
        with transaction(self.db):
            batch = self._lock_batch(batch_id)
            if batch.status not in (BatchStatus.CREATED, BatchStatus.IN_PROGRESS):
                raise Conflict(f"Cannot cancel a batch with status {batch.status.value}")
            before = entity_to_dict(batch)

            if batch.holds_occupancy:
                self.ledger.decrement(batch.bed_id, batch.current_qty)
            batch.status = BatchStatus.CANCELLED
            self.db.flush()
            after = entity_to_dict(batch)
            after["cancel_reason"] = reason

        logger.info(f"Batch {batch.batch_number} cancelled")
        log_action(self.db, actor, "CANCEL_BATCH", batch.id, before, after)
        self.db.refresh(batch)
        return batch

    def record_loss(self, batch_id: UUID, quantity: int, reason: str, actor: Optional[User] = None) -> Batch:
        if quantity < 1:
            raise ValidationError("Loss quantity must be a positive integer")

        with transaction(self.db):
            batch = self._lock_batch(batch_id)
            self._ensure_mutable(batch)
            if quantity > batch.current_qty:
                raise ValidationError("Loss quantity cannot exceed the current quantity")
            before = entity_to_dict(batch)

            if batch.holds_occupancy:
                self.ledger.decrement(batch.bed_id, quantity)
            batch.current_qty = batch.current_qty - quantity
            batch.loss_qty = (batch.loss_qty or 0) + quantity
            batch.loss_reason = reason
            self.db.flush()
            after = entity_to_dict(batch)

        logger.info(f"Batch {batch.batch_number} lost {quantity} plants: {reason}")
        log_action(self.db, actor, "RECORD_LOSS", batch.id, before, after)
        self.db.refresh(batch)
        return batch

    def move_batch(
        self,
        batch_id: UUID,
        zone_id: Optional[UUID] = None,
        bed_id: Optional[UUID] = None,
        actor: Optional[User] = None,
    ) -> Batch:
        """Reassign placement; capacity moves from the old bed to the new one."""
        with transaction(self.db):
            batch = self._lock_batch(batch_id)
            self._ensure_mutable(batch)
            before = entity_to_dict(batch)
            old_bed_id = batch.bed_id
            if bed_id is not None and bed_id != old_bed_id:
                self.ledger.lock_beds([old_bed_id, bed_id], status_code=400)

            if bed_id is not None:
                if bed_id == old_bed_id:
                    bed = self.db.get(Bed, bed_id)
                else:
                    bed = self.ledger.reserve(bed_id, batch.current_qty)
                if zone_id and bed.zone_id != zone_id:
                    raise ValidationError("Bed does not belong to the selected zone")
                zone_id = bed.zone_id
            elif zone_id and not self.db.get(Zone, zone_id):
                raise NotFound("Zone not found", status_code=400)

            if old_bed_id is not None and old_bed_id != bed_id:
                self.ledger.decrement(old_bed_id, batch.current_qty)

            batch.bed_id = bed_id
            batch.zone_id = zone_id
            self.db.flush()
            after = entity_to_dict(batch)

        logger.info(f"Batch {batch.batch_number} moved from bed {old_bed_id} to bed {bed_id}")
        log_action(self.db, actor, "MOVE_BATCH", batch.id, before, after)
        self.db.refresh(batch)
        return batch

    # ── Field updates ──────────────────────────────────────────

    def update_batch_fields(self, batch_id: UUID, changes: Dict[str, Any], actor: Optional[User] = None) -> Batch:
        """Partial update. Quantity and terminal-status changes go through the ledger."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        with transaction(self.db):
            batch = self._lock_batch(batch_id)
            self._ensure_mutable(batch)
            before = entity_to_dict(batch)

            target_status = None
            if changes.get("status") is not None:
                target_status = parse_enum(BatchStatus, changes["status"], InvalidStatus, "status")

            new_qty = changes.get("current_qty")
            if new_qty is not None:
                if new_qty < 0:
                    raise ValidationError("Current quantity must be a non-negative integer")
                if batch.holds_occupancy:
                    self.ledger.adjust(batch.bed_id, new_qty - batch.current_qty)
                batch.current_qty = new_qty

            if "custom_name" in changes:
                batch.custom_name = changes["custom_name"]
            if "loss_reason" in changes:
                batch.loss_reason = changes["loss_reason"]
            if changes.get("loss_qty") is not None:
                batch.loss_qty = changes["loss_qty"]
            if changes.get("is_ready") is not None:
                batch.is_ready = changes["is_ready"]
            if changes.get("ready_date") is not None:
                batch.ready_date = changes["ready_date"]

            if target_status is not None and target_status != batch.status:
                self._transition_status(batch, target_status)

            self.db.flush()
            after = entity_to_dict(batch)

        log_action(self.db, actor, "UPDATE_BATCH", batch.id, before, after)
        self.db.refresh(batch)
        return batch

    # ── Deletion ───────────────────────────────────────────────

    def delete_batch(self, batch_id: UUID, actor: Optional[User] = None) -> None:
        with transaction(self.db):
            batch = self._lock_batch(batch_id)
            if batch.status == BatchStatus.DELIVERED:
                raise Conflict("Cannot delete delivered batch")
            before = entity_to_dict(batch)

            self.db.query(Measurement).filter(Measurement.batch_id == batch.id).delete(synchronize_session=False)
            self.history.purge(batch.id)
            if batch.holds_occupancy:
                self.ledger.decrement(batch.bed_id, batch.current_qty)
            self.db.delete(batch)

        logger.info(f"Batch {before['batch_number']} deleted")
        log_action(self.db, actor, "DELETE_BATCH", None, before, None)

    # ── Helpers ────────────────────────────────────────────────

    def _lock_batch(self, batch_id: UUID) -> Batch:
        batch = self.db.query(Batch).filter(Batch.id == batch_id).with_for_update().first()
        if not batch:
            raise NotFound("Batch not found")
        return batch

    @staticmethod
    def _ensure_mutable(batch: Batch) -> None:
        if batch.status in TERMINAL_STATUSES:
            raise Conflict(f"Batch is {batch.status.value} and can no longer be modified")

    def _transition_status(self, batch: Batch, target: BatchStatus) -> None:
        if target not in STATUS_TRANSITIONS[batch.status]:
            raise Conflict(f"Cannot change status from {batch.status.value} to {target.value}")
        if target == BatchStatus.DELIVERED and not batch.is_ready:
            raise NotReady("Batch is not ready for delivery")
        if target == BatchStatus.READY:
            batch.is_ready = True
            batch.ready_date = batch.ready_date or _utcnow()
        if target in TERMINAL_STATUSES and batch.holds_occupancy:
            self.ledger.decrement(batch.bed_id, batch.current_qty)
        batch.status = target
