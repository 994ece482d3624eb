"""Capacity ledger: occupancy gate and cached counter maintenance."""
import uuid

import pytest
from sqlalchemy import update

from nursery.errors import CapacityExceeded, NotFound
from nursery.models import Bed, Pathway
from nursery.services import BatchLifecycleManager, CapacityLedger


def _create(db, user, species, bed, qty):
    return BatchLifecycleManager(db).create_batch(
        species_id=species.id,
        pathway=Pathway.PURCHASING,
        initial_qty=qty,
        bed_id=bed.id,
        created_by=user,
    )


def test_check_capacity_counts_occupying_batches(db, manager, species, bed):
    _create(db, manager, species, bed, 60)
    ledger = CapacityLedger(db)

    assert ledger.occupancy(bed.id) == 60
    assert ledger.check_capacity(bed.id, 40).id == bed.id
    db.rollback()

    with pytest.raises(CapacityExceeded) as exc_info:
        ledger.check_capacity(bed.id, 41)
    db.rollback()
    assert exc_info.value.details["occupied"] == 60
    assert exc_info.value.details["capacity"] == 100
    assert exc_info.value.details["requested"] == 41


def test_check_capacity_unknown_bed_is_a_client_error(db):
    with pytest.raises(NotFound) as exc_info:
        CapacityLedger(db).check_capacity(uuid.uuid4(), 1)
    assert exc_info.value.status_code == 400


def test_lock_bed_unknown_bed_is_not_found(db):
    with pytest.raises(NotFound) as exc_info:
        CapacityLedger(db).lock_bed(uuid.uuid4())
    assert exc_info.value.status_code == 404


def test_increment_refuses_to_overcommit(db, bed):
    ledger = CapacityLedger(db)
    ledger.increment(bed.id, 90)
    db.commit()

    with pytest.raises(CapacityExceeded):
        ledger.increment(bed.id, 11)
    db.rollback()

    db.refresh(bed)
    assert bed.occupied == 90


def test_increment_up_to_exact_capacity(db, bed):
    ledger = CapacityLedger(db)
    ledger.increment(bed.id, 100)
    db.commit()
    db.refresh(bed)
    assert bed.occupied == 100
    assert bed.available == 0


def test_decrement_and_adjust(db, bed):
    ledger = CapacityLedger(db)
    ledger.increment(bed.id, 50)
    ledger.decrement(bed.id, 20)
    ledger.adjust(bed.id, -10)
    ledger.adjust(bed.id, 0)
    db.commit()
    db.refresh(bed)
    assert bed.occupied == 20


def test_adjust_positive_delta_is_capacity_checked(db, manager, species, bed):
    _create(db, manager, species, bed, 80)
    ledger = CapacityLedger(db)

    with pytest.raises(CapacityExceeded):
        ledger.adjust(bed.id, 21)
    db.rollback()

    ledger.adjust(bed.id, 20)
    db.commit()
    db.refresh(bed)
    assert bed.occupied == 100


def test_reserve_checks_then_increments(db, bed):
    ledger = CapacityLedger(db)
    ledger.reserve(bed.id, 30)
    db.commit()
    db.refresh(bed)
    assert bed.occupied == 30


def test_reconcile_repairs_drift(db, manager, species, bed):
    _create(db, manager, species, bed, 35)
    db.execute(update(Bed).where(Bed.id == bed.id).values(occupied=99))
    db.commit()

    before, after = CapacityLedger(db).reconcile(bed.id)
    db.commit()

    assert (before, after) == (99, 35)
    db.refresh(bed)
    assert bed.occupied == 35


def test_reconcile_consistent_bed_is_unchanged(db, manager, species, bed):
    _create(db, manager, species, bed, 10)
    before, after = CapacityLedger(db).reconcile(bed.id)
    db.commit()
    assert before == after == 10


def test_lock_beds_in_ascending_id_order(db, bed, other_bed):
    beds = CapacityLedger(db).lock_beds([other_bed.id, None, bed.id, other_bed.id])
    assert list(beds) == sorted([bed.id, other_bed.id])
    assert beds[bed.id].name == "Bed A1"


def test_lock_beds_unknown_bed(db, bed):
    with pytest.raises(NotFound) as exc_info:
        CapacityLedger(db).lock_beds([bed.id, uuid.uuid4()], status_code=400)
    assert exc_info.value.status_code == 400
