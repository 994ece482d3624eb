"""Auth, users, species, zones, analytics and audit endpoints."""
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import update

from conftest import PASSWORD
from nursery.models import AuditLog, Batch, Bed, Measurement, Pathway, Role, Species
from nursery.services import BatchLifecycleManager


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"
    assert res.json()["db"] == "ok"
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert "X-Request-ID" in res.headers


def test_login_and_me(client, manager):
    res = client.post("/auth/login", json={"email": " Manager@plant.test", "password": PASSWORD})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["tokenType"] == "bearer"
    assert data["role"] == "MANAGER"

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {data['accessToken']}"})
    assert me.json()["data"]["email"] == manager.email


def test_login_wrong_password(client, manager):
    res = client.post("/auth/login", json={"email": manager.email, "password": "wrong-password"})
    assert res.status_code == 401
    assert res.json()["error"] == "Unauthenticated"


def test_garbage_token(client):
    res = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401


def test_user_admin(client, admin_headers, manager_headers):
    res = client.post(
        "/users",
        json={"email": "New.Officer@plant.test", "password": "longenough", "firstName": "New", "role": "FIELD_OFFICER"},
        headers=admin_headers,
    )
    assert res.status_code == 201
    user = res.json()["data"]
    assert user["email"] == "new.officer@plant.test"

    dup = client.post(
        "/users", json={"email": "new.officer@plant.test", "password": "longenough"}, headers=admin_headers
    )
    assert dup.status_code == 409
    assert dup.json()["error"] == "Conflict"

    res = client.patch(f"/users/{user['id']}", json={"role": "OWNER"}, headers=admin_headers)
    assert res.status_code == 400

    res = client.patch(f"/users/{user['id']}", json={"isActive": False}, headers=admin_headers)
    assert res.json()["data"]["isActive"] is False

    assert client.get("/users", headers=manager_headers).status_code == 200
    assert client.patch(f"/users/{user['id']}", json={"isActive": True}, headers=manager_headers).status_code == 403


def test_user_lookup_and_stats(client, admin, manager, officer, admin_headers, manager_headers, officer_headers):
    res = client.get(f"/users/{officer.id}", headers=manager_headers)
    assert res.json()["data"]["email"] == officer.email
    assert client.get(f"/users/{uuid.uuid4()}", headers=manager_headers).status_code == 404
    assert client.get(f"/users/{officer.id}", headers=officer_headers).status_code == 403

    client.patch(f"/users/{officer.id}", json={"isActive": False}, headers=admin_headers)
    stats = client.get("/users/stats", headers=manager_headers).json()["data"]
    assert stats["totalUsers"] == 3
    assert stats["activeUsers"] == 2
    assert stats["usersByRole"] == {"SUPER_ADMIN": 1, "MANAGER": 1, "FIELD_OFFICER": 1}


def test_delete_user(db, client, admin_headers, manager_headers, manager, make_user, species):
    idle = make_user(Role.FIELD_OFFICER, email="idle@plant.test")
    assert client.delete(f"/users/{idle.id}", headers=manager_headers).status_code == 403
    res = client.delete(f"/users/{idle.id}", headers=admin_headers)
    assert res.status_code == 200
    assert client.get(f"/users/{idle.id}", headers=admin_headers).status_code == 404
    assert client.delete(f"/users/{idle.id}", headers=admin_headers).status_code == 404

    BatchLifecycleManager(db).create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=5, created_by=manager,
    )
    res = client.delete(f"/users/{manager.id}", headers=admin_headers)
    assert res.status_code == 409
    assert "deactivate" in res.json()["message"]


def test_update_profile(db, client, officer, officer_headers):
    res = client.put("/auth/profile", json={"firstName": " Ama ", "lastName": "Mensah"}, headers=officer_headers)
    assert res.status_code == 200
    assert res.json()["data"]["firstName"] == "Ama"
    assert res.json()["data"]["role"] == "FIELD_OFFICER"

    entry = db.query(AuditLog).filter(AuditLog.action == "PROFILE_UPDATED").one()
    assert entry.user_id == officer.id
    assert entry.new_values["last_name"] == "Mensah"


def test_change_password(db, client, officer, officer_headers):
    res = client.post(
        "/auth/change-password",
        json={"currentPassword": "not-my-password", "newPassword": "brand-new-secret"},
        headers=officer_headers,
    )
    assert res.status_code == 400
    assert res.json()["message"] == "Current password is incorrect"

    res = client.post(
        "/auth/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "short"},
        headers=officer_headers,
    )
    assert res.status_code == 400

    res = client.post(
        "/auth/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "brand-new-secret"},
        headers=officer_headers,
    )
    assert res.status_code == 200
    assert client.post("/auth/login", json={"email": officer.email, "password": PASSWORD}).status_code == 401
    assert client.post("/auth/login", json={"email": officer.email, "password": "brand-new-secret"}).status_code == 200
    assert db.query(AuditLog).filter(AuditLog.action == "PASSWORD_CHANGED").count() == 1


def test_species_crud(client, manager_headers, admin_headers, officer_headers):
    res = client.post(
        "/species",
        json={"name": " Teak Tree ", "scientificName": "Tectona grandis", "targetGirth": 4.5, "targetHeight": 70},
        headers=manager_headers,
    )
    assert res.status_code == 201
    species = res.json()["data"]
    assert species["name"] == "Teak Tree"
    assert species["batchCount"] == 0

    dup = client.post(
        "/species", json={"name": "teak tree", "targetGirth": 1, "targetHeight": 1}, headers=manager_headers
    )
    assert dup.status_code == 409

    assert client.post(
        "/species", json={"name": "Oak", "targetGirth": 1, "targetHeight": 1}, headers=officer_headers
    ).status_code == 403

    res = client.put(f"/species/{species['id']}", json={"targetHeight": 75}, headers=manager_headers)
    assert res.json()["data"]["targetHeight"] == 75

    assert client.delete(f"/species/{species['id']}", headers=manager_headers).status_code == 403
    assert client.delete(f"/species/{species['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/species/{species['id']}", headers=officer_headers).status_code == 404


def test_species_with_batches_is_protected(db, client, admin_headers, manager, species):
    BatchLifecycleManager(db).create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=5, created_by=manager,
    )
    res = client.put(f"/species/{species.id}", json={"name": "Mango Deluxe"}, headers=admin_headers)
    assert res.status_code == 409
    res = client.delete(f"/species/{species.id}", headers=admin_headers)
    assert res.status_code == 409
    res = client.get(f"/species/{species.id}", headers=admin_headers)
    assert res.json()["data"]["batchCount"] == 1


def test_zone_with_beds(client, manager_headers, admin_headers):
    res = client.post(
        "/zones",
        json={"name": "Zone B - Growing", "capacity": 1000, "beds": [{"name": "B1", "capacity": 300}]},
        headers=manager_headers,
    )
    assert res.status_code == 201
    zone = res.json()["data"]
    assert zone["currentOccupancy"] == 0
    assert zone["beds"][0]["available"] == 300

    res = client.post(f"/zones/{zone['id']}/beds", json={"name": "b1", "capacity": 10}, headers=manager_headers)
    assert res.status_code == 409

    res = client.post(f"/zones/{zone['id']}/beds", json={"name": "B2", "capacity": 50}, headers=manager_headers)
    bed = res.json()["data"]
    assert bed["zoneId"] == zone["id"]

    res = client.put(f"/zones/beds/{bed['id']}", json={"capacity": 80}, headers=manager_headers)
    assert res.json()["data"]["capacity"] == 80

    assert len(client.get(f"/zones/{zone['id']}", headers=manager_headers).json()["data"]["beds"]) == 2
    assert client.delete(f"/zones/{zone['id']}", headers=admin_headers).status_code == 200


def test_zone_occupancy_and_delete_guard(db, client, admin_headers, manager, species, zone, bed):
    BatchLifecycleManager(db).create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=30, bed_id=bed.id, created_by=manager,
    )
    data = client.get(f"/zones/{zone.id}", headers=admin_headers).json()["data"]
    assert data["currentOccupancy"] == 30
    assert data["utilizationPercentage"] == 3

    assert client.delete(f"/zones/{zone.id}", headers=admin_headers).status_code == 409


def test_reconcile_bed(db, client, admin_headers, manager_headers, manager, species, bed):
    BatchLifecycleManager(db).create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=12, bed_id=bed.id, created_by=manager,
    )
    db.execute(update(Bed).where(Bed.id == bed.id).values(occupied=40))
    db.commit()

    assert client.post(f"/zones/beds/{bed.id}/reconcile", headers=manager_headers).status_code == 403

    res = client.post(f"/zones/beds/{bed.id}/reconcile", headers=admin_headers)
    data = res.json()["data"]
    assert data["previousOccupied"] == 40
    assert data["occupied"] == 12

    res = client.post(f"/zones/beds/{uuid.uuid4()}/reconcile", headers=admin_headers)
    assert res.status_code == 404


def test_analytics(db, client, officer_headers, manager, species, zone, bed):
    lifecycle = BatchLifecycleManager(db)
    first = lifecycle.create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=20, bed_id=bed.id, created_by=manager,
    )
    lifecycle.create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=10, bed_id=bed.id, created_by=manager,
    )
    lifecycle.update_stage(first.id, "GROWING", 20, actor=manager)

    stats = client.get("/analytics/dashboard", headers=officer_headers).json()["data"]
    assert stats["totalBatches"] == 2
    assert stats["activeBatches"] == 2
    assert stats["totalPlants"] == 30
    assert len(stats["recentActivity"]) == 2

    zones = client.get("/analytics/zones", headers=officer_headers).json()["data"]
    assert zones[0]["occupied"] == 30

    distribution = client.get("/analytics/species", headers=officer_headers).json()["data"]
    assert distribution[0]["batchCount"] == 2
    assert distribution[0]["plantCount"] == 30

    pipeline = {row["stage"]: row for row in client.get("/analytics/stages", headers=officer_headers).json()["data"]}
    assert pipeline["GROWING"]["plantCount"] == 20
    assert pipeline["INITIAL"]["batchCount"] == 1


def _naive_utcnow() -> datetime:
    # SQLite keeps timestamps without an offset
    return datetime.now(timezone.utc).replace(tzinfo=None)


def test_growth_trends(db, client, manager_headers, officer_headers, manager, species):
    teak = Species(name="Teak Tree", target_girth=4.5, target_height=70.0)
    db.add(teak)
    db.commit()
    lifecycle = BatchLifecycleManager(db)
    mango_batch = lifecycle.create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=20, created_by=manager,
    )
    teak_batch = lifecycle.create_batch(
        species_id=teak.id, pathway=Pathway.PURCHASING, initial_qty=20, created_by=manager,
    )

    now = _naive_utcnow()
    two_days_ago = (now - timedelta(days=2)).replace(hour=8, minute=0, second=0, microsecond=0)
    yesterday = (now - timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
    samples = [
        (mango_batch, 2.0, 30.0, two_days_ago),
        (mango_batch, 3.0, 40.0, two_days_ago + timedelta(hours=2)),
        (teak_batch, 5.0, 60.0, two_days_ago + timedelta(hours=3)),
        (mango_batch, 4.0, 50.0, yesterday),
        (mango_batch, 9.0, 90.0, now - timedelta(days=60)),
    ]
    for batch, girth, height, taken_at in samples:
        db.add(Measurement(
            batch_id=batch.id, user_id=manager.id, girth=girth, height=height, sample_size=5, created_at=taken_at,
        ))
    db.commit()

    points = client.get("/analytics/growth", headers=manager_headers).json()["data"]
    assert [p["date"] for p in points] == [two_days_ago.date().isoformat(), yesterday.date().isoformat()]
    assert points[0]["measurementCount"] == 3
    assert points[0]["averageGirth"] == 3.33
    assert points[0]["averageHeight"] == 43.33

    res = client.get("/analytics/growth", params={"speciesId": str(species.id)}, headers=manager_headers)
    points = res.json()["data"]
    assert [(p["averageGirth"], p["averageHeight"], p["measurementCount"]) for p in points] == [
        (2.5, 35.0, 2), (4.0, 50.0, 1),
    ]

    res = client.get(
        "/analytics/growth", params={"startDate": (now - timedelta(days=90)).isoformat()}, headers=manager_headers,
    )
    assert len(res.json()["data"]) == 3

    assert client.get("/analytics/growth", headers=officer_headers).status_code == 403


def test_production_metrics(db, client, manager_headers, officer_headers, manager, species):
    lifecycle = BatchLifecycleManager(db)
    delivered = lifecycle.create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=40, created_by=manager,
    )
    lifecycle.mark_ready(delivered.id, actor=manager)
    lifecycle.deliver_batch(delivered.id, actor=manager)
    damaged = lifecycle.create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=25, created_by=manager,
    )
    lifecycle.record_loss(damaged.id, 3, "pest damage", actor=manager)
    lifecycle.create_batch(species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=10, created_by=manager)
    old = lifecycle.create_batch(
        species_id=species.id, pathway=Pathway.PURCHASING, initial_qty=10, created_by=manager,
    )

    now = _naive_utcnow()
    db.execute(
        update(Batch)
        .where(Batch.id == delivered.id)
        .values(created_at=now - timedelta(days=10), ready_date=now - timedelta(hours=12))
    )
    db.execute(update(Batch).where(Batch.id == old.id).values(created_at=now - timedelta(days=60)))
    db.commit()

    metrics = client.get("/analytics/production", headers=manager_headers).json()["data"]
    assert metrics["periodStart"] is not None
    assert metrics["periodEnd"] is None
    assert metrics["batchesCreated"] == 3
    assert metrics["batchesDelivered"] == 1
    assert metrics["plantsDelivered"] == 40
    # 9.5 days from creation to ready, rounded up
    assert metrics["averageProcessingDays"] == 10
    assert metrics["totalLoss"] == 3
    assert metrics["completionRate"] == 33
    assert metrics["lossByReason"] == [{"reason": "pest damage", "batchCount": 1, "plantsLost": 3}]

    res = client.get(
        "/analytics/production", params={"startDate": (now - timedelta(days=90)).isoformat()}, headers=manager_headers,
    )
    assert res.json()["data"]["batchesCreated"] == 4

    assert client.get("/analytics/production", headers=officer_headers).status_code == 403


def test_audit_logs(client, manager_headers, officer_headers, species, bed):
    res = client.post(
        "/batches",
        json={"pathway": "PURCHASING", "speciesId": str(species.id), "initialQty": 10, "bedId": str(bed.id)},
        headers=manager_headers,
    )
    batch_id = res.json()["data"]["id"]
    client.post(f"/batches/{batch_id}/cancel", json={"reason": "pest outbreak"}, headers=manager_headers)

    assert client.get("/audit-logs", headers=officer_headers).status_code == 403

    body = client.get("/audit-logs", params={"batchId": batch_id}, headers=manager_headers).json()
    assert body["pagination"]["total"] == 2
    actions = [row["action"] for row in body["data"]]
    assert set(actions) == {"CREATE_BATCH", "CANCEL_BATCH"}

    cancel = client.get("/audit-logs", params={"action": "cancel_batch"}, headers=manager_headers).json()["data"]
    assert cancel[0]["newValues"]["cancel_reason"] == "pest outbreak"
    assert cancel[0]["oldValues"]["status"] == "CREATED"
