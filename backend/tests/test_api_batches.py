"""Batch endpoints: envelopes, status codes and role checks."""
import uuid


def _create(client, headers, species, bed, qty=50, **extra):
    body = {"pathway": "PURCHASING", "speciesId": str(species.id), "initialQty": qty, "bedId": str(bed.id)}
    body.update(extra)
    return client.post("/batches", json=body, headers=headers)


def test_requires_authentication(client):
    res = client.get("/batches")
    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "Unauthenticated", "message": "Not authenticated"}


def test_create_batch(client, manager_headers, species, bed, zone):
    res = _create(client, manager_headers, species, bed, customName="  Spring mangoes ")
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    data = body["data"]
    assert data["batchNumber"].startswith("PU")
    assert len(data["batchNumber"]) == 11
    assert data["customName"] == "Spring mangoes"
    assert data["initialQty"] == data["currentQty"] == 50
    assert data["status"] == "CREATED"
    assert data["stage"] == "INITIAL"
    assert data["zoneId"] == str(zone.id)
    assert data["species"]["name"] == "Mango Tree"


def test_create_batch_over_capacity(client, manager_headers, species, bed, check_occupancy):
    res = _create(client, manager_headers, species, bed, qty=101)
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["error"] == "CapacityExceeded"
    check_occupancy()


def test_create_batch_duplicate_number(client, manager_headers, species, bed):
    assert _create(client, manager_headers, species, bed, qty=1, batchNumber="PU250101001").status_code == 201
    res = _create(client, manager_headers, species, bed, qty=1, batchNumber="pu250101001")
    assert res.status_code == 400
    assert res.json()["error"] == "DuplicateBatchNumber"


def test_create_batch_unknown_species_and_bad_pathway(client, manager_headers, species, bed):
    res = client.post(
        "/batches",
        json={"pathway": "PURCHASING", "speciesId": str(uuid.uuid4()), "initialQty": 1},
        headers=manager_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"] == "NotFound"

    res = _create(client, manager_headers, species, bed, pathway="GRAFTING")
    assert res.status_code == 400
    assert res.json()["error"] == "InvalidPathway"


def test_create_batch_missing_fields(client, manager_headers):
    res = client.post("/batches", json={"pathway": "PURCHASING"}, headers=manager_headers)
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "ValidationError"
    fields = {d["field"] for d in body["details"]}
    assert "body.speciesId" in fields
    assert "body.initialQty" in fields


def test_next_number_preview(client, officer_headers):
    res = client.get("/batches/next-number", params={"pathway": "SEED_GERMINATION"}, headers=officer_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["pathway"] == "SEED_GERMINATION"
    assert data["batchNumber"].startswith("SG")
    assert data["batchNumber"].endswith("001")


def test_list_batches_paginates(client, manager_headers, species, bed, other_bed):
    for target in (bed, other_bed, other_bed):
        _create(client, manager_headers, species, target, qty=10)

    res = client.get("/batches", params={"limit": 2}, headers=manager_headers)
    body = res.json()
    assert body["success"] is True
    assert len(body["data"]) == 2
    assert body["pagination"] == {
        "page": 1, "limit": 2, "total": 3, "totalPages": 2, "hasNext": True, "hasPrev": False,
    }

    res = client.get("/batches", params={"bedId": str(other_bed.id)}, headers=manager_headers)
    assert res.json()["pagination"]["total"] == 2


def test_get_unknown_batch(client, officer_headers):
    res = client.get(f"/batches/{uuid.uuid4()}", headers=officer_headers)
    assert res.status_code == 404
    assert res.json()["error"] == "NotFound"


def test_stage_update(client, officer_headers, manager_headers, species, bed, check_occupancy):
    batch_id = _create(client, manager_headers, species, bed).json()["data"]["id"]

    res = client.post(
        f"/batches/{batch_id}/stage",
        json={"toStage": "PROPAGATION", "quantity": 45, "notes": "moved to propagation"},
        headers=officer_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["historyAppended"] is True
    assert body["data"]["stage"] == "PROPAGATION"
    assert body["data"]["status"] == "IN_PROGRESS"
    assert body["data"]["currentQty"] == 45
    check_occupancy()

    history = client.get(f"/batches/{batch_id}/history", headers=officer_headers).json()["data"]
    assert [h["toStage"] for h in history] == ["PROPAGATION", "INITIAL"]
    assert history[0]["fromStage"] == "INITIAL"
    assert history[1]["fromStage"] is None


def test_stage_update_invalid_stage(client, officer_headers, manager_headers, species, bed):
    batch_id = _create(client, manager_headers, species, bed).json()["data"]["id"]
    res = client.post(
        f"/batches/{batch_id}/stage", json={"toStage": "FLOWERING", "quantity": 10}, headers=officer_headers
    )
    assert res.status_code == 400
    assert res.json()["error"] == "InvalidStage"


def test_stage_update_beyond_bed_capacity(client, officer_headers, manager_headers, species, bed):
    batch_id = _create(client, manager_headers, species, bed, qty=90).json()["data"]["id"]
    res = client.post(
        f"/batches/{batch_id}/stage", json={"toStage": "GROWING", "quantity": 101}, headers=officer_headers
    )
    assert res.status_code == 400
    assert res.json()["error"] == "CapacityExceeded"


def test_deliver_requires_ready(client, manager_headers, species, bed):
    batch_id = _create(client, manager_headers, species, bed).json()["data"]["id"]

    res = client.post(f"/batches/{batch_id}/deliver", headers=manager_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "NotReady"

    ready = client.post(f"/batches/{batch_id}/ready", headers=manager_headers).json()["data"]
    assert ready["status"] == "READY"
    assert ready["isReady"] is True
    assert ready["readyDate"] is not None

    delivered = client.post(f"/batches/{batch_id}/deliver", headers=manager_headers)
    assert delivered.status_code == 200
    assert delivered.json()["data"]["status"] == "DELIVERED"

    res = client.delete(f"/batches/{batch_id}", headers=manager_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Conflict"


def test_field_officer_cannot_deliver(client, officer_headers, manager_headers, species, bed):
    batch_id = _create(client, manager_headers, species, bed).json()["data"]["id"]
    res = client.post(f"/batches/{batch_id}/deliver", headers=officer_headers)
    assert res.status_code == 403
    assert res.json()["error"] == "Forbidden"


def test_cancel_with_and_without_reason(client, manager_headers, species, bed, check_occupancy):
    first = _create(client, manager_headers, species, bed, qty=10).json()["data"]["id"]
    second = _create(client, manager_headers, species, bed, qty=10).json()["data"]["id"]

    res = client.post(f"/batches/{first}/cancel", json={"reason": "pest outbreak"}, headers=manager_headers)
    assert res.json()["data"]["status"] == "CANCELLED"

    res = client.post(f"/batches/{second}/cancel", headers=manager_headers)
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "CANCELLED"
    check_occupancy()


def test_record_loss(client, officer_headers, manager_headers, species, bed):
    batch_id = _create(client, manager_headers, species, bed, qty=40).json()["data"]["id"]
    res = client.post(
        f"/batches/{batch_id}/loss", json={"quantity": 5, "reason": "frost"}, headers=officer_headers
    )
    data = res.json()["data"]
    assert data["currentQty"] == 35
    assert data["lossQty"] == 5

    res = client.post(
        f"/batches/{batch_id}/loss", json={"quantity": 36, "reason": "frost"}, headers=officer_headers
    )
    assert res.status_code == 400
    assert res.json()["error"] == "ValidationError"


def test_move_batch(client, manager_headers, species, bed, other_bed, check_occupancy):
    batch_id = _create(client, manager_headers, species, bed, qty=30).json()["data"]["id"]
    res = client.post(f"/batches/{batch_id}/move", json={"bedId": str(other_bed.id)}, headers=manager_headers)
    assert res.status_code == 200
    assert res.json()["data"]["bedId"] == str(other_bed.id)
    check_occupancy()


def test_update_batch_fields(client, officer_headers, manager_headers, species, bed):
    batch_id = _create(client, manager_headers, species, bed, qty=30).json()["data"]["id"]

    res = client.put(
        f"/batches/{batch_id}", json={"customName": "Renamed", "currentQty": 25}, headers=officer_headers
    )
    assert res.status_code == 200
    assert res.json()["data"]["customName"] == "Renamed"
    assert res.json()["data"]["currentQty"] == 25

    res = client.put(f"/batches/{batch_id}", json={"status": "DELIVERED"}, headers=officer_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Conflict"


def test_delete_batch(client, manager_headers, species, bed, check_occupancy):
    batch_id = _create(client, manager_headers, species, bed).json()["data"]["id"]
    res = client.delete(f"/batches/{batch_id}", headers=manager_headers)
    assert res.status_code == 200
    assert res.json() == {"success": True, "data": None, "message": "Batch deleted successfully"}
    assert client.get(f"/batches/{batch_id}", headers=manager_headers).status_code == 404
    check_occupancy()


def test_readiness_endpoint(client, officer_headers, manager_headers, species, bed):
    batch_id = _create(client, manager_headers, species, bed).json()["data"]["id"]
    client.post(
        "/measurements",
        json={"batchId": batch_id, "girth": 3.2, "height": 50, "sampleSize": 5},
        headers=officer_headers,
    )
    data = client.get(f"/batches/{batch_id}/readiness", headers=officer_headers).json()["data"]
    assert data["meetsTargets"] is True
    assert data["measurementCount"] == 1
    assert data["estimatedReadyDate"] is None
