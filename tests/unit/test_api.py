# ============================================================================
# FILE: tests/unit/test_api.py
# ============================================================================
"""
Unit tests for the REST API
"""

import pytest
from fastapi.testclient import TestClient

from api.main import app, get_assisted_matcher, get_store
from lab_reconciliation.core.context import TestRecordHeader, TestResultLine


@pytest.fixture
def client(store):
    """Client bound to the seeded test store, assisted matching off"""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_assisted_matcher] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


def _batch(*documents, **extra):
    return {"documents": list(documents), **extra}


def test_health(client):
    """Test health endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_health_reports_matcher(client, make_matcher):
    """Test the assisted matcher's own health is included when enabled"""
    app.dependency_overrides[get_assisted_matcher] = lambda: make_matcher()
    body = client.get("/health").json()
    assert body["assisted_matcher"]["healthy"] is True


# ============================================================================
# Batches
# ============================================================================

def test_ingest_batch(client, store):
    """Test two documents reconcile into one saved record"""
    payload = _batch(
        {"label": "scan-1", "test_date": "2024-03-01",
         "items": [{"name": "BUN", "value": "25", "unit": "mg/dl", "ref_text": "7-27"}]},
        {"label": "scan-2",
         "items": [{"name": "Urea Nitrogen", "value": 25.0}, {"name": "CREA", "value": "1.2"}]},
        subject_id="pet-1",
        hospital_name="City Vet",
    )
    response = client.post("/api/batches", json=payload)

    assert response.status_code == 200
    data = response.json()
    assert data["record"]["test_date"] == "2024-03-01"
    assert data["record"]["hospital_name"] == "City Vet"
    assert [l["canonical_id"] for l in data["lines"]] == ["bun", "crea"]
    assert data["lines"][0]["status"] == "Normal"
    assert data["stats"]["deduplicated"] == 1

    assert len(store.get_lines(data["record"]["id"])) == 2


def test_ingest_batch_without_documents(client):
    """Test an empty document list is a bad request"""
    assert client.post("/api/batches", json=_batch()).status_code == 400


def test_ingest_batch_nothing_valid(client, store):
    """Test a batch with no usable values is rejected"""
    payload = _batch({"label": "scan-1", "items": [{"name": "BUN", "value": ""}]})
    response = client.post("/api/batches", json=payload)

    assert response.status_code == 422
    assert store.list_headers() == []


# ============================================================================
# Mappings
# ============================================================================

def test_resolve_names(client):
    """Test known names map and unknown names come back null"""
    response = client.post("/api/mappings/resolve", json={"names": ["urea nitrogen", "Zzqx Factor"]})

    assert response.status_code == 200
    mappings = response.json()["mappings"]
    assert mappings["urea nitrogen"]["canonical_id"] == "bun"
    assert mappings["urea nitrogen"]["method"] == "exact"
    assert mappings["Zzqx Factor"] is None


# ============================================================================
# Merging
# ============================================================================

@pytest.fixture
def two_records(store):
    store.create_header(TestRecordHeader("src", hospital_name="City Vet"))
    store.create_header(TestRecordHeader("tgt", hospital_name="Town Clinic"))
    store.insert_lines([
        TestResultLine(record_id="src", canonical_id="bun", value=25.0),
        TestResultLine(record_id="src", canonical_id="crea", value=1.2),
        TestResultLine(record_id="tgt", canonical_id="bun", value=30.0),
    ])
    return store


def test_plan_merge(client, two_records):
    """Test the merge preview lists conflicts"""
    response = client.get("/api/records/merge", params={"source_id": "src", "target_id": "tgt"})

    assert response.status_code == 200
    data = response.json()
    assert data["hospital_conflict"] is True
    assert data["date_conflict"] is False
    assert [c["canonical_id"] for c in data["item_conflicts"]] == ["bun"]
    assert data["source_only"] == ["crea"]
    assert data["has_conflicts"] is True


def test_plan_merge_missing_record(client, two_records):
    """Test previewing against a missing record is 404"""
    response = client.get("/api/records/merge", params={"source_id": "src", "target_id": "nope"})
    assert response.status_code == 404


def test_plan_merge_same_record(client, two_records):
    """Test merging a record into itself is a bad request"""
    response = client.get("/api/records/merge", params={"source_id": "src", "target_id": "src"})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "merge_failed"


def test_execute_merge(client, two_records):
    """Test a merge applies resolutions and removes the source"""
    response = client.post("/api/records/merge", json={
        "source_id": "src",
        "target_id": "tgt",
        "target_hospital": "City Vet",
        "resolutions": {"bun": "source"},
    })

    assert response.status_code == 200
    assert response.json() == {"target_id": "tgt", "moved": ["crea"], "replaced": ["bun"], "kept_target": []}
    assert two_records.get_header("src") is None
    assert {l.canonical_id: l.value for l in two_records.get_lines("tgt")} == {"bun": 25.0, "crea": 1.2}


def test_execute_merge_bad_resolution(client, two_records):
    """Test an unknown resolution value is rejected without changes"""
    response = client.post("/api/records/merge", json={
        "source_id": "src", "target_id": "tgt", "resolutions": {"bun": "both"},
    })
    assert response.status_code == 400
    assert response.json()["detail"]["applied_steps"] == []
    assert two_records.get_header("src") is not None


# ============================================================================
# Unmapped curation
# ============================================================================

@pytest.fixture
def unmapped(store):
    store.create_header(TestRecordHeader("r1"))
    merge = store.ensure_unmapped_item("Creatinin")
    orphan = store.ensure_unmapped_item("Zzqx Factor")
    store.insert_lines([TestResultLine(record_id="r1", canonical_id=merge.id, value=1.1)])
    return {"merge": merge.id, "delete": orphan.id}


def test_list_unmapped(client, unmapped):
    """Test proposals are listed with their actions"""
    response = client.get("/api/admin/unmapped")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    actions = {p["item_id"]: p["action"] for p in data["proposals"]}
    assert actions == {unmapped["delete"]: "delete", unmapped["merge"]: "merge"}


def test_cleanup_dry_run(client, store, unmapped):
    """Test a dry run reports without deleting"""
    response = client.post("/api/admin/unmapped/cleanup", json={"dry_run": True})

    assert response.status_code == 200
    data = response.json()
    assert data["dry_run"] is True
    assert data["deleted"] == [unmapped["delete"]]
    assert data["merged"] == [unmapped["merge"]]
    assert store.get_canonical_item(unmapped["delete"]) is not None


def test_cleanup_selected_items(client, store, unmapped):
    """Test item_ids limits which proposals are applied"""
    response = client.post("/api/admin/unmapped/cleanup", json={"item_ids": [unmapped["delete"]]})

    assert response.status_code == 200
    assert response.json()["deleted"] == [unmapped["delete"]]
    assert response.json()["merged"] == []
    assert store.get_canonical_item(unmapped["delete"]) is None
    assert store.get_canonical_item(unmapped["merge"]) is not None
