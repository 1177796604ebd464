"""
API tests for the store inspection endpoints
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from tickpy.api.app import create_app
from tickpy.api.endpoints.store import router as store_router


def create_test_app():
    app = FastAPI()
    app.include_router(store_router)
    return app


def test_healthz():
    client = TestClient(create_app())
    resp = client.get("/api/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_health_repairs_posted_store():
    client = TestClient(create_test_app())

    resp = client.post("/api/store/health", json={
        "store": {"creeps": {"good": {"role": "harvester"}, "bad": None}, "roles": {"harvester": -3}}
    })

    assert resp.status_code == 200
    body = resp.json()
    assert body["result"]["is_healthy"] is False
    assert body["store"]["creeps"] == {"good": {"role": "harvester"}}
    assert body["store"]["roles"] == {}
    assert body["store"]["rooms"] == {}


def test_health_report_only():
    client = TestClient(create_test_app())

    resp = client.post("/api/store/health", json={"store": {}, "auto_repair": False})

    body = resp.json()
    assert body["result"]["issues_repaired"] == []
    assert body["store"] == {}


def test_migration_preview_and_status():
    client = TestClient(create_test_app())

    resp = client.post("/api/store/migrations/preview", json={"store": {"creeps": {}}})
    assert resp.status_code == 200
    preview = resp.json()
    assert preview["success"] is True
    assert preview["from_version"] == 0
    assert preview["migrations_to_apply"] == ["v1: Initialize schema version tracking"]

    resp = client.post("/api/store/migrations/status", json={"store": {"schemaVersion": 1}, "target_version": 3})
    assert resp.json() == {
        "current_version": 3,
        "store_version": 1,
        "pending_migrations": 0,
        "available_migrations": 1,
    }


def test_cycle_runs_kernel():
    client = TestClient(create_test_app())

    resp = client.post("/api/store/cycle", json={
        "store": {"creeps": {"h1": {"role": "harvester"}, "dead": {"role": "builder"}}},
        "tick": 12,
        "cpu_limit": 20,
        "creeps": ["h1"],
        "rooms": {"W1N1": {"controller_level": 1, "energy_available": 50}},
    })

    assert resp.status_code == 200
    body = resp.json()
    assert body["report"]["status"] == "completed"
    assert body["report"]["processes_run"] == ["initialization", "memory", "bootstrap"]
    assert body["store"]["roles"] == {"harvester": 1}
    assert body["store"]["schemaVersion"] == 1
    assert body["store"]["bootstrap"] == {"isActive": True, "startedAt": 12}


def test_cycle_over_budget():
    client = TestClient(create_test_app())

    resp = client.post("/api/store/cycle", json={"store": {}, "cpu_limit": 10, "cpu_used": 9.5})

    body = resp.json()
    assert body["report"]["status"] == "cpu_abort"
    assert body["report"]["processes_run"] == []


def test_cycle_rejects_invalid_payload():
    client = TestClient(create_test_app())
    resp = client.post("/api/store/cycle", json={"store": {}, "cpu_limit": 0})
    assert resp.status_code == 422


def test_cycle_rejects_non_numeric_room_fields():
    client = TestClient(create_test_app())

    resp = client.post("/api/store/cycle", json={
        "store": {},
        "rooms": {"W1N1": {"controller_level": "high"}},
    })

    assert resp.status_code == 400
    assert "Invalid room W1N1" in resp.json()["detail"]
