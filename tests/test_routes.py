"""HTTP tests for the session endpoints."""

import json
import os

import pytest
from fastapi.testclient import TestClient

from companion.main import app
from companion.routes.sessions import get_session_service

from conftest import make_session, make_v0_session


@pytest.fixture
def client(service):
    app.dependency_overrides[get_session_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_put_then_get(client, session_record):
    resp = client.put("/api/sessions/session-1", json=session_record)
    assert resp.status_code == 200
    assert resp.json()["repaired"] is False

    resp = client.get("/api/sessions/session-1")
    assert resp.status_code == 200
    body = resp.json()
    assert body["session"] == session_record
    assert body["warnings"] == []


def test_put_migrates_old_sessions(client):
    resp = client.put("/api/sessions/session-1", json=make_v0_session(isRecording=True))

    assert resp.status_code == 200
    assert resp.json()["session"]["phase"] == "recording"
    assert resp.json()["session"]["schemaVersion"] == 1


def test_put_rejects_mismatched_id(client, session_record):
    resp = client.put("/api/sessions/other", json=session_record)

    assert resp.status_code == 400


def test_put_rejects_non_objects(client):
    resp = client.put("/api/sessions/session-1", json=[1, 2, 3])

    assert resp.status_code == 422
    assert resp.json()["detail"] == "Session data is null or not an object"


def test_get_missing_is_404(client):
    assert client.get("/api/sessions/missing").status_code == 404


def test_get_invalid_id_is_400(client):
    assert client.get("/api/sessions/bad.id").status_code == 400


def test_get_reports_repairs(client, storage):
    os.makedirs(storage.session_dir("damaged"))
    with open(storage.session_path("damaged"), "w") as f:
        json.dump({"id": "damaged", "name": "Week 3", "notes": "lost"}, f)

    body = client.get("/api/sessions/damaged").json()

    assert body["repaired"] is True
    assert "Invalid notes object, will initialize empty" in body["warnings"]
    assert body["session"]["notes"] == {}


def test_get_unparseable_file_is_422(client, storage):
    os.makedirs(storage.session_dir("garbled"))
    with open(storage.session_path("garbled"), "w") as f:
        f.write("{{{")

    assert client.get("/api/sessions/garbled").status_code == 422


def test_list_sessions(client):
    client.put("/api/sessions/a", json=make_session(id="a", updatedAt="2025-01-01T00:00:00.000Z"))
    client.put("/api/sessions/b", json=make_session(id="b", updatedAt="2025-02-01T00:00:00.000Z"))

    resp = client.get("/api/sessions")

    assert resp.status_code == 200
    assert [s["id"] for s in resp.json()] == ["b", "a"]
    assert resp.json()[0]["slideCount"] == 2


def test_validate_endpoint(client):
    resp = client.post("/api/sessions/validate", json={"name": "No id"})

    body = resp.json()
    assert resp.status_code == 200
    assert body["valid"] is False
    assert body["errors"] == ["Missing or invalid session ID"]
    assert body["recovered"]["name"] == "No id"


def test_validate_endpoint_non_object(client):
    body = client.post("/api/sessions/validate", json="just text").json()

    assert body == {
        "valid": False,
        "errors": ["Session data is null or not an object"],
        "warnings": [],
        "recovered": None,
    }


def test_delete_backup_restore_cycle(client, session_record):
    client.put("/api/sessions/session-1", json=session_record)

    resp = client.delete("/api/sessions/session-1")
    assert resp.status_code == 200
    assert resp.json()["backup"] is not None
    assert client.get("/api/sessions/session-1").status_code == 404

    resp = client.post("/api/sessions/session-1/restore")
    assert resp.status_code == 200
    assert resp.json()["session"] == session_record
    assert client.get("/api/sessions/session-1").json()["session"] == session_record


def test_backup_endpoint(client, storage, session_record):
    client.put("/api/sessions/session-1", json=session_record)

    resp = client.post("/api/sessions/session-1/backup")

    assert resp.status_code == 200
    assert storage.list_backups("session-1") == [resp.json()["backup"]]


def test_restore_without_backup_is_404(client):
    assert client.post("/api/sessions/nothing/restore").status_code == 404


def test_delete_missing_is_404(client):
    assert client.delete("/api/sessions/missing").status_code == 404


def test_get_deeply_nested_file_is_422(client, storage):
    os.makedirs(storage.session_dir("nested"))
    with open(storage.session_path("nested"), "w") as f:
        f.write("[" * 100000)

    assert client.get("/api/sessions/nested").status_code == 422
