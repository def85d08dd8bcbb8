"""HTTP tests for the milestone API."""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from upstream.core.config import settings
from upstream.db.session import Base, get_db
from upstream.main import create_app
from upstream.services.container import build_services


@pytest.fixture(scope="module")
def app():
    return create_app(init_db=False)


@pytest.fixture()
def db_session():
    # One shared connection so the app's worker threads see the same in-memory database
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(app, db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def seeded(db_session):
    services = build_services(db_session)
    author = services.users.create("pat", "Pat Manager")
    helper = services.users.create("sam", "Sam Helper")
    project = services.projects.create("Website relaunch", author.id)
    return services, author, helper, project


def _create(client, project_id, **payload):
    response = client.post(f"/api/v1/projects/{project_id}/milestones", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_fetch_milestone(client, seeded):
    _, author, helper, project = seeded
    created = _create(
        client,
        project.id,
        name="Design sign-off",
        created_by=author.id,
        assigned_to=[helper.id, helper.id, 0],
        start_date="May 01, 2024",
        end_date=1717113600,
        progress=10,
        notes="Review <b>mockups</b>",
    )

    assert created["project_id"] == project.id
    assert created["assigned_to"] == [helper.id]
    assert created["start_date"] == "2024-05-01"
    assert created["end_date"] == "2024-05-31"
    assert created["start_date_display"] == "May 01, 2024"
    assert created["notes"] == "Review mockups"
    assert created["state"] == "persisted"

    fetched = client.get(f"/api/v1/milestones/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == created


def test_list_is_ordered_by_order(client, seeded):
    _, author, _, project = seeded
    launch = _create(client, project.id, name="Launch", created_by=author.id, order=2)
    design = _create(client, project.id, name="Design", created_by=author.id, order=1)

    response = client.get(f"/api/v1/projects/{project.id}/milestones")
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [design["id"], launch["id"]]


def test_create_rejects_unknown_user_and_project(client, seeded):
    _, author, _, project = seeded

    response = client.post(f"/api/v1/projects/{project.id}/milestones", json={"name": "X", "created_by": 999})
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"

    response = client.post("/api/v1/projects/999/milestones", json={"name": "X", "created_by": author.id})
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_patch_applies_setters_and_rejects_bad_progress(client, seeded):
    _, author, _, project = seeded
    created = _create(client, project.id, name="Design", created_by=author.id)

    response = client.patch(
        f"/api/v1/milestones/{created['id']}",
        json={"name": "Design review", "color": "#123456", "progress": 55.5},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Design review"
    assert body["color"] == "#123456"
    assert body["progress"] == 55.5

    response = client.patch(f"/api/v1/milestones/{created['id']}", json={"name": "Renamed", "progress": -5})
    assert response.status_code == 422
    unchanged = client.get(f"/api/v1/milestones/{created['id']}").json()
    assert unchanged["name"] == "Design review"
    assert unchanged["progress"] == 55.5


def test_legacy_rowset_and_lookup(client, seeded):
    _, author, helper, project = seeded
    created = _create(
        client,
        project.id,
        name="Design",
        created_by=author.id,
        assigned_to=[helper.id],
        legacy_id="ms-7",
    )

    rowset = client.get(f"/api/v1/milestones/{created['id']}/legacy").json()
    assert rowset["milestone"] == "Design"
    assert rowset["assigned_to_order"] == "Sam Helper"

    found = client.get("/api/v1/milestones/legacy/ms-7")
    assert found.status_code == 200
    assert found.json()["id"] == created["id"]


def test_delete_trashes_and_hides_milestone(client, seeded):
    services, author, _, project = seeded
    created = _create(client, project.id, name="Design", created_by=author.id)
    services.tasks.save_tasks_for_project(project.id, [{"id": "t1", "milestone": created["id"]}])

    response = client.delete(f"/api/v1/milestones/{created['id']}")
    assert response.status_code == 200
    assert response.json() == {"status": "deleted"}

    assert client.get(f"/api/v1/milestones/{created['id']}").status_code == 404
    assert client.get(f"/api/v1/projects/{project.id}/milestones").json() == []
    assert services.tasks.get_tasks_for_project(project.id) == [{"id": "t1", "milestone": ""}]
    assert [entry.action for entry in services.activity.for_project(project.id)] == ["remove"]


def test_api_key_is_enforced_when_configured(client, seeded, monkeypatch):
    _, _, _, project = seeded
    monkeypatch.setattr(settings, "API_KEY", "secret-key")

    response = client.get(f"/api/v1/projects/{project.id}/milestones")
    assert response.status_code == 401
    assert response.json()["code"] == "http_error"

    response = client.get(f"/api/v1/projects/{project.id}/milestones", headers={"X-API-Key": "secret-key"})
    assert response.status_code == 200


def test_bearer_token_user_is_recorded_on_delete(client, seeded, monkeypatch):
    services, author, _, project = seeded
    monkeypatch.setattr(settings, "API_KEY", "secret-key")
    created = _create_with_key(client, project.id, author.id)

    response = client.post("/api/v1/auth/token", json={"apiKey": "secret-key", "userId": author.id})
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]

    response = client.delete(
        f"/api/v1/milestones/{created['id']}",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 200
    assert [entry.user_id for entry in services.activity.for_project(project.id)] == [author.id]


def _create_with_key(client, project_id, author_id):
    response = client.post(
        f"/api/v1/projects/{project_id}/milestones",
        json={"name": "Design", "created_by": author_id},
        headers={"X-API-Key": "secret-key"},
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_token_exchange_rejects_bad_key_and_unknown_user(client, seeded, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret-key")

    response = client.post("/api/v1/auth/token", json={"apiKey": "wrong"})
    assert response.status_code == 401

    response = client.post("/api/v1/auth/token", json={"apiKey": "secret-key", "userId": 9999})
    assert response.status_code == 422


def test_token_exchange_is_disabled_without_api_key(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "")
    monkeypatch.setattr(settings, "API_TOKEN", "")

    response = client.post("/api/v1/auth/token", json={"apiKey": "anything"})
    assert response.status_code == 400


def test_refresh_token_issues_new_pair_for_same_user(client, seeded, monkeypatch):
    _, author, _, project = seeded
    monkeypatch.setattr(settings, "API_KEY", "secret-key")
    pair = client.post("/api/v1/auth/token", json={"apiKey": "secret-key", "userId": author.id}).json()

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": pair["refresh_token"]})
    assert response.status_code == 200
    refreshed = response.json()
    assert refreshed["token_type"] == "bearer"

    response = client.get(
        f"/api/v1/projects/{project.id}/milestones",
        headers={"Authorization": f"Bearer {refreshed['access_token']}"},
    )
    assert response.status_code == 200

    # An access token is not accepted where a refresh token is expected
    response = client.post("/api/v1/auth/refresh", json={"refresh_token": pair["access_token"]})
    assert response.status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
