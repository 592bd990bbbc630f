import uuid
from datetime import date, timedelta
from dashboard.main import app
from fastapi.testclient import TestClient
from dashboard.db import create_db_and_tables
from dashboard.services.cache_service import cache_service
from dashboard.services.kpi_service import kpis_key
from dashboard.services.sprint_service import sprints_key

client = TestClient(app)


def setup_module(module):
    create_db_and_tables()


def _project() -> str:
    return f"P{uuid.uuid4().hex[:8].upper()}"


def _closed_sprint(project: str, days_ago: int, lead_time: float, pr_size: float) -> dict:
    end = date.today() - timedelta(days=days_ago)
    return {
        "project_key": project,
        "name": f"{project} ends {end.isoformat()}",
        "state": "closed",
        "start_date": (end - timedelta(days=14)).isoformat(),
        "end_date": end.isoformat(),
        "avg_lead_time": lead_time,
        "avg_pr_size": pr_size,
    }


def test_delivery_kpis_are_cached_until_a_sprint_changes():
    project = _project()
    r = client.post("/sprints", json=_closed_sprint(project, 3, 60, 250))
    assert r.status_code == 200

    r = client.get("/kpis/delivery", params={"project_key": project})
    assert r.status_code == 200
    first = r.json()
    assert first["project_key"] == project
    assert first["cycle_time"]["hours"] == 60
    assert cache_service.get(kpis_key(project)) is not None

    # a cached payload is served even though the data underneath changed
    cache_service.set(kpis_key(project), {**first, "delivery_success_score": -1}, 300)
    r = client.get("/kpis/delivery", params={"project_key": project})
    assert r.json()["delivery_success_score"] == -1

    r = client.post("/sprints", json=_closed_sprint(project, 17, 70, 250))
    assert r.status_code == 200
    assert cache_service.get(kpis_key(project)) is None

    r = client.get("/kpis/delivery", params={"project_key": project})
    data = r.json()
    assert data["cycle_time"]["hours"] == 65
    assert data["deploy_frequency"]["working_days"] == 20
    assert data["delivery_success_score"] == 64


def test_sprint_list_read_through_and_patch_invalidation():
    project = _project()
    r = client.post("/sprints", json={"project_key": project, "name": "Sprint 1", "start_date": "2026-01-05"})
    assert r.status_code == 200
    sprint_id = r.json()["id"]

    r = client.get("/sprints", params={"project_key": project})
    assert r.status_code == 200
    assert [s["name"] for s in r.json()] == ["Sprint 1"]
    assert cache_service.get(sprints_key(project)) is not None

    r = client.patch(f"/sprints/{sprint_id}", json={"state": "closed", "completed_points": 21})
    assert r.status_code == 200
    assert r.json()["state"] == "closed"
    assert cache_service.get(sprints_key(project)) is None

    r = client.get("/sprints", params={"project_key": project})
    assert r.json()[0]["completed_points"] == 21


def test_patch_unknown_sprint_is_404():
    r = client.patch(f"/sprints/{uuid.uuid4()}", json={"state": "closed"})
    assert r.status_code == 404


def test_teams_are_cached_and_invalidated_on_create():
    name = f"Squad {uuid.uuid4().hex[:6]}"
    client.get("/teams")
    assert cache_service.get("team-all") is not None

    r = client.post("/teams", json={"name": name, "project_key": "OBD"})
    assert r.status_code == 200
    assert cache_service.get("team-all") is None

    r = client.get("/teams")
    assert any(t["name"] == name for t in r.json())


def test_health_reports_cache_entries():
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert isinstance(data["cache_entries"], int)


def test_duplicate_team_name_is_rejected():
    name = f"Squad {uuid.uuid4().hex[:6]}"
    r = client.post("/teams", json={"name": name})
    assert r.status_code == 200
    r = client.post("/teams", json={"name": name})
    assert r.status_code == 400
    assert r.json()["detail"] == "Team name already exists"


def test_patch_rejects_null_for_required_columns():
    project = _project()
    r = client.post("/sprints", json={"project_key": project, "name": "Sprint 1", "end_date": "2026-01-19"})
    sprint_id = r.json()["id"]

    r = client.patch(f"/sprints/{sprint_id}", json={"state": None})
    assert r.status_code == 400
    assert "state" in r.json()["detail"]

    # optional columns can still be cleared
    r = client.patch(f"/sprints/{sprint_id}", json={"end_date": None})
    assert r.status_code == 200
    assert r.json()["end_date"] is None
    assert r.json()["state"] == "active"
