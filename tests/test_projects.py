# tests/test_projects.py
from smartdrishti.db import db
from smartdrishti.models import Project, Step, StepMedia
from smartdrishti.services.project_service import DEFAULT_STEPS


def _create(client, headers, **overrides):
    body = {"title": "Weather Station", "difficulty": "Medium", "description": "DHT22 + ESP32"}
    body.update(overrides)
    return client.post("/api/projects", headers=headers, json=body)


def test_create_project_requires_token(client):
    response = _create(client, {})
    assert response.status_code == 401


def test_create_project_with_default_steps(client, auth_headers, new_user):
    response = _create(client, auth_headers, estimated_time="3 hours")
    assert response.status_code == 201
    project = response.get_json()["project"]
    assert project["user_id"] == new_user.id
    assert project["estimated_time"] == "3 hours"
    assert [s["title"] for s in project["steps"]] == [s["title"] for s in DEFAULT_STEPS]
    assert all(s["status"] == "not_started" for s in project["steps"])
    assert project["total_steps"] == "8"
    assert project["progress"] == 0


def test_create_project_with_explicit_steps(client, auth_headers):
    response = _create(client, auth_headers, steps=[
        {"title": "Wire it", "status": "completed", "components": ["ESP32"]},
        {"title": "Code it", "status": "in_progress"},
    ])
    assert response.status_code == 201
    project = response.get_json()["project"]
    assert [s["status"] for s in project["steps"]] == ["completed", "working"]
    assert project["steps"][0]["components"] == ["ESP32"]
    assert project["progress"] == 50


def test_create_project_validation(client, auth_headers):
    response = _create(client, auth_headers, description="")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Title, difficulty, and description are required"}

    response = _create(client, auth_headers, difficulty="Impossible")
    assert response.status_code == 400


def test_create_project_bad_step_writes_nothing(client, auth_headers):
    response = _create(client, auth_headers, steps=[{"title": "ok"}, {"title": "bad", "components": "not json"}])
    assert response.status_code == 400
    assert db.session.query(Project).count() == 0
    assert db.session.query(Step).count() == 0


def test_list_projects_newest_first_with_progress(client, auth_headers, project_with_steps):
    _create(client, auth_headers, title="Second")
    response = client.get("/api/projects")
    assert response.status_code == 200
    projects = response.get_json()
    assert [p["title"] for p in projects] == ["Second", "Weather Station"]
    weather = projects[1]
    assert weather["total_steps"] == "3"
    assert weather["completed_steps"] == "1"
    assert weather["progress"] == 33
    assert "steps" not in weather


def test_list_projects_can_include_steps(client, project_with_steps):
    projects = client.get("/api/projects?include=steps").get_json()
    assert [s["title"] for s in projects[0]["steps"]] == ["Wiring", "Firmware", "Dashboard"]
    assert projects[0]["steps"][0]["media"] == []


def test_get_project_detail(client, project_with_steps):
    step = project_with_steps.steps[0]
    db.session.add(StepMedia(step_id=step.id, media_type="image", media_url="/uploads/wiring.png"))
    db.session.commit()

    response = client.get(f"/api/projects/{project_with_steps.id}")
    assert response.status_code == 200
    project = response.get_json()
    assert project["progress"] == 33
    assert project["steps"][0]["media"][0]["media_url"] == "/uploads/wiring.png"


def test_get_missing_project(client):
    response = client.get("/api/projects/404")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Project not found"}


def test_owner_can_update_project(client, auth_headers, project_with_steps):
    response = client.put(f"/api/projects/{project_with_steps.id}", headers=auth_headers,
                          json={"title": "Renamed", "description": None})
    assert response.status_code == 200
    project = response.get_json()["project"]
    assert project["title"] == "Renamed"
    assert project["description"] == "DHT22 on an ESP32"
    assert project["difficulty"] == "Medium"


def test_update_can_replace_steps(client, auth_headers, project_with_steps):
    response = client.put(f"/api/projects/{project_with_steps.id}", headers=auth_headers,
                          json={"steps": [{"title": "Only step", "status": "completed"}]})
    assert response.status_code == 200
    project = response.get_json()["project"]
    assert [s["title"] for s in project["steps"]] == ["Only step"]
    assert project["progress"] == 100
    assert db.session.query(Step).count() == 1


def test_other_user_cannot_modify(client, other_headers, project_with_steps):
    response = client.put(f"/api/projects/{project_with_steps.id}", headers=other_headers, json={"title": "x"})
    assert response.status_code == 403
    response = client.delete(f"/api/projects/{project_with_steps.id}", headers=other_headers)
    assert response.status_code == 403
    assert db.session.get(Project, project_with_steps.id) is not None


def test_demo_project_is_editable_by_anyone(client, other_headers):
    demo = Project(title="Demo", difficulty="Easy", description="d", is_demo=True)
    db.session.add(demo)
    db.session.commit()
    response = client.put(f"/api/projects/{demo.id}", headers=other_headers, json={"title": "Edited"})
    assert response.status_code == 200


def test_admin_cannot_modify_other_users_project(client, admin_headers, project_with_steps):
    project_id = project_with_steps.id
    response = client.put(f"/api/projects/{project_id}", headers=admin_headers, json={"title": "Taken"})
    assert response.status_code == 403
    response = client.delete(f"/api/projects/{project_id}", headers=admin_headers)
    assert response.status_code == 403
    assert response.get_json()["error"] == "Access denied: You can only delete your own projects"
    assert db.session.get(Project, project_id) is not None


def test_owner_delete_cascades_to_steps(client, auth_headers, project_with_steps):
    project_id = project_with_steps.id
    response = client.delete(f"/api/projects/{project_id}", headers=auth_headers)
    assert response.status_code == 200
    assert db.session.get(Project, project_id) is None
    assert db.session.query(Step).count() == 0


def test_update_rejects_non_string_fields(client, auth_headers, project_with_steps):
    response = client.put(f"/api/projects/{project_with_steps.id}", headers=auth_headers,
                          json={"title": ["x"]})
    assert response.status_code == 400
    assert response.get_json()["error"] == "title must be a string"


def test_update_rejects_empty_title(client, auth_headers, project_with_steps):
    response = client.put(f"/api/projects/{project_with_steps.id}", headers=auth_headers,
                          json={"title": "  "})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Title is required"
    db.session.expire_all()
    assert db.session.get(Project, project_with_steps.id).title == "Weather Station"


def test_update_missing_project(client, auth_headers):
    response = client.put("/api/projects/999", headers=auth_headers, json={"title": "x"})
    assert response.status_code == 404


def test_project_steps_endpoints(client, project_with_steps):
    response = client.get(f"/api/projects/{project_with_steps.id}/steps")
    assert [s["title"] for s in response.get_json()] == ["Wiring", "Firmware", "Dashboard"]

    response = client.post(f"/api/projects/{project_with_steps.id}/steps",
                           json={"title": "Enclosure", "components": '["3D printed case"]'})
    assert response.status_code == 201
    step = response.get_json()["step"]
    assert step["status"] == "not_started"
    assert step["components"] == ["3D printed case"]

    response = client.post("/api/projects/999/steps", json={"title": "x"})
    assert response.status_code == 404

    response = client.post(f"/api/projects/{project_with_steps.id}/steps", json={"description": "no title"})
    assert response.status_code == 400


def test_unknown_endpoint(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Endpoint not found"}


def test_list_and_detail_share_timestamp_format(client, project_with_steps):
    listed = client.get("/api/projects").get_json()[0]
    detail = client.get(f"/api/projects/{project_with_steps.id}").get_json()
    assert listed["created_at"] == detail["created_at"]
    assert listed["updated_at"] == detail["updated_at"]
