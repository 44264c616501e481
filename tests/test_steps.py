# tests/test_steps.py
import io
import os

import pytest

from smartdrishti.db import db
from smartdrishti.models import Step, StepMedia
from smartdrishti.services.media_service import media_type_for
from smartdrishti.utils.errors import ValidationError


def test_update_step_partial(client, project_with_steps):
    step = project_with_steps.steps[1]
    response = client.put(f"/api/steps/{step.id}", json={
        "status": "completed",
        "code": "void loop() {}",
        "detailed_content": {"tips": ["use 3V3"]},
    })
    assert response.status_code == 200
    body = response.get_json()["step"]
    assert body["status"] == "completed"
    assert body["title"] == "Firmware"
    assert body["code"] == "void loop() {}"
    assert body["detailed_content"] == {"tips": ["use 3V3"]}

    project = client.get(f"/api/projects/{project_with_steps.id}").get_json()
    assert project["progress"] == 67


def test_update_step_accepts_legacy_status(client, project_with_steps):
    step = project_with_steps.steps[0]
    response = client.put(f"/api/steps/{step.id}", json={"status": "in_progress"})
    assert response.get_json()["step"]["status"] == "working"


def test_update_step_rejects_bad_values(client, project_with_steps):
    step = project_with_steps.steps[0]
    assert client.put(f"/api/steps/{step.id}", json={"status": "done"}).status_code == 400
    assert client.put(f"/api/steps/{step.id}", json={"components": [1, 2]}).status_code == 400
    assert client.put(f"/api/steps/{step.id}", json={"components": "{\"a\": 1}"}).status_code == 400
    assert client.put(f"/api/steps/{step.id}", json={"order_number": "first"}).status_code == 400


def test_update_step_rejects_empty_or_non_text_title(client, project_with_steps):
    step = project_with_steps.steps[0]
    response = client.put(f"/api/steps/{step.id}", json={"title": ""})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Title is required"}
    assert client.put(f"/api/steps/{step.id}", json={"title": ["x"]}).status_code == 400
    db.session.expire_all()
    assert db.session.get(Step, step.id).title == "Wiring"


def test_update_missing_step(client):
    response = client.put("/api/steps/999", json={"title": "x"})
    assert response.status_code == 404
    assert response.get_json() == {"error": "Step not found"}


def test_delete_step_cascades_media(client, project_with_steps):
    step_id = project_with_steps.steps[0].id
    db.session.add(StepMedia(step_id=step_id, media_type="video", media_url="/uploads/v.mp4"))
    db.session.commit()

    response = client.delete(f"/api/steps/{step_id}")
    assert response.status_code == 200
    assert db.session.query(StepMedia).count() == 0
    assert client.delete(f"/api/steps/{step_id}").status_code == 404


def test_upload_media(app, client, project_with_steps):
    step = project_with_steps.steps[0]
    data = {
        "media": [
            (io.BytesIO(b"\x89PNG fake"), "wiring diagram.png", "image/png"),
            (io.BytesIO(b"fake video"), "demo.mp4", "video/mp4"),
        ]
    }
    response = client.post(f"/api/steps/{step.id}/media", data=data, content_type="multipart/form-data")
    assert response.status_code == 201
    media = response.get_json()["media"]
    assert [m["media_type"] for m in media] == ["image", "video"]
    assert all(m["media_url"].startswith("/uploads/") for m in media)

    stored = os.path.basename(media[0]["media_url"])
    assert os.path.exists(os.path.join(app.config["UPLOAD_FOLDER"], stored))

    served = client.get(media[0]["media_url"])
    assert served.status_code == 200
    assert served.data == b"\x89PNG fake"
    served.close()


def test_upload_media_rejects_other_types_and_empty_requests(client, project_with_steps):
    step = project_with_steps.steps[0]
    data = {"media": [(io.BytesIO(b"text"), "notes.txt", "text/plain")]}
    response = client.post(f"/api/steps/{step.id}/media", data=data, content_type="multipart/form-data")
    assert response.status_code == 400
    assert db.session.query(StepMedia).count() == 0

    response = client.post(f"/api/steps/{step.id}/media", data={}, content_type="multipart/form-data")
    assert response.status_code == 400
    assert response.get_json() == {"error": "No files uploaded"}


def test_upload_media_limits_file_count(client, project_with_steps):
    step = project_with_steps.steps[0]
    data = {"media": [(io.BytesIO(b"x"), f"{i}.png", "image/png") for i in range(11)]}
    response = client.post(f"/api/steps/{step.id}/media", data=data, content_type="multipart/form-data")
    assert response.status_code == 400


def test_upload_media_unknown_step(client):
    data = {"media": [(io.BytesIO(b"x"), "a.png", "image/png")]}
    response = client.post("/api/steps/999/media", data=data, content_type="multipart/form-data")
    assert response.status_code == 404


def test_delete_media(client, project_with_steps):
    media = StepMedia(step_id=project_with_steps.steps[0].id, media_type="image", media_url="/uploads/a.png")
    db.session.add(media)
    db.session.commit()
    media_id = media.id

    assert client.delete(f"/api/media/{media_id}").status_code == 200
    response = client.delete(f"/api/media/{media_id}")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Media not found"}


def test_steps_are_ordered_by_creation(client, project_with_steps):
    client.post(f"/api/projects/{project_with_steps.id}/steps", json={"title": "Later"})
    titles = [s.title for s in db.session.query(Step).order_by(Step.id)]
    assert titles[-1] == "Later"


def test_media_type_from_mimetype():
    assert media_type_for("image/jpeg") == "image"
    assert media_type_for("video/mp4") == "video"
    for mimetype in ("image", "application/pdf", None):
        with pytest.raises(ValidationError):
            media_type_for(mimetype)
