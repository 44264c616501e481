# tests/test_models.py
import pytest
from sqlalchemy.exc import IntegrityError

from smartdrishti.db import db
from smartdrishti.models import User, UserRole, Project, Step, StepMedia, IotDevice, SensorData
from smartdrishti.services.progress import compute_progress, progress_fields


def test_password_hashing(new_user):
    assert new_user.password_hash != "testpassword"
    assert new_user.check_password("testpassword")
    assert not new_user.check_password("wrong")


def test_user_roles(new_user, new_admin):
    assert not new_user.is_admin
    assert new_admin.is_admin
    assert UserRole.parse("superuser") is UserRole.USER
    assert UserRole.parse(None) is UserRole.USER
    assert UserRole.parse("admin") is UserRole.ADMIN


def test_user_to_dict_hides_password(new_user):
    data = new_user.to_dict()
    assert data["username"] == "testuser"
    assert data["role"] == "user"
    assert "password_hash" not in data
    assert "createdAt" in data


@pytest.mark.parametrize("statuses, expected", [
    ([], (0, 0, 0)),
    (["completed"] * 8, (8, 8, 100)),
    (["completed"] + ["not_started"] * 7, (8, 1, 13)),
    (["completed", "working", "not_started"], (3, 1, 33)),
    (["completed", "completed", "working"], (3, 2, 67)),
    (["working", "working"], (2, 0, 0)),
])
def test_compute_progress(statuses, expected):
    assert compute_progress(statuses) == expected


def test_progress_fields_are_strings_for_counts():
    fields = progress_fields(["completed", "not_started"])
    assert fields == {"total_steps": "2", "completed_steps": "1", "progress": 50}


def test_step_status_constraint(project_with_steps):
    db.session.add(Step(project_id=project_with_steps.id, title="Bad", status="paused"))
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()


def test_project_delete_cascades_to_steps_and_media(project_with_steps):
    step = project_with_steps.steps[0]
    db.session.add(StepMedia(step_id=step.id, media_type="image", media_url="/uploads/a.png"))
    db.session.commit()

    db.session.delete(project_with_steps)
    db.session.commit()

    assert db.session.query(Step).count() == 0
    assert db.session.query(StepMedia).count() == 0


def test_user_delete_keeps_projects(new_user, project_with_steps):
    db.session.delete(new_user)
    db.session.commit()
    db.session.expire_all()

    project = db.session.get(Project, project_with_steps.id)
    assert project is not None
    assert project.user_id is None


def test_device_delete_cascades_readings(app):
    device = IotDevice(device_id="esp-1", name="ESP")
    device.readings = [SensorData(temperature=21.0), SensorData(temperature=22.0)]
    db.session.add(device)
    db.session.commit()

    db.session.delete(device)
    db.session.commit()
    assert db.session.query(SensorData).count() == 0
