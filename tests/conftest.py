# tests/conftest.py
import pytest

from config import TestingConfig
from smartdrishti.app import create_app
from smartdrishti.db import db
from smartdrishti.models import User, UserRole, Project, Step


@pytest.fixture(scope="function")
def app(tmp_path):
    """Fresh app per test with an in-memory database."""

    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    application = create_app(Config)

    with application.app_context():
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


@pytest.fixture(scope="function")
def runner(app):
    return app.test_cli_runner()


def _make_user(username, email, password, role=UserRole.USER):
    user = User(username=username, email=email, role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope="function")
def new_user(app):
    return _make_user("testuser", "test@example.com", "testpassword")


@pytest.fixture(scope="function")
def other_user(app):
    return _make_user("otheruser", "other@example.com", "otherpassword")


@pytest.fixture(scope="function")
def new_admin(app):
    return _make_user("adminuser", "admin@example.com", "adminpassword", UserRole.ADMIN)


def _auth_header(client, email, password):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.get_json()['token']}"}


@pytest.fixture(scope="function")
def auth_headers(client, new_user):
    return _auth_header(client, "test@example.com", "testpassword")


@pytest.fixture(scope="function")
def other_headers(client, other_user):
    return _auth_header(client, "other@example.com", "otherpassword")


@pytest.fixture(scope="function")
def admin_headers(client, new_admin):
    return _auth_header(client, "admin@example.com", "adminpassword")


@pytest.fixture(scope="function")
def project_with_steps(app, new_user):
    """Project owned by new_user with three steps, one completed."""
    project = Project(user_id=new_user.id, title="Weather Station", difficulty="Medium",
                      description="DHT22 on an ESP32")
    project.steps = [
        Step(title="Wiring", status="completed", order_number=1),
        Step(title="Firmware", status="working", order_number=2),
        Step(title="Dashboard", status="not_started", order_number=3),
    ]
    db.session.add(project)
    db.session.commit()
    return project
