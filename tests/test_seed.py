# tests/test_seed.py
from smartdrishti.db import db
from smartdrishti.models import Project, Step, User
from smartdrishti.services.seed_service import load_demo_projects, seed_demo_projects


def test_bundled_demo_projects_are_valid():
    projects = load_demo_projects()
    assert len(projects) >= 3
    for project in projects:
        assert project["difficulty"] in ("Easy", "Medium", "Hard")
        assert project["steps"]


def test_seed_replaces_demo_projects_only(app, project_with_steps):
    seed_demo_projects()
    seed_demo_projects()

    demo = db.session.query(Project).filter(Project.is_demo.is_(True)).all()
    assert len(demo) == len(load_demo_projects())
    assert db.session.get(Project, project_with_steps.id) is not None

    first = db.session.query(Project).filter_by(title="Getting Started with ESP32").one()
    steps = db.session.query(Step).filter_by(project_id=first.id).order_by(Step.id).all()
    assert steps[0].components == ["ESP32 DevKit V1", "Micro-USB cable"]
    assert [s.step_number for s in steps] == [1, 2, 3, 4]
    assert all(s.status == "not_started" for s in steps)


def test_demo_projects_are_listed(client):
    seed_demo_projects()
    projects = client.get("/api/projects").get_json()
    assert all(p["is_demo"] is True for p in projects)
    assert all(p["progress"] == 0 for p in projects)


def test_seed_cli_with_user(runner):
    result = runner.invoke(args=["seed-demo", "--with-user"])
    assert result.exit_code == 0
    assert "Seeded 3 demo projects" in result.output
    user = db.session.query(User).filter_by(email="demo@smartdrishti.com").one()
    assert user.check_password("demopassword123")
