# tests/test_auth.py
from datetime import timedelta

from flask_jwt_extended import create_access_token, decode_token

from smartdrishti.db import db
from smartdrishti.models.Users import User, UserRole


def test_register_returns_user_and_token(client):
    response = client.post("/api/auth/register", json={
        "username": "maker", "email": "maker@example.com", "password": "secret123",
    })
    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "User registered successfully"
    assert body["user"]["username"] == "maker"
    assert body["user"]["role"] == "user"

    claims = decode_token(body["token"])
    assert claims["sub"] == str(body["user"]["id"])
    assert claims["userId"] == body["user"]["id"]
    assert claims["email"] == "maker@example.com"
    assert claims["role"] == "user"
    assert claims["exp"] - claims["iat"] == int(timedelta(hours=24).total_seconds())


def test_register_unknown_role_falls_back_to_user(client):
    response = client.post("/api/auth/register", json={
        "username": "sneaky", "email": "s@example.com", "password": "pw", "role": "superuser",
    })
    assert response.status_code == 201
    assert response.get_json()["user"]["role"] == "user"


def test_self_registration_cannot_claim_admin(client):
    response = client.post("/api/auth/register", json={
        "username": "boss", "email": "boss@example.com", "password": "pw", "role": "admin",
    })
    assert response.status_code == 201
    assert response.get_json()["user"]["role"] == "user"
    assert decode_token(response.get_json()["token"])["role"] == "user"


def test_admin_can_register_another_admin(client, admin_headers):
    response = client.post("/api/auth/register", headers=admin_headers, json={
        "username": "boss", "email": "boss@example.com", "password": "pw", "role": "admin",
    })
    assert response.status_code == 201
    assert response.get_json()["user"]["role"] == "admin"


def test_plain_user_cannot_grant_admin(client, auth_headers):
    response = client.post("/api/auth/register", headers=auth_headers, json={
        "username": "boss", "email": "boss@example.com", "password": "pw", "role": "admin",
    })
    assert response.get_json()["user"]["role"] == "user"


def test_register_missing_fields(client):
    response = client.post("/api/auth/register", json={"username": "x", "email": "x@example.com"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Username, email, and password are required"}


def test_register_conflict_inserts_nothing(client, new_user):
    response = client.post("/api/auth/register", json={
        "username": "someoneelse", "email": "test@example.com", "password": "pw",
    })
    assert response.status_code == 409
    assert db.session.query(User).count() == 1

    response = client.post("/api/auth/register", json={
        "username": "testuser", "email": "fresh@example.com", "password": "pw",
    })
    assert response.status_code == 409


def test_login_success_and_failures(client, new_user):
    response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "testpassword"})
    assert response.status_code == 200
    assert response.get_json()["message"] == "Login successful"

    response = client.post("/api/auth/login", json={"email": "test@example.com", "password": "nope"})
    assert response.status_code == 401
    assert response.get_json() == {"error": "Invalid credentials"}

    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "x"})
    assert response.status_code == 401

    response = client.post("/api/auth/login", json={"email": "test@example.com"})
    assert response.status_code == 400


def test_profile_requires_token(client):
    response = client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Access token required"}


def test_profile_with_invalid_token(client):
    response = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 403
    assert response.get_json() == {"error": "Invalid token"}


def test_profile_with_expired_token(app, client, new_user):
    token = create_access_token(identity=str(new_user.id), expires_delta=timedelta(seconds=-10))
    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert response.get_json() == {"error": "Token expired"}


def test_profile_for_deleted_user(app, client):
    token = create_access_token(identity="999")
    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.get_json() == {"error": "Invalid token - user not found"}


def test_get_profile(client, auth_headers):
    response = client.get("/api/auth/profile", headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["user"]["email"] == "test@example.com"


def test_update_profile(client, auth_headers):
    response = client.put("/api/auth/profile", headers=auth_headers,
                          json={"username": "renamed", "email": "renamed@example.com"})
    assert response.status_code == 200
    assert response.get_json()["user"]["username"] == "renamed"


def test_update_profile_conflicts_and_missing_fields(client, auth_headers, other_user):
    response = client.put("/api/auth/profile", headers=auth_headers,
                          json={"username": "otheruser", "email": "test@example.com"})
    assert response.status_code == 409

    response = client.put("/api/auth/profile", headers=auth_headers, json={"username": "only"})
    assert response.status_code == 400

    # keeping your own values is not a conflict
    response = client.put("/api/auth/profile", headers=auth_headers,
                          json={"username": "testuser", "email": "test@example.com"})
    assert response.status_code == 200


def test_admin_role_is_persisted(new_admin):
    assert db.session.get(User, new_admin.id).role is UserRole.ADMIN
