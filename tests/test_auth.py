import asyncio

from sqlalchemy import select

from app.core.security import create_refresh_token
from app.database.session import AsyncSessionLocal
from app.models.user import User


def _load_user(user_id):
    async def _query():
        async with AsyncSessionLocal() as db:
            return (await db.execute(select(User).where(User.id == user_id))).scalar_one()

    return asyncio.run(_query())


def test_register_then_login_authorizes_profile(client):
    register = client.post(
        "/api/auth/register",
        json={"name": "Bilal Ahmed", "email": "Bilal@Example.com", "password": "Strong1pass"},
    )
    assert register.status_code == 201
    body = register.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "bilal@example.com"
    assert body["data"]["refreshToken"]

    login = client.post(
        "/api/auth/login", json={"email": "bilal@example.com", "password": "Strong1pass"}
    )
    assert login.status_code == 200
    token = login.json()["data"]["token"]

    profile = client.get("/api/user/profile", headers={"Authorization": f"Bearer {token}"})
    assert profile.status_code == 200
    data = profile.json()["data"]
    assert data["name"] == "Bilal Ahmed"
    assert data["preferences"] == {"language": "both", "notifications": True, "theme": "light"}
    assert data["lastLoginAt"] is not None


def test_register_rejects_weak_password(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Sara", "email": "sara@example.com", "password": "alllowercase1"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["field"] == "password"


def test_register_rejects_duplicate_email(client, make_user):
    make_user(email="dup@example.com")
    response = client.post(
        "/api/auth/register",
        json={"name": "Other", "email": "dup@example.com", "password": "Secret123"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "User already exists with this email"


def test_login_with_wrong_password_is_401(client, make_user):
    make_user(email="zara@example.com")
    response = client.post("/api/auth/login", json={"email": "zara@example.com", "password": "Wrong123"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid email or password"}


def test_protected_route_without_token_is_401(client):
    response = client.get("/api/user/profile")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_garbage_token_is_401(client):
    response = client.get("/api/user/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


def test_refresh_issues_new_pair(client):
    register = client.post(
        "/api/auth/register",
        json={"name": "Hamza", "email": "hamza@example.com", "password": "Secret123"},
    ).json()["data"]

    response = client.post("/api/auth/refresh", json={"refreshToken": register["refreshToken"]})
    assert response.status_code == 200
    new_token = response.json()["data"]["token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {new_token}"})
    assert me.json()["data"]["email"] == "hamza@example.com"


def test_access_token_cannot_be_used_as_refresh_token(client):
    register = client.post(
        "/api/auth/register",
        json={"name": "Hamza", "email": "hamza@example.com", "password": "Secret123"},
    ).json()["data"]

    response = client.post("/api/auth/refresh", json={"refreshToken": register["token"]})
    assert response.status_code == 401


def test_refresh_token_cannot_be_used_as_access_token(client):
    register = client.post(
        "/api/auth/register",
        json={"name": "Hamza", "email": "hamza@example.com", "password": "Secret123"},
    ).json()["data"]
    refresh = create_refresh_token(register["user"]["id"])

    response = client.get("/api/user/profile", headers={"Authorization": f"Bearer {refresh}"})
    assert response.status_code == 401


def test_profile_update_merges_preferences(client, auth_headers):
    response = client.put(
        "/api/user/profile",
        json={"name": "Ayesha K", "preferences": {"language": "ur"}},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Ayesha K"
    assert data["preferences"] == {"language": "ur", "notifications": True, "theme": "light"}

    response = client.put(
        "/api/user/profile", json={"preferences": {"theme": "dark"}}, headers=auth_headers
    )
    assert response.json()["data"]["preferences"] == {
        "language": "ur", "notifications": True, "theme": "dark",
    }


def test_profile_update_rejects_unknown_language(client, auth_headers):
    response = client.put(
        "/api/user/profile", json={"preferences": {"language": "fr"}}, headers=auth_headers
    )
    assert response.status_code == 400


def test_delete_account_anonymizes_and_revokes_access(client, auth_headers):
    me = client.get("/api/auth/me", headers=auth_headers).json()["data"]

    wrong = client.request(
        "DELETE", "/api/user/account", json={"password": "Nope1234"}, headers=auth_headers
    )
    assert wrong.status_code == 400

    response = client.request(
        "DELETE", "/api/user/account", json={"password": "Secret123"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["success"] is True

    assert client.get("/api/user/profile", headers=auth_headers).status_code == 401
    login = client.post(
        "/api/auth/login", json={"email": "ayesha@example.com", "password": "Secret123"}
    )
    assert login.status_code == 401

    stored = _load_user(me["id"])
    assert stored.status == "deleted"
    assert stored.deleted_at is not None
    assert stored.email == f"deleted-{me['id']}@anonymized.invalid"
    assert stored.name == "Deleted User"

    # The address is free again
    again = client.post(
        "/api/auth/register",
        json={"name": "Ayesha", "email": "ayesha@example.com", "password": "Secret123"},
    )
    assert again.status_code == 201
