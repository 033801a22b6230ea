import pytest
from fastapi import HTTPException
from jose import jwt

from api.v1.auth import login
from core.config import settings
from core.security import create_access_token, hash_password, verify_password
from models.user import User
from schemas.auth import LoginRequest


def test_register_and_login(api_client):
    response = api_client.post("/api/auth/register", json={"email": "Fern@Example.com", "password": "secret-pass"})
    assert response.status_code == 201
    user_id = response.json()["userId"]

    response = api_client.post("/api/auth/login", json={"email": "fern@example.com", "password": "secret-pass"})
    assert response.status_code == 200
    data = response.json()
    assert data["userId"] == user_id
    assert data["tokenType"] == "bearer"
    assert data["accessToken"] and data["refreshToken"]

    me = api_client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {data['accessToken']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "fern@example.com"


def test_duplicate_email(api_client, register_user):
    register_user("ivy@example.com")
    response = api_client.post("/api/auth/register", json={"email": "ivy@example.com", "password": "another-pass"})
    assert response.status_code == 409


def test_wrong_password(api_client, register_user):
    register_user("moss@example.com", "right-pass")
    response = api_client.post("/api/auth/login", json={"email": "moss@example.com", "password": "wrong-pass"})
    assert response.status_code == 401


def test_refresh(api_client):
    api_client.post("/api/auth/register", json={"email": "sage@example.com", "password": "secret-pass"})
    tokens = api_client.post("/api/auth/login", json={"email": "sage@example.com", "password": "secret-pass"}).json()

    response = api_client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 200
    assert response.json()["userId"] == tokens["userId"]

    # an access token is not a refresh token
    response = api_client.post("/api/auth/refresh", json={"refreshToken": tokens["accessToken"]})
    assert response.status_code == 401


def test_refresh_token_cannot_authorize_requests(api_client):
    api_client.post("/api/auth/register", json={"email": "rue@example.com", "password": "secret-pass"})
    tokens = api_client.post("/api/auth/login", json={"email": "rue@example.com", "password": "secret-pass"}).json()

    response = api_client.get(
        f"/plants/{tokens['userId']}", headers={"Authorization": f"Bearer {tokens['refreshToken']}"}
    )
    assert response.status_code == 401


def test_token_for_unknown_user(api_client):
    token = create_access_token(999999)
    assert api_client.get("/plants/999999", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_password_hashing():
    hashed = hash_password("secret-pass")
    assert hashed != "secret-pass"
    assert verify_password("secret-pass", hashed)
    assert not verify_password("other-pass", hashed)
    assert not verify_password("secret-pass", "garbage")
    assert not verify_password("secret-pass", "zz$00")


def test_password_hash_is_bcrypt():
    assert hash_password("secret-pass").startswith("$2")


async def test_login_with_corrupted_hash(db):
    await User.create(email="broken@example.com", password_hash="zz$00")

    with pytest.raises(HTTPException) as exc_info:
        await login(LoginRequest(email="broken@example.com", password="secret-pass"))
    assert exc_info.value.status_code == 401


@pytest.mark.parametrize("sub", ["abc", None, "1.5"])
def test_token_with_non_numeric_subject(api_client, sub):
    access = jwt.encode({"sub": sub, "type": "access"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    refresh = jwt.encode({"sub": sub, "type": "refresh"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    assert api_client.get("/plants/1", headers={"Authorization": f"Bearer {access}"}).status_code == 401
    assert api_client.post("/api/auth/refresh", json={"refreshToken": refresh}).status_code == 401
