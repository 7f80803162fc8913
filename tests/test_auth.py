"""Tests for authentication endpoints."""

import pytest
from httpx import AsyncClient

from medclinic.core.access_control import Role
from medclinic.core.security import create_access_token, create_refresh_token, decode_access_token


@pytest.mark.asyncio
async def test_login(client: AsyncClient, make_user, user_password: str) -> None:
    user = await make_user(Role.DOCTOR)

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": user["email"].upper(), "password": user_password},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "doctor"
    assert data["user"]["last_login_at"] is not None
    assert decode_access_token(data["access_token"])["sub"] == str(user["id"])


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, make_user) -> None:
    user = await make_user()
    response = await client.post(
        "/api/v1/auth/login", json={"email": user["email"], "password": "wrong-password"}
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_unknown_user(client: AsyncClient, user_password: str) -> None:
    response = await client.post(
        "/api/v1/auth/login", json={"email": "nobody@example.com", "password": user_password}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_deactivated(client: AsyncClient, make_user, user_password: str) -> None:
    user = await make_user(is_active=False)
    response = await client.post(
        "/api/v1/auth/login", json={"email": user["email"], "password": user_password}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_refresh(client: AsyncClient, test_user: dict) -> None:
    refresh = create_refresh_token(data={"sub": str(test_user["id"])})

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})
    assert response.status_code == 200
    assert decode_access_token(response.json()["access_token"])["sub"] == str(test_user["id"])


@pytest.mark.asyncio
async def test_access_token_cannot_refresh(client: AsyncClient, test_user: dict) -> None:
    access = create_access_token(data={"sub": str(test_user["id"])})
    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": access})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token_is_not_a_bearer_token(client: AsyncClient, test_user: dict) -> None:
    refresh = create_refresh_token(data={"sub": str(test_user["id"])})
    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {refresh}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me(client: AsyncClient, auth_headers: dict, test_user: dict) -> None:
    response = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["email"] == test_user["email"]


@pytest.mark.asyncio
async def test_garbage_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
