"""
Tests for authentication endpoints: registration, login and the current account.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns user data."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "new@example.com",
        "name": "New Viewer",
        "password": "securepassword123",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new@example.com"
    assert data["name"] == "New Viewer"
    assert data["is_active"] is True
    assert "hashed_password" not in data  # Never expose password hash


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_user):
    """Duplicate email returns 409, whatever its case."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "Test@Example.com",
        "name": "Someone Else",
        "password": "securepassword123",
    })
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under 8 chars is rejected as a validation error."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "weak@example.com",
        "name": "Weak",
        "password": "short",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, test_user):
    """Valid credentials return JWT token."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user):
    """Wrong password returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "wrongpassword",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_nonexistent_email(client: AsyncClient):
    """Non-existent email returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@example.com",
        "password": "anypassword123",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_from_login_opens_account(client: AsyncClient, test_user):
    """The issued token identifies the user on /me."""
    login = await client.post("/api/v1/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    token = login.json()["access_token"]

    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["id"] == test_user.id


@pytest.mark.asyncio
async def test_me_rejects_bad_token(client: AsyncClient):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401

    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_email_is_case_insensitive(client: AsyncClient, test_user):
    response = await client.post("/api/v1/auth/login", json={
        "email": "TEST@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 200
