"""
Tests for the auth API endpoints (/api/v1/auth).
"""
from datetime import timedelta

import pytest
from httpx import AsyncClient
from jose import jwt

from stockroom.api.deps import create_access_token
from stockroom.config import settings

AUTH_PREFIX = "/api/v1/auth"


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_returns_bearer_token(self, client: AsyncClient, test_user):
        user_id = test_user.id
        response = await client.post(
            f"{AUTH_PREFIX}/login", json={"email": "staff@school.edu", "password": "testpassword123"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        payload = jwt.decode(data["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert payload["sub"] == str(user_id)
        assert "session" in response.cookies

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, test_user):
        response = await client.post(
            f"{AUTH_PREFIX}/login", json={"email": "staff@school.edu", "password": "wrong-password"}
        )
        assert response.status_code == 401
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.json()["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post(
            f"{AUTH_PREFIX}/login", json={"email": "nobody@school.edu", "password": "whatever"}
        )
        assert response.status_code == 401


class TestMe:
    @pytest.mark.asyncio
    async def test_me_returns_profile(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(f"{AUTH_PREFIX}/me")
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "staff@school.edu"
        assert data["role"] == "STAFF"
        assert "hashed_password" not in data

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get(f"{AUTH_PREFIX}/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_token_rejected(self, client: AsyncClient, test_user):
        token = create_access_token({"sub": str(test_user.id)}, expires_delta=timedelta(minutes=-1))
        response = await client.get(f"{AUTH_PREFIX}/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_tampered_token_rejected(self, client: AsyncClient, test_user):
        token = jwt.encode({"sub": str(test_user.id)}, "some-other-secret", algorithm=settings.ALGORITHM)
        response = await client.get(f"{AUTH_PREFIX}/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_creates_lecturer(self, client: AsyncClient):
        response = await client.post(
            f"{AUTH_PREFIX}/register",
            json={"email": "fresh@school.edu", "password": "fresh-password", "name": "Fresh Face", "role": "ADMIN"},
        )
        assert response.status_code == 201, response.text
        assert response.json()["role"] == "LECTURER"

        response = await client.post(
            f"{AUTH_PREFIX}/login", json={"email": "fresh@school.edu", "password": "fresh-password"}
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client: AsyncClient, test_user):
        response = await client.post(
            f"{AUTH_PREFIX}/register",
            json={"email": "staff@school.edu", "password": "another-pass", "name": "Copy"},
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_register_can_be_disabled(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "ALLOW_REGISTRATION", False)
        response = await client.post(
            f"{AUTH_PREFIX}/register",
            json={"email": "late@school.edu", "password": "late-password", "name": "Late"},
        )
        assert response.status_code == 403
