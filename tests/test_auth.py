"""Tests for login, token refresh, role guards and the health check."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from leaveledger.core.security import (create_access_token,
                                       create_refresh_token,
                                       decode_access_token, get_password_hash)
from leaveledger.models.user import User


async def _user(db: AsyncSession, email: str, role: str, password: str = "secret123", active: bool = True) -> User:
    user = User(email=email, hashed_password=get_password_hash(password), role=role, is_active=active)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.mark.asyncio
async def test_login_sets_cookies_and_role_claim(async_client: AsyncClient, db_session: AsyncSession, real_auth):
    await _user(db_session, "hr@ledger.local", "admin")
    resp = await async_client.post(
        "/api/v1/auth/login", data={"username": " HR@ledger.local ", "password": "secret123"}
    )
    assert resp.status_code == 200
    body = resp.json()
    assert decode_access_token(body["access_token"])["role"] == "admin"
    assert "access_token" in resp.cookies
    assert "refresh_token" in resp.cookies


@pytest.mark.asyncio
async def test_login_wrong_password(async_client: AsyncClient, db_session: AsyncSession, real_auth):
    await _user(db_session, "hr@ledger.local", "admin")
    resp = await async_client.post(
        "/api/v1/auth/login", data={"username": "hr@ledger.local", "password": "nope"}
    )
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_login_inactive_user(async_client: AsyncClient, db_session: AsyncSession, real_auth):
    await _user(db_session, "old@ledger.local", "manager", active=False)
    resp = await async_client.post(
        "/api/v1/auth/login", data={"username": "old@ledger.local", "password": "secret123"}
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_login_is_rate_limited(async_client: AsyncClient, real_auth):
    for _ in range(5):
        resp = await async_client.post(
            "/api/v1/auth/login", data={"username": "x@ledger.local", "password": "x"}
        )
        assert resp.status_code == 401
    resp = await async_client.post(
        "/api/v1/auth/login", data={"username": "x@ledger.local", "password": "x"}
    )
    assert resp.status_code == 429


@pytest.mark.asyncio
async def test_me_with_bearer_token(async_client: AsyncClient, db_session: AsyncSession, real_auth):
    user = await _user(db_session, "viewer@ledger.local", "readonly")
    token = create_access_token(user.id, role=user.role)
    resp = await async_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json()["email"] == "viewer@ledger.local"


@pytest.mark.asyncio
async def test_refresh_token_cannot_be_used_as_access(async_client: AsyncClient, db_session: AsyncSession, real_auth):
    user = await _user(db_session, "viewer@ledger.local", "readonly")
    refresh = create_refresh_token(user.id)
    resp = await async_client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {refresh}"})
    assert resp.status_code == 401

    renewed = await async_client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})
    assert renewed.status_code == 200
    assert decode_access_token(renewed.json()["access_token"])["sub"] == str(user.id)


@pytest.mark.asyncio
async def test_logout_clears_cookies(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/logout")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Logged out"


@pytest.mark.asyncio
async def test_no_token_is_unauthorised(async_client: AsyncClient, real_auth):
    resp = await async_client.get("/api/v1/balances/summary", params={"month": 3, "year": 2024})
    assert resp.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["readonly", "manager"])
async def test_close_month_requires_admin(async_client: AsyncClient, db_session: AsyncSession, real_auth, role):
    user = await _user(db_session, f"{role}@ledger.local", role)
    headers = {"Authorization": f"Bearer {create_access_token(user.id, role=role)}"}

    summary = await async_client.get(
        "/api/v1/balances/summary", params={"month": 3, "year": 2024}, headers=headers
    )
    assert summary.status_code == 200

    close = await async_client.post(
        "/api/v1/balances/close-month", json={"month": 3, "year": 2024}, headers=headers
    )
    assert close.status_code == 403


@pytest.mark.asyncio
async def test_super_admin_can_close(async_client: AsyncClient, db_session: AsyncSession, real_auth):
    user = await _user(db_session, "root@ledger.local", "super_admin")
    headers = {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}
    resp = await async_client.post(
        "/api/v1/balances/close-month", json={"month": 3, "year": 2024}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["count"] == 0


@pytest.mark.asyncio
async def test_health_reports_database(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["db"] is True
    assert isinstance(resp.json()["redis"], bool)


def test_user_role_is_validated():
    assert User(email="a@ledger.local", hashed_password="x", role="super_admin").is_admin is True
    assert User(email="m@ledger.local", hashed_password="x", role="manager").is_admin is False
    with pytest.raises(ValueError):
        User(email="k@ledger.local", hashed_password="x", role="kiosk")
