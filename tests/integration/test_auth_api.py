"""Integration tests: admin login and brute-force blocking."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.api import deps
from app.core.rate_limiter import LoginRateLimiter
from app.core.security import decode_token
from app.main import app

AUTHENTICATE = "app.services.user_service.UserService.authenticate_user"
CREDENTIALS = {"email": "admin@pointedu.kr", "password": "wrong-password"}


@pytest.fixture
def login_limiter(override_db):
    limiter = LoginRateLimiter()
    app.dependency_overrides[deps.get_login_rate_limiter] = lambda: limiter
    yield limiter
    app.dependency_overrides.pop(deps.get_login_rate_limiter, None)


async def test_login_success(async_client: AsyncClient, api_base: str, login_limiter, admin_user):
    with patch(AUTHENTICATE, new_callable=AsyncMock, return_value=admin_user):
        resp = await async_client.post(f"{api_base}/auth/login", json=CREDENTIALS)

    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["user_id"] == str(admin_user.id)
    payload = decode_token(data["access_token"])
    assert payload["sub"] == str(admin_user.id)
    assert payload["type"] == "access"


async def test_wrong_password_counts_down(async_client: AsyncClient, api_base: str, login_limiter):
    with patch(AUTHENTICATE, new_callable=AsyncMock, return_value=None):
        resp = await async_client.post(f"{api_base}/auth/login", json=CREDENTIALS)

    assert resp.status_code == 401
    body = resp.json()
    assert body["error"]["code"] == "INVALID_CREDENTIALS"
    assert "4 attempts remaining" in body["error"]["message"]


async def test_sixth_attempt_is_blocked(async_client: AsyncClient, api_base: str, login_limiter):
    with patch(AUTHENTICATE, new_callable=AsyncMock, return_value=None) as authenticate:
        for _ in range(5):
            resp = await async_client.post(f"{api_base}/auth/login", json=CREDENTIALS)
            assert resp.status_code == 401

        resp = await async_client.post(f"{api_base}/auth/login", json=CREDENTIALS)

    assert resp.status_code == 429
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "LOGIN_BLOCKED"
    assert 1790 <= body["data"]["retry_after_seconds"] <= 1800
    assert int(resp.headers["Retry-After"]) == body["data"]["retry_after_seconds"]
    # The blocked attempt never reaches the credential check
    assert authenticate.await_count == 5


async def test_correct_password_while_blocked_is_refused(
    async_client: AsyncClient, api_base: str, login_limiter, admin_user
):
    with patch(AUTHENTICATE, new_callable=AsyncMock, return_value=None):
        for _ in range(5):
            await async_client.post(f"{api_base}/auth/login", json=CREDENTIALS)
        await async_client.post(f"{api_base}/auth/login", json=CREDENTIALS)

    with patch(AUTHENTICATE, new_callable=AsyncMock, return_value=admin_user):
        resp = await async_client.post(f"{api_base}/auth/login", json=CREDENTIALS)
    assert resp.status_code == 429


async def test_protected_route_rejects_bad_token(async_client: AsyncClient, api_base: str, override_db, override_rules):
    resp = await async_client.get(
        f"{api_base}/settings/rules",
        headers={"Authorization": f"Bearer not-a-jwt-{uuid4()}"},
    )
    assert resp.status_code == 401
