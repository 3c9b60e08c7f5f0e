"""
Integration Tests for Authentication and Authorization

Verifies that the main application correctly integrates:
- JWT verification dependency
- Protected route denial (401)
- Profile get-or-create on first authenticated request
- Admin role gate (403) and the scheduler API key
"""

from uuid import uuid4

from sqlalchemy import func, select

from hatch_api.infrastructure.db.models import ROLE_ADMIN, UserProfile


class TestAuthIntegration:

    async def test_protected_route_no_auth(self, client):
        response = await client.get("/api/profiles/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization token"

    async def test_protected_route_invalid_token(self, client):
        response = await client.get(
            "/api/profiles/me",
            headers={"Authorization": "Bearer invalid.token.here"},
        )
        assert response.status_code == 401

    async def test_first_request_creates_free_profile(self, client, auth_headers, mock_user_id, session):
        response = await client.get("/api/profiles/me", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(mock_user_id)
        assert data["subscription_tier"] == "free"
        assert data["subscription_expires_at"] is None
        assert data["role"] == "user"

        await client.get("/api/profiles/me", headers=auth_headers)
        count = (await session.execute(select(func.count()).select_from(UserProfile))).scalar_one()
        assert count == 1

    async def test_admin_email_seeds_admin_role(self, client, admin_headers):
        response = await client.get("/api/profiles/me", headers=admin_headers)
        assert response.json()["role"] == ROLE_ADMIN


class TestAdminGate:

    async def test_non_admin_forbidden(self, client, auth_headers):
        response = await client.get("/api/admin/users", headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "ForbiddenError"

    async def test_admin_allowed(self, client, admin_headers):
        response = await client.get("/api/admin/users", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["stats"]["total"] == 1

    async def test_role_column_decides_not_email(self, client, token_for, profile_factory):
        # an existing admin row keeps admin rights whatever the token email says
        profile = await profile_factory(role=ROLE_ADMIN)
        headers = {"Authorization": f"Bearer {token_for(profile.id, 'someone@else.test')}"}

        response = await client.get("/api/admin/events", headers=headers)

        assert response.status_code == 200


class TestJobsApiKey:

    async def test_missing_key(self, client):
        response = await client.post("/api/jobs/reconcile-expired")
        assert response.status_code == 422

    async def test_wrong_key(self, client):
        response = await client.post(
            "/api/jobs/reconcile-expired",
            headers={"X-Admin-Key": "wrong"},
        )
        assert response.status_code == 403

    async def test_valid_key(self, client):
        response = await client.post(
            "/api/jobs/reconcile-expired",
            headers={"X-Admin-Key": "test-admin-key"},
        )
        assert response.status_code == 200
        assert response.json() == {"downgraded": 0, "expiring_soon": 0}

    async def test_user_token_is_not_a_key(self, client, auth_headers):
        response = await client.post("/api/jobs/auto-attendance", headers=auth_headers)
        assert response.status_code == 422

    async def test_unconfigured_key(self, client, monkeypatch):
        from hatch_api.config.settings import settings

        monkeypatch.setattr(settings, "admin_api_key", None)
        response = await client.post(
            "/api/jobs/auto-attendance",
            headers={"X-Admin-Key": "anything"},
        )
        assert response.status_code == 503


def test_token_helper_subject(token_for):
    import jwt

    user_id = uuid4()
    claims = jwt.decode(token_for(user_id), options={"verify_signature": False})
    assert claims["sub"] == str(user_id)
