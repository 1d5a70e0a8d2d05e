"""Signup, login, /auth/me and bearer token checks."""

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from skilltrack.auth.jwt import create_access_token
from skilltrack.db.models import AuditLog, Notification, User
from skilltrack.main import create_app
from tests.conftest import PASSWORD, auth_headers


async def _signup(client: AsyncClient, email: str = "new@example.com", **extra) -> dict:
    body = {"full_name": "New Person", "email": email, "password": "hunter22", **extra}
    return await client.post("/auth/signup", json=body)


class TestSignup:
    async def test_signup_creates_learner(self, client: AsyncClient, database):
        response = await _signup(client, email="New@Example.com")
        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["user"]["role"] == "learner"
        assert data["user"]["email"] == "new@example.com"

        async with database.session() as s:
            logs = (await s.execute(select(AuditLog).where(AuditLog.action == "learner_signup"))).scalars().all()
            notifications = (await s.execute(select(func.count()).select_from(Notification))).scalar_one()
        assert len(logs) == 1
        assert logs[0].actor_user_id is None
        assert logs[0].entity_id == data["user"]["id"]
        assert notifications == 0

    async def test_role_cannot_be_chosen(self, client: AsyncClient):
        response = await _signup(client, role="admin")
        assert response.status_code == 201
        assert response.json()["user"]["role"] == "learner"

    async def test_duplicate_email_conflict(self, client: AsyncClient, database):
        assert (await _signup(client)).status_code == 201
        response = await _signup(client, email="NEW@example.com")
        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Email is already registered"

        async with database.session() as s:
            count = (await s.execute(select(func.count()).select_from(User))).scalar_one()
        assert count == 1

    async def test_short_password_is_400(self, client: AsyncClient):
        response = await client.post(
            "/auth/signup", json={"full_name": "Shorty", "email": "s@example.com", "password": "12345"}
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Validation error"
        assert response.json()["error"]["details"]


class TestLogin:
    async def test_login_success(self, client: AsyncClient, mentor):
        response = await client.post("/auth/login", json={"email": mentor.email.upper(), "password": PASSWORD})
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == mentor.id
        assert data["token_type"] == "bearer"

    async def test_wrong_password_and_unknown_email_look_the_same(self, client: AsyncClient, learner):
        wrong = await client.post("/auth/login", json={"email": learner.email, "password": "not-it-123"})
        unknown = await client.post("/auth/login", json={"email": "ghost@example.com", "password": "not-it-123"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json()["error"]["message"] == unknown.json()["error"]["message"] == "Invalid credentials"


class TestMe:
    async def test_me_reads_store(self, client: AsyncClient, learner):
        response = await client.get("/auth/me", headers=auth_headers(learner))
        assert response.status_code == 200
        assert response.json()["user"]["email"] == learner.email

    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/auth/me")
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Missing bearer token"

    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get("/auth/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    async def test_vanished_user_is_404(self, client: AsyncClient, learner, database):
        headers = auth_headers(learner)
        async with database.session() as s:
            await s.delete(await s.get(User, learner.id))
            await s.commit()
        response = await client.get("/auth/me", headers=headers)
        assert response.status_code == 404


class TestRoleChecks:
    async def test_learner_cannot_use_admin_routes(self, client: AsyncClient, learner):
        response = await client.get("/admin/programs", headers=auth_headers(learner))
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Forbidden"

    async def test_mentor_cannot_use_learner_routes(self, client: AsyncClient, mentor):
        response = await client.get("/learner/dashboard", headers=auth_headers(mentor))
        assert response.status_code == 403

    async def test_role_comes_from_token(self, client: AsyncClient, learner):
        # A token claiming admin is honoured until reissued.
        token = create_access_token(learner.id, "admin", learner.email)
        headers = {"Authorization": f"Bearer {token}"}
        response = await client.get("/admin/programs", headers=headers)
        assert response.status_code == 200


class TestInjectedSettings:
    @pytest.fixture
    def custom_settings(self, settings):
        return settings.model_copy(
            update={"jwt_secret": "another-secret", "frontend_reset_url": "https://app.example/reset#"}
        )

    @pytest_asyncio.fixture
    async def custom_client(self, custom_settings, database, delivery):
        application = create_app(custom_settings, database=database)
        application.state.reset_delivery = delivery
        async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as ac:
            yield ac

    async def test_tokens_use_the_app_secret(self, custom_client: AsyncClient, custom_settings):
        response = await _signup(custom_client)
        token = response.json()["token"]
        assert jwt.decode(token, "another-secret", algorithms=["HS256"], issuer=custom_settings.jwt_issuer)

        me = await custom_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200

    async def test_token_signed_with_other_secret_is_rejected(self, custom_client: AsyncClient, learner):
        response = await custom_client.get("/auth/me", headers=auth_headers(learner))
        assert response.status_code == 401

    async def test_reset_link_uses_app_frontend_url(self, custom_client: AsyncClient, learner, delivery):
        response = await custom_client.post("/auth/request-password-reset", json={"email": learner.email})
        assert response.json() == {"ok": True}
        assert delivery.sent[-1]["reset_url"].startswith("https://app.example/reset#")
