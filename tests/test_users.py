"""Tests for admin account management."""
from __future__ import annotations

import pytest

from estate_crm.core.exceptions import ConflictError, InvalidCredentialsError
from estate_crm.core.models import AgentDetails
from estate_crm.domain.users import UserService


class TestUserService:
    def test_create_admin(self, db_session):
        service = UserService(session=db_session)
        admin = service.create_admin(
            email="Boss@Example.com",
            password="secret123",
            first_name="Big",
            last_name="Boss",
        )
        assert admin.role == "ADMIN"
        assert admin.email == "boss@example.com"
        assert service.authenticate("BOSS@example.com", "secret123").id == admin.id

    def test_create_admin_duplicate(self, db_session, agent_user):
        with pytest.raises(ConflictError):
            UserService(session=db_session).create_admin(
                email="agent@example.com",
                password="secret123",
                first_name="Dup",
                last_name="Admin",
            )

    def test_authenticate_wrong_password(self, db_session, agent_user):
        with pytest.raises(InvalidCredentialsError):
            UserService(session=db_session).authenticate("agent@example.com", "nope")


class TestListUsers:
    def test_admin_lists_and_filters(self, client, admin_headers, agent_user, other_agent, client_user):
        resp = client.get("/api/users?role=AGENT", headers=admin_headers)
        assert resp.status_code == 200
        emails = {u["email"] for u in resp.json()["data"]}
        assert emails == {"agent@example.com", "other.agent@example.com"}

        resp = client.get("/api/users?search=meera", headers=admin_headers)
        assert [u["email"] for u in resp.json()["data"]] == ["other.agent@example.com"]

    def test_agent_is_refused(self, client, agent_headers):
        resp = client.get("/api/users", headers=agent_headers)
        assert resp.status_code == 403


class TestUpdateUser:
    def test_promote_client_to_agent(self, client, admin_headers, client_user, db_session):
        resp = client.patch(f"/api/users/{client_user.id}", json={"role": "AGENT"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["role"] == "AGENT"
        assert db_session.query(AgentDetails).filter(AgentDetails.user_id == client_user.id).count() == 1

    def test_deactivate_agent_blocks_login(self, client, admin_headers, agent_user):
        resp = client.patch(f"/api/users/{agent_user.id}", json={"isActive": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["isActive"] is False

        resp = client.post("/api/auth/login", json={"email": "agent@example.com", "password": "secret123"})
        assert resp.status_code == 403

    def test_admin_cannot_demote_self(self, client, admin_headers, admin_user):
        resp = client.patch(f"/api/users/{admin_user.id}", json={"role": "AGENT"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "You cannot change your own role or deactivate yourself"

    def test_unknown_user(self, client, admin_headers):
        resp = client.patch("/api/users/99999", json={"isActive": False}, headers=admin_headers)
        assert resp.status_code == 404
