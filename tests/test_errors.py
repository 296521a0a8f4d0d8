"""Tests for error envelopes and database failure classification."""
from __future__ import annotations

import pytest
from fastapi import APIRouter
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from estate_crm.api.app import app, create_app
from estate_crm.api.deps import get_db
from estate_crm.core.db import translate_db_error
from estate_crm.core.exceptions import (
    BackendUnavailableError,
    ConflictError,
    DatabaseError,
)


class TestTranslateDbError:
    def test_operational_error_is_unavailable(self):
        error = translate_db_error(OperationalError("SELECT 1", {}, Exception("connection refused")))
        assert isinstance(error, BackendUnavailableError)
        assert error.status_code == 503

    def test_integrity_error_is_conflict(self):
        error = translate_db_error(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))
        assert isinstance(error, ConflictError)
        assert error.status_code == 409

    def test_other_errors_are_500(self):
        error = translate_db_error(ProgrammingError("SELECT", {}, Exception("syntax error")))
        assert isinstance(error, DatabaseError)
        assert error.status_code == 500


class TestEnvelopes:
    def test_unknown_route_is_404_envelope(self, client):
        resp = client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Not Found", "statusCode": 404}

    def test_validation_error_is_400_with_field(self, client, agent_headers):
        resp = client.post("/api/properties", json={"title": "Tiny"}, headers=agent_headers)
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["statusCode"] == 400
        assert ":" in body["error"]

    def test_malformed_json_is_400(self, client, agent_headers):
        resp = client.post(
            "/api/leads",
            content="{not json",
            headers={**agent_headers, "Content-Type": "application/json"},
        )
        assert resp.status_code == 400

    def test_database_unavailable_is_503(self, agent_headers):
        def broken_db():
            raise OperationalError("SELECT 1", {}, Exception("could not connect to server"))
            yield  # pragma: no cover

        app.dependency_overrides[get_db] = broken_db
        try:
            with TestClient(app) as c:
                resp = c.get("/api/leads", headers=agent_headers)
        finally:
            app.dependency_overrides.clear()

        assert resp.status_code == 503
        assert resp.json() == {
            "success": False,
            "error": "Database connection unavailable",
            "statusCode": 503,
        }

    def test_unexpected_error_is_500(self):
        application = create_app()
        router = APIRouter()

        @router.get("/boom")
        async def boom():
            raise RuntimeError("kaboom")

        application.include_router(router, prefix="/health")

        with TestClient(application, raise_server_exceptions=False) as c:
            resp = c.get("/health/boom")

        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Internal server error", "statusCode": 500}


class TestHealth:
    def test_liveness(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0"

    def test_detailed(self, client):
        resp = client.get("/health/detailed")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["connected"] is True
        assert body["checks"]["status_transitions"]["mode"] in {"permissive", "strict"}


@pytest.mark.parametrize("path", ["/api/leads", "/api/properties", "/api/visits", "/api/commissions"])
def test_list_endpoints_share_pagination_shape(client, admin_headers, path):
    resp = client.get(path, headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"] == []
    assert body["pagination"] == {"total": 0, "page": 1, "limit": 10, "pages": 0}
