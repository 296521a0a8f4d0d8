"""Tests for commission recording and payout status."""
from __future__ import annotations

import pytest

from estate_crm.core.models import Commission
from estate_crm.core.utils import calculate_commission


@pytest.mark.parametrize(
    "price, percentage, expected",
    [
        (5000000, 2, 100000),
        (1000000, 2.5, 25000),
        (750000, 100, 750000),
    ],
)
def test_calculate_commission(price, percentage, expected):
    assert calculate_commission(price, percentage) == pytest.approx(expected)


class TestCreateCommission:
    def test_admin_creates_commission(self, client, admin_headers, agent_user, make_property):
        prop = make_property(agent_user, price=5000000.0)
        resp = client.post(
            "/api/commissions",
            json={"agentId": agent_user.id, "propertyId": prop.id, "percentage": 2},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["propertyPrice"] == 5000000.0
        assert data["commissionAmount"] == pytest.approx(100000)
        assert data["status"] == "PENDING"
        assert data["paidAt"] is None
        assert data["agent"]["id"] == agent_user.id

    def test_amount_is_a_snapshot(self, client, admin_headers, agent_user, make_property, db_session):
        prop = make_property(agent_user, price=2000000.0)
        resp = client.post(
            "/api/commissions",
            json={"agentId": agent_user.id, "propertyId": prop.id, "percentage": 3},
            headers=admin_headers,
        )
        commission_id = resp.json()["data"]["id"]

        client.put(f"/api/properties/{prop.id}", json={"price": 9000000}, headers=admin_headers)

        resp = client.get("/api/commissions", headers=admin_headers)
        row = next(c for c in resp.json()["data"] if c["id"] == commission_id)
        assert row["propertyPrice"] == 2000000.0
        assert row["commissionAmount"] == pytest.approx(60000)
        assert row["property"]["price"] == 9000000.0

    def test_agent_cannot_create(self, client, agent_headers, agent_user, make_property):
        prop = make_property(agent_user)
        resp = client.post(
            "/api/commissions",
            json={"agentId": agent_user.id, "propertyId": prop.id, "percentage": 2},
            headers=agent_headers,
        )
        assert resp.status_code == 403
        assert resp.json()["error"] == "Only admins can create commissions"

    def test_unknown_property(self, client, admin_headers, agent_user):
        resp = client.post(
            "/api/commissions",
            json={"agentId": agent_user.id, "propertyId": 777, "percentage": 2},
            headers=admin_headers,
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == "Property not found"

    def test_client_account_cannot_earn(self, client, admin_headers, agent_user, client_user, make_property, db_session):
        prop = make_property(agent_user)
        resp = client.post(
            "/api/commissions",
            json={"agentId": client_user.id, "propertyId": prop.id, "percentage": 2},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "User is not an agent"
        assert db_session.query(Commission).count() == 0

    @pytest.mark.parametrize("percentage", [0, -1, 150])
    def test_percentage_bounds(self, client, admin_headers, agent_user, make_property, percentage):
        prop = make_property(agent_user)
        resp = client.post(
            "/api/commissions",
            json={"agentId": agent_user.id, "propertyId": prop.id, "percentage": percentage},
            headers=admin_headers,
        )
        assert resp.status_code == 400


class TestListCommissions:
    def test_agent_sees_only_own(self, client, agent_headers, agent_user, other_agent, make_property, make_commission):
        prop = make_property(agent_user)
        make_commission(agent_user, prop)
        make_commission(other_agent, prop)

        resp = client.get(f"/api/commissions?agentId={other_agent.id}", headers=agent_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert len(data) == 1
        assert data[0]["agentId"] == agent_user.id

    def test_admin_filters_by_status(self, client, admin_headers, agent_user, make_property, make_commission):
        prop = make_property(agent_user)
        make_commission(agent_user, prop, status="PAID")
        make_commission(agent_user, prop)

        resp = client.get("/api/commissions?status=PAID", headers=admin_headers)
        assert resp.json()["pagination"]["total"] == 1


class TestCommissionStatus:
    def test_mark_paid_sets_paid_at(self, client, admin_headers, agent_user, make_property, make_commission):
        commission = make_commission(agent_user, make_property(agent_user))
        resp = client.patch(
            f"/api/commissions/{commission.id}/status",
            json={"status": "PAID"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "PAID"
        assert resp.json()["data"]["paidAt"] is not None

    def test_agent_cannot_mark_paid(self, client, agent_headers, agent_user, make_property, make_commission):
        commission = make_commission(agent_user, make_property(agent_user))
        resp = client.patch(
            f"/api/commissions/{commission.id}/status",
            json={"status": "PAID"},
            headers=agent_headers,
        )
        assert resp.status_code == 403

    def test_unknown_commission(self, client, admin_headers):
        resp = client.patch("/api/commissions/4040/status", json={"status": "PAID"}, headers=admin_headers)
        assert resp.status_code == 404
