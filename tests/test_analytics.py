"""Tests for the admin analytics dashboard."""
from __future__ import annotations

import pytest

from estate_crm.core.types import Identity
from estate_crm.core.exceptions import PermissionDeniedError
from estate_crm.domain.analytics import AnalyticsService, percentage


@pytest.mark.parametrize(
    "part, whole, expected",
    [
        (0, 0, "0.00"),
        (1, 3, "33.33"),
        (2, 3, "66.67"),
        (5, 5, "100.00"),
    ],
)
def test_percentage(part, whole, expected):
    assert percentage(part, whole) == expected


def test_empty_dashboard(client, admin_headers):
    resp = client.get("/api/analytics/dashboard", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Analytics retrieved successfully"
    data = body["data"]
    assert data["overview"]["totalProperties"] == 0
    assert data["overview"]["conversionRate"] == "0.00"
    assert data["visits"]["completionRate"] == "0.00"
    assert data["commissions"]["total"] == {"count": 0, "amount": 0.0}
    assert data["agents"] == {"total": 0, "performance": []}


def test_dashboard_aggregates(
    client,
    admin_headers,
    agent_user,
    other_agent,
    make_property,
    make_lead,
    make_visit,
    make_commission,
):
    villa = make_property(agent_user, price=1000000.0)
    make_property(agent_user, status="SOLD")
    make_property(other_agent)

    make_lead(agent_user, status="CLOSED_WON")
    make_lead(agent_user, status="INTERESTED")
    make_lead(other_agent, status="INTERESTED")
    make_lead(other_agent, status="NEW")

    lead = make_lead(None)
    make_visit(lead, villa, agent_user, status="COMPLETED")
    make_visit(lead, villa, agent_user)
    make_visit(lead, villa, other_agent, status="CANCELLED")

    make_commission(agent_user, villa, percentage=2, status="PAID")
    make_commission(agent_user, villa, percentage=1)
    make_commission(other_agent, villa, percentage=3, status="CANCELLED")

    resp = client.get("/api/analytics/dashboard", headers=admin_headers)
    data = resp.json()["data"]

    assert data["overview"] == {
        "totalProperties": 3,
        "availableProperties": 2,
        "activeLeads": 2,
        "closedLeads": 1,
        "conversionRate": "33.33",
    }
    assert data["visits"] == {
        "total": 3,
        "completed": 1,
        "pending": 2,
        "completionRate": "33.33",
    }
    assert data["commissions"]["pending"] == {"count": 1, "amount": pytest.approx(10000)}
    assert data["commissions"]["paid"] == {"count": 1, "amount": pytest.approx(20000)}
    assert data["commissions"]["total"]["count"] == 2

    performance = {row["id"]: row for row in data["agents"]["performance"]}
    assert data["agents"]["total"] == 2
    assert performance[agent_user.id]["name"] == "Ravi Kumar"
    assert performance[agent_user.id]["properties"] == 2
    assert performance[agent_user.id]["leads"] == 2
    assert performance[agent_user.id]["commissionEarned"] == pytest.approx(20000)
    assert performance[agent_user.id]["status"] == "ACTIVE"
    assert performance[other_agent.id]["commissionEarned"] == 0.0


def test_agent_is_refused_by_guard(client, agent_headers):
    resp = client.get("/api/analytics/dashboard", headers=agent_headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Forbidden"


def test_service_refuses_non_admin(db_session, agent_user):
    identity = Identity(id=agent_user.id, email=agent_user.email, role="AGENT")
    with pytest.raises(PermissionDeniedError, match="Only admins can access analytics"):
        AnalyticsService(session=db_session).get_dashboard(identity)
