"""Tests for status transition rules in permissive and strict modes."""
from __future__ import annotations

import pytest

from estate_crm.core.config import reload_settings
from estate_crm.core.exceptions import InvalidStatusTransitionError
from estate_crm.domain.status import check_transition, is_transition_allowed


@pytest.fixture
def strict_mode(monkeypatch):
    """Switch STATUS_TRANSITION_MODE to strict for one test."""
    monkeypatch.setenv("STATUS_TRANSITION_MODE", "strict")
    reload_settings()
    yield
    monkeypatch.undo()
    reload_settings()


class TestTables:
    @pytest.mark.parametrize(
        "entity, current, requested, allowed",
        [
            ("lead", "NEW", "CONTACTED", True),
            ("lead", "NEW", "CLOSED_WON", False),
            ("lead", "NEGOTIATING", "CLOSED_WON", True),
            ("lead", "CLOSED_WON", "NEW", False),
            ("property", "AVAILABLE", "SOLD", True),
            ("property", "SOLD", "AVAILABLE", False),
            ("visit", "SCHEDULED", "COMPLETED", True),
            ("visit", "COMPLETED", "SCHEDULED", False),
            ("commission", "PENDING", "PAID", True),
            ("commission", "PAID", "PENDING", False),
            ("commission", "CANCELLED", "PAID", False),
        ],
    )
    def test_is_transition_allowed(self, entity, current, requested, allowed):
        assert is_transition_allowed(entity, current, requested) is allowed

    def test_same_status_always_allowed(self):
        assert is_transition_allowed("lead", "DEAD", "DEAD")
        check_transition("commission", "PAID", "PAID", strict=True)

    def test_none_requested_is_noop(self):
        check_transition("lead", "CLOSED_WON", None, strict=True)

    def test_permissive_allows_anything(self):
        check_transition("lead", "CLOSED_LOST", "NEW", strict=False)

    def test_strict_raises_with_message(self):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            check_transition("lead", "NEW", "CLOSED_WON", strict=True)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid lead status transition from NEW to CLOSED_WON"


class TestStrictModeApi:
    def test_lead_jump_rejected(self, strict_mode, client, agent_headers, agent_user, make_lead):
        lead = make_lead(agent_user, status="NEW")
        resp = client.put(f"/api/leads/{lead.id}", json={"status": "CLOSED_WON"}, headers=agent_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid lead status transition from NEW to CLOSED_WON"

    def test_lead_step_accepted(self, strict_mode, client, agent_headers, agent_user, make_lead):
        lead = make_lead(agent_user, status="NEW")
        resp = client.put(f"/api/leads/{lead.id}", json={"status": "CONTACTED"}, headers=agent_headers)
        assert resp.status_code == 200

    def test_paid_commission_is_final(
        self, strict_mode, client, admin_headers, agent_user, make_property, make_commission
    ):
        commission = make_commission(agent_user, make_property(agent_user), status="PAID")
        resp = client.patch(
            f"/api/commissions/{commission.id}/status",
            json={"status": "CANCELLED"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_completed_visit_is_final(
        self, strict_mode, client, agent_headers, agent_user, make_lead, make_property, make_visit
    ):
        visit = make_visit(make_lead(agent_user), make_property(agent_user), agent_user, status="COMPLETED")
        resp = client.patch(
            f"/api/visits/{visit.id}/status",
            json={"status": "SCHEDULED"},
            headers=agent_headers,
        )
        assert resp.status_code == 400

    def test_sold_property_is_final(self, strict_mode, client, agent_headers, agent_user, make_property):
        prop = make_property(agent_user, status="SOLD")
        resp = client.put(f"/api/properties/{prop.id}", json={"status": "AVAILABLE"}, headers=agent_headers)
        assert resp.status_code == 400
