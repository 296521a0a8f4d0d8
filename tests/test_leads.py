"""Tests for lead management and lead activities."""
from __future__ import annotations

from estate_crm.core.models import Activity, Lead


def _lead_payload(**overrides):
    payload = {
        "firstName": "Anil",
        "lastName": "Verma",
        "email": "anil@example.com",
        "phone": "9000000001",
        "source": "FACEBOOK",
    }
    payload.update(overrides)
    return payload


class TestCreateLead:
    def test_agent_creates_lead_assigned_to_self(self, client, agent_headers, agent_user, other_agent):
        resp = client.post(
            "/api/leads",
            json=_lead_payload(assignedAgentId=other_agent.id),
            headers=agent_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Lead created successfully"
        data = body["data"]
        assert data["assignedAgentId"] == agent_user.id
        assert data["assignedAgent"]["firstName"] == "Ravi"
        assert data["type"] == "BUYER"
        assert data["status"] == "NEW"

    def test_admin_assigns_agent(self, client, admin_headers, agent_user):
        resp = client.post(
            "/api/leads",
            json=_lead_payload(assignedAgentId=agent_user.id, type="RENTER"),
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["assignedAgentId"] == agent_user.id
        assert resp.json()["data"]["type"] == "RENTER"

    def test_admin_may_leave_unassigned(self, client, admin_headers):
        resp = client.post("/api/leads", json=_lead_payload(), headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json()["data"]["assignedAgentId"] is None
        assert resp.json()["data"]["assignedAgent"] is None

    def test_blank_email_is_stored_as_null(self, client, agent_headers):
        resp = client.post("/api/leads", json=_lead_payload(email=""), headers=agent_headers)
        assert resp.status_code == 201
        assert resp.json()["data"]["email"] is None

    def test_interested_property_is_embedded(self, client, agent_headers, agent_user, make_property):
        prop = make_property(agent_user, title="Palm Villa", type="VILLA", price=9000000.0)
        resp = client.post(
            "/api/leads",
            json=_lead_payload(interestedPropertyId=prop.id),
            headers=agent_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["interestedProperty"] == {
            "id": prop.id,
            "title": "Palm Villa",
            "type": "VILLA",
            "price": 9000000.0,
        }

    def test_unknown_interested_property(self, client, agent_headers):
        resp = client.post(
            "/api/leads",
            json=_lead_payload(interestedPropertyId=99999),
            headers=agent_headers,
        )
        assert resp.status_code == 404
        assert resp.json()["error"] == "Property not found"

    def test_short_phone_rejected(self, client, agent_headers, db_session):
        resp = client.post("/api/leads", json=_lead_payload(phone="12345"), headers=agent_headers)
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("phone")
        assert db_session.query(Lead).count() == 0

    def test_invalid_source_rejected(self, client, agent_headers):
        resp = client.post("/api/leads", json=_lead_payload(source="CARRIER_PIGEON"), headers=agent_headers)
        assert resp.status_code == 400

    def test_admin_cannot_assign_client(self, client, admin_headers, client_user, db_session):
        resp = client.post(
            "/api/leads",
            json=_lead_payload(assignedAgentId=client_user.id),
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "User is not an agent"
        assert db_session.query(Lead).count() == 0

    def test_get_returns_submitted_values(self, client, agent_headers, agent_user, make_property):
        prop = make_property(agent_user)
        payload = {
            "firstName": " Anil ",
            "lastName": "Verma  ",
            "email": "anil.verma@example.com",
            "phone": " 9000000001 ",
            "type": "SELLER",
            "source": "REFERRAL",
            "status": "INTERESTED",
            "budgetMin": 2500000.0,
            "budgetMax": 4000000.0,
            "interestedPropertyId": prop.id,
            "notes": "  wants sea view  ",
        }
        created = client.post("/api/leads", json=payload, headers=agent_headers)
        assert created.status_code == 201

        resp = client.get(f"/api/leads/{created.json()['data']['id']}", headers=agent_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        for key, value in payload.items():
            assert data[key] == value, key
        assert data["assignedAgentId"] == agent_user.id


class TestListLeads:
    def test_agent_sees_only_own_leads(self, client, agent_headers, agent_user, other_agent, make_lead):
        make_lead(agent_user, first_name="Mine")
        make_lead(other_agent, first_name="Theirs")
        make_lead(None, first_name="Nobody")

        resp = client.get("/api/leads", headers=agent_headers)
        assert resp.status_code == 200
        names = [lead["firstName"] for lead in resp.json()["data"]]
        assert names == ["Mine"]

    def test_admin_sees_all_leads(self, client, admin_headers, agent_user, other_agent, make_lead):
        make_lead(agent_user)
        make_lead(other_agent)
        make_lead(None)

        resp = client.get("/api/leads", headers=admin_headers)
        assert resp.json()["pagination"]["total"] == 3

    def test_pagination(self, client, agent_headers, agent_user, make_lead):
        for i in range(15):
            make_lead(agent_user, first_name=f"Lead{i:02d}")

        resp = client.get("/api/leads?page=2&limit=10", headers=agent_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["data"]) == 5
        assert body["pagination"] == {"total": 15, "page": 2, "limit": 10, "pages": 2}

    def test_newest_first(self, client, agent_headers, agent_user, make_lead):
        first = make_lead(agent_user, first_name="First")
        second = make_lead(agent_user, first_name="Second")

        resp = client.get("/api/leads", headers=agent_headers)
        ids = [lead["id"] for lead in resp.json()["data"]]
        assert ids == [second.id, first.id]

    def test_search_is_case_insensitive(self, client, agent_headers, agent_user, make_lead):
        make_lead(agent_user, first_name="Sunita", email="sunita@example.com")
        make_lead(agent_user, first_name="Vikram", phone="9555512345")

        resp = client.get("/api/leads?search=SUNI", headers=agent_headers)
        assert [lead["firstName"] for lead in resp.json()["data"]] == ["Sunita"]

        resp = client.get("/api/leads?search=55512", headers=agent_headers)
        assert [lead["firstName"] for lead in resp.json()["data"]] == ["Vikram"]

    def test_search_treats_wildcards_literally(self, client, agent_headers, agent_user, make_lead):
        make_lead(agent_user, first_name="Plain")
        resp = client.get("/api/leads?search=%25", headers=agent_headers)
        assert resp.json()["data"] == []

    def test_filter_by_status_and_source(self, client, agent_headers, agent_user, make_lead):
        make_lead(agent_user, status="INTERESTED", source="WEBSITE")
        make_lead(agent_user, status="INTERESTED", source="REFERRAL")
        make_lead(agent_user, status="NEW", source="REFERRAL")

        resp = client.get("/api/leads?status=INTERESTED&source=REFERRAL", headers=agent_headers)
        assert resp.json()["pagination"]["total"] == 1

    def test_limit_above_maximum_rejected(self, client, agent_headers):
        resp = client.get("/api/leads?limit=1000", headers=agent_headers)
        assert resp.status_code == 400

    def test_page_beyond_offset_range_rejected(self, client, agent_headers):
        resp = client.get("/api/leads?page=100000000000000000000", headers=agent_headers)
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert resp.json()["error"].startswith("page")


class TestGetLead:
    def test_detail_includes_activities_and_visits(
        self, client, agent_headers, agent_user, make_lead, make_property, make_visit, db_session
    ):
        lead = make_lead(agent_user)
        prop = make_property(agent_user)
        make_visit(lead, prop, agent_user)
        db_session.add(Activity(lead_id=lead.id, type="CALL", title="Intro call", created_by_id=agent_user.id))
        db_session.flush()

        resp = client.get(f"/api/leads/{lead.id}", headers=agent_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [a["title"] for a in data["activities"]] == ["Intro call"]
        assert data["visits"][0]["propertyId"] == prop.id

    def test_other_agents_lead_is_forbidden(self, client, agent_headers, other_agent, make_lead):
        lead = make_lead(other_agent)
        resp = client.get(f"/api/leads/{lead.id}", headers=agent_headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "Forbidden"

    def test_missing_lead_is_not_found(self, client, agent_headers):
        resp = client.get("/api/leads/424242", headers=agent_headers)
        assert resp.status_code == 404
        assert resp.json()["error"] == "Lead not found"


class TestUpdateLead:
    def test_partial_update(self, client, agent_headers, agent_user, make_lead):
        lead = make_lead(agent_user, notes="keep me")
        resp = client.put(
            f"/api/leads/{lead.id}",
            json={"status": "CONTACTED", "budgetMax": 7500000},
            headers=agent_headers,
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "CONTACTED"
        assert data["budgetMax"] == 7500000
        assert data["notes"] == "keep me"
        assert data["firstName"] == "Priya"

    def test_agent_cannot_reassign(self, client, agent_headers, agent_user, other_agent, make_lead):
        lead = make_lead(agent_user)
        resp = client.put(
            f"/api/leads/{lead.id}",
            json={"assignedAgentId": other_agent.id},
            headers=agent_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["assignedAgentId"] == agent_user.id

    def test_admin_reassigns(self, client, admin_headers, agent_user, other_agent, make_lead):
        lead = make_lead(agent_user)
        resp = client.put(
            f"/api/leads/{lead.id}",
            json={"assignedAgentId": other_agent.id},
            headers=admin_headers,
        )
        assert resp.json()["data"]["assignedAgentId"] == other_agent.id

    def test_permissive_mode_allows_any_jump(self, client, agent_headers, agent_user, make_lead):
        lead = make_lead(agent_user, status="CLOSED_LOST")
        resp = client.put(f"/api/leads/{lead.id}", json={"status": "NEW"}, headers=agent_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "NEW"

    def test_other_agent_cannot_update(self, client, other_agent_headers, agent_user, make_lead):
        lead = make_lead(agent_user)
        resp = client.put(f"/api/leads/{lead.id}", json={"notes": "mine now"}, headers=other_agent_headers)
        assert resp.status_code == 403


class TestDeleteLead:
    def test_admin_deletes_with_history(
        self, client, admin_headers, agent_user, make_lead, make_property, make_visit, db_session
    ):
        lead = make_lead(agent_user)
        make_visit(lead, make_property(agent_user), agent_user)
        db_session.add(Activity(lead_id=lead.id, type="NOTE", title="Left message"))
        db_session.flush()
        lead_id = lead.id

        resp = client.delete(f"/api/leads/{lead_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Lead deleted successfully"
        assert db_session.get(Lead, lead_id) is None
        assert db_session.query(Activity).filter(Activity.lead_id == lead_id).count() == 0

    def test_agent_cannot_delete_own_lead(self, client, agent_headers, agent_user, make_lead, db_session):
        lead = make_lead(agent_user)
        resp = client.delete(f"/api/leads/{lead.id}", headers=agent_headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "Only admins can delete leads"
        assert db_session.get(Lead, lead.id) is not None


class TestActivities:
    def test_log_and_list_activity(self, client, agent_headers, agent_user, make_lead):
        lead = make_lead(agent_user)
        resp = client.post(
            f"/api/leads/{lead.id}/activities",
            json={"type": "MEETING", "title": "Met at office", "notes": "Wants 3BHK"},
            headers=agent_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["createdById"] == agent_user.id

        resp = client.get(f"/api/leads/{lead.id}/activities", headers=agent_headers)
        assert resp.status_code == 200
        assert [a["type"] for a in resp.json()["data"]] == ["MEETING"]

    def test_title_too_short(self, client, agent_headers, agent_user, make_lead):
        lead = make_lead(agent_user)
        resp = client.post(
            f"/api/leads/{lead.id}/activities",
            json={"type": "CALL", "title": "hi"},
            headers=agent_headers,
        )
        assert resp.status_code == 400

    def test_cannot_log_on_other_agents_lead(self, client, agent_headers, other_agent, make_lead):
        lead = make_lead(other_agent)
        resp = client.post(
            f"/api/leads/{lead.id}/activities",
            json={"type": "CALL", "title": "Sneaky call"},
            headers=agent_headers,
        )
        assert resp.status_code == 403
