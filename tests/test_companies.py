"""
Companies API tests — registration, scoped access, compliance fields,
statutory rosters and secretary workload on assignment.
"""

from datetime import date, timedelta

from marketplace.models import db
from marketplace.models.enums import Role
from marketplace.models.secretary import Secretary

BASE = "/api/v1/companies"

DIRECTOR = {
    "name": "Aminah Binti Ali",
    "identification_number": "800101-14-5566",
    "nationality": "Malaysian",
    "address": "Kuala Lumpur",
    "appointment_date": "2023-01-15",
}


def _create(client, headers, **overrides):
    payload = {"legal_name": "Acme Sdn Bhd", "registration_number": "202301000001"}
    payload.update(overrides)
    return client.post(BASE, json=payload, headers=headers)


class TestCreate:
    def test_owner_is_the_caller(self, client, make_user, auth_header):
        sec_user = make_user(Role.SECRETARY)
        res = _create(client, auth_header(sec_user))
        assert res.status_code == 201, res.get_json()
        data = res.get_json()["data"]
        assert data["owner_id"] == sec_user.id
        assert data["entity_type"] == "SDN_BHD"
        assert data["status"] == "INCORPORATING"
        assert data["directors"] == []

    def test_client_cannot_create(self, client, make_user, auth_header):
        res = _create(client, auth_header(make_user(Role.CLIENT)))
        assert res.status_code == 403

    def test_duplicate_registration_number(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        assert _create(client, headers).status_code == 201
        res = _create(client, headers, legal_name="Other Sdn Bhd")
        assert res.status_code == 409

    def test_legal_name_required(self, client, make_user, auth_header):
        res = _create(client, auth_header(make_user(Role.ADMIN)), legal_name="")
        assert res.status_code == 400

    def test_admin_may_set_owner(self, client, make_user, auth_header):
        owner = make_user(Role.CLIENT)
        res = _create(client, auth_header(make_user(Role.ADMIN)), owner_id=owner.id)
        assert res.get_json()["data"]["owner_id"] == owner.id

    def test_invalid_director_record(self, client, make_user, auth_header):
        res = _create(client, auth_header(make_user(Role.ADMIN)),
                      directors=[{"name": "No Id"}])
        assert res.status_code == 400
        assert "directors[0].identification_number" in res.get_json()["error"]["details"]


class TestScope:
    def test_own_scope_sees_only_own(self, client, make_user, auth_header):
        admin = make_user(Role.ADMIN)
        owner = make_user(Role.CLIENT)
        stranger = make_user(Role.CLIENT)
        mine = _create(client, auth_header(admin), owner_id=owner.id).get_json()["data"]
        _create(client, auth_header(admin), registration_number="202301000002")

        res = client.get(BASE, headers=auth_header(owner))
        assert [c["id"] for c in res.get_json()["data"]] == [mine["id"]]
        assert client.get(f"{BASE}/{mine['id']}", headers=auth_header(stranger)).status_code == 403
        res = client.get(BASE, headers=auth_header(make_user(Role.MANAGER)))
        assert res.get_json()["meta"]["total"] == 2

    def test_viewer_has_no_company_access(self, client, make_user, auth_header):
        assert client.get(BASE, headers=auth_header(make_user(Role.VIEWER))).status_code == 403

    def test_search(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        _create(client, headers)
        _create(client, headers, legal_name="Beta Bhd", registration_number="202301000009")
        res = client.get(f"{BASE}?q=beta", headers=headers)
        assert [c["legal_name"] for c in res.get_json()["data"]] == ["Beta Bhd"]


class TestCompliance:
    def test_owner_without_compliance_permission(self, client, make_user, auth_header):
        owner = make_user(Role.CLIENT)
        company = _create(client, auth_header(make_user(Role.ADMIN)), owner_id=owner.id).get_json()["data"]
        res = client.put(f"{BASE}/{company['id']}", json={"phone": "+60 3 1234"},
                         headers=auth_header(owner))
        assert res.status_code == 200
        res = client.put(f"{BASE}/{company['id']}", json={"next_agm_date": "2030-01-01"},
                         headers=auth_header(owner))
        assert res.status_code == 403
        assert res.get_json()["error"]["details"]["fields"] == ["next_agm_date"]

    def test_overdue_filing_is_non_compliant(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        overdue = (date.today() - timedelta(days=1)).isoformat()
        upcoming = (date.today() + timedelta(days=30)).isoformat()
        company = _create(client, headers, next_annual_return_due=overdue,
                          next_agm_date=upcoming).get_json()["data"]
        res = client.get(f"{BASE}/{company['id']}/compliance", headers=headers)
        data = res.get_json()["data"]
        assert data["is_compliant"] is False
        assert data["next_compliance_due"] == overdue

    def test_malformed_due_date_is_rejected(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        overdue = (date.today() - timedelta(days=1)).isoformat()
        company = _create(client, headers, next_annual_return_due=overdue).get_json()["data"]
        res = client.put(f"{BASE}/{company['id']}", json={"next_annual_return_due": "not-a-date"},
                         headers=headers)
        assert res.status_code == 400
        assert res.get_json()["error"]["details"] == {"next_annual_return_due": "invalid date"}
        data = client.get(f"{BASE}/{company['id']}/compliance", headers=headers).get_json()["data"]
        assert data["is_compliant"] is False
        assert data["next_compliance_due"] == overdue

    def test_malformed_incorporation_date_on_create(self, client, make_user, auth_header):
        res = _create(client, auth_header(make_user(Role.ADMIN)), incorporation_date="31/02/2020")
        assert res.status_code == 400
        assert res.get_json()["error"]["details"] == {"incorporation_date": "invalid date"}

    def test_null_due_date_clears_it(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        overdue = (date.today() - timedelta(days=1)).isoformat()
        company = _create(client, headers, next_annual_return_due=overdue).get_json()["data"]
        res = client.put(f"{BASE}/{company['id']}", json={"next_annual_return_due": None},
                         headers=headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["next_annual_return_due"] is None

    def test_company_age(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        company = _create(client, headers, incorporation_date="2015-01-01").get_json()["data"]
        res = client.get(f"{BASE}/{company['id']}/compliance", headers=headers)
        assert res.get_json()["data"]["company_age"] >= 10


class TestRosters:
    def test_add_director_is_active(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        company = _create(client, headers).get_json()["data"]
        res = client.post(f"{BASE}/{company['id']}/directors",
                          json={**DIRECTOR, "is_active": False}, headers=headers)
        assert res.status_code == 201
        directors = res.get_json()["data"]["directors"]
        assert len(directors) == 1
        assert directors[0]["is_active"] is True
        assert directors[0]["appointment_date"] == "2023-01-15"

    def test_shareholder_appointed_today_by_default(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        company = _create(client, headers).get_json()["data"]
        res = client.post(
            f"{BASE}/{company['id']}/shareholders",
            json={"name": "Holdco", "identification_number": "H1",
                  "shares_held": 1000, "share_percentage": 50},
            headers=headers,
        )
        assert res.status_code == 201
        holder = res.get_json()["data"]["shareholders"][0]
        assert holder["appointment_date"] == date.today().isoformat()
        assert holder["share_percentage"] == 50.0

    def test_stranger_cannot_add_director(self, client, make_user, auth_header):
        company = _create(client, auth_header(make_user(Role.ADMIN))).get_json()["data"]
        res = client.post(f"{BASE}/{company['id']}/directors", json=DIRECTOR,
                          headers=auth_header(make_user(Role.CLIENT)))
        assert res.status_code == 403


class TestSecretaryAssignment:
    def test_assignment_moves_workload(self, client, make_user, make_secretary, auth_header):
        admin_headers = auth_header(make_user(Role.ADMIN))
        first_user, first = make_secretary()
        second_user, second = make_secretary()
        company = _create(client, admin_headers,
                          assigned_secretary_id=first_user.id).get_json()["data"]
        assert db.session.get(Secretary, first.id).total_companies_managed == 1

        res = client.patch(f"{BASE}/{company['id']}/secretary",
                           json={"secretary_id": second_user.id}, headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["assigned_secretary_id"] == second_user.id
        assert db.session.get(Secretary, first.id).total_companies_managed == 0
        assert db.session.get(Secretary, second.id).total_companies_managed == 1

    def test_assigned_secretary_can_read(self, client, make_user, make_secretary, auth_header):
        sec_user, _ = make_secretary()
        company = _create(client, auth_header(make_user(Role.ADMIN)),
                          assigned_secretary_id=sec_user.id).get_json()["data"]
        res = client.get(f"{BASE}/{company['id']}", headers=auth_header(sec_user))
        assert res.status_code == 200

    def test_unverified_secretary_rejected(self, client, make_user, make_secretary, auth_header):
        sec_user, _ = make_secretary(verified=False)
        res = _create(client, auth_header(make_user(Role.ADMIN)), assigned_secretary_id=sec_user.id)
        assert res.status_code == 400

    def test_owner_cannot_assign(self, client, make_user, make_secretary, auth_header):
        owner = make_user(Role.CLIENT)
        sec_user, _ = make_secretary()
        company = _create(client, auth_header(make_user(Role.ADMIN)), owner_id=owner.id).get_json()["data"]
        res = client.patch(f"{BASE}/{company['id']}/secretary",
                           json={"secretary_id": sec_user.id}, headers=auth_header(owner))
        assert res.status_code == 403

    def test_delete_releases_workload(self, client, make_user, make_secretary, auth_header):
        admin_headers = auth_header(make_user(Role.ADMIN))
        sec_user, sec = make_secretary()
        company = _create(client, admin_headers, assigned_secretary_id=sec_user.id).get_json()["data"]
        res = client.delete(f"{BASE}/{company['id']}", headers=admin_headers)
        assert res.status_code == 200
        assert db.session.get(Secretary, sec.id).total_companies_managed == 0
        assert client.get(f"{BASE}/{company['id']}", headers=admin_headers).status_code == 404
