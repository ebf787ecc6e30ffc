"""
Catalog tests — service master, service offerings, platform fee tiers and
the seed commands.
"""

from marketplace.models.catalog import PlatformFee, ServiceMaster, ServiceOffering
from marketplace.models.enums import Role
from marketplace.models.user import User
from marketplace.services import seed_service

SERVICES = "/api/v1/service-master"
OFFERINGS = "/api/v1/service-offerings"
FEES = "/api/v1/platform-fees"


class TestServiceMaster:
    def test_admin_creates_and_anyone_reads(self, client, make_user, auth_header):
        res = client.post(SERVICES, json={"title": "  Audit  ", "description": "Books review"},
                          headers=auth_header(make_user(Role.ADMIN)))
        assert res.status_code == 201
        service = res.get_json()["data"]
        assert service["title"] == "Audit"
        assert client.get(f"{SERVICES}/{service['id']}").status_code == 200
        res = client.get(f"{SERVICES}?q=aud")
        assert [s["title"] for s in res.get_json()["data"]] == ["Audit"]

    def test_specialist_cannot_manage(self, client, specialist_user, auth_header):
        res = client.post(SERVICES, json={"title": "Audit"}, headers=auth_header(specialist_user))
        assert res.status_code == 403

    def test_duplicate_title(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        client.post(SERVICES, json={"title": "Audit"}, headers=headers)
        res = client.post(SERVICES, json={"title": "Audit"}, headers=headers)
        assert res.status_code == 409

    def test_title_required(self, client, make_user, auth_header):
        res = client.post(SERVICES, json={"title": " "}, headers=auth_header(make_user(Role.ADMIN)))
        assert res.status_code == 400

    def test_rename(self, client, make_user, auth_header):
        headers = auth_header(make_user(Role.ADMIN))
        service = client.post(SERVICES, json={"title": "Audit"}, headers=headers).get_json()["data"]
        res = client.patch(f"{SERVICES}/{service['id']}", json={"title": "Internal Audit"},
                           headers=headers)
        assert res.get_json()["data"]["title"] == "Internal Audit"


class TestOfferings:
    def _service(self, client, auth_header, make_user, title="Audit"):
        res = client.post(SERVICES, json={"title": title}, headers=auth_header(make_user(Role.ADMIN)))
        return res.get_json()["data"]

    def test_link_unlink_and_restore(self, client, make_user, specialist_user, make_specialist,
                                     auth_header):
        spec = make_specialist(specialist_user)
        service = self._service(client, auth_header, make_user)
        headers = auth_header(specialist_user)
        payload = {"specialist_id": spec["id"], "service_master_id": service["id"]}

        res = client.post(OFFERINGS, json=payload, headers=headers)
        assert res.status_code == 201
        offering = res.get_json()["data"]
        assert offering["service"]["title"] == "Audit"

        assert client.post(OFFERINGS, json=payload, headers=headers).status_code == 409

        assert client.delete(f"{OFFERINGS}/{offering['id']}", headers=headers).status_code == 200
        res = client.get(f"{OFFERINGS}/specialist/{spec['id']}", headers=headers)
        assert res.get_json()["data"] == []

        res = client.post(OFFERINGS, json=payload, headers=headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["id"] == offering["id"]
        assert ServiceOffering.query.count() == 1

    def test_stranger_cannot_link(self, client, make_user, specialist_user, make_specialist,
                                  auth_header):
        spec = make_specialist(specialist_user)
        service = self._service(client, auth_header, make_user)
        res = client.post(OFFERINGS, json={"specialist_id": spec["id"], "service_master_id": service["id"]},
                          headers=auth_header(make_user(Role.SPECIALIST)))
        assert res.status_code == 403

    def test_listing_by_service_hides_private_listings(self, client, make_user, specialist_user,
                                                       make_specialist, publish_and_verify,
                                                       auth_header):
        service = self._service(client, auth_header, make_user)
        public = make_specialist(specialist_user, title="Public Listing")
        hidden = make_specialist(specialist_user, title="Hidden Listing")
        publish_and_verify(public["id"], specialist_user)
        for spec in (public, hidden):
            client.post(OFFERINGS, json={"specialist_id": spec["id"], "service_master_id": service["id"]},
                        headers=auth_header(specialist_user))

        res = client.get(f"{OFFERINGS}/service/{service['id']}")
        assert [o["specialist_id"] for o in res.get_json()["data"]] == [public["id"]]
        res = client.get(f"{OFFERINGS}/service/{service['id']}", headers=auth_header(specialist_user))
        assert len(res.get_json()["data"]) == 2

    def test_deleting_service_removes_offerings(self, client, make_user, specialist_user,
                                                make_specialist, auth_header):
        spec = make_specialist(specialist_user)
        service = self._service(client, auth_header, make_user)
        client.post(OFFERINGS, json={"specialist_id": spec["id"], "service_master_id": service["id"]},
                    headers=auth_header(specialist_user))
        res = client.delete(f"{SERVICES}/{service['id']}", headers=auth_header(make_user(Role.ADMIN)))
        assert res.status_code == 200
        assert client.get(f"{SERVICES}/{service['id']}").status_code == 404
        res = client.get(f"{OFFERINGS}/specialist/{spec['id']}", headers=auth_header(specialist_user))
        assert res.get_json()["data"] == []


class TestPlatformFees:
    def _tier(self, client, headers, name, lo, hi, pct):
        return client.post(
            FEES,
            json={"tier_name": name, "min_value": lo, "max_value": hi, "platform_fee_percentage": pct},
            headers=headers,
        )

    def test_super_admin_manages_tiers(self, client, super_admin, auth_header):
        headers = auth_header(super_admin)
        assert self._tier(client, headers, "standard", 1000.01, 5000, 8.5).status_code == 201
        assert self._tier(client, headers, "basic", 0, 1000, 10).status_code == 201
        res = client.get(FEES)
        assert [t["tier_name"] for t in res.get_json()["data"]] == ["basic", "standard"]

    def test_admin_cannot_manage(self, client, make_user, auth_header):
        res = self._tier(client, auth_header(make_user(Role.ADMIN)), "basic", 0, 1000, 10)
        assert res.status_code == 403

    def test_overlapping_range(self, client, super_admin, auth_header):
        headers = auth_header(super_admin)
        self._tier(client, headers, "basic", 0, 1000, 10)
        res = self._tier(client, headers, "standard", 1000, 5000, 8.5)
        assert res.status_code == 409

    def test_min_above_max(self, client, super_admin, auth_header):
        res = self._tier(client, auth_header(super_admin), "basic", 500, 100, 10)
        assert res.status_code == 400

    def test_unknown_tier_name(self, client, super_admin, auth_header):
        res = self._tier(client, auth_header(super_admin), "platinum", 0, 100, 10)
        assert res.status_code == 400

    def test_update_and_delete(self, client, super_admin, auth_header):
        headers = auth_header(super_admin)
        tier = self._tier(client, headers, "basic", 0, 1000, 10).get_json()["data"]
        res = client.put(f"{FEES}/{tier['id']}", json={"platform_fee_percentage": 12},
                         headers=headers)
        assert res.get_json()["data"]["platform_fee_percentage"] == 12.0
        assert client.delete(f"{FEES}/{tier['id']}", headers=headers).status_code == 200
        assert PlatformFee.query.count() == 0

    def test_calculate(self, client, super_admin, auth_header):
        self._tier(client, auth_header(super_admin), "standard", 1000.01, 5000, 8.5)
        res = client.get(f"{FEES}/calculate?price=2000")
        assert res.get_json()["data"] == {
            "base_price": 2000.0,
            "platform_fee_percentage": 8.5,
            "final_price": 2170.0,
        }

    def test_calculate_falls_back_to_default(self, client):
        res = client.get(f"{FEES}/calculate?price=100")
        assert res.get_json()["data"]["final_price"] == 110.0

    def test_calculate_requires_price(self, client):
        assert client.get(f"{FEES}/calculate").status_code == 400
        assert client.get(f"{FEES}/calculate?price=abc").status_code == 400


class TestSeeds:
    def test_seeders_are_idempotent(self, app):
        assert seed_service.seed_platform_fees() == 4
        assert seed_service.seed_service_master() == len(seed_service.SERVICE_CATALOG)
        assert seed_service.seed_platform_fees() == 0
        assert seed_service.seed_service_master() == 0

    def test_seed_all_command(self, app):
        result = app.test_cli_runner().invoke(args=["seed-all"])
        assert result.exit_code == 0, result.output
        assert PlatformFee.query.count() == 4
        assert ServiceMaster.query.count() == len(seed_service.SERVICE_CATALOG)
        admin = User.query.filter_by(email=app.config["SEED_ADMIN_EMAIL"].lower()).one()
        assert admin.role == Role.SUPER_ADMIN.value
        assert User.query.count() == len(Role)
