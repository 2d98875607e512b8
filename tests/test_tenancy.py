"""
Tests for company resolution per request and the tenancy catalog
(groups, countries, companies, customers)
"""

from inventory_core.app import models

from .conftest import make_user, make_company, auth_headers

TAXES = "/api/v1/taxes"


class TestCompanyResolution:
    """Which company a request acts on"""

    def test_admin_needs_header(self, client, admin):
        r = client.get(TAXES, headers=auth_headers(admin))
        assert r.status_code == 400
        assert r.json()["message"] == "X-Company-Id header is required"

    def test_admin_unknown_company(self, client, admin):
        headers = auth_headers(admin)
        headers["X-Company-Id"] = "999"
        r = client.get(TAXES, headers=headers)
        assert r.status_code == 404

    def test_non_numeric_header(self, client, admin):
        headers = auth_headers(admin)
        headers["X-Company-Id"] = "abc"
        r = client.get(TAXES, headers=headers)
        assert r.status_code == 400

    def test_single_company_user_needs_no_header(self, client, db, company):
        clerk = make_user(db, "clerk", companies=[company])
        r = client.get(TAXES, headers=auth_headers(clerk))
        assert r.status_code == 200

    def test_single_company_user_cannot_name_another(self, client, db, company, other_company):
        clerk = make_user(db, "clerk", companies=[company])
        r = client.get(TAXES, headers=auth_headers(clerk, other_company))
        assert r.status_code == 403

    def test_multi_company_user_must_choose(self, client, db, company, other_company):
        clerk = make_user(db, "clerk", companies=[company, other_company])
        assert client.get(TAXES, headers=auth_headers(clerk)).status_code == 400
        assert client.get(TAXES, headers=auth_headers(clerk, other_company)).status_code == 200

    def test_multi_company_user_outside_assignments(self, client, db, company, other_company):
        third = make_company(db, "Initech", "J-00000003")
        clerk = make_user(db, "clerk", companies=[company, other_company])
        r = client.get(TAXES, headers=auth_headers(clerk, third))
        assert r.status_code == 403

    def test_user_without_company(self, client, db):
        clerk = make_user(db, "clerk")
        r = client.get(TAXES, headers=auth_headers(clerk))
        assert r.status_code == 403

    def test_rows_of_another_company_are_not_found(self, client, admin, company, other_company):
        r = client.post(TAXES, headers=auth_headers(admin, company), json={
            "tax_code": "VAT", "tax_name": "VAT", "tax_type": 2, "tax_value": 16,
        })
        tax_id = r.json()["data"]["tax_id"]

        r = client.get(f"{TAXES}/{tax_id}", headers=auth_headers(admin, other_company))
        assert r.status_code == 404


class TestCompanies:

    def test_create_and_patch_status(self, client, admin):
        headers = auth_headers(admin)
        r = client.post("/api/v1/companies", headers=headers, json={
            "company_name": "Umbrella", "company_id_fiscal": "J-9",
            "company_start": "2024-01-01", "company_end": "2025-01-01",
        })
        assert r.status_code == 201
        company_id = r.json()["data"]["company_id"]

        r = client.patch(f"/api/v1/companies/{company_id}", headers=headers, json={"status": 0})
        assert r.status_code == 200
        assert r.json()["data"]["company_status"] == 0

    def test_duplicate_fiscal_id(self, client, admin, company):
        r = client.post("/api/v1/companies", headers=auth_headers(admin), json={
            "company_name": "Other name", "company_id_fiscal": company.company_id_fiscal,
        })
        assert r.status_code == 409

    def test_license_window(self, client, admin):
        r = client.post("/api/v1/companies", headers=auth_headers(admin), json={
            "company_name": "Umbrella", "company_id_fiscal": "J-9",
            "company_start": "2025-01-01", "company_end": "2024-01-01",
        })
        assert r.status_code == 400

    def test_unknown_group(self, client, admin):
        r = client.post("/api/v1/companies", headers=auth_headers(admin), json={
            "company_name": "Umbrella", "company_id_fiscal": "J-9", "group_id": 42,
        })
        assert r.status_code == 404

    def test_non_admin_forbidden(self, client, db, company):
        clerk = make_user(db, "clerk", companies=[company])
        assert client.get("/api/v1/companies", headers=auth_headers(clerk)).status_code == 403

    def test_register_company_admin(self, client, db, admin, company):
        r = client.post(f"/api/v1/companies/register_admin/{company.company_id}", headers=auth_headers(admin), json={
            "username": "Owner", "email": "owner@acme.io", "password": "Owner#Pass2024", "first_name": "Olga",
        })
        assert r.status_code == 201
        data = r.json()["data"]
        assert data["username"] == "owner"
        assert data["is_admin"] is False
        assert [c["company_id"] for c in data["companies"]] == [company.company_id]

        # the new user works in the company without naming it
        owner = db.get(models.User, data["user_id"])
        assert client.get(TAXES, headers=auth_headers(owner)).status_code == 200

    def test_register_company_admin_unknown_company(self, client, admin):
        r = client.post("/api/v1/companies/register_admin/999", headers=auth_headers(admin), json={
            "username": "owner", "email": "owner@acme.io", "password": "Owner#Pass2024", "first_name": "Olga",
        })
        assert r.status_code == 404

    def test_register_company_admin_weak_password(self, client, admin, company):
        r = client.post(f"/api/v1/companies/register_admin/{company.company_id}", headers=auth_headers(admin), json={
            "username": "owner", "email": "owner@acme.io", "password": "short", "first_name": "Olga",
        })
        assert r.status_code == 400


class TestGroupsAndCountries:

    def test_group_lifecycle(self, client, admin):
        headers = auth_headers(admin)
        r = client.post("/api/v1/groups", headers=headers, json={"group_name": "Holding"})
        assert r.status_code == 201
        group_id = r.json()["data"]["group_id"]

        assert client.post("/api/v1/groups", headers=headers, json={"group_name": "Holding"}).status_code == 409

        r = client.put(f"/api/v1/groups/{group_id}", headers=headers, json={"group_name": "Holding SA"})
        assert r.json()["data"]["group_name"] == "Holding SA"

    def test_country_by_iso2(self, client, admin):
        headers = auth_headers(admin)
        r = client.post("/api/v1/countries", headers=headers, json={
            "country_iso2": "ve", "country_iso3": "ven", "country_name": "Venezuela",
        })
        assert r.status_code == 201
        assert r.json()["data"]["country_iso2"] == "VE"

        r = client.get("/api/v1/countries/iso2/ve", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["country_name"] == "Venezuela"

        assert client.post("/api/v1/countries", headers=headers, json={
            "country_iso2": "VE", "country_name": "Again",
        }).status_code == 409

    def test_country_list_is_paginated(self, client, admin):
        headers = auth_headers(admin)
        for iso2, name in (("AR", "Argentina"), ("BR", "Brazil"), ("CL", "Chile")):
            client.post("/api/v1/countries", headers=headers, json={"country_iso2": iso2, "country_name": name})

        r = client.get("/api/v1/countries?page=2&limit=2", headers=headers)
        body = r.json()
        assert body["pagination"] == {"total": 3, "perPage": 2, "currentPage": 2, "lastPage": 2}
        assert [c["country_iso2"] for c in body["data"]] == ["CL"]

    def test_countries_by_region(self, client, admin):
        headers = auth_headers(admin)
        for iso2, name, continent, subcontinent in (
            ("VE", "Venezuela", "Americas", "South America"),
            ("MX", "Mexico", "Americas", "Central America"),
            ("ES", "Spain", "Europe", "Southern Europe"),
            ("XX", "Nowhere", None, None),
        ):
            client.post("/api/v1/countries", headers=headers, json={
                "country_iso2": iso2, "country_name": name,
                "country_continent": continent, "country_subcontinent": subcontinent,
            })

        r = client.get("/api/v1/countries/continents", headers=headers)
        assert r.json()["data"] == ["Americas", "Europe"]
        r = client.get("/api/v1/countries/subcontinents", headers=headers)
        assert r.json()["data"] == ["Central America", "South America", "Southern Europe"]

        r = client.get("/api/v1/countries/continent/Americas", headers=headers)
        assert [c["country_iso2"] for c in r.json()["data"]] == ["MX", "VE"]
        assert r.json()["pagination"]["total"] == 2
        r = client.get("/api/v1/countries/subcontinent/Southern Europe", headers=headers)
        assert [c["country_iso2"] for c in r.json()["data"]] == ["ES"]

    def test_all_countries_skips_inactive(self, client, admin):
        headers = auth_headers(admin)
        for iso2, name in (("AR", "Argentina"), ("BR", "Brazil"), ("CL", "Chile")):
            client.post("/api/v1/countries", headers=headers, json={"country_iso2": iso2, "country_name": name})
        chile = client.get("/api/v1/countries/iso2/CL", headers=headers).json()["data"]
        client.put(f"/api/v1/countries/{chile['country_id']}", headers=headers, json={"country_status": 0})

        r = client.get("/api/v1/countries/all", headers=headers)
        assert r.json()["pagination"] is None
        assert [c["country_iso2"] for c in r.json()["data"]] == ["AR", "BR"]

    def test_limit_out_of_range(self, client, admin):
        r = client.get("/api/v1/countries?limit=500", headers=auth_headers(admin))
        assert r.status_code == 400
        assert r.json()["errors"][0]["field"] == "limit"


class TestCustomers:

    def test_code_is_unique_per_company(self, client, admin, company, other_company):
        body = {"cust_code": "C001", "cust_description": "Walk-in customer"}
        assert client.post("/api/v1/customers", headers=auth_headers(admin, company), json=body).status_code == 201
        assert client.post("/api/v1/customers", headers=auth_headers(admin, company), json=body).status_code == 409
        assert client.post("/api/v1/customers", headers=auth_headers(admin, other_company), json=body).status_code == 201

    def test_patch_status_hides_from_default_list(self, client, headers):
        r = client.post("/api/v1/customers", headers=headers, json={"cust_code": "C1", "cust_description": "Bob"})
        cust_id = r.json()["data"]["cust_id"]

        client.patch(f"/api/v1/customers/{cust_id}", headers=headers, json={"status": 0})

        assert client.get("/api/v1/customers", headers=headers).json()["pagination"]["total"] == 0
        assert client.get("/api/v1/customers?status=0", headers=headers).json()["pagination"]["total"] == 1
