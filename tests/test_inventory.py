"""
Tests for the inventory catalog: families, storages, attributes, items and variants
"""

from .conftest import auth_headers

INVENTORY = "/api/v1/inventory"


def create_tax(client, headers, code="VAT", value=16):
    r = client.post("/api/v1/taxes", headers=headers, json={
        "tax_code": code, "tax_name": code, "tax_type": 2, "tax_value": value,
    })
    assert r.status_code == 201
    return r.json()["data"]["tax_id"]


class TestFamiliesAndStorages:

    def test_family_code_unique_per_company(self, client, headers, admin, other_company):
        body = {"inv_family_code": "HW", "inv_family_name": "Hardware"}
        assert client.post(f"{INVENTORY}/family", headers=headers, json=body).status_code == 201
        assert client.post(f"{INVENTORY}/family", headers=headers, json=body).status_code == 409
        r = client.post(f"{INVENTORY}/family", headers=auth_headers(admin, other_company), json=body)
        assert r.status_code == 201

    def test_family_with_unknown_tax(self, client, headers):
        r = client.post(f"{INVENTORY}/family", headers=headers, json={
            "inv_family_code": "HW", "inv_family_name": "Hardware", "tax_id": 77,
        })
        assert r.status_code == 404

    def test_storage_status_patch(self, client, headers, catalog):
        r = client.patch(f"{INVENTORY}/storages/{catalog['storage2_id']}", headers=headers, json={"status": 0})
        assert r.status_code == 200
        assert r.json()["data"]["inv_storage_status"] == 0

        codes = [s["inv_storage_code"] for s in client.get(f"{INVENTORY}/storages", headers=headers).json()["data"]]
        assert codes == ["MAIN"]

    def test_storage_duplicate_code_on_rename(self, client, headers, catalog):
        r = client.put(f"{INVENTORY}/storages/{catalog['storage2_id']}", headers=headers,
                       json={"inv_storage_code": "MAIN"})
        assert r.status_code == 409


class TestAttributes:

    def test_values_are_deduplicated(self, client, headers):
        r = client.post(f"{INVENTORY}/attributes", headers=headers, json={
            "attr_name": "Size", "attr_values": ["S", "M", "m", " L "],
        })
        assert r.status_code == 201
        values = [v["attr_value"] for v in r.json()["data"]["values"]]
        assert values == ["S", "M", "L"]

        attr_id = r.json()["data"]["inv_attr_id"]
        r = client.put(f"{INVENTORY}/attributes/{attr_id}", headers=headers, json={"attr_values": ["XL", "S"]})
        assert [v["attr_value"] for v in r.json()["data"]["values"]] == ["S", "M", "L", "XL"]

    def test_duplicate_name(self, client, headers):
        client.post(f"{INVENTORY}/attributes", headers=headers, json={"attr_name": "Color"})
        r = client.post(f"{INVENTORY}/attributes", headers=headers, json={"attr_name": "Color"})
        assert r.status_code == 409


class TestInventory:

    def test_default_variant_uses_inventory_code(self, client, headers, catalog):
        data = client.get(f"{INVENTORY}/{catalog['inv_id']}", headers=headers).json()["data"]
        assert len(data["variants"]) == 1
        assert data["variants"][0]["inv_var_sku"] == "HAM-01"
        assert data["inv_current_existence"] == 0

    def test_duplicate_code(self, client, headers, catalog):
        r = client.post(INVENTORY, headers=headers, json={
            "id_inv_family": catalog["family_id"], "inv_code": "HAM-01", "inv_description": "Another hammer",
        })
        assert r.status_code == 409

    def test_family_of_another_company(self, client, admin, catalog, other_company):
        r = client.post(INVENTORY, headers=auth_headers(admin, other_company), json={
            "id_inv_family": catalog["family_id"], "inv_code": "X-1", "inv_description": "Stray",
        })
        assert r.status_code == 404

    def test_item_of_another_company_is_not_found(self, client, admin, catalog, other_company):
        r = client.get(f"{INVENTORY}/{catalog['inv_id']}", headers=auth_headers(admin, other_company))
        assert r.status_code == 404

    def test_family_tax_is_the_default(self, client, headers):
        tax_id = create_tax(client, headers)
        family_id = client.post(f"{INVENTORY}/family", headers=headers, json={
            "inv_family_code": "FD", "inv_family_name": "Food", "tax_id": tax_id,
        }).json()["data"]["id_inv_family"]

        r = client.post(INVENTORY, headers=headers, json={
            "id_inv_family": family_id, "inv_code": "RICE", "inv_description": "Rice 1kg",
        })
        assert [t["tax_id"] for t in r.json()["data"]["taxes"]] == [tax_id]

    def test_explicit_taxes_replace_on_update(self, client, headers, catalog):
        vat = create_tax(client, headers, "VAT", 16)
        lux = create_tax(client, headers, "LUX", 15)

        r = client.put(f"{INVENTORY}/{catalog['inv_id']}", headers=headers, json={"taxes": [vat, lux]})
        assert sorted(t["tax_code"] for t in r.json()["data"]["taxes"]) == ["LUX", "VAT"]

        r = client.put(f"{INVENTORY}/{catalog['inv_id']}", headers=headers, json={"taxes": []})
        assert r.json()["data"]["taxes"] == []

    def test_unknown_tax(self, client, headers, catalog):
        r = client.put(f"{INVENTORY}/{catalog['inv_id']}", headers=headers, json={"taxes": [404]})
        assert r.status_code == 404

    def test_variants_with_attributes(self, client, headers, catalog):
        attr = client.post(f"{INVENTORY}/attributes", headers=headers, json={
            "attr_name": "Weight", "attr_values": ["16oz", "20oz"],
        }).json()["data"]
        light, heavy = (v["inv_attrval_id"] for v in attr["values"])

        r = client.post(INVENTORY, headers=headers, json={
            "id_inv_family": catalog["family_id"],
            "inv_code": "HAM-02",
            "inv_description": "Framing hammer",
            "variants": [
                {"inv_var_sku": "HAM-02-16", "attr_values": [light]},
                {"inv_var_sku": "HAM-02-20", "attr_values": [heavy]},
            ],
        })
        assert r.status_code == 201
        variants = r.json()["data"]["variants"]
        assert [v["inv_var_sku"] for v in variants] == ["HAM-02-16", "HAM-02-20"]
        assert variants[1]["attr_values"][0]["attr_value"] == "20oz"

    def test_repeated_sku_in_one_request(self, client, headers, catalog):
        r = client.post(INVENTORY, headers=headers, json={
            "id_inv_family": catalog["family_id"],
            "inv_code": "HAM-03",
            "inv_description": "Mallet",
            "variants": [{"inv_var_sku": "M-1"}, {"inv_var_sku": "m-1"}],
        })
        assert r.status_code == 400

    def test_blank_sku(self, client, headers, catalog):
        r = client.post(f"{INVENTORY}/{catalog['inv_id']}/variants", headers=headers, json={"inv_var_sku": "  "})
        assert r.status_code == 400

    def test_add_variant_and_duplicate_sku(self, client, headers, catalog):
        url = f"{INVENTORY}/{catalog['inv_id']}/variants"
        assert client.post(url, headers=headers, json={"inv_var_sku": "HAM-01-RED"}).status_code == 201
        assert client.post(url, headers=headers, json={"inv_var_sku": "HAM-01-RED"}).status_code == 409
        assert len(client.get(url, headers=headers).json()["data"]) == 2

    def test_sku_comparison_ignores_case(self, client, headers, catalog):
        url = f"{INVENTORY}/{catalog['inv_id']}/variants"
        assert client.post(url, headers=headers, json={"inv_var_sku": "ham-01"}).status_code == 409

        blue = client.post(url, headers=headers, json={"inv_var_sku": "HAM-01-BLUE"}).json()["data"]
        r = client.put(f"{INVENTORY}/variants/{blue['inv_var_id']}", headers=headers, json={"inv_var_sku": "Ham-01"})
        assert r.status_code == 409

        # changing only the case of its own SKU is allowed
        r = client.put(f"{INVENTORY}/variants/{blue['inv_var_id']}", headers=headers, json={"inv_var_sku": "ham-01-blue"})
        assert r.status_code == 200

    def test_search_and_status_filter(self, client, headers, catalog):
        r = client.get(f"{INVENTORY}?search=claw", headers=headers)
        assert r.json()["pagination"]["total"] == 1

        client.patch(f"{INVENTORY}/{catalog['inv_id']}", headers=headers, json={"status": 0})
        assert client.get(INVENTORY, headers=headers).json()["pagination"]["total"] == 0

    def test_variant_lookup_is_not_shadowed_by_item_route(self, client, headers, catalog):
        r = client.get(f"{INVENTORY}/variants/{catalog['variant_id']}", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["inv_id"] == catalog["inv_id"]
