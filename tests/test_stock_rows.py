"""
Tests for the stock rows kept per variant and per lot in each storage
"""

import pytest

from .conftest import auth_headers

VARIANT_STOCK = "/api/v1/inventory/variant-storages"
LOT_STOCK = "/api/v1/inventory/lots-storages"


@pytest.fixture
def lot_id(client, headers, catalog):
    r = client.post("/api/v1/inventory/lots", headers=headers, json={
        "inv_var_id": catalog["variant_id"], "lot_number": "B-7",
    })
    return r.json()["data"]["inv_lot_id"]


def add_variant_row(client, headers, catalog, **extra):
    r = client.post(VARIANT_STOCK, headers=headers, json={
        "inv_var_id": catalog["variant_id"], "id_inv_storage": catalog["storage_id"], **extra,
    })
    assert r.status_code == 201, r.json()
    return r.json()["data"]


class TestVariantStorages:

    def test_create_records_user(self, client, headers, catalog, admin):
        row = add_variant_row(client, headers, catalog, inv_vs_stock=12, inv_vs_stock_min=2)
        assert row["inv_vs_stock"] == 12
        assert row["user_id"] == admin.user_id

        r = client.get(f"{VARIANT_STOCK}/storage/{catalog['storage_id']}", headers=headers)
        assert r.json()["pagination"]["total"] == 1

    def test_one_row_per_variant_and_storage(self, client, headers, catalog):
        add_variant_row(client, headers, catalog)
        r = client.post(VARIANT_STOCK, headers=headers, json={
            "inv_var_id": catalog["variant_id"], "id_inv_storage": catalog["storage_id"],
        })
        assert r.status_code == 409

        r = client.post(VARIANT_STOCK, headers=headers, json={
            "inv_var_id": catalog["variant_id"], "id_inv_storage": catalog["storage2_id"],
        })
        assert r.status_code == 201

    def test_negative_stock(self, client, headers, catalog):
        r = client.post(VARIANT_STOCK, headers=headers, json={
            "inv_var_id": catalog["variant_id"], "id_inv_storage": catalog["storage_id"], "inv_vs_stock": -1,
        })
        assert r.status_code == 400

        row = add_variant_row(client, headers, catalog)
        r = client.put(f"{VARIANT_STOCK}/{row['inv_var_storage_id']}", headers=headers, json={"inv_vs_stock": -5})
        assert r.status_code == 400

    def test_update_stock_keeps_previous_value(self, client, headers, catalog):
        add_variant_row(client, headers, catalog, inv_vs_stock=10)
        url = f"{VARIANT_STOCK}/variant/{catalog['variant_id']}/storage/{catalog['storage_id']}"

        r = client.put(url, headers=headers, json={"inv_vs_stock": 7})
        assert r.status_code == 200
        assert r.json()["data"]["inv_vs_stock"] == 7
        assert r.json()["data"]["inv_vs_stock_prev"] == 10

    def test_update_stock_without_row(self, client, headers, catalog):
        url = f"{VARIANT_STOCK}/variant/{catalog['variant_id']}/storage/{catalog['storage_id']}"
        assert client.put(url, headers=headers, json={"inv_vs_stock": 7}).status_code == 404

    def test_null_stock_leaves_row_unchanged(self, client, headers, catalog):
        row = add_variant_row(client, headers, catalog, inv_vs_stock=4)
        r = client.put(f"{VARIANT_STOCK}/{row['inv_var_storage_id']}", headers=headers, json={"inv_vs_stock": None})
        assert r.status_code == 200
        assert r.json()["data"]["inv_vs_stock"] == 4

    def test_delete(self, client, headers, catalog):
        row = add_variant_row(client, headers, catalog)
        url = f"{VARIANT_STOCK}/{row['inv_var_storage_id']}"
        assert client.delete(url, headers=headers).status_code == 200
        assert client.get(url, headers=headers).status_code == 404

    def test_variant_of_another_company(self, client, admin, catalog, other_company):
        r = client.post(VARIANT_STOCK, headers=auth_headers(admin, other_company), json={
            "inv_var_id": catalog["variant_id"], "id_inv_storage": catalog["storage_id"],
        })
        assert r.status_code == 404


class TestLotStorages:

    def test_variant_is_taken_from_the_lot(self, client, headers, catalog, lot_id):
        r = client.post(LOT_STOCK, headers=headers, json={
            "inv_lot_id": lot_id, "id_inv_storage": catalog["storage_id"], "inv_ls_stock": 3,
        })
        assert r.status_code == 201
        assert r.json()["data"]["inv_var_id"] == catalog["variant_id"]

        r = client.get(f"{LOT_STOCK}/variant/{catalog['variant_id']}/lot/{lot_id}", headers=headers)
        assert len(r.json()["data"]) == 1

    def test_mismatching_variant_is_rejected(self, client, headers, catalog, lot_id):
        other = client.post(f"/api/v1/inventory/{catalog['inv_id']}/variants", headers=headers,
                            json={"inv_var_sku": "HAM-01-B"}).json()["data"]
        r = client.post(LOT_STOCK, headers=headers, json={
            "inv_lot_id": lot_id, "id_inv_storage": catalog["storage_id"], "inv_var_id": other["inv_var_id"],
        })
        assert r.status_code == 400

    def test_one_row_per_lot_and_storage(self, client, headers, catalog, lot_id):
        body = {"inv_lot_id": lot_id, "id_inv_storage": catalog["storage_id"]}
        assert client.post(LOT_STOCK, headers=headers, json=body).status_code == 201
        assert client.post(LOT_STOCK, headers=headers, json=body).status_code == 409

    def test_negative_stock(self, client, headers, catalog, lot_id):
        r = client.post(LOT_STOCK, headers=headers, json={
            "inv_lot_id": lot_id, "id_inv_storage": catalog["storage_id"], "inv_ls_stock_reserved": -1,
        })
        assert r.status_code == 400

    def test_update_stock_keeps_previous_value(self, client, headers, catalog, lot_id):
        client.post(LOT_STOCK, headers=headers, json={
            "inv_lot_id": lot_id, "id_inv_storage": catalog["storage_id"], "inv_ls_stock": 9,
        })
        r = client.put(f"{LOT_STOCK}/lot/{lot_id}/storage/{catalog['storage_id']}", headers=headers,
                       json={"inv_ls_stock": 4})
        assert r.status_code == 200
        assert r.json()["data"]["inv_ls_stock"] == 4
        assert r.json()["data"]["inv_ls_stock_prev"] == 9

    def test_delete(self, client, headers, catalog, lot_id):
        row = client.post(LOT_STOCK, headers=headers, json={
            "inv_lot_id": lot_id, "id_inv_storage": catalog["storage_id"],
        }).json()["data"]
        url = f"{LOT_STOCK}/{row['inv_lot_storage_id']}"
        assert client.delete(url, headers=headers).status_code == 200
        assert client.get(url, headers=headers).status_code == 404
        assert client.get(f"{LOT_STOCK}/storage/{catalog['storage_id']}", headers=headers).json()["pagination"]["total"] == 0
