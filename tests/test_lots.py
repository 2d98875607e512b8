"""
Tests for inventory lots
"""

from datetime import date, timedelta

from .conftest import auth_headers

LOTS = "/api/v1/inventory/lots"


def add_lot(client, headers, variant_id, number, **extra):
    r = client.post(LOTS, headers=headers, json={"inv_var_id": variant_id, "lot_number": number, **extra})
    assert r.status_code == 201, r.json()
    return r.json()["data"]


class TestLots:

    def test_create_and_search(self, client, headers, catalog):
        add_lot(client, headers, catalog["variant_id"], "L-2024-001", lot_origin="Plant 3")
        add_lot(client, headers, catalog["variant_id"], "L-2024-002")

        r = client.get(f"{LOTS}/search/2024", headers=headers)
        assert r.json()["pagination"]["total"] == 2

        r = client.get(f"{LOTS}/variant/{catalog['variant_id']}", headers=headers)
        assert [lot["lot_number"] for lot in r.json()["data"]] == ["L-2024-002", "L-2024-001"]

    def test_number_unique_per_variant(self, client, headers, catalog):
        add_lot(client, headers, catalog["variant_id"], "L-1")
        r = client.post(LOTS, headers=headers, json={"inv_var_id": catalog["variant_id"], "lot_number": "L-1"})
        assert r.status_code == 409

        other = client.post(f"/api/v1/inventory/{catalog['inv_id']}/variants", headers=headers,
                            json={"inv_var_sku": "HAM-01-B"}).json()["data"]
        add_lot(client, headers, other["inv_var_id"], "L-1")

    def test_expiry_must_follow_manufacture(self, client, headers, catalog):
        r = client.post(LOTS, headers=headers, json={
            "inv_var_id": catalog["variant_id"], "lot_number": "L-1",
            "manufacture_date": "2024-05-01", "expiration_date": "2024-04-01",
        })
        assert r.status_code == 400

    def test_expiry_checked_against_stored_dates_on_update(self, client, headers, catalog):
        lot = add_lot(client, headers, catalog["variant_id"], "L-1", manufacture_date="2024-05-01")
        r = client.put(f"{LOTS}/{lot['inv_lot_id']}", headers=headers, json={"expiration_date": "2024-01-01"})
        assert r.status_code == 400

    def test_negative_cost(self, client, headers, catalog):
        r = client.post(LOTS, headers=headers, json={
            "inv_var_id": catalog["variant_id"], "lot_number": "L-1", "lot_unit_cost": -3,
        })
        assert r.status_code == 400

    def test_variant_of_another_company(self, client, admin, catalog, other_company):
        r = client.post(LOTS, headers=auth_headers(admin, other_company), json={
            "inv_var_id": catalog["variant_id"], "lot_number": "L-1",
        })
        assert r.status_code == 404

    def test_activate_and_deactivate(self, client, headers, catalog):
        lot = add_lot(client, headers, catalog["variant_id"], "L-1")
        r = client.patch(f"{LOTS}/{lot['inv_lot_id']}/deactivate", headers=headers)
        assert r.json()["data"]["lot_status"] == 0
        r = client.patch(f"{LOTS}/{lot['inv_lot_id']}/activate", headers=headers)
        assert r.json()["data"]["lot_status"] == 1

    def test_summary(self, client, headers, catalog):
        today = date.today()
        variant_id = catalog["variant_id"]
        add_lot(client, headers, variant_id, "FRESH", expiration_date=str(today + timedelta(days=90)))
        add_lot(client, headers, variant_id, "SOON", expiration_date=str(today + timedelta(days=10)))
        add_lot(client, headers, variant_id, "OLD", expiration_date=str(today - timedelta(days=1)))
        stale = add_lot(client, headers, variant_id, "STALE", expiration_date=str(today - timedelta(days=5)))
        client.patch(f"{LOTS}/{stale['inv_lot_id']}/deactivate", headers=headers)

        data = client.get(f"{LOTS}/summary/stats", headers=headers).json()["data"]
        assert data == {
            "total_lots": 4,
            "active_lots": 3,
            "inactive_lots": 1,
            "expiring_soon": 1,
            "expired": 1,
            "expiring_window_days": 30,
        }

    def test_delete_unused(self, client, headers, catalog):
        lot = add_lot(client, headers, catalog["variant_id"], "L-1")
        assert client.delete(f"{LOTS}/{lot['inv_lot_id']}", headers=headers).status_code == 200
        assert client.get(f"{LOTS}/{lot['inv_lot_id']}", headers=headers).status_code == 404

    def test_delete_with_movements_is_refused(self, client, headers, catalog):
        lot = add_lot(client, headers, catalog["variant_id"], "L-1")
        r = client.post("/api/v1/inventory/movements", headers=headers, json={
            "inv_var_id": catalog["variant_id"], "id_inv_storage": catalog["storage_id"],
            "inv_lot_id": lot["inv_lot_id"], "movement_type": 1, "quantity": 5,
        })
        assert r.status_code == 201

        r = client.delete(f"{LOTS}/{lot['inv_lot_id']}", headers=headers)
        assert r.status_code == 400
