"""
Tests for types of prices and variant prices
"""

import pytest

from .conftest import auth_headers

TYPES = "/api/v1/types-of-prices"
PRICES = "/api/v1/inventory/prices"


@pytest.fixture
def retail(client, headers):
    r = client.post(TYPES, headers=headers, json={"typeprice_name": "Retail"})
    assert r.status_code == 201
    return r.json()["data"]["typeprice_id"]


def add_price(client, headers, variant_id, typeprice_id, amount, current=0, **extra):
    r = client.post(PRICES, headers=headers, json={
        "inv_var_id": variant_id,
        "typeprice_id": typeprice_id,
        "price_local": amount,
        "is_current": current,
        **extra,
    })
    assert r.status_code == 201, r.json()
    return r.json()["data"]


def current_ids(client, headers, variant_id):
    data = client.get(f"{PRICES}/variant/{variant_id}/current", headers=headers).json()["data"]
    return [p["inv_price_id"] for p in data]


class TestTypesOfPrices:

    def test_name_unique_per_company(self, client, headers, retail, admin, other_company):
        assert client.post(TYPES, headers=headers, json={"typeprice_name": "Retail"}).status_code == 409
        r = client.post(TYPES, headers=auth_headers(admin, other_company), json={"typeprice_name": "Retail"})
        assert r.status_code == 201

    def test_delete_unused(self, client, headers, retail):
        r = client.delete(f"{TYPES}/{retail}", headers=headers)
        assert r.status_code == 200
        assert client.get(f"{TYPES}/{retail}", headers=headers).status_code == 404

    def test_delete_in_use_is_refused(self, client, headers, retail, catalog):
        add_price(client, headers, catalog["variant_id"], retail, 10)
        r = client.delete(f"{TYPES}/{retail}", headers=headers)
        assert r.status_code == 400

    def test_deactivate(self, client, headers, retail):
        client.patch(f"{TYPES}/{retail}", headers=headers, json={"status": 0})
        assert client.get(TYPES, headers=headers).json()["pagination"]["total"] == 0


class TestPrices:

    def test_new_prices_are_not_current_by_default(self, client, headers, retail, catalog):
        price = add_price(client, headers, catalog["variant_id"], retail, 10)
        assert price["is_current"] == 0
        assert current_ids(client, headers, catalog["variant_id"]) == []

    def test_one_current_price_per_type(self, client, headers, retail, catalog):
        variant_id = catalog["variant_id"]
        first = add_price(client, headers, variant_id, retail, 10, current=1)
        second = add_price(client, headers, variant_id, retail, 12, current=1)

        assert current_ids(client, headers, variant_id) == [second["inv_price_id"]]
        assert client.get(f"{PRICES}/{first['inv_price_id']}", headers=headers).json()["data"]["is_current"] == 0

    def test_current_is_kept_per_type(self, client, headers, retail, catalog):
        wholesale = client.post(TYPES, headers=headers, json={"typeprice_name": "Wholesale"}).json()["data"]
        variant_id = catalog["variant_id"]
        a = add_price(client, headers, variant_id, retail, 10, current=1)
        b = add_price(client, headers, variant_id, wholesale["typeprice_id"], 8, current=1)
        assert sorted(current_ids(client, headers, variant_id)) == sorted([a["inv_price_id"], b["inv_price_id"]])

    def test_set_current(self, client, headers, retail, catalog):
        variant_id = catalog["variant_id"]
        old = add_price(client, headers, variant_id, retail, 10, current=1)
        new = add_price(client, headers, variant_id, retail, 11)

        r = client.patch(f"{PRICES}/{new['inv_price_id']}/set-current", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["is_current"] == 1
        assert current_ids(client, headers, variant_id) == [new["inv_price_id"]]
        assert client.get(f"{PRICES}/{old['inv_price_id']}", headers=headers).json()["data"]["is_current"] == 0

    def test_update_to_current_clears_the_others(self, client, headers, retail, catalog):
        variant_id = catalog["variant_id"]
        add_price(client, headers, variant_id, retail, 10, current=1)
        other = add_price(client, headers, variant_id, retail, 9)

        client.put(f"{PRICES}/{other['inv_price_id']}", headers=headers, json={"is_current": 1})
        assert current_ids(client, headers, variant_id) == [other["inv_price_id"]]

    def test_update_records_history(self, client, headers, retail, catalog):
        variant_id = catalog["variant_id"]
        price = add_price(client, headers, variant_id, retail, 10, current=1)

        r = client.put(f"{PRICES}/{price['inv_price_id']}", headers=headers, json={"price_local": 12.5})
        assert r.json()["data"]["price_local"] == 12.5

        history = client.get(f"{PRICES}/variant/{variant_id}/history", headers=headers).json()
        assert history["pagination"]["total"] == 1
        assert history["data"][0]["price_local"] == 10

    def test_null_fields_leave_price_unchanged(self, client, headers, retail, catalog):
        variant_id = catalog["variant_id"]
        price = add_price(client, headers, variant_id, retail, 10, current=1)

        r = client.put(f"{PRICES}/{price['inv_price_id']}", headers=headers,
                       json={"is_current": None, "price_local": None})
        assert r.status_code == 200
        assert r.json()["data"]["is_current"] == 1
        assert r.json()["data"]["price_local"] == 10
        assert current_ids(client, headers, variant_id) == [price["inv_price_id"]]

    def test_negative_amount(self, client, headers, retail, catalog):
        r = client.post(PRICES, headers=headers, json={
            "inv_var_id": catalog["variant_id"], "typeprice_id": retail, "price_local": -1,
        })
        assert r.status_code == 400

    def test_negative_profit_is_allowed(self, client, headers, retail, catalog):
        price = add_price(client, headers, catalog["variant_id"], retail, 10, profit_local=-2)
        assert price["profit_local"] == -2

    def test_stable_currency_defaults_to_reference(self, client, headers, retail, catalog, currencies):
        price = add_price(
            client, headers, catalog["variant_id"], retail, 10,
            currency_id_local=currencies["VES"], currency_id_ref=currencies["USD"],
        )
        assert price["currency_id_stable"] == currencies["USD"]

    def test_unknown_currency(self, client, headers, retail, catalog):
        r = client.post(PRICES, headers=headers, json={
            "inv_var_id": catalog["variant_id"], "typeprice_id": retail, "currency_id_local": 999,
        })
        assert r.status_code == 404

    def test_variant_of_another_company(self, client, admin, catalog, other_company):
        other_headers = auth_headers(admin, other_company)
        other_type = client.post(TYPES, headers=other_headers, json={"typeprice_name": "Retail"}).json()["data"]
        r = client.post(PRICES, headers=other_headers, json={
            "inv_var_id": catalog["variant_id"], "typeprice_id": other_type["typeprice_id"], "price_local": 1,
        })
        assert r.status_code == 404

    def test_by_type_lists_current_first(self, client, headers, retail, catalog):
        variant_id = catalog["variant_id"]
        current = add_price(client, headers, variant_id, retail, 10, current=1)
        add_price(client, headers, variant_id, retail, 11)

        data = client.get(f"{PRICES}/variant/{variant_id}/type/{retail}", headers=headers).json()["data"]
        assert len(data) == 2
        assert data[0]["inv_price_id"] == current["inv_price_id"]
