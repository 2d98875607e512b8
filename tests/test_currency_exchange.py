"""
Tests for exchange rate configuration, conversion and base currency switching
"""

from decimal import Decimal

import pytest

from inventory_core.app.models import ExchangeMethod
from inventory_core.app.services.common import InvalidOperationError
from inventory_core.app.services.currency_service import convert_amount, cross_rate

from .conftest import auth_headers

EXCHANGES = "/api/v1/currencies-exchanges"


def add_exchange(client, headers, currency_id, rate, exc_type=3, method=ExchangeMethod.MULTIPLY):
    r = client.post(EXCHANGES, headers=headers, json={
        "currency_id": currency_id,
        "currency_exc_rate": rate,
        "currency_exc_type": exc_type,
        "exchange_method": method,
    })
    assert r.status_code == 201, r.json()
    return r.json()["data"]


@pytest.fixture
def rates(client, headers, currencies):
    """USD as base, VES and EUR as references"""
    return {
        "USD": add_exchange(client, headers, currencies["USD"], 1, exc_type=1),
        "VES": add_exchange(client, headers, currencies["VES"], 36.5),
        "EUR": add_exchange(client, headers, currencies["EUR"], 0.92),
    }


class TestConversionMath:

    def test_multiply(self):
        converted, rate = convert_amount(Decimal("10"), Decimal("1"), Decimal("36.5"), ExchangeMethod.MULTIPLY)
        assert converted == Decimal("365.00")
        assert rate == Decimal("36.50000")

    def test_divide(self):
        converted, rate = convert_amount(Decimal("100"), Decimal("1"), Decimal("4"), ExchangeMethod.DIVIDE)
        assert converted == Decimal("25.00")
        assert rate == Decimal("4.00000")

    def test_rounding(self):
        converted, rate = convert_amount(Decimal("10"), Decimal("3"), Decimal("1"), ExchangeMethod.MULTIPLY)
        assert converted == Decimal("3.33")
        assert rate == Decimal("0.33333")

    def test_round_half_up(self):
        converted, _ = convert_amount(Decimal("0.125"), Decimal("1"), Decimal("1"), ExchangeMethod.MULTIPLY)
        assert converted == Decimal("0.13")

    def test_non_positive_rate(self):
        with pytest.raises(InvalidOperationError):
            cross_rate(Decimal("0"), Decimal("1"))


class TestExchangeConfiguration:

    def test_create_includes_currency(self, client, headers, currencies):
        data = add_exchange(client, headers, currencies["VES"], 36.5)
        assert data["currency"]["currency_iso_code"] == "VES"
        assert data["currency_exc_type"] == 3

    def test_duplicate_currency_and_type(self, client, headers, currencies):
        add_exchange(client, headers, currencies["VES"], 36.5)
        r = client.post(EXCHANGES, headers=headers, json={
            "currency_id": currencies["VES"], "currency_exc_rate": 37,
        })
        assert r.status_code == 409

    def test_same_currency_with_another_type(self, client, headers, currencies):
        add_exchange(client, headers, currencies["VES"], 36.5)
        add_exchange(client, headers, currencies["VES"], 36.0, exc_type=2)

    def test_single_local_per_company(self, client, headers, rates, currencies):
        r = client.post(EXCHANGES, headers=headers, json={
            "currency_id": currencies["EUR"], "currency_exc_rate": 0.92, "currency_exc_type": 1,
        })
        assert r.status_code == 409

    def test_update_to_local_is_refused_when_base_exists(self, client, headers, rates):
        r = client.put(f"{EXCHANGES}/{rates['EUR']['currency_exc_id']}", headers=headers,
                       json={"currency_exc_type": 1})
        assert r.status_code == 409

    def test_unknown_currency(self, client, headers):
        r = client.post(EXCHANGES, headers=headers, json={"currency_id": 999, "currency_exc_rate": 1})
        assert r.status_code == 404

    def test_rate_must_be_positive(self, client, headers, currencies):
        r = client.post(EXCHANGES, headers=headers, json={
            "currency_id": currencies["USD"], "currency_exc_rate": 0,
        })
        assert r.status_code == 400

    def test_list_orders_base_first(self, client, headers, rates):
        data = client.get(EXCHANGES, headers=headers).json()["data"]
        assert data[0]["currency"]["currency_iso_code"] == "USD"
        # same type, then by currency name: Bolivar before Euro
        assert [row["currency"]["currency_iso_code"] for row in data[1:]] == ["VES", "EUR"]

    def test_exchanges_are_company_scoped(self, client, admin, rates, other_company):
        r = client.get(f"{EXCHANGES}/{rates['USD']['currency_exc_id']}", headers=auth_headers(admin, other_company))
        assert r.status_code == 404

    def test_update_writes_previous_state_to_history(self, client, headers, rates, currencies):
        exc_id = rates["VES"]["currency_exc_id"]
        r = client.put(f"{EXCHANGES}/{exc_id}", headers=headers, json={"currency_exc_rate": 40})
        assert r.status_code == 200
        assert r.json()["data"]["currency_exc_rate"] == 40

        history = client.get(f"{EXCHANGES}/history?currency_id={currencies['VES']}", headers=headers).json()
        assert history["pagination"]["total"] == 2
        assert sorted(row["currency_exc_rate"] for row in history["data"]) == [36.5, 36.5]


class TestConvert:

    def test_cross_rate(self, client, headers, rates, currencies):
        r = client.post(f"{EXCHANGES}/convert", headers=headers, json={
            "from_currency_id": currencies["USD"], "to_currency_id": currencies["VES"], "amount": 10,
        })
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["converted_amount"] == 365.0
        assert data["exchange_rate"] == 36.5
        assert data["exchange_method"] == "MULTIPLY"

    def test_back_to_base(self, client, headers, rates, currencies):
        r = client.post(f"{EXCHANGES}/convert", headers=headers, json={
            "from_currency_id": currencies["VES"], "to_currency_id": currencies["USD"], "amount": 365,
        })
        data = r.json()["data"]
        assert data["converted_amount"] == 10.0
        assert data["exchange_rate"] == 0.0274

    def test_same_currency(self, client, headers, rates, currencies):
        r = client.post(f"{EXCHANGES}/convert", headers=headers, json={
            "from_currency_id": currencies["EUR"], "to_currency_id": currencies["EUR"], "amount": 12.5,
        })
        data = r.json()["data"]
        assert data["converted_amount"] == 12.5
        assert data["exchange_rate"] == 1
        assert data["exchange_method"] == "NONE"

    def test_divide_method(self, client, headers, currencies):
        add_exchange(client, headers, currencies["USD"], 1, exc_type=1)
        add_exchange(client, headers, currencies["EUR"], 4, method=ExchangeMethod.DIVIDE)
        r = client.post(f"{EXCHANGES}/convert", headers=headers, json={
            "from_currency_id": currencies["USD"], "to_currency_id": currencies["EUR"], "amount": 100,
        })
        data = r.json()["data"]
        assert data["converted_amount"] == 25.0
        assert data["exchange_method"] == "DIVIDE"

    def test_unconfigured_currency(self, client, headers, currencies):
        add_exchange(client, headers, currencies["USD"], 1, exc_type=1)
        r = client.post(f"{EXCHANGES}/convert", headers=headers, json={
            "from_currency_id": currencies["USD"], "to_currency_id": currencies["VES"], "amount": 1,
        })
        assert r.status_code == 404

    def test_amount_must_be_positive(self, client, headers, rates, currencies):
        r = client.post(f"{EXCHANGES}/convert", headers=headers, json={
            "from_currency_id": currencies["USD"], "to_currency_id": currencies["VES"], "amount": 0,
        })
        assert r.status_code == 400


class TestSetBase:

    def test_switch_demotes_previous_base(self, client, headers, rates, currencies):
        r = client.post(f"{EXCHANGES}/set-base", headers=headers, json={"currency_id": currencies["VES"]})
        assert r.status_code == 200
        assert r.json()["data"]["currency_exc_type"] == 1

        r = client.get(f"{EXCHANGES}/{rates['USD']['currency_exc_id']}", headers=headers)
        assert r.json()["data"]["currency_exc_type"] == 3
        assert r.json()["data"]["currency_exc_status"] == 1

        # three creates plus a snapshot for each side of the switch
        history = client.get(f"{EXCHANGES}/history?limit=100", headers=headers).json()
        assert history["pagination"]["total"] == 5

        # both sides are recorded in their new state
        r = client.get(f"{EXCHANGES}/history?currency_id={currencies['VES']}", headers=headers)
        assert sorted(h["currency_exc_type"] for h in r.json()["data"]) == [1, 3]
        r = client.get(f"{EXCHANGES}/history?currency_id={currencies['USD']}", headers=headers)
        assert sorted(h["currency_exc_type"] for h in r.json()["data"]) == [1, 3]

    def test_previous_base_becomes_stable_when_reference_taken(self, client, headers, rates, currencies):
        add_exchange(client, headers, currencies["USD"], 1)
        client.post(f"{EXCHANGES}/set-base", headers=headers, json={"currency_id": currencies["EUR"]})

        r = client.get(f"{EXCHANGES}/{rates['USD']['currency_exc_id']}", headers=headers)
        assert r.json()["data"]["currency_exc_type"] == 2

    def test_setting_current_base_is_a_no_op(self, client, headers, rates, currencies):
        r = client.post(f"{EXCHANGES}/set-base", headers=headers, json={"currency_id": currencies["USD"]})
        assert r.status_code == 200
        assert r.json()["data"]["currency_exc_id"] == rates["USD"]["currency_exc_id"]

        history = client.get(f"{EXCHANGES}/history", headers=headers).json()
        assert history["pagination"]["total"] == 3

    def test_unconfigured_currency(self, client, headers, currencies):
        add_exchange(client, headers, currencies["USD"], 1, exc_type=1)
        r = client.post(f"{EXCHANGES}/set-base", headers=headers, json={"currency_id": currencies["EUR"]})
        assert r.status_code == 404
