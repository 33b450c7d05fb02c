"""Tests for tax payments, the portfolio tax summary and mill-rate analytics."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from landledger.core.config import Settings
from landledger.core.types import PlaceKind
from landledger.gis.resolver import ParcelResolver
from landledger.portfolio.models import MillRateEntry, Place, Property, ValuationEntry
from landledger.portfolio.store import PortfolioStore
from landledger.web.app import create_app
from tests.conftest import install_user_token


@pytest.fixture
def store():
    return PortfolioStore()


@pytest.fixture
def app(store):
    return create_app(
        settings=Settings(),
        parcel_resolver=MagicMock(spec=ParcelResolver),
        portfolio_store=store,
    )


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def headers(app):
    return install_user_token(app, "jane.smith")


@pytest.fixture
def camp(store):
    return store.save_property(Property(user_id="jane.smith", name="Camp"))


def _pay(client, headers, prop, **fields):
    payload = {"year": 2023, "amount": 1480.5, "payment_date": "2023-09-30T00:00:00Z", **fields}
    return client.post(f"/api/properties/{prop.id}/tax-payments", json=payload, headers=headers)


# ---------------------------------------------------------------------------
# Tax payments
# ---------------------------------------------------------------------------


class TestTaxPayments:
    def test_create_and_list_newest_first(self, client, headers, camp):
        assert _pay(client, headers, camp).status_code == 201
        assert _pay(client, headers, camp, year=2024, amount=1520).status_code == 201

        resp = client.get(f"/api/properties/{camp.id}/tax-payments", headers=headers)

        assert [p["year"] for p in resp.json()] == [2024, 2023]
        assert resp.json()[1]["amount"] == 1480.5

    def test_shown_on_property(self, client, headers, camp):
        _pay(client, headers, camp)
        body = client.get(f"/api/properties/{camp.id}", headers=headers).json()
        assert [p["year"] for p in body["tax_payments"]] == [2023]

    def test_duplicate_year_conflicts(self, client, headers, camp):
        _pay(client, headers, camp)

        resp = _pay(client, headers, camp, amount=10)

        assert resp.status_code == 409
        assert resp.json()["detail"].endswith("Use PUT to update it.")

    @pytest.mark.parametrize(
        "fields",
        [{"year": 1899}, {"year": datetime.now().year + 11}, {"amount": -1}, {"payment_date": "soon"}],
    )
    def test_validation(self, client, headers, camp, fields):
        assert _pay(client, headers, camp, **fields).status_code == 422

    def test_update(self, client, headers, camp):
        payment = _pay(client, headers, camp).json()
        _pay(client, headers, camp, year=2024)
        url = f"/api/properties/{camp.id}/tax-payments/{payment['id']}"

        resp = client.put(url, json={"amount": 1500, "notes": "Paid in person"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["amount"] == 1500
        assert resp.json()["year"] == 2023

        resp = client.put(url, json={"year": 2024}, headers=headers)
        assert resp.status_code == 409

    def test_delete(self, client, headers, camp):
        payment = _pay(client, headers, camp).json()
        url = f"/api/properties/{camp.id}/tax-payments/{payment['id']}"

        assert client.delete(url, headers=headers).json() == {"deleted": True, "id": payment["id"]}
        resp = client.delete(url, headers=headers)
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Tax payment not found"

    def test_other_users_property(self, client, app, camp):
        resp = _pay(client, install_user_token(app, "sam.lee"), camp)
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Portfolio summary
# ---------------------------------------------------------------------------


class TestPortfolioTaxes:
    def test_groups_by_state_and_place(self, client, headers, store):
        town = store.save_place(Place(user_id="jane.smith", name="Madawaska", state="ME"))
        store.add_mill_rate(
            MillRateEntry(place_id=town.id, user_id="jane.smith", year=2024, mill_rate=18.0)
        )
        camp = store.save_property(
            Property(user_id="jane.smith", name="Camp", place_id=town.id, state_tax_stamps=220)
        )
        store.add_valuation(ValuationEntry(property_id=camp.id, year=2024, assessed_value=100000))
        lot = store.save_property(Property(user_id="jane.smith", name="Lot", city="Derry", state="NH"))
        store.save_property(Property(user_id="sam.lee", name="Theirs"))

        body = client.get("/api/taxes", headers=headers).json()

        assert body["total_properties"] == 2
        assert body["properties_with_tax_data"] == 1
        assert body["total_estimated_annual_taxes"] == pytest.approx(1800.0)
        assert body["average_estimated_taxes"] == pytest.approx(1800.0)
        assert body["total_state_tax_stamps"] == 220
        assert [p["property_id"] for p in body["properties"]] == [lot.id, camp.id]

        maine = body["properties_by_state"]["ME"]
        assert maine["count"] == 1
        assert maine["places"]["Madawaska"]["mill_rate"] == 18.0
        assert maine["places"]["Madawaska"]["property_ids"] == [camp.id]
        assert body["properties_by_state"]["NH"]["places"]["Derry"]["total_estimated_taxes"] == 0

    def test_empty_portfolio(self, client, headers):
        body = client.get("/api/taxes", headers=headers).json()
        assert body["total_properties"] == 0
        assert body["average_estimated_taxes"] == 0.0
        assert body["properties_by_state"] == {}


class TestMillRateAnalytics:
    def test_county_rates_newest_first(self, client, headers, store):
        york = store.save_place(Place(user_id="jane.smith", name="York", kind=PlaceKind.COUNTY))
        aroostook = store.save_place(
            Place(user_id="jane.smith", name="Aroostook", kind=PlaceKind.COUNTY)
        )
        town = store.save_place(Place(user_id="jane.smith", name="Madawaska"))
        store.add_mill_rates(
            [
                MillRateEntry(place_id=york.id, user_id="jane.smith", year=2023, mill_rate=1.1),
                MillRateEntry(place_id=aroostook.id, user_id="jane.smith", year=2023, mill_rate=1.6),
                MillRateEntry(place_id=york.id, user_id="jane.smith", year=2024, mill_rate=1.2),
                MillRateEntry(place_id=town.id, user_id="jane.smith", year=2024, mill_rate=18.0),
            ]
        )

        body = client.get("/api/analytics/mill-rates", headers=headers).json()

        assert [(r["county"], r["year"], r["mill_rate"]) for r in body] == [
            ("York", 2024, 1.2),
            ("Aroostook", 2023, 1.6),
            ("York", 2023, 1.1),
        ]
        assert body[0]["place_kind"] == "COUNTY"

    def test_only_own_places(self, client, app, store):
        county = store.save_place(Place(user_id="jane.smith", name="York", kind=PlaceKind.COUNTY))
        store.add_mill_rate(
            MillRateEntry(place_id=county.id, user_id="jane.smith", year=2024, mill_rate=1.2)
        )

        body = client.get(
            "/api/analytics/mill-rates", headers=install_user_token(app, "sam.lee")
        ).json()
        assert body == []
