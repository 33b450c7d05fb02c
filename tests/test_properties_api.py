"""Tests for the property, valuation and tax endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from landledger.core.config import Settings
from landledger.gis.resolver import ParcelResolver
from landledger.portfolio.models import MillRateEntry, Place
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
def town(store):
    place = store.save_place(Place(user_id="jane.smith", name="Madawaska"))
    store.add_mill_rates(
        [
            MillRateEntry(place_id=place.id, user_id="jane.smith", year=2022, mill_rate=16.0),
            MillRateEntry(place_id=place.id, user_id="jane.smith", year=2024, mill_rate=18.0),
        ]
    )
    return place


def _create(client, headers, **fields) -> dict:
    resp = client.post("/api/properties", json={"name": "Camp", **fields}, headers=headers)
    assert resp.status_code == 201
    return resp.json()


class TestProperties:
    def test_create_and_list(self, client, headers, town):
        created = _create(client, headers, street_address="Lot 45 Winter St", place_id=town.id)

        assert created["user_id"] == "jane.smith"
        listed = client.get("/api/properties", headers=headers).json()
        assert [p["id"] for p in listed] == [created["id"]]

    def test_create_with_unknown_place(self, client, headers):
        resp = client.post(
            "/api/properties", json={"name": "Camp", "place_id": "nope"}, headers=headers
        )
        assert resp.status_code == 400

    def test_get_scoped_to_owner(self, client, app, headers):
        created = _create(client, headers)

        assert client.get(f"/api/properties/{created['id']}", headers=headers).status_code == 200
        other = install_user_token(app, "sam.lee")
        assert client.get(f"/api/properties/{created['id']}", headers=other).status_code == 404


class TestValuations:
    def test_add_and_read_back(self, client, headers):
        prop = _create(client, headers)

        resp = client.post(
            f"/api/properties/{prop['id']}/valuations",
            json={"year": 2024, "assessed_value": 110000, "assessment_date": "2024-04-01"},
            headers=headers,
        )
        assert resp.status_code == 201

        body = client.get(f"/api/properties/{prop['id']}", headers=headers).json()
        assert body["valuations"][0]["assessed_value"] == 110000
        assert body["valuations"][0]["assessment_date"] == "2024-04-01"

    def test_duplicate_year_conflicts(self, client, headers):
        prop = _create(client, headers)
        url = f"/api/properties/{prop['id']}/valuations"

        client.post(url, json={"year": 2024, "assessed_value": 1}, headers=headers)
        resp = client.post(url, json={"year": 2024, "assessed_value": 2}, headers=headers)

        assert resp.status_code == 409

    def test_negative_value_rejected(self, client, headers):
        prop = _create(client, headers)
        resp = client.post(
            f"/api/properties/{prop['id']}/valuations",
            json={"year": 2024, "market_value": -5},
            headers=headers,
        )
        assert resp.status_code == 422


class TestTaxes:
    def test_history_current_and_trend(self, client, headers, town):
        prop = _create(client, headers, place_id=town.id)
        url = f"/api/properties/{prop['id']}/valuations"
        client.post(url, json={"year": 2022, "assessed_value": 100000, "market_value": 150000}, headers=headers)
        client.post(url, json={"year": 2024, "assessed_value": 110000, "market_value": 160000}, headers=headers)
        client.post(url, json={"year": 2023, "assessed_value": 105000}, headers=headers)

        resp = client.get(f"/api/properties/{prop['id']}/taxes", headers=headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["place_id"] == town.id
        assert [c["year"] for c in body["history"]] == [2024, 2022]
        assert body["current"]["assessed_tax"] == 1980.0
        assert body["current"]["market_tax"] == 2880.0
        assert body["trend"]["assessed"] == pytest.approx({"change": 380.0, "percent_change": 23.75})
        assert body["trend"]["market"] == pytest.approx({"change": 480.0, "percent_change": 20.0})

    def test_property_without_place(self, client, headers):
        prop = _create(client, headers)

        body = client.get(f"/api/properties/{prop['id']}/taxes", headers=headers).json()

        assert body["history"] == []
        assert body["current"] is None
        assert body["trend"] == {"assessed": None, "market": None}


class TestPropertyChanges:
    def test_create_with_purchase_details(self, client, headers):
        created = _create(
            client, headers, type="Land", acres=12.5, purchase_price=38000,
            closing_date="2024-03-15", state_tax_stamps=167.2,
        )
        assert created["acres"] == 12.5
        assert created["closing_date"] == "2024-03-15"

    def test_update_sent_fields(self, client, headers, town):
        prop = _create(client, headers, street_address="Lot 45 Winter St")

        resp = client.put(
            f"/api/properties/{prop['id']}",
            json={"place_id": town.id, "zoning": "RR"},
            headers=headers,
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["place_id"] == town.id
        assert body["zoning"] == "RR"
        assert body["street_address"] == "Lot 45 Winter St"

    def test_update_with_unknown_place(self, client, headers):
        prop = _create(client, headers)
        resp = client.put(
            f"/api/properties/{prop['id']}", json={"place_id": "nope"}, headers=headers
        )
        assert resp.status_code == 400

    def test_delete(self, client, app, headers):
        prop = _create(client, headers)
        other = install_user_token(app, "sam.lee")

        assert client.delete(f"/api/properties/{prop['id']}", headers=other).status_code == 404
        resp = client.delete(f"/api/properties/{prop['id']}", headers=headers)
        assert resp.json() == {"deleted": True, "id": prop["id"]}
        assert client.get(f"/api/properties/{prop['id']}", headers=headers).status_code == 404


class TestValuationChanges:
    def test_latest_valuation_sets_current_values(self, client, headers):
        prop = _create(client, headers)
        url = f"/api/properties/{prop['id']}/valuations"
        client.post(url, json={"year": 2023, "assessed_value": 100000, "market_value": 140000}, headers=headers)
        client.post(url, json={"year": 2024, "assessed_value": 110000}, headers=headers)

        body = client.get(f"/api/properties/{prop['id']}", headers=headers).json()
        assert (body["assessed_value"], body["market_value"]) == (110000, None)

        resp = client.put(f"{url}/2024", json={"market_value": 150000}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["assessed_value"] == 110000
        body = client.get(f"/api/properties/{prop['id']}", headers=headers).json()
        assert body["market_value"] == 150000

    def test_delete_falls_back_to_previous_year(self, client, headers):
        prop = _create(client, headers)
        url = f"/api/properties/{prop['id']}/valuations"
        client.post(url, json={"year": 2023, "assessed_value": 100000, "market_value": 140000}, headers=headers)
        client.post(url, json={"year": 2024, "assessed_value": 110000}, headers=headers)

        resp = client.delete(f"{url}/2024", headers=headers)

        assert resp.json() == {
            "deleted": True,
            "year": 2024,
            "assessed_value": 100000,
            "market_value": 140000,
        }

    def test_missing_year(self, client, headers):
        prop = _create(client, headers)
        url = f"/api/properties/{prop['id']}/valuations/1990"

        assert client.put(url, json={"market_value": 1}, headers=headers).status_code == 404
        resp = client.delete(url, headers=headers)
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Valuation entry not found"
