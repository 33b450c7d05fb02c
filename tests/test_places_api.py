"""Tests for the places and mill-rate endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from landledger.core.config import Settings
from landledger.core.types import PlaceKind
from landledger.gis.resolver import ParcelResolver
from landledger.portfolio.models import MillRateEntry, Place, Property
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
def aroostook(store):
    return store.save_place(Place(user_id="jane.smith", name="Aroostook", kind=PlaceKind.COUNTY))


@pytest.fixture
def madawaska(store, aroostook):
    town = store.save_place(
        Place(user_id="jane.smith", name="Madawaska", kind=PlaceKind.TOWN, parent_id=aroostook.id)
    )
    store.add_mill_rate(
        MillRateEntry(place_id=town.id, user_id="jane.smith", year=2023, mill_rate=18.0)
    )
    return town


# ---------------------------------------------------------------------------
# Places
# ---------------------------------------------------------------------------


class TestPlaces:
    def test_list_filters_by_kind(self, client, headers, madawaska):
        resp = client.get("/api/places", headers=headers)
        assert [p["name"] for p in resp.json()] == ["Aroostook", "Madawaska"]

        resp = client.get("/api/places?kind=TOWN", headers=headers)
        assert [p["name"] for p in resp.json()] == ["Madawaska"]

    def test_list_only_own_places(self, client, app, madawaska):
        resp = client.get("/api/places", headers=install_user_token(app, "sam.lee"))
        assert resp.json() == []

    def test_get_includes_children_and_rates(self, client, headers, aroostook, madawaska):
        resp = client.get(f"/api/places/{aroostook.id}", headers=headers)
        assert resp.status_code == 200
        assert [c["name"] for c in resp.json()["children"]] == ["Madawaska"]

        resp = client.get(f"/api/places/{madawaska.id}", headers=headers)
        body = resp.json()
        assert body["mill_rate"] == 18.0
        assert [m["year"] for m in body["mill_rates"]] == [2023]

    def test_get_unknown(self, client, headers):
        assert client.get("/api/places/nope", headers=headers).status_code == 404

    def test_create(self, client, headers, aroostook):
        resp = client.post(
            "/api/places",
            json={"name": "Fort Kent", "kind": "TOWN", "parent_id": aroostook.id},
            headers=headers,
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == "Fort Kent"
        assert body["parent_id"] == aroostook.id
        assert body["user_id"] == "jane.smith"

    def test_create_with_unknown_parent(self, client, headers):
        resp = client.post(
            "/api/places", json={"name": "Fort Kent", "parent_id": "nope"}, headers=headers
        )
        assert resp.status_code == 404

    def test_create_rejects_bad_kind(self, client, headers):
        resp = client.post("/api/places", json={"name": "X", "kind": "VILLAGE"}, headers=headers)
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Mill rates
# ---------------------------------------------------------------------------


class TestMillRates:
    def test_list(self, client, headers, madawaska):
        resp = client.get(f"/api/places/{madawaska.id}/mill-rates", headers=headers)
        assert resp.status_code == 200
        assert [m["mill_rate"] for m in resp.json()] == [18.0]

    def test_add_latest_year_updates_current_rate(self, client, headers, store, madawaska):
        resp = client.post(
            f"/api/places/{madawaska.id}/mill-rates",
            json={"year": 2024, "mill_rate": 19.2, "notes": "Adopted June"},
            headers=headers,
        )

        assert resp.status_code == 201
        assert resp.json()["year"] == 2024
        assert store.get_place(madawaska.id).mill_rate == 19.2

    def test_add_older_year_keeps_current_rate(self, client, headers, store, madawaska):
        resp = client.post(
            f"/api/places/{madawaska.id}/mill-rates",
            json={"year": 2020, "mill_rate": 15.0},
            headers=headers,
        )

        assert resp.status_code == 201
        assert store.get_place(madawaska.id).mill_rate == 18.0

    def test_duplicate_year_conflicts(self, client, headers, madawaska):
        resp = client.post(
            f"/api/places/{madawaska.id}/mill-rates",
            json={"year": 2023, "mill_rate": 20.0},
            headers=headers,
        )
        assert resp.status_code == 409

    @pytest.mark.parametrize(
        "payload",
        [
            {"year": 1999, "mill_rate": 15.0},
            {"year": 2101, "mill_rate": 15.0},
            {"year": 2024, "mill_rate": -1},
            {"year": 2024},
        ],
    )
    def test_validation(self, client, headers, madawaska, payload):
        resp = client.post(f"/api/places/{madawaska.id}/mill-rates", json=payload, headers=headers)
        assert resp.status_code == 422

    def test_other_users_place(self, client, app, madawaska):
        resp = client.post(
            f"/api/places/{madawaska.id}/mill-rates",
            json={"year": 2024, "mill_rate": 19.2},
            headers=install_user_token(app, "sam.lee"),
        )
        assert resp.status_code == 404

    def test_delete(self, client, headers, store, madawaska):
        store.add_mill_rate(
            MillRateEntry(place_id=madawaska.id, user_id="jane.smith", year=2024, mill_rate=19.2)
        )

        resp = client.delete(f"/api/places/{madawaska.id}/mill-rates/2024", headers=headers)

        assert resp.status_code == 200
        assert resp.json() == {"deleted": True, "year": 2024, "current_mill_rate": 18.0}

    def test_delete_missing_year(self, client, headers, madawaska):
        resp = client.delete(f"/api/places/{madawaska.id}/mill-rates/1990", headers=headers)
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Editing and deletion
# ---------------------------------------------------------------------------


class TestPlaceChanges:
    def test_update_sent_fields(self, client, headers, store, madawaska):
        resp = client.put(
            f"/api/places/{madawaska.id}",
            json={"name": "Madawaska", "tax_due_month": 10, "tax_due_day": 15, "tax_notes": "Two halves"},
            headers=headers,
        )

        assert resp.status_code == 200
        body = resp.json()
        assert (body["tax_due_month"], body["tax_due_day"]) == (10, 15)
        assert body["mill_rate"] == 18.0
        assert store.get_place(madawaska.id).tax_notes == "Two halves"

    def test_update_name_clash(self, client, headers, store, aroostook, madawaska):
        store.save_place(
            Place(user_id="jane.smith", name="Fort Kent", kind=PlaceKind.TOWN, parent_id=aroostook.id)
        )
        resp = client.put(f"/api/places/{madawaska.id}", json={"name": "fort kent"}, headers=headers)
        assert resp.status_code == 409

    def test_update_rejects_bad_due_month(self, client, headers, madawaska):
        resp = client.put(
            f"/api/places/{madawaska.id}", json={"name": "Madawaska", "tax_due_month": 13}, headers=headers
        )
        assert resp.status_code == 422

    def test_get_counts_properties(self, client, headers, store, madawaska):
        store.save_property(Property(user_id="jane.smith", place_id=madawaska.id))
        body = client.get(f"/api/places/{madawaska.id}", headers=headers).json()
        assert body["property_count"] == 1

    def test_delete(self, client, headers, store, aroostook, madawaska):
        resp = client.delete(f"/api/places/{aroostook.id}", headers=headers)

        assert resp.json() == {"deleted": True, "id": aroostook.id}
        assert store.get_place(madawaska.id).parent_id is None

    def test_delete_blocked_by_properties(self, client, headers, store, madawaska):
        store.save_property(Property(user_id="jane.smith", place_id=madawaska.id))

        resp = client.delete(f"/api/places/{madawaska.id}", headers=headers)

        assert resp.status_code == 409
        assert store.get_place(madawaska.id) is madawaska

    def test_update_mill_rate(self, client, headers, madawaska):
        resp = client.put(
            f"/api/places/{madawaska.id}/mill-rates/2023",
            json={"mill_rate": 18.4, "notes": "Corrected"},
            headers=headers,
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["mill_rate"] == 18.4
        assert body["notes"] == "Corrected"
        assert body["current_mill_rate"] == 18.4

    def test_update_missing_mill_rate(self, client, headers, madawaska):
        resp = client.put(
            f"/api/places/{madawaska.id}/mill-rates/1990", json={"mill_rate": 1.0}, headers=headers
        )
        assert resp.status_code == 404
