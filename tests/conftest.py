"""Shared test fixtures and helpers."""

from __future__ import annotations

import re
from typing import Any

from landledger.core.config import GISConfig

GEOCODE_URL = "http://geocoder.test/findAddressCandidates"
PARCEL_URL = "http://parcels.test/query"
ZONING_URL = "http://zoning.test/query"

GEOCODE_PATTERN = re.compile(r"http://geocoder\.test/findAddressCandidates.*")
PARCEL_PATTERN = re.compile(r"http://parcels\.test/query.*")
ZONING_PATTERN = re.compile(r"http://zoning\.test/query.*")


def gis_config(**overrides: Any) -> GISConfig:
    """GIS config pointed at hosts that only exist in httpx_mock."""
    defaults: dict[str, Any] = {
        "geocode_url": GEOCODE_URL,
        "parcel_url": PARCEL_URL,
        "zoning_url": ZONING_URL,
    }
    defaults.update(overrides)
    return GISConfig(**defaults)


def install_user_token(app, user_id: str = "jane.smith") -> dict[str, str]:
    """Mint a token for ``user_id`` and return Authorization headers."""
    token = app.state.token_registry.issue(user_id)
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# ArcGIS payload builders
# ---------------------------------------------------------------------------


def square(x: float, y: float, size: float = 0.001) -> list[list[list[float]]]:
    return [[[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]]


def parcel(
    town: str = "Madawaska",
    map_bk_lot: str = "045",
    x: float = -68.32,
    y: float = 47.35,
    wkid: int = 4326,
    **attrs: Any,
) -> dict[str, Any]:
    attributes = {"TOWN": town, "MAP_BK_LOT": map_bk_lot}
    attributes.update(attrs)
    return {
        "attributes": attributes,
        "geometry": {"rings": square(x, y), "spatialReference": {"wkid": wkid}},
    }


def zone(code: str = "M-GN", x: float = -69.5, y: float = 45.9) -> dict[str, Any]:
    return {
        "attributes": {"ZONE": code, "ZONE_DESC": "General Management"},
        "geometry": {"rings": square(x, y, 0.01), "spatialReference": {"wkid": 4326}},
    }


def features(*items: dict[str, Any]) -> dict[str, Any]:
    return {"features": list(items)}


def candidate(x: float, y: float, score: float, address: str = "") -> dict[str, Any]:
    return {
        "candidates": [
            {"address": address, "location": {"x": x, "y": y}, "score": score}
        ]
    }
