"""Resolve a property's address or town to parcel polygons.

The pipeline runs one request's upstream calls strictly in order:

    1. geocode the search string (failure is tolerated)
    2. search parcels, one tier at a time: lot number, geocoded point, town
    3. if any parcel lies in unorganized territory, fetch LUPC zoning for
       the bounding box of all parcels (failure is tolerated)

Only a failed parcel query aborts the request; geocoding and zoning are
enrichment.
"""

from __future__ import annotations

import logging
import re
from typing import Any, TypeVar

from pydantic import ValidationError

from landledger.core.config import GISConfig
from landledger.gis.arcgis import ArcGISClient
from landledger.gis.disambiguation import Disambiguator
from landledger.gis.errors import (
    InsufficientAddressInformation,
    InvalidCoordinates,
    NoParcelDataFound,
    ParcelLookupError,
    UnexpectedResolutionError,
    UpstreamServiceUnavailable,
)
from landledger.gis.models import (
    GeocodeCandidate,
    LocatorInput,
    ParcelFeature,
    ResolutionMetadata,
    ResolutionResult,
    ZoningFeature,
)
from landledger.gis.projection import envelope, geographic_to_projected, project_polygon
from landledger.gis.tiers import SearchTier, next_tier

logger = logging.getLogger(__name__)

WEB_MERCATOR_WKIDS = frozenset({102100, 102113, 3857, 900913})

_LOT_NUMBER = re.compile(r"\d+")
_INTERSECTS = "esriSpatialRelIntersects"

_F = TypeVar("_F", ParcelFeature, ZoningFeature)


def build_search(locator: LocatorInput, default_state_name: str = "Maine") -> tuple[str, str]:
    """Return ``(search_address, town)`` for a locator.

    Raises:
        InsufficientAddressInformation: neither a full street address nor a
            place name is available.
    """
    if locator.has_full_address:
        search = f"{locator.street_address}, {locator.city}, {locator.state}"
        return search, str(locator.city)
    if locator.place_name:
        return f"{locator.place_name}, {default_state_name}", locator.place_name
    raise InsufficientAddressInformation()


def extract_lot_number(street_address: str | None) -> str | None:
    """First run of digits in an address that mentions a lot, else None."""
    if not street_address or "lot" not in street_address.lower():
        return None
    match = _LOT_NUMBER.search(street_address)
    return match.group(0) if match else None


def quote_sql(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class ParcelResolver:
    """Runs the geocode -> parcel tiers -> zoning overlay pipeline."""

    def __init__(
        self,
        client: ArcGISClient,
        config: GISConfig | None = None,
        disambiguator: Disambiguator | None = None,
    ) -> None:
        self._client = client
        self._config = config or client.config
        self._disambiguator = disambiguator or Disambiguator()

    # -- public API ----------------------------------------------------------

    async def resolve(self, locator: LocatorInput) -> ResolutionResult:
        """Resolve parcels for a street address or place name.

        Raises:
            InsufficientAddressInformation: nothing to search with.
            NoParcelDataFound: every parcel tier ran and found nothing.
            UpstreamServiceUnavailable: a parcel query itself failed.
            UnexpectedResolutionError: anything else went wrong.
        """
        search_address, town = build_search(locator, self._config.default_state_name)
        logger.info("Resolving parcels for %r (town=%r)", search_address, town)
        try:
            return await self._resolve(locator, search_address, town)
        except ParcelLookupError:
            raise
        except Exception as exc:
            logger.exception("Parcel resolution failed for %r", search_address)
            raise UnexpectedResolutionError() from exc

    async def resolve_by_coordinates(self, lat: float, lon: float) -> ResolutionResult:
        """Resolve the parcels under a WGS84 point."""
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            raise InvalidCoordinates()
        label = f"Coordinates: {lat}, {lon}"
        try:
            parcels = await self._query_parcels(
                {
                    "geometry": f"{lon},{lat}",
                    "geometryType": "esriGeometryPoint",
                    "inSR": self._config.coordinate_input_wkid,
                    "spatialRel": _INTERSECTS,
                    "maxRecordCount": self._config.coordinate_search_limit,
                },
                SearchTier.SPATIAL,
            )
            if not parcels:
                raise NoParcelDataFound(
                    details=(
                        "The coordinates may not be in Maine or the parcel data "
                        "may not be available for this area."
                    )
                )
            zoning = await self._zoning_overlay(parcels)
        except ParcelLookupError:
            raise
        except Exception as exc:
            logger.exception("Parcel resolution failed for %s", label)
            raise UnexpectedResolutionError() from exc

        metadata = ResolutionMetadata(
            geocoded=True,
            geocodeScore=100,
            geocodeAddress=label,
            parcelCount=len(parcels),
            lupcCount=len(zoning),
            searchAddress=label,
            town=parcels[0].attributes.town or "Unknown",
            searchTier=SearchTier.SPATIAL.value,
        )
        return ResolutionResult(parcels=parcels, zoning=zoning, metadata=metadata)

    # -- pipeline ------------------------------------------------------------

    async def _resolve(
        self, locator: LocatorInput, search_address: str, town: str
    ) -> ResolutionResult:
        geocode = await self._geocode(search_address)

        tier, parcels = await self._search_parcels(locator.street_address, town, geocode)
        if not parcels:
            logger.info("No parcels found for %r after all search tiers", search_address)
            raise NoParcelDataFound()

        zoning = await self._zoning_overlay(parcels)

        metadata = ResolutionMetadata(
            geocoded=geocode is not None,
            geocodeScore=geocode.score if geocode else None,
            geocodeAddress=geocode.matched_address if geocode else None,
            parcelCount=len(parcels),
            lupcCount=len(zoning),
            searchAddress=search_address,
            town=town,
            searchTier=tier.value,
        )
        return ResolutionResult(parcels=parcels, zoning=zoning, metadata=metadata)

    async def _geocode(self, search_address: str) -> GeocodeCandidate | None:
        result = await self._client.geocode(search_address)
        if not result.ok:
            logger.warning("Geocoding failed for %r: %s", search_address, result.error)
            return None
        if result.empty:
            logger.info("No geocoding candidates found for %r", search_address)
            return None
        candidate = result.items[0]
        logger.debug("Geocoded %r -> %s (score %.0f)", search_address, candidate, candidate.score)
        return candidate

    async def _search_parcels(
        self,
        street_address: str | None,
        town: str,
        geocode: GeocodeCandidate | None,
    ) -> tuple[SearchTier, list[ParcelFeature]]:
        tier = SearchTier.LOT
        found_in = SearchTier.EXHAUSTED
        parcels: list[ParcelFeature] = []
        while tier is not SearchTier.EXHAUSTED:
            params = self._tier_params(tier, street_address, town, geocode)
            parcels = []
            if params is not None:
                parcels = await self._query_parcels(params, tier)
                if tier is SearchTier.LOT:
                    parcels = self._disambiguator.narrow(parcels, town)
                logger.info("%s search found %d parcel(s)", tier.value, len(parcels))
            if parcels:
                found_in = tier
            tier = next_tier(tier, prior_result_empty=not parcels)
        return found_in, parcels

    def _tier_params(
        self,
        tier: SearchTier,
        street_address: str | None,
        town: str,
        geocode: GeocodeCandidate | None,
    ) -> dict[str, Any] | None:
        """Query parameters for a tier, or None when its preconditions fail."""
        cfg = self._config
        if tier is SearchTier.LOT:
            lot = extract_lot_number(street_address)
            if lot is None or not town:
                return None
            return {
                "where": f"TOWN = {quote_sql(town)} AND MAP_BK_LOT LIKE '%{lot}%'",
                "maxRecordCount": cfg.lot_search_limit,
            }
        if tier is SearchTier.SPATIAL:
            if geocode is None or geocode.score <= cfg.min_spatial_score:
                return None
            return {
                "geometry": f"{geocode.x},{geocode.y}",
                "geometryType": "esriGeometryPoint",
                "inSR": cfg.geocoder_wkid,
                "spatialRel": _INTERSECTS,
                "maxRecordCount": cfg.spatial_search_limit,
            }
        if tier is SearchTier.TOWN:
            if not town:
                return None
            return {
                "where": f"TOWN = {quote_sql(town)}",
                "orderByFields": "ACRES DESC",
                "maxRecordCount": cfg.town_search_limit,
            }
        return None

    async def _query_parcels(self, params: dict[str, Any], tier: SearchTier) -> list[ParcelFeature]:
        result = await self._client.query_features(
            self._config.parcel_url, params, timeout=self._config.parcel_timeout_seconds
        )
        if not result.ok:
            logger.error("Parcel %s query failed: %s", tier.value, result.error)
            raise UpstreamServiceUnavailable()
        try:
            return [_to_wgs84(ParcelFeature.model_validate(raw)) for raw in result.items]
        except ValidationError as exc:
            logger.error("Malformed parcel features from %s search: %s", tier.value, exc)
            raise UpstreamServiceUnavailable() from exc

    async def _zoning_overlay(self, parcels: list[ParcelFeature]) -> list[ZoningFeature]:
        if not any(self._is_unorganized(p) for p in parcels):
            return []
        box = envelope(p.geometry.rings for p in parcels)
        if box is None:
            return []

        in_wkid = self._config.zoning_input_wkid
        if in_wkid in WEB_MERCATOR_WKIDS:
            xmin, ymin = geographic_to_projected(box.xmin, box.ymin)
            xmax, ymax = geographic_to_projected(box.xmax, box.ymax)
            box = box.model_copy(update={"xmin": xmin, "ymin": ymin, "xmax": xmax, "ymax": ymax})

        result = await self._client.query_features(
            self._config.zoning_url,
            {
                "geometry": box.as_query_geometry(),
                "geometryType": "esriGeometryEnvelope",
                "inSR": in_wkid,
                "spatialRel": _INTERSECTS,
                "maxRecordCount": self._config.zoning_search_limit,
            },
            timeout=self._config.zoning_timeout_seconds,
        )
        if not result.ok:
            logger.warning("LUPC zoning query failed, continuing without it: %s", result.error)
            return []
        try:
            return [_to_wgs84(ZoningFeature.model_validate(raw)) for raw in result.items]
        except ValidationError as exc:
            logger.warning("Ignoring malformed LUPC zoning features: %s", exc)
            return []

    def _is_unorganized(self, parcel: ParcelFeature) -> bool:
        town = parcel.attributes.town
        if not town:
            return False
        return any(marker in town for marker in self._config.unorganized_markers)


def _to_wgs84(feature: _F) -> _F:
    """Reproject a feature whose layer ignored ``outSR`` and sent Web Mercator."""
    sr = feature.geometry.spatialReference
    if sr is None or sr.wkid not in WEB_MERCATOR_WKIDS:
        return feature
    feature.geometry.rings = [
        [list(point) for point in ring] for ring in project_polygon(feature.geometry.rings)
    ]
    sr.wkid = 4326
    return feature
