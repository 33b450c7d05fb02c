"""GIS data models for parcel resolution."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from landledger.core.types import FeatureSource


class LocatorInput(BaseModel):
    """What is known about where a property is.

    Either a full street address (street, city and state) or a place name
    must be present for resolution to start.
    """

    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    place_name: str | None = None

    @property
    def has_full_address(self) -> bool:
        return bool(self.street_address and self.city and self.state)


class GeocodeCandidate(BaseModel):
    """Best candidate returned by the address locator."""

    x: float
    y: float
    matched_address: str = ""
    score: float = 0.0


class SpatialReference(BaseModel):
    model_config = ConfigDict(extra="allow")

    wkid: int | None = None


class PolygonGeometry(BaseModel):
    """Polygon as ArcGIS rings; the first ring is the outer boundary."""

    rings: list[list[list[float]]] = Field(default_factory=list)
    spatialReference: SpatialReference | None = None


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


class ParcelAttributes(BaseModel):
    """Parcel layer fields, kept exactly as the layer sent them.

    Layers are inconsistent about types (``ACRES`` may arrive as ``"N/A"``,
    ``MAP_BK_LOT`` as a number), so nothing here is coerced or validated.
    The pipeline reads only ``TOWN``, ``MAP_BK_LOT`` and ``PROP_LOC``, as
    text, through :attr:`town`, :attr:`lot` and :attr:`location`.
    """

    model_config = ConfigDict(extra="allow")

    OBJECTID: Any = None
    MAP_LOT: Any = None
    MAP_BK_LOT: Any = None
    TOWN: Any = None
    OWNER: Any = None
    ADDRESS: Any = None
    PROP_LOC: Any = None
    ACRES: Any = None
    LAND_VALUE: Any = None
    BUILDING_VALUE: Any = None
    TOTAL_VALUE: Any = None

    @property
    def town(self) -> str | None:
        return _text(self.TOWN)

    @property
    def lot(self) -> str | None:
        return _text(self.MAP_BK_LOT)

    @property
    def location(self) -> str | None:
        return _text(self.PROP_LOC)

    def text(self, field: str) -> str | None:
        """A known or residual field as text, None when absent."""
        value = getattr(self, field, None)
        if value is None and self.model_extra:
            value = self.model_extra.get(field)
        return _text(value)


class ZoningAttributes(BaseModel):
    """LUPC zoning fields plus the residual source fields, passed through as sent."""

    model_config = ConfigDict(extra="allow")

    OBJECTID: Any = None
    ZONE: Any = None
    ZONE_DESC: Any = None


class _PolygonFeature(BaseModel):
    geometry: PolygonGeometry = Field(default_factory=PolygonGeometry)

    @field_validator("geometry", mode="before")
    @classmethod
    def _null_geometry(cls, value: Any) -> Any:
        return {} if value is None else value


class ParcelFeature(_PolygonFeature):
    attributes: ParcelAttributes = Field(default_factory=ParcelAttributes)

    def to_geojson(self) -> dict[str, Any]:
        attrs = self.attributes
        properties: dict[str, Any] = {
            "mapLot": attrs.MAP_LOT,
            "town": attrs.TOWN,
            "owner": attrs.OWNER,
            "address": attrs.ADDRESS,
            "acres": attrs.ACRES,
            "landValue": attrs.LAND_VALUE,
            "buildingValue": attrs.BUILDING_VALUE,
            "totalValue": attrs.TOTAL_VALUE,
        }
        properties.update(attrs.model_dump(exclude_unset=True))
        properties["source"] = FeatureSource.PARCEL.value
        return _polygon_feature(properties, self.geometry)


class ZoningFeature(_PolygonFeature):
    attributes: ZoningAttributes = Field(default_factory=ZoningAttributes)

    def to_geojson(self) -> dict[str, Any]:
        attrs = self.attributes
        properties: dict[str, Any] = {
            "zone": attrs.ZONE,
            "zoneDescription": attrs.ZONE_DESC,
        }
        properties.update(attrs.model_dump(exclude_unset=True))
        properties["source"] = FeatureSource.LUPC.value
        return _polygon_feature(properties, self.geometry)


def _polygon_feature(properties: dict[str, Any], geometry: PolygonGeometry) -> dict[str, Any]:
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {"type": "Polygon", "coordinates": geometry.rings},
    }


class ResolutionMetadata(BaseModel):
    geocoded: bool = False
    geocodeScore: float | None = None
    geocodeAddress: str | None = None
    parcelCount: int = 0
    lupcCount: int = 0
    searchAddress: str = ""
    town: str | None = None
    searchTier: str | None = None


class ResolutionResult(BaseModel):
    """Parcels, optional zoning overlay, and how they were found."""

    parcels: list[ParcelFeature] = Field(default_factory=list)
    zoning: list[ZoningFeature] = Field(default_factory=list)
    metadata: ResolutionMetadata = Field(default_factory=ResolutionMetadata)

    def to_geojson(self) -> dict[str, Any]:
        features = [p.to_geojson() for p in self.parcels]
        features.extend(z.to_geojson() for z in self.zoning)
        return {"type": "FeatureCollection", "features": features}

    def to_response(self) -> dict[str, Any]:
        return {
            "success": True,
            "geojson": self.to_geojson(),
            "metadata": self.metadata.model_dump(mode="json"),
        }
