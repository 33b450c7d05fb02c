"""Parcel resolution against the Maine ArcGIS services."""

from landledger.gis.arcgis import ArcGISClient, UpstreamResult
from landledger.gis.models import LocatorInput, ResolutionResult
from landledger.gis.resolver import ParcelResolver

__all__ = [
    "ArcGISClient",
    "LocatorInput",
    "ParcelResolver",
    "ResolutionResult",
    "UpstreamResult",
]
