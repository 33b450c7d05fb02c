"""Spherical Web Mercator <-> WGS84 conversions and polygon helpers.

All functions are pure. Coordinates are ``(x, y)`` pairs in the projected
case and ``(longitude, latitude)`` pairs in the geographic case.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from pydantic import BaseModel

# Half the equatorial circumference of the Web Mercator sphere, in meters.
ORIGIN_SHIFT = 20037508.34

Point = tuple[float, float]
Ring = list[Point]


class Envelope(BaseModel):
    """Axis-aligned bounding box."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    def as_query_geometry(self) -> str:
        """Comma-joined form accepted by ArcGIS ``geometry`` parameters."""
        return f"{self.xmin},{self.ymin},{self.xmax},{self.ymax}"


def projected_to_geographic(x: float, y: float) -> Point:
    """Inverse spherical Mercator: planar meters to (lon, lat) degrees."""
    lon = (x / ORIGIN_SHIFT) * 180.0
    lat = (y / ORIGIN_SHIFT) * 180.0
    lat = (180.0 / math.pi) * (2.0 * math.atan(math.exp(lat * math.pi / 180.0)) - math.pi / 2.0)
    return lon, lat


def geographic_to_projected(lon: float, lat: float) -> Point:
    """Forward spherical Mercator: (lon, lat) degrees to planar meters."""
    x = lon * ORIGIN_SHIFT / 180.0
    y = math.log(math.tan((90.0 + lat) * math.pi / 360.0)) / (math.pi / 180.0)
    y = y * ORIGIN_SHIFT / 180.0
    return x, y


def project_polygon(rings: Iterable[Sequence[Sequence[float]]]) -> list[Ring]:
    """Reproject every vertex of every ring to WGS84, keeping order and winding."""
    return [
        [projected_to_geographic(point[0], point[1]) for point in ring]
        for ring in rings
    ]


def envelope(polygons: Iterable[Iterable[Sequence[Sequence[float]]]]) -> Envelope | None:
    """Union bounding box of all vertices of all rings of all polygons.

    Returns None when there are no vertices at all.
    """
    xmin = ymin = math.inf
    xmax = ymax = -math.inf
    for rings in polygons:
        for ring in rings:
            for point in ring:
                x, y = point[0], point[1]
                xmin = min(xmin, x)
                ymin = min(ymin, y)
                xmax = max(xmax, x)
                ymax = max(ymax, y)
    if xmin == math.inf:
        return None
    return Envelope(xmin=xmin, ymin=ymin, xmax=xmax, ymax=ymax)
