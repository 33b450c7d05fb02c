"""Parcel map endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from landledger.auth.dependencies import CurrentUser
from landledger.gis.errors import InvalidCoordinates, ParcelLookupError
from landledger.gis.resolver import ParcelResolver

router = APIRouter()


def _get_resolver(request: Request) -> ParcelResolver:
    resolver = getattr(request.app.state, "parcel_resolver", None)
    if resolver is None:
        raise HTTPException(status_code=503, detail="Parcel resolver not available")
    return resolver


def _error_response(exc: ParcelLookupError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@router.get("/api/properties/{property_id}/parcel", response_model=None)
async def property_parcel(
    property_id: str, request: Request, user_id: str = CurrentUser
) -> dict[str, Any] | JSONResponse:
    """Parcel polygons (and LUPC zoning where relevant) for one of the caller's properties."""
    store = request.app.state.portfolio_store
    prop = store.get_property(property_id, user_id)
    if prop is None:
        return JSONResponse({"error": "Property not found"}, status_code=404)

    resolver = _get_resolver(request)
    try:
        result = await resolver.resolve(store.locator_for(prop))
    except ParcelLookupError as exc:
        return _error_response(exc)
    return result.to_response()


@router.get("/api/parcels/by-coordinates", response_model=None)
async def parcels_by_coordinates(
    request: Request,
    lat: float | None = None,
    lng: float | None = None,
    user_id: str = CurrentUser,
) -> dict[str, Any] | JSONResponse:
    """Parcels under a clicked map point."""
    if lat is None or lng is None:
        return _error_response(InvalidCoordinates())

    resolver = _get_resolver(request)
    try:
        result = await resolver.resolve_by_coordinates(lat, lng)
    except ParcelLookupError as exc:
        return _error_response(exc)
    return result.to_response()
