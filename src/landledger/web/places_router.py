"""Places and mill-rate history endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from landledger.auth.dependencies import CurrentUser
from landledger.core.types import PlaceKind
from landledger.portfolio.models import MillRateEntry, Place
from landledger.portfolio.store import DuplicateEntryError, PortfolioStore, RecordInUseError

router = APIRouter()


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class PlaceCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    kind: PlaceKind = PlaceKind.TOWN
    parent_id: str | None = None
    state: str = "ME"
    population: int | None = None


class PlaceUpdateRequest(BaseModel):
    name: str = Field(min_length=1)
    state: str = "ME"
    description: str | None = None
    population: int | None = None
    year_incorporated: int | None = None
    tax_due_month: int | None = Field(default=None, ge=1, le=12)
    tax_due_day: int | None = Field(default=None, ge=1, le=31)
    tax_notes: str | None = None


class MillRateCreateRequest(BaseModel):
    year: int = Field(ge=2000, le=2100)
    mill_rate: float = Field(ge=0)
    notes: str | None = None


class MillRateUpdateRequest(BaseModel):
    mill_rate: float = Field(ge=0)
    notes: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_store(request: Request) -> PortfolioStore:
    store = getattr(request.app.state, "portfolio_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Portfolio store not available")
    return store


def _get_owned_place(store: PortfolioStore, place_id: str, user_id: str) -> Place:
    place = store.get_place(place_id, user_id)
    if place is None:
        raise HTTPException(status_code=404, detail="Place not found")
    return place


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/api/places")
async def list_places(
    request: Request, kind: PlaceKind | None = None, user_id: str = CurrentUser
) -> list[dict[str, Any]]:
    store = _get_store(request)
    return [p.model_dump(mode="json") for p in store.list_places(user_id, kind)]


@router.post("/api/places", status_code=201)
async def create_place(
    body: PlaceCreateRequest, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    if body.parent_id is not None:
        _get_owned_place(store, body.parent_id, user_id)
    place = store.save_place(Place(user_id=user_id, **body.model_dump()))
    return place.model_dump(mode="json")


@router.get("/api/places/{place_id}")
async def get_place(place_id: str, request: Request, user_id: str = CurrentUser) -> dict[str, Any]:
    """A place with its child places and mill-rate history."""
    store = _get_store(request)
    place = _get_owned_place(store, place_id, user_id)
    return {
        **place.model_dump(mode="json"),
        "children": [c.model_dump(mode="json") for c in store.children(place_id)],
        "mill_rates": [m.model_dump(mode="json") for m in store.mill_rates(place_id)],
        "property_count": sum(
            1 for p in store.list_properties(user_id) if p.place_id == place_id
        ),
    }


@router.put("/api/places/{place_id}")
async def update_place(
    place_id: str, body: PlaceUpdateRequest, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    place = _get_owned_place(store, place_id, user_id)
    clash = store.find_place(user_id, body.name, place.kind, place.parent_id)
    if clash is not None and clash.id != place_id:
        raise HTTPException(status_code=409, detail="A place with this name already exists here")
    updated = store.save_place(place.model_copy(update=body.model_dump(exclude_unset=True)))
    return updated.model_dump(mode="json")


@router.delete("/api/places/{place_id}")
async def delete_place(place_id: str, request: Request, user_id: str = CurrentUser) -> dict[str, Any]:
    store = _get_store(request)
    _get_owned_place(store, place_id, user_id)
    try:
        store.delete_place(place_id)
    except RecordInUseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"deleted": True, "id": place_id}


@router.get("/api/places/{place_id}/mill-rates")
async def list_mill_rates(
    place_id: str, request: Request, user_id: str = CurrentUser
) -> list[dict[str, Any]]:
    store = _get_store(request)
    _get_owned_place(store, place_id, user_id)
    return [m.model_dump(mode="json") for m in store.mill_rates(place_id)]


@router.post("/api/places/{place_id}/mill-rates", status_code=201)
async def create_mill_rate(
    place_id: str,
    body: MillRateCreateRequest,
    request: Request,
    user_id: str = CurrentUser,
) -> dict[str, Any]:
    """Add a year's mill rate; the place's current rate follows the latest year."""
    store = _get_store(request)
    _get_owned_place(store, place_id, user_id)
    entry = MillRateEntry(place_id=place_id, user_id=user_id, **body.model_dump())
    try:
        store.add_mill_rate(entry)
    except DuplicateEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return entry.model_dump(mode="json")


@router.put("/api/places/{place_id}/mill-rates/{year}")
async def update_mill_rate(
    place_id: str,
    year: int,
    body: MillRateUpdateRequest,
    request: Request,
    user_id: str = CurrentUser,
) -> dict[str, Any]:
    store = _get_store(request)
    place = _get_owned_place(store, place_id, user_id)
    entry = store.update_mill_rate(place_id, year, body.mill_rate, body.notes)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No mill rate for {year}")
    return {**entry.model_dump(mode="json"), "current_mill_rate": place.mill_rate}


@router.delete("/api/places/{place_id}/mill-rates/{year}")
async def delete_mill_rate(
    place_id: str, year: int, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    place = _get_owned_place(store, place_id, user_id)
    if not store.remove_mill_rate(place_id, year):
        raise HTTPException(status_code=404, detail=f"No mill rate for {year}")
    return {"deleted": True, "year": year, "current_mill_rate": place.mill_rate}
