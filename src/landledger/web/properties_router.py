"""Property, valuation and tax endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from landledger.auth.dependencies import CurrentUser
from landledger.finance.models import TaxSummary
from landledger.portfolio.models import Property, ValuationEntry
from landledger.portfolio.store import DuplicateEntryError, PortfolioStore

router = APIRouter()


class PropertyCreateRequest(BaseModel):
    name: str = ""
    description: str | None = None
    type: str | None = None
    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    place_id: str | None = None
    acres: float | None = Field(default=None, ge=0)
    zoning: str | None = None
    purchase_price: float | None = Field(default=None, ge=0)
    closing_date: date | None = None
    state_tax_stamps: float | None = Field(default=None, ge=0)
    property_tax_proration: float | None = None
    balloon_due_date: date | None = None


class ValuationCreateRequest(BaseModel):
    year: int = Field(ge=1900, le=2100)
    assessed_value: float | None = Field(default=None, ge=0)
    market_value: float | None = Field(default=None, ge=0)
    assessment_date: date | None = None
    notes: str | None = None


class ValuationUpdateRequest(BaseModel):
    assessed_value: float | None = Field(default=None, ge=0)
    market_value: float | None = Field(default=None, ge=0)
    assessment_date: date | None = None
    notes: str | None = None


def _get_store(request: Request) -> PortfolioStore:
    store = getattr(request.app.state, "portfolio_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Portfolio store not available")
    return store


def _get_owned_property(store: PortfolioStore, property_id: str, user_id: str) -> Property:
    prop = store.get_property(property_id, user_id)
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return prop


def _check_place(store: PortfolioStore, place_id: str | None, user_id: str) -> None:
    if place_id is not None and store.get_place(place_id, user_id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown place {place_id!r}")


@router.get("/api/properties")
async def list_properties(request: Request, user_id: str = CurrentUser) -> list[dict[str, Any]]:
    store = _get_store(request)
    return [p.model_dump(mode="json") for p in store.list_properties(user_id)]


@router.post("/api/properties", status_code=201)
async def create_property(
    body: PropertyCreateRequest, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    _check_place(store, body.place_id, user_id)
    prop = store.save_property(Property(user_id=user_id, **body.model_dump()))
    return prop.model_dump(mode="json")


@router.get("/api/properties/{property_id}")
async def get_property(
    property_id: str, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    prop = _get_owned_property(store, property_id, user_id)
    return {
        **prop.model_dump(mode="json"),
        "valuations": [v.model_dump(mode="json") for v in store.valuations(property_id)],
        "tax_payments": [p.model_dump(mode="json") for p in store.tax_payments(property_id)],
    }


@router.put("/api/properties/{property_id}")
async def update_property(
    property_id: str,
    body: PropertyCreateRequest,
    request: Request,
    user_id: str = CurrentUser,
) -> dict[str, Any]:
    """Change the fields present in the body; the rest are left as they are."""
    store = _get_store(request)
    prop = _get_owned_property(store, property_id, user_id)
    _check_place(store, body.place_id, user_id)
    updated = store.save_property(prop.model_copy(update=body.model_dump(exclude_unset=True)))
    return updated.model_dump(mode="json")


@router.delete("/api/properties/{property_id}")
async def delete_property(
    property_id: str, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    _get_owned_property(store, property_id, user_id)
    store.delete_property(property_id)
    return {"deleted": True, "id": property_id}


@router.post("/api/properties/{property_id}/valuations", status_code=201)
async def create_valuation(
    property_id: str,
    body: ValuationCreateRequest,
    request: Request,
    user_id: str = CurrentUser,
) -> dict[str, Any]:
    store = _get_store(request)
    _get_owned_property(store, property_id, user_id)
    entry = ValuationEntry(property_id=property_id, **body.model_dump())
    try:
        store.add_valuation(entry)
    except DuplicateEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return entry.model_dump(mode="json")


@router.put("/api/properties/{property_id}/valuations/{year}")
async def update_valuation(
    property_id: str,
    year: int,
    body: ValuationUpdateRequest,
    request: Request,
    user_id: str = CurrentUser,
) -> dict[str, Any]:
    store = _get_store(request)
    _get_owned_property(store, property_id, user_id)
    entry = store.update_valuation(property_id, year, body.model_dump(exclude_unset=True))
    if entry is None:
        raise HTTPException(status_code=404, detail="Valuation entry not found")
    return entry.model_dump(mode="json")


@router.delete("/api/properties/{property_id}/valuations/{year}")
async def delete_valuation(
    property_id: str, year: int, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    prop = _get_owned_property(store, property_id, user_id)
    if not store.remove_valuation(property_id, year):
        raise HTTPException(status_code=404, detail="Valuation entry not found")
    return {
        "deleted": True,
        "year": year,
        "assessed_value": prop.assessed_value,
        "market_value": prop.market_value,
    }


@router.get("/api/properties/{property_id}/taxes")
async def get_property_taxes(
    property_id: str, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    """Tax history for a property from its place's mill rates and its valuations."""
    store = _get_store(request)
    prop = _get_owned_property(store, property_id, user_id)
    tax_engine = request.app.state.tax_engine

    mill_rates = store.mill_rates(prop.place_id) if prop.place_id else []
    valuations = store.valuations(property_id)
    history = tax_engine.calculate_all_years(mill_rates, valuations)
    summary = TaxSummary(
        property_id=property_id,
        place_id=prop.place_id,
        current=history[0] if history else None,
        history=history,
        trend=tax_engine.trend(history),
    )
    return summary.model_dump(mode="json")
