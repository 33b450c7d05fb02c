"""Tax payment records, the portfolio tax summary and mill-rate analytics."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from landledger.auth.dependencies import CurrentUser
from landledger.core.types import PlaceKind
from landledger.portfolio.models import Property, TaxPayment
from landledger.portfolio.store import DuplicateEntryError, PortfolioStore

router = APIRouter()


def _check_year(year: int | None) -> int | None:
    if year is not None and year > datetime.now().year + 10:
        raise ValueError("year is more than ten years ahead")
    return year


class TaxPaymentCreateRequest(BaseModel):
    year: int = Field(ge=1900)
    amount: float = Field(ge=0)
    payment_date: datetime
    notes: str | None = None

    @field_validator("year")
    @classmethod
    def year_not_far_ahead(cls, year: int | None) -> int | None:
        return _check_year(year)


class TaxPaymentUpdateRequest(BaseModel):
    year: int | None = Field(default=None, ge=1900)
    amount: float | None = Field(default=None, ge=0)
    payment_date: datetime | None = None
    notes: str | None = None

    @field_validator("year")
    @classmethod
    def year_not_far_ahead(cls, year: int | None) -> int | None:
        return _check_year(year)


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


def _get_payment(store: PortfolioStore, payment_id: str, property_id: str) -> TaxPayment:
    payment = store.get_tax_payment(payment_id, property_id)
    if payment is None:
        raise HTTPException(status_code=404, detail="Tax payment not found")
    return payment


# ---------------------------------------------------------------------------
# Tax payments
# ---------------------------------------------------------------------------


@router.get("/api/properties/{property_id}/tax-payments")
async def list_tax_payments(
    property_id: str, request: Request, user_id: str = CurrentUser
) -> list[dict[str, Any]]:
    store = _get_store(request)
    _get_owned_property(store, property_id, user_id)
    return [p.model_dump(mode="json") for p in store.tax_payments(property_id)]


@router.post("/api/properties/{property_id}/tax-payments", status_code=201)
async def create_tax_payment(
    property_id: str,
    body: TaxPaymentCreateRequest,
    request: Request,
    user_id: str = CurrentUser,
) -> dict[str, Any]:
    store = _get_store(request)
    _get_owned_property(store, property_id, user_id)
    payment = TaxPayment(property_id=property_id, user_id=user_id, **body.model_dump())
    try:
        store.add_tax_payment(payment)
    except DuplicateEntryError as e:
        raise HTTPException(status_code=409, detail=f"{e}. Use PUT to update it.")
    return payment.model_dump(mode="json")


@router.put("/api/properties/{property_id}/tax-payments/{payment_id}")
async def update_tax_payment(
    property_id: str,
    payment_id: str,
    body: TaxPaymentUpdateRequest,
    request: Request,
    user_id: str = CurrentUser,
) -> dict[str, Any]:
    store = _get_store(request)
    _get_owned_property(store, property_id, user_id)
    payment = _get_payment(store, payment_id, property_id)
    try:
        updated = store.update_tax_payment(payment, body.model_dump(exclude_unset=True))
    except DuplicateEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return updated.model_dump(mode="json")


@router.delete("/api/properties/{property_id}/tax-payments/{payment_id}")
async def delete_tax_payment(
    property_id: str, payment_id: str, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    store = _get_store(request)
    _get_owned_property(store, property_id, user_id)
    _get_payment(store, payment_id, property_id)
    store.remove_tax_payment(payment_id)
    return {"deleted": True, "id": payment_id}


# ---------------------------------------------------------------------------
# Portfolio views
# ---------------------------------------------------------------------------


@router.get("/api/taxes")
async def portfolio_taxes(request: Request, user_id: str = CurrentUser) -> dict[str, Any]:
    """Estimated annual taxes across the caller's properties, newest property first."""
    store = _get_store(request)
    properties = list(reversed(store.list_properties(user_id)))
    places = {p.id: p for p in store.list_places(user_id)}
    summary = request.app.state.tax_engine.portfolio_summary(properties, places)
    return summary.model_dump(mode="json")


@router.get("/api/analytics/mill-rates")
async def county_mill_rates(request: Request, user_id: str = CurrentUser) -> list[dict[str, Any]]:
    """County-level mill-rate history for charting, newest year first."""
    store = _get_store(request)
    return [
        {
            "year": entry.year,
            "county": place.name,
            "mill_rate": entry.mill_rate,
            "place_name": place.name,
            "place_kind": place.kind.value,
        }
        for place, entry in store.user_mill_rates(user_id)
        if place.kind is PlaceKind.COUNTY
    ]
