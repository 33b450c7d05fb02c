"""Deal pipeline endpoints, including promotion of won deals to properties."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from landledger.auth.dependencies import CurrentUser
from landledger.core.types import DealRole, DealStage, DealStatus, PlaceKind
from landledger.portfolio.models import ClosingCosts, Deal
from landledger.portfolio.pipeline import DealPipeline, PromotionError
from landledger.portfolio.store import PortfolioStore, RecordInUseError

router = APIRouter()

_PARTY_FIELDS = {role.value: role for role in DealRole}
_COST_FIELDS = set(ClosingCosts.model_fields)
_LOCATION_FIELDS = {"county", "place_type"}


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class DealUpdateRequest(BaseModel):
    """Deal fields as the pipeline form sends them; parties are given by name."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    stage: DealStage | None = None
    status: DealStatus | None = None
    target_closing_date: date | None = None
    notes: str | None = None

    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    county: str | None = None
    place_type: Literal[PlaceKind.TOWN, PlaceKind.UT, PlaceKind.CITY] | None = None
    acres: float | None = Field(default=None, ge=0)
    zoning: str | None = None

    asking_price: float | None = Field(default=None, ge=0)
    offer_price: float | None = Field(default=None, ge=0)
    earnest_money: float | None = Field(default=None, ge=0)
    estimated_closing_costs: float | None = Field(default=None, ge=0)
    purchase_price: float | None = Field(default=None, ge=0)
    closing_date: date | None = None
    financing_terms: str | None = None
    financing_type: str | None = None

    title_settlement_fee: float | None = Field(default=None, ge=0)
    title_examination: float | None = Field(default=None, ge=0)
    owners_policy_premium: float | None = Field(default=None, ge=0)
    recording_fees_deed: float | None = Field(default=None, ge=0)
    state_tax_stamps: float | None = Field(default=None, ge=0)
    e_recording_fee: float | None = Field(default=None, ge=0)
    real_estate_commission: float | None = Field(default=None, ge=0)

    seller: str | None = None
    seller_agent: str | None = None
    buyer_agent: str | None = None
    title_company: str | None = None

    def split(self) -> tuple[dict[str, Any], dict[str, Any], dict[DealRole, str | None]]:
        """Return ``(deal_fields, closing_costs, parties)`` for the fields that were sent."""
        sent = self.model_dump(exclude_unset=True)
        parties = {_PARTY_FIELDS[k]: sent.pop(k) for k in list(sent) if k in _PARTY_FIELDS}
        costs = {k: sent.pop(k) for k in list(sent) if k in _COST_FIELDS}
        for key in _LOCATION_FIELDS:
            sent.pop(key, None)
        return sent, costs, parties


class DealCreateRequest(DealUpdateRequest):
    name: str = Field(min_length=1)
    stage: DealStage = DealStage.LEAD
    status: DealStatus = DealStatus.ACTIVE


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_store(request: Request) -> PortfolioStore:
    store = getattr(request.app.state, "portfolio_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Portfolio store not available")
    return store


def _get_pipeline(request: Request) -> DealPipeline:
    pipeline = getattr(request.app.state, "deal_pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Deal pipeline not available")
    return pipeline


def _get_owned_deal(store: PortfolioStore, deal_id: str, user_id: str) -> Deal:
    deal = store.get_deal(deal_id, user_id)
    if deal is None:
        raise HTTPException(status_code=404, detail="Deal not found")
    return deal


def _deal_view(store: PortfolioStore, deal: Deal) -> dict[str, Any]:
    """A deal with its parties and place expanded."""
    people = {}
    for role, person_id in deal.parties.items():
        person = store.get_person(person_id)
        if person is not None:
            people[role.value] = {"id": person.id, "name": person.name}
    place = store.get_place(deal.place_id) if deal.place_id else None
    return {
        **deal.model_dump(mode="json"),
        "closing_costs_total": deal.closing_costs.total,
        "people": people,
        "place": {"id": place.id, "name": place.name, "kind": place.kind.value} if place else None,
    }


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/api/deals")
async def list_deals(request: Request, user_id: str = CurrentUser) -> list[dict[str, Any]]:
    store = _get_store(request)
    return [_deal_view(store, d) for d in store.list_deals(user_id)]


@router.post("/api/deals", status_code=201)
async def create_deal(
    body: DealCreateRequest, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    """Create a deal, creating named parties and the deal's place as needed."""
    store = _get_store(request)
    pipeline = _get_pipeline(request)
    fields, costs, parties = body.split()
    fields.update(name=body.name, stage=body.stage, status=body.status)
    deal = Deal(user_id=user_id, closing_costs=ClosingCosts(**costs), **fields)
    pipeline.save(deal, parties, body.county, body.place_type)
    return _deal_view(store, deal)


@router.get("/api/deals/{deal_id}")
async def get_deal(deal_id: str, request: Request, user_id: str = CurrentUser) -> dict[str, Any]:
    store = _get_store(request)
    return _deal_view(store, _get_owned_deal(store, deal_id, user_id))


@router.put("/api/deals/{deal_id}")
async def update_deal(
    deal_id: str, body: DealUpdateRequest, request: Request, user_id: str = CurrentUser
) -> dict[str, Any]:
    """Change the fields present in the body, moving the deal between stages as sent."""
    store = _get_store(request)
    pipeline = _get_pipeline(request)
    deal = _get_owned_deal(store, deal_id, user_id)
    fields, costs, parties = body.split()
    updated = deal.model_copy(
        update={**fields, "closing_costs": deal.closing_costs.model_copy(update=costs)}
    )
    pipeline.save(updated, parties, body.county, body.place_type)
    return _deal_view(store, updated)


@router.delete("/api/deals/{deal_id}")
async def delete_deal(deal_id: str, request: Request, user_id: str = CurrentUser) -> dict[str, Any]:
    store = _get_store(request)
    _get_owned_deal(store, deal_id, user_id)
    try:
        store.delete_deal(deal_id)
    except RecordInUseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"deleted": True, "id": deal_id}


@router.post("/api/deals/{deal_id}/promote", status_code=201)
async def promote_deal(deal_id: str, request: Request, user_id: str = CurrentUser) -> dict[str, Any]:
    """Create a property from a won deal and link the two."""
    store = _get_store(request)
    pipeline = _get_pipeline(request)
    deal = _get_owned_deal(store, deal_id, user_id)
    try:
        deal, prop = pipeline.promote(deal)
    except PromotionError as e:
        raise HTTPException(status_code=400, detail={"error": e.message, "details": e.details})
    return {
        "deal": _deal_view(store, deal),
        "property": prop.model_dump(mode="json"),
        "message": "Deal successfully promoted to property",
    }
