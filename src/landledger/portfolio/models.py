"""Portfolio data models: places, properties, deals, people and their tax history."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from pydantic import BaseModel, Field

from landledger.core.types import DealRole, DealStage, DealStatus, PlaceKind


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Place(BaseModel):
    """A municipal jurisdiction: state, county, town, city or unorganized territory."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    name: str
    kind: PlaceKind = PlaceKind.TOWN
    parent_id: str | None = None
    state: str = "ME"
    description: str | None = None
    mill_rate: float | None = None
    population: int | None = None
    year_incorporated: int | None = None
    tax_due_month: int | None = Field(default=None, ge=1, le=12)
    tax_due_day: int | None = Field(default=None, ge=1, le=31)
    tax_notes: str | None = None
    created_at: datetime = Field(default_factory=_now)


class Property(BaseModel):
    """A property owned by a user, optionally linked to the place it lies in."""

    id: str = Field(default_factory=_new_id)
    user_id: str
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
    # Mirrors the newest valuation entry.
    assessed_value: float | None = None
    market_value: float | None = None
    last_assessment_date: date | None = None
    original_deal_id: str | None = None
    created_at: datetime = Field(default_factory=_now)


class MillRateEntry(BaseModel):
    """Mill rate (dollars of tax per $1,000 of value) for a place and year."""

    id: str = Field(default_factory=_new_id)
    place_id: str
    user_id: str
    year: int = Field(ge=1900, le=2100)
    mill_rate: float = Field(ge=0)
    notes: str | None = None
    percentage_change: float | None = None


class ValuationEntry(BaseModel):
    """Assessed and/or market value of a property for a year."""

    id: str = Field(default_factory=_new_id)
    property_id: str
    year: int = Field(ge=1900, le=2100)
    assessed_value: float | None = Field(default=None, ge=0)
    market_value: float | None = Field(default=None, ge=0)
    assessment_date: date | None = None
    notes: str | None = None


class TaxPayment(BaseModel):
    """A property tax payment; one per property and year."""

    id: str = Field(default_factory=_new_id)
    property_id: str
    user_id: str
    year: int = Field(ge=1900, le=2100)
    amount: float = Field(ge=0)
    payment_date: datetime
    notes: str | None = None


class Person(BaseModel):
    """A seller, agent or title company; names are unique per user."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    role: str | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=_now)


class ClosingCosts(BaseModel):
    title_settlement_fee: float | None = Field(default=None, ge=0)
    title_examination: float | None = Field(default=None, ge=0)
    owners_policy_premium: float | None = Field(default=None, ge=0)
    recording_fees_deed: float | None = Field(default=None, ge=0)
    state_tax_stamps: float | None = Field(default=None, ge=0)
    e_recording_fee: float | None = Field(default=None, ge=0)
    real_estate_commission: float | None = Field(default=None, ge=0)

    @property
    def total(self) -> float:
        return sum(v for v in self.model_dump().values() if v is not None)


class Deal(BaseModel):
    """A prospective acquisition moving through the pipeline.

    A deal in the ``WON`` stage can be promoted once into a :class:`Property`;
    after that it records the property id and can no longer be deleted.
    """

    id: str = Field(default_factory=_new_id)
    user_id: str
    name: str = Field(min_length=1)
    description: str | None = None
    stage: DealStage = DealStage.LEAD
    status: DealStatus = DealStatus.ACTIVE
    target_closing_date: date | None = None
    notes: str | None = None

    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    place_id: str | None = None
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
    closing_costs: ClosingCosts = Field(default_factory=ClosingCosts)

    # Person id for each role filled on this deal.
    parties: dict[DealRole, str] = Field(default_factory=dict)

    promoted_property_id: str | None = None
    promoted_at: datetime | None = None
    created_at: datetime = Field(default_factory=_now)

    @property
    def promoted(self) -> bool:
        return self.promoted_property_id is not None
