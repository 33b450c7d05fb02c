"""Tax calculation result models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TaxCalculation(BaseModel):
    """Property tax for one year from that year's mill rate and valuation."""

    year: int
    mill_rate: float
    assessed_value: float | None = None
    market_value: float | None = None
    assessed_tax: float | None = None
    market_tax: float | None = None
    notes: str | None = None


class TaxChange(BaseModel):
    change: float
    percent_change: float


class TaxTrend(BaseModel):
    """Change between the oldest and newest calculable years."""

    assessed: TaxChange | None = None
    market: TaxChange | None = None


class TaxSummary(BaseModel):
    property_id: str
    place_id: str | None = None
    current: TaxCalculation | None = None
    history: list[TaxCalculation]
    trend: TaxTrend


class PropertyTaxEstimate(BaseModel):
    """Estimated annual tax from a property's current assessment and its place's rate."""

    property_id: str
    name: str
    street_address: str | None = None
    city: str | None = None
    state: str | None = None
    place_id: str | None = None
    place_name: str | None = None
    mill_rate: float | None = None
    assessed_value: float | None = None
    market_value: float | None = None
    purchase_price: float | None = None
    state_tax_stamps: float | None = None
    property_tax_proration: float | None = None
    estimated_annual_taxes: float | None = None

    @property
    def has_tax_data(self) -> bool:
        return bool(
            self.estimated_annual_taxes or self.state_tax_stamps or self.property_tax_proration
        )


class TaxTotals(BaseModel):
    count: int = 0
    total_estimated_taxes: float = 0.0
    total_state_tax_stamps: float = 0.0
    total_property_tax_proration: float = 0.0

    def add(self, estimate: PropertyTaxEstimate) -> None:
        self.count += 1
        self.total_estimated_taxes += estimate.estimated_annual_taxes or 0.0
        self.total_state_tax_stamps += estimate.state_tax_stamps or 0.0
        self.total_property_tax_proration += estimate.property_tax_proration or 0.0


class PlaceTaxGroup(TaxTotals):
    mill_rate: float | None = None
    property_ids: list[str] = Field(default_factory=list)


class StateTaxGroup(TaxTotals):
    places: dict[str, PlaceTaxGroup] = Field(default_factory=dict)


class PortfolioTaxSummary(BaseModel):
    """Tax totals across all of a user's properties, grouped by state then place."""

    total_properties: int
    properties_with_tax_data: int
    total_estimated_annual_taxes: float
    total_state_tax_stamps: float
    total_property_tax_proration: float
    average_estimated_taxes: float
    properties_by_state: dict[str, StateTaxGroup]
    properties: list[PropertyTaxEstimate]
