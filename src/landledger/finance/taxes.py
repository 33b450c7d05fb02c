"""Deterministic property tax engine driven by mill-rate history."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from landledger.finance.models import (
    PlaceTaxGroup,
    PortfolioTaxSummary,
    PropertyTaxEstimate,
    StateTaxGroup,
    TaxCalculation,
    TaxChange,
    TaxTrend,
)
from landledger.portfolio.models import MillRateEntry, Place, Property, ValuationEntry


def tax_for(value: float, mill_rate: float) -> float:
    """Tax owed on ``value`` at ``mill_rate`` dollars per $1,000."""
    return value * mill_rate / 1000.0


class TaxEngine:
    """Computes taxes for the years that have both a mill rate and a valuation."""

    def calculate_for_year(
        self,
        year: int,
        mill_rates: Sequence[MillRateEntry],
        valuations: Sequence[ValuationEntry],
    ) -> TaxCalculation | None:
        rate = next((m for m in mill_rates if m.year == year), None)
        valuation = next((v for v in valuations if v.year == year), None)
        if rate is None or valuation is None:
            return None

        calc = TaxCalculation(
            year=year,
            mill_rate=rate.mill_rate,
            assessed_value=valuation.assessed_value,
            market_value=valuation.market_value,
            notes=rate.notes or valuation.notes,
        )
        if valuation.assessed_value:
            calc.assessed_tax = tax_for(valuation.assessed_value, rate.mill_rate)
        if valuation.market_value:
            calc.market_tax = tax_for(valuation.market_value, rate.mill_rate)
        return calc

    def calculate_all_years(
        self,
        mill_rates: Sequence[MillRateEntry],
        valuations: Sequence[ValuationEntry],
    ) -> list[TaxCalculation]:
        """Calculations for every common year, newest first."""
        years = {m.year for m in mill_rates} & {v.year for v in valuations}
        results = []
        for year in sorted(years, reverse=True):
            calc = self.calculate_for_year(year, mill_rates, valuations)
            if calc is not None:
                results.append(calc)
        return results

    def current(
        self,
        mill_rates: Sequence[MillRateEntry],
        valuations: Sequence[ValuationEntry],
    ) -> TaxCalculation | None:
        calcs = self.calculate_all_years(mill_rates, valuations)
        return calcs[0] if calcs else None

    def trend(self, calculations: Sequence[TaxCalculation]) -> TaxTrend:
        """Change from oldest to newest; ``calculations`` must be newest first."""
        assessed = [c.assessed_tax for c in calculations if c.assessed_tax is not None]
        market = [c.market_tax for c in calculations if c.market_tax is not None]
        return TaxTrend(assessed=_change(assessed), market=_change(market))

    def estimate(self, prop: Property, place: Place | None) -> PropertyTaxEstimate:
        mill_rate = place.mill_rate if place else None
        estimated = None
        if prop.assessed_value and mill_rate:
            estimated = tax_for(prop.assessed_value, mill_rate)
        return PropertyTaxEstimate(
            property_id=prop.id,
            name=prop.name,
            street_address=prop.street_address,
            city=prop.city,
            state=prop.state,
            place_id=place.id if place else None,
            place_name=place.name if place else None,
            mill_rate=mill_rate,
            assessed_value=prop.assessed_value,
            market_value=prop.market_value,
            purchase_price=prop.purchase_price,
            state_tax_stamps=prop.state_tax_stamps,
            property_tax_proration=prop.property_tax_proration,
            estimated_annual_taxes=estimated,
        )

    def portfolio_summary(
        self, properties: Sequence[Property], places: Mapping[str, Place]
    ) -> PortfolioTaxSummary:
        """Estimated taxes for every property plus totals by state and place.

        ``places`` maps place id to place for the properties' places.
        """
        estimates: list[PropertyTaxEstimate] = []
        by_state: dict[str, StateTaxGroup] = {}
        for prop in properties:
            place = places.get(prop.place_id) if prop.place_id else None
            estimate = self.estimate(prop, place)
            estimates.append(estimate)

            state_name = prop.state or (place.state if place else None) or "Unknown"
            place_name = (place.name if place else None) or prop.city or "Unknown Place"
            state_group = by_state.setdefault(state_name, StateTaxGroup())
            place_group = state_group.places.setdefault(
                place_name, PlaceTaxGroup(mill_rate=estimate.mill_rate)
            )
            state_group.add(estimate)
            place_group.add(estimate)
            place_group.property_ids.append(prop.id)

        with_data = [e for e in estimates if e.has_tax_data]
        total_estimated = sum(e.estimated_annual_taxes or 0.0 for e in estimates)
        return PortfolioTaxSummary(
            total_properties=len(estimates),
            properties_with_tax_data=len(with_data),
            total_estimated_annual_taxes=total_estimated,
            total_state_tax_stamps=sum(e.state_tax_stamps or 0.0 for e in estimates),
            total_property_tax_proration=sum(
                e.property_tax_proration or 0.0 for e in estimates
            ),
            average_estimated_taxes=total_estimated / len(with_data) if with_data else 0.0,
            properties_by_state=by_state,
            properties=estimates,
        )


def _change(newest_first: list[float]) -> TaxChange | None:
    if len(newest_first) < 2:
        return None
    first, last = newest_first[-1], newest_first[0]
    change = last - first
    percent = (change / first) * 100 if first else 0.0
    return TaxChange(change=change, percent_change=percent)
