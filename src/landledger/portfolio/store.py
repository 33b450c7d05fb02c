"""In-memory store for the portfolio: places, properties, deals, people and tax history."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from landledger.core.types import DealRole, PlaceKind
from landledger.gis.models import LocatorInput
from landledger.portfolio.models import (
    Deal,
    MillRateEntry,
    Person,
    Place,
    Property,
    TaxPayment,
    ValuationEntry,
)


class DuplicateEntryError(ValueError):
    """Raised when a record for the same key already exists."""


class RecordInUseError(ValueError):
    """Raised when deleting a record that other records still depend on."""


class PortfolioStore:
    """In-memory dict store, suitable for single-instance deployment.

    Every read that takes a ``user_id`` only returns records owned by that
    user, so callers get ``None`` for other users' records.
    """

    def __init__(self) -> None:
        self._places: dict[str, Place] = {}
        self._properties: dict[str, Property] = {}
        self._mill_rates: dict[str, dict[int, MillRateEntry]] = {}
        self._valuations: dict[str, dict[int, ValuationEntry]] = {}
        self._tax_payments: dict[str, TaxPayment] = {}
        self._people: dict[str, Person] = {}
        self._deals: dict[str, Deal] = {}

    # -- Places --

    def save_place(self, place: Place) -> Place:
        self._places[place.id] = place
        return place

    def get_place(self, place_id: str, user_id: str | None = None) -> Place | None:
        place = self._places.get(place_id)
        if place is None or (user_id is not None and place.user_id != user_id):
            return None
        return place

    def find_place(
        self,
        user_id: str,
        name: str,
        kind: PlaceKind | None = None,
        parent_id: str | None = None,
    ) -> Place | None:
        wanted = name.strip().lower()
        for place in self._places.values():
            if place.user_id != user_id or place.name.lower() != wanted:
                continue
            if kind is not None and place.kind != kind:
                continue
            if parent_id is not None and place.parent_id != parent_id:
                continue
            return place
        return None

    def list_places(self, user_id: str, kind: PlaceKind | None = None) -> list[Place]:
        places = [
            p for p in self._places.values()
            if p.user_id == user_id and (kind is None or p.kind == kind)
        ]
        return sorted(places, key=lambda p: p.name)

    def children(self, place_id: str) -> list[Place]:
        return sorted(
            (p for p in self._places.values() if p.parent_id == place_id),
            key=lambda p: p.name,
        )

    def delete_places(self, user_id: str, kinds: Iterable[PlaceKind]) -> int:
        """Delete a user's places of the given kinds along with their mill rates."""
        kinds = set(kinds)
        doomed = [
            pid for pid, p in self._places.items()
            if p.user_id == user_id and p.kind in kinds
        ]
        for pid in doomed:
            del self._places[pid]
            self._mill_rates.pop(pid, None)
        return len(doomed)

    def delete_place(self, place_id: str) -> None:
        """Delete a place and its mill-rate history.

        Child places and deals that pointed at it are detached.

        Raises:
            RecordInUseError: a property still lies in the place.
        """
        if any(p.place_id == place_id for p in self._properties.values()):
            raise RecordInUseError(
                "Cannot delete a place that has properties; remove or reassign them first"
            )
        self._places.pop(place_id, None)
        self._mill_rates.pop(place_id, None)
        for child in self._places.values():
            if child.parent_id == place_id:
                child.parent_id = None
        for deal in self._deals.values():
            if deal.place_id == place_id:
                deal.place_id = None

    # -- Mill rates --

    def add_mill_rate(self, entry: MillRateEntry) -> MillRateEntry:
        """Record a mill rate; the place's current rate follows the latest year."""
        by_year = self._mill_rates.setdefault(entry.place_id, {})
        if entry.year in by_year:
            raise DuplicateEntryError(f"Mill rate for {entry.year} already exists")
        by_year[entry.year] = entry
        self._refresh_current_rate(entry.place_id)
        return entry

    def add_mill_rates(self, entries: Iterable[MillRateEntry]) -> int:
        """Bulk insert, skipping years a place already has. Returns rows added."""
        added = 0
        touched: set[str] = set()
        for entry in entries:
            by_year = self._mill_rates.setdefault(entry.place_id, {})
            if entry.year in by_year:
                continue
            by_year[entry.year] = entry
            touched.add(entry.place_id)
            added += 1
        for place_id in touched:
            self._refresh_current_rate(place_id)
        return added

    def mill_rates(self, place_id: str) -> list[MillRateEntry]:
        """Mill-rate history for a place, newest year first."""
        by_year = self._mill_rates.get(place_id, {})
        return [by_year[y] for y in sorted(by_year, reverse=True)]

    def update_mill_rate(
        self, place_id: str, year: int, mill_rate: float, notes: str | None = None
    ) -> MillRateEntry | None:
        entry = self._mill_rates.get(place_id, {}).get(year)
        if entry is None:
            return None
        entry.mill_rate = mill_rate
        entry.notes = notes
        self._refresh_current_rate(place_id)
        return entry

    def user_mill_rates(self, user_id: str) -> list[tuple[Place, MillRateEntry]]:
        """Every mill rate on a user's places, newest year then highest rate first."""
        rows: list[tuple[Place, MillRateEntry]] = []
        for place_id, by_year in self._mill_rates.items():
            place = self.get_place(place_id, user_id)
            if place is not None:
                rows.extend((place, entry) for entry in by_year.values())
        return sorted(rows, key=lambda row: (-row[1].year, -row[1].mill_rate))

    def remove_mill_rate(self, place_id: str, year: int) -> bool:
        by_year = self._mill_rates.get(place_id, {})
        if year not in by_year:
            return False
        del by_year[year]
        self._refresh_current_rate(place_id)
        return True

    def _refresh_current_rate(self, place_id: str) -> None:
        place = self._places.get(place_id)
        if place is None:
            return
        history = self.mill_rates(place_id)
        place.mill_rate = history[0].mill_rate if history else None

    # -- Properties --

    def save_property(self, prop: Property) -> Property:
        self._properties[prop.id] = prop
        return prop

    def get_property(self, property_id: str, user_id: str | None = None) -> Property | None:
        prop = self._properties.get(property_id)
        if prop is None or (user_id is not None and prop.user_id != user_id):
            return None
        return prop

    def list_properties(self, user_id: str) -> list[Property]:
        return [p for p in self._properties.values() if p.user_id == user_id]

    def delete_property(self, property_id: str) -> None:
        """Delete a property with its valuations and tax payments."""
        self._properties.pop(property_id, None)
        self._valuations.pop(property_id, None)
        for payment_id in [
            pid for pid, p in self._tax_payments.items() if p.property_id == property_id
        ]:
            del self._tax_payments[payment_id]

    def locator_for(self, prop: Property) -> LocatorInput:
        """Build the parcel-search input for a property."""
        place = self.get_place(prop.place_id) if prop.place_id else None
        return LocatorInput(
            street_address=prop.street_address,
            city=prop.city,
            state=prop.state,
            place_name=place.name if place else None,
        )

    # -- Valuations --

    def add_valuation(self, entry: ValuationEntry) -> ValuationEntry:
        """Record a valuation; the property's current values follow the latest year."""
        by_year = self._valuations.setdefault(entry.property_id, {})
        if entry.year in by_year:
            raise DuplicateEntryError(f"Valuation for {entry.year} already exists")
        by_year[entry.year] = entry
        self._refresh_current_valuation(entry.property_id)
        return entry

    def valuations(self, property_id: str) -> list[ValuationEntry]:
        by_year = self._valuations.get(property_id, {})
        return [by_year[y] for y in sorted(by_year, reverse=True)]

    def update_valuation(
        self, property_id: str, year: int, changes: dict[str, Any]
    ) -> ValuationEntry | None:
        by_year = self._valuations.get(property_id, {})
        entry = by_year.get(year)
        if entry is None:
            return None
        by_year[year] = entry = entry.model_copy(update=changes)
        self._refresh_current_valuation(property_id)
        return entry

    def remove_valuation(self, property_id: str, year: int) -> bool:
        by_year = self._valuations.get(property_id, {})
        if year not in by_year:
            return False
        del by_year[year]
        self._refresh_current_valuation(property_id)
        return True

    def _refresh_current_valuation(self, property_id: str) -> None:
        prop = self._properties.get(property_id)
        if prop is None:
            return
        history = self.valuations(property_id)
        latest = history[0] if history else None
        prop.assessed_value = latest.assessed_value if latest else None
        prop.market_value = latest.market_value if latest else None
        prop.last_assessment_date = latest.assessment_date if latest else None

    # -- Tax payments --

    def add_tax_payment(self, payment: TaxPayment) -> TaxPayment:
        if self._payment_for_year(payment.property_id, payment.year) is not None:
            raise DuplicateEntryError(f"Tax payment for {payment.year} already exists")
        self._tax_payments[payment.id] = payment
        return payment

    def tax_payments(self, property_id: str) -> list[TaxPayment]:
        """Payments for a property, newest year first."""
        payments = [p for p in self._tax_payments.values() if p.property_id == property_id]
        return sorted(payments, key=lambda p: p.year, reverse=True)

    def get_tax_payment(self, payment_id: str, property_id: str) -> TaxPayment | None:
        payment = self._tax_payments.get(payment_id)
        if payment is None or payment.property_id != property_id:
            return None
        return payment

    def update_tax_payment(self, payment: TaxPayment, changes: dict[str, Any]) -> TaxPayment:
        year = changes.get("year")
        if year is not None and year != payment.year:
            if self._payment_for_year(payment.property_id, year) is not None:
                raise DuplicateEntryError(f"Tax payment for {year} already exists")
        updated = payment.model_copy(update=changes)
        self._tax_payments[payment.id] = updated
        return updated

    def remove_tax_payment(self, payment_id: str) -> bool:
        return self._tax_payments.pop(payment_id, None) is not None

    def _payment_for_year(self, property_id: str, year: int) -> TaxPayment | None:
        for payment in self._tax_payments.values():
            if payment.property_id == property_id and payment.year == year:
                return payment
        return None

    # -- People --

    def add_person(self, person: Person) -> Person:
        if self.find_person(person.user_id, person.name) is not None:
            raise DuplicateEntryError("A person with this name already exists")
        self._people[person.id] = person
        return person

    def find_person(self, user_id: str, name: str) -> Person | None:
        for person in self._people.values():
            if person.user_id == user_id and person.name == name:
                return person
        return None

    def upsert_person(self, user_id: str, name: str) -> Person:
        """The user's person with this name, created when missing."""
        person = self.find_person(user_id, name)
        if person is None:
            person = self.add_person(Person(user_id=user_id, name=name))
        return person

    def get_person(self, person_id: str, user_id: str | None = None) -> Person | None:
        person = self._people.get(person_id)
        if person is None or (user_id is not None and person.user_id != user_id):
            return None
        return person

    def list_people(self, user_id: str) -> list[Person]:
        """A user's people, most recently added first."""
        return [p for p in reversed(self._people.values()) if p.user_id == user_id]

    def update_person(self, person: Person, changes: dict[str, Any]) -> Person:
        name = changes.get("name")
        if name is not None and name != person.name:
            if self.find_person(person.user_id, name) is not None:
                raise DuplicateEntryError("A person with this name already exists")
        updated = person.model_copy(update=changes)
        self._people[person.id] = updated
        return updated

    def delete_person(self, person_id: str) -> None:
        """Delete a person and clear the roles they filled on deals."""
        self._people.pop(person_id, None)
        for deal in self._deals.values():
            deal.parties = {r: pid for r, pid in deal.parties.items() if pid != person_id}

    # -- Deals --

    def save_deal(self, deal: Deal) -> Deal:
        self._deals[deal.id] = deal
        return deal

    def get_deal(self, deal_id: str, user_id: str | None = None) -> Deal | None:
        deal = self._deals.get(deal_id)
        if deal is None or (user_id is not None and deal.user_id != user_id):
            return None
        return deal

    def list_deals(self, user_id: str) -> list[Deal]:
        """A user's deals, most recently added first."""
        return [d for d in reversed(self._deals.values()) if d.user_id == user_id]

    def delete_deal(self, deal_id: str) -> None:
        """Raises RecordInUseError for a deal already promoted to a property."""
        deal = self._deals.get(deal_id)
        if deal is not None and deal.promoted:
            raise RecordInUseError("Cannot delete a deal that has been promoted to a property")
        self._deals.pop(deal_id, None)

    def deals_for_person(self, person_id: str) -> list[tuple[DealRole, Deal]]:
        return [
            (role, deal)
            for deal in self._deals.values()
            for role, pid in deal.parties.items()
            if pid == person_id
        ]
