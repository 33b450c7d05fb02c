"""Deal pipeline: creating deals with their parties and places, and promotion."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from landledger.core.types import DealRole, DealStage, PlaceKind
from landledger.portfolio.models import Deal, Place, Property
from landledger.portfolio.store import PortfolioStore

logger = logging.getLogger(__name__)


class PromotionError(ValueError):
    """A deal cannot be promoted to a property."""

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class DealPipeline:
    """Deal operations that touch people, places and properties as well as deals."""

    def __init__(self, store: PortfolioStore) -> None:
        self._store = store

    def place_for(
        self,
        user_id: str,
        city: str | None,
        state: str | None,
        county: str | None = None,
        kind: PlaceKind | None = None,
    ) -> Place | None:
        """Find or create the state, county and town places for an address.

        With city and state the state place always exists afterwards; the
        county place needs a county name. Returns the town place, or None
        when the county or the kind is missing.
        """
        city = (city or "").strip()
        state = (state or "").strip()
        county = (county or "").strip()
        if not city or not state:
            return None

        state_place = self._find_or_create(
            user_id, state, PlaceKind.STATE, None, state, f"{state} State"
        )
        if not county:
            return None
        county_place = self._find_or_create(
            user_id, county, PlaceKind.COUNTY, state_place.id, state, f"{county} County, {state}"
        )
        if kind is None:
            return None
        return self._find_or_create(
            user_id, city, kind, county_place.id, state, f"{city}, {county} County, {state}"
        )

    def _find_or_create(
        self,
        user_id: str,
        name: str,
        kind: PlaceKind,
        parent_id: str | None,
        state: str,
        description: str,
    ) -> Place:
        place = self._store.find_place(user_id, name, kind, parent_id)
        if place is None:
            place = self._store.save_place(
                Place(
                    user_id=user_id,
                    name=name,
                    kind=kind,
                    parent_id=parent_id,
                    state=state,
                    description=description,
                )
            )
        return place

    def assign_parties(self, deal: Deal, names: Mapping[DealRole, str | None]) -> None:
        """Point each named role at the user's person of that name, creating it if needed."""
        for role, name in names.items():
            if name:
                deal.parties[role] = self._store.upsert_person(deal.user_id, name).id

    def save(
        self,
        deal: Deal,
        parties: Mapping[DealRole, str | None],
        county: str | None = None,
        place_kind: PlaceKind | None = None,
    ) -> Deal:
        """Store a new or edited deal with its parties and place."""
        self.assign_parties(deal, parties)
        place = self.place_for(deal.user_id, deal.city, deal.state, county, place_kind)
        if place is not None:
            deal.place_id = place.id
        return self._store.save_deal(deal)

    def promote(self, deal: Deal) -> tuple[Deal, Property]:
        """Turn a won deal into a property.

        Raises:
            PromotionError: the deal was already promoted, is not ``WON``, or
                lacks the address fields a property needs.
        """
        if deal.promoted:
            raise PromotionError("Deal has already been promoted to a property")
        if deal.stage is not DealStage.WON:
            raise PromotionError("Only deals in WON stage can be promoted to properties")
        missing = [
            f"{label} is required for property creation"
            for label, value in (
                ("Street address", deal.street_address),
                ("City", deal.city),
                ("State", deal.state),
            )
            if not value
        ]
        if missing:
            raise PromotionError("Missing required information for property creation", missing)

        place_id = deal.place_id
        if place_id is None:
            place = self._store.save_place(
                Place(
                    user_id=deal.user_id,
                    name=str(deal.city),
                    kind=PlaceKind.TOWN,
                    state=str(deal.state),
                    description=f"{deal.city}, {deal.state}",
                )
            )
            place_id = place.id

        fields: dict[str, Any] = deal.model_dump(
            include={
                "name", "description", "street_address", "city", "state",
                "zip_code", "acres", "zoning",
            }
        )
        prop = self._store.save_property(
            Property(
                user_id=deal.user_id,
                place_id=place_id,
                balloon_due_date=deal.target_closing_date,
                type="Land",
                original_deal_id=deal.id,
                **fields,
            )
        )
        deal.promoted_property_id = prop.id
        deal.promoted_at = datetime.now(timezone.utc)
        logger.info("Promoted deal %s to property %s", deal.id, prop.id)
        return deal, prop
