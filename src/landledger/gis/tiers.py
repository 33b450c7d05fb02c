"""Parcel search tiers and the order they are tried in."""

from __future__ import annotations

from enum import StrEnum


class SearchTier(StrEnum):
    LOT = "lot"
    SPATIAL = "spatial"
    TOWN = "town"
    EXHAUSTED = "exhausted"


_FALLBACK: dict[SearchTier, SearchTier] = {
    SearchTier.LOT: SearchTier.SPATIAL,
    SearchTier.SPATIAL: SearchTier.TOWN,
    SearchTier.TOWN: SearchTier.EXHAUSTED,
    SearchTier.EXHAUSTED: SearchTier.EXHAUSTED,
}


def next_tier(tier: SearchTier, prior_result_empty: bool) -> SearchTier:
    """Return the tier to try after ``tier``.

    A tier that found parcels ends the search. A tier that found nothing
    (or was skipped) falls through to the next one.
    """
    if not prior_result_empty:
        return SearchTier.EXHAUSTED
    return _FALLBACK[tier]
