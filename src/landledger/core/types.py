"""Core type definitions shared across LandLedger modules."""

from __future__ import annotations

from enum import StrEnum


class PlaceKind(StrEnum):
    """Kinds of municipal jurisdiction in the place graph."""

    STATE = "STATE"
    COUNTY = "COUNTY"
    TOWN = "TOWN"
    CITY = "CITY"
    UT = "UT"


class FeatureSource(StrEnum):
    """Discriminator for features in a parcel resolution result."""

    PARCEL = "PARCEL"
    LUPC = "LUPC"


class DealStage(StrEnum):
    """Pipeline stage of an acquisition deal."""

    LEAD = "LEAD"
    UNDER_CONTRACT = "UNDER_CONTRACT"
    DUE_DILIGENCE = "DUE_DILIGENCE"
    CLOSING = "CLOSING"
    WON = "WON"
    LOST = "LOST"


class DealStatus(StrEnum):
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    CANCELLED = "CANCELLED"


class DealRole(StrEnum):
    """The part a person plays in a deal."""

    SELLER = "seller"
    SELLER_AGENT = "seller_agent"
    BUYER_AGENT = "buyer_agent"
    TITLE_COMPANY = "title_company"
