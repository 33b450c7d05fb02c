"""Places, properties, deals, people and their tax history."""

from landledger.portfolio.models import (
    Deal,
    MillRateEntry,
    Person,
    Place,
    Property,
    TaxPayment,
    ValuationEntry,
)
from landledger.portfolio.pipeline import DealPipeline, PromotionError
from landledger.portfolio.store import DuplicateEntryError, PortfolioStore, RecordInUseError

__all__ = [
    "Deal",
    "DealPipeline",
    "DuplicateEntryError",
    "MillRateEntry",
    "Person",
    "Place",
    "PortfolioStore",
    "PromotionError",
    "Property",
    "RecordInUseError",
    "TaxPayment",
    "ValuationEntry",
]
