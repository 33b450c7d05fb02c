"""LandLedger: parcel mapping and municipal tax service for a property portfolio."""

__version__ = "0.1.0"
