"""Errors raised by parcel resolution.

Each error carries the HTTP status it maps to and the two user-facing
strings returned to the caller: a short ``error`` and a ``details`` hint
telling the front end whether to fix the input, retry later, or accept
that the data does not exist.
"""

from __future__ import annotations


class ParcelLookupError(Exception):
    """Base class for parcel resolution failures."""

    status_code: int = 500
    error: str = "An unexpected error occurred while retrieving parcel data"
    details: str = "Please try again later or contact support if the issue persists."

    def __init__(self, error: str | None = None, details: str | None = None) -> None:
        if error is not None:
            self.error = error
        if details is not None:
            self.details = details
        super().__init__(self.error)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "details": self.details}


class InsufficientAddressInformation(ParcelLookupError):
    status_code = 400
    error = "Insufficient address information for parcel lookup"
    details = "Add a street address with city and state, or link the property to a place."


class NoParcelDataFound(ParcelLookupError):
    status_code = 404
    error = "No parcel data found for this location"
    details = (
        "The address may not be in Maine or the parcel data may not be "
        "available for this area."
    )


class UpstreamServiceUnavailable(ParcelLookupError):
    status_code = 503
    error = (
        "Unable to retrieve parcel data at this time. The parcel service "
        "may be temporarily unavailable."
    )
    details = "Please try again later or contact support if the issue persists."


class UnexpectedResolutionError(ParcelLookupError):
    status_code = 500


class InvalidCoordinates(ParcelLookupError):
    status_code = 400
    error = "Latitude and longitude are required"
    details = "Provide lat in [-90, 90] and lng in [-180, 180] as decimal degrees."
