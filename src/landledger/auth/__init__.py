"""Bearer-token ownership for the API."""

from landledger.auth.dependencies import CurrentUser
from landledger.auth.tokens import TokenRegistry

__all__ = ["CurrentUser", "TokenRegistry"]
