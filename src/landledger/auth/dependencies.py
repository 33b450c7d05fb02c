"""FastAPI dependency resolving the requesting user from a Bearer token."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from landledger.auth.tokens import TokenRegistry


def _current_user(request: Request) -> str:
    registry: TokenRegistry | None = getattr(request.app.state, "token_registry", None)
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    user_id = None
    if registry is not None and scheme == "Bearer" and token:
        user_id = registry.owner_of(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


CurrentUser = Depends(_current_user)
