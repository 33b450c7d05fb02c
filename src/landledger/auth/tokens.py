"""Bearer tokens mapped to the user who owns portfolio records."""

from __future__ import annotations

import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass
class _Grant:
    user_id: str
    expires_at: datetime | None


class TokenRegistry:
    """Resolves a bearer token to a user id.

    Every place, property, deal and person is stored under the user id a
    token resolves to, so the registry is the only thing deciding whose
    records a request sees. Configured tokens never expire; tokens minted
    with :meth:`issue` expire after ``expiry_minutes``.
    """

    def __init__(
        self,
        configured: Mapping[str, str] | None = None,
        expiry_minutes: int = 60,
    ) -> None:
        self._expiry = timedelta(minutes=expiry_minutes)
        self._grants: dict[str, _Grant] = {
            token: _Grant(user_id=user_id, expires_at=None)
            for token, user_id in (configured or {}).items()
        }

    def issue(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        self._grants[token] = _Grant(
            user_id=user_id, expires_at=datetime.now(timezone.utc) + self._expiry
        )
        return token

    def owner_of(self, token: str) -> str | None:
        grant = self._grants.get(token)
        if grant is None:
            return None
        if grant.expires_at is not None and datetime.now(timezone.utc) > grant.expires_at:
            del self._grants[token]
            return None
        return grant.user_id

    def revoke(self, token: str) -> bool:
        return self._grants.pop(token, None) is not None
