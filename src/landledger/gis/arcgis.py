"""Async client for the ArcGIS REST locator and feature-query services.

Every call is time-boxed and returns an :class:`UpstreamResult`, which keeps
"the call failed" apart from "the call worked and found nothing". Callers
decide which failures are fatal.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, Field, ValidationError

from landledger.core.config import GISConfig
from landledger.gis.models import GeocodeCandidate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpstreamResult(BaseModel, Generic[T]):
    """Outcome of one upstream call."""

    ok: bool
    items: list[T] = Field(default_factory=list)
    error: str | None = None

    @property
    def empty(self) -> bool:
        return not self.items

    @classmethod
    def success(cls, items: list[T]) -> UpstreamResult[T]:
        return cls(ok=True, items=items)

    @classmethod
    def failure(cls, error: str) -> UpstreamResult[T]:
        return cls(ok=False, error=error)


class ArcGISError(Exception):
    """Raised for transport failures and error payloads from ArcGIS."""


class ArcGISClient:
    """Talks to the address locator and the parcel and zoning layers."""

    def __init__(self, config: GISConfig, http: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            limits=httpx.Limits(
                max_connections=config.max_connections,
                max_keepalive_connections=config.max_keepalive_connections,
            ),
            headers={"Accept": "application/json", "User-Agent": "landledger/0.1"},
        )

    # -- public API ----------------------------------------------------------

    async def geocode(self, single_line: str) -> UpstreamResult[GeocodeCandidate]:
        params = {
            "f": "json",
            "SingleLine": single_line,
            "outFields": "Match_addr,Addr_type,Score",
            "maxLocations": "1",
        }
        try:
            data = await self._get_json(
                self.config.geocode_url, params, self.config.geocode_timeout_seconds
            )
            candidates = [
                GeocodeCandidate(
                    x=c["location"]["x"],
                    y=c["location"]["y"],
                    matched_address=c.get("address") or "",
                    score=c.get("score") or 0.0,
                )
                for c in data.get("candidates") or []
            ]
        except (ArcGISError, KeyError, TypeError, ValidationError) as exc:
            return UpstreamResult.failure(f"geocode failed: {exc}")
        return UpstreamResult.success(candidates)

    async def query_features(
        self,
        url: str,
        params: dict[str, Any],
        *,
        timeout: float,
    ) -> UpstreamResult[dict[str, Any]]:
        """Run a layer ``query`` and return the raw feature dicts."""
        query = {
            "f": "json",
            "where": "1=1",
            "outFields": "*",
            "returnGeometry": "true",
            "outSR": str(self.config.output_wkid),
        }
        query.update({k: str(v) for k, v in params.items()})
        try:
            data = await self._get_json(url, query, timeout)
        except ArcGISError as exc:
            return UpstreamResult.failure(str(exc))
        features = data.get("features")
        if features is None:
            return UpstreamResult.success([])
        if not isinstance(features, list):
            return UpstreamResult.failure(f"malformed features in response from {url}")
        return UpstreamResult.success(features)

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # -- internal ------------------------------------------------------------

    async def _get_json(self, url: str, params: dict[str, Any], timeout: float) -> dict[str, Any]:
        # httpx.Timeout bounds each phase; asyncio.timeout bounds the whole call.
        try:
            async with asyncio.timeout(timeout):
                resp = await self._http.get(url, params=params, timeout=httpx.Timeout(timeout))
            resp.raise_for_status()
            data = resp.json()
        except (httpx.TimeoutException, TimeoutError) as exc:
            raise ArcGISError(f"timed out after {timeout:g}s calling {url}") from exc
        except httpx.HTTPStatusError as exc:
            raise ArcGISError(f"{url} returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ArcGISError(f"transport error calling {url}: {exc}") from exc
        except ValueError as exc:
            raise ArcGISError(f"invalid JSON from {url}") from exc

        if not isinstance(data, dict):
            raise ArcGISError(f"unexpected payload from {url}")
        # ArcGIS reports query errors with HTTP 200 and an "error" object.
        if "error" in data:
            err = data["error"]
            if isinstance(err, dict):
                raise ArcGISError(
                    f"{url} reported error {err.get('code', '?')}: {err.get('message', '')}"
                )
            raise ArcGISError(f"{url} reported error: {err}")
        return data
