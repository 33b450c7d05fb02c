"""FastAPI application for LandLedger.

Serves the parcel map endpoints, the place and property registry, tax
calculations and health checks.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from landledger import __version__
from landledger.auth.tokens import TokenRegistry
from landledger.core.config import Settings
from landledger.core.logconfig import configure_logging
from landledger.finance.taxes import TaxEngine
from landledger.gis.arcgis import ArcGISClient
from landledger.gis.disambiguation import Disambiguator
from landledger.gis.resolver import ParcelResolver
from landledger.portfolio.pipeline import DealPipeline
from landledger.portfolio.store import PortfolioStore
from landledger.web.deals_router import router as deals_router
from landledger.web.parcel_router import router as parcel_router
from landledger.web.people_router import router as people_router
from landledger.web.places_router import router as places_router
from landledger.web.properties_router import router as properties_router
from landledger.web.taxes_router import router as taxes_router

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str = __version__


def create_app(
    settings: Settings | None = None,
    parcel_resolver: ParcelResolver | None = None,
    portfolio_store: PortfolioStore | None = None,
    token_registry: TokenRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with mock dependencies.

    Args:
        settings: Application settings. Defaults to Settings().
        parcel_resolver: Optional pre-built resolver. When omitted, one is
            built on a shared ArcGIS client that is closed on shutdown.
        portfolio_store: Optional pre-populated store.
        token_registry: Optional token registry. Defaults to one holding
            the configured API tokens.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()
    configure_logging(settings)

    arcgis_client: ArcGISClient | None = None
    if parcel_resolver is None:
        arcgis_client = ArcGISClient(settings.gis)
        parcel_resolver = ParcelResolver(
            arcgis_client,
            config=settings.gis,
            disambiguator=Disambiguator.from_yaml(settings.gis.disambiguation_path),
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if arcgis_client is not None:
            await arcgis_client.close()
            logger.info("ArcGIS client closed")

    app = FastAPI(
        title="LandLedger",
        description="Parcel resolution and municipal tax tracking for Maine properties",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if token_registry is None:
        token_registry = TokenRegistry(
            settings.auth.api_tokens,
            expiry_minutes=settings.auth.token_expiry_minutes,
        )
    if portfolio_store is None:
        portfolio_store = PortfolioStore()

    # Store on app state for access in route handlers
    app.state.settings = settings
    app.state.parcel_resolver = parcel_resolver
    app.state.portfolio_store = portfolio_store
    app.state.deal_pipeline = DealPipeline(portfolio_store)
    app.state.token_registry = token_registry
    app.state.tax_engine = TaxEngine()

    app.include_router(parcel_router)
    app.include_router(places_router)
    app.include_router(properties_router)
    app.include_router(taxes_router)
    app.include_router(people_router)
    app.include_router(deals_router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", service="landledger")

    return app
