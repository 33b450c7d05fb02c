"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class GISConfig(BaseSettings):
    """ArcGIS service endpoints and call limits for parcel resolution."""

    model_config = {"env_prefix": "LANDLEDGER_GIS_"}

    geocode_url: str = (
        "https://arcgisserver.maine.gov/arcgis/rest/services/"
        "NG911_Rds_Locator/GeocodeServer/findAddressCandidates"
    )
    parcel_url: str = (
        "https://gis.maine.gov/mapservices/rest/services/"
        "escb/escbContributorFeature/FeatureServer/21/query"
    )
    zoning_url: str = (
        "https://gis.maine.gov/mapservices/rest/services/"
        "lupc/LUPC_Zoning_Data_Offline/FeatureServer/0/query"
    )

    geocode_timeout_seconds: float = 10.0
    parcel_timeout_seconds: float = 15.0
    zoning_timeout_seconds: float = 10.0
    max_connections: int = 20
    max_keepalive_connections: int = 10

    default_state_name: str = "Maine"
    geocoder_wkid: int = 26919
    output_wkid: int = 4326
    # Spatial reference of lat/lng points passed to the by-coordinates lookup.
    coordinate_input_wkid: int = 4326
    # Spatial reference the zoning envelope is sent in; 3857 reprojects it.
    zoning_input_wkid: int = 4326
    min_spatial_score: float = 80.0

    lot_search_limit: int = 10
    spatial_search_limit: int = 10
    town_search_limit: int = 50
    coordinate_search_limit: int = 50
    zoning_search_limit: int = 10

    unorganized_markers: list[str] = Field(
        default_factory=lambda: ["UT", "Unorganized", "Plantation"]
    )
    # Unset means the rules file shipped in config/.
    disambiguation_path: str | None = None


class AuthConfig(BaseSettings):
    """Bearer tokens and the user ids whose records they open."""

    model_config = {"env_prefix": "LANDLEDGER_AUTH_"}

    # JSON object of token -> user id, e.g. '{"s3cret": "jane.smith"}'.
    api_tokens: dict[str, str] = Field(default_factory=dict)
    token_expiry_minutes: int = 60


class IngestConfig(BaseSettings):
    """Mill-rate CSV ingestion configuration."""

    model_config = {"env_prefix": "LANDLEDGER_INGEST_"}

    data_dir: str = "data"
    county_rates_file: str = "maine_historic_ut_rates.csv"
    municipalities_file: str = "maine_municipalities.csv"
    municipal_rates_file: str = "maine_municipality_mill_rates.csv"
    batch_size: int = 1000


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "LANDLEDGER_"}

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    gis: GISConfig = Field(default_factory=GISConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
