"""One-shot data ingestion utilities."""

from landledger.ingest.millrates import SeedReport, seed_from_directory, seed_place_graph

__all__ = ["SeedReport", "seed_from_directory", "seed_place_graph"]
