#!/usr/bin/env python3
"""Build the Maine place graph and mill-rate history from CSV exports.

Usage:
    python3 scripts/seed_mill_rates.py --data-dir data --user-id jane.smith

    # Write the seeded places and rates out as JSON:
    python3 scripts/seed_mill_rates.py --data-dir data --user-id jane.smith \\
        --output places.json

The data directory must contain the three files named in IngestConfig
(override with LANDLEDGER_INGEST_* environment variables):
    - maine_historic_ut_rates.csv
    - maine_municipalities.csv
    - maine_municipality_mill_rates.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from landledger.core.config import Settings
from landledger.core.logconfig import configure_logging
from landledger.ingest.millrates import seed_from_directory
from landledger.portfolio.store import PortfolioStore

logger = logging.getLogger("seed_mill_rates")


def dump_places(store: PortfolioStore, user_id: str) -> list[dict]:
    return [
        {
            **place.model_dump(mode="json"),
            "mill_rates": [m.model_dump(mode="json") for m in store.mill_rates(place.id)],
        }
        for place in store.list_places(user_id)
    ]


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Seed Maine places and mill-rate history from CSV files"
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding the CSV files (default: LANDLEDGER_INGEST_DATA_DIR or ./data)",
    )
    parser.add_argument("--user-id", required=True, help="Owner of the seeded places")
    parser.add_argument("--output", default=None, help="Write the seeded places to this JSON file")
    args = parser.parse_args()

    settings = Settings()
    configure_logging(settings)

    store = PortfolioStore()
    try:
        report = seed_from_directory(store, args.user_id, settings.ingest, args.data_dir)
    except FileNotFoundError as e:
        logger.error("Missing input file: %s", e.filename)
        sys.exit(1)

    print("Mill-rate seed")
    print(f"  Counties:                {report.counties}")
    print(f"  County UT rates:         {report.county_rates}")
    print(f"  Municipalities:          {report.municipalities}")
    print(f"  Municipal rates:         {report.municipal_rates}")
    print(f"  Unmatched rate records:  {report.unmatched_municipal_rates}")

    if args.output:
        path = Path(args.output)
        path.write_text(json.dumps(dump_places(store, args.user_id), indent=2))
        print(f"  Wrote {path}")


if __name__ == "__main__":
    main()
