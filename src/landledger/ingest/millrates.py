"""Mill-rate CSV ingestion into the state -> county -> town place graph.

Three source files are read:

* county unorganized-territory rates: ``year, <county>, <county>, ...``
* the municipality list: header-keyed rows (Municipality, Type, County, ...)
* municipal mill rates: a spreadsheet export with years on row 2,
  percentage changes on row 5 and data from row 7, grouped under county
  header rows.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from collections.abc import Iterator, Sequence
from pathlib import Path

from pydantic import BaseModel

from landledger.core.config import IngestConfig
from landledger.core.types import PlaceKind
from landledger.portfolio.models import MillRateEntry, Place
from landledger.portfolio.store import PortfolioStore

logger = logging.getLogger(__name__)

MAINE_COUNTIES: tuple[str, ...] = (
    "Androscoggin", "Aroostook", "Cumberland", "Franklin", "Hancock", "Kennebec",
    "Knox", "Lincoln", "Oxford", "Penobscot", "Piscataquis", "Sagadahoc",
    "Somerset", "Waldo", "Washington", "York",
)

# Column order of the county UT rate file after the year column.
UT_RATE_COUNTIES: tuple[str, ...] = (
    "Aroostook", "Franklin", "Hancock", "Kennebec", "Knox", "Lincoln",
    "Oxford", "Penobscot", "Piscataquis", "Somerset", "Waldo", "Washington",
)

_SUMMARY_ROW_MARKERS = (
    "State Weighted Average",
    "Equalized Tax Rate",
    "Homestead",
    "BETE",
    "TIF",
)
_PARENTHETICAL = re.compile(r"\s*\(.*\)")


class CountyRate(BaseModel):
    year: int
    county: str
    mill_rate: float


class Municipality(BaseModel):
    name: str
    type: str
    county: str
    population: int | None = None
    year_incorporated: int | None = None

    @property
    def kind(self) -> PlaceKind:
        if "City" in self.type:
            return PlaceKind.CITY
        # Plantations are treated as unorganized territory.
        if "Plantation" in self.type:
            return PlaceKind.UT
        return PlaceKind.TOWN


class MunicipalRate(BaseModel):
    municipality: str
    county: str
    year: int
    mill_rate: float
    percentage_change: float | None = None


class SeedReport(BaseModel):
    counties: int = 0
    county_rates: int = 0
    municipalities: int = 0
    municipal_rates: int = 0
    unmatched_municipal_rates: int = 0


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def _rows(text: str) -> list[list[str]]:
    return [row for row in csv.reader(io.StringIO(text.strip()))]


def _cell(row: Sequence[str], index: int) -> str:
    return row[index].strip() if index < len(row) else ""


def _to_float(value: str) -> float | None:
    try:
        return float(value.replace(",", ""))
    except ValueError:
        return None


def _to_int(value: str) -> int | None:
    number = _to_float(value)
    return int(number) if number is not None else None


def parse_county_ut_rates(text: str) -> list[CountyRate]:
    """Parse the county UT rate table; blank and non-numeric cells are skipped."""
    rates: list[CountyRate] = []
    for row in _rows(text)[1:]:
        year = _to_int(_cell(row, 0))
        if year is None:
            continue
        for offset, county in enumerate(UT_RATE_COUNTIES, start=1):
            rate = _to_float(_cell(row, offset))
            if rate is not None:
                rates.append(CountyRate(year=year, county=county, mill_rate=rate))
    return rates


def parse_municipalities(text: str) -> list[Municipality]:
    reader = csv.DictReader(io.StringIO(text.strip()))
    records: list[Municipality] = []
    for raw in reader:
        row = {(k or "").strip(): (v or "").strip() for k, v in raw.items()}
        name = row.get("Municipality", "")
        if not name:
            continue
        records.append(
            Municipality(
                name=name,
                type=row.get("Type", ""),
                county=_PARENTHETICAL.sub("", row.get("County", "")).strip(),
                population=_to_int(row.get("Population (2020)", "")),
                year_incorporated=_to_int(row.get("Year Incorporated", "")),
            )
        )
    return records


def parse_municipal_mill_rates(text: str) -> list[MunicipalRate]:
    """Parse the municipal mill-rate spreadsheet export."""
    rows = _rows(text)
    if len(rows) < 2:
        return []

    years: list[int] = []
    for cell in rows[1][2:]:
        year = _to_int(cell.strip())
        if year is not None:
            years.append(year)

    changes: dict[int, float] = {}
    if len(rows) > 4:
        for index, cell in enumerate(rows[4][2:2 + len(years)]):
            cell = cell.strip()
            if "%" in cell:
                value = _to_float(cell.replace("%", ""))
                if value is not None:
                    changes[years[index]] = value

    rates: list[MunicipalRate] = []
    county = ""
    for row in rows[6:]:
        first, name, first_rate = _cell(row, 0), _cell(row, 1), _cell(row, 2)
        if first and not name and not first_rate:
            county = first
            continue
        if not name or not first_rate:
            continue
        if any(marker in name for marker in _SUMMARY_ROW_MARKERS):
            continue
        for index, year in enumerate(years):
            rate = _to_float(_cell(row, index + 2))
            if rate is None:
                continue
            rates.append(
                MunicipalRate(
                    municipality=name,
                    county=county,
                    year=year,
                    mill_rate=rate,
                    percentage_change=changes.get(year),
                )
            )
    return rates


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


def _batched(items: Sequence[MillRateEntry], size: int) -> Iterator[Sequence[MillRateEntry]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def seed_place_graph(
    store: PortfolioStore,
    user_id: str,
    county_rates: Sequence[CountyRate],
    municipalities: Sequence[Municipality],
    municipal_rates: Sequence[MunicipalRate],
    *,
    batch_size: int = 1000,
) -> SeedReport:
    """Replace a user's Maine place graph and mill-rate history.

    Existing counties and municipalities (and their rates) are removed
    first, so re-running the seed does not duplicate anything.
    """
    report = SeedReport()
    removed = store.delete_places(
        user_id, (PlaceKind.COUNTY, PlaceKind.TOWN, PlaceKind.UT, PlaceKind.CITY)
    )
    if removed:
        logger.info("Removed %d existing places for %s", removed, user_id)

    state = store.find_place(user_id, "Maine", PlaceKind.STATE)
    if state is None:
        state = store.save_place(Place(user_id=user_id, name="Maine", kind=PlaceKind.STATE))

    counties: dict[str, Place] = {}
    for name in MAINE_COUNTIES:
        counties[name] = store.save_place(
            Place(user_id=user_id, name=name, kind=PlaceKind.COUNTY, parent_id=state.id)
        )
    report.counties = len(counties)

    county_entries = [
        MillRateEntry(
            place_id=counties[r.county].id,
            user_id=user_id,
            year=r.year,
            mill_rate=r.mill_rate,
            notes=f"{r.county} County mill rate for {r.year}",
        )
        for r in county_rates
        if r.county in counties
    ]
    report.county_rates = store.add_mill_rates(county_entries)

    by_key: dict[tuple[str, str], Place] = {}
    by_name: dict[str, Place] = {}
    for muni in municipalities:
        county = counties.get(muni.county)
        if county is None:
            logger.warning("Skipping %s: unknown county %r", muni.name, muni.county)
            continue
        place = store.save_place(
            Place(
                user_id=user_id,
                name=muni.name,
                kind=muni.kind,
                parent_id=county.id,
                population=muni.population,
                year_incorporated=muni.year_incorporated,
            )
        )
        by_key[(muni.name.lower(), muni.county.lower())] = place
        by_name.setdefault(muni.name.lower(), place)
    report.municipalities = len(by_key)

    entries: list[MillRateEntry] = []
    for rate in municipal_rates:
        name = rate.municipality.lower()
        place = by_key.get((name, rate.county.lower())) or by_name.get(name)
        if place is None:
            report.unmatched_municipal_rates += 1
            continue
        notes = (
            f"Percentage change: {rate.percentage_change}%"
            if rate.percentage_change is not None
            else "Municipal mill rate data"
        )
        entries.append(
            MillRateEntry(
                place_id=place.id,
                user_id=user_id,
                year=rate.year,
                mill_rate=rate.mill_rate,
                notes=notes,
                percentage_change=rate.percentage_change,
            )
        )

    for done, batch in enumerate(_batched(entries, batch_size), start=1):
        report.municipal_rates += store.add_mill_rates(batch)
        logger.info(
            "Processed %d/%d municipal mill rate records",
            min(done * batch_size, len(entries)), len(entries),
        )

    logger.info("Seed complete: %s", report.model_dump())
    return report


def seed_from_directory(
    store: PortfolioStore,
    user_id: str,
    config: IngestConfig | None = None,
    data_dir: str | Path | None = None,
) -> SeedReport:
    """Read the three CSV files from ``data_dir`` and seed the place graph."""
    if config is None:
        config = IngestConfig()
    base = Path(data_dir or config.data_dir)

    def read(name: str) -> str:
        return (base / name).read_text(encoding="utf-8")

    return seed_place_graph(
        store,
        user_id,
        parse_county_ut_rates(read(config.county_rates_file)),
        parse_municipalities(read(config.municipalities_file)),
        parse_municipal_mill_rates(read(config.municipal_rates_file)),
        batch_size=config.batch_size,
    )
