"""Narrowing rules for lot searches that match more than one parcel.

Lot numbers are matched with ``LIKE '%n%'``, so a search for lot 45 also
returns 145, 450 and so on. Some towns have known ambiguous datasets where a
street keyword in the parcel's location field picks out the right one.
Rules are loaded from YAML::

    rules:
      - field: PROP_LOC
        contains: winter
        towns: [Madawaska]
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from landledger.gis.models import ParcelFeature

logger = logging.getLogger(__name__)

_DEFAULT_RULES_PATH = Path(__file__).resolve().parents[3] / "config" / "parcel_disambiguation.yml"


class DisambiguationRule(BaseModel):
    """Prefer parcels whose ``field`` contains ``contains`` (case-insensitive).

    A rule without towns applies to every town.
    """

    field: str = "PROP_LOC"
    contains: str
    towns: list[str] = Field(default_factory=list)

    def applies_to(self, town: str | None) -> bool:
        if not self.towns:
            return True
        if town is None:
            return False
        return town.strip().lower() in {t.strip().lower() for t in self.towns}

    def matches(self, feature: ParcelFeature) -> bool:
        value = feature.attributes.text(self.field)
        if value is None:
            return False
        return self.contains.lower() in value.lower()


class Disambiguator:
    """Applies the configured rules to lot-search results."""

    def __init__(self, rules: Sequence[DisambiguationRule] | None = None) -> None:
        self._rules = list(rules or [])

    @property
    def rules(self) -> list[DisambiguationRule]:
        return list(self._rules)

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> Disambiguator:
        path = Path(path) if path else _DEFAULT_RULES_PATH
        if not path.exists():
            logger.info("No disambiguation rules at %s", path)
            return cls()
        with open(path) as fh:
            data = yaml.safe_load(fh) or {}
        rules = [DisambiguationRule(**entry) for entry in data.get("rules", [])]
        return cls(rules)

    def narrow(self, features: list[ParcelFeature], town: str | None) -> list[ParcelFeature]:
        """Return the single feature picked out by a rule, else ``features``.

        A rule only narrows when exactly one candidate matches it; rules are
        tried in order and the first that narrows wins.
        """
        if len(features) <= 1:
            return features
        for rule in self._rules:
            if not rule.applies_to(town):
                continue
            matched = [f for f in features if rule.matches(f)]
            if len(matched) == 1:
                logger.info(
                    "Narrowed %d lot candidates to %s using %s~%r",
                    len(features), matched[0].attributes.lot, rule.field, rule.contains,
                )
                return matched
        return features
