"""
Score aggregation for observed identity fields.

A field scores its catalog trust score when its cache key already maps to
an incident, and 0 otherwise.  The resulting snapshot is taken once per
event, before any write, and every later decision reads from it.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from services.incident_enrichment.cache_keys import CacheKeyBuilder
from services.incident_enrichment.cache_store import GuardedCacheStore
from services.incident_enrichment.field_catalog import FieldCatalog

logger = logging.getLogger(__name__)


class FieldScores:
    """Per-field scores ordered by descending score, ties in input order."""

    def __init__(self, scores: List[Tuple[str, int]]):
        # sorted() is stable, so equal scores keep their input order
        self._ordered: List[Tuple[str, int]] = sorted(scores, key=lambda item: -item[1])
        self._by_field: Dict[str, int] = dict(self._ordered)

    @property
    def total(self) -> int:
        return sum(self._by_field.values())

    @property
    def top_field(self) -> Optional[str]:
        """Field with the highest score; first in input order on ties."""
        return self._ordered[0][0] if self._ordered else None

    def get(self, field_name: str, default: int = 0) -> int:
        return self._by_field.get(field_name, default)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._ordered)

    def __iter__(self):
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    def __repr__(self) -> str:
        return f"FieldScores({self._ordered!r})"


class ScoreAggregator:
    """Read-only scoring of observed fields against the cache."""

    def __init__(
        self,
        catalog: FieldCatalog,
        key_builder: CacheKeyBuilder,
        cache: GuardedCacheStore,
    ):
        self.catalog = catalog
        self.key_builder = key_builder
        self.cache = cache

    def score(self, observed_fields: Mapping[str, Any], prefix: str) -> FieldScores:
        """Score each observed field.

        Args:
            observed_fields: Field name -> value, in input order. ``None``
                values must already be filtered out.
            prefix: Tenant key prefix.

        Returns:
            FieldScores: ordered snapshot. A failed lookup scores 0 and does
            not stop the remaining fields from being scored.
        """
        scores: List[Tuple[str, int]] = []
        for field_name, value in observed_fields.items():
            key = self.key_builder.build_key(prefix, field_name, value)
            known = bool(self.cache.get(key))
            scores.append((field_name, self.catalog.score_of(field_name) if known else 0))

        field_scores = FieldScores(scores)
        logger.debug(
            "[INCIDENT-SCORE] prefix=%s total=%d scores=%s",
            prefix,
            field_scores.total,
            field_scores.as_dict(),
        )
        return field_scores
