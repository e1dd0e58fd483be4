"""
Identity field catalog.

Maps each monitored event field to a trust score and a category label.
The category only namespaces cache keys; the score decides how confident
a cache hit on that field is.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from services.incident_enrichment.errors import ConfigurationError

DEFAULT_FIELD_SCORES: Dict[str, int] = {
    "lan_ip": 100,
    "src_ip": 100,
    "src": 100,
    "wan_ip": 100,
    "dst": 100,
    "dst_ip": 100,
    "lan_port": 30,
    "wan_port": 30,
    "src_port": 30,
    "dst_port": 30,
}

DEFAULT_FIELD_MAP: Dict[str, str] = {
    "lan_ip": "ip",
    "src_ip": "ip",
    "src": "ip",
    "wan_ip": "ip",
    "dst_ip": "ip",
    "dst": "ip",
    "lan_port": "port",
    "wan_port": "port",
    "src_port": "port",
    "dst_port": "port",
}


@dataclass(frozen=True)
class FieldSpec:
    """Score and cache-key category for one identity field."""

    score: int = 0
    category: str = ""


_UNKNOWN_FIELD = FieldSpec()


class FieldCatalog:
    """Static field name -> ``FieldSpec`` lookup."""

    def __init__(self, specs: Mapping[str, FieldSpec]):
        self._specs: Dict[str, FieldSpec] = dict(specs)

    @classmethod
    def from_maps(
        cls,
        field_scores: Optional[Mapping[str, int]] = None,
        field_map: Optional[Mapping[str, str]] = None,
    ) -> "FieldCatalog":
        """Build a catalog from score and category overrides.

        Each override map replaces its built-in default entirely when it is
        non-empty; an empty or missing map keeps the default. Scores and
        categories are overridden independently.

        Raises:
            ConfigurationError: if a score is not a non-negative integer.
        """
        scores = dict(field_scores) if field_scores else dict(DEFAULT_FIELD_SCORES)
        categories = dict(field_map) if field_map else dict(DEFAULT_FIELD_MAP)

        specs: Dict[str, FieldSpec] = {}
        for name in list(scores) + [n for n in categories if n not in scores]:
            score = scores.get(name, 0)
            if isinstance(score, bool) or not isinstance(score, int) or score < 0:
                raise ConfigurationError(
                    f"Score for field {name!r} must be a non-negative integer, got {score!r}"
                )
            category = categories.get(name, "")
            if not isinstance(category, str):
                raise ConfigurationError(
                    f"Category for field {name!r} must be a string, got {category!r}"
                )
            specs[name] = FieldSpec(score=score, category=category)
        return cls(specs)

    def spec_of(self, field_name: str) -> FieldSpec:
        return self._specs.get(field_name, _UNKNOWN_FIELD)

    def score_of(self, field_name: str) -> int:
        """Trust score of *field_name*, 0 when unconfigured."""
        return self.spec_of(field_name).score

    def category_of(self, field_name: str) -> str:
        """Cache-key category of *field_name*, empty when unconfigured."""
        return self.spec_of(field_name).category

    def __contains__(self, field_name: str) -> bool:
        return field_name in self._specs

    def __len__(self) -> int:
        return len(self._specs)
