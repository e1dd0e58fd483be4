"""
Severity normalisation and priority gating.

Each event source ranks severities on its own ordinal scale.  Scales are
plain data held in a registry keyed by source label, so supporting a new
source means registering a new table.
"""

import logging
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

UNKNOWN_PRIORITY = "unknown"

KNOWN_PRIORITIES = frozenset(
    {
        "critical",
        "high",
        "medium",
        "low",
        "none",
        "unknown",
        "info",
        "emergency",
        "alert",
        "error",
        "warning",
        "notice",
        "debug",
    }
)

# Intrusion detection ordinal scale, low -> critical
INTRUSION_SCALE: Dict[str, int] = {
    "info": 1,
    "unknown": 2,
    "none": 3,
    "low": 4,
    "medium": 5,
    "high": 6,
    "critical": 7,
}

# Syslog-style severity scale, debug -> emergency
VAULT_SCALE: Dict[str, int] = {
    "debug": 1,
    "info": 2,
    "notice": 3,
    "warning": 4,
    "error": 5,
    "critical": 6,
    "alert": 7,
    "emergency": 8,
}

BUILTIN_SCALES: Dict[str, Dict[str, int]] = {
    "Intrusion": INTRUSION_SCALE,
    "Vault": VAULT_SCALE,
}


def normalize_priority(value: Any) -> str:
    """Lower-case *value* and fold anything unrecognised to ``unknown``."""
    if value is None:
        return UNKNOWN_PRIORITY
    priority = str(value).strip().lower()
    if priority not in KNOWN_PRIORITIES:
        return UNKNOWN_PRIORITY
    return priority


class SeverityScaleRegistry:
    """Named ordinal scales (severity label -> integer rank)."""

    def __init__(self, scales: Optional[Mapping[str, Mapping[str, int]]] = None):
        self._scales: Dict[str, Dict[str, int]] = {
            name: dict(scale) for name, scale in BUILTIN_SCALES.items()
        }
        for name, scale in (scales or {}).items():
            self.register(name, scale)

    def register(self, source: str, scale: Mapping[str, int]) -> None:
        """Add or replace the ranking table used for *source*."""
        self._scales[source] = {label.lower(): int(rank) for label, rank in scale.items()}

    def scale_for(self, source: str) -> Optional[Dict[str, int]]:
        return self._scales.get(source)

    def sources(self):
        return sorted(self._scales)


class PriorityGate:
    """Decides whether an event's priority allows opening a new incident."""

    def __init__(
        self,
        registry: SeverityScaleRegistry,
        source: str,
        minimum_priority: Optional[str],
    ):
        self.registry = registry
        self.source = source
        self.minimum_priority = (minimum_priority or "").strip().lower()

        if registry.scale_for(source) is None:
            logger.warning(
                "[INCIDENT-ENRICHMENT] No severity scale registered for source %r, "
                "new incidents will never be opened",
                source,
            )

    def is_open(self, priority: str) -> bool:
        """True when *priority* ranks at or above the minimum priority.

        Closed when the source has no scale, or either label is missing from
        that scale.
        """
        if not self.minimum_priority:
            return False

        scale = self.registry.scale_for(self.source)
        if scale is None:
            return False

        rank = scale.get(priority)
        threshold = scale.get(self.minimum_priority)
        if rank is None or threshold is None:
            return False
        return rank >= threshold
